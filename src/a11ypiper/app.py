from __future__ import annotations

import logging
import sys
from typing import Callable, Dict, List, Optional

from a11ypiper.core.handlers.fix_handler import fix_help_text, handle_fix
from a11ypiper.core.handlers.scan_handler import handle_scan, scan_help_text
from a11ypiper.core.loop_runner import ensure_background_loop
from a11ypiper.core.managers.config_manager import config_manager
from a11ypiper.core.utils.configure_logging import configure_logger

# Initialize logging based on configuration
configure_logger(
    config_manager.get_nested("debug.level", "WARNING"),
    config_manager.get_nested("debug.module_levels", {}),
    config_manager.get_nested("debug.silenced_loggers", {}),
)
logger = logging.getLogger(__name__)

COMMANDS: Dict[str, Callable[[List[str]], int]] = {
    "scan": handle_scan,
    "fix": handle_fix,
}

HELP_TEXT = "\n\n".join([
    "usage: a11ypiper <command> [options]",
    scan_help_text,
    fix_help_text,
])


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the `a11ypiper` console script."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] in ("-h", "--help", "help"):
        print(HELP_TEXT)
        return 0

    command, rest = args[0], args[1:]
    handler = COMMANDS.get(command)
    if handler is None:
        print(f"❌ Unknown command '{command}'.\n\n{HELP_TEXT}")
        return 1

    ensure_background_loop()
    logger.debug("Background asyncio event loop is running.")
    return handler(rest)


if __name__ == "__main__":
    sys.exit(main())
