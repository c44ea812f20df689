# src/fixer/registry.py
import importlib
import logging
import pkgutil
from typing import Dict, List, Optional

from .core import FixDefinition

logger = logging.getLogger(__name__)


class FixRegistry:
    """
    Central registry mapping audit rule ids to fix transformations.

    Dynamically discovers FixDefinition modules from the 'fixer.rules'
    package. A rule id without a dedicated definition resolves to the
    default (review comment) definition.
    """

    _definitions: Dict[str, FixDefinition] = {}
    _default: Optional[FixDefinition] = None
    _loaded: bool = False

    @classmethod
    def discover(cls) -> None:
        if cls._loaded:
            return

        try:
            import fixer.rules as rules_pkg

            for _, name, _ in pkgutil.iter_modules(rules_pkg.__path__):
                full_name = f"fixer.rules.{name}"
                try:
                    module = importlib.import_module(full_name)
                except Exception as e:
                    logger.error(f"Error loading fix module {name}: {e}")
                    continue

                defn = getattr(module, "DEFINITION", None)
                if isinstance(defn, FixDefinition):
                    cls.register(defn)
                    logger.debug(f"Fix rule loaded: {defn.name} -> {defn.rule_ids}")

            cls._loaded = True
        except ImportError as e:
            logger.error(f"Could not find fix rules package: {e}")

    @classmethod
    def register(cls, defn: FixDefinition) -> None:
        if defn.is_default:
            cls._default = defn
        for rule_id in defn.rule_ids:
            if rule_id in cls._definitions and cls._definitions[rule_id] is not defn:
                logger.warning(f"Rule id '{rule_id}' re-registered by {defn.name}")
            cls._definitions[rule_id] = defn

    @classmethod
    def get(cls, rule_id: str) -> Optional[FixDefinition]:
        """The definition for a rule id, falling back to the default."""
        cls.discover()
        return cls._definitions.get(rule_id, cls._default)

    @classmethod
    def get_all_rule_ids(cls) -> List[str]:
        cls.discover()
        return sorted(cls._definitions)
