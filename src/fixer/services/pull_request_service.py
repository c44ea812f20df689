# src/fixer/services/pull_request_service.py
import logging
from typing import Any, Dict

from fixer.model import Changeset
from fixer.services.github_service import HostingError

logger = logging.getLogger(__name__)


class PullRequestService:
    """Hands a built Changeset to the source host as a branch plus pull request."""

    def __init__(self, hosting: Any):
        """
        Args:
            hosting: A GitHubService (or anything with the same calls).
        """
        self.hosting = hosting

    def submit(self, changeset: Changeset) -> Dict[str, Any]:
        """
        Creates the branch, commits every changed file and opens the PR.

        Returns:
            {'url': ..., 'number': ...} of the pull request.

        Raises:
            HostingError: when the changeset is empty or any hosting call fails.
        """
        if changeset.is_empty:
            raise HostingError("Changeset has no file changes; nothing to submit.")

        self.hosting.create_branch(changeset.branch_name)

        descriptions: Dict[str, str] = {}
        for fix in changeset.fixes:
            descriptions.setdefault(fix.file_path, fix.description)

        for path, content in changeset.files.items():
            existing = self.hosting.get_file_content(path, branch=changeset.branch_name)
            sha = existing[1] if existing else None
            message = f"Fix accessibility: {descriptions.get(path, path)}"
            self.hosting.update_file(path, content, message, changeset.branch_name, sha)

        pull_request = self.hosting.create_pull_request(changeset.title, changeset.body, changeset.branch_name)
        logger.info("Opened pull request #%s: %s", pull_request.get("number"), pull_request.get("url"))
        return pull_request
