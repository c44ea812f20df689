# src/fixer/services/github_service.py
import base64
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)


class HostingError(Exception):
    """A source-hosting call failed; terminal for the current fix run."""


class GitHubService:
    """
    Minimal GitHub REST client for one repository: branches, file contents
    and pull requests.
    """

    def __init__(self, owner: str, repo: str, token: str, config: Optional[Dict[str, Any]] = None,
                 session: Optional[requests.Session] = None):
        """
        Args:
            owner / repo: The repository, as in 'owner/repo'.
            token: A token with contents and pull request write access.
            config: The 'github' config section (api_url, base_branch, timeout).
        """
        self.config = config or {}
        self.owner = owner
        self.repo = repo
        self.api_url = self.config.get("api_url", "https://api.github.com").rstrip("/")
        self.base_branch = self.config.get("base_branch", "main")
        self.timeout = self.config.get("timeout", 30)

        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })

    @property
    def _repo_url(self) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self._repo_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise HostingError(f"{method} {url} failed: {e}") from e
        return response

    @staticmethod
    def _check(response: requests.Response, action: str) -> Any:
        if not response.ok:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise HostingError(f"Failed to {action}: HTTP {response.status_code} {message}")
        return response.json() if response.content else {}

    def create_branch(self, branch_name: str, base_branch: Optional[str] = None) -> None:
        base = base_branch or self.base_branch
        ref = self._check(self._request("GET", f"/git/ref/heads/{base}"), f"read branch '{base}'")
        sha = ref["object"]["sha"]
        self._check(
            self._request("POST", "/git/refs", json={"ref": f"refs/heads/{branch_name}", "sha": sha}),
            f"create branch '{branch_name}'",
        )
        logger.info("Created branch %s from %s (%s)", branch_name, base, sha[:7])

    def get_file_content(self, path: str, branch: Optional[str] = None) -> Optional[Tuple[str, str]]:
        """(content, sha) of a file, or None when it does not exist."""
        params = {"ref": branch} if branch else None
        response = self._request("GET", f"/contents/{path}", params=params)
        if response.status_code == 404:
            return None
        data = self._check(response, f"read '{path}'")
        if isinstance(data, list) or data.get("type") != "file":
            raise HostingError(f"'{path}' is not a file")
        content = base64.b64decode(data.get("content", "")).decode("utf-8")
        return content, data["sha"]

    def update_file(self, path: str, content: str, message: str, branch: str,
                    sha: Optional[str] = None) -> None:
        payload = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha
        self._check(self._request("PUT", f"/contents/{path}", json=payload), f"update '{path}'")
        logger.debug("Updated %s on %s", path, branch)

    def create_pull_request(self, title: str, body: str, branch: str,
                            base_branch: Optional[str] = None) -> Dict[str, Any]:
        data = self._check(
            self._request("POST", "/pulls", json={
                "title": title, "body": body, "head": branch, "base": base_branch or self.base_branch,
            }),
            "create pull request",
        )
        return {"url": data.get("html_url"), "number": data.get("number")}

    def list_files(self, path: str = "") -> List[Dict[str, Any]]:
        """Directory entries (name, path, type) at `path`."""
        data = self._check(self._request("GET", f"/contents/{path}"), f"list '{path or '/'}'")
        entries = data if isinstance(data, list) else [data]
        return [{"name": e.get("name"), "path": e.get("path"), "type": e.get("type")} for e in entries]
