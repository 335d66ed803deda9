from __future__ import annotations

import base64
import json
import logging
import re
import socket
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen


logger = logging.getLogger(__name__)


API_ROOT = "https://api.github.com"

DEFAULT_OWNER = "SingularityNET-Archive"
DEFAULT_REPO = "SingularityNET-Archive-GitBook"
DEFAULT_BRANCH = "main"


@dataclass
class GitHubError(Exception):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            out["details"] = self.details
        return out


class FetchError(GitHubError):
    pass


class CommitError(GitHubError):
    pass


@dataclass(frozen=True)
class GitHubConfig:
    owner: str = DEFAULT_OWNER
    repo: str = DEFAULT_REPO
    branch: str = DEFAULT_BRANCH
    token: Optional[str] = None
    # Commit target; falls back to the source repo.
    commit_owner: Optional[str] = None
    commit_repo: Optional[str] = None
    commit_branch: Optional[str] = None
    timeout_s: float = 30.0


def _contents_url(owner: str, repo: str, path: str) -> str:
    return f"{API_ROOT}/repos/{owner}/{repo}/contents/{quote(path.strip('/'))}"


class GitHubClient:
    def __init__(self, cfg: GitHubConfig):
        self._cfg = cfg

    @property
    def config(self) -> GitHubConfig:
        return self._cfg

    def _headers(self, *, json_body: bool = False) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self._cfg.token:
            headers["Authorization"] = f"token {self._cfg.token}"
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _request(self, url: str, *, method: str = "GET", payload: Optional[Dict[str, Any]] = None,
                 error_cls: type = FetchError) -> Any:
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = Request(url, data=data, headers=self._headers(json_body=data is not None), method=method)

        try:
            with urlopen(req, timeout=self._cfg.timeout_s) as resp:
                raw_bytes = resp.read()
        except HTTPError as e:
            details: Dict[str, Any] = {"http_status": getattr(e, "code", None), "url": url}
            try:
                body = e.read().decode("utf-8", errors="replace")
            except Exception:
                body = None
            if body:
                details["body_preview"] = body[:500]
            code = "not_found" if getattr(e, "code", None) == 404 else "http_error"
            raise error_cls(
                code=code,
                message=f"GitHub {method} {url} failed (HTTP {getattr(e, 'code', 'unknown')}).",
                details=details,
            ) from e
        except socket.timeout as e:
            raise error_cls(
                code="timeout",
                message=f"GitHub request timed out after {self._cfg.timeout_s:.0f}s.",
                details={"url": url},
            ) from e
        except (URLError, ConnectionError) as e:
            raise error_cls(
                code="unavailable",
                message=f"GitHub is unreachable: {e}",
                details={"exception_type": type(e).__name__, "url": url},
            ) from e

        try:
            return json.loads(raw_bytes.decode("utf-8", errors="replace"))
        except json.JSONDecodeError as e:
            raise error_cls(code="parse_error", message="Failed to parse GitHub response JSON.") from e

    def fetch_directory_contents(self, path: str) -> List[Dict[str, Any]]:
        url = _contents_url(self._cfg.owner, self._cfg.repo, path) + f"?ref={quote(self._cfg.branch)}"
        data = self._request(url)
        if not isinstance(data, list):
            raise FetchError(code="not_a_directory", message=f"Not a directory: {path}")
        return data

    def list_directories(self, path: str) -> List[str]:
        return sorted(
            str(e.get("name"))
            for e in self.fetch_directory_contents(path)
            if isinstance(e, dict) and e.get("type") == "dir"
        )

    def list_markdown_files(self, path: str) -> List[str]:
        return sorted(
            str(e.get("path"))
            for e in self.fetch_directory_contents(path)
            if isinstance(e, dict) and e.get("type") == "file" and str(e.get("name", "")).endswith(".md")
        )

    def fetch_raw_document(self, path: str) -> str:
        url = _contents_url(self._cfg.owner, self._cfg.repo, path) + f"?ref={quote(self._cfg.branch)}"
        data = self._request(url)
        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, str):
            raise FetchError(code="not_a_file", message=f"Not a file: {path}")
        try:
            return base64.b64decode(content).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise FetchError(code="decode_error", message=f"Cannot decode {path}: {e}") from e

    # --- commit-back ---------------------------------------------------------

    def _commit_target(self) -> tuple:
        return (
            self._cfg.commit_owner or self._cfg.owner,
            self._cfg.commit_repo or self._cfg.repo,
            self._cfg.commit_branch or self._cfg.branch,
        )

    def _existing_sha(self, url: str, branch: str) -> Optional[str]:
        try:
            data = self._request(url + f"?ref={quote(branch)}")
        except FetchError as e:
            if e.code == "not_found":
                return None
            raise
        sha = data.get("sha") if isinstance(data, dict) else None
        return sha if isinstance(sha, str) else None

    def persist_artifact(self, path: str, content: str, message: str) -> Dict[str, Any]:
        """Create or update `path` in the commit repository."""

        if not self._cfg.token:
            raise CommitError(code="missing_token", message="GITHUB_TOKEN is not set; cannot commit.")
        owner, repo, branch = self._commit_target()
        url = _contents_url(owner, repo, path)

        try:
            sha = self._existing_sha(url, branch)
        except FetchError as e:
            raise CommitError(code=e.code, message=e.message, details=e.details) from e

        payload: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha

        logger.info("committing %s to %s/%s@%s", path, owner, repo, branch)
        result = self._request(url, method="PUT", payload=payload, error_cls=CommitError)
        return result if isinstance(result, dict) else {}

    def ensure_directory(self, path: str) -> None:
        """Make sure `path` exists in the commit repository (git has no empty dirs)."""

        owner, repo, branch = self._commit_target()
        url = _contents_url(owner, repo, path) + f"?ref={quote(branch)}"
        try:
            self._request(url)
            return
        except FetchError as e:
            if e.code != "not_found":
                raise CommitError(code=e.code, message=e.message, details=e.details) from e
        self.persist_artifact(
            f"{path.rstrip('/')}/README.md",
            "This directory was automatically created by minutes-sync.",
            f"Create directory {path}",
        )


def format_meeting_path(file_path: str, workgroup: str, date: Optional[str]) -> Optional[str]:
    """Commit folder for one meeting record.

    "timeline/2024/January/week-1.md", "Gamers Guild", "2024-01-03" gives
    "timeline/2024/January/week-1/2024-01-03-gamers-guild". None when the
    record has no date or the path is not year/month/file shaped.
    """

    if not date:
        return None
    parts = file_path.strip("/").split("/")
    if len(parts) < 4:
        return None
    root, year, month, name = parts[-4], parts[-3], parts[-2], parts[-1]
    if name.endswith(".md"):
        name = name[: -len(".md")]
    slug = re.sub(r"[ \t]+", "-", workgroup.strip()).lower()
    folder = f"{date.replace('/', '-')}-{slug}"
    return f"{root}/{year}/{month}/{name}/{folder}"
