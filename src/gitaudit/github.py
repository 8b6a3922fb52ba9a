from __future__ import annotations

import os
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import httpx
import requests

from .constants import Limits
from .errors import ComparisonUnavailable, GitHubError, RepositoryEmpty, RepositoryNotFound
from .logging import AuditLogger
from .models import ChangeStats, Commit, CommitDetail, Comparison, FileChange, RepoMeta, RepoRef
from .utils import parse_iso8601

if TYPE_CHECKING:
    from .config import GitHubSettings

GITHUB_API = os.environ.get("GITHUB_API_URL", "https://api.github.com")
DEFAULT_HTTP_TIMEOUT_SECONDS = float(os.environ.get("GITAUDIT_GITHUB_TIMEOUT_SECONDS", "30"))
USER_AGENT = "gitaudit"

# Comparison statuses for which base..head is not a linear range.
_NON_LINEAR_STATUSES = {"diverged", "behind"}


def _isoformat(value: Optional[datetime | str]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _json(response: Any, what: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise GitHubError(f"{what} returned a malformed body") from exc


def _next_link(response: Any) -> Optional[str]:
    links = getattr(response, "links", None) or {}
    nxt = links.get("next") or {}
    return nxt.get("url")


class GitHubClient:
    """
    GitHub REST client: commit listing, commit detail and range comparison.

    Transport failures and unreadable bodies surface as GitHubError so callers
    only handle one error family.
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = GITHUB_API,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        logger: Optional[AuditLogger] = None,
    ):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.logger = logger
        self.session = requests.Session()
        self.session.headers.update(self._headers())

    @classmethod
    def from_config(cls, config: "GitHubSettings", logger: Optional[AuditLogger] = None) -> "GitHubClient":
        return cls(
            config.github_token.get_secret_value(),
            api_url=config.github_api_url,
            timeout=config.github_timeout_seconds,
            logger=logger,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        what: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            return await client.get(url, params=params, headers=self._headers())
        except httpx.HTTPError as exc:
            raise GitHubError(f"{what} failed: {exc or type(exc).__name__}") from exc

    # Synchronous account helpers

    def _session_get(self, url: str, what: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise GitHubError(f"{what} failed: {exc}") from exc
        if r.status_code == 401:
            raise GitHubError(f"{what} requires a valid GitHub token (401)")
        if r.status_code != 200:
            raise GitHubError(f"{what} failed ({r.status_code})")
        return r

    def get_authenticated_user(self) -> Dict[str, Any]:
        what = "Fetching the authenticated user"
        return _json(self._session_get(f"{self.api_url}/user", what), what)

    def list_repositories(self) -> List[Dict[str, Any]]:
        """All repositories the token can see (owned, collaborator, org member)."""
        url: Optional[str] = f"{self.api_url}/user/repos"
        params: Optional[Dict[str, Any]] = {
            "visibility": "all",
            "affiliation": "owner,collaborator,organization_member",
            "sort": "updated",
            "per_page": Limits.GITHUB_PAGE_SIZE,
        }
        repos: List[Dict[str, Any]] = []
        while url:
            r = self._session_get(url, "Listing repositories", params=params)
            repos.extend(_json(r, "Listing repositories"))
            url = _next_link(r)
            params = None
        return repos

    # Async commit APIs

    async def list_commits(
        self,
        repo: RepoRef,
        *,
        author: Optional[str] = None,
        since: Optional[datetime | str] = None,
        until: Optional[datetime | str] = None,
        max_pages: Optional[int] = None,
        cancel: Optional[Any] = None,
    ) -> List[Commit]:
        """
        List commits, following Link pagination, filtered by author and date range.

        When `cancel` (anything with a `cancelled` flag) is set, pagination
        stops after the current page and the commits so far are returned.
        """
        what = f"Listing commits for {repo.full_name}"
        url: Optional[str] = f"{self.api_url}/repos/{repo.full_name}/commits"
        params: Optional[Dict[str, Any]] = {"per_page": Limits.GITHUB_PAGE_SIZE}
        if author:
            params["author"] = author
        if since:
            params["since"] = _isoformat(since)
        if until:
            params["until"] = _isoformat(until)

        commits: List[Commit] = []
        pages = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while url:
                resp = await self._get(client, url, what, params=params)
                if resp.status_code == 404:
                    raise RepositoryNotFound(f"Repository {repo.full_name} not found or not accessible.")
                if resp.status_code == 409:
                    raise RepositoryEmpty(f"Repository {repo.full_name} is empty.")
                if resp.status_code != 200:
                    raise GitHubError(f"{what} failed ({resp.status_code})")
                commits.extend(Commit.from_api(item) for item in _json(resp, what))
                pages += 1
                if self.logger is not None:
                    self.logger.debug("commits_page", repo=repo.full_name, page=pages, total=len(commits))
                if max_pages is not None and pages >= max_pages:
                    break
                if cancel is not None and cancel.cancelled:
                    break
                url = _next_link(resp)
                # The next link already carries the query string.
                params = None
        return commits

    async def get_commit_detail(self, repo: RepoRef, sha: str) -> CommitDetail:
        what = f"Fetching commit {sha}"
        url = f"{self.api_url}/repos/{repo.full_name}/commits/{sha}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await self._get(client, url, what)
        if resp.status_code == 404:
            raise RepositoryNotFound(f"Commit {sha} not found in {repo.full_name}")
        if resp.status_code != 200:
            raise GitHubError(f"{what} failed ({resp.status_code})")
        data = _json(resp, what)
        commit = data.get("commit") or {}
        files = tuple(FileChange.from_api(f) for f in data.get("files") or [])
        return CommitDetail(
            sha=str(data.get("sha") or sha),
            message=str(commit.get("message") or ""),
            date=parse_iso8601((commit.get("author") or {}).get("date")),
            files=files,
            stats=ChangeStats.from_api(data.get("stats")) if data.get("stats") else ChangeStats.from_files(files),
        )

    async def compare_commits(self, repo: RepoRef, base: str, head: str) -> Comparison:
        """
        Compare base...head.

        Raises ComparisonUnavailable when GitHub cannot compute the range
        (404/422) or when the two commits are not on a linear history.
        """
        what = f"Comparing {base[:7]}...{head[:7]}"
        url = f"{self.api_url}/repos/{repo.full_name}/compare/{base}...{head}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await self._get(client, url, what)
        if resp.status_code in (404, 422):
            raise ComparisonUnavailable(f"Cannot compare {base[:7]}...{head[:7]} ({resp.status_code})")
        if resp.status_code != 200:
            raise GitHubError(f"{what} failed ({resp.status_code})")
        data = _json(resp, what)
        status = data.get("status")
        if status in _NON_LINEAR_STATUSES:
            raise ComparisonUnavailable(f"Commits {base[:7]}...{head[:7]} have {status} history")
        files = tuple(FileChange.from_api(f) for f in data.get("files") or [])
        return Comparison(
            ahead_by=int(data.get("ahead_by") or 0),
            behind_by=int(data.get("behind_by") or 0),
            total_commits=int(data.get("total_commits") or 0),
            files=files,
            stats=ChangeStats.from_files(files),
        )

    async def get_repository_meta(self, repo: RepoRef) -> RepoMeta:
        what = f"Fetching {repo.full_name}"
        base = f"{self.api_url}/repos/{repo.full_name}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await self._get(client, base, what)
            if resp.status_code == 404:
                raise RepositoryNotFound(f"Repository {repo.full_name} not found or not accessible.")
            if resp.status_code != 200:
                raise GitHubError(f"{what} failed ({resp.status_code})")
            data = _json(resp, what)
            lang_resp = await self._get(client, f"{base}/languages", f"{what} languages")
            languages = _json(lang_resp, f"{what} languages") if lang_resp.status_code == 200 else {}
        return RepoMeta(
            name=str(data.get("name") or repo.name),
            description=data.get("description"),
            languages=tuple(languages or {}),
        )
