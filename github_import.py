"""
GitHub import: pull an account's public repositories into the catalog.

The whole repository list is fetched and mapped before anything touches the
catalog, so a failure on any page leaves the catalog exactly as it was.
"""

import logging
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from catalog import CatalogStore
from errors import ImportNotConfigured, UpstreamError
from schemas import Project, ProjectCreate

logger = logging.getLogger("portfolio.github")

PAGE_SIZE = 100


class GitHubClient:
    """Minimal GitHub REST client for listing a user's repositories."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        user_agent: str = "portfolio-api/1.0",
        timeout: float = 20.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    def get_json(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            with httpx.Client(timeout=self._timeout, headers=self._headers) as client:
                r = client.get(url, params=params)
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"GitHub API timed out for {url}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"GitHub API unreachable for {url}: {exc}") from exc

        if r.status_code == 403 and r.headers.get("X-RateLimit-Remaining") == "0":
            raise UpstreamError("GitHub API rate limit exhausted")
        if r.status_code >= 400:
            raise UpstreamError(f"GitHub API error {r.status_code} for {url}: {r.text[:200]}")
        try:
            return r.json()
        except ValueError as exc:
            raise UpstreamError(f"GitHub API returned invalid JSON for {url}") from exc

    def fetch_all_repositories(self, account: str) -> List[dict]:
        """List every repository of ``account``, page by page, in API order."""
        out: List[dict] = []
        page = 1
        while True:
            data = self.get_json(
                f"/users/{quote(account)}/repos",
                params={"per_page": PAGE_SIZE, "page": page},
            )
            if not isinstance(data, list):
                raise UpstreamError(f"Unexpected repository listing for {account} (page {page})")
            out.extend(data)
            if len(data) < PAGE_SIZE:
                break
            page += 1
        logger.debug("Fetched %d repositories for %s over %d page(s)", len(out), account, page)
        return out


def repository_to_project(repo: dict) -> ProjectCreate:
    language = repo.get("language")
    return ProjectCreate(
        title=repo["name"],
        description=repo.get("description"),
        technologies=[language] if language else [],
        source_url=repo.get("html_url"),
        featured=False,
    )


class GitHubImporter:
    def __init__(self, client: GitHubClient, store: CatalogStore, account: Optional[str]):
        self.client = client
        self.store = store
        self.account = account

    @property
    def configured(self) -> bool:
        return bool(self.account)

    def refresh(self) -> List[Project]:
        if not self.account:
            raise ImportNotConfigured("GITHUB_USERNAME is not set")

        logger.info("Importing GitHub repositories for %s", self.account)
        try:
            repos = self.client.fetch_all_repositories(self.account)
            drafts = [repository_to_project(repo) for repo in repos]
        except UpstreamError:
            logger.warning("GitHub import for %s failed, catalog left unchanged", self.account)
            raise
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("GitHub import for %s returned malformed data", self.account)
            raise UpstreamError(f"Malformed repository data: {exc}") from exc

        return self.store.merge_imported(drafts)
