"""GitLab REST implementation of :class:`SnapshotSource`."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Mapping, Optional, Sequence
from urllib.parse import quote

import httpx

from ..errors import TransportError
from ..logging import get_logger
from ..models import CommitAction, CommitInfo, DiffEntry, TreeEntry

if TYPE_CHECKING:
    from types import TracebackType

logger = get_logger("git.gitlab")

TokenType = Literal["private", "oauth", "job"]

# Rate limiting and overloaded upstreams are worth waiting for.
RETRY_STATUS_CODES = frozenset({429, 502, 503})
_NOT_FOUND = 404


class GitLabError(TransportError):
    """A GitLab API call failed."""

    def __init__(self, message: str, *, status_code: int | None = None, description: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.description = description


class GitLabSource:
    """Talks to the GitLab v4 API over a pooled ``httpx.AsyncClient``.

    Example::

        async with GitLabSource(host="https://gitlab.example.com", token=token) as source:
            async for path in find_by_glob(source, options):
                ...
    """

    DEFAULT_HOST = "https://gitlab.com"
    PAGE_SIZE = 100

    def __init__(
        self,
        *,
        host: str | None = None,
        token: str | None = None,
        token_type: TokenType = "private",
        timeout: float = 30.0,
        max_retries: int = 10,
        retry_base_delay: float = 0.1,
        verify: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.host = (host or self.DEFAULT_HOST).rstrip("/")
        self.token = token
        self.token_type = token_type
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.verify = verify
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def api_url(self) -> str:
        return f"{self.host}/api/v4"

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Open the connection pool. Safe to call multiple times."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers=self._auth_headers(),
            timeout=httpx.Timeout(self.timeout),
            verify=self.verify,
            transport=self._transport,
        )
        logger.debug("Connected to %s", self.api_url)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> GitLabSource:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # SnapshotSource

    async def list_tree(
        self, repository: str, path: str, ref: str, recursive: bool = True
    ) -> List[TreeEntry]:
        params: Dict[str, Any] = {
            "ref": ref,
            "recursive": "true" if recursive else "false",
            "per_page": self.PAGE_SIZE,
        }
        tree_path = path.strip("/")
        if tree_path:
            params["path"] = tree_path

        entries: List[TreeEntry] = []
        page: Optional[str] = "1"
        while page:
            params["page"] = page
            try:
                response = await self._request(
                    "GET", f"{self._project(repository)}/repository/tree", params=params
                )
            except GitLabError as exc:
                # GitLab answers 404 for a path that does not exist (yet).
                if _is_missing_tree(exc) and page == "1":
                    logger.debug("Tree %s@%s not found, treating as empty", tree_path or "/", ref)
                    return []
                raise
            for item in response.json():
                if item.get("type") in {"blob", "tree"}:
                    entries.append(TreeEntry(type=item["type"], path=item["path"]))
            page = response.headers.get("x-next-page") or None
        return entries

    async def diff(self, repository: str, from_ref: str, to_ref: str) -> List[DiffEntry]:
        response = await self._request(
            "GET",
            f"{self._project(repository)}/repository/compare",
            params={"from": from_ref, "to": to_ref},
        )
        payload = response.json()
        return [_diff_entry(item) for item in payload.get("diffs") or []]

    async def resolve_commit(self, repository: str, ref: str) -> CommitInfo:
        response = await self._request(
            "GET", f"{self._project(repository)}/repository/commits/{quote(ref, safe='')}"
        )
        return _commit_info(response.json())

    async def read_raw(self, repository: str, path: str, ref: str) -> bytes:
        response = await self._request(
            "GET",
            f"{self._project(repository)}/repository/files/{quote(path, safe='')}/raw",
            params={"ref": ref},
        )
        return response.content

    async def create_commit(
        self,
        repository: str,
        branch: str,
        message: str,
        actions: Sequence[CommitAction],
        *,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> CommitInfo:
        body: Dict[str, Any] = {
            "branch": branch,
            "commit_message": message,
            "actions": [
                {
                    "action": action.action,
                    "file_path": action.path,
                    "content": action.content,
                    "encoding": action.encoding,
                }
                for action in actions
            ],
        }
        if author_name:
            body["author_name"] = author_name
        if author_email:
            body["author_email"] = author_email
        response = await self._request(
            "POST", f"{self._project(repository)}/repository/commits", json=body
        )
        commit = _commit_info(response.json())
        logger.info("Created commit %s on %s (%d files)", commit.short_id, branch, len(actions))
        return commit

    # ------------------------------------------------------------------
    # Internals

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        if self._client is None:
            await self.connect()
        assert self._client is not None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self._client.request(method, url, params=params, json=json)
            except httpx.HTTPError as exc:
                raise GitLabError(f"GitLab request {method} {url} failed: {exc}") from exc

            if response.status_code in RETRY_STATUS_CODES and attempt < self.max_retries:
                delay = self.retry_base_delay * (2**attempt)
                logger.debug(
                    "GitLab answered %d for %s %s, retrying in %.2fs (attempt %d/%d)",
                    response.status_code,
                    method,
                    url,
                    delay,
                    attempt + 1,
                    self.max_retries,
                )
                await asyncio.sleep(delay)
                continue

            if response.is_error:
                description = _describe(response)
                message = f"GitLab request {method} {url} failed with status {response.status_code}"
                if description:
                    message = f"{message}: {description}"
                raise GitLabError(message, status_code=response.status_code, description=description)
            return response

        raise GitLabError(f"GitLab request {method} {url} exhausted retries")  # pragma: no cover

    def _auth_headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        if self.token_type == "oauth":
            return {"Authorization": f"Bearer {self.token}"}
        if self.token_type == "job":
            return {"JOB-TOKEN": self.token}
        return {"PRIVATE-TOKEN": self.token}

    @staticmethod
    def _project(repository: str) -> str:
        return f"/projects/{quote(repository, safe='')}"


def _describe(response: httpx.Response) -> str:
    text = response.text.strip()
    if not text:
        return ""
    try:
        payload = response.json()
    except ValueError:
        return text
    if isinstance(payload, dict):
        detail = payload.get("error") or payload.get("message")
        if detail:
            return str(detail)
    return text


def _is_missing_tree(error: GitLabError) -> bool:
    # "404 Tree Not Found", as opposed to a missing project or ref.
    return error.status_code == _NOT_FOUND and "tree" in (error.description or "").lower()


def _diff_entry(item: Mapping[str, Any]) -> DiffEntry:
    if item.get("deleted_file"):
        status = "deleted"
    elif item.get("new_file"):
        status = "added"
    elif item.get("renamed_file"):
        status = "renamed"
    else:
        status = "modified"
    return DiffEntry(new_path=item["new_path"], old_path=item.get("old_path"), status=status)


def _commit_info(payload: Mapping[str, Any]) -> CommitInfo:
    return CommitInfo(
        id=payload["id"],
        short_id=payload.get("short_id") or payload["id"][:8],
        author_name=payload.get("author_name") or "",
        author_email=payload.get("author_email") or "",
        authored_date=payload.get("authored_date"),
        committer_name=payload.get("committer_name"),
        committer_email=payload.get("committer_email"),
        committed_date=payload.get("committed_date"),
        message=payload.get("message") or "",
    )


__all__ = ["GitLabError", "GitLabSource", "RETRY_STATUS_CODES"]
