import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from errors import CollaboratorError
from models import CommitStatus, MergeRequestDetail
from policy import POLICY_FILE_PATH, parse_policy_file

logger = logging.getLogger(__name__)


class GitLabClient:
    """Thin async wrapper over the GitLab REST API.

    Public methods never raise on API failures: they log and return an
    empty value so the merge request can still be evaluated.
    """

    def __init__(self, base_url: str, token: str, http_client: Optional[httpx.AsyncClient] = None):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = http_client or httpx.AsyncClient()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _project_url(self, project_id: int) -> str:
        return f"{self._base_url}/projects/{project_id}"

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(
                method, url, headers={"PRIVATE-TOKEN": self._token}, **kwargs
            )
        except httpx.HTTPError as e:
            raise CollaboratorError(f"{method} {url} failed: {e}") from e

        if not response.is_success:
            raise CollaboratorError(f"{method} {url} returned {response.status_code}: {response.text}")
        return response

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        response = await self._send(method, url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise CollaboratorError(f"{method} {url} returned invalid JSON") from e

    async def fetch_policy(self, project_id: int, branch: str) -> Dict[str, Any]:
        url = f"{self._project_url(project_id)}/repository/files/{quote(POLICY_FILE_PATH, safe='')}"
        try:
            data = await self._request("GET", url, params={"ref": branch})
        except CollaboratorError as e:
            logger.info("No %s on %s: %s", POLICY_FILE_PATH, branch, e)
            return {}
        if not isinstance(data, dict) or not data.get("content"):
            return {}
        return parse_policy_file(data["content"])

    async def fetch_merge_request_detail(self, project_id: int, mr_iid: int) -> Optional[MergeRequestDetail]:
        url = f"{self._project_url(project_id)}/merge_requests/{mr_iid}"
        try:
            return MergeRequestDetail.model_validate(await self._request("GET", url))
        except (CollaboratorError, PydanticValidationError) as e:
            logger.error("Failed to fetch merge request !%s: %s", mr_iid, e)
            return None

    async def fetch_merge_request_commits(self, project_id: int, mr_iid: int) -> List[str]:
        """Commit messages of the MR, oldest first."""
        url = f"{self._project_url(project_id)}/merge_requests/{mr_iid}/commits"
        page = "1"
        data: List[Any] = []
        try:
            while page:
                response = await self._send("GET", url, params={"per_page": 100, "page": page})
                try:
                    page_data = response.json()
                except ValueError as e:
                    raise CollaboratorError(f"GET {url} returned invalid JSON") from e
                if not isinstance(page_data, list) or not page_data:
                    break
                data.extend(page_data)
                page = response.headers.get("X-Next-Page", "").strip()
        except CollaboratorError as e:
            logger.error("Failed to fetch commits of merge request !%s: %s", mr_iid, e)
            return []
        # GitLab lists the newest commit first
        return [c["message"] for c in reversed(data) if isinstance(c, dict) and isinstance(c.get("message"), str)]

    async def post_status(self, project_id: int, mr_iid: int, status: CommitStatus) -> bool:
        detail = await self.fetch_merge_request_detail(project_id, mr_iid)
        if detail is None or not detail.sha:
            logger.error("Cannot post status: no head commit for merge request !%s", mr_iid)
            return False

        url = f"{self._project_url(project_id)}/statuses/{detail.sha}"
        try:
            await self._request("POST", url, json=status.model_dump(exclude_none=True))
        except CollaboratorError as e:
            logger.error("Failed to post status on %s: %s", detail.sha, e)
            return False
        return True

    async def rename_merge_request_title(self, project_id: int, mr_iid: int, title: str) -> bool:
        url = f"{self._project_url(project_id)}/merge_requests/{mr_iid}"
        try:
            await self._request("PUT", url, json={"title": title})
        except CollaboratorError as e:
            logger.error("Failed to rename merge request !%s: %s", mr_iid, e)
            return False
        return True
