import httpx
import logging
from typing import Dict, Any, List, Optional

import rm_sync.logging_config  # noqa: F401  installs Logger.trace
from rm_sync.config import settings
from rm_sync.schemas.rm import RMProject, RMTimeEntryPayload, RMUser

log = logging.getLogger(__name__)

PROJECTS_PER_PAGE = 1000


class RMApiError(Exception):
    """Base class for every failure talking to the RM API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RMAuthError(RMApiError):
    pass


class RMRateLimitError(RMApiError):
    pass


class RMValidationError(RMApiError):
    pass


class RMNotFoundError(RMApiError):
    pass


class RMNetworkError(RMApiError):
    pass


class RMTimeoutError(RMNetworkError):
    pass


def _error_message(response: httpx.Response, default: str) -> str:
    """Pull a readable message out of an RM error body."""
    try:
        body = response.json()
    except ValueError:
        return default
    if not isinstance(body, dict):
        return default
    if body.get("error"):
        return str(body["error"])
    if body.get("message"):
        return str(body["message"])
    field_errors = body.get("errors")
    if isinstance(field_errors, list) and field_errors:
        return ", ".join(
            f"{e.get('field')}: {e.get('message')}" if isinstance(e, dict) else str(e)
            for e in field_errors
        )
    return default


class RMConnector:
    """
    Client for the RM (Resource Management) API.
    Handles token validation, project listing, and creating, updating and
    deleting the authenticated user's time entries.

    - Always uses HTTPS (auto-upgrades HTTP URLs)
    - Bearer token auth with JSON bodies
    - Every request is bounded by the configured timeout
    """

    def __init__(self, config: Dict[str, Any], transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.base_url = self._normalize_base_url(self.config.get("base_url") or settings.rm_base_url)
        self.api_token = self.config["api_token"]  # Already decrypted by the connection store
        self.rm_user_id = self.config.get("rm_user_id")
        timeout = self.config.get("timeout", settings.rm_request_timeout)

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            follow_redirects=True,
            timeout=timeout,
            verify=True,
            transport=transport,
        )
        self.headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        log.debug(f"RM connector initialized with base URL: {self.base_url}")

    async def __aenter__(self) -> "RMConnector":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    def _normalize_base_url(self, url: str) -> str:
        """
        Normalizes the base URL:
        - Upgrades http:// to https://
        - Removes trailing slashes
        - Validates format
        """
        url = url.strip()

        if url.startswith("http://"):
            https_url = url.replace("http://", "https://", 1)
            log.warning(f"RM base URL uses HTTP. Auto-upgrading to HTTPS: {https_url}")
            url = https_url

        if not url.startswith("https://"):
            raise ValueError(
                f"Invalid RM base URL: {url}\n"
                f"URL must start with https:// (e.g., https://api.rm.smartsheet.com/api/v1)"
            )

        return url.rstrip("/")

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Helper to make authenticated requests to the RM API.
        Translates transport and HTTP failures into RMApiError subclasses.
        """
        if not path.startswith("/"):
            path = f"/{path}"

        try:
            log.trace(f"RM API {method} {self.base_url}{path}")
            response = await self.client.request(method, path, headers=self.headers, **kwargs)
            log.trace(f"RM API response: {response.status_code}")
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                error_msg = f"RM returned a non-JSON body for {method} {path} (HTTP {response.status_code})"
                log.error(error_msg)
                raise RMApiError(error_msg, response.status_code) from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            url = str(e.request.url)
            log.debug(f"RM API raw response body: {e.response.text}")

            if status == 429:
                retry_after = e.response.headers.get("Retry-After")
                error_msg = f"RM rate limit exceeded{f', retry after {retry_after}s' if retry_after else ''}"
                log.warning(error_msg)
                raise RMRateLimitError(error_msg, status)

            elif status in (401, 403):
                error_msg = f"RM authentication failed for {url}: {_error_message(e.response, 'Invalid API token')}"
                log.error(error_msg)
                raise RMAuthError(error_msg, status)

            elif status == 404:
                error_msg = f"RM resource not found: {url}"
                log.warning(error_msg)
                raise RMNotFoundError(error_msg, status)

            elif status in (400, 422):
                error_msg = f"RM validation error for {url}: {_error_message(e.response, 'Validation error')}"
                log.error(error_msg)
                raise RMValidationError(error_msg, status)

            elif status >= 500:
                error_msg = f"RM API server error ({status}) for {url}"
                log.error(error_msg)
                raise RMNetworkError(error_msg, status)

            else:
                error_msg = f"RM HTTP {status} error for {url}: {_error_message(e.response, e.response.text)}"
                log.error(error_msg)
                raise RMApiError(error_msg, status)

        except httpx.TimeoutException as e:
            error_msg = f"RM request timed out: {method} {path}"
            log.error(error_msg)
            raise RMTimeoutError(error_msg) from e

        except httpx.RequestError as e:
            error_msg = f"RM request error for {method} {path}: {str(e)}"
            log.error(error_msg)
            raise RMNetworkError(error_msg) from e

    def _entries_path(self, remote_entry_id: Optional[int] = None) -> str:
        if self.rm_user_id is None:
            raise ValueError("RM user ID is required for time entry operations")
        path = f"/users/{self.rm_user_id}/time_entries"
        if remote_entry_id is not None:
            path = f"{path}/{remote_entry_id}"
        return path

    @staticmethod
    def _data_list(response_data: Any, path: str) -> List[Dict[str, Any]]:
        """The `data` array of an RM list response."""
        if response_data is None:
            return []
        if not isinstance(response_data, dict) or not isinstance(response_data.get("data") or [], list):
            raise RMApiError(f"RM returned an unexpected body for {path}: {response_data!r}")
        return response_data.get("data") or []

    async def validate_token(self) -> RMUser:
        """
        Validate the token and return the authenticated user.
        Personal API tokens list the token owner first.
        """
        response_data = await self._request("GET", "/users", params={"page": 1})
        users = self._data_list(response_data, "/users")
        if not users:
            raise RMAuthError("No users found - invalid token or insufficient permissions")
        return RMUser.model_validate(users[0])

    async def fetch_projects(self) -> List[RMProject]:
        """Fetch every non-archived RM project, following pagination."""
        projects: List[RMProject] = []
        page = 1
        while True:
            response_data = await self._request(
                "GET", "/projects", params={"page": page, "per_page": PROJECTS_PER_PAGE}
            )
            batch = self._data_list(response_data, "/projects")
            projects.extend(RMProject.model_validate(p) for p in batch)
            if len(batch) < PROJECTS_PER_PAGE:
                break
            page += 1

        active = [p for p in projects if not p.archived]
        log.info(f"Fetched {len(active)} active RM projects ({len(projects)} total)")
        return active

    async def create_time_entry(self, payload: RMTimeEntryPayload) -> int:
        """Create a time entry and return its RM ID."""
        body = payload.model_dump(exclude_none=True)
        response_data = await self._request("POST", self._entries_path(), json=body)
        if not isinstance(response_data, dict):
            raise RMApiError(f"RM create returned an unexpected body: {response_data!r}")
        try:
            remote_id = int(response_data["id"])
        except (KeyError, TypeError, ValueError):
            raise RMApiError(f"RM create returned no usable entry ID: {response_data}")
        log.debug(f"Created RM time entry {remote_id} for project {payload.assignable_id} on {payload.date}")
        return remote_id

    async def update_time_entry(self, remote_entry_id: int, payload: RMTimeEntryPayload) -> None:
        body = payload.model_dump(exclude_none=True)
        await self._request("PUT", self._entries_path(remote_entry_id), json=body)
        log.debug(f"Updated RM time entry {remote_entry_id}")

    async def delete_time_entry(self, remote_entry_id: int) -> None:
        await self._request("DELETE", self._entries_path(remote_entry_id))
        log.debug(f"Deleted RM time entry {remote_entry_id}")
