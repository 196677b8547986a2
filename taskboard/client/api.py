"""
Task API Client
===============

Async HTTP client for the task endpoints, used by the board state manager.

Server errors are mapped onto a small taxonomy so callers can decide
between showing a message (validation, not found) and re-syncing the
board (transient failures, aborted reorders). Server messages are kept
verbatim.
"""

import logging
from typing import Any, Optional

import httpx

from taskboard.config import settings
from taskboard.core.errors import ErrorCodes
from taskboard.schemas.task import ReorderItem, TaskCreate, TaskRead, TaskUpdate

logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================

class ApiError(Exception):
    """Any failed API call."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        field: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.field = field
        super().__init__(message)


class ApiValidationError(ApiError):
    """Input rejected by the server before persistence."""


class ApiNotFoundError(ApiError):
    """The target task does not exist (or is not the caller's)."""


class TransientNetworkError(ApiError):
    """Transport failure or server-side error; recover by re-loading."""


class ReorderAbortedError(TransientNetworkError):
    """A bulk reorder was rolled back on the server."""


def _error_from_response(response: httpx.Response) -> ApiError:
    try:
        payload = response.json()
    except ValueError:
        payload = {}

    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        error = {}

    message = error.get("message") or response.reason_phrase or "Request failed"
    code = error.get("code")
    field = error.get("field")
    status_code = response.status_code

    if code == ErrorCodes.VALIDATION_ERROR or status_code == 422:
        return ApiValidationError(message, status_code, code, field)
    if status_code == 404:
        return ApiNotFoundError(message, status_code, code)
    if code == ErrorCodes.TASK_REORDER_ABORTED:
        return ReorderAbortedError(message, status_code, code)
    if status_code >= 500:
        return TransientNetworkError(message, status_code, code)
    return ApiError(message, status_code, code, field)


# =============================================================================
# Client
# =============================================================================

class TaskApiClient:
    """
    Thin wrapper around ``httpx.AsyncClient`` for the task endpoints.

    Usage:
        async with TaskApiClient(token=session_token) as api:
            tasks = await api.list_tasks(uid)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cookies = {settings.AUTH_COOKIE_NAME: token} if token else None
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            cookies=cookies,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "TaskApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("api_request failed method=%s url=%s error=%s", method, url, exc)
            raise TransientNetworkError(str(exc) or type(exc).__name__) from exc

        if response.is_success:
            try:
                return response.json()
            except ValueError as exc:
                raise TransientNetworkError("Malformed response", response.status_code) from exc

        raise _error_from_response(response)

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    async def list_tasks(self, user_id: str) -> list[dict]:
        """
        Raw task dicts for a user.

        Left unvalidated so the board can drop entries it does not
        recognise instead of failing the whole load.
        """
        payload = await self._request("GET", "/tasks", params={"userId": user_id})
        data = payload.get("data", [])
        if not isinstance(data, list):
            raise TransientNetworkError("Malformed task list")
        return data

    async def create_task(self, task: TaskCreate) -> TaskRead:
        payload = await self._request(
            "POST",
            "/tasks",
            json=task.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return TaskRead.model_validate(payload["data"])

    async def update_task(self, task_id: str, changes: TaskUpdate) -> TaskRead:
        payload = await self._request(
            "PUT",
            f"/tasks/{task_id}",
            json=changes.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return TaskRead.model_validate(payload["data"])

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")

    async def reorder_tasks(self, items: list[ReorderItem]) -> None:
        await self._request(
            "PUT",
            "/tasks/reorder",
            json={"tasks": [item.model_dump(mode="json") for item in items]},
        )
