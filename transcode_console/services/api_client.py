from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import httpx
import orjson
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from ..auth import CredentialStore
from ..config import Settings
from ..errors import AuthError, DomainError, TransportError
from ..models import (
    AIResult,
    CommandAck,
    FixRequest,
    FixResult,
    GenerateRequest,
    HealthStatus,
    LoginResult,
    PlatformInfo,
    Preset,
    PresetCreate,
    QueueStatus,
    SubmitRequest,
    SubmitResponse,
    SystemConfig,
    Task,
    TaskPage,
    TestOutcome,
    TestRequest,
    User,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

LOGIN_PATH = "/auth/login"

# Endpoints reachable without a bearer token.
PUBLIC_PATHS = {"/health", LOGIN_PATH}


class ApiClient:
    """Async client for the transcoding backend.

    Every call either returns a typed model or raises one of the errors in
    :mod:`transcode_console.errors`. A 401 from any endpoint but login clears the
    credential store and notifies the registered invalidation listeners
    before :class:`AuthError` propagates.
    """

    def __init__(self, cfg: Settings, credentials: CredentialStore, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = cfg.api_base.rstrip("/")
        self.credentials = credentials
        self._listeners: List[Callable[[], None]] = []
        self._http = httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=None)

    def add_invalidation_listener(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    async def aclose(self) -> None:
        await self._http.aclose()

    # -- transport -------------------------------------------------------

    def _headers(self, path: str) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if path in PUBLIC_PATHS:
            return headers
        token = self.credentials.get_token()
        if not token:
            raise AuthError()
        headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send(self, method: str, path: str, params: Optional[Dict[str, Any]] = None, body: Any = None) -> httpx.Response:
        headers = self._headers(path)
        content = orjson.dumps(body) if body is not None else None
        logger.debug("%s %s params=%s", method, path, params)
        try:
            resp = await self._http.request(method, path, params=params, content=content, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransportError() from exc

        if resp.status_code == 401:
            if path == LOGIN_PATH:
                # rejected credentials; the stored session stays valid
                raise AuthError(self._error_message(resp, "Invalid username or password"))
            self._invalidate()
            raise AuthError()
        return resp

    @classmethod
    def _error_message(cls, resp: httpx.Response, fallback: str) -> str:
        try:
            payload = cls._decode(resp)
        except TransportError:
            payload = {}
        return DomainError.from_response(resp.status_code, payload, fallback).message

    def _invalidate(self) -> None:
        self.credentials.clear()
        for listener in list(self._listeners):
            listener()

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        if not resp.content:
            return {}
        try:
            return orjson.loads(resp.content)
        except orjson.JSONDecodeError as exc:
            raise TransportError("Malformed response from the transcoding service") from exc

    async def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None, body: Any = None, fallback: str = "Request failed") -> Any:
        resp = await self._send(method, path, params=params, body=body)
        if resp.is_success:
            return self._decode(resp)
        try:
            payload = self._decode(resp)
        except TransportError:
            payload = {}
        err = DomainError.from_response(resp.status_code, payload, fallback)
        logger.warning("%s %s -> %s: %s", method, path, resp.status_code, err.message)
        raise err

    @staticmethod
    def _parse(model: Type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except ModelValidationError as exc:
            raise TransportError("Malformed response from the transcoding service") from exc

    # -- auth & system ---------------------------------------------------

    async def login(self, username: str, password: str) -> LoginResult:
        data = await self._request("POST", LOGIN_PATH, body={"username": username, "password": password}, fallback="Login failed")
        return self._parse(LoginResult, data)

    async def me(self) -> User:
        return self._parse(User, await self._request("GET", "/auth/me"))

    async def health(self) -> HealthStatus:
        return self._parse(HealthStatus, await self._request("GET", "/health"))

    async def get_config(self) -> SystemConfig:
        return self._parse(SystemConfig, await self._request("GET", "/config"))

    async def get_platform(self) -> PlatformInfo:
        return self._parse(PlatformInfo, await self._request("GET", "/platform"))

    # -- tasks & queue ---------------------------------------------------

    async def list_tasks(self, status: Optional[str] = None, date: Optional[str] = None, limit: Optional[int] = None, offset: Optional[int] = None) -> TaskPage:
        params: Dict[str, Any] = {}
        if status:
            params["status"] = status
        if date:
            params["date"] = date
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset
        data = await self._request("GET", "/tasks", params=params, fallback="Failed to load tasks")
        return self._parse(TaskPage, data)

    async def get_task(self, task_id: str) -> Task:
        return self._parse(Task, await self._request("GET", f"/tasks/{task_id}", fallback="Failed to load task"))

    async def submit_task(self, req: SubmitRequest) -> SubmitResponse:
        data = await self._request("POST", "/queue/add", body=req.model_dump(), fallback="Failed to create task")
        return self._parse(SubmitResponse, data)

    async def retry_task(self, task_id: str) -> CommandAck:
        data = await self._request("POST", f"/tasks/{task_id}/retry", fallback="Retry failed")
        return self._parse(CommandAck, data)

    async def cancel_task(self, task_id: str) -> CommandAck:
        data = await self._request("DELETE", f"/tasks/{task_id}", fallback="Cancel failed")
        return self._parse(CommandAck, data)

    async def abort_task(self, task_id: str) -> CommandAck:
        data = await self._request("POST", f"/tasks/{task_id}/abort", fallback="Abort failed")
        return self._parse(CommandAck, data)

    async def queue_status(self) -> QueueStatus:
        data = await self._request("GET", "/queue/status", fallback="Failed to load queue status")
        return self._parse(QueueStatus, data)

    async def purge_queue(self) -> CommandAck:
        data = await self._request("DELETE", "/queue/purge", fallback="Failed to purge queue")
        return self._parse(CommandAck, data)

    # -- AI parameters ---------------------------------------------------

    async def generate_params(self, req: GenerateRequest) -> AIResult:
        data = await self._request("POST", "/llm/generate", body=req.model_dump(), fallback="Generation failed")
        return self._parse(AIResult, data)

    async def test_params(self, req: TestRequest) -> TestOutcome:
        # A failing test is a non-2xx response whose body still describes the run.
        resp = await self._send("POST", "/llm/test", body=req.model_dump())
        payload = self._decode(resp)
        if not isinstance(payload, dict):
            raise TransportError("Malformed response from the transcoding service")
        if resp.is_success:
            return self._parse(TestOutcome, {**payload, "success": True})
        logger.warning("POST /llm/test -> %s: %s", resp.status_code, payload.get("error"))
        return self._parse(TestOutcome, {
            "success": False,
            "command": payload.get("command") or "",
            "output": payload.get("output") or "",
            "error": payload.get("error") or "Unknown error",
            "retries": payload.get("retries") or 0,
        })

    async def fix_params(self, req: FixRequest) -> FixResult:
        data = await self._request("POST", "/llm/fix", body=req.model_dump(), fallback="Fix failed")
        return self._parse(FixResult, data)

    # -- presets ---------------------------------------------------------

    async def list_presets(self) -> List[Preset]:
        data = await self._request("GET", "/presets", fallback="Failed to load presets")
        items = data.get("presets") if isinstance(data, dict) else data
        return [self._parse(Preset, p) for p in items or []]

    async def get_preset(self, preset_id: str) -> Preset:
        return self._parse(Preset, await self._request("GET", f"/presets/{preset_id}"))

    async def create_preset(self, preset: PresetCreate) -> str:
        data = await self._request("POST", "/presets", body=preset.model_dump(), fallback="Failed to save preset")
        if not isinstance(data, dict) or not data.get("preset_id"):
            raise TransportError("Malformed response from the transcoding service")
        return data["preset_id"]

    async def delete_preset(self, preset_id: str) -> None:
        await self._request("DELETE", f"/presets/{preset_id}", fallback="Failed to delete preset")

    # -- users -----------------------------------------------------------

    async def list_users(self) -> List[User]:
        data = await self._request("GET", "/users", fallback="Failed to load users")
        items = data.get("users") if isinstance(data, dict) else data
        return [self._parse(User, u) for u in items or []]

    async def create_user(self, username: str, password: str, role: str) -> User:
        data = await self._request("POST", "/users", body={"username": username, "password": password, "role": role}, fallback="Failed to create user")
        return self._parse(User, data)

    async def delete_user(self, username: str) -> None:
        await self._request("DELETE", f"/users/{username}", fallback="Failed to delete user")

    async def change_password(self, username: str, new_password: str) -> None:
        await self._request("PUT", f"/users/{username}/password", body={"new_password": new_password}, fallback="Failed to change password")
