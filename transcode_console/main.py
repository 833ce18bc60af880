from __future__ import annotations

import httpx

from .auth import AuthSession, CredentialStore, build_credential_store
from .config import Settings, settings
from .services.api_client import ApiClient
from .services.dashboard import DashboardAggregator
from .services.lifecycle import TaskLifecycleController
from .services.listing import TaskListingController
from .services.param_session import ParamGenerationSession
from .services.presets import PresetCatalog
from .services.system import SystemInfo
from .services.users import UserAdmin


class Console:
    """Wires the client and every controller a dashboard front end needs."""

    def __init__(self, cfg: Settings = settings, credentials: CredentialStore | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = cfg
        self.credentials = credentials if credentials is not None else build_credential_store(cfg)
        self.client = ApiClient(cfg, self.credentials, transport=transport)
        self.auth = AuthSession(self.client, self.credentials)
        self.system = SystemInfo(self.client)
        self.lifecycle = TaskLifecycleController(self.client)
        self.tasks = TaskListingController.for_task_table(self.client, cfg)
        self.dashboard = DashboardAggregator(
            self.client,
            drilldown=TaskListingController.drilldown(self.client, cfg),
            recent=TaskListingController.recent(self.client, cfg),
        )
        self.presets = PresetCatalog(self.client)
        self.users = UserAdmin(self.client, self.auth)
        self.ai = ParamGenerationSession(self.client)
        self.auth.on_logout(self.ai.reset)

    def new_generation_session(self) -> ParamGenerationSession:
        session = ParamGenerationSession(self.client)
        self.auth.on_logout(session.reset)
        return session

    def close_generation_session(self, session: ParamGenerationSession) -> None:
        self.auth.off_logout(session.reset)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "Console":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
