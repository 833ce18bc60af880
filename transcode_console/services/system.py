from __future__ import annotations

import logging
from typing import Optional

from ..errors import ConsoleError
from ..models import HealthStatus, PlatformInfo, SystemConfig
from .api_client import ApiClient

logger = logging.getLogger(__name__)


class SystemInfo:
    def __init__(self, client: ApiClient):
        self.client = client
        self.config: Optional[SystemConfig] = None
        self.platform: Optional[PlatformInfo] = None

    async def check_health(self) -> bool:
        try:
            status: HealthStatus = await self.client.health()
        except ConsoleError as exc:
            logger.warning("Health check failed: %s", exc.message)
            return False
        return status.healthy

    async def load_config(self) -> SystemConfig:
        self.config = await self.client.get_config()
        return self.config

    async def load_platform(self) -> PlatformInfo:
        self.platform = await self.client.get_platform()
        return self.platform
