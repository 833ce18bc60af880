from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..errors import AuthError, ConsoleError
from ..models import Task, TaskPage
from .api_client import ApiClient
from .listing import TaskListingController

logger = logging.getLogger(__name__)

QUEUE = "queue"
COMPLETED = "completed"
FAILED = "failed"


@dataclass
class DashboardFigures:
    pending: Optional[int] = None  # messages waiting in the queue
    processing: Optional[int] = None  # messages picked up but not yet deleted
    completed: Optional[int] = None
    failed: Optional[int] = None
    errors: Dict[str, str] = field(default_factory=dict)


class DashboardAggregator:
    def __init__(self, client: ApiClient, drilldown: TaskListingController, recent: TaskListingController):
        self.client = client
        self.drilldown = drilldown
        self.recent = recent
        self.figures = DashboardFigures()

    @property
    def recent_tasks(self) -> List[Task]:
        return self.recent.tasks

    async def refresh_queue(self) -> bool:
        try:
            status = await self.client.queue_status()
        except AuthError:
            raise
        except ConsoleError as exc:
            return self._failed(QUEUE, exc)
        self.figures.pending = status.approximate_number_of_messages
        self.figures.processing = status.approximate_number_of_messages_not_visible
        self.figures.errors.pop(QUEUE, None)
        return True

    async def refresh_completed(self) -> bool:
        count = await self._count(COMPLETED)
        if count is None:
            return False
        self.figures.completed = count
        return True

    async def refresh_failed(self) -> bool:
        count = await self._count(FAILED)
        if count is None:
            return False
        self.figures.failed = count
        return True

    async def _count(self, status: str) -> Optional[int]:
        try:
            page = await self.client.list_tasks(status=status, limit=1)
        except AuthError:
            raise
        except ConsoleError as exc:
            self._failed(status, exc)
            return None
        self.figures.errors.pop(status, None)
        return page.total

    def _failed(self, figure: str, exc: ConsoleError) -> bool:
        logger.warning("Dashboard %s figure failed: %s", figure, exc.message)
        self.figures.errors[figure] = exc.message
        return False

    async def refresh_statistics(self) -> DashboardFigures:
        await self.refresh_queue()
        await self.refresh_completed()
        await self.refresh_failed()
        return self.figures

    async def refresh(self) -> DashboardFigures:
        """Statistics first, then the recent-tasks strip."""
        await self.refresh_statistics()
        try:
            await self.recent.load()
        except AuthError:
            raise
        except ConsoleError as exc:
            self._failed("recent", exc)
        return self.figures

    async def show_tasks_by_status(self, status: str) -> TaskPage:
        self.drilldown.bind_status(status)
        return await self.drilldown.load()
