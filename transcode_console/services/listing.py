from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import List, Optional

from ..config import Settings
from ..errors import AuthError, ConsoleError, ValidationError
from ..models import Task, TaskPage, TaskStatus
from ..utils.pagination import PageWindow, offset_for, page_window, total_pages
from .api_client import ApiClient

logger = logging.getLogger(__name__)


class TaskListingController:
    """One paginated, filterable view over ``GET /tasks``.

    The main task table, the dashboard drill-down and the recent-tasks strip
    are separate instances; none of them share page or filter state.
    """

    def __init__(
        self,
        client: ApiClient,
        page_size: int = 10,
        status_filter: Optional[str] = None,
        date_filter: Optional[str] = None,
        locked: bool = False,
    ):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.client = client
        self.page = 1
        self.page_size = page_size
        self.status_filter = _status_value(status_filter)
        self.date_filter = date_filter or None
        self.locked = locked
        self.tasks: List[Task] = []
        self.total = 0
        self.loading = False

    @classmethod
    def for_task_table(cls, client: ApiClient, cfg: Settings) -> "TaskListingController":
        return cls(client, page_size=cfg.page_size, date_filter=date.today().isoformat())

    @classmethod
    def drilldown(cls, client: ApiClient, cfg: Settings) -> "TaskListingController":
        return cls(client, page_size=cfg.page_size, locked=True)

    @classmethod
    def recent(cls, client: ApiClient, cfg: Settings) -> "TaskListingController":
        return cls(client, page_size=cfg.recent_tasks_limit)

    @property
    def offset(self) -> int:
        return offset_for(self.page, self.page_size)

    @property
    def total_pages(self) -> int:
        return total_pages(self.total, self.page_size)

    def window(self) -> PageWindow:
        return page_window(self.page, self.total, self.page_size)

    def set_status_filter(self, status: Optional[str]) -> None:
        if self.locked:
            raise ValidationError("This listing is locked to a single status")
        self.status_filter = _status_value(status)
        self.page = 1

    def set_date_filter(self, day: Optional[str]) -> None:
        if day:
            try:
                date.fromisoformat(day)
            except ValueError as exc:
                raise ValidationError(f"Invalid date: {day}") from exc
        self.date_filter = day or None
        self.page = 1

    def clear_date_filter(self) -> None:
        self.set_date_filter(None)

    def bind_status(self, status: str) -> None:
        self.status_filter = _status_value(status)
        self.locked = True
        self.page = 1

    def go_to_page(self, page: int) -> None:
        self.page = max(1, min(page, self.total_pages or 1))

    async def load(self) -> TaskPage:
        self.loading = True
        try:
            result = await self.client.list_tasks(
                status=self.status_filter,
                date=self.date_filter,
                limit=self.page_size,
                offset=self.offset,
            )
        finally:
            self.loading = False
        self.tasks = result.tasks
        self.total = result.total
        logger.debug("Loaded page %s (%s tasks of %s)", self.page, len(self.tasks), self.total)
        return result

    async def refresh(self) -> TaskPage:
        self.page = 1
        return await self.load()

    async def on_activate(self) -> TaskPage:
        return await self.load()

    async def poll(self, interval: float, stop: asyncio.Event) -> None:
        """Reload every ``interval`` seconds until ``stop`` is set."""
        while not stop.is_set():
            try:
                await self.load()
            except AuthError:
                raise
            except ConsoleError as exc:
                logger.warning("Periodic task refresh failed: %s", exc.message)
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass


def _status_value(status) -> Optional[str]:
    if not status:
        return None
    try:
        return TaskStatus(status).value
    except ValueError as exc:
        raise ValidationError(f"Unknown task status: {status}") from exc
