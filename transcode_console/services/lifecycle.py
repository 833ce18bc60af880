from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional

from ..errors import ConfirmationRequired, ConflictError, DomainError, ValidationError
from ..models import CommandAck, SubmitRequest, SubmitResponse, Task, TaskStatus
from .api_client import ApiClient

logger = logging.getLogger(__name__)

ALL_STATUSES: FrozenSet[TaskStatus] = frozenset(TaskStatus)

# Status codes the backend uses to reject a transition for the task's current status.
CONFLICT_STATUS_CODES = {400, 409}


@dataclass(frozen=True)
class Operation:
    name: str
    allowed_from: FrozenSet[TaskStatus]
    requires_confirmation: bool = True

    def allows(self, status: TaskStatus) -> bool:
        return status in self.allowed_from


OPERATIONS = {
    "submit": Operation("submit", ALL_STATUSES),
    "retry": Operation("retry", ALL_STATUSES - {TaskStatus.PROCESSING}),
    "cancel": Operation("cancel", frozenset({TaskStatus.PENDING})),
    "abort": Operation("abort", frozenset({TaskStatus.PROCESSING})),
    "purge": Operation("purge", ALL_STATUSES),
}

TASK_ACTIONS = ("retry", "cancel", "abort")


def requires_confirmation(operation: str) -> bool:
    return OPERATIONS[operation].requires_confirmation


def available_actions(task: Task) -> List[str]:
    return [name for name in TASK_ACTIONS if OPERATIONS[name].allows(task.status)]


class TaskLifecycleController:
    def __init__(self, client: ApiClient):
        self.client = client

    @staticmethod
    def _confirm(operation: str, confirmed: bool) -> None:
        if requires_confirmation(operation) and not confirmed:
            raise ConfirmationRequired(operation)

    async def submit(self, input_bucket: str, input_key: str, transcode_types: Iterable[str], confirmed: bool = False) -> SubmitResponse:
        types = list(dict.fromkeys(t.strip() for t in transcode_types if t and t.strip()))
        if not types:
            raise ValidationError("Select at least one transcode type")
        if not input_bucket.strip() or not input_key.strip():
            raise ValidationError("Input bucket and key are required")
        self._confirm("submit", confirmed)

        resp = await self.client.submit_task(SubmitRequest(
            input_bucket=input_bucket.strip(),
            input_key=input_key.strip(),
            transcode_types=types,
        ))
        logger.info("Submitted task %s (%s)", resp.task_id, ",".join(types))
        return resp

    async def retry(self, task_id: str, status: Optional[TaskStatus] = None, confirmed: bool = False) -> CommandAck:
        return await self._transition("retry", task_id, status, confirmed, self.client.retry_task)

    async def cancel(self, task_id: str, status: Optional[TaskStatus] = None, confirmed: bool = False) -> CommandAck:
        return await self._transition("cancel", task_id, status, confirmed, self.client.cancel_task)

    async def abort(self, task_id: str, status: Optional[TaskStatus] = None, confirmed: bool = False) -> CommandAck:
        return await self._transition("abort", task_id, status, confirmed, self.client.abort_task)

    async def purge_queue(self, confirmed: bool = False) -> CommandAck:
        self._confirm("purge", confirmed)
        ack = await self.client.purge_queue()
        logger.info("Queue purged")
        return ack

    async def _transition(self, name: str, task_id: str, status: Optional[TaskStatus], confirmed: bool, send) -> CommandAck:
        if not task_id:
            raise ValidationError("Task id is required")
        self._confirm(name, confirmed)

        if status is None:
            status = (await self.client.get_task(task_id)).status
        try:
            status = TaskStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown task status: {status}") from exc
        if not OPERATIONS[name].allows(status):
            logger.warning("Refusing %s of task %s in status %s", name, task_id, status.value)
            raise ConflictError(f"Cannot {name} a task that is {status.value}", task_id=task_id, status=status.value)

        try:
            ack = await send(task_id)
        except DomainError as exc:
            if exc.status_code in CONFLICT_STATUS_CODES:
                raise ConflictError(exc.message, task_id=task_id) from exc
            raise
        logger.info("%s accepted for task %s", name.capitalize(), task_id)
        return ack
