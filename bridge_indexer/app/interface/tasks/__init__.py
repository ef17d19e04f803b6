from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from .collector.collect_task import collect_task as collector__collect_task
from .collector.dry_run_task import dry_run_task as collector__dry_run_task

TaskFn = Callable[..., Awaitable[Any]]

TASKS: dict[str, TaskFn] = {
    "collector__collect_task": collector__collect_task,
    "collector__dry_run_task": collector__dry_run_task,
}
