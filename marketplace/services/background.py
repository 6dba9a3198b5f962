# marketplace/services/background.py
import logging
from typing import Any, Callable

from fastapi import BackgroundTasks

logger = logging.getLogger(__name__)


def spawn_detached(background: BackgroundTasks, func: Callable[..., Any], *args: Any, label: str = "", **kwargs: Any) -> None:
    """
    Schedule work that must never affect the caller.

    The task runs after the response is sent; any exception it raises is logged
    and discarded.
    """
    name = label or getattr(func, "__name__", "task")

    async def run_detached():
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception(f"Detached task '{name}' failed")

    background.add_task(run_detached)
