# intake_engine/background/tasks.py
from typing import Any, Callable, Iterable

from fastapi import BackgroundTasks

from intake_engine.notifications.base import NotificationSink
from intake_engine.services.notification_service import OutboundNotification, dispatch_notifications


def enqueue_task(
    background_tasks: BackgroundTasks,
    func: Callable[..., Any],
    *args: Any,
    **kwargs: Any,
) -> None:
    """
    Helper to add a background task in a consistent way.

    Usage in endpoints:
        from fastapi import BackgroundTasks
        from intake_engine.background.tasks import enqueue_task

        @router.post("/something")
        def handler(..., background_tasks: BackgroundTasks):
            enqueue_task(background_tasks, some_callable, arg, key=value)
    """
    background_tasks.add_task(func, *args, **kwargs)


def enqueue_notifications(
    background_tasks: BackgroundTasks,
    sink: NotificationSink,
    notifications: Iterable[OutboundNotification],
) -> None:
    """Dispatch after the response is sent, i.e. after the allocation committed."""
    notifications = list(notifications)
    if notifications:
        enqueue_task(background_tasks, dispatch_notifications, sink, notifications)
