# intake_engine/dependencies/providers.py
"""
FastAPI dependencies for the engine's collaborators.

Tests override these through ``app.dependency_overrides`` to inject a
file-backed database, a frozen clock or a recording notification sink.
"""
from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from intake_engine.core.database import get_session_factory
from intake_engine.notifications.base import NotificationSink
from intake_engine.notifications.in_app import InAppNotificationSink
from intake_engine.services.sequence_service import SequenceGenerator
from intake_engine.utils.datetime_utils import Clock, get_clock


def get_engine_clock() -> Clock:
    return get_clock()


def get_sequence_generator(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> SequenceGenerator:
    return SequenceGenerator(session_factory)


def get_notification_sink(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> NotificationSink:
    return InAppNotificationSink(session_factory)
