"""
FastAPI dependencies resolving the components wired in ``create_app``.
"""

from fastapi import Request

from policy_intake.artifacts.storage import ArtifactStore
from policy_intake.config import Settings
from policy_intake.notifications.dispatcher import NotificationDispatcher


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ArtifactStore:
    return request.app.state.store


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher
