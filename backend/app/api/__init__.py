from typing import Optional

from fastapi import Header, HTTPException
from starlette.requests import Request

from app.core.config import Settings, settings as default_settings
from app.storage.repository import InMemoryRepository


def get_repository(request: Request) -> InMemoryRepository:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise HTTPException(status_code=500, detail="Repository not initialized")
    return repository


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or default_settings


def get_current_user_id(request: Request, x_user_id: Optional[str] = Header(default=None)) -> str:
    # Authentication lives in front of this service; it forwards the caller as X-User-Id.
    return x_user_id or get_app_settings(request).default_user_id
