from fastapi import APIRouter, Depends

from app.api import get_app_settings, get_repository
from app.core.config import Settings
from app.storage.repository import InMemoryRepository

router = APIRouter()


@router.get("/health")
def healthcheck(
    repository: InMemoryRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    return {
        "status": "ok",
        "app": settings.app_name,
        "environment": settings.environment,
        "locations": len(repository.locations),
        "services": len(repository.services),
    }
