from fastapi import APIRouter, Depends

from app.api import get_current_user_id, get_repository
from app.models.schemas import NotificationListResponse, NotificationSchema
from app.services.notification_service import NotificationService
from app.storage.repository import InMemoryRepository

router = APIRouter()


def get_notification_service(
    repository: InMemoryRepository = Depends(get_repository),
) -> NotificationService:
    return NotificationService(repository=repository)


@router.get("/", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = False,
    user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    return service.list_notifications(user_id, unread_only)


@router.post("/read-all")
def mark_all_as_read(
    user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
) -> dict:
    return {"updated": service.mark_all_as_read(user_id)}


@router.post("/{notification_id}/read", response_model=NotificationSchema)
def mark_as_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationSchema:
    return service.mark_as_read(notification_id, user_id)
