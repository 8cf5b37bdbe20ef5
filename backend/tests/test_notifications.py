import pytest
from fastapi import HTTPException

from app.models.domain import NotificationType
from app.services.notification_service import NotificationService
from app.storage import seed


def test_inbox_and_read_state(repository):
    service = NotificationService(repository)
    first = service.create_notification(
        seed.TOURIST_ID, NotificationType.DENSITY_ALERT, "Busy beach", "Zlatni Rat is very busy"
    )
    service.create_notification(
        seed.TOURIST_ID, NotificationType.PROMOTIONAL, "Early bird", "10% off September stays"
    )
    service.create_notification(seed.HOST_USER_ID, NotificationType.PROMOTIONAL, "Hi", "Host only")

    inbox = service.list_notifications(seed.TOURIST_ID)
    assert len(inbox.notifications) == 2
    assert inbox.unread_count == 2

    read = service.mark_as_read(first.id, seed.TOURIST_ID)
    assert read.is_read
    unread = service.list_notifications(seed.TOURIST_ID, unread_only=True)
    assert [n.title for n in unread.notifications] == ["Early bird"]
    assert unread.unread_count == 1

    assert service.mark_all_as_read(seed.TOURIST_ID) == 1
    assert service.unread_count(seed.TOURIST_ID) == 0
    assert service.unread_count(seed.HOST_USER_ID) == 1


def test_cannot_read_someone_elses_notification(repository):
    service = NotificationService(repository)
    notification = service.create_notification(
        seed.HOST_USER_ID, NotificationType.PROMOTIONAL, "Hi", "Host only"
    )

    with pytest.raises(HTTPException) as exc:
        service.mark_as_read(notification.id, seed.TOURIST_ID)
    assert exc.value.status_code == 404
    with pytest.raises(HTTPException):
        service.mark_as_read("missing", seed.HOST_USER_ID)
