from typing import Optional

from fastapi import HTTPException

from app.models.domain import Booking, Supplier, UserRole
from app.storage.repository import InMemoryRepository


def is_admin(repository: InMemoryRepository, user_id: str) -> bool:
    user = repository.get_user(user_id)
    return bool(user and user.role == UserRole.ADMIN)


def supplier_for_user(repository: InMemoryRepository, user_id: str) -> Optional[Supplier]:
    return repository.get_supplier_by_user(user_id)


def is_booking_supplier(repository: InMemoryRepository, booking: Booking, user_id: str) -> bool:
    supplier = supplier_for_user(repository, user_id)
    return bool(supplier and supplier.id == booking.supplier_id)


def require_admin(repository: InMemoryRepository, user_id: str) -> None:
    if not is_admin(repository, user_id):
        raise HTTPException(status_code=403, detail="Admin role required")
