from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salon_api.auth.dependencies import get_current_user
from salon_api.database import get_db
from salon_api.models.user import User
from salon_api.routes.dependencies import database_unavailable
from salon_api.services import booking_progress_service

router = APIRouter(tags=['booking-progress'])

MAX_BOOKING_STEP = 4


class ExternalClientDraft(BaseModel):
    first_name: str = ''
    last_name: str = ''
    email: str = ''
    phone: str = ''


class BookingProgressRequest(BaseModel):
    current_step: int = 1
    practitioner_id: int | None = None
    selected_services: list[int] = []
    selected_practitioner_id: int | None = None
    selected_client_id: int | None = None
    selected_date: date | None = None
    selected_time: str | None = None
    notes: str | None = None
    is_external_client: bool = False
    external_client_info: ExternalClientDraft | None = None

    @field_validator('current_step')
    @classmethod
    def validate_current_step(cls, value: int) -> int:
        if not 1 <= value <= MAX_BOOKING_STEP:
            raise ValueError(f'Booking step must be between 1 and {MAX_BOOKING_STEP}.')
        return value


class BookingProgressResponse(BaseModel):
    id: int
    user_id: int
    practitioner_id: int | None = None
    current_step: int
    selected_services: list[int] | None = None
    selected_practitioner_id: int | None = None
    selected_client_id: int | None = None
    selected_date: date | None = None
    selected_time: str | None = None
    notes: str | None = None
    is_external_client: bool = False
    external_client_info: ExternalClientDraft | None = None
    expires_at: datetime

    class Config:
        from_attributes = True


@router.get('', response_model=BookingProgressResponse)
def load_booking_progress(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        progress = booking_progress_service.load_progress(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    if progress is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='No booking progress found.')

    return progress


@router.put('', response_model=BookingProgressResponse)
def save_booking_progress(
    data: BookingProgressRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return booking_progress_service.save_progress(db, current_user.id, data.model_dump())
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('', status_code=status.HTTP_204_NO_CONTENT)
def clear_booking_progress(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        booking_progress_service.clear_progress(db, current_user.id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
