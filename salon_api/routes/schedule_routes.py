import logging
from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salon_api.auth.dependencies import get_current_user, require_practitioner_self
from salon_api.core import config
from salon_api.database import get_db
from salon_api.models.user import User
from salon_api.routes.dependencies import database_unavailable, ensure_database_ready
from salon_api.scheduling.slots import InvalidTimeValue, TimeSlot, generate_time_slots
from salon_api.scheduling.working_hours import (
    ScheduleFormData,
    ScheduleValidationError,
    get_default_schedule,
    schedule_to_form,
)
from salon_api.services import booking_service, catalog_service, schedule_service

router = APIRouter(tags=['schedule'])

logger = logging.getLogger(__name__)

MAX_BLOCKED_REASON_LENGTH = 200


class WorkingScheduleResponse(BaseModel):
    id: int
    practitioner_id: int
    day_of_week: int
    start_time: time
    end_time: time
    time_slot_interval_minutes: int | None = None

    class Config:
        from_attributes = True


class ScheduleWindowInput(BaseModel):
    day_of_week: int
    start_time: str
    end_time: str
    time_slot_interval_minutes: int | None = None


class AppointmentIntervalInput(BaseModel):
    start_time: str
    end_time: str


class SlotPreviewRequest(BaseModel):
    working_schedules: list[ScheduleWindowInput]
    selected_date: date
    existing_appointments: list[AppointmentIntervalInput] = []
    service_duration_minutes: int = config.DEFAULT_SERVICE_DURATION_MINUTES

    @field_validator('service_duration_minutes')
    @classmethod
    def validate_service_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Service duration must be a positive number of minutes.')
        return value


class BlockedDateRequest(BaseModel):
    blocked_date: date
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_BLOCKED_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_BLOCKED_REASON_LENGTH} characters or fewer.')

        return normalized


class BlockedDateResponse(BaseModel):
    id: int
    blocked_date: date
    reason: str | None = None

    class Config:
        from_attributes = True


def resolve_service_duration(db: Session, service_ids: list[int], duration_minutes: int | None) -> int:
    if service_ids:
        try:
            services = catalog_service.resolve_services(db, service_ids)
        except catalog_service.UnknownServiceError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except SQLAlchemyError as exc:
            raise database_unavailable(exc) from exc

        try:
            total_minutes = catalog_service.total_duration_minutes(services)
            booking_service.validate_duration(total_minutes)
        except booking_service.BookingRuleError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return total_minutes

    return duration_minutes or config.DEFAULT_SERVICE_DURATION_MINUTES


@router.get('/default', response_model=ScheduleFormData)
def read_default_schedule():
    return get_default_schedule()


@router.get('/practitioners/{practitioner_id}', response_model=list[WorkingScheduleResponse])
def list_practitioner_schedule(practitioner_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return schedule_service.get_practitioner_schedule(db, practitioner_id)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/practitioners/{practitioner_id}/form', response_model=ScheduleFormData)
def read_practitioner_schedule_form(practitioner_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return schedule_to_form(schedule_service.get_practitioner_schedule(db, practitioner_id))
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/practitioners/{practitioner_id}/days/{day_of_week}', response_model=list[WorkingScheduleResponse])
def list_working_hours_for_day(
    practitioner_id: int,
    day_of_week: int = Path(..., ge=0, le=6),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return schedule_service.get_working_hours_for_day(db, practitioner_id, day_of_week)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.put('/practitioners/{practitioner_id}', response_model=list[WorkingScheduleResponse])
def save_practitioner_schedule(
    practitioner_id: int,
    data: ScheduleFormData,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_practitioner_self(current_user, practitioner_id, 'change this working schedule')
    ensure_database_ready()

    try:
        return schedule_service.save_practitioner_schedule(db, practitioner_id, data)
    except ScheduleValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/practitioners/{practitioner_id}/slots', response_model=list[TimeSlot])
def list_time_slots(
    practitioner_id: int,
    selected_date: date = Query(..., alias='date'),
    service_ids: list[int] = Query(default=[]),
    duration_minutes: int | None = Query(default=None, gt=0),
    db: Session = Depends(get_db),
):
    service_duration = resolve_service_duration(db, service_ids, duration_minutes)

    try:
        blocked = schedule_service.is_date_blocked(db, practitioner_id, selected_date)
    except SQLAlchemyError:
        logger.warning('Could not check blocked dates for practitioner %s', practitioner_id, exc_info=True)
        blocked = False

    if blocked:
        return []

    working_schedules = schedule_service.load_practitioner_schedule(db, practitioner_id)
    appointments = schedule_service.load_appointments_for_date(db, practitioner_id, selected_date)

    try:
        return generate_time_slots(working_schedules, selected_date, appointments, service_duration)
    except InvalidTimeValue as exc:
        logger.exception('Unreadable schedule or appointment times for practitioner %s', practitioner_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Stored schedule or appointment times could not be read.',
        ) from exc


@router.post('/slots/preview', response_model=list[TimeSlot])
def preview_time_slots(data: SlotPreviewRequest):
    try:
        return generate_time_slots(
            data.working_schedules,
            data.selected_date,
            data.existing_appointments,
            data.service_duration_minutes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get('/practitioners/{practitioner_id}/blocked-dates', response_model=list[str])
def list_blocked_dates(practitioner_id: int, db: Session = Depends(get_db)):
    try:
        return schedule_service.get_blocked_dates(db, practitioner_id)
    except SQLAlchemyError:
        logger.warning('Could not load blocked dates for practitioner %s', practitioner_id, exc_info=True)
        return []


@router.get('/practitioners/{practitioner_id}/blocked-dates/details', response_model=list[BlockedDateResponse])
def list_blocked_dates_with_details(
    practitioner_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_practitioner_self(current_user, practitioner_id, 'manage blocked dates')

    try:
        return schedule_service.get_blocked_dates_with_details(db, practitioner_id)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post(
    '/practitioners/{practitioner_id}/blocked-dates',
    response_model=BlockedDateResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_blocked_date(
    practitioner_id: int,
    data: BlockedDateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_practitioner_self(current_user, practitioner_id, 'manage blocked dates')

    try:
        return schedule_service.add_blocked_date(db, practitioner_id, data.blocked_date, data.reason)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/practitioners/{practitioner_id}/blocked-dates/{blocked_date}', status_code=status.HTTP_204_NO_CONTENT)
def remove_blocked_date(
    practitioner_id: int,
    blocked_date: date,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_practitioner_self(current_user, practitioner_id, 'manage blocked dates')

    try:
        removed = schedule_service.remove_blocked_date(db, practitioner_id, blocked_date)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Blocked date not found.',
        )
