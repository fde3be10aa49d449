import logging
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salon_api.auth.dependencies import SUPER_ADMIN_ROLE, get_current_user, is_staff
from salon_api.database import get_db
from salon_api.models.appointment import Appointment
from salon_api.models.user import User
from salon_api.routes.dependencies import database_unavailable, ensure_database_ready
from salon_api.scheduling.slots import InvalidTimeValue
from salon_api.services import booking_service, catalog_service, schedule_service

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600
ACTIVE_STATUSES = {'scheduled', 'confirmed'}


def booking_now() -> datetime:
    return datetime.now()


def booking_today() -> date:
    return booking_now().date()


class ExternalClientInfo(BaseModel):
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def strip_name(cls, value: str) -> str:
        return value.strip()

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        return normalized or None

    @field_validator('phone')
    @classmethod
    def normalize_phone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    service_ids: list[int]
    appointment_date: date
    start_time: time
    practitioner_id: int | None = None
    client_id: int | None = None
    external_client: ExternalClientInfo | None = None
    notes: str | None = None

    @field_validator('service_ids')
    @classmethod
    def validate_service_ids(cls, value: list[int]) -> list[int]:
        if not value:
            raise ValueError('Please select at least one service.')
        return list(dict.fromkeys(value))

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class UpdateAppointmentRequest(BaseModel):
    service_ids: list[int] | None = None
    appointment_date: date | None = None
    start_time: time | None = None
    notes: str | None = None

    @field_validator('service_ids')
    @classmethod
    def validate_service_ids(cls, value: list[int] | None) -> list[int] | None:
        if value is not None and not value:
            raise ValueError('Please select at least one service.')
        return list(dict.fromkeys(value)) if value is not None else None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class AppointmentResponse(BaseModel):
    id: int
    user_id: int | None = None
    practitioner_id: int
    service_ids: list[int]
    appointment_date: date
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    notes: str | None = None
    is_external_client: bool = False
    client_first_name: str | None = None
    client_last_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None


def to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        user_id=appointment.user_id,
        practitioner_id=appointment.practitioner_id,
        service_ids=appointment.service_ids or [],
        appointment_date=appointment.appointment_date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        duration_minutes=int((appointment.end_time - appointment.start_time).total_seconds() // 60),
        status=appointment.status or 'scheduled',
        notes=appointment.notes,
        is_external_client=bool(appointment.is_external_client),
        client_first_name=appointment.client_first_name,
        client_last_name=appointment.client_last_name,
        client_email=appointment.client_email,
        client_phone=appointment.client_phone,
    )


def _active_practitioner(db: Session, practitioner_id: int) -> User:
    practitioner = db.query(User).filter(
        User.id == practitioner_id,
        User.is_practitioner.is_(True),
        User.is_active.is_(True),
        User.is_deleted.is_(False),
    ).first()
    if practitioner is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Practitioner not found.')
    return practitioner


def _resolve_services(db: Session, service_ids: list[int]):
    try:
        return catalog_service.resolve_services(db, service_ids)
    except catalog_service.UnknownServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _check_slot(
    db: Session,
    practitioner_id: int,
    selected_date: date,
    start: time,
    duration_minutes: int,
    exclude_appointment_id: int | None = None,
) -> None:
    try:
        booking_service.ensure_slot_available(
            db, practitioner_id, selected_date, start, duration_minutes, exclude_appointment_id,
        )
    except booking_service.SlotUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except booking_service.BookingRuleError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except InvalidTimeValue as exc:
        logger.exception('Unreadable schedule or appointment times for practitioner %s', practitioner_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Stored schedule or appointment times could not be read.',
        ) from exc


def _get_owned_appointment(db: Session, appointment_id: int, current_user: User, action: str) -> Appointment:
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.is_deleted.is_(False),
    ).first()
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')

    if current_user.role == SUPER_ADMIN_ROLE:
        return appointment
    if current_user.is_practitioner and appointment.practitioner_id == current_user.id:
        return appointment
    if action != 'delete' and appointment.user_id == current_user.id:
        return appointment

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=f'You do not have permission to {action} this appointment.',
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    staff_booking = is_staff(current_user)
    user_id: int | None = current_user.id
    external_client = None

    if staff_booking:
        practitioner_id = current_user.id if current_user.is_practitioner else data.practitioner_id
        if data.external_client is not None:
            external_client = data.external_client
            user_id = None
        elif data.client_id is not None:
            user_id = data.client_id
        else:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Please select a client or choose external client.',
            )
    else:
        practitioner_id = data.practitioner_id

    if practitioner_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Please select a practitioner.')

    try:
        if external_client is not None:
            booking_service.validate_external_client(
                external_client.first_name,
                external_client.last_name,
                external_client.email,
                external_client.phone,
            )
        booking_service.validate_booking_date(
            data.appointment_date,
            booking_today(),
            allow_same_day=staff_booking,
        )
        booking_service.validate_start_time(data.appointment_date, data.start_time, booking_now())
    except booking_service.BookingRuleError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        _active_practitioner(db, practitioner_id)
        services = _resolve_services(db, data.service_ids)
        duration_minutes = catalog_service.total_duration_minutes(services)
        _check_slot(db, practitioner_id, data.appointment_date, data.start_time, duration_minutes)

        start_time, end_time = booking_service.appointment_bounds(
            data.appointment_date, data.start_time, duration_minutes,
        )
        appointment = Appointment(
            user_id=user_id,
            practitioner_id=practitioner_id,
            service_ids=[service.id for service in services],
            appointment_date=data.appointment_date,
            start_time=start_time,
            end_time=end_time,
            status='scheduled',
            notes=data.notes,
            is_external_client=external_client is not None,
            client_first_name=external_client.first_name if external_client else None,
            client_last_name=external_client.last_name if external_client else None,
            client_email=external_client.email if external_client else None,
            client_phone=external_client.phone if external_client else None,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info(
        'Booked appointment %s with practitioner %s on %s',
        appointment.id,
        practitioner_id,
        start_time.isoformat(),
    )
    return to_response(appointment)


@router.get('/practitioners/{practitioner_id}', response_model=list[AppointmentResponse])
def list_appointments_for_date(
    practitioner_id: int,
    selected_date: date = Query(..., alias='date'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not is_staff(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only salon staff can view a practitioner\'s appointments.',
        )

    ensure_database_ready()

    try:
        appointments = schedule_service.get_appointments_for_date(db, practitioner_id, selected_date)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return [to_response(appointment) for appointment in appointments]


@router.patch('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: UpdateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = _get_owned_appointment(db, appointment_id, current_user, 'update')
        if appointment.status not in ACTIVE_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f'A {appointment.status} appointment cannot be changed.',
            )

        service_ids = data.service_ids or appointment.service_ids or []
        selected_date = data.appointment_date or appointment.appointment_date
        start = data.start_time or appointment.start_time.time()

        services = _resolve_services(db, service_ids)
        duration_minutes = (
            catalog_service.total_duration_minutes(services)
            or int((appointment.end_time - appointment.start_time).total_seconds() // 60)
        )

        try:
            if selected_date != appointment.appointment_date:
                booking_service.validate_booking_date(
                    selected_date,
                    booking_today(),
                    allow_same_day=is_staff(current_user),
                )
            if (selected_date, start) != (appointment.appointment_date, appointment.start_time.time()):
                booking_service.validate_start_time(selected_date, start, booking_now())
        except booking_service.BookingRuleError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

        _check_slot(db, appointment.practitioner_id, selected_date, start, duration_minutes, appointment.id)

        start_time, end_time = booking_service.appointment_bounds(selected_date, start, duration_minutes)
        appointment.service_ids = [service.id for service in services]
        appointment.appointment_date = selected_date
        appointment.start_time = start_time
        appointment.end_time = end_time
        if data.notes is not None:
            appointment.notes = data.notes
        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return to_response(appointment)


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = _get_owned_appointment(db, appointment_id, current_user, 'delete')
        appointment.is_deleted = True
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info('Deleted appointment %s', appointment_id)
