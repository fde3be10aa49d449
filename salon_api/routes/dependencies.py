from fastapi import HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError

from salon_api.cache import LookupCache, build_lookup_cache
from salon_api.database import ensure_appointment_schema, ensure_working_schedule_schema

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_working_schedule_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


def get_lookup_cache(request: Request) -> LookupCache:
    cache = getattr(request.app.state, 'lookup_cache', None)
    if cache is None:
        cache = build_lookup_cache()
        request.app.state.lookup_cache = cache
    return cache
