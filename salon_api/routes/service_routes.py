from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salon_api.auth.dependencies import get_current_user, is_staff
from salon_api.cache import LookupCache
from salon_api.database import get_db
from salon_api.models.user import User
from salon_api.routes.dependencies import database_unavailable, get_lookup_cache
from salon_api.services import catalog_service

router = APIRouter(tags=['services'])


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    duration_minutes: int
    duration_label: str
    price: float | None = None
    price_label: str
    category_name: str | None = None
    category_display_order: int = 0


class CacheStatusResponse(BaseModel):
    available: bool
    keys: list[str]


@router.get('', response_model=list[ServiceResponse])
def list_services(
    refresh: bool = Query(default=False),
    db: Session = Depends(get_db),
    cache: LookupCache = Depends(get_lookup_cache),
):
    try:
        return catalog_service.list_services_cached(db, cache, force_refresh=refresh)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/by-category', response_model=dict[str, list[ServiceResponse]])
def list_services_by_category(
    db: Session = Depends(get_db),
    cache: LookupCache = Depends(get_lookup_cache),
):
    try:
        services = catalog_service.list_services_cached(db, cache)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return catalog_service.group_services_by_category(services)


@router.get('/cache', response_model=CacheStatusResponse)
def read_cache_status(cache: LookupCache = Depends(get_lookup_cache)):
    return cache.status()


@router.delete('/cache', status_code=status.HTTP_204_NO_CONTENT)
def clear_cache(
    current_user: User = Depends(get_current_user),
    cache: LookupCache = Depends(get_lookup_cache),
):
    if not is_staff(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only salon staff can clear the service cache.',
        )
    cache.clear()


@router.get('/{service_id}', response_model=ServiceResponse)
def read_service(service_id: int, db: Session = Depends(get_db)):
    try:
        service = catalog_service.get_service_by_id(db, service_id)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    if service is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Service not found.')

    return catalog_service.serialize_service(service)
