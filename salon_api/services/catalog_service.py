import logging
from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy.orm import Session

from salon_api.cache import LookupCache
from salon_api.models.service import Service

logger = logging.getLogger(__name__)

SERVICES_CACHE_KEY = 'services'
UNCATEGORIZED = 'Uncategorized'


class UnknownServiceError(LookupError):
    def __init__(self, missing_ids: Iterable[int]):
        self.missing_ids = sorted(missing_ids)
        super().__init__(f'Unknown or inactive service(s): {", ".join(map(str, self.missing_ids))}')


def get_services(db: Session) -> list[Service]:
    return db.query(Service).filter(
        Service.is_active.is_(True),
        Service.is_deleted.is_(False),
    ).order_by(Service.name.asc()).all()


def get_service_by_id(db: Session, service_id: int) -> Service | None:
    return db.query(Service).filter(
        Service.id == service_id,
        Service.is_active.is_(True),
        Service.is_deleted.is_(False),
    ).first()


def serialize_service(service: Service) -> dict:
    return {
        'id': service.id,
        'name': service.name,
        'description': service.description,
        'duration_minutes': service.duration_minutes,
        'duration_label': format_duration(service.duration_minutes),
        'price': float(service.price) if service.price is not None else None,
        'price_label': format_price(service.price),
        'category_name': service.category_name,
        'category_display_order': service.category_display_order or 0,
    }


def list_services_cached(db: Session, cache: LookupCache, force_refresh: bool = False) -> list[dict]:
    return cache.get_or_load(
        SERVICES_CACHE_KEY,
        lambda: [serialize_service(service) for service in get_services(db)],
        force_refresh=force_refresh,
    )


def group_services_by_category(services: Iterable[dict]) -> dict[str, list[dict]]:
    grouped: dict[str, list[dict]] = {}
    ordered = sorted(services, key=lambda service: (service.get('category_display_order') or 0, service['name']))
    for service in ordered:
        grouped.setdefault(service.get('category_name') or UNCATEGORIZED, []).append(service)
    return grouped


def resolve_services(db: Session, service_ids: Iterable[int]) -> list[Service]:
    """Active services for ``service_ids``, in request order.

    Raises ``UnknownServiceError`` if any id is missing or inactive.
    """
    requested = list(dict.fromkeys(service_ids))
    if not requested:
        return []

    services = db.query(Service).filter(
        Service.id.in_(requested),
        Service.is_active.is_(True),
        Service.is_deleted.is_(False),
    ).all()
    by_id = {service.id: service for service in services}

    missing = set(requested) - set(by_id)
    if missing:
        raise UnknownServiceError(missing)

    return [by_id[service_id] for service_id in requested]


def total_duration_minutes(services: Iterable[Service]) -> int:
    return sum(service.duration_minutes for service in services)


def total_price(services: Iterable[Service]) -> Decimal:
    return sum((Decimal(service.price or 0) for service in services), Decimal('0'))


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f'{minutes} min'
    hours, remaining_minutes = divmod(minutes, 60)
    if remaining_minutes == 0:
        return f'{hours} hr'
    return f'{hours} hr {remaining_minutes} min'


def format_price(price) -> str:
    if not price:
        return 'Contact for pricing'
    return f'ZAR {Decimal(price):,.2f}'
