# backend/studio_scheduler/routers/providers.py
# PATCH = ALLOWED, DELETE = soft-delete (is_active)

from fastapi import APIRouter, Depends, HTTPException, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..models.generated import Providers as DBProviders
from ..schemas.providers import (
    ProviderCreate,
    ProviderUpdate,
    ProviderRead,
)
from ..services.slots.config import get_booking_config
from ..services.slots.invalidator import on_provider_changed
from ..services.slug import slugify, unique_slug

router = APIRouter(prefix="/providers", tags=["providers"])

# Fields that change every generated slot
_SLOT_FIELDS = {"timezone", "slot_duration_minutes", "booking_horizon_days"}


def _slug_taken(db: Session, slug: str) -> bool:
    return db.query(DBProviders.id).filter(DBProviders.slug == slug).first() is not None


@router.get("/", response_model=list[ProviderRead])
def list_providers(db: Session = Depends(get_db)):
    return (
        db.query(DBProviders)
        .filter(DBProviders.is_active == 1)
        .all()
    )


@router.get("/{id}", response_model=ProviderRead)
def get_provider(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBProviders, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("/", response_model=ProviderRead, status_code=status.HTTP_201_CREATED)
def create_provider(
    data: ProviderCreate,
    db: Session = Depends(get_db),
):
    config = get_booking_config()
    values = data.model_dump()

    if values["slug"]:
        if _slug_taken(db, values["slug"]):
            raise HTTPException(status_code=409, detail="Slug already in use")
    else:
        values["slug"] = unique_slug(slugify(data.name), lambda s: _slug_taken(db, s))

    values["timezone"] = values["timezone"] or config.default_timezone
    values["slot_duration_minutes"] = values["slot_duration_minutes"] or config.slot_duration_minutes
    values["booking_horizon_days"] = values["booking_horizon_days"] or config.horizon_days

    obj = DBProviders(**values)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=ProviderRead)
def update_provider(
    id: int,
    data: ProviderUpdate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    obj = db.get(DBProviders, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if field in ("timezone", "slot_duration_minutes", "booking_horizon_days") and value is None:
            continue
        setattr(obj, field, value)

    db.commit()
    db.refresh(obj)

    # Invalidate slots cache when slot-shaping settings change
    if _SLOT_FIELDS & changes.keys():
        on_provider_changed(redis, id)

    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_provider(
    id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    obj = db.get(DBProviders, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    obj.is_active = 0
    db.commit()

    on_provider_changed(redis, id)
