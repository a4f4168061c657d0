# backend/studio_scheduler/routers/daily_templates.py
# PATCH = ALLOWED, DELETE = ALLOWED (hard, breaks cascade)
#
# At most one ENABLED template per provider/weekday is accepted here, so the
# resolver never has to pick between duplicates.

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from redis import Redis
from sqlalchemy.orm import Session, selectinload

from ..database import get_db
from ..redis_client import get_redis
from ..models.generated import (
    DailyTemplates as DBDailyTemplates,
    Providers as DBProviders,
    TemplateBreaks as DBTemplateBreaks,
)
from ..schemas.common import check_window
from ..schemas.daily_templates import (
    DailyTemplateCreate,
    DailyTemplateUpdate,
    DailyTemplateRead,
)
from ..services.slots.exceptions import AmbiguousTemplate
from ..services.slots.invalidator import on_template_changed

router = APIRouter(prefix="/daily_templates", tags=["daily_templates"])


def _ensure_single_enabled(
    db: Session,
    provider_id: int,
    day_of_week: int,
    exclude_id: int | None = None,
) -> None:
    """Reject a second enabled template for the same provider/weekday."""
    query = db.query(DBDailyTemplates.id).filter(
        DBDailyTemplates.provider_id == provider_id,
        DBDailyTemplates.day_of_week == day_of_week,
        DBDailyTemplates.is_enabled == 1,
    )
    if exclude_id is not None:
        query = query.filter(DBDailyTemplates.id != exclude_id)
    existing = [row.id for row in query.all()]
    if existing:
        raise AmbiguousTemplate(provider_id, day_of_week, existing)


@router.get("/", response_model=list[DailyTemplateRead])
def list_daily_templates(
    provider_id: int | None = None,
    db: Session = Depends(get_db),
):
    query = db.query(DBDailyTemplates).options(selectinload(DBDailyTemplates.breaks))
    if provider_id is not None:
        query = query.filter(DBDailyTemplates.provider_id == provider_id)
    return query.order_by(DBDailyTemplates.day_of_week, DBDailyTemplates.id).all()


@router.get("/{id}", response_model=DailyTemplateRead)
def get_daily_template(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBDailyTemplates, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("/", response_model=DailyTemplateRead, status_code=status.HTTP_201_CREATED)
def create_daily_template(
    data: DailyTemplateCreate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    if not db.get(DBProviders, data.provider_id):
        raise HTTPException(status_code=404, detail="Provider not found")

    if data.is_enabled:
        _ensure_single_enabled(db, data.provider_id, data.day_of_week)

    obj = DBDailyTemplates(
        provider_id=data.provider_id,
        day_of_week=data.day_of_week,
        start_time=data.start_time,
        end_time=data.end_time,
        is_enabled=1 if data.is_enabled else 0,
    )
    obj.breaks = [DBTemplateBreaks(**b.model_dump()) for b in data.breaks]
    db.add(obj)
    db.commit()
    db.refresh(obj)

    on_template_changed(db, redis, obj.provider_id, [obj.day_of_week])
    return obj


@router.patch("/{id}", response_model=DailyTemplateRead)
def update_daily_template(
    id: int,
    data: DailyTemplateUpdate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    obj = db.get(DBDailyTemplates, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    changes = data.model_dump(exclude_unset=True)
    old_weekday = obj.day_of_week

    day_of_week = changes.get("day_of_week", obj.day_of_week)
    if day_of_week is None:
        raise HTTPException(status_code=422, detail="day_of_week cannot be null")
    is_enabled = changes.get("is_enabled", bool(obj.is_enabled))
    if is_enabled is None:
        raise HTTPException(status_code=422, detail="is_enabled cannot be null")
    start_time = changes.get("start_time", obj.start_time)
    end_time = changes.get("end_time", obj.end_time)

    check_window(start_time, end_time, "working window")
    if is_enabled:
        _ensure_single_enabled(db, obj.provider_id, day_of_week, exclude_id=obj.id)

    obj.day_of_week = day_of_week
    obj.is_enabled = 1 if is_enabled else 0
    obj.start_time = start_time
    obj.end_time = end_time
    obj.updated_at = datetime.now(timezone.utc).isoformat(timespec="seconds")

    db.commit()
    db.refresh(obj)

    on_template_changed(db, redis, obj.provider_id, {old_weekday, obj.day_of_week})
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_daily_template(
    id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    obj = db.get(DBDailyTemplates, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    provider_id, weekday = obj.provider_id, obj.day_of_week
    db.delete(obj)
    db.commit()

    on_template_changed(db, redis, provider_id, [weekday])
