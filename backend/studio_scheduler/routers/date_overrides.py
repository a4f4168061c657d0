# backend/studio_scheduler/routers/date_overrides.py
# PATCH = ALLOWED, DELETE = ALLOWED (hard)
#
# One override per provider/date. It replaces the weekday template for that
# date entirely; null start/end closes the day.

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..models.generated import (
    DateOverrides as DBDateOverrides,
    Providers as DBProviders,
)
from ..schemas.common import check_window
from ..schemas.date_overrides import (
    DateOverrideCreate,
    DateOverrideUpdate,
    DateOverrideRead,
)
from ..services.slots.invalidator import on_override_changed
from ..services.slots.resolver import BreakInterval, dump_override_breaks, load_override_breaks
from ..services.slots.timeutil import format_date, parse_date

router = APIRouter(prefix="/date_overrides", tags=["date_overrides"])


def _date_taken(db: Session, provider_id: int, target_date: date, exclude_id: int | None = None) -> bool:
    query = db.query(DBDateOverrides.id).filter(
        DBDateOverrides.provider_id == provider_id,
        DBDateOverrides.date == format_date(target_date),
    )
    if exclude_id is not None:
        query = query.filter(DBDateOverrides.id != exclude_id)
    return query.first() is not None


@router.get("/", response_model=list[DateOverrideRead])
def list_date_overrides(
    provider_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    query = db.query(DBDateOverrides)
    if provider_id is not None:
        query = query.filter(DBDateOverrides.provider_id == provider_id)
    if start_date is not None:
        query = query.filter(DBDateOverrides.date >= format_date(start_date))
    if end_date is not None:
        query = query.filter(DBDateOverrides.date <= format_date(end_date))
    return query.order_by(DBDateOverrides.date).all()


@router.get("/{id}", response_model=DateOverrideRead)
def get_date_override(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBDateOverrides, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("/", response_model=DateOverrideRead, status_code=status.HTTP_201_CREATED)
def create_date_override(
    data: DateOverrideCreate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    if not db.get(DBProviders, data.provider_id):
        raise HTTPException(status_code=404, detail="Provider not found")
    if _date_taken(db, data.provider_id, data.date):
        raise HTTPException(status_code=409, detail="Override for this date already exists")

    obj = DBDateOverrides(
        provider_id=data.provider_id,
        date=format_date(data.date),
        start_time=data.start_time,
        end_time=data.end_time,
        breaks=dump_override_breaks(
            BreakInterval(b.start_time, b.end_time, b.label) for b in data.breaks
        ),
        reason=data.reason,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)

    on_override_changed(redis, obj.provider_id, [data.date])
    return obj


@router.patch("/{id}", response_model=DateOverrideRead)
def update_date_override(
    id: int,
    data: DateOverrideUpdate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    obj = db.get(DBDateOverrides, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    changes = data.model_dump(exclude_unset=True)
    old_date = parse_date(obj.date)

    new_date = changes.get("date") or old_date
    start_time = changes.get("start_time", obj.start_time)
    end_time = changes.get("end_time", obj.end_time)
    check_window(start_time, end_time, "working window")

    if "breaks" in changes and changes["breaks"] is not None:
        breaks = [BreakInterval(b["start_time"], b["end_time"], b.get("label")) for b in changes["breaks"]]
    elif start_time is None:
        # Closing the day drops its breaks
        breaks = []
    else:
        breaks = load_override_breaks(obj.breaks)

    if start_time is None and breaks:
        raise HTTPException(status_code=422, detail="breaks require a working window")

    if new_date != old_date and _date_taken(db, obj.provider_id, new_date, exclude_id=obj.id):
        raise HTTPException(status_code=409, detail="Override for this date already exists")

    obj.date = format_date(new_date)
    obj.start_time = start_time
    obj.end_time = end_time
    obj.breaks = dump_override_breaks(breaks)
    if "reason" in changes:
        obj.reason = changes["reason"]

    db.commit()
    db.refresh(obj)

    on_override_changed(redis, obj.provider_id, [old_date, new_date])
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_date_override(
    id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    obj = db.get(DBDateOverrides, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    provider_id, target_date = obj.provider_id, parse_date(obj.date)
    db.delete(obj)
    db.commit()

    on_override_changed(redis, provider_id, [target_date])
