# backend/studio_scheduler/routers/template_breaks.py
# Breaks are owned by their template; every write invalidates its weekday.

from fastapi import APIRouter, Depends, HTTPException, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..models.generated import (
    DailyTemplates as DBDailyTemplates,
    TemplateBreaks as DBTemplateBreaks,
)
from ..schemas.common import check_window
from ..schemas.daily_templates import (
    TemplateBreakCreate,
    TemplateBreakUpdate,
    TemplateBreakRead,
)
from ..services.slots.invalidator import on_template_changed

router = APIRouter(prefix="/daily_templates/{template_id}/breaks", tags=["template_breaks"])


def _get_template(db: Session, template_id: int) -> DBDailyTemplates:
    template = db.get(DBDailyTemplates, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


def _get_break(db: Session, template_id: int, break_id: int) -> DBTemplateBreaks:
    obj = db.get(DBTemplateBreaks, break_id)
    if not obj or obj.template_id != template_id:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.get("/", response_model=list[TemplateBreakRead])
def list_template_breaks(template_id: int, db: Session = Depends(get_db)):
    _get_template(db, template_id)
    return (
        db.query(DBTemplateBreaks)
        .filter(DBTemplateBreaks.template_id == template_id)
        .order_by(DBTemplateBreaks.start_time)
        .all()
    )


@router.post("/", response_model=TemplateBreakRead, status_code=status.HTTP_201_CREATED)
def create_template_break(
    template_id: int,
    data: TemplateBreakCreate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    template = _get_template(db, template_id)

    obj = DBTemplateBreaks(template_id=template.id, **data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)

    on_template_changed(db, redis, template.provider_id, [template.day_of_week])
    return obj


@router.patch("/{break_id}", response_model=TemplateBreakRead)
def update_template_break(
    template_id: int,
    break_id: int,
    data: TemplateBreakUpdate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    template = _get_template(db, template_id)
    obj = _get_break(db, template_id, break_id)

    changes = data.model_dump(exclude_unset=True)
    # A break always has both bounds; delete it instead of clearing one
    for field in ("start_time", "end_time"):
        if field in changes and changes[field] is None:
            raise HTTPException(status_code=422, detail=f"{field} cannot be null")
    start_time = changes.get("start_time", obj.start_time)
    end_time = changes.get("end_time", obj.end_time)
    check_window(start_time, end_time, "break")

    obj.start_time = start_time
    obj.end_time = end_time
    if "label" in changes:
        obj.label = changes["label"]

    db.commit()
    db.refresh(obj)

    on_template_changed(db, redis, template.provider_id, [template.day_of_week])
    return obj


@router.delete("/{break_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template_break(
    template_id: int,
    break_id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    template = _get_template(db, template_id)
    obj = _get_break(db, template_id, break_id)

    db.delete(obj)
    db.commit()

    on_template_changed(db, redis, template.provider_id, [template.day_of_week])
