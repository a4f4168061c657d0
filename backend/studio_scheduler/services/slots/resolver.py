# backend/studio_scheduler/services/slots/resolver.py
"""
Day configuration resolution.

Turns a provider's stored configuration into the single effective
working window (plus breaks) for one calendar date:

  1. A DateOverride for the date wins outright. Null bounds = closed.
     Its inline breaks replace the template's; nothing is merged.
  2. Otherwise the one enabled DailyTemplate for the weekday is used,
     together with its TemplateBreak rows.
  3. No template, a disabled one, or one missing a bound = closed.

Malformed stored values raise instead of resolving to "closed", so a bad
provider entry never silently hides every bookable hour.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from sqlalchemy.orm import Session

from .exceptions import (
    AmbiguousTemplate,
    ConfigurationError,
    InvalidInterval,
    ProviderNotFound,
)
from .timeutil import day_of_week, format_date, normalize_time, time_to_minutes

logger = logging.getLogger(__name__)

SOURCE_TEMPLATE = "template"
SOURCE_OVERRIDE = "override"


@dataclass(frozen=True)
class BreakInterval:
    start_time: str
    end_time: str
    label: str | None = None

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)


@dataclass(frozen=True)
class EffectiveDayConfig:
    """Resolved working window and breaks for one provider/date."""
    date: date
    start_time: str
    end_time: str
    breaks: tuple[BreakInterval, ...] = ()
    source: str = SOURCE_TEMPLATE
    template_id: int | None = None
    override_id: int | None = None
    reason: str | None = None

    is_closed = False

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)


@dataclass(frozen=True)
class ClosedDay:
    """No working window for the date. A normal outcome, not an error."""
    date: date
    cause: str  # override_closed / no_template / template_disabled / template_incomplete
    source: str | None = None
    template_id: int | None = None
    override_id: int | None = None
    reason: str | None = None
    breaks: tuple = field(default=())

    is_closed = True


def resolve_day(
    db: Session,
    provider_id: int,
    target_date: date,
) -> EffectiveDayConfig | ClosedDay:
    """Effective configuration for provider on target_date (provider-local date)."""
    provider = _get_provider(db, provider_id)
    if provider is None:
        raise ProviderNotFound(provider_id)
    return resolve_provider_day(db, provider.id, target_date)


def resolve_provider_day(
    db: Session,
    provider_id: int,
    target_date: date,
) -> EffectiveDayConfig | ClosedDay:
    """Same as resolve_day for a provider already known to exist."""
    override = _get_override(db, provider_id, target_date)
    if override is not None:
        return config_from_override(
            target_date,
            start_time=override.start_time,
            end_time=override.end_time,
            breaks=load_override_breaks(override.breaks),
            reason=override.reason,
            override_id=override.id,
        )

    weekday = day_of_week(target_date)
    templates = _get_templates(db, provider_id, weekday)
    enabled = [t for t in templates if t.is_enabled]

    if len(enabled) > 1:
        ids = [t.id for t in enabled]
        logger.warning(
            "Ambiguous templates for provider=%s day_of_week=%s: %s",
            provider_id, weekday, ids,
        )
        raise AmbiguousTemplate(provider_id, weekday, ids)

    if not enabled:
        cause = "template_disabled" if templates else "no_template"
        return ClosedDay(target_date, cause)

    template = enabled[0]
    if not template.start_time or not template.end_time:
        return ClosedDay(
            target_date,
            "template_incomplete",
            source=SOURCE_TEMPLATE,
            template_id=template.id,
        )

    rows = _get_template_breaks(db, template.id)
    return build_day_config(
        target_date,
        template.start_time,
        template.end_time,
        [BreakInterval(b.start_time, b.end_time, b.label) for b in rows],
        source=SOURCE_TEMPLATE,
        template_id=template.id,
    )


# ── Builders (also used for previews of unsaved edits) ───────────────────


def config_from_override(
    target_date: date,
    start_time: str | None,
    end_time: str | None,
    breaks: Iterable[BreakInterval] = (),
    reason: str | None = None,
    override_id: int | None = None,
) -> EffectiveDayConfig | ClosedDay:
    """Override takes absolute precedence: either its own window or closed."""
    if not start_time or not end_time:
        return ClosedDay(
            target_date,
            "override_closed",
            source=SOURCE_OVERRIDE,
            override_id=override_id,
            reason=reason,
        )
    return build_day_config(
        target_date,
        start_time,
        end_time,
        breaks,
        source=SOURCE_OVERRIDE,
        override_id=override_id,
        reason=reason,
    )


def build_day_config(
    target_date: date,
    start_time: str,
    end_time: str,
    breaks: Iterable[BreakInterval] = (),
    *,
    source: str,
    template_id: int | None = None,
    override_id: int | None = None,
    reason: str | None = None,
) -> EffectiveDayConfig:
    """Validate a window and its breaks and build the effective config."""
    start_time, end_time = validate_interval(start_time, end_time, what="working window")

    checked = []
    for brk in breaks:
        b_start, b_end = validate_interval(brk.start_time, brk.end_time, what="break")
        checked.append(BreakInterval(b_start, b_end, brk.label))

    return EffectiveDayConfig(
        date=target_date,
        start_time=start_time,
        end_time=end_time,
        breaks=tuple(sorted(checked, key=lambda b: (b.start_minutes, b.end_minutes))),
        source=source,
        template_id=template_id,
        override_id=override_id,
        reason=reason,
    )


def validate_interval(start_time: str, end_time: str, what: str = "interval") -> tuple[str, str]:
    """Check both clock values and start < end; returns the canonical pair."""
    start_min = time_to_minutes(start_time)
    end_min = time_to_minutes(end_time)
    if end_min <= start_min:
        raise InvalidInterval(
            f"{what} end {end_time!r} must be after start {start_time!r}"
        )
    return normalize_time(start_time), normalize_time(end_time)


def load_override_breaks(raw: str | None) -> list[BreakInterval]:
    """Decode the inline breaks JSON stored on a date override."""
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Override breaks are not valid JSON: {e}") from e

    if not isinstance(items, list):
        raise ConfigurationError("Override breaks must be a JSON list")

    result = []
    for item in items:
        if not isinstance(item, dict) or "start_time" not in item or "end_time" not in item:
            raise ConfigurationError(f"Malformed override break: {item!r}")
        result.append(BreakInterval(item["start_time"], item["end_time"], item.get("label")))
    return result


def dump_override_breaks(breaks: Iterable[BreakInterval]) -> str:
    return json.dumps([
        {"start_time": b.start_time, "end_time": b.end_time, "label": b.label}
        for b in breaks
    ])


# ── Database helpers ─────────────────────────────────────────────────────


def _get_provider(db: Session, provider_id: int):
    """Get provider by ID."""
    from ...models.generated import Providers
    return db.get(Providers, provider_id)


def _get_override(db: Session, provider_id: int, target_date: date):
    """Get the date override for provider on target_date."""
    from ...models.generated import DateOverrides

    return (
        db.query(DateOverrides)
        .filter(
            DateOverrides.provider_id == provider_id,
            DateOverrides.date == format_date(target_date),
        )
        .first()
    )


def _get_templates(db: Session, provider_id: int, weekday: int) -> list:
    """Get all templates (enabled or not) for provider/weekday."""
    from ...models.generated import DailyTemplates

    return (
        db.query(DailyTemplates)
        .filter(
            DailyTemplates.provider_id == provider_id,
            DailyTemplates.day_of_week == weekday,
        )
        .order_by(DailyTemplates.id)
        .all()
    )


def _get_template_breaks(db: Session, template_id: int) -> list:
    """Get breaks of a template."""
    from ...models.generated import TemplateBreaks

    return (
        db.query(TemplateBreaks)
        .filter(TemplateBreaks.template_id == template_id)
        .order_by(TemplateBreaks.id)
        .all()
    )
