# backend/studio_scheduler/services/slots/__init__.py
"""
Availability & slot computation engine.

resolver:    provider + date → effective working window and breaks
calculator:  effective config → candidate slots
overlay:     candidate slots + bookings → available / occupied
invalidator: configuration writes → stale dates in the optional Redis cache
"""

from .config import BookingConfig, get_booking_config
from .exceptions import (
    AmbiguousTemplate,
    CollaboratorUnavailable,
    ConfigurationError,
    InvalidDateFormat,
    InvalidInterval,
    InvalidTimeFormat,
    ProviderNotFound,
    SchedulingError,
    TemplateNotFound,
)
from .resolver import BreakInterval, ClosedDay, EffectiveDayConfig, resolve_day
from .calculator import CandidateSlot, generate_slots
from .overlay import SlotAvailability, is_window_free, overlay
from .redis_store import SlotsRedisStore
from .availability import (
    DayAvailability,
    check_window_free,
    get_availability,
    get_availability_range,
    get_effective_config,
)
from .invalidator import (
    invalidate_provider_cache,
    regenerate_for_date,
    regenerate_for_horizon,
    regenerate_for_template,
)

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "AmbiguousTemplate",
    "CollaboratorUnavailable",
    "ConfigurationError",
    "InvalidDateFormat",
    "InvalidInterval",
    "InvalidTimeFormat",
    "ProviderNotFound",
    "SchedulingError",
    "TemplateNotFound",
    "BreakInterval",
    "ClosedDay",
    "EffectiveDayConfig",
    "resolve_day",
    "CandidateSlot",
    "generate_slots",
    "SlotAvailability",
    "is_window_free",
    "overlay",
    "SlotsRedisStore",
    "DayAvailability",
    "check_window_free",
    "get_availability",
    "get_availability_range",
    "get_effective_config",
    "invalidate_provider_cache",
    "regenerate_for_date",
    "regenerate_for_horizon",
    "regenerate_for_template",
]
