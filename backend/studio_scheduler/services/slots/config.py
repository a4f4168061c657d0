# backend/studio_scheduler/services/slots/config.py
"""
Booking configuration for slots calculation.
"""

from dataclasses import dataclass
from functools import lru_cache

from ...config import settings

CANCELLED = "CANCELLED"
PENDING = "PENDING"
CONFIRMED = "CONFIRMED"


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for booking/slots system.

    Attributes:
        horizon_days: Default published booking horizon (providers may override)
        slot_duration_minutes: Default slot length in minutes
        cache_ttl_seconds: Redis cache TTL for generated slots
        pending_blocks_slots: Whether PENDING bookings occupy time like CONFIRMED
        default_timezone: Timezone used for providers without one
    """
    horizon_days: int = 90
    slot_duration_minutes: int = 60
    cache_ttl_seconds: int = 86400  # 24 hours
    pending_blocks_slots: bool = True
    default_timezone: str = "America/New_York"

    def __post_init__(self):
        """Validate configuration."""
        if not 0 < self.slot_duration_minutes < 24 * 60:
            raise ValueError(
                f"slot_duration_minutes must be in (0, 1440), got {self.slot_duration_minutes}"
            )
        if self.horizon_days < 1:
            raise ValueError(f"horizon_days must be >= 1, got {self.horizon_days}")
        if self.cache_ttl_seconds < 1:
            raise ValueError(f"cache_ttl_seconds must be >= 1, got {self.cache_ttl_seconds}")

    @property
    def occupying_statuses(self) -> tuple[str, ...]:
        """Booking statuses that make a window unavailable."""
        if self.pending_blocks_slots:
            return (PENDING, CONFIRMED)
        return (CONFIRMED,)


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton, built from settings)."""
    return BookingConfig(
        horizon_days=settings.horizon_days,
        slot_duration_minutes=settings.slot_duration_minutes,
        cache_ttl_seconds=settings.cache_ttl_seconds,
        pending_blocks_slots=settings.pending_blocks_slots,
        default_timezone=settings.default_timezone,
    )
