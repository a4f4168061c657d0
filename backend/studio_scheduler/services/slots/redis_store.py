# backend/studio_scheduler/services/slots/redis_store.py
"""
Redis storage for generated slots using Sorted Sets.

Key format: slots:day:{provider_id}:{date}
Value: Sorted Set where member = JSON slot, score = start minute.

Only configuration-derived slots are cached; bookings are always overlaid
fresh. Every configuration write must go through the invalidator before the
new configuration is served.
Sentinel: "__empty__" with score=-1 marks "calculated, zero slots".

Generation: slots:gen:{provider_id} is bumped on every invalidation. A fill
that computed slots under an older generation is dropped instead of stored,
so a slow read can never write back configuration older than the last
acknowledged write.
"""

import json
from datetime import date

from redis import Redis
from redis.exceptions import WatchError

from .calculator import CandidateSlot
from .config import BookingConfig, get_booking_config
from .timeutil import time_to_minutes


EMPTY_SENTINEL = "__empty__"


def _decode(member) -> str:
    return member.decode() if isinstance(member, bytes) else member


class SlotsRedisStore:
    """Redis storage wrapper using Sorted Sets for slot data."""

    KEY_PREFIX = "slots:day"
    GEN_PREFIX = "slots:gen"

    def __init__(self, redis: Redis, config: BookingConfig | None = None):
        self.redis = redis
        self.config = config or get_booking_config()

    def _key(self, provider_id: int, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{provider_id}:{dt.isoformat()}"

    def _gen_key(self, provider_id: int) -> str:
        return f"{self.GEN_PREFIX}:{provider_id}"

    @staticmethod
    def _encode_slot(slot: CandidateSlot) -> str:
        return json.dumps({
            "start_time": slot.start_time,
            "end_time": slot.end_time,
            "title": slot.title,
            "source_template_id": slot.source_template_id,
        }, sort_keys=True)

    @staticmethod
    def _decode_slot(dt: date, raw: str) -> CandidateSlot:
        data = json.loads(raw)
        return CandidateSlot(
            date=dt,
            start_time=data["start_time"],
            end_time=data["end_time"],
            title=data["title"],
            source_template_id=data.get("source_template_id"),
        )

    def _queue_store(self, pipe, provider_id: int, dt: date, slots: list[CandidateSlot]) -> None:
        key = self._key(provider_id, dt)

        # Remove old data
        pipe.delete(key)

        if slots:
            mapping = {
                self._encode_slot(slot): time_to_minutes(slot.start_time)
                for slot in slots
            }
            pipe.zadd(key, mapping)
        else:
            # Empty day: sentinel so EXISTS returns True
            pipe.zadd(key, {EMPTY_SENTINEL: -1})

        pipe.expire(key, self.config.cache_ttl_seconds)

    # ── Write ────────────────────────────────────────────────────────────

    def store_day_slots(
        self,
        provider_id: int,
        dt: date,
        slots: list[CandidateSlot],
        generation: int | None = None,
    ) -> bool:
        """
        Store generated slots for a day.

        Args:
            provider_id: Provider ID
            dt: Target date
            slots: Generated slots. Empty list → sentinel is stored.
            generation: Value of generation() read before the slots were
                computed. When given, nothing is stored if an invalidation
                happened since.

        Returns:
            True if the slots were stored.
        """
        return self.store_multiple_days(provider_id, {dt: slots}, generation)

    def store_multiple_days(
        self,
        provider_id: int,
        days_slots: dict[date, list[CandidateSlot]],
        generation: int | None = None,
    ) -> bool:
        """Batch store slots for multiple days via pipeline."""
        if not days_slots:
            return False

        if generation is None:
            pipe = self.redis.pipeline()
            for dt, slots in days_slots.items():
                self._queue_store(pipe, provider_id, dt, slots)
            pipe.execute()
            return True

        gen_key = self._gen_key(provider_id)
        with self.redis.pipeline() as pipe:
            try:
                pipe.watch(gen_key)
                if int(pipe.get(gen_key) or 0) != generation:
                    return False
                pipe.multi()
                for dt, slots in days_slots.items():
                    self._queue_store(pipe, provider_id, dt, slots)
                pipe.execute()
            except WatchError:
                # Invalidated between the check and the write
                return False
        return True

    # ── Generation ───────────────────────────────────────────────────────

    def generation(self, provider_id: int) -> int:
        """Current invalidation generation for provider (0 if never invalidated)."""
        value = self.redis.get(self._gen_key(provider_id))
        return int(value) if value else 0

    def bump_generation(self, provider_id: int) -> int:
        return self.redis.incr(self._gen_key(provider_id))

    # ── Read ─────────────────────────────────────────────────────────────

    def get_day_slots(
        self,
        provider_id: int,
        dt: date,
    ) -> list[CandidateSlot] | None:
        """
        Get cached slots for a day.

        Returns:
            Slots in time order, or None on cache miss.
        """
        key = self._key(provider_id, dt)
        if not self.redis.exists(key):
            return None

        members = self.redis.zrangebyscore(key, 0, "+inf")
        return [
            self._decode_slot(dt, _decode(m))
            for m in members
            if _decode(m) != EMPTY_SENTINEL
        ]

    def mget_counts(
        self,
        provider_id: int,
        dates: list[date],
    ) -> dict[date, int | None]:
        """
        Batch get slot counts for multiple dates.

        Returns:
            Dict mapping date → count (or None on cache miss).
        """
        if not dates:
            return {}

        keys = [self._key(provider_id, dt) for dt in dates]

        # First pass: check existence
        pipe = self.redis.pipeline()
        for key in keys:
            pipe.exists(key)
        exists_results = pipe.execute()

        # Second pass: count real slots for existing keys
        pipe = self.redis.pipeline()
        for key, exists in zip(keys, exists_results):
            if exists:
                pipe.zcount(key, 0, "+inf")
        count_results = pipe.execute()

        # Merge results
        result = {}
        count_idx = 0
        for dt, exists in zip(dates, exists_results):
            if exists:
                result[dt] = count_results[count_idx]
                count_idx += 1
            else:
                result[dt] = None

        return result

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_day_slots(
        self,
        provider_id: int,
        dates: list[date] | None = None,
    ) -> int:
        """
        Delete cached slots.

        Args:
            provider_id: Provider ID
            dates: Specific dates, or None to delete all for provider.

        Returns:
            Number of deleted keys.
        """
        if dates:
            keys = [self._key(provider_id, dt) for dt in dates]
        else:
            pattern = f"{self.KEY_PREFIX}:{provider_id}:*"
            keys = list(self.redis.scan_iter(match=pattern))

        if not keys:
            return 0

        return self.redis.delete(*keys)

    # ── Debug ────────────────────────────────────────────────────────────

    def is_cached(self, provider_id: int, dt: date) -> bool:
        return bool(self.redis.exists(self._key(provider_id, dt)))
