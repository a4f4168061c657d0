# backend/studio_scheduler/schemas/common.py

from typing import Annotated, Optional

from pydantic import AfterValidator

from ..services.slots.exceptions import InvalidInterval
from ..services.slots.resolver import validate_interval
from ..services.slots.timeutil import normalize_time

# "9:00" is accepted and stored as "09:00"
ClockStr = Annotated[str, AfterValidator(normalize_time)]


def check_window(start_time: Optional[str], end_time: Optional[str], what: str) -> None:
    """
    Both bounds or neither; when both, end strictly after start.

    Raises InvalidInterval, which pydantic validators report as a field error
    and routers (PATCH merges) return as 422 through the app error handler.
    """
    if (start_time is None) != (end_time is None):
        raise InvalidInterval(f"{what}: start_time and end_time must be set together")
    if start_time is not None:
        validate_interval(start_time, end_time, what=what)
