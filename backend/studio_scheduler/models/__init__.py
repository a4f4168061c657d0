from .generated import (
    Base,
    Bookings,
    DailyTemplates,
    DateOverrides,
    Providers,
    TemplateBreaks,
)

__all__ = [
    "Base",
    "Bookings",
    "DailyTemplates",
    "DateOverrides",
    "Providers",
    "TemplateBreaks",
]
