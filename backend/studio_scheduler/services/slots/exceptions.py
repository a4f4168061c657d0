"""
Error hierarchy for the availability engine.

"No availability" is never an error: closed days, disabled templates and
windows fully covered by breaks resolve to an empty result. Everything here
is a condition the caller has to see.
"""


class SchedulingError(Exception):
    """Base class for all availability engine errors."""


class ConfigurationError(SchedulingError, ValueError):
    """A stored or submitted configuration value is malformed."""


class InvalidTimeFormat(ConfigurationError):
    """Clock value is not a valid "HH:MM" time of day."""


class InvalidDateFormat(InvalidTimeFormat):
    """Calendar date is not a valid "YYYY-MM-DD" string."""


class InvalidInterval(ConfigurationError):
    """Interval end is not strictly after its start."""


class ProviderNotFound(SchedulingError):
    """Configuration was requested for an unknown provider."""

    def __init__(self, provider_id):
        super().__init__(f"Provider not found: {provider_id}")
        self.provider_id = provider_id


class TemplateNotFound(SchedulingError):
    """Recomputation was requested for an unknown template."""

    def __init__(self, template_id):
        super().__init__(f"Template not found: {template_id}")
        self.template_id = template_id


class AmbiguousTemplate(SchedulingError):
    """More than one enabled template exists for a provider/weekday."""

    def __init__(self, provider_id, day_of_week: int, template_ids=()):
        super().__init__(
            f"Provider {provider_id} has more than one enabled template "
            f"for day_of_week={day_of_week}"
        )
        self.provider_id = provider_id
        self.day_of_week = day_of_week
        self.template_ids = tuple(template_ids)


class CollaboratorUnavailable(SchedulingError):
    """Booking store could not be queried."""
