"""
Exceptions raised by the escape-time core.
"""


class EscapeTimeError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(EscapeTimeError):
    """
    An invalid selection or settings entry.

    Raised for unknown formula or colour map names, unknown presets and
    malformed colour map definitions. The object being configured is left
    untouched.
    """


class InvariantViolation(EscapeTimeError):
    """An internal invariant was broken (e.g. interpolation fraction outside [0, 1])."""
