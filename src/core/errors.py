"""Error taxonomy shared by the core and adapters."""

from __future__ import annotations


class AutoremindError(Exception):
    """Base class for all autoremind errors."""


class ConfigError(AutoremindError):
    """The rule source is unreadable or contains an invalid entry."""


class AuthError(AutoremindError):
    """The credential was rejected or the platform could not be reached."""


class StreamError(AutoremindError):
    """The event stream could not be opened or was lost."""


class RemoteError(AutoremindError):
    """A single remote action call failed."""
