"""Error kinds raised while loading prayer times and computing the Qiyam window."""


class QiyamError(Exception):
    """Base class for every error the widget knows how to display."""


class MalformedTimeError(QiyamError, ValueError):
    """A provider time string is not a valid HH:MM time of day."""

    def __init__(self, raw):
        super().__init__(f"Malformed time of day: {raw!r}")
        self.raw = raw


class MissingFieldError(QiyamError, LookupError):
    """A required prayer time is absent from the provider response."""

    def __init__(self, field: str):
        super().__init__(f"{field} time not found in provider response")
        self.field = field


class DataUnavailableError(QiyamError, IOError):
    """The provider could not be reached or answered with something unusable."""


class GeolocationDeniedError(QiyamError):
    """The device location could not be determined."""


class InvalidWindowWarning(UserWarning):
    """A computed night window looks wrong but is still shown."""
