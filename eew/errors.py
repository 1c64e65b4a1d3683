"""Exception types raised by the EEW engine.

Nothing here is fatal to the process. ``MalformedReport`` is caught at
the ingest boundary and ``TableUnavailable`` only disables wavefronts.
"""


class EEWError(Exception):
    """Base class for engine errors."""


class MalformedReport(EEWError, ValueError):
    """A provider report is missing the fields needed to identify it."""

    def __init__(self, message: str, provider: str | None = None):
        self.provider = provider
        prefix = f"[{provider}] " if provider else ""
        super().__init__(f"{prefix}{message}")


class TableUnavailable(EEWError):
    """The travel-time table could not be fetched or parsed."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Travel-time table unavailable ({source}): {reason}")
