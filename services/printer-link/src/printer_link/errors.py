"""Error taxonomy for the printer-link service.

None of these are fatal: the registry and every surface stay usable after
any of them is raised.
"""

from __future__ import annotations


class PrinterLinkError(Exception):
    """Base class for printer-link errors."""


class NoInstancesConfigured(PrinterLinkError):
    """Selection is impossible because the registry is empty."""

    def __init__(self, message: str = "No OctoPrint instances configured") -> None:
        super().__init__(message)


class RecordNotFound(PrinterLinkError, LookupError):
    """An operation referenced an instance id that is not in the registry."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(f"Instance not found: {instance_id}")
        self.instance_id = instance_id


class PersistenceFailure(PrinterLinkError):
    """A settings backend could not durably read or write the settings blob."""


class DispatchFailure(PrinterLinkError):
    """Transmission to the resolved instance failed."""

    def __init__(self, instance_id: str, reason: str) -> None:
        super().__init__(reason)
        self.instance_id = instance_id
        self.reason = reason


__all__ = [
    "PrinterLinkError",
    "NoInstancesConfigured",
    "RecordNotFound",
    "PersistenceFailure",
    "DispatchFailure",
]
