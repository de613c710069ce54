"""Interfaces consumed from the host application.

The host owns plugin registration, the main menu, transient notifications
and the process-wide settings backend. These types describe the narrow
surface the OctoPrint plugin relies on; tests substitute mocks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Sequence, Tuple

from common.logging import get_logger

from .models import Instance
from .storage import SettingsBackend

LOGGER = get_logger(__name__)


class Notifier(Protocol):
    """Fire-and-forget transient message ("toast")."""

    def notify(self, message: str, *, level: str = "info") -> None: ...


class Picker(Protocol):
    """Ask the user to choose among ambiguous candidates.

    Returns the chosen instance, or None when the user cancels.
    """

    def choose(self, candidates: Sequence[Instance], suggested: Instance) -> Optional[Instance]: ...


@dataclass(frozen=True)
class MenuItem:
    """Main-menu contribution; capability gating is the host's concern."""

    id: str
    label: str
    on_tap: Callable[[], Awaitable[Any]]
    when_enabled_of: Tuple[str, ...] = ()


@dataclass
class PluginDescriptor:
    """What a plugin hands to ``Host.register``."""

    id: str
    name: str
    built_in: bool = False
    schema: Dict[str, Any] = field(default_factory=dict)
    on_init: Optional[Callable[[], None]] = None
    on_settings: Optional[Callable[[Any], None]] = None
    on_enable: Optional[Callable[[], None]] = None
    on_disable: Optional[Callable[[], None]] = None
    build_settings_panel: Optional[Callable[[Any], Any]] = None


class Host(Protocol):
    settings: SettingsBackend

    def register(self, descriptor: PluginDescriptor) -> None: ...

    def add_menu_item(self, item: MenuItem) -> None: ...

    def notify(self, message: str, *, level: str = "info") -> None: ...


class LogNotifier:
    """Notifier that only writes structured log events."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def notify(self, message: str, *, level: str = "info") -> None:
        if not self.enabled:
            return
        log = {"error": LOGGER.error, "warning": LOGGER.warning}.get(level, LOGGER.info)
        log("Notification", message=message, severity=level)


__all__ = [
    "Notifier",
    "Picker",
    "MenuItem",
    "PluginDescriptor",
    "Host",
    "LogNotifier",
]
