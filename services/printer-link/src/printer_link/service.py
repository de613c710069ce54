"""Wire the printer-link components together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from common.config import Settings, get_settings

from .dispatch import DispatchGateway, SendActions, TransportFactory
from .editor import EditorWorkflow
from .host import LogNotifier, Notifier, Picker
from .registry import InstanceRegistry
from .storage import PluginSettingsStore, SettingsBackend, backend_from_url


@dataclass
class PrinterLink:
    store: PluginSettingsStore
    registry: InstanceRegistry
    gateway: DispatchGateway
    actions: SendActions
    editor: EditorWorkflow
    notifier: Notifier


def create_printer_link(
    settings: Optional[Settings] = None,
    *,
    backend: Optional[SettingsBackend] = None,
    notifier: Optional[Notifier] = None,
    picker: Optional[Picker] = None,
    transport_factory: Optional[TransportFactory] = None,
) -> PrinterLink:
    """Build the component graph; explicit arguments win over ``settings``."""
    settings = settings or get_settings()
    backend = backend or backend_from_url(settings.printer_settings_url)
    notifier = notifier or LogNotifier(enabled=settings.notifications_enabled)

    store = PluginSettingsStore(
        backend,
        plugin_id=settings.printer_plugin_id,
        settings_key=settings.printer_settings_key,
    )
    registry = InstanceRegistry(store)
    gateway = DispatchGateway(
        notifier,
        transport_factory=transport_factory,
        timeout=settings.dispatch_timeout_seconds,
    )
    return PrinterLink(
        store=store,
        registry=registry,
        gateway=gateway,
        actions=SendActions(registry, gateway, notifier, picker),
        editor=EditorWorkflow(registry),
        notifier=notifier,
    )


__all__ = ["PrinterLink", "create_printer_link"]
