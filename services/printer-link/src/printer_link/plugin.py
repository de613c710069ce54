"""OctoPrint plugin for the host application.

Contributes a settings tab (instance list with Add/Edit/Delete/Default), a
"Send to OctoPrint…" menu action, and the programmatic ``actions.send``
entry point other plugins can call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional

from common.config import Settings
from common.logging import get_logger

from .dispatch import SendOutcome, TransportFactory
from .editor import EditorSession
from .host import Host, MenuItem, Picker, PluginDescriptor
from .models import SettingsBucket
from .service import create_printer_link

LOGGER = get_logger(__name__)

PLUGIN_ID = "octoprint"
PLUGIN_NAME = "OctoPrint"
MENU_ITEM_ID = "send-octoprint"
MENU_LABEL = "Send to OctoPrint…"
MENU_CAPABILITIES = ("slicer", "laser", "octoprint")

# The host only needs a tab label; the panel itself is custom.
SCHEMA = {"title": PLUGIN_NAME, "fields": []}


@dataclass(frozen=True)
class PanelRow:
    id: str
    label: str
    url: str
    is_default: bool


class SettingsPanel:
    """View model behind the settings tab.

    Rows are re-read from the registry on every call, and ``on_change`` fires
    after any save, whoever made it, so the view can re-render.
    """

    def __init__(self, plugin: "OctoPrintPlugin", on_change: Optional[Callable[[], None]] = None) -> None:
        self._plugin = plugin
        self._registry = plugin.link.registry
        self._on_change = on_change
        self.revision = 0
        self._unsubscribe = self._registry.subscribe(self._handle_change)

    def rows(self) -> List[PanelRow]:
        return [
            PanelRow(id=inst.id, label=inst.display_name, url=inst.url, is_default=inst.default)
            for inst in self._registry.list()
        ]

    def add(self) -> EditorSession:
        return self._plugin.link.editor.open()

    def edit(self, instance_id: str) -> EditorSession:
        return self._plugin.link.editor.open(instance_id)

    def delete(self, instance_id: str) -> bool:
        return self._registry.remove(instance_id)

    def make_default(self, instance_id: str) -> bool:
        return self._registry.set_default(instance_id)

    def close(self) -> None:
        self._unsubscribe()
        self._plugin.panels.discard(self)

    def _handle_change(self, _bucket: SettingsBucket) -> None:
        self.revision += 1
        if self._on_change is not None:
            self._on_change()


class OctoPrintPlugin:
    """Built-in OctoPrint plugin bound to a host."""

    def __init__(
        self,
        host: Host,
        *,
        settings: Optional[Settings] = None,
        picker: Optional[Picker] = None,
        payload_source: Callable[[], Any] = lambda: b"",
        transport_factory: Optional[TransportFactory] = None,
    ) -> None:
        self.host = host
        self.link = create_printer_link(
            settings,
            backend=host.settings,
            notifier=host,
            picker=picker,
            transport_factory=transport_factory,
        )
        self.actions = self.link.actions
        self.panels: set[SettingsPanel] = set()
        self.enabled = False
        self._payload_source = payload_source

    def descriptor(self) -> PluginDescriptor:
        return PluginDescriptor(
            id=PLUGIN_ID,
            name=PLUGIN_NAME,
            built_in=True,
            schema=dict(SCHEMA),
            on_init=self.on_init,
            on_settings=self.on_settings,
            on_enable=self.on_enable,
            on_disable=self.on_disable,
            build_settings_panel=self.build_settings_panel,
        )

    def register(self) -> None:
        self.host.register(self.descriptor())
        LOGGER.info("Plugin registered", plugin_id=PLUGIN_ID)

    # -- lifecycle hooks -----------------------------------------------------

    def on_init(self) -> None:
        self.host.add_menu_item(
            MenuItem(
                id=MENU_ITEM_ID,
                label=MENU_LABEL,
                on_tap=self.on_menu_tap,
                when_enabled_of=MENU_CAPABILITIES,
            )
        )

    def on_settings(self, current: Any) -> None:
        """Repair the stored shape when the host hands us settings from an older version."""
        if not isinstance(current, Mapping) or not isinstance(current.get("instances"), (list, tuple)):
            self.link.store.normalize()

    def on_enable(self) -> None:
        self.enabled = True
        self.link.store.normalize()

    def on_disable(self) -> None:
        self.enabled = False
        for panel in list(self.panels):
            panel.close()

    def build_settings_panel(self, ctx: Any = None) -> SettingsPanel:
        on_change = getattr(ctx, "on_change", None) if ctx is not None else None
        panel = SettingsPanel(self, on_change=on_change)
        self.panels.add(panel)
        return panel

    # -- actions ---------------------------------------------------------------

    async def on_menu_tap(self) -> Optional[SendOutcome]:
        return await self.actions.send_interactive(self._payload_source())


__all__ = [
    "PLUGIN_ID",
    "MENU_ITEM_ID",
    "MENU_LABEL",
    "MENU_CAPABILITIES",
    "PanelRow",
    "SettingsPanel",
    "OctoPrintPlugin",
]
