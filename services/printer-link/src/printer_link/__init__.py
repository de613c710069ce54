"""OctoPrint instance registry and dispatch for the host plugin system."""

from .dispatch import DispatchGateway, Failed, SendActions, Sent
from .errors import (
    DispatchFailure,
    NoInstancesConfigured,
    PersistenceFailure,
    PrinterLinkError,
    RecordNotFound,
)
from .models import Instance, SettingsBucket
from .plugin import OctoPrintPlugin
from .registry import InstanceRegistry
from .selection import Selection, select_instance
from .service import PrinterLink, create_printer_link
from .storage import PluginSettingsStore

__all__ = [
    "DispatchGateway",
    "Failed",
    "SendActions",
    "Sent",
    "DispatchFailure",
    "NoInstancesConfigured",
    "PersistenceFailure",
    "PrinterLinkError",
    "RecordNotFound",
    "Instance",
    "SettingsBucket",
    "OctoPrintPlugin",
    "InstanceRegistry",
    "Selection",
    "select_instance",
    "PrinterLink",
    "create_printer_link",
    "PluginSettingsStore",
]
