# noqa: D104
"""Pytest fixtures for printer-link tests."""

from __future__ import annotations

from typing import Callable, List
from unittest.mock import MagicMock

import httpx
import pytest

from common.config import Settings
from printer_link.registry import InstanceRegistry
from printer_link.service import PrinterLink, create_printer_link
from printer_link.storage import MemorySettingsBackend, PluginSettingsStore


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, printer_settings_url="memory://")


@pytest.fixture
def backend() -> MemorySettingsBackend:
    return MemorySettingsBackend()


@pytest.fixture
def store(backend: MemorySettingsBackend) -> PluginSettingsStore:
    return PluginSettingsStore(backend)


@pytest.fixture
def registry(store: PluginSettingsStore) -> InstanceRegistry:
    return InstanceRegistry(store)


@pytest.fixture
def notifier() -> MagicMock:
    """Mock notifier recording every notify() call."""
    return MagicMock()


@pytest.fixture
def recorded_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def ok_transport(recorded_requests: List[httpx.Request]) -> Callable[[], httpx.MockTransport]:
    """Transport factory answering 201 and remembering each request."""

    def handler(request: httpx.Request) -> httpx.Response:
        recorded_requests.append(request)
        return httpx.Response(201, json={"done": True})

    return lambda: httpx.MockTransport(handler)


@pytest.fixture
def link(
    settings: Settings,
    backend: MemorySettingsBackend,
    notifier: MagicMock,
    ok_transport: Callable[[], httpx.MockTransport],
) -> PrinterLink:
    return create_printer_link(
        settings,
        backend=backend,
        notifier=notifier,
        transport_factory=ok_transport,
    )


@pytest.fixture
def seeded_backend() -> MemorySettingsBackend:
    """Two instances, the first one default."""
    return MemorySettingsBackend(
        {
            "sb:settings": {
                "octoprint": {
                    "instances": [
                        {"id": "1", "name": "Prusa", "url": "http://prusa.local", "key": "k1", "default": True},
                        {"id": "2", "name": "Ender", "url": "http://ender.local", "key": "k2", "default": False},
                    ]
                },
                "theme": {"mode": "dark"},
            }
        }
    )


@pytest.fixture
def seeded_registry(seeded_backend: MemorySettingsBackend) -> InstanceRegistry:
    return InstanceRegistry(PluginSettingsStore(seeded_backend))
