"""Send payloads to OctoPrint instances.

The transmission goes through an httpx client shaped like an OctoPrint
upload (``POST /api/files/local`` with the ``X-Api-Key`` header). The default
transport is a stub that logs the request and answers ``201 Created``; pass a
``transport_factory`` to talk to a real server or to simulate failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

import httpx

from common.logging import get_logger

from .errors import DispatchFailure, NoInstancesConfigured
from .host import Notifier, Picker
from .models import Instance
from .registry import InstanceRegistry
from .selection import select_instance

LOGGER = get_logger(__name__)

UPLOAD_PATH = "/api/files/local"
DEFAULT_FILENAME = "job.gcode"
NO_INSTANCES_MESSAGE = "No OctoPrint instances configured. Add one in Settings → OctoPrint."

TransportFactory = Callable[[], httpx.AsyncBaseTransport]


@dataclass(frozen=True)
class Sent:
    instance_id: str
    status_code: int


@dataclass(frozen=True)
class Failed:
    instance_id: str
    reason: str


SendOutcome = Union[Sent, Failed]


def _stub_handler(request: httpx.Request) -> httpx.Response:
    LOGGER.info(
        "Stub transport accepted upload",
        method=request.method,
        url=str(request.url),
        size_bytes=len(request.content),
    )
    return httpx.Response(201, json={"done": True, "files": {"local": {"origin": "local"}}})


def stub_transport() -> httpx.AsyncBaseTransport:
    """Transport that never leaves the process."""
    return httpx.MockTransport(_stub_handler)


def _encode_payload(payload: Any, filename: str) -> Dict[str, Any]:
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    if isinstance(payload, (bytes, bytearray)):
        return {
            "files": {"file": (filename, bytes(payload), "application/octet-stream")},
            "data": {"select": "true", "print": "false"},
        }
    return {"json": payload}


class DispatchGateway:
    """Single-shot sender: one request, one outcome, one notification, no retry."""

    def __init__(
        self,
        notifier: Notifier,
        transport_factory: Optional[TransportFactory] = None,
        timeout: float = 60.0,
    ) -> None:
        self._notifier = notifier
        self._transport_factory = transport_factory or stub_transport
        self._timeout = timeout

    async def send(
        self, instance: Instance, payload: Any, *, filename: str = DEFAULT_FILENAME
    ) -> SendOutcome:
        """Send ``payload`` to ``instance`` and notify the user of the outcome."""
        try:
            status_code = await self._transmit(instance, payload, filename)
        except DispatchFailure as exc:
            LOGGER.warning(
                "Dispatch failed",
                instance_id=instance.id,
                url=instance.url,
                reason=exc.reason,
            )
            self._notifier.notify(
                f"Failed to send to {instance.display_name}: {exc.reason}", level="error"
            )
            return Failed(instance_id=instance.id, reason=exc.reason)

        LOGGER.info("Dispatch complete", instance_id=instance.id, status_code=status_code)
        self._notifier.notify(f"Sent to {instance.display_name} at {instance.url}")
        return Sent(instance_id=instance.id, status_code=status_code)

    async def _transmit(self, instance: Instance, payload: Any, filename: str) -> int:
        base_url = instance.url.strip().rstrip("/")
        if not base_url:
            raise DispatchFailure(instance.id, "Instance has no URL configured")

        headers = {"X-Api-Key": instance.key} if instance.key else {}
        try:
            async with httpx.AsyncClient(
                base_url=base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport_factory(),
            ) as client:
                response = await client.post(UPLOAD_PATH, **_encode_payload(payload, filename))
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DispatchFailure(
                instance.id, f"HTTP {exc.response.status_code} from {base_url}"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DispatchFailure(instance.id, str(exc) or exc.__class__.__name__) from exc
        except (TypeError, ValueError) as exc:
            raise DispatchFailure(instance.id, f"Payload could not be encoded: {exc}") from exc
        return response.status_code


class SendActions:
    """Entry points that select a target and dispatch to it."""

    def __init__(
        self,
        registry: InstanceRegistry,
        gateway: DispatchGateway,
        notifier: Notifier,
        picker: Optional[Picker] = None,
    ) -> None:
        self.registry = registry
        self.gateway = gateway
        self.notifier = notifier
        self.picker = picker

    async def send(
        self,
        payload: Any,
        instance_id: Optional[str] = None,
        *,
        filename: str = DEFAULT_FILENAME,
    ) -> SendOutcome:
        """Programmatic send: explicit id, else default, else first. Never prompts.

        Raises:
            NoInstancesConfigured: the registry is empty
        """
        selection = select_instance(self.registry.list(), instance_id, interactive=False)
        return await self.gateway.send(selection.instance, payload, filename=filename)

    async def send_interactive(
        self,
        payload: Any,
        instance_id: Optional[str] = None,
        *,
        filename: str = DEFAULT_FILENAME,
    ) -> Optional[SendOutcome]:
        """Menu-triggered send; asks the picker when several instances exist.

        Returns None when nothing was sent (nothing configured, or the user cancelled).
        """
        try:
            selection = select_instance(self.registry.list(), instance_id, interactive=True)
        except NoInstancesConfigured:
            LOGGER.info("Send requested with no instances configured")
            self.notifier.notify(NO_INSTANCES_MESSAGE, level="warning")
            return None

        target = selection.instance
        if selection.ambiguous:
            if self.picker is None:
                LOGGER.warning("No picker available, using automatic selection", instance_id=target.id)
            else:
                chosen = self.picker.choose(selection.candidates, selection.instance)
                if chosen is None:
                    LOGGER.info("Send cancelled by user")
                    return None
                target = chosen

        return await self.gateway.send(target, payload, filename=filename)


__all__ = [
    "UPLOAD_PATH",
    "NO_INSTANCES_MESSAGE",
    "Sent",
    "Failed",
    "SendOutcome",
    "stub_transport",
    "DispatchGateway",
    "SendActions",
]
