"""REST API routes for OctoPrint instances."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from common.logging import get_logger

from .dispatch import Sent
from .errors import NoInstancesConfigured, RecordNotFound
from .models import InstanceView, InstanceWriteRequest, SendRequest, SendResponse
from .service import PrinterLink

LOGGER = get_logger(__name__)
router = APIRouter(prefix="/api/octoprint", tags=["octoprint"])


def get_printer_link(request: Request) -> PrinterLink:
    return request.app.state.printer_link


@router.get("/instances", response_model=List[InstanceView])
async def list_instances(link: PrinterLink = Depends(get_printer_link)) -> List[InstanceView]:
    """List configured instances in insertion order."""
    return [InstanceView.from_instance(inst) for inst in link.registry.list()]


@router.post("/instances", response_model=InstanceView, status_code=status.HTTP_201_CREATED)
async def create_instance(
    body: InstanceWriteRequest,
    link: PrinterLink = Depends(get_printer_link),
) -> InstanceView:
    """Create an instance through the editor workflow."""
    session = link.editor.open()
    stored = session.commit(session.fields.model_copy(update=_editor_update(body)))
    return InstanceView.from_instance(stored)


@router.get("/instances/{instance_id}", response_model=InstanceView)
async def get_instance(instance_id: str, link: PrinterLink = Depends(get_printer_link)) -> InstanceView:
    try:
        return InstanceView.from_instance(link.registry.require(instance_id))
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.put("/instances/{instance_id}", response_model=InstanceView)
async def update_instance(
    instance_id: str,
    body: InstanceWriteRequest,
    link: PrinterLink = Depends(get_printer_link),
) -> InstanceView:
    """Replace an instance; an empty ``key`` keeps the stored credential."""
    try:
        session = link.editor.open(instance_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    update = _editor_update(body)
    if not body.key:
        update.pop("key")
    stored = session.commit(session.fields.model_copy(update=update))
    if stored is None:
        raise HTTPException(status_code=404, detail=f"Instance not found: {instance_id}")
    return InstanceView.from_instance(stored)


@router.delete("/instances/{instance_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_instance(instance_id: str, link: PrinterLink = Depends(get_printer_link)) -> Response:
    if not link.registry.remove(instance_id):
        raise HTTPException(status_code=404, detail=f"Instance not found: {instance_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/instances/{instance_id}/default", response_model=InstanceView)
async def make_default(instance_id: str, link: PrinterLink = Depends(get_printer_link)) -> InstanceView:
    if not link.registry.set_default(instance_id):
        raise HTTPException(status_code=404, detail=f"Instance not found: {instance_id}")
    return InstanceView.from_instance(link.registry.require(instance_id))


@router.post("/send", response_model=SendResponse)
async def send(body: SendRequest, link: PrinterLink = Depends(get_printer_link)) -> SendResponse:
    """Programmatic send: explicit id, else default, else first instance."""
    try:
        outcome = await link.actions.send(body.payload, body.instance_id)
    except NoInstancesConfigured as exc:
        LOGGER.info("Send rejected, no instances configured")
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    if isinstance(outcome, Sent):
        return SendResponse(status="sent", instance_id=outcome.instance_id, status_code=outcome.status_code)
    return SendResponse(status="failed", instance_id=outcome.instance_id, reason=outcome.reason)


def _editor_update(body: InstanceWriteRequest) -> dict:
    return {
        "name": body.name,
        "url": body.url,
        "key": body.key,
        "default": "yes" if body.default else "no",
    }


__all__ = ["router", "get_printer_link"]
