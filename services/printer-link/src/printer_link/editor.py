"""Add/Edit workflow for a single OctoPrint instance."""

from __future__ import annotations

from typing import Optional

from common.logging import get_logger

from .errors import RecordNotFound
from .models import EditorFields, Instance
from .registry import InstanceRegistry

LOGGER = get_logger(__name__)


def blank_record(registry_empty: bool) -> Instance:
    """Starting point for Add: the first instance defaults to ``default``."""
    return Instance(name="", url="", key="", default=registry_empty)


def fields_from(source: Instance) -> EditorFields:
    return EditorFields(
        name=source.name,
        url=source.url,
        key=source.key,
        default="yes" if source.default else "no",
    )


def build_candidate(source: Instance, fields: EditorFields) -> Instance:
    """Apply edited fields to ``source``: strings trimmed, yes/no mapped to a bool."""
    return Instance(
        id=source.id,
        name=fields.name.strip(),
        url=fields.url.strip(),
        key=fields.key.strip(),
        default=fields.default == "yes",
    )


class EditorSession:
    """One open Add or Edit form. Either commits once or is cancelled."""

    def __init__(self, registry: InstanceRegistry, source: Instance, instance_id: Optional[str]) -> None:
        self._registry = registry
        self._source = source
        self.instance_id = instance_id
        self.fields = fields_from(source)
        self.closed = False

    @property
    def is_edit(self) -> bool:
        return self.instance_id is not None

    @property
    def title(self) -> str:
        return "Edit OctoPrint" if self.is_edit else "Add OctoPrint"

    def commit(self, fields: Optional[EditorFields] = None) -> Optional[Instance]:
        """Hand the candidate to the registry and close the session.

        Returns the stored instance, or None when the record being edited was
        removed in the meantime.
        """
        if self.closed:
            raise RuntimeError("Editor session is closed")
        candidate = build_candidate(self._source, fields or self.fields)
        self.closed = True

        if self.instance_id is None:
            return self._registry.add(candidate)
        stored = self._registry.update(self.instance_id, candidate)
        if stored is None:
            LOGGER.info("Edited instance no longer exists", instance_id=self.instance_id)
        return stored

    def cancel(self) -> None:
        self.closed = True


class EditorWorkflow:
    """Opens editor sessions against the registry."""

    def __init__(self, registry: InstanceRegistry) -> None:
        self.registry = registry

    def open(self, instance_id: Optional[str] = None) -> EditorSession:
        """Open Add (no id) or Edit for ``instance_id``.

        Raises:
            RecordNotFound: ``instance_id`` is not in the registry
        """
        if instance_id is None:
            source = blank_record(self.registry.is_empty())
        else:
            source = self.registry.get(instance_id)
            if source is None:
                raise RecordNotFound(instance_id)
        return EditorSession(self.registry, source, instance_id)


__all__ = [
    "blank_record",
    "fields_from",
    "build_candidate",
    "EditorSession",
    "EditorWorkflow",
]
