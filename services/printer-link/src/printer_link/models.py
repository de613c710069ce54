"""OctoPrint instance data models."""

from __future__ import annotations

from typing import Any, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNNAMED_LABEL = "Unnamed"

DefaultChoice = Literal["yes", "no"]


def new_instance_id() -> str:
    """Generate a fresh opaque instance identifier."""
    return uuid4().hex


class Instance(BaseModel):
    """One configured OctoPrint endpoint."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    id: str = Field(default_factory=new_instance_id, description="Opaque unique identifier")
    name: str = Field(default="", description="Display label")
    url: str = Field(default="", description="Base URL, e.g. https://printer.local")
    key: str = Field(default="", repr=False, description="OctoPrint API key")
    default: bool = Field(default=False, description="Auto-selected when no target is given")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is None or value == "":
            return new_instance_id()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("name", "url", "key", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        # Hand-edited settings may hold numeric names or keys
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("default", mode="before")
    @classmethod
    def _none_to_false(cls, value: Any) -> Any:
        return False if value is None else value

    @property
    def display_name(self) -> str:
        return self.name or UNNAMED_LABEL


class SettingsBucket(BaseModel):
    """Persisted plugin state under ``sb:settings[<plugin id>]``.

    Unknown keys are preserved so other writers of the bucket are not clobbered.
    """

    model_config = ConfigDict(extra="allow")

    instances: List[Instance] = Field(default_factory=list)

    def default_instance(self) -> Optional[Instance]:
        return next((inst for inst in self.instances if inst.default), None)

    def index_of(self, instance_id: str) -> Optional[int]:
        for idx, inst in enumerate(self.instances):
            if inst.id == instance_id:
                return idx
        return None


class EditorFields(BaseModel):
    """User-editable fields of the Add/Edit form."""

    name: str = ""
    url: str = ""
    key: str = Field(default="", repr=False)
    default: DefaultChoice = "no"

    @field_validator("name", "url", "key", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("default", mode="before")
    @classmethod
    def _coerce_choice(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return "yes" if value else "no"
        if isinstance(value, str):
            return value.strip().lower()
        return value


class InstanceView(BaseModel):
    """Public projection of an instance; never carries the API key."""

    id: str
    name: str
    url: str
    default: bool
    has_key: bool

    @classmethod
    def from_instance(cls, instance: Instance) -> "InstanceView":
        return cls(
            id=instance.id,
            name=instance.name,
            url=instance.url,
            default=instance.default,
            has_key=bool(instance.key),
        )


class InstanceWriteRequest(BaseModel):
    """Create/update payload for the REST API."""

    name: str = ""
    url: str = ""
    key: str = Field(default="", repr=False)
    default: bool = False


class SendRequest(BaseModel):
    """Programmatic send request."""

    payload: Any = None
    instance_id: Optional[str] = None


class SendResponse(BaseModel):
    """Outcome of a send as reported over the REST API."""

    status: Literal["sent", "failed"]
    instance_id: str
    status_code: Optional[int] = None
    reason: Optional[str] = None


__all__ = [
    "UNNAMED_LABEL",
    "DefaultChoice",
    "new_instance_id",
    "Instance",
    "SettingsBucket",
    "EditorFields",
    "InstanceView",
    "InstanceWriteRequest",
    "SendRequest",
    "SendResponse",
]
