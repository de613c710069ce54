"""Instance registry with the single-default invariant.

Every operation is one read-modify-write against the latest persisted
bucket; nothing is cached between calls because another settings view or a
script may have changed the bucket in the meantime. After any mutation a
non-empty registry has exactly one default instance.
"""

from __future__ import annotations

from typing import Any, Callable, List, Mapping, Optional, Union

from common.logging import get_logger

from .errors import RecordNotFound
from .models import Instance, SettingsBucket, new_instance_id
from .storage import BucketListener, PluginSettingsStore

LOGGER = get_logger(__name__)

InstanceRecord = Union[Instance, Mapping[str, Any]]


def _coerce(record: InstanceRecord) -> Instance:
    if isinstance(record, Instance):
        return record.model_copy(deep=True)
    return Instance.model_validate(dict(record))


def repair_default(instances: List[Instance]) -> None:
    """Leave exactly one default in a non-empty list (the first defaulted one, else the first)."""
    if not instances:
        return
    found = False
    for inst in instances:
        if inst.default and not found:
            found = True
        elif inst.default:
            inst.default = False
    if not found:
        instances[0].default = True


class InstanceRegistry:
    """CRUD over the persisted OctoPrint instances."""

    def __init__(self, store: PluginSettingsStore) -> None:
        self.store = store

    # -- reads ---------------------------------------------------------------

    def list(self) -> List[Instance]:
        """Snapshot of the current instances in insertion order."""
        return self.store.load().instances

    def get(self, instance_id: str) -> Optional[Instance]:
        bucket = self.store.load()
        idx = bucket.index_of(instance_id)
        return None if idx is None else bucket.instances[idx]

    def require(self, instance_id: str) -> Instance:
        instance = self.get(instance_id)
        if instance is None:
            raise RecordNotFound(instance_id)
        return instance

    def at(self, index: int) -> Optional[Instance]:
        instances = self.list()
        if 0 <= index < len(instances):
            return instances[index]
        return None

    def is_empty(self) -> bool:
        return not self.list()

    # -- mutations -----------------------------------------------------------

    def add(self, record: InstanceRecord) -> Instance:
        """Append a new instance; the first instance always becomes the default."""
        bucket = self.store.load()
        instance = _coerce(record)

        existing_ids = {inst.id for inst in bucket.instances}
        if instance.id in existing_ids:
            instance.id = new_instance_id()

        if instance.default:
            for inst in bucket.instances:
                inst.default = False
        if not bucket.instances:
            instance.default = True

        bucket.instances.append(instance)
        self._commit(bucket, "add", instance.id)
        return bucket.instances[-1].model_copy(deep=True)

    def update(self, instance_id: str, record: InstanceRecord) -> Optional[Instance]:
        """Replace the fields of ``instance_id``; a missing id is a no-op returning None."""
        bucket = self.store.load()
        idx = bucket.index_of(instance_id)
        if idx is None:
            LOGGER.debug("Update skipped, record not found", instance_id=instance_id)
            return None

        replacement = _coerce(record)
        replacement.id = instance_id
        if replacement.default:
            for inst in bucket.instances:
                inst.default = False
        bucket.instances[idx] = replacement

        self._commit(bucket, "update", instance_id)
        return bucket.instances[idx].model_copy(deep=True)

    def remove(self, instance_id: str) -> bool:
        """Delete ``instance_id``; promotes the first remaining instance if the default went away."""
        bucket = self.store.load()
        idx = bucket.index_of(instance_id)
        if idx is None:
            LOGGER.debug("Remove skipped, record not found", instance_id=instance_id)
            return False

        del bucket.instances[idx]
        self._commit(bucket, "remove", instance_id)
        return True

    def set_default(self, instance_id: str) -> bool:
        bucket = self.store.load()
        idx = bucket.index_of(instance_id)
        if idx is None:
            LOGGER.debug("Set-default skipped, record not found", instance_id=instance_id)
            return False

        for pos, inst in enumerate(bucket.instances):
            inst.default = pos == idx
        self._commit(bucket, "set_default", instance_id)
        return True

    def subscribe(self, listener: BucketListener) -> Callable[[], None]:
        """Call ``listener`` with the new bucket after every successful save."""
        return self.store.subscribe(listener)

    def _commit(self, bucket: SettingsBucket, operation: str, instance_id: str) -> None:
        repair_default(bucket.instances)
        persisted = self.store.save(bucket)
        LOGGER.info(
            "Registry updated",
            operation=operation,
            instance_id=instance_id,
            instances=len(bucket.instances),
            persisted=persisted,
        )


__all__ = ["InstanceRecord", "InstanceRegistry", "repair_default"]
