"""Settings persistence for the OctoPrint plugin bucket.

The host keeps one process-wide settings blob (``sb:settings``) shared by
every plugin. This module reads and writes the plugin's own bucket inside it
and repairs malformed prior state instead of failing.
"""

from __future__ import annotations

import copy
import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from common.logging import get_logger

from .errors import PersistenceFailure
from .models import Instance, SettingsBucket, new_instance_id

LOGGER = get_logger(__name__)

DEFAULT_SETTINGS_KEY = "sb:settings"
DEFAULT_PLUGIN_ID = "octoprint"

BucketListener = Callable[[SettingsBucket], None]

Base = declarative_base()


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class SettingsBackend(ABC):
    """Keyed storage for whole settings blobs."""

    @abstractmethod
    def get(self, name: str, default: Any = None) -> Any:
        """Return the stored blob or ``default``; raise PersistenceFailure on I/O errors."""

    @abstractmethod
    def set(self, name: str, value: Any) -> None:
        """Replace the stored blob in one write; raise PersistenceFailure on I/O errors."""


class MemorySettingsBackend(SettingsBackend):
    """In-process backend; values are copied through JSON like a real store."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, str] = {}
        for name, value in (initial or {}).items():
            self.set(name, value)

    def get(self, name: str, default: Any = None) -> Any:
        raw = self._data.get(name)
        if raw is None:
            return copy.deepcopy(default)
        return json.loads(raw)

    def set(self, name: str, value: Any) -> None:
        try:
            self._data[name] = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Value for {name!r} is not serialisable: {exc}") from exc


class JsonFileSettingsBackend(SettingsBackend):
    """Backend storing every blob in one JSON document on disk."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text())
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(f"Cannot read {self.path}: {exc}") from exc
        return raw if isinstance(raw, dict) else {}

    def get(self, name: str, default: Any = None) -> Any:
        return self._read_all().get(name, copy.deepcopy(default))

    def set(self, name: str, value: Any) -> None:
        data = self._read_all()
        data[name] = value
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2))
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Cannot write {self.path}: {exc}") from exc


class SettingsBlobTable(Base):
    """SQLAlchemy model for settings blobs."""

    __tablename__ = "settings_blobs"

    name = Column(String(255), primary_key=True)
    value_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    version = Column(Integer, default=1)


class SqlSettingsBackend(SettingsBackend):
    """SQL-backed settings storage (SQLite, PostgreSQL, ...)."""

    def __init__(self, database_url: str) -> None:
        self._database_url = database_url
        engine_kwargs: Dict[str, Any] = {}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees a new empty database
            engine_kwargs = {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        self._engine = create_engine(database_url, **engine_kwargs)
        self._session_factory = sessionmaker(bind=self._engine)

        Base.metadata.create_all(self._engine)
        LOGGER.info("SQL settings backend initialized", dialect=self._engine.dialect.name)

    def get(self, name: str, default: Any = None) -> Any:
        try:
            with self._session_factory() as session:
                row = session.get(SettingsBlobTable, name)
                if row is None:
                    return copy.deepcopy(default)
                return json.loads(row.value_json)
        except (SQLAlchemyError, ValueError) as exc:
            raise PersistenceFailure(f"Cannot read settings blob {name!r}: {exc}") from exc

    def set(self, name: str, value: Any) -> None:
        try:
            value_json = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Value for {name!r} is not serialisable: {exc}") from exc

        try:
            with self._session_factory() as session:
                row = session.get(SettingsBlobTable, name)
                now = datetime.utcnow()
                if row:
                    row.value_json = value_json
                    row.updated_at = now
                    row.version = (row.version or 0) + 1
                else:
                    session.add(
                        SettingsBlobTable(
                            name=name,
                            value_json=value_json,
                            created_at=now,
                            updated_at=now,
                            version=1,
                        )
                    )
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Cannot write settings blob {name!r}: {exc}") from exc


def backend_from_url(url: str) -> SettingsBackend:
    """Build a backend from ``memory://``, ``file://<path>``, ``*.json`` or a SQLAlchemy URL."""

    if url.startswith("memory://"):
        return MemorySettingsBackend()
    if url.startswith("file://"):
        return JsonFileSettingsBackend(url[len("file://"):])
    if url.endswith(".json") and "://" not in url:
        return JsonFileSettingsBackend(url)
    return SqlSettingsBackend(url)


# ---------------------------------------------------------------------------
# Plugin bucket adapter
# ---------------------------------------------------------------------------


class PluginSettingsStore:
    """Load/save one plugin bucket inside the shared settings blob."""

    def __init__(
        self,
        backend: SettingsBackend,
        plugin_id: str = DEFAULT_PLUGIN_ID,
        settings_key: str = DEFAULT_SETTINGS_KEY,
    ) -> None:
        self.backend = backend
        self.plugin_id = plugin_id
        self.settings_key = settings_key
        self._listeners: List[BucketListener] = []

    def load(self) -> SettingsBucket:
        """Return the current bucket, repaired to a usable shape.

        Ids assigned to id-less or duplicate entries are written back at once so
        they stay stable across loads.
        """
        bucket, _, ids_assigned = self._read()
        if ids_assigned:
            LOGGER.info("Persisting assigned instance ids", plugin_id=self.plugin_id)
            self.save(bucket)
        return bucket

    def save(self, bucket: SettingsBucket) -> bool:
        """Write the bucket in one backend write and notify subscribers.

        Returns False when the write did not succeed; the failure is logged,
        never raised.
        """
        try:
            blob = self.backend.get(self.settings_key, {})
            if not isinstance(blob, Mapping):
                blob = {}
            blob = dict(blob)
            blob[self.plugin_id] = bucket.model_dump(mode="json")
            self.backend.set(self.settings_key, blob)
        except PersistenceFailure as exc:
            LOGGER.error(
                "Failed to persist plugin settings",
                plugin_id=self.plugin_id,
                error=str(exc),
            )
            return False

        LOGGER.debug(
            "Plugin settings saved",
            plugin_id=self.plugin_id,
            instances=len(bucket.instances),
        )
        self._notify(bucket)
        return True

    def normalize(self) -> SettingsBucket:
        """Load the bucket and write it back if the stored shape needed repair."""
        bucket, repaired, _ = self._read()
        if repaired:
            LOGGER.info("Repaired plugin settings shape", plugin_id=self.plugin_id)
            self.save(bucket)
        return bucket

    def subscribe(self, listener: BucketListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, bucket: SettingsBucket) -> None:
        for listener in list(self._listeners):
            try:
                listener(bucket.model_copy(deep=True))
            except Exception:  # noqa: BLE001
                LOGGER.exception("Settings listener failed", plugin_id=self.plugin_id)

    def _read(self) -> Tuple[SettingsBucket, bool, bool]:
        try:
            blob = self.backend.get(self.settings_key, {})
        except PersistenceFailure as exc:
            LOGGER.warning(
                "Failed to read plugin settings, using empty bucket",
                plugin_id=self.plugin_id,
                error=str(exc),
            )
            return SettingsBucket(), False, False

        repaired = ids_assigned = False
        if not isinstance(blob, Mapping):
            blob, repaired = {}, True

        raw = blob.get(self.plugin_id)
        if not isinstance(raw, Mapping):
            raw, repaired = {}, True

        raw_instances = raw.get("instances")
        if not isinstance(raw_instances, (list, tuple)):
            raw_instances, repaired = [], True

        instances: List[Instance] = []
        seen_ids: set[str] = set()
        for position, entry in enumerate(raw_instances):
            if not isinstance(entry, Mapping):
                LOGGER.warning("Dropping malformed instance entry", position=position)
                repaired = True
                continue
            missing_id = not entry.get("id")
            try:
                instance = Instance.model_validate(dict(entry))
            except ValidationError as exc:
                LOGGER.warning(
                    "Dropping invalid instance entry",
                    position=position,
                    errors=exc.error_count(),
                )
                repaired = True
                continue
            if missing_id:
                repaired = ids_assigned = True
            if instance.id in seen_ids:
                instance.id = new_instance_id()
                repaired = ids_assigned = True
            seen_ids.add(instance.id)
            instances.append(instance)

        extras = {name: value for name, value in raw.items() if name != "instances"}
        return SettingsBucket(instances=instances, **extras), repaired, ids_assigned


__all__ = [
    "DEFAULT_SETTINGS_KEY",
    "DEFAULT_PLUGIN_ID",
    "SettingsBackend",
    "MemorySettingsBackend",
    "JsonFileSettingsBackend",
    "SqlSettingsBackend",
    "backend_from_url",
    "PluginSettingsStore",
]
