# noqa: D104
"""Tests for settings backends and the plugin bucket adapter."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from printer_link.errors import PersistenceFailure
from printer_link.models import Instance, SettingsBucket
from printer_link.storage import (
    JsonFileSettingsBackend,
    MemorySettingsBackend,
    PluginSettingsStore,
    SqlSettingsBackend,
    backend_from_url,
)


def _bucket(*instances: Instance) -> SettingsBucket:
    return SettingsBucket(instances=list(instances))


class TestLoadNormalization:
    """load() always returns a usable bucket."""

    def test_missing_blob_gives_empty_bucket(self, store: PluginSettingsStore) -> None:
        assert store.load().instances == []

    @pytest.mark.parametrize(
        "blob",
        [
            "not a mapping",
            {"octoprint": None},
            {"octoprint": {"instances": "oops"}},
            {"octoprint": {"instances": {"id": "1"}}},
        ],
    )
    def test_malformed_shapes_become_empty(self, blob: object) -> None:
        store = PluginSettingsStore(MemorySettingsBackend({"sb:settings": blob}))
        assert store.load().instances == []

    def test_non_mapping_entries_are_dropped(self) -> None:
        backend = MemorySettingsBackend(
            {"sb:settings": {"octoprint": {"instances": [42, {"id": "a", "name": "A"}]}}}
        )
        instances = PluginSettingsStore(backend).load().instances
        assert [inst.id for inst in instances] == ["a"]

    def test_entries_without_id_get_one(self) -> None:
        backend = MemorySettingsBackend(
            {"sb:settings": {"octoprint": {"instances": [{"name": "A"}, {"name": "B", "id": None}]}}}
        )
        instances = PluginSettingsStore(backend).load().instances
        assert all(inst.id for inst in instances)
        assert instances[0].id != instances[1].id

    def test_assigned_ids_are_stable_across_loads(self) -> None:
        backend = MemorySettingsBackend(
            {"sb:settings": {"octoprint": {"instances": [{"name": "A", "default": True}, {"name": "B"}]}}}
        )
        store = PluginSettingsStore(backend)

        first = [inst.id for inst in store.load().instances]
        second = [inst.id for inst in PluginSettingsStore(backend).load().instances]

        assert first == second
        stored = backend.get("sb:settings")["octoprint"]["instances"]
        assert [entry["id"] for entry in stored] == first

    def test_invalid_entry_alone_does_not_trigger_write(self) -> None:
        backend = MagicMock()
        backend.get.return_value = {"octoprint": {"instances": [{"id": "a"}, {"name": {"nested": 1}}]}}

        instances = PluginSettingsStore(backend).load().instances

        assert [inst.id for inst in instances] == ["a"]
        backend.set.assert_not_called()

    def test_numeric_fields_are_kept_as_strings(self) -> None:
        backend = MemorySettingsBackend(
            {"sb:settings": {"octoprint": {"instances": [{"id": "a", "name": 3, "key": 12345}]}}}
        )
        (inst,) = PluginSettingsStore(backend).load().instances
        assert (inst.name, inst.key) == ("3", "12345")

    def test_duplicate_ids_are_reassigned(self) -> None:
        backend = MemorySettingsBackend(
            {"sb:settings": {"octoprint": {"instances": [{"id": "x"}, {"id": "x"}]}}}
        )
        first, second = PluginSettingsStore(backend).load().instances
        assert first.id == "x"
        assert second.id != "x"

    def test_integer_ids_and_null_fields_are_coerced(self) -> None:
        backend = MemorySettingsBackend(
            {"sb:settings": {"octoprint": {"instances": [{"id": 7, "name": None, "default": None}]}}}
        )
        (inst,) = PluginSettingsStore(backend).load().instances
        assert inst.id == "7"
        assert inst.name == ""
        assert inst.default is False

    def test_read_failure_yields_empty_bucket(self) -> None:
        backend = MagicMock()
        backend.get.side_effect = PersistenceFailure("disk gone")
        assert PluginSettingsStore(backend).load().instances == []


class TestSave:
    """save() writes one bucket without touching the rest of the blob."""

    def test_round_trip_preserves_contents_and_order(self, store: PluginSettingsStore) -> None:
        bucket = _bucket(
            Instance(id="b", name="B", url="http://b", key="kb", default=False),
            Instance(id="a", name="A", url="http://a", key="ka", default=True),
        )
        assert store.save(bucket) is True
        loaded = store.load()
        assert [inst.model_dump() for inst in loaded.instances] == [
            inst.model_dump() for inst in bucket.instances
        ]

    def test_other_plugins_are_untouched(self, seeded_backend: MemorySettingsBackend) -> None:
        store = PluginSettingsStore(seeded_backend)
        store.save(_bucket())
        blob = seeded_backend.get("sb:settings")
        assert blob["theme"] == {"mode": "dark"}
        assert blob["octoprint"]["instances"] == []

    def test_extra_bucket_keys_survive(self) -> None:
        backend = MemorySettingsBackend({"sb:settings": {"octoprint": {"instances": [], "last_used": "x"}}})
        store = PluginSettingsStore(backend)
        store.save(store.load())
        assert backend.get("sb:settings")["octoprint"]["last_used"] == "x"

    def test_write_failure_is_swallowed(self) -> None:
        backend = MagicMock()
        backend.get.return_value = {}
        backend.set.side_effect = PersistenceFailure("read-only")
        store = PluginSettingsStore(backend)
        listener = MagicMock()
        store.subscribe(listener)

        assert store.save(_bucket(Instance(name="A"))) is False
        listener.assert_not_called()

    def test_subscribers_see_the_new_bucket(self, store: PluginSettingsStore) -> None:
        seen = []
        store.subscribe(lambda bucket: seen.append(len(bucket.instances)))
        store.save(_bucket(Instance(name="A")))
        assert seen == [1]

    def test_unsubscribe_stops_notifications(self, store: PluginSettingsStore) -> None:
        listener = MagicMock()
        unsubscribe = store.subscribe(listener)
        unsubscribe()
        store.save(_bucket())
        listener.assert_not_called()

    def test_failing_listener_does_not_block_others(self, store: PluginSettingsStore) -> None:
        broken = MagicMock(side_effect=RuntimeError("boom"))
        healthy = MagicMock()
        store.subscribe(broken)
        store.subscribe(healthy)
        assert store.save(_bucket()) is True
        healthy.assert_called_once()


class TestNormalize:
    def test_repairs_and_persists_bad_shape(self) -> None:
        backend = MemorySettingsBackend({"sb:settings": {"octoprint": {"instances": None}}})
        PluginSettingsStore(backend).normalize()
        assert backend.get("sb:settings")["octoprint"] == {"instances": []}

    def test_valid_shape_is_not_rewritten(self, seeded_backend: MemorySettingsBackend) -> None:
        store = PluginSettingsStore(seeded_backend)
        listener = MagicMock()
        store.subscribe(listener)
        store.normalize()
        listener.assert_not_called()


class TestBackends:
    def test_json_file_backend_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "settings.json"
        backend = JsonFileSettingsBackend(path)
        backend.set("sb:settings", {"octoprint": {"instances": []}})

        assert json.loads(path.read_text())["sb:settings"] == {"octoprint": {"instances": []}}
        assert backend.get("sb:settings") == {"octoprint": {"instances": []}}
        assert not path.with_suffix(".json.tmp").exists()

    def test_json_file_backend_corrupt_file(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceFailure):
            JsonFileSettingsBackend(path).get("sb:settings")

    def test_sql_backend_round_trip(self, tmp_path: Path) -> None:
        url = f"sqlite:///{tmp_path / 'settings.db'}"
        SqlSettingsBackend(url).set("sb:settings", {"octoprint": {"instances": [{"id": "1"}]}})
        SqlSettingsBackend(url).set("sb:settings", {"octoprint": {"instances": [{"id": "2"}]}})

        assert SqlSettingsBackend(url).get("sb:settings") == {"octoprint": {"instances": [{"id": "2"}]}}

    def test_sql_backend_in_memory(self) -> None:
        backend = SqlSettingsBackend("sqlite://")
        assert backend.get("missing", {}) == {}
        backend.set("sb:settings", {"a": 1})
        assert backend.get("sb:settings") == {"a": 1}

    def test_memory_backend_returns_copies(self) -> None:
        backend = MemorySettingsBackend({"blob": {"a": [1]}})
        backend.get("blob")["a"].append(2)
        assert backend.get("blob") == {"a": [1]}

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("memory://", MemorySettingsBackend),
            ("file:///tmp/printer-link/settings.json", JsonFileSettingsBackend),
            ("settings.json", JsonFileSettingsBackend),
            ("sqlite://", SqlSettingsBackend),
        ],
    )
    def test_backend_from_url(self, url: str, expected: type) -> None:
        assert isinstance(backend_from_url(url), expected)
