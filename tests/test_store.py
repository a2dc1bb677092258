"""Tests for ConfigStore, WriteLock, AuditTrail and SubsystemTracker."""

import pytest
import yaml
from filelock import FileLock

from configforge.client import Client
from configforge.config import StoreConfig
from configforge.errors import LockTimeoutError, ServerError
from configforge.store import AuditTrail, ConfigStore, SubsystemTracker, WriteLock, split_path


def _seed(store_path, tree):
    store_path.write_text(yaml.safe_dump(tree), encoding="utf-8")


class TestSplitPath:
    def test_drops_empty_segments(self):
        assert split_path("/system//webgui/") == ["system", "webgui"]

    def test_root(self):
        assert split_path("") == []


class TestReads:
    def test_missing_file_is_empty_tree(self, store):
        assert store.get("") == {}
        assert store.get("system") is None
        assert store.get("system", "fallback") == "fallback"

    def test_nested_get_and_exists(self, store_path):
        _seed(store_path, {"system": {"hostname": "fw1", "dns": ["1.1.1.1", "8.8.8.8"]}})
        store = ConfigStore(store_path)
        assert store.get("system/hostname") == "fw1"
        assert store.get("system/dns/1") == "8.8.8.8"
        assert store.get("system/dns/5") is None
        assert store.exists("system/hostname")
        assert not store.exists("system/hostname/extra")

    def test_get_returns_a_copy(self, store_path):
        _seed(store_path, {"system": {"dns": ["1.1.1.1"]}})
        store = ConfigStore(store_path)
        store.get("system/dns").append("9.9.9.9")
        assert store.get("system/dns") == ["1.1.1.1"]

    def test_integer_keys_normalized(self, store_path):
        store_path.write_text("gateways:\n  0:\n    name: gw1\n", encoding="utf-8")
        store = ConfigStore(store_path)
        assert store.get("gateways/0/name") == "gw1"
        assert list(store.get("gateways")) == ["0"]

    def test_enabled_checks_presence_only(self, store_path):
        _seed(store_path, {"system": {"enablesshd": "", "other": None}})
        store = ConfigStore(store_path)
        assert store.enabled("system", "enablesshd")
        assert store.enabled("system", "other")
        assert not store.enabled("system", "missing")
        assert not store.enabled("nothing", "enablesshd")

    def test_corrupt_yaml(self, store_path):
        store_path.write_text("system: [unclosed\n", encoding="utf-8")
        with pytest.raises(ServerError) as exc_info:
            ConfigStore(store_path)
        assert exc_info.value.response_id == "CONFIG_STORE_CORRUPT"

    def test_non_mapping_root(self, store_path):
        store_path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ServerError) as exc_info:
            ConfigStore(store_path)
        assert exc_info.value.response_id == "CONFIG_STORE_CORRUPT"


class TestNextId:
    @pytest.mark.parametrize(
        "tree,expected",
        [
            ({}, 0),
            ({"items": None}, 0),
            ({"items": ""}, 0),
            ({"items": {}}, 0),
            ({"items": {"0": {}, "1": {}}}, 2),
            ({"items": {"1": {}, "0": {}, "2": {}}}, 3),
            ({"items": [{}, {}, {}]}, 3),
        ],
    )
    def test_next_id(self, store_path, tree, expected):
        _seed(store_path, tree)
        assert ConfigStore(store_path).next_id("items") == expected

    def test_non_collection_is_dangerous(self, store_path):
        _seed(store_path, {"items": {"name": "not a collection"}})
        with pytest.raises(ServerError) as exc_info:
            ConfigStore(store_path).next_id("items")
        assert exc_info.value.response_id == "CONFIG_PATH_DANGEROUS"
        assert exc_info.value.data == {"path": "items"}

    @pytest.mark.parametrize(
        "items",
        [
            {"0": {}, "2": {}},
            {"1": {}},
            {"0": {}, "name": "x"},
        ],
    )
    def test_collection_with_gaps_is_dangerous(self, store_path, items):
        _seed(store_path, {"items": items})
        with pytest.raises(ServerError) as exc_info:
            ConfigStore(store_path).next_id("items")
        assert exc_info.value.response_id == "CONFIG_PATH_DANGEROUS"


class TestWrites:
    def test_set_requires_lock(self, store):
        with pytest.raises(ServerError) as exc_info:
            store.set("system/hostname", "fw1")
        assert exc_info.value.response_id == "CONFIG_STORE_NOT_LOCKED"

    def test_delete_requires_lock(self, store):
        with pytest.raises(ServerError):
            store.delete("system")

    def test_write_persists(self, store, store_path):
        store.write("system/hostname", "fw1", "Set hostname")
        on_disk = yaml.safe_load(store_path.read_text(encoding="utf-8"))
        assert on_disk["system"] == {"hostname": "fw1"}
        assert ConfigStore(store_path).get("system/hostname") == "fw1"

    def test_set_replaces_scalar_parents(self, store):
        store.write("system", "scalar", "seed")
        store.write("system/hostname", "fw1", "Set hostname")
        assert store.get("system") == {"hostname": "fw1"}

    def test_set_root_requires_mapping(self, store):
        with pytest.raises(ServerError) as exc_info:
            store.write("", ["not", "a", "mapping"], "bad")
        assert exc_info.value.response_id == "CONFIG_ROOT_NOT_MAPPING"

    def test_list_addressing(self, store):
        store.write("system/dns", ["1.1.1.1"], "seed")
        with store.write_lock("Edit DNS"):
            store.set("system/dns/1", "8.8.8.8")
            store.set("system/dns/0", "9.9.9.9")
        assert store.get("system/dns") == ["9.9.9.9", "8.8.8.8"]

    def test_list_out_of_range_not_traversable(self, store):
        store.write("system/dns", ["1.1.1.1"], "seed")
        with pytest.raises(ServerError) as exc_info:
            store.write("system/dns/5", "8.8.8.8", "bad")
        assert exc_info.value.response_id == "CONFIG_PATH_NOT_TRAVERSABLE"
        assert store.get("system/dns") == ["1.1.1.1"]

    def test_delete(self, store):
        store.write("system", {"hostname": "fw1", "domain": "lan"}, "seed")
        with store.write_lock("Remove domain"):
            assert store.delete("system/domain") == "lan"
            assert store.delete("system/missing") is None
        assert store.get("system") == {"hostname": "fw1"}

    def test_failed_block_rolls_back(self, store, store_path):
        store.write("system/hostname", "fw1", "seed")
        with pytest.raises(RuntimeError):
            with store.write_lock("Broken change"):
                store.set("system/hostname", "fw2")
                raise RuntimeError("boom")
        assert store.get("system/hostname") == "fw1"
        assert yaml.safe_load(store_path.read_text(encoding="utf-8"))["system"]["hostname"] == "fw1"
        assert not store.is_locked

    def test_failed_persist_rolls_back(self, store, store_path, monkeypatch):
        store.write("system/hostname", "fw1", "seed")
        revision = store.get("revision")

        def disk_full():
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(store, "_persist", disk_full)
        with pytest.raises(OSError):
            store.write("system/hostname", "fw2", "Rename", subsystem="system")

        assert store.get("system/hostname") == "fw1"
        assert store.get("revision") == revision
        assert len(store.audit.entries()) == 1
        assert not store.subsystems.is_dirty("system")
        assert not store.is_locked

    def test_unchanged_block_does_not_commit(self, store, store_path):
        with store.write_lock("Nothing"):
            store.get("system")
        assert not store_path.exists()
        assert store.audit.entries() == []

    def test_revision_recorded(self, store):
        client = Client(username="admin", ip_address="192.168.1.10")
        store.write("system/hostname", "fw1", "Set hostname", client=client)
        revision = store.get("revision")
        assert revision["username"] == "admin@192.168.1.10"
        assert revision["description"] == "admin@192.168.1.10: Set hostname"
        assert isinstance(revision["time"], int)

    def test_lock_reloads_external_changes(self, store, store_path):
        store.write("system/hostname", "fw1", "seed")
        other = ConfigStore(store_path)
        other.write("system/domain", "lan", "Set domain")
        store.write("system/hostname", "fw2", "Rename")
        assert store.get("system") == {"hostname": "fw2", "domain": "lan"}

    def test_reload(self, store, store_path):
        _seed(store_path, {"system": {"hostname": "external"}})
        assert store.get("system") is None
        store.reload()
        assert store.get("system/hostname") == "external"

    def test_nested_locks_join_outermost(self, store):
        with store.write_lock("Outer", subsystem="routing"):
            store.set("routing/a", "1")
            with store.write_lock("Inner", subsystem="dns"):
                store.set("dns/b", "2")
            assert store.is_locked
        entries = store.audit.entries()
        assert len(entries) == 1
        assert entries[0].note == "Outer"
        assert entries[0].paths == ["routing/a", "dns/b"]
        assert entries[0].subsystems == ["dns", "routing"]
        assert store.subsystems.dirty_subsystems() == ["dns", "routing"]


class TestLocking:
    def test_timeout_when_held_elsewhere(self, store, store_path):
        holder = FileLock(str(store_path) + ".lock")
        with holder:
            with pytest.raises(LockTimeoutError) as exc_info:
                store.write("system/hostname", "fw1", "Blocked")
        assert exc_info.value.response_id == "CONFIG_LOCK_TIMEOUT"
        assert exc_info.value.data["attempts"] == 2
        assert store.get("system") is None

    def test_attempts_must_be_positive(self, tmp_path):
        with pytest.raises(ValueError):
            WriteLock(tmp_path / "x.lock", attempts=0)

    def test_context_manager(self, tmp_path):
        lock = WriteLock(tmp_path / "x.lock", attempts=1, interval=0.05)
        with lock:
            assert lock.is_locked
        assert not lock.is_locked


class TestAuditAndSubsystems:
    def test_audit_entries(self, tmp_path):
        trail = AuditTrail(tmp_path / "audit.jsonl")
        client = Client(username="admin", ip_address="10.0.0.5")
        trail.record(["system/hostname"], "Set hostname", client, subsystems=["system"])
        trail.record(["dns"], "Cleared DNS", client)

        entries = trail.entries()
        assert [e.note for e in entries] == ["Set hostname", "Cleared DNS"]
        assert entries[0].username == "admin"
        assert entries[0].ip_address == "10.0.0.5"
        assert entries[0].subsystems == ["system"]
        assert entries[1].subsystems == []

    def test_empty_trail(self, tmp_path):
        assert AuditTrail(tmp_path / "missing.jsonl").entries() == []

    def test_subsystem_markers(self, tmp_path):
        tracker = SubsystemTracker(tmp_path / "state")
        assert tracker.dirty_subsystems() == []
        tracker.mark_dirty("routing")
        tracker.mark_dirty("dns")
        assert tracker.is_dirty("routing")
        assert tracker.dirty_subsystems() == ["dns", "routing"]
        tracker.clear("routing")
        tracker.clear("routing")
        assert tracker.dirty_subsystems() == ["dns"]

    def test_invalid_subsystem_name(self, tmp_path):
        with pytest.raises(ValueError):
            SubsystemTracker(tmp_path).mark_dirty("../escape")

    def test_audit_file_next_to_store(self, store, store_path):
        store.write("system/hostname", "fw1", "Set hostname", subsystem="system")
        assert (store_path.parent / "config.audit.jsonl").exists()
        assert (store_path.parent / "system.dirty").exists()


class TestFromConfig:
    def test_uses_resolved_paths(self, tmp_path):
        config = StoreConfig(
            path=tmp_path / "conf" / "config.yaml",
            state_dir=tmp_path / "state",
            lock_attempts=3,
            lock_interval=0.1,
            packages=["wireguard"],
        )
        store = ConfigStore.from_config(config)
        assert store.installed_packages == {"wireguard"}
        assert store.subsystems.state_dir == tmp_path / "state"
        assert store.audit.path == tmp_path / "state" / "config.audit.jsonl"
        assert store._lock.lock_path == tmp_path / "conf" / "config.yaml.lock"
        assert store._lock.attempts == 3
