"""Tests for configforge CLI commands."""

import pytest
import yaml
from click.testing import CliRunner

from configforge.cli.main import cli
from configforge.store import ConfigStore


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.delenv("CONFIGFORGE_STORE_PATH", raising=False)
    monkeypatch.setenv("CONFIGFORGE_LOCK_ATTEMPTS", "2")
    monkeypatch.setenv("CONFIGFORGE_LOCK_INTERVAL", "0.05")
    monkeypatch.setenv("USER", "operator")
    return CliRunner()


@pytest.fixture
def seeded(store_path):
    store_path.write_text(
        yaml.safe_dump({"system": {"hostname": "fw1", "dns": ["1.1.1.1"]}, "aliases": {"alias": {}}}),
        encoding="utf-8",
    )
    return store_path


def invoke(runner, store_path, *args):
    return runner.invoke(cli, ["--store", str(store_path), "store", *args])


class TestGet:
    def test_scalar(self, runner, seeded):
        result = invoke(runner, seeded, "get", "system/hostname")
        assert result.exit_code == 0
        assert result.output == "fw1\n"

    def test_subtree_as_yaml(self, runner, seeded):
        result = invoke(runner, seeded, "get", "system")
        assert result.exit_code == 0
        assert yaml.safe_load(result.output) == {"hostname": "fw1", "dns": ["1.1.1.1"]}

    def test_whole_tree(self, runner, seeded):
        result = invoke(runner, seeded, "get")
        assert result.exit_code == 0
        assert "hostname: fw1" in result.output

    def test_missing_path(self, runner, seeded):
        result = invoke(runner, seeded, "get", "system/nope")
        assert result.exit_code != 0
        assert "does not exist" in result.output


class TestSet:
    def test_value_parsed_as_yaml(self, runner, seeded):
        result = invoke(runner, seeded, "set", "system/timeout", "3600")
        assert result.exit_code == 0
        assert "Set system/timeout" in result.output
        assert ConfigStore(seeded).get("system/timeout") == 3600

    def test_structured_value(self, runner, seeded):
        result = invoke(runner, seeded, "set", "system/dns", "[9.9.9.9, 8.8.8.8]")
        assert result.exit_code == 0
        assert ConfigStore(seeded).get("system/dns") == ["9.9.9.9", "8.8.8.8"]

    def test_note_and_subsystem_recorded(self, runner, seeded):
        result = invoke(
            runner, seeded, "set", "system/hostname", "fw2", "--note", "Rename", "--subsystem", "system"
        )
        assert result.exit_code == 0

        store = ConfigStore(seeded)
        entry = store.audit.entries()[-1]
        assert entry.note == "Rename"
        assert entry.username == "operator"
        assert store.subsystems.is_dirty("system")

    def test_invalid_yaml(self, runner, seeded):
        result = invoke(runner, seeded, "set", "system/dns", "[unclosed")
        assert result.exit_code != 0
        assert "not valid YAML" in result.output

    def test_store_error_reported(self, runner, seeded):
        result = invoke(runner, seeded, "set", "system/dns/7", "x")
        assert result.exit_code != 0
        assert "CONFIG_PATH_NOT_TRAVERSABLE" in result.output


class TestDelete:
    def test_delete(self, runner, seeded):
        result = invoke(runner, seeded, "delete", "system/dns")
        assert result.exit_code == 0
        assert "Deleted system/dns" in result.output
        assert not ConfigStore(seeded).exists("system/dns")

    def test_delete_missing(self, runner, seeded):
        result = invoke(runner, seeded, "delete", "system/nope")
        assert result.exit_code != 0
        assert "does not exist" in result.output


class TestNextId:
    def test_empty_collection(self, runner, seeded):
        result = invoke(runner, seeded, "next-id", "aliases/alias")
        assert result.exit_code == 0
        assert result.output.strip() == "0"

    def test_dangerous_path(self, runner, seeded):
        result = invoke(runner, seeded, "next-id", "system")
        assert result.exit_code != 0
        assert "CONFIG_PATH_DANGEROUS" in result.output


class TestDirty:
    def test_none_dirty(self, runner, seeded):
        result = invoke(runner, seeded, "dirty")
        assert result.exit_code == 0
        assert "No dirty subsystems." in result.output

    def test_list_and_clear(self, runner, seeded):
        invoke(runner, seeded, "set", "system/hostname", "fw2", "--subsystem", "system")

        result = invoke(runner, seeded, "dirty")
        assert result.output.strip() == "system"

        result = invoke(runner, seeded, "clear-dirty", "system")
        assert result.exit_code == 0
        assert "Cleared system" in result.output
        assert "No dirty subsystems." in invoke(runner, seeded, "dirty").output

    def test_clear_invalid_name(self, runner, seeded):
        result = invoke(runner, seeded, "clear-dirty", "../x")
        assert result.exit_code != 0


class TestCorruptStore:
    def test_reported_as_cli_error(self, runner, store_path):
        store_path.write_text("system: [unclosed\n", encoding="utf-8")
        result = invoke(runner, store_path, "get")
        assert result.exit_code != 0
        assert "CONFIG_STORE_CORRUPT" in result.output
