import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from asdfaccel.config import AcceleratorSettings
from asdfaccel.errors import (
    ChecksumMismatchError,
    InvalidConcurrencyError,
    RegistryUnavailableError,
)
from asdfaccel.manager import PluginSyncManager, write_report
from asdfaccel.models import PluginRef, SyncOutcome, SyncReport
from asdfaccel.registry import AsdfCli
from asdfaccel.scheduler import JobHandle


class FakeRegistry:
    def __init__(self, names=(), error=None) -> None:
        self.plugins = [PluginRef(name=n) for n in names]
        self.error = error
        self.calls = 0

    def list(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.plugins)


class FakeUpdater:
    def __init__(self, failing=(), up_to_date=()) -> None:
        self.failing = set(failing)
        self.up_to_date = set(up_to_date)
        self.calls = []

    def update(self, plugin, *, timeout=None):
        self.calls.append((plugin.name, timeout))
        if plugin.name in self.failing:
            raise ChecksumMismatchError("checksum mismatch", details={"plugin": plugin.name})
        if plugin.name in self.up_to_date:
            return SyncOutcome.skipped("already up to date")
        return SyncOutcome.succeeded()


def _settings(**kwargs) -> AcceleratorSettings:
    return AcceleratorSettings(_env_file=None, **kwargs)


def _manager(registry, updater=None, **settings) -> PluginSyncManager:
    return PluginSyncManager.from_components(
        registry,
        updater or FakeUpdater(),
        settings=_settings(**settings),
    )


class TestPluginSyncManager(unittest.TestCase):
    def test_sync_all_plugins(self) -> None:
        updater = FakeUpdater(up_to_date={"python"})
        manager = _manager(FakeRegistry(["nodejs", "python", "ruby"]), updater)

        report = manager.sync(jobs=2)

        self.assertIsInstance(report, SyncReport)
        self.assertEqual((report.succeeded, report.failed, report.skipped), (2, 0, 1))
        self.assertTrue(report.all_succeeded())
        self.assertEqual(sorted(n for n, _ in updater.calls), ["nodejs", "python", "ruby"])

    def test_sync_with_exclude_and_only(self) -> None:
        updater = FakeUpdater()
        manager = _manager(FakeRegistry(["golang", "nodejs", "python", "ruby"]), updater)

        report = manager.sync(only=["nodejs", "python", "zig"], exclude=["python"], jobs=1)

        self.assertEqual([p.name for p, _ in report.outcomes], ["nodejs"])
        self.assertEqual(updater.calls, [("nodejs", None)])

    def test_unknown_include_is_logged(self) -> None:
        manager = _manager(FakeRegistry(["nodejs"]))
        with self.assertLogs("asdfaccel.manager", level="WARNING") as logs:
            selected = manager.select(only=["zig"])
        self.assertEqual(selected, [])
        self.assertIn("zig", logs.output[0])

    def test_failures_are_reported_not_raised(self) -> None:
        manager = _manager(FakeRegistry(["a", "b", "c"]), FakeUpdater(failing={"b"}))

        report = manager.sync(jobs=3)

        self.assertEqual(report.failed, 1)
        self.assertEqual(report.outcome_for("b").error_type, "ChecksumMismatchError")
        self.assertFalse(report.all_succeeded())

    def test_empty_registry(self) -> None:
        report = _manager(FakeRegistry([])).sync()
        self.assertEqual(report.total, 0)
        self.assertTrue(report.all_succeeded())

    def test_registry_unavailable_propagates(self) -> None:
        manager = _manager(FakeRegistry(error=RegistryUnavailableError("asdf not found")))
        with self.assertRaises(RegistryUnavailableError):
            manager.sync()

    def test_invalid_jobs_checked_before_registry(self) -> None:
        registry = FakeRegistry(["a"])
        updater = FakeUpdater()
        manager = _manager(registry, updater)

        with self.assertRaises(InvalidConcurrencyError):
            manager.sync(jobs=0)

        self.assertEqual(registry.calls, 0)
        self.assertEqual(updater.calls, [])

    def test_jobs_from_settings(self) -> None:
        manager = _manager(FakeRegistry(["a"]), jobs=3)
        self.assertEqual(manager.resolve_jobs(), 3)
        self.assertEqual(manager.resolve_jobs(5), 5)

    def test_invalid_jobs_from_settings(self) -> None:
        manager = _manager(FakeRegistry(["a"]), jobs=0)
        with self.assertRaises(InvalidConcurrencyError):
            manager.sync()

    def test_timeout_from_settings_reaches_updater(self) -> None:
        updater = FakeUpdater()
        manager = _manager(FakeRegistry(["a"]), updater, task_timeout=45)

        manager.sync(jobs=1)
        manager.sync(jobs=1, timeout=5)

        self.assertEqual(updater.calls, [("a", 45.0), ("a", 5)])

    def test_background_returns_handle(self) -> None:
        manager = _manager(FakeRegistry(["a", "b"]))

        handle = manager.sync(background=True, jobs=2)

        self.assertIsInstance(handle, JobHandle)
        report = handle.wait(5)
        self.assertEqual(report.succeeded, 2)


class TestHealth(unittest.TestCase):
    def test_health_with_fakes(self) -> None:
        status = _manager(FakeRegistry(["a", "b"])).health()
        self.assertTrue(status.healthy)
        self.assertEqual(status.plugin_count, 2)
        self.assertGreaterEqual(status.cpu_count, 1)

    def test_health_reports_registry_error(self) -> None:
        status = _manager(FakeRegistry(error=RegistryUnavailableError("broken"))).health()
        self.assertFalse(status.healthy)
        self.assertEqual(status.error, "broken")

    def test_health_asdf_missing(self) -> None:
        cli = AsdfCli(asdf_bin="asdf-not-installed")
        manager = PluginSyncManager.from_components(cli, cli, settings=_settings())
        with patch("shutil.which", return_value=None):
            status = manager.health()
        self.assertFalse(status.asdf_installed)
        self.assertFalse(status.healthy)
        self.assertIsNone(status.plugin_count)


class TestWriteReport(unittest.TestCase):
    def test_write_report_json(self) -> None:
        report = _manager(FakeRegistry(["a", "b"]), FakeUpdater(failing={"a"})).sync(jobs=1)

        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "out" / "report.json"
            write_report(report, path)
            data = json.loads(path.read_text(encoding="utf-8"))

        self.assertEqual(
            (data["total"], data["succeeded"], data["failed"], data["skipped"]),
            (2, 1, 1, 0),
        )
        self.assertTrue(data["finalized"])
        by_name = {o["plugin"]: o for o in data["outcomes"]}
        self.assertEqual(by_name["a"]["error_type"], "ChecksumMismatchError")
        self.assertEqual(by_name["b"]["status"], "succeeded")


if __name__ == "__main__":
    unittest.main()
