import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

from asdfaccel.errors import (
    NetworkError,
    PluginNotFoundError,
    RegistryUnavailableError,
    TaskTimeoutError,
)
from asdfaccel.models import PluginRef
from asdfaccel.registry.asdf_cli import (
    UP_TO_DATE_REASON,
    AsdfCli,
    _parse_version,
    parse_plugin_list,
)
from asdfaccel.util.process import RunResult


def _ok(args, stdout="", stderr=""):
    return RunResult(args=list(args), returncode=0, stdout=stdout, stderr=stderr)


def _fail(args, returncode=1, stderr=""):
    return RunResult(args=list(args), returncode=returncode, stdout="", stderr=stderr)


LIST_OUTPUT = (
    "golang                       https://github.com/asdf-community/asdf-golang.git master 8c2d5d1\n"
    "nodejs                       https://github.com/asdf-vm/asdf-nodejs.git master 2a3b4c5\n"
    "\n"
)


class TestParsers(unittest.TestCase):
    def test_parse_plugin_list_with_urls_and_refs(self) -> None:
        plugins = parse_plugin_list(LIST_OUTPUT)
        self.assertEqual([p.name for p in plugins], ["golang", "nodejs"])
        self.assertEqual(plugins[1].url, "https://github.com/asdf-vm/asdf-nodejs.git")
        self.assertEqual(plugins[1].ref, "2a3b4c5")

    def test_parse_plugin_list_names_only(self) -> None:
        plugins = parse_plugin_list("python\nruby\n")
        self.assertEqual(plugins, [PluginRef(name="python"), PluginRef(name="ruby")])

    def test_parse_version(self) -> None:
        self.assertEqual(_parse_version("v0.14.0-ccdd47d\n"), "0.14.0-ccdd47d")
        self.assertEqual(_parse_version("asdf version 0.16.2 (revision 1234)"), "0.16.2 (revision 1234)")


class TestAsdfCliRegistry(unittest.TestCase):
    def test_list_parses_output(self) -> None:
        runner = Mock()
        runner.run.return_value = _ok(["asdf"], stdout=LIST_OUTPUT)
        cli = AsdfCli.from_runner(runner)

        plugins = cli.list()

        self.assertEqual(len(plugins), 2)
        argv = runner.run.call_args.args[0]
        self.assertEqual(argv, ["asdf", "plugin", "list", "--urls", "--refs"])

    def test_list_no_plugins_installed(self) -> None:
        runner = Mock()
        runner.run.return_value = _fail(["asdf"], stderr="No plugins installed\n")
        cli = AsdfCli.from_runner(runner)
        self.assertEqual(cli.list(), [])

    def test_list_failure_is_registry_unavailable(self) -> None:
        runner = Mock()
        runner.run.return_value = _fail(["asdf"], returncode=1, stderr="broken")
        cli = AsdfCli.from_runner(runner)
        with self.assertRaises(RegistryUnavailableError):
            cli.list()

    def test_missing_binary_is_registry_unavailable(self) -> None:
        runner = Mock()
        runner.run.side_effect = FileNotFoundError("asdf")
        cli = AsdfCli.from_runner(runner, asdf_bin="asdf")
        with self.assertRaises(RegistryUnavailableError) as ctx:
            cli.list()
        self.assertEqual(ctx.exception.details["asdf_bin"], "asdf")

    def test_version(self) -> None:
        runner = Mock()
        runner.run.return_value = _ok(["asdf"], stdout="v0.14.1-f00f00\n")
        cli = AsdfCli.from_runner(runner)
        self.assertEqual(cli.version(), "0.14.1-f00f00")

    def test_is_installed_uses_path_lookup(self) -> None:
        cli = AsdfCli.from_runner(Mock(), asdf_bin="asdf")
        with patch("shutil.which", return_value="/usr/bin/asdf"):
            self.assertTrue(cli.is_installed())
        with patch("shutil.which", return_value=None):
            self.assertFalse(cli.is_installed())


class TestAsdfCliUpdate(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _git_checkout(self, name: str) -> None:
        (self.data_dir / "plugins" / name / ".git").mkdir(parents=True)

    def _scripted_runner(self, heads, update_results):
        heads = list(heads)
        update_results = list(update_results)
        calls = []

        def run(argv, timeout=None, **_kwargs):
            calls.append((list(argv), timeout))
            if argv[0] == "git":
                return _ok(argv, stdout=heads.pop(0) + "\n")
            result = update_results.pop(0)
            return result(argv) if callable(result) else result

        runner = Mock()
        runner.run.side_effect = run
        return runner, calls

    def test_update_success_when_head_moves(self) -> None:
        self._git_checkout("nodejs")
        runner, calls = self._scripted_runner(["aaa", "bbb"], [_ok])
        cli = AsdfCli.from_runner(runner, data_dir=self.data_dir)

        outcome = cli.update(PluginRef(name="nodejs"))

        self.assertEqual(outcome.status, "succeeded")
        self.assertIn((["asdf", "plugin", "update", "nodejs"], None), calls)

    def test_update_skipped_when_head_unchanged(self) -> None:
        self._git_checkout("nodejs")
        runner, _ = self._scripted_runner(["aaa", "aaa"], [_ok])
        cli = AsdfCli.from_runner(runner, data_dir=self.data_dir)

        outcome = cli.update(PluginRef(name="nodejs"))

        self.assertEqual(outcome.status, "skipped")
        self.assertEqual(outcome.reason, UP_TO_DATE_REASON)

    def test_update_without_git_checkout_succeeds(self) -> None:
        runner, calls = self._scripted_runner([], [_ok])
        cli = AsdfCli.from_runner(runner, data_dir=self.data_dir)

        outcome = cli.update(PluginRef(name="ruby"))

        self.assertEqual(outcome.status, "succeeded")
        self.assertEqual(len(calls), 1)

    def test_update_passes_timeout_to_runner(self) -> None:
        runner, calls = self._scripted_runner([], [_ok])
        cli = AsdfCli.from_runner(runner, data_dir=self.data_dir)

        cli.update(PluginRef(name="ruby"), timeout=30)

        timeout = calls[0][1]
        self.assertIsNotNone(timeout)
        self.assertLessEqual(timeout, 30)
        self.assertGreater(timeout, 0)

    def test_asdf_runs_against_configured_data_dir(self) -> None:
        runner = Mock()
        runner.run.return_value = _ok(["asdf"])
        cli = AsdfCli.from_runner(runner, data_dir=Path("/opt/custom-asdf"))

        cli.update(PluginRef(name="nodejs"))
        cli.list()

        for call in runner.run.call_args_list:
            self.assertEqual(call.kwargs["env"], {"ASDF_DATA_DIR": "/opt/custom-asdf"})

    def test_head_lookup_shares_the_update_deadline(self) -> None:
        self._git_checkout("nodejs")
        runner, calls = self._scripted_runner(["aaa", "bbb"], [_ok])
        cli = AsdfCli.from_runner(runner, data_dir=self.data_dir)

        cli.update(PluginRef(name="nodejs"), timeout=30)

        git_calls = [timeout for argv, timeout in calls if argv[0] == "git"]
        self.assertEqual(len(git_calls), 2)
        for timeout in git_calls:
            self.assertIsNotNone(timeout)
            self.assertLessEqual(timeout, 30)

    def test_update_unknown_plugin_raises_not_found(self) -> None:
        runner, _ = self._scripted_runner(
            [], [lambda argv: _fail(argv, stderr="No such plugin: nope")]
        )
        cli = AsdfCli.from_runner(runner, data_dir=self.data_dir)

        with self.assertRaises(PluginNotFoundError) as ctx:
            cli.update(PluginRef(name="nope"))
        self.assertEqual(ctx.exception.details["plugin"], "nope")

    def test_update_retries_network_errors(self) -> None:
        network = lambda argv: _fail(argv, returncode=128, stderr="Could not resolve host: github.com")  # noqa: E731
        runner, calls = self._scripted_runner([], [network, network, _ok])
        cli = AsdfCli.from_runner(runner, data_dir=self.data_dir, max_retries=2)

        with patch("time.sleep", return_value=None):
            outcome = cli.update(PluginRef(name="ruby"))

        self.assertEqual(outcome.status, "succeeded")
        self.assertEqual(len(calls), 3)

    def test_update_gives_up_after_max_retries(self) -> None:
        network = lambda argv: _fail(argv, returncode=128, stderr="Could not resolve host: github.com")  # noqa: E731
        runner, calls = self._scripted_runner([], [network, network])
        cli = AsdfCli.from_runner(runner, data_dir=self.data_dir, max_retries=1)

        with patch("time.sleep", return_value=None):
            with self.assertRaises(NetworkError):
                cli.update(PluginRef(name="ruby"))
        self.assertEqual(len(calls), 2)

    def test_update_runner_timeout_propagates(self) -> None:
        runner = Mock()
        runner.run.side_effect = TaskTimeoutError("slow")
        cli = AsdfCli.from_runner(runner, data_dir=self.data_dir)

        with self.assertRaises(TaskTimeoutError):
            cli.update(PluginRef(name="ruby"), timeout=1)


if __name__ == "__main__":
    unittest.main()
