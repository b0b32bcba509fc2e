"""Tests for the command line interface and process entry."""

import json
import logging
import sys
import threading
from io import StringIO
from multiprocessing.connection import Listener as ConnectionListener

import pytest
from click.testing import CliRunner
from rich.console import Console

from conventest import __version__
from conventest.cli import configure_logging, main
from conventest.config import PIPE_ENV_VAR, get_default_config
from conventest.entry import ModuleRunner, run_entry
from conventest.host import messages
from conventest.host.pipe import Pipe

MIXED_MODULE = '''
class CalculatorTests:
    def adds(self):
        assert 1 + 1 == 2

    def fails(self):
        raise Exception("boom")

    async def awaits(self):
        return 3
'''

PASSING_MODULE = '''
class PassingTests:
    def passes(self):
        pass
'''

CONVENTION_MODULE = '''
from conventest.core.convention import Convention


class FlagConvention(Convention):
    def __init__(self, arguments=()):
        super().__init__()
        self.classes.name_ends_with("Spec")
        if "--fast" in arguments:
            self.methods.where(lambda m: not m.name.startswith("slow"))


class ParserSpec:
    def parses(self):
        pass

    def slow_parse(self):
        raise TimeoutError("too slow")
'''


@pytest.fixture
def write_module(tmp_path):
    """Write a test module into a temporary directory."""

    def write(name, source):
        path = tmp_path / f"{name}.py"
        path.write_text(source)
        return str(path)

    return write


@pytest.fixture
def cli_runner(monkeypatch, tmp_path):
    """CliRunner in standalone mode with no configuration file around."""
    monkeypatch.delenv(PIPE_ENV_VAR, raising=False)
    monkeypatch.setattr("conventest.cli.configure_logging", lambda verbose: None)
    monkeypatch.chdir(tmp_path)
    return CliRunner()


class TestRunCommand:
    """Tests for the run command."""

    def test_mixed_results(self, cli_runner, write_module):
        """Test a run with a failure exits with the failure code."""
        path = write_module("cli_mixed", MIXED_MODULE)

        result = cli_runner.invoke(main, ["run", path])

        assert result.exit_code == 1
        assert "boom" in result.output
        assert "Total Tests" in result.output

    def test_all_passing(self, cli_runner, write_module):
        """Test a passing run exits successfully."""
        path = write_module("cli_passing", PASSING_MODULE)

        result = cli_runner.invoke(main, ["run", path, "--show-passed"])

        assert result.exit_code == 0
        assert "PassingTests.passes" in result.output
        assert "All tests passed!" in result.output

    def test_no_tests(self, cli_runner, write_module):
        """Test that finding nothing to run is fatal."""
        path = write_module("cli_empty", "VALUE = 1\n")

        result = cli_runner.invoke(main, ["run", path])

        assert result.exit_code == -1
        assert "No tests were discovered" in result.output

    def test_missing_module(self, cli_runner, tmp_path):
        """Test a missing test module."""
        result = cli_runner.invoke(main, ["run", str(tmp_path / "missing.py")])

        assert result.exit_code == -1
        assert "Test module not found" in result.output

    def test_convention_arguments(self, cli_runner, write_module):
        """Test that trailing arguments reach conventions defined in the module."""
        path = write_module("cli_convention", CONVENTION_MODULE)

        slow = cli_runner.invoke(main, ["run", path])
        fast = cli_runner.invoke(main, ["run", path, "--", "--fast"])

        assert slow.exit_code == 1
        assert "too slow" in slow.output
        assert fast.exit_code == 0

    def test_report_option(self, cli_runner, write_module, tmp_path):
        """Test writing an HTML report."""
        path = write_module("cli_report", PASSING_MODULE)

        result = cli_runner.invoke(main, ["run", path, "--report", "out/report.html"])

        assert result.exit_code == 0
        assert (tmp_path / "out" / "report.html").exists()
        assert "Report generated" in result.output

    def test_invalid_workers(self, cli_runner, write_module):
        """Test that invalid overrides are fatal."""
        path = write_module("cli_workers", PASSING_MODULE)

        result = cli_runner.invoke(main, ["run", path, "--workers", "0"])

        assert result.exit_code == -1
        assert "Workers must be at least 1" in result.output

    def test_config_file(self, cli_runner, write_module, tmp_path):
        """Test that settings come from the configuration file."""
        path = write_module("cli_config", PASSING_MODULE)
        config_path = tmp_path / "custom.json"
        config_path.write_text(json.dumps({"report": {"output": "configured.html"}}))

        result = cli_runner.invoke(main, ["-c", str(config_path), "run", path])

        assert result.exit_code == 0
        assert (tmp_path / "configured.html").exists()

    def test_missing_config_file(self, cli_runner, write_module):
        """Test naming a configuration file that does not exist."""
        path = write_module("cli_noconfig", PASSING_MODULE)

        result = cli_runner.invoke(main, ["-c", "nope.json", "run", path])

        assert result.exit_code == -1
        assert "Configuration file not found" in result.output


class TestDiscoverCommand:
    """Tests for the discover command."""

    def test_lists_tests(self, cli_runner, write_module):
        """Test listing discovered tests without running them."""
        path = write_module("cli_discover", MIXED_MODULE)

        result = cli_runner.invoke(main, ["discover", path])

        assert result.exit_code == 0
        assert "adds" in result.output
        assert "fails" in result.output
        assert "3 test(s)" in result.output
        assert "boom" not in result.output

    def test_nothing_found(self, cli_runner, write_module):
        """Test output when no tests are found."""
        path = write_module("cli_nothing", "VALUE = 1\n")

        result = cli_runner.invoke(main, ["discover", path])

        assert result.exit_code == 0
        assert "No tests discovered" in result.output


class TestInitCommand:
    """Tests for the init command."""

    def test_creates_config(self, cli_runner, tmp_path):
        """Test creating a configuration file."""
        result = cli_runner.invoke(main, ["init"])

        assert result.exit_code == 0
        data = json.loads((tmp_path / "conventest.json").read_text())
        assert data["report"]["output"] == "reports/conventest.html"

    def test_refuses_to_overwrite(self, cli_runner, tmp_path):
        """Test that existing files need --force."""
        (tmp_path / "conventest.json").write_text("{}")

        assert cli_runner.invoke(main, ["init"]).exit_code == 1
        assert cli_runner.invoke(main, ["init", "--force"]).exit_code == 0


class TestMainGroup:
    """Tests for global options."""

    def test_version(self, cli_runner):
        """Test the version option."""
        result = cli_runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_configure_logging(self):
        """Test that verbose mode enables debug logging."""
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        try:
            configure_logging(True)
            assert root.level == logging.DEBUG
            configure_logging(False)
            assert root.level == logging.WARNING
        finally:
            root.handlers[:] = handlers
            root.setLevel(level)


class TestRunEntry:
    """Tests for run_entry."""

    def test_standalone(self, write_module):
        """Test a standalone run through an injected environment."""
        path = write_module("entry_mixed", MIXED_MODULE)
        buffer = StringIO()

        exit_code = run_entry(path, get_default_config(), {}, Console(file=buffer, width=200))

        assert exit_code == 1
        assert "boom" in buffer.getvalue()

    def test_module_named_like_importable_module(self, write_module):
        """Test that a test file may not replace an importable module."""
        real_json = sys.modules["json"]
        path = write_module("json", PASSING_MODULE)
        buffer = StringIO()

        exit_code = run_entry(path, get_default_config(), {}, Console(file=buffer, width=200))

        assert exit_code == -1
        assert "same name as the module" in buffer.getvalue()
        assert sys.modules["json"] is real_json

    def test_reloading_same_file(self, write_module):
        """Test that loading the same test file twice is allowed."""
        path = write_module("entry_reload", PASSING_MODULE)

        first = ModuleRunner.load(path, get_default_config())
        second = ModuleRunner.load(path, get_default_config())

        assert [t.method_name for t in first.discover()] == ["passes"]
        assert [t.method_name for t in second.discover()] == ["passes"]

    def test_module_runner_discover(self, write_module):
        """Test loading a module and discovering its tests."""
        path = write_module("entry_discover", CONVENTION_MODULE)

        runner = ModuleRunner.load(path, get_default_config())

        assert [type(c).__name__ for c in runner.conventions] == ["FlagConvention"]
        assert [t.method_name for t in runner.discover()] == ["parses", "slow_parse"]

    @pytest.mark.skipif(sys.platform == "win32", reason="Unix domain sockets")
    def test_host_mode(self, write_module, tmp_path):
        """Test serving a host that listens on the named channel."""
        path = write_module("entry_host", MIXED_MODULE)
        address = str(tmp_path / "host.sock")
        received = []

        with ConnectionListener(address, family="AF_UNIX") as listener:

            def host():
                with Pipe(listener.accept()) as pipe:
                    pipe.send(messages.ExecuteTests())
                    while True:
                        message = pipe.receive_any()
                        received.append(message)
                        if isinstance(message, messages.Completed):
                            break

            thread = threading.Thread(target=host)
            thread.start()
            exit_code = run_entry(
                path, get_default_config(), {PIPE_ENV_VAR: address}, Console(file=StringIO())
            )
            thread.join(timeout=10)

        assert exit_code == 1
        assert [type(m).__name__ for m in received] == [
            "CasePassed",
            "CaseFailed",
            "CasePassed",
            "Completed",
        ]

    def test_host_not_listening(self, tmp_path):
        """Test that an unreachable host is fatal."""
        buffer = StringIO()

        exit_code = run_entry(
            "unused.py",
            get_default_config(),
            {PIPE_ENV_VAR: str(tmp_path / "nobody.sock")},
            Console(file=buffer, width=200),
        )

        assert exit_code == -1
        assert "Could not connect" in buffer.getvalue()
