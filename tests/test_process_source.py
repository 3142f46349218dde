"""psutil进程来源测试."""

import os
import subprocess
import sys
import textwrap
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

import psutil
import pytest

from core.exceptions import (
    EnumerationTimeoutError,
    EnumerationUnavailableError,
    InspectionError,
    TerminationError,
)
from core.models import ProcessObservation
from core.process_source import PsutilProcessSource, collect_observations
from tests.fakes import FakeProcessSource, proc

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _mock_process(info: dict) -> MagicMock:
    process = MagicMock()
    process.as_dict.return_value = info
    return process


class TestListPids:
    """枚举进程."""

    def test_returns_pids(self):
        source = PsutilProcessSource(enumeration_timeout=5)

        with patch("core.process_source.psutil.pids", return_value=[1, 42]):
            assert source.list_pids() == [1, 42]

    def test_timeout(self):
        source = PsutilProcessSource(enumeration_timeout=0.05)

        def slow_pids():
            time.sleep(0.5)
            return [1]

        with (
            patch("core.process_source.psutil.pids", side_effect=slow_pids),
            pytest.raises(EnumerationTimeoutError),
        ):
            source.list_pids()

    def test_os_error(self):
        source = PsutilProcessSource(enumeration_timeout=5)

        with (
            patch("core.process_source.psutil.pids", side_effect=PermissionError(13, "denied")),
            pytest.raises(EnumerationUnavailableError),
        ):
            source.list_pids()

    def test_unexpected_error_propagates(self):
        source = PsutilProcessSource(enumeration_timeout=5)

        with (
            patch("core.process_source.psutil.pids", side_effect=RuntimeError("boom")),
            pytest.raises(RuntimeError),
        ):
            source.list_pids()

    def test_timeout_does_not_block_exit(self):
        """超时后进程应立即退出,不等待卡住的枚举线程."""
        script = textwrap.dedent(
            """
            import sys
            import time
            from unittest.mock import patch

            from core.exceptions import EnumerationTimeoutError
            from core.process_source import PsutilProcessSource

            with patch("core.process_source.psutil.pids", side_effect=lambda: time.sleep(4)):
                try:
                    PsutilProcessSource(enumeration_timeout=0.2).list_pids()
                except EnumerationTimeoutError:
                    sys.exit(3)
            sys.exit(0)
            """,
        )
        env = {**os.environ, "PYTHONPATH": str(PROJECT_ROOT)}

        started = time.monotonic()
        completed = subprocess.run(
            [sys.executable, "-c", script],
            cwd=PROJECT_ROOT,
            env=env,
            capture_output=True,
            timeout=30,
            check=False,
        )
        elapsed = time.monotonic() - started

        assert completed.returncode == 3, completed.stderr
        assert elapsed < 3

    def test_real_process_table(self):
        source = PsutilProcessSource(enumeration_timeout=10)

        assert source.list_pids()


class TestObserve:
    """读取进程信息."""

    def test_full_observation(self):
        source = PsutilProcessSource()
        info = {
            "username": "alice",
            "exe": "/usr/bin/x",
            "name": "x",
            "cmdline": ["/usr/bin/x", "--flag", "a b"],
        }

        with patch("core.process_source.psutil.Process", return_value=_mock_process(info)):
            obs = source.observe(7)

        assert obs == ProcessObservation(7, "alice", "/usr/bin/x", "x", "/usr/bin/x --flag a b")
        assert obs.is_complete()

    def test_denied_field_is_none(self):
        source = PsutilProcessSource()
        info = {"username": "root", "exe": None, "name": "sshd", "cmdline": None}

        with patch("core.process_source.psutil.Process", return_value=_mock_process(info)):
            obs = source.observe(7)

        assert obs.exe is None
        assert obs.cmdline is None
        assert not obs.is_complete()

    def test_incomplete_observation_handle_not_kept(self):
        source = PsutilProcessSource(kill_wait_timeout=0)
        info = {"username": "root", "exe": None, "name": "sshd", "cmdline": None}

        with patch(
            "core.process_source.psutil.Process",
            return_value=_mock_process(info),
        ) as factory:
            source.observe(7)
            source.terminate(7)

        # 没有保留句柄,terminate 时重新创建
        assert factory.call_count == 2

    def test_vanished_process(self):
        source = PsutilProcessSource()

        with (
            patch("core.process_source.psutil.Process", side_effect=psutil.NoSuchProcess(7)),
            pytest.raises(InspectionError) as exc_info,
        ):
            source.observe(7)

        assert exc_info.value.pid == 7

    def test_current_process(self):
        obs = PsutilProcessSource().observe(os.getpid())

        assert obs.pid == os.getpid()
        assert obs.username == psutil.Process().username()


class TestTerminate:
    """结束进程."""

    def test_kills_observed_handle(self):
        source = PsutilProcessSource(kill_wait_timeout=0)
        process = _mock_process({"username": "a", "exe": "/x", "name": "x", "cmdline": []})

        with patch("core.process_source.psutil.Process", return_value=process) as factory:
            source.observe(7)
            source.terminate(7)

        assert factory.call_count == 1
        process.kill.assert_called_once_with()
        process.wait.assert_not_called()

    def test_waits_when_configured(self):
        source = PsutilProcessSource(kill_wait_timeout=2)
        process = MagicMock()

        with patch("core.process_source.psutil.Process", return_value=process):
            source.terminate(7)

        process.wait.assert_called_once_with(timeout=2)

    def test_wait_timeout_not_an_error(self):
        source = PsutilProcessSource(kill_wait_timeout=1)
        process = MagicMock()
        process.wait.side_effect = psutil.TimeoutExpired(1, pid=7)

        with patch("core.process_source.psutil.Process", return_value=process):
            source.terminate(7)

    @pytest.mark.parametrize(
        "error",
        [psutil.AccessDenied(7), psutil.NoSuchProcess(7)],
    )
    def test_kill_failure(self, error):
        source = PsutilProcessSource(kill_wait_timeout=0)
        process = MagicMock()
        process.kill.side_effect = error

        with (
            patch("core.process_source.psutil.Process", return_value=process),
            pytest.raises(TerminationError) as exc_info,
        ):
            source.terminate(7)

        assert exc_info.value.pid == 7


class TestCollectObservations:
    """按顺序读取进程信息."""

    def test_skips_vanished(self):
        source = FakeProcessSource([proc(1), proc(2), proc(3)], vanished={2})

        observed = list(collect_observations(source, [3, 2, 1]))

        assert [obs.pid for obs in observed] == [3, 1]
