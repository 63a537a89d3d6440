"""End-to-end runs with shell stand-ins for Xvfb and Chromium."""

from __future__ import annotations

import asyncio
import io
import os
import signal
from pathlib import Path

import pytest

from headless_chromium.display import VirtualDisplay
from headless_chromium.exceptions import DisplayError, ExecutableNotFoundError, LaunchError, MissingFlagsError
from headless_chromium.runner import run_headless
from headless_chromium.settings.config import Settings

pytestmark = pytest.mark.integration

# Creates the user-data dir the way Chromium would.
MAKE_PROFILE = 'for a in "$@"; do case "$a" in --user-data-dir=*) mkdir -p "${a#--user-data-dir=}";; esac; done\n'


@pytest.fixture()
def x11_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "x11"
    path.mkdir()
    monkeypatch.setattr(VirtualDisplay, "lock_file_template", str(path / ".X{}-lock"))
    monkeypatch.setattr(VirtualDisplay, "socket_template", str(path / "X{}"))
    return path


@pytest.fixture()
def profiles(tmp_path: Path) -> Path:
    return tmp_path / "profiles"


@pytest.fixture()
def make_settings(make_script, x11_dir: Path, profiles: Path):
    xvfb = make_script("Xvfb", f'touch "{x11_dir}/X${{1#:}}"\nexec sleep 30\n')

    def _make(chromium_body: str) -> Settings:
        chromium = make_script("chromium", chromium_body)
        return Settings(
            chromium={"executable_path": str(chromium), "drain_timeout_sec": 1.0, "kill_wait_sec": 5.0},
            display={"binary": str(xvfb), "startup_timeout_sec": 5.0},
            workspace={"base_dir": str(profiles)},
        )

    return _make


class TestCompletion:
    @pytest.mark.anyio
    async def test_sentinel_sets_exit_code_and_cleans_up(self, make_settings, output: io.StringIO, profiles: Path) -> None:
        settings = make_settings(
            MAKE_PROFILE
            + 'echo "[1:2:0101/000000.000:INFO:CONSOLE(1)] \\"DISPLAY=$DISPLAY\\", source: file:///t.html (1)" >&2\n'
            + "echo '[1:2:0101/000000.001:INFO:CONSOLE(2)] \"All tests completed!3\", source: file:///t.html (2)' >&2\n"
            + "exec sleep 30\n"
        )
        code = await run_headless(["file:///t.html"], settings, output=output, install_signal_handlers=False)

        assert code == 3
        assert output.getvalue() == "DISPLAY=:99\nAll tests completed!3\n"
        assert list(profiles.iterdir()) == []

    @pytest.mark.anyio
    async def test_negative_code(self, make_settings, output: io.StringIO) -> None:
        settings = make_settings(
            "echo '[INFO:CONSOLE(9)] \"All tests completed!-1\", source: t (9)' >&2\nexec sleep 30\n"
        )
        code = await run_headless(["x"], settings, output=output, install_signal_handlers=False)
        assert code == 255


class TestChildExit:
    @pytest.mark.anyio
    async def test_version_passthrough(self, make_settings, output: io.StringIO, profiles: Path) -> None:
        settings = make_settings(MAKE_PROFILE + 'echo "Chromium 120.0.6099.109"\necho "args: $*"\nexit 0\n')
        code = await run_headless(["--version"], settings, output=output, install_signal_handlers=False)

        assert code == -1
        lines = output.getvalue().splitlines()
        assert lines[0] == "Chromium 120.0.6099.109"
        args = lines[1].split()
        assert args[:2] == ["args:", "--version"]
        assert "--enable-logging=stderr" in args
        assert "--v=1" in args
        assert "--no-first-run" in args
        assert list(profiles.iterdir()) == []

    @pytest.mark.anyio
    async def test_chromium_errors_forwarded(self, make_settings, output: io.StringIO) -> None:
        settings = make_settings(
            "echo '[1:2:WARNING:a.cc(1)] quiet' >&2\n"
            "echo '[1:2:ERROR:gpu_init.cc(12)] GPU init failed' >&2\n"
            "exit 1\n"
        )
        code = await run_headless(["x"], settings, output=output, install_signal_handlers=False)
        assert code == -1
        assert output.getvalue() == "ERROR:gpu_init.cc(12): GPU init failed\n"

    @pytest.mark.anyio
    async def test_own_user_data_dir_is_kept(self, make_settings, output: io.StringIO, tmp_path: Path) -> None:
        mine = tmp_path / "mine"
        settings = make_settings(MAKE_PROFILE + "exit 0\n")
        code = await run_headless(
            ["--user-data-dir=" + str(mine)], settings, output=output, install_signal_handlers=False
        )
        assert code == -1
        assert mine.is_dir()

    @pytest.mark.anyio
    async def test_exit_not_delayed_by_helper_holding_pipes(self, make_settings, output: io.StringIO) -> None:
        # The background sleep inherits stdout and stderr and outlives Chromium.
        settings = make_settings("echo hello\nsleep 20 &\nexit 0\n")
        loop = asyncio.get_running_loop()
        started = loop.time()
        code = await asyncio.wait_for(
            run_headless(["x"], settings, output=output, install_signal_handlers=False), timeout=15
        )

        assert code == -1
        assert loop.time() - started < 5
        assert output.getvalue() == "hello\n"


class TestInterrupt:
    @pytest.mark.anyio
    async def test_sigint_stops_chromium(self, make_settings, output: io.StringIO, tmp_path: Path) -> None:
        started = tmp_path / "started"
        settings = make_settings(
            "sleep 30 >/dev/null 2>&1 &\n"
            "pid=$!\n"
            "trap 'kill $pid; echo bye; exit 0' TERM\n"
            f'touch "{started}"\n'
            "wait\n"
        )

        async def _interrupt_when_started() -> None:
            while not started.exists():
                await asyncio.sleep(0.05)
            await asyncio.sleep(0.2)
            os.kill(os.getpid(), signal.SIGINT)

        helper = asyncio.create_task(_interrupt_when_started())
        code = await run_headless(["x"], settings, output=output)
        await helper

        assert code == -1
        assert output.getvalue() == "bye\n"


class TestSetup:
    @pytest.mark.anyio
    async def test_no_flags(self, make_settings, output: io.StringIO) -> None:
        with pytest.raises(MissingFlagsError):
            await run_headless([], make_settings("exit 0\n"), output=output)

    @pytest.mark.anyio
    async def test_chromium_missing(self, x11_dir: Path, output: io.StringIO) -> None:
        settings = Settings(chromium={"executable_path": "", "candidates": ["no-such-chromium-xyz"]})
        with pytest.raises(ExecutableNotFoundError):
            await run_headless(["x"], settings, output=output, install_signal_handlers=False)
        assert list(x11_dir.iterdir()) == []


class TestLaunchFailure:
    @pytest.fixture()
    def unlaunchable(self, make_settings, tmp_path: Path) -> Settings:
        """Settings whose Chromium resolves on PATH but cannot be executed."""
        broken = tmp_path / "bin" / "broken-chromium"
        broken.parent.mkdir(parents=True, exist_ok=True)
        broken.write_text("#!/no/such/interpreter\n")
        broken.chmod(0o755)
        settings = make_settings("exit 0\n")
        settings.chromium.executable_path = str(broken)
        return settings

    @pytest.mark.anyio
    async def test_display_stopped(
        self, unlaunchable: Settings, output: io.StringIO, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        stopped: list[VirtualDisplay] = []
        original_stop = VirtualDisplay.stop

        async def _stop(self: VirtualDisplay) -> None:
            stopped.append(self)
            await original_stop(self)

        monkeypatch.setattr(VirtualDisplay, "stop", _stop)
        with pytest.raises(LaunchError, match="Could not start"):
            await run_headless(["x"], unlaunchable, output=output, install_signal_handlers=False)
        assert len(stopped) == 1

    @pytest.mark.anyio
    async def test_stop_failure_keeps_launch_error(
        self, unlaunchable: Settings, output: io.StringIO, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        original_stop = VirtualDisplay.stop

        async def _stop(self: VirtualDisplay) -> None:
            await original_stop(self)
            raise DisplayError("Could not stop Xvfb")

        monkeypatch.setattr(VirtualDisplay, "stop", _stop)
        with pytest.raises(LaunchError):
            await run_headless(["x"], unlaunchable, output=output, install_signal_handlers=False)
