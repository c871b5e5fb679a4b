"""Unit tests for the monitor entry point and its CLI surface."""

import asyncio
import os
import signal
import sys
from pathlib import Path

import pytest

from hidock_trigger.core import status
from hidock_trigger.monitor.holder import PassThroughHolder
from hidock_trigger.monitor.main import main
from hidock_trigger.monitor.settings import DEFAULT_AUDIO_INDEX, DEFAULT_MIC_NAME, parse_cli_args
from tests.infrastructure.mocks.process_mocks import wait_until


@pytest.fixture
def ffmpeg(tmp_path: Path) -> Path:
    path = tmp_path / "bin" / "ffmpeg"
    path.parent.mkdir()
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return path


class TestParseCliArgs:

    def test_defaults(self):
        settings = parse_cli_args([])

        assert settings.mic == DEFAULT_MIC_NAME
        assert settings.audio_index == DEFAULT_AUDIO_INDEX == 1
        assert settings.list_inputs is False
        assert settings.poll_interval == 0.25
        assert settings.debounce_samples == 4

    def test_overrides(self, tmp_path):
        settings = parse_cli_args([
            "--mic", "Blue Yeti",
            "--audio-index", "3",
            "--poll-interval", "0.5",
            "--debounce-samples", "2",
            "--log-level", "debug",
            "--log-file", str(tmp_path / "m.log"),
        ])

        assert settings.mic == "Blue Yeti"
        assert settings.audio_index == 3
        assert settings.poll_interval == 0.5
        assert settings.debounce_samples == 2
        assert settings.log_level == "debug"
        assert settings.log_file == tmp_path / "m.log"

    def test_no_log_file(self):
        assert parse_cli_args(["--no-log-file"]).log_file is None

    def test_rejects_non_positive_interval(self):
        with pytest.raises(SystemExit):
            parse_cli_args(["--poll-interval", "0"])


class TestMonitorMain:

    @pytest.mark.asyncio
    async def test_list_inputs(self, fake_directory, capsys):
        code = await main(["--list-inputs", "--mic", "Nope", "--no-log-file"], directory=fake_directory)

        assert code == 0
        out = capsys.readouterr().out.splitlines()
        assert out == ["Samson Q2U Microphone", "MacBook Pro Microphone"]

    @pytest.mark.asyncio
    async def test_unknown_mic_is_fatal(self, fake_directory, ffmpeg, capsys):
        code = await main(
            ["--mic", "Nope", "--ffmpeg", str(ffmpeg), "--no-log-file"],
            directory=fake_directory,
        )

        assert code == 1
        out = capsys.readouterr().out
        assert "Could not find USB mic input device named 'Nope'" in out

    @pytest.mark.asyncio
    async def test_missing_ffmpeg_is_fatal(self, fake_directory, tmp_path, capsys):
        code = await main(
            ["--ffmpeg", str(tmp_path / "missing"), "--no-log-file"],
            directory=fake_directory,
        )

        assert code == 1
        assert "ffmpeg not found" in capsys.readouterr().out

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    async def test_sigterm_shuts_down_cleanly(
        self, fake_backend, fake_directory, fake_spawner, ffmpeg, capsys, monkeypatch
    ):
        monkeypatch.setattr(sys, "excepthook", sys.excepthook)
        holder = PassThroughHolder(spawn=fake_spawner)
        task = asyncio.create_task(
            main(
                ["--ffmpeg", str(ffmpeg), "--poll-interval", "0.01", "--debounce-samples", "1", "--no-log-file"],
                directory=fake_directory,
                holder=holder,
            )
        )
        await wait_until(lambda: fake_backend.active_queries >= 1)
        fake_backend.set_active(DEFAULT_MIC_NAME, True)
        await wait_until(holder.is_running)

        os.kill(os.getpid(), signal.SIGTERM)
        code = await asyncio.wait_for(task, timeout=2.0)

        assert code == 0
        assert not holder.is_running()
        assert fake_spawner.latest.returncode is not None
        out = capsys.readouterr().out.splitlines()
        device_id = fake_backend.id_of(DEFAULT_MIC_NAME)
        assert out[0] == status.found_mic_line(DEFAULT_MIC_NAME, device_id)
        assert out[1] == status.audio_index_line(1)
        assert out[2] == status.initial_state_line(False)
        assert status.MIC_ACTIVE_LINE in out
