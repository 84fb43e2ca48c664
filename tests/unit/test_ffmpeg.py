import subprocess
import threading
import pytest
from pathlib import Path
from unittest.mock import patch, MagicMock
from vconv.infrastructure.ffmpeg import DIAGNOSTIC_TAIL_LINES, FFmpegAdapter, check_ffmpeg_installed
from vconv.domain.errors import EncodeAborted, EncodeFailure, EncodeSpawnFailure
from vconv.domain.models import BitrateTier, EncodeSettings, JobState, Rendition

STDERR_OK = [
    "Input #0, matroska,webm, from 'holiday.mkv':\n",
    "  Duration: 00:01:40.00, start: 0.000000, bitrate: 4000 kb/s\n",
    "frame= 1250 fps=250 q=28.0 size=   10240kB time=00:00:50.00 bitrate=1677.7kbits/s speed=10x\n",
    "frame= 2500 fps=250 q=28.0 Lsize=  20480kB time=00:01:40.00 bitrate=1677.7kbits/s speed=10x\n",
]


def _process(stderr_lines, returncode=0):
    process = MagicMock()
    process.stderr = list(stderr_lines)
    process.poll.return_value = returncode
    process.wait.return_value = returncode
    process.returncode = returncode
    return process


def test_video_command(task_factory):
    task = task_factory(Rendition.P720)
    cmd = FFmpegAdapter().build_command(task)

    assert cmd[:4] == ["ffmpeg", "-i", str(task.source_path), "-y"]
    assert cmd[cmd.index("-c:v") + 1] == "libx264"
    assert cmd[cmd.index("-preset") + 1] == "medium"
    assert cmd[cmd.index("-crf") + 1] == "23"
    assert cmd[cmd.index("-b:v") + 1] == "2000k"
    assert cmd[cmd.index("-maxrate") + 1] == "3000k"
    assert cmd[cmd.index("-bufsize") + 1] == "4000k"
    assert cmd[cmd.index("-vf") + 1] == "scale=-2:720"
    assert cmd[cmd.index("-c:a") + 1] == "aac"
    assert cmd[cmd.index("-b:a") + 1] == "128k"
    assert cmd[cmd.index("-movflags") + 1] == "+faststart"
    assert "-vn" not in cmd
    assert cmd[-1] == str(task.output_path)


def test_video_command_odd_hundreds_bitrate(task_factory):
    settings = EncodeSettings(video_bitrates={BitrateTier.FHD: 1100}, audio_bitrate=128)
    cmd = FFmpegAdapter().build_command(task_factory(Rendition.P1080, settings=settings))

    assert cmd[cmd.index("-maxrate") + 1] == "1650k"
    assert cmd[cmd.index("-bufsize") + 1] == "2200k"
    assert cmd[cmd.index("-vf") + 1] == "scale=-2:1080"


def test_audio_command(task_factory):
    settings = EncodeSettings(video_bitrates={}, audio_bitrate=320)
    task = task_factory(Rendition.AUDIO, settings=settings)
    cmd = FFmpegAdapter(ffmpeg_path="/usr/local/bin/ffmpeg").build_command(task)

    assert cmd == [
        "/usr/local/bin/ffmpeg", "-i", str(task.source_path), "-y",
        "-vn", "-c:a", "libmp3lame", "-b:a", "320k",
        str(task.output_path),
    ]


def test_encode_success_reports_progress(task_factory):
    task = task_factory(Rendition.P480)
    task.output_path.write_bytes(b"x" * 321)
    samples = []

    with patch("subprocess.Popen", return_value=_process(STDERR_OK)) as mock_popen:
        adapter = FFmpegAdapter()
        result = adapter.encode(task, on_progress=samples.append)

    assert mock_popen.called
    assert samples == [50.0, 100.0]
    assert result.output_path == task.output_path
    assert result.size_bytes == 321
    assert adapter.state == JobState.SUCCEEDED


def test_encode_without_duration_stays_indeterminate(task_factory):
    task = task_factory(Rendition.AUDIO)
    task.output_path.write_bytes(b"mp3")
    samples = []

    with patch("subprocess.Popen", return_value=_process(["size=12kB time=00:00:03.00 bitrate=128kbits/s\n"])):
        FFmpegAdapter().encode(task, on_progress=samples.append)

    assert samples == []


def test_encode_failure_carries_diagnostic_text(task_factory):
    task = task_factory(Rendition.P720)
    task.output_path.write_bytes(b"partial")
    stderr = ["Unknown encoder 'libx264'\n", "Error selecting an encoder\n"]

    with patch("subprocess.Popen", return_value=_process(stderr, returncode=1)):
        adapter = FFmpegAdapter()
        with pytest.raises(EncodeFailure) as exc_info:
            adapter.encode(task)

    assert exc_info.value.exit_code == 1
    assert exc_info.value.diagnostic_text == "Unknown encoder 'libx264'\nError selecting an encoder\n"
    assert "Unknown encoder 'libx264'" in str(exc_info.value)
    assert adapter.state == JobState.FAILED
    assert not task.output_path.exists()


def test_encode_exit_zero_without_output_fails(task_factory):
    task = task_factory(Rendition.P720)

    with patch("subprocess.Popen", return_value=_process(STDERR_OK)):
        with pytest.raises(EncodeFailure):
            FFmpegAdapter().encode(task)


def test_encode_spawn_failure_never_runs(task_factory):
    adapter = FFmpegAdapter(ffmpeg_path="/nonexistent/ffmpeg")

    with patch("subprocess.Popen", side_effect=FileNotFoundError(2, "No such file or directory")):
        with pytest.raises(EncodeSpawnFailure) as exc_info:
            adapter.encode(task_factory(Rendition.P720))

    assert exc_info.value.executable == "/nonexistent/ffmpeg"
    assert adapter.state == JobState.FAILED


def test_encode_cancel_event_terminates_process(task_factory):
    task = task_factory(Rendition.P720)
    task.output_path.write_bytes(b"partial")
    cancel_event = threading.Event()
    cancel_event.set()

    process = _process([])
    process.poll.return_value = None

    with patch("subprocess.Popen", return_value=process):
        adapter = FFmpegAdapter()
        with pytest.raises(EncodeAborted):
            adapter.encode(task, cancel_event=cancel_event)

    assert process.terminate.called
    assert not task.output_path.exists()
    assert adapter.state == JobState.FAILED


def test_encode_cancel_kills_stubborn_process(task_factory):
    cancel_event = threading.Event()
    cancel_event.set()

    process = _process([])
    process.poll.return_value = None
    process.wait.side_effect = [subprocess.TimeoutExpired(cmd="ffmpeg", timeout=3), 0]

    with patch("subprocess.Popen", return_value=process):
        with pytest.raises(EncodeAborted):
            FFmpegAdapter().encode(task_factory(Rendition.P720), cancel_event=cancel_event)

    assert process.kill.called


def test_encode_keyboard_interrupt_becomes_aborted(task_factory):
    task = task_factory(Rendition.P720)
    process = _process(STDERR_OK)

    def on_progress(_sample):
        raise KeyboardInterrupt

    with patch("subprocess.Popen", return_value=process):
        with pytest.raises(EncodeAborted):
            FFmpegAdapter().encode(task, on_progress=on_progress)

    assert process.terminate.called


def test_check_ffmpeg_installed():
    with patch("subprocess.run") as mock_run:
        mock_run.return_value.returncode = 0
        assert check_ffmpeg_installed("ffmpeg") is True

    with patch("subprocess.run") as mock_run:
        mock_run.return_value.returncode = 1
        assert check_ffmpeg_installed("ffmpeg") is False

    with patch("subprocess.run", side_effect=FileNotFoundError()):
        assert check_ffmpeg_installed("ffmpeg") is False


def test_encode_progress_callback_error_stops_ffmpeg(task_factory):
    task = task_factory(Rendition.P720)
    task.output_path.write_bytes(b"partial")
    process = _process(STDERR_OK)
    process.poll.return_value = None

    def on_progress(_sample):
        raise RuntimeError("renderer crashed")

    with patch("subprocess.Popen", return_value=process):
        adapter = FFmpegAdapter()
        with pytest.raises(RuntimeError, match="renderer crashed"):
            adapter.encode(task, on_progress=on_progress)

    assert process.terminate.called
    assert not task.output_path.exists()
    assert adapter.state == JobState.FAILED


def test_encode_killed_by_signal_is_aborted(task_factory):
    task = task_factory(Rendition.P720)
    task.output_path.write_bytes(b"partial")
    stderr = ["  Duration: 00:01:40.00, start: 0.000000, bitrate: 4000 kb/s\n"]

    with patch("subprocess.Popen", return_value=_process(stderr, returncode=-15)):
        adapter = FFmpegAdapter()
        with pytest.raises(EncodeAborted, match="signal 15"):
            adapter.encode(task)

    assert not task.output_path.exists()
    assert adapter.state == JobState.FAILED


def test_encode_cancel_after_stderr_closed_is_aborted(task_factory):
    """ffmpeg quits on the terminal's SIGINT before the read loop sees the cancel signal."""
    task = task_factory(Rendition.P720)
    task.output_path.write_bytes(b"partial")
    cancel_event = threading.Event()
    process = _process(STDERR_OK, returncode=255)

    def wait(timeout=None):
        cancel_event.set()
        return 255

    process.wait.side_effect = wait

    with patch("subprocess.Popen", return_value=process):
        with pytest.raises(EncodeAborted) as exc_info:
            FFmpegAdapter().encode(task, cancel_event=cancel_event)

    assert not isinstance(exc_info.value, EncodeFailure)
    assert str(exc_info.value) == "Interrupted by user"
    assert not task.output_path.exists()


def test_encode_failure_keeps_only_stderr_tail(task_factory):
    task = task_factory(Rendition.P720)
    stderr = [f"frame={i} time=00:00:01.00\n" for i in range(500)] + ["Conversion failed!\n"]

    with patch("subprocess.Popen", return_value=_process(stderr, returncode=1)):
        with pytest.raises(EncodeFailure) as exc_info:
            FFmpegAdapter().encode(task)

    lines = exc_info.value.diagnostic_text.splitlines()
    assert len(lines) == DIAGNOSTIC_TAIL_LINES
    assert lines[-1] == "Conversion failed!"
    assert "frame=0 " not in exc_info.value.diagnostic_text
