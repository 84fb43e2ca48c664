import subprocess
import logging
import time
import threading
import queue
from collections import deque
from pathlib import Path
from typing import Callable, Deque, List, Optional
from vconv.domain.models import EncodeResult, EncodeTask, JobState
from vconv.domain.errors import EncodeAborted, EncodeFailure, EncodeSpawnFailure
from vconv.infrastructure.progress import ProgressParser

H264_CODEC = "libx264"
MP3_CODEC = "libmp3lame"
H264_PRESET = "medium"
H264_CRF = 23
VIDEO_AUDIO_BITRATE_KBPS = 128
MAXRATE_FACTOR = 1.5
BUFSIZE_FACTOR = 2
# Tail of stderr carried by EncodeFailure
DIAGNOSTIC_TAIL_LINES = 200

ProgressCallback = Callable[[float], None]


def _kbps(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value)}k"
    return f"{value}k"


def check_ffmpeg_installed(ffmpeg_path: str = "ffmpeg") -> bool:
    """Returns True when `ffmpeg -version` can be run successfully."""
    try:
        result = subprocess.run([ffmpeg_path, "-version"], capture_output=True)
    except OSError:
        return False
    return result.returncode == 0


class FFmpegAdapter:
    """Runs ffmpeg for one EncodeTask at a time and reports its progress.

    The adapter walks through SPAWNING -> RUNNING -> SUCCEEDED/FAILED for
    every call to encode(); `state` holds the state of the latest call.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg", debug: bool = False):
        self.ffmpeg_path = ffmpeg_path
        self.debug = debug
        self.state: Optional[JobState] = None
        self.logger = logging.getLogger(__name__)

    def build_command(self, task: EncodeTask) -> List[str]:
        """Constructs the ffmpeg command line arguments."""
        cmd = [self.ffmpeg_path, "-i", str(task.source_path), "-y"]

        if task.rendition.is_audio:
            cmd.extend([
                "-vn",
                "-c:a", MP3_CODEC,
                "-b:a", _kbps(task.settings.audio_bitrate),
            ])
        else:
            bitrate = task.settings.video_bitrate_for(task.rendition)
            cmd.extend([
                "-c:v", H264_CODEC,
                "-preset", H264_PRESET,
                "-crf", str(H264_CRF),
                "-b:v", _kbps(bitrate),
                "-maxrate", _kbps(bitrate * MAXRATE_FACTOR),
                "-bufsize", _kbps(bitrate * BUFSIZE_FACTOR),
                # -2 keeps the aspect ratio with an even width
                "-vf", f"scale=-2:{task.rendition.target_height}",
                "-c:a", "aac",
                "-b:a", _kbps(VIDEO_AUDIO_BITRATE_KBPS),
                "-movflags", "+faststart",
            ])

        cmd.append(str(task.output_path))
        return cmd

    def _terminate(self, process: subprocess.Popen):
        process.terminate()
        try:
            process.wait(timeout=3)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    @staticmethod
    def _remove_partial(output_path: Path):
        if output_path.exists():
            output_path.unlink()

    def encode(
        self,
        task: EncodeTask,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EncodeResult:
        """Executes the encode and blocks until ffmpeg exits.

        Raises EncodeSpawnFailure, EncodeFailure or EncodeAborted. A process
        killed by a signal counts as aborted. Anything raised by on_progress
        stops ffmpeg first and then propagates unchanged.
        """
        filename = task.source_path.name
        label = task.rendition.label
        start_time = time.monotonic()
        self.state = JobState.SPAWNING

        cmd = self.build_command(task)
        self.logger.info(f"FFMPEG_START: {filename} -> {task.output_path.name} ({label})")
        if self.debug:
            self.logger.debug(f"FFMPEG_CMD: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                universal_newlines=True,
                errors="replace",
                bufsize=1
            )
        except OSError as exc:
            self.state = JobState.FAILED
            self.logger.error(f"FFMPEG_SPAWN_FAILED: {self.ffmpeg_path}: {exc}")
            raise EncodeSpawnFailure(self.ffmpeg_path, str(exc)) from exc

        self.state = JobState.RUNNING
        parser = ProgressParser()
        diagnostic_lines: Deque[str] = deque(maxlen=DIAGNOSTIC_TAIL_LINES)
        output_queue: "queue.Queue[Optional[str]]" = queue.Queue()

        def _reader():
            if not process.stderr:
                output_queue.put(None)
                return
            for line in process.stderr:
                output_queue.put(line)
            output_queue.put(None)

        reader_thread = threading.Thread(target=_reader, daemon=True)
        reader_thread.start()

        try:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    self.logger.info(f"FFMPEG_INTERRUPTED: {filename} ({label}, cancel signal)")
                    self._terminate(process)
                    self._remove_partial(task.output_path)
                    self.state = JobState.FAILED
                    raise EncodeAborted()

                try:
                    line = output_queue.get(timeout=0.1)
                except queue.Empty:
                    if process.poll() is not None and not reader_thread.is_alive():
                        break
                    continue

                if line is None:
                    break

                diagnostic_lines.append(line)
                sample = parser.feed(line)
                if sample is not None and on_progress is not None:
                    on_progress(sample)

            process.wait()
        except KeyboardInterrupt:
            self.logger.info(f"FFMPEG_INTERRUPTED: {filename} ({label}, KeyboardInterrupt)")
            self._terminate(process)
            self._remove_partial(task.output_path)
            self.state = JobState.FAILED
            raise EncodeAborted() from None
        except EncodeAborted:
            raise
        except Exception as exc:
            self.logger.error(f"FFMPEG_ERROR: {filename} ({label}) - stopping ffmpeg: {exc!r}")
            if process.poll() is None:
                self._terminate(process)
            self._remove_partial(task.output_path)
            self.state = JobState.FAILED
            raise

        elapsed = time.monotonic() - start_time
        diagnostic_text = "".join(diagnostic_lines)

        # Ctrl+C reaches ffmpeg too; it may exit before the loop sees the cancel signal
        cancelled = cancel_event is not None and cancel_event.is_set()
        if cancelled or process.returncode < 0:
            self.state = JobState.FAILED
            self._remove_partial(task.output_path)
            reason = "cancel signal" if cancelled else f"killed by signal {-process.returncode}"
            self.logger.info(f"FFMPEG_INTERRUPTED: {filename} ({label}, {reason}) elapsed={elapsed:.2f}s")
            if cancelled:
                raise EncodeAborted()
            raise EncodeAborted(f"ffmpeg was terminated by signal {-process.returncode}")

        if process.returncode != 0:
            self.state = JobState.FAILED
            self._remove_partial(task.output_path)
            self.logger.error(
                f"FFMPEG_END: {filename} ({label}) status=failed code={process.returncode} elapsed={elapsed:.2f}s"
            )
            raise EncodeFailure(process.returncode, diagnostic_text)

        try:
            size_bytes = task.output_path.stat().st_size
        except OSError as exc:
            self.state = JobState.FAILED
            self.logger.error(f"FFMPEG_END: {filename} ({label}) status=failed missing output: {exc}")
            raise EncodeFailure(process.returncode, diagnostic_text or str(exc)) from exc

        self.state = JobState.SUCCEEDED
        self.logger.info(
            f"FFMPEG_END: {filename} ({label}) status=completed size={size_bytes} elapsed={elapsed:.2f}s"
        )
        return EncodeResult(output_path=task.output_path, size_bytes=size_bytes)
