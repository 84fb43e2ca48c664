import subprocess
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict
from vconv.domain.models import SourceDescriptor
from vconv.domain.errors import ProbeFailure, ProbeParseFailure

class FFprobeAdapter:
    """Wrapper around ffprobe to describe a source file."""

    def __init__(self, ffprobe_path: str = "ffprobe"):
        self.ffprobe_path = ffprobe_path
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _to_float(value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        return number if math.isfinite(number) else 0.0

    @classmethod
    def _to_int(cls, value: Any) -> int:
        # ffprobe reports numbers as strings ("1080", "5000000") or "N/A"
        return int(cls._to_float(value))

    @classmethod
    def _prefer_stream(cls, stream: Dict[str, Any], fmt: Dict[str, Any], key: str) -> float:
        value = cls._to_float(stream.get(key))
        if value <= 0:
            value = cls._to_float(fmt.get(key))
        return max(value, 0.0)

    def _build_command(self, file_path: Path):
        return [
            self.ffprobe_path,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height,duration,bit_rate",
            "-show_entries", "format=duration,bit_rate",
            "-of", "json",
            str(file_path),
        ]

    def probe(self, file_path: Path) -> SourceDescriptor:
        """Executes ffprobe and parses its JSON report into a SourceDescriptor."""
        file_path = Path(file_path)
        cmd = self._build_command(file_path)
        self.logger.debug(f"FFPROBE_CMD: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as exc:
            raise ProbeFailure(file_path, str(exc)) from exc

        if result.returncode != 0:
            raise ProbeFailure(file_path, result.stderr or "")

        try:
            data = json.loads(result.stdout)
        except (TypeError, ValueError) as exc:
            raise ProbeParseFailure(file_path, str(exc)) from exc

        if not isinstance(data, dict):
            raise ProbeParseFailure(file_path, "report is not a JSON object")

        streams = data.get("streams")
        fmt = data.get("format")
        if not isinstance(streams, list) and not isinstance(fmt, dict):
            raise ProbeParseFailure(file_path, "report has neither streams nor format")

        stream = streams[0] if isinstance(streams, list) and streams and isinstance(streams[0], dict) else {}
        fmt = fmt if isinstance(fmt, dict) else {}

        size_bytes = file_path.stat().st_size

        descriptor = SourceDescriptor(
            path=file_path,
            display_name=file_path.name,
            size_bytes=size_bytes,
            width=self._to_int(stream.get("width")),
            height=self._to_int(stream.get("height")),
            duration_seconds=self._prefer_stream(stream, fmt, "duration"),
            source_bitrate=int(self._prefer_stream(stream, fmt, "bit_rate")),
        )
        self.logger.info(
            f"PROBE: {descriptor.display_name} {descriptor.width}x{descriptor.height} "
            f"duration={descriptor.duration_seconds:.2f}s bitrate={descriptor.source_bitrate}"
        )
        return descriptor
