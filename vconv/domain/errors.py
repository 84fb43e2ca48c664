"""Exception types raised by the conversion pipeline.

Probe errors abort a whole batch, since no renditions can be offered without
the source dimensions. Encode errors are caught per task by the orchestrator
and recorded in the batch report; they never stop sibling tasks.

Every message carries the diagnostic text captured from the external tool
verbatim, so the user can see what ffmpeg/ffprobe actually complained about.
"""

from pathlib import Path
from typing import List, Optional


class ConversionError(Exception):
    """Base class for all vconv pipeline errors."""

    pass


class ProbeFailure(ConversionError):
    """ffprobe exited non-zero (or could not be launched)."""

    def __init__(self, path: Path, stderr: str):
        self.path = path
        self.stderr = stderr
        super().__init__(f"ffprobe failed for {path}: {stderr.strip()}")


class ProbeParseFailure(ConversionError):
    """ffprobe succeeded but its JSON report was unusable."""

    def __init__(self, path: Path, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Could not parse ffprobe output for {path}: {detail}")


class EncodeError(ConversionError):
    """Base class for failures of a single encode task."""

    pass


class EncodeSpawnFailure(EncodeError):
    """The encoder executable is missing or could not be started."""

    def __init__(self, executable: str, reason: str):
        self.executable = executable
        self.reason = reason
        super().__init__(f"Could not start {executable}: {reason}")


class EncodeFailure(EncodeError):
    """The encoder ran but did not produce the output."""

    def __init__(self, exit_code: Optional[int], diagnostic_text: str):
        self.exit_code = exit_code
        self.diagnostic_text = diagnostic_text
        super().__init__(f"ffmpeg failed with code {exit_code}: {diagnostic_text}")


class EncodeAborted(EncodeError):
    """The encode was cancelled and the child process terminated."""

    def __init__(self, message: str = "Interrupted by user"):
        super().__init__(message)


class RenditionNotOffered(ValueError):
    """A requested rendition would upscale the source."""

    def __init__(self, renditions: List[str], height: int):
        self.renditions = renditions
        self.height = height
        super().__init__(f"{', '.join(renditions)} not available for a {height}p source")
