from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

AUDIO_BITRATES = (64, 96, 128, 256, 320)


class BitrateTier(str, Enum):
    """Keys of the configured video bitrate map."""

    UHD = "2160p"
    FHD = "1080p"
    HD = "720p"
    SD = "480p"


class Rendition(str, Enum):
    """Closed set of output variants a source can be converted into."""

    P1080 = "1080p"
    P720 = "720p"
    P480 = "480p"
    AUDIO = "audio"

    @property
    def target_height(self) -> Optional[int]:
        return _TARGET_HEIGHTS[self]

    @property
    def bitrate_key(self) -> Optional[BitrateTier]:
        return _BITRATE_KEYS[self]

    @property
    def is_audio(self) -> bool:
        return self is Rendition.AUDIO

    @property
    def label(self) -> str:
        return "MP3" if self.is_audio else self.value


_TARGET_HEIGHTS: Dict[Rendition, Optional[int]] = {
    Rendition.P1080: 1080,
    Rendition.P720: 720,
    Rendition.P480: 480,
    Rendition.AUDIO: None,
}

_BITRATE_KEYS: Dict[Rendition, Optional[BitrateTier]] = {
    Rendition.P1080: BitrateTier.FHD,
    Rendition.P720: BitrateTier.HD,
    Rendition.P480: BitrateTier.SD,
    Rendition.AUDIO: None,
}


class JobState(str, Enum):
    SPAWNING = "SPAWNING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class TaskStatus(str, Enum):
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    ABORTED = "ABORTED"  # Cancelled mid-encode or never started after a cancel


class SourceDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    display_name: str
    size_bytes: int = 0
    width: int = 0
    height: int = 0
    duration_seconds: float = 0.0
    source_bitrate: int = 0


class EncodeSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    video_bitrates: Dict[BitrateTier, int]
    audio_bitrate: int = 128

    def video_bitrate_for(self, rendition: Rendition) -> Optional[int]:
        if rendition.bitrate_key is None:
            return None
        return self.video_bitrates.get(rendition.bitrate_key)


class EncodeTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_path: Path
    output_path: Path
    rendition: Rendition
    settings: EncodeSettings


class EncodeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    output_path: Path
    size_bytes: int


class TaskOutcome(BaseModel):
    task: EncodeTask
    status: TaskStatus
    result: Optional[EncodeResult] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == TaskStatus.SUCCEEDED


class BatchReport(BaseModel):
    source: SourceDescriptor
    outcomes: List[TaskOutcome] = Field(default_factory=list)
    total_seconds: float = 0.0

    @property
    def succeeded_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def results(self) -> List[EncodeResult]:
        return [outcome.result for outcome in self.outcomes if outcome.succeeded and outcome.result]

    @property
    def failed(self) -> List[TaskOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    @property
    def aborted(self) -> bool:
        return any(outcome.status == TaskStatus.ABORTED for outcome in self.outcomes)
