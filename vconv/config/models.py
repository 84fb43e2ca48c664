from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, Field, field_validator
from vconv.domain.models import AUDIO_BITRATES, BitrateTier, EncodeSettings

MIN_VIDEO_BITRATE = 900
MAX_VIDEO_BITRATE = 10000
VIDEO_BITRATE_STEP = 100

# Older config files call the 2160p tier "4k"
TIER_ALIASES = {"4k": BitrateTier.UHD}

DEFAULT_VIDEO_BITRATES: Dict[BitrateTier, int] = {
    BitrateTier.UHD: 5000,
    BitrateTier.FHD: 3000,
    BitrateTier.HD: 2000,
    BitrateTier.SD: 1000,
}

def clamp_video_bitrate(kbps: float) -> int:
    """Rounds to the nearest 100 (ties to even) and clamps into [900, 10000]."""
    rounded = int(round(kbps / VIDEO_BITRATE_STEP)) * VIDEO_BITRATE_STEP
    return max(MIN_VIDEO_BITRATE, min(MAX_VIDEO_BITRATE, rounded))

def is_valid_video_bitrate(kbps: int) -> bool:
    if kbps < MIN_VIDEO_BITRATE or kbps > MAX_VIDEO_BITRATE:
        return False
    return kbps % VIDEO_BITRATE_STEP == 0

def parse_tier(value: Any) -> BitrateTier:
    if isinstance(value, BitrateTier):
        return value
    text = str(value).strip().lower()
    if text in TIER_ALIASES:
        return TIER_ALIASES[text]
    return BitrateTier(text)

class AppConfig(BaseModel):
    language: Literal["ru", "en"] = "ru"
    video_bitrates: Dict[BitrateTier, int] = Field(default_factory=lambda: dict(DEFAULT_VIDEO_BITRATES))
    audio_bitrate: int = 128
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    log_path: Optional[str] = None
    debug: bool = False

    @field_validator("video_bitrates", mode="before")
    @classmethod
    def merge_video_bitrates(cls, v: Any) -> Dict[BitrateTier, int]:
        merged = dict(DEFAULT_VIDEO_BITRATES)
        if v is None:
            return merged
        if not isinstance(v, dict):
            raise ValueError("video_bitrates must be a mapping of tier to kbps")
        for key, kbps in v.items():
            try:
                tier = parse_tier(key)
            except ValueError:
                raise ValueError(f"Unknown bitrate tier {key!r}. Use one of {[t.value for t in BitrateTier]}") from None
            # Empty or zero values fall back to the default for the tier
            if not kbps:
                continue
            merged[tier] = clamp_video_bitrate(float(kbps))
        return merged

    @field_validator("audio_bitrate")
    @classmethod
    def validate_audio_bitrate(cls, v: int) -> int:
        if v not in AUDIO_BITRATES:
            raise ValueError(f"Invalid audio bitrate {v}. Must be one of {list(AUDIO_BITRATES)}.")
        return v

    def encode_settings(self) -> EncodeSettings:
        """Immutable snapshot handed to a conversion batch."""
        return EncodeSettings(
            video_bitrates=dict(self.video_bitrates),
            audio_bitrate=self.audio_bitrate,
        )
