"""User settings persisted to ~/.video-converter/config.yaml.

The conversion pipeline only ever reads a snapshot through get_settings();
every setter here writes the file immediately, so a new batch always sees the
latest values and a running batch keeps the snapshot it started with.
"""

import logging
from pathlib import Path
from typing import Union
from vconv.domain.models import AUDIO_BITRATES, BitrateTier, EncodeSettings
from .loader import load_config, save_config
from .models import AppConfig, clamp_video_bitrate, is_valid_video_bitrate, parse_tier

CONFIG_DIR = Path.home() / ".video-converter"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "config.yaml"
LANGUAGES = ("ru", "en")


class SettingsManager:
    def __init__(self, config_path: Path = DEFAULT_CONFIG_FILE):
        self.config_path = Path(config_path)
        self.logger = logging.getLogger(__name__)
        self._config = load_config(self.config_path)

    @property
    def config_dir(self) -> Path:
        return self.config_path.parent

    def get_settings(self) -> EncodeSettings:
        return self._config.encode_settings()

    def get_config(self) -> AppConfig:
        return self._config.model_copy(deep=True)

    def save(self) -> None:
        save_config(self._config, self.config_path)
        self.logger.info(f"Settings saved to {self.config_path}")

    def set_language(self, language: str) -> None:
        if language not in LANGUAGES:
            raise ValueError(f"Unsupported language {language!r}. Use one of {list(LANGUAGES)}")
        self._config.language = language
        self.save()

    def set_video_bitrate(self, tier: Union[BitrateTier, str], kbps: float) -> int:
        """Stores the clamped bitrate for a tier and returns the stored value."""
        tier = parse_tier(tier)
        stored = clamp_video_bitrate(kbps)
        self._config.video_bitrates[tier] = stored
        self.save()
        return stored

    def set_audio_bitrate(self, kbps: int) -> None:
        if kbps not in AUDIO_BITRATES:
            raise ValueError(f"Invalid audio bitrate {kbps}. Must be one of {list(AUDIO_BITRATES)}.")
        self._config.audio_bitrate = kbps
        self.save()

    def validate_video_bitrate(self, kbps: int) -> bool:
        return is_valid_video_bitrate(kbps)
