import json
import shutil
import pytest
import yaml
from pathlib import Path
from unittest.mock import MagicMock
from vconv.config.models import AppConfig
from vconv.domain.models import EncodeSettings, EncodeTask, Rendition, SourceDescriptor
from vconv.infrastructure.event_bus import EventBus

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config():
    """Returns an AppConfig with the stock bitrates."""
    return AppConfig(
        language="en",
        video_bitrates={"2160p": 5000, "1080p": 3000, "720p": 2000, "480p": 1000},
        audio_bitrate=128,
    )

@pytest.fixture
def encode_settings(sample_config):
    return sample_config.encode_settings()

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML settings file laid out like ~/.video-converter/config.yaml."""
    conf_dir = tmp_path / ".video-converter"
    conf_dir.mkdir()
    conf_file = conf_dir / "config.yaml"

    content = {
        'language': 'en',
        'video_bitrates': {
            '4k': 6000,
            '1080p': 3500,
            '720p': 2500,
            '480p': 1200,
        },
        'audio_bitrate': 256,
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

@pytest.fixture
def recorded_events(event_bus):
    """Subscribes a recorder to every pipeline event and returns the list."""
    from vconv.domain import events as ev

    received = []
    for event_type in (
        ev.BatchStarted, ev.BatchFinished, ev.TaskStarted,
        ev.TaskProgress, ev.TaskSucceeded, ev.TaskFailed,
    ):
        event_bus.subscribe(event_type, received.append)
    return received

# ============================================================================
# Source / Task Fixtures
# ============================================================================

@pytest.fixture
def source_file(tmp_path):
    """A dummy source file on disk (content is never decoded in unit tests)."""
    f = tmp_path / "holiday.mkv"
    f.write_bytes(b"dummy video content " * 100)
    return f

@pytest.fixture
def descriptor_factory(source_file):
    def _make(height: int = 1080, duration: float = 100.0, width: int = 0) -> SourceDescriptor:
        return SourceDescriptor(
            path=source_file,
            display_name=source_file.name,
            size_bytes=source_file.stat().st_size,
            width=width or (height * 16 // 9),
            height=height,
            duration_seconds=duration,
            source_bitrate=4_000_000,
        )
    return _make

@pytest.fixture
def task_factory(source_file, encode_settings):
    def _make(rendition: Rendition = Rendition.P720, settings: EncodeSettings = None) -> EncodeTask:
        from vconv.pipeline.naming import name_for
        return EncodeTask(
            source_path=source_file,
            output_path=name_for(source_file, rendition),
            rendition=rendition,
            settings=settings or encode_settings,
        )
    return _make

@pytest.fixture
def settings_provider(encode_settings):
    provider = MagicMock()
    provider.get_settings.return_value = encode_settings
    return provider

@pytest.fixture
def ffprobe_report():
    return ffprobe_json

def ffprobe_json(width=1920, height=1080, stream_duration="100.000000", stream_bit_rate="4000000",
                 format_duration="100.050000", format_bit_rate="4200000") -> str:
    """Builds ffprobe's JSON report the way `-show_entries ... -of json` prints it."""
    stream = {}
    if width is not None:
        stream["width"] = width
    if height is not None:
        stream["height"] = height
    if stream_duration is not None:
        stream["duration"] = stream_duration
    if stream_bit_rate is not None:
        stream["bit_rate"] = stream_bit_rate
    fmt = {}
    if format_duration is not None:
        fmt["duration"] = format_duration
    if format_bit_rate is not None:
        fmt["bit_rate"] = format_bit_rate
    return json.dumps({"programs": [], "streams": [stream], "format": fmt})

# ============================================================================
# Real ffmpeg (integration tests)
# ============================================================================

@pytest.fixture
def require_ffmpeg():
    if not shutil.which("ffmpeg") or not shutil.which("ffprobe"):
        pytest.skip("ffmpeg/ffprobe not installed")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (integration tests running ffmpeg)"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
