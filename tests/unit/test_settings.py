import pytest
import yaml
from vconv.config.settings import SettingsManager
from vconv.domain.models import BitrateTier

@pytest.fixture
def manager(tmp_path):
    return SettingsManager(tmp_path / ".video-converter" / "config.yaml")

@pytest.mark.parametrize("requested, stored", [
    (850, 900),
    (10050, 10000),
    (1050, 1000),
])
def test_set_video_bitrate_clamps(manager, requested, stored):
    assert manager.set_video_bitrate("720p", requested) == stored
    assert manager.get_settings().video_bitrates[BitrateTier.HD] == stored

def test_set_video_bitrate_persists(manager):
    manager.set_video_bitrate(BitrateTier.FHD, 4200)

    data = yaml.safe_load(manager.config_path.read_text())
    assert data["video_bitrates"]["1080p"] == 4200
    assert SettingsManager(manager.config_path).get_settings().video_bitrates[BitrateTier.FHD] == 4200

def test_set_video_bitrate_accepts_4k_alias(manager):
    manager.set_video_bitrate("4k", 8000)
    assert manager.get_settings().video_bitrates[BitrateTier.UHD] == 8000

def test_set_video_bitrate_unknown_tier(manager):
    with pytest.raises(ValueError):
        manager.set_video_bitrate("360p", 1000)
    assert not manager.config_path.exists()

def test_set_audio_bitrate(manager):
    manager.set_audio_bitrate(320)
    assert manager.get_settings().audio_bitrate == 320
    assert SettingsManager(manager.config_path).get_settings().audio_bitrate == 320

def test_set_audio_bitrate_rejects_unlisted_value(manager):
    with pytest.raises(ValueError):
        manager.set_audio_bitrate(192)
    assert manager.get_settings().audio_bitrate == 128

def test_set_language(manager):
    manager.set_language("en")
    assert SettingsManager(manager.config_path).get_config().language == "en"
    with pytest.raises(ValueError):
        manager.set_language("fr")

def test_validate_video_bitrate(manager):
    assert manager.validate_video_bitrate(1000)
    assert not manager.validate_video_bitrate(1050)
    assert not manager.validate_video_bitrate(800)

def test_snapshot_unaffected_by_later_edits(manager):
    snapshot = manager.get_settings()
    manager.set_video_bitrate("720p", 5000)

    assert snapshot.video_bitrates[BitrateTier.HD] == 2000
    assert manager.get_settings().video_bitrates[BitrateTier.HD] == 5000

def test_get_config_returns_copy(manager):
    config = manager.get_config()
    config.audio_bitrate = 64
    assert manager.get_settings().audio_bitrate == 128
