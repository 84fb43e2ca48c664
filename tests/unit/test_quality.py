import pytest
from pathlib import Path
from vconv.domain.models import Rendition, SourceDescriptor
from vconv.pipeline.quality import available_renditions, parse_rendition

A = Rendition.AUDIO


def _descriptor(height: int) -> SourceDescriptor:
    return SourceDescriptor(path=Path("clip.mp4"), display_name="clip.mp4", height=height)


@pytest.mark.parametrize("height, expected", [
    (0, [A]),
    (479, [A]),
    (480, [Rendition.P480, A]),
    (719, [Rendition.P480, A]),
    (720, [Rendition.P720, Rendition.P480, A]),
    (1079, [Rendition.P720, Rendition.P480, A]),
    (1080, [Rendition.P1080, Rendition.P720, Rendition.P480, A]),
    (4000, [Rendition.P1080, Rendition.P720, Rendition.P480, A]),
])
def test_available_renditions_by_height(height, expected):
    assert available_renditions(_descriptor(height)) == expected


@pytest.mark.parametrize("height", range(0, 2400, 7))
def test_available_renditions_monotonic_and_audio_last(height):
    offered = available_renditions(_descriptor(height))

    assert offered[-1] is Rendition.AUDIO
    if Rendition.P1080 in offered:
        assert Rendition.P720 in offered
    if Rendition.P720 in offered:
        assert Rendition.P480 in offered
    for rendition in offered:
        if not rendition.is_audio:
            assert rendition.target_height <= height


@pytest.mark.parametrize("text, expected", [
    ("720p", Rendition.P720),
    ("1080", Rendition.P1080),
    (" 480P ", Rendition.P480),
    ("audio", Rendition.AUDIO),
    ("MP3", Rendition.AUDIO),
])
def test_parse_rendition(text, expected):
    assert parse_rendition(text) is expected


def test_parse_rendition_unknown():
    with pytest.raises(ValueError, match="Unknown quality"):
        parse_rendition("360p")
