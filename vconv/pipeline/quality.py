from typing import List
from vconv.domain.models import Rendition, SourceDescriptor

VIDEO_RENDITIONS = (Rendition.P1080, Rendition.P720, Rendition.P480)


def available_renditions(descriptor: SourceDescriptor) -> List[Rendition]:
    """Renditions offered for a source, highest first; never upscales.

    Audio extraction is always offered, even when the height is unknown (0).
    """
    offered = [r for r in VIDEO_RENDITIONS if descriptor.height >= r.target_height]
    offered.append(Rendition.AUDIO)
    return offered


def parse_rendition(text: str) -> Rendition:
    """Parses a user-typed quality ("720p", "720", "audio", "mp3")."""
    value = text.strip().lower()
    if value == "mp3":
        return Rendition.AUDIO
    if value.isdigit():
        value = f"{value}p"
    try:
        return Rendition(value)
    except ValueError:
        raise ValueError(
            f"Unknown quality {text!r}. Use one of {[r.value for r in Rendition]}"
        ) from None
