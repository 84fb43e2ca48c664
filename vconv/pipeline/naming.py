from pathlib import Path
from typing import Optional, Union
from vconv.domain.models import Rendition


def name_for(input_path: Union[str, Path], rendition: Rendition) -> Path:
    """Default output path for a rendition, next to the input.

    `clip.mkv` becomes `clip_720p.mp4` for video and `clip.mp3` for audio.
    Does not look at the filesystem.
    """
    input_path = Path(input_path)
    if rendition.is_audio:
        return input_path.with_name(f"{input_path.stem}.mp3")
    return input_path.with_name(f"{input_path.stem}_{rendition.value}.mp4")


def resolve_custom_name(input_path: Union[str, Path], custom_name: Optional[str], rendition: Rendition) -> Path:
    """Output path for a user-supplied name; bare names land next to the input."""
    if not custom_name or not custom_name.strip():
        return name_for(input_path, rendition)
    candidate = Path(custom_name.strip()).expanduser()
    if candidate.is_absolute() or candidate.parent != Path("."):
        return candidate
    return Path(input_path).with_name(candidate.name)
