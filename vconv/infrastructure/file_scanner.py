from pathlib import Path
from typing import Iterable, List, Optional

VIDEO_EXTENSIONS = (".mp4", ".avi", ".mkv", ".mov", ".wmv", ".flv", ".webm", ".m4v", ".mpeg", ".mpg")


def is_video_file(filename: str, extensions: Iterable[str] = VIDEO_EXTENSIONS) -> bool:
    return Path(filename).suffix.lower() in {ext.lower() for ext in extensions}


class FileScanner:
    """Lists the video files directly inside a directory (no recursion)."""

    def __init__(self, extensions: Optional[List[str]] = None):
        extensions = extensions or list(VIDEO_EXTENSIONS)
        self.extensions = [(ext if ext.startswith(".") else f".{ext}").lower() for ext in extensions]

    def scan(self, directory: Path) -> List[Path]:
        """Returns matching files sorted by name; hidden files are skipped."""
        files = []
        for entry in sorted(Path(directory).iterdir(), key=lambda p: p.name):
            if entry.name.startswith("."):
                continue
            if not entry.is_file():
                continue
            if not is_video_file(entry.name, self.extensions):
                continue
            files.append(entry)
        return files
