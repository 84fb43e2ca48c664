import logging
from pathlib import Path
from typing import Optional

LOG_FILE_NAME = "vconv.log"

def setup_logging(log_dir: Path, debug: bool = False, log_path: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging configuration for vconv.

    Creates the log directory and the vconv.log file inside it.
    Returns configured logger instance.

    Args:
        log_dir: Directory for the log file (normally the config directory)
        debug: If True, enable DEBUG level logging including full ffmpeg commands
        log_path: Optional path to log file (overrides log_dir)
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = Path(log_path) if log_path else (log_dir / LOG_FILE_NAME)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if debug else logging.INFO

    # File only: the terminal belongs to the progress bars
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.FileHandler(log_file, encoding="utf-8")],
        force=True
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: {log_file} (debug={'ON' if debug else 'OFF'})")

    return logger
