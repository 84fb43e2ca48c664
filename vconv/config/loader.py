import logging
import yaml
from pathlib import Path
from pydantic import ValidationError
from .models import AppConfig

logger = logging.getLogger(__name__)

def load_config(config_path: Path) -> AppConfig:
    """Loads the YAML settings file; a missing or broken file yields defaults."""
    config_path = Path(config_path)
    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError("top level of the settings file must be a mapping")
        return AppConfig(**data)
    except (OSError, yaml.YAMLError, ValueError, ValidationError) as exc:
        logger.warning(f"Error loading settings from {config_path}, using defaults: {exc}")
        return AppConfig()

def save_config(config: AppConfig, config_path: Path) -> None:
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, sort_keys=False, allow_unicode=True)
