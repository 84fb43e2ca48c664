"""CLI strings in the languages offered by the settings (ru, en)."""

from typing import Dict

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "ffmpeg_missing": "FFmpeg not found. Install ffmpeg and make sure it is on PATH (or set ffmpeg_path in {config}).",
        "no_files": "No video files found in {directory}",
        "probed": "{name} ({width}x{height}, {size}, {duration})",
        "offered": "Available: {qualities}",
        "not_offered": "{quality} is not available for this file (source height {height}p)",
        "output_exists": "Output already exists: {path} (use --overwrite or --name)",
        "converting": "Converting: {label}",
        "success": "Done: {label}",
        "file_info": "{filename} ({size})",
        "error": "Conversion error ({label}): {error}",
        "skipped": "Skipped ({label}): batch cancelled",
        "total": "Converted {count} of {total} file(s) in {time}",
        "cancelled": "Cancelled by user",
        "settings_saved": "Settings saved",
        "bitrate_adjusted": "{tier}: {requested} Kbps stored as {stored} Kbps (900-10000, step 100)",
    },
    "ru": {
        "ffmpeg_missing": "FFmpeg не найден. Установите ffmpeg и добавьте его в PATH (или задайте ffmpeg_path в {config}).",
        "no_files": "В директории {directory} не найдено видеофайлов",
        "probed": "{name} ({width}x{height}, {size}, {duration})",
        "offered": "Доступно: {qualities}",
        "not_offered": "{quality} недоступно для этого файла (высота исходника {height}p)",
        "output_exists": "Файл уже существует: {path} (используйте --overwrite или --name)",
        "converting": "Конвертация: {label}",
        "success": "Конвертация завершена: {label}",
        "file_info": "{filename} ({size})",
        "error": "Ошибка конвертации ({label}): {error}",
        "skipped": "Пропущено ({label}): конвертация отменена",
        "total": "Всего сконвертировано: {count} из {total} файл(ов) за {time}",
        "cancelled": "Отменено пользователем",
        "settings_saved": "Настройки сохранены",
        "bitrate_adjusted": "{tier}: {requested} Kbps сохранено как {stored} Kbps (900-10000, шаг 100)",
    },
}


class Messages:
    def __init__(self, language: str = "ru"):
        self.language = language if language in MESSAGES else "en"

    def t(self, key: str, **params) -> str:
        template = MESSAGES[self.language].get(key) or MESSAGES["en"][key]
        return template.format(**params)
