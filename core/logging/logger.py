"""
Модуль логирования для PayrollDesk
Реализует структурированное JSON логирование
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Optional

# Стандартные атрибуты LogRecord, которые не считаются контекстом
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Форматтер для вывода логов в JSON формате"""

    def format(self, record: logging.LogRecord) -> str:
        """Форматирует запись лога в JSON"""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        # Добавляем контекст, переданный через extra
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_entry[key] = value

        # Добавляем exception info если есть
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """Структурированный логгер с дополнительным контекстом"""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log_with_context(self, level: int, message: str, **kwargs: Any) -> None:
        """Логирует сообщение с дополнительным контекстом"""
        extra = {}
        for key, value in kwargs.items():
            if value is not None:
                extra[key] = value

        self.logger.log(level, message, extra=extra, stacklevel=3)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Логирует debug сообщение"""
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Логирует info сообщение"""
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Логирует warning сообщение"""
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Логирует error сообщение"""
        self._log_with_context(logging.ERROR, message, **kwargs)


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Настраивает логирование для приложения"""
    from core.config.settings import settings

    level_name = (level or settings.log_level).upper()
    fmt = log_format or settings.log_format
    file_path = log_file or settings.log_file

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    # Очищаем существующие handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if fmt == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


# Создаем основной логгер
logger = StructuredLogger("payrolldesk")
