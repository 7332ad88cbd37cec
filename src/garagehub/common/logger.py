# src/garagehub/common/logger.py
"""
Структурированное логирование.
Консоль (цветной текст или JSON), опциональная запись в файл с ротацией
и отдельный файл только для ошибок.
"""

from __future__ import annotations

import inspect
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from garagehub.common.constants import TypeMsg


DEFAULT_LOGGER = "garagehub"

# Файловые хендлеры общие для всех логгеров
_FILE_HANDLER: logging.Handler | None = None
_ERROR_HANDLER: logging.Handler | None = None

_LOGGING_INITIALIZED: bool = False

_loggers: dict[str, logging.Logger] = {}


# =============================================================================
# ФОРМАТТЕРЫ
# =============================================================================

class JsonFormatter(logging.Formatter):
    """Каждая запись пишется одним JSON-объектом в строке."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        extra = getattr(record, "extra_data", None)
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Цветной вывод для разработки."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    GRAY = "\033[90m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.GRAY)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        caller = ""
        extra = getattr(record, "extra_data", None) or {}
        if extra.get("caller_function"):
            caller = (
                f" {self.GRAY}[{extra.get('caller_module')}.{extra['caller_function']}()"
                f":{extra.get('caller_line')}]{self.RESET}"
            )

        message = f"{timestamp} {color}[{record.levelname}]{self.RESET}{caller} {record.getMessage()}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def _make_formatter(log_format: str) -> logging.Formatter:
    return JsonFormatter() if log_format == "json" else ColoredFormatter()


# =============================================================================
# ЛОГГЕРЫ
# =============================================================================

def _logging_options() -> dict[str, Any]:
    """Читает параметры логирования из настроек; при любой проблеме остаются дефолты."""
    options: dict[str, Any] = {
        "level": "INFO",
        "format": "colored",
        "to_file": False,
        "file_path": "logs/app.log",
        "max_bytes": 10485760,
        "backup_count": 5,
    }
    try:
        from garagehub.config import settings

        cfg = settings.logging
        options.update(
            level=cfg.LOG_LEVEL,
            format=cfg.LOG_FORMAT,
            to_file=cfg.LOG_TO_FILE,
            file_path=cfg.LOG_FILE_PATH,
            max_bytes=cfg.LOG_MAX_BYTES,
            backup_count=cfg.LOG_BACKUP_COUNT,
        )
    except Exception:
        pass

    # Защита от MagicMock в тестах
    if not isinstance(options["level"], str):
        options["level"] = "INFO"
    if not isinstance(options["format"], str):
        options["format"] = "colored"
    if not isinstance(options["file_path"], str):
        options["to_file"] = False
    return options


def _file_handlers(options: dict[str, Any]) -> list[logging.Handler]:
    """Создаёт (один раз) общий файловый хендлер и хендлер ошибок."""
    global _FILE_HANDLER, _ERROR_HANDLER

    log_path = Path(options["file_path"])
    log_path.parent.mkdir(parents=True, exist_ok=True)
    formatter = _make_formatter(options["format"])

    if _FILE_HANDLER is None:
        _FILE_HANDLER = RotatingFileHandler(
            log_path,
            maxBytes=options["max_bytes"],
            backupCount=options["backup_count"],
            encoding="utf-8",
        )
        _FILE_HANDLER.setFormatter(formatter)

    if _ERROR_HANDLER is None:
        _ERROR_HANDLER = RotatingFileHandler(
            log_path.parent / "error.log",
            maxBytes=options["max_bytes"],
            backupCount=options["backup_count"],
            encoding="utf-8",
        )
        _ERROR_HANDLER.setLevel(logging.ERROR)
        _ERROR_HANDLER.setFormatter(formatter)

    return [_FILE_HANDLER, _ERROR_HANDLER]


def get_logger(name: str = DEFAULT_LOGGER) -> logging.Logger:
    """
    Возвращает настроенный логгер. Хендлеры навешиваются один раз на имя.

    Args:
        name: Имя логгера
    """
    if name in _loggers:
        return _loggers[name]

    options = _logging_options()

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, options["level"].upper(), logging.INFO))

    if not logger.handlers:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(_make_formatter(options["format"]))
        logger.addHandler(console)

        if options["to_file"]:
            for handler in _file_handlers(options):
                logger.addHandler(handler)

    logger.propagate = False
    _loggers[name] = logger
    return logger


def setup_logging() -> None:
    """
    Инициализирует логирование приложения. Идемпотентна.
    """
    global _LOGGING_INITIALIZED
    if _LOGGING_INITIALIZED:
        return
    _LOGGING_INITIALIZED = True

    get_logger(DEFAULT_LOGGER)

    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# =============================================================================
# ХЕЛПЕРЫ
# =============================================================================

def _get_caller_info() -> dict[str, Any]:
    """
    Информация о коде, вызвавшем log_* (на два кадра выше текущего).
    """
    frame = inspect.currentframe()
    try:
        caller = frame.f_back.f_back if frame and frame.f_back else None
        if caller is None:
            return {}
        module = inspect.getmodule(caller)
        return {
            "caller_function": caller.f_code.co_name,
            "caller_module": module.__name__ if module else "unknown",
            "caller_line": caller.f_lineno,
        }
    except Exception:
        return {}
    finally:
        del frame


def _emit(
    logger: logging.Logger,
    level: int,
    message: str,
    extra: dict[str, Any] | None,
    caller: dict[str, Any],
    exc_info: bool = False,
) -> None:
    logger.log(level, message, extra={"extra_data": {**caller, **(extra or {})}}, exc_info=exc_info)


_LEVELS = {
    TypeMsg.DEBUG: logging.DEBUG,
    TypeMsg.INFO: logging.INFO,
    TypeMsg.WARNING: logging.WARNING,
    TypeMsg.ERROR: logging.ERROR,
    TypeMsg.CRITICAL: logging.CRITICAL,
}


async def log_info(
    message: str,
    *,
    type_msg: TypeMsg = TypeMsg.INFO,
    logger_name: str = DEFAULT_LOGGER,
    extra: dict[str, Any] | None = None,
) -> None:
    """
    Асинхронное логирование с уровнем из type_msg.

    Args:
        message: Сообщение
        type_msg: Уровень сообщения
        logger_name: Имя логгера
        extra: Дополнительные поля записи
    """
    _emit(
        get_logger(logger_name),
        _LEVELS.get(type_msg, logging.INFO),
        message,
        extra,
        _get_caller_info(),
    )


async def log_debug(
    message: str,
    logger_name: str = DEFAULT_LOGGER,
    extra: dict[str, Any] | None = None,
) -> None:
    """Логирование DEBUG уровня."""
    _emit(get_logger(logger_name), logging.DEBUG, message, extra, _get_caller_info())


async def log_warning(
    message: str,
    logger_name: str = DEFAULT_LOGGER,
    extra: dict[str, Any] | None = None,
) -> None:
    """Логирование WARNING уровня."""
    _emit(get_logger(logger_name), logging.WARNING, message, extra, _get_caller_info())


async def log_error(
    message: str,
    logger_name: str = DEFAULT_LOGGER,
    extra: dict[str, Any] | None = None,
    exc_info: bool = False,
) -> None:
    """
    Логирование ERROR уровня.

    Args:
        message: Сообщение об ошибке
        logger_name: Имя логгера
        extra: Дополнительные поля записи
        exc_info: Приложить ли трейсбек текущего исключения
    """
    _emit(get_logger(logger_name), logging.ERROR, message, extra, _get_caller_info(), exc_info)
