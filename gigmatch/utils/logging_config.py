"""
Logging setup for the GigMatch service.

Everything logs under the ``gigmatch.`` namespace. ``configure_for_environment``
picks console/file handlers from ENVIRONMENT (production, development,
testing) and LOG_LEVEL.
"""
import functools
import inspect
import logging
import logging.config
import os
import time
from datetime import date
from pathlib import Path
from typing import Any, Dict, List

ROOT_NAMESPACE = "gigmatch"

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-34s | %(funcName)-22s:%(lineno)-4d | %(message)s",
}

# level, console, file, format
ENVIRONMENT_PRESETS = {
    "production": (None, True, True, "detailed"),
    "development": ("DEBUG", True, True, "detailed"),
    "testing": ("WARNING", True, False, "simple"),
}

_ROTATE_BYTES = 10 * 1024 * 1024


def _rotating_handler(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(path),
        "maxBytes": _ROTATE_BYTES,
        "backupCount": 5,
        "encoding": "utf8",
    }


def setup_logging(
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed",
    log_dir: str = None,
) -> None:
    """
    Configure the root, uvicorn and third-party loggers.

    File output goes to ``<log_dir>/gigmatch_<date>.log`` plus an errors-only
    file; ``log_dir`` defaults to LOG_DIR or ``logs``.
    """
    handlers: Dict[str, Dict[str, Any]] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": format_style if format_style in FORMATS else "detailed",
            "stream": "ext://sys.stdout",
        }
    if enable_file:
        directory = Path(log_dir or os.getenv("LOG_DIR", "logs"))
        directory.mkdir(parents=True, exist_ok=True)
        stamp = date.today().strftime("%Y%m%d")
        handlers["file"] = _rotating_handler(directory / f"gigmatch_{stamp}.log", level)
        handlers["error_file"] = _rotating_handler(directory / f"gigmatch_errors_{stamp}.log", "ERROR")

    names: List[str] = list(handlers)
    service_handlers = [h for h in names if h != "error_file"]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {"format": FORMATS["detailed"], "datefmt": "%Y-%m-%d %H:%M:%S"},
            "simple": {"format": FORMATS["simple"]},
        },
        "handlers": handlers,
        "loggers": {
            "": {"level": level, "handlers": names},
            "uvicorn": {"level": "INFO", "handlers": service_handlers, "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": service_handlers, "propagate": False},
            # requests/urllib3 log every provider connection at DEBUG
            "urllib3": {"level": "WARNING"},
            "pymongo": {"level": "WARNING"},
        },
    })

    logging.getLogger(f"{ROOT_NAMESPACE}.logging").info(
        f"Logging configured - level={level} console={enable_console} file={enable_file}"
    )


def configure_for_environment() -> None:
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    preset = ENVIRONMENT_PRESETS.get(environment)
    if preset is None:
        setup_logging(level=log_level)
        return
    level, console, to_file, style = preset
    setup_logging(level=level or log_level, enable_console=console, enable_file=to_file, format_style=style)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``gigmatch.`` namespace (pass ``__name__``)."""
    if name == ROOT_NAMESPACE or name.startswith(ROOT_NAMESPACE + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_NAMESPACE}.{name}")


def log_function_call(func):
    """Log entry, duration and failure of a (sync or async) function at DEBUG/ERROR."""
    logger = get_logger(func.__module__)

    def _done(start: float):
        logger.debug(f"{func.__qualname__} finished in {time.perf_counter() - start:.3f}s")

    def _failed(start: float, exc: Exception):
        logger.error(f"{func.__qualname__} failed after {time.perf_counter() - start:.3f}s: {exc}")

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger.debug(f"Calling {func.__qualname__} kwargs={sorted(kwargs)}")
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _failed(start, e)
                raise
            _done(start)
            return result
        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        logger.debug(f"Calling {func.__qualname__} kwargs={sorted(kwargs)}")
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _failed(start, e)
            raise
        _done(start)
        return result
    return sync_wrapper


class PerformanceMonitor:
    """Times a block; INFO normally, WARNING past ``threshold_ms``, ERROR on failure."""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.elapsed_ms = 0.0
        self._start = None

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.1f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation_name} took {self.elapsed_ms:.1f}ms (threshold {self.threshold_ms:.0f}ms)"
            )
        else:
            self.logger.info(f"{self.operation_name} took {self.elapsed_ms:.1f}ms")
        return False
