"""
Chopper logging.

Two channels share this module:

- Console messages. ``get_logger(module)`` returns a leveled logger that
  prints ``[module] LEVEL: message`` on stdout.
- Structured records. ``emit_record(module, record)`` hands a JSON-able
  dict to the sink registered for that module. The dispatcher sends every
  telemetry event through here on module ``telemetry``.

Environment:
    CHOPPER_LOG_LEVEL=DEBUG                   Default console level
    CHOPPER_LOG_<MODULE>=TRACE                Level for one module
    CHOPPER_LOG_DIR=~/chopper-logs            Where FileSink writes
    CHOPPER_LOGGING_<MODULE>_ENABLED=true     create_sink_for_module() writes files

Usage:
    from chopper.logging import get_logger, register_sink, emit_record, FileSink

    log = get_logger('session')
    log.info("Session %s started", key)

    register_sink('telemetry', FileSink(session_name='run-1'))
    emit_record('telemetry', {'type': 'destroy', 'points': 50})
"""

import json
import os
import sys
import time
import traceback
from abc import ABC, abstractmethod
from enum import IntEnum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, TextIO

from pydantic import BaseModel, Field


class LogLevel(IntEnum):
    """Console levels; TRACE sits below DEBUG, OFF above everything."""
    TRACE = 5
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50
    OFF = 100

    @classmethod
    def parse(cls, name: str) -> 'LogLevel':
        """Level from a name such as 'debug' or 'WARN' (INFO if unknown)."""
        key = name.strip().upper()
        if key == 'WARN':
            return cls.WARNING
        return cls.__members__.get(key, cls.INFO)


_LABELS = {
    LogLevel.TRACE: 'TRACE',
    LogLevel.DEBUG: 'DEBUG',
    LogLevel.INFO: 'INFO',
    LogLevel.WARNING: 'WARN',
    LogLevel.ERROR: 'ERROR',
    LogLevel.CRITICAL: 'CRIT',
}


# =============================================================================
# Settings
# =============================================================================

class LoggingSettings(BaseModel):
    """Process-wide logging settings.

    Attributes:
        default_level: Level for modules without their own entry
        module_levels: Per-module console levels, keyed by lower-case module
        log_dir: Directory for FileSink (None: platform data directory)
        modules: Per-module sink options, e.g. ``{'telemetry': {'enabled': True}}``
    """
    default_level: LogLevel = LogLevel.INFO
    module_levels: Dict[str, LogLevel] = Field(default_factory=dict)
    log_dir: Optional[str] = None
    modules: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def level_for(self, module: str) -> LogLevel:
        return self.module_levels.get(module, self.default_level)


def _coerce(value: str) -> Any:
    """Turn an env string into a bool, int or float where it looks like one."""
    lowered = value.strip().lower()
    if lowered in ('true', 'yes', 'on', '1'):
        return True
    if lowered in ('false', 'no', 'off', '0'):
        return False
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value


def settings_from_env(environ: Optional[Mapping[str, str]] = None) -> LoggingSettings:
    """Build settings from CHOPPER_LOG_* and CHOPPER_LOGGING_* variables.

    Examples:
        >>> s = settings_from_env({'CHOPPER_LOG_SESSION': 'debug',
        ...                        'CHOPPER_LOGGING_TELEMETRY_ENABLED': 'true'})
        >>> s.level_for('session'), s.modules['telemetry']
        (<LogLevel.DEBUG: 10>, {'enabled': True})
    """
    environ = os.environ if environ is None else environ
    settings = LoggingSettings()

    for key, value in environ.items():
        if key == 'CHOPPER_LOG_LEVEL':
            settings.default_level = LogLevel.parse(value)
        elif key == 'CHOPPER_LOG_DIR':
            settings.log_dir = value
        elif key.startswith('CHOPPER_LOG_'):
            module = key[len('CHOPPER_LOG_'):].lower()
            settings.module_levels[module] = LogLevel.parse(value)
        elif key.startswith('CHOPPER_LOGGING_'):
            module, _, option = key[len('CHOPPER_LOGGING_'):].lower().partition('_')
            if module and option:
                settings.modules.setdefault(module, {})[option] = _coerce(value)

    return settings


_settings = settings_from_env()


def configure_logging(
    level: str = 'INFO',
    modules: Optional[Dict[str, str]] = None,
    log_dir: Optional[str] = None,
) -> None:
    """
    Override logging settings in code.

    Args:
        level: Default console level
        modules: Module name -> level, for per-module levels
        log_dir: Directory FileSink writes to
    """
    _settings.default_level = LogLevel.parse(level)
    for module, module_level in (modules or {}).items():
        _settings.module_levels[module.lower()] = LogLevel.parse(module_level)
    if log_dir:
        _settings.log_dir = log_dir


def get_module_config(module: str) -> Dict[str, Any]:
    """Sink options for a module (empty if none were configured)."""
    return _settings.modules.get(module.lower(), {})


def get_log_dir() -> str:
    """Directory FileSink writes to by default.

    CHOPPER_LOG_DIR (or ``configure_logging(log_dir=...)``) wins; otherwise
    the platform's user data directory:
        macOS:   ~/Library/Application Support/Chopper/logs
        Windows: %APPDATA%/Chopper/logs
        Linux:   $XDG_DATA_HOME/chopper/logs
    """
    if _settings.log_dir:
        return str(Path(_settings.log_dir).expanduser())

    if sys.platform == 'darwin':
        base = Path.home() / 'Library' / 'Application Support' / 'Chopper'
    elif sys.platform == 'win32':
        base = Path(os.environ.get('APPDATA', str(Path.home()))) / 'Chopper'
    else:
        base = Path(os.environ.get('XDG_DATA_HOME', str(Path.home() / '.local' / 'share'))) / 'chopper'
    return str(base / 'logs')


# =============================================================================
# Structured record sinks
# =============================================================================

class LogSink(ABC):
    """Destination for structured records."""

    @abstractmethod
    def emit(self, module: str, record: Dict[str, Any]) -> None:
        """Write one record. ``record`` must be JSON-serializable."""
        pass

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.flush()

    def __enter__(self) -> 'LogSink':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class FileSink(LogSink):
    """Appends records to ``<log_dir>/<session_name>_<module>.jsonl``.

    Each file starts with a header record. Closing the sink appends a
    footer with the number of records written.

    Args:
        log_dir: Output directory (default: get_log_dir())
        session_name: File name prefix (default: current timestamp)
    """

    def __init__(self, log_dir: Optional[str] = None, session_name: Optional[str] = None):
        self.log_dir = Path(log_dir).expanduser() if log_dir else None
        self.session_name = session_name or time.strftime('%Y%m%d_%H%M%S')
        self._streams: Dict[str, TextIO] = {}
        self._counts: Dict[str, int] = {}

    def path_for(self, module: str) -> Path:
        directory = self.log_dir or Path(get_log_dir())
        return directory / f'{self.session_name}_{module}.jsonl'

    @property
    def log_paths(self) -> Dict[str, Path]:
        """Files opened so far, by module."""
        return {module: self.path_for(module) for module in self._streams}

    def _stream(self, module: str) -> TextIO:
        stream = self._streams.get(module)
        if stream is None:
            path = self.path_for(module)
            path.parent.mkdir(parents=True, exist_ok=True)
            stream = open(path, 'a')
            self._streams[module] = stream
            self._counts[module] = 0
            self._write(stream, {
                'type': 'header',
                'module': module,
                'session_name': self.session_name,
                'started_at': time.time(),
            })
        return stream

    @staticmethod
    def _write(stream: TextIO, record: Dict[str, Any]) -> None:
        stream.write(json.dumps(record, default=str) + '\n')

    def emit(self, module: str, record: Dict[str, Any]) -> None:
        self._write(self._stream(module), {'wall_time': time.time(), **record})
        self._counts[module] += 1

    def flush(self) -> None:
        for stream in self._streams.values():
            stream.flush()

    def close(self) -> None:
        for module, stream in self._streams.items():
            self._write(stream, {
                'type': 'footer',
                'module': module,
                'records': self._counts[module],
                'ended_at': time.time(),
            })
            stream.close()
        self._streams.clear()
        self._counts.clear()


class NullSink(LogSink):
    """Discards every record."""

    def emit(self, module: str, record: Dict[str, Any]) -> None:
        pass


_sinks: Dict[str, LogSink] = {}


def register_sink(module: str, sink: LogSink) -> None:
    """Route structured records for ``module`` to ``sink``."""
    _sinks[module] = sink


def get_sink(module: str) -> Optional[LogSink]:
    return _sinks.get(module)


def emit_record(module: str, record: Dict[str, Any]) -> bool:
    """
    Send a structured record to the module's sink.

    Returns:
        False if no sink is registered for the module
    """
    sink = _sinks.get(module)
    if sink is None:
        return False
    sink.emit(module, record)
    return True


def close_all_sinks() -> None:
    """Close and unregister every sink (each sink is closed once)."""
    unique = {id(sink): sink for sink in _sinks.values()}
    _sinks.clear()
    for sink in unique.values():
        sink.close()


def create_sink_for_module(module: str, session_name: Optional[str] = None) -> LogSink:
    """FileSink if CHOPPER_LOGGING_<MODULE>_ENABLED is set, otherwise NullSink."""
    if get_module_config(module).get('enabled', False):
        return FileSink(session_name=session_name)
    return NullSink()


# =============================================================================
# Console loggers
# =============================================================================

class ChopperLogger:
    """Console logger bound to one module name.

    Messages use %-style arguments, formatted only when the level is on.
    """

    def __init__(self, module: str):
        self.module = module
        self._key = module.lower().replace('.', '_')

    @property
    def level(self) -> LogLevel:
        return _settings.level_for(self._key)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self.level

    def log(self, level: LogLevel, msg: str, *args) -> None:
        if not self.is_enabled_for(level):
            return
        if args:
            try:
                msg = msg % args
            except (TypeError, ValueError):
                msg = f"{msg} {args}"
        print(f"[{self.module}] {_LABELS[level]}: {msg}")

    def trace(self, msg: str, *args) -> None:
        self.log(LogLevel.TRACE, msg, *args)

    def debug(self, msg: str, *args) -> None:
        self.log(LogLevel.DEBUG, msg, *args)

    def info(self, msg: str, *args) -> None:
        self.log(LogLevel.INFO, msg, *args)

    def warning(self, msg: str, *args) -> None:
        self.log(LogLevel.WARNING, msg, *args)

    def error(self, msg: str, *args) -> None:
        self.log(LogLevel.ERROR, msg, *args)

    def critical(self, msg: str, *args) -> None:
        self.log(LogLevel.CRITICAL, msg, *args)

    def exception(self, msg: str, *args) -> None:
        """Log at ERROR, followed by the traceback being handled."""
        self.log(LogLevel.ERROR, msg, *args)
        if sys.exc_info()[0] is None:
            return
        for line in traceback.format_exc().rstrip().splitlines():
            self.log(LogLevel.ERROR, "  %s", line)


@lru_cache(maxsize=64)
def get_logger(module: str) -> ChopperLogger:
    """Cached logger for a module; one instance per name."""
    return ChopperLogger(module)
