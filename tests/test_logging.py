"""Tests for console loggers and structured record sinks."""

import json

import pytest

from chopper import logging as chopper_logging
from chopper.logging import (
    ChopperLogger,
    FileSink,
    LoggingSettings,
    LogLevel,
    NullSink,
    close_all_sinks,
    configure_logging,
    create_sink_for_module,
    emit_record,
    get_logger,
    get_sink,
    register_sink,
    settings_from_env,
)


@pytest.fixture
def settings(monkeypatch):
    """Fresh settings for one test, restored afterwards."""
    fresh = LoggingSettings()
    monkeypatch.setattr(chopper_logging, '_settings', fresh)
    return fresh


@pytest.fixture(autouse=True)
def no_sinks():
    yield
    close_all_sinks()


def read_jsonl(path):
    with open(path) as f:
        return [json.loads(line) for line in f]


class TestLogLevel:
    """Tests for level name parsing."""

    @pytest.mark.parametrize("name,expected", [
        ('debug', LogLevel.DEBUG),
        (' TRACE ', LogLevel.TRACE),
        ('warn', LogLevel.WARNING),
        ('Warning', LogLevel.WARNING),
        ('off', LogLevel.OFF),
        ('verbose', LogLevel.INFO),
    ])
    def test_parse(self, name, expected):
        assert LogLevel.parse(name) == expected


class TestSettingsFromEnv:
    """Tests for reading CHOPPER_LOG_* variables."""

    def test_empty_environment(self):
        settings = settings_from_env({})
        assert settings.default_level == LogLevel.INFO
        assert settings.module_levels == {}
        assert settings.log_dir is None

    def test_levels_and_dir(self):
        settings = settings_from_env({
            'CHOPPER_LOG_LEVEL': 'error',
            'CHOPPER_LOG_SESSION': 'trace',
            'CHOPPER_LOG_DIR': '/tmp/chopper',
            'PATH': '/usr/bin',
        })
        assert settings.default_level == LogLevel.ERROR
        assert settings.level_for('session') == LogLevel.TRACE
        assert settings.level_for('runner') == LogLevel.ERROR
        assert settings.log_dir == '/tmp/chopper'

    def test_module_options_are_coerced(self):
        settings = settings_from_env({
            'CHOPPER_LOGGING_TELEMETRY_ENABLED': 'yes',
            'CHOPPER_LOGGING_TELEMETRY_BATCH': '20',
            'CHOPPER_LOGGING_DISPATCHER_RATE': '0.5',
            'CHOPPER_LOGGING_DISPATCHER_FORMAT': 'compact',
        })
        assert settings.modules['telemetry'] == {'enabled': True, 'batch': 20}
        assert settings.modules['dispatcher'] == {'rate': 0.5, 'format': 'compact'}

    def test_option_without_module_is_ignored(self):
        settings = settings_from_env({'CHOPPER_LOGGING_ENABLED': 'true'})
        assert settings.modules == {}


class TestConfigureLogging:
    """Tests for overriding settings in code."""

    def test_overrides(self, settings):
        configure_logging(level='DEBUG', modules={'Session': 'ERROR'}, log_dir='/tmp/x')

        assert settings.default_level == LogLevel.DEBUG
        assert settings.level_for('session') == LogLevel.ERROR
        assert chopper_logging.get_log_dir() == '/tmp/x'


class TestChopperLogger:
    """Tests for console output filtering and formatting."""

    def test_respects_default_level(self, settings, capsys):
        settings.default_level = LogLevel.WARNING
        log = ChopperLogger('session')

        log.info("hidden")
        log.warning("shown %d", 3)

        assert capsys.readouterr().out == "[session] WARN: shown 3\n"

    def test_module_level_overrides_default(self, settings, capsys):
        settings.default_level = LogLevel.OFF
        settings.module_levels['runner'] = LogLevel.TRACE
        ChopperLogger('runner').trace("frame %s", 'a')
        ChopperLogger('session').critical("quiet")

        assert capsys.readouterr().out == "[runner] TRACE: frame a\n"

    def test_bad_format_args_still_log(self, settings, capsys):
        ChopperLogger('x').info("no placeholders", 1)
        assert "no placeholders (1,)" in capsys.readouterr().out

    def test_exception_includes_traceback(self, settings, capsys):
        log = ChopperLogger('dispatcher')
        try:
            raise RuntimeError("store unavailable")
        except RuntimeError:
            log.exception("Delivery failed")

        out = capsys.readouterr().out
        assert out.startswith("[dispatcher] ERROR: Delivery failed\n")
        assert "RuntimeError: store unavailable" in out

    def test_get_logger_is_cached(self):
        assert get_logger('session') is get_logger('session')
        assert get_logger('session') is not get_logger('runner')


class TestFileSink:
    """Tests for JSONL output."""

    def test_header_records_footer(self, tmp_path):
        sink = FileSink(log_dir=str(tmp_path), session_name='run-1')
        sink.emit('telemetry', {'type': 'destroy', 'points': 50})
        sink.emit('telemetry', {'type': 'miss'})
        path = sink.log_paths['telemetry']
        sink.close()

        assert path == tmp_path / 'run-1_telemetry.jsonl'
        records = read_jsonl(path)
        assert [r['type'] for r in records] == ['header', 'destroy', 'miss', 'footer']
        assert records[0]['session_name'] == 'run-1'
        assert records[1]['points'] == 50
        assert 'wall_time' in records[1]
        assert records[-1]['records'] == 2

    def test_one_file_per_module(self, tmp_path):
        with FileSink(log_dir=str(tmp_path), session_name='s') as sink:
            sink.emit('a', {'type': 'x'})
            sink.emit('b', {'type': 'y'})

        assert sorted(p.name for p in tmp_path.iterdir()) == ['s_a.jsonl', 's_b.jsonl']

    def test_close_is_repeatable(self, tmp_path):
        sink = FileSink(log_dir=str(tmp_path), session_name='s')
        sink.emit('a', {'type': 'x'})
        sink.close()
        sink.close()

        assert len(read_jsonl(tmp_path / 's_a.jsonl')) == 3

    def test_default_dir_from_settings(self, settings, tmp_path):
        settings.log_dir = str(tmp_path)
        sink = FileSink(session_name='s')
        assert sink.path_for('telemetry') == tmp_path / 's_telemetry.jsonl'


class TestSinkRegistry:
    """Tests for routing records by module."""

    def test_emit_without_sink(self):
        assert emit_record('nobody', {'type': 'x'}) is False

    def test_emit_to_registered_sink(self, tmp_path):
        sink = FileSink(log_dir=str(tmp_path), session_name='s')
        register_sink('telemetry', sink)

        assert get_sink('telemetry') is sink
        assert emit_record('telemetry', {'type': 'miss'}) is True

        close_all_sinks()
        assert get_sink('telemetry') is None
        assert read_jsonl(tmp_path / 's_telemetry.jsonl')[-1]['records'] == 1

    def test_shared_sink_closed_once(self, tmp_path):
        sink = FileSink(log_dir=str(tmp_path), session_name='s')
        register_sink('a', sink)
        register_sink('b', sink)
        emit_record('a', {'type': 'x'})

        close_all_sinks()

        types = [r['type'] for r in read_jsonl(tmp_path / 's_a.jsonl')]
        assert types.count('footer') == 1

    def test_create_sink_disabled(self, settings):
        assert isinstance(create_sink_for_module('telemetry'), NullSink)

    def test_create_sink_enabled(self, settings, tmp_path):
        settings.log_dir = str(tmp_path)
        settings.modules['telemetry'] = {'enabled': True}

        sink = create_sink_for_module('Telemetry', session_name='s')

        assert isinstance(sink, FileSink)
        assert sink.path_for('telemetry') == tmp_path / 's_telemetry.jsonl'
