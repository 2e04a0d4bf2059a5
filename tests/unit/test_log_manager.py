"""Unit tests for the log manager and its channels."""

from __future__ import annotations

import json
import logging
import logging.handlers
from pathlib import Path
from typing import Any, Dict, Iterator

import pytest

from collectkit.Log import LogChannel, LogLevel, LogManager, get_log_manager, logger, resolve_level


@pytest.fixture
def log_config(tmp_path: Path) -> Dict[str, Any]:
    """Logging configuration writing into a temporary directory."""
    return {
        'default': 'quiet',
        'channels': {
            'quiet': {'driver': 'null', 'propagate': True},
            'file': {'driver': 'single', 'path': str(tmp_path / 'logs' / 'app.log')},
            'structured': {'driver': 'single', 'path': str(tmp_path / 'app.json.log'), 'formatter': 'json'},
            'strict': {'driver': 'null', 'level': 'warning', 'propagate': True},
            'both': {'driver': 'stack', 'channels': ['file', 'structured']},
        },
    }


@pytest.fixture
def manager(log_config: Dict[str, Any]) -> Iterator[LogManager]:
    """Create a manager and close its file handlers afterwards."""
    log_manager = LogManager(log_config)
    yield log_manager
    for channel in log_manager.get_channels().values():
        for handler in channel.logger.handlers:
            handler.close()


class TestLogManager:
    """Test suite for LogManager."""

    def test_default_channel_propagates(self, manager: LogManager, caplog: pytest.LogCaptureFixture) -> None:
        """Test that a null channel hands records to parent loggers."""
        with caplog.at_level(logging.DEBUG):
            manager.info('hello', {'user': 1})

        record = caplog.records[-1]
        assert record.name == 'collectkit.quiet'
        assert record.getMessage() == 'hello'
        assert record.context == {'user': 1}  # type: ignore[attr-defined]

    def test_single_channel_writes_formatted_lines(self, manager: LogManager, tmp_path: Path) -> None:
        """Test the file driver and default formatter."""
        manager.channel('file').warning('disk low', {'free': 5})

        line = (tmp_path / 'logs' / 'app.log').read_text().strip()
        assert line.endswith('collectkit.file.WARNING: disk low {"free": 5}')
        assert line.startswith('[')

    def test_json_formatter(self, manager: LogManager, tmp_path: Path) -> None:
        """Test structured output."""
        manager.channel('structured').error('failed')

        entry = json.loads((tmp_path / 'app.json.log').read_text().strip())
        assert entry['level'] == 'ERROR'
        assert entry['channel'] == 'collectkit.structured'
        assert entry['message'] == 'failed'
        assert entry['context'] == {}

    def test_stack_channel_fans_out(self, manager: LogManager, tmp_path: Path) -> None:
        """Test that a stack writes through every member channel."""
        manager.channel('both').info('stacked')

        assert 'stacked' in (tmp_path / 'logs' / 'app.log').read_text()
        assert 'stacked' in (tmp_path / 'app.json.log').read_text()

    def test_ad_hoc_stack(self, manager: LogManager, tmp_path: Path) -> None:
        """Test building a stack at runtime."""
        manager.stack(['file'], 'adhoc').critical('boom')
        assert 'collectkit.adhoc.CRITICAL: boom' in (tmp_path / 'logs' / 'app.log').read_text()

    def test_channel_level_filters_records(self, manager: LogManager, caplog: pytest.LogCaptureFixture) -> None:
        """Test per-channel minimum levels."""
        with caplog.at_level(logging.DEBUG):
            channel = manager.channel('strict')
            channel.info('dropped')
            channel.log(LogLevel.ERROR, 'kept')

        messages = [record.getMessage() for record in caplog.records if record.name == 'collectkit.strict']
        assert messages == ['kept']

    def test_unconfigured_channel_is_silent_but_propagates(
        self, manager: LogManager, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that unknown channels fall back to a null driver."""
        with caplog.at_level(logging.DEBUG):
            manager.channel('unknown').debug('through')

        assert any(record.name == 'collectkit.unknown' for record in caplog.records)

    def test_channels_are_cached_and_forgettable(self, manager: LogManager) -> None:
        """Test channel reuse and removal."""
        first = manager.channel('quiet')

        assert manager.channel() is first
        manager.forget_channel('quiet')
        assert manager.channel('quiet') is not first

    def test_default_driver(self, manager: LogManager) -> None:
        """Test reading and changing the default channel."""
        assert manager.get_default_driver() == 'quiet'
        manager.set_default_driver('strict')
        assert manager.channel().name == 'strict'

    def test_manager_log_uses_default_channel(self, manager: LogManager, caplog: pytest.LogCaptureFixture) -> None:
        """Test logging through the manager itself."""
        with caplog.at_level(logging.DEBUG):
            manager.log('info', 'via manager')

        assert caplog.records[-1].name == 'collectkit.quiet'

    def test_bound_context_is_merged(self, manager: LogManager, caplog: pytest.LogCaptureFixture) -> None:
        """Test with_context()."""
        channel = manager.channel('quiet').with_context(request='r1')

        with caplog.at_level(logging.DEBUG):
            channel.warning('bound', {'extra': 2})
            manager.channel('quiet').warning('unbound')

        assert caplog.records[-2].context == {'request': 'r1', 'extra': 2}  # type: ignore[attr-defined]
        assert caplog.records[-1].context == {}  # type: ignore[attr-defined]

    def test_custom_driver(self, log_config: Dict[str, Any]) -> None:
        """Test registering a handler factory with extend()."""
        memory = logging.handlers.BufferingHandler(10)
        log_config['channels']['buffer'] = {'driver': 'memory'}
        manager = LogManager(log_config)
        manager.extend('memory', lambda name, config: memory)

        manager.channel('buffer').info('kept in memory')

        assert [record.getMessage() for record in memory.buffer] == ['kept in memory']

    def test_unknown_driver_raises(self, log_config: Dict[str, Any]) -> None:
        """Test a channel configured with a missing driver."""
        log_config['channels']['broken'] = {'driver': 'carrier-pigeon'}

        with pytest.raises(ValueError):
            LogManager(log_config).channel('broken')

    def test_manager_keeps_its_own_copy_of_the_config(
        self, manager: LogManager, log_config: Dict[str, Any]
    ) -> None:
        """Test that runtime stacks and later edits do not cross between manager and caller."""
        manager.stack(['quiet'], 'runtime')
        log_config['channels']['quiet']['driver'] = 'carrier-pigeon'

        assert 'runtime' not in log_config['channels']
        assert manager.channel('quiet').logger.handlers

    def test_rebuilding_a_channel_closes_replaced_handlers(self, tmp_path: Path) -> None:
        """Test that handlers dropped from a logger are closed and shared ones stay open."""
        replaced = logging.FileHandler(tmp_path / 'old.log')
        shared = logging.FileHandler(tmp_path / 'shared.log')
        LogChannel('rebuilt', [replaced, shared])

        channel = LogChannel('rebuilt', [shared, logging.NullHandler()])

        assert replaced.stream is None
        assert shared.stream is not None
        assert channel.logger.handlers[0] is shared
        shared.close()

    def test_config_change_closes_file_handlers(self, tmp_path: Path) -> None:
        """Test that a rebuilt manager releases the files of the manager it replaces."""
        config = {'channels': {'file': {'driver': 'single', 'path': str(tmp_path / 'app.log')}}}
        old_handler = LogManager(config).channel('file').logger.handlers[0]

        new_handler = LogManager(config).channel('file').logger.handlers[0]

        assert new_handler is not old_handler
        assert old_handler.stream is None  # type: ignore[attr-defined]
        new_handler.close()


class TestResolveLevel:
    """Test suite for level resolution."""

    @pytest.mark.parametrize(
        'level, expected',
        [('debug', logging.DEBUG), ('WARNING', logging.WARNING), (LogLevel.ERROR, logging.ERROR), (25, 25)],
    )
    def test_resolve_level(self, level: Any, expected: int) -> None:
        """Test accepted level forms."""
        assert resolve_level(level) == expected

    def test_unknown_level_raises(self) -> None:
        """Test an unknown level name."""
        with pytest.raises(ValueError):
            resolve_level('chatty')


class TestGlobalLogger:
    """Test suite for the shared manager configured from the config package."""

    def test_collection_channel_comes_from_config(self) -> None:
        """Test that the collection channel is the configured null channel."""
        channel = logger('collection')

        assert channel is get_log_manager().channel('collection')
        assert channel.logger.propagate
        assert isinstance(channel.logger.handlers[0], logging.NullHandler)


    def test_logging_config_change_rebuilds_manager(self) -> None:
        """Test that setting a logging key discards the shared manager."""
        from collectkit.Support.Config import config

        before = get_log_manager()
        original = config.get('logging.default')
        config.set('logging.default', 'null-channel')
        try:
            rebuilt = get_log_manager()
            assert rebuilt is not before
            assert rebuilt.get_default_driver() == 'null-channel'
        finally:
            config.set('logging.default', original)
