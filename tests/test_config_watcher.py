"""
Tests for configuration hot reloading
"""

import pytest
import asyncio
import logging
from unittest.mock import AsyncMock

from watchdog.events import FileModifiedEvent, FileMovedEvent, DirModifiedEvent

from config_watcher import ConfigFileHandler, ConfigFileWatcher


class TestConfigFileHandler:
    """Test event filtering, debounce and scheduling"""

    def setup_method(self):
        self.logger = logging.getLogger('test')

    @pytest.mark.asyncio
    async def test_modification_schedules_reload(self, temp_config_dir):
        config_path = temp_config_dir / "config.yml"
        reload_callback = AsyncMock()
        handler = ConfigFileHandler(str(config_path), reload_callback,
                                    asyncio.get_running_loop(), self.logger)

        future = handler.schedule_reload()
        await asyncio.wrap_future(future)

        reload_callback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_on_modified_for_config_file(self, temp_config_dir):
        config_path = temp_config_dir / "config.yml"
        reload_callback = AsyncMock()
        handler = ConfigFileHandler(str(config_path), reload_callback,
                                    asyncio.get_running_loop(), self.logger)

        handler.on_modified(FileModifiedEvent(str(config_path)))
        await asyncio.sleep(0.05)

        reload_callback.assert_awaited_once()

    def test_other_files_are_ignored(self, temp_config_dir):
        reload_callback = AsyncMock()
        handler = ConfigFileHandler(str(temp_config_dir / "config.yml"), reload_callback, None, self.logger)
        handler.schedule_reload = lambda: pytest.fail("reload scheduled for unrelated file")

        handler.on_modified(FileModifiedEvent(str(temp_config_dir / "other.yml")))
        handler.on_modified(DirModifiedEvent(str(temp_config_dir)))

    def test_debounce(self, temp_config_dir):
        config_path = str(temp_config_dir / "config.yml")
        handler = ConfigFileHandler(config_path, AsyncMock(), None, self.logger, debounce_time=60)
        scheduled = []
        handler.schedule_reload = lambda: scheduled.append(True)

        handler.on_modified(FileModifiedEvent(config_path))
        handler.on_modified(FileModifiedEvent(config_path))

        assert scheduled == [True]

    def test_move_onto_config_path_triggers_reload(self, temp_config_dir):
        config_path = str(temp_config_dir / "config.yml")
        handler = ConfigFileHandler(config_path, AsyncMock(), None, self.logger)
        scheduled = []
        handler.schedule_reload = lambda: scheduled.append(True)

        handler.on_moved(FileMovedEvent(str(temp_config_dir / ".config.yml.swp"), config_path))

        assert scheduled == [True]

    def test_no_loop_means_no_reload(self, temp_config_dir):
        handler = ConfigFileHandler(str(temp_config_dir / "config.yml"), AsyncMock(), None, self.logger)

        assert handler.schedule_reload() is None


class TestConfigFileWatcher:
    """Test observer lifecycle"""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, temp_config_dir):
        watcher = ConfigFileWatcher(str(temp_config_dir / "config.yml"), AsyncMock(),
                                    logger=logging.getLogger('test'))

        watcher.start()
        try:
            assert watcher.is_watching is True
        finally:
            watcher.stop()

        assert watcher.is_watching is False

    @pytest.mark.asyncio
    async def test_missing_directory_is_not_watched(self, temp_config_dir):
        watcher = ConfigFileWatcher(str(temp_config_dir / "missing" / "config.yml"), AsyncMock(),
                                    logger=logging.getLogger('test'))

        watcher.start()

        assert watcher.is_watching is False
