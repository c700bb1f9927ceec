"""
Configuration File Watcher

Watches the host's YAML configuration file with watchdog and schedules a
reload on the host's event loop whenever the file changes.
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Awaitable, Callable, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

DEFAULT_DEBOUNCE_SECONDS = 1.0


class ConfigFileHandler(FileSystemEventHandler):
    """File system event handler for configuration hot reloading"""

    def __init__(self, config_path: str, reload_callback: Callable[[], Awaitable[None]],
                 loop: Optional[asyncio.AbstractEventLoop], logger: logging.Logger,
                 debounce_time: float = DEFAULT_DEBOUNCE_SECONDS):
        super().__init__()
        self.config_path = os.path.abspath(config_path)
        self.reload_callback = reload_callback
        self.loop = loop
        self.logger = logger
        self.debounce_time = debounce_time
        self.last_reload = 0.0

    def _is_config_file(self, path) -> bool:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        return bool(path) and os.path.abspath(path) == self.config_path

    def on_modified(self, event):
        if event.is_directory or not self._is_config_file(event.src_path):
            return
        self._maybe_schedule_reload()

    def on_created(self, event):
        self.on_modified(event)

    def on_moved(self, event):
        # Editors that save via rename-over show up as a move onto the config path
        if not event.is_directory and self._is_config_file(getattr(event, "dest_path", "")):
            self._maybe_schedule_reload()

    def _maybe_schedule_reload(self):
        current_time = time.time()
        if current_time - self.last_reload < self.debounce_time:
            self.logger.debug("🔔 Ignoring config change due to debounce")
            return
        self.last_reload = current_time
        self.schedule_reload()

    def schedule_reload(self):
        """Schedule the reload coroutine in the host's event loop"""
        if not self.loop:
            self.logger.debug("🗓️ No event loop available for scheduling config reload")
            return None

        self.logger.info(f"🔥 Config file changed: {self.config_path}")
        return asyncio.run_coroutine_threadsafe(self.reload_callback(), self.loop)


class ConfigFileWatcher:
    """Runs a watchdog observer on the configuration file's directory"""

    def __init__(self, config_path: str, reload_callback: Callable[[], Awaitable[None]],
                 logger: Optional[logging.Logger] = None,
                 debounce_time: float = DEFAULT_DEBOUNCE_SECONDS):
        self.config_path = Path(config_path)
        self.reload_callback = reload_callback
        self.logger = logger or logging.getLogger(__name__)
        self.debounce_time = debounce_time
        self.observer: Optional[Observer] = None
        self.handler: Optional[ConfigFileHandler] = None

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Start watching; reloads are scheduled on ``loop`` (default: running loop)"""
        if self.observer:
            return

        watch_dir = self.config_path.absolute().parent
        if not watch_dir.exists():
            self.logger.warning(f"📁 Not watching config, directory missing: {watch_dir}")
            return

        self.handler = ConfigFileHandler(
            str(self.config_path),
            self.reload_callback,
            loop or asyncio.get_running_loop(),
            self.logger,
            self.debounce_time,
        )
        self.observer = Observer()
        self.observer.schedule(self.handler, str(watch_dir), recursive=False)
        self.observer.start()
        self.logger.info(f"🔥 Hot reloading enabled for {self.config_path}")

    def stop(self) -> None:
        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None
            self.logger.debug("🔥 Hot reloading stopped")

    @property
    def is_watching(self) -> bool:
        return self.observer is not None and self.observer.is_alive()
