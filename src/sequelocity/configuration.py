"""
Process-wide settings.

`configuration_settings.default` names the data source used when
`get_database_command()` is called without options. It takes anything
`create_connection()` accepts, plus an optional config module for libb
`load_options`:

    configuration_settings.default.connection = 'postgresql'
    configuration_settings.default.config = config

`configuration_settings.event_handlers` holds the lifecycle hooks.
"""
import logging
import threading
from typing import Any

from sequelocity.hooks import EventHandlers

from libb import attrdict

logger = logging.getLogger(__name__)

__all__ = [
    'ConfigurationSettings',
    'configuration_settings',
    'clear_default_configuration_settings',
]


class ConfigurationSettings:

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.default = attrdict(connection=None, config=None)
        self.event_handlers = EventHandlers()

    def set_default(self, connection: Any, config: Any | None = None) -> None:
        """Set the default data source (options, dict or config name).
        """
        with self._lock:
            self.default.connection = connection
            self.default.config = config

    def clear(self) -> None:
        with self._lock:
            self.default = attrdict(connection=None, config=None)
            self.event_handlers.clear()
        logger.debug('Cleared default configuration settings')


configuration_settings = ConfigurationSettings()


def clear_default_configuration_settings() -> None:
    """Reset the default data source and remove every registered hook.
    """
    configuration_settings.clear()
