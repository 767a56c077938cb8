"""
Lifecycle hooks fired around every command execution.

    def log_sql(command):
        logger.info(command.command_text)

    configuration_settings.event_handlers.add_pre_execute(log_sql)

Hooks run in registration order. Registration takes a re-entrant lock and
invocation iterates a snapshot, so registering from another thread (or from
inside a hook) never disturbs an execution in flight. Exceptions raised by
hooks are not caught here.
"""
import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

__all__ = ['EventHandlers']

CommandHook = Callable[[Any], None]
ErrorHook = Callable[[BaseException, Any], None]


class EventHandlers:
    """Ordered pre-execute, post-execute and unhandled-exception hooks.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._pre_execute: list[CommandHook] = []
        self._post_execute: list[CommandHook] = []
        self._unhandled_exception: list[ErrorHook] = []

    @property
    def pre_execute(self) -> tuple[CommandHook, ...]:
        with self._lock:
            return tuple(self._pre_execute)

    @property
    def post_execute(self) -> tuple[CommandHook, ...]:
        with self._lock:
            return tuple(self._post_execute)

    @property
    def unhandled_exception(self) -> tuple[ErrorHook, ...]:
        with self._lock:
            return tuple(self._unhandled_exception)

    def add_pre_execute(self, hook: CommandHook) -> CommandHook:
        """Register `hook(command)`; returns the hook so it works as a decorator."""
        with self._lock:
            self._pre_execute.append(hook)
        return hook

    def add_post_execute(self, hook: CommandHook) -> CommandHook:
        with self._lock:
            self._post_execute.append(hook)
        return hook

    def add_unhandled_exception(self, hook: ErrorHook) -> ErrorHook:
        with self._lock:
            self._unhandled_exception.append(hook)
        return hook

    def invoke_pre_execute(self, command: Any) -> None:
        hooks = self.pre_execute
        if hooks:
            logger.debug(f'Invoking {len(hooks)} pre-execute hook(s)')
        for hook in hooks:
            hook(command)

    def invoke_post_execute(self, command: Any) -> None:
        hooks = self.post_execute
        if hooks:
            logger.debug(f'Invoking {len(hooks)} post-execute hook(s)')
        for hook in hooks:
            hook(command)

    def invoke_unhandled_exception(self, error: BaseException, command: Any) -> None:
        hooks = self.unhandled_exception
        if hooks:
            logger.debug(f'Invoking {len(hooks)} unhandled-exception hook(s) for {type(error).__name__}')
        for hook in hooks:
            hook(error, command)

    def clear(self) -> None:
        with self._lock:
            self._pre_execute.clear()
            self._post_execute.clear()
            self._unhandled_exception.clear()

    def __repr__(self) -> str:
        with self._lock:
            return (f'EventHandlers(pre_execute={len(self._pre_execute)}, '
                    f'post_execute={len(self._post_execute)}, '
                    f'unhandled_exception={len(self._unhandled_exception)})')
