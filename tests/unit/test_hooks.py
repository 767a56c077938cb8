import threading

from sequelocity.configuration import clear_default_configuration_settings
from sequelocity.configuration import configuration_settings
from sequelocity.hooks import EventHandlers


def test_hooks_run_in_registration_order():
    handlers = EventHandlers()
    calls = []
    handlers.add_pre_execute(lambda cmd: calls.append(('first', cmd)))
    handlers.add_pre_execute(lambda cmd: calls.append(('second', cmd)))

    handlers.invoke_pre_execute('cmd')

    assert calls == [('first', 'cmd'), ('second', 'cmd')]


def test_add_returns_hook_for_decorator_use():
    handlers = EventHandlers()

    @handlers.add_post_execute
    def on_done(cmd):
        pass

    assert handlers.post_execute == (on_done,)


def test_error_hooks_receive_error_and_command():
    handlers = EventHandlers()
    seen = []
    handlers.add_unhandled_exception(lambda err, cmd: seen.append((err, cmd)))
    error = RuntimeError('boom')

    handlers.invoke_unhandled_exception(error, 'cmd')

    assert seen == [(error, 'cmd')]


def test_registration_during_invocation_applies_next_time():
    handlers = EventHandlers()
    calls = []

    def register_another(cmd):
        calls.append('outer')
        handlers.add_pre_execute(lambda c: calls.append('inner'))

    handlers.add_pre_execute(register_another)
    handlers.invoke_pre_execute(None)
    assert calls == ['outer']

    calls.clear()
    handlers.invoke_pre_execute(None)
    assert calls == ['outer', 'inner']


def test_concurrent_registration():
    handlers = EventHandlers()

    def register():
        for _ in range(100):
            handlers.add_post_execute(lambda cmd: None)

    threads = [threading.Thread(target=register) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(handlers.post_execute) == 400


def test_clear():
    handlers = EventHandlers()
    handlers.add_pre_execute(lambda cmd: None)
    handlers.add_unhandled_exception(lambda err, cmd: None)
    handlers.clear()
    assert handlers.pre_execute == ()
    assert handlers.unhandled_exception == ()


def test_clear_default_configuration_settings():
    configuration_settings.set_default({'drivername': 'sqlite', 'database': 'app.db'})
    configuration_settings.event_handlers.add_pre_execute(lambda cmd: None)

    clear_default_configuration_settings()

    assert configuration_settings.default.connection is None
    assert configuration_settings.default.config is None
    assert configuration_settings.event_handlers.pre_execute == ()
