import logging
from typing import Callable, Any, Dict, Optional

from formstate.exceptions import global_error_handler
from formstate.utils.equality import deep_equal

logger = logging.getLogger(__name__)

# Global state for reactive system
_current_effect = None
_batch_depth = 0
_pending_effects: Dict["Effect", None] = {}
_global_error_handler = global_error_handler


def set_global_error_handler(handler: Optional[Callable[..., None]]):
    """Sets a global error handler for uncaught exceptions."""
    global _global_error_handler
    _global_error_handler = handler


def handle_error(error, message):
    if _global_error_handler:
        _global_error_handler(error, message)
    else:
        logger.error("%s: %s", message, error)


def batch_updates(fn: Callable[[], Any]) -> Any:
    """
    Runs ``fn`` with effect notifications deferred until the outermost batch ends.

    Signal writes inside the batch take effect immediately, so reads made later
    in the same batch observe them. Each dependent effect runs at most once
    when the batch closes, however many of its signals changed.
    """
    global _batch_depth
    _batch_depth += 1
    try:
        return fn()
    finally:
        _batch_depth -= 1
        if _batch_depth == 0:
            _flush_pending()


def _flush_pending():
    while _pending_effects:
        effects = list(_pending_effects)
        _pending_effects.clear()
        for effect in effects:
            effect.run()


def _schedule(effect: "Effect"):
    effect.dirty = True
    if _batch_depth:
        _pending_effects[effect] = None
    else:
        effect.run()


class Signal:
    __slots__ = ('_subscribers', '_value', '__weakref__')

    def __init__(self, initial_value: Any):
        self._subscribers: Dict["Effect", None] = {}
        self._value = initial_value

    def __call__(self) -> Any:
        if _current_effect is not None and not _current_effect.disposed:
            self._subscribers[_current_effect] = None
            _current_effect.dependencies.add(self)
        return self._value

    get = __call__

    def peek(self) -> Any:
        return self._value

    def set(self, new_value: Any) -> None:
        try:
            if deep_equal(self._value, new_value):
                return
        except (TypeError, ValueError):
            # Values whose __eq__ refuses to compare are always treated as changed
            pass

        self._value = new_value
        for subscriber in list(self._subscribers):
            try:
                _schedule(subscriber)
            except Exception as e:
                handle_error(e, f"Error notifying subscriber: {subscriber}")

    def _unsubscribe(self, effect: "Effect"):
        self._subscribers.pop(effect, None)

    def __repr__(self):
        return f"Signal({self._value!r})"


def create_signal(initial_value: Any):
    signal = Signal(initial_value)
    return signal, signal.set


def unwrap(value: Any) -> Any:
    """
    Unwraps a Signal to get its value, or returns the value if it's not a Signal.
    """
    if isinstance(value, Signal):
        return value()
    return value


class Effect:
    __slots__ = ('fn', 'dependencies', 'is_running', 'disposed',
                 'dirty', '_error_count', '_max_errors', '__weakref__')

    def __init__(self, fn: Callable[[], Any]):
        self.fn = fn
        self.dependencies: set = set()
        self.is_running = False
        self.disposed = False
        self.dirty = False
        self._error_count = 0
        self._max_errors = 5  # Maximum number of consecutive errors before stopping

    def run(self):
        if self.disposed or self.is_running:
            return
        if self._error_count >= self._max_errors:
            logger.warning("Effect %r disabled after %d consecutive errors", self.fn, self._error_count)
            self.dispose()
            return

        global _current_effect
        self.is_running = True
        self.dirty = False
        prev_effect = _current_effect
        _current_effect = self

        self._cleanup()

        try:
            self.fn()
            self._error_count = 0
        except Exception as e:
            self._error_count += 1
            handle_error(e, "Error running effect")
        finally:
            _current_effect = prev_effect
            self.is_running = False

    def _cleanup(self):
        for signal in list(self.dependencies):
            signal._unsubscribe(self)
        self.dependencies.clear()

    def dispose(self):
        if self.disposed:
            return
        self.disposed = True
        _pending_effects.pop(self, None)
        self._cleanup()


def create_effect(fn: Callable[[], Any]) -> Effect:
    effect = Effect(fn)
    effect.run()
    return effect


def untrack(fn: Callable[[], Any]) -> Any:
    global _current_effect
    if not callable(fn):
        raise TypeError(f"untrack: expected callable, got {type(fn).__name__}")
    prev_effect = _current_effect
    _current_effect = None
    try:
        return fn()
    finally:
        _current_effect = prev_effect
