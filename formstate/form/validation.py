import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Set, Union

from formstate.exceptions import FormConfigError
from formstate.form.errors import FormErrors, flatten_errors
from formstate.utils.async_task import Debouncer, has_running_loop, maybe_await, run_async

logger = logging.getLogger(__name__)

# Time in milliseconds to wait before running debounced validation
DEFAULT_DEBOUNCE_MS = 300

ValidateDebounce = Union[None, bool, int, float, Dict[str, Any]]


def get_debounce_values(debounce: ValidateDebounce, default_wait: float = DEFAULT_DEBOUNCE_MS,
                        default_leading: bool = False) -> Optional[Dict[str, Any]]:
    """
    Normalizes a ``validate_debounce`` option.

    Args:
        debounce: ``None``/``False``/``0`` to disable, ``True`` for the defaults,
            a number of milliseconds, or a dict with ``wait`` and/or ``leading``
        default_wait: Wait used when the option does not give one
        default_leading: Leading flag used when the option does not give one

    Returns:
        ``None`` when debouncing is disabled, otherwise ``{"wait": ..., "leading": ...}``
    """
    if debounce is None or debounce is False:
        return None

    if debounce is True:
        wait, leading = default_wait, default_leading
    elif isinstance(debounce, (int, float)):
        if debounce == 0:
            return None
        wait, leading = debounce, default_leading
    elif isinstance(debounce, dict):
        unknown = set(debounce) - {"wait", "leading"}
        if unknown:
            raise FormConfigError(f"Unknown debounce options: {', '.join(sorted(unknown))}")
        wait = debounce.get("wait", default_wait)
        leading = bool(debounce.get("leading", default_leading))
        if isinstance(wait, bool) or not isinstance(wait, (int, float)):
            raise FormConfigError(f"Debounce wait must be a number of milliseconds, got {wait!r}")
    else:
        raise FormConfigError(f"Invalid validate_debounce value: {debounce!r}")

    if wait < 0:
        raise FormConfigError(f"Debounce wait must not be negative, got {wait}")

    return {"wait": wait, "leading": leading}


class ValidationRunner:
    """
    Runs the form validator without letting a superseded run overwrite a newer one.

    Every request takes the next sequence number. When a run completes, its
    result is applied only if no newer request was made in the meantime;
    otherwise it is dropped. The validator and the values are read when the
    run executes, not when it was requested.

    Args:
        get_validator: Returns the current validator, or ``None``
        get_values: Returns the current value tree
        on_result: Called with ``(values, flat_errors)`` when the latest run completes
        on_validating: Called with ``True``/``False`` as validation starts and settles
        on_error: Receives exceptions from background runs
        debounce: Normalized debounce settings, see ``get_debounce_values``
    """

    def __init__(self,
                 get_validator: Callable[[], Optional[Callable]],
                 get_values: Callable[[], Any],
                 on_result: Callable[[Any, FormErrors], None],
                 on_validating: Callable[[bool], None],
                 on_error: Callable[[Exception], None],
                 debounce: Optional[Dict[str, Any]] = None):
        self._get_validator = get_validator
        self._get_values = get_values
        self._on_result = on_result
        self._on_validating = on_validating
        self._on_error = on_error
        self._counter = 0
        self._debounce: Optional[Dict[str, Any]] = None
        self._debouncer: Optional[Debouncer] = None
        self._tasks: Set[asyncio.Task] = set()
        self.configure(debounce)

    def is_latest(self, seq: int) -> bool:
        return seq == self._counter

    def configure(self, debounce: Optional[Dict[str, Any]]) -> None:
        """
        Swaps the debounce settings.

        Unchanged settings leave the current debouncer alone. Otherwise a
        request still waiting on the old debouncer is handed to the new one.
        """
        debounce = debounce or None
        if debounce == self._debounce:
            return
        self._debounce = debounce

        pending = self._debouncer.cancel() if self._debouncer is not None else None
        if debounce:
            self._debouncer = Debouncer(self._start, debounce["wait"], debounce["leading"])
        else:
            self._debouncer = None

        if pending is not None and self.is_latest(pending[0]):
            if has_running_loop():
                self._dispatch(pending[0])
            else:
                logger.warning("No running event loop, pending validation run %d was dropped", pending[0])
                self._on_validating(False)

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def schedule(self) -> int:
        """
        Requests a background validation run, debounced if configured.

        Without debounce the run is started as a task, so the validator is
        first called on the next pass of the event loop rather than inside
        this call. Must be called with a running event loop.
        """
        seq = self._next()
        self._on_validating(True)
        logger.debug("Scheduled validation run %d", seq)
        self._dispatch(seq)
        return seq

    def _dispatch(self, seq: int) -> None:
        if self._debouncer is not None:
            self._debouncer(seq)
        else:
            self._start(seq)

    async def run_now(self) -> FormErrors:
        """Runs validation immediately, bypassing debounce."""
        seq = self._next()
        self._on_validating(True)
        return await self._run(seq)

    def invalidate(self) -> None:
        """Marks every requested or in-flight run as stale."""
        self._next()
        if self._debouncer is not None:
            self._debouncer.cancel()
        self._on_validating(False)

    def _start(self, seq: int) -> None:
        if not self.is_latest(seq):
            logger.debug("Skipping validation run %d, superseded by %d", seq, self._counter)
            return
        task = run_async(self._run, args=(seq,), on_error=self._on_error)
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, seq: int) -> FormErrors:
        validator = self._get_validator()
        values = self._get_values()

        if validator is None:
            if self.is_latest(seq):
                self._on_validating(False)
            return {}

        try:
            result = await maybe_await(validator(values))
        except Exception:
            if self.is_latest(seq):
                self._on_validating(False)
            raise

        errors = flatten_errors(result)
        if self.is_latest(seq):
            self._on_result(values, errors)
            self._on_validating(False)
        else:
            logger.debug("Discarding stale validation run %d, latest is %d", seq, self._counter)
        return errors
