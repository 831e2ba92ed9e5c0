import asyncio
import logging
from inspect import isawaitable
from typing import Callable, Any, Optional, Tuple, Dict

logger = logging.getLogger(__name__)


async def maybe_await(result: Any) -> Any:
    """Awaits ``result`` if it is awaitable, otherwise returns it unchanged."""
    if isawaitable(result):
        return await result
    return result


def has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class AsyncTask:
    """
    Helpers for running coroutines in the background with callbacks.
    """

    @staticmethod
    def run(
            coroutine_func: Callable,
            args: Tuple = (),
            kwargs: Dict = None,
            on_success: Optional[Callable] = None,
            on_error: Optional[Callable] = None,
            on_complete: Optional[Callable] = None,
    ) -> asyncio.Task:
        """
        Run an asynchronous function with callbacks for success, error, and completion.

        Args:
            coroutine_func: The async function to run
            args: Positional arguments to pass to the function
            kwargs: Keyword arguments to pass to the function
            on_success: Callback function that receives the result when successful
            on_error: Callback function that receives the exception when failed.
                If omitted, the exception is left on the task.
            on_complete: Callback function called regardless of success/failure

        Returns:
            The created asyncio.Task object
        """
        if kwargs is None:
            kwargs = {}

        async def _wrapped_coroutine():
            try:
                result = await coroutine_func(*args, **kwargs)
                if on_success is not None:
                    on_success(result)
                return result
            except Exception as e:
                if on_error is None:
                    raise
                on_error(e)
                return None
            finally:
                if on_complete is not None:
                    on_complete()

        return asyncio.create_task(_wrapped_coroutine())

    @staticmethod
    def cancel_task(task: Optional[asyncio.Task]) -> bool:
        """
        Cancel a pending task.

        Returns:
            True if task was pending and is now cancelled, False otherwise
        """
        if task is None or task.done():
            return False
        task.cancel()
        return True


run_async = AsyncTask.run
cancel_async = AsyncTask.cancel_task


class Debouncer:
    """
    Collapses bursts of calls into a single call.

    Trailing mode (the default) calls ``func`` with the most recent arguments
    once ``wait_ms`` passes without a new call. With ``leading=True`` the first
    call of a quiet window runs immediately, and any further calls inside the
    window collapse into one trailing call. Every call restarts the window.
    """

    def __init__(self, func: Callable[..., Any], wait_ms: float, leading: bool = False):
        self.func = func
        self.wait_ms = wait_ms
        self.leading = leading
        self._timer: Optional[asyncio.Task] = None
        self._pending_args: Optional[Tuple] = None

    def __call__(self, *args) -> None:
        window_open = self._timer is not None and not self._timer.done()
        cancel_async(self._timer)

        if self.leading and not window_open:
            self._pending_args = None
            self._timer = asyncio.ensure_future(self._wait())
            self.func(*args)
            return

        self._pending_args = args
        self._timer = asyncio.ensure_future(self._wait())

    async def _wait(self):
        await asyncio.sleep(self.wait_ms / 1000)  # Convert ms to seconds
        args, self._pending_args = self._pending_args, None
        self._timer = None
        if args is not None:
            self.func(*args)

    def cancel(self) -> Optional[Tuple]:
        """Drops the pending call and returns its arguments, or None if there was none."""
        cancel_async(self._timer)
        args, self._pending_args = self._pending_args, None
        self._timer = None
        return args
