import asyncio
import logging
from inspect import isawaitable
from typing import Any, Callable, Coroutine, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class AsyncTask:
    """
    Schedules handlers on the running event loop and reports their outcome
    through callbacks instead of raising.
    """

    @staticmethod
    def has_running_loop() -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True

    @staticmethod
    def run(
            handler: Callable,
            args: Tuple = (),
            kwargs: Dict = None,
            on_success: Optional[Callable[[Any], None]] = None,
            on_error: Optional[Callable[[Exception], None]] = None,
            on_complete: Optional[Callable[[], None]] = None,
    ) -> asyncio.Task:
        """
        Run a handler as a task with callbacks for success, error, and completion.

        Args:
            handler: Callable returning an awaitable, or a plain value for
                     handlers that settle immediately
            args: Positional arguments to pass to the handler
            kwargs: Keyword arguments to pass to the handler
            on_success: Callback that receives the result when successful
            on_error: Callback that receives the exception when failed
            on_complete: Callback called regardless of success/failure

        Returns:
            The created asyncio.Task object. The task never raises; it resolves
            to the handler's result, or None when the handler failed.

        Raises:
            RuntimeError: If no event loop is running; see ``run_sync``.
        """
        return asyncio.create_task(AsyncTask._wrap(handler, args, kwargs, on_success, on_error, on_complete))

    @staticmethod
    def run_sync(
            handler: Callable,
            args: Tuple = (),
            kwargs: Dict = None,
            on_success: Optional[Callable[[Any], None]] = None,
            on_error: Optional[Callable[[Exception], None]] = None,
            on_complete: Optional[Callable[[], None]] = None,
    ) -> Any:
        """
        Same contract as ``run`` for callers without a running loop: the
        handler runs to completion on a fresh loop before this returns.
        """
        return asyncio.run(AsyncTask._wrap(handler, args, kwargs, on_success, on_error, on_complete))

    @staticmethod
    def _wrap(handler, args, kwargs, on_success, on_error, on_complete) -> Coroutine:
        if kwargs is None:
            kwargs = {}

        async def _wrapped():
            try:
                result = handler(*args, **kwargs)
                if isawaitable(result):
                    result = await result

                if on_success is not None:
                    on_success(result)

                return result
            except Exception as e:
                if on_error is not None:
                    on_error(e)
                else:
                    logger.warning("Unhandled error in %r", handler, exc_info=e)
                return None
            finally:
                if on_complete is not None:
                    on_complete()

        return _wrapped()
