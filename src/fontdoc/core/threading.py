import asyncio
import atexit
import concurrent.futures
import threading
from functools import partial

_threadPool = None


class OperationCancelled(Exception):
    pass


async def runInThread(func, *args):
    """Run `func(*args)` in the shared worker pool.

    `func` receives a `cancelEvent` keyword argument, a threading.Event that is
    set when the awaiting task gets cancelled. The worker is expected to check
    it between units of work and raise OperationCancelled.
    """
    global _threadPool

    if _threadPool is None:
        _threadPool = concurrent.futures.ThreadPoolExecutor(
            thread_name_prefix="fontdoc-worker"
        )

    loop = asyncio.get_running_loop()
    cancelEvent = threading.Event()
    future = loop.run_in_executor(
        _threadPool, partial(func, *args, cancelEvent=cancelEvent)
    )
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        cancelEvent.set()
        # Wait for the worker to notice, so no write is in flight when the
        # cancellation reaches the caller
        try:
            await future
        except OperationCancelled:
            pass
        raise


def shutdownThreadPool():
    global _threadPool

    if _threadPool is not None:
        _threadPool.shutdown()
        _threadPool = None


atexit.register(shutdownThreadPool)
