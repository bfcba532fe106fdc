import asyncio
import time

import pytest

from fontdoc.core.threading import OperationCancelled, runInThread


def work(value, cancelEvent):
    for _ in range(100):
        if cancelEvent.is_set():
            raise OperationCancelled()
        time.sleep(0.005)
    return value


@pytest.mark.asyncio
async def test_runInThread():
    assert "done" == await runInThread(work, "done")


@pytest.mark.asyncio
async def test_runInThreadCancelled():
    finished = []

    def recordingWork(cancelEvent):
        try:
            work(None, cancelEvent)
        finally:
            finished.append(cancelEvent.is_set())

    task = asyncio.create_task(runInThread(recordingWork))
    await asyncio.sleep(0.02)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    # The worker stopped before the cancellation reached the caller
    assert [True] == finished
