import asyncio
from asyncio import TaskGroup, Semaphore
from typing import Coroutine


class Throttler:
    """Limits how many coroutines of a TaskGroup run at the same time.

    schedule() waits for a free slot before adding the coroutine to the group, so a
    producer looping over thousands of files never holds more than `concurrency`
    pending tasks.
    """

    def __init__(self, task_group: TaskGroup, concurrency: int):
        if concurrency < 1:
            raise ValueError(f"concurrency must be positive: {concurrency}")

        self._task_group = task_group
        self._semaphore = Semaphore(concurrency)

    async def schedule(self, coro: Coroutine, name: str | None = None) -> asyncio.Task:
        """Start coro in the task group once a slot is free.

        Args:
            coro: The coroutine to execute
            name: Optional name for the task

        Returns:
            The created asyncio.Task
        """
        try:
            await self._semaphore.acquire()
        except BaseException:
            coro.close()
            raise

        async def wrapper():
            try:
                return await coro
            finally:
                self._semaphore.release()

        try:
            return self._task_group.create_task(wrapper(), name=name)
        except BaseException:
            self._semaphore.release()
            coro.close()
            raise
