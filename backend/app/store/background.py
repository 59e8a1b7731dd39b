import asyncio
from typing import Coroutine, Set

from utils.logger import get_logger

logger = get_logger(__name__)

class BackgroundTasks:
    """
    結果を待たない (fire-and-forget) 処理の置き場。
    失敗はログに残して握りつぶし、drain() でまとめて待てるようにしておく。
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine, label: str = "background task"):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; skipped {label}")
            coro.close()
            return None

        task = loop.create_task(self._wrapper(coro, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _wrapper(self, coro: Coroutine, label: str):
        try:
            await coro
        except asyncio.CancelledError:
            logger.debug(f"{label} cancelled")
            raise
        except Exception as e:
            logger.warning(f"{label} failed: {e}")

    async def drain(self):
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self):
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
