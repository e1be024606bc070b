"""Bounded asyncio worker pool that drives stage tasks through the orchestrator.

Deeper stages are dequeued first, so branches that already started drain before a new top-level
branch is opened. The result limit is only checked when a top-level task comes up: in-flight
branches always finish, which can overshoot the limit by what the running branches still produce.
"""
import asyncio
import itertools
import logging
from dataclasses import dataclass

from tqdm import tqdm

from ..errors import MissingDataError, SpliceNotFoundError
from .collector import ResultsCollector
from .orchestrator import SearchOrchestrator
from .tasks import StageTask, describe_task


@dataclass(slots=True)
class PoolStats:
    processed: int = 0
    failed: int = 0
    retried: int = 0
    skipped: int = 0


@dataclass(slots=True)
class _QueuedTask:
    task: StageTask
    attempt: int = 0


class WorkerPool:
    def __init__(
            self,
            orchestrator: SearchOrchestrator,
            collector: ResultsCollector,
            concurrency: int = 3,
            max_retries: int = 2,
            max_results: int | None = None,
            show_progress: bool = True,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        self.orchestrator = orchestrator
        self.collector = collector
        self.concurrency = concurrency
        self.max_retries = max_retries
        self.max_results = max_results
        self.show_progress = show_progress
        self.stats = PoolStats()
        self._queue: asyncio.PriorityQueue | None = None
        self._seq = itertools.count()
        self._progress: tqdm | None = None

    def enqueue(self, tasks: list[StageTask]) -> None:
        for task in tasks:
            self._put(_QueuedTask(task))
        if self._progress is not None and tasks:
            self._progress.total += len(tasks)
            self._progress.refresh()

    def _put(self, item: _QueuedTask) -> None:
        # PriorityQueue pops the smallest entry: deepest stage first, then FIFO
        self._queue.put_nowait((-item.task.stage.depth, next(self._seq), item))

    async def run(self, root_tasks: list[StageTask]) -> PoolStats:
        self._queue = asyncio.PriorityQueue()
        self.stats = PoolStats()
        self._progress = tqdm(total=0, desc="Stage tasks", unit="task", disable=not self.show_progress)
        self.enqueue(root_tasks)
        workers = [asyncio.create_task(self._worker(n)) for n in range(self.concurrency)]
        try:
            await self._queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            self._progress.close()
            self._progress = None
        logging.info(
            f"Worker pool finished: {self.stats.processed} processed, {self.stats.failed} failed, "
            f"{self.stats.retried} retried, {self.stats.skipped} skipped"
        )
        return self.stats

    async def _worker(self, number: int) -> None:
        while True:
            _, _, item = await self._queue.get()
            try:
                await self._process(item)
            finally:
                self._queue.task_done()

    async def _process(self, item: _QueuedTask) -> None:
        task = item.task
        label = describe_task(task)
        if task.stage.is_root and self.collector.is_limit_reached(self.max_results):
            logging.info(f"Result limit {self.max_results} reached, skipping {label}")
            self.stats.skipped += 1
            self._progress.update(1)
            return
        try:
            children = await self.orchestrator.handle(task)
        except SpliceNotFoundError as exc:
            logging.error(f"{label}: branch dropped: {exc}")
            self.stats.failed += 1
        except MissingDataError as exc:
            if item.attempt < self.max_retries:
                logging.warning(f"{label}: {exc} (retry {item.attempt + 1}/{self.max_retries})")
                self.stats.retried += 1
                self._put(_QueuedTask(task, item.attempt + 1))
                return
            logging.error(f"{label}: giving up after {item.attempt + 1} attempt(s): {exc}")
            self.stats.failed += 1
        except Exception:  # noqa: BLE001
            logging.exception(f"{label}: stage task failed")
            self.stats.failed += 1
        else:
            self.stats.processed += 1
            self.enqueue(children)
        self._progress.update(1)
