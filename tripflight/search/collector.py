import asyncio
import json
import logging
from pathlib import Path
from typing import Iterable

from ..models import RouteResult


class ResultsCollector:
    """Append-only store of finished route results shared by all workers.

    The list and the running count only change together under ``_lock``. When a checkpoint path is
    given, every append also rewrites the JSON snapshot inside the same critical section, so the
    file never lags behind or skips a batch.
    """

    def __init__(self, checkpoint_path: Path | None = None):
        self._results: list[RouteResult] = []
        self._count = 0
        self._lock = asyncio.Lock()
        self.checkpoint_path = checkpoint_path

    @property
    def count(self) -> int:
        return self._count

    async def append(self, results: Iterable[RouteResult]) -> None:
        batch = list(results)
        if not batch:
            return
        async with self._lock:
            self._results.extend(batch)
            self._count += len(batch)
            if self.checkpoint_path is not None:
                records = [r.to_record() for r in self._results]
                await asyncio.to_thread(self._write_checkpoint, self.checkpoint_path, records)
        logging.debug("Collected %s result(s), %s in total", len(batch), self._count)

    @staticmethod
    def _write_checkpoint(path: Path, records: list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + '.tmp')
        tmp.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding='utf-8')
        tmp.replace(path)

    def get_all(self) -> list[RouteResult]:
        return list(self._results)

    def get_all_sorted(self) -> list[RouteResult]:
        return sorted(self._results, key=lambda r: r.total_price)

    def is_limit_reached(self, max_results: int | None) -> bool:
        if max_results is None:
            return False
        return self._count >= max_results

    def clear(self) -> None:
        self._results.clear()
        self._count = 0
