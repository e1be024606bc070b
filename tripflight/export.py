"""Result sinks: called once per run with the price-sorted route results."""
import json
import logging
from pathlib import Path
from typing import Protocol

from .models import RouteResult
from .processing.report import render_results_html


class ResultSink(Protocol):
    def persist(self, results: list[RouteResult]) -> Path: ...


class JsonResultSink:
    def __init__(self, path: Path):
        self.path = path

    def persist(self, results: list[RouteResult]) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        records = [r.to_record() for r in results]
        self.path.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding='utf-8')
        logging.info(f"Saved {len(records)} route result(s) to {self.path}")
        return self.path


class HtmlReportSink:
    def __init__(self, path: Path, currency: str = 'TWD'):
        self.path = path
        self.currency = currency
        self.html: str | None = None

    def persist(self, results: list[RouteResult]) -> Path:
        self.html = render_results_html(results, currency=self.currency)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.html, encoding='utf-8')
        logging.info(f"HTML report written to {self.path}")
        return self.path
