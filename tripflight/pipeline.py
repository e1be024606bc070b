"""High-level orchestration: load the search input, run the staged search, write the results.

Usage patterns:

1. One-off run with the input file from INPUT_JSON (or --input):
   python -m tripflight.pipeline --input input.json --html

2. Daily run at a fixed time:
   python -m tripflight.pipeline --schedule-at 07:30 --html --email
"""
import argparse
import asyncio
import json
import logging
import time
from datetime import date
from pathlib import Path
from typing import Any, Sequence

import dacite
import schedule

from .config import Settings, settings as default_settings
from .emailer import send_results_email
from .errors import ValidationError
from .export import HtmlReportSink, JsonResultSink, ResultSink
from .logging_config import setup_logging
from .models import AlternativeSearchContext, CabinClass, RouteResult, SearchContext, SearchInput
from .search.collector import ResultsCollector
from .search.orchestrator import PageFetcher, SearchOrchestrator
from .search.scheduler import WorkerPool
from .search.tasks import Leg1OutboundTask, OutboundTask, StageTask
from .scraping.trip_fetcher import TripPageFetcher

_INPUT_CONFIG = dacite.Config(type_hooks={date: date.fromisoformat}, cast=[CabinClass])


# ---------------- input -----------------
def parse_search_input(data: dict[str, Any]) -> SearchInput:
    try:
        search_input = dacite.from_dict(data_class=SearchInput, data=data, config=_INPUT_CONFIG)
    except (dacite.DaciteError, ValueError) as exc:
        raise ValidationError(f"Invalid search input: {exc}") from exc
    validate_search_input(search_input)
    return search_input


def load_search_input(path: Path) -> SearchInput:
    if not path.exists():
        raise ValidationError(f"Input file {path} not found.")
    with open(path, 'rt', encoding='utf-8') as f:
        logging.info(f"Loading search input {path}")
        return parse_search_input(json.load(f))


def validate_search_input(search_input: SearchInput) -> None:
    if not search_input.departure_city or not search_input.target_city:
        raise ValidationError("departure_city and target_city are required")
    if not search_input.time_periods:
        raise ValidationError("at least one time period is required")
    for period in search_input.time_periods:
        if period.inbound_date < period.outbound_date:
            raise ValidationError(f"inbound date {period.inbound_date} is before outbound date {period.outbound_date}")
    if not 1 <= search_input.passengers <= 9:
        raise ValidationError(f"passengers must be between 1 and 9, got {search_input.passengers}")
    if search_input.top_k is not None and search_input.top_k < 1:
        raise ValidationError(f"top_k must be positive, got {search_input.top_k}")
    if search_input.max_results is not None and search_input.max_results < 1:
        raise ValidationError(f"max_results must be positive, got {search_input.max_results}")


def build_root_tasks(search_input: SearchInput) -> list[StageTask]:
    """One direct branch per time period plus one alternative branch per (time period, intermediate city)."""
    tasks: list[StageTask] = []
    common = dict(
        departure_city=search_input.departure_city.upper(),
        destination_city=search_input.target_city.upper(),
        cabin_class=search_input.cabin_class,
        passengers=search_input.passengers,
        airlines=tuple(code.upper() for code in search_input.airlines),
    )
    for period in search_input.time_periods:
        dates = dict(outbound_date=period.outbound_date, inbound_date=period.inbound_date)
        tasks.append(OutboundTask(context=SearchContext(**common, **dates)))
        for intermediate in search_input.intermediate_cities:
            context = AlternativeSearchContext(**common, **dates, intermediate_city=intermediate.upper())
            tasks.append(Leg1OutboundTask(context=context))
    return tasks


# ---------------- search -----------------
async def run_search(
        search_input: SearchInput,
        fetcher: PageFetcher,
        settings: Settings | None = None,
        collector: ResultsCollector | None = None,
        show_progress: bool = True,
) -> list[RouteResult]:
    settings = settings or default_settings
    collector = collector or ResultsCollector(checkpoint_path=settings.results_checkpoint)
    top_k = search_input.top_k or settings.top_k
    orchestrator = SearchOrchestrator(fetcher, collector, top_k=top_k)
    pool = WorkerPool(
        orchestrator,
        collector,
        concurrency=settings.max_concurrency,
        max_retries=settings.max_task_retries,
        max_results=search_input.max_results,
        show_progress=show_progress,
    )
    root_tasks = build_root_tasks(search_input)
    logging.info(
        f"Searching {search_input.departure_city}->{search_input.target_city}: {len(root_tasks)} branch(es), "
        f"top {top_k}, limit {search_input.max_results or 'none'}, airlines {search_input.airlines or 'any'}"
    )
    await pool.run(root_tasks)
    return collector.get_all_sorted()


async def _search_with_browser(search_input: SearchInput, settings: Settings) -> list[RouteResult]:
    fetcher = TripPageFetcher(
        host=settings.site_host,
        fetch_timeout_secs=settings.fetch_timeout_secs,
        headless=settings.headless,
        proxy_server=settings.proxy_server,
        locale=settings.locale,
        currency=settings.currency,
        debug_dump_dir=settings.debug_dump_dir,
    )
    async with fetcher:
        return await run_search(search_input, fetcher, settings)


def publish_results(results: list[RouteResult], sinks: Sequence[ResultSink]) -> list[Path]:
    return [sink.persist(results) for sink in sinks]


def run_pipeline(
        input_path: Path,
        settings: Settings | None = None,
        top_k: int | None = None,
        max_results: int | None = None,
        html: bool = False,
        email: bool = False,
) -> list[RouteResult]:
    settings = settings or default_settings
    search_input = load_search_input(input_path)
    if top_k is not None:
        search_input.top_k = top_k
    if max_results is not None:
        search_input.max_results = max_results
    validate_search_input(search_input)

    results = asyncio.run(_search_with_browser(search_input, settings))
    logging.info(f"Search finished. Total results collected: {len(results)}")
    if not results:
        logging.warning("No flight results found")
        return results

    html_sink = HtmlReportSink(settings.output_html, currency=settings.currency)
    sinks: list[ResultSink] = [JsonResultSink(settings.output_json)]
    if html or email:
        sinks.append(html_sink)
    publish_results(results, sinks)

    cheapest = results[0]
    logging.info(f"Cheapest flight: {cheapest.total_price} {settings.currency} ({cheapest.pattern.value})")
    if email:
        send_results_email(results, html_sink.html or "", settings)
    return results


# ---------------- CLI -----------------
def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Trip.com round-trip fare search")
    p.add_argument("--input", type=Path, default=default_settings.input_json, help="Search input JSON file")
    p.add_argument("--top-k", type=int, default=None, help="Candidates kept per stage (overrides input/env)")
    p.add_argument("--max-results", type=int, default=None, help="Stop opening new branches after this many results")
    p.add_argument("--concurrency", type=int, default=None, help="Concurrent browser pages")
    p.add_argument("--output", type=Path, default=None, help=f"JSON output (default {default_settings.output_json})")
    p.add_argument("--html", action="store_true", help=f"Also write an HTML report ({default_settings.output_html})")
    p.add_argument("--email", action="store_true", help="Send the HTML report by email if credentials configured")
    p.add_argument("--log-level", default="INFO")
    p.add_argument(
        "--schedule-at",
        metavar="HH:MM",
        default=None,
        help="Run the search every day at the given time (e.g. 07:30). "
             "Without this flag the search runs once and exits.",
    )
    return p


def main_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, log_file=default_settings.log_file)

    run_settings = Settings()
    if args.concurrency is not None:
        run_settings.max_concurrency = args.concurrency
    if args.output is not None:
        run_settings.output_json = args.output

    pipeline_kwargs = dict(
        input_path=args.input,
        settings=run_settings,
        top_k=args.top_k,
        max_results=args.max_results,
        html=args.html,
        email=args.email,
    )

    def _run() -> None:
        try:
            run_pipeline(**pipeline_kwargs)
        except Exception:  # noqa: BLE001
            logging.exception("Pipeline failed")

    if args.schedule_at:
        logging.info(f"Scheduler started – search will run every day at {args.schedule_at}")
        _run()
        schedule.every().day.at(args.schedule_at).do(_run)
        while True:
            try:
                schedule.run_pending()
            except Exception:  # noqa: BLE001
                logging.exception("Scheduler error:")
                time.sleep(60 * 60)
            time.sleep(1)
    else:
        try:
            run_pipeline(**pipeline_kwargs)
        except ValidationError as exc:
            logging.error(f"Invalid input: {exc}")
            return 2
        except Exception:  # noqa: BLE001
            logging.exception("Pipeline failed")
            return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main_cli())
