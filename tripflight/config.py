"""Configuration utilities.

Central place to load environment driven settings (search widths, browser options, output paths,
email credentials). Avoids scattering os.getenv calls around the codebase.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env once on module import
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_path(name: str) -> Path | None:
    value = os.getenv(name)
    return Path(value) if value else None


@dataclass(slots=True)
class Settings:
    # Search engine
    top_k: int = int(os.getenv("TOP_FLIGHTS_LIMIT", "10"))
    max_concurrency: int = int(os.getenv("MAX_CONCURRENCY", "3"))
    fetch_timeout_secs: float = float(os.getenv("FETCH_TIMEOUT_SECS", "60"))
    max_task_retries: int = int(os.getenv("MAX_TASK_RETRIES", "2"))
    # Browser / site
    headless: bool = _env_flag("HEADLESS", "true")
    proxy_server: str | None = os.getenv("PROXY_SERVER")
    site_host: str = os.getenv("SITE_HOST", "tw.trip.com")
    locale: str = os.getenv("LOCALE", "zh-TW")
    currency: str = os.getenv("CURRENCY", "TWD")
    debug_dump_dir: Path | None = _env_path("DEBUG_DUMP_DIR")
    # Input / output
    input_json: Path = Path(os.getenv("INPUT_JSON", "input.json"))
    output_json: Path = Path(os.getenv("OUTPUT_JSON", "route_results.json"))
    output_html: Path = Path(os.getenv("OUTPUT_HTML", "route_results.html"))
    results_checkpoint: Path | None = _env_path("RESULTS_CHECKPOINT")
    log_file: Path | None = _env_path("LOG_FILE")
    # Email
    src_mail: str | None = os.getenv("SRC_MAIL")
    src_pwd: str | None = os.getenv("SRC_PWD")
    dst_mail: str | None = os.getenv("DST_MAIL")

    def email_configured(self) -> bool:
        return all([self.src_mail, self.src_pwd, self.dst_mail])


settings = Settings()
