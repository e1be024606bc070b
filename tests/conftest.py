import pytest

from tripflight.config import Settings


@pytest.fixture
def settings(tmp_path):
    """Settings detached from the environment, outputs in tmp_path."""
    return Settings(
        top_k=10,
        max_concurrency=3,
        fetch_timeout_secs=5,
        max_task_retries=2,
        headless=True,
        proxy_server=None,
        debug_dump_dir=None,
        input_json=tmp_path / "input.json",
        output_json=tmp_path / "route_results.json",
        output_html=tmp_path / "route_results.html",
        results_checkpoint=None,
        log_file=None,
        src_mail=None,
        src_pwd=None,
        dst_mail=None,
    )
