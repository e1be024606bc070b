import json
import logging
from typing import Any


def parse_sse_payload(text: str) -> dict[str, Any] | None:
    """Return the last JSON object sent as an SSE ``data:`` line, or None when there is none.

    Bodies without any ``data:`` line are treated as plain JSON.
    """
    payload = None
    saw_data_line = False
    for line in text.splitlines():
        if not line.startswith('data:'):
            continue
        saw_data_line = True
        data = line[5:].strip()
        if not data:
            continue
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logging.warning("Failed to parse SSE line: %s", line[:100])
    if saw_data_line:
        return payload if isinstance(payload, dict) else None
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        logging.warning("Response body is neither SSE nor JSON (%s chars)", len(text))
        return None
    return payload if isinstance(payload, dict) else None
