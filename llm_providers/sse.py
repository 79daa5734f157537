"""Parsing helpers for line-delimited streaming responses."""

from __future__ import annotations

import json
import logging
from typing import Dict, Iterable, Iterator, Union

logger = logging.getLogger(__name__)

_SKIPPED_FIELDS = ("event:", "id:", "retry:", ":")


def iter_event_data(lines: Iterable[Union[bytes, str]]) -> Iterator[Dict[str, object]]:
    """Yield decoded JSON payloads from server-sent-event style lines.

    Both ``data: {...}`` lines and bare JSON lines are accepted. Blank lines,
    the ``[DONE]`` sentinel and non-data fields are skipped.
    """
    for raw_line in lines:
        if not raw_line:
            continue
        line = raw_line.decode("utf-8") if isinstance(raw_line, bytes) else raw_line
        line = line.strip()
        if line.startswith("data:"):
            line = line[5:].strip()
        elif line.startswith(_SKIPPED_FIELDS):
            continue
        if not line or line == "[DONE]":
            continue

        try:
            payload = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON stream line: %s", line)
            continue

        if isinstance(payload, dict):
            yield payload
        else:
            logger.debug("Skipping non-object stream payload: %s", line)
