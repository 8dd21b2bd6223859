"""JSON output for analysis results and run reports."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any

from analysis.models import TypeCollection

logger = logging.getLogger(__name__)


def to_json(types: TypeCollection, pretty: bool = False) -> str:
    """Serialize ``types`` ordered by full name; empty fields are omitted."""
    payload = types.to_dict_list()
    if pretty:
        return json.dumps(payload, indent=2, ensure_ascii=False)
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def _ensure_parent_dir(path: str) -> None:
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)


def write_output(types: TypeCollection, path: str, pretty: bool = False) -> str:
    """Write the analysis output to ``path`` and return its absolute path."""
    _ensure_parent_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(to_json(types, pretty=pretty))
    logger.info("Wrote %d types to %s", len(types), path)
    return os.path.abspath(path)


def write_run_report(
    report: dict[str, Any],
    run_id: str,
    output_dir: str,
) -> str:
    """Write a JSON run report named after ``run_id`` and return its path."""
    os.makedirs(output_dir, exist_ok=True)
    payload = dict(report)
    payload.setdefault("run_id", run_id)
    payload.setdefault("timestamp_utc", datetime.now(timezone.utc).isoformat())
    path = os.path.join(output_dir, f"analysis-{run_id}.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)
    return path
