"""
Edit metrics — records edit outcomes in a JSONL log file.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

_METRICS_DIR = ".agent_toolkit"
_METRICS_FILE = "edit_metrics.jsonl"


def _metrics_path(project_root: str | None = None) -> str:
    """Return the absolute path to the metrics file."""
    base = project_root or os.getcwd()
    return os.path.join(base, _METRICS_DIR, _METRICS_FILE)


def log_edit_metric(data: dict, project_root: str | None = None) -> None:
    """Append a single edit metric entry to the JSONL log.

    Parameters
    ----------
    data:
        Metric fields to log (file, replacements, match_kind, confidence,
        success, error_kind).
    project_root:
        Optional project root directory. Defaults to CWD.
    """
    path = _metrics_path(project_root)
    entry = {"timestamp": datetime.now(timezone.utc).isoformat()}
    entry.update(data)

    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as exc:
        logger.warning("[Edit] Failed to write metrics: %s", exc)


def read_edit_stats(
    last_n: int = 50,
    project_root: str | None = None,
) -> dict:
    """Compute rolling statistics from the metrics log.

    Parameters
    ----------
    last_n:
        Number of most-recent entries to include.
    project_root:
        Optional project root directory.

    Returns
    -------
    dict
        ``total_edits``, ``success_rate``, ``approximate_rate``,
        ``avg_confidence``, ``avg_replacements`` and ``error_kinds``
        (percentage of failed edits per kind).
    """
    path = _metrics_path(project_root)

    entries: list[dict] = []
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        try:
                            entries.append(json.loads(line))
                        except json.JSONDecodeError:
                            continue
        except OSError as exc:
            logger.warning("[Edit] Failed to read metrics: %s", exc)

    entries = entries[-last_n:]

    if not entries:
        return {
            "total_edits": 0,
            "success_rate": 0.0,
            "approximate_rate": 0.0,
            "avg_confidence": 0.0,
            "avg_replacements": 0.0,
            "error_kinds": {},
        }

    total = len(entries)
    succeeded = [e for e in entries if e.get("success", False)]
    failed = [e for e in entries if not e.get("success", False)]
    approximate = sum(1 for e in succeeded if e.get("match_kind") == "approximate")
    confidences = [e["confidence"] for e in succeeded if "confidence" in e]
    replacements = [e.get("replacements", 0) for e in succeeded]
    kinds = Counter(e.get("error_kind", "unknown") for e in failed)

    return {
        "total_edits": total,
        "success_rate": len(succeeded) / total * 100,
        "approximate_rate": (
            approximate / len(succeeded) * 100 if succeeded else 0.0
        ),
        "avg_confidence": (
            sum(confidences) / len(confidences) if confidences else 0.0
        ),
        "avg_replacements": (
            sum(replacements) / len(replacements) if replacements else 0.0
        ),
        "error_kinds": {
            kind: count / len(failed) * 100
            for kind, count in kinds.most_common()
        },
    }
