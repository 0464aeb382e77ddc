"""
Period metrics over incident and requirement rows, and trends between two periods.

Shared by the analytics endpoint and the report generator. Metrics are computed
from the rows themselves so they do not depend on any database function.
"""
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from app.core.lifecycle import LifecycleConfig


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def hours_between(start: Any, end: Any) -> Optional[float]:
    started, finished = parse_timestamp(start), parse_timestamp(end)
    if started is None or finished is None:
        return None
    return (finished - started).total_seconds() / 3600


def period_metrics(rows: Iterable[Mapping[str, Any]], config: LifecycleConfig) -> Dict[str, Any]:
    """Total, one count per status, completion count, rate and mean hours to completion.

    Completed means any terminal status; the mean only covers rows that carry a
    completion timestamp.
    """
    rows = list(rows)
    total = len(rows)
    by_status = Counter(row.get("status") for row in rows)
    completed = [row for row in rows if row.get("status") in config.terminal_statuses]
    durations = [
        hours for hours in (hours_between(row.get("created_at"), row.get(config.completion_column)) for row in completed)
        if hours is not None
    ]

    metrics: Dict[str, Any] = {"total": total}
    for status in config.statuses:
        metrics[status] = by_status.get(status, 0)
    metrics["completed"] = len(completed)
    metrics["completion_rate"] = round(len(completed) / total * 100, 2) if total else 0.0
    metrics["avg_completion_hours"] = round(sum(durations) / len(durations), 2) if durations else 0.0
    metrics["by_priority"] = dict(Counter(row.get("priority") for row in rows if row.get("priority")))
    return metrics


def calculate_trends(current: Mapping[str, Any], previous: Mapping[str, Any]) -> Dict[str, Any]:
    """Change, percentage and direction for every number present in both periods.

    Nested sections are compared section by section. The percentage is 0 when
    the previous value was 0.
    """
    trends: Dict[str, Any] = {}
    for key, value in current.items():
        before = previous.get(key)
        if isinstance(value, Mapping) and isinstance(before, Mapping):
            nested = calculate_trends(value, before)
            if nested:
                trends[key] = nested
            continue
        if not _is_number(value) or not _is_number(before):
            continue
        change = value - before
        trends[key] = {
            "change": round(change, 2),
            "percentage": round(change / before * 100, 2) if before > 0 else 0.0,
            "direction": "up" if change > 0 else "down" if change < 0 else "stable",
        }
    return trends


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
