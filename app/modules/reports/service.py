"""
Report generation.

A report row is created in status "processing", the matching incidents or
requirements are read for the date range, metrics are computed, and the result
is exported as CSV or JSON to the reports bucket. The row then moves to
"completed" with its download URL, or to "error" when any step fails.
"""
import csv
import io
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client

from app.config.settings import settings
from app.core.dependencies import ensure_privileged
from app.core.errors import InsertFailed, ProblemError, ValidationError
from app.core.lifecycle import utc_now
from app.core.repository import EntityRepository, ListQuery
from app.core.side_effects import ActivityLogEntry, SideEffectDispatcher
from app.modules.analytics.metrics import period_metrics
from app.modules.auth.schemas import Principal
from app.modules.incidents.service import INCIDENT_LIFECYCLE
from app.modules.reports.schemas import ReportRequest
from app.modules.requirements.service import REQUIREMENT_LIFECYCLE

logger = logging.getLogger(__name__)

CONTENT_TYPES = {"csv": "text/csv", "json": "application/json"}


def report_filename(report_id: Any, report_type: str, report_format: str, today: Optional[str] = None) -> str:
    """<reportId>-<type>-<YYYY-MM-DD>.<format>"""
    today = today or datetime.now(timezone.utc).date().isoformat()
    return f"{report_id}-{report_type}-{today}.{report_format}"


def to_csv(rows: List[Dict[str, Any]], metrics: Dict[str, Any]) -> str:
    """One line per row; a Metric,Value table when there are no rows."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    if not rows:
        writer.writerow(["Metric", "Value"])
        for key, value in metrics.items():
            writer.writerow([key, _cell(value)])
        return buffer.getvalue()

    headers: List[str] = []
    for row in rows:
        headers.extend(key for key in row if key not in headers)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(row.get(header)) for header in headers])
    return buffer.getvalue()


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return value


class ReportService:
    def __init__(
        self,
        supabase: Client,
        dispatcher: Optional[SideEffectDispatcher] = None,
        bucket: Optional[str] = None,
    ):
        self.supabase = supabase
        self.dispatcher = dispatcher
        self.bucket = bucket or settings.reports_bucket
        self.repository = EntityRepository(supabase, "reports", label="Report")
        self.sources = {
            config.table: (config, EntityRepository(supabase, config.table, config.view, label=config.label))
            for config in (INCIDENT_LIFECYCLE, REQUIREMENT_LIFECYCLE)
        }

    def get(self, report_id: str) -> Dict[str, Any]:
        return self.repository.get(report_id)

    def generate(self, principal: Principal, request: ReportRequest) -> Dict[str, Any]:
        ensure_privileged(principal)
        self._validate_filters(request)
        started = time.monotonic()
        report = self.repository.insert({
            "type": request.type,
            "format": request.format,
            "status": "processing",
            "parameters": request.model_dump(mode="json", by_alias=True),
            "requested_by": principal.id,
            "started_at": utc_now(),
        })
        report_id = report.get("id")
        logger.info(f"Report {report_id} ({request.type}/{request.format}) started by {principal.id}")

        try:
            data = self.collect(request)
            download_url = self._export(report_id, request, data)
        except ProblemError as e:
            self._mark_failed(report_id, e.detail)
            raise

        self.repository.update(report_id, {
            "status": "completed",
            "download_url": download_url,
            "summary": data["summary"],
            "metrics": data["metrics"],
            "completed_at": utc_now(),
            "processing_time_ms": int((time.monotonic() - started) * 1000),
        })
        logger.info(f"Report {report_id} completed with {data['summary']['total_records']} records")

        if self.dispatcher is not None:
            self.dispatcher.dispatch(ActivityLogEntry(
                type="report",
                action="generated",
                title="Report generated",
                description=f"{principal.describe()} generated a {request.type} report in {request.format} format",
                user_id=principal.id,
                item_id=report_id,
            ))
        return {
            "report_id": report_id,
            "status": "completed",
            "download_url": download_url,
            "summary": data["summary"],
        }

    def collect(self, request: ReportRequest) -> Dict[str, Any]:
        """Metrics, raw rows and summary for the request. Dashboard reports carry metrics only."""
        filters = request.filters
        start = request.date_range.start.isoformat()
        end = request.date_range.end.isoformat()
        summary: Dict[str, Any] = {
            "generated_at": utc_now(),
            "period": {"start": start, "end": end},
            "filters_applied": filters.model_dump(by_alias=True, exclude_none=True),
        }

        if request.type == "dashboard":
            metrics = {
                kind: period_metrics(self._rows(kind, start, end, filters.department_id, None, filters.priority), config)
                for kind, (config, _) in self.sources.items()
            }
            summary["total_records"] = 0
            return {"metrics": metrics, "raw_data": [], "summary": summary}

        config, _ = self.sources[request.type]
        rows = self._rows(request.type, start, end, filters.department_id, filters.status, filters.priority)
        summary["total_records"] = len(rows)
        return {"metrics": period_metrics(rows, config), "raw_data": rows, "summary": summary}

    def _rows(
        self,
        kind: str,
        start: str,
        end: str,
        department_id: Optional[int],
        status: Optional[str],
        priority: Optional[str],
    ) -> List[Dict[str, Any]]:
        config, repository = self.sources[kind]
        return repository.rows(ListQuery(
            equals={config.area_column: department_id, "status": status, "priority": priority},
            created_from=start,
            created_to=end,
        ))

    def _validate_filters(self, request: ReportRequest) -> None:
        status = request.filters.status
        if not status or request.type == "dashboard":
            return
        config, _ = self.sources[request.type]
        if status not in config.statuses:
            raise ValidationError(f"Invalid status. Allowed values: {', '.join(config.statuses)}")

    def _export(self, report_id: Any, request: ReportRequest, data: Dict[str, Any]) -> str:
        if request.format == "csv":
            content = to_csv(data["raw_data"], data["metrics"])
        else:
            content = json.dumps(data, indent=2, default=str)
        path = report_filename(report_id, request.type, request.format)
        bucket = self.supabase.storage.from_(self.bucket)
        try:
            bucket.upload(path, content.encode("utf-8"), file_options={
                "content-type": CONTENT_TYPES[request.format],
                "cache-control": "3600",
                "upsert": "true",
            })
        except Exception as e:
            raise InsertFailed(f"Report upload failed: {e}")
        return bucket.get_public_url(path)

    def _mark_failed(self, report_id: Any, message: str) -> None:
        try:
            self.repository.update(report_id, {
                "status": "error",
                "error_message": message,
                "completed_at": utc_now(),
            })
        except ProblemError as e:
            logger.warning(f"Could not mark report {report_id} as failed: {e.detail}")
