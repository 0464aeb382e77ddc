from app.core.lifecycle import LifecycleConfig, LifecycleService
from app.modules.incidents.schemas import IncidentMetrics

INCIDENT_LIFECYCLE = LifecycleConfig(
    kind="incident",
    label="Incident",
    table="incidents",
    view="incidents_with_times",
    channel="incidents",
    statuses=("open", "in_progress", "resolved", "closed"),
    initial_status="open",
    terminal_statuses=frozenset({"resolved", "closed"}),
    completion_column="resolved_at",
    area_column="affected_area_id",
    area_field="affectedArea",
    area_name_column="affected_area_name",
)


class IncidentService(LifecycleService):
    config = INCIDENT_LIFECYCLE

    def summary(self) -> IncidentMetrics:
        counts = self.metrics()
        return IncidentMetrics(
            total_incidents=counts["total"],
            open_incidents=counts["open"],
            in_progress_incidents=counts["in_progress"],
            resolved_incidents=counts["resolved"],
            closed_incidents=counts["closed"],
        )
