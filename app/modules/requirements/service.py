from app.core.lifecycle import LifecycleConfig, LifecycleService
from app.modules.requirements.schemas import RequirementMetrics

REQUIREMENT_LIFECYCLE = LifecycleConfig(
    kind="requirement",
    label="Requirement",
    table="requirements",
    view="requirements_with_times",
    channel="requirements",
    statuses=("pending", "in_progress", "delivered", "closed"),
    initial_status="pending",
    terminal_statuses=frozenset({"delivered", "closed"}),
    completion_column="delivered_at",
    area_column="requesting_area_id",
    area_field="requestingArea",
    area_name_column="requesting_area_name",
    extra_fields=("estimatedDeliveryDate",),
)


class RequirementService(LifecycleService):
    config = REQUIREMENT_LIFECYCLE

    def summary(self) -> RequirementMetrics:
        counts = self.metrics()
        return RequirementMetrics(
            total_requirements=counts["total"],
            pending_requirements=counts["pending"],
            in_progress_requirements=counts["in_progress"],
            delivered_requirements=counts["delivered"],
            closed_requirements=counts["closed"],
        )
