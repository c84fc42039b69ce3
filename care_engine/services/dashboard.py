"""
Dashboard summary composing the schedule, statistics and upcoming appointments.

Every part is read independently and degrades on its own, so a failing
appointments table still leaves the medication half of the dashboard intact.
"""

import time

import structlog

from care_engine.config import DashboardConfig
from care_engine.domain.models import DashboardSummary, SlotStatus
from care_engine.services.clock import TimeContext
from care_engine.services.schedule import count_overdue
from care_engine.services.statistics import StatisticsAggregator
from care_engine.services.store import EntityStore

logger = structlog.get_logger(__name__)


class DashboardService:
    """Builds the per-request dashboard for one caller."""

    def __init__(
        self,
        store: EntityStore,
        clock: TimeContext,
        config: DashboardConfig | None = None,
    ) -> None:
        self.clock = clock
        self.config = config or DashboardConfig()
        self.statistics = StatisticsAggregator(store, clock)
        self.logger = logger.bind(component="dashboard")

    def summary(self, owner_id: str | None) -> DashboardSummary:
        start_time = time.perf_counter()

        timed = self.statistics.schedule.timed_schedule(owner_id)
        pending = [t for t in timed if t.status is not SlotStatus.TAKEN]
        upcoming = self.statistics.appointments.list_upcoming(
            owner_id, limit=self.config.upcoming_appointments_limit
        )

        summary = DashboardSummary(
            today=self.clock.today(),
            pending=pending[: self.config.pending_preview_limit],
            pending_total=len(pending),
            overdue_count=count_overdue((t.slot for t in pending), self.clock.now()),
            upcoming_appointments=upcoming,
            medication_stats=self.statistics.medication_stats(
                owner_id, schedule=[t.slot for t in timed]
            ),
            appointment_stats=self.statistics.appointment_stats(owner_id),
            generated_at=self.clock.now(),
        )

        self.logger.info(
            "dashboard_built",
            pending=summary.pending_total,
            overdue=summary.overdue_count,
            upcoming_appointments=len(upcoming),
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return summary
