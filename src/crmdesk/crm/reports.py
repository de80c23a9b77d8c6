"""Pipeline board and dashboard summaries.

Pure functions over records already fetched through the services; nothing
here touches a backend.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from crmdesk.crm.models import Activity, Contact, Deal, DealStage, as_utc, utcnow

# Window for the dashboard's "recent activities" figure.
RECENT_ACTIVITY_WINDOW = timedelta(days=7)

# Stages shown as separate counters on the dashboard.
DASHBOARD_STAGES = (
    DealStage.LEAD,
    DealStage.QUALIFIED,
    DealStage.PROPOSAL,
    DealStage.CLOSED_WON,
)


class StageColumn(BaseModel):
    """One column of the pipeline board."""

    stage: DealStage
    deals: List[Deal] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.deals)

    @property
    def total_value(self) -> float:
        return sum(d.value for d in self.deals)


class PipelineBoard(BaseModel):
    """Deals grouped by stage, in board order."""

    columns: List[StageColumn]

    @property
    def total_count(self) -> int:
        return sum(c.count for c in self.columns)

    @property
    def total_value(self) -> float:
        return sum(c.total_value for c in self.columns)

    def column(self, stage: DealStage) -> StageColumn:
        """Return the column for ``stage``."""
        stage = DealStage(stage)
        for col in self.columns:
            if col.stage == stage:
                return col
        raise KeyError(stage)


class DashboardStats(BaseModel):
    """Headline numbers for the dashboard."""

    total_contacts: int = 0
    total_deals: int = 0
    pipeline_value: float = 0.0
    won_deals: int = 0
    recent_activities: int = 0
    stage_counts: Dict[DealStage, int] = Field(default_factory=dict)


def pipeline_board(deals: Iterable[Deal]) -> PipelineBoard:
    """Group deals into one column per stage.

    Every stage gets a column, even when empty. Within a column deals keep
    their input order.
    """
    by_stage: Dict[DealStage, List[Deal]] = {stage: [] for stage in DealStage}
    for deal in deals:
        by_stage[deal.stage].append(deal)
    return PipelineBoard(
        columns=[StageColumn(stage=stage, deals=by_stage[stage]) for stage in DealStage]
    )


def dashboard_stats(
    contacts: Iterable[Contact],
    deals: Iterable[Deal],
    activities: Iterable[Activity],
    now: Optional[datetime] = None,
) -> DashboardStats:
    """Compute dashboard figures.

    Args:
        contacts: All contacts
        deals: All deals
        activities: All activities
        now: Reference time for the recent-activity window (defaults to now)

    Returns:
        DashboardStats
    """
    now = as_utc(now) if now is not None else utcnow()
    cutoff = now - RECENT_ACTIVITY_WINDOW
    deals = list(deals)

    return DashboardStats(
        total_contacts=sum(1 for _ in contacts),
        total_deals=len(deals),
        pipeline_value=sum(d.value for d in deals),
        won_deals=sum(1 for d in deals if d.stage == DealStage.CLOSED_WON),
        recent_activities=sum(1 for a in activities if a.timestamp >= cutoff),
        stage_counts={stage: sum(1 for d in deals if d.stage == stage) for stage in DASHBOARD_STAGES},
    )
