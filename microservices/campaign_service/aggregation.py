"""
Campaign Aggregation

Pure read-side computations over already-loaded campaigns, groups and
evaluations: per-campaign progress rollups and tenant-wide statistics.
Nothing here performs I/O, so results can be recomputed freely.
"""

from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from .models import (
    ActivityType,
    Campaign,
    CampaignEvaluation,
    CampaignGroup,
    CampaignProgress,
    CampaignStatistics,
    CampaignStatus,
    CampaignType,
    GroupProgress,
    ManagerProgress,
    RecentActivity,
)

PERCENT_QUANTUM = Decimal("0.01")
SECONDS_PER_DAY = 86400


def completion_percentage(completed: int, total: int) -> Decimal:
    """completed / total * 100 to two places; 0 when total is 0"""
    if total <= 0:
        return Decimal("0")
    return (Decimal(completed) * 100 / Decimal(total)).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


def days_remaining(end_date: datetime, now: Optional[datetime] = None) -> int:
    """Whole days until end_date, floored; negative once overdue"""
    now = now or datetime.now(timezone.utc)
    return (end_date - now).days


def compute_campaign_progress(
    campaign: Campaign,
    groups: Sequence[CampaignGroup],
    evaluations: Iterable[CampaignEvaluation],
    now: Optional[datetime] = None,
) -> CampaignProgress:
    """
    Roll up completion for one campaign.

    Pending counts are target minus completed and are not floored, so they
    go negative when more completed evaluations exist than targets.
    """
    completed_by_group: Counter = Counter()
    completed_total = 0
    for evaluation in evaluations:
        if not evaluation.is_completed:
            continue
        completed_total += 1
        if evaluation.group_id is not None:
            completed_by_group[evaluation.group_id] += 1

    total_targets = len(campaign.target_user_ids)

    group_progress = []
    groups_by_manager: Dict[UUID, List[CampaignGroup]] = {}
    for group in groups:
        group_targets = len(group.target_user_ids)
        group_completed = completed_by_group[group.group_id]
        group_progress.append(GroupProgress(
            group_id=group.group_id,
            group_name=group.name,
            manager_id=group.manager_id,
            total_targets=group_targets,
            completed_evaluations=group_completed,
            pending_evaluations=group_targets - group_completed,
            progress_percentage=completion_percentage(group_completed, group_targets),
        ))
        groups_by_manager.setdefault(group.manager_id, []).append(group)

    manager_progress = []
    for manager_id, manager_groups in groups_by_manager.items():
        manager_targets = sum(len(g.target_user_ids) for g in manager_groups)
        manager_completed = sum(completed_by_group[g.group_id] for g in manager_groups)
        manager_progress.append(ManagerProgress(
            manager_id=manager_id,
            total_assigned_targets=manager_targets,
            completed_evaluations=manager_completed,
            pending_evaluations=manager_targets - manager_completed,
            progress_percentage=completion_percentage(manager_completed, manager_targets),
            groups_assigned=len(manager_groups),
        ))

    return CampaignProgress(
        campaign_id=campaign.campaign_id,
        campaign_title=campaign.title,
        total_targets=total_targets,
        completed_evaluations=completed_total,
        pending_evaluations=total_targets - completed_total,
        progress_percentage=completion_percentage(completed_total, total_targets),
        days_remaining=days_remaining(campaign.end_date, now),
        group_progress=group_progress,
        manager_progress=manager_progress,
    )


def average_completion_days(campaigns: Iterable[Campaign]) -> float:
    """Mean days from actual (or planned) start to actual end of completed campaigns"""
    durations = [
        (c.actual_end_date - (c.actual_start_date or c.start_date)).total_seconds() / SECONDS_PER_DAY
        for c in campaigns
        if c.status == CampaignStatus.COMPLETED and c.actual_end_date is not None
    ]
    if not durations:
        return 0.0
    return round(sum(durations) / len(durations), 2)


def most_active_type(campaigns: Iterable[Campaign]) -> Optional[CampaignType]:
    """Type with the most campaigns; ties go to the earliest declared type"""
    counts = Counter(c.campaign_type for c in campaigns)
    if not counts:
        return None
    top = max(counts.values())
    return next(t for t in CampaignType if counts.get(t) == top)


def build_recent_activity(
    campaigns: Sequence[Campaign],
    evaluations: Sequence[CampaignEvaluation],
    limit: int = 10,
    per_source: int = 5,
) -> List[RecentActivity]:
    """Newest campaign creations and evaluation submissions, merged newest first"""
    titles = {c.campaign_id: c.title for c in campaigns}

    created = sorted(campaigns, key=lambda c: c.created_at, reverse=True)[:per_source]
    submitted = sorted(
        (e for e in evaluations if e.is_completed and e.submitted_at is not None),
        key=lambda e: e.submitted_at,
        reverse=True,
    )[:per_source]

    feed = [
        RecentActivity(
            activity_id=c.campaign_id,
            campaign_id=c.campaign_id,
            campaign_title=c.title,
            activity_type=ActivityType.CREATED,
            user_id=c.created_by_user_id or c.created_by,
            description=f"Campaign '{c.title}' was created",
            activity_date=c.created_at,
        )
        for c in created
    ]
    for e in submitted:
        title = titles.get(e.campaign_id, "Unknown campaign")
        feed.append(RecentActivity(
            activity_id=e.evaluation_id,
            campaign_id=e.campaign_id,
            campaign_title=title,
            activity_type=ActivityType.EVALUATION_SUBMITTED,
            user_id=e.evaluator_id,
            description=f"Evaluation submitted for campaign '{title}'",
            activity_date=e.submitted_at,
        ))

    feed.sort(key=lambda a: a.activity_date, reverse=True)
    return feed[:limit]


def compute_campaign_statistics(
    campaigns: Sequence[Campaign],
    evaluations: Sequence[CampaignEvaluation],
    recent_activity_limit: int = 10,
    recent_activity_per_source: int = 5,
) -> CampaignStatistics:
    """Counts, completion ratio, timing and activity feed over a snapshot"""
    by_status = Counter(c.status for c in campaigns)
    completed_evaluations = sum(1 for e in evaluations if e.is_completed)
    total_evaluations = len(evaluations)

    return CampaignStatistics(
        total_campaigns=len(campaigns),
        active_campaigns=by_status[CampaignStatus.ACTIVE],
        completed_campaigns=by_status[CampaignStatus.COMPLETED],
        draft_campaigns=by_status[CampaignStatus.DRAFT],
        paused_campaigns=by_status[CampaignStatus.PAUSED],
        cancelled_campaigns=by_status[CampaignStatus.CANCELLED],
        total_evaluations=total_evaluations,
        completed_evaluations=completed_evaluations,
        pending_evaluations=total_evaluations - completed_evaluations,
        overall_progress_percentage=completion_percentage(completed_evaluations, total_evaluations),
        average_completion_time=average_completion_days(campaigns),
        most_active_campaign_type=most_active_type(campaigns),
        recent_activity=build_recent_activity(
            campaigns,
            evaluations,
            limit=recent_activity_limit,
            per_source=recent_activity_per_source,
        ),
    )


__all__ = [
    "completion_percentage",
    "days_remaining",
    "compute_campaign_progress",
    "average_completion_days",
    "most_active_type",
    "build_recent_activity",
    "compute_campaign_statistics",
]
