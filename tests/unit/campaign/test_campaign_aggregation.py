"""
Unit Tests for Campaign Aggregation

Pure progress and statistics computations; no service or storage involved.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from microservices.campaign_service.aggregation import (
    average_completion_days,
    build_recent_activity,
    completion_percentage,
    compute_campaign_progress,
    compute_campaign_statistics,
    days_remaining,
    most_active_type,
)
from tests.contracts.campaign.data_contract import ActivityType, CampaignStatus, CampaignType

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


class TestCompletionPercentage:
    """Tests for completion_percentage"""

    @pytest.mark.parametrize("completed,total,expected", [
        (4, 10, Decimal("40.00")),
        (0, 0, Decimal("0")),
        (5, 0, Decimal("0")),
        (1, 3, Decimal("33.33")),
        (2, 3, Decimal("66.67")),
        (1, 8, Decimal("12.50")),
        (3, 2, Decimal("150.00")),
    ])
    def test_percentages(self, completed, total, expected):
        assert completion_percentage(completed, total) == expected

    def test_half_up_rounding(self):
        """Test x.xx5 rounds away from zero"""
        # 1/160 = 0.625%
        assert completion_percentage(1, 160) == Decimal("0.63")


class TestDaysRemaining:
    def test_partial_days_floor(self):
        assert days_remaining(NOW + timedelta(days=3, hours=23), now=NOW) == 3

    def test_overdue_is_negative(self):
        assert days_remaining(NOW - timedelta(hours=1), now=NOW) == -1


class TestComputeCampaignProgress:
    """Tests for compute_campaign_progress"""

    def test_incomplete_evaluations_ignored(self, campaign_factory):
        campaign = campaign_factory.make_campaign(uuid4(), status=CampaignStatus.ACTIVE)
        target = next(iter(campaign.target_user_ids))
        evaluations = [
            campaign_factory.make_evaluation(campaign, target),
            campaign_factory.make_evaluation(campaign, target, is_completed=False),
        ]

        progress = compute_campaign_progress(campaign, [], evaluations, now=NOW)

        assert progress.completed_evaluations == 1
        assert progress.pending_evaluations == 2
        assert progress.group_progress == []
        assert progress.manager_progress == []

    def test_pending_goes_negative(self, campaign_factory):
        """Test more completions than targets are reported as-is"""
        campaign = campaign_factory.make_campaign(uuid4(), targets=campaign_factory.make_user_ids(1))
        target = next(iter(campaign.target_user_ids))
        evaluations = [
            campaign_factory.make_evaluation(campaign, target, evaluator_id=uuid4()) for _ in range(3)
        ]

        progress = compute_campaign_progress(campaign, [], evaluations, now=NOW)

        assert progress.pending_evaluations == -2
        assert progress.progress_percentage == Decimal("300.00")

    def test_manager_rollup_spans_groups(self, campaign_factory):
        campaign = campaign_factory.make_campaign(uuid4(), targets=campaign_factory.make_user_ids(6))
        targets = sorted(campaign.target_user_ids, key=str)
        manager = uuid4()
        first = campaign_factory.make_group(campaign.tenant_id, manager, targets[:2], campaign.campaign_id)
        second = campaign_factory.make_group(campaign.tenant_id, manager, targets[2:5], campaign.campaign_id)
        evaluations = [
            campaign_factory.make_evaluation(campaign, targets[0], group_id=first.group_id),
            campaign_factory.make_evaluation(campaign, targets[2], group_id=second.group_id),
            campaign_factory.make_evaluation(campaign, targets[5]),
        ]

        progress = compute_campaign_progress(campaign, [first, second], evaluations, now=NOW)

        assert progress.completed_evaluations == 3
        assert progress.progress_percentage == Decimal("50.00")
        (rollup,) = progress.manager_progress
        assert rollup.total_assigned_targets == 5
        assert rollup.completed_evaluations == 2
        assert rollup.pending_evaluations == 3
        assert rollup.groups_assigned == 2
        assert rollup.progress_percentage == Decimal("40.00")

    def test_empty_group(self, campaign_factory):
        campaign = campaign_factory.make_campaign(uuid4())
        group = campaign_factory.make_group(campaign.tenant_id, targets=[], campaign_id=campaign.campaign_id)

        progress = compute_campaign_progress(campaign, [group], [], now=NOW)

        assert progress.group_progress[0].progress_percentage == Decimal("0")


class TestStatisticsHelpers:
    """Tests for the statistics building blocks"""

    def test_most_active_type(self, campaign_factory):
        tenant = uuid4()
        campaigns = [
            campaign_factory.make_campaign(tenant, campaign_type=CampaignType.TRAINING),
            campaign_factory.make_campaign(tenant, campaign_type=CampaignType.TRAINING),
            campaign_factory.make_campaign(tenant, campaign_type=CampaignType.EVALUATION),
        ]

        assert most_active_type(campaigns) == CampaignType.TRAINING

    def test_most_active_tie_goes_to_earliest_declared(self, campaign_factory):
        tenant = uuid4()
        campaigns = [
            campaign_factory.make_campaign(tenant, campaign_type=CampaignType.DEVELOPMENT),
            campaign_factory.make_campaign(tenant, campaign_type=CampaignType.TRAINING),
        ]

        assert most_active_type(campaigns) == CampaignType.TRAINING

    def test_most_active_empty(self):
        assert most_active_type([]) is None

    def test_average_completion_days(self, campaign_factory):
        tenant = uuid4()
        campaigns = [
            campaign_factory.make_campaign(
                tenant, status=CampaignStatus.COMPLETED,
                actual_start_date=NOW, actual_end_date=NOW + timedelta(days=3),
            ),
            campaign_factory.make_campaign(
                tenant, status=CampaignStatus.COMPLETED,
                actual_start_date=NOW, actual_end_date=NOW + timedelta(days=4, hours=12),
            ),
            campaign_factory.make_campaign(tenant, status=CampaignStatus.ACTIVE, actual_start_date=NOW),
        ]

        assert average_completion_days(campaigns) == 3.75

    def test_average_completion_days_none_completed(self):
        assert average_completion_days([]) == 0.0

    def test_recent_activity_caps_each_source(self, campaign_factory):
        tenant = uuid4()
        campaigns = [
            campaign_factory.make_campaign(tenant, created_at=NOW - timedelta(days=i)) for i in range(8)
        ]
        target = next(iter(campaigns[0].target_user_ids))
        evaluations = [
            campaign_factory.make_evaluation(
                campaigns[0], target, evaluator_id=uuid4(), submitted_at=NOW + timedelta(hours=i)
            )
            for i in range(8)
        ]

        feed = build_recent_activity(campaigns, evaluations, limit=10, per_source=5)

        assert len(feed) == 10
        assert [a.activity_type for a in feed[:5]] == [ActivityType.EVALUATION_SUBMITTED] * 5
        assert feed[0].activity_date == NOW + timedelta(hours=7)
        assert feed[0].campaign_title == campaigns[0].title
        assert all(a.activity_date >= feed[i + 1].activity_date for i, a in enumerate(feed[:-1]))

    def test_recent_activity_unknown_campaign_title(self, campaign_factory):
        orphan = campaign_factory.make_campaign(uuid4())
        evaluation = campaign_factory.make_evaluation(orphan, uuid4(), submitted_at=NOW)

        feed = build_recent_activity([], [evaluation])

        assert feed[0].campaign_title == "Unknown campaign"

    def test_compute_statistics(self, campaign_factory):
        tenant = uuid4()
        active = campaign_factory.make_campaign(tenant, status=CampaignStatus.ACTIVE)
        cancelled = campaign_factory.make_campaign(tenant, status=CampaignStatus.CANCELLED)
        target = next(iter(active.target_user_ids))
        evaluations = [
            campaign_factory.make_evaluation(active, target),
            campaign_factory.make_evaluation(active, target, is_completed=False),
            campaign_factory.make_evaluation(active, target, is_completed=False),
            campaign_factory.make_evaluation(active, target, is_completed=False),
        ]

        stats = compute_campaign_statistics([active, cancelled], evaluations)

        assert stats.cancelled_campaigns == 1
        assert stats.completed_campaigns == 0
        assert stats.pending_evaluations == 3
        assert stats.overall_progress_percentage == Decimal("25.00")
        assert stats.average_completion_time == 0.0
