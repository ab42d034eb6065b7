"""
Component Tests for CampaignOperations

Checks the structured-result mapping: domain errors become coded failures,
unanticipated exceptions become a generic failure.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from core.operation_result import UNEXPECTED_ERROR_MESSAGE, ErrorCode
from tests.contracts.campaign.data_contract import CampaignStatus, CampaignUpdateRequest


class TestCampaignOperationsResults:
    """Tests for OperationResult envelopes"""

    @pytest.mark.asyncio
    async def test_create_returns_campaign_id(self, campaign_operations, mock_user_directory, factory, actor):
        request = factory.make_create_request()
        mock_user_directory.add_users(request.manager_ids)

        result = await campaign_operations.create_campaign(request, actor)

        assert result.success is True
        assert isinstance(result.data, UUID)
        assert result.error_code is None

    @pytest.mark.asyncio
    async def test_not_found_is_coded(self, campaign_operations, actor):
        result = await campaign_operations.get_campaign(uuid4(), actor.tenant_id)

        assert result.success is False
        assert result.error_code == ErrorCode.NOT_FOUND
        assert result.message == "Campaign not found"

    @pytest.mark.asyncio
    async def test_invalid_transition_is_coded(self, campaign_operations, active_campaign, actor):
        result = await campaign_operations.start_campaign(active_campaign.campaign_id, actor)

        assert result.success is False
        assert result.error_code == ErrorCode.INVALID_STATE
        assert result.message == "Only draft campaigns can be started"

    @pytest.mark.asyncio
    async def test_duplicate_evaluation_is_conflict(self, campaign_operations, factory, active_campaign, actor):
        target = next(iter(active_campaign.target_user_ids))
        request = factory.make_evaluation_request(active_campaign.campaign_id, target)

        first = await campaign_operations.submit_evaluation(request, actor)
        second = await campaign_operations.submit_evaluation(request, actor)

        assert first.success is True
        assert second.error_code == ErrorCode.CONFLICT

    @pytest.mark.asyncio
    async def test_unknown_manager_is_validation_failure(self, campaign_operations, factory, actor):
        result = await campaign_operations.create_campaign(factory.make_create_request(), actor)

        assert result.error_code == ErrorCode.VALIDATION_FAILURE
        assert result.message.startswith("Manager with ID ")

    @pytest.mark.asyncio
    async def test_storage_failure_is_generic(
        self, campaign_operations, mock_repository, mock_user_directory, factory, actor
    ):
        """Test unexpected errors never leak their details"""
        request = factory.make_create_request()
        mock_user_directory.add_users(request.manager_ids)
        mock_repository.fail_next_save = ConnectionError("connection reset by peer")

        result = await campaign_operations.create_campaign(request, actor)

        assert result.success is False
        assert result.error_code == ErrorCode.UNEXPECTED
        assert result.message == UNEXPECTED_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_my_campaigns_uses_actor_membership(
        self, campaign_operations, factory, mock_repository, actor
    ):
        managed = mock_repository.seed_campaign(factory.make_campaign(
            actor.tenant_id, status=CampaignStatus.ACTIVE, managers={actor.user_id}
        ))
        targeted = mock_repository.seed_campaign(factory.make_campaign(
            actor.tenant_id, targets={actor.user_id}
        ))

        mine = await campaign_operations.get_my_campaigns(actor)
        as_target = await campaign_operations.get_my_campaign_targets(actor)

        assert [c.campaign_id for c in mine.data] == [managed.campaign_id]
        assert [c.campaign_id for c in as_target.data] == [targeted.campaign_id]

    @pytest.mark.asyncio
    async def test_cancel_returns_true(self, campaign_operations, active_campaign, actor):
        result = await campaign_operations.cancel_campaign(active_campaign.campaign_id, actor, reason="Obsolete")

        assert result.success is True
        assert result.data is True

    @pytest.mark.asyncio
    async def test_update_with_naive_end_date(self, campaign_operations, active_campaign, actor):
        """Test a naive end date is taken as UTC rather than failing the update"""
        naive_end = (active_campaign.end_date + timedelta(days=90)).replace(tzinfo=None)

        result = await campaign_operations.update_campaign(
            active_campaign.campaign_id, CampaignUpdateRequest(end_date=naive_end), actor
        )

        assert result.success is True
        assert result.data.end_date == naive_end.replace(tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_update_with_naive_end_before_start(self, campaign_operations, active_campaign, actor):
        naive_end = (active_campaign.start_date - timedelta(days=1)).replace(tzinfo=None)

        result = await campaign_operations.update_campaign(
            active_campaign.campaign_id, CampaignUpdateRequest(end_date=naive_end), actor
        )

        assert result.error_code == ErrorCode.VALIDATION_FAILURE
