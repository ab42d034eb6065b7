"""
Unit Tests for Campaign Pydantic Models

Tests validation rules and membership helpers.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError

from tests.contracts.campaign.data_contract import (
    CampaignCreateRequest,
    CampaignGroupCreateRequest,
    CampaignStatus,
    CampaignType,
    UserProfile,
)


# ====================
# Enum Tests
# ====================


class TestCampaignEnums:
    """Tests for stored enum values"""

    def test_status_values(self):
        assert [s.value for s in CampaignStatus] == ["draft", "active", "paused", "completed", "cancelled"]

    def test_type_declaration_order(self):
        """Test declaration order, which breaks most-active ties"""
        assert list(CampaignType) == [
            CampaignType.PERFORMANCE,
            CampaignType.TRAINING,
            CampaignType.EVALUATION,
            CampaignType.DEVELOPMENT,
        ]


# ====================
# Request Validation
# ====================


class TestCampaignCreateRequest:
    """Tests for CampaignCreateRequest validation"""

    def _payload(self, **overrides):
        start = datetime(2025, 3, 1, tzinfo=timezone.utc)
        payload = dict(
            title="Spring Review",
            campaign_type=CampaignType.PERFORMANCE,
            start_date=start,
            end_date=start + timedelta(days=14),
            manager_ids={uuid4()},
            target_user_ids={uuid4()},
        )
        payload.update(overrides)
        return payload

    def test_valid_request(self):
        request = CampaignCreateRequest(**self._payload())

        assert request.title == "Spring Review"

    def test_end_must_follow_start(self):
        start = datetime(2025, 3, 1, tzinfo=timezone.utc)

        with pytest.raises(ValidationError, match="end_date must be after start_date"):
            CampaignCreateRequest(**self._payload(start_date=start, end_date=start))

    def test_requires_manager_and_target(self):
        with pytest.raises(ValidationError):
            CampaignCreateRequest(**self._payload(manager_ids=set()))
        with pytest.raises(ValidationError):
            CampaignCreateRequest(**self._payload(target_user_ids=set()))

    def test_title_length(self):
        with pytest.raises(ValidationError):
            CampaignCreateRequest(**self._payload(title=""))
        with pytest.raises(ValidationError):
            CampaignCreateRequest(**self._payload(title="x" * 201))

    def test_duplicate_ids_collapse(self):
        manager = uuid4()

        request = CampaignCreateRequest(**self._payload(manager_ids=[manager, manager]))

        assert request.manager_ids == {manager}

    def test_naive_dates_are_read_as_utc(self):
        """Test a naive start and an aware end compare without error"""
        request = CampaignCreateRequest(**self._payload(
            start_date=datetime(2025, 3, 1),
            end_date=datetime(2025, 3, 15, tzinfo=timezone.utc),
        ))

        assert request.start_date == datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_naive_dates_still_ordered(self):
        with pytest.raises(ValidationError, match="end_date must be after start_date"):
            CampaignCreateRequest(**self._payload(
                start_date=datetime(2025, 3, 1, 12), end_date=datetime(2025, 3, 1, 12, tzinfo=timezone.utc)
            ))


class TestCampaignGroupCreateRequest:
    def test_manager_optional(self):
        request = CampaignGroupCreateRequest(name="Team")

        assert request.manager_id is None
        assert request.target_user_ids == set()


# ====================
# Entity Helpers
# ====================


class TestCampaignMembership:
    """Tests for add/remove helpers on Campaign"""

    def test_add_manager_is_idempotent(self, campaign_factory):
        campaign = campaign_factory.make_campaign(uuid4(), managers=set())
        manager = uuid4()

        assert campaign.add_manager(manager) is True
        assert campaign.add_manager(manager) is False
        assert campaign.assigned_managers == {manager}

    def test_remove_absent_target(self, campaign_factory):
        campaign = campaign_factory.make_campaign(uuid4())

        assert campaign.remove_target(uuid4()) is False

    def test_group_target_helpers(self, campaign_factory):
        user = uuid4()
        group = campaign_factory.make_group(uuid4(), targets={user})

        assert group.add_target(user) is False
        assert group.remove_target(user) is True
        assert group.target_user_ids == set()


class TestUserProfile:
    def test_full_name_prefers_first_last(self):
        profile = UserProfile(user_id=uuid4(), first_name="Ada", last_name="Lovelace", name="ada")

        assert profile.full_name == "Ada Lovelace"

    def test_full_name_falls_back_to_name(self):
        assert UserProfile(user_id=uuid4(), name="ada").full_name == "ada"
        assert UserProfile(user_id=uuid4()).full_name == ""
