"""
Campaign Service Data Repository

Data access layer - PostgreSQL (asyncpg)

Membership sets and evaluation payloads live in TEXT columns written through
core.json_codec; membership queries decode in Python so malformed legacy
values degrade to empty sets instead of failing the query.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from core.json_codec import decode_id_set, decode_json_map, encode_id_set, encode_json_map
from core.postgres_client import PostgresClient, UniqueConstraintViolation

from .models import (
    Campaign,
    CampaignEvaluation,
    CampaignGroup,
    CampaignStatus,
    CampaignType,
)

logger = logging.getLogger(__name__)


class CampaignRepository:
    """Campaign, group and evaluation repository - PostgreSQL (asyncpg)"""

    def __init__(self, db: PostgresClient):
        self.db = db
        self.schema = "campaign"

        # Table names
        self.campaigns_table = "campaigns"
        self.groups_table = "campaign_groups"
        self.evaluations_table = "campaign_evaluations"

        self._tables_initialized = False

    async def initialize(self) -> None:
        """Create tables and indexes if missing"""
        if self._tables_initialized:
            return

        statements = [
            f"CREATE SCHEMA IF NOT EXISTS {self.schema}",
            f"""
            CREATE TABLE IF NOT EXISTS {self.schema}.{self.campaigns_table} (
                campaign_id UUID PRIMARY KEY,
                tenant_id UUID NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                campaign_type TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'draft',
                start_date TIMESTAMPTZ NOT NULL,
                end_date TIMESTAMPTZ NOT NULL,
                actual_start_date TIMESTAMPTZ,
                actual_end_date TIMESTAMPTZ,
                assigned_managers TEXT NOT NULL DEFAULT '[]',
                target_user_ids TEXT NOT NULL DEFAULT '[]',
                is_active BOOLEAN NOT NULL DEFAULT TRUE,
                created_by_user_id UUID,
                is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
                deleted_at TIMESTAMPTZ,
                deleted_by UUID,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                created_by UUID,
                updated_by UUID
            )
            """,
            f"""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_{self.campaigns_table}_tenant_title
            ON {self.schema}.{self.campaigns_table} (tenant_id, LOWER(title)) WHERE NOT is_deleted
            """,
            f"CREATE INDEX IF NOT EXISTS idx_{self.campaigns_table}_tenant_status "
            f"ON {self.schema}.{self.campaigns_table} (tenant_id, status)",
            f"""
            CREATE TABLE IF NOT EXISTS {self.schema}.{self.groups_table} (
                group_id UUID PRIMARY KEY,
                tenant_id UUID NOT NULL,
                campaign_id UUID REFERENCES {self.schema}.{self.campaigns_table} (campaign_id),
                name TEXT NOT NULL,
                description TEXT,
                manager_id UUID NOT NULL,
                target_user_ids TEXT NOT NULL DEFAULT '[]',
                is_active BOOLEAN NOT NULL DEFAULT TRUE,
                is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
                deleted_at TIMESTAMPTZ,
                deleted_by UUID,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                created_by UUID,
                updated_by UUID
            )
            """,
            f"""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_{self.groups_table}_tenant_name
            ON {self.schema}.{self.groups_table} (tenant_id, LOWER(name)) WHERE NOT is_deleted
            """,
            f"""
            CREATE TABLE IF NOT EXISTS {self.schema}.{self.evaluations_table} (
                evaluation_id UUID PRIMARY KEY,
                tenant_id UUID NOT NULL,
                campaign_id UUID NOT NULL REFERENCES {self.schema}.{self.campaigns_table} (campaign_id),
                group_id UUID REFERENCES {self.schema}.{self.groups_table} (group_id),
                evaluated_user_id UUID NOT NULL,
                evaluator_id UUID NOT NULL,
                role_evaluations TEXT NOT NULL DEFAULT '{{}}',
                claim_evaluations TEXT NOT NULL DEFAULT '{{}}',
                feedback TEXT,
                is_completed BOOLEAN NOT NULL DEFAULT FALSE,
                submitted_at TIMESTAMPTZ,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                created_by UUID
            )
            """,
            f"""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_{self.evaluations_table}_campaign_user_evaluator
            ON {self.schema}.{self.evaluations_table} (campaign_id, evaluated_user_id, evaluator_id)
            """,
        ]

        async with self.db:
            for statement in statements:
                await self.db.execute(statement)

        self._tables_initialized = True
        logger.info("Campaign repository initialized with PostgreSQL")

    async def close(self) -> None:
        await self.db.close()
        logger.info("Campaign repository database connection closed")

    async def health_check(self) -> bool:
        return await self.db.health_check()

    # ====================
    # Campaigns
    # ====================

    async def save_campaign(self, campaign: Campaign) -> Campaign:
        """Insert a campaign"""
        query = f'''
            INSERT INTO {self.schema}.{self.campaigns_table} (
                campaign_id, tenant_id, title, description, campaign_type, status,
                start_date, end_date, actual_start_date, actual_end_date,
                assigned_managers, target_user_ids, is_active, created_by_user_id,
                is_deleted, deleted_at, deleted_by, created_at, updated_at, created_by, updated_by
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14,
                      $15, $16, $17, $18, $19, $20, $21)
            RETURNING *
        '''
        params = [
            campaign.campaign_id,
            campaign.tenant_id,
            campaign.title,
            campaign.description,
            campaign.campaign_type.value,
            campaign.status.value,
            campaign.start_date,
            campaign.end_date,
            campaign.actual_start_date,
            campaign.actual_end_date,
            encode_id_set(campaign.assigned_managers),
            encode_id_set(campaign.target_user_ids),
            campaign.is_active,
            campaign.created_by_user_id,
            campaign.is_deleted,
            campaign.deleted_at,
            campaign.deleted_by,
            campaign.created_at,
            campaign.updated_at,
            campaign.created_by,
            campaign.updated_by,
        ]

        try:
            async with self.db:
                row = await self.db.query_row(query, params)
            return self._row_to_campaign(row)
        except UniqueConstraintViolation:
            raise
        except Exception as e:
            logger.error(f"Error saving campaign {campaign.campaign_id}: {e}")
            raise

    async def update_campaign(self, campaign: Campaign) -> Campaign:
        """Write every mutable field of a campaign in one statement"""
        query = f'''
            UPDATE {self.schema}.{self.campaigns_table} SET
                title = $3, description = $4, campaign_type = $5, status = $6,
                start_date = $7, end_date = $8, actual_start_date = $9, actual_end_date = $10,
                assigned_managers = $11, target_user_ids = $12, is_active = $13,
                is_deleted = $14, deleted_at = $15, deleted_by = $16,
                updated_at = $17, updated_by = $18
            WHERE tenant_id = $1 AND campaign_id = $2
            RETURNING *
        '''
        params = [
            campaign.tenant_id,
            campaign.campaign_id,
            campaign.title,
            campaign.description,
            campaign.campaign_type.value,
            campaign.status.value,
            campaign.start_date,
            campaign.end_date,
            campaign.actual_start_date,
            campaign.actual_end_date,
            encode_id_set(campaign.assigned_managers),
            encode_id_set(campaign.target_user_ids),
            campaign.is_active,
            campaign.is_deleted,
            campaign.deleted_at,
            campaign.deleted_by,
            campaign.updated_at,
            campaign.updated_by,
        ]

        try:
            async with self.db:
                row = await self.db.query_row(query, params)
            return self._row_to_campaign(row)
        except UniqueConstraintViolation:
            raise
        except Exception as e:
            logger.error(f"Error updating campaign {campaign.campaign_id}: {e}")
            raise

    async def get_campaign(
        self,
        tenant_id: UUID,
        campaign_id: UUID,
        include_deleted: bool = False,
    ) -> Optional[Campaign]:
        query = f'''
            SELECT * FROM {self.schema}.{self.campaigns_table}
            WHERE tenant_id = $1 AND campaign_id = $2 AND ($3 OR NOT is_deleted)
        '''
        async with self.db:
            row = await self.db.query_row(query, [tenant_id, campaign_id, include_deleted])
        return self._row_to_campaign(row) if row else None

    async def list_campaigns(
        self,
        tenant_id: UUID,
        status: Optional[CampaignStatus] = None,
        campaign_type: Optional[CampaignType] = None,
        start_date_from: Optional[datetime] = None,
        start_date_to: Optional[datetime] = None,
        include_deleted: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Campaign]:
        """List campaigns with filters"""
        conditions = ["tenant_id = $1"]
        params: List[Any] = [tenant_id]
        param_count = 1

        if not include_deleted:
            conditions.append("NOT is_deleted")

        if status:
            param_count += 1
            conditions.append(f"status = ${param_count}")
            params.append(status.value)

        if campaign_type:
            param_count += 1
            conditions.append(f"campaign_type = ${param_count}")
            params.append(campaign_type.value)

        if start_date_from:
            param_count += 1
            conditions.append(f"start_date >= ${param_count}")
            params.append(start_date_from)

        if start_date_to:
            param_count += 1
            conditions.append(f"start_date <= ${param_count}")
            params.append(start_date_to)

        where_clause = " AND ".join(conditions)
        params.extend([limit, offset])
        query = f'''
            SELECT * FROM {self.schema}.{self.campaigns_table}
            WHERE {where_clause}
            ORDER BY created_at DESC
            LIMIT ${param_count + 1} OFFSET ${param_count + 2}
        '''

        async with self.db:
            rows = await self.db.query(query, params)
        return [self._row_to_campaign(row) for row in rows]

    async def list_campaigns_by_manager(self, tenant_id: UUID, manager_id: UUID) -> List[Campaign]:
        campaigns = await self._list_live_campaigns(tenant_id)
        return [c for c in campaigns if manager_id in c.assigned_managers]

    async def list_campaigns_by_target(self, tenant_id: UUID, user_id: UUID) -> List[Campaign]:
        campaigns = await self._list_live_campaigns(tenant_id)
        return [c for c in campaigns if user_id in c.target_user_ids]

    async def list_campaigns_created_between(
        self,
        tenant_id: UUID,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[Campaign]:
        query = f'''
            SELECT * FROM {self.schema}.{self.campaigns_table}
            WHERE tenant_id = $1 AND NOT is_deleted
              AND ($2::timestamptz IS NULL OR created_at >= $2)
              AND ($3::timestamptz IS NULL OR created_at <= $3)
            ORDER BY created_at DESC
        '''
        async with self.db:
            rows = await self.db.query(query, [tenant_id, from_date, to_date])
        return [self._row_to_campaign(row) for row in rows]

    async def campaign_title_exists(
        self,
        tenant_id: UUID,
        title: str,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        query = f'''
            SELECT 1 FROM {self.schema}.{self.campaigns_table}
            WHERE tenant_id = $1 AND LOWER(title) = LOWER($2) AND NOT is_deleted
              AND ($3::uuid IS NULL OR campaign_id <> $3)
            LIMIT 1
        '''
        async with self.db:
            row = await self.db.query_row(query, [tenant_id, title, exclude_id])
        return row is not None

    async def _list_live_campaigns(self, tenant_id: UUID) -> List[Campaign]:
        query = f'''
            SELECT * FROM {self.schema}.{self.campaigns_table}
            WHERE tenant_id = $1 AND NOT is_deleted
            ORDER BY created_at DESC
        '''
        async with self.db:
            rows = await self.db.query(query, [tenant_id])
        return [self._row_to_campaign(row) for row in rows]

    # ====================
    # Groups
    # ====================

    async def save_group(self, group: CampaignGroup) -> CampaignGroup:
        query = f'''
            INSERT INTO {self.schema}.{self.groups_table} (
                group_id, tenant_id, campaign_id, name, description, manager_id,
                target_user_ids, is_active, is_deleted, deleted_at, deleted_by,
                created_at, updated_at, created_by, updated_by
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
            RETURNING *
        '''
        params = [
            group.group_id,
            group.tenant_id,
            group.campaign_id,
            group.name,
            group.description,
            group.manager_id,
            encode_id_set(group.target_user_ids),
            group.is_active,
            group.is_deleted,
            group.deleted_at,
            group.deleted_by,
            group.created_at,
            group.updated_at,
            group.created_by,
            group.updated_by,
        ]
        async with self.db:
            row = await self.db.query_row(query, params)
        return self._row_to_group(row)

    async def update_group(self, group: CampaignGroup) -> CampaignGroup:
        query = f'''
            UPDATE {self.schema}.{self.groups_table} SET
                name = $3, description = $4, manager_id = $5, target_user_ids = $6,
                is_active = $7, is_deleted = $8, deleted_at = $9, deleted_by = $10,
                updated_at = $11, updated_by = $12
            WHERE tenant_id = $1 AND group_id = $2
            RETURNING *
        '''
        params = [
            group.tenant_id,
            group.group_id,
            group.name,
            group.description,
            group.manager_id,
            encode_id_set(group.target_user_ids),
            group.is_active,
            group.is_deleted,
            group.deleted_at,
            group.deleted_by,
            group.updated_at,
            group.updated_by,
        ]
        async with self.db:
            row = await self.db.query_row(query, params)
        return self._row_to_group(row)

    async def get_group(self, tenant_id: UUID, group_id: UUID) -> Optional[CampaignGroup]:
        query = f'''
            SELECT * FROM {self.schema}.{self.groups_table}
            WHERE tenant_id = $1 AND group_id = $2 AND NOT is_deleted
        '''
        async with self.db:
            row = await self.db.query_row(query, [tenant_id, group_id])
        return self._row_to_group(row) if row else None

    async def list_groups(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        search_term: Optional[str] = None,
    ) -> List[CampaignGroup]:
        conditions = ["tenant_id = $1", "NOT is_deleted"]
        params: List[Any] = [tenant_id]

        if campaign_id:
            params.append(campaign_id)
            conditions.append(f"campaign_id = ${len(params)}")

        if search_term:
            params.append(f"%{search_term}%")
            conditions.append(f"(name ILIKE ${len(params)} OR description ILIKE ${len(params)})")

        query = f'''
            SELECT * FROM {self.schema}.{self.groups_table}
            WHERE {" AND ".join(conditions)}
            ORDER BY created_at ASC
        '''
        async with self.db:
            rows = await self.db.query(query, params)
        return [self._row_to_group(row) for row in rows]

    async def group_name_exists(
        self,
        tenant_id: UUID,
        name: str,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        query = f'''
            SELECT 1 FROM {self.schema}.{self.groups_table}
            WHERE tenant_id = $1 AND LOWER(name) = LOWER($2) AND NOT is_deleted
              AND ($3::uuid IS NULL OR group_id <> $3)
            LIMIT 1
        '''
        async with self.db:
            row = await self.db.query_row(query, [tenant_id, name, exclude_id])
        return row is not None

    # ====================
    # Evaluations
    # ====================

    async def save_evaluation(self, evaluation: CampaignEvaluation) -> CampaignEvaluation:
        """Insert an evaluation; a duplicate triple raises UniqueConstraintViolation"""
        query = f'''
            INSERT INTO {self.schema}.{self.evaluations_table} (
                evaluation_id, tenant_id, campaign_id, group_id, evaluated_user_id,
                evaluator_id, role_evaluations, claim_evaluations, feedback,
                is_completed, submitted_at, created_at, updated_at, created_by
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14)
            RETURNING *
        '''
        params = [
            evaluation.evaluation_id,
            evaluation.tenant_id,
            evaluation.campaign_id,
            evaluation.group_id,
            evaluation.evaluated_user_id,
            evaluation.evaluator_id,
            encode_json_map(evaluation.role_evaluations),
            encode_json_map(evaluation.claim_evaluations),
            evaluation.feedback,
            evaluation.is_completed,
            evaluation.submitted_at,
            evaluation.created_at,
            evaluation.updated_at,
            evaluation.created_by,
        ]
        async with self.db:
            row = await self.db.query_row(query, params)
        return self._row_to_evaluation(row)

    async def get_evaluation(self, tenant_id: UUID, evaluation_id: UUID) -> Optional[CampaignEvaluation]:
        query = f'''
            SELECT * FROM {self.schema}.{self.evaluations_table}
            WHERE tenant_id = $1 AND evaluation_id = $2
        '''
        async with self.db:
            row = await self.db.query_row(query, [tenant_id, evaluation_id])
        return self._row_to_evaluation(row) if row else None

    async def list_evaluations(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        evaluated_user_id: Optional[UUID] = None,
        evaluator_id: Optional[UUID] = None,
        is_completed: Optional[bool] = None,
    ) -> List[CampaignEvaluation]:
        conditions = ["tenant_id = $1"]
        params: List[Any] = [tenant_id]

        for column, value in (
            ("campaign_id", campaign_id),
            ("evaluated_user_id", evaluated_user_id),
            ("evaluator_id", evaluator_id),
            ("is_completed", is_completed),
        ):
            if value is not None:
                params.append(value)
                conditions.append(f"{column} = ${len(params)}")

        query = f'''
            SELECT * FROM {self.schema}.{self.evaluations_table}
            WHERE {" AND ".join(conditions)}
            ORDER BY created_at ASC
        '''
        async with self.db:
            rows = await self.db.query(query, params)
        return [self._row_to_evaluation(row) for row in rows]

    async def list_evaluations_created_between(
        self,
        tenant_id: UUID,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[CampaignEvaluation]:
        query = f'''
            SELECT * FROM {self.schema}.{self.evaluations_table}
            WHERE tenant_id = $1
              AND ($2::timestamptz IS NULL OR created_at >= $2)
              AND ($3::timestamptz IS NULL OR created_at <= $3)
            ORDER BY created_at DESC
        '''
        async with self.db:
            rows = await self.db.query(query, [tenant_id, from_date, to_date])
        return [self._row_to_evaluation(row) for row in rows]

    async def evaluation_exists(
        self,
        campaign_id: UUID,
        evaluated_user_id: UUID,
        evaluator_id: UUID,
    ) -> bool:
        query = f'''
            SELECT 1 FROM {self.schema}.{self.evaluations_table}
            WHERE campaign_id = $1 AND evaluated_user_id = $2 AND evaluator_id = $3
            LIMIT 1
        '''
        async with self.db:
            row = await self.db.query_row(query, [campaign_id, evaluated_user_id, evaluator_id])
        return row is not None

    # ====================
    # Row Mappers
    # ====================

    def _row_to_campaign(self, row: Dict[str, Any]) -> Campaign:
        """Convert database row to Campaign model"""
        return Campaign(
            campaign_id=row["campaign_id"],
            tenant_id=row["tenant_id"],
            title=row["title"],
            description=row.get("description"),
            campaign_type=CampaignType(row["campaign_type"]),
            status=CampaignStatus(row["status"]),
            start_date=row["start_date"],
            end_date=row["end_date"],
            actual_start_date=row.get("actual_start_date"),
            actual_end_date=row.get("actual_end_date"),
            assigned_managers=decode_id_set(row.get("assigned_managers")),
            target_user_ids=decode_id_set(row.get("target_user_ids")),
            is_active=row.get("is_active", True),
            created_by_user_id=row.get("created_by_user_id"),
            is_deleted=row.get("is_deleted", False),
            deleted_at=row.get("deleted_at"),
            deleted_by=row.get("deleted_by"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            created_by=row.get("created_by"),
            updated_by=row.get("updated_by"),
        )

    def _row_to_group(self, row: Dict[str, Any]) -> CampaignGroup:
        """Convert database row to CampaignGroup model"""
        return CampaignGroup(
            group_id=row["group_id"],
            tenant_id=row["tenant_id"],
            campaign_id=row.get("campaign_id"),
            name=row["name"],
            description=row.get("description"),
            manager_id=row["manager_id"],
            target_user_ids=decode_id_set(row.get("target_user_ids")),
            is_active=row.get("is_active", True),
            is_deleted=row.get("is_deleted", False),
            deleted_at=row.get("deleted_at"),
            deleted_by=row.get("deleted_by"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            created_by=row.get("created_by"),
            updated_by=row.get("updated_by"),
        )

    def _row_to_evaluation(self, row: Dict[str, Any]) -> CampaignEvaluation:
        """Convert database row to CampaignEvaluation model"""
        return CampaignEvaluation(
            evaluation_id=row["evaluation_id"],
            tenant_id=row["tenant_id"],
            campaign_id=row["campaign_id"],
            group_id=row.get("group_id"),
            evaluated_user_id=row["evaluated_user_id"],
            evaluator_id=row["evaluator_id"],
            role_evaluations=decode_json_map(row.get("role_evaluations")),
            claim_evaluations=decode_json_map(row.get("claim_evaluations")),
            feedback=row.get("feedback"),
            is_completed=row.get("is_completed", False),
            submitted_at=row.get("submitted_at"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            created_by=row.get("created_by"),
        )


__all__ = ["CampaignRepository"]
