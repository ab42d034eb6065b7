"""
Certificate Service Data Repository

Data access layer - PostgreSQL (asyncpg)

Uniqueness of verification tokens, one live certificate per campaign and
recipient, template names and the per-type default template is enforced by
named unique indexes; violations surface as UniqueConstraintViolation.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from core.json_codec import decode_json_map, encode_json_map
from core.postgres_client import PostgresClient, affected_rows

from .models import (
    Certificate,
    CertificateStatus,
    CertificateTemplate,
    CertificateType,
)
from .protocols import (
    CAMPAIGN_RECIPIENT_CONSTRAINT,
    TEMPLATE_DEFAULT_CONSTRAINT,
    TEMPLATE_NAME_CONSTRAINT,
    TOKEN_CONSTRAINT,
)

logger = logging.getLogger(__name__)


class CertificateRepository:
    """Certificate and template repository - PostgreSQL (asyncpg)"""

    def __init__(self, db: PostgresClient):
        self.db = db
        self.schema = "certificate"

        # Table names
        self.certificates_table = "certificates"
        self.templates_table = "certificate_templates"

        self._tables_initialized = False

    async def initialize(self) -> None:
        """Create tables and indexes if missing"""
        if self._tables_initialized:
            return

        statements = [
            f"CREATE SCHEMA IF NOT EXISTS {self.schema}",
            f"""
            CREATE TABLE IF NOT EXISTS {self.schema}.{self.templates_table} (
                template_id UUID PRIMARY KEY,
                tenant_id UUID NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                template_content TEXT NOT NULL DEFAULT '',
                variables TEXT NOT NULL DEFAULT '{{}}',
                styles TEXT NOT NULL DEFAULT '{{}}',
                certificate_type TEXT NOT NULL,
                is_default BOOLEAN NOT NULL DEFAULT FALSE,
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
            CREATE UNIQUE INDEX IF NOT EXISTS {TEMPLATE_NAME_CONSTRAINT}
            ON {self.schema}.{self.templates_table} (tenant_id, LOWER(name)) WHERE NOT is_deleted
            """,
            f"""
            CREATE UNIQUE INDEX IF NOT EXISTS {TEMPLATE_DEFAULT_CONSTRAINT}
            ON {self.schema}.{self.templates_table} (tenant_id, certificate_type)
            WHERE is_default AND NOT is_deleted
            """,
            f"""
            CREATE TABLE IF NOT EXISTS {self.schema}.{self.certificates_table} (
                certificate_id UUID PRIMARY KEY,
                tenant_id UUID NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                recipient_id UUID NOT NULL,
                recipient_name TEXT NOT NULL DEFAULT '',
                recipient_email TEXT,
                issuer_id UUID NOT NULL,
                issuer_name TEXT NOT NULL DEFAULT '',
                issued_date TIMESTAMPTZ NOT NULL,
                expiry_date TIMESTAMPTZ,
                verification_token TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'generated',
                certificate_type TEXT NOT NULL,
                campaign_id UUID,
                template_id UUID REFERENCES {self.schema}.{self.templates_table} (template_id),
                metadata TEXT NOT NULL DEFAULT '{{}}',
                verification_count INTEGER NOT NULL DEFAULT 0,
                verified_at TIMESTAMPTZ,
                revoked_at TIMESTAMPTZ,
                revoked_by UUID,
                revoked_reason TEXT,
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
            CREATE UNIQUE INDEX IF NOT EXISTS {TOKEN_CONSTRAINT}
            ON {self.schema}.{self.certificates_table} (verification_token)
            """,
            f"""
            CREATE UNIQUE INDEX IF NOT EXISTS {CAMPAIGN_RECIPIENT_CONSTRAINT}
            ON {self.schema}.{self.certificates_table} (campaign_id, recipient_id) WHERE NOT is_deleted
            """,
            f"CREATE INDEX IF NOT EXISTS idx_{self.certificates_table}_tenant_status "
            f"ON {self.schema}.{self.certificates_table} (tenant_id, status)",
        ]

        async with self.db:
            for statement in statements:
                await self.db.execute(statement)

        self._tables_initialized = True
        logger.info("Certificate repository initialized with PostgreSQL")

    async def close(self) -> None:
        await self.db.close()
        logger.info("Certificate repository database connection closed")

    async def health_check(self) -> bool:
        return await self.db.health_check()

    # ====================
    # Certificates
    # ====================

    async def save_certificate(self, certificate: Certificate) -> Certificate:
        """Insert; a taken token or an existing campaign/recipient pair raises UniqueConstraintViolation"""
        query = f'''
            INSERT INTO {self.schema}.{self.certificates_table} (
                certificate_id, tenant_id, title, description, recipient_id, recipient_name,
                recipient_email, issuer_id, issuer_name, issued_date, expiry_date,
                verification_token, status, certificate_type, campaign_id, template_id,
                metadata, verification_count, verified_at, revoked_at, revoked_by,
                revoked_reason, is_deleted, deleted_at, deleted_by, created_at, updated_at,
                created_by, updated_by
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15,
                      $16, $17, $18, $19, $20, $21, $22, $23, $24, $25, $26, $27, $28, $29)
            RETURNING *
        '''
        params = [
            certificate.certificate_id,
            certificate.tenant_id,
            certificate.title,
            certificate.description,
            certificate.recipient_id,
            certificate.recipient_name,
            certificate.recipient_email,
            certificate.issuer_id,
            certificate.issuer_name,
            certificate.issued_date,
            certificate.expiry_date,
            certificate.verification_token,
            certificate.status.value,
            certificate.certificate_type.value,
            certificate.campaign_id,
            certificate.template_id,
            encode_json_map(certificate.metadata),
            certificate.verification_count,
            certificate.verified_at,
            certificate.revoked_at,
            certificate.revoked_by,
            certificate.revoked_reason,
            certificate.is_deleted,
            certificate.deleted_at,
            certificate.deleted_by,
            certificate.created_at,
            certificate.updated_at,
            certificate.created_by,
            certificate.updated_by,
        ]
        async with self.db:
            row = await self.db.query_row(query, params)
        return self._row_to_certificate(row)

    async def update_certificate(self, certificate: Certificate) -> Optional[Certificate]:
        """
        Write mutable fields of a certificate that is not yet revoked.

        Returns None when the stored row is already revoked, so a stale copy
        can never overwrite a revocation. verification_count and verified_at
        are owned by record_verification and the deleted flags by
        soft_delete_certificate; neither is written here.
        """
        query = f'''
            UPDATE {self.schema}.{self.certificates_table} SET
                title = $3, description = $4, issued_date = $5, expiry_date = $6,
                verification_token = $7, status = $8, template_id = $9, metadata = $10,
                revoked_at = $11, revoked_by = $12, revoked_reason = $13,
                updated_at = $14, updated_by = $15
            WHERE tenant_id = $1 AND certificate_id = $2
              AND status <> '{CertificateStatus.REVOKED.value}'
            RETURNING *
        '''
        params = [
            certificate.tenant_id,
            certificate.certificate_id,
            certificate.title,
            certificate.description,
            certificate.issued_date,
            certificate.expiry_date,
            certificate.verification_token,
            certificate.status.value,
            certificate.template_id,
            encode_json_map(certificate.metadata),
            certificate.revoked_at,
            certificate.revoked_by,
            certificate.revoked_reason,
            certificate.updated_at,
            certificate.updated_by,
        ]
        async with self.db:
            row = await self.db.query_row(query, params)
        return self._row_to_certificate(row) if row else None

    async def soft_delete_certificate(
        self,
        tenant_id: UUID,
        certificate_id: UUID,
        deleted_by: UUID,
        deleted_at: datetime,
    ) -> bool:
        """Mark deleted without touching status or revocation fields"""
        query = f'''
            UPDATE {self.schema}.{self.certificates_table}
            SET is_deleted = TRUE, deleted_at = $3, deleted_by = $4,
                updated_at = $3, updated_by = $4
            WHERE tenant_id = $1 AND certificate_id = $2 AND NOT is_deleted
        '''
        async with self.db:
            status = await self.db.execute(query, [tenant_id, certificate_id, deleted_at, deleted_by])
        return affected_rows(status) > 0

    async def get_certificate(self, tenant_id: UUID, certificate_id: UUID) -> Optional[Certificate]:
        query = f'''
            SELECT * FROM {self.schema}.{self.certificates_table}
            WHERE tenant_id = $1 AND certificate_id = $2 AND NOT is_deleted
        '''
        async with self.db:
            row = await self.db.query_row(query, [tenant_id, certificate_id])
        return self._row_to_certificate(row) if row else None

    async def get_by_campaign_and_recipient(
        self,
        tenant_id: UUID,
        campaign_id: UUID,
        recipient_id: UUID,
    ) -> Optional[Certificate]:
        query = f'''
            SELECT * FROM {self.schema}.{self.certificates_table}
            WHERE tenant_id = $1 AND campaign_id = $2 AND recipient_id = $3 AND NOT is_deleted
        '''
        async with self.db:
            row = await self.db.query_row(query, [tenant_id, campaign_id, recipient_id])
        return self._row_to_certificate(row) if row else None

    async def list_certificates(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        recipient_id: Optional[UUID] = None,
        status: Optional[CertificateStatus] = None,
        certificate_type: Optional[CertificateType] = None,
        issued_from: Optional[datetime] = None,
        issued_to: Optional[datetime] = None,
        include_revoked: bool = False,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Certificate]:
        """List live certificates, newest issue first"""
        conditions = ["tenant_id = $1", "NOT is_deleted"]
        params: List[Any] = [tenant_id]

        if not include_revoked and status != CertificateStatus.REVOKED:
            params.append(CertificateStatus.REVOKED.value)
            conditions.append(f"status <> ${len(params)}")

        for column, value in (
            ("campaign_id", campaign_id),
            ("recipient_id", recipient_id),
            ("status", status.value if status else None),
            ("certificate_type", certificate_type.value if certificate_type else None),
        ):
            if value is not None:
                params.append(value)
                conditions.append(f"{column} = ${len(params)}")

        if issued_from:
            params.append(issued_from)
            conditions.append(f"issued_date >= ${len(params)}")

        if issued_to:
            params.append(issued_to)
            conditions.append(f"issued_date <= ${len(params)}")

        query = f'''
            SELECT * FROM {self.schema}.{self.certificates_table}
            WHERE {" AND ".join(conditions)}
            ORDER BY issued_date DESC
        '''
        if limit is not None:
            params.extend([limit, offset])
            query += f" LIMIT ${len(params) - 1} OFFSET ${len(params)}"

        async with self.db:
            rows = await self.db.query(query, params)
        return [self._row_to_certificate(row) for row in rows]

    async def record_verification(self, token: str, verified_at: datetime) -> Optional[Certificate]:
        """Single-statement increment so concurrent verifications never lose a count"""
        query = f'''
            UPDATE {self.schema}.{self.certificates_table}
            SET verification_count = verification_count + 1, verified_at = $2
            WHERE verification_token = $1 AND NOT is_deleted
            RETURNING *
        '''
        async with self.db:
            row = await self.db.query_row(query, [token, verified_at])
        return self._row_to_certificate(row) if row else None

    # ====================
    # Templates
    # ====================

    async def save_template(
        self,
        template: CertificateTemplate,
        replace_default: bool = False,
    ) -> CertificateTemplate:
        """
        Insert a template.

        With replace_default, the current default for the template's type is
        cleared in the same transaction, so a failed insert keeps it.
        """
        query = f'''
            INSERT INTO {self.schema}.{self.templates_table} (
                template_id, tenant_id, name, description, template_content, variables,
                styles, certificate_type, is_default, is_active, is_deleted, deleted_at,
                deleted_by, created_at, updated_at, created_by, updated_by
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17)
            RETURNING *
        '''
        params = [
            template.template_id,
            template.tenant_id,
            template.name,
            template.description,
            template.template_content,
            encode_json_map(template.variables),
            encode_json_map(template.styles),
            template.certificate_type.value,
            template.is_default,
            template.is_active,
            template.is_deleted,
            template.deleted_at,
            template.deleted_by,
            template.created_at,
            template.updated_at,
            template.created_by,
            template.updated_by,
        ]
        async with self.db.transaction() as conn:
            if replace_default:
                await self._clear_default_templates(conn, template)
            row = await conn.fetchrow(query, *params)
        return self._row_to_template(dict(row))

    async def update_template(
        self,
        template: CertificateTemplate,
        replace_default: bool = False,
    ) -> CertificateTemplate:
        """Update a template, optionally taking over the default for its type"""
        query = f'''
            UPDATE {self.schema}.{self.templates_table} SET
                name = $3, description = $4, template_content = $5, variables = $6,
                styles = $7, certificate_type = $8, is_default = $9, is_active = $10,
                is_deleted = $11, deleted_at = $12, deleted_by = $13,
                updated_at = $14, updated_by = $15
            WHERE tenant_id = $1 AND template_id = $2
            RETURNING *
        '''
        params = [
            template.tenant_id,
            template.template_id,
            template.name,
            template.description,
            template.template_content,
            encode_json_map(template.variables),
            encode_json_map(template.styles),
            template.certificate_type.value,
            template.is_default,
            template.is_active,
            template.is_deleted,
            template.deleted_at,
            template.deleted_by,
            template.updated_at,
            template.updated_by,
        ]
        async with self.db.transaction() as conn:
            if replace_default:
                await self._clear_default_templates(conn, template)
            row = await conn.fetchrow(query, *params)
        return self._row_to_template(dict(row))

    async def _clear_default_templates(self, conn, template: CertificateTemplate) -> int:
        """Clear other defaults of the template's (tenant, type) on an open transaction"""
        query = f'''
            UPDATE {self.schema}.{self.templates_table}
            SET is_default = FALSE, updated_at = NOW()
            WHERE tenant_id = $1 AND certificate_type = $2 AND is_default
              AND template_id <> $3
        '''
        status = await conn.execute(
            query, template.tenant_id, template.certificate_type.value, template.template_id
        )
        cleared = affected_rows(status)
        if cleared:
            logger.info(
                f"Cleared {cleared} default {template.certificate_type.value} template(s) "
                f"for tenant {template.tenant_id}"
            )
        return cleared

    async def get_template(self, tenant_id: UUID, template_id: UUID) -> Optional[CertificateTemplate]:
        query = f'''
            SELECT * FROM {self.schema}.{self.templates_table}
            WHERE tenant_id = $1 AND template_id = $2 AND NOT is_deleted
        '''
        async with self.db:
            row = await self.db.query_row(query, [tenant_id, template_id])
        return self._row_to_template(row) if row else None

    async def list_templates(
        self,
        tenant_id: UUID,
        certificate_type: Optional[CertificateType] = None,
        active_only: bool = True,
    ) -> List[CertificateTemplate]:
        conditions = ["tenant_id = $1", "NOT is_deleted"]
        params: List[Any] = [tenant_id]

        if certificate_type:
            params.append(certificate_type.value)
            conditions.append(f"certificate_type = ${len(params)}")

        if active_only:
            conditions.append("is_active")

        query = f'''
            SELECT * FROM {self.schema}.{self.templates_table}
            WHERE {" AND ".join(conditions)}
            ORDER BY is_default DESC, name ASC
        '''
        async with self.db:
            rows = await self.db.query(query, params)
        return [self._row_to_template(row) for row in rows]

    async def get_default_template(
        self,
        tenant_id: UUID,
        certificate_type: CertificateType,
    ) -> Optional[CertificateTemplate]:
        query = f'''
            SELECT * FROM {self.schema}.{self.templates_table}
            WHERE tenant_id = $1 AND certificate_type = $2
              AND is_default AND is_active AND NOT is_deleted
            LIMIT 1
        '''
        async with self.db:
            row = await self.db.query_row(query, [tenant_id, certificate_type.value])
        return self._row_to_template(row) if row else None

    async def template_name_exists(
        self,
        tenant_id: UUID,
        name: str,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        query = f'''
            SELECT 1 FROM {self.schema}.{self.templates_table}
            WHERE tenant_id = $1 AND LOWER(name) = LOWER($2) AND NOT is_deleted
              AND ($3::uuid IS NULL OR template_id <> $3)
            LIMIT 1
        '''
        async with self.db:
            row = await self.db.query_row(query, [tenant_id, name, exclude_id])
        return row is not None

    # ====================
    # Row Mappers
    # ====================

    def _row_to_certificate(self, row: Dict[str, Any]) -> Certificate:
        """Convert database row to Certificate model"""
        return Certificate(
            certificate_id=row["certificate_id"],
            tenant_id=row["tenant_id"],
            title=row["title"],
            description=row.get("description"),
            recipient_id=row["recipient_id"],
            recipient_name=row.get("recipient_name") or "",
            recipient_email=row.get("recipient_email"),
            issuer_id=row["issuer_id"],
            issuer_name=row.get("issuer_name") or "",
            issued_date=row["issued_date"],
            expiry_date=row.get("expiry_date"),
            verification_token=row["verification_token"],
            status=CertificateStatus(row["status"]),
            certificate_type=CertificateType(row["certificate_type"]),
            campaign_id=row.get("campaign_id"),
            template_id=row.get("template_id"),
            metadata=decode_json_map(row.get("metadata")),
            verification_count=row.get("verification_count") or 0,
            verified_at=row.get("verified_at"),
            revoked_at=row.get("revoked_at"),
            revoked_by=row.get("revoked_by"),
            revoked_reason=row.get("revoked_reason"),
            is_deleted=row.get("is_deleted", False),
            deleted_at=row.get("deleted_at"),
            deleted_by=row.get("deleted_by"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            created_by=row.get("created_by"),
            updated_by=row.get("updated_by"),
        )

    def _row_to_template(self, row: Dict[str, Any]) -> CertificateTemplate:
        """Convert database row to CertificateTemplate model"""
        return CertificateTemplate(
            template_id=row["template_id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            description=row.get("description"),
            template_content=row.get("template_content") or "",
            variables=decode_json_map(row.get("variables")),
            styles=decode_json_map(row.get("styles")),
            certificate_type=CertificateType(row["certificate_type"]),
            is_default=row.get("is_default", False),
            is_active=row.get("is_active", True),
            is_deleted=row.get("is_deleted", False),
            deleted_at=row.get("deleted_at"),
            deleted_by=row.get("deleted_by"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            created_by=row.get("created_by"),
            updated_by=row.get("updated_by"),
        )


__all__ = ["CertificateRepository"]
