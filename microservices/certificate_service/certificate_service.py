"""
Certificate Service Business Logic

Issues campaign completion certificates (one per campaign and recipient),
manages their status and revocation, serves public token verification and
maintains certificate templates.
"""

import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional
from uuid import UUID

from core.config import LifecycleConfig
from core.context import Actor
from core.nats_client import Event, ServiceSource
from core.postgres_client import UniqueConstraintViolation
from microservices.campaign_service.aggregation import completion_percentage
from microservices.campaign_service.models import Campaign

from .events.models import CertificateEventData, CertificateEventType
from .models import (
    METADATA_ADMIN_NOTES,
    METADATA_CUSTOM_MESSAGE,
    METADATA_REVOCATION_REASON,
    BatchCertificateRequest,
    BatchGenerationFailure,
    BatchGenerationResult,
    Certificate,
    CertificateGenerateRequest,
    CertificateStatistics,
    CertificateStatus,
    CertificateTemplate,
    CertificateType,
    CertificateUpdateRequest,
    CertificateVerification,
    EligibleManager,
    TemplateCreateRequest,
    TemplateUpdateRequest,
)
from .protocols import (
    TEMPLATE_DEFAULT_CONSTRAINT,
    TOKEN_CONSTRAINT,
    CampaignReaderProtocol,
    CertificateAlreadyExistsError,
    CertificateAlreadyRevokedError,
    CertificateCampaignNotFoundError,
    CertificateNotFoundError,
    CertificateRepositoryProtocol,
    CertificateServiceError,
    EventBusProtocol,
    InvalidCertificateStateError,
    InvalidVerificationTokenError,
    RecipientNotFoundError,
    TemplateConflictError,
    TemplateNotFoundError,
    TokenGenerationError,
    UserDirectoryProtocol,
)

logger = logging.getLogger(__name__)

DEFAULT_REVOCATION_REASON = "Certificate revoked by administrator"


def generate_verification_token() -> str:
    """16 uppercase hex characters taken from a random UUID"""
    return uuid.uuid4().hex[:16].upper()


class CertificateService:
    """Certificate service business logic layer"""

    def __init__(
        self,
        repository: CertificateRepositoryProtocol,
        campaign_reader: CampaignReaderProtocol,
        user_directory: UserDirectoryProtocol,
        event_bus: Optional[EventBusProtocol] = None,
        config: Optional[LifecycleConfig] = None,
        token_factory: Callable[[], str] = generate_verification_token,
    ):
        self.repository = repository
        self.campaign_reader = campaign_reader
        self.user_directory = user_directory
        self.event_bus = event_bus
        self.config = config or LifecycleConfig()
        self.token_factory = token_factory

    # ====================
    # Issuance
    # ====================

    async def generate_certificate(self, request: CertificateGenerateRequest, actor: Actor) -> Certificate:
        """
        Issue a completion certificate for a campaign recipient.

        Fails if the campaign or recipient is missing or a certificate already
        exists for the pair. The tenant's default CampaignCompletion template
        is bound when one exists.
        """
        campaign = await self._get_campaign(request.campaign_id, actor.tenant_id)
        return await self._issue(campaign, request.recipient_id, actor, request.custom_message, request.expiry_date)

    async def batch_generate_certificates(
        self,
        request: BatchCertificateRequest,
        actor: Actor,
    ) -> BatchGenerationResult:
        """Issue to each recipient independently, collecting per-recipient failures"""
        campaign = await self._get_campaign(request.campaign_id, actor.tenant_id)
        result = BatchGenerationResult(campaign_id=campaign.campaign_id)

        for recipient_id in dict.fromkeys(request.recipient_ids):
            try:
                certificate = await self._issue(
                    campaign, recipient_id, actor, request.custom_message, request.expiry_date
                )
                result.generated.append(certificate)
            except CertificateServiceError as e:
                result.failures.append(BatchGenerationFailure(recipient_id=recipient_id, reason=e.message))

        logger.info(
            f"Batch issuance for campaign {campaign.campaign_id}: "
            f"{result.success_count} generated, {result.failure_count} failed"
        )
        return result

    async def _issue(
        self,
        campaign: Campaign,
        recipient_id: UUID,
        actor: Actor,
        custom_message: Optional[str],
        expiry_date: Optional[datetime],
    ) -> Certificate:
        recipient = await self.user_directory.get_user(recipient_id)
        if not recipient:
            raise RecipientNotFoundError("Manager not found")

        existing = await self.repository.get_by_campaign_and_recipient(
            actor.tenant_id, campaign.campaign_id, recipient_id
        )
        if existing:
            raise CertificateAlreadyExistsError("Certificate already exists for this manager and campaign")

        template = await self.repository.get_default_template(actor.tenant_id, CertificateType.CAMPAIGN_COMPLETION)

        metadata = {}
        if custom_message:
            metadata[METADATA_CUSTOM_MESSAGE] = custom_message

        now = datetime.now(timezone.utc)
        certificate = Certificate(
            tenant_id=actor.tenant_id,
            title=f"Campaign Completion Certificate - {campaign.title}",
            description=f"Certificate of completion for campaign: {campaign.title}",
            recipient_id=recipient_id,
            recipient_name=recipient.full_name,
            recipient_email=recipient.email,
            issuer_id=actor.user_id,
            issuer_name=await self._issuer_name(actor),
            issued_date=now,
            expiry_date=expiry_date,
            verification_token=self.token_factory(),
            status=CertificateStatus.GENERATED,
            certificate_type=CertificateType.CAMPAIGN_COMPLETION,
            campaign_id=campaign.campaign_id,
            template_id=template.template_id if template else None,
            metadata=metadata,
            created_at=now,
            updated_at=now,
            created_by=actor.user_id,
            updated_by=actor.user_id,
        )

        try:
            certificate = await self._persist_with_fresh_token(certificate, self.repository.save_certificate)
        except UniqueConstraintViolation:
            raise CertificateAlreadyExistsError("Certificate already exists for this manager and campaign")

        await self._publish_event(CertificateEventType.GENERATED, certificate, actor.user_id, now)
        logger.info(
            f"Certificate {certificate.certificate_id} generated for {recipient_id} "
            f"(campaign={campaign.campaign_id})"
        )
        return certificate

    async def regenerate_certificate(
        self,
        certificate_id: UUID,
        actor: Actor,
        custom_message: Optional[str] = None,
    ) -> Certificate:
        """Reissue the same certificate with a new token and issue date"""
        certificate = await self.get_certificate(certificate_id, actor.tenant_id)
        if certificate.is_revoked:
            raise InvalidCertificateStateError(
                "Revoked certificates cannot be regenerated", certificate.status
            )

        now = datetime.now(timezone.utc)
        certificate.issued_date = now
        if custom_message:
            certificate.metadata[METADATA_CUSTOM_MESSAGE] = custom_message
        certificate.updated_at = now
        certificate.updated_by = actor.user_id

        updated = await self._persist_with_fresh_token(certificate, self.repository.update_certificate)
        if updated is None:
            raise InvalidCertificateStateError(
                "Revoked certificates cannot be regenerated", CertificateStatus.REVOKED
            )
        certificate = updated

        await self._publish_event(CertificateEventType.REGENERATED, certificate, actor.user_id, now)
        logger.info(f"Certificate {certificate_id} regenerated")
        return certificate

    async def _persist_with_fresh_token(
        self,
        certificate: Certificate,
        persist: Callable[[Certificate], Awaitable[Optional[Certificate]]],
    ) -> Optional[Certificate]:
        """Persist, minting a new token whenever the previous one collided"""
        attempts = max(1, self.config.certificate_token_retries)
        for attempt in range(1, attempts + 1):
            if attempt > 1:
                certificate.verification_token = self.token_factory()
            try:
                return await persist(certificate)
            except UniqueConstraintViolation as e:
                if e.constraint != TOKEN_CONSTRAINT:
                    raise
                logger.warning(f"Verification token collision, retrying ({attempt}/{attempts})")
        raise TokenGenerationError("Could not generate a unique verification token")

    # ====================
    # Status & Revocation
    # ====================

    async def update_certificate(
        self,
        certificate_id: UUID,
        request: CertificateUpdateRequest,
        actor: Actor,
    ) -> Certificate:
        """
        Administrative update of status and metadata notes.

        Revocation is only possible through revoke_certificate, and revoked
        certificates cannot be changed.
        """
        certificate = await self.get_certificate(certificate_id, actor.tenant_id)

        if certificate.is_revoked:
            raise InvalidCertificateStateError("Revoked certificates cannot be modified", certificate.status)
        if request.status == CertificateStatus.REVOKED:
            raise InvalidCertificateStateError(
                "Use revoke to revoke a certificate", certificate.status
            )

        if request.status is not None:
            certificate.status = request.status
        if request.custom_message is not None:
            certificate.metadata[METADATA_CUSTOM_MESSAGE] = request.custom_message
        if request.admin_notes is not None:
            certificate.metadata[METADATA_ADMIN_NOTES] = request.admin_notes
        if request.expiry_date is not None:
            certificate.expiry_date = request.expiry_date

        now = datetime.now(timezone.utc)
        certificate.updated_at = now
        certificate.updated_by = actor.user_id
        updated = await self.repository.update_certificate(certificate)
        if updated is None:
            raise InvalidCertificateStateError(
                "Revoked certificates cannot be modified", CertificateStatus.REVOKED
            )
        certificate = updated

        await self._publish_event(CertificateEventType.UPDATED, certificate, actor.user_id, now)
        logger.info(f"Certificate {certificate_id} updated (status={certificate.status.value})")
        return certificate

    async def revoke_certificate(
        self,
        certificate_id: UUID,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> bool:
        certificate = await self.get_certificate(certificate_id, actor.tenant_id)
        if certificate.is_revoked:
            raise CertificateAlreadyRevokedError("Certificate is already revoked")

        now = datetime.now(timezone.utc)
        reason = reason or DEFAULT_REVOCATION_REASON
        certificate.status = CertificateStatus.REVOKED
        certificate.revoked_at = now
        certificate.revoked_by = actor.user_id
        certificate.revoked_reason = reason
        certificate.metadata[METADATA_REVOCATION_REASON] = reason
        certificate.updated_at = now
        certificate.updated_by = actor.user_id
        if await self.repository.update_certificate(certificate) is None:
            raise CertificateAlreadyRevokedError("Certificate is already revoked")

        await self._publish_event(CertificateEventType.REVOKED, certificate, actor.user_id, now, reason=reason)
        logger.info(f"Certificate {certificate_id} revoked by {actor.user_id}: {reason}")
        return True

    async def delete_certificate(self, certificate_id: UUID, actor: Actor) -> bool:
        """Soft delete"""
        certificate = await self.get_certificate(certificate_id, actor.tenant_id)

        now = datetime.now(timezone.utc)
        if not await self.repository.soft_delete_certificate(
            actor.tenant_id, certificate_id, actor.user_id, now
        ):
            raise CertificateNotFoundError("Certificate not found")
        certificate.is_deleted = True
        certificate.deleted_at = now
        certificate.deleted_by = actor.user_id

        await self._publish_event(CertificateEventType.DELETED, certificate, actor.user_id, now)
        logger.info(f"Certificate {certificate_id} deleted")
        return True

    # ====================
    # Verification
    # ====================

    async def verify_certificate(self, token: str) -> CertificateVerification:
        """
        Public lookup by exact token.

        Every successful lookup increments verification_count in storage with
        a single atomic update, so concurrent verifications are all counted.
        """
        now = datetime.now(timezone.utc)
        certificate = await self.repository.record_verification(token, now)
        if not certificate:
            raise InvalidVerificationTokenError("Invalid verification token")

        campaign_title = None
        if certificate.campaign_id:
            campaign = await self.campaign_reader.get_campaign(
                certificate.tenant_id, certificate.campaign_id, include_deleted=True
            )
            campaign_title = campaign.title if campaign else None

        is_expired = certificate.is_expired(now)
        verification = CertificateVerification(
            is_valid=not certificate.is_revoked and not is_expired,
            verification_token=certificate.verification_token,
            verification_date=now,
            certificate_id=certificate.certificate_id,
            title=certificate.title,
            recipient_name=certificate.recipient_name,
            issuer_name=certificate.issuer_name,
            issued_date=certificate.issued_date,
            expiry_date=certificate.expiry_date,
            status=certificate.status,
            certificate_type=certificate.certificate_type,
            campaign_title=campaign_title,
            custom_message=certificate.metadata.get(METADATA_CUSTOM_MESSAGE),
            is_revoked=certificate.is_revoked,
            is_expired=is_expired,
            verification_count=certificate.verification_count,
        )

        await self._publish_event(CertificateEventType.VERIFIED, certificate, None, now)
        logger.info(f"Certificate {certificate.certificate_id} verified (count={certificate.verification_count})")
        return verification

    # ====================
    # Queries
    # ====================

    async def get_certificate(self, certificate_id: UUID, tenant_id: UUID) -> Certificate:
        certificate = await self.repository.get_certificate(tenant_id, certificate_id)
        if not certificate:
            raise CertificateNotFoundError("Certificate not found")
        return certificate

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
        limit: int = 100,
        offset: int = 0,
    ) -> List[Certificate]:
        return await self.repository.list_certificates(
            tenant_id,
            campaign_id=campaign_id,
            recipient_id=recipient_id,
            status=status,
            certificate_type=certificate_type,
            issued_from=issued_from,
            issued_to=issued_to,
            include_revoked=include_revoked,
            limit=limit,
            offset=offset,
        )

    async def get_recipient_certificates(self, tenant_id: UUID, recipient_id: UUID) -> List[Certificate]:
        return await self.repository.list_certificates(tenant_id, recipient_id=recipient_id, limit=None)

    async def get_campaign_certificates(self, campaign_id: UUID, tenant_id: UUID) -> List[Certificate]:
        await self._get_campaign(campaign_id, tenant_id)
        return await self.repository.list_certificates(
            tenant_id, campaign_id=campaign_id, include_revoked=True, limit=None
        )

    async def get_eligible_managers(self, campaign_id: UUID, tenant_id: UUID) -> List[EligibleManager]:
        """Assigned managers with their groups' completion and certificate state"""
        campaign = await self._get_campaign(campaign_id, tenant_id)
        groups = await self.campaign_reader.list_groups(tenant_id, campaign_id=campaign_id)
        completed = await self.campaign_reader.list_evaluations(
            tenant_id, campaign_id=campaign_id, is_completed=True
        )
        certificates = await self.repository.list_certificates(
            tenant_id, campaign_id=campaign_id, include_revoked=True, limit=None
        )
        certified = {c.recipient_id for c in certificates}

        completed_by_group = Counter(e.group_id for e in completed if e.group_id is not None)

        eligible = []
        for manager_id in sorted(campaign.assigned_managers, key=str):
            manager_groups = [g for g in groups if g.manager_id == manager_id]
            total = sum(len(g.target_user_ids) for g in manager_groups)
            done = sum(completed_by_group[g.group_id] for g in manager_groups)
            profile = await self.user_directory.get_user(manager_id)
            eligible.append(EligibleManager(
                manager_id=manager_id,
                manager_name=profile.full_name if profile else None,
                total_evaluations=total,
                completed_evaluations=done,
                completion_percentage=completion_percentage(done, total),
                has_certificate=manager_id in certified,
            ))
        return eligible

    async def get_certificate_statistics(self, tenant_id: UUID) -> CertificateStatistics:
        certificates = await self.repository.list_certificates(tenant_id, include_revoked=True, limit=None)
        now = datetime.now(timezone.utc)

        revoked = sum(1 for c in certificates if c.is_revoked)
        expired = sum(1 for c in certificates if not c.is_revoked and c.is_expired(now))
        by_type: Dict[str, int] = Counter(c.certificate_type.value for c in certificates)

        return CertificateStatistics(
            total_certificates=len(certificates),
            active_certificates=len(certificates) - revoked - expired,
            revoked_certificates=revoked,
            expired_certificates=expired,
            total_verifications=sum(c.verification_count for c in certificates),
            certificates_by_type=dict(by_type),
        )

    # ====================
    # Templates
    # ====================

    async def create_template(self, request: TemplateCreateRequest, actor: Actor) -> CertificateTemplate:
        """Create a template; a new default replaces the existing one for its type"""
        if await self.repository.template_name_exists(actor.tenant_id, request.name):
            raise TemplateConflictError("Certificate template name already exists")

        now = datetime.now(timezone.utc)
        template = CertificateTemplate(
            tenant_id=actor.tenant_id,
            name=request.name,
            description=request.description,
            template_content=request.template_content,
            variables=request.variables,
            styles=request.styles,
            certificate_type=request.certificate_type,
            is_default=request.is_default,
            is_active=request.is_active,
            created_at=now,
            updated_at=now,
            created_by=actor.user_id,
            updated_by=actor.user_id,
        )

        try:
            template = await self.repository.save_template(template, replace_default=template.is_default)
        except UniqueConstraintViolation as e:
            raise TemplateConflictError(self._template_conflict_message(e))

        logger.info(f"Certificate template created: {template.template_id} (default={template.is_default})")
        return template

    async def update_template(
        self,
        template_id: UUID,
        request: TemplateUpdateRequest,
        actor: Actor,
    ) -> CertificateTemplate:
        template = await self.get_template(template_id, actor.tenant_id)

        if request.name is not None and request.name != template.name:
            if await self.repository.template_name_exists(actor.tenant_id, request.name, exclude_id=template_id):
                raise TemplateConflictError("Certificate template name already exists")

        target_type = request.certificate_type or template.certificate_type
        will_be_default = template.is_default if request.is_default is None else request.is_default
        becomes_default = will_be_default and (
            not template.is_default or target_type != template.certificate_type
        )
        for field_name in (
            "name", "description", "template_content", "variables", "styles", "is_active",
        ):
            value = getattr(request, field_name)
            if value is not None:
                setattr(template, field_name, value)
        template.certificate_type = target_type
        template.is_default = will_be_default
        template.updated_at = datetime.now(timezone.utc)
        template.updated_by = actor.user_id

        try:
            template = await self.repository.update_template(template, replace_default=becomes_default)
        except UniqueConstraintViolation as e:
            raise TemplateConflictError(self._template_conflict_message(e))

        logger.info(f"Certificate template updated: {template_id}")
        return template

    async def get_template(self, template_id: UUID, tenant_id: UUID) -> CertificateTemplate:
        template = await self.repository.get_template(tenant_id, template_id)
        if not template:
            raise TemplateNotFoundError("Certificate template not found")
        return template

    async def list_templates(
        self,
        tenant_id: UUID,
        certificate_type: Optional[CertificateType] = None,
        active_only: bool = True,
    ) -> List[CertificateTemplate]:
        return await self.repository.list_templates(
            tenant_id, certificate_type=certificate_type, active_only=active_only
        )

    async def get_default_template(
        self,
        tenant_id: UUID,
        certificate_type: CertificateType,
    ) -> Optional[CertificateTemplate]:
        """Default template for a type, or None when the tenant has none"""
        return await self.repository.get_default_template(tenant_id, certificate_type)

    @staticmethod
    def _template_conflict_message(error: UniqueConstraintViolation) -> str:
        if error.constraint == TEMPLATE_DEFAULT_CONSTRAINT:
            return "Another default template was set for this type"
        return "Certificate template name already exists"

    # ====================
    # Helpers
    # ====================

    async def _get_campaign(self, campaign_id: UUID, tenant_id: UUID) -> Campaign:
        campaign = await self.campaign_reader.get_campaign(tenant_id, campaign_id)
        if not campaign:
            raise CertificateCampaignNotFoundError("Campaign not found")
        return campaign

    async def _issuer_name(self, actor: Actor) -> str:
        if actor.name:
            return actor.name
        profile = await self.user_directory.get_user(actor.user_id)
        return profile.full_name if profile else ""

    async def _publish_event(
        self,
        event_type: CertificateEventType,
        certificate: Certificate,
        actor_id: Optional[UUID],
        occurred_at: datetime,
        reason: Optional[str] = None,
    ) -> None:
        """Publish event to event bus; failures never fail the operation"""
        if not self.event_bus:
            logger.debug(f"Event bus not configured, skipping event: {event_type.value}")
            return

        try:
            data = CertificateEventData(
                certificate_id=certificate.certificate_id,
                tenant_id=certificate.tenant_id,
                campaign_id=certificate.campaign_id,
                recipient_id=certificate.recipient_id,
                status=certificate.status.value,
                actor_id=actor_id,
                occurred_at=occurred_at,
                reason=reason,
            )
            event = Event(
                event_type=event_type,
                source=ServiceSource.CERTIFICATE_SERVICE,
                data=data.model_dump(mode="json"),
            )
            await self.event_bus.publish_event(event)
            logger.debug(f"Published event: {event_type.value}")
        except Exception as e:
            logger.error(f"Failed to publish event {event_type.value}: {e}")


__all__ = [
    "CertificateService",
    "DEFAULT_REVOCATION_REASON",
    "generate_verification_token",
]
