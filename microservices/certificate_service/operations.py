"""
Certificate Operations

Caller-facing entry points returning OperationResult, mirroring
CampaignOperations.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from core.context import Actor
from core.operation_result import OperationResult, run_operation

from .certificate_service import CertificateService
from .models import (
    BatchCertificateRequest,
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
from .protocols import CertificateServiceError


class CertificateOperations:
    """Structured-result facade over CertificateService"""

    def __init__(self, service: CertificateService):
        self.service = service

    async def _run(self, name: str, call) -> OperationResult:
        return await run_operation(name, call, CertificateServiceError)

    # Issuance

    async def generate_certificate(
        self, request: CertificateGenerateRequest, actor: Actor
    ) -> OperationResult[Certificate]:
        return await self._run(
            "GenerateCertificate", lambda: self.service.generate_certificate(request, actor)
        )

    async def batch_generate_certificates(
        self, request: BatchCertificateRequest, actor: Actor
    ) -> OperationResult[BatchGenerationResult]:
        return await self._run(
            "BatchGenerateCertificates", lambda: self.service.batch_generate_certificates(request, actor)
        )

    async def regenerate_certificate(
        self, certificate_id: UUID, actor: Actor, custom_message: Optional[str] = None
    ) -> OperationResult[Certificate]:
        return await self._run(
            "RegenerateCertificate",
            lambda: self.service.regenerate_certificate(certificate_id, actor, custom_message=custom_message),
        )

    async def get_eligible_managers(
        self, campaign_id: UUID, tenant_id: UUID
    ) -> OperationResult[List[EligibleManager]]:
        return await self._run(
            "GetEligibleManagers", lambda: self.service.get_eligible_managers(campaign_id, tenant_id)
        )

    # Status

    async def update_certificate(
        self, certificate_id: UUID, request: CertificateUpdateRequest, actor: Actor
    ) -> OperationResult[Certificate]:
        return await self._run(
            "UpdateCertificate", lambda: self.service.update_certificate(certificate_id, request, actor)
        )

    async def revoke_certificate(
        self, certificate_id: UUID, actor: Actor, reason: Optional[str] = None
    ) -> OperationResult[bool]:
        return await self._run(
            "RevokeCertificate", lambda: self.service.revoke_certificate(certificate_id, actor, reason=reason)
        )

    async def delete_certificate(self, certificate_id: UUID, actor: Actor) -> OperationResult[bool]:
        return await self._run(
            "DeleteCertificate", lambda: self.service.delete_certificate(certificate_id, actor)
        )

    async def verify_certificate(self, token: str) -> OperationResult[CertificateVerification]:
        return await self._run("VerifyCertificate", lambda: self.service.verify_certificate(token))

    # Queries

    async def get_certificate(self, certificate_id: UUID, tenant_id: UUID) -> OperationResult[Certificate]:
        return await self._run(
            "GetCertificate", lambda: self.service.get_certificate(certificate_id, tenant_id)
        )

    async def get_certificates(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        recipient_id: Optional[UUID] = None,
        status: Optional[CertificateStatus] = None,
        certificate_type: Optional[CertificateType] = None,
        issued_from: Optional[datetime] = None,
        issued_to: Optional[datetime] = None,
        include_revoked: bool = False,
    ) -> OperationResult[List[Certificate]]:
        return await self._run(
            "GetCertificates",
            lambda: self.service.list_certificates(
                tenant_id,
                campaign_id=campaign_id,
                recipient_id=recipient_id,
                status=status,
                certificate_type=certificate_type,
                issued_from=issued_from,
                issued_to=issued_to,
                include_revoked=include_revoked,
            ),
        )

    async def get_my_certificates(self, actor: Actor) -> OperationResult[List[Certificate]]:
        return await self._run(
            "GetMyCertificates",
            lambda: self.service.get_recipient_certificates(actor.tenant_id, actor.user_id),
        )

    async def get_campaign_certificates(
        self, campaign_id: UUID, tenant_id: UUID
    ) -> OperationResult[List[Certificate]]:
        return await self._run(
            "GetCampaignCertificates", lambda: self.service.get_campaign_certificates(campaign_id, tenant_id)
        )

    async def get_certificate_statistics(self, tenant_id: UUID) -> OperationResult[CertificateStatistics]:
        return await self._run(
            "GetCertificateStatistics", lambda: self.service.get_certificate_statistics(tenant_id)
        )

    # Templates

    async def create_template(
        self, request: TemplateCreateRequest, actor: Actor
    ) -> OperationResult[CertificateTemplate]:
        return await self._run("CreateTemplate", lambda: self.service.create_template(request, actor))

    async def update_template(
        self, template_id: UUID, request: TemplateUpdateRequest, actor: Actor
    ) -> OperationResult[CertificateTemplate]:
        return await self._run(
            "UpdateTemplate", lambda: self.service.update_template(template_id, request, actor)
        )

    async def get_template(self, template_id: UUID, tenant_id: UUID) -> OperationResult[CertificateTemplate]:
        return await self._run("GetTemplate", lambda: self.service.get_template(template_id, tenant_id))

    async def get_templates(
        self,
        tenant_id: UUID,
        certificate_type: Optional[CertificateType] = None,
        active_only: bool = True,
    ) -> OperationResult[List[CertificateTemplate]]:
        return await self._run(
            "GetTemplates",
            lambda: self.service.list_templates(
                tenant_id, certificate_type=certificate_type, active_only=active_only
            ),
        )

    async def get_default_template(
        self, tenant_id: UUID, certificate_type: CertificateType
    ) -> OperationResult[Optional[CertificateTemplate]]:
        return await self._run(
            "GetDefaultTemplate", lambda: self.service.get_default_template(tenant_id, certificate_type)
        )


__all__ = ["CertificateOperations"]
