"""Opt-in service for tracking SMS subscription state."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from leadline.core.phone import normalize_phone_e164
from leadline.persistence.models.sms_opt_in import SmsOptIn
from leadline.persistence.repositories.consent_audit_repository import ConsentAuditRepository
from leadline.persistence.repositories.sms_opt_in_repository import SmsOptInRepository


class OptInService:
    """Service for managing SMS opt-ins and the consent audit trail.

    Must be called inside a ``tenant_scope``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.opt_in_repo = SmsOptInRepository(session)
        self.audit_repo = ConsentAuditRepository(session)

    async def is_opted_in(self, tenant_id: int, phone_number: str) -> bool:
        """Check if a phone number is subscribed. Numbers with no record are subscribed."""
        opt_in = await self.opt_in_repo.get_by_phone(tenant_id, normalize_phone_e164(phone_number))
        return opt_in.is_opted_in if opt_in else True

    async def opt_in(
        self,
        tenant_id: int,
        phone_number: str,
        method: str = "START",
    ) -> SmsOptIn:
        """Opt in a phone number.

        Args:
            tenant_id: Tenant ID
            phone_number: Phone number
            method: Opt-in method (START keyword, web_form, ...)

        Returns:
            Opt-in record
        """
        phone_number = normalize_phone_e164(phone_number)
        opt_in = await self.opt_in_repo.get_by_phone(tenant_id, phone_number)
        now = datetime.utcnow()

        if opt_in:
            opt_in.is_opted_in = True
            opt_in.opted_in_at = now
            opt_in.opt_in_method = method
            opt_in.opted_out_at = None
            opt_in.opt_out_method = None
            await self.session.flush()
            return opt_in

        return await self.opt_in_repo.create(
            tenant_id,
            phone_number=phone_number,
            is_opted_in=True,
            opted_in_at=now,
            opt_in_method=method,
        )

    async def opt_out(
        self,
        tenant_id: int,
        phone_number: str,
        method: str = "STOP",
    ) -> SmsOptIn:
        """Opt out a phone number.

        Args:
            tenant_id: Tenant ID
            phone_number: Phone number
            method: Keyword that triggered the opt-out

        Returns:
            Opt-in record
        """
        phone_number = normalize_phone_e164(phone_number)
        opt_in = await self.opt_in_repo.get_by_phone(tenant_id, phone_number)
        now = datetime.utcnow()

        if opt_in:
            opt_in.is_opted_in = False
            opt_in.opted_out_at = now
            opt_in.opt_out_method = method
            await self.session.flush()
            return opt_in

        return await self.opt_in_repo.create(
            tenant_id,
            phone_number=phone_number,
            is_opted_in=False,
            opted_out_at=now,
            opt_out_method=method,
        )

    async def record_consent_event(
        self,
        tenant_id: int,
        phone_number: str,
        action: str,
        *,
        keyword: str | None = None,
        method: str = "sms_keyword",
        message_sid: str | None = None,
        lead_id: int | None = None,
        consent_version: str | None = None,
        ip_address: str | None = None,
    ) -> None:
        """Append a row to the consent audit trail."""
        await self.audit_repo.create(
            tenant_id,
            phone_number=normalize_phone_e164(phone_number),
            action=action,
            keyword=keyword,
            method=method,
            message_sid=message_sid,
            lead_id=lead_id,
            consent_version=consent_version,
            ip_address=ip_address,
        )
