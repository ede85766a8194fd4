"""SMS compliance and auto-response state machine."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from leadline.core.tenant_context import tenant_scope
from leadline.domain.compliance_copy import ComplianceCopy, get_compliance_copy
from leadline.domain.services.compliance_handler import ComplianceHandler, ComplianceResult
from leadline.domain.services.lead_service import LeadService
from leadline.domain.services.opt_in_service import OptInService
from leadline.domain.services.tenant_resolver import TenantResolver
from leadline.domain.telephony_status import Direction, SmsStatus, normalize_sms_status
from leadline.infrastructure.notifications import NotificationDispatcher
from leadline.persistence.models.sms_log import SmsLog
from leadline.persistence.models.tenant import Tenant
from leadline.persistence.repositories.lead_repository import LeadRepository
from leadline.persistence.repositories.sms_log_repository import SmsLogRepository
from leadline.settings import settings

logger = logging.getLogger(__name__)

# Consent audit actions per keyword class
_AUDIT_ACTIONS = {"stop": "opted_out", "start": "confirmed", "help": "help_requested"}


@dataclass
class SmsReply:
    """Outcome of an inbound SMS."""

    tenant: Tenant | None
    action: str | None = None  # stop, start, help, allow
    reply: str | None = None
    lead_id: int | None = None
    duplicate: bool = False


class _TemplateValues(dict):
    """format_map values that leave unknown placeholders readable instead of raising."""

    def __missing__(self, key: str) -> str:
        return f"[{key}]"


def render_auto_reply(tenant: Tenant) -> str:
    """Fill the tenant's auto-reply template; missing values fall back to generic wording."""
    values = _TemplateValues(
        business_name=tenant.business_name or "our team",
        callback_window=tenant.callback_window or settings.default_callback_window,
        urgent_phone=tenant.urgent_phone or tenant.twilio_forward_to or "this number",
    )
    template = tenant.sms_auto_reply or settings.sms_auto_reply_template
    try:
        return template.format_map(values)
    except (ValueError, IndexError):
        logger.warning("Malformed auto-reply template; using the default", extra={"template": template})
        return settings.sms_auto_reply_template.format_map(values)


class SmsService:
    """Handles one inbound SMS or delivery-status callback."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: NotificationDispatcher | None = None,
        copy: ComplianceCopy | None = None,
        resolver: TenantResolver | None = None,
    ) -> None:
        self.session = session
        self.dispatcher = dispatcher
        self.compliance = ComplianceHandler(copy or get_compliance_copy(settings.compliance_copy_version))
        self.resolver = resolver or TenantResolver(session)
        self.sms_repo = SmsLogRepository(session)
        self.opt_in_service = OptInService(session)

    async def on_incoming_sms(
        self,
        to_number: str,
        from_number: str,
        body: str | None,
        message_sid: str,
    ) -> SmsReply:
        """Classify and record an inbound message, and decide the reply.

        STOP, START and HELP answer with the fixed compliance copy. Anything
        else from a subscribed number becomes (or joins) an SMS lead and gets
        the tenant's auto-reply; from an opted-out number it is only logged.
        A repeated MessageSid returns the same reply without side effects.
        """
        tenant = await self.resolver.resolve_by_phone_number(to_number)
        if tenant is None:
            return SmsReply(tenant=None)

        result = self.compliance.check_compliance(body)
        reply = SmsReply(tenant=tenant, action=result.action, reply=result.response_message)
        new_lead = False

        async with tenant_scope(self.session, tenant.id):
            inbound, created = await self.sms_repo.log_inbound(
                tenant.id,
                message_sid,
                from_number=from_number,
                to_number=to_number,
                body=body,
            )
            if not created:
                logger.info("Duplicate inbound SMS ignored", extra={"message_sid": message_sid})
                reply.duplicate = True
                reply.lead_id = inbound.lead_id
                if not result.is_keyword:
                    previous = await self.sms_repo.get_auto_response_for(tenant.id, message_sid)
                    reply.reply = previous.body if previous else None
                return reply

            if result.is_keyword:
                await self._apply_keyword(tenant, from_number, message_sid, result)
            elif await self.opt_in_service.is_opted_in(tenant.id, from_number):
                reply.lead_id, new_lead = await self._attach_lead(tenant, inbound, body)
                reply.reply = render_auto_reply(tenant)
                await self.sms_repo.create(
                    tenant.id,
                    message_sid=None,
                    from_number=to_number,
                    to_number=from_number,
                    body=reply.reply,
                    status=SmsStatus.QUEUED.value,
                    direction=Direction.OUTBOUND.value,
                    is_auto_response=True,
                    triggered_by_message_sid=message_sid,
                    lead_id=reply.lead_id,
                )
            else:
                logger.info("Message from opted-out number logged without reply", extra={"message_sid": message_sid})

        if new_lead and self.dispatcher is not None:
            await self.dispatcher.notify(
                "new_lead",
                tenant,
                {"phone": from_number, "message": body, "source": "sms", "lead_id": reply.lead_id},
            )
        return reply

    async def _apply_keyword(
        self,
        tenant: Tenant,
        from_number: str,
        message_sid: str,
        result: ComplianceResult,
    ) -> None:
        leads = await LeadRepository(self.session).list_by_phone(tenant.id, from_number)
        if result.action == "stop":
            await self.opt_in_service.opt_out(tenant.id, from_number, method=result.keyword)
            for lead in leads:
                lead.sms_opted_in = False
                lead.sms_opt_in_timestamp = None
        elif result.action == "start":
            await self.opt_in_service.opt_in(tenant.id, from_number, method=result.keyword)
            now = datetime.utcnow()
            for lead in leads:
                lead.sms_opted_in = True
                lead.sms_opt_in_timestamp = now
                lead.sms_opt_in_method = "sms"
        await self.opt_in_service.record_consent_event(
            tenant.id,
            from_number,
            _AUDIT_ACTIONS[result.action],
            keyword=result.keyword,
            message_sid=message_sid,
            lead_id=leads[-1].id if leads else None,
            consent_version=self.compliance.copy.version,
        )

    async def _attach_lead(self, tenant: Tenant, inbound: SmsLog, body: str | None) -> tuple[int, bool]:
        """Join the caller's open lead if there is one, otherwise start an SMS lead.

        Returns:
            (lead_id, created)
        """
        open_leads = [
            lead for lead in await LeadRepository(self.session).list_by_phone(tenant.id, inbound.from_number)
            if lead.status == "new"
        ]
        lead_service = LeadService(self.session)
        if open_leads:
            lead_id = open_leads[-1].id
            created = False
        else:
            lead_id = await lead_service.record_lead(
                tenant.id, "sms", {"phone": inbound.from_number}, {"message": body}
            )
            created = True
        inbound.lead_id = lead_id
        return lead_id, created

    async def on_sms_status(
        self,
        message_sid: str,
        raw_status: str | None,
        error_code: str | None = None,
        error_message: str | None = None,
    ) -> SmsLog | None:
        """Apply a delivery-status callback. Unknown messages are logged and ignored."""
        tenant_id = await self.sms_repo.get_tenant_id_for_message(message_sid)
        if tenant_id is None:
            logger.warning("Status callback for unknown message", extra={"message_sid": message_sid})
            return None

        async with tenant_scope(self.session, tenant_id):
            sms_log = await self.sms_repo.get_by_message_sid(tenant_id, message_sid)
            sms_log.status = normalize_sms_status(raw_status).value
            if error_code:
                sms_log.error_code = error_code
            if error_message:
                sms_log.error_message = error_message
            await self.session.flush()
        return sms_log


def describe_reply(reply: SmsReply) -> dict[str, Any]:
    """Structured summary of an SMS outcome for logging."""
    return {
        "sms_action": reply.action,
        "replied": reply.reply is not None,
        "lead_id": reply.lead_id,
        "duplicate": reply.duplicate,
    }
