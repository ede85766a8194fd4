"""Lead service: record leads from any entry channel."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from leadline.core.phone import normalize_phone_e164
from leadline.persistence.models.lead import Lead
from leadline.persistence.repositories.lead_repository import LeadRepository

logger = logging.getLogger(__name__)

LEAD_SOURCES = ("website", "phone", "sms", "referral")
LEAD_STATUSES = ("new", "contacted", "qualified", "converted", "lost")

# Form/source tags sent by landing pages, mapped onto lead sources
SOURCE_TAGS: dict[str, str] = {
    "hero_form": "website",
    "quote_modal": "website",
    "discount_modal": "website",
    "access_modal": "website",
    "signup_page": "website",
    "website": "website",
    "phone": "phone",
    "sms": "sms",
    "referral": "referral",
}

# Lead columns a caller may set through ``details``
_DETAIL_FIELDS = frozenset({
    "full_name", "email", "message", "service_type", "status",
    "sms_opted_in", "sms_opt_in_timestamp", "sms_opt_in_method", "sms_opt_in_ip",
    "ip_address", "user_agent", "referrer", "page_url",
    "utm_source", "utm_medium", "utm_campaign",
})


def map_lead_source(tag: str | None) -> str:
    """Map a form/source tag to a lead source. Unknown tags are website leads."""
    return SOURCE_TAGS.get((tag or "").strip().lower(), "website")


class LeadService:
    """Creates leads, or updates one the caller already knows about.

    There is no automatic de-duplication: every call without ``lead_id``
    inserts a new row, even for a phone number that already has leads.
    Must be called inside a ``tenant_scope``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.lead_repo = LeadRepository(session)

    async def record_lead(
        self,
        tenant_id: int,
        channel: str,
        contact_info: dict[str, Any],
        details: dict[str, Any] | None = None,
        lead_id: int | None = None,
    ) -> int:
        """Record a lead and return its id.

        Args:
            tenant_id: Owning tenant
            channel: Lead source (website, phone, sms, referral) or a form tag
            contact_info: phone, and optionally full_name and email
            details: Any other lead columns (message, tracking fields, consent)
            lead_id: Existing lead to update instead of inserting

        Returns:
            Lead ID
        """
        source = channel if channel in LEAD_SOURCES else map_lead_source(channel)
        data: dict[str, Any] = {}
        if contact_info.get("phone"):
            data["phone"] = normalize_phone_e164(contact_info["phone"])
        for key in ("full_name", "email"):
            if contact_info.get(key):
                data[key] = contact_info[key]
        for key, value in (details or {}).items():
            if key in _DETAIL_FIELDS and value is not None:
                data[key] = value

        if data.get("status", "new") not in LEAD_STATUSES:
            raise ValueError(f"Invalid lead status: {data['status']}")

        if lead_id is not None:
            lead = await self.lead_repo.update(tenant_id, lead_id, **data)
            if lead is not None:
                return lead.id
            logger.warning(f"Lead {lead_id} not found for tenant {tenant_id}, creating a new one")

        lead: Lead = await self.lead_repo.create(tenant_id, source=source, **data)
        logger.info("Lead recorded", extra={"lead_id": lead.id, "lead_source": source})
        return lead.id
