"""Lead intake endpoint for tenant landing pages."""

import logging
from datetime import datetime

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from leadline.api.deps import DbSession, Dispatcher
from leadline.api.schemas.lead import LeadIntakeRequest, LeadIntakeResponse
from leadline.core.tenant_context import tenant_scope
from leadline.domain.services.lead_service import LeadService, map_lead_source
from leadline.domain.services.opt_in_service import OptInService
from leadline.domain.services.tenant_resolver import TenantResolver
from leadline.persistence.models.tenant import Tenant
from leadline.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter()

WEB_FORM_CONSENT_VERSION = "1.0"


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.headers.get("x-real-ip"):
        return request.headers["x-real-ip"]
    return request.client.host if request.client else None


async def _resolve_tenant(resolver: TenantResolver, payload: LeadIntakeRequest, request: Request) -> Tenant | None:
    """Explicit id, then explicit slug, then the request host, then the default tenant."""
    if payload.client_id is not None:
        return await resolver.resolve_by_id(payload.client_id)
    if payload.client_slug:
        return await resolver.resolve_by_slug(payload.client_slug)
    tenant = await resolver.resolve_by_host(
        request.headers.get("host"),
        slug_header=request.headers.get("x-client-slug"),
    )
    if tenant is None and settings.default_tenant_slug:
        tenant = await resolver.resolve_by_slug(settings.default_tenant_slug)
    return tenant


@router.post("", status_code=status.HTTP_201_CREATED, response_model=LeadIntakeResponse)
async def create_lead(
    payload: LeadIntakeRequest,
    request: Request,
    db: DbSession,
    dispatcher: Dispatcher,
) -> LeadIntakeResponse | JSONResponse:
    """Accept a lead form submission.

    The payload must carry explicit SMS consent. The consent is stored on
    the lead, on the caller's subscription record and in the audit trail.
    The tenant is notified after the lead is committed; a notification
    failure does not affect the response.
    """
    tenant = await _resolve_tenant(TenantResolver(db), payload, request)
    if tenant is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"success": False, "error": "Unknown client"},
        )

    ip_address = _client_ip(request)
    user_agent = request.headers.get("user-agent")
    referrer = request.headers.get("referer") or payload.referrer
    now = datetime.utcnow()

    try:
        async with tenant_scope(db, tenant.id):
            lead_id = await LeadService(db).record_lead(
                tenant.id,
                map_lead_source(payload.source),
                {"phone": payload.phone, "full_name": payload.full_name, "email": payload.email},
                {
                    "message": payload.message,
                    "service_type": payload.service_type,
                    "sms_opted_in": payload.sms_opted_in,
                    "sms_opt_in_timestamp": now,
                    "sms_opt_in_method": "web_form",
                    "sms_opt_in_ip": ip_address,
                    "ip_address": ip_address,
                    "user_agent": user_agent,
                    "referrer": referrer,
                    "page_url": payload.page_url or referrer,
                    "utm_source": payload.utm_source,
                    "utm_medium": payload.utm_medium,
                    "utm_campaign": payload.utm_campaign,
                },
            )
            opt_in_service = OptInService(db)
            await opt_in_service.opt_in(tenant.id, payload.phone, method="web_form")
            await opt_in_service.record_consent_event(
                tenant.id,
                payload.phone,
                "opted_in",
                method="web_form",
                lead_id=lead_id,
                consent_version=WEB_FORM_CONSENT_VERSION,
                ip_address=ip_address,
            )
    except SQLAlchemyError:
        logger.error("Failed to store lead", exc_info=True, extra={"lead_source": payload.source})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to submit lead"},
        )

    await dispatcher.notify(
        "new_lead",
        tenant,
        {
            "lead_id": lead_id,
            "full_name": payload.full_name,
            "phone": payload.phone,
            "email": payload.email,
            "message": payload.message,
            "service_type": payload.service_type,
            "source": payload.source,
        },
    )
    return LeadIntakeResponse(success=True, lead_id=lead_id, message="Lead submitted successfully")
