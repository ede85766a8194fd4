"""Tests for the lead intake endpoint."""

from sqlalchemy import select

from leadline.persistence.models.lead import Lead
from leadline.persistence.models.sms_consent_audit import SmsConsentAudit
from leadline.persistence.models.sms_opt_in import SmsOptIn


def _payload(**overrides):
    payload = {
        "fullName": "Jane Doe",
        "phone": "(555) 123-4567",
        "email": "Jane@Example.com",
        "message": "Leaky faucet",
        "serviceType": "repair",
        "source": "hero_form",
        "smsOptedIn": True,
        "utmSource": "google",
    }
    payload.update(overrides)
    return payload


class TestLeadIntake:
    async def test_creates_lead_with_consent(self, client, db_session, tenant, email_transport):
        response = await client.post(
            "/api/v1/leads",
            json=_payload(clientSlug=tenant.slug),
            headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "pytest"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True

        lead = (await db_session.execute(select(Lead))).scalar_one()
        assert lead.id == body["lead_id"]
        assert lead.tenant_id == tenant.id
        assert lead.phone == "+15551234567"
        assert lead.email == "jane@example.com"
        assert lead.source == "website"
        assert lead.sms_opted_in
        assert lead.sms_opt_in_method == "web_form"
        assert lead.ip_address == "203.0.113.7"
        assert lead.user_agent == "pytest"
        assert lead.utm_source == "google"

        opt_in = (await db_session.execute(select(SmsOptIn))).scalar_one()
        assert opt_in.is_opted_in
        assert opt_in.opt_in_method == "web_form"

        audit = (await db_session.execute(select(SmsConsentAudit))).scalar_one()
        assert audit.action == "opted_in"
        assert audit.method == "web_form"
        assert audit.lead_id == lead.id

        assert len(email_transport.sent) == 1

    async def test_tenant_from_client_id(self, client, db_session, make_tenant):
        await make_tenant()
        other = await make_tenant()
        response = await client.post("/api/v1/leads", json=_payload(clientId=other.id))

        assert response.status_code == 201
        lead = (await db_session.execute(select(Lead))).scalar_one()
        assert lead.tenant_id == other.id

    async def test_tenant_from_slug_header(self, client, db_session, tenant):
        response = await client.post("/api/v1/leads", json=_payload(), headers={"X-Client-Slug": tenant.slug})
        assert response.status_code == 201

    async def test_consent_is_required(self, client, tenant):
        response = await client.post("/api/v1/leads", json=_payload(clientSlug=tenant.slug, smsOptedIn=False))
        assert response.status_code == 422

    async def test_invalid_phone(self, client, tenant):
        response = await client.post("/api/v1/leads", json=_payload(clientSlug=tenant.slug, phone="12345"))
        assert response.status_code == 422

    async def test_unknown_client(self, client, tenant):
        response = await client.post("/api/v1/leads", json=_payload(clientSlug="nobody"))
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Unknown client"}

    async def test_inactive_client(self, client, make_tenant):
        tenant = await make_tenant(status="suspended")
        response = await client.post("/api/v1/leads", json=_payload(clientSlug=tenant.slug))
        assert response.status_code == 404


async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-Id": "req-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-Id"] == "req-123"
