"""Tests for the call event state machine."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from leadline.core.tenant_context import tenant_scope
from leadline.domain.services.call_service import (
    TRANSCRIPTION_UNAVAILABLE,
    CallService,
    CallStatusUpdate,
    InboundCall,
    render_auto_sms,
)
from leadline.domain.services.opt_in_service import OptInService
from leadline.domain.telephony_status import DialStatus
from leadline.persistence.models.call_log import CallLog
from leadline.persistence.models.lead import Lead

CALLER = "+15551234567"


@pytest.fixture
def service(db_session, dispatcher, caller_sms_transport):
    return CallService(db_session, dispatcher, sms_transport=caller_sms_transport)


async def _call_rows(db_session, call_sid: str) -> list[CallLog]:
    result = await db_session.execute(select(CallLog).where(CallLog.call_sid == call_sid))
    return list(result.scalars().all())


async def _start_call(service, tenant, call_sid: str = "CA123") -> None:
    await service.on_incoming_call(InboundCall(call_sid=call_sid, from_number=CALLER, to_number=tenant.twilio_phone_number))


class TestIncomingCall:
    async def test_routes_to_forward_number_and_logs_ringing(self, service, db_session, tenant):
        routing = await service.on_incoming_call(
            InboundCall(call_sid="CA123", from_number=CALLER, to_number=tenant.twilio_phone_number, caller_city="Austin")
        )

        assert routing.tenant.id == tenant.id
        assert routing.forward_to == tenant.twilio_forward_to
        assert routing.persisted
        rows = await _call_rows(db_session, "CA123")
        assert len(rows) == 1
        assert rows[0].status == "ringing"
        assert rows[0].direction == "inbound"
        assert rows[0].caller_city == "Austin"

    async def test_unknown_number(self, service, tenant):
        routing = await service.on_incoming_call(InboundCall(call_sid="CA1", from_number=CALLER, to_number="+19990000000"))
        assert routing.tenant is None

    async def test_persist_failure_still_forwards(self, service, tenant):
        service.call_repo.upsert = AsyncMock(side_effect=SQLAlchemyError("db down"))
        routing = await service.on_incoming_call(
            InboundCall(call_sid="CA123", from_number=CALLER, to_number=tenant.twilio_phone_number)
        )
        assert routing.forward_to == tenant.twilio_forward_to
        assert not routing.persisted

    async def test_redelivery_keeps_one_row(self, service, db_session, tenant):
        await _start_call(service, tenant)
        await _start_call(service, tenant)
        assert len(await _call_rows(db_session, "CA123")) == 1


class TestCallStatus:
    async def test_ringing_then_completed_with_recording_notifies_once(
        self, service, db_session, tenant, email_transport
    ):
        await _start_call(service, tenant)
        update = CallStatusUpdate(
            call_sid="CA123",
            raw_status="completed",
            to_number=tenant.twilio_phone_number,
            from_number=CALLER,
            duration=42,
            recording_url="https://api.twilio.com/rec/RE1",
            recording_sid="RE1",
            recording_duration=30,
        )

        first = await service.on_call_status(update)
        second = await service.on_call_status(update)

        assert first.voicemail_notification.status("email") == "sent"
        assert second.voicemail_notification is None
        assert len(email_transport.sent) == 1

        rows = await _call_rows(db_session, "CA123")
        assert len(rows) == 1
        call_log = rows[0]
        assert call_log.status == "completed"
        assert call_log.duration == 42
        assert call_log.ended_at is not None
        assert call_log.voicemail_notified

        lead = (await db_session.execute(select(Lead).where(Lead.id == call_log.lead_id))).scalar_one()
        assert lead.source == "phone"
        assert lead.message == f"Voicemail: {TRANSCRIPTION_UNAVAILABLE}"

    async def test_status_before_inbound_webhook_creates_row(self, service, db_session, tenant):
        result = await service.on_call_status(
            CallStatusUpdate(call_sid="CA999", raw_status="ringing", to_number=tenant.twilio_phone_number, from_number=CALLER)
        )
        assert result.tenant_id == tenant.id
        await _start_call(service, tenant, "CA999")
        assert len(await _call_rows(db_session, "CA999")) == 1

    async def test_unknown_status_does_not_overwrite(self, service, db_session, tenant):
        await _start_call(service, tenant)
        await service.on_call_status(CallStatusUpdate(call_sid="CA123", raw_status="in-progress"))
        answered_at = (await _call_rows(db_session, "CA123"))[0].answered_at

        result = await service.on_call_status(CallStatusUpdate(call_sid="CA123", raw_status="something-odd"))
        await service.on_call_status(CallStatusUpdate(call_sid="CA123", raw_status="in-progress"))

        assert result.status == "in-progress"
        call_log = (await _call_rows(db_session, "CA123"))[0]
        assert call_log.answered_at == answered_at

    async def test_transcription_needs_completed_status(self, service, db_session, tenant):
        await _start_call(service, tenant)
        await service.on_call_status(
            CallStatusUpdate(call_sid="CA123", transcription_text="garbled", transcription_status="failed")
        )
        assert (await _call_rows(db_session, "CA123"))[0].transcription_text is None

        await service.on_call_status(
            CallStatusUpdate(call_sid="CA123", transcription_text="Call me back", transcription_status="completed")
        )
        assert (await _call_rows(db_session, "CA123"))[0].transcription_text == "Call me back"

    async def test_unknown_call_and_number(self, service, tenant):
        assert await service.on_call_status(CallStatusUpdate(call_sid="CA404", to_number="+19990000000")) is None


class TestDialStatus:
    async def test_unknown_dial_status_is_missed_call(
        self, service, db_session, tenant, caller_sms_transport, email_transport, alert_sms_transport
    ):
        await _start_call(service, tenant)

        outcome = await service.on_dial_status("CA123", "weird-status", to_number=tenant.twilio_phone_number, from_number=CALLER)

        assert outcome.dial_status == DialStatus.NO_ANSWER
        assert outcome.missed
        assert outcome.auto_sms == "sent"
        assert outcome.notification.status("email") == "sent"
        assert len(caller_sms_transport.sent) == 1
        assert caller_sms_transport.sent[0]["to"] == CALLER
        assert caller_sms_transport.sent[0]["content"] == render_auto_sms(tenant)
        assert caller_sms_transport.sent[0]["from_"] == tenant.twilio_phone_number
        assert len(email_transport.sent) == 1
        assert "texted them" in alert_sms_transport.sent[0]["content"]

        call_log = (await _call_rows(db_session, "CA123"))[0]
        assert call_log.dial_status == "no-answer"
        assert call_log.auto_sms_sent
        assert call_log.missed_call_notified
        assert call_log.lead_id == outcome.lead_id

    async def test_retry_does_not_repeat_side_effects(
        self, service, db_session, tenant, caller_sms_transport, email_transport
    ):
        await _start_call(service, tenant)
        await service.on_dial_status("CA123", "no-answer")
        retry = await service.on_dial_status("CA123", "no-answer")

        assert retry.auto_sms == "already_sent"
        assert retry.notification is None
        assert len(caller_sms_transport.sent) == 1
        assert len(email_transport.sent) == 1
        leads = (await db_session.execute(select(func.count()).select_from(Lead))).scalar_one()
        assert leads == 1

    async def test_sms_failure_does_not_block_notification(
        self, db_session, dispatcher, tenant, email_transport, alert_sms_transport, fake_transport
    ):
        failing = fake_transport(fail=True)
        service = CallService(db_session, dispatcher, sms_transport=failing)
        await _start_call(service, tenant)

        outcome = await service.on_dial_status("CA123", "busy")

        assert outcome.auto_sms == "failed"
        assert outcome.notification.status("email") == "sent"
        assert len(email_transport.sent) == 1
        # The alert only reports a text that actually went out
        assert "texted them" not in alert_sms_transport.sent[0]["content"]

    async def test_short_completed_leg_counts_as_missed(self, service, tenant, caller_sms_transport):
        await _start_call(service, tenant)
        outcome = await service.on_dial_status("CA123", "completed", dial_duration=3)
        assert not outcome.connected
        assert len(caller_sms_transport.sent) == 1

    async def test_owner_answered(self, service, db_session, tenant, caller_sms_transport, email_transport):
        await _start_call(service, tenant)
        outcome = await service.on_dial_status("CA123", "completed", dial_duration=95)

        assert outcome.connected
        assert outcome.auto_sms == "not_needed"
        assert caller_sms_transport.sent == []
        assert email_transport.sent == []
        call_log = (await _call_rows(db_session, "CA123"))[0]
        assert call_log.connected_to_owner
        assert call_log.owner_answered_at is not None
        assert call_log.dial_duration == 95

    async def test_owner_call_recording_is_not_a_voicemail(self, service, tenant, email_transport):
        await _start_call(service, tenant)
        await service.on_dial_status("CA123", "completed", dial_duration=95)
        result = await service.on_call_status(
            CallStatusUpdate(
                call_sid="CA123",
                raw_status="completed",
                recording_url="https://api.twilio.com/rec/RE2",
                recording_source="DialVerb",
            )
        )
        assert result.voicemail_notification is None
        assert email_transport.sent == []

    async def test_opted_out_caller_gets_no_sms(
        self, service, db_session, tenant, caller_sms_transport, email_transport
    ):
        async with tenant_scope(db_session, tenant.id):
            await OptInService(db_session).opt_out(tenant.id, CALLER)
        await _start_call(service, tenant)

        outcome = await service.on_dial_status("CA123", "no-answer")

        assert outcome.auto_sms == "opted_out"
        assert caller_sms_transport.sent == []
        assert len(email_transport.sent) == 1

    async def test_unconfigured_transport(self, db_session, dispatcher, tenant, fake_transport):
        service = CallService(db_session, dispatcher, sms_transport=fake_transport(configured=False))
        await _start_call(service, tenant)
        outcome = await service.on_dial_status("CA123", "failed")
        assert outcome.auto_sms == "disabled"
