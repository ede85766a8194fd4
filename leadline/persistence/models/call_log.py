"""Call log model: one row per provider call leg."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from leadline.persistence.database import Base


class CallLog(Base):
    """Persisted state of an inbound call, keyed by the provider's CallSid.

    Rows are created on the first webhook delivery for a call and updated in
    place by every later delivery.
    """

    __tablename__ = "call_logs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    call_sid = Column(String(64), unique=True, nullable=False, index=True)
    account_sid = Column(String(64), nullable=True)
    from_number = Column(String(50), nullable=False)
    to_number = Column(String(50), nullable=False)
    forwarded_to = Column(String(50), nullable=True)

    # Call lifecycle
    status = Column(String(20), nullable=False, default="ringing")
    direction = Column(String(20), nullable=False, default="inbound")
    duration = Column(Integer, nullable=True)  # seconds
    answered_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)

    # Voicemail
    recording_url = Column(Text, nullable=True)
    recording_sid = Column(String(64), nullable=True)
    recording_duration = Column(Integer, nullable=True)
    transcription_text = Column(Text, nullable=True)

    # Forward-to-owner leg
    dial_status = Column(String(20), nullable=True)
    dial_duration = Column(Integer, nullable=True)
    connected_to_owner = Column(Boolean, default=False, nullable=False)
    owner_answered_at = Column(DateTime, nullable=True)

    # Side-effect guards (each fires at most once per call)
    auto_sms_sent = Column(Boolean, default=False, nullable=False)
    missed_call_notified = Column(Boolean, default=False, nullable=False)
    voicemail_notified = Column(Boolean, default=False, nullable=False)

    # Caller location as reported by the carrier
    caller_city = Column(String(100), nullable=True)
    caller_state = Column(String(50), nullable=True)
    caller_zip = Column(String(20), nullable=True)
    caller_country = Column(String(10), nullable=True)

    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<CallLog(id={self.id}, tenant_id={self.tenant_id}, call_sid={self.call_sid}, status={self.status})>"
