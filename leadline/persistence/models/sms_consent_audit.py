"""Append-only audit trail of SMS consent changes."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from leadline.persistence.database import Base


class SmsConsentAudit(Base):
    """One row per consent event (opt-in, opt-out, confirmation, help request)."""

    __tablename__ = "sms_consent_audits"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    phone_number = Column(String(50), nullable=False, index=True)
    action = Column(String(30), nullable=False)  # opted_in, opted_out, confirmed, help_requested
    keyword = Column(String(30), nullable=True)
    method = Column(String(30), nullable=True)  # sms_keyword, web_form
    message_sid = Column(String(64), nullable=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=True)
    consent_version = Column(String(20), nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<SmsConsentAudit(id={self.id}, tenant_id={self.tenant_id}, action={self.action})>"
