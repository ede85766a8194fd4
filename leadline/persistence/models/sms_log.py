"""SMS log model: one row per message, inbound or outbound."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text

from leadline.persistence.database import Base


class SmsLog(Base):
    """A single SMS. Auto-responses point back at the inbound message that triggered them."""

    __tablename__ = "sms_logs"
    __table_args__ = (
        CheckConstraint(
            "NOT is_auto_response OR triggered_by_message_sid IS NOT NULL",
            name="ck_sms_logs_auto_response_trigger",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    message_sid = Column(String(64), unique=True, nullable=True, index=True)
    from_number = Column(String(50), nullable=False)
    to_number = Column(String(50), nullable=False)
    body = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="received")
    direction = Column(String(20), nullable=False, default="inbound")

    is_auto_response = Column(Boolean, default=False, nullable=False)
    triggered_by_message_sid = Column(String(64), nullable=True, index=True)

    error_code = Column(String(20), nullable=True)
    error_message = Column(Text, nullable=True)

    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<SmsLog(id={self.id}, tenant_id={self.tenant_id}, message_sid={self.message_sid}, status={self.status})>"
