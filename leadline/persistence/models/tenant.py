"""Tenant (business account) model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from leadline.persistence.database import Base

# Statuses a tenant can be resolved in; anything else is treated as not found
RESOLVABLE_TENANT_STATUSES = ("active", "trial")


class Tenant(Base):
    """A business account. Every call, message and lead belongs to one."""

    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    business_name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    custom_domain = Column(String(255), unique=True, nullable=True, index=True)
    status = Column(String(20), nullable=False, default="active")  # active, inactive, suspended, trial

    # Telephony
    twilio_phone_number = Column(String(50), unique=True, nullable=True, index=True)
    twilio_forward_to = Column(String(50), nullable=True)  # Owner's number calls are dialed through to

    # Notifications
    notification_email = Column(String(255), nullable=True)
    notification_phone = Column(String(50), nullable=True)

    # Auto-reply overrides (fall back to settings when empty)
    sms_auto_reply = Column(Text, nullable=True)
    callback_window = Column(String(100), nullable=True)
    urgent_phone = Column(String(50), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def is_resolvable(self) -> bool:
        return self.status in RESOLVABLE_TENANT_STATUSES

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug={self.slug}, status={self.status})>"
