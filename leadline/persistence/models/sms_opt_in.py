"""SMS opt-in tracking model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from leadline.persistence.database import Base


class SmsOptIn(Base):
    """SMS subscription state per phone number per tenant.

    A number with no row is subscribed.
    """

    __tablename__ = "sms_opt_ins"
    __table_args__ = (
        UniqueConstraint("tenant_id", "phone_number", name="uq_sms_opt_ins_tenant_phone"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    phone_number = Column(String(50), nullable=False, index=True)

    is_opted_in = Column(Boolean, default=True, nullable=False)

    opted_in_at = Column(DateTime, nullable=True)
    opted_out_at = Column(DateTime, nullable=True)
    opt_in_method = Column(String(50), nullable=True)  # "START", "web_form", ...
    opt_out_method = Column(String(50), nullable=True)  # "STOP", "UNSUBSCRIBE", ...

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<SmsOptIn(id={self.id}, tenant_id={self.tenant_id}, phone={self.phone_number}, opted_in={self.is_opted_in})>"
