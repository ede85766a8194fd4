"""Lead model for prospective customers captured from any channel."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text

from leadline.persistence.database import Base


class Lead(Base):
    """A prospective customer contact.

    Phone is the natural grouping key within a tenant but is deliberately not
    unique: every contact attempt may create its own row.
    """

    __tablename__ = "leads"
    __table_args__ = (
        CheckConstraint("source IN ('website', 'phone', 'sms', 'referral')", name="ck_leads_source"),
        CheckConstraint(
            "status IN ('new', 'contacted', 'qualified', 'converted', 'lost')",
            name="ck_leads_status",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True, index=True)
    email = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)
    service_type = Column(String(100), nullable=True)
    source = Column(String(20), nullable=False, default="website")  # website, phone, sms, referral
    status = Column(String(20), nullable=False, default="new")  # new, contacted, qualified, converted, lost

    # SMS consent captured with the lead (web form entry path)
    sms_opted_in = Column(Boolean, default=False, nullable=False)
    sms_opt_in_timestamp = Column(DateTime, nullable=True)
    sms_opt_in_method = Column(String(50), nullable=True)
    sms_opt_in_ip = Column(String(64), nullable=True)

    # Request tracking
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    referrer = Column(Text, nullable=True)
    page_url = Column(Text, nullable=True)
    utm_source = Column(String(255), nullable=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, tenant_id={self.tenant_id}, source={self.source}, status={self.status})>"
