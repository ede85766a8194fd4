"""Repositories for data access."""

from leadline.persistence.repositories.base import BaseRepository
from leadline.persistence.repositories.call_log_repository import CallLogRepository
from leadline.persistence.repositories.consent_audit_repository import ConsentAuditRepository
from leadline.persistence.repositories.lead_repository import LeadRepository
from leadline.persistence.repositories.sms_log_repository import SmsLogRepository
from leadline.persistence.repositories.sms_opt_in_repository import SmsOptInRepository
from leadline.persistence.repositories.tenant_repository import TenantRepository

__all__ = [
    "BaseRepository",
    "CallLogRepository",
    "ConsentAuditRepository",
    "LeadRepository",
    "SmsLogRepository",
    "SmsOptInRepository",
    "TenantRepository",
]
