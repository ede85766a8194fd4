"""Database models."""

from leadline.persistence.models.call_log import CallLog
from leadline.persistence.models.lead import Lead
from leadline.persistence.models.sms_consent_audit import SmsConsentAudit
from leadline.persistence.models.sms_log import SmsLog
from leadline.persistence.models.sms_opt_in import SmsOptIn
from leadline.persistence.models.tenant import RESOLVABLE_TENANT_STATUSES, Tenant

__all__ = [
    "CallLog",
    "Lead",
    "RESOLVABLE_TENANT_STATUSES",
    "SmsConsentAudit",
    "SmsLog",
    "SmsOptIn",
    "Tenant",
]
