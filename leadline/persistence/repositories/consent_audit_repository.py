"""SMS consent audit repository."""

from sqlalchemy.ext.asyncio import AsyncSession

from leadline.persistence.models.sms_consent_audit import SmsConsentAudit
from leadline.persistence.repositories.base import BaseRepository


class ConsentAuditRepository(BaseRepository[SmsConsentAudit]):
    """Append-only; rows are created and listed, never updated."""

    def __init__(self, session: AsyncSession):
        super().__init__(SmsConsentAudit, session)
