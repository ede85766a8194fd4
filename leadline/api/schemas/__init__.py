"""API schemas package."""

from leadline.api.schemas.lead import LeadIntakeRequest, LeadIntakeResponse

__all__ = ["LeadIntakeRequest", "LeadIntakeResponse"]
