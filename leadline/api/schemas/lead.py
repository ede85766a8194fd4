"""Lead intake schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from leadline.core.phone import is_valid_lead_phone


class LeadIntakeRequest(BaseModel):
    """Lead form submission from a tenant landing page."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    full_name: str = Field(alias="fullName", min_length=2, max_length=255)
    phone: str
    email: str | None = Field(default=None, max_length=255)
    message: str | None = Field(default=None, max_length=5000)
    service_type: str | None = Field(default=None, alias="serviceType", max_length=100)
    source: str = "website"
    sms_opted_in: bool = Field(alias="smsOptedIn")

    # Tenant selection
    client_id: int | None = Field(default=None, alias="clientId")
    client_slug: str | None = Field(default=None, alias="clientSlug")

    # Tracking
    page_url: str | None = Field(default=None, alias="pageUrl")
    utm_source: str | None = Field(default=None, alias="utmSource")
    utm_medium: str | None = Field(default=None, alias="utmMedium")
    utm_campaign: str | None = Field(default=None, alias="utmCampaign")
    referrer: str | None = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        if not is_valid_lead_phone(value):
            raise ValueError("Please enter a valid phone number")
        return value

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        if not value:
            return None
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("Please enter a valid email address")
        return value.lower()

    @field_validator("sms_opted_in")
    @classmethod
    def require_sms_opt_in(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("SMS consent is required to submit this form")
        return value


class LeadIntakeResponse(BaseModel):
    """Lead intake acknowledgment."""

    success: bool
    lead_id: int
    message: str
