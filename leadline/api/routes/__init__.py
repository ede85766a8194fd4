"""API routes."""

from fastapi import APIRouter

from leadline.api.routes import leads, sms_webhooks, voice_webhooks

api_router = APIRouter()

# Twilio webhooks (signature-checked)
api_router.include_router(voice_webhooks.router, prefix="/twilio", tags=["voice-webhooks"])
api_router.include_router(sms_webhooks.router, prefix="/twilio", tags=["sms-webhooks"])

# Landing-page lead intake
api_router.include_router(leads.router, prefix="/leads", tags=["leads"])
