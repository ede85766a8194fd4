"""Non-interactive script to add a new tenant.

Usage:
    python scripts/add_tenant.py \
        --business-name "Acme Plumbing" \
        --slug "acme" \
        --twilio-number "+15555550100" \
        --forward-to "+15555550199" \
        --notification-email "owner@acme.com"
"""

import argparse
import asyncio
import os
import re
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from leadline.core.phone import normalize_phone_e164
from leadline.persistence.database import AsyncSessionLocal
from leadline.persistence.repositories.tenant_repository import TenantRepository

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$|^[a-z0-9]$")


def validate_slug(slug: str) -> bool:
    """Validate slug format (it doubles as the landing page subdomain)."""
    return bool(SLUG_PATTERN.match(slug)) and len(slug) <= 100


async def add_tenant(
    business_name: str,
    slug: str,
    twilio_number: str | None = None,
    forward_to: str | None = None,
    notification_email: str | None = None,
    notification_phone: str | None = None,
    custom_domain: str | None = None,
    status: str = "active",
):
    """Create a new tenant."""
    print("=" * 70)
    print("TENANT ONBOARDING - Adding New Tenant")
    print("=" * 70)
    print()

    slug = slug.lower().strip()
    if not validate_slug(slug):
        print("❌ Invalid slug format. Use lowercase letters, digits and hyphens only.")
        return None

    async with AsyncSessionLocal() as db:
        tenant_repo = TenantRepository(db)

        existing = await tenant_repo.get_by_slug(slug)
        if existing:
            print(f"❌ Slug '{slug}' is already taken (Tenant ID: {existing.id})")
            return None

        if twilio_number:
            twilio_number = normalize_phone_e164(twilio_number)
            owner = await tenant_repo.get_by_phone_numbers([twilio_number])
            if owner:
                print(f"❌ {twilio_number} is already assigned to tenant {owner.id}")
                return None

        print("Creating tenant...")
        tenant = await tenant_repo.create(
            business_name=business_name,
            slug=slug,
            status=status,
            custom_domain=custom_domain.lower() if custom_domain else None,
            twilio_phone_number=twilio_number,
            twilio_forward_to=normalize_phone_e164(forward_to),
            notification_email=notification_email,
            notification_phone=normalize_phone_e164(notification_phone),
        )
        await db.commit()

        print(f"✓ Created tenant: {tenant.business_name} (ID: {tenant.id})")
        print()
        print(f"Slug: {tenant.slug}")
        print(f"Twilio number: {tenant.twilio_phone_number or '(none)'}")
        print(f"Forward to: {tenant.twilio_forward_to or '(owner default)'}")
        print()
        print("Next Steps:")
        print("  Point the Twilio number's webhooks at:")
        print("   - Voice: POST /api/v1/twilio/voice  (status callback: /api/v1/twilio/status)")
        print("   - Messaging: POST /api/v1/twilio/sms  (status callback: /api/v1/twilio/sms/status)")
        print()
        return tenant


def main():
    """Parse arguments and run onboarding."""
    parser = argparse.ArgumentParser(description="Add a new tenant to the system")
    parser.add_argument("--business-name", required=True)
    parser.add_argument("--slug", required=True, help="Landing page subdomain, e.g. 'acme'")
    parser.add_argument("--twilio-number", help="Twilio number that calls and texts arrive on")
    parser.add_argument("--forward-to", help="Owner phone calls are forwarded to")
    parser.add_argument("--notification-email")
    parser.add_argument("--notification-phone")
    parser.add_argument("--custom-domain")
    parser.add_argument("--status", default="active", choices=["active", "trial", "inactive", "suspended"])
    args = parser.parse_args()

    tenant = asyncio.run(
        add_tenant(
            business_name=args.business_name,
            slug=args.slug,
            twilio_number=args.twilio_number,
            forward_to=args.forward_to,
            notification_email=args.notification_email,
            notification_phone=args.notification_phone,
            custom_domain=args.custom_domain,
            status=args.status,
        )
    )
    sys.exit(0 if tenant else 1)


if __name__ == "__main__":
    main()
