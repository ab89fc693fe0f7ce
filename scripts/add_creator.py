"""
Add a creator profile

Usage:
    python scripts/add_creator.py --user-id auth0|abc123 --name "Teddy Afro" --phone 0911223344 --activate
"""

import argparse
import sys
from pathlib import Path

# Put the project root on the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from fannu.config import settings
from fannu.database import init_db, get_session, CreatorRepository
from fannu.database.models import CreatorStatus
from fannu.utils import is_ethiopian_phone, parse_phone_to_e164, slugify


def main():
    parser = argparse.ArgumentParser(description="Add a FanNu creator")
    parser.add_argument("--user-id", required=True, help="User id from the identity provider")
    parser.add_argument("--name", required=True, help="Display name")
    parser.add_argument("--phone", required=True, help="Ethiopian phone number")
    parser.add_argument("--slug", help="Public page slug (default: from the name)")
    parser.add_argument("--email", help="Email for booking alerts")
    parser.add_argument("--activate", action="store_true", help="Skip admin approval")
    parser.add_argument("--enable-bookings", action="store_true", help="Turn bookings on and approve them")

    args = parser.parse_args()

    phone = parse_phone_to_e164(args.phone)
    if not is_ethiopian_phone(phone):
        print(f"Not an Ethiopian phone number: {args.phone}")
        return

    slug = args.slug or slugify(args.name)

    init_db(settings.database_url)

    with get_session() as session:
        if CreatorRepository.get_by_user_id(session, args.user_id):
            print(f"A creator already exists for user {args.user_id}")
            return
        if CreatorRepository.get_by_slug(session, slug):
            print(f"Slug already taken: {slug}")
            return

        creator = CreatorRepository.create(
            session,
            user_id=args.user_id,
            slug=slug,
            display_name=args.name,
            phone=phone,
            email=args.email,
            status=CreatorStatus.ACTIVE if args.activate else CreatorStatus.PENDING_APPROVAL,
            booking_enabled=args.enable_bookings,
            booking_approved=args.enable_bookings,
        )

        print("Creator added:")
        print(f"  - Name:   {creator.display_name}")
        print(f"  - Page:   {settings.base_url.rstrip('/')}/c/{creator.slug}")
        print(f"  - Status: {creator.status.value}")


if __name__ == "__main__":
    main()
