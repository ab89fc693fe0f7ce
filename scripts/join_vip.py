"""
Add a fan to a creator's VIP list

Usage:
    python scripts/join_vip.py --creator teddy-afro --phone 0911223344 --channel TELEGRAM
"""

import argparse
import sys
from pathlib import Path

# Put the project root on the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

import logging
logging.basicConfig(level=logging.INFO, format="%(message)s")

from fannu.actions import join_vip
from fannu.config import settings
from fannu.database import init_db
from fannu.database.models import VipChannel, VipSource
from fannu.queries import get_creator_by_slug


def main():
    parser = argparse.ArgumentParser(description="Join a FanNu VIP list")
    parser.add_argument("--creator", required=True, help="Creator slug")
    parser.add_argument("--phone", required=True, help="Fan phone number")
    parser.add_argument("--name", help="Fan name")
    parser.add_argument("--channel", choices=[c.value for c in VipChannel], default=VipChannel.TELEGRAM.value)

    args = parser.parse_args()

    init_db(settings.database_url)

    creator = get_creator_by_slug(args.creator)
    if creator is None:
        print(f"No active creator with slug {args.creator}")
        return

    result = join_vip({
        "creator_id": creator.id,
        "fan_phone": args.phone,
        "fan_name": args.name,
        "channel": args.channel,
        "source": VipSource.DIRECT_LINK.value,
    })

    if not result.success:
        print(f"Error: {result.error}")
        for field, messages in result.field_errors.items():
            print(f"  - {field}: {', '.join(messages)}")
        return

    if result.already_subscribed:
        print("Already on the VIP list.")
    elif result.resubscribed:
        print("Welcome back, VIP list re-joined.")
    else:
        print("Joined the VIP list.")
    print(f"Confirmation: {result.confirmation_id}")


if __name__ == "__main__":
    main()
