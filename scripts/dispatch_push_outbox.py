#!/usr/bin/env python3
"""
Deliver Queued Push Notifications
=================================
Drains pending rows from the push outbox once. Meant to run from cron or a
worker loop for notifications whose in-request delivery never happened.

Usage:
    python scripts/dispatch_push_outbox.py [--limit 100]
"""

import argparse

from confess_api.push import PushNotifier


def main():
    parser = argparse.ArgumentParser(description="Deliver pending push notifications")
    parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Maximum number of outbox rows to process",
    )
    args = parser.parse_args()

    sent = PushNotifier().deliver_pending(limit=args.limit)
    print(f"Delivered {sent} notification(s)")


if __name__ == "__main__":
    main()
