#!/usr/bin/env python3
"""
Expire overdue quotes and email expiry reminders. Meant for a daily cron:

  python scripts/expire_quotes.py
  python scripts/expire_quotes.py --no-email

Uses DATABASE_URL (required) and the same email settings as the API.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

sys.path.insert(0, str(Path(__file__).parent.parent))

from jetset.database.postgres_real import PostgresDB
from jetset.integrations.clients.real_http.resend_email import ResendEmailClient
from jetset.integrations.policy.email_service import EmailService
from jetset.jobs.quote_expiration import expire_quotes, run_expiration_check
from jetset.utils.config_loader import get_app_config

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("expire_quotes")


def main() -> int:
    parser = argparse.ArgumentParser(description="Expire overdue travel quotes")
    parser.add_argument("--no-email", action="store_true", help="Only update statuses; send no reminders")
    args = parser.parse_args()

    url = os.environ.get("DATABASE_URL")
    if not url:
        print("DATABASE_URL is not set", file=sys.stderr)
        return 1
    db = PostgresDB(connection_string=url)

    if args.no_email or not os.getenv("RESEND_API_KEY"):
        count = expire_quotes(db)
        print(f"Expired {count} quote(s)")
        return 0

    emails = EmailService(ResendEmailClient(), db, get_app_config())
    result = asyncio.run(run_expiration_check(db, emails))
    if not result["success"]:
        print(f"Quote expiration check failed: {result['error']}", file=sys.stderr)
        return 2
    print(f"Reminders for {result['expiringSoon']} quote(s); expired {result['expired']} quote(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
