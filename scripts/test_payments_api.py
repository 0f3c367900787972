#!/usr/bin/env python3
"""
Smoke test for the /api/payments action router.

Start the API first (in another terminal), in mock mode:
  INTEGRATIONS_MODE=mock uvicorn jetset.api.main:app --host 127.0.0.1 --port 8000

Then run this script:
  python scripts/test_payments_api.py
  python scripts/test_payments_api.py --base-url http://127.0.0.1:8000
"""

from __future__ import annotations

import argparse
import sys
import uuid
from typing import Any, Dict, Optional

import requests


def call(base: str, action: str, method: str = "GET", data: Optional[Dict[str, Any]] = None, **params: Any) -> requests.Response:
    return requests.request(
        method,
        f"{base}/api/payments",
        params={"action": action, **params},
        json=data,
        timeout=30,
        allow_redirects=False,
    )


def check(label: str, response: requests.Response, expected_status: int = 200) -> Dict[str, Any]:
    ok = response.status_code == expected_status
    print(f"{'PASS' if ok else 'FAIL'}  {label}: HTTP {response.status_code}")
    if not ok:
        print(f"      {response.text[:300]}")
        raise SystemExit(1)
    try:
        return response.json()
    except ValueError:
        return {}


def main() -> int:
    parser = argparse.ArgumentParser(description="Smoke-test the payments API")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    base = args.base_url.rstrip("/")

    print("=== Payments API smoke test ===\n")
    try:
        check("health", call(base, "health"))
    except requests.RequestException as e:
        print(f"FAIL: {e}")
        print("  -> Start the API first: uvicorn jetset.api.main:app --host 127.0.0.1 --port 8000")
        return 1

    check("missing action", call(base, ""), 400)
    check("unknown action", call(base, "nope"), 400)
    check("wrong method", call(base, "initiate-payment"), 405)
    check("gateway status", call(base, "gateway-status"))
    check("debug", call(base, "debug"))

    tests = check("self test", call(base, "test", "POST"))
    print(f"      overall: {tests.get('testResults', {}).get('summary', {}).get('overallStatus')}")

    order_id = f"SMOKE-{uuid.uuid4().hex[:8].upper()}"
    checkout = check(
        "hosted checkout",
        call(
            base,
            "hosted-checkout",
            "POST",
            {
                "amount": "125.50",
                "orderId": order_id,
                "currency": "USD",
                "customerEmail": "smoke@example.com",
                "customerName": "Smoke Test",
                "billingAddress": {"street": "1 Main St", "city": "Austin", "postalCode": "73301", "country": "USA"},
            },
        ),
    )
    print(f"      checkout: {checkout.get('checkoutUrl')}")

    retrieved = check("retrieve order", call(base, "payment-retrieve", orderId=order_id))
    print(f"      summary: {retrieved.get('summary')}")
    check("verify payment", call(base, "payment-verify", orderId=order_id))

    print("\nAll payment checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
