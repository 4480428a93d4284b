#!/usr/bin/env python3
"""Smoke test a remote store against the dashboard's sync layer.

Usage:
    uv run python scripts/verify_remote.py --email broker@example.com --password secret

Signs in, resolves the property table (listings or legacy properties), loads
every collection and prints a PASS/FAIL table. Uses SUPABASE_URL and
SUPABASE_ANON_KEY from environment or .env file.

Exit code 0 if all checks pass, 1 if any fail.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.brokerdesk
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


async def verify(email: str, password: str) -> list[tuple[str, bool, str]]:
    """Run the checks and return (name, passed, detail) rows."""
    from src.brokerdesk.config import get_settings
    from src.brokerdesk.core.logging import configure_structlog
    from src.brokerdesk.core.storage import MemoryLocalStore
    from src.brokerdesk.dashboard import DashboardSession
    from src.brokerdesk.sync.auth import SupabaseAuthClient
    from src.brokerdesk.sync.supabase import SupabaseTableClient

    settings = get_settings()
    configure_structlog()

    auth = SupabaseAuthClient(
        settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, timeout=settings.REMOTE_TIMEOUT
    )
    client = SupabaseTableClient(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        token_provider=lambda: auth.access_token,
        timeout=settings.REMOTE_TIMEOUT,
    )
    dashboard = DashboardSession(auth, client, MemoryLocalStore())
    await dashboard.start()

    results: list[tuple[str, bool, str]] = []

    signed_in = await dashboard.sign_in(email, password)
    if not signed_in.ok:
        detail = signed_in.error.message if signed_in.error else "unknown error"
        results.append(("Sign in", False, detail))
        return results
    results.append(("Sign in", True, f"role={dashboard.gate.role.value}"))

    report = dashboard.last_load
    if report is None:
        results.append(("Load", False, "No load ran after sign-in"))
        return results

    results.append((
        "Property table",
        report.property_table is not None,
        report.property_table or "unresolved",
    ))
    for name, collection in dashboard.store.collections.items():
        error = report.errors.get(name)
        if error is None:
            results.append((f"Load {name}", True, f"{len(collection)} rows"))
        else:
            results.append((f"Load {name}", False, f"{error.kind.value}: {error.message}"))

    await dashboard.sign_out()
    await dashboard.stop()
    return results


def print_results(results: list) -> None:
    """Print a formatted table of check results."""
    header = f"{'CHECK':<25} {'STATUS':<10} {'DETAIL'}"
    separator = "-" * 70
    print()
    print(separator)
    print(header)
    print(separator)
    for name, passed, detail in results:
        status = "PASS" if passed else "FAIL"
        print(f"{name:<25} {status:<10} {detail}")
    print(separator)
    print()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Verify the remote store: sign-in, property table, collection loads"
    )
    parser.add_argument("--email", required=True, help="Dashboard user email")
    parser.add_argument("--password", required=True, help="Dashboard user password")
    args = parser.parse_args()

    results = asyncio.run(verify(args.email, args.password))
    print_results(results)

    all_passed = all(passed for _, passed, _ in results)
    if all_passed:
        print("All checks passed.")
    else:
        print("Some checks FAILED.")

    sys.exit(0 if all_passed else 1)


if __name__ == "__main__":
    main()
