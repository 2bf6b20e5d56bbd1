#!/usr/bin/env python3
"""
Run a single abandoned-cart scan outside Celery and print its summary.

Honours the same settings as the worker, including REMINDER_DRY_RUN.

Usage:
    python scripts/run_scan.py
    python scripts/run_scan.py --json
"""

import argparse
import asyncio
import json
import os
import sys

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from reminder_worker.tasks.abandoned_carts import run_scan  # noqa: E402


def print_summary(summary: dict) -> None:
    print("=" * 50)
    print(f"Tick {summary['tick_id']}  (dry run: {summary['dry_run']})")
    print("=" * 50)

    if summary["skipped_overlap"]:
        print("Another scan is in progress, nothing done")
        return
    if summary["aborted"]:
        print(f"Scan aborted: {summary['error']}")
        return

    print(f"Users scanned:            {summary['users_scanned']}")
    print(f"Skipped (cooldown):       {summary['users_skipped_cooldown']}")
    print(f"Skipped (error):          {summary['users_skipped_error']}")
    print(f"Processed:                {summary['users_processed']}")
    print(f"Messages recorded:        {summary['messages_recorded']}")
    print(f"Deliveries sent / failed: {summary['deliveries_sent']} / {summary['deliveries_failed']}")

    for outcome in summary["outcomes"]:
        line = f"  {outcome['user_id']}: {outcome['status']}"
        if outcome["urgency"]:
            line += f" [{outcome['urgency']}] {','.join(outcome['product_ids'])}"
        if outcome["reason"] or outcome["delivery_error"]:
            line += f" ({outcome['reason'] or outcome['delivery_error']})"
        print(line)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run one abandoned-cart scan")
    parser.add_argument("--json", action="store_true", help="Print the raw summary as JSON")
    args = parser.parse_args()

    summary = asyncio.run(run_scan())

    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print_summary(summary)


if __name__ == "__main__":
    main()
