#!/usr/bin/env python3
"""
Insert parking slots into a fresh Park and Ride database.

Slots are numbered ``<prefix>-<n>`` and existing slot numbers are left
untouched, so the script can be run repeatedly.

Usage:
    python seed_slots.py --location "Central Station" --count 20
    python seed_slots.py --location "Airport" --prefix AP --count 5 --type premium --rate 25
"""

import argparse

from park_and_ride_api.app.core.db import get_cursor, init_db


def main():
    ap = argparse.ArgumentParser(description="Create parking slots.")
    ap.add_argument("--location", required=True, help="Parking lot name")
    ap.add_argument("--count", type=int, default=10, help="Number of slots to create")
    ap.add_argument("--prefix", default="A", help="Slot number prefix")
    ap.add_argument("--type", choices=("standard", "premium"), default="standard")
    ap.add_argument("--rate", type=float, default=10.0, help="Hourly rate")
    args = ap.parse_args()

    init_db()
    created = 0
    with get_cursor() as cursor:
        for n in range(1, args.count + 1):
            cursor.execute(
                "INSERT OR IGNORE INTO parking_slots (slot_number, location, type, hourly_rate) VALUES (?, ?, ?, ?)",
                (f"{args.prefix}-{n}", args.location, args.type, args.rate),
            )
            created += cursor.rowcount
    print(f"[+] Created {created} slot(s) at {args.location}")


if __name__ == "__main__":
    main()
