#!/usr/bin/env python3
"""
Reset a user's password in the Park and Ride SQLite database.

The script never reads existing passwords; it stores a new PBKDF2 hash
(``salthex$hashhex``) for the given email and can optionally promote
the account to administrator.

Usage:
    python reset_password.py --email admin@example.com --password "NewStrongPass!234"
    python reset_password.py --db ./park_and_ride.db --email admin@example.com --role admin

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import getpass
import os
import sys

from park_and_ride_api.app.core.config import settings
from park_and_ride_api.app.core.db import get_cursor, get_database_path
from park_and_ride_api.app.core.security import hash_password


def main():
    ap = argparse.ArgumentParser(description="Reset a Park and Ride user password (SQLite).")
    ap.add_argument("--db", help="Path to SQLite DB file. Defaults to DATABASE_URL.")
    ap.add_argument("--email", required=True, help="User email to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    ap.add_argument("--role", choices=("user", "admin"), help="Also change the user's role")
    args = ap.parse_args()

    if args.db:
        settings.database_url = os.path.abspath(args.db)
    db_path = get_database_path()
    if not os.path.exists(db_path):
        print(f"[!] DB not found: {db_path}", file=sys.stderr)
        sys.exit(1)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < 6:
        print("[!] Password must be at least 6 characters.", file=sys.stderr)
        sys.exit(1)

    email = args.email.strip().lower()
    with get_cursor() as cursor:
        row = cursor.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
        if not row:
            print(f"[!] No user found with email: {email}", file=sys.stderr)
            sys.exit(2)
        cursor.execute(
            "UPDATE users SET password = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (hash_password(new_password), row["id"]),
        )
        if args.role:
            cursor.execute("UPDATE users SET role = ? WHERE id = ?", (args.role, row["id"]))
    print(f"[+] Password updated for user: {email}")


if __name__ == "__main__":
    main()
