"""Print a long-lived access token for an existing user id.

Usage:
    python create_token.py 1
"""
import sys

from park_and_ride_api.app.core.security import create_access_token

# Valid for 365 days (seconds).
user_id = sys.argv[1] if len(sys.argv) > 1 else "1"
token = create_access_token({"sub": str(user_id)}, expires_delta=365 * 24 * 60 * 60)
print(token)
