"""Print a long lived bearer token for a user id.

Usage:
    python create_token.py <user id> [days]
"""
import sys

from volley_planner.app.core.security import create_access_token

user_id = sys.argv[1]
days = int(sys.argv[2]) if len(sys.argv) > 2 else 365
token = create_access_token({"sub": user_id}, expires_delta=days * 24 * 60 * 60)
print(token)
