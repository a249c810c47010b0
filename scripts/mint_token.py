"""Mint a local access token for manual API calls.

Usage: python scripts/mint_token.py <user_id> <role> [ttl_minutes]
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from quote_engine.auth.jwt import create_access_token
from quote_engine.auth.rbac import ROLE_SCOPES
from quote_engine.core.config import get_config


def main(argv):
    if len(argv) < 2:
        print(__doc__.strip())
        return 2
    user_id, role = int(argv[0]), argv[1].lower()
    if role not in ROLE_SCOPES:
        print(f"Unknown role {role!r}; expected one of {', '.join(sorted(ROLE_SCOPES))}")
        return 2
    ttl = int(argv[2]) if len(argv) > 2 else get_config().JWT_ACCESS_TTL_MINUTES
    print(create_access_token(user_id, role, get_config().JWT_SECRET, ttl_minutes=ttl))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
