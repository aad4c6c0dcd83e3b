"""
Create an admin account in the configured content store.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portfolio.auth import AuthService
from portfolio.config import get_settings
from portfolio.dependencies import get_content_store
from portfolio.errors import PortfolioError

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("email")
    parser.add_argument("name")
    parser.add_argument(
        "--password",
        default=None,
        help="Account password (prompted for when omitted)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    password = args.password or getpass.getpass("Password: ")
    auth = AuthService(get_content_store(), get_settings())
    try:
        _, user = auth.signup(args.email, password, args.name)
    except PortfolioError as exc:
        logger.error("Could not create account: %s", exc.message)
        return 1
    logger.info("Created account %s (%s)", user.email, user.id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
