#!/usr/bin/env python3
"""
bootstrap-admin.py: Create the first administrator account.

Calls the API's /bootstrap-admin endpoint, which creates the account in the
identity service and marks its profile as admin. The setup token must match
SETUP_BOOTSTRAP_TOKEN on the server.

Usage:
    python scripts/bootstrap-admin.py --email admin@example.com
    python scripts/bootstrap-admin.py --email admin@example.com --api-url http://localhost:8000
    SETUP_BOOTSTRAP_TOKEN=... python scripts/bootstrap-admin.py --email admin@example.com --generate-password
"""

import argparse
import getpass
import json
import os
import secrets
import string
import sys
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen


# ANSI color codes
class C:
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RESET = "\033[0m"


CHARSET = string.ascii_letters + string.digits


def generate_password(length: int = 20) -> str:
    """Generate a random alphanumeric password."""
    return "".join(secrets.choice(CHARSET) for _ in range(length))


def bootstrap_admin(
    api_url: str, setup_token: str, email: str, password: str, display_name: str
) -> tuple[bool, str]:
    """POST the admin account to the API; return (ok, message)."""
    url = f"{api_url.rstrip('/')}/bootstrap-admin"
    payload = json.dumps({
        "email": email,
        "password": password,
        "display_name": display_name,
    }).encode("utf-8")

    req = Request(
        url,
        data=payload,
        headers={"Content-Type": "application/json", "x-setup-token": setup_token},
        method="POST",
    )

    try:
        with urlopen(req, timeout=10) as resp:
            body = json.loads(resp.read().decode("utf-8"))
            return True, f"user id {body.get('user_id')}"
    except HTTPError as e:
        body = e.read().decode("utf-8", errors="replace")
        try:
            reason = json.loads(body).get("error", body)
        except ValueError:
            reason = body[:200]
        return False, f"HTTP {e.code}: {reason}"
    except URLError as e:
        return False, f"Connection error: {e.reason}"


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the first administrator account")
    parser.add_argument(
        "--api-url",
        type=str,
        default="http://localhost:8000",
        help="API base URL (default: http://localhost:8000)",
    )
    parser.add_argument("--email", type=str, required=True, help="Administrator email")
    parser.add_argument(
        "--display-name",
        type=str,
        default="Administrator",
        help="Display name for the profile (default: Administrator)",
    )
    parser.add_argument(
        "--setup-token",
        type=str,
        default=os.environ.get("SETUP_BOOTSTRAP_TOKEN"),
        help="Setup token (default: $SETUP_BOOTSTRAP_TOKEN)",
    )
    parser.add_argument(
        "--generate-password",
        action="store_true",
        help="Generate a random password instead of prompting for one",
    )
    args = parser.parse_args()

    if not args.setup_token:
        print(f"{C.RED}No setup token: pass --setup-token or set SETUP_BOOTSTRAP_TOKEN{C.RESET}")
        sys.exit(2)

    password = generate_password() if args.generate_password else getpass.getpass("Password: ")
    if not password:
        print(f"{C.RED}Password must not be empty{C.RESET}")
        sys.exit(2)

    print(f"\n{C.BOLD}Visit Log Admin Bootstrap{C.RESET}")
    print(f"{C.DIM}{'=' * 60}{C.RESET}\n")
    print(f"  {C.BOLD}API:{C.RESET}     {args.api_url}")
    print(f"  {C.BOLD}Email:{C.RESET}   {C.CYAN}{args.email}{C.RESET}")
    print(f"  {C.BOLD}Name:{C.RESET}    {args.display_name}\n")

    ok, msg = bootstrap_admin(
        args.api_url, args.setup_token, args.email, password, args.display_name
    )
    if not ok:
        print(f"  {C.RED}Bootstrap failed{C.RESET} {C.DIM}{msg}{C.RESET}\n")
        sys.exit(1)

    print(f"  {C.GREEN}Administrator created{C.RESET} {C.DIM}{msg}{C.RESET}")
    if args.generate_password:
        print(f"  {C.BOLD}Password:{C.RESET} {C.CYAN}{password}{C.RESET}")
        print(f"\n  {C.YELLOW}Store this password now; it is not shown again.{C.RESET}")
    print()


if __name__ == "__main__":
    main()
