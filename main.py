#!/usr/bin/env python3
"""
SessionGate -- Challenge-response session authentication service.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py login alice --password s3cret
  python main.py login --foreign jwt <provider-token>
  python main.py connect --token <session-token>
  python main.py logout <session-token>
  python main.py hash-password alice --password s3cret

Environment variables:
  TOKEN_KIND    "cookie" (default) or "csrf". Must match the server.
  TOKEN_NAME    Cookie or header name carrying the session token.
  USERS_FILE    JSON file used to seed the server's user directory.
"""

import argparse
import getpass
import json
import sys
from dataclasses import asdict
from typing import Optional

from auth.hashing import get_hasher
from client.session import AuthFailed, SessionClient, SessionClientError
from core.config import get_settings


def _print_auth(auth) -> None:
    print(json.dumps(asdict(auth), indent=2))


def _read_password(given: Optional[str]) -> str:
    """Use --password when given, otherwise prompt without echo."""
    if given is not None:
        return given
    return getpass.getpass("Password: ")


def _client(url: str) -> SessionClient:
    settings = get_settings()
    return SessionClient(
        url,
        token_kind=settings.token_kind,
        token_name=settings.token_name,
        hasher=get_hasher(settings.hash_algorithm),
    )


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="sessiongate",
        description="Challenge-response session authentication service and client.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 8000
  python main.py login alice
  python main.py connect --token Ab3dE...
  USERS_FILE=users.json python main.py serve
        """,
    )
    parser.add_argument(
        "--url",
        default="http://localhost:8000",
        help="Base URL of the SessionGate server (default: http://localhost:8000)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the API server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")

    connect = sub.add_parser("connect", help="Resume a session or fetch a challenge")
    connect.add_argument("--token", default=None, help="Session token to resume")

    login = sub.add_parser("login", help="Log in and print the session token")
    login.add_argument("login", nargs="?", help="Local login name")
    login.add_argument("--password", default=None, help="Password (prompted when omitted)")
    login.add_argument(
        "--foreign",
        nargs=2,
        metavar=("ORIGIN", "TOKEN"),
        help="Log in with a token issued by a federated provider",
    )

    logout = sub.add_parser("logout", help="End a session")
    logout.add_argument("token", help="Session token to end")

    hashpw = sub.add_parser("hash-password", help="Print the stored hash for a login/password pair")
    hashpw.add_argument("login")
    hashpw.add_argument("--password", default=None, help="Password (prompted when omitted)")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "serve":
        import uvicorn

        uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
        return 0

    if args.command == "hash-password":
        hasher = get_hasher(get_settings().hash_algorithm)
        print(hasher.password(args.login, _read_password(args.password)))
        return 0

    client = _client(args.url)
    try:
        if args.command == "connect":
            auth = client.connect(token=args.token)
            if auth is None:
                print("  Not authenticated. Log in with: python main.py login <login>")
                return 1
            _print_auth(auth)

        elif args.command == "login":
            if args.foreign:
                auth = client.login(foreign=(args.foreign[0], args.foreign[1]))
            elif args.login:
                auth = client.login(login=args.login, password=_read_password(args.password))
            else:
                print("  [!] Provide a login name or --foreign ORIGIN TOKEN.")
                return 2
            _print_auth(auth)

        elif args.command == "logout":
            if not client.logout(args.token):
                print("  [!] Unknown or expired session.")
                return 1
            print("  Logged out.")

    except AuthFailed as e:
        print(f"  [!] Authentication failed: {e.kind.value}")
        return 1
    except (SessionClientError, OSError) as e:
        print(f"  [!] Could not talk to {args.url}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
