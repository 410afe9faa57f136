"""Command-line entry point for WHOOP authorization and sync."""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import argparse
from config.settings import validate_settings
from utils.exceptions import WhoopError
from utils.logger import get_logger
from utils.sync_manager import SYNC_ORDER, create_sync_manager

logger = get_logger(__name__)


def cmd_auth_url(manager, args) -> int:
    url, state = manager.client.get_authorization_url()
    print(url)
    print(f"state: {state}")
    return 0


def cmd_exchange(manager, args) -> int:
    try:
        manager.client.exchange_code_for_token(args.code)
    except WhoopError as e:
        logger.error(str(e))
        return 1
    print("Authorization stored.")
    return 0


def cmd_sync(manager, args) -> int:
    data_types = args.types or list(SYNC_ORDER)
    unknown = [t for t in data_types if t not in SYNC_ORDER]
    if unknown:
        print(f"Unknown data type(s): {', '.join(unknown)}", file=sys.stderr)
        return 2

    if args.types:
        results = []
        for data_type in data_types:
            for event in manager.iter_sync_data_type(data_type):
                print(f"[{event.data_type}] {event.message}")
            results.append(event.result)
            if event.fatal:
                print("Re-authentication required; remaining types skipped", file=sys.stderr)
                break
    else:
        for event in manager.iter_sync_all():
            prefix = f"[{event.data_type}] " if event.data_type else ""
            print(f"{prefix}{event.message}")
        results = event.result

    return 0 if all(r["status"] == "completed" for r in results) else 1


def cmd_status(manager, args) -> int:
    print(f"authenticated: {'yes' if manager.client.is_authenticated else 'no'}")
    for row in manager.get_all_sync_status():
        line = f"{row['data_type']:<18} {row['status']:<10} records={row['record_count']:<6} last={row['last_synced_at']}"
        if row["error_message"]:
            line += f"  error={row['error_message']}"
        print(line)
    return 0


def cmd_logout(manager, args) -> int:
    manager.client.logout()
    print("Logged out.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="HealthOS WHOOP sync")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("auth-url", help="Print the WHOOP authorization URL").set_defaults(func=cmd_auth_url)

    exchange = sub.add_parser("exchange", help="Exchange an authorization code for tokens")
    exchange.add_argument("code", help="Code from the OAuth callback")
    exchange.set_defaults(func=cmd_exchange)

    sync = sub.add_parser("sync", help="Sync data types (all by default)")
    sync.add_argument("types", nargs="*", help=f"Subset of: {', '.join(SYNC_ORDER)}")
    sync.set_defaults(func=cmd_sync)

    sub.add_parser("status", help="Show per-type sync status").set_defaults(func=cmd_status)
    sub.add_parser("logout", help="Delete stored tokens").set_defaults(func=cmd_logout)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.command in ("auth-url", "exchange", "sync"):
        try:
            validate_settings()
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return 2

    return args.func(create_sync_manager(), args)


if __name__ == "__main__":
    sys.exit(main())
