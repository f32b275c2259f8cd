"""Push relay database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    from pushrelay.domain import pushrelay
    from pushrelay.utils.db import setup_db

    print("Initializing pushrelay domain...")
    pushrelay.init()
    touched = setup_db(pushrelay)
    if touched:
        print(f"  Schema ready for: {', '.join(touched)}")
    else:
        print("  No SQL providers configured, nothing to create.")
    print("Done.")


def drop_database():
    from pushrelay.domain import pushrelay
    from pushrelay.utils.db import drop_db

    print("Initializing pushrelay domain...")
    pushrelay.init()
    touched = drop_db(pushrelay)
    if touched:
        print(f"  Schema dropped for: {', '.join(touched)}")
    else:
        print("  No SQL providers configured, nothing to drop.")
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Push relay database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
