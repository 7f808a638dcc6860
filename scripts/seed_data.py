from __future__ import annotations

import argparse

from questlog_api.db import SessionLocal, create_schema
from questlog_api.seed import seed_demo


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--reset", action="store_true", help="Delete the demo user and regenerate."
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create tables directly instead of running alembic (local dev).",
    )
    args = parser.parse_args()

    if args.create_schema:
        create_schema()

    with SessionLocal() as session:
        demo = seed_demo(session, reset=bool(args.reset))
        print(f"seeded user {demo.id} (login with username: {demo.username})")


if __name__ == "__main__":
    main()
