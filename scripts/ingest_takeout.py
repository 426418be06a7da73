#!/usr/bin/env python3
import argparse
import json
import os

from othershorts.app.config import settings
from othershorts.app.db import connect, init_db
from othershorts.app.errors import AppError
from othershorts.app.logging_setup import setup_logging
from othershorts.takeout.parser import ingest_takeout
from othershorts.takeout.youtube import YouTubeDurationClient
from othershorts.users.store import get_user


def main():
    ap = argparse.ArgumentParser(description="Ingest a local watch-history export for one user")
    ap.add_argument("--user-id", required=True, help="user id (google hash)")
    ap.add_argument("--file", required=True, help="watch-history.json or .html")
    ap.add_argument("--max-seconds", type=int, default=settings.shorts_max_seconds)
    args = ap.parse_args()

    setup_logging(settings.log_level)

    if not os.path.exists(args.file):
        raise SystemExit(f"Missing takeout file: {args.file}")
    if not settings.youtube_api_key:
        raise SystemExit("YOUTUBE_API_KEY is not set")

    with open(args.file, "rb") as f:
        raw = f.read()

    lookup = YouTubeDurationClient(
        api_key=settings.youtube_api_key,
        api_url=settings.youtube_api_url,
        timeout=settings.youtube_timeout_seconds,
    )

    conn = connect()
    init_db(conn)
    try:
        if get_user(conn, args.user_id) is None:
            raise SystemExit(f"Unknown user: {args.user_id}")
        result = ingest_takeout(
            conn,
            user_id=args.user_id,
            raw=raw,
            lookup=lookup,
            max_seconds=args.max_seconds,
            batch_size=settings.youtube_batch_size,
        )
    except AppError as exc:
        raise SystemExit(exc.message)
    finally:
        conn.close()

    print(json.dumps({"found": result.found, "kept": result.kept, "inserted": result.inserted}, indent=2))


if __name__ == "__main__":
    main()
