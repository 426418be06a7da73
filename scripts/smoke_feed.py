#!/usr/bin/env python3
import argparse
import json

from othershorts.client.accumulator import FeedAccumulator
from othershorts.client.api import ApiClient, ClientSettings
from othershorts.client.session import FeedSession


def main():
    client_settings = ClientSettings()

    ap = argparse.ArgumentParser()
    ap.add_argument("--api-url", default=client_settings.api_url)
    ap.add_argument("--user-id", required=True)
    ap.add_argument("--pages", type=int, default=1)
    args = ap.parse_args()

    api = ApiClient(args.api_url, timeout=client_settings.timeout_seconds)
    acc = FeedAccumulator(api, page_size=client_settings.page_size, max_calls=client_settings.max_calls)
    session = FeedSession(user_id=args.user_id)

    loads = []
    for _ in range(args.pages):
        outcome = acc.load_page(session)
        loads.append({
            "state": outcome.state.value,
            "added": len(outcome.added),
            "calls": outcome.calls,
            "resets": outcome.resets,
        })

    print(json.dumps({
        "user_id": args.user_id,
        "loads": loads,
        "error": session.error,
        "seen": sorted(session.seen),
        "videos": session.videos,
    }, indent=2))


if __name__ == "__main__":
    main()
