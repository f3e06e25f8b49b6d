from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from listing_hunter.config import ConfigError, HuntConfig
from listing_hunter.repositories.postgres import PostgresListingStore
from listing_hunter.services.hunt import run_hunt
from listing_hunter.utils.log import configure_logging


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch the search page once and store/announce new listings")
    parser.add_argument("--init-schema", action="store_true", help="Create the listings table before running")
    parser.add_argument("--recent", type=int, metavar="N", help="Print the N newest stored listings and exit")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    config = HuntConfig.from_env()
    try:
        store = PostgresListingStore.from_config(config)
    except ConfigError as exc:
        print(json.dumps({"ok": False, "status": 500, "message": str(exc)}))
        return 1

    if args.init_schema:
        store.init_schema()

    if args.recent is not None:
        rows = [listing.model_dump(mode="json") for listing in store.recent(limit=args.recent)]
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0

    outcome = run_hunt(config, store)
    print(json.dumps(outcome.body(), ensure_ascii=False))
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    sys.exit(main())
