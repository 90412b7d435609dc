import argparse
import asyncio
import json
import sys

from carscout.scrape import REGIONS, SEARCH_QUERY, SCRAPE_MAX_ROWS, AggregationFailure, aggregate_regions
from carscout.utils import logger


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run one listing aggregation and dump it as JSON.")
    parser.add_argument("--region", action="append", dest="regions",
                        help="region subdomain to scrape (repeatable); defaults to SCRAPE_REGIONS")
    parser.add_argument("--query", default=SEARCH_QUERY, help="URL-encoded search terms")
    parser.add_argument("--limit", type=int, default=SCRAPE_MAX_ROWS, help="rows scanned per region")
    parser.add_argument("--output", help="write JSON here instead of stdout")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    regions = args.regions or REGIONS
    try:
        listings = asyncio.run(aggregate_regions(regions, args.query, args.limit))
    except AggregationFailure as e:
        logger.error("Scrape failed: %s", e)
        return 1

    payload = [l.model_dump(mode="json", by_alias=True) for l in listings]
    text = json.dumps(payload, indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(text)
        print(f"Saved {len(payload)} listings to {args.output}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
