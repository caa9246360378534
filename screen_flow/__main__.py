import argparse
import asyncio
import json
import logging
import sys

from .config import load_config
from .errors import ScreenFlowError
from .explorer import ScreenFlowExplorer
from .models import Route

logger = logging.getLogger("screen_flow")


def _load_routes(args: argparse.Namespace) -> list:
    routes = [Route(path=p) for p in args.route or []]
    if args.routes_file:
        with open(args.routes_file, encoding="utf-8") as fh:
            data = json.load(fh)
        # either a bare list or a discovery result {"routes": [...]}
        items = data.get("routes", []) if isinstance(data, dict) else data
        routes.extend(Route.from_obj(item) for item in items)
    return routes or [Route("/")]


def main() -> int:
    parser = argparse.ArgumentParser(description="Explore a web app's screens and write a screen flow map")
    parser.add_argument("--url", help="Base URL of the app under test")
    parser.add_argument("--route", action="append", help="Route path to visit (repeatable, default '/')")
    parser.add_argument("--routes-file", help="JSON file with a list of routes or {\"routes\": [...]}")
    parser.add_argument("--config", help="JSON config file (default .screen-flow.json when present)")
    parser.add_argument("--out", help="Directory for screenshots and flow map files")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--max-states", type=int, help="Maximum number of states to probe")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_config(
            args.config,
            base_url=args.url,
            output_dir=args.out,
            headless=False if args.headed else None,
            max_states=args.max_states,
        )
        routes = _load_routes(args)
        result = asyncio.run(ScreenFlowExplorer(config).explore(routes))
    except (ScreenFlowError, OSError, ValueError) as e:
        logger.error("Screen flow run failed: %s", e)
        return 1

    print(f"States: {result.coverage.states}")
    print(f"Transitions: {result.coverage.transitions}")
    print(f"Interactions: {result.coverage.interactions}")
    print(f"Issues: {len(result.issues)}")
    if result.flow_map:
        for path in result.flow_map.files:
            print(f"  {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
