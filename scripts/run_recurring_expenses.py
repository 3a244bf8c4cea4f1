from __future__ import annotations

import argparse
import asyncio
from datetime import date
import json

from anchor.core.clock import fixed_clock
from anchor.core.logging import configure_logging
from anchor.services.maintenance import run_recurring_expenses


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Materialize due recurring expenses for every tenant.")
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Treat this ISO date as today (catch-up after a missed run).",
    )
    return parser.parse_args()


async def run(as_of: date | None) -> None:
    configure_logging()
    clock = fixed_clock(as_of) if as_of is not None else None
    summary = await run_recurring_expenses(clock=clock)
    print(json.dumps(summary.as_dict(), sort_keys=True))


if __name__ == "__main__":
    args = _parse_args()
    asyncio.run(run(args.as_of))
