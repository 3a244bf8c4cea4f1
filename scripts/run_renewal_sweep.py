from __future__ import annotations

import asyncio
import json

from anchor.core.logging import configure_logging
from anchor.services.maintenance import run_renewal_sweep


async def run() -> None:
    configure_logging()
    summary = await run_renewal_sweep()
    print(json.dumps(summary.as_dict(), sort_keys=True))


if __name__ == "__main__":
    asyncio.run(run())
