from __future__ import annotations

from arq.worker import run_worker

from anchor.core.logging import configure_logging
from anchor.workers.lifecycle_worker import WorkerSettings


if __name__ == "__main__":
    # Boot the cron worker outside the arq CLI.
    configure_logging()
    run_worker(WorkerSettings)
