"""Unified entry point for the API server and the voting deadline sweep.

This script launches the FastAPI backend and the periodic deadline
sweep concurrently.  It is intended to be executed from the project
root, where you only specify a single Python file to run.

Configuration such as the database path, secret key, host and port is
read from environment variables (see ``volley_planner.app.core.config``).

Usage:
    python run.py
"""
import asyncio
import logging

from uvicorn import Config, Server

from volley_planner.app.core.config import settings
from volley_planner.app.core.db import init_db
from volley_planner.app.core.logging_config import setup_logging
from volley_planner.app.main import app
from volley_planner.app.services.deadline_service import DeadlineService


logger = logging.getLogger("volley_planner.run")


async def run_api() -> None:
    """Start the API using Uvicorn on ``API_HOST``:``API_PORT``."""
    config = Config(app=app, host=settings.api_host, port=settings.api_port, reload=False,
                    log_level=settings.log_level.lower())
    server = Server(config)
    await server.serve()


async def run_deadline_sweep() -> None:
    """Auto‑decline non‑responders every ``DEADLINE_SWEEP_SECONDS``."""
    while True:
        processed = await DeadlineService.process_expired()
        if processed:
            logger.info("Deadline sweep processed %d events", len(processed))
        await asyncio.sleep(settings.deadline_sweep_seconds)


async def main() -> None:
    """Run the API and the deadline sweep concurrently."""
    setup_logging(settings.log_level, settings.log_file)
    init_db()
    tasks = [asyncio.create_task(run_api()), asyncio.create_task(run_deadline_sweep())]
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    for task in done:
        if exception := task.exception():
            logger.error("Exception in service", exc_info=exception)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
