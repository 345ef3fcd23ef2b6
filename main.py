"""
main.py — MindX wiring

The UI embeds MindX by calling:

    settings = bootstrap()                 # .env + config.yaml + logging
    session  = build_session(settings)     # restores progress from disk
    ...
    await session.shutdown()

Running this file directly performs a startup check: it loads and validates
the configuration, restores the progress snapshot and logs the session
summary.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PATH = Path(__file__).parent / ".env"


def bootstrap(config_path: str | Path | None = None):
    """
    Load .env and config, validate it fully, and set up logging.

    Raises ConfigError / pydantic.ValidationError on bad configuration; the
    caller decides how to report it.
    """
    load_dotenv(dotenv_path=ENV_PATH)

    from config.settings import load_settings
    from observability.logger import setup_logging_from_settings

    settings = load_settings(config_path)
    settings.validate_all()
    setup_logging_from_settings(settings)
    return settings


def build_session(settings, gateway=None):
    """Wire gateway → dispatcher → progress store → Session."""
    from gateway.agent_client import HttpAgentGateway
    from gateway.dispatch import AgentDispatcher
    from state.progress import ProgressStore
    from state.session import Session

    if gateway is None:
        gateway = HttpAgentGateway(settings.gateway.base_url, api_key=settings.agent_api_key)

    dispatcher = AgentDispatcher(
        gateway,
        agents=settings.agents,
        timeout=settings.gateway.timeout_seconds,
        upload_timeout=settings.gateway.upload_timeout_seconds,
    )
    progress = ProgressStore.open(settings.snapshot_path)
    return Session(
        dispatcher,
        progress,
        auth=settings.auth,
        celebration_seconds=settings.app.celebration_delay_seconds,
        success_ack_seconds=settings.app.success_ack_seconds,
    )


async def main(config_path: Optional[str] = None) -> int:
    from config.settings import ConfigError
    from pydantic import ValidationError

    try:
        settings = bootstrap(config_path)
    except (ConfigError, ValidationError) as exc:
        print(f"\nConfig validation failed:\n{exc}\n", file=sys.stderr)
        return 1

    from observability.logger import get_logger
    log = get_logger("main")

    session = build_session(settings)
    log.info("mindx.ready", version=settings.app.version, **session.status_summary())
    await session.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
