"""CLI entrypoint: run every configured channel, or one channel in the foreground."""

import argparse
import sys

from gateway.config import get_settings
from gateway.logging_config import setup_logging
from gateway.supervisor import Supervisor
from gateway.workers import WORKER_BUILDERS, worker_main


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Telegram and WhatsApp chat gateway")
    parser.add_argument(
        "--channel",
        choices=sorted(WORKER_BUILDERS),
        help="Run a single channel in this process instead of supervising all of them",
    )
    args = parser.parse_args()

    settings = get_settings()
    logger = setup_logging(settings.log_level)

    if args.channel:
        worker_main(args.channel)
        return

    logger.info(f"🚀 Starting gateway with channels: {', '.join(settings.channels)}")
    supervisor = Supervisor(settings.channels, start_timeout=settings.worker_start_timeout_seconds)
    sys.exit(supervisor.run())


if __name__ == "__main__":
    main()
