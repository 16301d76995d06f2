"""
Main entry point for the outage schedule relay.

Runs the Telegram bot together with the interval poller. With ``--once`` a
single background cycle is run and the process exits.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from telegram import Bot

from bot.handlers import ScheduleBot
from bot.transport import TelegramTransport
from fetchers import create_fetcher
from relay.models import CycleResult, CycleTrigger
from relay.poll_service import PollService
from relay.schedule_state import ScheduleState
from relay.subscribers import SubscriberStore
from utilities.config import RelayConfig, config
from utilities.logger import get_logger, setup_logging


def build_state(relay_config: RelayConfig) -> ScheduleState:
    if relay_config.persist_schedule_state:
        return ScheduleState(relay_config.get_schedule_state_file())
    return ScheduleState()


async def run_once(relay_config: RelayConfig) -> CycleResult:
    """Run a single fetch-detect-broadcast cycle."""
    store = SubscriberStore(relay_config.get_subscribers_file())
    fetcher = create_fetcher(relay_config)
    try:
        async with Bot(relay_config.bot_token) as bot:
            service = PollService(
                relay_config, fetcher, store, TelegramTransport(bot), build_state(relay_config)
            )
            return await service.run_cycle(CycleTrigger.MANUAL)
    finally:
        await fetcher.close()


def main():
    """Main function to run the relay."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )

    logger = get_logger(__name__)

    if not config.bot_token:
        logger.error("BOT_TOKEN is not set")
        sys.exit(1)

    run_once_mode = False
    if len(sys.argv) > 1:
        if sys.argv[1] == '--once':
            run_once_mode = True
        else:
            print(f"Unknown argument: {sys.argv[1]}")
            print("Usage: python main.py [--once]")
            sys.exit(1)

    if run_once_mode:
        logger.info("Running a single poll cycle", target_url=config.target_url)
        result = asyncio.run(run_once(config))
        logger.info(
            "Single poll cycle finished",
            outcome=result.outcome.value,
            reference=result.reference,
            error=result.error
        )
        sys.exit(0 if result.success else 1)

    logger.info(
        "Starting outage schedule relay",
        target_url=config.target_url,
        interval_seconds=config.check_interval_seconds,
        fetch_strategy=config.fetch_strategy,
        data_dir=config.data_dir
    )

    store = SubscriberStore(config.get_subscribers_file())
    schedule_bot = ScheduleBot(config, create_fetcher(config), store, build_state(config))
    schedule_bot.run()


if __name__ == "__main__":
    main()
