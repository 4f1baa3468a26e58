import asyncio
import os
import signal
import sys

from .config import ConfigManager
from .core.acquisition import AcquisitionLoop
from .core.download import QBittorrentClient
from .core.state import EpisodeStateStore
from .core.website import NyaaWebsite
from .logger import configure_logger, logger


def _install_stop_handlers(stop_event: asyncio.Event) -> None:
    """Set ``stop_event`` on SIGINT/SIGTERM where the loop supports it."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} not supported here")


async def run():
    """Main application entry point."""
    config = ConfigManager(os.environ.get("CONFIG_PATH", "config.toml"))

    configure_logger(
        console_level=config.log.level,
        file_level=config.log.file_level,
        rotation=config.log.rotation,
        retention=config.log.retention,
        log_name="anime_monitor",
        log_dir=config.log.dir,
    )

    if not config.validate():
        logger.error("Configuration validation failed. Exiting.")
        sys.exit(1)

    qb_cfg = config.qbittorrent
    source_cfg = config.source
    monitor_cfg = config.monitor

    logger.info("=" * 60)
    logger.info("Anime Monitor Starting...")
    logger.info(f"Search page: {source_cfg.search_url}")
    logger.info(f"qBittorrent: {qb_cfg.url}")
    logger.info(f"Save path: {qb_cfg.save_path}")
    logger.info(f"Episode file: {monitor_cfg.state_file}")
    logger.info("=" * 60)

    stop_event = asyncio.Event()
    _install_stop_handlers(stop_event)

    website = NyaaWebsite(
        search_url=source_cfg.search_url,
        title_pattern=source_cfg.title_pattern,
        request_timeout=monitor_cfg.http_timeout,
        user_agent=source_cfg.user_agent,
        log=logger.bind(component="nyaa"),
    )
    client = QBittorrentClient(
        base_url=qb_cfg.url,
        username=qb_cfg.username,
        password=qb_cfg.password,
        request_timeout=monitor_cfg.http_timeout,
        user_agent=source_cfg.user_agent,
        log=logger.bind(component="qbittorrent"),
    )

    try:
        monitor = AcquisitionLoop(
            locator=website,
            client=client,
            store=EpisodeStateStore(
                monitor_cfg.state_file, log=logger.bind(component="state")
            ),
            save_path=qb_cfg.save_path,
            check_interval=monitor_cfg.check_interval,
            stop_event=stop_event,
            log=logger.bind(component="monitor"),
        )

        while True:
            acquired = await monitor.acquire_next()
            if acquired is None or not monitor_cfg.continuous:
                break
        logger.info("Process finished.")
    except asyncio.CancelledError:
        logger.info("Shutting down...")
    finally:
        await website.close()
        await client.close()


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
