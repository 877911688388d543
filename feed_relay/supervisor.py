from __future__ import annotations

import asyncio
import logging
from typing import Optional

from feed_api.health import HealthServer
from feed_api.metrics import FeedMetrics
from feed_api.relay import FeedRelayServer
from feed_relay.catalog import CatalogClient
from feed_relay.driver import FillFeed
from feed_relay.errors import ConfigError, FeedStalled, FeedStopTimeout
from feed_relay.logging_config import LOG_FORMAT, setup_logging
from feed_relay.rpc import LedgerRpcClient
from feed_relay.settings import FeedSettings

log = logging.getLogger("feed_relay.supervisor")

DEAD_THRESHOLD_MS = 300_000


def check_liveness(ms_since_update: int, dead_threshold_ms: int = DEAD_THRESHOLD_MS) -> None:
    if ms_since_update > dead_threshold_ms:
        raise FeedStalled(f"fill feed has had no updates since {dead_threshold_ms / 1000:.0f} seconds ago")


async def monitor_feed(feed: FillFeed, interval_s: float, dead_threshold_ms: int = DEAD_THRESHOLD_MS) -> None:
    while True:
        await asyncio.sleep(interval_s)
        check_liveness(feed.ms_since_last_update(), dead_threshold_ms)


async def run_feed_once(feed: FillFeed, settings: FeedSettings) -> None:
    """Run one feed alongside its monitor; raises whatever ended the run.

    A feed that will not stop in time is cancelled and ``FeedStopTimeout``
    propagates.
    """
    dead_threshold_ms = int(settings.dead_threshold_s * 1000)
    feed_task = asyncio.create_task(feed.run(), name="fill-feed")
    monitor_task = asyncio.create_task(
        monitor_feed(feed, settings.monitor_interval_s, dead_threshold_ms),
        name="fill-feed-monitor",
    )
    try:
        done, _ = await asyncio.wait({feed_task, monitor_task}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            task.result()
    finally:
        monitor_task.cancel()
        await asyncio.gather(monitor_task, return_exceptions=True)
        if not feed_task.done():
            log.info("shutting down feed before restarting...")
            try:
                await feed.stop()
                log.info("feed has shut down successfully")
            finally:
                feed_task.cancel()
                await asyncio.gather(feed_task, return_exceptions=True)


async def _build_feed(settings: FeedSettings, metrics: FeedMetrics) -> FillFeed:
    log.info("setting up connection...")
    rpc = LedgerRpcClient(settings.rpc_url, timeout_s=settings.rpc_timeout_s)
    catalog = CatalogClient(settings.catalog_base_url, settings.catalog_token, timeout_s=settings.catalog_timeout_s)
    relay = FeedRelayServer(settings.ws_host, settings.ws_port)
    await relay.start()
    log.info("setting up feed...")
    return FillFeed(rpc, catalog, relay, metrics, settings)


async def run_supervised(
    settings: FeedSettings,
    metrics: FeedMetrics,
    health: Optional[HealthServer] = None,
    max_restarts: Optional[int] = None,
) -> None:
    """Keep a feed running, rebuilding it from a fresh cursor after a failure.

    Config errors and a feed that would not stop in time are fatal and propagate.
    """
    restarts = 0
    while True:
        feed: Optional[FillFeed] = None
        try:
            feed = await _build_feed(settings, metrics)
            if health is not None:
                current = feed
                health.set_probe(lambda: (current.phase.value, current.ms_since_last_update()))
            log.info("parsing logs...")
            await run_feed_once(feed, settings)
        except (ConfigError, FeedStopTimeout):
            raise
        except Exception:
            log.exception("start:feed: error")
        finally:
            if feed is not None:
                await _close_publisher(feed)
        restarts += 1
        if max_restarts is not None and restarts > max_restarts:
            return
        log.warning("sleeping %.0fs before restarting", settings.restart_cooldown_s)
        await asyncio.sleep(settings.restart_cooldown_s)


async def _close_publisher(feed: FillFeed) -> None:
    # Idempotent; the loop normally closes it on exit.
    feed.publisher.close()
    wait_closed = getattr(feed.publisher, "wait_closed", None)
    if wait_closed is None:
        return
    try:
        await asyncio.wait_for(wait_closed(), timeout=max(1.0, feed.settings.stop_timeout_s))
    except Exception:
        log.exception("Relay did not close cleanly")


def main() -> None:
    try:
        settings = FeedSettings.from_env()
    except ConfigError:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logging.getLogger("feed_relay.supervisor").exception("fatal error")
        raise
    log_path = setup_logging(settings.log_level, component="feed", subdir="fill_feed", to_file=settings.log_to_file)
    if log_path is not None:
        log.info("Feed logging to %s", log_path)
    log.info(
        "Feed config program_id=%s poll_interval_s=%.1f query_delay_s=%.1f dedup_cap=%d reconcile_on=%s ws=%s:%s",
        settings.program_id,
        settings.poll_interval_s,
        settings.query_delay_s,
        settings.dedup_cap,
        settings.reconcile_on,
        settings.ws_host,
        settings.ws_port,
    )

    metrics = FeedMetrics()
    metrics.serve(settings.metrics_port)
    health: Optional[HealthServer] = None
    if settings.health_port > 0:
        health = HealthServer(
            settings.health_host,
            settings.health_port,
            dead_threshold_ms=int(settings.dead_threshold_s * 1000),
        )
        health.start()

    log.info("starting feed...")
    try:
        asyncio.run(run_supervised(settings, metrics, health))
    except KeyboardInterrupt:
        log.info("Interrupted; exiting.")
    except Exception:
        log.exception("fatal error")
        raise
    finally:
        if health is not None:
            health.stop()


if __name__ == "__main__":
    main()
