from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from feed_api.protocols import MSG_FILL, MSG_PLACE_ORDER, make_message
from feed_core.classifier import extract_payloads
from feed_core.decoder import DecodeError, decode
from feed_core.tracker import CursorTracker
from feed_core.types import EventSignatureRef, FillEvent, PlaceOrderEvent
from feed_relay.errors import FeedError, FeedStopTimeout
from feed_relay.poller import SourcePoller
from feed_relay.settings import FeedSettings

log = logging.getLogger("feed_relay.driver")


class FeedPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class FeedState:
    phase: FeedPhase = FeedPhase.IDLE
    last_update: float = 0.0
    cycles: int = 0
    signatures_handled: int = 0
    fills_published: int = 0
    orders_published: int = 0
    decode_errors: int = 0


class FillFeed:
    """Poll -> fetch -> classify -> decode -> publish loop for one venue.

    Cursor, dedup set and liveness belong to this instance only; nothing is
    shared with other feeds in the same process.
    """

    def __init__(self, rpc, catalog, publisher, metrics, settings: FeedSettings) -> None:
        self.rpc = rpc
        self.catalog = catalog
        self.publisher = publisher
        self.metrics = metrics
        self.settings = settings
        self.tracker = CursorTracker(settings.dedup_cap)
        self.poller = SourcePoller(
            rpc,
            catalog,
            query_delay_s=settings.query_delay_s,
            reconcile_on=settings.reconcile_on,
        )
        self.state = FeedState(last_update=time.time())
        self.market_addresses: List[str] = []
        self._stop_requested = asyncio.Event()
        self._stopped = asyncio.Event()

    @property
    def phase(self) -> FeedPhase:
        return self.state.phase

    def _set_phase(self, new_phase: FeedPhase) -> None:
        if self.state.phase == new_phase:
            return
        log.info("Feed phase %s -> %s", self.state.phase.value, new_phase.value)
        self.state.phase = new_phase

    def ms_since_last_update(self) -> int:
        return int((time.time() - self.state.last_update) * 1000)

    async def _load_markets(self) -> None:
        if self.catalog is None:
            return
        try:
            self.market_addresses = await asyncio.to_thread(self.catalog.fetch_market_addresses)
        except FeedError as exc:
            log.error("Failed to load market addresses: %s", exc)
        log.info("Watching %d markets: %s", len(self.market_addresses), self.market_addresses)

    async def _init_cursor(self) -> None:
        ref = await asyncio.to_thread(self.rpc.get_latest_signature, self.settings.program_id)
        self.tracker.initialize(ref)
        if ref is None:
            log.warning("No finalized signature for program %s; starting without a cursor", self.settings.program_id)
        else:
            log.info("Cursor initialised signature=%s slot=%s", ref.id, ref.slot)

    async def _wait_interval(self) -> None:
        try:
            await asyncio.wait_for(self._stop_requested.wait(), timeout=self.settings.poll_interval_s)
        except asyncio.TimeoutError:
            pass

    async def run(self, max_run_s: Optional[float] = None) -> None:
        """Run the poll loop until ``stop()`` or, in diagnostic mode, ``max_run_s``."""
        if self.state.phase != FeedPhase.IDLE:
            raise FeedError(f"feed cannot start from phase {self.state.phase.value}")
        self._set_phase(FeedPhase.RUNNING)
        deadline = None if max_run_s is None else time.monotonic() + max_run_s
        try:
            await self._load_markets()
            await self._init_cursor()
            while not self._stop_requested.is_set():
                if deadline is not None and time.monotonic() >= deadline:
                    log.info("Max run duration reached (%.0fs)", max_run_s)
                    break
                await self._wait_interval()
                if self._stop_requested.is_set():
                    break
                await self.run_cycle()
        finally:
            log.info("ended loop")
            try:
                self.publisher.close()
            except Exception:
                log.exception("Failed to close publisher")
            self._set_phase(FeedPhase.STOPPED)
            self._stopped.set()

    async def run_cycle(self) -> int:
        """One poll cycle; returns the number of signatures handled.

        A failed transaction fetch ends the cycle early. The cursor stops just
        before that signature so the next poll returns it again.
        """
        self.state.cycles += 1
        refs = await self.poller.poll_once(self.market_addresses, self.tracker.cursor.last_signature)
        if not refs:
            return 0

        handled = 0
        last_done: Optional[EventSignatureRef] = None
        retry: Optional[EventSignatureRef] = None
        for ref in refs:
            if self.tracker.should_process(ref):
                if not await self.handle_signature(ref):
                    retry = ref
                    break
                self.tracker.mark_processed(ref)
                handled += 1
            last_done = ref

        if last_done is not None:
            self.tracker.advance_cursor(last_done)
        if retry is None:
            self.state.last_update = time.time()
        self.state.signatures_handled += handled
        dropped = self.tracker.trim()
        log.info(
            "New last signature: %s slot=%s num_sigs=%d handled=%d trimmed=%d retry=%s",
            self.tracker.cursor.last_signature,
            self.tracker.cursor.last_slot,
            len(refs),
            handled,
            dropped,
            None if retry is None else retry.id,
        )
        return handled

    async def handle_signature(self, ref: EventSignatureRef) -> bool:
        """Fetch, decode and publish one transaction; ``False`` if the fetch failed."""
        log.debug("Handling %s slot %s", ref.id, ref.slot)
        try:
            tx = await asyncio.to_thread(self.rpc.get_transaction, ref.id)
        except FeedError as exc:
            log.warning("Transaction fetch failed signature=%s: %s", ref.id, exc)
            return False
        if tx is None or not tx.log_lines:
            log.info("No log messages signature=%s", ref.id)
            return True
        if tx.failed:
            log.info("Skipping failed tx %s", ref.id)
            return True

        payloads = extract_payloads(tx.log_lines)
        if not payloads:
            log.debug("No program data signature=%s", ref.id)
            return True

        for payload in payloads:
            try:
                event = decode(payload.discriminator, payload.body, signature=ref.id, slot=ref.slot)
            except DecodeError as exc:
                self.state.decode_errors += 1
                log.warning("Skipping payload signature=%s: %s", ref.id, exc)
                continue
            if event is None:
                continue
            self.publish(event)
        return True

    def publish(self, event: FillEvent | PlaceOrderEvent) -> None:
        if isinstance(event, FillEvent):
            log.info("Got a fill market=%s signature=%s slot=%s", event.market, event.signature, event.slot)
            self.metrics.record_fill(event)
            message = make_message(MSG_FILL, event.to_dict())
            self.state.fills_published += 1
        else:
            log.info("Got an order market=%s signature=%s slot=%s", event.market, event.signature, event.slot)
            self.metrics.record_place_order(event)
            message = make_message(MSG_PLACE_ORDER, event.to_dict())
            self.state.orders_published += 1
        try:
            self.publisher.broadcast(message)
        except Exception:
            log.exception("Broadcast failed signature=%s", event.signature)

    async def stop(self) -> None:
        """Request a stop and wait (bounded) until the loop has exited."""
        if self.state.phase == FeedPhase.IDLE:
            self._set_phase(FeedPhase.STOPPED)
            self._stopped.set()
            return
        if self.state.phase == FeedPhase.RUNNING:
            self._set_phase(FeedPhase.STOPPING)
        self._stop_requested.set()
        timeout = self.settings.stop_timeout_s
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise FeedStopTimeout(f"failed to stop feed after {timeout:.0f} seconds") from exc
