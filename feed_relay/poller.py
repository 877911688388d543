from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from feed_core.types import EventSignatureRef
from feed_relay.errors import FeedError

log = logging.getLogger("feed_relay.poller")


class SourcePoller:
    """Queries every watched market for signatures newer than the cursor.

    All markets are queried concurrently; each query waits ``query_delay_s``
    first so a large watch list does not burst the RPC endpoint.
    """

    def __init__(self, rpc, catalog=None, query_delay_s: float = 1.0, reconcile_on: str = "idle") -> None:
        self.rpc = rpc
        self.catalog = catalog
        self.query_delay_s = max(0.0, float(query_delay_s))
        self.reconcile_on = reconcile_on
        self.last_idle_markets: List[str] = []
        self.last_active_markets: List[str] = []
        self.last_failed_markets: List[str] = []

    async def _query_market(self, market: str, until: Optional[str]) -> Optional[List[EventSignatureRef]]:
        await asyncio.sleep(self.query_delay_s)
        try:
            return await asyncio.to_thread(self.rpc.get_signatures_for_address, market, until=until)
        except FeedError as exc:
            log.warning("Signature query failed market=%s: %s", market, exc)
            return None
        except Exception:
            log.exception("Unexpected error querying market=%s", market)
            return None

    async def poll_once(self, markets: Sequence[str], until: Optional[str]) -> List[EventSignatureRef]:
        """Return new signatures across ``markets``, oldest first."""
        results = await asyncio.gather(*(self._query_market(m, until) for m in markets))

        batch: List[EventSignatureRef] = []
        idle: List[str] = []
        active: List[str] = []
        failed: List[str] = []
        for market, refs in zip(markets, results):
            if refs is None:
                failed.append(market)
                continue
            if refs:
                active.append(market)
                batch.extend(refs)
            else:
                idle.append(market)
        self.last_idle_markets = idle
        self.last_active_markets = active
        self.last_failed_markets = failed
        log.info(
            "Poll markets=%d signatures=%d active=%d idle=%d failed=%d",
            len(markets),
            len(batch),
            len(active),
            len(idle),
            len(failed),
        )

        if self.reconcile_on == "idle":
            await self._reconcile(idle)
        elif self.reconcile_on == "active":
            await self._reconcile(active)

        # Per-address queries come back newest-first.
        batch.reverse()
        # Stable, so same-slot signatures keep their reversed (chronological) order.
        batch.sort(key=lambda ref: ref.slot)
        return batch

    async def _reconcile(self, markets: Sequence[str]) -> None:
        if self.catalog is None:
            return
        for market in markets:
            try:
                data = await asyncio.to_thread(self.catalog.check_orders_and_fills, market)
                log.info("checkOrdersAndFills market=%s response=%s", market, data)
            except FeedError as exc:
                log.warning("checkOrdersAndFills failed market=%s: %s", market, exc)
            except Exception:
                log.exception("Unexpected error reconciling market=%s", market)
