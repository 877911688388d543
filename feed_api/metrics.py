from __future__ import annotations

import logging
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, start_http_server

from feed_core.types import FillEvent, PlaceOrderEvent

log = logging.getLogger("feed_api.metrics")


def _label(value: bool) -> str:
    return "true" if value else "false"


class FeedMetrics:
    """Prometheus counters for live monitoring of the feed.

    Not a trade history: only counts what this process relayed.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else REGISTRY
        self.fills = Counter(
            "fills",
            "Number of fills",
            ["market", "isGlobal", "takerIsBuy"],
            registry=self.registry,
        )
        self.place_orders = Counter(
            "place_orders",
            "Number of placed orders",
            ["market", "isBid"],
            registry=self.registry,
        )

    def record_fill(self, event: FillEvent) -> None:
        self.fills.labels(
            market=event.market,
            isGlobal=_label(event.is_maker_global),
            takerIsBuy=_label(event.taker_is_buy),
        ).inc()

    def record_place_order(self, event: PlaceOrderEvent) -> None:
        self.place_orders.labels(market=event.market, isBid=_label(event.is_bid)).inc()

    def serve(self, port: int, addr: str = "0.0.0.0") -> None:
        start_http_server(port, addr=addr, registry=self.registry)
        log.info("Metrics exporter listening on http://%s:%s/metrics", addr, port)
