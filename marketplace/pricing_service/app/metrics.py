"""Prometheus metrics for the pricing service."""

from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Histogram


PRICING_QUOTES_TOTAL: Final = Counter(
    "pricing_quotes_total",
    "Number of price quotes computed.",
    labelnames=("source",),
)

PRICING_QUOTE_NIGHTS: Final = Histogram(
    "pricing_quote_nights",
    "Stay length of quoted date ranges.",
    buckets=(0, 1, 2, 3, 5, 7, 14, 28, 60, 120, 365),
)

PRICING_QUOTE_SECONDS: Final = Histogram(
    "pricing_quote_seconds",
    "Time spent in the pricing engine per quote.",
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25),
)

PRICING_QUOTE_CACHE_EVENTS_TOTAL: Final = Counter(
    "pricing_quote_cache_events_total",
    "Count of quote cache interactions.",
    labelnames=("event",),
)

PRICING_RULE_MUTATIONS_TOTAL: Final = Counter(
    "pricing_rule_mutations_total",
    "Number of pricing rule changes.",
    labelnames=("operation", "rule_type"),
)
