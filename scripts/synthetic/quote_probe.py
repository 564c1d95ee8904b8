#!/usr/bin/env python3
"""Synthetic probe for the pricing service.

Registers a throwaway accommodation, configures a base price with a weekend
rule, requests a one-week quote and checks the totals against the expected
weekend composition. Optionally verifies that the quote counters move on the
Prometheus endpoint.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import re
import time
import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import httpx

_METRIC_LINE = re.compile(
    r"^(?P<name>[a-zA-Z_:][a-zA-Z0-9_:]*)(?:\{(?P<labels>[^}]*)\})?\s+(?P<value>[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)$"
)
_LABEL = re.compile(r'(?P<key>[a-zA-Z_][a-zA-Z0-9_]*)="(?P<value>(?:[^"\\]|\\.)*)"')
_CENT = Decimal("0.01")


@dataclass(slots=True)
class MetricSample:
    name: str
    labels: Mapping[str, str]
    value: float


@dataclass(slots=True)
class MetricDelta:
    name: str
    labels: Mapping[str, str]
    before: float
    after: float

    @property
    def delta(self) -> float:
        return self.after - self.before


class ProbeError(RuntimeError):
    def __init__(self, message: str, *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = dict(context or {})


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synthetic probe for pricing service")
    parser.add_argument(
        "--base-url",
        default=os.getenv("PRICING_BASE_URL", "http://127.0.0.1:8000"),
        help="Base URL for the pricing service (default: %(default)s or PRICING_BASE_URL)",
    )
    parser.add_argument(
        "--metrics-path",
        default=os.getenv("PRICING_METRICS_PATH", "/metrics"),
        help="Path to Prometheus metrics endpoint (default: %(default)s or PRICING_METRICS_PATH)",
    )
    parser.add_argument(
        "--skip-metrics",
        action="store_true",
        help="Skip verification of Prometheus metric deltas",
    )
    parser.add_argument(
        "--accommodation-id",
        default=None,
        help="Accommodation to probe. Default generates a unique synthetic id",
    )
    parser.add_argument(
        "--base-price",
        type=Decimal,
        default=Decimal(os.getenv("PRICING_PROBE_BASE_PRICE", "100.00")),
        help="Base nightly price (default: %(default)s or PRICING_PROBE_BASE_PRICE)",
    )
    parser.add_argument(
        "--weekend-multiplier",
        type=Decimal,
        default=Decimal("1.2"),
        help="Weekend multiplier for the probe rule (default: %(default)s)",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=5.0,
        help="HTTP client timeout in seconds (default: %(default)s)",
    )
    parser.add_argument(
        "--max-quote-ms",
        type=float,
        default=float(os.getenv("PRICING_PROBE_MAX_QUOTE_MS", "500")),
        help="Maximum allowed quote latency in milliseconds (default: %(default)s or PRICING_PROBE_MAX_QUOTE_MS)",
    )
    return parser.parse_args()


def parse_metrics(text: str) -> List[MetricSample]:
    samples: List[MetricSample] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _METRIC_LINE.match(stripped)
        if not match:
            continue
        labels = {item.group("key"): item.group("value") for item in _LABEL.finditer(match.group("labels") or "")}
        samples.append(MetricSample(name=match.group("name"), labels=labels, value=float(match.group("value"))))
    return samples


def find_metric_value(
    samples: Sequence[MetricSample],
    name: str,
    *,
    labels: Mapping[str, str],
) -> float:
    for sample in samples:
        if sample.name != name:
            continue
        if all(sample.labels.get(key) == value for key, value in labels.items()):
            return sample.value
    return 0.0


async def fetch_metrics(client: httpx.AsyncClient, path: str) -> List[MetricSample]:
    response = await client.get(path)
    response.raise_for_status()
    return parse_metrics(response.text)


def next_monday(today: date | None = None) -> date:
    current = today or date.today()
    return current + timedelta(days=(7 - current.weekday()) % 7 or 7)


def expected_week_total(base_price: Decimal, weekend_multiplier: Decimal) -> Decimal:
    """Monday to Monday: five weekday nights and two weekend nights."""

    weekend_night = (base_price * weekend_multiplier).quantize(_CENT, rounding=ROUND_HALF_UP)
    return base_price * 5 + weekend_night * 2


async def _configure(client: httpx.AsyncClient, args: argparse.Namespace, accommodation_id: str) -> None:
    response = await client.post(
        "/accommodations",
        json={
            "id": accommodation_id,
            "title": "Synthetic pricing probe",
            "pricePerNight": str(args.base_price),
        },
    )
    if response.status_code not in {201, 409}:
        raise ProbeError(
            "Failed to register accommodation",
            context={"status_code": response.status_code, "body": response.text},
        )

    response = await client.put(f"/pricing/{accommodation_id}", json={"basePrice": str(args.base_price)})
    if response.status_code not in {200, 201}:
        raise ProbeError(
            "Failed to configure pricing",
            context={"status_code": response.status_code, "body": response.text},
        )

    existing = await client.get(f"/pricing/{accommodation_id}/rules")
    for rule in existing.json().get("items", []):
        await client.delete(f"/pricing/{accommodation_id}/rules/{rule['id']}")

    response = await client.post(
        f"/pricing/{accommodation_id}/rules",
        json={
            "type": "weekend",
            "name": "Probe weekend",
            "weekendMultiplier": str(args.weekend_multiplier),
        },
    )
    if response.status_code != 201:
        raise ProbeError(
            "Failed to add weekend rule",
            context={"status_code": response.status_code, "body": response.text},
        )


async def _quote(client: httpx.AsyncClient, accommodation_id: str, start: date) -> Tuple[Dict[str, Any], float]:
    started = time.monotonic()
    response = await client.post(
        f"/pricing/{accommodation_id}/quote",
        json={"startDate": start.isoformat(), "endDate": (start + timedelta(days=7)).isoformat()},
    )
    duration = (time.monotonic() - started) * 1000.0
    if response.status_code != 200:
        raise ProbeError(
            "Quote request failed",
            context={"status_code": response.status_code, "body": response.text},
        )
    return response.json(), duration


def _calc_metric_deltas(
    before: Sequence[MetricSample],
    after: Sequence[MetricSample],
    *,
    name: str,
    labels: Mapping[str, str],
) -> MetricDelta:
    return MetricDelta(
        name=name,
        labels=dict(labels),
        before=find_metric_value(before, name, labels=labels),
        after=find_metric_value(after, name, labels=labels),
    )


async def run_probe(args: argparse.Namespace) -> Dict[str, Any]:
    accommodation_id = args.accommodation_id or f"probe-{uuid.uuid4().hex[:8]}"
    timeout = httpx.Timeout(args.request_timeout)
    async with httpx.AsyncClient(base_url=args.base_url, timeout=timeout) as client:
        metrics_before: Sequence[MetricSample] = ()
        if not args.skip_metrics:
            metrics_before = await fetch_metrics(client, args.metrics_path)

        await _configure(client, args, accommodation_id)
        quote, quote_ms = await _quote(client, accommodation_id, next_monday())

        if quote_ms > args.max_quote_ms:
            raise ProbeError(
                "Quote latency exceeded threshold",
                context={"quote_ms": round(quote_ms, 2), "threshold_ms": args.max_quote_ms},
            )

        expected = expected_week_total(args.base_price, args.weekend_multiplier)
        actual = Decimal(quote["total"])
        if quote["nights"] != 7 or quote["weekendNights"] != 2 or actual != expected:
            raise ProbeError(
                "Quote did not match expected weekend composition",
                context={
                    "expected_total": str(expected),
                    "actual_total": str(actual),
                    "nights": quote["nights"],
                    "weekend_nights": quote["weekendNights"],
                },
            )

        metric_results: List[MetricDelta] = []
        if not args.skip_metrics:
            metrics_after = await fetch_metrics(client, args.metrics_path)
            metric_results.append(
                _calc_metric_deltas(metrics_before, metrics_after, name="pricing_quotes_total", labels={"source": "engine"})
            )
            metric_results.append(
                _calc_metric_deltas(metrics_before, metrics_after, name="pricing_quote_nights_count", labels={})
            )
            for result in metric_results:
                if result.delta < 1:
                    raise ProbeError(f"{result.name} did not increment", context={"delta": result.delta})

        return {
            "status": "ok",
            "accommodationId": accommodation_id,
            "total": quote["total"],
            "durationsMs": {"quote": round(quote_ms, 2)},
            "metrics": [
                {
                    "name": delta.name,
                    "labels": delta.labels,
                    "before": delta.before,
                    "after": delta.after,
                    "delta": delta.delta,
                }
                for delta in metric_results
            ],
        }


async def main_async() -> int:
    args = parse_args()
    try:
        result = await run_probe(args)
    except ProbeError as exc:
        payload = {"status": "error", "message": str(exc), "context": exc.context}
        print(json.dumps(payload, indent=2, sort_keys=True))
        return 1
    except httpx.HTTPError as exc:
        payload = {
            "status": "error",
            "message": str(exc),
            "context": {"exc_type": exc.__class__.__name__},
        }
        print(json.dumps(payload, indent=2, sort_keys=True))
        return 1
    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


def main() -> None:
    exit_code = asyncio.run(main_async())
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
