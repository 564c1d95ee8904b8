"""Dynamic nightly pricing engine.

Pure computation: given a base nightly price and a set of pricing rules, price
every night of a stay and total it.

Calculation flow for a stay ``[start, end)``:

1. Enumerate nights (checkout day excluded), classify weekend / weekday.
2. Per night: base price × product of matching per-night multipliers
   (season, weekend, custom period), evaluated by priority descending.
   Each night is rounded half-up to cents.
3. Subtotal = sum of nightly prices.
4. Long-stay discount: one percentage off the subtotal, taken from the
   qualifying rule with the largest minimum-night threshold.
5. Total = subtotal - discount.

Usage:
    from datetime import date
    from decimal import Decimal

    config = PricingConfiguration(
        accommodation_id="villa-1",
        base_price=Decimal("100.00"),
        rules=(WeekendRule(name="Weekend", weekend_multiplier=Decimal("1.2")),),
    )
    result = calculate_price(config, DateRange(date(2025, 6, 2), date(2025, 6, 9)))
    print(result.total)  # 740.00
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import ClassVar, Union

_CENT = Decimal("0.01")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")
_ZERO = Decimal("0.00")


class RuleType(str, Enum):
    SEASON = "season"
    WEEKEND = "weekend"
    LONG_STAY = "long_stay"
    CUSTOM = "custom"


class Season(str, Enum):
    HIGH = "high"
    LOW = "low"


def round2(value: Decimal) -> Decimal:
    """Round a money amount to cents, half-up."""

    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 1.1 as 1.1 instead of its binary expansion.
    return Decimal(str(value))


def as_date(value: date | datetime) -> date:
    """Strip time of day, keeping the calendar date."""

    if isinstance(value, datetime):
        return value.date()
    return value


def _coerce_decimals(instance: object, *names: str) -> None:
    for name in names:
        value = getattr(instance, name)
        if value is not None:
            object.__setattr__(instance, name, to_decimal(value))


# =============================================================================
# RULES
# =============================================================================


@dataclass(frozen=True, slots=True)
class SeasonRule:
    name: str
    season: Season
    start_month: int
    end_month: int
    price_multiplier: Decimal
    priority: int = 0
    enabled: bool = True

    type: ClassVar[RuleType] = RuleType.SEASON

    def __post_init__(self) -> None:
        object.__setattr__(self, "season", Season(self.season))
        _coerce_decimals(self, "price_multiplier")


@dataclass(frozen=True, slots=True)
class WeekendRule:
    name: str
    weekend_multiplier: Decimal
    week_multiplier: Decimal = _ONE
    priority: int = 0
    enabled: bool = True

    type: ClassVar[RuleType] = RuleType.WEEKEND

    def __post_init__(self) -> None:
        _coerce_decimals(self, "weekend_multiplier", "week_multiplier")


@dataclass(frozen=True, slots=True)
class LongStayRule:
    name: str
    minimum_nights: int
    discount_percentage: Decimal
    maximum_discount_percentage: Decimal | None = None
    priority: int = 0
    enabled: bool = True

    type: ClassVar[RuleType] = RuleType.LONG_STAY

    def __post_init__(self) -> None:
        _coerce_decimals(self, "discount_percentage", "maximum_discount_percentage")

    @property
    def effective_percentage(self) -> Decimal:
        if self.maximum_discount_percentage is None:
            return self.discount_percentage
        return min(self.discount_percentage, self.maximum_discount_percentage)


@dataclass(frozen=True, slots=True)
class CustomPeriodRule:
    name: str
    start_date: date
    end_date: date
    price_multiplier: Decimal
    priority: int = 0
    enabled: bool = True

    type: ClassVar[RuleType] = RuleType.CUSTOM

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_date", as_date(self.start_date))
        object.__setattr__(self, "end_date", as_date(self.end_date))
        _coerce_decimals(self, "price_multiplier")


PricingRule = Union[SeasonRule, WeekendRule, LongStayRule, CustomPeriodRule]


@dataclass(frozen=True, slots=True)
class PricingConfiguration:
    accommodation_id: str
    base_price: Decimal
    currency: str = "EUR"
    rules: tuple[PricingRule, ...] = ()

    def __post_init__(self) -> None:
        _coerce_decimals(self, "base_price")
        object.__setattr__(self, "rules", tuple(self.rules))


@dataclass(frozen=True, slots=True)
class DateRange:
    """Stay from ``start`` (check-in) to ``end`` (checkout, not a night)."""

    start: date
    end: date

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", as_date(self.start))
        object.__setattr__(self, "end", as_date(self.end))


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True, slots=True)
class NightlyPrice:
    date: date
    base_price: Decimal
    adjusted_price: Decimal
    applied_rules: tuple[str, ...]
    is_weekend: bool


@dataclass(frozen=True, slots=True)
class PriceCalculationResult:
    base_price: Decimal
    nights: int = 0
    weekend_nights: int = 0
    week_nights: int = 0
    nightly_prices: tuple[NightlyPrice, ...] = ()
    subtotal: Decimal = _ZERO
    long_stay_discount: Decimal = _ZERO
    total: Decimal = _ZERO
    applied_rules: tuple[str, ...] = field(default_factory=tuple)


# =============================================================================
# PREDICATES
# =============================================================================


def is_weekend(day: date | datetime) -> bool:
    """Saturday or Sunday."""

    return as_date(day).weekday() >= 5


def matches_season(day: date | datetime, rule: SeasonRule) -> bool:
    """Whether the day's month falls in the rule's month range.

    Ranges with ``start_month > end_month`` wrap across the new year,
    e.g. 11 -> 2 covers November to February.
    """

    month = as_date(day).month
    if rule.start_month <= rule.end_month:
        return rule.start_month <= month <= rule.end_month
    return month >= rule.start_month or month <= rule.end_month


def matches_custom_period(day: date | datetime, rule: CustomPeriodRule) -> bool:
    return rule.start_date <= as_date(day) <= rule.end_date


def iter_nights(start: date | datetime, end: date | datetime) -> Iterator[date]:
    """Yield each night of the stay; empty when ``end <= start``."""

    current = as_date(start)
    checkout = as_date(end)
    while current < checkout:
        yield current
        current += timedelta(days=1)


# =============================================================================
# CALCULATION
# =============================================================================


def _by_priority(rules: Sequence[PricingRule]) -> list[PricingRule]:
    # sorted() is stable with reverse=True, so ties keep declaration order.
    return sorted((rule for rule in rules if rule.enabled), key=lambda rule: rule.priority, reverse=True)


def _night_factor(day: date, weekend: bool, rule: PricingRule) -> Decimal | None:
    """Multiplier the rule contributes to this night, or None when it does not apply."""

    if isinstance(rule, SeasonRule):
        return rule.price_multiplier if matches_season(day, rule) else None
    if isinstance(rule, WeekendRule):
        return rule.weekend_multiplier if weekend else rule.week_multiplier
    if isinstance(rule, CustomPeriodRule):
        return rule.price_multiplier if matches_custom_period(day, rule) else None
    # Long-stay rules discount the whole stay, never a single night.
    return None


def price_night(day: date, base_price: Decimal, rules: Sequence[PricingRule]) -> NightlyPrice:
    """Price one night; ``rules`` must already be enabled and priority-ordered."""

    weekend = is_weekend(day)
    factor = _ONE
    applied: list[str] = []
    for rule in rules:
        multiplier = _night_factor(day, weekend, rule)
        if multiplier is None:
            continue
        factor *= multiplier
        # A neutral weekday multiplier leaves the night untouched.
        if isinstance(rule, WeekendRule) and not weekend and multiplier == _ONE:
            continue
        applied.append(rule.name)

    return NightlyPrice(
        date=day,
        base_price=base_price,
        adjusted_price=round2(base_price * factor),
        applied_rules=tuple(applied),
        is_weekend=weekend,
    )


def select_long_stay_rule(rules: Sequence[PricingRule], nights: int) -> LongStayRule | None:
    """Qualifying long-stay rule with the largest minimum-night threshold.

    Ties go to the first rule in priority order.
    """

    best: LongStayRule | None = None
    for rule in _by_priority(rules):
        if not isinstance(rule, LongStayRule) or rule.minimum_nights > nights:
            continue
        if best is None or rule.minimum_nights > best.minimum_nights:
            best = rule
    return best


def calculate_price(config: PricingConfiguration, date_range: DateRange) -> PriceCalculationResult:
    """Price a stay against a configuration.

    Args:
        config: base nightly price and rule set
        date_range: half-open stay range; an inverted or empty range is a
            zero-night stay

    Returns:
        PriceCalculationResult with per-night breakdown and totals
    """
    base_price = config.base_price
    night_rules = [rule for rule in _by_priority(config.rules) if not isinstance(rule, LongStayRule)]

    nightly_prices = tuple(
        price_night(day, base_price, night_rules) for day in iter_nights(date_range.start, date_range.end)
    )
    nights = len(nightly_prices)
    if nights == 0:
        return PriceCalculationResult(base_price=base_price)

    weekend_nights = sum(1 for night in nightly_prices if night.is_weekend)
    subtotal = round2(sum((night.adjusted_price for night in nightly_prices), _ZERO))

    long_stay = select_long_stay_rule(config.rules, nights)
    discount = _ZERO
    if long_stay is not None:
        discount = round2(subtotal * long_stay.effective_percentage / _HUNDRED)

    applied: dict[str, None] = {}
    for night in nightly_prices:
        applied.update(dict.fromkeys(night.applied_rules))
    if long_stay is not None:
        applied[long_stay.name] = None

    return PriceCalculationResult(
        base_price=base_price,
        nights=nights,
        weekend_nights=weekend_nights,
        week_nights=nights - weekend_nights,
        nightly_prices=nightly_prices,
        subtotal=subtotal,
        long_stay_discount=discount,
        total=round2(subtotal - discount),
        applied_rules=tuple(applied),
    )


def average_nightly_price(result: PriceCalculationResult) -> Decimal:
    if result.nights == 0:
        return _ZERO
    return round2(result.total / result.nights)
