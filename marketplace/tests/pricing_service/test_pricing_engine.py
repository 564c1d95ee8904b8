from datetime import date, datetime
from decimal import Decimal

from marketplace.pricing_service.app.engine import (
    CustomPeriodRule,
    DateRange,
    LongStayRule,
    PricingConfiguration,
    Season,
    SeasonRule,
    WeekendRule,
    average_nightly_price,
    calculate_price,
    is_weekend,
    iter_nights,
    matches_custom_period,
    matches_season,
)

MONDAY = date(2025, 6, 2)


def _config(*rules, base_price: str = "100.00") -> PricingConfiguration:
    return PricingConfiguration(accommodation_id="villa-1", base_price=Decimal(base_price), rules=rules)


def _stay(start: date, nights: int) -> DateRange:
    return DateRange(start, date.fromordinal(start.toordinal() + nights))


def _long_stay(name: str, minimum_nights: int, percentage: str, **kwargs) -> LongStayRule:
    return LongStayRule(
        name=name,
        minimum_nights=minimum_nights,
        discount_percentage=Decimal(percentage),
        **kwargs,
    )


def test_zero_length_stay_is_empty() -> None:
    result = calculate_price(_config(WeekendRule(name="Weekend", weekend_multiplier=Decimal("1.2"))), DateRange(MONDAY, MONDAY))

    assert result.nights == 0
    assert result.weekend_nights == 0
    assert result.week_nights == 0
    assert result.nightly_prices == ()
    assert result.subtotal == Decimal("0")
    assert result.long_stay_discount == Decimal("0")
    assert result.total == Decimal("0")
    assert result.applied_rules == ()


def test_inverted_range_is_treated_as_empty_stay() -> None:
    result = calculate_price(_config(), DateRange(date(2025, 6, 10), date(2025, 6, 3)))

    assert result.nights == 0
    assert result.total == Decimal("0")
    assert average_nightly_price(result) == Decimal("0")


def test_no_rules_charges_base_price_every_night() -> None:
    result = calculate_price(_config(base_price="87.50"), _stay(MONDAY, 4))

    assert result.nights == 4
    assert [night.adjusted_price for night in result.nightly_prices] == [Decimal("87.50")] * 4
    assert all(night.applied_rules == () for night in result.nightly_prices)
    assert result.subtotal == Decimal("350.00")
    assert result.total == Decimal("350.00")
    assert result.applied_rules == ()


def test_weekend_composition_over_a_week() -> None:
    assert MONDAY.weekday() == 0
    rule = WeekendRule(name="Weekend", weekend_multiplier=Decimal("1.2"), week_multiplier=Decimal("1.0"))

    result = calculate_price(_config(rule), _stay(MONDAY, 7))

    assert result.nights == 7
    assert result.week_nights == 5
    assert result.weekend_nights == 2
    assert [night.adjusted_price for night in result.nightly_prices] == [
        Decimal("100"),
        Decimal("100"),
        Decimal("100"),
        Decimal("100"),
        Decimal("100"),
        Decimal("120"),
        Decimal("120"),
    ]
    assert [night.date for night in result.nightly_prices] == list(iter_nights(MONDAY, date(2025, 6, 9)))
    assert [night.is_weekend for night in result.nightly_prices] == [False] * 5 + [True] * 2
    assert result.subtotal == Decimal("740.00")
    assert result.total == Decimal("740.00")
    assert result.applied_rules == ("Weekend",)
    assert average_nightly_price(result) == Decimal("105.71")


def test_weekday_multiplier_applies_and_is_reported_when_not_neutral() -> None:
    rule = WeekendRule(name="Midweek deal", weekend_multiplier=Decimal("1.0"), week_multiplier=Decimal("0.9"))

    result = calculate_price(_config(rule), _stay(MONDAY, 1))

    night = result.nightly_prices[0]
    assert night.adjusted_price == Decimal("90.00")
    assert night.applied_rules == ("Midweek deal",)


def test_is_weekend() -> None:
    assert is_weekend(date(2025, 6, 7))
    assert is_weekend(date(2025, 6, 8))
    assert not is_weekend(date(2025, 6, 9))
    assert is_weekend(datetime(2025, 6, 7, 23, 59))


def test_season_range_wraps_around_year_end() -> None:
    rule = SeasonRule(
        name="Winter peak",
        season=Season.HIGH,
        start_month=11,
        end_month=2,
        price_multiplier=Decimal("1.5"),
    )

    assert matches_season(date(2024, 12, 15), rule)
    assert matches_season(date(2025, 1, 5), rule)
    assert matches_season(date(2025, 2, 28), rule)
    assert not matches_season(date(2025, 6, 1), rule)
    assert not matches_season(date(2025, 3, 1), rule)


def test_season_range_within_a_year() -> None:
    rule = SeasonRule(name="Summer", season="high", start_month=7, end_month=8, price_multiplier=Decimal("1.5"))

    assert rule.season is Season.HIGH
    assert matches_season(date(2025, 7, 1), rule)
    assert matches_season(date(2025, 8, 31), rule)
    assert not matches_season(date(2025, 9, 1), rule)


def test_low_season_only_applies_inside_its_months() -> None:
    low = SeasonRule(name="Low", season=Season.LOW, start_month=11, end_month=3, price_multiplier=Decimal("0.8"))

    january = calculate_price(_config(low), _stay(date(2025, 1, 6), 1))
    july = calculate_price(_config(low), _stay(date(2025, 7, 7), 1))

    assert january.nightly_prices[0].adjusted_price == Decimal("80.00")
    assert january.applied_rules == ("Low",)
    assert july.nightly_prices[0].adjusted_price == Decimal("100.00")
    assert july.applied_rules == ()


def test_custom_period_bounds_are_inclusive() -> None:
    rule = CustomPeriodRule(
        name="Festival",
        start_date=date(2025, 7, 10),
        end_date=date(2025, 7, 12),
        price_multiplier=Decimal("2"),
    )

    assert not matches_custom_period(date(2025, 7, 9), rule)
    assert matches_custom_period(date(2025, 7, 10), rule)
    assert matches_custom_period(datetime(2025, 7, 12, 18, 30), rule)
    assert not matches_custom_period(date(2025, 7, 13), rule)

    result = calculate_price(_config(rule), DateRange(date(2025, 7, 9), date(2025, 7, 14)))
    assert [night.adjusted_price for night in result.nightly_prices] == [
        Decimal("100.00"),
        Decimal("200.00"),
        Decimal("200.00"),
        Decimal("200.00"),
        Decimal("100.00"),
    ]


def test_custom_period_accepts_datetimes() -> None:
    rule = CustomPeriodRule(
        name="Event",
        start_date=datetime(2025, 7, 10, 15, 0),
        end_date=datetime(2025, 7, 10, 9, 0),
        price_multiplier=Decimal("1.1"),
    )

    assert rule.start_date == date(2025, 7, 10)
    assert matches_custom_period(date(2025, 7, 10), rule)


def test_time_of_day_is_ignored_when_enumerating_nights() -> None:
    result = calculate_price(_config(), DateRange(datetime(2025, 6, 2, 15, 0), datetime(2025, 6, 4, 10, 0)))

    assert result.nights == 2
    assert [night.date for night in result.nightly_prices] == [date(2025, 6, 2), date(2025, 6, 3)]


def test_long_stay_discount_picks_best_qualifying_rule() -> None:
    weekly = _long_stay("Weekly", 7, "10")
    fortnight = _long_stay("Fortnight", 14, "15")
    config = _config(weekly, fortnight)

    twenty = calculate_price(config, _stay(MONDAY, 20))
    ten = calculate_price(config, _stay(MONDAY, 10))
    five = calculate_price(config, _stay(MONDAY, 5))

    assert twenty.subtotal == Decimal("2000.00")
    assert twenty.long_stay_discount == Decimal("300.00")
    assert twenty.total == Decimal("1700.00")
    assert twenty.applied_rules == ("Fortnight",)

    assert ten.long_stay_discount == Decimal("100.00")
    assert ten.total == Decimal("900.00")
    assert ten.applied_rules == ("Weekly",)

    assert five.long_stay_discount == Decimal("0")
    assert five.total == Decimal("500.00")
    assert five.applied_rules == ()


def test_long_stay_threshold_is_inclusive() -> None:
    result = calculate_price(_config(_long_stay("Weekly", 7, "10")), _stay(MONDAY, 7))

    assert result.long_stay_discount == Decimal("70.00")


def test_long_stay_discount_respects_cap() -> None:
    rule = _long_stay("Monthly", 7, "30", maximum_discount_percentage=Decimal("15"))

    result = calculate_price(_config(rule), _stay(MONDAY, 7))

    assert rule.effective_percentage == Decimal("15")
    assert result.long_stay_discount == Decimal("105.00")
    assert result.total == Decimal("595.00")


def test_long_stay_tie_goes_to_higher_priority() -> None:
    low = _long_stay("Low priority", 7, "5", priority=1)
    high = _long_stay("High priority", 7, "12", priority=5)

    result = calculate_price(_config(low, high), _stay(MONDAY, 7))

    assert result.applied_rules == ("High priority",)
    assert result.long_stay_discount == Decimal("84.00")


def test_disabled_rules_are_ignored() -> None:
    config = _config(
        WeekendRule(name="Weekend", weekend_multiplier=Decimal("1.5"), enabled=False),
        _long_stay("Weekly", 1, "50", enabled=False),
    )

    result = calculate_price(config, _stay(MONDAY, 7))

    assert result.total == Decimal("700.00")
    assert result.applied_rules == ()


def test_nightly_price_rounds_half_up() -> None:
    period = CustomPeriodRule(
        name="Bump",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        price_multiplier=Decimal("1.1"),
    )
    result = calculate_price(_config(period, base_price="33.33"), _stay(MONDAY, 1))
    assert result.nightly_prices[0].adjusted_price == Decimal("36.66")

    tie = CustomPeriodRule(
        name="Tie",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        price_multiplier=Decimal("1.3"),
    )
    result = calculate_price(_config(tie, base_price="1.05"), _stay(MONDAY, 1))
    assert result.nightly_prices[0].adjusted_price == Decimal("1.37")


def test_float_multipliers_are_converted_exactly() -> None:
    rule = WeekendRule(name="Weekend", weekend_multiplier=1.1)

    assert rule.weekend_multiplier == Decimal("1.1")
    assert rule.week_multiplier == Decimal("1")


def test_multipliers_compose_in_priority_order() -> None:
    season = SeasonRule(
        name="Summer",
        season=Season.HIGH,
        start_month=6,
        end_month=8,
        price_multiplier=Decimal("1.5"),
        priority=10,
    )
    weekend = WeekendRule(name="Weekend", weekend_multiplier=Decimal("1.2"), priority=5)
    festival = CustomPeriodRule(
        name="Festival",
        start_date=date(2025, 6, 7),
        end_date=date(2025, 6, 7),
        price_multiplier=Decimal("2"),
        priority=20,
    )

    result = calculate_price(_config(season, weekend, festival), DateRange(date(2025, 6, 6), date(2025, 6, 8)))

    friday, saturday = result.nightly_prices
    assert friday.adjusted_price == Decimal("150.00")
    assert friday.applied_rules == ("Summer",)
    assert saturday.adjusted_price == Decimal("360.00")
    assert saturday.applied_rules == ("Festival", "Summer", "Weekend")
    assert result.applied_rules == ("Summer", "Festival", "Weekend")


def test_declaration_order_does_not_change_result() -> None:
    first = SeasonRule(
        name="Summer",
        season=Season.HIGH,
        start_month=6,
        end_month=8,
        price_multiplier=Decimal("1.5"),
        priority=10,
    )
    second = CustomPeriodRule(
        name="Promo",
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 30),
        price_multiplier=Decimal("0.9"),
        priority=3,
    )
    stay = _stay(MONDAY, 3)

    assert calculate_price(_config(first, second), stay) == calculate_price(_config(second, first), stay)


def test_equal_priorities_keep_declaration_order() -> None:
    a = CustomPeriodRule(
        name="A", start_date=date(2025, 6, 1), end_date=date(2025, 6, 30), price_multiplier=Decimal("1.1")
    )
    b = CustomPeriodRule(
        name="B", start_date=date(2025, 6, 1), end_date=date(2025, 6, 30), price_multiplier=Decimal("1.2")
    )

    assert calculate_price(_config(a, b), _stay(MONDAY, 1)).applied_rules == ("A", "B")
    assert calculate_price(_config(b, a), _stay(MONDAY, 1)).applied_rules == ("B", "A")


def test_long_stay_applies_after_nightly_adjustments() -> None:
    weekend = WeekendRule(name="Weekend", weekend_multiplier=Decimal("1.2"))
    weekly = _long_stay("Weekly", 7, "10")

    result = calculate_price(_config(weekend, weekly), _stay(MONDAY, 7))

    assert result.subtotal == Decimal("740.00")
    assert result.long_stay_discount == Decimal("74.00")
    assert result.total == Decimal("666.00")
    assert result.applied_rules == ("Weekend", "Weekly")


def test_calculation_is_idempotent() -> None:
    config = _config(
        WeekendRule(name="Weekend", weekend_multiplier=Decimal("1.25")),
        _long_stay("Weekly", 7, "7.5"),
    )
    stay = _stay(date(2025, 12, 20), 9)

    first = calculate_price(config, stay)
    second = calculate_price(config, stay)

    assert first == second
    assert repr(first) == repr(second)
