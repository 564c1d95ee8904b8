"""Pricing domain services."""

from __future__ import annotations

import logging
from datetime import date
from time import perf_counter
from typing import Any

from pydantic import TypeAdapter, ValidationError

from . import engine
from .engine import RuleType, Season
from .metrics import (
    PRICING_QUOTE_NIGHTS,
    PRICING_QUOTE_SECONDS,
    PRICING_QUOTES_TOTAL,
    PRICING_RULE_MUTATIONS_TOTAL,
)
from .models import Accommodation, PricingConfiguration, PricingRule
from .quote_cache import QuoteCacheProtocol
from .repository import PricingRepository
from .schemas import (
    AccommodationCreate,
    NightlyPriceResponse,
    PricingConfigUpsert,
    PricingRuleCreate,
    PricingRuleUpdate,
    QuoteResponse,
)

logger = logging.getLogger(__name__)

_COMMON_FIELDS = ("name", "priority", "enabled")
RULE_FIELDS: dict[str, tuple[str, ...]] = {
    RuleType.SEASON.value: ("season", "start_month", "end_month", "price_multiplier"),
    RuleType.WEEKEND.value: ("weekend_multiplier", "week_multiplier"),
    RuleType.LONG_STAY.value: ("minimum_nights", "discount_percentage", "maximum_discount_percentage"),
    RuleType.CUSTOM.value: ("start_date", "end_date", "price_multiplier"),
}
_RULE_ADAPTER: TypeAdapter[PricingRuleCreate] = TypeAdapter(PricingRuleCreate)


class PricingError(Exception):
    """Base class for pricing service errors."""


class AccommodationNotFoundError(PricingError):
    pass


class PricingConfigurationNotFoundError(PricingError):
    pass


class PricingRuleNotFoundError(PricingError):
    pass


class InvalidPricingRuleError(PricingError, ValueError):
    pass


def _rule_columns(payload: Any) -> dict[str, Any]:
    """Column values for a validated rule schema."""

    fields = payload.model_dump(include={"type", *_COMMON_FIELDS, *RULE_FIELDS[payload.type]})
    if "season" in fields:
        fields["season"] = Season(fields["season"]).value
    return fields


def to_engine_rule(rule: PricingRule) -> engine.PricingRule:
    """Convert a stored rule row into its engine value."""

    common: dict[str, Any] = {"name": rule.name, "priority": rule.priority, "enabled": rule.enabled}
    if rule.type == RuleType.SEASON:
        return engine.SeasonRule(
            season=Season(rule.season),
            start_month=rule.start_month,
            end_month=rule.end_month,
            price_multiplier=rule.price_multiplier,
            **common,
        )
    if rule.type == RuleType.WEEKEND:
        return engine.WeekendRule(
            weekend_multiplier=rule.weekend_multiplier,
            week_multiplier=rule.week_multiplier if rule.week_multiplier is not None else engine.to_decimal(1),
            **common,
        )
    if rule.type == RuleType.LONG_STAY:
        return engine.LongStayRule(
            minimum_nights=rule.minimum_nights,
            discount_percentage=rule.discount_percentage,
            maximum_discount_percentage=rule.maximum_discount_percentage,
            **common,
        )
    if rule.type == RuleType.CUSTOM:
        return engine.CustomPeriodRule(
            start_date=rule.start_date,
            end_date=rule.end_date,
            price_multiplier=rule.price_multiplier,
            **common,
        )
    msg = f"unknown pricing rule type {rule.type!r}"
    raise InvalidPricingRuleError(msg)


def to_engine_config(configuration: PricingConfiguration) -> engine.PricingConfiguration:
    return engine.PricingConfiguration(
        accommodation_id=configuration.accommodation_id,
        base_price=configuration.base_price,
        currency=configuration.currency,
        rules=tuple(to_engine_rule(rule) for rule in configuration.rules),
    )


def build_quote_response(
    configuration: PricingConfiguration,
    start: date,
    end: date,
    result: engine.PriceCalculationResult,
) -> QuoteResponse:
    return QuoteResponse(
        accommodation_id=configuration.accommodation_id,
        currency=configuration.currency,
        start_date=start,
        end_date=end,
        base_price=engine.round2(result.base_price),
        nights=result.nights,
        weekend_nights=result.weekend_nights,
        week_nights=result.week_nights,
        nightly_prices=[
            NightlyPriceResponse(
                date=night.date,
                base_price=engine.round2(night.base_price),
                adjusted_price=night.adjusted_price,
                applied_rules=list(night.applied_rules),
                is_weekend=night.is_weekend,
            )
            for night in result.nightly_prices
        ],
        subtotal=result.subtotal,
        long_stay_discount=result.long_stay_discount,
        total=result.total,
        average_nightly_price=engine.average_nightly_price(result),
        applied_rules=list(result.applied_rules),
    )


class PricingService:
    """Configuration management and quoting on top of the pricing engine."""

    def __init__(
        self,
        repository: PricingRepository,
        quote_cache: QuoteCacheProtocol | None = None,
        *,
        default_currency: str = "EUR",
    ) -> None:
        self.repository = repository
        self.quote_cache = quote_cache
        self.default_currency = default_currency

    # -- accommodations -------------------------------------------------------

    async def create_accommodation(self, payload: AccommodationCreate) -> Accommodation:
        return await self.repository.create_accommodation(
            accommodation_id=payload.id,
            title=payload.title,
            price_per_night=payload.price_per_night,
            currency=payload.currency or self.default_currency,
        )

    async def get_accommodation(self, accommodation_id: str) -> Accommodation:
        accommodation = await self.repository.get_accommodation(accommodation_id)
        if accommodation is None:
            msg = f"Accommodation {accommodation_id} not found"
            raise AccommodationNotFoundError(msg)
        return accommodation

    # -- configuration --------------------------------------------------------

    async def get_configuration(self, accommodation_id: str) -> PricingConfiguration:
        configuration = await self.repository.get_configuration(accommodation_id)
        if configuration is None:
            msg = f"Pricing configuration for {accommodation_id} not found"
            raise PricingConfigurationNotFoundError(msg)
        return configuration

    async def upsert_configuration(
        self,
        accommodation_id: str,
        payload: PricingConfigUpsert,
    ) -> tuple[PricingConfiguration, bool]:
        """Create the configuration or update it in place; returns (configuration, created)."""

        accommodation = await self.get_accommodation(accommodation_id)
        configuration = await self.repository.get_configuration(accommodation_id)
        if configuration is None:
            configuration = await self.repository.create_configuration(
                accommodation_id=accommodation.id,
                base_price=payload.base_price,
                currency=payload.currency or accommodation.currency or self.default_currency,
            )
            logger.info("Created pricing configuration for %s", accommodation_id)
            return configuration, True

        configuration = await self.repository.update_configuration(
            configuration,
            base_price=payload.base_price,
            currency=payload.currency,
        )
        logger.info(
            "Updated pricing configuration for %s (revision %s)", accommodation_id, configuration.revision
        )
        return configuration, False

    async def _configuration_for_rules(self, accommodation_id: str) -> PricingConfiguration:
        """Existing configuration, or one seeded from the accommodation's nightly price."""

        configuration = await self.repository.get_configuration(accommodation_id)
        if configuration is not None:
            return configuration
        accommodation = await self.get_accommodation(accommodation_id)
        logger.info("Seeding pricing configuration for %s from its nightly price", accommodation_id)
        return await self.repository.create_configuration(
            accommodation_id=accommodation.id,
            base_price=accommodation.price_per_night,
            currency=accommodation.currency or self.default_currency,
        )

    # -- rules ----------------------------------------------------------------

    async def list_rules(self, accommodation_id: str) -> list[PricingRule]:
        configuration = await self.repository.get_configuration(accommodation_id)
        if configuration is None:
            return []
        return list(configuration.rules)

    async def _get_rule(self, configuration: PricingConfiguration, rule_id: int) -> PricingRule:
        rule = await self.repository.get_rule(configuration, rule_id)
        if rule is None:
            msg = f"Pricing rule {rule_id} not found"
            raise PricingRuleNotFoundError(msg)
        return rule

    async def add_rule(self, accommodation_id: str, payload: PricingRuleCreate) -> PricingRule:
        configuration = await self._configuration_for_rules(accommodation_id)
        rule = await self.repository.add_rule(configuration, _rule_columns(payload))
        await self.repository.touch_configuration(configuration)
        PRICING_RULE_MUTATIONS_TOTAL.labels(operation="create", rule_type=rule.type).inc()
        logger.info("Added %s rule %s to %s", rule.type, rule.id, accommodation_id)
        return rule

    async def update_rule(self, accommodation_id: str, rule_id: int, payload: PricingRuleUpdate) -> PricingRule:
        configuration = await self.get_configuration(accommodation_id)
        rule = await self._get_rule(configuration, rule_id)

        changes = payload.model_dump(exclude_unset=True)
        allowed = {*_COMMON_FIELDS, *RULE_FIELDS[rule.type]}
        foreign = sorted(set(changes) - allowed)
        if foreign:
            msg = f"Fields not valid for {rule.type} rules: {', '.join(foreign)}"
            raise InvalidPricingRuleError(msg)

        merged: dict[str, Any] = {"type": rule.type}
        merged.update({name: getattr(rule, name) for name in allowed})
        merged.update(changes)
        try:
            validated = _RULE_ADAPTER.validate_python(merged)
        except ValidationError as exc:
            raise InvalidPricingRuleError(str(exc)) from exc

        columns = _rule_columns(validated)
        columns.pop("type")
        updated = await self.repository.update_rule(rule, columns)
        await self.repository.touch_configuration(configuration)
        PRICING_RULE_MUTATIONS_TOTAL.labels(operation="update", rule_type=updated.type).inc()
        logger.info("Updated %s rule %s of %s", updated.type, updated.id, accommodation_id)
        return updated

    async def delete_rule(self, accommodation_id: str, rule_id: int) -> None:
        configuration = await self.get_configuration(accommodation_id)
        rule = await self._get_rule(configuration, rule_id)
        rule_type = rule.type
        await self.repository.delete_rule(configuration, rule)
        await self.repository.touch_configuration(configuration)
        PRICING_RULE_MUTATIONS_TOTAL.labels(operation="delete", rule_type=rule_type).inc()
        logger.info("Deleted %s rule %s of %s", rule_type, rule_id, accommodation_id)

    # -- quotes ---------------------------------------------------------------

    async def quote(self, accommodation_id: str, start: date, end: date) -> QuoteResponse:
        """Price a stay; read-only, never persisted."""

        configuration = await self.get_configuration(accommodation_id)
        revision = configuration.revision

        if self.quote_cache is not None:
            cached = await self.quote_cache.get(accommodation_id, revision, start, end)
            if cached is not None:
                PRICING_QUOTES_TOTAL.labels(source="cache").inc()
                return QuoteResponse.model_validate(cached)

        started = perf_counter()
        result = engine.calculate_price(to_engine_config(configuration), engine.DateRange(start, end))
        PRICING_QUOTE_SECONDS.observe(perf_counter() - started)
        PRICING_QUOTE_NIGHTS.observe(result.nights)
        PRICING_QUOTES_TOTAL.labels(source="engine").inc()
        logger.debug(
            "Quoted %s for %s..%s: %s nights, total %s",
            accommodation_id,
            start,
            end,
            result.nights,
            result.total,
        )

        response = build_quote_response(configuration, start, end, result)
        if self.quote_cache is not None:
            await self.quote_cache.set(
                accommodation_id,
                revision,
                start,
                end,
                response.model_dump(mode="json", by_alias=True),
            )
        return response
