"""Pydantic schemas for the pricing service."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, RootModel, field_validator, model_validator

from .engine import Season


def _normalize_currency(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip().upper()
    if len(cleaned) != 3 or not cleaned.isalpha():
        msg = "currency must be a 3-letter code"
        raise ValueError(msg)
    return cleaned


Multiplier = Annotated[Decimal, Field(gt=Decimal("0"), max_digits=8, decimal_places=4)]
Percentage = Annotated[Decimal, Field(ge=Decimal("0"), le=Decimal("100"), max_digits=5, decimal_places=2)]
Month = Annotated[int, Field(ge=1, le=12)]


# =============================================================================
# ACCOMMODATIONS
# =============================================================================


class AccommodationCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1, max_length=200)
    price_per_night: Decimal = Field(gt=Decimal("0"), max_digits=12, decimal_places=2, alias="pricePerNight")
    currency: str | None = Field(default=None, min_length=3, max_length=3)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("id", "title")
    @classmethod
    def _strip(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            msg = "value must be non-empty"
            raise ValueError(msg)
        return cleaned

    @field_validator("currency")
    @classmethod
    def _currency(cls, value: str | None) -> str | None:
        return _normalize_currency(value)


class AccommodationResponse(BaseModel):
    id: str
    title: str
    price_per_night: Decimal = Field(alias="pricePerNight")
    currency: str
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# =============================================================================
# RULES
# =============================================================================


class _RuleBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    priority: int = Field(default=0, ge=-10_000, le=10_000)
    enabled: bool = True

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("name")
    @classmethod
    def _clean_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            msg = "name must be non-empty"
            raise ValueError(msg)
        return cleaned


class SeasonRuleCreate(_RuleBase):
    type: Literal["season"]
    season: Season
    start_month: Month = Field(alias="startMonth")
    end_month: Month = Field(alias="endMonth")
    price_multiplier: Multiplier = Field(alias="priceMultiplier")


class WeekendRuleCreate(_RuleBase):
    type: Literal["weekend"]
    weekend_multiplier: Multiplier = Field(alias="weekendMultiplier")
    week_multiplier: Multiplier = Field(default=Decimal("1.0"), alias="weekMultiplier")


class LongStayRuleCreate(_RuleBase):
    type: Literal["long_stay"]
    minimum_nights: int = Field(ge=1, le=3650, alias="minimumNights")
    discount_percentage: Percentage = Field(alias="discountPercentage")
    maximum_discount_percentage: Percentage | None = Field(default=None, alias="maximumDiscountPercentage")


class CustomPeriodRuleCreate(_RuleBase):
    type: Literal["custom"]
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    price_multiplier: Multiplier = Field(alias="priceMultiplier")

    @model_validator(mode="after")
    def _check_period(self) -> CustomPeriodRuleCreate:
        if self.end_date < self.start_date:
            msg = "endDate must not be before startDate"
            raise ValueError(msg)
        return self


PricingRuleCreate = Annotated[
    Union[SeasonRuleCreate, WeekendRuleCreate, LongStayRuleCreate, CustomPeriodRuleCreate],
    Field(discriminator="type"),
]


class PricingRuleCreateRequest(RootModel[PricingRuleCreate]):
    pass


class PricingRuleUpdate(BaseModel):
    """Partial rule update; fields must belong to the rule's type."""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    priority: int | None = Field(default=None, ge=-10_000, le=10_000)
    enabled: bool | None = None
    season: Season | None = None
    start_month: Month | None = Field(default=None, alias="startMonth")
    end_month: Month | None = Field(default=None, alias="endMonth")
    price_multiplier: Multiplier | None = Field(default=None, alias="priceMultiplier")
    weekend_multiplier: Multiplier | None = Field(default=None, alias="weekendMultiplier")
    week_multiplier: Multiplier | None = Field(default=None, alias="weekMultiplier")
    minimum_nights: int | None = Field(default=None, ge=1, le=3650, alias="minimumNights")
    discount_percentage: Percentage | None = Field(default=None, alias="discountPercentage")
    maximum_discount_percentage: Percentage | None = Field(default=None, alias="maximumDiscountPercentage")
    start_date: date | None = Field(default=None, alias="startDate")
    end_date: date | None = Field(default=None, alias="endDate")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class _RuleResponseFields(BaseModel):
    id: PositiveInt
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class SeasonRuleResponse(SeasonRuleCreate, _RuleResponseFields):
    pass


class WeekendRuleResponse(WeekendRuleCreate, _RuleResponseFields):
    pass


class LongStayRuleResponse(LongStayRuleCreate, _RuleResponseFields):
    pass


class CustomPeriodRuleResponse(CustomPeriodRuleCreate, _RuleResponseFields):
    pass


class PricingRuleResponse(
    RootModel[
        Annotated[
            Union[SeasonRuleResponse, WeekendRuleResponse, LongStayRuleResponse, CustomPeriodRuleResponse],
            Field(discriminator="type"),
        ]
    ]
):
    pass


class PricingRuleListResponse(BaseModel):
    items: list[PricingRuleResponse]
    total: int


# =============================================================================
# CONFIGURATION
# =============================================================================


class PricingConfigUpsert(BaseModel):
    base_price: Decimal = Field(gt=Decimal("0"), max_digits=12, decimal_places=2, alias="basePrice")
    currency: str | None = Field(default=None, min_length=3, max_length=3)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("currency")
    @classmethod
    def _currency(cls, value: str | None) -> str | None:
        return _normalize_currency(value)


class PricingConfigResponse(BaseModel):
    accommodation_id: str = Field(alias="accommodationId")
    base_price: Decimal = Field(alias="basePrice")
    currency: str
    revision: int
    rules: list[PricingRuleResponse]
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# QUOTES
# =============================================================================


class QuoteRequest(BaseModel):
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")

    model_config = ConfigDict(populate_by_name=True)


class NightlyPriceResponse(BaseModel):
    date: date
    base_price: Decimal = Field(alias="basePrice")
    adjusted_price: Decimal = Field(alias="adjustedPrice")
    applied_rules: list[str] = Field(alias="appliedRules")
    is_weekend: bool = Field(alias="isWeekend")

    model_config = ConfigDict(populate_by_name=True)


class QuoteResponse(BaseModel):
    accommodation_id: str = Field(alias="accommodationId")
    currency: str
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    base_price: Decimal = Field(alias="basePrice")
    nights: int
    weekend_nights: int = Field(alias="weekendNights")
    week_nights: int = Field(alias="weekNights")
    nightly_prices: list[NightlyPriceResponse] = Field(alias="nightlyPrices")
    subtotal: Decimal
    long_stay_discount: Decimal = Field(alias="longStayDiscount")
    total: Decimal
    average_nightly_price: Decimal = Field(alias="averageNightlyPrice")
    applied_rules: list[str] = Field(alias="appliedRules")

    model_config = ConfigDict(populate_by_name=True)
