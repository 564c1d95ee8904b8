"""API routes for pricing configurations, rules and quotes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..dependencies import get_pricing_service
from ..models import PricingConfiguration, PricingRule
from ..schemas import (
    PricingConfigResponse,
    PricingConfigUpsert,
    PricingRuleCreateRequest,
    PricingRuleListResponse,
    PricingRuleResponse,
    PricingRuleUpdate,
    QuoteRequest,
    QuoteResponse,
)
from ..services import (
    AccommodationNotFoundError,
    InvalidPricingRuleError,
    PricingConfigurationNotFoundError,
    PricingRuleNotFoundError,
    PricingService,
    RULE_FIELDS,
)

router = APIRouter(prefix="/pricing", tags=["pricing"])

_CAMEL_FIELDS = {
    "start_month": "startMonth",
    "end_month": "endMonth",
    "price_multiplier": "priceMultiplier",
    "weekend_multiplier": "weekendMultiplier",
    "week_multiplier": "weekMultiplier",
    "minimum_nights": "minimumNights",
    "discount_percentage": "discountPercentage",
    "maximum_discount_percentage": "maximumDiscountPercentage",
    "start_date": "startDate",
    "end_date": "endDate",
}


def _serialize_rule(rule: PricingRule) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": rule.id,
        "type": rule.type,
        "name": rule.name,
        "priority": rule.priority,
        "enabled": rule.enabled,
        "createdAt": rule.created_at,
        "updatedAt": rule.updated_at,
    }
    for name in RULE_FIELDS[rule.type]:
        payload[_CAMEL_FIELDS.get(name, name)] = getattr(rule, name)
    return payload


def _serialize_config(configuration: PricingConfiguration) -> dict[str, object]:
    return {
        "accommodationId": configuration.accommodation_id,
        "basePrice": configuration.base_price,
        "currency": configuration.currency,
        "revision": configuration.revision,
        "rules": [_serialize_rule(rule) for rule in configuration.rules],
        "createdAt": configuration.created_at,
        "updatedAt": configuration.updated_at,
    }


def _not_found(exc: Exception) -> HTTPException:
    if isinstance(exc, AccommodationNotFoundError):
        detail = "Accommodation not found"
    elif isinstance(exc, PricingRuleNotFoundError):
        detail = "Pricing rule not found"
    else:
        detail = "Pricing configuration not found"
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


@router.get("/{accommodation_id}", response_model=PricingConfigResponse)
async def get_pricing_config(
    accommodation_id: str,
    service: PricingService = Depends(get_pricing_service),
) -> PricingConfigResponse:
    try:
        configuration = await service.get_configuration(accommodation_id)
    except PricingConfigurationNotFoundError as exc:
        raise _not_found(exc) from exc
    return PricingConfigResponse.model_validate(_serialize_config(configuration))


@router.put("/{accommodation_id}", response_model=PricingConfigResponse)
async def upsert_pricing_config(
    accommodation_id: str,
    payload: PricingConfigUpsert,
    response: Response,
    service: PricingService = Depends(get_pricing_service),
) -> PricingConfigResponse:
    try:
        configuration, created = await service.upsert_configuration(accommodation_id, payload)
    except AccommodationNotFoundError as exc:
        raise _not_found(exc) from exc
    if created:
        response.status_code = status.HTTP_201_CREATED
    return PricingConfigResponse.model_validate(_serialize_config(configuration))


@router.post("/{accommodation_id}/quote", response_model=QuoteResponse)
async def quote_stay(
    accommodation_id: str,
    payload: QuoteRequest,
    service: PricingService = Depends(get_pricing_service),
) -> QuoteResponse:
    try:
        return await service.quote(accommodation_id, payload.start_date, payload.end_date)
    except PricingConfigurationNotFoundError as exc:
        raise _not_found(exc) from exc


@router.get("/{accommodation_id}/rules", response_model=PricingRuleListResponse)
async def list_pricing_rules(
    accommodation_id: str,
    service: PricingService = Depends(get_pricing_service),
) -> PricingRuleListResponse:
    rules = await service.list_rules(accommodation_id)
    items = [PricingRuleResponse.model_validate(_serialize_rule(rule)) for rule in rules]
    return PricingRuleListResponse(items=items, total=len(items))


@router.post(
    "/{accommodation_id}/rules",
    response_model=PricingRuleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_pricing_rule(
    accommodation_id: str,
    payload: PricingRuleCreateRequest,
    service: PricingService = Depends(get_pricing_service),
) -> PricingRuleResponse:
    try:
        rule = await service.add_rule(accommodation_id, payload.root)
    except AccommodationNotFoundError as exc:
        raise _not_found(exc) from exc
    return PricingRuleResponse.model_validate(_serialize_rule(rule))


@router.put("/{accommodation_id}/rules/{rule_id}", response_model=PricingRuleResponse)
async def update_pricing_rule(
    accommodation_id: str,
    rule_id: int,
    payload: PricingRuleUpdate,
    service: PricingService = Depends(get_pricing_service),
) -> PricingRuleResponse:
    try:
        rule = await service.update_rule(accommodation_id, rule_id, payload)
    except (PricingConfigurationNotFoundError, PricingRuleNotFoundError) as exc:
        raise _not_found(exc) from exc
    except InvalidPricingRuleError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return PricingRuleResponse.model_validate(_serialize_rule(rule))


@router.delete("/{accommodation_id}/rules/{rule_id}")
async def delete_pricing_rule(
    accommodation_id: str,
    rule_id: int,
    service: PricingService = Depends(get_pricing_service),
) -> Response:
    try:
        await service.delete_rule(accommodation_id, rule_id)
    except (PricingConfigurationNotFoundError, PricingRuleNotFoundError) as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
