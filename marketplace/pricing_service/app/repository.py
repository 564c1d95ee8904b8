"""Data access helpers for the pricing service."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Accommodation, PricingConfiguration, PricingRule


class PricingRepository:
    """Persistence helpers for accommodations, pricing configurations and rules."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_accommodation(
        self,
        *,
        accommodation_id: str,
        title: str,
        price_per_night: Decimal,
        currency: str,
    ) -> Accommodation:
        accommodation = Accommodation(
            id=accommodation_id,
            title=title,
            price_per_night=price_per_night,
            currency=currency,
        )
        self.session.add(accommodation)
        await self.session.flush()
        await self.session.refresh(accommodation, attribute_names=["created_at"])
        return accommodation

    async def get_accommodation(self, accommodation_id: str) -> Accommodation | None:
        return await self.session.get(Accommodation, accommodation_id)

    async def get_configuration(self, accommodation_id: str) -> PricingConfiguration | None:
        result = await self.session.execute(
            select(PricingConfiguration).where(PricingConfiguration.accommodation_id == accommodation_id)
        )
        return result.scalar_one_or_none()

    async def create_configuration(
        self,
        *,
        accommodation_id: str,
        base_price: Decimal,
        currency: str,
    ) -> PricingConfiguration:
        configuration = PricingConfiguration(
            accommodation_id=accommodation_id,
            base_price=base_price,
            currency=currency,
            revision=1,
            rules=[],
        )
        self.session.add(configuration)
        await self.session.flush()
        await self.session.refresh(configuration, attribute_names=["created_at", "updated_at"])
        return configuration

    async def update_configuration(
        self,
        configuration: PricingConfiguration,
        *,
        base_price: Decimal,
        currency: str | None,
    ) -> PricingConfiguration:
        configuration.base_price = base_price
        if currency is not None:
            configuration.currency = currency
        return await self.touch_configuration(configuration)

    async def touch_configuration(self, configuration: PricingConfiguration) -> PricingConfiguration:
        """Bump the revision so cached quotes of the previous revision go unused."""

        configuration.revision += 1
        await self.session.flush()
        await self.session.refresh(configuration, attribute_names=["updated_at"])
        return configuration

    async def get_rule(self, configuration: PricingConfiguration, rule_id: int) -> PricingRule | None:
        result = await self.session.execute(
            select(PricingRule).where(
                PricingRule.id == rule_id,
                PricingRule.configuration_id == configuration.id,
            )
        )
        return result.scalar_one_or_none()

    async def add_rule(self, configuration: PricingConfiguration, fields: dict[str, Any]) -> PricingRule:
        rule = PricingRule(**fields)
        configuration.rules.append(rule)
        await self.session.flush()
        await self.session.refresh(rule, attribute_names=["created_at", "updated_at"])
        return rule

    async def update_rule(self, rule: PricingRule, fields: dict[str, Any]) -> PricingRule:
        for key, value in fields.items():
            setattr(rule, key, value)
        await self.session.flush()
        await self.session.refresh(rule, attribute_names=["updated_at"])
        return rule

    async def delete_rule(self, configuration: PricingConfiguration, rule: PricingRule) -> None:
        configuration.rules.remove(rule)
        await self.session.flush()
