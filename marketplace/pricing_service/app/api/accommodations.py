"""API routes for accommodation reference records."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError

from ..dependencies import get_pricing_service
from ..models import Accommodation
from ..schemas import AccommodationCreate, AccommodationResponse
from ..services import AccommodationNotFoundError, PricingService

router = APIRouter(prefix="/accommodations", tags=["accommodations"])


def _serialize(accommodation: Accommodation) -> dict[str, object]:
    return {
        "id": accommodation.id,
        "title": accommodation.title,
        "pricePerNight": accommodation.price_per_night,
        "currency": accommodation.currency,
        "createdAt": accommodation.created_at,
    }


@router.post("", response_model=AccommodationResponse, status_code=status.HTTP_201_CREATED)
async def create_accommodation(
    payload: AccommodationCreate,
    service: PricingService = Depends(get_pricing_service),
) -> AccommodationResponse:
    try:
        accommodation = await service.create_accommodation(payload)
    except IntegrityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Accommodation already exists") from exc
    return AccommodationResponse.model_validate(_serialize(accommodation))


@router.get("/{accommodation_id}", response_model=AccommodationResponse)
async def get_accommodation(
    accommodation_id: str,
    service: PricingService = Depends(get_pricing_service),
) -> AccommodationResponse:
    try:
        accommodation = await service.get_accommodation(accommodation_id)
    except AccommodationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Accommodation not found") from exc
    return AccommodationResponse.model_validate(_serialize(accommodation))
