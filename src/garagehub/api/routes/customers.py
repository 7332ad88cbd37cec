# src/garagehub/api/routes/customers.py
"""
Операции клиента. Все маршруты доступны только роли customer.

Endpoints:
- PUT /api/customers/profile - обновить профиль
- POST /api/customers/vehicles - добавить автомобиль
- GET /api/customers/vehicles - список автомобилей
- GET /api/customers/garages/nearby - гаражи рядом
- POST /api/customers/preferred-garages/{garage_id} - добавить в избранное
- POST /api/customers/reviews/{garage_id} - оставить отзыв
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse

from garagehub.api.dependencies import ServiceContainer, customer_only, get_container
from garagehub.api.responses import envelope
from garagehub.common.constants import AccountRole
from garagehub.core.accounts.models import ReviewRequest, validate_payload
from garagehub.core.auth.gates import CallContext

router = APIRouter(
    prefix="/customers",
    tags=["Customers"],
    dependencies=[Depends(customer_only)],
)

Customer = Annotated[CallContext, Depends(customer_only)]
Container = Annotated[ServiceContainer, Depends(get_container)]


@router.put("/profile")
async def update_profile(
    context: Customer,
    container: Container,
    payload: Annotated[Any, Body()] = None,
) -> JSONResponse:
    account = await container.profiles.update_profile(
        context.account_id, AccountRole.CUSTOMER, payload
    )
    return envelope(account, message="Профиль обновлён")


@router.post("/vehicles", status_code=status.HTTP_201_CREATED)
async def add_vehicle(
    context: Customer,
    container: Container,
    payload: Annotated[Any, Body()] = None,
) -> JSONResponse:
    vehicle = await container.profiles.add_vehicle(context.account_id, payload)
    return envelope(
        vehicle,
        message="Автомобиль добавлен",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/vehicles")
async def list_vehicles(context: Customer, container: Container) -> JSONResponse:
    vehicles = await container.profiles.list_vehicles(context.account_id)
    return envelope(vehicles, count=len(vehicles))


@router.get("/garages/nearby")
async def find_nearby_garages(
    context: Customer,
    container: Container,
    longitude: Optional[str] = None,
    latitude: Optional[str] = None,
    max_distance: Annotated[Optional[str], Query(alias="maxDistance")] = None,
) -> JSONResponse:
    """
    Верифицированные и активные гаражи в радиусе maxDistance метров
    (по умолчанию 10 км), от ближнего к дальнему.
    """
    garages = await container.discovery.find_nearby_garages(longitude, latitude, max_distance)
    return envelope(garages, count=len(garages))


@router.post("/preferred-garages/{garage_id}")
async def add_preferred_garage(
    garage_id: str,
    context: Customer,
    container: Container,
) -> JSONResponse:
    preferred = await container.profiles.add_preferred_garage(context.account_id, garage_id)
    return envelope(preferred, message="Гараж добавлен в избранное")


@router.post("/reviews/{garage_id}", status_code=status.HTTP_201_CREATED)
async def submit_review(
    garage_id: str,
    context: Customer,
    container: Container,
    payload: Annotated[Any, Body()] = None,
) -> JSONResponse:
    body = validate_payload(ReviewRequest, payload)
    review = await container.ratings.submit_review(
        context.account_id,
        garage_id,
        body.rating,
        body.comment,
    )
    return envelope(
        review,
        message="Отзыв сохранён",
        status_code=status.HTTP_201_CREATED,
    )
