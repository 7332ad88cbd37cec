# src/garagehub/api/routes/garages.py
"""
Операции гаража. Все маршруты доступны только роли garage.

Endpoints:
- PUT /api/garages/profile - обновить профиль
- POST /api/garages/services - добавить услугу
- GET /api/garages/services - каталог услуг
- PUT /api/garages/hours - заменить расписание
- PUT /api/garages/specialties - заменить специализации
- GET /api/garages/reviews - отзывы и рейтинг
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse

from garagehub.api.dependencies import ServiceContainer, garage_only, get_container
from garagehub.api.responses import envelope
from garagehub.common.constants import AccountRole
from garagehub.core.auth.gates import CallContext

router = APIRouter(
    prefix="/garages",
    tags=["Garages"],
    dependencies=[Depends(garage_only)],
)

Garage = Annotated[CallContext, Depends(garage_only)]
Container = Annotated[ServiceContainer, Depends(get_container)]


@router.put("/profile")
async def update_profile(
    context: Garage,
    container: Container,
    payload: Annotated[Any, Body()] = None,
) -> JSONResponse:
    """longitude и latitude, переданные вместе, становятся точкой location."""
    account = await container.profiles.update_profile(
        context.account_id, AccountRole.GARAGE, payload
    )
    return envelope(account, message="Профиль обновлён")


@router.post("/services", status_code=status.HTTP_201_CREATED)
async def add_service(
    context: Garage,
    container: Container,
    payload: Annotated[Any, Body()] = None,
) -> JSONResponse:
    service = await container.profiles.add_service(context.account_id, payload)
    return envelope(
        service,
        message="Услуга добавлена",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/services")
async def list_services(context: Garage, container: Container) -> JSONResponse:
    services = await container.profiles.list_services(context.account_id)
    return envelope(services, count=len(services))


@router.put("/hours")
async def update_hours(
    context: Garage,
    container: Container,
    payload: Annotated[Any, Body()] = None,
) -> JSONResponse:
    """Полная замена расписания: не переданные дни сбрасываются к значениям по умолчанию."""
    hours = await container.profiles.update_operating_hours(context.account_id, payload)
    return envelope(hours, message="Расписание обновлено")


@router.put("/specialties")
async def update_specialties(
    context: Garage,
    container: Container,
    payload: Annotated[Any, Body()] = None,
) -> JSONResponse:
    specialties = payload.get("specialties") if isinstance(payload, dict) else None
    updated = await container.profiles.update_specialties(context.account_id, specialties)
    return envelope(updated, message="Специализации обновлены")


@router.get("/reviews")
async def list_reviews(context: Garage, container: Container) -> JSONResponse:
    result = await container.ratings.list_reviews(context.account_id)
    return envelope(result.reviews, count=result.count, ratings=result.ratings)
