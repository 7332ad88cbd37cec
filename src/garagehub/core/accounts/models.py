# src/garagehub/core/accounts/models.py
"""
Модели аккаунтов.

Общая основа Account и два варианта с тегом роли: CustomerAccount и GarageAccount.
Роль задаётся при создании варианта (Literal-поле) и не входит ни в одну
модель обновления профиля.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from garagehub.common.constants import AccountRole, ServiceHistoryStatus, MAX_RATING, MIN_RATING
from garagehub.common.exceptions import ValidationError


def utcnow() -> datetime:
    """Текущее время в UTC."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Новый идентификатор сущности."""
    return str(uuid4())


def parse_id(value: Any) -> UUID | None:
    """Разбирает идентификатор; для некорректного значения возвращает None."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


class CamelModel(BaseModel):
    """База для всех моделей: snake_case в Python, camelCase на проводе."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def validate_payload(model: type[CamelModel], data: Any) -> Any:
    """
    Валидирует входные данные моделью и переводит ошибки pydantic в доменные.

    Raises:
        ValidationError: если данные не соответствуют модели
    """
    if not isinstance(data, dict):
        raise ValidationError("Ожидался JSON-объект")
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(problems) from e


# =============================================================================
# ВЛОЖЕННЫЕ ОБЪЕКТЫ
# =============================================================================

class Address(CamelModel):
    """Адрес клиента, все поля необязательны."""
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = "UAE"


class GarageAddress(CamelModel):
    """Адрес гаража, все поля обязательны."""
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    country: str = Field("USA", min_length=1)


class GeoPoint(CamelModel):
    """Точка в формате GeoJSON: coordinates = [долгота, широта]."""
    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]

    @field_validator("coordinates")
    @classmethod
    def check_ranges(cls, v: tuple[float, float]) -> tuple[float, float]:
        longitude, latitude = v
        if not -180.0 <= longitude <= 180.0:
            raise ValueError("долгота должна быть в диапазоне [-180, 180]")
        if not -90.0 <= latitude <= 90.0:
            raise ValueError("широта должна быть в диапазоне [-90, 90]")
        return v

    @classmethod
    def from_lon_lat(cls, longitude: float, latitude: float) -> "GeoPoint":
        return cls(coordinates=(float(longitude), float(latitude)))

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


class Vehicle(CamelModel):
    """Автомобиль клиента."""
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    license_plate: Optional[str] = None
    vin: Optional[str] = None


class ServiceHistoryEntry(CamelModel):
    """Запись об обслуживании клиента в гараже."""
    garage_id: Optional[str] = None
    service_date: Optional[datetime] = None
    service_type: Optional[str] = None
    description: Optional[str] = None
    cost: Optional[float] = None
    status: ServiceHistoryStatus = ServiceHistoryStatus.SCHEDULED


class GarageService(CamelModel):
    """Услуга из каталога гаража. Название допускается пустым."""
    name: Optional[str] = None
    description: Optional[str] = None
    estimated_time: Optional[str] = None
    base_price: Optional[float] = None


class DayHours(CamelModel):
    """Часы работы на один день."""
    open: Optional[str] = None
    close: Optional[str] = None
    is_open: bool = True


def _weekday() -> DayHours:
    return DayHours(is_open=True)


def _weekend() -> DayHours:
    return DayHours(is_open=False)


class OperatingHours(CamelModel):
    """Недельное расписание. Каждый день получает своё значение по умолчанию."""
    monday: DayHours = Field(default_factory=_weekday)
    tuesday: DayHours = Field(default_factory=_weekday)
    wednesday: DayHours = Field(default_factory=_weekday)
    thursday: DayHours = Field(default_factory=_weekday)
    friday: DayHours = Field(default_factory=_weekday)
    saturday: DayHours = Field(default_factory=_weekend)
    sunday: DayHours = Field(default_factory=_weekend)


class Ratings(CamelModel):
    """Сводный рейтинг гаража."""
    average: float = Field(0.0, ge=0.0)
    count: int = Field(0, ge=0)


class Review(CamelModel):
    """Отзыв клиента о гараже."""
    id: str = Field(default_factory=new_id)
    customer_id: str
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)
    comment: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# АККАУНТЫ
# =============================================================================

class Account(CamelModel):
    """Общая часть аккаунта любой роли."""
    id: str = Field(default_factory=new_id)
    email: EmailStr
    password_hash: str = Field(..., exclude=True, repr=False)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: AccountRole
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def full_name(self) -> str:
        """Имя и фамилия через пробел (может быть пустой строкой)."""
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class CustomerAccount(Account):
    """Аккаунт клиента."""
    role: Literal[AccountRole.CUSTOMER] = AccountRole.CUSTOMER
    address: Optional[Address] = None
    vehicles: list[Vehicle] = Field(default_factory=list)
    preferred_garages: list[str] = Field(default_factory=list)
    service_history: list[ServiceHistoryEntry] = Field(default_factory=list)


class GarageAccount(Account):
    """Аккаунт гаража."""
    role: Literal[AccountRole.GARAGE] = AccountRole.GARAGE
    garage_name: str = Field(..., min_length=1)
    business_license: str = Field(..., min_length=1)
    address: GarageAddress
    location: Optional[GeoPoint] = None
    operating_hours: OperatingHours = Field(default_factory=OperatingHours)
    services: list[GarageService] = Field(default_factory=list)
    specialties: list[str] = Field(default_factory=list)
    ratings: Ratings = Field(default_factory=Ratings)
    reviews: list[Review] = Field(default_factory=list)
    is_verified: bool = False
    is_active: bool = True


AnyAccount = Annotated[Union[CustomerAccount, GarageAccount], Field(discriminator="role")]


# =============================================================================
# ВХОДНЫЕ DTO
# =============================================================================

class RegistrationBase(CamelModel):
    """Общие поля регистрации."""
    email: EmailStr
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class CustomerRegistration(RegistrationBase):
    """Регистрация клиента."""
    address: Optional[Address] = None
    vehicles: list[Vehicle] = Field(default_factory=list)


class GarageRegistration(RegistrationBase):
    """Регистрация гаража. Координаты можно передать плоско или GeoJSON-точкой."""
    garage_name: str = Field(..., min_length=1)
    business_license: str = Field(..., min_length=1)
    address: GarageAddress
    location: Optional[GeoPoint] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    operating_hours: Optional[OperatingHours] = None
    services: list[GarageService] = Field(default_factory=list)
    specialties: list[str] = Field(default_factory=list)

    def resolved_location(self) -> Optional[GeoPoint]:
        """Точка гаража: явная GeoJSON-точка или пара longitude/latitude."""
        if self.location is not None:
            return self.location
        if self.longitude is not None and self.latitude is not None:
            return GeoPoint.from_lon_lat(self.longitude, self.latitude)
        return None


class CustomerProfileUpdate(CamelModel):
    """Изменяемые поля профиля клиента."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None


class GarageProfileUpdate(CamelModel):
    """Изменяемые поля профиля гаража."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    garage_name: Optional[str] = Field(None, min_length=1)
    address: Optional[GarageAddress] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None


class ReviewRequest(CamelModel):
    """Тело запроса на отзыв. rating проверяется сервисом."""
    rating: Any = None
    comment: Optional[str] = None


# =============================================================================
# ПРОЕКЦИИ
# =============================================================================

class AccountPublic(CamelModel):
    """Публичная проекция аккаунта (без учётных данных)."""
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: AccountRole


class AuthResult(CamelModel):
    """Результат регистрации или входа."""
    token: str
    user: AccountPublic


class GarageSummary(CamelModel):
    """Проекция гаража для поиска: без учётных данных и отзывов."""
    id: str
    garage_name: str
    address: GarageAddress
    location: Optional[GeoPoint] = None
    ratings: Ratings
    services: list[GarageService] = Field(default_factory=list)
    specialties: list[str] = Field(default_factory=list)
    operating_hours: OperatingHours
    distance_meters: Optional[float] = None


class ReviewView(CamelModel):
    """Отзыв с отображаемым именем автора."""
    id: str
    customer_id: str
    customer_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class ReviewList(CamelModel):
    """Отзывы гаража со сводным рейтингом."""
    count: int
    ratings: Ratings
    reviews: list[ReviewView] = Field(default_factory=list)


def to_public(account: Account) -> AccountPublic:
    """Публичная проекция любого варианта аккаунта."""
    return AccountPublic(
        id=account.id,
        email=account.email,
        first_name=account.first_name,
        last_name=account.last_name,
        role=account.role,
    )


def to_summary(garage: GarageAccount, distance_meters: float | None = None) -> GarageSummary:
    """Проекция гаража для выдачи поиска."""
    return GarageSummary(
        id=garage.id,
        garage_name=garage.garage_name,
        address=garage.address,
        location=garage.location,
        ratings=garage.ratings,
        services=garage.services,
        specialties=garage.specialties,
        operating_hours=garage.operating_hours,
        distance_meters=distance_meters,
    )
