# src/garagehub/infra/repositories/postgres.py
"""
Хранилище аккаунтов в PostgreSQL (asyncpg).

Уникальность email и бизнес-лицензии обеспечивают ограничения UNIQUE,
добавление в избранное и смена расписания выполняются одним UPDATE,
отзывы гаража сериализуются блокировкой строки (SELECT ... FOR UPDATE).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional

import asyncpg
from asyncpg import Connection, Record
from pydantic import BaseModel

from garagehub.common.constants import AccountRole, TypeMsg
from garagehub.common.exceptions import (
    DuplicateEmailError,
    DuplicateError,
    DuplicateReviewError,
)
from garagehub.common.logger import log_info
from garagehub.core.accounts.models import (
    Account,
    CustomerAccount,
    GarageAccount,
    GarageService,
    GeoPoint,
    OperatingHours,
    Ratings,
    Review,
    Vehicle,
    parse_id,
)
from garagehub.core.discovery.geo import EARTH_RADIUS_M
from garagehub.infra.database import DatabaseManager
from garagehub.infra.repositories.base import AccountRepository, GarageReviewScope


# =============================================================================
# SQL
# =============================================================================

ACCOUNT_COLUMNS = """
    a.id, a.email, a.password_hash, a.role, a.first_name, a.last_name, a.phone,
    a.created_at, a.updated_at
"""

CUSTOMER_COLUMNS = """
    c.address AS customer_address, c.vehicles, c.preferred_garages, c.service_history
"""

GARAGE_COLUMNS = """
    g.garage_name, g.business_license, g.address AS garage_address, g.longitude, g.latitude,
    g.operating_hours, g.services, g.specialties, g.rating_average, g.rating_count,
    g.is_verified, g.is_active
"""

SELECT_ACCOUNT = f"""
    SELECT {ACCOUNT_COLUMNS}, {CUSTOMER_COLUMNS}, {GARAGE_COLUMNS}
    FROM accounts a
    LEFT JOIN customer_profiles c ON c.account_id = a.id
    LEFT JOIN garage_profiles g ON g.account_id = a.id
"""

SELECT_REVIEWS = """
    SELECT id, customer_id, rating, comment, created_at
    FROM garage_reviews
    WHERE garage_id = $1
    ORDER BY seq
"""

# Формула гаверсинусов, та же, что в garagehub.core.discovery.geo
SELECT_NEARBY = f"""
    SELECT * FROM (
        SELECT {ACCOUNT_COLUMNS}, {GARAGE_COLUMNS},
               2 * $3::float8 * asin(least(1.0, sqrt(
                   power(sin(radians(g.latitude - $2::float8) / 2), 2)
                   + cos(radians($2::float8)) * cos(radians(g.latitude))
                     * power(sin(radians(g.longitude - $1::float8) / 2), 2)
               ))) AS distance_m
        FROM garage_profiles g
        JOIN accounts a ON a.id = g.account_id
        WHERE g.is_verified AND g.is_active AND g.latitude IS NOT NULL
    ) AS nearby
    WHERE distance_m <= $4::float8
    ORDER BY distance_m
"""

ACCOUNT_FIELDS = ("first_name", "last_name", "phone")
JSON_FIELDS = ("address",)


def _jsonable(value: Any) -> Any:
    """Модель pydantic -> dict для JSONB-колонки."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def _to_account(row: Record, reviews: Iterable[Record] = ()) -> Account:
    """Собирает вариант аккаунта из строки SELECT_ACCOUNT / SELECT_NEARBY."""
    base = {
        "id": str(row["id"]),
        "email": row["email"],
        "password_hash": row["password_hash"],
        "first_name": row["first_name"],
        "last_name": row["last_name"],
        "phone": row["phone"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }

    if row["role"] == AccountRole.CUSTOMER.value:
        return CustomerAccount(
            **base,
            address=row["customer_address"],
            vehicles=row["vehicles"] or [],
            preferred_garages=list(row["preferred_garages"] or []),
            service_history=row["service_history"] or [],
        )

    location = None
    if row["longitude"] is not None and row["latitude"] is not None:
        location = GeoPoint.from_lon_lat(row["longitude"], row["latitude"])

    return GarageAccount(
        **base,
        garage_name=row["garage_name"],
        business_license=row["business_license"],
        address=row["garage_address"],
        location=location,
        operating_hours=row["operating_hours"],
        services=row["services"] or [],
        specialties=list(row["specialties"] or []),
        ratings=Ratings(average=row["rating_average"], count=row["rating_count"]),
        reviews=[
            Review(
                id=str(r["id"]),
                customer_id=str(r["customer_id"]),
                rating=r["rating"],
                comment=r["comment"],
                created_at=r["created_at"],
            )
            for r in reviews
        ],
        is_verified=row["is_verified"],
        is_active=row["is_active"],
    )


class _PostgresReviewScope(GarageReviewScope):
    def __init__(self, conn: Connection | None, garage: Optional[GarageAccount]) -> None:
        self._conn = conn
        self.garage = garage

    async def commit(self, review: Review, ratings: Ratings) -> None:
        try:
            await self._conn.execute(
                """
                INSERT INTO garage_reviews (id, garage_id, customer_id, rating, comment, created_at)
                VALUES ($1, $2, $3, $4, $5, $6)
                """,
                parse_id(review.id),
                parse_id(self.garage.id),
                parse_id(review.customer_id),
                review.rating,
                review.comment,
                review.created_at,
            )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateReviewError() from e

        await self._conn.execute(
            """
            UPDATE garage_profiles SET rating_average = $2, rating_count = $3
            WHERE account_id = $1
            """,
            parse_id(self.garage.id),
            ratings.average,
            ratings.count,
        )
        await self._conn.execute(
            "UPDATE accounts SET updated_at = now() WHERE id = $1",
            parse_id(self.garage.id),
        )


class PostgresAccountRepository(AccountRepository):
    """Реализация AccountRepository поверх DatabaseManager."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def _fetch_account(self, conn: Connection, account_id: Any) -> Optional[Account]:
        row = await conn.fetchrow(f"{SELECT_ACCOUNT} WHERE a.id = $1", account_id)
        if row is None:
            return None
        reviews: list[Record] = []
        if row["role"] == AccountRole.GARAGE.value:
            reviews = await conn.fetch(SELECT_REVIEWS, account_id)
        return _to_account(row, reviews)

    async def get_by_id(self, account_id: str) -> Optional[Account]:
        uid = parse_id(account_id)
        if uid is None:
            return None
        async with self._db.acquire() as conn:
            return await self._fetch_account(conn, uid)

    async def get_by_email(self, email: str) -> Optional[Account]:
        async with self._db.acquire() as conn:
            account_id = await conn.fetchval(
                "SELECT id FROM accounts WHERE email = $1",
                email.strip().lower(),
            )
            if account_id is None:
                return None
            return await self._fetch_account(conn, account_id)

    async def insert(self, account: Account) -> Account:
        uid = parse_id(account.id)
        try:
            async with self._db.transaction() as conn:
                await conn.execute(
                    """
                    INSERT INTO accounts (id, email, password_hash, role, first_name, last_name,
                                          phone, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                    """,
                    uid,
                    account.email.lower(),
                    account.password_hash,
                    account.role.value,
                    account.first_name,
                    account.last_name,
                    account.phone,
                    account.created_at,
                    account.updated_at,
                )

                if isinstance(account, CustomerAccount):
                    await conn.execute(
                        """
                        INSERT INTO customer_profiles (account_id, address, vehicles,
                                                       preferred_garages, service_history)
                        VALUES ($1, $2, $3, $4, $5)
                        """,
                        uid,
                        _jsonable(account.address),
                        _jsonable(account.vehicles),
                        account.preferred_garages,
                        _jsonable(account.service_history),
                    )
                elif isinstance(account, GarageAccount):
                    location = account.location
                    await conn.execute(
                        """
                        INSERT INTO garage_profiles (account_id, garage_name, business_license,
                                                     address, longitude, latitude, operating_hours,
                                                     services, specialties, rating_average,
                                                     rating_count, is_verified, is_active)
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
                        """,
                        uid,
                        account.garage_name,
                        account.business_license,
                        _jsonable(account.address),
                        location.longitude if location else None,
                        location.latitude if location else None,
                        _jsonable(account.operating_hours),
                        _jsonable(account.services),
                        account.specialties,
                        account.ratings.average,
                        account.ratings.count,
                        account.is_verified,
                        account.is_active,
                    )

                stored = await self._fetch_account(conn, uid)
        except asyncpg.UniqueViolationError as e:
            if e.constraint_name == "accounts_email_key":
                raise DuplicateEmailError() from e
            if e.constraint_name == "garage_profiles_business_license_key":
                raise DuplicateError("Гараж с такой бизнес-лицензией уже зарегистрирован") from e
            raise DuplicateError() from e

        await log_info(
            f"Аккаунт сохранён: {stored.id} ({stored.role})",
            type_msg=TypeMsg.DEBUG,
        )
        return stored

    async def update_fields(
        self,
        account_id: str,
        role: AccountRole,
        fields: dict[str, Any],
    ) -> Optional[Account]:
        uid = parse_id(account_id)
        if uid is None:
            return None

        account_values = {k: v for k, v in fields.items() if k in ACCOUNT_FIELDS}
        profile_values: dict[str, Any] = {}
        for key, value in fields.items():
            if key in JSON_FIELDS:
                profile_values[key] = _jsonable(value)
            elif key == "garage_name" and role == AccountRole.GARAGE:
                profile_values[key] = value
            elif key == "location" and role == AccountRole.GARAGE:
                profile_values["longitude"] = value.longitude if value else None
                profile_values["latitude"] = value.latitude if value else None

        table = "customer_profiles" if role == AccountRole.CUSTOMER else "garage_profiles"

        async with self._db.transaction() as conn:
            assignments = ["updated_at = now()"]
            args: list[Any] = [uid, role.value]
            for column, value in account_values.items():
                args.append(value)
                assignments.append(f"{column} = ${len(args)}")
            found = await conn.fetchval(
                f"UPDATE accounts SET {', '.join(assignments)} "
                f"WHERE id = $1 AND role = $2 RETURNING id",
                *args,
            )
            if found is None:
                return None

            if profile_values:
                args = [uid]
                assignments = []
                for column, value in profile_values.items():
                    args.append(value)
                    assignments.append(f"{column} = ${len(args)}")
                await conn.execute(
                    f"UPDATE {table} SET {', '.join(assignments)} WHERE account_id = $1",
                    *args,
                )

            return await self._fetch_account(conn, uid)

    async def _update_profile(self, table: str, account_id: str, assignment: str, value: Any) -> bool:
        """Один UPDATE профиля с отметкой updated_at. False, если профиль не найден."""
        uid = parse_id(account_id)
        if uid is None:
            return False
        async with self._db.transaction() as conn:
            status = await conn.execute(
                f"UPDATE {table} SET {assignment} WHERE account_id = $1",
                uid,
                value,
            )
            if status.endswith(" 0"):
                return False
            await conn.execute("UPDATE accounts SET updated_at = now() WHERE id = $1", uid)
        return True

    async def append_vehicle(self, customer_id: str, vehicle: Vehicle) -> bool:
        return await self._update_profile(
            "customer_profiles",
            customer_id,
            "vehicles = vehicles || $2::jsonb",
            [_jsonable(vehicle)],
        )

    async def append_service(self, garage_id: str, service: GarageService) -> bool:
        return await self._update_profile(
            "garage_profiles",
            garage_id,
            "services = services || $2::jsonb",
            [_jsonable(service)],
        )

    async def replace_operating_hours(self, garage_id: str, hours: OperatingHours) -> bool:
        return await self._update_profile(
            "garage_profiles",
            garage_id,
            "operating_hours = $2::jsonb",
            _jsonable(hours),
        )

    async def replace_specialties(self, garage_id: str, specialties: list[str]) -> bool:
        return await self._update_profile(
            "garage_profiles",
            garage_id,
            "specialties = $2::text[]",
            list(specialties),
        )

    async def add_preferred_garage(self, customer_id: str, garage_id: str) -> Optional[list[str]]:
        uid = parse_id(customer_id)
        if uid is None:
            return None
        async with self._db.transaction() as conn:
            preferred = await conn.fetchval(
                """
                UPDATE customer_profiles
                SET preferred_garages = array_append(preferred_garages, $2::text)
                WHERE account_id = $1 AND NOT ($2::text = ANY(preferred_garages))
                RETURNING preferred_garages
                """,
                uid,
                str(garage_id),
            )
            if preferred is None:
                exists = await conn.fetchval(
                    "SELECT 1 FROM customer_profiles WHERE account_id = $1",
                    uid,
                )
                if exists:
                    raise DuplicateError("Гараж уже в списке избранных")
                return None
            await conn.execute("UPDATE accounts SET updated_at = now() WHERE id = $1", uid)
            return list(preferred)

    async def find_nearby_garages(
        self,
        longitude: float,
        latitude: float,
        max_distance_m: float,
    ) -> list[tuple[GarageAccount, float]]:
        rows = await self._db.fetch(
            SELECT_NEARBY,
            float(longitude),
            float(latitude),
            EARTH_RADIUS_M,
            float(max_distance_m),
        )
        return [(_to_account(row), float(row["distance_m"])) for row in rows]

    @asynccontextmanager
    async def review_scope(self, garage_id: str) -> AsyncIterator[GarageReviewScope]:
        uid = parse_id(garage_id)
        if uid is None:
            yield _PostgresReviewScope(None, None)
            return

        async with self._db.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {ACCOUNT_COLUMNS}, {GARAGE_COLUMNS}
                FROM garage_profiles g
                JOIN accounts a ON a.id = g.account_id
                WHERE g.account_id = $1
                FOR UPDATE OF g
                """,
                uid,
            )
            if row is None:
                yield _PostgresReviewScope(conn, None)
                return
            reviews = await conn.fetch(SELECT_REVIEWS, uid)
            yield _PostgresReviewScope(conn, _to_account(row, reviews))

    async def get_display_names(self, account_ids: list[str]) -> dict[str, str]:
        uids = [uid for uid in (parse_id(i) for i in account_ids) if uid is not None]
        if not uids:
            return {}
        rows = await self._db.fetch(
            "SELECT id, first_name, last_name FROM accounts WHERE id = ANY($1::uuid[])",
            uids,
        )
        return {
            str(row["id"]): " ".join(p for p in (row["first_name"], row["last_name"]) if p)
            for row in rows
        }

    async def health_check(self) -> bool:
        return await self._db.health_check()
