# src/garagehub/core/ratings/service.py
"""
Отзывы и сводный рейтинг гаража.

Проверка на повторный отзыв, добавление отзыва и пересчёт среднего
выполняются внутри review_scope хранилища, поэтому параллельные отзывы
об одном гараже не теряют обновлений.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from garagehub.common.constants import MAX_RATING, MIN_RATING, TypeMsg
from garagehub.common.exceptions import DuplicateReviewError, NotFoundError, ValidationError
from garagehub.common.logger import log_info
from garagehub.core.accounts.models import GarageAccount, Ratings, Review, ReviewList, ReviewView

if TYPE_CHECKING:
    from garagehub.infra.repositories.base import AccountRepository


def next_ratings(current: Ratings, rating: int) -> Ratings:
    """
    Новый сводный рейтинг после ещё одной оценки.

    (average * count + rating) / (count + 1)
    """
    count = current.count + 1
    average = (current.average * current.count + rating) / count
    return Ratings(average=average, count=count)


def check_rating(rating: Any) -> int:
    """
    Raises:
        ValidationError: оценка не передана, не целая или вне [1, 5]
    """
    if rating is None:
        raise ValidationError("Оценка обязательна")
    if isinstance(rating, bool) or not isinstance(rating, (int, float)):
        raise ValidationError("Оценка должна быть целым числом")
    if isinstance(rating, float):
        if not rating.is_integer():
            raise ValidationError("Оценка должна быть целым числом")
        rating = int(rating)
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Оценка должна быть от {MIN_RATING} до {MAX_RATING}")
    return rating


class RatingAggregator:
    """Сервис отзывов."""

    def __init__(self, repository: AccountRepository) -> None:
        self._repository = repository

    async def submit_review(
        self,
        customer_id: str,
        garage_id: str,
        rating: Any,
        comment: Optional[str] = None,
    ) -> Review:
        """
        Сохраняет отзыв клиента и пересчитывает рейтинг гаража.

        Raises:
            ValidationError: некорректная оценка
            NotFoundError: гараж не найден
            DuplicateReviewError: клиент уже оставлял отзыв этому гаражу
        """
        value = check_rating(rating)

        async with self._repository.review_scope(garage_id) as scope:
            garage = scope.garage
            if garage is None:
                raise NotFoundError("Гараж не найден")

            if any(str(r.customer_id) == str(customer_id) for r in garage.reviews):
                raise DuplicateReviewError()

            review = Review(customer_id=str(customer_id), rating=value, comment=comment)
            ratings = next_ratings(garage.ratings, value)
            await scope.commit(review, ratings)

        await log_info(
            f"Отзыв {review.id} для гаража {garage.id}: оценка {value}, "
            f"средняя {ratings.average:.2f} ({ratings.count})",
            type_msg=TypeMsg.INFO,
        )
        return review

    async def list_reviews(self, garage_id: str) -> ReviewList:
        """
        Отзывы гаража с именами авторов и сводным рейтингом.

        Raises:
            NotFoundError: гараж не найден
        """
        garage = await self._repository.get_by_id(garage_id)
        if not isinstance(garage, GarageAccount):
            raise NotFoundError("Гараж не найден")

        names = await self._repository.get_display_names(
            list({r.customer_id for r in garage.reviews})
        )
        reviews = [
            ReviewView(
                id=r.id,
                customer_id=r.customer_id,
                customer_name=names.get(r.customer_id),
                rating=r.rating,
                comment=r.comment,
                created_at=r.created_at,
            )
            for r in garage.reviews
        ]
        return ReviewList(count=len(reviews), ratings=garage.ratings, reviews=reviews)
