import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple

from bson import ObjectId
from pymongo.database import Database

from database import utcnow

logger = logging.getLogger(__name__)


def compute_rating_aggregate(ratings: Iterable[float]) -> Tuple[float, int]:
    """Mean rating rounded half-up to one decimal, and the review count."""
    values = [Decimal(str(r)) for r in ratings]
    if not values:
        return 0.0, 0
    mean = sum(values) / len(values)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)), len(values)


def sync_product_rating(db: Database, product_id: ObjectId) -> Tuple[float, int]:
    """Recompute rating/review_count for a product from all of its reviews."""
    ratings = [r.get("rating", 0) for r in db["review"].find({"product_id": product_id}, {"rating": 1})]
    rating, count = compute_rating_aggregate(ratings)
    db["product"].update_one(
        {"_id": product_id},
        {"$set": {"rating": rating, "review_count": count, "updated_at": utcnow()}},
    )
    logger.debug("Product %s rating synced: %s over %d reviews", product_id, rating, count)
    return rating, count
