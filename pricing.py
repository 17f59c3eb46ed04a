"""
Trusted pricing for cart and order lines.

Every line price comes from the stored product at the time of the write;
whatever price or total the client sends is ignored.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import PyMongoError

from errors import ValidationError

logger = logging.getLogger(__name__)

# trending_score = view_count + CART_ADD_WEIGHT * added_to_cart_count
CART_ADD_WEIGHT = 3


def normalize_variant(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class LineRequest:
    product_id: Any
    quantity: Any = 1
    size: Optional[str] = None
    color: Optional[str] = None


@dataclass
class PricedLine:
    product: Dict[str, Any]
    quantity: int
    size: Optional[str]
    color: Optional[str]

    @property
    def product_id(self) -> ObjectId:
        return self.product["_id"]

    @property
    def price(self) -> float:
        return float(self.product.get("price") or 0)

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def as_cart_item(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price": self.price,
            "size": self.size,
            "color": self.color,
        }

    def as_order_item(self) -> Dict[str, Any]:
        images = self.product.get("images") or []
        return {
            "product_id": self.product_id,
            "name": self.product.get("name") or "",
            "quantity": self.quantity,
            "size": self.size,
            "color": self.color,
            "price": self.price,
            "image": images[0] if images else None,
        }


@dataclass
class PricedBatch:
    lines: List[PricedLine]

    @property
    def total_amount(self) -> float:
        return round(sum(line.line_total for line in self.lines), 2)


def _check_quantity(quantity: Any) -> int:
    # bool is an int subclass; True must not count as 1
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("quantity must be a positive integer")
    return quantity


def _check_product_id(product_id: Any) -> ObjectId:
    if isinstance(product_id, ObjectId):
        return product_id
    if not isinstance(product_id, str) or not ObjectId.is_valid(product_id):
        raise ValidationError("Invalid productId")
    return ObjectId(product_id)


def resolve_lines(db: Database, requests: Iterable[LineRequest]) -> PricedBatch:
    """Resolve requested lines against the product collection.

    Raises ValidationError when the batch is empty, a quantity is not a
    positive integer, an id is malformed, or any requested product is missing.
    """
    requests = list(requests)
    if not requests:
        raise ValidationError("At least one item is required")

    parsed = []
    for req in requests:
        parsed.append((_check_product_id(req.product_id), _check_quantity(req.quantity), req))

    distinct_ids = list({oid for oid, _, _ in parsed})
    products = {p["_id"]: p for p in db["product"].find({"_id": {"$in": distinct_ids}})}
    if len(products) != len(distinct_ids):
        missing = [str(oid) for oid in distinct_ids if oid not in products]
        raise ValidationError(
            "One or more products do not exist",
            errors=[{"field": "productId", "message": f"Product {pid} not found"} for pid in missing],
        )

    lines = [
        PricedLine(
            product=products[oid],
            quantity=quantity,
            size=normalize_variant(req.size),
            color=normalize_variant(req.color),
        )
        for oid, quantity, req in parsed
    ]
    return PricedBatch(lines=lines)


def same_line(item: Dict[str, Any], product_id: ObjectId, size: Optional[str], color: Optional[str]) -> bool:
    return (
        str(item.get("product_id")) == str(product_id)
        and normalize_variant(item.get("size")) == normalize_variant(size)
        and normalize_variant(item.get("color")) == normalize_variant(color)
    )


def merge_line(items: List[Dict[str, Any]], line: PricedLine) -> List[Dict[str, Any]]:
    """Add a priced line to stored cart items.

    The same product+variant bumps the existing quantity and refreshes its
    price; anything else is appended as a new line.
    """
    merged = [dict(it) for it in items]
    for it in merged:
        if same_line(it, line.product_id, line.size, line.color):
            it["quantity"] = int(it.get("quantity") or 0) + line.quantity
            it["price"] = line.price
            return merged
    merged.append(line.as_cart_item())
    return merged


def reprice_items(db: Database, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Refresh every stored line price from its product.

    Lines whose product no longer exists are dropped.
    """
    ids = list({it["product_id"] for it in items if isinstance(it.get("product_id"), ObjectId)})
    prices = {p["_id"]: float(p.get("price") or 0) for p in db["product"].find({"_id": {"$in": ids}}, {"price": 1})}
    repriced = []
    for it in items:
        pid = it.get("product_id")
        if pid not in prices:
            logger.info("Dropping cart line for missing product %s", pid)
            continue
        repriced.append({**it, "price": prices[pid]})
    return repriced


def cart_total(items: Iterable[Dict[str, Any]]) -> float:
    return round(sum(float(it.get("price") or 0) * int(it.get("quantity") or 0) for it in items), 2)


def record_cart_add(db: Database, product_id: ObjectId, quantity: int) -> None:
    """Best-effort engagement counter; not atomic with the cart write."""
    try:
        db["product"].update_one(
            {"_id": product_id},
            {"$inc": {"added_to_cart_count": quantity, "trending_score": CART_ADD_WEIGHT * quantity}},
        )
    except PyMongoError as exc:
        logger.warning("Failed to bump cart counter for product %s: %s", product_id, exc)


def record_view(db: Database, product_id: ObjectId) -> None:
    try:
        db["product"].update_one({"_id": product_id}, {"$inc": {"view_count": 1, "trending_score": 1}})
    except PyMongoError as exc:
        logger.warning("Failed to bump view counter for product %s: %s", product_id, exc)
