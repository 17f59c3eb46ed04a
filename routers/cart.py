from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query
from pydantic import Field
from pymongo.database import Database

from database import get_db, parse_object_id, utcnow
from errors import NotFound, ValidationError
from pricing import LineRequest, merge_line, record_cart_add, reprice_items, resolve_lines, same_line
from schemas import ApiModel
from security import ensure_owner_or_admin, get_current_user
from serializers import to_cart_response


router = APIRouter(prefix="/api/cart", tags=["cart"])


class CartItemIn(ApiModel):
    product_id: str
    quantity: int = Field(1, ge=1, strict=True)
    size: Optional[str] = None
    color: Optional[str] = None
    # accepted for compatibility, never stored
    price: Optional[float] = None

    def as_request(self) -> LineRequest:
        return LineRequest(self.product_id, self.quantity, self.size, self.color)


class UpdateCartInput(ApiModel):
    product_id: Optional[str] = None
    quantity: Optional[int] = Field(None, strict=True)
    size: Optional[str] = None
    color: Optional[str] = None
    items: Optional[List[CartItemIn]] = None


def cart_owner(
    user_id: Optional[str] = Query(None, alias="userId"),
    current_user: Dict[str, Any] = Depends(get_current_user),
) -> ObjectId:
    """The user whose cart is addressed; only admins may name someone else."""
    if user_id is None:
        return current_user["_id"]
    owner_id = parse_object_id(user_id, "userId")
    ensure_owner_or_admin(current_user, owner_id)
    return owner_id


def _load_cart(db: Database, owner_id: ObjectId, create: bool = False) -> Dict[str, Any]:
    cart = db["cart"].find_one({"user_id": owner_id})
    if cart:
        return cart
    if not create:
        raise NotFound("Cart not found")
    now = utcnow()
    cart = {"user_id": owner_id, "items": [], "created_at": now, "updated_at": now}
    cart["_id"] = db["cart"].insert_one(cart).inserted_id
    return cart


def _save_items(db: Database, cart: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, Any]:
    items = reprice_items(db, items)
    now = utcnow()
    db["cart"].update_one({"_id": cart["_id"]}, {"$set": {"items": items, "updated_at": now}})
    return {**cart, "items": items, "updated_at": now}


@router.get("")
def get_cart(db: Database = Depends(get_db), owner_id: ObjectId = Depends(cart_owner)):
    cart = _load_cart(db, owner_id, create=True)
    if cart.get("items"):
        cart = _save_items(db, cart, cart["items"])
    return {"message": "OK", "cart": to_cart_response(cart)}


@router.post("/add")
def add_item(item: CartItemIn, db: Database = Depends(get_db), owner_id: ObjectId = Depends(cart_owner)):
    line = resolve_lines(db, [item.as_request()]).lines[0]
    cart = _load_cart(db, owner_id, create=True)
    cart = _save_items(db, cart, merge_line(cart.get("items") or [], line))
    record_cart_add(db, line.product_id, line.quantity)
    return {"message": "Item added to cart", "cart": to_cart_response(cart)}


@router.put("/update")
def update_cart(payload: UpdateCartInput, db: Database = Depends(get_db), owner_id: ObjectId = Depends(cart_owner)):
    cart = _load_cart(db, owner_id)

    if payload.items is not None:
        items: List[Dict[str, Any]] = []
        if payload.items:
            batch = resolve_lines(db, [it.as_request() for it in payload.items])
            for line in batch.lines:
                items = merge_line(items, line)
    elif payload.product_id is not None:
        if payload.quantity is None:
            raise ValidationError("quantity is required")
        product_id = parse_object_id(payload.product_id, "productId")
        items = list(cart.get("items") or [])
        index = next(
            (i for i, it in enumerate(items) if same_line(it, product_id, payload.size, payload.color)),
            None,
        )
        if index is None:
            raise NotFound("Item not found in cart")
        if payload.quantity <= 0:
            items.pop(index)
        else:
            items[index] = {**items[index], "quantity": payload.quantity}
    else:
        raise ValidationError("productId/quantity or items array required")

    cart = _save_items(db, cart, items)
    return {"message": "Cart updated", "cart": to_cart_response(cart)}


@router.delete("/remove/{product_id}")
def remove_item(
    product_id: str,
    size: Optional[str] = None,
    color: Optional[str] = None,
    db: Database = Depends(get_db),
    owner_id: ObjectId = Depends(cart_owner),
):
    obj_id = parse_object_id(product_id, "productId")
    cart = _load_cart(db, owner_id)
    if size is None and color is None:
        items = [it for it in cart.get("items") or [] if str(it.get("product_id")) != str(obj_id)]
    else:
        items = [it for it in cart.get("items") or [] if not same_line(it, obj_id, size, color)]
    cart = _save_items(db, cart, items)
    return {"message": "Item removed", "cart": to_cart_response(cart)}


@router.delete("/clear")
def clear_cart(db: Database = Depends(get_db), owner_id: ObjectId = Depends(cart_owner)):
    cart = _load_cart(db, owner_id)
    db["cart"].update_one({"_id": cart["_id"]}, {"$set": {"items": [], "updated_at": utcnow()}})
    return {"message": "Cart cleared"}
