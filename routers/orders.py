import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import Field
from pymongo.database import Database

from database import create_document, get_db, parse_object_id, touch
from errors import NotFound, ValidationError
from pricing import LineRequest, resolve_lines
from schemas import ApiModel, Order as OrderSchema, OrderStatus, PaymentMethodName, PaymentStatus, ShippingAddress
from security import ensure_owner_or_admin, get_current_user, require_admin
from serializers import to_order_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

DELIVERED = ("delivered", "Delivered")


class CreateOrderItem(ApiModel):
    product_id: str
    quantity: int = Field(..., ge=1, strict=True)
    size: Optional[str] = None
    color: Optional[str] = None


class CreateOrderRequest(ApiModel):
    items: List[CreateOrderItem]
    shipping_address: Optional[ShippingAddress] = None
    address_id: Optional[str] = None
    payment_method: PaymentMethodName
    payment_id: Optional[str] = None
    # client totals are never trusted; kept so older clients still validate
    total_amount: Optional[float] = None


class UpdateStatusRequest(ApiModel):
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    tracking_url: Optional[str] = None
    invoice_url: Optional[str] = None


def _shipping_from_address(db: Database, user: Dict[str, Any], address_id: str) -> Dict[str, Any]:
    address = db["address"].find_one({"_id": parse_object_id(address_id, "addressId")})
    if not address:
        raise NotFound("Address not found")
    ensure_owner_or_admin(user, address.get("user_id"))
    return {
        "name": address.get("name"),
        "phone": address.get("phone"),
        "line1": address.get("line1"),
        "line2": address.get("line2"),
        "city": address.get("city"),
        "state": address.get("state"),
        "pincode": address.get("postal_code"),
        "landmark": address.get("landmark"),
        "instructions": address.get("instructions"),
    }


@router.post("", status_code=201)
def create_order(payload: CreateOrderRequest, db: Database = Depends(get_db),
                 current_user: Dict[str, Any] = Depends(get_current_user)):
    batch = resolve_lines(
        db, [LineRequest(it.product_id, it.quantity, it.size, it.color) for it in payload.items]
    )

    if payload.address_id:
        shipping = _shipping_from_address(db, current_user, payload.address_id)
    elif payload.shipping_address is not None:
        shipping = payload.shipping_address.model_dump()
    else:
        shipping = None

    if payload.total_amount is not None and round(payload.total_amount, 2) != batch.total_amount:
        logger.info("Ignoring client total %s for user %s; computed %s",
                    payload.total_amount, current_user["_id"], batch.total_amount)

    order = OrderSchema(
        user_id=current_user["_id"],
        items=[line.as_order_item() for line in batch.lines],
        shipping_address=shipping,
        payment_method=payload.payment_method,
        total_amount=batch.total_amount,
        payment_id=payload.payment_id,
    )
    order_id = create_document(db, "order", order)
    created = db["order"].find_one({"_id": order_id})
    logger.info("Order %s placed by %s for %s", order_id, current_user["_id"], batch.total_amount)
    return {"message": "Order placed", "order": to_order_response(created)}


@router.get("/my-orders")
def my_orders(db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(get_current_user)):
    orders = db["order"].find({"user_id": current_user["_id"]}).sort("created_at", -1)
    return {"message": "OK", "orders": [to_order_response(o) for o in orders]}


@router.get("/{order_id}")
def get_order(order_id: str, db: Database = Depends(get_db),
              current_user: Dict[str, Any] = Depends(get_current_user)):
    order = db["order"].find_one({"_id": parse_object_id(order_id, "order id")})
    if not order:
        raise NotFound("Order not found")
    ensure_owner_or_admin(current_user, order.get("user_id"))
    owner = db["user"].find_one({"_id": order.get("user_id")}, {"name": 1, "email": 1})
    return {"message": "OK", "order": to_order_response(order, user=owner or {})}


@router.put("/{order_id}/status")
def update_status(order_id: str, payload: UpdateStatusRequest, db: Database = Depends(get_db),
                  current_user: Dict[str, Any] = Depends(require_admin)):
    obj_id = parse_object_id(order_id, "order id")
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise ValidationError("orderStatus or paymentStatus required")
    if changes.get("order_status") in DELIVERED:
        changes["return_eligible"] = True
    res = db["order"].update_one({"_id": obj_id}, {"$set": touch(changes)})
    if res.matched_count == 0:
        raise NotFound("Order not found")
    order = db["order"].find_one({"_id": obj_id})
    logger.info("Order %s updated by admin %s: %s", obj_id, current_user["_id"], changes)
    return {"message": "Order updated", "order": to_order_response(order)}
