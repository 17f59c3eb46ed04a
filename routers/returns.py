from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import Field
from pymongo.database import Database

from database import create_document, get_db, parse_object_id, touch
from errors import Forbidden, NotFound
from schemas import ApiModel, ReturnRequest, ReturnStatus
from security import ensure_owner_or_admin, get_current_user, require_admin
from serializers import to_return_response

router = APIRouter(prefix="/api/returns", tags=["returns"])


class ReturnIn(ApiModel):
    order_id: Optional[str] = None
    product_id: Optional[str] = None
    reason: str = Field(..., min_length=1)
    comment: Optional[str] = None


class ReturnStatusUpdate(ApiModel):
    status: ReturnStatus


@router.post("", status_code=201)
def create_return(payload: ReturnIn, db: Database = Depends(get_db),
                  current_user: Dict[str, Any] = Depends(get_current_user)):
    order_id = parse_object_id(payload.order_id, "orderId") if payload.order_id else None
    product_id = parse_object_id(payload.product_id, "productId") if payload.product_id else None

    if order_id is not None:
        order = db["order"].find_one({"_id": order_id}, {"user_id": 1})
        if not order:
            raise NotFound("Order not found")
        # only the buyer may ask for a return, admins included
        if str(order.get("user_id")) != str(current_user["_id"]):
            raise Forbidden()
    if product_id is not None and not db["product"].find_one({"_id": product_id}, {"_id": 1}):
        raise NotFound("Product not found")

    request = ReturnRequest(
        user_id=current_user["_id"],
        order_id=order_id,
        product_id=product_id,
        reason=payload.reason,
        comment=payload.comment,
    )
    request_id = create_document(db, "return", request)
    created = db["return"].find_one({"_id": request_id})
    return {"message": "Return request created", "returnRequest": to_return_response(created)}


@router.get("/my")
def my_returns(db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(get_current_user)):
    requests = db["return"].find({"user_id": current_user["_id"]}).sort("created_at", -1)
    return {"message": "OK", "returns": [to_return_response(r) for r in requests]}


@router.get("/{return_id}")
def get_return(return_id: str, db: Database = Depends(get_db),
               current_user: Dict[str, Any] = Depends(get_current_user)):
    request = db["return"].find_one({"_id": parse_object_id(return_id, "return id")})
    if not request:
        raise NotFound("Return request not found")
    ensure_owner_or_admin(current_user, request.get("user_id"))
    return {"message": "OK", "returnRequest": to_return_response(request)}


@router.put("/{return_id}/status")
def update_return_status(return_id: str, payload: ReturnStatusUpdate, db: Database = Depends(get_db),
                         current_user: Dict[str, Any] = Depends(require_admin)):
    obj_id = parse_object_id(return_id, "return id")
    res = db["return"].update_one({"_id": obj_id}, {"$set": touch({"status": payload.status})})
    if res.matched_count == 0:
        raise NotFound("Return request not found")
    request = db["return"].find_one({"_id": obj_id})
    return {"message": "Return request updated", "returnRequest": to_return_response(request)}
