import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pymongo.database import Database

from database import get_db, parse_object_id, utcnow
from errors import NotFound
from security import require_admin
from serializers import safe_user, to_order_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users")
def list_users(db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(require_admin)):
    users = db["user"].find().sort("created_at", -1)
    return {"message": "OK", "users": [safe_user(u) for u in users]}


@router.get("/orders")
def list_orders(db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(require_admin)):
    orders = list(db["order"].find().sort("created_at", -1))
    owners = {
        u["_id"]: u
        for u in db["user"].find({"_id": {"$in": list({o["user_id"] for o in orders})}}, {"name": 1, "email": 1})
    }
    return {"message": "OK", "orders": [to_order_response(o, user=owners.get(o["user_id"], {})) for o in orders]}


@router.get("/dashboard-stats")
def dashboard_stats(db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(require_admin)):
    sales = list(db["order"].aggregate([
        {"$match": {"payment_status": "paid"}},
        {"$group": {"_id": None, "total_sales": {"$sum": "$total_amount"}}},
    ]))
    return {
        "message": "OK",
        "usersCount": db["user"].count_documents({}),
        "ordersCount": db["order"].count_documents({}),
        "productsCount": db["product"].count_documents({}),
        "totalSales": round(sales[0]["total_sales"], 2) if sales else 0,
    }


@router.put("/users/{user_id}/promote")
def promote_user(user_id: str, db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(require_admin)):
    obj_id = parse_object_id(user_id, "user id")
    res = db["user"].update_one({"_id": obj_id}, {"$set": {"role": "admin", "updated_at": utcnow()}})
    if res.matched_count == 0:
        raise NotFound("User not found")
    logger.info("User %s promoted to admin by %s", obj_id, current_user["_id"])
    user = db["user"].find_one({"_id": obj_id})
    return {"message": "User promoted", "user": safe_user(user)}
