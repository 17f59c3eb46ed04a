from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import Field
from pymongo.database import Database

from database import create_document, get_db, parse_object_id
from errors import NotFound
from ratings import sync_product_rating
from schemas import ApiModel, Review as ReviewSchema
from security import ensure_owner_or_admin, get_current_user
from serializers import to_review_response

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


class ReviewIn(ApiModel):
    product_id: str
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = None
    body: Optional[str] = None


@router.post("", status_code=201)
def create_review(payload: ReviewIn, db: Database = Depends(get_db),
                  current_user: Dict[str, Any] = Depends(get_current_user)):
    product_id = parse_object_id(payload.product_id, "productId")
    if not db["product"].find_one({"_id": product_id}, {"_id": 1}):
        raise NotFound("Product not found")
    review = ReviewSchema(
        user_id=current_user["_id"],
        product_id=product_id,
        rating=payload.rating,
        title=payload.title,
        body=payload.body,
    )
    review_id = create_document(db, "review", review)
    rating, count = sync_product_rating(db, product_id)
    created = db["review"].find_one({"_id": review_id})
    return {
        "message": "Review created",
        "review": to_review_response(created),
        "product": {"id": str(product_id), "rating": rating, "reviewCount": count},
    }


@router.get("/{product_id}")
def list_reviews(product_id: str, db: Database = Depends(get_db)):
    obj_id = parse_object_id(product_id, "productId")
    reviews = list(db["review"].find({"product_id": obj_id}).sort("created_at", -1))
    authors = {
        u["_id"]: u
        for u in db["user"].find({"_id": {"$in": list({r["user_id"] for r in reviews})}}, {"name": 1, "email": 1})
    }
    return {
        "message": "OK",
        "reviews": [to_review_response(r, user=authors.get(r["user_id"], {})) for r in reviews],
    }


@router.delete("/{review_id}")
def delete_review(review_id: str, db: Database = Depends(get_db),
                  current_user: Dict[str, Any] = Depends(get_current_user)):
    review = db["review"].find_one({"_id": parse_object_id(review_id, "review id")})
    if not review:
        raise NotFound("Review not found")
    ensure_owner_or_admin(current_user, review.get("user_id"))
    db["review"].delete_one({"_id": review["_id"]})
    rating, count = sync_product_rating(db, review["product_id"])
    return {
        "message": "Review deleted",
        "product": {"id": str(review["product_id"]), "rating": rating, "reviewCount": count},
    }
