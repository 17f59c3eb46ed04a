import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from pymongo.database import Database

from database import create_document, get_db, parse_object_id, touch
from errors import NotFound, ValidationError
from pricing import record_view
from schemas import ApiModel, Product as ProductSchema, Variant
from security import require_admin
from serializers import to_product_response

router = APIRouter(prefix="/api/products", tags=["products"])

SORTS = {
    "price_asc": [("price", 1)],
    "price_desc": [("price", -1)],
    "new": [("created_at", -1)],
    "rating": [("rating", -1), ("review_count", -1)],
    "trending": [("trending_score", -1)],
}


class ProductIn(ApiModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    mrp: Optional[float] = Field(None, ge=0)
    stock: int = Field(0, ge=0)
    images: List[str] = []
    category_id: Optional[str] = None
    collection: Optional[str] = None
    variants: List[Variant] = []
    sizes: List[str] = []
    colors: List[str] = []
    is_new: bool = False
    is_best_seller: bool = False
    is_limited: Optional[bool] = None
    drop_date: Optional[datetime] = None
    release_date: Optional[datetime] = None
    product_specifications: Dict[str, Any] = {}


class ProductUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    mrp: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None
    category_id: Optional[str] = None
    collection: Optional[str] = None
    variants: Optional[List[Variant]] = None
    sizes: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    is_new: Optional[bool] = None
    is_best_seller: Optional[bool] = None
    is_limited: Optional[bool] = None
    drop_date: Optional[datetime] = None
    release_date: Optional[datetime] = None
    product_specifications: Optional[Dict[str, Any]] = None


@router.post("", status_code=201)
def create_product(data: ProductIn, db: Database = Depends(get_db), current_user: dict = Depends(require_admin)):
    fields = data.model_dump()
    if fields["category_id"] is not None:
        fields["category_id"] = parse_object_id(fields["category_id"], "categoryId")
    product = ProductSchema(**fields)
    product_id = create_document(db, "product", product)
    created = db["product"].find_one({"_id": product_id})
    return {"message": "Product created", "product": to_product_response(created)}


@router.get("")
def list_products(
    db: Database = Depends(get_db),
    q: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    in_stock: Optional[bool] = Query(None, alias="inStock"),
    sort: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    page: int = Query(1, ge=1),
):
    query: Dict[str, Any] = {}
    if q:
        pattern = re.escape(q)
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"collection": {"$regex": pattern, "$options": "i"}},
        ]
    if category:
        query["category_id"] = parse_object_id(category, "category")
    price_filter: Dict[str, Any] = {}
    if min_price is not None:
        price_filter["$gte"] = float(min_price)
    if max_price is not None:
        price_filter["$lte"] = float(max_price)
    if price_filter:
        query["price"] = price_filter
    if in_stock is True:
        query["stock"] = {"$gt": 0}
    elif in_stock is False:
        query["stock"] = {"$lte": 0}
    if sort and sort not in SORTS:
        raise ValidationError(f"Unknown sort '{sort}'")

    collection = db["product"]
    total = collection.count_documents(query)
    cursor = collection.find(query).sort(SORTS[sort] if sort else [("created_at", -1)])
    cursor = cursor.skip((page - 1) * limit).limit(limit)
    items = [to_product_response(d, card_only=True) for d in cursor]
    return {"message": "OK", "products": items, "total": total, "page": page, "limit": limit}


@router.get("/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    obj_id = parse_object_id(product_id, "product id")
    product = db["product"].find_one({"_id": obj_id})
    if not product:
        raise NotFound("Product not found")
    record_view(db, obj_id)
    return {"message": "OK", "product": to_product_response(product)}


@router.put("/{product_id}")
def update_product(product_id: str, data: ProductUpdate, db: Database = Depends(get_db),
                   current_user: dict = Depends(require_admin)):
    obj_id = parse_object_id(product_id, "product id")
    update_dict = data.model_dump(exclude_unset=True)
    if not update_dict:
        raise ValidationError("No fields to update")
    if update_dict.get("category_id") is not None:
        update_dict["category_id"] = parse_object_id(update_dict["category_id"], "categoryId")
    res = db["product"].update_one({"_id": obj_id}, {"$set": touch(update_dict)})
    if res.matched_count == 0:
        raise NotFound("Product not found")
    product = db["product"].find_one({"_id": obj_id})
    return {"message": "Product updated", "product": to_product_response(product)}


@router.delete("/{product_id}")
def delete_product(product_id: str, db: Database = Depends(get_db), current_user: dict = Depends(require_admin)):
    obj_id = parse_object_id(product_id, "product id")
    res = db["product"].delete_one({"_id": obj_id})
    if res.deleted_count == 0:
        raise NotFound("Product not found")
    return {"message": "Product deleted"}
