import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import Field
from pymongo.database import Database

from database import create_document, get_db, parse_object_id, touch
from errors import Conflict, NotFound, ValidationError
from schemas import ApiModel, Category as CategorySchema
from security import get_current_user, require_admin
from serializers import to_category_response

router = APIRouter(prefix="/api/categories", tags=["categories"])


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


class CategoryIn(ApiModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    is_active: bool = True


class CategoryUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    is_active: Optional[bool] = None


@router.post("", status_code=201)
def create_category(payload: CategoryIn, db: Database = Depends(get_db),
                    current_user: Dict[str, Any] = Depends(require_admin)):
    slug = slugify(payload.slug or payload.name)
    if not slug:
        raise ValidationError("slug must contain letters or digits")
    if db["category"].find_one({"slug": slug}):
        raise Conflict("Slug already in use")
    category = CategorySchema(name=payload.name, slug=slug, is_active=payload.is_active)
    category_id = create_document(db, "category", category)
    created = db["category"].find_one({"_id": category_id})
    return {"message": "Category created", "category": to_category_response(created)}


@router.get("")
def list_categories(db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(get_current_user)):
    categories = db["category"].find({"is_active": True}).sort("created_at", -1)
    return {"message": "OK", "categories": [to_category_response(c) for c in categories]}


@router.put("/{category_id}")
def update_category(category_id: str, payload: CategoryUpdate, db: Database = Depends(get_db),
                    current_user: Dict[str, Any] = Depends(require_admin)):
    category = db["category"].find_one({"_id": parse_object_id(category_id, "category id")})
    if not category:
        raise NotFound("Category not found")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("slug") is not None:
        changes["slug"] = slugify(changes["slug"])
        if not changes["slug"]:
            raise ValidationError("slug must contain letters or digits")
        if changes["slug"] != category.get("slug") and db["category"].find_one({"slug": changes["slug"]}):
            raise Conflict("Slug already in use")
    if not changes:
        raise ValidationError("No fields to update")
    db["category"].update_one({"_id": category["_id"]}, {"$set": touch(changes)})
    updated = db["category"].find_one({"_id": category["_id"]})
    return {"message": "Category updated", "category": to_category_response(updated)}


@router.delete("/{category_id}")
def delete_category(category_id: str, db: Database = Depends(get_db),
                    current_user: Dict[str, Any] = Depends(require_admin)):
    res = db["category"].delete_one({"_id": parse_object_id(category_id, "category id")})
    if res.deleted_count == 0:
        raise NotFound("Category not found")
    return {"message": "Category deleted"}
