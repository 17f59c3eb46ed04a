from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends
from pydantic import Field
from pymongo.database import Database

from database import create_document, get_db, parse_object_id, touch
from errors import NotFound, ValidationError
from schemas import Address as AddressSchema, ApiModel
from security import ensure_owner_or_admin, get_current_user
from serializers import to_address_response

router = APIRouter(prefix="/api/addresses", tags=["addresses"])


class AddressIn(ApiModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    line1: str = Field(..., min_length=1)
    line2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: Optional[str] = None
    postal_code: Optional[str] = None
    pincode: Optional[str] = None
    country: str = Field(..., min_length=1)
    landmark: Optional[str] = None
    instructions: Optional[str] = None
    is_default: bool = False


class AddressUpdate(ApiModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    line1: Optional[str] = Field(None, min_length=1)
    line2: Optional[str] = None
    city: Optional[str] = Field(None, min_length=1)
    state: Optional[str] = None
    postal_code: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = Field(None, min_length=1)
    landmark: Optional[str] = None
    instructions: Optional[str] = None
    is_default: Optional[bool] = None


def _clear_default(db: Database, user_id: ObjectId, keep: Optional[ObjectId] = None) -> None:
    query: Dict[str, Any] = {"user_id": user_id, "is_default": True}
    if keep is not None:
        query["_id"] = {"$ne": keep}
    db["address"].update_many(query, {"$set": {"is_default": False}})


def _owned_address(db: Database, user: Dict[str, Any], address_id: str) -> Dict[str, Any]:
    address = db["address"].find_one({"_id": parse_object_id(address_id, "address id")})
    if not address:
        raise NotFound("Address not found")
    ensure_owner_or_admin(user, address.get("user_id"))
    return address


@router.post("", status_code=201)
def create_address(payload: AddressIn, db: Database = Depends(get_db),
                   current_user: Dict[str, Any] = Depends(get_current_user)):
    fields = payload.model_dump()
    # "pincode" is the storefront's name for the postal code
    pincode = fields.pop("pincode")
    fields["postal_code"] = fields["postal_code"] or pincode
    address = AddressSchema(user_id=current_user["_id"], **fields)
    if address.is_default:
        _clear_default(db, current_user["_id"])
    address_id = create_document(db, "address", address)
    created = db["address"].find_one({"_id": address_id})
    return {"message": "Address created", "address": to_address_response(created)}


@router.get("")
def list_addresses(db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(get_current_user)):
    addresses = db["address"].find({"user_id": current_user["_id"]}).sort([("is_default", -1), ("created_at", -1)])
    return {"message": "OK", "addresses": [to_address_response(a) for a in addresses]}


@router.put("/{address_id}")
def update_address(address_id: str, payload: AddressUpdate, db: Database = Depends(get_db),
                   current_user: Dict[str, Any] = Depends(get_current_user)):
    address = _owned_address(db, current_user, address_id)
    changes = payload.model_dump(exclude_unset=True)
    pincode = changes.pop("pincode", None)
    if pincode is not None and "postal_code" not in changes:
        changes["postal_code"] = pincode
    if not changes:
        raise ValidationError("No fields to update")
    if changes.get("is_default"):
        _clear_default(db, address["user_id"], keep=address["_id"])
    db["address"].update_one({"_id": address["_id"]}, {"$set": touch(changes)})
    updated = db["address"].find_one({"_id": address["_id"]})
    return {"message": "Address updated", "address": to_address_response(updated)}


@router.delete("/{address_id}")
def delete_address(address_id: str, db: Database = Depends(get_db),
                   current_user: Dict[str, Any] = Depends(get_current_user)):
    address = _owned_address(db, current_user, address_id)
    db["address"].delete_one({"_id": address["_id"]})
    return {"message": "Address deleted"}
