"""
Database helpers

The MongoDB handle is built once by `connect` at startup, kept on app.state
and injected into handlers through `get_db`. Collections are named after the
lowercased schema class ("user", "product", "cart", ...).
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from fastapi import Request
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from config import Settings
from errors import ServiceUnavailable, ValidationError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    # naive UTC, the form pymongo hands back on reads
    return datetime.now(timezone.utc).replace(tzinfo=None)


def connect(settings: Settings) -> Optional[Database]:
    if not (settings.database_url and settings.database_name):
        logger.warning("DATABASE_URL / DATABASE_NAME not set, running without a database")
        return None
    client = MongoClient(settings.database_url)
    return client[settings.database_name]


def get_db(request: Request) -> Database:
    db = request.app.state.db
    if db is None:
        raise ServiceUnavailable("Database not available")
    return db


def parse_object_id(value: Any, field: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(f"Invalid {field}")
    return ObjectId(value)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> ObjectId:
    """Insert a single document with created/updated timestamps."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = utcnow()
    data_dict["created_at"] = now
    data_dict["updated_at"] = now
    result = db[collection_name].insert_one(data_dict)
    return result.inserted_id


def touch(update: Dict[str, Any]) -> Dict[str, Any]:
    """Stamp updated_at onto a `$set` payload."""
    update = dict(update)
    update["updated_at"] = utcnow()
    return update
