"""
MongoDB access for the storefront.

`db` is None when DATABASE_URL is not configured; every route checks for that
through `get_db()` and answers 500 instead of crashing on attribute access.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient

import config

logger = logging.getLogger("celenk.database")

db = None
if config.DATABASE_URL:
    try:
        _client = MongoClient(config.DATABASE_URL)
        db = _client[config.DATABASE_NAME]
    except Exception as e:  # pragma: no cover
        logger.error("Could not connect to MongoDB: %s", e)
        db = None


def get_db():
    if db is None:
        raise RuntimeError("Database not configured")
    return db


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _as_dict(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True)
    return dict(data)


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document stamped with createdAt/updatedAt and return its id as a string."""
    doc = _as_dict(data)
    now = now_utc()
    doc.setdefault("createdAt", now)
    doc["updatedAt"] = now
    result = get_db()[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None, sort: Optional[List] = None) -> List[Dict[str, Any]]:
    cursor = get_db()[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return [to_client(d) for d in cursor]


def to_client(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc and "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def find_by_id(collection_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
    oid = object_id(doc_id)
    if oid is None:
        return None
    return get_db()[collection_name].find_one({"_id": oid})
