from typing import Any, Dict, Optional
from bson import ObjectId

# Helper functions to handle ObjectId
def as_object_id(v) -> Optional[ObjectId]:
    """ObjectId for v, or None for ids that can never match a document"""
    if isinstance(v, ObjectId):
        return v
    if isinstance(v, str) and ObjectId.is_valid(v):
        return ObjectId(v)
    return None

def prepare_mongo_document(doc):
    """
    Convert all ObjectId values to strings and rename _id fields to id.

    Datetimes are left untouched so pydantic models can validate them directly.
    """
    if doc is None:
        return None

    # Handle lists
    if isinstance(doc, list):
        return [prepare_mongo_document(item) for item in doc]

    # If not a dict, return as is
    if not isinstance(doc, dict):
        return doc

    result: Dict[str, Any] = {}

    for key, value in doc.items():
        # Convert _id to id
        if key == "_id":
            result["id"] = str(value)
            continue

        # Convert ObjectId values to strings
        if isinstance(value, ObjectId):
            result[key] = str(value)
            continue

        # Handle nested dicts and lists that might contain ObjectIds
        if isinstance(value, (dict, list)):
            result[key] = prepare_mongo_document(value)
            continue

        result[key] = value

    return result
