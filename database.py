"""
MongoDB access for the user collection.

Every cart, order and address operation is a single-document update against the
user's own document, located by its ``_id``. Nested records are addressed with the
positional operator (``field.$.sub``) after matching the element in the filter.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from pymongo import MongoClient

import settings

logger = logging.getLogger("ecommerce.database")

if settings.MONGODB_URI == "mongodb://localhost:27017":
    logger.warning("MONGODB_URI is not set, using %s", settings.MONGODB_URI)

client = MongoClient(settings.MONGODB_URI)
db = client[settings.DATABASE_NAME]

CART = "addToCart"
ORDERS = "Orders"
ADDRESSES = "Address"
CANCELLED = "Cancelled"
CART_ADD_ATTEMPTS = 3


def users():
    return db[settings.USER_COLLECTION]


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    doc = dict(doc)
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc


def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Serialized user document without the password hash."""
    user = serialize_doc(doc)
    user.pop("Password", None)
    return user


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(ObjectId())


def _oid(user_id: Any) -> ObjectId:
    return user_id if isinstance(user_id, ObjectId) else ObjectId(str(user_id))


def _user_exists(oid: ObjectId) -> bool:
    return users().find_one({"_id": oid}, {"_id": 1}) is not None


# Accounts

def find_user(user_id: Any) -> Optional[Dict[str, Any]]:
    return users().find_one({"_id": _oid(user_id)}, {"Password": 0})


def find_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    return users().find_one({"Email": email})


def email_taken(email: str, exclude_id: Any = None) -> bool:
    query: Dict[str, Any] = {"Email": email}
    if exclude_id is not None:
        query["_id"] = {"$ne": _oid(exclude_id)}
    return users().find_one(query, {"_id": 1}) is not None


def create_user(document: Dict[str, Any]) -> str:
    result = users().insert_one(document)
    return str(result.inserted_id)


def update_profile(user_id: Any, fields: Dict[str, Any]) -> Tuple[bool, bool]:
    """Returns ``(matched, modified)``."""
    result = users().update_one({"_id": _oid(user_id)}, {"$set": fields})
    return result.matched_count > 0, result.modified_count > 0


# Cart

def get_cart(user_id: Any) -> Optional[List[Dict[str, Any]]]:
    user = users().find_one({"_id": _oid(user_id)}, {CART: 1})
    if user is None:
        return None
    return user.get(CART, [])


def add_cart_item(user_id: Any, item: Dict[str, Any]) -> bool:
    """Increment the line for ``item["productId"]`` or append it with quantity 1.

    The append only applies while no line with that productId exists, so two racing
    calls can never create duplicate lines; the loser retries the increment.
    Returns False when the user does not exist.
    """
    oid = _oid(user_id)
    product_id = item["productId"]
    line = {**item, "quantity": 1}
    for _ in range(CART_ADD_ATTEMPTS):
        res = users().update_one(
            {"_id": oid, f"{CART}.productId": product_id},
            {"$inc": {f"{CART}.$.quantity": 1}},
        )
        if res.matched_count:
            return True
        res = users().update_one(
            {"_id": oid, f"{CART}.productId": {"$ne": product_id}},
            {"$push": {CART: line}},
        )
        if res.matched_count:
            return True
        if not _user_exists(oid):
            return False
    raise RuntimeError(f"Could not add product {product_id!r} to cart after {CART_ADD_ATTEMPTS} attempts")


def remove_cart_item(user_id: Any, product_id: Any) -> bool:
    res = users().update_one(
        {"_id": _oid(user_id), f"{CART}.productId": product_id},
        {"$pull": {CART: {"productId": product_id}}},
    )
    return res.matched_count > 0


def empty_cart(user_id: Any) -> bool:
    res = users().update_one({"_id": _oid(user_id)}, {"$set": {CART: []}})
    return res.matched_count > 0


def set_cart_quantities(user_id: Any, items: Iterable[Dict[str, Any]]) -> List[Any]:
    """Set each line's quantity absolutely. Returns the productIds that matched no line.

    Lines are updated one by one without a transaction; earlier updates stay applied
    when a later line is missing.
    """
    oid = _oid(user_id)
    failed = []
    for item in items:
        res = users().update_one(
            {"_id": oid, f"{CART}.productId": item["productId"]},
            {"$set": {f"{CART}.$.quantity": item["quantity"]}},
        )
        if not res.matched_count:
            failed.append(item["productId"])
    if failed:
        logger.warning("Checkout for user %s left %d cart line(s) unmatched: %s", oid, len(failed), failed)
    return failed


# Orders

def get_orders(user_id: Any) -> Optional[List[Dict[str, Any]]]:
    user = users().find_one({"_id": _oid(user_id)}, {ORDERS: 1})
    if user is None:
        return None
    return user.get(ORDERS, [])


def push_order(user_id: Any, order: Dict[str, Any]) -> bool:
    res = users().update_one({"_id": _oid(user_id)}, {"$push": {ORDERS: order}})
    return res.matched_count > 0


def cancel_order(user_id: Any, order_id: Any, cancelled_date: Optional[str] = None) -> bool:
    """Ordered -> Cancelled. Already cancelled or unknown orders are left untouched."""
    cancelled_date = cancelled_date or now_iso()
    res = users().update_one(
        {
            "_id": _oid(user_id),
            ORDERS: {"$elemMatch": {"OrderId": order_id, "OrderStatus": {"$ne": CANCELLED}}},
        },
        {"$set": {f"{ORDERS}.$.OrderStatus": CANCELLED, f"{ORDERS}.$.CancelledDate": cancelled_date}},
    )
    return res.matched_count > 0


# Addresses

def add_address(user_id: Any, address: Dict[str, Any]) -> bool:
    res = users().update_one({"_id": _oid(user_id)}, {"$push": {ADDRESSES: address}})
    return res.matched_count > 0


def edit_address(user_id: Any, address_id: str, fields: Dict[str, Any]) -> bool:
    updates = {f"{ADDRESSES}.$.{k}": v for k, v in fields.items() if k != "id"}
    if not updates:
        raise ValueError("No fields to update")
    res = users().update_one(
        {"_id": _oid(user_id), f"{ADDRESSES}.id": address_id},
        {"$set": updates},
    )
    return res.matched_count > 0


def delete_address(user_id: Any, address_id: str) -> bool:
    res = users().update_one(
        {"_id": _oid(user_id), f"{ADDRESSES}.id": address_id},
        {"$pull": {ADDRESSES: {"id": address_id}}},
    )
    return res.matched_count > 0


# Diagnostics

def dump_users() -> List[Dict[str, Any]]:
    return [public_user(d) for d in users().find({})]


def insert_raw(document: Dict[str, Any]) -> str:
    result = users().insert_one(dict(document))
    return str(result.inserted_id)
