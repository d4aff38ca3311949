from __future__ import annotations

from typing import Any, Dict, List, Optional

from .collector import CollectionResult
from .errors import PayloadShapeError

SESSION_FIELDS = (
    "session_id",
    "username",
    "nickname",
    "title",
    "shop_id",
    "status",
    "start_time",
    "end_time",
    "member_cnt",
    "like_cnt",
    "viewer_count",
)


def _session(join: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    data = (join or {}).get("data") if isinstance(join, dict) else None
    session = data.get("session") if isinstance(data, dict) else None
    return session if isinstance(session, dict) else {}


def expected_count(join: Optional[Dict[str, Any]]) -> int:
    session = _session(join)
    if "items_cnt" not in session:
        raise PayloadShapeError("items_cnt not found in API response")
    raw = session["items_cnt"]
    if isinstance(raw, bool):
        raise PayloadShapeError(f"items_cnt is not a number: {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise PayloadShapeError(f"items_cnt is not a number: {raw!r}") from None


def resolve_stock(item: Dict[str, Any]) -> Any:
    # key presence decides; 0 and null are real values
    if "display_total_stock" in item:
        return item["display_total_stock"]
    if "sp_total_stock" in item:
        return item["sp_total_stock"]
    return None


def to_product(item: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "item_id": item.get("item_id"),
        "shop_id": item.get("shop_id"),
        "stock": resolve_stock(item),
    }


def session_metadata(join: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    session = _session(join)
    return {k: session.get(k) for k in SESSION_FIELDS}


def count_payload(session_id: str, items_count: Any) -> Dict[str, Any]:
    return {
        "success": True,
        "sessionId": int(session_id),
        "itemsCount": items_count,
    }


def products_payload(session_id: str, join: Dict[str, Any], result: CollectionResult) -> Dict[str, Any]:
    products: List[Dict[str, Any]] = [to_product(it) for it in result.items]
    return {
        "success": True,
        "sessionId": int(session_id),
        "metadata": {
            "expectedItemsCount": result.expected,
            "productsFound": len(products),
            "collectionComplete": len(products) >= result.expected,
            "session": session_metadata(join),
        },
        "products": products,
    }
