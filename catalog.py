from datetime import datetime
from typing import Any, Dict, List, Optional

from lifecycle import item_rate
from models.item_models import ItemType, SortOrder


def effective_price(item: Dict[str, Any]) -> float:
    return item_rate(item)


def _matches_search(item: Dict[str, Any], search: str) -> bool:
    needle = search.lower()
    return needle in (item.get("title") or "").lower() or needle in (item.get("description") or "").lower()


def filter_items(
    items: List[Dict[str, Any]],
    search: Optional[str] = None,
    category: Optional[str] = None,
    item_type: ItemType = ItemType.ALL,
) -> List[Dict[str, Any]]:
    filtered = []
    for item in items:
        if search and not _matches_search(item, search):
            continue
        if category and category != "all" and item.get("category") != category:
            continue
        if item_type == ItemType.ITEMS and item.get("is_service"):
            continue
        if item_type == ItemType.SERVICES and not item.get("is_service"):
            continue
        filtered.append(item)
    return filtered


def catalog_query(
    base: Dict[str, Any],
    category: Optional[str] = None,
    item_type: ItemType = ItemType.ALL,
) -> Dict[str, Any]:
    """Mongo filter carrying the category and type parts of a browse."""
    query = dict(base)
    if category and category != "all":
        query["category"] = category
    if item_type == ItemType.ITEMS:
        query["is_service"] = {"$ne": True}
    elif item_type == ItemType.SERVICES:
        query["is_service"] = True
    return query


def _owner_trust(item: Dict[str, Any]) -> float:
    owner = item.get("owner") or {}
    return owner.get("trust_score") or 0


def sort_items(items: List[Dict[str, Any]], sort_by: SortOrder = SortOrder.NEWEST) -> List[Dict[str, Any]]:
    if sort_by == SortOrder.PRICE_LOW:
        return sorted(items, key=effective_price)
    if sort_by == SortOrder.PRICE_HIGH:
        return sorted(items, key=effective_price, reverse=True)
    if sort_by == SortOrder.RATING:
        return sorted(items, key=_owner_trust, reverse=True)
    return sorted(items, key=lambda item: item.get("created_at") or datetime.min, reverse=True)
