# sitepay_api/common/paging.py
from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 50
MAX_SIZE = 500

def page_limit():
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except (TypeError, ValueError):
        page = DEFAULT_PAGE
    try:
        size = int(request.args.get("size", DEFAULT_SIZE))
        size = max(1, min(size, MAX_SIZE))
    except (TypeError, ValueError):
        size = DEFAULT_SIZE
    return page, size

def paginate(items: list):
    """Slice an already-materialised list; returns (page_items, meta)."""
    page, size = page_limit()
    total = len(items)
    start = (page - 1) * size
    return items[start:start + size], {"page": page, "size": size, "total": total}
