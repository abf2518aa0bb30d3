"""Exhaustive reads over Protean querysets.

A queryset returns one page (the model's default limit) unless told
otherwise. Named queries that promise every matching row walk the pages
here, ordered by a stable key so pages neither overlap nor skip rows.
"""

PAGE_SIZE = 100


def fetch_all(query, order_by: str = "id", page_size: int = PAGE_SIZE) -> list:
    query = query.order_by(order_by)
    items = []
    offset = 0
    while True:
        page = query.limit(page_size).offset(offset).all()
        items.extend(page.items)
        if not page.has_next:
            return items
        offset += page_size
