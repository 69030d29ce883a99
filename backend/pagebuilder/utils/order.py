def rank_siblings(items, order_field="order_index"):
    """
    Sorts a sibling list in place by its stored order values.

    Duplicate values are broken by insertion sequence (``seq``), so the node
    that was inserted first keeps the lower position.
    """
    items.sort(key=lambda item: (getattr(item, order_field), getattr(item, "seq", 0)))
    return items


def compact_order(items, order_field="order_index"):
    """
    Re-assigns sequential order values (0..N-1) following list position.

    Every mutating operation ends with exactly one call to this function for
    each sibling group it touched.
    """
    for index, item in enumerate(items):
        setattr(item, order_field, index)
    return items


def is_dense(items, order_field="order_index"):
    orders = [getattr(item, order_field) for item in items]
    return sorted(orders) == list(range(len(orders)))
