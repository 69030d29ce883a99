from .section import assert_section
from .exceptions import InvariantViolation


def assert_page(page):
    sections = page.sections

    orders = [section.order_index for section in sections]
    expected = list(range(len(orders)))

    if sorted(orders) != expected:
        raise InvariantViolation(
            f"Section orders are not consecutive starting from 0: {orders}"
        )

    seen = set()
    for section in sections:
        assert_section(section, page)
        for node_id in [section.id] + [block.id for block in section.blocks]:
            if node_id in seen:
                raise InvariantViolation(f"Duplicate node id in page {page.id}: {node_id}")
            seen.add(node_id)
