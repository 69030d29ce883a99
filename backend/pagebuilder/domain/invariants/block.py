from .exceptions import InvariantViolation


def assert_block_order(blocks):
    orders = [block.order_index for block in blocks]
    if not orders:
        return

    expected = list(range(len(orders)))
    if sorted(orders) != expected:
        raise InvariantViolation(
            f"Block orders are not consecutive starting from 0: {orders}"
        )


def assert_block(block, section):
    if not block.section_id:
        raise InvariantViolation(f"Block {block.id} has no parent section.")

    if block.section_id != section.id:
        raise InvariantViolation(
            f"Block {block.id} points at section {block.section_id} "
            f"but is stored under {section.id}."
        )

    if not block.block_type:
        raise InvariantViolation(f"Block {block.id} has no block type.")
