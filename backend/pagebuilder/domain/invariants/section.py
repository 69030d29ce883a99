from pagebuilder.domain.document import ClonedBody, StructuredBody
from .block import assert_block, assert_block_order
from .exceptions import InvariantViolation


def assert_section(section, page=None):
    if not section.page_id:
        raise InvariantViolation(f"Section {section.id} has no parent page.")

    if page is not None and section.page_id != page.id:
        raise InvariantViolation(
            f"Section {section.id} points at page {section.page_id} "
            f"but is stored under {page.id}."
        )

    if isinstance(section.body, ClonedBody):
        if not (section.body.html or section.body.css or section.body.js):
            raise InvariantViolation(
                f"Cloned section {section.id} has no raw content."
            )
        return

    if not isinstance(section.body, StructuredBody):
        raise InvariantViolation(
            f"Section {section.id} has an unknown body: {type(section.body).__name__}"
        )

    blocks = section.body.blocks
    assert_block_order(blocks)

    for block in blocks:
        assert_block(block, section)
