# pagebuilder/application/builder/persistence.py
"""
Storage of page trees in the database.

``SqlAlchemyPersistence`` converts between ORM rows and the in-memory
document. ``PersistenceSubscriber`` listens to a page's change events and
writes each accepted mutation, together with its audit row, in its own
transaction.
"""
import copy
from typing import Dict, List, Optional, Protocol

from flask import current_app

from pagebuilder.domain.clone import get_raw_content, is_clone
from pagebuilder.domain.document import Page, Website
from pagebuilder.domain.events import ChangeEvent, NodeKind
from pagebuilder.domain.invariants.exceptions import NodeNotFound
from pagebuilder.extensions import db
from pagebuilder.models.base import local_time_now
from pagebuilder.models.block import Block as BlockRow
from pagebuilder.models.page import Page as PageRow
from pagebuilder.models.section import Section as SectionRow
from pagebuilder.models.website import Website as WebsiteRow
from pagebuilder.normalizers.page import parse_page
from pagebuilder.utils.audit import log_action
from pagebuilder.utils.transaction import transactional


class PagePersistence(Protocol):
    def load_page(self, page_id: str) -> Page: ...

    def save_section(self, section) -> None: ...

    def save_block(self, block) -> None: ...

    def delete_section(self, section_id: str) -> None: ...

    def delete_block(self, block_id: str) -> None: ...

    def save_sections(self, page: Page, include_blocks: bool = False) -> None: ...

    def save_blocks(self, section) -> None: ...

    def replace_page_content(self, page: Page) -> None: ...

    def touch_page(self, page_id: str) -> None: ...


def _block_data(row: BlockRow) -> Dict:
    return {
        "id": row.id,
        "block_type": row.block_type,
        "order_index": row.order_index,
        "content": row.content,
        "styles": row.styles,
        "visibility": row.visibility,
    }


def _section_data(row: SectionRow) -> Dict:
    data = {
        "id": row.id,
        "name": row.name,
        "section_type": row.section_type,
        "kind": row.kind,
        "order_index": row.order_index,
        "styles": row.styles,
    }
    if row.kind is not None:
        data["raw"] = {"html": row.html, "css": row.css, "js": row.js}
    data["blocks"] = [_block_data(b) for b in row.blocks]
    return data


class SqlAlchemyPersistence:
    # -------------------------------------------------
    # Loading
    # -------------------------------------------------
    def get_page_row(self, page_id: str) -> PageRow:
        row = db.session.get(PageRow, page_id)
        if row is None:
            raise NodeNotFound(page_id)
        return row

    def load_page(self, page_id: str) -> Page:
        row = self.get_page_row(page_id)
        return parse_page({
            "id": row.id,
            "website_id": row.website_id,
            "title": row.title,
            "slug": row.slug,
            "is_home": row.is_home,
            "is_published": row.is_published,
            "order_index": row.order_index,
            "sections": [_section_data(s) for s in row.sections],
        })

    def load_website(self, website_id: str) -> Website:
        """Website with its pages; page sections are not loaded."""
        row = db.session.get(WebsiteRow, website_id)
        if row is None:
            raise NodeNotFound(website_id)

        website = Website(
            id=row.id,
            is_published=row.is_published,
            domain=row.domain,
            subdomain=row.subdomain,
            theme_id=row.theme_id,
        )
        website.pages.extend(
            Page(
                id=p.id,
                website_id=p.website_id,
                title=p.title,
                slug=p.slug,
                is_home=p.is_home,
                is_published=p.is_published,
                order_index=p.order_index,
            )
            for p in row.pages
        )
        return website

    def page_id_for(self, node_id: str) -> str:
        """Page that owns a section or block id."""
        section = db.session.get(SectionRow, node_id)
        if section is not None:
            return section.page_id

        block = db.session.get(BlockRow, node_id)
        if block is not None:
            return block.section.page_id

        if db.session.get(PageRow, node_id) is not None:
            return node_id
        raise NodeNotFound(node_id)

    # -------------------------------------------------
    # Saving
    # -------------------------------------------------
    def _write_section(self, section, page_row: PageRow) -> SectionRow:
        row = db.session.get(SectionRow, section.id)
        if row is None:
            row = SectionRow()
            row.id = section.id
            row.page = page_row
            db.session.add(row)

        row.name = section.name
        row.section_type = section.section_type
        row.kind = section.kind.value
        row.order_index = section.order_index
        row.styles = section.styles.to_flat()

        if is_clone(section):
            raw = get_raw_content(section)
            row.html, row.css, row.js = raw.html, raw.css, raw.js
        else:
            row.html = row.css = row.js = None
        return row

    def _write_block(self, block, section_row: SectionRow) -> BlockRow:
        row = db.session.get(BlockRow, block.id)
        if row is None:
            row = BlockRow()
            row.id = block.id
            row.section = section_row
            db.session.add(row)

        row.block_type = block.block_type
        row.order_index = block.order_index
        row.content = copy.deepcopy(block.content)
        row.styles = block.styles.to_flat()
        row.visibility = block.visibility.to_dict()
        return row

    @staticmethod
    def _drop_missing(collection, keep_ids) -> List[str]:
        """Remove rows no longer in the tree; delete-orphan deletes them on flush."""
        dropped = []
        for row in list(collection):
            if row.id not in keep_ids:
                collection.remove(row)
                dropped.append(row.id)
        return dropped

    def save_section(self, section) -> SectionRow:
        return self._write_section(section, self.get_page_row(section.page_id))

    def save_block(self, block) -> BlockRow:
        section_row = db.session.get(SectionRow, block.section_id)
        if section_row is None:
            raise NodeNotFound(block.section_id)
        return self._write_block(block, section_row)

    def delete_section(self, section_id: str) -> None:
        row = db.session.get(SectionRow, section_id)
        if row is not None:
            db.session.delete(row)

    def delete_block(self, block_id: str) -> None:
        row = db.session.get(BlockRow, block_id)
        if row is not None:
            db.session.delete(row)

    def save_blocks(self, section) -> None:
        """Write a section's block list, including order and removals."""
        section_row = db.session.get(SectionRow, section.id)
        if section_row is None:
            raise NodeNotFound(section.id)

        for block in section.blocks:
            self._write_block(block, section_row)
        self._drop_missing(section_row.blocks, {b.id for b in section.blocks})

    def save_sections(self, page: Page, include_blocks: bool = False) -> None:
        page_row = self.get_page_row(page.id)

        for section in page.sections:
            self._write_section(section, page_row)
        db.session.flush()

        if include_blocks:
            for section in page.sections:
                self.save_blocks(section)
        self._drop_missing(page_row.sections, {s.id for s in page.sections})

    def replace_page_content(self, page: Page) -> None:
        self.save_sections(page, include_blocks=True)

    def touch_page(self, page_id: str) -> None:
        self.get_page_row(page_id).updated_at = local_time_now()


# Block lists that have to be written again after a section-level event
SECTION_OPS_WITH_BLOCKS = frozenset({"add", "import", "duplicate"})


class PersistenceSubscriber:
    """
    Writes every change event of one page to the database.

    Errors propagate to the event bus, which logs them; the in-memory
    mutation stays applied.
    """

    def __init__(self, engine, store: Optional[SqlAlchemyPersistence] = None, actor_id=None):
        self.engine = engine
        self.store = store or SqlAlchemyPersistence()
        self.actor_id = actor_id

    def __call__(self, event: ChangeEvent) -> None:
        page = self.engine.page

        with transactional():
            if event.node_kind is NodeKind.BLOCK:
                if event.parent_id in {s.id for s in page.sections}:
                    self.store.save_blocks(self.engine.get_section(event.parent_id))
            elif event.node_kind is NodeKind.SECTION:
                self.store.save_sections(
                    page,
                    include_blocks=event.op_kind.value in SECTION_OPS_WITH_BLOCKS,
                )
            else:
                self.store.replace_page_content(page)

            self.store.touch_page(page.id)

            log_action(
                action=f"{event.node_kind.value}.{event.op_kind.value}",
                entity_type=event.node_kind.value,
                entity_id=event.node_id,
                page_id=event.page_id,
                payload=event.to_dict(),
                actor_id=self.actor_id,
            )

        current_app.logger.debug(
            "Persisted %s %s %s", event.op_kind.value, event.node_kind.value, event.node_id
        )
