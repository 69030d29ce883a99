"""
Tree Mutation Engine.

All add/update/delete/move/duplicate operations on the sections and blocks of
one page go through here. Each operation:

- validates everything before touching the tree, so a failure leaves the
  document unchanged
- holds the mutex of the sibling list it changes (page id for sections,
  section id for blocks)
- ends with one ``compact_order`` call per sibling group it touched
- publishes a ``ChangeEvent`` once the tree is consistent again
"""
from __future__ import annotations

import itertools
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pagebuilder.domain.clone import LEGACY_CLONE_FLAG, RawContent, assert_accepts_blocks, is_clone
from pagebuilder.domain.document import (
    Block,
    Page,
    Section,
    StructuredBody,
    StyleRecord,
    Visibility,
    new_id,
    normalize_tree,
)
from pagebuilder.domain.events import ChangeEvent, EventBus, NodeKind, OpKind
from pagebuilder.domain.invariants.exceptions import (
    InvalidChildForVariant,
    NodeNotFound,
    ParentNotFound,
)
from pagebuilder.domain.invariants.page import assert_page
from pagebuilder.domain.registry import BlockTypeRegistry, default_registry
from pagebuilder.domain.suggestions import Suggestion, apply_all
from pagebuilder.utils.order import compact_order

logger = logging.getLogger(__name__)

BLOCK_PATCH_FIELDS = frozenset({"content", "styles", "visibility"})
SECTION_PATCH_FIELDS = frozenset({"name", "section_type", "styles"})
# Fields that would write into a cloned section's imported payload
CLONE_CONTENT_FIELDS = frozenset({"content", "html", "css", "js", "blocks"})


def _merge_styles(record: StyleRecord, patch: Union[StyleRecord, Dict[str, Any]]) -> StyleRecord:
    if isinstance(patch, StyleRecord):
        return record.merged(patch)
    if isinstance(patch, dict):
        return record.merged_flat(patch)
    raise ValueError("styles patch must be an object")


def _check_index(value, name="index"):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    return value


class TreeMutationEngine:
    def __init__(
        self,
        page: Page,
        registry: Optional[BlockTypeRegistry] = None,
        events: Optional[EventBus] = None,
    ):
        self.page = normalize_tree(page)
        self.registry = registry or default_registry
        self.events = events or EventBus()

        self._seq = itertools.count(1)
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self._sections: Dict[str, Section] = {}
        self._blocks: Dict[str, Block] = {}
        self._reindex()

    # -------------------------------------------------
    # Lookup
    # -------------------------------------------------
    def _reindex(self) -> None:
        sections: Dict[str, Section] = {}
        blocks: Dict[str, Block] = {}
        for section in self.page.sections:
            section.seq = next(self._seq)
            sections[section.id] = section
            for block in section.blocks:
                block.seq = next(self._seq)
                blocks[block.id] = block
        self._sections = sections
        self._blocks = blocks

    def get_section(self, section_id: str) -> Section:
        try:
            return self._sections[section_id]
        except KeyError:
            raise NodeNotFound(section_id) from None

    def get_block(self, block_id: str) -> Block:
        try:
            return self._blocks[block_id]
        except KeyError:
            raise NodeNotFound(block_id) from None

    def contains(self, node_id: str) -> bool:
        return node_id == self.page.id or node_id in self._sections or node_id in self._blocks

    def parent_id_of(self, node_id: str) -> Optional[str]:
        if node_id in self._blocks:
            return self._blocks[node_id].section_id
        if node_id in self._sections:
            return self.page.id
        if node_id == self.page.id:
            return self.page.website_id
        raise NodeNotFound(node_id)

    # -------------------------------------------------
    # Locking
    # -------------------------------------------------
    @contextmanager
    def _locked(self, *parent_ids: str):
        """Hold the sibling-list mutex of each parent, in the order given."""
        with self._locks_guard:
            locks = [self._locks.setdefault(pid, threading.RLock()) for pid in parent_ids]
        acquired = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def _emit(self, node_id, parent_id, op_kind, node_kind, removed_ids=()):
        event = ChangeEvent(
            node_id=node_id,
            parent_id=parent_id,
            op_kind=op_kind,
            node_kind=node_kind,
            page_id=self.page.id,
            removed_ids=tuple(removed_ids),
        )
        logger.debug("%s %s %s (parent %s)", op_kind.value, node_kind.value, node_id, parent_id)
        self.events.publish(event)
        return event

    @staticmethod
    def _insert_position(at_index: Optional[int], count: int) -> int:
        if at_index is None:
            return count
        return max(0, min(at_index, count))

    # -------------------------------------------------
    # add
    # -------------------------------------------------
    def add(self, parent_id: str, node_type: str, at_index: Optional[int] = None) -> str:
        """Add a section (parent is the page) or a block (parent is a section)."""
        if parent_id == self.page.id:
            return self.add_section(parent_id, node_type, at_index=at_index)
        if parent_id in self._sections:
            return self.add_block(parent_id, node_type, at_index=at_index)
        raise ParentNotFound(parent_id)

    def add_section(
        self,
        page_id: str,
        section_type: str = "content",
        at_index: Optional[int] = None,
        name: Optional[str] = None,
    ) -> str:
        if page_id != self.page.id:
            raise ParentNotFound(page_id)
        if not isinstance(section_type, str) or not section_type:
            raise ValueError("Section type is required")
        at_index = _check_index(at_index, "at_index")

        section = Section(
            id=new_id(),
            page_id=self.page.id,
            body=StructuredBody(),
            name=name or section_type.replace("-", " ").title(),
            section_type=section_type,
        )
        self._insert_section(section, at_index)
        self._emit(section.id, self.page.id, OpKind.ADD, NodeKind.SECTION)
        return section.id

    def import_cloned_section(
        self,
        page_id: str,
        payload: Union[RawContent, Dict[str, Any]],
        at_index: Optional[int] = None,
        name: str = "Cloned Content",
    ) -> str:
        """
        Create a cloned section from an import payload.

        This is the only way raw html/css/js enters the document.
        """
        if page_id != self.page.id:
            raise ParentNotFound(page_id)
        raw = payload if isinstance(payload, RawContent) else RawContent.from_payload(payload)
        at_index = _check_index(at_index, "at_index")

        section = Section(
            id=new_id(),
            page_id=self.page.id,
            body=raw.to_body(),
            name=name,
            section_type="content",
        )
        self._insert_section(section, at_index)
        self._emit(section.id, self.page.id, OpKind.IMPORT, NodeKind.SECTION)
        return section.id

    def _insert_section(self, section: Section, at_index: Optional[int]) -> None:
        with self._locked(self.page.id):
            sections = self.page.sections
            section.seq = next(self._seq)
            sections.insert(self._insert_position(at_index, len(sections)), section)
            compact_order(sections)
            self._sections[section.id] = section
            for block in section.blocks:
                block.seq = next(self._seq)
                self._blocks[block.id] = block

    def add_block(self, section_id: str, block_type: str, at_index: Optional[int] = None) -> str:
        section = self._sections.get(section_id)
        if section is None:
            raise ParentNotFound(section_id)
        assert_accepts_blocks(section)
        block_type = self.registry.get(block_type)
        at_index = _check_index(at_index, "at_index")

        with self._locked(section.id):
            if section.id not in self._sections:
                raise ParentNotFound(section_id)
            blocks = section.body.blocks
            block = Block(
                id=new_id(),
                section_id=section.id,
                block_type=block_type.tag,
                content=block_type.new_content(),
                styles=StyleRecord(),
                visibility=Visibility(),
                seq=next(self._seq),
            )
            blocks.insert(self._insert_position(at_index, len(blocks)), block)
            compact_order(blocks)
            self._blocks[block.id] = block

        self._emit(block.id, section.id, OpKind.ADD, NodeKind.BLOCK)
        return block.id

    # -------------------------------------------------
    # update
    # -------------------------------------------------
    def update(self, node_id: str, patch: Dict[str, Any]) -> None:
        """
        Merge ``patch`` into a node field by field.

        Unspecified fields, and unspecified keys inside ``content`` /
        ``styles`` / ``visibility``, survive.
        """
        if not isinstance(patch, dict):
            raise ValueError("patch must be an object")
        if node_id in self._blocks:
            self._update_block(node_id, patch)
        elif node_id in self._sections:
            self._update_section(node_id, patch)
        else:
            raise NodeNotFound(node_id)

    def _update_block(self, block_id: str, patch: Dict[str, Any]) -> None:
        unknown = set(patch) - BLOCK_PATCH_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated on a block: {sorted(unknown)}")

        block = self.get_block(block_id)
        with self._locked(block.section_id):
            if block_id not in self._blocks:
                raise NodeNotFound(block_id)

            content = block.content
            if "content" in patch:
                if not isinstance(patch["content"], dict):
                    raise ValueError("content patch must be an object")
                content = {**block.content, **patch["content"]}

            styles = block.styles
            if "styles" in patch:
                styles = _merge_styles(block.styles, patch["styles"])

            visibility = block.visibility
            if "visibility" in patch:
                if not isinstance(patch["visibility"], dict):
                    raise ValueError("visibility patch must be an object")
                visibility = block.visibility.merged(patch["visibility"])

            block.content = content
            block.styles = styles
            block.visibility = visibility

        self._emit(block.id, block.section_id, OpKind.UPDATE, NodeKind.BLOCK)

    def _update_section(self, section_id: str, patch: Dict[str, Any]) -> None:
        section = self.get_section(section_id)
        if is_clone(section) and set(patch) & CLONE_CONTENT_FIELDS:
            raise InvalidChildForVariant(
                f"Raw content of cloned section {section.id} is read-only"
            )
        unknown = set(patch) - SECTION_PATCH_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated on a section: {sorted(unknown)}")

        if "name" in patch and not isinstance(patch["name"], str):
            raise ValueError("Section name must be a string")
        if "section_type" in patch and (
            not isinstance(patch["section_type"], str) or not patch["section_type"]
        ):
            raise ValueError("Section type must be a non-empty string")

        if isinstance(patch.get("styles"), dict) and LEGACY_CLONE_FLAG in patch["styles"]:
            raise ValueError(f"'{LEGACY_CLONE_FLAG}' is not a section style")

        with self._locked(self.page.id, section.id):
            if section_id not in self._sections:
                raise NodeNotFound(section_id)
            styles = section.styles
            if "styles" in patch:
                # merged under the lock so concurrent patches see each other
                styles = _merge_styles(section.styles, patch["styles"])
            section.name = patch.get("name", section.name)
            section.section_type = patch.get("section_type", section.section_type)
            section.styles = styles

        self._emit(section.id, self.page.id, OpKind.UPDATE, NodeKind.SECTION)

    def apply_suggestions(self, block_id: str, suggestions: Iterable[Suggestion]) -> Block:
        """Merge design suggestions into a block's styles, in the order given."""
        suggestions = list(suggestions)
        block = self.get_block(block_id)
        with self._locked(block.section_id):
            if block_id not in self._blocks:
                raise NodeNotFound(block_id)
            block.styles = apply_all(block, suggestions).styles

        self._emit(block.id, block.section_id, OpKind.UPDATE, NodeKind.BLOCK)
        return block

    # -------------------------------------------------
    # delete
    # -------------------------------------------------
    def delete(self, node_id: str) -> None:
        if node_id in self._blocks:
            self._delete_block(node_id)
        elif node_id in self._sections:
            self._delete_section(node_id)
        else:
            raise NodeNotFound(node_id)

    def _delete_block(self, block_id: str) -> None:
        block = self.get_block(block_id)
        section = self.get_section(block.section_id)
        with self._locked(section.id):
            if block_id not in self._blocks:
                raise NodeNotFound(block_id)
            blocks = section.body.blocks
            blocks.remove(block)
            compact_order(blocks)
            del self._blocks[block_id]

        self._emit(block_id, section.id, OpKind.DELETE, NodeKind.BLOCK)

    def _delete_section(self, section_id: str) -> None:
        section = self.get_section(section_id)
        with self._locked(self.page.id, section.id):
            if section_id not in self._sections:
                raise NodeNotFound(section_id)
            sections = self.page.sections
            sections.remove(section)
            compact_order(sections)
            del self._sections[section_id]
            removed = [block.id for block in section.blocks]
            for block_id in removed:
                self._blocks.pop(block_id, None)

        self._emit(section_id, self.page.id, OpKind.DELETE, NodeKind.SECTION, removed)

    # -------------------------------------------------
    # move
    # -------------------------------------------------
    def move(self, node_id: str, new_index: int) -> int:
        """
        Move a node within its own parent.

        ``new_index`` is clamped to ``[0, siblings - 1]``. Returns the final
        index; moving to the current index is a no-op and emits nothing.
        """
        new_index = _check_index(new_index, "new_index")
        if new_index is None:
            raise ValueError("new_index is required")

        node, siblings, parent_id, node_kind = self._locate(node_id)
        with self._locked(parent_id):
            if not self.contains(node_id):
                raise NodeNotFound(node_id)
            current = siblings.index(node)
            target = max(0, min(new_index, len(siblings) - 1))
            if target == current:
                return current
            siblings.pop(current)
            siblings.insert(target, node)
            compact_order(siblings)

        self._emit(node_id, parent_id, OpKind.MOVE, node_kind)
        return target

    def _locate(self, node_id: str) -> Tuple[Union[Section, Block], List, str, NodeKind]:
        if node_id in self._blocks:
            block = self._blocks[node_id]
            section = self.get_section(block.section_id)
            return block, section.body.blocks, section.id, NodeKind.BLOCK
        if node_id in self._sections:
            return self._sections[node_id], self.page.sections, self.page.id, NodeKind.SECTION
        raise NodeNotFound(node_id)

    # -------------------------------------------------
    # duplicate
    # -------------------------------------------------
    def duplicate(self, node_id: str) -> str:
        """Deep-clone a node and insert the copy right after the source."""
        node, siblings, parent_id, node_kind = self._locate(node_id)
        # a section copy also reads the source's block list
        held = (parent_id, node_id) if node_kind is NodeKind.SECTION else (parent_id,)
        with self._locked(*held):
            if not self.contains(node_id):
                raise NodeNotFound(node_id)
            clone = node.clone()
            clone.seq = next(self._seq)
            siblings.insert(siblings.index(node) + 1, clone)
            compact_order(siblings)

            if node_kind is NodeKind.SECTION:
                self._sections[clone.id] = clone
                for block in clone.blocks:
                    block.seq = next(self._seq)
                    self._blocks[block.id] = block
            else:
                self._blocks[clone.id] = clone

        self._emit(clone.id, parent_id, OpKind.DUPLICATE, node_kind)
        return clone.id

    # -------------------------------------------------
    # restore
    # -------------------------------------------------
    def restore(self, page: Page) -> None:
        """
        Replace the page's sections with those of ``page``.

        Used by rollback and undo/redo. The replacement is normalized and
        checked before it is swapped in.
        """
        if page.id != self.page.id:
            raise ValueError(f"Cannot restore page {page.id} into {self.page.id}")
        normalize_tree(page)
        assert_page(page)

        with self._locked(self.page.id, *list(self._sections)):
            self.page.sections = page.sections
            self._reindex()

        self._emit(self.page.id, self.page.website_id, OpKind.RESTORE, NodeKind.PAGE)
