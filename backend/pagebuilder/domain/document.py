"""
In-memory document tree: Website -> Page -> Section -> Block.

The list position of a node inside its parent is the source of truth for
ordering; ``order_index`` mirrors it and is kept dense by
``pagebuilder.utils.order.compact_order``.
"""
from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple, Union

from pagebuilder.utils.order import compact_order, rank_siblings


def new_id() -> str:
    return str(uuid.uuid4())


class Device(str, Enum):
    DESKTOP = "desktop"
    TABLET = "tablet"
    MOBILE = "mobile"


class SectionKind(str, Enum):
    STRUCTURED = "structured"
    CLONED = "cloned"


# Keys of the flat style map that are not CSS properties
CUSTOM_CSS_KEY = "customCSS"
ELEMENT_ID_KEY = "elementId"
CLASS_NAME_KEY = "className"
RESERVED_STYLE_KEYS = (CUSTOM_CSS_KEY, ELEMENT_ID_KEY, CLASS_NAME_KEY)


def _split_class_names(value) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(str(name) for name in value)
    # scalars are kept as their text form
    return tuple(str(value).split())


@dataclass
class StyleRecord:
    """
    Style overrides of a node.

    ``properties`` holds generic CSS-like properties only. The reserved
    ``customCSS`` / ``elementId`` / ``className`` keys of the flat wire form
    live in their own slots. ``None`` in a slot means "not set".
    """

    properties: Dict[str, Any] = field(default_factory=dict)
    raw_css: Optional[str] = None
    element_id: Optional[str] = None
    class_names: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_flat(cls, data: Optional[Dict[str, Any]]) -> "StyleRecord":
        data = dict(data or {})
        raw_css = data.pop(CUSTOM_CSS_KEY, None)
        element_id = data.pop(ELEMENT_ID_KEY, None)
        class_names = _split_class_names(data.pop(CLASS_NAME_KEY, None))
        return cls(
            properties=data,
            raw_css=raw_css,
            element_id=element_id,
            class_names=class_names,
        )

    def to_flat(self) -> Dict[str, Any]:
        flat = dict(self.properties)
        if self.raw_css is not None:
            flat[CUSTOM_CSS_KEY] = self.raw_css
        if self.element_id is not None:
            flat[ELEMENT_ID_KEY] = self.element_id
        if self.class_names is not None:
            flat[CLASS_NAME_KEY] = " ".join(self.class_names)
        return flat

    def merged(self, other: "StyleRecord") -> "StyleRecord":
        """Shallow merge; every key and slot set on ``other`` wins."""
        return StyleRecord(
            properties={**self.properties, **other.properties},
            raw_css=other.raw_css if other.raw_css is not None else self.raw_css,
            element_id=other.element_id if other.element_id is not None else self.element_id,
            class_names=other.class_names if other.class_names is not None else self.class_names,
        )

    def merged_flat(self, patch: Dict[str, Any]) -> "StyleRecord":
        """
        Merge a flat style patch key by key.

        A ``None`` value removes the property (or clears the reserved slot).
        """
        result = self.copy()
        for key, value in patch.items():
            if key == CUSTOM_CSS_KEY:
                result.raw_css = value
            elif key == ELEMENT_ID_KEY:
                result.element_id = value
            elif key == CLASS_NAME_KEY:
                result.class_names = _split_class_names(value)
            elif value is None:
                result.properties.pop(key, None)
            else:
                result.properties[key] = value
        return result

    def copy(self) -> "StyleRecord":
        return replace(self, properties=dict(self.properties))


_TRUE_TEXT = ("true", "1", "yes")
_FALSE_TEXT = ("false", "0", "no")


def _parse_flag(value, device: str) -> bool:
    """Stored visibility flag; booleans, 0/1 and their text forms only."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_TEXT:
            return True
        if text in _FALSE_TEXT:
            return False
    raise ValueError(f"Visibility flag for {device} must be a boolean, got {value!r}")


@dataclass
class Visibility:
    desktop: bool = True
    tablet: bool = True
    mobile: bool = True

    def for_device(self, device) -> bool:
        return getattr(self, Device(device).value)

    def merged(self, patch: Dict[str, bool]) -> "Visibility":
        unknown = set(patch) - {d.value for d in Device}
        if unknown:
            raise ValueError(f"Unknown visibility devices: {sorted(unknown)}")
        for device, flag in patch.items():
            if not isinstance(flag, bool):
                raise ValueError(f"Visibility flag for {device} must be a boolean")
        return replace(self, **patch)

    def to_dict(self) -> Dict[str, bool]:
        return {"desktop": self.desktop, "tablet": self.tablet, "mobile": self.mobile}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Visibility":
        data = data or {}
        return cls(**{
            device.value: _parse_flag(data.get(device.value, True), device.value)
            for device in Device
        })


@dataclass
class Block:
    id: str
    section_id: str
    block_type: str
    content: Dict[str, Any] = field(default_factory=dict)
    styles: StyleRecord = field(default_factory=StyleRecord)
    visibility: Visibility = field(default_factory=Visibility)
    order_index: int = 0
    # insertion sequence, only used to break order_index ties
    seq: int = field(default=0, compare=False, repr=False)

    def clone(self, *, section_id: Optional[str] = None) -> "Block":
        return Block(
            id=new_id(),
            section_id=section_id or self.section_id,
            block_type=self.block_type,
            content=copy.deepcopy(self.content),
            styles=self.styles.copy(),
            visibility=replace(self.visibility),
            order_index=self.order_index,
        )


@dataclass
class StructuredBody:
    kind: ClassVar[SectionKind] = SectionKind.STRUCTURED

    blocks: List[Block] = field(default_factory=list)


@dataclass(frozen=True)
class ClonedBody:
    kind: ClassVar[SectionKind] = SectionKind.CLONED

    html: str = ""
    css: str = ""
    js: str = ""


SectionBody = Union[StructuredBody, ClonedBody]


@dataclass
class Section:
    id: str
    page_id: str
    body: SectionBody = field(default_factory=StructuredBody)
    name: str = ""
    section_type: str = "content"
    styles: StyleRecord = field(default_factory=StyleRecord)
    order_index: int = 0
    seq: int = field(default=0, compare=False, repr=False)

    @property
    def kind(self) -> SectionKind:
        return self.body.kind

    @property
    def blocks(self) -> List[Block]:
        """Child blocks; always empty for a cloned section."""
        if isinstance(self.body, StructuredBody):
            return self.body.blocks
        return []

    def clone(self, *, page_id: Optional[str] = None) -> "Section":
        section_id = new_id()
        if isinstance(self.body, StructuredBody):
            body: SectionBody = StructuredBody(
                blocks=[b.clone(section_id=section_id) for b in self.body.blocks]
            )
        else:
            body = self.body
        return Section(
            id=section_id,
            page_id=page_id or self.page_id,
            body=body,
            name=self.name,
            section_type=self.section_type,
            styles=self.styles.copy(),
            order_index=self.order_index,
        )


@dataclass
class Page:
    id: str
    website_id: Optional[str] = None
    title: str = ""
    slug: str = ""
    is_home: bool = False
    is_published: bool = False
    order_index: int = 0
    sections: List[Section] = field(default_factory=list)

    def iter_blocks(self) -> Iterator[Tuple[Section, Block]]:
        for section in self.sections:
            for block in section.blocks:
                yield section, block


@dataclass
class Website:
    id: str
    is_published: bool = False
    domain: Optional[str] = None
    subdomain: Optional[str] = None
    theme_id: Optional[str] = None
    pages: List[Page] = field(default_factory=list)

    @property
    def home_page(self) -> Optional[Page]:
        return next((p for p in self.pages if p.is_home), None)


def normalize_tree(page: Page) -> Page:
    """
    Rank and compact every sibling group of a freshly loaded page.

    Stored ``order_index`` values may contain gaps or duplicates; ties keep
    the order in which the nodes were loaded.
    """
    for position, section in enumerate(page.sections):
        section.seq = section.seq or position + 1
    rank_siblings(page.sections)
    compact_order(page.sections)

    for section in page.sections:
        for position, block in enumerate(section.blocks):
            block.seq = block.seq or position + 1
        rank_siblings(section.blocks)
        compact_order(section.blocks)
    return page
