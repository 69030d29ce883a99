"""
Style resolution for blocks.

``resolve`` is a pure merge: registry defaults, then the block's stored
overrides on top, key for key. Values are never validated here.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from pagebuilder.domain.document import Block, Device, StyleRecord
from pagebuilder.domain.registry import BlockTypeRegistry, default_registry


class _Omit:
    """Sentinel returned when a block is hidden on the requested device."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "OMIT"


OMIT = _Omit()


@dataclass(frozen=True)
class EffectiveStyle:
    properties: Dict[str, Any] = field(default_factory=dict)
    raw_css: str = ""
    element_id: Optional[str] = None
    class_names: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "properties": dict(self.properties),
            "raw_css": self.raw_css,
            "element_id": self.element_id,
            "class_names": list(self.class_names),
        }


def resolve(
    block: Block,
    device: Union[Device, str] = Device.DESKTOP,
    registry: Optional[BlockTypeRegistry] = None,
) -> Union[EffectiveStyle, _Omit]:
    registry = registry or default_registry
    device = Device(device)

    if not block.visibility.for_device(device):
        return OMIT

    defaults = StyleRecord.from_flat(registry.lookup(block.block_type).default_styles)
    record = defaults.merged(block.styles)

    return EffectiveStyle(
        properties=dict(record.properties),
        raw_css=record.raw_css or "",
        element_id=record.element_id,
        class_names=record.class_names or (),
    )


_UPPER = re.compile(r"[A-Z]")


def css_property_name(name: str) -> str:
    """camelCase -> kebab-case (``paddingTop`` -> ``padding-top``)."""
    return _UPPER.sub(lambda m: f"-{m.group(0).lower()}", name)


def inline_declarations(style: EffectiveStyle) -> List[Tuple[str, str]]:
    """
    Property pairs for a generic "apply inline style" step.

    Only ``style.properties`` are emitted; the raw CSS text, DOM id and
    class list stay in their own slots.
    """
    return [
        (css_property_name(name), str(value))
        for name, value in style.properties.items()
        if value is not None
    ]
