"""
Merging externally generated design suggestions into block styles.

A suggestion is a plain property-map overwrite: applying it twice is the
same as applying it once, suggestions touching disjoint keys commute, and
overlapping ones resolve to the last one applied.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional

from pagebuilder.domain.document import Block

CATEGORIES = ("color", "typography", "spacing", "layout", "accessibility", "modern-design")
PRIORITIES = ("high", "medium", "low")


@dataclass(frozen=True)
class Suggestion:
    target: str
    property_map: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    title: str = ""
    description: str = ""
    category: Optional[str] = None
    priority: Optional[str] = None

    def matches(self, block: Block) -> bool:
        """
        True when ``target`` designates ``block``.

        Accepted targets: the block id, ``#<elementId>``, ``.<className>``
        or the bare block type tag.
        """
        target = (self.target or "").strip()
        if not target:
            return False
        if target == block.id:
            return True
        if target.startswith("#"):
            return block.styles.element_id == target[1:]
        if target.startswith("."):
            return target[1:] in (block.styles.class_names or ())
        return target == block.block_type

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Suggestion":
        target = data.get("target")
        property_map = data.get("property_map", data.get("propertyMap"))
        if not isinstance(target, str) or not target:
            raise ValueError("Suggestion target is required")
        if not isinstance(property_map, dict):
            raise ValueError("Suggestion property_map must be an object")
        return cls(
            target=target,
            property_map=dict(property_map),
            id=data.get("id"),
            title=data.get("title") or "",
            description=data.get("description") or "",
            category=data.get("category"),
            priority=data.get("priority"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "target": self.target,
            "property_map": dict(self.property_map),
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
        }


def apply(block: Block, suggestion: Suggestion) -> Block:
    """Return a new block with ``suggestion.property_map`` merged into its styles."""
    return replace(
        block,
        content=copy.deepcopy(block.content),
        styles=block.styles.merged_flat(suggestion.property_map),
        visibility=replace(block.visibility),
    )


def apply_all(block: Block, suggestions: Iterable[Suggestion]) -> Block:
    """Apply suggestions in the order given; later ones win on shared keys."""
    result = block
    for suggestion in suggestions:
        result = apply(result, suggestion)
    return result


def apply_matching(block: Block, suggestions: Iterable[Suggestion]) -> Block:
    return apply_all(block, [s for s in suggestions if s.matches(block)])


def suggestions_from_analysis(payload: Dict[str, Any]) -> List[Suggestion]:
    """
    Expand design-analysis records into ordered suggestions.

    Each record carries ``cssChanges: {selector: {property: value}}``; one
    suggestion is produced per selector, in record then selector order.
    """
    records = payload.get("suggestions", []) if isinstance(payload, dict) else payload
    if not isinstance(records, list):
        raise ValueError("Analysis payload must contain a list of suggestions")

    suggestions: List[Suggestion] = []
    for record in records:
        if not isinstance(record, dict):
            raise ValueError("Each suggestion record must be an object")
        changes = record.get("cssChanges") or {}
        if not isinstance(changes, dict):
            raise ValueError("cssChanges must map selectors to property maps")

        category = record.get("category")
        priority = record.get("priority")
        for selector, property_map in changes.items():
            if not isinstance(property_map, dict):
                raise ValueError(f"Property map for selector {selector!r} must be an object")
            suggestions.append(
                Suggestion(
                    target=selector,
                    property_map=dict(property_map),
                    id=record.get("id"),
                    title=record.get("title") or "",
                    description=record.get("description") or "",
                    category=category if category in CATEGORIES else None,
                    priority=priority if priority in PRIORITIES else None,
                )
            )
    return suggestions
