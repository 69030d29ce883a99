"""
Device-specific render plan of a page.

No markup is produced here; front ends turn the plan into HTML.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pagebuilder.domain.clone import get_raw_content, is_clone
from pagebuilder.domain.document import Block, Device, Page, Section
from pagebuilder.domain.registry import UNKNOWN_TAG, BlockTypeRegistry, default_registry
from pagebuilder.domain.styles import OMIT, inline_declarations, resolve


def render_block(
    block: Block,
    device=Device.DESKTOP,
    registry: Optional[BlockTypeRegistry] = None,
) -> Optional[Dict[str, Any]]:
    """Plan for one block, or ``None`` when it is hidden on ``device``."""
    registry = registry or default_registry
    style = resolve(block, device, registry)
    if style is OMIT:
        return None

    block_type = registry.lookup(block.block_type)
    if block_type.tag == UNKNOWN_TAG:
        return {
            "id": block.id,
            "block_type": UNKNOWN_TAG,
            "placeholder": f"Unknown block type: {block.block_type}",
            "original_type": block.block_type,
            "style": style.to_dict(),
        }

    return {
        "id": block.id,
        "block_type": block_type.tag,
        "content": block.content,
        "style": style.to_dict(),
        "inline": inline_declarations(style),
    }


def render_section(
    section: Section,
    device=Device.DESKTOP,
    registry: Optional[BlockTypeRegistry] = None,
) -> Dict[str, Any]:
    plan: Dict[str, Any] = {
        "id": section.id,
        "kind": section.kind.value,
        "section_type": section.section_type,
        "styles": section.styles.to_flat(),
    }

    if is_clone(section):
        plan["raw"] = get_raw_content(section).to_dict()
        return plan

    blocks: List[Dict[str, Any]] = []
    for block in section.blocks:
        rendered = render_block(block, device, registry)
        if rendered is not None:
            blocks.append(rendered)
    plan["blocks"] = blocks
    return plan


def render_page(
    page: Page,
    device=Device.DESKTOP,
    registry: Optional[BlockTypeRegistry] = None,
) -> Dict[str, Any]:
    device = Device(device)
    return {
        "page_id": page.id,
        "device": device.value,
        "sections": [render_section(s, device, registry) for s in page.sections],
    }
