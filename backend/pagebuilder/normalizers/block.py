from pagebuilder.domain.document import Block, StyleRecord, Visibility


def normalize_block(block):
    return {
        "id": block.id,
        "section_id": block.section_id,
        "block_type": block.block_type,
        "order_index": block.order_index,
        "content": block.content or {},
        "styles": block.styles.to_flat(),
        "visibility": block.visibility.to_dict(),
    }


def parse_block(data, section_id=None):
    """Build a domain Block from its normalized (or stored) form."""
    if not data.get("id"):
        raise ValueError("Block id is required")

    return Block(
        id=data["id"],
        section_id=section_id or data.get("section_id"),
        block_type=data.get("block_type") or data.get("type"),
        content=dict(data.get("content") or {}),
        styles=StyleRecord.from_flat(data.get("styles")),
        visibility=Visibility.from_dict(data.get("visibility")),
        order_index=int(data.get("order_index", 0)),
    )
