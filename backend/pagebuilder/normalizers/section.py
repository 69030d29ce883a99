from pagebuilder.domain.clone import get_raw_content, is_clone, split_legacy_styles
from pagebuilder.domain.document import ClonedBody, Section, SectionKind, StructuredBody, StyleRecord
from .block import normalize_block, parse_block


def normalize_section(section, include_blocks=True):
    data = {
        "id": section.id,
        "page_id": section.page_id,
        "name": section.name,
        "section_type": section.section_type,
        "kind": section.kind.value,
        "order_index": section.order_index,
        "styles": section.styles.to_flat(),
    }

    if is_clone(section):
        data["raw"] = get_raw_content(section).to_dict()
    elif include_blocks:
        data["blocks"] = [normalize_block(b) for b in section.blocks]

    return data


def parse_section(data, page_id=None):
    """
    Build a domain Section from its normalized (or stored) form.

    Rows without an explicit ``kind`` fall back to the legacy
    ``styles.cloneMode`` flag.
    """
    if not data.get("id"):
        raise ValueError("Section id is required")

    kind = data.get("kind")
    styles = data.get("styles") or {}

    if kind is None:
        body, styles = split_legacy_styles(styles)
    elif kind == SectionKind.CLONED.value:
        raw = data.get("raw") or {}
        body = ClonedBody(
            html=raw.get("html") or "",
            css=raw.get("css") or "",
            js=raw.get("js") or "",
        )
    elif kind == SectionKind.STRUCTURED.value:
        body = StructuredBody()
    else:
        raise ValueError(f"Unknown section kind: {kind}")

    section = Section(
        id=data["id"],
        page_id=page_id or data.get("page_id"),
        body=body,
        name=data.get("name") or "",
        section_type=data.get("section_type") or "content",
        styles=StyleRecord.from_flat(styles),
        order_index=int(data.get("order_index", 0)),
    )

    if isinstance(body, StructuredBody):
        body.blocks.extend(
            parse_block(b, section_id=section.id) for b in data.get("blocks") or []
        )

    return section
