from pagebuilder.domain.document import Page
from .section import normalize_section, parse_section


def normalize_page(page, include_blocks=True):
    sections = sorted(page.sections, key=lambda s: s.order_index)

    return {
        "id": page.id,
        "website_id": page.website_id,
        "title": page.title,
        "slug": page.slug,
        "is_home": page.is_home,
        "is_published": page.is_published,
        "order_index": page.order_index,
        "sections": [
            normalize_section(s, include_blocks=include_blocks)
            for s in sections
        ]
    }


def parse_page(data):
    if not data.get("id"):
        raise ValueError("Page id is required")

    page = Page(
        id=data["id"],
        website_id=data.get("website_id"),
        title=data.get("title") or "",
        slug=data.get("slug") or "",
        is_home=bool(data.get("is_home", False)),
        is_published=bool(data.get("is_published", False)),
        order_index=int(data.get("order_index", 0)),
    )
    page.sections.extend(
        parse_section(s, page_id=page.id) for s in data.get("sections") or []
    )
    return page
