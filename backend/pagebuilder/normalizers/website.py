from .page import normalize_page


def normalize_website(website, include_sections=False):
    pages = sorted(website.pages, key=lambda p: p.order_index)

    data = {
        "id": website.id,
        "is_published": website.is_published,
        "domain": website.domain,
        "subdomain": website.subdomain,
        "theme_id": website.theme_id,
        "pages": [],
    }

    for page in pages:
        page_data = normalize_page(page)
        if not include_sections:
            page_data.pop("sections")
        data["pages"].append(page_data)

    return data
