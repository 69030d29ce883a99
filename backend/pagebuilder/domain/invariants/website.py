from .page import assert_page
from .exceptions import InvariantViolation


def assert_website(website):
    pages = website.pages
    if not pages:
        return

    homes = [page.id for page in pages if page.is_home]
    if len(homes) != 1:
        raise InvariantViolation(
            f"Website {website.id} must have exactly one home page, found {len(homes)}."
        )

    slugs = [page.slug for page in pages]
    duplicates = sorted({slug for slug in slugs if slugs.count(slug) > 1})
    if duplicates:
        raise InvariantViolation(
            f"Page slugs must be unique within a website: {duplicates}"
        )

    for page in pages:
        if page.website_id != website.id:
            raise InvariantViolation(
                f"Page {page.id} points at website {page.website_id} "
                f"but is stored under {website.id}."
            )
        assert_page(page)
