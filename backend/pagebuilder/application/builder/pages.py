# pagebuilder/application/builder/pages.py
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError

from pagebuilder.domain.invariants.exceptions import NodeNotFound
from pagebuilder.domain.invariants.website import assert_website
from pagebuilder.extensions import db
from pagebuilder.models.page import Page
from pagebuilder.models.website import Website
from pagebuilder.utils.audit import log_action
from pagebuilder.utils.transaction import transactional
from .persistence import SqlAlchemyPersistence


ALLOWED_UPDATE_FIELDS = {"title", "slug", "is_home", "is_published"}


def create_website(*, data: Dict[str, Any]) -> Website:
    website = Website()
    website.domain = data.get("domain")
    website.subdomain = data.get("subdomain")
    website.theme_id = data.get("theme_id")
    website.is_published = bool(data.get("is_published", False))

    try:
        with transactional():
            db.session.add(website)
    except IntegrityError as exc:
        raise ValueError("Domain or subdomain already in use") from exc
    return website


def _demote_other_homes(website_id: str, page_id: str) -> None:
    for other in Page.query.filter_by(website_id=website_id, is_home=True):
        if other.id != page_id:
            other.is_home = False


def create_page(*, website_id: str, data: Dict[str, Any]) -> Page:
    """
    Create an empty page on a website.

    Edge cases handled:
    - Missing required fields
    - Duplicate slug per website
    - First page of a website becomes its home page
    """
    website = db.session.get(Website, website_id)
    if website is None:
        raise NodeNotFound(website_id)

    title = data.get("title")
    slug = data.get("slug")
    if not title or not slug:
        raise ValueError("Both title and slug are required")

    page = Page()
    page.title = title
    page.slug = slug
    page.is_home = bool(data.get("is_home")) or not website.pages
    page.is_published = bool(data.get("is_published", False))
    page.order_index = len(website.pages)

    try:
        with transactional():
            website.pages.append(page)
            db.session.flush()  # ensures page.id is available

            if page.is_home:
                _demote_other_homes(website.id, page.id)
                db.session.flush()

            assert_website(SqlAlchemyPersistence().load_website(website.id))

            log_action(
                action="page.create",
                entity_type="page",
                entity_id=page.id,
                page_id=page.id,
                payload={"title": page.title, "slug": page.slug, "is_home": page.is_home},
            )
    except IntegrityError as exc:
        # website_id + slug is unique
        raise ValueError("A page with this slug already exists") from exc

    return page


def update_page(*, page_id: str, data: Dict[str, Any]) -> Page:
    """
    Update page metadata. Section and block content goes through the
    editing session instead.
    """
    page = db.session.get(Page, page_id)
    if page is None:
        raise NodeNotFound(page_id)

    changed_fields = []
    try:
        with transactional():
            for field in sorted(ALLOWED_UPDATE_FIELDS):
                if field in data and getattr(page, field) != data[field]:
                    setattr(page, field, data[field])
                    changed_fields.append(field)

            if not changed_fields:
                raise ValueError("No valid fields provided for update")

            if page.is_home:
                _demote_other_homes(page.website_id, page.id)
            db.session.flush()

            assert_website(SqlAlchemyPersistence().load_website(page.website_id))

            log_action(
                action="page.update",
                entity_type="page",
                entity_id=page.id,
                page_id=page.id,
                payload={"fields": changed_fields},
            )
    except IntegrityError as exc:
        raise ValueError("A page with this slug already exists") from exc

    return page
