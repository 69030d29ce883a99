"""
Pytest fixtures for the page builder tests.
"""
import pytest

from pagebuilder import create_app
from pagebuilder.domain.document import (
    Block,
    ClonedBody,
    Page,
    Section,
    StructuredBody,
    StyleRecord,
)
from pagebuilder.domain.mutations import TreeMutationEngine
from pagebuilder.extensions import db


@pytest.fixture
def sample_page() -> Page:
    """A page with a structured section (heading + button) and a cloned section."""
    page = Page(id="page-1", website_id="site-1", title="Home", slug="home", is_home=True)

    hero = Section(id="sec-hero", page_id=page.id, name="Hero", section_type="hero", order_index=0)
    hero.body.blocks.extend([
        Block(
            id="blk-heading",
            section_id=hero.id,
            block_type="heading",
            content={"text": "Welcome", "level": 1},
            styles=StyleRecord.from_flat({"color": "#ff0000", "elementId": "main-title"}),
            order_index=0,
        ),
        Block(
            id="blk-button",
            section_id=hero.id,
            block_type="button",
            content={"text": "Join", "url": "/join"},
            order_index=1,
        ),
    ])

    imported = Section(
        id="sec-clone",
        page_id=page.id,
        body=ClonedBody(html="<div class='x'>Hi</div>", css=".x{color:red}", js=""),
        name="Cloned Content",
        order_index=1,
    )

    page.sections.extend([hero, imported])
    return page


@pytest.fixture
def engine(sample_page) -> TreeMutationEngine:
    return TreeMutationEngine(sample_page)


@pytest.fixture
def empty_section_page() -> Page:
    page = Page(id="page-2", website_id="site-1", title="About", slug="about")
    page.sections.append(Section(id="sec-empty", page_id=page.id, body=StructuredBody()))
    return page


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        app.extensions["pagebuilder"].close_all()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def page_id(client) -> str:
    """An empty home page stored in the database."""
    website = client.post("/api/v1/websites", json={"subdomain": "tigers"})
    assert website.status_code == 201

    page = client.post(
        f"/api/v1/websites/{website.get_json()['id']}/pages",
        json={"title": "Home", "slug": "home"},
    )
    assert page.status_code == 201
    return page.get_json()["id"]
