import pytest

from pagebuilder.domain.document import Block, ClonedBody, Page, Section, Website
from pagebuilder.domain.invariants.exceptions import InvariantViolation
from pagebuilder.domain.invariants.page import assert_page
from pagebuilder.domain.invariants.section import assert_section
from pagebuilder.domain.invariants.website import assert_website


def test_sample_page_is_valid(sample_page):
    assert_page(sample_page)


def test_gap_in_section_order(sample_page):
    sample_page.sections[1].order_index = 5
    with pytest.raises(InvariantViolation):
        assert_page(sample_page)


def test_block_under_wrong_section(sample_page):
    sample_page.sections[0].blocks[0].section_id = "elsewhere"
    with pytest.raises(InvariantViolation):
        assert_section(sample_page.sections[0], sample_page)


def test_empty_cloned_section():
    section = Section(id="s", page_id="p", body=ClonedBody())
    with pytest.raises(InvariantViolation):
        assert_section(section)


def test_duplicate_node_ids(sample_page):
    hero = sample_page.sections[0]
    hero.body.blocks.append(
        Block(id="blk-heading", section_id=hero.id, block_type="text", order_index=2)
    )
    with pytest.raises(InvariantViolation):
        assert_page(sample_page)


def test_website_needs_one_home_page():
    website = Website(id="w")
    website.pages.extend([
        Page(id="a", website_id="w", slug="home", is_home=True),
        Page(id="b", website_id="w", slug="about", is_home=True),
    ])
    with pytest.raises(InvariantViolation):
        assert_website(website)

    website.pages[1].is_home = False
    assert_website(website)


def test_website_slugs_are_unique():
    website = Website(id="w")
    website.pages.extend([
        Page(id="a", website_id="w", slug="home", is_home=True),
        Page(id="b", website_id="w", slug="home"),
    ])
    with pytest.raises(InvariantViolation):
        assert_website(website)
