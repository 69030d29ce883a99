from datetime import datetime, timedelta, timezone

import pytest

from pagebuilder.extensions import db
from pagebuilder.models.audit_log import AuditLog
from pagebuilder.models.block import Block
from pagebuilder.models.page import Page
from pagebuilder.models.page_version import PageVersion
from pagebuilder.models.section import Section


API = "/api/v1"


def _add_section(client, page_id, **body):
    response = client.post(f"{API}/pages/{page_id}/sections", json=body)
    assert response.status_code == 201
    return response.get_json()["id"]


def _add_block(client, section_id, block_type, **body):
    response = client.post(
        f"{API}/sections/{section_id}/blocks", json={"block_type": block_type, **body}
    )
    assert response.status_code == 201
    return response.get_json()["id"]


def test_health(client):
    response = client.get(f"{API}/health")
    assert response.get_json() == {"status": "ok", "service": "pagebuilder"}


def test_registry_listing(client):
    data = client.get(f"{API}/registry/block-types").get_json()
    tags = [t["tag"] for t in data["data"]]
    assert "heading" in tags and "team-roster" in tags
    assert data["groups"][0]["category"] == "Text"


def test_first_page_becomes_home(client):
    website_id = client.post(f"{API}/websites", json={}).get_json()["id"]
    first = client.post(f"{API}/websites/{website_id}/pages", json={"title": "Home", "slug": "home"})
    second = client.post(f"{API}/websites/{website_id}/pages", json={"title": "About", "slug": "about"})

    assert first.get_json()["is_home"] is True
    assert second.get_json()["is_home"] is False

    duplicate = client.post(f"{API}/websites/{website_id}/pages", json={"title": "Again", "slug": "about"})
    assert duplicate.status_code == 400

    pages = client.get(f"{API}/websites/{website_id}").get_json()["pages"]
    assert [p["slug"] for p in pages] == ["home", "about"]


def test_edits_are_persisted(app, client, page_id):
    section_id = _add_section(client, page_id, section_type="hero")
    heading_id = _add_block(client, section_id, "heading")
    button_id = _add_block(client, section_id, "button", at_index=0)

    response = client.patch(f"{API}/blocks/{heading_id}", json={"content": {"text": "Go Tigers"}})
    assert response.status_code == 200

    with app.app_context():
        rows = Block.query.filter_by(section_id=section_id).order_by(Block.order_index).all()
        assert [(r.id, r.order_index) for r in rows] == [(button_id, 0), (heading_id, 1)]
        assert rows[1].content == {"text": "Go Tigers", "level": 2}
        assert db.session.get(Section, section_id).kind == "structured"


def test_document_matches_after_reopen(app, client, page_id):
    section_id = _add_section(client, page_id)
    _add_block(client, section_id, "paragraph")
    before = client.get(f"{API}/pages/{page_id}").get_json()

    with app.app_context():
        app.extensions["pagebuilder"].close(page_id)

    after = client.get(f"{API}/pages/{page_id}").get_json()
    assert after["sections"] == before["sections"]


def test_delete_section_removes_rows_and_records_version(app, client, page_id):
    section_id = _add_section(client, page_id)
    block_id = _add_block(client, section_id, "text")

    response = client.delete(f"{API}/sections/{section_id}")
    assert response.status_code == 200

    with app.app_context():
        assert db.session.get(Section, section_id) is None
        assert db.session.get(Block, block_id) is None
        version = PageVersion.query.filter_by(page_id=page_id).one()
        assert version.status == "delete"
        assert version.snapshot["sections"][0]["id"] == section_id

    versions = client.get(f"{API}/pages/{page_id}/versions").get_json()
    assert [v["version"] for v in versions] == [1]


def test_rollback_brings_section_back(app, client, page_id):
    section_id = _add_section(client, page_id)
    _add_block(client, section_id, "text")
    client.delete(f"{API}/sections/{section_id}")

    response = client.post(f"{API}/pages/{page_id}/rollback/1")
    assert response.status_code == 200
    assert response.get_json()["new_version"] == 2

    page = client.get(f"{API}/pages/{page_id}").get_json()
    assert [s["id"] for s in page["sections"]] == [section_id]

    with app.app_context():
        assert db.session.get(Section, section_id) is not None

    assert client.post(f"{API}/pages/{page_id}/rollback/9").status_code == 404


def test_undo_and_redo(client, page_id):
    section_id = _add_section(client, page_id)
    _add_block(client, section_id, "divider")

    undo = client.post(f"{API}/pages/{page_id}/undo").get_json()
    assert undo["changed"] is True
    page = client.get(f"{API}/pages/{page_id}").get_json()
    assert page["sections"][0]["blocks"] == []

    client.post(f"{API}/pages/{page_id}/redo")
    page = client.get(f"{API}/pages/{page_id}").get_json()
    assert [b["block_type"] for b in page["sections"][0]["blocks"]] == ["divider"]


def test_move_and_duplicate(client, page_id):
    first = _add_section(client, page_id, name="First")
    second = _add_section(client, page_id, name="Second")

    moved = client.post(f"{API}/sections/{second}/move", json={"index": 0})
    assert moved.get_json()["index"] == 0

    copy_id = client.post(f"{API}/sections/{second}/duplicate").get_json()["id"]
    page = client.get(f"{API}/pages/{page_id}").get_json()
    assert [s["id"] for s in page["sections"]] == [second, copy_id, first]
    assert [s["order_index"] for s in page["sections"]] == [0, 1, 2]

    assert client.post(f"{API}/sections/{first}/move", json={}).status_code == 400


def test_cloned_section_endpoints(client, page_id):
    response = client.post(
        f"{API}/pages/{page_id}/sections/import",
        json={"html": "<header>Club</header>", "css": "header{}", "js": ""},
    )
    assert response.status_code == 201
    section_id = response.get_json()["id"]

    raw = client.get(f"{API}/sections/{section_id}/raw").get_json()
    assert raw["html"] == "<header>Club</header>"

    preview = client.get(f"{API}/sections/{section_id}/preview")
    assert preview.mimetype == "text/html"
    assert b"<header>Club</header>" in preview.data

    blocked = client.post(f"{API}/sections/{section_id}/blocks", json={"block_type": "heading"})
    assert blocked.status_code == 409
    assert blocked.get_json()["error"] == "InvalidChildForVariant"

    edit = client.patch(f"{API}/sections/{section_id}", json={"html": "<p>x</p>"})
    assert edit.status_code == 409


def test_error_mapping(client, page_id):
    section_id = _add_section(client, page_id)

    unknown = client.post(f"{API}/sections/{section_id}/blocks", json={"block_type": "hologram"})
    assert unknown.status_code == 400
    assert unknown.get_json()["error"] == "UnknownBlockType"

    assert client.patch(f"{API}/blocks/missing", json={}).status_code == 404
    assert client.get(f"{API}/pages/missing").status_code == 404
    assert client.get(f"{API}/pages/{page_id}/render?device=watch").status_code == 400


def test_styles_and_render(client, page_id):
    section_id = _add_section(client, page_id)
    block_id = _add_block(client, section_id, "heading")
    client.patch(f"{API}/blocks/{block_id}", json={
        "styles": {"color": "#123456"},
        "visibility": {"mobile": False},
    })

    desktop = client.get(f"{API}/blocks/{block_id}/styles").get_json()
    assert desktop["style"]["properties"]["color"] == "#123456"
    assert desktop["style"]["properties"]["fontWeight"] == "700"

    mobile = client.get(f"{API}/blocks/{block_id}/styles?device=mobile").get_json()
    assert mobile["hidden"] is True

    plan = client.get(f"{API}/pages/{page_id}/render?device=mobile").get_json()
    assert plan["sections"][0]["blocks"] == []


def test_apply_suggestions(client, page_id):
    section_id = _add_section(client, page_id)
    block_id = _add_block(client, section_id, "button")
    client.patch(f"{API}/blocks/{block_id}", json={"styles": {"className": "cta"}})

    response = client.post(f"{API}/blocks/{block_id}/suggestions", json={
        "analysis": {
            "suggestions": [
                {"cssChanges": {".cta": {"borderRadius": "9999px"}, ".footer": {"color": "red"}}},
            ]
        }
    })
    assert response.status_code == 200
    body = response.get_json()
    assert body["applied"] == 1
    assert body["block"]["styles"] == {"borderRadius": "9999px", "className": "cta"}


def test_optimistic_lock(client, page_id):
    section_id = _add_section(client, page_id)

    stale = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    conflict = client.post(
        f"{API}/sections/{section_id}/blocks",
        json={"block_type": "text"},
        headers={"If-Unmodified-Since": stale},
    )
    assert conflict.status_code == 409

    fresh = client.get(f"{API}/pages/{page_id}").get_json()["page_updated_at"]
    accepted = client.post(
        f"{API}/sections/{section_id}/blocks",
        json={"block_type": "text"},
        headers={"If-Unmodified-Since": fresh},
    )
    assert accepted.status_code == 201

    bad = client.post(
        f"{API}/sections/{section_id}/blocks",
        json={"block_type": "text"},
        headers={"If-Unmodified-Since": "not a date"},
    )
    assert bad.status_code == 400


def test_every_mutation_is_audited(app, client, page_id):
    section_id = _add_section(client, page_id)
    block_id = _add_block(client, section_id, "text")
    client.delete(f"{API}/blocks/{block_id}")

    with app.app_context():
        actions = {log.action for log in AuditLog.query.filter_by(page_id=page_id)}
    assert {"page.create", "section.add", "block.add", "block.delete"} <= actions

    listing = client.get(f"{API}/pages/{page_id}/audit?limit=2").get_json()
    assert len(listing["data"]) == 2
    assert listing["meta"]["has_more"] is True

    filtered = client.get(f"{API}/pages/{page_id}/audit?entity_id={block_id}").get_json()
    assert {log["action"] for log in filtered["data"]} == {"block.add", "block.delete"}


def test_storage_failure_keeps_the_edit(app, client, page_id, monkeypatch):
    section_id = _add_section(client, page_id)
    workspace = app.extensions["pagebuilder"]

    def broken(section):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(workspace.store, "save_blocks", broken)
    response = client.post(f"{API}/sections/{section_id}/blocks", json={"block_type": "text"})

    assert response.status_code == 201
    block_id = response.get_json()["id"]
    page = client.get(f"{API}/pages/{page_id}").get_json()
    assert [b["id"] for b in page["sections"][0]["blocks"]] == [block_id]

    with app.app_context():
        assert db.session.get(Block, block_id) is None


def test_page_metadata_update(client, page_id):
    response = client.patch(f"{API}/pages/{page_id}", json={"title": "Welcome"})
    assert response.status_code == 200
    assert client.get(f"{API}/pages/{page_id}").get_json()["title"] == "Welcome"

    demote = client.patch(f"{API}/pages/{page_id}", json={"is_home": False})
    assert demote.status_code == 400
    assert demote.get_json()["error"] == "InvariantViolation"


def test_audit_rows_are_immutable(app, client, page_id):
    with app.app_context():
        log = AuditLog.query.filter_by(page_id=page_id).first()
        log.action = "tampered"
        try:
            db.session.commit()
        except RuntimeError:
            db.session.rollback()
        else:
            raise AssertionError("audit row was updated")
        assert db.session.get(Page, page_id) is not None


def test_store_writes_single_nodes(app, client, page_id):
    section_id = _add_section(client, page_id)
    block_id = _add_block(client, section_id, "quote")

    with app.app_context():
        store = app.extensions["pagebuilder"].store
        page = store.load_page(page_id)
        section = page.sections[0]
        block = section.blocks[0]

        section.name = "Renamed"
        block.content["author"] = "Coach"
        store.save_section(section)
        store.save_block(block)
        db.session.commit()

        assert db.session.get(Section, section_id).name == "Renamed"
        assert db.session.get(Block, block_id).content["author"] == "Coach"
        assert store.page_id_for(block_id) == page_id

        store.delete_block(block_id)
        db.session.commit()
        assert db.session.get(Block, block_id) is None


@pytest.mark.filterwarnings("error::sqlalchemy.exc.SAWarning")
def test_new_rows_are_inserted(app, client, page_id):
    section_id = _add_section(client, page_id, section_type="hero")
    block_id = _add_block(client, section_id, "heading")
    copy_id = client.post(f"{API}/sections/{section_id}/duplicate").get_json()["id"]

    with app.app_context():
        assert db.session.get(Section, section_id).page_id == page_id
        assert db.session.get(Block, block_id).section_id == section_id
        assert Block.query.filter_by(section_id=copy_id).count() == 1

        app.extensions["pagebuilder"].close(page_id)

    sections = client.get(f"{API}/pages/{page_id}").get_json()["sections"]
    assert [s["id"] for s in sections] == [section_id, copy_id]
    assert sections[0]["blocks"][0]["id"] == block_id


def test_invalid_style_values_are_stored(client, page_id):
    section_id = _add_section(client, page_id)
    block_id = _add_block(client, section_id, "heading")

    response = client.patch(f"{API}/blocks/{block_id}", json={
        "styles": {"className": 5, "opacity": "abc"},
    })
    assert response.status_code == 200

    resolved = client.get(f"{API}/blocks/{block_id}/styles").get_json()
    assert resolved["style"]["properties"]["opacity"] == "abc"

    applied = client.post(f"{API}/blocks/{block_id}/suggestions", json={
        "suggestions": [{"target": block_id, "property_map": {"className": 9}}],
    })
    assert applied.status_code == 200
    assert applied.get_json()["block"]["styles"]["className"] == "9"


def test_open_sessions_follow_home_page_changes(client, page_id):
    website_id = client.get(f"{API}/pages/{page_id}").get_json()["website_id"]
    assert client.get(f"{API}/pages/{page_id}").get_json()["is_home"] is True

    about = client.post(f"{API}/websites/{website_id}/pages", json={
        "title": "About", "slug": "about", "is_home": True,
    })
    assert about.status_code == 201
    about_id = about.get_json()["id"]
    assert client.get(f"{API}/pages/{page_id}").get_json()["is_home"] is False

    client.get(f"{API}/pages/{about_id}")
    response = client.patch(f"{API}/pages/{page_id}", json={"is_home": True})
    assert response.status_code == 200
    assert client.get(f"{API}/pages/{about_id}").get_json()["is_home"] is False
    assert client.get(f"{API}/pages/{page_id}").get_json()["is_home"] is True
