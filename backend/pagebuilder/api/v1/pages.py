# pagebuilder/api/v1/pages.py
from flask import request, jsonify
from pagebuilder.application.builder import pages as page_service
from pagebuilder.application.builder.editor import get_workspace
from pagebuilder.domain.document import Device
from pagebuilder.domain.render import render_page
from pagebuilder.normalizers.page import normalize_page
from pagebuilder.normalizers.version import normalize_version
from pagebuilder.normalizers.website import normalize_website
from .editing import editing, page_session, page_stamp
from . import v1_bp


# ------------------------
# Websites
# ------------------------

@v1_bp.route("/websites", methods=["POST"])
def create_website():
    data = request.get_json(silent=True) or {}
    website = page_service.create_website(data=data)
    return jsonify({"id": website.id, "message": "Website created successfully"}), 201


@v1_bp.route("/websites/<website_id>", methods=["GET"])
def get_website(website_id):
    website = get_workspace().store.load_website(website_id)
    return jsonify(normalize_website(website)), 200


@v1_bp.route("/websites/<website_id>/pages", methods=["POST"])
def create_page(website_id):
    data = request.get_json(silent=True) or {}
    page = page_service.create_page(website_id=website_id, data=data)
    # a new home page demotes the previous one
    get_workspace().sync_page_metadata(website_id)
    return jsonify({
        "id": page.id,
        "is_home": page.is_home,
        "message": "Page created successfully"
    }), 201


# ------------------------
# Pages
# ------------------------

@v1_bp.route("/pages/<page_id>", methods=["GET"])
def get_page(page_id):
    session = page_session(page_id)
    with session.lock:
        data = normalize_page(session.engine.page)
        data["history"] = session.history.history_info()
    data["page_updated_at"] = page_stamp(session)
    return jsonify(data), 200


@v1_bp.route("/pages/<page_id>", methods=["PATCH"])
def update_page(page_id):
    data = request.get_json(silent=True) or {}

    session = page_session(page_id)
    with editing(session):
        row = page_service.update_page(page_id=page_id, data=data)

    # sibling pages may have lost their home flag
    get_workspace().sync_page_metadata(row.website_id)

    return jsonify({
        "message": "Page updated successfully",
        "page_updated_at": row.updated_at.isoformat(),
    }), 200


@v1_bp.route("/pages/<page_id>/render", methods=["GET"])
def render(page_id):
    session = page_session(page_id)
    device = Device(request.args.get("device", Device.DESKTOP.value))
    with session.lock:
        plan = render_page(session.engine.page, device, session.engine.registry)
    return jsonify(plan), 200


# ------------------------
# History
# ------------------------

@v1_bp.route("/pages/<page_id>/versions", methods=["GET"])
def list_versions(page_id):
    session = page_session(page_id)
    with session.lock:
        versions = session.history.versions()

    return jsonify([
        normalize_version(v) for v in reversed(versions)
    ]), 200


@v1_bp.route("/pages/<page_id>/versions/<int:version>", methods=["GET"])
def get_version(page_id, version):
    session = page_session(page_id)
    with session.lock:
        snapshot = session.history.get(version)
    return jsonify(normalize_version(snapshot, include_snapshot=True)), 200


@v1_bp.route("/pages/<page_id>/rollback/<int:version>", methods=["POST"])
def rollback_page(page_id, version):
    session = page_session(page_id)
    with editing(session):
        new_version = session.history.rollback(version)

    return jsonify({
        "page_id": page_id,
        "from_version": version,
        "new_version": new_version.version,
        "page_updated_at": page_stamp(session),
    }), 200


@v1_bp.route("/pages/<page_id>/undo", methods=["POST"])
def undo(page_id):
    session = page_session(page_id)
    with editing(session):
        changed = session.history.undo()
        info = session.history.history_info()

    return jsonify({
        "changed": changed,
        "history": info,
        "page_updated_at": page_stamp(session),
    }), 200


@v1_bp.route("/pages/<page_id>/redo", methods=["POST"])
def redo(page_id):
    session = page_session(page_id)
    with editing(session):
        changed = session.history.redo()
        info = session.history.history_info()

    return jsonify({
        "changed": changed,
        "history": info,
        "page_updated_at": page_stamp(session),
    }), 200
