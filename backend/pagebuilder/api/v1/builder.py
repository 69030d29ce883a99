# pagebuilder/api/v1/builder.py
from flask import request, jsonify, current_app, Response
from pagebuilder.domain.clone import compose_document, get_raw_content
from pagebuilder.domain.document import Device
from pagebuilder.domain.styles import OMIT, resolve
from pagebuilder.domain.suggestions import Suggestion, suggestions_from_analysis
from pagebuilder.normalizers.block import normalize_block
from pagebuilder.normalizers.section import normalize_section
from .editing import editing, node_session, page_session, page_stamp
from . import v1_bp


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


# ------------------------
# Sections
# ------------------------

@v1_bp.route("/pages/<page_id>/sections", methods=["POST"])
def add_section(page_id):
    session = page_session(page_id)
    data = _json_body()

    with editing(session) as engine:
        section_id = engine.add_section(
            page_id,
            data.get("section_type", "content"),
            at_index=data.get("at_index"),
            name=data.get("name"),
        )
        section = engine.get_section(section_id)

    return jsonify({
        "id": section_id,
        "section": normalize_section(section),
        "page_updated_at": page_stamp(session),
    }), 201


@v1_bp.route("/pages/<page_id>/sections/import", methods=["POST"])
def import_section(page_id):
    session = page_session(page_id)
    data = _json_body()

    with editing(session) as engine:
        section_id = engine.import_cloned_section(
            page_id,
            {key: data.get(key) for key in ("html", "css", "js")},
            at_index=data.get("at_index"),
            name=data.get("name") or "Cloned Content",
        )
        section = engine.get_section(section_id)

    current_app.logger.info("Imported cloned section %s into page %s", section_id, page_id)
    return jsonify({
        "id": section_id,
        "section": normalize_section(section),
        "page_updated_at": page_stamp(session),
    }), 201


@v1_bp.route("/sections/<section_id>", methods=["PATCH"])
def update_section(section_id):
    session = node_session(section_id)
    data = _json_body()

    with editing(session) as engine:
        engine.update(section_id, data)
        section = engine.get_section(section_id)

    return jsonify({
        "section": normalize_section(section, include_blocks=False),
        "page_updated_at": page_stamp(session),
    }), 200


@v1_bp.route("/sections/<section_id>/raw", methods=["GET"])
def get_section_raw(section_id):
    session = node_session(section_id)
    with session.lock:
        raw = get_raw_content(session.engine.get_section(section_id))
    return jsonify(raw.to_dict()), 200


@v1_bp.route("/sections/<section_id>/preview", methods=["GET"])
def preview_section(section_id):
    session = node_session(section_id)
    with session.lock:
        section = session.engine.get_section(section_id)
        document = compose_document(get_raw_content(section), title=section.name)
    return Response(document, mimetype="text/html")


# ------------------------
# Blocks
# ------------------------

@v1_bp.route("/sections/<section_id>/blocks", methods=["POST"])
def add_block(section_id):
    session = node_session(section_id)
    data = _json_body()

    block_type = data.get("block_type") or data.get("type")
    if not block_type:
        raise ValueError("block_type is required")

    with editing(session) as engine:
        block_id = engine.add_block(section_id, block_type, at_index=data.get("at_index"))
        block = engine.get_block(block_id)

    return jsonify({
        "id": block_id,
        "block": normalize_block(block),
        "page_updated_at": page_stamp(session),
    }), 201


@v1_bp.route("/blocks/<block_id>", methods=["PATCH"])
def update_block(block_id):
    session = node_session(block_id)
    data = _json_body()

    with editing(session) as engine:
        engine.update(block_id, data)
        block = engine.get_block(block_id)

    return jsonify({
        "block": normalize_block(block),
        "page_updated_at": page_stamp(session),
    }), 200


@v1_bp.route("/blocks/<block_id>/styles", methods=["GET"])
def get_block_styles(block_id):
    session = node_session(block_id)
    device = Device(request.args.get("device", Device.DESKTOP.value))

    with session.lock:
        block = session.engine.get_block(block_id)
        style = resolve(block, device, session.engine.registry)

    if style is OMIT:
        return jsonify({"id": block_id, "device": device.value, "hidden": True}), 200

    return jsonify({
        "id": block_id,
        "device": device.value,
        "hidden": False,
        "style": style.to_dict(),
    }), 200


@v1_bp.route("/blocks/<block_id>/suggestions", methods=["POST"])
def apply_block_suggestions(block_id):
    """
    Apply design suggestions to a block.

    ``suggestions`` are applied as given, in order. An ``analysis`` payload
    is expanded per selector and only entries targeting the block apply.
    """
    session = node_session(block_id)
    data = _json_body()

    if "suggestions" in data:
        records = data["suggestions"]
        if not isinstance(records, list):
            raise ValueError("suggestions must be a list")
        suggestions = [Suggestion.from_dict(r) for r in records]
    elif "analysis" in data:
        suggestions = suggestions_from_analysis(data["analysis"])
    else:
        raise ValueError("Provide suggestions or analysis")

    with editing(session) as engine:
        if "analysis" in data and "suggestions" not in data:
            suggestions = [s for s in suggestions if s.matches(engine.get_block(block_id))]
        block = engine.apply_suggestions(block_id, suggestions)

    return jsonify({
        "block": normalize_block(block),
        "applied": len(suggestions),
        "page_updated_at": page_stamp(session),
    }), 200


# ------------------------
# Shared node operations
# ------------------------

def _check_kind(engine, node_id, kind):
    if kind == "section":
        engine.get_section(node_id)
    else:
        engine.get_block(node_id)


def _delete_node(node_id, kind):
    session = node_session(node_id)
    with editing(session) as engine:
        _check_kind(engine, node_id, kind)
        engine.delete(node_id)

    return jsonify({
        "message": "Deleted",
        "id": node_id,
        "page_updated_at": page_stamp(session),
    }), 200


def _move_node(node_id, kind):
    session = node_session(node_id)
    data = _json_body()

    with editing(session) as engine:
        _check_kind(engine, node_id, kind)
        index = engine.move(node_id, data.get("index"))

    return jsonify({
        "id": node_id,
        "index": index,
        "page_updated_at": page_stamp(session),
    }), 200


def _duplicate_node(node_id, kind):
    session = node_session(node_id)
    with editing(session) as engine:
        _check_kind(engine, node_id, kind)
        clone_id = engine.duplicate(node_id)

    return jsonify({
        "id": clone_id,
        "source_id": node_id,
        "page_updated_at": page_stamp(session),
    }), 201


@v1_bp.route("/sections/<section_id>", methods=["DELETE"])
def delete_section(section_id):
    return _delete_node(section_id, "section")


@v1_bp.route("/blocks/<block_id>", methods=["DELETE"])
def delete_block(block_id):
    return _delete_node(block_id, "block")


@v1_bp.route("/sections/<section_id>/move", methods=["POST"])
def move_section(section_id):
    return _move_node(section_id, "section")


@v1_bp.route("/blocks/<block_id>/move", methods=["POST"])
def move_block(block_id):
    return _move_node(block_id, "block")


@v1_bp.route("/sections/<section_id>/duplicate", methods=["POST"])
def duplicate_section(section_id):
    return _duplicate_node(section_id, "section")


@v1_bp.route("/blocks/<block_id>/duplicate", methods=["POST"])
def duplicate_block(block_id):
    return _duplicate_node(block_id, "block")
