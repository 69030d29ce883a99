# pagebuilder/api/v1/registry.py
from flask import jsonify
from pagebuilder.application.builder.editor import get_workspace
from . import v1_bp


@v1_bp.route("/registry/block-types", methods=["GET"])
def list_block_types():
    registry = get_workspace().registry
    return jsonify({
        "data": [t.to_dict() for t in registry.flat()],
        "groups": [
            {"category": category, "types": [t.tag for t in types]}
            for category, types in registry.grouped().items()
        ],
    }), 200
