from flask import jsonify
from werkzeug.exceptions import HTTPException
from pagebuilder.domain.invariants.exceptions import (
    BuilderError,
    InvalidChildForVariant,
    NodeNotFound,
    ParentNotFound,
)

STATUS_BY_ERROR = (
    (NodeNotFound, 404),
    (ParentNotFound, 404),
    (InvalidChildForVariant, 409),
)


def status_for(error):
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 400


def register_error_handlers(app):
    @app.errorhandler(BuilderError)
    def handle_builder_error(error):
        response = jsonify(error.to_dict())
        response.status_code = status_for(error)
        return response

    @app.errorhandler(ValueError)
    def handle_value_error(error):
        response = jsonify({
            "error": "ValueError",
            "message": str(error)
        })
        response.status_code = 400
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        response = jsonify({
            "error": error.name,
            "message": error.description
        })
        response.status_code = error.code
        return response
