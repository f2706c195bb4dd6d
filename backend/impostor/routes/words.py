from __future__ import annotations

from flask import Blueprint, current_app, jsonify

bp = Blueprint("words", __name__)


@bp.get("/categories")
def get_categories():
    categories = current_app.extensions["impostor"].engine.categories
    return jsonify({
        "categories": [c["name"] for c in categories],
        "count": len(categories),
    })
