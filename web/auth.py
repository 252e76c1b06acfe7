"""Shared-token protection for the admin routes.

The draw runs on one laptop in a meeting room, so a single token from
``ADMIN_TOKEN`` is enough to stop a guest on the same network from
replacing the roster. With no token configured the routes are open.
"""

from __future__ import annotations

import hmac
from functools import wraps
from typing import Callable

from flask import current_app, jsonify, request

ADMIN_TOKEN_HEADER = "X-Admin-Token"


def check_admin_token(expected: str, provided: str) -> bool:
    if not expected:
        return True
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def admin_required(view: Callable) -> Callable:
    @wraps(view)
    def wrapper(*args, **kwargs):
        expected = current_app.config.get("ADMIN_TOKEN", "")
        provided = request.headers.get(ADMIN_TOKEN_HEADER, "")
        if not check_admin_token(expected, provided):
            current_app.logger.warning(f"Rejected admin request to {request.path}: bad or missing token")
            return jsonify({"ok": False, "error": "Admin token required"}), 401
        return view(*args, **kwargs)

    return wrapper
