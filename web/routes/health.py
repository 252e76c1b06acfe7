"""Health check blueprint."""

from __future__ import annotations

from flask import Blueprint, jsonify

from services import call_in_loop
from web.routes.draw import get_runtime


health_bp = Blueprint("health", __name__)


def _health_view(runtime) -> dict:
    machine = runtime.machine
    return {
        "status": "degraded" if machine.storage_warning else "ok",
        "stage": machine.stage.value,
        "complete": machine.is_complete,
        "drawn": machine.store.drawn_count,
        "total": len(machine.store.participants),
        "storage_backend": runtime.saver.last_backend,
        "storage_warning": machine.storage_warning,
        "save_pending": runtime.saver.pending,
    }


@health_bp.route("/health")
def health_check():
    return jsonify(call_in_loop(_health_view, get_runtime()))
