"""Projector API: one endpoint per operator button."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from services import call_in_loop, run_coroutine_sync
from services.draw_runtime import DrawRuntime


draw_bp = Blueprint("draw", __name__, url_prefix="/api")


def get_runtime() -> DrawRuntime:
    runtime = current_app.config.get("DRAW_RUNTIME")
    if runtime is None:
        raise RuntimeError("Draw runtime is not attached to the app")
    return runtime


def _transition_response(accepted: bool):
    """Snapshot after an operator action; 409 when the action was ignored."""
    snapshot = call_in_loop(get_runtime().machine.snapshot)
    return jsonify({"ok": accepted, "session": snapshot}), (200 if accepted else 409)


@draw_bp.route("/session")
def session_state():
    return jsonify(call_in_loop(get_runtime().machine.snapshot))


@draw_bp.route("/draw/start", methods=["POST"])
def start_draw():
    accepted = run_coroutine_sync(get_runtime().machine.start_draw())
    return _transition_response(accepted)


@draw_bp.route("/draw/proceed", methods=["POST"])
def proceed_to_gift():
    accepted = run_coroutine_sync(get_runtime().machine.proceed_to_gift())
    return _transition_response(accepted)


@draw_bp.route("/draw/gifts/<int:gift_id>", methods=["POST"])
def select_gift(gift_id: int):
    accepted = run_coroutine_sync(get_runtime().machine.select_gift(gift_id))
    return _transition_response(accepted)


@draw_bp.route("/draw/auto-gift", methods=["POST"])
def auto_select_gift():
    accepted = run_coroutine_sync(get_runtime().machine.auto_select_gift())
    return _transition_response(accepted)


@draw_bp.route("/draw/confirm", methods=["POST"])
def confirm_match():
    accepted = run_coroutine_sync(get_runtime().machine.confirm_match())
    return _transition_response(accepted)
