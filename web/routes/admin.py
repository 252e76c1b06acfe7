"""Admin blueprint: roster commit, import, export and reset."""

from __future__ import annotations

import json
from datetime import date

from flask import Blueprint, Response, current_app, jsonify, request

from core.exceptions import ValidationError
from services import call_in_loop, run_coroutine_sync
from services.roster import export_roster_document, parse_roster_document
from web.auth import admin_required
from web.routes.draw import get_runtime


admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _commit(document):
    """Validate ``document`` and make it the new roster, saved immediately."""
    try:
        participants, gifts = parse_roster_document(document)
    except ValidationError as e:
        current_app.logger.warning(f"Rejected roster: {e}")
        return jsonify({"ok": False, "error": str(e)}), 400

    runtime = get_runtime()

    async def commit() -> None:
        await runtime.machine.admin_commit(participants, gifts)
        await runtime.saver.save_now()

    try:
        run_coroutine_sync(commit())
    except ValidationError as e:
        return jsonify({"ok": False, "error": str(e)}), 400

    current_app.logger.info(f"Roster committed: {len(participants)} participants, {len(gifts)} gifts")
    snapshot = call_in_loop(runtime.machine.snapshot)
    return jsonify({"ok": True, "session": snapshot})


@admin_bp.route("/roster", methods=["POST"])
@admin_required
def commit_roster():
    document = request.get_json(silent=True)
    if document is None:
        return jsonify({"ok": False, "error": "Expected a JSON roster document"}), 400
    return _commit(document)


@admin_bp.route("/import", methods=["POST"])
@admin_required
def import_roster():
    """Accept an exported file upload (field ``file``) or a JSON body."""
    upload = request.files.get("file")
    if upload is not None:
        try:
            document = json.loads(upload.read().decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            return jsonify({"ok": False, "error": f"Could not parse roster file: {e}"}), 400
    else:
        document = request.get_json(silent=True)
        if document is None:
            return jsonify({"ok": False, "error": "Upload a roster file or post a JSON document"}), 400
    return _commit(document)


@admin_bp.route("/export")
@admin_required
def export_roster():
    store = get_runtime().machine.store
    document = call_in_loop(lambda: export_roster_document(store.participants, store.gifts))
    filename = f"christmas-config-{date.today().isoformat()}.json"
    return Response(
        json.dumps(document, ensure_ascii=False, indent=2),
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@admin_bp.route("/reset", methods=["POST"])
@admin_required
def reset_matches():
    runtime = get_runtime()

    async def reset() -> None:
        await runtime.machine.reset()
        await runtime.saver.save_now()

    run_coroutine_sync(reset())
    current_app.logger.info("All matches cleared by admin")
    return jsonify({"ok": True, "session": call_in_loop(runtime.machine.snapshot)})
