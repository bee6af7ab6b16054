from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.http import json_body, login_required
from ..container import Container

PREFIX = "/api/v1/bugs"

# JSON field -> service field
_BUG_FIELDS = {
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "assignedTo": "assigned_to",
    "project": "project",
    "dueDate": "due_date",
    "labels": "labels",
}


def _pick_bug_fields(body: dict) -> dict:
    return {field: body[key] for key, field in _BUG_FIELDS.items() if key in body}


def register(app: Flask, container: Container) -> None:
    bugs = container.bug_service

    @app.route(f"{PREFIX}", methods=["GET"], endpoint="bugs_list")
    @login_required
    def list_bugs():
        items = bugs.list_bugs(
            status=request.args.get("status"),
            priority=request.args.get("priority"),
            project=request.args.get("project"),
            search=request.args.get("search"),
        )
        return jsonify({"success": True, "count": len(items), "data": [b.to_dict() for b in items]})

    @app.route(f"{PREFIX}", methods=["POST"], endpoint="bugs_create")
    @login_required
    def create_bug():
        fields = _pick_bug_fields(json_body())
        bug = bugs.create_bug(
            g.current_user,
            title=fields.pop("title", ""),
            description=fields.pop("description", ""),
            **fields,
        )
        return jsonify({"success": True, "data": bug.to_dict()}), 201

    @app.route(f"{PREFIX}/stats/status", methods=["GET"], endpoint="bugs_stats")
    @login_required
    def bug_stats():
        return jsonify({"success": True, "data": list(bugs.status_stats())})

    @app.route(f"{PREFIX}/<int:bug_id>", methods=["GET"], endpoint="bugs_get")
    @login_required
    def get_bug(bug_id: int):
        return jsonify({"success": True, "data": bugs.get_bug(bug_id, g.current_user).to_dict()})

    @app.route(f"{PREFIX}/<int:bug_id>", methods=["PUT"], endpoint="bugs_update")
    @login_required
    def update_bug(bug_id: int):
        bug = bugs.update_bug(bug_id, g.current_user, _pick_bug_fields(json_body()))
        return jsonify({"success": True, "data": bug.to_dict()})

    @app.route(f"{PREFIX}/<int:bug_id>", methods=["DELETE"], endpoint="bugs_delete")
    @login_required
    def delete_bug(bug_id: int):
        bugs.delete_bug(bug_id, g.current_user)
        return jsonify({"success": True, "data": {}})

    @app.route(f"{PREFIX}/<int:bug_id>/history", methods=["GET"], endpoint="bugs_history")
    @login_required
    def bug_history(bug_id: int):
        history = bugs.status_history(bug_id, g.current_user)
        return jsonify({"success": True, "count": len(history), "data": [h.to_dict() for h in history]})
