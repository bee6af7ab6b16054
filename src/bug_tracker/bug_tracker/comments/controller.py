from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.http import json_body, login_required, optional_user, roles_required
from ..container import Container
from ..core.enums import Role

PREFIX = "/api/v1/bugs/<int:bug_id>/comments"


def register(app: Flask, container: Container) -> None:
    comments = container.comment_service

    @app.route(f"{PREFIX}", methods=["GET"], endpoint="comments_list")
    def list_comments(bug_id: int):
        items = comments.list_comments(bug_id, optional_user())
        return jsonify({"success": True, "count": len(items), "data": [c.to_dict() for c in items]})

    @app.route(f"{PREFIX}/<int:comment_id>", methods=["GET"], endpoint="comments_get")
    def get_comment(bug_id: int, comment_id: int):
        return jsonify({"success": True, "data": comments.get_comment(bug_id, comment_id).to_dict()})

    @app.route(f"{PREFIX}", methods=["POST"], endpoint="comments_add")
    @login_required
    @roles_required(Role.USER, Role.ADMIN)
    def add_comment(bug_id: int):
        comment = comments.add_comment(bug_id, g.current_user, json_body().get("text"))
        return jsonify({"success": True, "data": comment.to_dict()}), 201

    @app.route(f"{PREFIX}/<int:comment_id>", methods=["PUT"], endpoint="comments_update")
    @login_required
    @roles_required(Role.USER, Role.ADMIN)
    def update_comment(bug_id: int, comment_id: int):
        comment = comments.update_comment(bug_id, comment_id, g.current_user, json_body().get("text"))
        return jsonify({"success": True, "data": comment.to_dict()})

    @app.route(f"{PREFIX}/<int:comment_id>", methods=["DELETE"], endpoint="comments_delete")
    @login_required
    @roles_required(Role.USER, Role.ADMIN)
    def delete_comment(bug_id: int, comment_id: int):
        comments.delete_comment(bug_id, comment_id, g.current_user)
        return jsonify({"success": True, "data": {}})

    @app.route(f"{PREFIX}/<int:comment_id>/like", methods=["POST"], endpoint="comments_like")
    @login_required
    def like_comment(bug_id: int, comment_id: int):
        likes = comments.like(bug_id, comment_id, g.current_user)
        return jsonify({"success": True, "data": [like.to_dict() for like in likes]})

    @app.route(f"{PREFIX}/<int:comment_id>/like", methods=["DELETE"], endpoint="comments_unlike")
    @login_required
    def unlike_comment(bug_id: int, comment_id: int):
        likes = comments.unlike(bug_id, comment_id, g.current_user)
        return jsonify({"success": True, "data": [like.to_dict() for like in likes]})

    @app.route(f"{PREFIX}/<int:comment_id>/flag", methods=["POST"], endpoint="comments_flag")
    @login_required
    def flag_comment(bug_id: int, comment_id: int):
        flags = comments.flag(bug_id, comment_id, g.current_user, json_body().get("reason"))
        return jsonify({"success": True, "data": [flag.to_dict() for flag in flags]})
