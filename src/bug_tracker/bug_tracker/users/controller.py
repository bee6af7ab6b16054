from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.http import (
    base_url,
    clear_session_cookie,
    json_body,
    login_required,
    session_response,
    set_session_cookie,
)
from ..container import Container

PREFIX = "/api/v1/auth"


def register(app: Flask, container: Container) -> None:
    auth = container.auth_service

    @app.route(f"{PREFIX}/register", methods=["POST"], endpoint="auth_register")
    def register_user():
        body = json_body()
        result = auth.register(
            name=body.get("name", ""),
            email=body.get("email", ""),
            password=body.get("password", ""),
            role=body.get("role"),
            base_url=base_url(),
        )
        response = jsonify(
            {
                "success": True,
                "token": result.token,
                "data": result.message,
                "user": result.user.to_public_dict(),
            }
        )
        return set_session_cookie(response, result.token)

    @app.route(f"{PREFIX}/login", methods=["POST"], endpoint="auth_login")
    def login():
        body = json_body()
        result = auth.login(body.get("email"), body.get("password"))
        if result.two_factor_required:
            return jsonify({"success": True, "twoFactorRequired": True, "message": result.message})
        return session_response(result)

    @app.route(f"{PREFIX}/verify-2fa", methods=["POST"], endpoint="auth_verify_2fa")
    def verify_2fa():
        body = json_body()
        return session_response(auth.verify_two_factor(body.get("email"), body.get("code")))

    @app.route(f"{PREFIX}/confirmemail", methods=["GET"], endpoint="auth_confirm_email")
    def confirm_email():
        return session_response(auth.confirm_email(request.args.get("token")))

    @app.route(f"{PREFIX}/resend-confirmation", methods=["POST"], endpoint="auth_resend_confirmation")
    def resend_confirmation():
        auth.resend_confirmation(json_body().get("email"), base_url=base_url())
        return jsonify({"success": True, "data": "Email sent"})

    @app.route(f"{PREFIX}/forgotpassword", methods=["POST"], endpoint="auth_forgot_password")
    def forgot_password():
        auth.forgot_password(json_body().get("email"), base_url=base_url())
        return jsonify({"success": True, "data": "Email sent"})

    @app.route(f"{PREFIX}/resetpassword/<resettoken>", methods=["PUT"], endpoint="auth_reset_password")
    def reset_password(resettoken: str):
        return session_response(auth.reset_password(resettoken, json_body().get("password")))

    @app.route(f"{PREFIX}/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def me():
        user = container.user_service.get_me(g.current_user.user_id)
        return jsonify({"success": True, "data": user.to_public_dict()})

    @app.route(f"{PREFIX}/updatedetails", methods=["PUT"], endpoint="auth_update_details")
    @login_required
    def update_details():
        body = json_body()
        user = container.user_service.update_details(
            g.current_user.user_id,
            name=body.get("name"),
            email=body.get("email"),
        )
        return jsonify({"success": True, "data": user.to_public_dict()})

    @app.route(f"{PREFIX}/updatepassword", methods=["PUT"], endpoint="auth_update_password")
    @login_required
    def update_password():
        body = json_body()
        result = auth.update_password(g.current_user.user_id, body.get("currentPassword"), body.get("newPassword"))
        return session_response(result)

    @app.route(f"{PREFIX}/toggle-2fa", methods=["PUT"], endpoint="auth_toggle_2fa")
    @login_required
    def toggle_2fa():
        enabled = auth.toggle_two_factor(g.current_user.user_id)
        return jsonify({"success": True, "data": {"twoFactorEnabled": enabled}})

    @app.route(f"{PREFIX}/logout", methods=["GET"], endpoint="auth_logout")
    @login_required
    def logout():
        return clear_session_cookie(jsonify({"success": True, "data": {}}))
