"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/logout-all (access token required)
- GET  /auth/me         (access token required)

Short-lived access tokens are stateless JWTs. Refresh tokens are JWTs that are
also stored as session rows, so they can be revoked and are rotated on every use.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.user import (
    AuthResponseSchema,
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
    UserOutSchema,
)
from services.session_manager import SessionManager
from utils.decorators import jwt_required

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_token_schema = RefreshTokenSchema()
auth_response_schema = AuthResponseSchema()
user_out_schema = UserOutSchema()


def _manager() -> SessionManager:
    return current_app.extensions["session_manager"]


def _payload() -> dict:
    return request.get_json(silent=True) or {}


@bp.post("/register")
def register():
    """
    Register a new user and open a first session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string }
            password: { type: string, minLength: 6 }
            full_name: { type: string }
            phone: { type: string }
    responses:
      201:
        description: Created (returns tokens)
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    data = register_schema.load(_payload())
    result = _manager().register(
        data["email"],
        data["password"],
        full_name=data.get("full_name"),
        phone=data.get("phone"),
    )
    return jsonify(
        {
            "message": "Registration successful",
            "data": auth_response_schema.dump(result),
        }
    ), 201


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid email or password
      403:
        description: Account is disabled
    """
    data = login_schema.load(_payload())
    result = _manager().login(data["email"], data["password"])
    return jsonify(
        {
            "message": "Login successful",
            "data": auth_response_schema.dump(result),
        }
    ), 200


@bp.post("/refresh")
def refresh():
    """
    Use a refresh token to obtain new access and refresh tokens (rotation).
    The presented refresh token is dead afterwards.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns the new pair)
      401:
        description: Invalid, expired or revoked refresh token
    """
    data = refresh_token_schema.load(_payload())
    result = _manager().refresh(data["refresh_token"])
    return jsonify(
        {
            "message": "Token refreshed successfully",
            "data": auth_response_schema.dump(result),
        }
    ), 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes the given refresh token (this device only)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      204:
        description: ""
      401:
        description: Unknown refresh token
    """
    data = refresh_token_schema.load(_payload())
    _manager().logout(data["refresh_token"])
    return ("", 204)


@bp.post("/logout-all")
@jwt_required()
def logout_all():
    """
    Revoke every session of the current user (all devices)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Number of sessions revoked
      401:
        description: Unauthorized
    """
    revoked = _manager().revoke_all_sessions(g.current_user.id)
    return jsonify({"message": "Logged out everywhere", "data": {"revoked": revoked}}), 200


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"data": user_out_schema.dump(g.current_user)}), 200
