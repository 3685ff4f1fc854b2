"""
Bearer-token authentication for the JSON API.

Clients send "Authorization: Bearer <token>"; the token is issued by
`manage.py user token <username>`.
"""

from flask import jsonify, request

from gridiron import db
from gridiron.models import User


def bearer_token():
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


def register_auth(login_manager):
    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.request_loader
    def load_user_from_request(req):
        return User.verify_api_token(bearer_token())

    @login_manager.unauthorized_handler
    def unauthorized():
        if bearer_token():
            message = "Unauthorized - Invalid token"
        else:
            message = "Unauthorized - No token provided"
        return jsonify({"error": message}), 401

