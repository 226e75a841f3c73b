from flask import Blueprint, jsonify, request

from mittimobil.extensions import limiter
from mittimobil.services import AuthService

api_auth_bp = Blueprint("api_auth", __name__)


def _token_response(farmer, message, status=200):
    return (
        jsonify(
            {
                "message": message,
                "token": AuthService.issue_token(farmer),
                "farmer": {"id": farmer.id, "name": farmer.name, "phone": farmer.phone, "village": farmer.village},
            }
        ),
        status,
    )


@api_auth_bp.post("/register")
@limiter.limit("10 per hour")
def api_register():
    payload = request.get_json(silent=True) or {}
    farmer = AuthService.register_farmer(payload)
    return _token_response(farmer, "Registration successful", 201)


@api_auth_bp.post("/login")
@limiter.limit("20 per hour")
def api_login():
    payload = request.get_json(silent=True) or {}
    farmer = AuthService.authenticate(payload.get("phone"), payload.get("password"))
    return _token_response(farmer, "Login successful")
