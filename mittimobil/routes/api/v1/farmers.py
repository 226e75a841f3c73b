from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from mittimobil.services import FarmerService

api_farmer_bp = Blueprint("api_farmer", __name__)


@api_farmer_bp.get("/me")
@login_required
def me():
    return jsonify(current_user.to_dict())


@api_farmer_bp.put("/me")
@login_required
def update_me():
    payload = request.get_json(silent=True) or {}
    farmer = FarmerService.update_profile(current_user._get_current_object(), payload)
    return jsonify({"message": "Profile updated successfully", "farmer": farmer.to_dict()})


@api_farmer_bp.get("/me/dashboard")
@login_required
def dashboard():
    return jsonify(FarmerService.dashboard(current_user.id))


@api_farmer_bp.get("/<int:farmer_id>")
def public_profile(farmer_id):
    return jsonify(FarmerService.public_profile(farmer_id))
