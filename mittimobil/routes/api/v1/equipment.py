from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from mittimobil.services import BookingService, DiscoveryService, EquipmentService, FileService

api_equipment_bp = Blueprint("api_equipment", __name__)


@api_equipment_bp.get("")
def list_equipment():
    args = request.args
    results = DiscoveryService.search(
        lat=args.get("lat"),
        lng=args.get("lng"),
        radius_km=args.get("radius"),
        category=args.get("type") or args.get("category"),
        min_price=args.get("minPrice", args.get("min_price")),
        max_price=args.get("maxPrice", args.get("max_price")),
        panchayat=args.get("panchayat"),
        district=args.get("district"),
    )
    return jsonify(
        {
            "count": len(results),
            "equipment": [equipment.to_dict(distance_km=distance) for equipment, distance in results],
        }
    )


@api_equipment_bp.get("/mine")
@login_required
def my_equipment():
    rows = EquipmentService.list_owned(current_user.id)
    return jsonify({"count": len(rows), "equipment": [e.to_dict(include_owner=False) for e in rows]})


@api_equipment_bp.get("/<int:equipment_id>")
def get_equipment(equipment_id):
    equipment = EquipmentService.get_equipment(equipment_id)
    return jsonify(equipment.to_dict())


@api_equipment_bp.get("/<int:equipment_id>/bookings")
@login_required
def equipment_bookings(equipment_id):
    equipment = EquipmentService.get_owned(equipment_id, current_user.id)
    rows = BookingService.history_for_equipment(equipment.id)
    return jsonify({"count": len(rows), "bookings": [b.to_dict(populate=False) for b in rows]})


@api_equipment_bp.post("")
@login_required
def create_equipment():
    upload_root = current_app.config["UPLOAD_DIR"]
    if request.is_json:
        payload = request.get_json(silent=True) or {}
        images = []
    else:
        payload = request.form.to_dict()
        if "features" in request.form:
            payload["features"] = request.form.getlist("features")
        images = FileService.check_images([storage for _, storage in request.files.items(multi=True)])
    image_paths = FileService.store_images(images, upload_root)
    try:
        equipment = EquipmentService.create_equipment(current_user._get_current_object(), payload, image_paths)
    except Exception:
        FileService.discard(image_paths, upload_root)
        raise
    return jsonify({"message": "Equipment added successfully", "equipment": equipment.to_dict()}), 201


@api_equipment_bp.put("/<int:equipment_id>")
@login_required
def update_equipment(equipment_id):
    payload = request.get_json(silent=True) or {}
    equipment = EquipmentService.update_equipment(equipment_id, current_user.id, payload)
    return jsonify({"message": "Equipment updated successfully", "equipment": equipment.to_dict()})


@api_equipment_bp.delete("/<int:equipment_id>")
@login_required
def delete_equipment(equipment_id):
    EquipmentService.delete_equipment(equipment_id, current_user.id)
    return jsonify({"message": "Equipment deleted successfully"})
