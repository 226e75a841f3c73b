from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from mittimobil.extensions import limiter
from mittimobil.services import BookingService

api_booking_bp = Blueprint("api_booking", __name__)


@api_booking_bp.post("")
@login_required
@limiter.limit("30 per minute")
def create_booking():
    payload = request.get_json(silent=True) or {}
    booking = BookingService.create_booking(
        renter_id=current_user.id,
        equipment_id=payload.get("equipment_id", payload.get("equipmentId")),
        start_date=payload.get("start_date", payload.get("startDate")),
        end_date=payload.get("end_date", payload.get("endDate")),
        delivery_location=payload.get("delivery_location", payload.get("deliveryLocation")),
        delivery_type=payload.get("delivery_type", payload.get("deliveryType")),
        notes=payload.get("notes"),
    )
    return jsonify({"message": "Booking created successfully", "booking": booking.to_dict()}), 201


@api_booking_bp.get("/my-rentals")
@login_required
def my_rentals():
    rows = BookingService.list_rentals(current_user.id, request.args.get("status"))
    return jsonify({"count": len(rows), "bookings": [b.to_dict() for b in rows]})


@api_booking_bp.get("/my-bookings")
@login_required
def my_bookings():
    rows = BookingService.list_owner_bookings(current_user.id, request.args.get("status"))
    return jsonify({"count": len(rows), "bookings": [b.to_dict() for b in rows]})


@api_booking_bp.patch("/<int:booking_id>/confirm")
@login_required
def confirm_booking(booking_id):
    booking = BookingService.confirm_booking(booking_id, current_user.id)
    return jsonify({"message": "Booking confirmed", "booking": booking.to_dict(populate=False)})


@api_booking_bp.patch("/<int:booking_id>/complete")
@login_required
def complete_booking(booking_id):
    booking = BookingService.complete_booking(booking_id, current_user.id)
    return jsonify({"message": "Booking completed successfully", "booking": booking.to_dict(populate=False)})


@api_booking_bp.patch("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id):
    payload = request.get_json(silent=True) or {}
    booking = BookingService.cancel_booking(booking_id, current_user.id, payload.get("reason"))
    return jsonify({"message": "Booking cancelled", "booking": booking.to_dict(populate=False)})
