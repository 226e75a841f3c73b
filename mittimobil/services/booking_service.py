from datetime import datetime, timezone

from flask import current_app

from mittimobil.errors import (
    EquipmentUnavailable,
    InvalidTransition,
    NotAuthorized,
    NotFoundError,
    NotOwner,
    SelfBookingForbidden,
    ValidationError,
)
from mittimobil.extensions import db
from mittimobil.models import Booking, Equipment
from mittimobil.models.base import utcnow
from mittimobil.models.booking import (
    BOOKING_STATUSES,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    DELIVERY_TYPES,
    OPEN_STATUSES,
    PENDING,
)
from mittimobil.models.equipment import AVAILABLE, BOOKED
from mittimobil.services import pricing

# Event -> statuses the event may fire from. Terminal statuses have no entry.
BOOKING_TRANSITIONS = {
    "confirm": {PENDING},
    "complete": set(OPEN_STATUSES),
    "cancel": set(OPEN_STATUSES),
}


def parse_timestamp(value, label):
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = (value or "").strip() if isinstance(value, str) else ""
        if not raw:
            raise ValidationError(f"Valid {label} is required.")
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise ValidationError(f"Valid {label} is required.") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _optional_text(value, label):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be text.")
    return value.strip() or None


def _parse_delivery_location(raw):
    if raw in (None, "", {}):
        return None, None, None
    if not isinstance(raw, dict):
        raise ValidationError("Delivery location must be an object.")
    coordinates = raw.get("coordinates")
    try:
        if coordinates is not None:
            longitude, latitude = (float(v) for v in coordinates)
        else:
            longitude, latitude = float(raw["longitude"]), float(raw["latitude"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError("Delivery location needs longitude and latitude.") from exc
    if not (-180 <= longitude <= 180 and -90 <= latitude <= 90):
        raise ValidationError("Delivery location is out of range.")
    address = _optional_text(raw.get("address"), "Delivery address")
    return longitude, latitude, address


class BookingService:
    @staticmethod
    def _load_equipment(equipment_id):
        try:
            equipment = db.session.get(Equipment, int(equipment_id))
        except (TypeError, ValueError) as exc:
            raise ValidationError("Invalid equipment ID.") from exc
        if not equipment or not equipment.is_active:
            raise NotFoundError("Equipment not found.")
        return equipment

    @staticmethod
    def _load_booking(booking_id):
        booking = db.session.get(Booking, booking_id)
        if not booking:
            raise NotFoundError("Booking not found.")
        return booking

    @staticmethod
    def _claim_equipment(equipment_id, booking_id):
        """Flip available -> booked in one conditional UPDATE.

        Returns False when another request got there first.
        """
        claimed = (
            Equipment.query.filter(
                Equipment.id == equipment_id,
                Equipment.availability_status == AVAILABLE,
                Equipment.is_active.is_(True),
            ).update(
                {
                    Equipment.availability_status: BOOKED,
                    Equipment.current_booking_id: booking_id,
                    Equipment.total_bookings: Equipment.total_bookings + 1,
                },
                synchronize_session=False,
            )
        )
        return claimed == 1

    @staticmethod
    def _release_equipment(booking):
        released = (
            Equipment.query.filter(
                Equipment.id == booking.equipment_id,
                Equipment.current_booking_id == booking.id,
            ).update(
                {
                    Equipment.availability_status: AVAILABLE,
                    Equipment.current_booking_id: None,
                },
                synchronize_session=False,
            )
        )
        if not released:
            current_app.logger.warning(
                "Equipment %s was not held by booking %s; availability left unchanged.",
                booking.equipment_id,
                booking.id,
            )
        return released == 1

    @staticmethod
    def create_booking(
        renter_id,
        equipment_id,
        start_date,
        end_date,
        delivery_location=None,
        delivery_type=None,
        notes=None,
    ):
        if not equipment_id:
            raise ValidationError("Equipment ID is required.")
        start_dt = parse_timestamp(start_date, "start date")
        end_dt = parse_timestamp(end_date, "end date")

        delivery_type = (_optional_text(delivery_type, "Delivery type") or "pickup").lower()
        if delivery_type not in DELIVERY_TYPES:
            raise ValidationError("Delivery type must be pickup or delivery.")
        delivery_lng, delivery_lat, delivery_address = _parse_delivery_location(delivery_location)
        notes = _optional_text(notes, "Notes")
        if notes and len(notes) > 500:
            raise ValidationError("Notes must be at most 500 characters.")

        equipment = BookingService._load_equipment(equipment_id)
        if equipment.owner_id == renter_id:
            raise SelfBookingForbidden()
        if equipment.availability_status != AVAILABLE:
            raise EquipmentUnavailable()

        price = pricing.quote(start_dt, end_dt, equipment.price_per_hour, equipment.price_per_day)

        booking = Booking(
            equipment_id=equipment.id,
            renter_id=renter_id,
            owner_id=equipment.owner_id,
            start_time=start_dt,
            end_time=end_dt,
            duration_hours=price.hours,
            duration_days=price.days,
            pricing_unit=price.unit,
            rate_applied=price.rate,
            total_price=price.total,
            status=PENDING,
            delivery_type=delivery_type,
            delivery_longitude=delivery_lng,
            delivery_latitude=delivery_lat,
            delivery_address=delivery_address,
            notes=notes,
        )
        db.session.add(booking)
        db.session.flush()

        if not BookingService._claim_equipment(equipment.id, booking.id):
            db.session.rollback()
            current = db.session.get(Equipment, equipment.id)
            current_app.logger.warning(
                "Lost booking race on equipment %s for renter %s (status now %s).",
                equipment.id,
                renter_id,
                current.availability_status if current else "missing",
            )
            raise EquipmentUnavailable()

        db.session.commit()
        current_app.logger.info(
            "Booking %s created for equipment %s by renter %s: %s x %s = %s",
            booking.id,
            booking.equipment_id,
            renter_id,
            price.unit,
            price.rate,
            price.total,
        )
        return booking

    @staticmethod
    def _apply_transition(booking, event, values):
        allowed_from = BOOKING_TRANSITIONS[event]
        if booking.status not in allowed_from:
            raise InvalidTransition(f"Booking cannot be {values['status']} from status {booking.status}.")

        # Conditional on the status still being one we may leave.
        changed = Booking.query.filter(Booking.id == booking.id, Booking.status.in_(allowed_from)).update(
            values, synchronize_session=False
        )
        if not changed:
            db.session.rollback()
            raise InvalidTransition(f"Booking {booking.id} changed status concurrently.")

    @staticmethod
    def confirm_booking(booking_id, actor_id):
        booking = BookingService._load_booking(booking_id)
        if booking.owner_id != actor_id:
            raise NotOwner("Only the owner can confirm this booking.")

        BookingService._apply_transition(booking, "confirm", {"status": CONFIRMED})
        db.session.commit()
        current_app.logger.info("Booking %s confirmed by owner %s", booking.id, actor_id)
        return booking

    @staticmethod
    def complete_booking(booking_id, actor_id):
        booking = BookingService._load_booking(booking_id)
        if booking.party_role(actor_id) is None:
            raise NotAuthorized()

        BookingService._apply_transition(booking, "complete", {"status": COMPLETED, "completed_at": utcnow()})
        BookingService._release_equipment(booking)
        db.session.commit()
        current_app.logger.info(
            "Booking %s completed by %s %s; equipment %s released",
            booking.id,
            booking.party_role(actor_id),
            actor_id,
            booking.equipment_id,
        )
        return booking

    @staticmethod
    def cancel_booking(booking_id, actor_id, reason=None):
        booking = BookingService._load_booking(booking_id)
        if booking.party_role(actor_id) is None:
            raise NotAuthorized()
        reason = _optional_text(reason, "Cancellation reason")

        BookingService._apply_transition(
            booking,
            "cancel",
            {
                "status": CANCELLED,
                "cancelled_by_id": actor_id,
                "cancellation_reason": reason,
                "cancelled_at": utcnow(),
            },
        )
        BookingService._release_equipment(booking)
        db.session.commit()
        current_app.logger.info(
            "Booking %s cancelled by %s %s; equipment %s released",
            booking.id,
            booking.party_role(actor_id),
            actor_id,
            booking.equipment_id,
        )
        return booking

    @staticmethod
    def _status_filter(status):
        status = (status or "").strip().lower()
        if status and status not in BOOKING_STATUSES:
            raise ValidationError("Invalid booking status filter.")
        return status

    @staticmethod
    def list_rentals(renter_id, status=None):
        query = Booking.query.filter_by(renter_id=renter_id)
        status = BookingService._status_filter(status)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    @staticmethod
    def list_owner_bookings(owner_id, status=None):
        query = Booking.query.filter_by(owner_id=owner_id)
        status = BookingService._status_filter(status)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    @staticmethod
    def history_for_equipment(equipment_id):
        return Booking.query.filter_by(equipment_id=equipment_id).order_by(Booking.created_at.desc()).all()
