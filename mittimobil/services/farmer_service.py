from sqlalchemy import func

from mittimobil.errors import NotFoundError, ValidationError
from mittimobil.extensions import db
from mittimobil.models import Booking, Equipment, Farmer
from mittimobil.models.booking import ACTIVE, COMPLETED, CONFIRMED, PENDING
from mittimobil.models.equipment import AVAILABLE, BOOKED
from mittimobil.services.auth_service import AuthService
from mittimobil.services.equipment_service import parse_location


class FarmerService:
    TEXT_FIELDS = ("name", "village", "panchayat", "district", "state")

    @staticmethod
    def get_farmer(farmer_id):
        farmer = db.session.get(Farmer, farmer_id)
        if not farmer:
            raise NotFoundError("Farmer not found.")
        return farmer

    @staticmethod
    def update_profile(farmer, payload):
        for field in FarmerService.TEXT_FIELDS:
            if field in payload:
                value = AuthService.text_field(payload.get(field), field.capitalize())
                if not value:
                    raise ValidationError(f"{field.capitalize()} cannot be empty.")
                setattr(farmer, field, value)
        if "land_size" in payload:
            farmer.land_size = AuthService.parse_land_size(payload["land_size"])
        if "language" in payload:
            farmer.language = AuthService.parse_language(payload["language"])
        location = parse_location(payload)
        if location:
            farmer.longitude, farmer.latitude = location
        db.session.commit()
        return farmer

    @staticmethod
    def _count(model, *criteria):
        return db.session.query(func.count(model.id)).filter(*criteria).scalar() or 0

    @staticmethod
    def dashboard(farmer_id):
        count = FarmerService._count
        earnings = (
            db.session.query(func.coalesce(func.sum(Booking.total_price), 0))
            .filter(Booking.owner_id == farmer_id, Booking.status == COMPLETED)
            .scalar()
        )
        return {
            "equipment": {
                "total": count(Equipment, Equipment.owner_id == farmer_id, Equipment.is_active.is_(True)),
                "available": count(Equipment, Equipment.owner_id == farmer_id, Equipment.availability_status == AVAILABLE),
                "booked": count(Equipment, Equipment.owner_id == farmer_id, Equipment.availability_status == BOOKED),
            },
            "bookings": {
                "pending": count(Booking, Booking.owner_id == farmer_id, Booking.status == PENDING),
                "active": count(Booking, Booking.owner_id == farmer_id, Booking.status.in_([CONFIRMED, ACTIVE])),
                "completed": count(Booking, Booking.owner_id == farmer_id, Booking.status == COMPLETED),
            },
            "rentals": {
                "active": count(Booking, Booking.renter_id == farmer_id, Booking.status.in_([CONFIRMED, ACTIVE])),
                "completed": count(Booking, Booking.renter_id == farmer_id, Booking.status == COMPLETED),
            },
            "earnings": {"total": str(earnings)},
        }

    @staticmethod
    def public_profile(farmer_id):
        farmer = FarmerService.get_farmer(farmer_id)
        return {
            "farmer": farmer.public_dict(),
            "stats": {
                "equipment_count": FarmerService._count(
                    Equipment, Equipment.owner_id == farmer.id, Equipment.is_active.is_(True)
                ),
                "completed_bookings": FarmerService._count(
                    Booking, Booking.owner_id == farmer.id, Booking.status == COMPLETED
                ),
            },
        }
