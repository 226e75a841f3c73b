from sqlalchemy import func

from mittimobil.extensions import db
from mittimobil.models import Booking, Equipment, Farmer
from mittimobil.models.base import isoformat
from mittimobil.models.booking import COMPLETED
from mittimobil.models.equipment import AVAILABLE


class AnalyticsService:
    @staticmethod
    def overview():
        active_equipment = Equipment.is_active.is_(True)
        total_revenue = (
            db.session.query(func.coalesce(func.sum(Booking.total_price), 0))
            .filter(Booking.status == COMPLETED)
            .scalar()
        )
        by_category = (
            db.session.query(Equipment.category, func.count(Equipment.id))
            .filter(active_equipment)
            .group_by(Equipment.category)
            .order_by(func.count(Equipment.id).desc(), Equipment.category)
            .all()
        )
        top_districts = (
            db.session.query(Equipment.district, func.count(Equipment.id).label("listings"))
            .filter(active_equipment)
            .group_by(Equipment.district)
            .order_by(func.count(Equipment.id).desc(), Equipment.district)
            .limit(5)
            .all()
        )
        recent = Booking.query.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(5).all()

        return {
            "overview": {
                "total_equipment": Equipment.query.filter(active_equipment).count(),
                "total_farmers": Farmer.query.count(),
                "total_bookings": Booking.query.count(),
                "available_equipment": Equipment.query.filter(
                    active_equipment, Equipment.availability_status == AVAILABLE
                ).count(),
                "total_revenue": str(total_revenue),
            },
            "equipment_by_category": [{"category": category, "count": count} for category, count in by_category],
            "top_locations": [{"district": district, "listings": listings} for district, listings in top_districts],
            "recent_bookings": [
                {
                    "id": b.id,
                    "farmer": b.renter.name,
                    "equipment": b.equipment.name,
                    "category": b.equipment.category,
                    "date": isoformat(b.start_time),
                    "amount": str(b.total_price),
                    "status": b.status,
                }
                for b in recent
            ],
        }

    @staticmethod
    def earnings():
        total = func.sum(Booking.total_price)
        rows = (
            db.session.query(Farmer.id, Farmer.name, total.label("total_earnings"), func.count(Booking.id))
            .join(Booking, Booking.owner_id == Farmer.id)
            .filter(Booking.status == COMPLETED)
            .group_by(Farmer.id, Farmer.name)
            .order_by(total.desc(), Farmer.id)
            .all()
        )
        return [
            {
                "farmer_id": farmer_id,
                "name": name,
                "total_earnings": str(total_earnings),
                "booking_count": booking_count,
            }
            for farmer_id, name, total_earnings, booking_count in rows
        ]
