from mittimobil.extensions import db
from mittimobil.models.base import PKType, TimestampMixin, isoformat

PENDING = "pending"
CONFIRMED = "confirmed"
ACTIVE = "active"
COMPLETED = "completed"
CANCELLED = "cancelled"
BOOKING_STATUSES = (PENDING, CONFIRMED, ACTIVE, COMPLETED, CANCELLED)
OPEN_STATUSES = (PENDING, CONFIRMED, ACTIVE)
TERMINAL_STATUSES = (COMPLETED, CANCELLED)

# Placeholder: no booking transition touches payment_status.
PAYMENT_STATUSES = ("pending", "partial", "completed", "refunded")
DELIVERY_TYPES = ("pickup", "delivery")


def _contact(farmer):
    return {
        "id": farmer.id,
        "name": farmer.name,
        "phone": farmer.phone,
        "village": farmer.village,
    }


class Booking(TimestampMixin, db.Model):
    __tablename__ = "bookings"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    equipment_id = db.Column(PKType, db.ForeignKey("equipment.id"), nullable=False, index=True)
    renter_id = db.Column(PKType, db.ForeignKey("farmers.id"), nullable=False, index=True)
    owner_id = db.Column(PKType, db.ForeignKey("farmers.id"), nullable=False, index=True)

    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=False)
    duration_hours = db.Column(db.Integer, nullable=False)
    duration_days = db.Column(db.Integer, nullable=False)
    pricing_unit = db.Column(db.String(8), nullable=False, default="hour")
    rate_applied = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    status = db.Column(db.String(24), nullable=False, default=PENDING, index=True)
    payment_status = db.Column(db.String(24), nullable=False, default="pending")

    delivery_type = db.Column(db.String(16), nullable=False, default="pickup")
    delivery_longitude = db.Column(db.Float, nullable=True)
    delivery_latitude = db.Column(db.Float, nullable=True)
    delivery_address = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    cancelled_by_id = db.Column(PKType, db.ForeignKey("farmers.id"), nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    equipment = db.relationship("Equipment", back_populates="bookings")
    renter = db.relationship("Farmer", back_populates="rentals", foreign_keys=[renter_id])
    owner = db.relationship("Farmer", back_populates="owner_bookings", foreign_keys=[owner_id])

    __table_args__ = (
        db.Index("ix_bookings_equipment_status", "equipment_id", "status"),
        db.Index("ix_bookings_renter_status", "renter_id", "status"),
        db.Index("ix_bookings_owner_status", "owner_id", "status"),
        db.CheckConstraint("end_time > start_time", name="ck_booking_interval"),
        db.CheckConstraint("renter_id != owner_id", name="ck_booking_not_self"),
    )

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def party_role(self, actor_id):
        if actor_id == self.owner_id:
            return "owner"
        if actor_id == self.renter_id:
            return "renter"
        return None

    def to_dict(self, populate=True):
        data = {
            "id": self.id,
            "equipment_id": self.equipment_id,
            "renter_id": self.renter_id,
            "owner_id": self.owner_id,
            "start_date": isoformat(self.start_time),
            "end_date": isoformat(self.end_time),
            "duration": {"hours": self.duration_hours, "days": self.duration_days},
            "pricing_unit": self.pricing_unit,
            "rate_applied": str(self.rate_applied),
            "total_price": str(self.total_price),
            "status": self.status,
            "payment_status": self.payment_status,
            "delivery_type": self.delivery_type,
            "delivery_location": None,
            "notes": self.notes,
            "cancelled_by_id": self.cancelled_by_id,
            "cancellation_reason": self.cancellation_reason,
            "completed_at": isoformat(self.completed_at),
            "cancelled_at": isoformat(self.cancelled_at),
            "created_at": isoformat(self.created_at),
        }
        if self.delivery_longitude is not None and self.delivery_latitude is not None:
            data["delivery_location"] = {
                "longitude": self.delivery_longitude,
                "latitude": self.delivery_latitude,
                "address": self.delivery_address,
            }
        if populate:
            data["equipment"] = {
                "id": self.equipment.id,
                "name": self.equipment.name,
                "category": self.equipment.category,
                "brand": self.equipment.brand,
                "model": self.equipment.model,
                "price_per_hour": str(self.equipment.price_per_hour),
            }
            data["owner"] = _contact(self.owner)
            data["renter"] = _contact(self.renter)
        return data
