from mittimobil.extensions import db
from mittimobil.models.base import PKType, TimestampMixin, isoformat

CATEGORIES = ("tractor", "harvester", "plow", "tiller", "thresher", "sprayer", "seeder", "other")

AVAILABLE = "available"
BOOKED = "booked"
MAINTENANCE = "maintenance"
UNAVAILABLE = "unavailable"
AVAILABILITY_STATUSES = (AVAILABLE, BOOKED, MAINTENANCE, UNAVAILABLE)


class Equipment(TimestampMixin, db.Model):
    __tablename__ = "equipment"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    owner_id = db.Column(PKType, db.ForeignKey("farmers.id"), nullable=False, index=True)
    name = db.Column(db.String(140), nullable=False)
    category = db.Column(db.String(24), nullable=False, default="other", index=True)
    brand = db.Column(db.String(80), nullable=True)
    model = db.Column(db.String(80), nullable=True)
    horse_power = db.Column(db.Integer, nullable=True)
    year_of_purchase = db.Column(db.Integer, nullable=True)
    description = db.Column(db.String(500), nullable=True)
    features = db.Column(db.JSON, nullable=False, default=list)
    images = db.Column(db.JSON, nullable=False, default=list)

    price_per_hour = db.Column(db.Numeric(10, 2), nullable=False)
    price_per_day = db.Column(db.Numeric(10, 2), nullable=True)

    longitude = db.Column(db.Float, nullable=False)
    latitude = db.Column(db.Float, nullable=False)
    village = db.Column(db.String(120), nullable=False)
    panchayat = db.Column(db.String(120), nullable=False)
    district = db.Column(db.String(120), nullable=False, index=True)

    availability_status = db.Column(db.String(24), nullable=False, default=AVAILABLE, index=True)
    # Lookup of the active booking, not a foreign key: bookings outlive this pointer.
    current_booking_id = db.Column(PKType, nullable=True, index=True)
    total_bookings = db.Column(db.Integer, nullable=False, default=0)
    rating = db.Column(db.Numeric(3, 2), nullable=False, default=0)
    verified = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    owner = db.relationship("Farmer", back_populates="equipment")
    bookings = db.relationship("Booking", back_populates="equipment", lazy="dynamic")

    __table_args__ = (
        db.Index("ix_equipment_category_status", "category", "availability_status"),
        db.CheckConstraint("price_per_hour > 0", name="ck_equipment_price_positive"),
        db.CheckConstraint(
            "(availability_status = 'booked' AND current_booking_id IS NOT NULL)"
            " OR (availability_status != 'booked' AND current_booking_id IS NULL)",
            name="ck_equipment_booking_reference",
        ),
    )

    def to_dict(self, distance_km=None, include_owner=True):
        data = {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "category": self.category,
            "brand": self.brand,
            "model": self.model,
            "horse_power": self.horse_power,
            "year_of_purchase": self.year_of_purchase,
            "description": self.description,
            "features": list(self.features or []),
            "images": list(self.images or []),
            "price_per_hour": str(self.price_per_hour),
            "price_per_day": str(self.price_per_day) if self.price_per_day is not None else None,
            "location": {"longitude": self.longitude, "latitude": self.latitude},
            "village": self.village,
            "panchayat": self.panchayat,
            "district": self.district,
            "availability_status": self.availability_status,
            "current_booking_id": self.current_booking_id,
            "total_bookings": self.total_bookings,
            "rating": float(self.rating or 0),
            "verified": self.verified,
            "created_at": isoformat(self.created_at),
        }
        if include_owner and self.owner is not None:
            data["owner"] = self.owner.public_dict()
        if distance_km is not None:
            data["distance_km"] = distance_km
        return data
