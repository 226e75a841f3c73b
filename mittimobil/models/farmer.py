from flask_login import UserMixin

from mittimobil.extensions import db
from mittimobil.models.base import PKType, TimestampMixin, isoformat

LANGUAGES = ("hindi", "english", "tamil", "telugu", "marathi", "punjabi")


class Farmer(UserMixin, TimestampMixin, db.Model):
    __tablename__ = "farmers"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(10), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    village = db.Column(db.String(120), nullable=False)
    panchayat = db.Column(db.String(120), nullable=False)
    district = db.Column(db.String(120), nullable=False, index=True)
    state = db.Column(db.String(120), nullable=False)
    longitude = db.Column(db.Float, nullable=False, default=0)
    latitude = db.Column(db.Float, nullable=False, default=0)

    land_size = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    is_equipment_owner = db.Column(db.Boolean, nullable=False, default=False)
    rating = db.Column(db.Numeric(3, 2), nullable=False, default=0)
    total_ratings = db.Column(db.Integer, nullable=False, default=0)
    verified = db.Column(db.Boolean, nullable=False, default=False)
    language = db.Column(db.String(16), nullable=False, default="hindi")

    equipment = db.relationship("Equipment", back_populates="owner", lazy="dynamic")
    rentals = db.relationship("Booking", back_populates="renter", lazy="dynamic", foreign_keys="Booking.renter_id")
    owner_bookings = db.relationship("Booking", back_populates="owner", lazy="dynamic", foreign_keys="Booking.owner_id")

    @property
    def has_location(self):
        return bool(self.longitude or self.latitude)

    def public_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "village": self.village,
            "panchayat": self.panchayat,
            "district": self.district,
            "rating": float(self.rating or 0),
            "total_ratings": self.total_ratings,
            "is_equipment_owner": self.is_equipment_owner,
        }

    def to_dict(self):
        data = self.public_dict()
        data.update(
            {
                "phone": self.phone,
                "state": self.state,
                "location": {"longitude": self.longitude, "latitude": self.latitude},
                "land_size": float(self.land_size or 0),
                "verified": self.verified,
                "language": self.language,
                "created_at": isoformat(self.created_at),
            }
        )
        return data
