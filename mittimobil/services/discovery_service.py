from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import joinedload

from mittimobil.errors import ValidationError
from mittimobil.models import Equipment
from mittimobil.models.equipment import AVAILABLE, CATEGORIES
from mittimobil.services.equipment_service import parse_coordinate
from mittimobil.services.geo import haversine_km, latitude_window


class DiscoveryService:
    @staticmethod
    def _parse_price(value, label):
        raw = str(value).strip() if value is not None else ""
        if not raw:
            return None
        try:
            price = Decimal(raw)
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid {label}.") from exc
        if not price.is_finite():
            raise ValidationError(f"Invalid {label}.")
        return price

    @staticmethod
    def parse_radius(value, default):
        raw = str(value).strip() if value is not None else ""
        if not raw:
            return float(default)
        try:
            radius = float(raw)
        except ValueError as exc:
            raise ValidationError("Invalid radius.") from exc
        if not radius > 0:
            raise ValidationError("Radius must be greater than zero.")
        return radius

    @staticmethod
    def _parse_center(lat, lng, required=False):
        latitude = parse_coordinate(lat, "latitude", -90, 90)
        longitude = parse_coordinate(lng, "longitude", -180, 180)
        if latitude is None and longitude is None:
            if required:
                raise ValidationError("Latitude and longitude required.")
            return None
        if latitude is None or longitude is None:
            raise ValidationError("Latitude and longitude must be given together.")
        return latitude, longitude

    @staticmethod
    def available_query(category=None, min_price=None, max_price=None, panchayat=None, district=None):
        query = Equipment.query.options(joinedload(Equipment.owner)).filter(
            Equipment.availability_status == AVAILABLE,
            Equipment.is_active.is_(True),
        )

        category = (category or "").strip().lower()
        if category:
            if category not in CATEGORIES:
                raise ValidationError(f"Category must be one of: {', '.join(CATEGORIES)}.")
            query = query.filter(Equipment.category == category)

        min_price = DiscoveryService._parse_price(min_price, "minimum price")
        max_price = DiscoveryService._parse_price(max_price, "maximum price")
        if min_price is not None:
            query = query.filter(Equipment.price_per_hour >= min_price)
        if max_price is not None:
            query = query.filter(Equipment.price_per_hour <= max_price)

        for column, value in ((Equipment.panchayat, panchayat), (Equipment.district, district)):
            value = (value or "").strip().lower()
            if value:
                query = query.filter(func.lower(column).contains(value, autoescape=True))
        return query

    @staticmethod
    def _within_radius(query, center, radius_km):
        lat, lng = center
        low, high = latitude_window(lat, radius_km)
        candidates = query.filter(Equipment.latitude >= low, Equipment.latitude <= high).all()

        matches = []
        for equipment in candidates:
            distance = haversine_km(lat, lng, equipment.latitude, equipment.longitude)
            if distance <= radius_km:
                matches.append((equipment, distance))
        matches.sort(key=lambda item: (item[1], item[0].id))
        return [(equipment, round(distance, 1)) for equipment, distance in matches]

    @staticmethod
    def search(
        lat=None,
        lng=None,
        radius_km=None,
        category=None,
        min_price=None,
        max_price=None,
        panchayat=None,
        district=None,
        limit=None,
    ):
        """Available equipment matching the filters.

        Returns ``(equipment, distance_km)`` pairs. With a center point the
        results are ordered nearest first and ``distance_km`` is rounded to one
        decimal; without one they are newest first and ``distance_km`` is None.
        """
        config = current_app.config
        limit = limit or config["DISCOVERY_LIMIT"]
        center = DiscoveryService._parse_center(lat, lng)
        query = DiscoveryService.available_query(category, min_price, max_price, panchayat, district)

        if center is None:
            rows = query.order_by(Equipment.created_at.desc(), Equipment.id.desc()).limit(limit).all()
            return [(equipment, None) for equipment in rows]

        radius_km = DiscoveryService.parse_radius(radius_km, config["DEFAULT_SEARCH_RADIUS_KM"])
        return DiscoveryService._within_radius(query, center, radius_km)[:limit]

    @staticmethod
    def nearby(lat, lng, radius_km=None):
        center = DiscoveryService._parse_center(lat, lng, required=True)
        radius_km = DiscoveryService.parse_radius(radius_km, current_app.config["NEARBY_RADIUS_KM"])
        return DiscoveryService._within_radius(DiscoveryService.available_query(), center, radius_km)
