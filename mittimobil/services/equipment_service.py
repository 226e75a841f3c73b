from decimal import Decimal, InvalidOperation

from flask import current_app

from mittimobil.errors import AuthorizationError, ConflictError, GeocodingError, NotFoundError, ValidationError
from mittimobil.extensions import db
from mittimobil.models import Equipment
from mittimobil.models.equipment import AVAILABLE, BOOKED, CATEGORIES, MAINTENANCE, UNAVAILABLE
from mittimobil.services.geocoding_service import GeocodingService


def _clean(value):
    return str(value).strip() if value is not None else ""


def parse_coordinate(value, label, low, high):
    raw = _clean(value)
    if not raw:
        return None
    try:
        number = float(raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid {label} value.") from exc
    if not low <= number <= high:
        raise ValidationError(f"{label.capitalize()} must be between {low} and {high}.")
    return number


def parse_location(payload):
    """Pull an explicit (longitude, latitude) pair out of a request payload."""
    location = payload.get("location")
    if isinstance(location, dict):
        coordinates = location.get("coordinates")
        if isinstance(coordinates, (list, tuple)) and len(coordinates) == 2:
            lng_raw, lat_raw = coordinates
        else:
            lng_raw, lat_raw = location.get("longitude"), location.get("latitude")
    else:
        lng_raw = payload.get("longitude", payload.get("lng"))
        lat_raw = payload.get("latitude", payload.get("lat"))

    longitude = parse_coordinate(lng_raw, "longitude", -180, 180)
    latitude = parse_coordinate(lat_raw, "latitude", -90, 90)
    if (longitude is None) != (latitude is None):
        raise ValidationError("Both longitude and latitude are required.")
    if longitude is None:
        return None
    return longitude, latitude


class EquipmentService:
    TEXT_FIELDS = {"name": 140, "brand": 80, "model": 80, "description": 500}
    LABEL_FIELDS = ("village", "panchayat", "district")
    OWNER_STATUSES = {AVAILABLE, MAINTENANCE, UNAVAILABLE}

    @staticmethod
    def _parse_price(value, label, required):
        raw = _clean(value)
        if not raw:
            if required:
                raise ValidationError(f"{label.capitalize()} is required.")
            return None
        try:
            price = Decimal(raw)
        except InvalidOperation as exc:
            raise ValidationError(f"{label.capitalize()} must be a positive number.") from exc
        if not price.is_finite() or price <= 0:
            raise ValidationError(f"{label.capitalize()} must be a positive number.")
        return price.quantize(Decimal("0.01"))

    @staticmethod
    def _parse_int(value, label):
        raw = _clean(value)
        if not raw:
            return None
        try:
            number = int(raw)
        except ValueError as exc:
            raise ValidationError(f"{label.capitalize()} must be a whole number.") from exc
        if number < 0:
            raise ValidationError(f"{label.capitalize()} must not be negative.")
        return number

    @staticmethod
    def _parse_category(value):
        category = _clean(value).lower()
        if category not in CATEGORIES:
            raise ValidationError(f"Category must be one of: {', '.join(CATEGORIES)}.")
        return category

    @staticmethod
    def _parse_features(value):
        if value is None:
            return []
        if isinstance(value, str):
            items = value.split(",")
        elif isinstance(value, (list, tuple)):
            items = value
        else:
            raise ValidationError("Features must be a list.")
        return [str(item).strip() for item in items if str(item).strip()]

    @staticmethod
    def _parse_text(field, value):
        text = _clean(value) or None
        limit = EquipmentService.TEXT_FIELDS[field]
        if text and len(text) > limit:
            raise ValidationError(f"{field.capitalize()} must be at most {limit} characters.")
        return text

    @staticmethod
    def _resolve_location(owner, payload, village, panchayat, district):
        explicit = parse_location(payload)
        if explicit:
            return explicit

        address = ", ".join(part for part in (village, panchayat, district) if part)
        try:
            found = GeocodingService.geocode(address)
            return found["lng"], found["lat"]
        except GeocodingError as exc:
            current_app.logger.warning("Geocoding %r failed (%s); using fallback location.", address, exc.message)

        if owner.has_location:
            return owner.longitude, owner.latitude
        return current_app.config["DEFAULT_LONGITUDE"], current_app.config["DEFAULT_LATITUDE"]

    @staticmethod
    def create_equipment(owner, payload, image_paths=None):
        name = EquipmentService._parse_text("name", payload.get("name"))
        if not name:
            raise ValidationError("Please provide all required fields: name, category, price_per_hour.")
        category = EquipmentService._parse_category(payload.get("category", payload.get("type")))
        price_per_hour = EquipmentService._parse_price(payload.get("price_per_hour"), "price per hour", True)
        price_per_day = EquipmentService._parse_price(payload.get("price_per_day"), "price per day", False)

        labels = {field: _clean(payload.get(field)) or getattr(owner, field) for field in EquipmentService.LABEL_FIELDS}
        longitude, latitude = EquipmentService._resolve_location(owner, payload, **labels)

        equipment = Equipment(
            owner_id=owner.id,
            name=name,
            category=category,
            brand=EquipmentService._parse_text("brand", payload.get("brand")),
            model=EquipmentService._parse_text("model", payload.get("model")),
            horse_power=EquipmentService._parse_int(payload.get("horse_power"), "horse power"),
            year_of_purchase=EquipmentService._parse_int(payload.get("year_of_purchase"), "year of purchase"),
            description=EquipmentService._parse_text("description", payload.get("description")),
            features=EquipmentService._parse_features(payload.get("features")),
            images=list(image_paths or []),
            price_per_hour=price_per_hour,
            price_per_day=price_per_day,
            longitude=longitude,
            latitude=latitude,
            availability_status=AVAILABLE,
            current_booking_id=None,
            **labels,
        )
        owner.is_equipment_owner = True
        db.session.add(equipment)
        db.session.commit()
        current_app.logger.info("Equipment %s listed by farmer %s", equipment.id, owner.id)
        return equipment

    @staticmethod
    def get_equipment(equipment_id):
        equipment = db.session.get(Equipment, equipment_id)
        if not equipment or not equipment.is_active:
            raise NotFoundError("Equipment not found.")
        return equipment

    @staticmethod
    def get_owned(equipment_id, owner_id):
        equipment = EquipmentService.get_equipment(equipment_id)
        if equipment.owner_id != owner_id:
            raise AuthorizationError("Not authorized.")
        return equipment

    @staticmethod
    def list_owned(owner_id):
        return (
            Equipment.query.filter_by(owner_id=owner_id, is_active=True)
            .order_by(Equipment.created_at.desc(), Equipment.id.desc())
            .all()
        )

    @staticmethod
    def update_equipment(equipment_id, owner_id, payload):
        equipment = EquipmentService.get_owned(equipment_id, owner_id)

        for field in EquipmentService.TEXT_FIELDS:
            if field in payload:
                value = EquipmentService._parse_text(field, payload[field])
                if field == "name" and not value:
                    raise ValidationError("Name cannot be empty.")
                setattr(equipment, field, value)
        for field in EquipmentService.LABEL_FIELDS:
            if field in payload:
                value = _clean(payload[field])
                if not value:
                    raise ValidationError(f"{field.capitalize()} cannot be empty.")
                setattr(equipment, field, value)
        if "category" in payload:
            equipment.category = EquipmentService._parse_category(payload["category"])
        if "price_per_hour" in payload:
            equipment.price_per_hour = EquipmentService._parse_price(payload["price_per_hour"], "price per hour", True)
        if "price_per_day" in payload:
            equipment.price_per_day = EquipmentService._parse_price(payload["price_per_day"], "price per day", False)
        if "horse_power" in payload:
            equipment.horse_power = EquipmentService._parse_int(payload["horse_power"], "horse power")
        if "year_of_purchase" in payload:
            equipment.year_of_purchase = EquipmentService._parse_int(payload["year_of_purchase"], "year of purchase")
        if "features" in payload:
            equipment.features = EquipmentService._parse_features(payload["features"])
        location = parse_location(payload)
        if location:
            equipment.longitude, equipment.latitude = location

        status = _clean(payload.get("availability_status")).lower()
        if status and status != equipment.availability_status:
            if status not in EquipmentService.OWNER_STATUSES:
                raise ValidationError("Availability can only be set to available, maintenance or unavailable.")
            changed = Equipment.query.filter(
                Equipment.id == equipment.id,
                Equipment.availability_status != BOOKED,
            ).update({Equipment.availability_status: status}, synchronize_session=False)
            if not changed:
                db.session.rollback()
                raise ConflictError("Cannot change availability while equipment is booked.")

        db.session.commit()
        return equipment

    @staticmethod
    def delete_equipment(equipment_id, owner_id):
        equipment = EquipmentService.get_owned(equipment_id, owner_id)
        # Soft delete keeps the booking history pointing at a real row.
        deleted = Equipment.query.filter(
            Equipment.id == equipment.id,
            Equipment.availability_status != BOOKED,
        ).update(
            {Equipment.is_active: False, Equipment.availability_status: UNAVAILABLE},
            synchronize_session=False,
        )
        if not deleted:
            db.session.rollback()
            raise ConflictError("Cannot delete equipment with active bookings.")
        db.session.commit()
        current_app.logger.info("Equipment %s withdrawn by owner %s", equipment_id, owner_id)
