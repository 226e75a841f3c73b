from flask import Blueprint

from mittimobil.routes.api.v1.analytics import api_analytics_bp
from mittimobil.routes.api.v1.auth import api_auth_bp
from mittimobil.routes.api.v1.bookings import api_booking_bp
from mittimobil.routes.api.v1.equipment import api_equipment_bp
from mittimobil.routes.api.v1.farmers import api_farmer_bp
from mittimobil.routes.api.v1.location import api_location_bp

api_v1_bp = Blueprint("api_v1", __name__)
api_v1_bp.register_blueprint(api_auth_bp, url_prefix="/auth")
api_v1_bp.register_blueprint(api_farmer_bp, url_prefix="/farmers")
api_v1_bp.register_blueprint(api_equipment_bp, url_prefix="/equipment")
api_v1_bp.register_blueprint(api_booking_bp, url_prefix="/bookings")
api_v1_bp.register_blueprint(api_location_bp, url_prefix="/location")
api_v1_bp.register_blueprint(api_analytics_bp, url_prefix="/analytics")
