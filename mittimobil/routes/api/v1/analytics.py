from flask import Blueprint, jsonify

from mittimobil.extensions import cache
from mittimobil.services import AnalyticsService

api_analytics_bp = Blueprint("api_analytics", __name__)


@api_analytics_bp.get("/overview")
@cache.cached(timeout=120)
def overview():
    return jsonify(AnalyticsService.overview())


@api_analytics_bp.get("/earnings")
@cache.cached(timeout=120)
def earnings():
    return jsonify({"earnings": AnalyticsService.earnings()})
