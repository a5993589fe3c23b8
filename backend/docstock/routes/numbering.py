# Overview: Flask API routes for document numbering inspection.

from flask import Blueprint, jsonify, g, current_app

from ..services import numbering_service
from ..services.numbering_service import ConfigurationMissing
from ..services.sequence_template import TemplateError
from ..decorators import require_tenant


numbering_bp = Blueprint("numbering", __name__, url_prefix="/api/numbering")


@numbering_bp.get("/<series_code>/preview")
@require_tenant
def preview_number_route(series_code: str):
    """
    Number the next document of the series would receive.

    Does not reserve anything: a concurrent writer may take it first.
    """
    try:
        number = numbering_service.preview_number(g.tenant_id, series_code)
    except (ConfigurationMissing, TemplateError) as e:
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Failed to preview document number")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"series_code": series_code, "number": number}), 200


@numbering_bp.get("/<series_code>/current")
@require_tenant
def current_value_route(series_code: str):
    value = numbering_service.current_value(g.tenant_id, series_code)
    return jsonify({"series_code": series_code, "value": value}), 200
