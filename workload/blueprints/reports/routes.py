"""
Administrative reports: overcompliance, teaching overload and overload pay.

Every report is available as JSON and as a PDF or Excel download.
"""

import logging
import re
import unicodedata
from datetime import datetime
from urllib.parse import quote

from flask import Blueprint, jsonify, make_response, request
from flask_login import login_required

from workload import get_policy
from workload.blueprints.admin.helpers import admin_required
from workload.db_models import Category, Department, Role
from workload.services import exports
from workload.services.reporting import (
    compute_overcompliance_report,
    compute_overload_pay_allocation,
    compute_teaching_overload_report,
)
from workload.workload_calculator import WorkloadError, as_number, parse_date_range

logger = logging.getLogger(__name__)

report_bp = Blueprint("reports", __name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MIMETYPE = "application/pdf"


def _to_ascii_filename(name: str, default: str) -> str:
    """Return an ASCII-safe filename for HTTP headers (latin-1 safe)."""
    s = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    s = re.sub(r"[^A-Za-z0-9._-]+", "_", s).strip("_")
    return s if s else default


def _set_download_headers(
    response, filename_utf8: str, content_type: str, default_ascii: str
) -> None:
    """Set RFC 5987 compatible Content-Disposition with UTF-8 filename + ASCII fallback."""
    filename_ascii = _to_ascii_filename(filename_utf8, default_ascii)
    response.headers["Content-Type"] = content_type
    response.headers["Content-Disposition"] = (
        f"attachment; filename={filename_ascii}; "
        f"filename*=UTF-8''{quote(filename_utf8)}"
    )


def _download(table, base_name: str, fmt: str):
    stamp = datetime.now().strftime("%Y%m%d")
    if fmt == "pdf":
        body, mimetype, filename = exports.render_pdf(table), PDF_MIMETYPE, f"{base_name}_{stamp}.pdf"
    else:
        body, mimetype, filename = exports.render_xlsx(table), XLSX_MIMETYPE, f"{base_name}_{stamp}.xlsx"
    response = make_response(body)
    _set_download_headers(response, filename, mimetype, f"reporte.{fmt}")
    return response


def _range_args():
    """startDate/endDate obligatorios; lanza WorkloadError si faltan o son invalidos"""
    return parse_date_range(request.args.get("startDate"), request.args.get("endDate"))


def _id_arg(name: str):
    """Filtro opcional por id: ausente es None, mal formado es WorkloadError"""
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    if not raw.isdigit() or int(raw) <= 0:
        raise WorkloadError(f"{name} debe ser un entero positivo.")
    return int(raw)


def _filter_args():
    return {
        "role_id": _id_arg("roleId"),
        "category_id": _id_arg("categoryId"),
    }


def _fund_arg():
    raw = request.args.get("fondoSalario")
    if raw is None or raw.strip() == "":
        raise WorkloadError("fondoSalario es requerido.")
    return raw.strip()


def _server_error(report: str):
    logger.exception("Error generating %s report", report)
    return jsonify({"message": "Error al generar el reporte."}), 500


@report_bp.route("/filters")
@login_required
@admin_required
def report_filters():
    return jsonify(
        {
            "roles": [r.to_dict() for r in Role.query.order_by(Role.name).all()],
            "categorias": [c.to_dict() for c in Category.query.order_by(Category.name).all()],
            "departamentos": [
                d.to_dict() for d in Department.query.order_by(Department.name).all()
            ],
        }
    )


# =============================================================================
# SOBRECUMPLIMIENTO
# =============================================================================


def _overcompliance():
    start, end = _range_args()
    return compute_overcompliance_report(start, end, **_filter_args()), start, end


@report_bp.route("/over-compliance")
@login_required
@admin_required
def over_compliance():
    try:
        rows, start, end = _overcompliance()
    except WorkloadError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        return _server_error("overcompliance")
    return jsonify(
        {
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "total": len(rows),
            "profesores": [r.to_dict() for r in rows],
        }
    )


@report_bp.route("/over-compliance/<any(pdf, excel):fmt>")
@login_required
@admin_required
def over_compliance_export(fmt):
    try:
        rows, start, end = _overcompliance()
        table = exports.overcompliance_table(rows, start, end)
        return _download(table, "sobrecumplimiento", "pdf" if fmt == "pdf" else "xlsx")
    except WorkloadError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        return _server_error("overcompliance")


# =============================================================================
# SOBRECARGA DOCENTE
# =============================================================================


def _teaching_overload():
    start, end = _range_args()
    rows = compute_teaching_overload_report(
        start,
        end,
        department_id=_id_arg("departmentId"),
        policy=get_policy(),
        **_filter_args(),
    )
    return rows, start, end


@report_bp.route("/teaching-overload")
@login_required
@admin_required
def teaching_overload():
    try:
        rows, start, end = _teaching_overload()
    except WorkloadError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        return _server_error("teaching overload")
    policy = get_policy()
    return jsonify(
        {
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "norma_docente": as_number(policy.teaching_norm_hours),
            "total": len(rows),
            "profesores": [r.to_dict() for r in rows],
        }
    )


@report_bp.route("/teaching-overload/<any(pdf, excel):fmt>")
@login_required
@admin_required
def teaching_overload_export(fmt):
    try:
        rows, start, end = _teaching_overload()
        table = exports.teaching_overload_table(rows, start, end)
        return _download(table, "sobrecarga_docente", "pdf" if fmt == "pdf" else "xlsx")
    except WorkloadError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        return _server_error("teaching overload")


# =============================================================================
# PAGO POR SOBRECARGA
# =============================================================================


def _overload_payment():
    start, end = _range_args()
    fund = _fund_arg()
    return compute_overload_pay_allocation(start, end, fund, policy=get_policy()), start, end


@report_bp.route("/overload-payment")
@login_required
@admin_required
def overload_payment():
    try:
        result, start, end = _overload_payment()
    except WorkloadError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        return _server_error("overload payment")
    payload = result.to_dict()
    payload["startDate"] = start.isoformat()
    payload["endDate"] = end.isoformat()
    return jsonify(payload)


@report_bp.route("/overload-payment/<any(pdf, excel):fmt>")
@login_required
@admin_required
def overload_payment_export(fmt):
    try:
        result, start, end = _overload_payment()
        table = exports.overload_payment_table(result, start, end)
        return _download(table, "pago_sobrecarga", "pdf" if fmt == "pdf" else "xlsx")
    except WorkloadError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        return _server_error("overload payment")
