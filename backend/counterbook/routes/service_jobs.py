# Overview: Flask API routes for service jobs; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..services import service_job_service
from ..services.document_service import AlreadyCompletedError, DocumentNotFoundError
from ..services.lock_service import DocumentLockedError, LockCheckError
from ..services.service_job_service import ServiceJobError
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError


service_jobs_bp = Blueprint("service_jobs", __name__, url_prefix="/api/service-jobs")


@service_jobs_bp.post("")
@require_tenant
def create_job_route():
    """
    Open a service job with an advance payment.

    Request body:
    {
        "customer_name": "Kamal",
        "customer_phone": "0711234567",        (optional)
        "job_type": "Laptop repair",
        "total_charge_cents": 500000,
        "advance_cents": 100000,
        "payment_method": "Cash",              (required when advance > 0)
        "general_info": "...",                 (optional)
        "job_complete_date": "2025-01-20T10:00:00Z"  (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        job = service_job_service.create_job(
            g.session_context,
            customer_name=data.get("customer_name"),
            customer_phone=data.get("customer_phone"),
            job_type=data.get("job_type"),
            total_charge_cents=data.get("total_charge_cents"),
            advance_cents=data.get("advance_cents", 0),
            payment_method=data.get("payment_method"),
            general_info=data.get("general_info"),
            job_complete_date=data.get("job_complete_date"),
        )
        return jsonify({"service_job": job.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to save service job")
        return jsonify({"error": "Internal server error"}), 500


@service_jobs_bp.get("")
@require_tenant
def list_jobs_route():
    include_completed = (request.args.get("include_completed") or "").strip().lower() in {"1", "true", "yes"}
    try:
        jobs = service_job_service.list_jobs(g.session_context, include_completed=include_completed)
        return jsonify({"service_jobs": [j.to_dict() for j in jobs]}), 200
    except Exception:
        current_app.logger.exception("Failed to list service jobs")
        return jsonify({"error": "Internal server error"}), 500


@service_jobs_bp.get("/<int:job_id>")
@require_tenant
def get_job_route(job_id: int):
    try:
        job = service_job_service.get_job(g.session_context, job_id)
        return jsonify({"service_job": job.to_dict()}), 200
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load service job")
        return jsonify({"error": "Internal server error"}), 500


@service_jobs_bp.post("/<int:job_id>/items")
@require_tenant
def add_job_items_route(job_id: int):
    """
    Append billed items to a Pending job.

    Request body: {"items": [{"item_name": "RAM", "quantity": 1, "price_cents": 1200000}]}

    Returns:
        200: Updated job
        400: Validation error, or the job is already completed
        404: Job not found
    """
    data = request.get_json(silent=True) or {}
    try:
        job = service_job_service.add_job_items(g.session_context, job_id, data.get("items"))
        return jsonify({"service_job": job.to_dict()}), 200
    except (ValidationError, ServiceJobError) as e:
        return jsonify({"error": str(e)}), 400
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to add service job items")
        return jsonify({"error": "Internal server error"}), 500


@service_jobs_bp.post("/<int:job_id>/extend")
@require_tenant
def extend_job_route(job_id: int):
    """
    Change the promised completion date of a Pending job.

    Request body: {"job_complete_date": "2025-01-25T10:00:00Z"}

    Returns:
        200: Updated job
        400: Missing/invalid date, or the job is already completed
        404: Job not found
    """
    data = request.get_json(silent=True) or {}
    try:
        job = service_job_service.extend_job(g.session_context, job_id, data.get("job_complete_date"))
        return jsonify({"service_job": job.to_dict()}), 200
    except (ValidationError, ServiceJobError) as e:
        return jsonify({"error": str(e)}), 400
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to extend service job")
        return jsonify({"error": "Internal server error"}), 500


@service_jobs_bp.post("/<int:job_id>/complete")
@require_tenant
def complete_job_route(job_id: int):
    data = request.get_json(silent=True) or {}
    try:
        job = service_job_service.complete_job(
            g.session_context,
            job_id,
            payment_method=data.get("payment_method"),
        )
        return jsonify({"service_job": job.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except AlreadyCompletedError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to complete service job")
        return jsonify({"error": "Internal server error"}), 500


@service_jobs_bp.delete("/<int:job_id>")
@require_tenant
def delete_job_route(job_id: int):
    try:
        summary = service_job_service.delete_job(g.session_context, job_id)
        return jsonify({"deleted": summary}), 200
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (DocumentLockedError, LockCheckError) as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete service job")
        return jsonify({"error": "Internal server error"}), 500
