# Overview: Flask API routes for customer returns; parses input and returns JSON responses.

"""
Return API Routes

DESIGN:
- Returns reference an original invoice and are priced from it
- Refunds come out of a wallet; insufficient funds is refused with 409
- Undo puts the refund back and deletes the return
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..services import return_service
from ..services.document_service import DocumentNotFoundError
from ..services.lock_service import DocumentLockedError, LockCheckError
from ..services.return_service import InsufficientFundsError, ReturnError
from ..validation import ValidationError


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("")
@require_tenant
def create_return_route():
    """
    Process a customer return.

    Request body:
    {
        "invoice_id": 12,
        "items": [{"item_name": "Tea", "quantity": 1}],
        "refund_method": "Cash"
    }

    Returns:
        201: Return created
        400: Invalid input or item not returnable
        404: Invoice not found
        409: Refund wallet cannot cover the refund
    """
    data = request.get_json(silent=True) or {}
    try:
        invoice_id = data.get("invoice_id")
        if not isinstance(invoice_id, int) or isinstance(invoice_id, bool):
            return jsonify({"error": "invoice_id is required"}), 400

        sales_return = return_service.process_return(
            g.session_context,
            invoice_id=invoice_id,
            items=data.get("items"),
            refund_method=data.get("refund_method"),
        )
        return jsonify({"return": sales_return.to_dict()}), 201
    except InsufficientFundsError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except (ValidationError, ReturnError) as e:
        return jsonify({"error": str(e)}), 400
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to process return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("/<int:return_id>")
@require_tenant
def get_return_route(return_id: int):
    try:
        sales_return = return_service.get_return(g.session_context, return_id)
        return jsonify({"return": sales_return.to_dict()}), 200
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.delete("/<int:return_id>")
@require_tenant
def undo_return_route(return_id: int):
    try:
        summary = return_service.undo_return(g.session_context, return_id)
        return jsonify({"deleted": summary}), 200
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (DocumentLockedError, LockCheckError) as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except ReturnError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to undo return")
        return jsonify({"error": "Internal server error"}), 500
