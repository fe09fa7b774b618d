# Overview: Flask API routes for invoices (direct sales); parses input and returns JSON responses.

"""
Invoice API Routes

DESIGN:
- Provisional number for display before the sale is saved (advisory only)
- Create a direct sale: invoice, number, ledger credit in one transaction
- Delete reverses the ledger on the invoice's original business date
- Deletion of a reconciled invoice is refused with 409
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..services import document_service, invoice_service
from ..services.document_service import DocumentNotFoundError, DocumentSequenceError
from ..services.lock_service import DocumentLockedError, LockCheckError
from ..services.session_service import load_tenant
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, optional_date


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("/provisional-number")
@require_tenant
def provisional_number_route():
    """
    Preview the next document number.

    Query: prefix=INV|ORD|SRV|RET (default INV)

    Returns:
        200: {"number": "INV-20250115-0008"} or "...-ERR" when unreadable
        400: Unknown prefix
    """
    ctx = g.session_context
    prefix = (request.args.get("prefix") or "INV").upper()
    try:
        tenant = load_tenant(ctx)
        number = document_service.provisional_document_number(ctx.tenant_id, prefix, tz_name=tenant.timezone)
        return jsonify({"number": number, "provisional": True}), 200
    except DocumentSequenceError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build provisional number")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("")
@require_tenant
def create_sale_route():
    """
    Save a direct sale.

    Request body:
    {
        "customer_id": 3,
        "items": [{"item_name": "Tea", "quantity": 2, "price_cents": 15000}],
        "payment_method": "Cash",
        "tendered_cents": 50000,        (optional, cash only)
        "delivery_charge_cents": 0,     (optional)
        "order_type": "Take Away",      (optional: "Take Away" | "Dine-in")
        "remarks": "..."                (optional)
    }

    Returns:
        201: Invoice created
        400: Validation error
    """
    data = request.get_json(silent=True) or {}
    try:
        invoice = invoice_service.create_sale(
            g.session_context,
            customer_id=data.get("customer_id"),
            items=data.get("items"),
            payment_method=data.get("payment_method"),
            tendered_cents=data.get("tendered_cents"),
            delivery_charge_cents=data.get("delivery_charge_cents", 0),
            order_type=data.get("order_type") or invoice_service.ORDER_TYPE_TAKE_AWAY,
            remarks=data.get("remarks"),
        )
        return jsonify({"invoice": invoice.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to save sale")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("")
@require_tenant
def list_invoices_route():
    """List invoices, newest first. Query: date=YYYY-MM-DD (optional)."""
    try:
        on_date = optional_date(request.args.get("date"), "date")
        invoices = invoice_service.list_invoices(g.session_context, on_date=on_date)
        return jsonify({"invoices": [inv.to_dict() for inv in invoices]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_tenant
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(g.session_context, invoice_id)
        return jsonify({"invoice": invoice.to_dict()}), 200
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>")
@require_tenant
def delete_invoice_route(invoice_id: int):
    """
    Delete an invoice and reverse its ledger effect.

    Returns:
        200: Reversal summary
        404: Invoice not found
        409: Invoice reconciled (or lock state unreadable)
    """
    try:
        summary = invoice_service.delete_invoice(g.session_context, invoice_id)
        return jsonify({"deleted": summary}), 200
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (DocumentLockedError, LockCheckError) as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete invoice")
        return jsonify({"error": "Internal server error"}), 500
