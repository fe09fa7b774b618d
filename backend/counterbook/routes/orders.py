# Overview: Flask API routes for customer orders; parses input and returns JSON responses.

"""
Order API Routes

DESIGN:
- Create: ORD number, advance invoice and order in one transaction
- Complete: collects the balance exactly once (second attempt gets 409)
- Delete: reverses advance and balance invoices on their own dates
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..services import order_service
from ..services.document_service import AlreadyCompletedError, DocumentNotFoundError
from ..services.lock_service import DocumentLockedError, LockCheckError
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


@orders_bp.post("")
@require_tenant
def create_order_route():
    """
    Take an order with an advance payment.

    Request body:
    {
        "customer_name": "Nimal",
        "customer_phone": "0771234567",     (optional)
        "items": [{"item_name": "Cake", "quantity": 1, "price_cents": 100000}],
        "advance_cents": 30000,
        "payment_method": "Cash",           (required when advance > 0)
        "delivery_charge_cents": 0,         (optional, ignored unless delivery is offered)
        "delivery_date": "2025-01-20",      (optional)
        "remarks": "..."                    (optional)
    }

    Returns:
        201: Order created (with its advance invoice id)
        400: Validation error
    """
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.create_order(
            g.session_context,
            customer_name=data.get("customer_name"),
            customer_phone=data.get("customer_phone"),
            items=data.get("items"),
            advance_cents=data.get("advance_cents", 0),
            payment_method=data.get("payment_method"),
            delivery_charge_cents=data.get("delivery_charge_cents", 0),
            delivery_date=data.get("delivery_date"),
            remarks=data.get("remarks"),
        )
        return jsonify({"order": order.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to save order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_tenant
def list_orders_route():
    """List orders, newest first. Completed orders only with include_completed=1."""
    try:
        orders = order_service.list_orders(
            g.session_context,
            include_completed=_truthy(request.args.get("include_completed")),
        )
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_tenant
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(g.session_context, order_id)
        return jsonify({"order": order.to_dict()}), 200
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/complete")
@require_tenant
def complete_order_route(order_id: int):
    """
    Collect the balance and mark the order Completed.

    Request body: {"payment_method": "Card"}

    Returns:
        200: Completed order
        400: Validation error (e.g., missing payment method)
        404: Order not found
        409: Order already completed
    """
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.complete_order(
            g.session_context,
            order_id,
            payment_method=data.get("payment_method"),
        )
        return jsonify({"order": order.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except AlreadyCompletedError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to complete order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
@require_tenant
def delete_order_route(order_id: int):
    """
    Delete an order with its advance and balance invoices.

    Returns:
        200: Reversal summary
        404: Order not found
        409: A document is reconciled (or lock state unreadable)
    """
    try:
        summary = order_service.delete_order(g.session_context, order_id)
        return jsonify({"deleted": summary}), 200
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (DocumentLockedError, LockCheckError) as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500
