# Overview: Flask API routes for wallet balances and daily sales stats.

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_tenant
from ..services import ledger_service
from ..validation import ValidationError, optional_date


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("/wallets")
@require_tenant
def wallets_route():
    """Balance per wallet (cash, card, online) in cents."""
    try:
        balances = ledger_service.get_wallet_balances(g.session_context.tenant_id)
        return jsonify({"wallets": balances}), 200
    except Exception:
        current_app.logger.exception("Failed to read wallet balances")
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.get("/daily-stats/<string:day>")
@require_tenant
def daily_stats_route(day: str):
    """
    One business day's sales aggregate.

    A day with no sales reports zeros rather than 404.
    """
    try:
        stats_date = optional_date(day, "date")
        stats = ledger_service.get_daily_stats(g.session_context.tenant_id, stats_date)
        if stats is None:
            return jsonify({"daily_stats": {
                "date": stats_date.isoformat(),
                "total_sales_cents": 0,
                "total_sales_cash_cents": 0,
                "total_sales_card_cents": 0,
                "total_sales_online_cents": 0,
                "invoice_count": 0,
            }}), 200
        return jsonify({"daily_stats": stats.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to read daily stats")
        return jsonify({"error": "Internal server error"}), 500
