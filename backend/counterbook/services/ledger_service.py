# Overview: Wallet and daily-stats ledger; every money movement lands here as a signed delta.

from __future__ import annotations

import logging
from datetime import date

from ..extensions import db
from ..models import WalletAccount, DailyStatsEntry
from ..time_utils import utcnow
from .concurrency import lock_for_update


log = logging.getLogger(__name__)

"""
Counterbook ledger invariants

- For each tenant and method in {cash, card, online}:
  wallet balance == sum of received amounts of live invoices paid that way
                    - refunds paid out of that wallet.
- For each day D: daily stats total == sum of received amounts of live
  invoices whose business date is D.
- Wallet and stats are always moved together, by the same delta, in the
  transaction that writes or deletes the invoice.
"""

PAYMENT_CASH = "Cash"
PAYMENT_CARD = "Card"
PAYMENT_ONLINE = "Online"
PAYMENT_CREDIT = "Credit"

PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_ONLINE, PAYMENT_CREDIT)

WALLET_METHODS = ("cash", "card", "online")

_WALLET_BY_PAYMENT = {
    PAYMENT_CASH: "cash",
    PAYMENT_CARD: "card",
    PAYMENT_ONLINE: "online",
}

_STATS_FIELD_BY_PAYMENT = {
    PAYMENT_CASH: "total_sales_cash_cents",
    PAYMENT_CARD: "total_sales_card_cents",
    PAYMENT_ONLINE: "total_sales_online_cents",
}


class LedgerError(Exception):
    """Raised when a wallet movement cannot be applied."""
    pass


def wallet_id_for(payment_method: str | None) -> str | None:
    """Cash/Card/Online map to their wallet; Credit and unknown methods to None."""
    return _WALLET_BY_PAYMENT.get(payment_method)


def stats_field_for(payment_method: str | None) -> str | None:
    return _STATS_FIELD_BY_PAYMENT.get(payment_method)


def get_or_create_wallet(tenant_id: int, method: str, *, for_update: bool = False) -> WalletAccount:
    query = db.session.query(WalletAccount).filter_by(tenant_id=tenant_id, method=method)
    if for_update:
        query = lock_for_update(query)
    wallet = query.first()
    if wallet:
        return wallet
    wallet = WalletAccount(tenant_id=tenant_id, method=method, balance_cents=0, last_updated=utcnow())
    db.session.add(wallet)
    db.session.flush()
    return wallet


def get_or_create_daily_stats(tenant_id: int, stats_date: date, *, for_update: bool = False) -> DailyStatsEntry:
    query = db.session.query(DailyStatsEntry).filter_by(tenant_id=tenant_id, stats_date=stats_date)
    if for_update:
        query = lock_for_update(query)
    stats = query.first()
    if stats:
        return stats
    stats = DailyStatsEntry(
        tenant_id=tenant_id,
        stats_date=stats_date,
        total_sales_cents=0,
        total_sales_cash_cents=0,
        total_sales_card_cents=0,
        total_sales_online_cents=0,
        invoice_count=0,
        last_updated=utcnow(),
    )
    db.session.add(stats)
    db.session.flush()
    return stats


def apply_ledger_delta(
    tenant_id: int,
    payment_method: str | None,
    delta_cents: int,
    business_date: date,
) -> tuple[WalletAccount, DailyStatsEntry] | None:
    """
    Stage a signed delta on the method's wallet and on business_date's stats.

    Inside the caller's transaction only; nothing is committed here. Missing
    wallet/stats rows are created with zero totals first. Returns None (and
    touches nothing) for Credit/unknown methods or a zero delta.
    """
    wallet_method = wallet_id_for(payment_method)
    if wallet_method is None or delta_cents == 0:
        return None

    now = utcnow()

    wallet = get_or_create_wallet(tenant_id, wallet_method, for_update=True)
    wallet.balance_cents = (wallet.balance_cents or 0) + delta_cents
    wallet.last_updated = now

    stats = get_or_create_daily_stats(tenant_id, business_date, for_update=True)
    field = stats_field_for(payment_method)
    stats.total_sales_cents = (stats.total_sales_cents or 0) + delta_cents
    setattr(stats, field, (getattr(stats, field) or 0) + delta_cents)
    stats.last_updated = now

    db.session.flush()
    log.info(
        "Ledger delta tenant=%s method=%s delta=%d date=%s",
        tenant_id, wallet_method, delta_cents, business_date.isoformat(),
    )
    return wallet, stats


def apply_invoice_count(tenant_id: int, business_date: date, delta: int) -> DailyStatsEntry:
    """
    Stage a change to business_date's paid direct-sale count.

    Not flushed here: callers stage it before apply_ledger_delta so the stats
    row is written once per transaction.
    """
    stats = get_or_create_daily_stats(tenant_id, business_date, for_update=True)
    stats.invoice_count = (stats.invoice_count or 0) + delta
    stats.last_updated = utcnow()
    return stats


def apply_wallet_delta(tenant_id: int, wallet_method: str, delta_cents: int) -> WalletAccount:
    """
    Move a wallet without touching sales stats (refunds and their undo).

    Refuses to take a wallet below zero.
    """
    if wallet_method not in WALLET_METHODS:
        raise LedgerError(f"Unknown wallet: {wallet_method!r}")
    wallet = get_or_create_wallet(tenant_id, wallet_method, for_update=True)
    new_balance = (wallet.balance_cents or 0) + delta_cents
    if new_balance < 0:
        raise LedgerError(
            f"Wallet {wallet_method} balance {wallet.balance_cents} cannot cover {-delta_cents}"
        )
    wallet.balance_cents = new_balance
    wallet.last_updated = utcnow()
    db.session.flush()
    return wallet


def get_wallet_balances(tenant_id: int) -> dict:
    """Balance per wallet in cents; wallets never written report 0."""
    balances = {method: 0 for method in WALLET_METHODS}
    rows = db.session.query(WalletAccount).filter_by(tenant_id=tenant_id).all()
    for wallet in rows:
        balances[wallet.method] = wallet.balance_cents
    return balances


def get_daily_stats(tenant_id: int, stats_date: date) -> DailyStatsEntry | None:
    return db.session.query(DailyStatsEntry).filter_by(tenant_id=tenant_id, stats_date=stats_date).first()
