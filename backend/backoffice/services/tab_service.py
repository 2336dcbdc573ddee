# Overview: Tab accounts; balance adjustments applied atomically in SQL.

from __future__ import annotations

import re

from flask import current_app

from ..extensions import db
from ..models import Sale, Tab
from ..validation import ConflictError, NotFoundError


_NON_DIGITS = re.compile(r"\D")


class InsufficientTabFundsError(ConflictError):
    """Raised when a charge is larger than the balance left on the tab."""
    def __init__(self, tab_id: int, requested: int, available: int):
        super().__init__(
            "Not enough funds on this tab",
            details={"tab_id": tab_id, "requested_cents": requested, "available_cents": available},
        )


def parse_tab_reference(payment_method: str | None, prefix: str | None = None) -> int | None:
    """
    Extract a tab id from a payment method string.

    "tab14" and "tab:14" both give 14 (non-digits after the prefix are
    dropped). Anything not starting with the prefix, or with no digits,
    gives None.
    """
    if not payment_method:
        return None
    if prefix is None:
        prefix = current_app.config.get("TAB_PAYMENT_PREFIX", "tab")

    method = payment_method.strip().lower()
    if not method.startswith(prefix.lower()):
        return None

    digits = _NON_DIGITS.sub("", method[len(prefix):])
    if not digits:
        return None
    return int(digits)


def resolve_tab_id(sale: Sale) -> int | None:
    """Tab a sale was paid from; falls back to parsing payment_method for rows recorded without tab_id."""
    if sale.tab_id is not None:
        return sale.tab_id
    return parse_tab_reference(sale.payment_method)


def get_tab(tab_id: int) -> Tab:
    tab = db.session.get(Tab, tab_id)
    if not tab:
        raise NotFoundError("Tab not found", details={"tab_id": tab_id})
    return tab


def list_tabs(active: bool | None = None) -> list[Tab]:
    query = db.session.query(Tab)
    if active is not None:
        query = query.filter(Tab.active == active)
    return query.order_by(Tab.created_at, Tab.id).all()


def adjust_balance(tab_id: int, delta_cents: int, *, allow_overdraw: bool = True) -> bool:
    """
    Add delta_cents to a tab's balance in one UPDATE.

    Positive deltas give money back to the tab (void refunds). Negative
    deltas charge it; those require an active tab and, unless
    allow_overdraw is set, enough balance, checked inside the same UPDATE.
    A refund to a tab that no longer exists is skipped with a warning.
    Returns whether the balance moved. Does not commit.
    """
    if delta_cents == 0:
        return False

    query = db.session.query(Tab).filter(Tab.id == tab_id)
    if delta_cents < 0:
        query = query.filter(Tab.active == True)  # noqa: E712
        if not allow_overdraw:
            query = query.filter(Tab.amount_cents >= -delta_cents)

    updated = query.update({Tab.amount_cents: Tab.amount_cents + delta_cents}, synchronize_session=False)
    if updated:
        return True

    row = db.session.query(Tab.amount_cents, Tab.active).filter(Tab.id == tab_id).first()
    if row is None and delta_cents > 0:
        current_app.logger.warning("Tab %s not found; skipped refund of %s cents", tab_id, delta_cents)
        return False
    if row is None or (delta_cents < 0 and not row.active):
        raise NotFoundError("Tab not found", details={"tab_id": tab_id})
    raise InsufficientTabFundsError(tab_id, -delta_cents, row.amount_cents)
