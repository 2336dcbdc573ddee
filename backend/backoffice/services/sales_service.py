"""
Sales Service - sale recording and void reconciliation

Recording a sale touches the sale row, its line items, item stock and, for
tab payments, the tab balance. Each void path undoes exactly the part of
those effects that has not been undone yet.

INVARIANTS:
- Every operation is one transaction (run_in_transaction); a failure at any
  step leaves no trace of the earlier steps.
- "Not already voided" is decided by a conditional UPDATE ... WHERE
  voided = false and its row count, never by a read followed by a write.
- Stock and tab balances only move through atomic SQL increments.
- A unit is restocked at most once: SaleItem.restocked_quantity counts what
  item-level voids already returned, and a full-sale void returns only the
  remainder.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Customer, Discount, Item, Sale, SaleItem
from ..time_utils import utcnow
from ..validation import (
    ConflictError, NotFoundError, ValidationError, clean_text, coerce_int, coerce_money, optional_int,
)
from .concurrency import lock_for_update, run_in_transaction
from .stock_service import decrement_stock, increment_stock
from .tab_service import adjust_balance, parse_tab_reference, resolve_tab_id


MAX_LIST_LIMIT = 500


@dataclass(frozen=True)
class CartLine:
    item_id: int
    quantity: int
    price_cents: int


def _cents_field(raw: dict, name: str, label: str = "") -> int:
    """
    Read a money field as cents.

    "<name>_cents" takes integer cents. Without it, the legacy "<name>" key
    is read as a currency amount (5 or "5.00" is 500 cents).
    """
    if raw.get(f"{name}_cents") is None and raw.get(name) is not None:
        return coerce_money(raw.get(name), f"{label}{name}", minimum=0)
    return coerce_int(raw.get(f"{name}_cents"), f"{label}{name}_cents", minimum=0)


def parse_cart(raw_cart) -> list[CartLine]:
    """Validate the client cart; raises ValidationError before anything is written."""
    if not isinstance(raw_cart, list) or not raw_cart:
        raise ValidationError("Cart is empty")

    lines: list[CartLine] = []
    for index, raw in enumerate(raw_cart):
        if not isinstance(raw, dict):
            raise ValidationError("Cart lines must be objects", details={"line": index})
        # Older POS clients send the item id as "id"
        item_id = raw.get("item_id", raw.get("id"))
        lines.append(CartLine(
            item_id=coerce_int(item_id, f"cart[{index}].item_id", minimum=1),
            quantity=coerce_int(raw.get("quantity"), f"cart[{index}].quantity", minimum=1),
            price_cents=_cents_field(raw, "price", f"cart[{index}]."),
        ))
    return lines


def record_sale(
    *,
    staff_id: int,
    cart: list[CartLine],
    original_total_cents: int,
    final_total_cents: int,
    payment_method: str | None = None,
    customer_id: int | None = None,
    discount_id: int | None = None,
    tab_id: int | None = None,
) -> Sale:
    """
    Record a completed sale: the sale row, one SaleItem per cart line
    (subtotal = price x quantity) and a stock decrement per line.

    When the sale is paid from a tab (explicit tab_id, or a payment_method
    such as "tab14") the tab is charged final_total_cents in the same
    transaction.
    """
    if not cart:
        raise ValidationError("Cart is empty")
    if original_total_cents < 0 or final_total_cents < 0:
        raise ValidationError("Totals must be non-negative")

    if tab_id is None:
        tab_id = parse_tab_reference(payment_method)

    allow_negative = current_app.config.get("ALLOW_NEGATIVE_STOCK", False)

    def _op():
        if customer_id is not None and not db.session.get(Customer, customer_id):
            raise NotFoundError("Customer not found", details={"customer_id": customer_id})
        if discount_id is not None and not db.session.get(Discount, discount_id):
            raise NotFoundError("Discount not found", details={"discount_id": discount_id})

        item_ids = {line.item_id for line in cart}
        items = {item.id: item for item in db.session.query(Item).filter(Item.id.in_(item_ids)).all()}
        missing = sorted(item_ids - set(items))
        if missing:
            raise NotFoundError("Item not found", details={"item_ids": missing})

        sale = Sale(
            staff_id=staff_id,
            customer_id=customer_id,
            discount_id=discount_id,
            tab_id=tab_id,
            payment_method=payment_method,
            original_total_cents=original_total_cents,
            final_total_cents=final_total_cents,
            voided=False,
        )
        db.session.add(sale)
        db.session.flush()

        for line in cart:
            db.session.add(SaleItem(
                sale_id=sale.id,
                item_id=line.item_id,
                item_name=items[line.item_id].name,
                quantity=line.quantity,
                sold_quantity=line.quantity,
                restocked_quantity=0,
                price_each_cents=line.price_cents,
                subtotal_cents=line.price_cents * line.quantity,
                voided=False,
            ))
        db.session.flush()

        for line in cart:
            decrement_stock(line.item_id, line.quantity, allow_negative=allow_negative)

        if tab_id is not None:
            adjust_balance(tab_id, -final_total_cents, allow_overdraw=False)

        return sale.id

    sale_id = run_in_transaction(_op)
    return db.session.get(Sale, sale_id)


def _load_sale_item(sale_item_id: int) -> SaleItem | None:
    return db.session.query(SaleItem).filter_by(id=sale_item_id).populate_existing().first()


def _load_sale(sale_id: int) -> Sale | None:
    return lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).populate_existing().first()


def void_sale_item(sale_item_id: int, *, staff_id: int | None = None) -> SaleItem:
    """
    Void one unit of a sale line.

    Restocks exactly one unit and takes one price_each off the line subtotal
    and the sale total (floored at 0). When the sale was paid from a tab, the
    tab gets back what the sale total actually dropped, so a discounted sale
    never refunds more than it charged. The line is then locked by its
    voided flag, so a multi-unit line loses one unit through this path, once.
    """
    def _op():
        line = _load_sale_item(sale_item_id)
        if not line:
            raise NotFoundError("Sale item not found", details={"sale_item_id": sale_item_id})
        if line.voided:
            raise ConflictError("Sale item already voided", details={"sale_item_id": sale_item_id})

        price = line.price_each_cents
        claimed = (
            db.session.query(SaleItem)
            .filter_by(id=sale_item_id, voided=False)
            .update(
                {
                    SaleItem.voided: True,
                    SaleItem.quantity: SaleItem.quantity - 1,
                    SaleItem.subtotal_cents: SaleItem.subtotal_cents - SaleItem.price_each_cents,
                    SaleItem.restocked_quantity: SaleItem.restocked_quantity + 1,
                    SaleItem.voided_at: utcnow(),
                    SaleItem.voided_by_staff_id: staff_id,
                },
                synchronize_session=False,
            )
        )
        if not claimed:
            # A concurrent void committed between the read and the claim
            raise ConflictError("Sale item already voided", details={"sale_item_id": sale_item_id})

        sale = _load_sale(line.sale_id)
        if not sale:
            raise NotFoundError("Sale not found", details={"sale_id": line.sale_id})

        reduction = min(price, sale.final_total_cents)
        if reduction > 0:
            reduced = (
                db.session.query(Sale)
                .filter_by(id=sale.id, final_total_cents=sale.final_total_cents)
                .update(
                    {Sale.final_total_cents: Sale.final_total_cents - reduction},
                    synchronize_session=False,
                )
            )
            if not reduced:
                # Total moved under us; run_in_transaction retries the whole void
                raise StaleDataError(f"final total of sale {sale.id} changed during item void")

            tab_id = resolve_tab_id(sale)
            if tab_id is not None:
                adjust_balance(tab_id, reduction)

        increment_stock(line.item_id, 1)
        return line.id

    run_in_transaction(_op)
    return db.session.get(SaleItem, sale_item_id)


def void_sale(sale_id: int, *, staff_id: int | None = None, reason: str | None = None) -> Sale:
    """
    Void a whole sale.

    Refunds the sale's current final total to its tab, restocks what each
    line has not already had restocked, marks every line voided and zeroes
    the sale total.
    """
    reason = clean_text(reason)

    def _op():
        sale = _load_sale(sale_id)
        if not sale:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})
        if sale.voided:
            raise ConflictError("Sale already voided", details={"sale_id": sale_id})

        refund_cents = sale.final_total_cents
        tab_id = resolve_tab_id(sale)
        now = utcnow()

        claimed = (
            db.session.query(Sale)
            .filter_by(id=sale_id, voided=False)
            .update(
                {
                    Sale.voided: True,
                    Sale.final_total_cents: 0,
                    Sale.voided_at: now,
                    Sale.voided_by_staff_id: staff_id,
                    Sale.void_reason: reason,
                },
                synchronize_session=False,
            )
        )
        if not claimed:
            raise ConflictError("Sale already voided", details={"sale_id": sale_id})

        if tab_id is not None and refund_cents > 0:
            adjust_balance(tab_id, refund_cents)

        lines = lock_for_update(
            db.session.query(SaleItem).filter_by(sale_id=sale_id).order_by(SaleItem.id).populate_existing()
        ).all()
        for line in lines:
            remaining = line.sold_quantity - line.restocked_quantity
            if remaining > 0:
                increment_stock(line.item_id, remaining)

        db.session.query(SaleItem).filter_by(sale_id=sale_id, voided=False).update(
            {
                SaleItem.voided: True,
                SaleItem.voided_at: now,
                SaleItem.voided_by_staff_id: staff_id,
            },
            synchronize_session=False,
        )
        db.session.query(SaleItem).filter_by(sale_id=sale_id).update(
            {SaleItem.restocked_quantity: SaleItem.sold_quantity},
            synchronize_session=False,
        )
        return sale.id

    run_in_transaction(_op)
    return db.session.get(Sale, sale_id)


def get_sale_details(sale_id: int) -> tuple[Sale, list[SaleItem]]:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    lines = db.session.query(SaleItem).filter_by(sale_id=sale_id).order_by(SaleItem.id).all()
    return sale, lines


def list_sales(*, limit: int = 100, voided: bool | None = None, staff_id: int | None = None) -> list[Sale]:
    """Most recent sales first."""
    limit = max(1, min(int(limit), MAX_LIST_LIMIT))
    query = db.session.query(Sale)
    if voided is not None:
        query = query.filter(Sale.voided == voided)
    if staff_id is not None:
        query = query.filter(Sale.staff_id == staff_id)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()


def parse_sale_payload(data: dict) -> dict:
    """Turn a create-sale request body into record_sale keyword arguments."""
    return {
        "cart": parse_cart(data.get("cart")),
        "original_total_cents": _cents_field(data, "original_total"),
        "final_total_cents": _cents_field(data, "final_total"),
        "payment_method": clean_text(data.get("payment_method"), max_length=64),
        "customer_id": optional_int(data.get("customer_id"), "customer_id", minimum=1),
        "discount_id": optional_int(data.get("discount_id"), "discount_id", minimum=1),
        "tab_id": optional_int(data.get("tab_id"), "tab_id", minimum=1),
    }
