# Overview: Service-layer operations for orders; status-only void lifecycle with no stock or tab effects.

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Discount, Order, OrderLine
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError, clean_text, coerce_int, optional_int
from .concurrency import run_in_transaction


ORDER_LIST_LIMIT = 200
VOID_STATUS = "void"
DEFAULT_ORDER_VOID_REASON = "Voided"
DEFAULT_LINE_VOID_REASON = "Voided item"
ALL_LINES_VOIDED_REASON = "All lines voided"
ORDER_VOID_LINE_PREFIX = "VOID ORDER: "
VOID_REASON_MAX_LENGTH = 255


@dataclass(frozen=True)
class OrderLineInput:
    name: str
    quantity: int
    unit_price_cents: int


def _is_void(status: str | None) -> bool:
    return (status or "").strip().lower() == VOID_STATUS


def _round_up_to_whole_unit(cents: int) -> int:
    """Order totals are charged in whole currency units, rounded up."""
    return -(-cents // 100) * 100


def parse_order_lines(raw_lines) -> list[OrderLineInput]:
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("lines is required")

    lines = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError("Order lines must be objects", details={"line": index})
        name = clean_text(raw.get("name"))
        if not name:
            raise ValidationError(f"lines[{index}].name is required")
        lines.append(OrderLineInput(
            name=name,
            quantity=coerce_int(raw.get("quantity", 1), f"lines[{index}].quantity", minimum=1),
            unit_price_cents=coerce_int(raw.get("unit_price_cents"), f"lines[{index}].unit_price_cents", minimum=0),
        ))
    return lines


def create_order(
    *,
    staff_id: int,
    lines: list[OrderLineInput],
    subtotal_cents: int,
    discount_amount_cents: int = 0,
    total_cents: int,
    customer_id: int | None = None,
    discount_id: int | None = None,
    note: str | None = None,
) -> Order:
    """Create a paid order with its lines (card-only flow: paid on creation)."""
    if not lines:
        raise ValidationError("lines is required")

    def _op():
        order = Order(
            status="paid",
            staff_id=staff_id,
            customer_id=customer_id,
            discount_id=discount_id,
            subtotal_cents=subtotal_cents,
            discount_amount_cents=discount_amount_cents,
            total_cents=total_cents,
            note=clean_text(note, max_length=2000),
        )
        db.session.add(order)
        db.session.flush()

        for line in lines:
            db.session.add(OrderLine(
                order_id=order.id,
                name=line.name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                is_voided=False,
            ))
        return order.id

    order_id = run_in_transaction(_op)
    return db.session.get(Order, order_id)


def get_order(order_id: int) -> tuple[Order, list[OrderLine]]:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    lines = db.session.query(OrderLine).filter_by(order_id=order_id).order_by(OrderLine.created_at, OrderLine.id).all()
    return order, lines


def list_orders(status: str = "paid") -> list[Order]:
    status = (status or "paid").strip().lower()
    query = db.session.query(Order)
    if status != "all":
        if status not in ("open", "paid", VOID_STATUS):
            raise ValidationError("Invalid status", details={"status": status})
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).limit(ORDER_LIST_LIMIT).all()


def _load_order(order_id: int) -> Order | None:
    return db.session.query(Order).filter_by(id=order_id).populate_existing().first()


def void_order(order_id: int, *, reason: str | None, staff_id: int) -> Order:
    """
    Void an order and every line on it.

    Lines get "VOID ORDER: <reason>"; the order gets status "void", zeroed
    totals and the void metadata. Stock and tabs are not touched.
    """
    # Lines store the reason behind ORDER_VOID_LINE_PREFIX in the same column width
    reason = clean_text(
        reason,
        default=DEFAULT_ORDER_VOID_REASON,
        max_length=VOID_REASON_MAX_LENGTH - len(ORDER_VOID_LINE_PREFIX),
    )

    def _op():
        order = _load_order(order_id)
        if not order:
            raise NotFoundError("Order not found", details={"order_id": order_id})
        if _is_void(order.status):
            raise ConflictError("Order already voided", details={"order_id": order_id})

        now = utcnow()
        claimed = (
            db.session.query(Order)
            .filter(Order.id == order_id, Order.status != VOID_STATUS)
            .update(
                {
                    Order.status: VOID_STATUS,
                    Order.voided_at: now,
                    Order.voided_by_staff_id: staff_id,
                    Order.void_reason: reason,
                    Order.subtotal_cents: 0,
                    Order.discount_amount_cents: 0,
                    Order.total_cents: 0,
                },
                synchronize_session=False,
            )
        )
        if not claimed:
            raise ConflictError("Order already voided", details={"order_id": order_id})

        db.session.query(OrderLine).filter_by(order_id=order_id).update(
            {
                OrderLine.is_voided: True,
                OrderLine.voided_at: now,
                OrderLine.voided_by_staff_id: staff_id,
                OrderLine.void_reason: f"{ORDER_VOID_LINE_PREFIX}{reason}",
            },
            synchronize_session=False,
        )
        return order.id

    run_in_transaction(_op)
    return db.session.get(Order, order_id)


def void_order_line(order_id: int, line_id: int, *, reason: str | None, staff_id: int) -> tuple[Order, bool]:
    """
    Void a single order line and reprice the order from its active lines.

    Returns (order, order_voided). When no active line remains the whole
    order is voided with reason "All lines voided".
    """
    reason = clean_text(reason, default=DEFAULT_LINE_VOID_REASON, max_length=VOID_REASON_MAX_LENGTH)

    def _op():
        order = _load_order(order_id)
        if not order:
            raise NotFoundError("Order not found", details={"order_id": order_id})
        if _is_void(order.status):
            raise ConflictError("Order is void; cannot void individual lines", details={"order_id": order_id})

        line = db.session.query(OrderLine).filter_by(id=line_id).first()
        if not line or line.order_id != order_id:
            raise NotFoundError("Line not found for this order", details={"order_id": order_id, "line_id": line_id})

        now = utcnow()
        claimed = (
            db.session.query(OrderLine)
            .filter_by(id=line_id, order_id=order_id, is_voided=False)
            .update(
                {
                    OrderLine.is_voided: True,
                    OrderLine.voided_at: now,
                    OrderLine.voided_by_staff_id: staff_id,
                    OrderLine.void_reason: reason,
                },
                synchronize_session=False,
            )
        )
        if not claimed:
            raise ConflictError("Line already voided", details={"line_id": line_id})

        active = (
            db.session.query(OrderLine.quantity, OrderLine.unit_price_cents)
            .filter_by(order_id=order_id, is_voided=False)
            .all()
        )

        if not active:
            db.session.query(Order).filter(Order.id == order_id, Order.status != VOID_STATUS).update(
                {
                    Order.status: VOID_STATUS,
                    Order.voided_at: now,
                    Order.voided_by_staff_id: staff_id,
                    Order.void_reason: ALL_LINES_VOIDED_REASON,
                    Order.subtotal_cents: 0,
                    Order.discount_amount_cents: 0,
                    Order.total_cents: 0,
                },
                synchronize_session=False,
            )
            return True

        subtotal = sum(qty * unit for qty, unit in active)
        percent = 0
        if order.discount_id:
            discount = db.session.get(Discount, order.discount_id)
            if discount:
                percent = discount.percent or 0
        # Half-up, matching how the register rounds discounts
        discount_amount = (subtotal * percent + 50) // 100
        total = _round_up_to_whole_unit(subtotal - discount_amount)

        db.session.query(Order).filter_by(id=order_id).update(
            {
                Order.subtotal_cents: subtotal,
                Order.discount_amount_cents: discount_amount,
                Order.total_cents: total,
            },
            synchronize_session=False,
        )
        return False

    order_voided = run_in_transaction(_op)
    return db.session.get(Order, order_id), order_voided


def parse_order_payload(data: dict) -> dict:
    """Turn a create-order request body into create_order keyword arguments."""
    return {
        "lines": parse_order_lines(data.get("lines")),
        "subtotal_cents": coerce_int(data.get("subtotal_cents"), "subtotal_cents", minimum=0),
        "discount_amount_cents": coerce_int(data.get("discount_amount_cents", 0), "discount_amount_cents", minimum=0),
        "total_cents": coerce_int(data.get("total_cents"), "total_cents", minimum=0),
        "customer_id": optional_int(data.get("customer_id"), "customer_id", minimum=1),
        "discount_id": optional_int(data.get("discount_id"), "discount_id", minimum=1),
        "note": data.get("note"),
    }
