"""
Stock ledger and tab balance tests.

Both are adjusted with single UPDATE statements; these tests cover the
guards that are part of those statements.
"""

import pytest
from backoffice.models import Item, Tab
from backoffice.services import stock_service, tab_service
from backoffice.services.stock_service import InsufficientStockError
from backoffice.services.tab_service import InsufficientTabFundsError
from backoffice.validation import NotFoundError


# =============================================================================
# STOCK LEDGER
# =============================================================================


class TestStockLedger:

    def test_decrement_and_increment(self, db_session, item, fetch):
        stock_service.decrement_stock(item.id, 3)
        stock_service.increment_stock(item.id, 1)
        db_session.commit()

        assert fetch(Item, item.id).stock == 8

    def test_decrement_refuses_to_go_negative(self, db_session, item, fetch):
        with pytest.raises(InsufficientStockError) as exc:
            stock_service.decrement_stock(item.id, 11)

        assert exc.value.status_code == 409
        assert exc.value.details["on_hand"] == 10
        db_session.rollback()
        assert fetch(Item, item.id).stock == 10

    def test_allow_negative_skips_guard(self, db_session, item, fetch):
        stock_service.decrement_stock(item.id, 12, allow_negative=True)
        db_session.commit()

        assert fetch(Item, item.id).stock == -2

    def test_zero_quantity_is_noop(self, db_session, item, fetch):
        stock_service.decrement_stock(item.id, 0)
        stock_service.increment_stock(item.id, 0)
        db_session.commit()

        assert fetch(Item, item.id).stock == 10

    def test_negative_quantity_rejected(self, db_session, item):
        with pytest.raises(ValueError):
            stock_service.increment_stock(item.id, -1)

    def test_unknown_item(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.increment_stock(999999, 1)
        with pytest.raises(NotFoundError):
            stock_service.decrement_stock(999999, 1)
        with pytest.raises(NotFoundError):
            stock_service.get_stock(999999)


# =============================================================================
# TAB REFERENCES
# =============================================================================


class TestTabReference:

    @pytest.mark.parametrize("method, expected", [
        ("tab14", 14),
        ("tab:14", 14),
        ("TAB7", 7),
        (" tab 3 ", 3),
        ("tab", None),
        ("cash", None),
        ("card", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, app, method, expected):
        assert tab_service.parse_tab_reference(method) == expected

    def test_custom_prefix(self, app):
        assert tab_service.parse_tab_reference("acct-22", prefix="acct") == 22
        assert tab_service.parse_tab_reference("tab22", prefix="acct") is None


# =============================================================================
# TAB BALANCES
# =============================================================================


class TestTabBalance:

    def test_refund_increases_balance(self, db_session, tab, fetch):
        tab_service.adjust_balance(tab.id, 4500)
        db_session.commit()

        assert fetch(Tab, tab.id).amount_cents == 14500

    def test_charge_guarded_by_balance(self, db_session, tab, fetch):
        with pytest.raises(InsufficientTabFundsError) as exc:
            tab_service.adjust_balance(tab.id, -10001, allow_overdraw=False)

        assert exc.value.details["available_cents"] == 10000
        db_session.rollback()

        tab_service.adjust_balance(tab.id, -10000, allow_overdraw=False)
        db_session.commit()
        assert fetch(Tab, tab.id).amount_cents == 0

    def test_inactive_tab_cannot_be_charged(self, db_session, tab):
        tab.active = False
        db_session.commit()

        with pytest.raises(NotFoundError):
            tab_service.adjust_balance(tab.id, -100)

    def test_list_active_tabs(self, db_session, tab):
        db_session.add(Tab(name="Closed", amount_cents=0, active=False))
        db_session.commit()

        assert [t.id for t in tab_service.list_tabs(active=True)] == [tab.id]
        assert len(tab_service.list_tabs()) == 2
