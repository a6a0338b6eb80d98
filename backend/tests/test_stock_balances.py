# Overview: Pytest coverage for ledger-derived balances and the negative-stock guard.

"""
Stock Balance Tests

Balances are never stored: they are the signed sum of move lines
(incoming to_id minus outgoing from_id). These tests pin that down and
check that the negative-stock guard rejects oversells without writing.
"""

import pytest
from stockledger.extensions import db
from stockledger.models import StockMove, StockMoveLine
from stockledger.services import move_service, stock_service
from stockledger.validation import InsufficientStockError, NotFoundError

from conftest import make_product, receive


class TestBalanceCalculator:
    """balance(location, sku) = incoming - outgoing over the whole ledger."""

    def test_unseen_sku_is_zero(self, db_session, warehouse, product):
        assert stock_service.get_balance(warehouse.id, product.sku) == 0
        assert stock_service.get_balance(warehouse.id, "NEVER-SEEN") == 0

    def test_signed_sum_of_purchases_transfers_and_adjustments(self, db_session, warehouse, retail, product):
        receive(warehouse.id, product.sku, 10)
        receive(warehouse.id, product.sku, 5)
        move_service.create_transfer(
            from_id=warehouse.id,
            to_id=retail.id,
            lines=[{"sku": product.sku, "quantity": 4}],
        )
        move_service.create_adjust(
            location_id=warehouse.id,
            direction="out",
            lines=[{"sku": product.sku, "quantity": 1}],
        )

        assert stock_service.get_balance(warehouse.id, product.sku) == 10
        assert stock_service.get_balance(retail.id, product.sku) == 4

    def test_transfer_there_and_back_restores_balances(self, db_session, warehouse, warehouse_b, product):
        receive(warehouse.id, product.sku, 8)
        before = (
            stock_service.get_balance(warehouse.id, product.sku),
            stock_service.get_balance(warehouse_b.id, product.sku),
        )

        lines = [{"sku": product.sku, "quantity": 3}]
        move_service.create_transfer(from_id=warehouse.id, to_id=warehouse_b.id, lines=lines)
        move_service.create_transfer(from_id=warehouse_b.id, to_id=warehouse.id, lines=lines)

        after = (
            stock_service.get_balance(warehouse.id, product.sku),
            stock_service.get_balance(warehouse_b.id, product.sku),
        )
        assert after == before == (8, 0)

    def test_get_balances_groups_by_sku(self, db_session, warehouse, product, product_b):
        receive(warehouse.id, product.sku, 3)
        receive(warehouse.id, product_b.sku, 7)
        move_service.create_adjust(
            location_id=warehouse.id,
            direction="out",
            lines=[{"sku": product_b.sku, "quantity": 2}],
        )

        assert stock_service.get_balances(warehouse.id) == {product.sku: 3, product_b.sku: 5}

    def test_list_stock_is_zero_filled_and_sorted(self, db_session, warehouse, product, product_b):
        receive(warehouse.id, product_b.sku, 2)

        items = stock_service.list_stock(warehouse.id)

        assert [item["sku"] for item in items] == sorted([product.sku, product_b.sku])
        by_sku = {item["sku"]: item["quantity"] for item in items}
        assert by_sku == {product.sku: 0, product_b.sku: 2}

    def test_list_stock_requires_active_location(self, db_session, warehouse):
        warehouse.active = False
        db_session.commit()

        with pytest.raises(NotFoundError):
            stock_service.list_stock(warehouse.id)


class TestNegativeStockGuard:
    """Outgoing moves may not push a balance below zero unless overridden."""

    def test_rejected_move_writes_nothing(self, db_session, warehouse, retail, product):
        receive(warehouse.id, product.sku, 2)
        moves_before = db_session.query(StockMove).count()
        lines_before = db_session.query(StockMoveLine).count()

        with pytest.raises(InsufficientStockError) as excinfo:
            move_service.create_transfer(
                from_id=warehouse.id,
                to_id=retail.id,
                lines=[{"sku": product.sku, "quantity": 3}],
            )

        assert excinfo.value.sku == product.sku
        assert excinfo.value.available == 2
        assert excinfo.value.requested == 3
        assert db_session.query(StockMove).count() == moves_before
        assert db_session.query(StockMoveLine).count() == lines_before
        assert stock_service.get_balance(warehouse.id, product.sku) == 2

    def test_split_lines_are_summed_before_checking(self, db_session, warehouse, retail, product):
        receive(warehouse.id, product.sku, 5)

        with pytest.raises(InsufficientStockError):
            move_service.create_transfer(
                from_id=warehouse.id,
                to_id=retail.id,
                lines=[
                    {"sku": product.sku, "quantity": 3},
                    {"sku": product.sku, "quantity": 3},
                ],
            )

    def test_names_first_offending_sku(self, db_session, warehouse, retail, product, product_b):
        receive(warehouse.id, product.sku, 5)

        with pytest.raises(InsufficientStockError) as excinfo:
            move_service.create_transfer(
                from_id=warehouse.id,
                to_id=retail.id,
                lines=[
                    {"sku": product.sku, "quantity": 1},
                    {"sku": product_b.sku, "quantity": 1},
                ],
            )
        assert excinfo.value.sku == product_b.sku

    def test_override_allows_negative_balance(self, db_session, warehouse, retail, product):
        move_service.create_transfer(
            from_id=warehouse.id,
            to_id=retail.id,
            lines=[{"sku": product.sku, "quantity": 2}],
            allow_negative_stock=True,
        )
        assert stock_service.get_balance(warehouse.id, product.sku) == -2

    def test_adjust_out_guarded_unless_allowed(self, db_session, warehouse, product):
        with pytest.raises(InsufficientStockError):
            move_service.create_adjust(
                location_id=warehouse.id,
                direction="out",
                lines=[{"sku": product.sku, "quantity": 1}],
            )

        move_service.create_adjust(
            location_id=warehouse.id,
            direction="out",
            lines=[{"sku": product.sku, "quantity": 1}],
            allow_negative_adjust=True,
        )
        assert stock_service.get_balance(warehouse.id, product.sku) == -1

    def test_guard_with_location_lock_enabled(self, app, db_session, warehouse, retail, product):
        """The optional row lock is a no-op on SQLite but the guard still applies."""
        receive(warehouse.id, product.sku, 1)
        app.config["LEDGER_LOCK_STOCK_GUARD"] = True
        try:
            with pytest.raises(InsufficientStockError):
                move_service.create_transfer(
                    from_id=warehouse.id,
                    to_id=retail.id,
                    lines=[{"sku": product.sku, "quantity": 2}],
                )
            move = move_service.create_transfer(
                from_id=warehouse.id,
                to_id=retail.id,
                lines=[{"sku": product.sku, "quantity": 1}],
            )
        finally:
            app.config["LEDGER_LOCK_STOCK_GUARD"] = False

        assert move.id is not None
        assert stock_service.get_balance(warehouse.id, product.sku) == 0

    def test_deactivated_product_with_stock_still_listed(self, db_session, warehouse):
        gone = make_product("OLD-001", "Retired item")
        receive(warehouse.id, gone.sku, 1)
        gone.active = False
        db.session.commit()

        skus = [item["sku"] for item in stock_service.list_stock(warehouse.id)]
        assert "OLD-001" in skus
