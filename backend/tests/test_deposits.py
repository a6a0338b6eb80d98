# Overview: Pytest coverage for consignment deposits at customer locations.

import pytest
from stockledger.models import Location
from stockledger.services import deposit_service, stock_service
from stockledger.validation import InsufficientStockError, ValidationError

from conftest import receive


class TestDepositFlow:
    """Send, convert and bring back goods held on deposit by a B2B customer."""

    def test_send_creates_location_and_numbers_transfer(self, db_session, warehouse, product, b2b_customer):
        receive(warehouse.id, product.sku, 10)

        move = deposit_service.send_to_deposit(
            customer_id=b2b_customer.id,
            warehouse_id=warehouse.id,
            lines=[{"sku": product.sku, "quantity": 4}],
            notes="feria",
            date="2025-09-01",
        )

        location = Location.query.filter_by(name="Joyeria Lopez").one()
        assert location.type == "retail"
        assert move.type == "transfer"
        assert move.to_id == location.id
        assert move.customer_id == b2b_customer.id
        assert move.notes == "DEPOSITO feria"
        assert move.reference == "DEP-2025-000001"
        assert stock_service.get_balance(location.id, product.sku) == 4

    def test_existing_location_matched_case_insensitively(self, db_session, warehouse, product, b2b_customer):
        existing = Location(type="retail", name="JOYERIA LOPEZ", active=True)
        db_session.add(existing)
        db_session.commit()
        receive(warehouse.id, product.sku, 1)

        move = deposit_service.send_to_deposit(
            customer_id=b2b_customer.id,
            warehouse_id=warehouse.id,
            lines=[{"sku": product.sku, "quantity": 1}],
        )

        assert move.to_id == existing.id
        assert move.notes == "DEPOSITO"
        assert Location.query.filter_by(type="retail").count() == 1

    def test_only_b2b_customers(self, db_session, warehouse, product, b2c_customer):
        receive(warehouse.id, product.sku, 1)
        with pytest.raises(ValidationError):
            deposit_service.send_to_deposit(
                customer_id=b2c_customer.id,
                warehouse_id=warehouse.id,
                lines=[{"sku": product.sku, "quantity": 1}],
            )

    def test_convert_to_sale_uses_b2b_price(self, db_session, warehouse, product, b2b_customer):
        receive(warehouse.id, product.sku, 5)
        sent = deposit_service.send_to_deposit(
            customer_id=b2b_customer.id,
            warehouse_id=warehouse.id,
            lines=[{"sku": product.sku, "quantity": 3}],
        )

        sale = deposit_service.convert_deposit_to_sale(
            customer_id=b2b_customer.id,
            lines=[{"sku": product.sku, "quantity": 2}],
            date="2025-09-10",
        )

        assert sale.type == "b2b_sale"
        assert sale.from_id == sent.to_id
        assert sale.to_id is None
        assert sale.reference == "B2B-2025-000001"
        assert sale.notes == "DEPOSITO CONVERTIDO"
        assert (sale.payment_status, sale.paid_amount_cents) == ("pending", 0)
        line = sale.lines[0]
        assert (line.unit_price_cents, line.unit_cost_cents) == (2500, 1200)
        assert stock_service.get_balance(sent.to_id, product.sku) == 1

    def test_convert_more_than_deposited_rejected(self, db_session, warehouse, product, b2b_customer):
        receive(warehouse.id, product.sku, 5)
        deposit_service.send_to_deposit(
            customer_id=b2b_customer.id,
            warehouse_id=warehouse.id,
            lines=[{"sku": product.sku, "quantity": 1}],
        )

        with pytest.raises(InsufficientStockError):
            deposit_service.convert_deposit_to_sale(
                customer_id=b2b_customer.id,
                lines=[{"sku": product.sku, "quantity": 2}],
            )

    def test_return_to_warehouse(self, db_session, warehouse, product, b2b_customer):
        receive(warehouse.id, product.sku, 5)
        sent = deposit_service.send_to_deposit(
            customer_id=b2b_customer.id,
            warehouse_id=warehouse.id,
            lines=[{"sku": product.sku, "quantity": 3}],
        )

        back = deposit_service.return_deposit_to_warehouse(
            customer_id=b2b_customer.id,
            warehouse_id=warehouse.id,
            lines=[{"sku": product.sku, "quantity": 3}],
        )

        assert (back.from_id, back.to_id) == (sent.to_id, warehouse.id)
        assert back.notes == "DEPOSITO DEVUELTO"
        assert stock_service.get_balance(sent.to_id, product.sku) == 0
        assert stock_service.get_balance(warehouse.id, product.sku) == 5


class TestDepositReports:

    def test_customer_summary_counts_units_and_cost(self, db_session, warehouse, product, product_b, b2b_customer):
        receive(warehouse.id, product.sku, 5)
        receive(warehouse.id, product_b.sku, 5)
        deposit_service.send_to_deposit(
            customer_id=b2b_customer.id,
            warehouse_id=warehouse.id,
            lines=[
                {"sku": product.sku, "quantity": 2},
                {"sku": product_b.sku, "quantity": 1},
            ],
        )

        summaries = deposit_service.list_deposit_customers()

        assert len(summaries) == 1
        summary = summaries[0]
        assert summary["customer_id"] == b2b_customer.id
        assert summary["units"] == 3
        assert summary["cost_cents"] == 2 * 1200 + 4000

    def test_fully_returned_items_disappear(self, db_session, warehouse, product, b2b_customer):
        receive(warehouse.id, product.sku, 2)
        deposit_service.send_to_deposit(
            customer_id=b2b_customer.id,
            warehouse_id=warehouse.id,
            lines=[{"sku": product.sku, "quantity": 2}],
        )
        deposit_service.return_deposit_to_warehouse(
            customer_id=b2b_customer.id,
            warehouse_id=warehouse.id,
            lines=[{"sku": product.sku, "quantity": 2}],
        )

        deposit = deposit_service.get_customer_deposit(b2b_customer.id)

        assert deposit["customer"]["id"] == b2b_customer.id
        assert deposit["location"]["name"] == "Joyeria Lopez"
        assert deposit["items"] == []
        assert deposit_service.list_deposit_customers()[0]["units"] == 0

    def test_no_deposits(self, db_session, b2b_customer):
        assert deposit_service.list_deposit_customers() == []
