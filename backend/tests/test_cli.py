# Overview: Pytest coverage for the Flask CLI command groups.

import pytest
from salepilot.models import Account, Store


@pytest.fixture
def runner(app, db_session):
    return app.test_cli_runner()


class TestStoreCommands:

    def test_create_store_with_accounts(self, runner, db_session):
        result = runner.invoke(args=["stores", "create", "--name", "Main Street", "--code", "MAIN", "--with-accounts"])
        assert result.exit_code == 0, result.output
        assert "PASS Created store: Main Street" in result.output
        assert "PASS Created 10 default accounts" in result.output

        store = db_session.query(Store).filter_by(code="MAIN").one()
        assert db_session.query(Account).filter_by(tenant_id=store.id).count() == 10

    def test_duplicate_code_reported(self, runner, store_a):
        result = runner.invoke(args=["stores", "create", "--name", "Again", "--code", "ACME"])
        assert "FAIL Store with code 'ACME' already exists" in result.output

    def test_list_stores(self, runner, store_a, store_b):
        result = runner.invoke(args=["stores", "list"])
        assert result.exit_code == 0
        assert "ACME" in result.output
        assert "BETA" in result.output


class TestAccountCommands:

    def test_init_then_skip(self, runner, store_a):
        first = runner.invoke(args=["accounts", "init", "--store-id", str(store_a.id)])
        assert "PASS Created 10 default accounts" in first.output
        second = runner.invoke(args=["accounts", "init", "--store-id", str(store_a.id)])
        assert "SKIP Store already has accounts" in second.output

    def test_trial_balance_of_fresh_chart(self, runner, store_a):
        runner.invoke(args=["accounts", "init", "--store-id", str(store_a.id)])
        result = runner.invoke(args=["accounts", "trial-balance", "--store-id", str(store_a.id)])
        assert result.exit_code == 0, result.output
        assert "Cash" in result.output
        assert "PASS Balanced" in result.output


class TestInventoryCommands:

    def test_low_stock(self, runner, store_a, make_product):
        make_product(store_a, "LOW-1", stock="2", reorder_point="5")
        make_product(store_a, "PLENTY", stock="20", reorder_point="5")
        result = runner.invoke(args=["inventory", "low-stock", "--store-id", str(store_a.id)])
        assert result.exit_code == 0
        assert "LOW-1" in result.output
        assert "PLENTY" not in result.output

    def test_no_low_stock(self, runner, store_a, product_a):
        result = runner.invoke(args=["inventory", "low-stock", "--store-id", str(store_a.id)])
        assert "No low-stock products." in result.output
