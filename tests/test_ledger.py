# Overview: Pytest coverage for the debt ledger store and balance derivation.

"""
Ledger Tests

- Entries are append-only and always carry a positive amount
- Balance is the signed fold of entries and ignores ordering
- Per-shop balance equals the sum of its customers' balances
- Manual recording enforces ADMIN-only adjustments and invoice reconciliation
"""

import random
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from shopledger.models import Customer, LedgerEntry
from shopledger.services import balance_service, ledger_service
from shopledger.validation import NotFoundError, PermissionDeniedError, ValidationError


def _entry(transaction_type, amount, direction=None):
    return SimpleNamespace(transaction_type=transaction_type, amount_cents=amount, adjustment_direction=direction)


class TestAppendEntry:
    """LedgerStore.append_entry"""

    def test_append_debt_add(self, db_session, shop, customer):
        entry = ledger_service.append_entry(shop.id, customer.id, "DEBT_ADD", 1200, "staff-1", notes="Sugar x3")
        db_session.commit()

        assert entry.id is not None
        assert entry.amount_cents == 1200
        assert entry.signed_amount_cents == 1200
        assert entry.adjustment_direction is None

    def test_adjustment_defaults_to_credit(self, db_session, shop, customer):
        entry = ledger_service.append_entry(shop.id, customer.id, "ADJUSTMENT", 300, "admin-1")
        db_session.commit()

        assert entry.adjustment_direction == "CREDIT"
        assert entry.signed_amount_cents == -300

    @pytest.mark.parametrize("amount", [0, -5, "abc", 1.5, True])
    def test_rejects_non_positive_or_non_integer_amount(self, db_session, shop, customer, amount):
        with pytest.raises(ValidationError):
            ledger_service.append_entry(shop.id, customer.id, "PAYMENT", amount, "staff-1")

    def test_rejects_unknown_type(self, db_session, shop, customer):
        with pytest.raises(ValidationError):
            ledger_service.append_entry(shop.id, customer.id, "REFUND", 100, "staff-1")

    def test_direction_only_for_adjustments(self, db_session, shop, customer):
        with pytest.raises(ValidationError):
            ledger_service.append_entry(shop.id, customer.id, "PAYMENT", 100, "staff-1", adjustment_direction="DEBIT")

    def test_unknown_customer_or_shop(self, db_session, shop, customer):
        with pytest.raises(NotFoundError):
            ledger_service.append_entry(shop.id, 99999, "DEBT_ADD", 100, "staff-1")
        with pytest.raises(NotFoundError):
            ledger_service.append_entry(99999, customer.id, "DEBT_ADD", 100, "staff-1")

    def test_list_for_customer_newest_first_with_filters(self, db_session, shop, customer):
        base = datetime(2026, 3, 1, 12, 0, 0)
        for offset, (tx_type, amount) in enumerate([("DEBT_ADD", 100), ("PAYMENT", 40), ("DEBT_ADD", 70)]):
            db_session.add(LedgerEntry(
                shop_id=shop.id,
                customer_id=customer.id,
                transaction_type=tx_type,
                amount_cents=amount,
                created_by="staff-1",
                created_at=base + timedelta(days=offset),
            ))
        db_session.commit()

        entries = ledger_service.list_for_customer(customer.id)
        assert [e.amount_cents for e in entries] == [70, 40, 100]

        debts = ledger_service.list_for_customer(customer.id, transaction_type="DEBT_ADD")
        assert [e.amount_cents for e in debts] == [70, 100]

        # Inclusive date range
        window = ledger_service.list_for_customer(
            customer.id, start=base + timedelta(days=1), end=base + timedelta(days=2)
        )
        assert [e.amount_cents for e in window] == [70, 40]


class TestBalance:
    """BalanceCalculator"""

    def test_fold_sign_convention(self):
        entries = [
            _entry("DEBT_ADD", 1000),
            _entry("PAYMENT", 300),
            _entry("ADJUSTMENT", 50, "CREDIT"),
            _entry("ADJUSTMENT", 20, "DEBIT"),
        ]
        assert balance_service.fold_balance(entries) == 1000 - 300 - 50 + 20

    def test_fold_is_order_independent(self):
        rng = random.Random(1234)
        entries = [
            _entry(rng.choice(["DEBT_ADD", "PAYMENT"]), rng.randint(1, 10_000))
            for _ in range(50)
        ] + [_entry("ADJUSTMENT", 77, "DEBIT"), _entry("ADJUSTMENT", 33, "CREDIT")]
        expected = balance_service.fold_balance(entries)

        for _ in range(10):
            shuffled = list(entries)
            rng.shuffle(shuffled)
            assert balance_service.fold_balance(shuffled) == expected

    def test_empty_ledger_is_zero(self, db_session, customer):
        assert balance_service.current_balance(customer.id) == 0

    def test_shop_balance_equals_sum_of_customers(self, db_session, shop, customer):
        second = Customer(shop_id=shop.id, name="Hodan", status="ACTIVE")
        db_session.add(second)
        db_session.commit()

        ledger_service.append_entry(shop.id, customer.id, "DEBT_ADD", 2500, "staff-1")
        ledger_service.append_entry(shop.id, customer.id, "PAYMENT", 1000, "staff-1")
        ledger_service.append_entry(shop.id, second.id, "DEBT_ADD", 400, "staff-1")
        ledger_service.append_entry(shop.id, second.id, "ADJUSTMENT", 100, "admin-1", adjustment_direction="DEBIT")
        db_session.commit()

        per_customer = balance_service.current_balance(customer.id) + balance_service.current_balance(second.id)
        assert per_customer == 1500 + 500
        assert balance_service.shop_balance(shop.id) == per_customer
        assert balance_service.balances_by_customer(shop_id=shop.id) == {customer.id: 1500, second.id: 500}

    def test_shop_balance_is_scoped(self, db_session, shop, other_shop, customer, other_customer):
        ledger_service.append_entry(shop.id, customer.id, "DEBT_ADD", 100, "staff-1")
        ledger_service.append_entry(other_shop.id, other_customer.id, "DEBT_ADD", 900, "admin-2")
        db_session.commit()

        assert balance_service.shop_balance(shop.id) == 100
        assert balance_service.shop_balance(other_shop.id) == 900


class TestRecordTransaction:
    """Manual ledger recording"""

    def test_staff_records_payment(self, db_session, shop, customer, staff_ctx):
        ledger_service.append_entry(shop.id, customer.id, "DEBT_ADD", 1000, "staff-1")
        db_session.commit()

        entry = ledger_service.record_transaction(
            staff_ctx, shop_id=shop.id, customer_id=customer.id,
            transaction_type="PAYMENT", amount_cents=400, notes="Cash at counter",
        )

        assert entry.transaction_type == "PAYMENT"
        assert entry.created_by == "staff-1"
        assert balance_service.current_balance(customer.id) == 600

    def test_staff_cannot_record_adjustment(self, db_session, shop, customer, staff_ctx):
        with pytest.raises(PermissionDeniedError):
            ledger_service.record_transaction(
                staff_ctx, shop_id=shop.id, customer_id=customer.id,
                transaction_type="ADJUSTMENT", amount_cents=100,
            )
        assert db_session.query(LedgerEntry).count() == 0

    def test_admin_adjustment_direction(self, db_session, shop, customer, admin_ctx):
        ledger_service.record_transaction(
            admin_ctx, shop_id=shop.id, customer_id=customer.id,
            transaction_type="ADJUSTMENT", amount_cents=250, adjustment_direction="DEBIT",
        )
        ledger_service.record_transaction(
            admin_ctx, shop_id=shop.id, customer_id=customer.id,
            transaction_type="ADJUSTMENT", amount_cents=100,
        )
        assert balance_service.current_balance(customer.id) == 150

    def test_cross_shop_recording_denied(self, db_session, shop, other_customer, other_shop, admin_ctx):
        with pytest.raises(PermissionDeniedError):
            ledger_service.record_transaction(
                admin_ctx, shop_id=other_shop.id, customer_id=other_customer.id,
                transaction_type="DEBT_ADD", amount_cents=100,
            )

    def test_customer_of_other_shop_denied(self, db_session, shop, other_customer, admin_ctx):
        with pytest.raises(PermissionDeniedError):
            ledger_service.record_transaction(
                admin_ctx, shop_id=shop.id, customer_id=other_customer.id,
                transaction_type="DEBT_ADD", amount_cents=100,
            )

    def test_customer_role_cannot_record(self, db_session, shop, customer, customer_ctx):
        with pytest.raises(PermissionDeniedError):
            ledger_service.record_transaction(
                customer_ctx, shop_id=shop.id, customer_id=customer.id,
                transaction_type="PAYMENT", amount_cents=100,
            )

    def test_payments_allowed_for_suspended_customer(self, db_session, shop, customer, staff_ctx):
        customer.status = "SUSPENDED"
        db_session.commit()

        entry = ledger_service.record_transaction(
            staff_ctx, shop_id=shop.id, customer_id=customer.id,
            transaction_type="PAYMENT", amount_cents=100,
        )
        assert entry.id is not None

    def test_list_entries_scoped_to_callers_shop(
        self, db_session, shop, other_shop, customer, other_customer, staff_ctx, owner_ctx
    ):
        ledger_service.append_entry(shop.id, customer.id, "DEBT_ADD", 100, "staff-1")
        ledger_service.append_entry(other_shop.id, other_customer.id, "DEBT_ADD", 900, "admin-2")
        db_session.commit()

        assert [e.customer_id for e in ledger_service.list_entries(staff_ctx)] == [customer.id]
        assert len(ledger_service.list_entries(owner_ctx)) == 2
        with pytest.raises(PermissionDeniedError):
            ledger_service.list_entries(staff_ctx, customer_id=other_customer.id)
