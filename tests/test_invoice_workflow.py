# Overview: Pytest coverage for the invoice lifecycle, amounts and delivery debt.

"""
Invoice Workflow Tests

STATE MACHINE:
    DRAFT -> SUBMITTED -> ACCEPTED -> PREPARING -> AMOUNT_ENTERED -> DELIVERED_CONFIRMED
    DRAFT, SUBMITTED -> REJECTED

Covers:
- creation snapshots and initial status per role
- every edge outside the graph is refused
- delivery appends debt exactly once
- remaining == max(0, total - paid) after every write path
"""

import itertools

import pytest

from shopledger.models import INVOICE_STATUSES, AuditLog, Invoice, LedgerEntry
from shopledger.services import balance_service, invoice_service, ledger_service
from shopledger.services.lifecycle_service import INVOICE_TRANSITIONS, can_transition
from shopledger.validation import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


HAPPY_PATH = ["SUBMITTED", "ACCEPTED", "PREPARING", "AMOUNT_ENTERED", "DELIVERED_CONFIRMED"]


def _create(ctx, customer, item_sugar, item_tea, **kwargs):
    return invoice_service.create_invoice(
        ctx,
        customer_id=customer.id,
        line_items=[
            {"item_id": item_sugar.id, "quantity": 2},
            {"item_id": item_tea.id, "quantity": 1},
        ],
        **kwargs,
    )


def _assert_invariant(invoice):
    assert invoice.remaining_debt_cents == max(0, invoice.total_amount_cents - invoice.paid_amount_cents)


def _deliver(invoice_id, ctx, *, total=None):
    for status in HAPPY_PATH:
        if status == "AMOUNT_ENTERED" and total is not None:
            invoice_service.update_invoice(invoice_id, ctx, status=status, total_amount_cents=total)
        else:
            invoice_service.transition(invoice_id, status, ctx)
    return invoice_service.get_invoice(invoice_id, ctx)


class TestLifecycleRules:
    """lifecycle_service graph"""

    def test_graph_edges(self):
        assert can_transition("DRAFT", "SUBMITTED")
        assert can_transition("SUBMITTED", "REJECTED")
        assert not can_transition("DRAFT", "DELIVERED_CONFIRMED")
        assert not can_transition("ACCEPTED", "REJECTED")
        assert not can_transition("PREPARING", "PREPARING")

    def test_terminal_states_have_no_edges(self):
        for target in INVOICE_STATUSES:
            assert not can_transition("DELIVERED_CONFIRMED", target)
            assert not can_transition("REJECTED", target)

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            can_transition("DRAFT", "SHIPPED")


class TestCreateInvoice:

    def test_staff_creates_draft_with_snapshots(self, db_session, customer, item_sugar, item_tea, staff_ctx, shop):
        """lines (2 @ 1000, 1 @ 500) -> 2500 everywhere."""
        invoice = _create(staff_ctx, customer, item_sugar, item_tea, requested_month="2026-10")

        assert invoice.status == "DRAFT"
        assert invoice.invoice_number == f"INV-{shop.id:03d}-0001"
        assert invoice.subtotal_cents == 2500
        assert invoice.total_amount_cents == 2500
        assert invoice.remaining_debt_cents == 2500
        assert invoice.paid_amount_cents == 0
        assert invoice.requested_month == "2026-10"

        lines = invoice.line_items
        assert [(line.item_name_snapshot, line.quantity, line.unit_price_snapshot_cents, line.line_total_cents) for line in lines] == [
            ("Sugar 1kg", 2, 1000, 2000),
            ("Tea 250g", 1, 500, 500),
        ]
        # Invoices never touch the ledger before delivery
        assert db_session.query(LedgerEntry).count() == 0

    def test_customer_creates_submitted(self, db_session, customer, item_sugar, item_tea, customer_ctx):
        invoice = _create(customer_ctx, customer, item_sugar, item_tea)
        assert invoice.status == "SUBMITTED"
        assert invoice.created_by == "cust-1"

    def test_customer_cannot_create_for_someone_else(
        self, db_session, customer, other_customer, item_sugar, item_tea, customer_ctx
    ):
        with pytest.raises(PermissionDeniedError):
            _create(customer_ctx, other_customer, item_sugar, item_tea)

    def test_invoice_numbers_increment_per_shop(self, db_session, customer, item_sugar, item_tea, staff_ctx, shop):
        first = _create(staff_ctx, customer, item_sugar, item_tea)
        second = _create(staff_ctx, customer, item_sugar, item_tea)
        assert first.invoice_number == f"INV-{shop.id:03d}-0001"
        assert second.invoice_number == f"INV-{shop.id:03d}-0002"

    def test_price_edits_do_not_change_snapshots(self, db_session, customer, item_sugar, item_tea, staff_ctx):
        invoice = _create(staff_ctx, customer, item_sugar, item_tea)
        item_sugar.unit_price_cents = 9999
        db_session.commit()

        refreshed = invoice_service.get_invoice(invoice.id, staff_ctx)
        assert refreshed.line_items[0].unit_price_snapshot_cents == 1000
        assert refreshed.total_amount_cents == 2500

    def test_empty_lines_rejected(self, db_session, customer, staff_ctx):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(staff_ctx, customer_id=customer.id, line_items=[])

    def test_inactive_or_unknown_item_rejected(self, db_session, customer, item_sugar, item_tea, staff_ctx):
        item_tea.status = "INACTIVE"
        db_session.commit()
        with pytest.raises(ValidationError):
            _create(staff_ctx, customer, item_sugar, item_tea)
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(
                staff_ctx, customer_id=customer.id, line_items=[{"item_id": 99999, "quantity": 1}]
            )
        assert db_session.query(Invoice).count() == 0

    def test_item_of_other_shop_rejected(self, db_session, customer, other_shop, staff_ctx):
        from shopledger.models import Item

        foreign = Item(shop_id=other_shop.id, name="Rice", unit_price_cents=700, status="ACTIVE")
        db_session.add(foreign)
        db_session.commit()

        with pytest.raises(ValidationError):
            invoice_service.create_invoice(
                staff_ctx, customer_id=customer.id, line_items=[{"item_id": foreign.id, "quantity": 1}]
            )

    def test_non_positive_quantity_rejected(self, db_session, customer, item_sugar, staff_ctx):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(
                staff_ctx, customer_id=customer.id, line_items=[{"item_id": item_sugar.id, "quantity": 0}]
            )

    def test_owner_cannot_create(self, db_session, customer, item_sugar, item_tea, owner_ctx):
        with pytest.raises(PermissionDeniedError):
            _create(owner_ctx, customer, item_sugar, item_tea)

    def test_suspended_customer_rejected(self, db_session, customer, item_sugar, item_tea, staff_ctx):
        customer.status = "SUSPENDED"
        db_session.commit()
        with pytest.raises(ValidationError):
            _create(staff_ctx, customer, item_sugar, item_tea)

    def test_bad_requested_month(self, db_session, customer, item_sugar, item_tea, staff_ctx):
        with pytest.raises(ValidationError):
            _create(staff_ctx, customer, item_sugar, item_tea, requested_month="2026-13")


class TestTransitions:

    def test_full_workflow_adds_debt_once(self, db_session, customer, item_sugar, item_tea, staff_ctx, admin_ctx):
        """Full workflow -> one DEBT_ADD of 2500 and balance 2500."""
        invoice = _create(staff_ctx, customer, item_sugar, item_tea)
        delivered = _deliver(invoice.id, admin_ctx, total=2500)

        assert delivered.status == "DELIVERED_CONFIRMED"
        assert delivered.accepted_by == "admin-1"
        assert delivered.delivered_by == "admin-1"
        assert delivered.delivered_at is not None
        _assert_invariant(delivered)

        debts = db_session.query(LedgerEntry).filter_by(invoice_id=invoice.id).all()
        assert len(debts) == 1
        assert debts[0].transaction_type == "DEBT_ADD"
        assert debts[0].amount_cents == 2500
        assert debts[0].notes == f"Debt from invoice {delivered.invoice_number}"
        assert balance_service.current_balance(customer.id) == 2500

    def test_confirm_twice_fails(self, db_session, customer, item_sugar, item_tea, admin_ctx):
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)
        _deliver(invoice.id, admin_ctx)

        with pytest.raises(InvalidTransitionError):
            invoice_service.transition(invoice.id, "DELIVERED_CONFIRMED", admin_ctx)

        assert db_session.query(LedgerEntry).filter_by(invoice_id=invoice.id).count() == 1
        assert balance_service.current_balance(customer.id) == 2500

    def test_skip_is_rejected_and_state_unchanged(self, db_session, customer, item_sugar, item_tea, admin_ctx):
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)

        with pytest.raises(InvalidTransitionError):
            invoice_service.transition(invoice.id, "DELIVERED_CONFIRMED", admin_ctx)

        db_session.expire_all()
        assert invoice_service.get_invoice(invoice.id, admin_ctx).status == "DRAFT"
        assert db_session.query(LedgerEntry).count() == 0

    def test_every_pair_outside_graph_fails(self, db_session, shop, customer, item_sugar, admin_ctx):
        """Walk an invoice to each status, then try every target not in the graph."""
        path = ["DRAFT"] + HAPPY_PATH
        for source, target in itertools.product(INVOICE_STATUSES, INVOICE_STATUSES):
            if target in INVOICE_TRANSITIONS[source]:
                continue
            if source == "REJECTED":
                invoice = invoice_service.create_invoice(
                    admin_ctx, customer_id=customer.id, line_items=[{"item_id": item_sugar.id, "quantity": 1}]
                )
                invoice_service.transition(invoice.id, "REJECTED", admin_ctx)
            else:
                invoice = invoice_service.create_invoice(
                    admin_ctx, customer_id=customer.id, line_items=[{"item_id": item_sugar.id, "quantity": 1}]
                )
                for step in path[1:path.index(source) + 1]:
                    invoice_service.transition(invoice.id, step, admin_ctx)

            ledger_before = db_session.query(LedgerEntry).count()
            with pytest.raises(InvalidTransitionError):
                invoice_service.transition(invoice.id, target, admin_ctx)
            db_session.expire_all()
            assert invoice_service.get_invoice(invoice.id, admin_ctx).status == source
            assert db_session.query(LedgerEntry).count() == ledger_before

    def test_reject_from_submitted(self, db_session, customer, item_sugar, item_tea, staff_ctx, customer_ctx):
        invoice = _create(customer_ctx, customer, item_sugar, item_tea)
        rejected = invoice_service.transition(invoice.id, "REJECTED", staff_ctx)

        assert rejected.status == "REJECTED"
        assert rejected.rejected_by == "staff-1"
        assert db_session.query(LedgerEntry).count() == 0

    def test_customer_may_only_submit(self, db_session, customer, item_sugar, item_tea, staff_ctx, customer_ctx):
        invoice = _create(staff_ctx, customer, item_sugar, item_tea)

        submitted = invoice_service.transition(invoice.id, "SUBMITTED", customer_ctx)
        assert submitted.status == "SUBMITTED"

        with pytest.raises(PermissionDeniedError):
            invoice_service.transition(invoice.id, "ACCEPTED", customer_ctx)

    def test_other_shop_staff_denied(self, db_session, customer, item_sugar, item_tea, staff_ctx, other_admin_ctx):
        invoice = _create(staff_ctx, customer, item_sugar, item_tea)
        with pytest.raises(PermissionDeniedError):
            invoice_service.transition(invoice.id, "SUBMITTED", other_admin_ctx)

    def test_owner_cannot_transition(self, db_session, customer, item_sugar, item_tea, staff_ctx, owner_ctx):
        invoice = _create(staff_ctx, customer, item_sugar, item_tea)
        with pytest.raises(PermissionDeniedError):
            invoice_service.transition(invoice.id, "SUBMITTED", owner_ctx)

    def test_unknown_invoice(self, db_session, admin_ctx):
        with pytest.raises(NotFoundError):
            invoice_service.transition(99999, "SUBMITTED", admin_ctx)

    def test_fully_paid_invoice_adds_no_debt(self, db_session, customer, item_sugar, item_tea, admin_ctx):
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)
        invoice_service.apply_amounts(invoice.id, admin_ctx, paid_amount_cents=2500)
        delivered = _deliver(invoice.id, admin_ctx)

        assert delivered.remaining_debt_cents == 0
        assert db_session.query(LedgerEntry).count() == 0

    def test_transitions_are_audited(self, db_session, customer, item_sugar, item_tea, admin_ctx):
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)
        invoice_service.transition(invoice.id, "SUBMITTED", admin_ctx)

        actions = [e.action for e in db_session.query(AuditLog).filter_by(entity_type="INVOICE").order_by(AuditLog.id)]
        assert actions == ["INVOICE_CREATED", "INVOICE_SUBMITTED"]


class TestAmounts:

    def test_invariant_after_amount_changes(self, db_session, customer, item_sugar, item_tea, admin_ctx):
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)

        updated = invoice_service.apply_amounts(invoice.id, admin_ctx, total_amount_cents=3000)
        assert updated.remaining_debt_cents == 3000
        _assert_invariant(updated)

        updated = invoice_service.apply_amounts(invoice.id, admin_ctx, paid_amount_cents=1000)
        assert updated.remaining_debt_cents == 2000
        _assert_invariant(updated)

        # Overpayment clamps at zero
        updated = invoice_service.apply_amounts(invoice.id, admin_ctx, paid_amount_cents=5000)
        assert updated.remaining_debt_cents == 0
        _assert_invariant(updated)

    def test_apply_amounts_never_writes_ledger(self, db_session, customer, item_sugar, item_tea, admin_ctx):
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)
        invoice_service.apply_amounts(invoice.id, admin_ctx, total_amount_cents=100, paid_amount_cents=50)
        assert db_session.query(LedgerEntry).count() == 0

    @pytest.mark.parametrize("kwargs", [
        {},
        {"total_amount_cents": -1},
        {"paid_amount_cents": "12.5"},
    ])
    def test_invalid_amounts(self, db_session, customer, item_sugar, item_tea, admin_ctx, kwargs):
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)
        with pytest.raises(ValidationError):
            invoice_service.apply_amounts(invoice.id, admin_ctx, **kwargs)

    def test_customer_cannot_set_amounts(self, db_session, customer, item_sugar, item_tea, customer_ctx):
        invoice = _create(customer_ctx, customer, item_sugar, item_tea)
        with pytest.raises(PermissionDeniedError):
            invoice_service.apply_amounts(invoice.id, customer_ctx, total_amount_cents=1)

    def test_total_frozen_after_delivery(self, db_session, customer, item_sugar, item_tea, admin_ctx):
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)
        _deliver(invoice.id, admin_ctx)

        with pytest.raises(InvalidTransitionError):
            invoice_service.apply_amounts(invoice.id, admin_ctx, total_amount_cents=1)

    def test_update_invoice_is_atomic(self, db_session, customer, item_sugar, item_tea, admin_ctx):
        """A refused transition also discards the amounts sent with it."""
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)

        with pytest.raises(InvalidTransitionError):
            invoice_service.update_invoice(
                invoice.id, admin_ctx, status="AMOUNT_ENTERED", total_amount_cents=9999
            )

        db_session.expire_all()
        current = invoice_service.get_invoice(invoice.id, admin_ctx)
        assert current.total_amount_cents == 2500
        assert current.status == "DRAFT"


class TestInvoicePayments:
    """Invoice-linked payments keep invoice and ledger reconciled."""

    def test_payment_against_delivered_invoice(self, db_session, shop, customer, item_sugar, item_tea, admin_ctx):
        """PAYMENT 1000 -> paid 1000, remaining 1500, balance 1500."""
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)
        _deliver(invoice.id, admin_ctx, total=2500)

        entry = ledger_service.record_transaction(
            admin_ctx,
            shop_id=shop.id,
            customer_id=customer.id,
            transaction_type="PAYMENT",
            amount_cents=1000,
            invoice_id=invoice.id,
        )

        assert entry.invoice_id == invoice.id
        db_session.expire_all()
        paid = invoice_service.get_invoice(invoice.id, admin_ctx)
        assert paid.paid_amount_cents == 1000
        assert paid.remaining_debt_cents == 1500
        assert balance_service.current_balance(customer.id) == 1500

    def test_payment_before_delivery_rejected(self, db_session, shop, customer, item_sugar, item_tea, admin_ctx):
        invoice = _create(admin_ctx, customer, item_sugar, item_tea)

        with pytest.raises(ValidationError):
            ledger_service.record_transaction(
                admin_ctx, shop_id=shop.id, customer_id=customer.id,
                transaction_type="PAYMENT", amount_cents=1000, invoice_id=invoice.id,
            )
        db_session.expire_all()
        assert invoice_service.get_invoice(invoice.id, admin_ctx).paid_amount_cents == 0
        assert db_session.query(LedgerEntry).count() == 0

    def test_payment_for_wrong_customer_rejected(
        self, db_session, shop, customer, item_sugar, item_tea, admin_ctx
    ):
        from shopledger.models import Customer

        invoice = _create(admin_ctx, customer, item_sugar, item_tea)
        _deliver(invoice.id, admin_ctx)
        neighbour = Customer(shop_id=shop.id, name="Neighbour", status="ACTIVE")
        db_session.add(neighbour)
        db_session.commit()

        with pytest.raises(ValidationError):
            ledger_service.record_transaction(
                admin_ctx, shop_id=shop.id, customer_id=neighbour.id,
                transaction_type="PAYMENT", amount_cents=100, invoice_id=invoice.id,
            )


class TestInvoiceReads:

    def test_list_scoping(
        self, db_session, customer, other_customer, item_sugar, item_tea,
        staff_ctx, customer_ctx, owner_ctx, other_admin_ctx, other_shop,
    ):
        from shopledger.models import Item

        mine = _create(staff_ctx, customer, item_sugar, item_tea)
        rice = Item(shop_id=other_shop.id, name="Rice", unit_price_cents=700, status="ACTIVE")
        db_session.add(rice)
        db_session.commit()
        theirs = invoice_service.create_invoice(
            other_admin_ctx, customer_id=other_customer.id, line_items=[{"item_id": rice.id, "quantity": 1}]
        )

        assert [i.id for i in invoice_service.list_invoices(staff_ctx)] == [mine.id]
        assert [i.id for i in invoice_service.list_invoices(customer_ctx)] == [mine.id]
        assert {i.id for i in invoice_service.list_invoices(owner_ctx)} == {mine.id, theirs.id}
        assert invoice_service.list_invoices(staff_ctx, status="SUBMITTED") == []

        with pytest.raises(PermissionDeniedError):
            invoice_service.get_invoice(theirs.id, staff_ctx)
