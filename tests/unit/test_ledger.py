"""Unit tests for the wallet ledger.

Tests call ledger functions directly with the db_session fixture.
No HTTP layer involved.
"""

import uuid
from decimal import Decimal

import pytest
from fastapi import HTTPException
from services.partner_service.models import (
    PartnerWallet,
    TransactionPurpose,
    TransactionType,
)
from services.partner_service.services import ledger
from services.partner_service.services.ledger import TransactionRefExhausted
from sqlalchemy import select
from tests.factories import PartnerFactory


async def _make_partner(db):
    partner = PartnerFactory.create()
    db.add(partner)
    await db.commit()
    return partner


# ---------------------------------------------------------------------------
# Wallet creation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_new_partner_has_zero_balance(db_session):
    partner = await _make_partner(db_session)

    balance = await ledger.get_balance(db_session, partner.id)

    assert balance == Decimal("0")
    wallet = await ledger.get_wallet(db_session, partner.id)
    assert wallet is not None
    assert wallet.transaction_seq == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_or_create_wallet_is_idempotent(db_session):
    partner = await _make_partner(db_session)

    first = await ledger.get_or_create_wallet(db_session, partner.id, commit=True)
    second = await ledger.get_or_create_wallet(db_session, partner.id, commit=True)

    assert first.id == second.id
    result = await db_session.execute(
        select(PartnerWallet).where(PartnerWallet.partner_id == partner.id)
    )
    assert len(result.scalars().all()) == 1


# ---------------------------------------------------------------------------
# Credit / debit
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_running_balance_matches_signed_sum(db_session):
    """balance_after on the Nth transaction equals the running sum."""
    partner = await _make_partner(db_session)
    operations = [
        (TransactionType.CREDIT, Decimal("100")),
        (TransactionType.DEBIT, Decimal("30.50")),
        (TransactionType.CREDIT, Decimal("12.25")),
        (TransactionType.DEBIT, Decimal("50")),
        (TransactionType.CREDIT, Decimal("0.75")),
    ]

    running = Decimal("0")
    for index, (kind, amount) in enumerate(operations, start=1):
        if kind == TransactionType.CREDIT:
            txn = await ledger.credit(db_session, partner.id, amount, "credit")
            expected = running + amount
        else:
            txn = await ledger.debit(db_session, partner.id, amount, "debit")
            expected = running - amount

        assert txn.balance_before == running
        assert txn.balance_after == expected
        assert txn.sequence == index
        running = expected

    wallet = await ledger.get_wallet(db_session, partner.id)
    assert wallet.balance == running == Decimal("32.50")
    assert wallet.transaction_seq == len(operations)
    assert await ledger.replay_balance(db_session, partner.id) == wallet.balance


@pytest.mark.asyncio
@pytest.mark.unit
async def test_debit_may_take_balance_negative(db_session):
    partner = await _make_partner(db_session)
    await ledger.credit(db_session, partner.id, Decimal("10"), "seed")

    txn = await ledger.debit(db_session, partner.id, Decimal("25"), "overdraw")

    assert txn.balance_after == Decimal("-15.00")
    assert await ledger.get_balance(db_session, partner.id) == Decimal("-15.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_amounts_are_rounded_to_paise(db_session):
    partner = await _make_partner(db_session)

    txn = await ledger.credit(db_session, partner.id, "10.005", "rounding")

    assert txn.amount == Decimal("10.01")
    assert txn.balance_after == Decimal("10.01")


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), "abc"])
async def test_non_positive_or_invalid_amount_rejected(db_session, amount):
    partner = await _make_partner(db_session)

    with pytest.raises(HTTPException) as exc_info:
        await ledger.credit(db_session, partner.id, amount, "bad")

    assert exc_info.value.status_code == 400
    assert await ledger.replay_balance(db_session, partner.id) == Decimal("0")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transaction_carries_metadata(db_session):
    partner = await _make_partner(db_session)
    booking_id = uuid.uuid4()

    txn = await ledger.debit(
        db_session,
        partner.id,
        Decimal("50"),
        "Lead fee",
        str(booking_id),
        purpose=TransactionPurpose.LEAD_FEE,
        booking_id=booking_id,
        initiated_by="tester",
        metadata={"plan_id": None},
    )

    assert txn.purpose == TransactionPurpose.LEAD_FEE
    assert txn.reference == str(booking_id)
    assert txn.booking_id == booking_id
    assert txn.initiated_by == "tester"
    assert txn.signed_amount == Decimal("-50")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_uncommitted_debit_is_rolled_back_with_caller(db_session):
    partner = await _make_partner(db_session)
    partner_id = partner.id
    await ledger.credit(db_session, partner_id, Decimal("100"), "seed")

    await ledger.debit(db_session, partner_id, Decimal("40"), "pending", commit=False)
    await db_session.rollback()

    wallet = await ledger.get_wallet(db_session, partner_id)
    assert wallet.balance == Decimal("100")
    assert wallet.transaction_seq == 1
    _, total = await ledger.list_transactions(db_session, partner_id)
    assert total == 1


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_transactions_newest_first_with_filter(db_session):
    partner = await _make_partner(db_session)
    await ledger.credit(db_session, partner.id, Decimal("100"), "first")
    await ledger.debit(db_session, partner.id, Decimal("10"), "second")
    await ledger.credit(db_session, partner.id, Decimal("5"), "third")

    transactions, total = await ledger.list_transactions(db_session, partner.id)
    assert total == 3
    assert [t.description for t in transactions] == ["third", "second", "first"]

    credits, credit_total = await ledger.list_transactions(
        db_session, partner.id, transaction_type=TransactionType.CREDIT
    )
    assert credit_total == 2
    assert all(t.transaction_type == TransactionType.CREDIT for t in credits)

    page, _ = await ledger.list_transactions(db_session, partner.id, skip=1, limit=1)
    assert [t.description for t in page] == ["second"]


# ---------------------------------------------------------------------------
# Transaction references
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_candidate_refs_are_unique_over_ten_thousand_draws():
    refs = {ledger._candidate_ref("WPWT") for _ in range(10_000)}

    assert len(refs) == 10_000
    assert all(ref.startswith("WPWT") and len(ref) == 14 for ref in refs)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_generated_refs_are_unique_across_wallets(db_session):
    first = await _make_partner(db_session)
    second = await _make_partner(db_session)

    refs = []
    for _ in range(50):
        refs.append((await ledger.credit(db_session, first.id, 1, "a")).transaction_ref)
        refs.append((await ledger.credit(db_session, second.id, 1, "b")).transaction_ref)

    assert len(set(refs)) == len(refs)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_ref_generation_retries_on_collision(db_session, monkeypatch):
    partner = await _make_partner(db_session)
    await ledger.credit(
        db_session, partner.id, 1, "taken", transaction_ref="WPWTAAAAAAAAAA"
    )
    candidates = iter(["WPWTAAAAAAAAAA", "WPWTBBBBBBBBBB"])
    monkeypatch.setattr(ledger, "_candidate_ref", lambda prefix: next(candidates))

    ref = await ledger.generate_transaction_ref(db_session)

    assert ref == "WPWTBBBBBBBBBB"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_ref_generation_gives_up_after_max_attempts(db_session, monkeypatch):
    partner = await _make_partner(db_session)
    partner_id = partner.id
    await ledger.credit(
        db_session, partner_id, 1, "taken", transaction_ref="WPWTAAAAAAAAAA"
    )
    calls = []

    def always_taken(prefix):
        calls.append(prefix)
        return "WPWTAAAAAAAAAA"

    monkeypatch.setattr(ledger, "_candidate_ref", always_taken)

    with pytest.raises(TransactionRefExhausted):
        await ledger.credit(db_session, partner_id, 1, "never written")

    assert len(calls) == 10
    assert await ledger.replay_balance(db_session, partner_id) == Decimal("1")
