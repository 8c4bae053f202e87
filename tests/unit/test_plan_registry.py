"""Unit tests for MG plan subscription bookkeeping."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi import HTTPException
from services.partner_service.models import (
    HistoryEntryType,
    MGPlan,
    RefundStatus,
    ValidityType,
)
from services.partner_service.services import plan_registry
from sqlalchemy import select
from tests.factories import MGPlanFactory, PartnerFactory

NOW = datetime(2026, 1, 31, 9, 30, tzinfo=timezone.utc)


def _subscribed(plan=None, now=NOW):
    plan = plan or MGPlanFactory.create()
    partner = PartnerFactory.create()
    plan_registry.subscribe(partner, plan, now)
    return partner, plan


# ---------------------------------------------------------------------------
# Plan terms
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "validity_type, months, expected",
    [
        (ValidityType.MONTHLY, None, 1),
        (ValidityType.QUARTERLY, 7, 3),
        (ValidityType.YEARLY, None, 12),
        (ValidityType.CUSTOM, 5, 5),
    ],
)
def test_resolve_validity_months(validity_type, months, expected):
    assert plan_registry.resolve_validity_months(validity_type, months) == expected


@pytest.mark.unit
def test_custom_validity_requires_months():
    with pytest.raises(HTTPException) as exc_info:
        plan_registry.resolve_validity_months(ValidityType.CUSTOM, None)
    assert exc_info.value.status_code == 400


@pytest.mark.unit
def test_free_tier_terms_come_from_settings():
    assert plan_registry.lead_fee_for(None) == Decimal("50")
    assert plan_registry.min_wallet_balance_for(None) == Decimal("20")


# ---------------------------------------------------------------------------
# subscribe / renew
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_subscribe_starts_fresh_period():
    plan = MGPlanFactory.create(leads=25, validity_months=1)
    partner = PartnerFactory.create(leads_used=7)

    record = plan_registry.subscribe(partner, plan, NOW)

    assert partner.current_plan_id == plan.id
    assert partner.lead_quota == 25
    assert partner.leads_used == 0
    assert partner.plan_subscribed_at == NOW
    # 31 Jan + 1 month clamps to the end of February
    assert partner.plan_expires_at == datetime(2026, 2, 28, 9, 30, tzinfo=timezone.utc)
    assert record.leads_remaining == 25
    assert record.refund_status == RefundStatus.PENDING.value

    entry = partner.plan_history[-1]
    assert entry["plan_id"] == str(plan.id)
    assert entry["entry_type"] == HistoryEntryType.SUBSCRIPTION.value
    assert entry["lead_fee"] == "50"


@pytest.mark.unit
def test_subscribe_to_inactive_plan_is_404():
    plan = MGPlanFactory.create(is_active=False)
    partner = PartnerFactory.create()

    with pytest.raises(HTTPException) as exc_info:
        plan_registry.subscribe(partner, plan, NOW)

    assert exc_info.value.status_code == 404
    assert partner.current_plan_id is None


@pytest.mark.unit
def test_renew_active_plan_extends_without_resetting_usage():
    partner, plan = _subscribed(MGPlanFactory.create(validity_months=3))
    partner.leads_used = 4
    previous_expiry = partner.plan_expires_at

    plan_registry.renew(partner, plan, NOW + timedelta(days=10))

    assert partner.leads_used == 4
    assert partner.plan_subscribed_at == NOW
    assert partner.plan_expires_at > previous_expiry
    # 30 Apr + 3 months keeps the clamped day
    assert partner.plan_expires_at == datetime(2026, 7, 30, 9, 30, tzinfo=timezone.utc)


@pytest.mark.unit
def test_renew_expired_plan_restarts_from_now():
    partner, plan = _subscribed()
    partner.leads_used = 20
    later = datetime(2026, 6, 10, 8, 0, tzinfo=timezone.utc)

    plan_registry.renew(partner, plan, later)

    assert partner.leads_used == 0
    assert partner.plan_subscribed_at == later
    assert partner.plan_expires_at == datetime(2026, 7, 10, 8, 0, tzinfo=timezone.utc)
    latest = partner.plan_history[-1]
    assert latest["subscribed_at"] == later.isoformat()
    assert latest["leads_consumed"] == 0


@pytest.mark.unit
def test_renew_after_expiry_settles_and_keeps_finished_period():
    partner, plan = _subscribed(MGPlanFactory.create(leads=20))
    partner.leads_used = 5
    finished_id = partner.plan_history[-1]["id"]
    later = NOW + timedelta(days=60)

    plan_registry.renew(partner, plan, later)

    history = partner.plan_history
    assert len(history) == 2
    assert history[0]["id"] == finished_id
    assert history[0]["refund_status"] == "eligible"
    assert history[-1]["refund_status"] == "pending"
    assert history[-1]["subscribed_at"] == later.isoformat()


@pytest.mark.unit
def test_renew_after_expiry_keeps_processed_refund():
    partner, plan = _subscribed(MGPlanFactory.create(leads=20))
    partner.leads_used = 5
    plan_registry.refresh_refund_status(partner, plan, NOW + timedelta(days=40))
    finished_id = partner.plan_history[-1]["id"]
    plan_registry.mark_refund(partner, finished_id, RefundStatus.PROCESSED, "Paid")

    plan_registry.renew(partner, plan, NOW + timedelta(days=60))

    finished = next(e for e in partner.plan_history if e["id"] == finished_id)
    assert finished["refund_status"] == "processed"
    assert finished["refund_notes"] == "Paid"
    assert partner.plan_history[-1]["id"] != finished_id


@pytest.mark.unit
def test_renew_active_plan_extends_current_entry_only():
    partner, plan = _subscribed()

    plan_registry.renew(partner, plan, NOW + timedelta(days=5))

    assert len(partner.plan_history) == 1
    assert partner.plan_history[0]["expires_at"] == partner.plan_expires_at.isoformat()


@pytest.mark.unit
def test_renew_requires_current_plan():
    partner = PartnerFactory.create()

    with pytest.raises(HTTPException) as exc_info:
        plan_registry.renew(partner, None, NOW)

    assert exc_info.value.status_code == 400
    assert "subscribe" in exc_info.value.detail


@pytest.mark.unit
def test_renew_inactive_plan_rejected():
    partner, plan = _subscribed()
    plan.is_active = False

    with pytest.raises(HTTPException) as exc_info:
        plan_registry.renew(partner, plan, NOW)

    assert exc_info.value.status_code == 400


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_history_keeps_most_recent_24_entries():
    partner = PartnerFactory.create()
    plans = [MGPlanFactory.create(name=f"Plan {i}") for i in range(30)]

    for index, plan in enumerate(plans):
        plan_registry.subscribe(partner, plan, NOW + timedelta(days=index))

    history = partner.plan_history
    assert len(history) == 24
    assert history[0]["plan_name"] == "Plan 6"
    assert history[-1]["plan_name"] == "Plan 29"


@pytest.mark.unit
def test_consumption_counts_against_latest_matching_entry():
    plan = MGPlanFactory.create()
    other = MGPlanFactory.create()
    partner = PartnerFactory.create()
    plan_registry.subscribe(partner, plan, NOW)
    plan_registry.subscribe(partner, other, NOW + timedelta(days=1))
    plan_registry.subscribe(partner, plan, NOW + timedelta(days=2))

    plan_registry.record_lead_consumption(partner, plan)
    plan_registry.record_lead_consumption(partner, plan)

    assert partner.leads_used == 2
    assert [e["leads_consumed"] for e in partner.plan_history] == [0, 0, 2]


@pytest.mark.unit
def test_history_snapshot_is_frozen_against_plan_edits():
    partner, plan = _subscribed(MGPlanFactory.create(lead_fee=Decimal("50")))

    plan.lead_fee = Decimal("75")

    assert partner.plan_history[-1]["lead_fee"] == "50"


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_under_delivered_period_becomes_refund_eligible():
    partner, plan = _subscribed(MGPlanFactory.create(leads=20))
    partner.leads_used = 5

    status = plan_registry.refresh_refund_status(partner, plan, NOW + timedelta(days=60))

    assert status == RefundStatus.ELIGIBLE.value
    assert partner.plan_history[-1]["refund_status"] == "eligible"


@pytest.mark.unit
def test_fully_delivered_period_becomes_expired():
    partner, plan = _subscribed(MGPlanFactory.create(leads=20))
    partner.leads_used = 20

    status = plan_registry.refresh_refund_status(partner, plan, NOW + timedelta(days=60))

    assert status == RefundStatus.EXPIRED.value


@pytest.mark.unit
def test_refund_status_stays_pending_while_active():
    partner, plan = _subscribed()

    assert plan_registry.refresh_refund_status(partner, plan, NOW) == "pending"


@pytest.mark.unit
def test_mark_refund_processed():
    partner, plan = _subscribed()
    plan_registry.refresh_refund_status(partner, plan, NOW + timedelta(days=60))
    entry_id = partner.plan_history[-1]["id"]

    entry = plan_registry.mark_refund(
        partner, entry_id, RefundStatus.PROCESSED, "Refunded via UPI"
    )

    assert entry["refund_status"] == "processed"
    assert partner.plan_history[-1]["refund_notes"] == "Refunded via UPI"


@pytest.mark.unit
def test_mark_refund_only_accepts_processed():
    partner, _ = _subscribed()
    entry_id = partner.plan_history[-1]["id"]

    with pytest.raises(HTTPException) as exc_info:
        plan_registry.mark_refund(partner, entry_id, RefundStatus.ELIGIBLE)
    assert exc_info.value.status_code == 400

    with pytest.raises(HTTPException) as exc_info:
        plan_registry.mark_refund(partner, "missing", RefundStatus.PROCESSED)
    assert exc_info.value.status_code == 404


@pytest.mark.unit
def test_mark_refund_refuses_pending_period():
    partner, _ = _subscribed()
    entry_id = partner.plan_history[-1]["id"]

    with pytest.raises(HTTPException) as exc_info:
        plan_registry.mark_refund(partner, entry_id, RefundStatus.PROCESSED)

    assert exc_info.value.status_code == 400
    assert partner.plan_history[-1]["refund_status"] == "pending"


@pytest.mark.unit
def test_mark_refund_refuses_fully_delivered_period():
    partner, plan = _subscribed(MGPlanFactory.create(leads=20))
    partner.leads_used = 20
    plan_registry.refresh_refund_status(partner, plan, NOW + timedelta(days=60))
    entry_id = partner.plan_history[-1]["id"]

    with pytest.raises(HTTPException) as exc_info:
        plan_registry.mark_refund(partner, entry_id, RefundStatus.PROCESSED)

    assert exc_info.value.status_code == 400
    assert partner.plan_history[-1]["refund_status"] == "expired"


@pytest.mark.unit
def test_mark_refund_cannot_process_twice():
    partner, plan = _subscribed()
    plan_registry.refresh_refund_status(partner, plan, NOW + timedelta(days=60))
    entry_id = partner.plan_history[-1]["id"]
    plan_registry.mark_refund(partner, entry_id, RefundStatus.PROCESSED)

    with pytest.raises(HTTPException) as exc_info:
        plan_registry.mark_refund(partner, entry_id, RefundStatus.PROCESSED)

    assert exc_info.value.status_code == 400


# ---------------------------------------------------------------------------
# Admin removal
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_admin_remove_plan_records_removal_and_clears_subscription():
    partner, plan = _subscribed()
    partner.leads_used = 3

    entry = plan_registry.admin_remove_plan(partner, plan, "admin-1", NOW)

    assert entry["entry_type"] == HistoryEntryType.REMOVAL.value
    assert entry["removed_by"] == "admin-1"
    assert entry["leads_consumed"] == 3
    assert partner.plan_history[-1] == entry
    assert partner.current_plan_id is None
    assert partner.lead_quota == 0
    assert partner.leads_used == 0
    assert partner.plan_expires_at is None


@pytest.mark.unit
def test_admin_remove_plan_requires_a_plan():
    partner = PartnerFactory.create()

    with pytest.raises(HTTPException) as exc_info:
        plan_registry.admin_remove_plan(partner, None, "admin-1", NOW)

    assert exc_info.value.status_code == 400


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_only_one_default_plan(db_session):
    silver = {
        "name": "Silver",
        "price": Decimal("1000"),
        "leads": 20,
        "commission": Decimal("5"),
        "is_default": True,
    }
    gold = dict(silver, name="Gold", price=Decimal("2500"), leads=60)

    first = await plan_registry.create_plan(db_session, silver)
    await db_session.commit()
    second = await plan_registry.create_plan(db_session, gold)
    await db_session.commit()

    result = await db_session.execute(
        select(MGPlan.id).where(MGPlan.is_default.is_(True))
    )
    assert result.scalars().all() == [second.id]
    assert (await plan_registry.find_default_plan(db_session)).id == second.id
    assert first.id != second.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_plan_refused_while_subscribed(db_session):
    plan = MGPlanFactory.create()
    partner = PartnerFactory.create(plan=plan)
    db_session.add_all([plan, partner])
    await db_session.commit()

    with pytest.raises(HTTPException) as exc_info:
        await plan_registry.delete_plan(db_session, plan)

    assert exc_info.value.status_code == 400
    assert "1 partner(s)" in exc_info.value.detail


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_plans_filters_by_partner_type(db_session):
    from services.partner_service.models import PlanPartnerType

    db_session.add_all(
        [
            MGPlanFactory.create(name="Both", partner_type=PlanPartnerType.BOTH),
            MGPlanFactory.create(
                name="Solo", partner_type=PlanPartnerType.INDIVIDUAL, price=Decimal("10")
            ),
            MGPlanFactory.create(name="Chain", partner_type=PlanPartnerType.FRANCHISE),
            MGPlanFactory.create(name="Retired", is_active=False),
        ]
    )
    await db_session.commit()

    plans = await plan_registry.list_plans(db_session, partner_type="individual")

    assert [p.name for p in plans] == ["Solo", "Both"]
    everything = await plan_registry.list_plans(db_session, include_inactive=True)
    assert len(everything) == 4
