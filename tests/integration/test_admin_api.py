"""Integration tests for the admin plan catalog, wallet and partner-plan endpoints."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from services.partner_service.models import MGPlan, WalletStatus
from services.partner_service.services import ledger, plan_registry
from sqlalchemy import select
from tests.factories import MGPlanFactory, seed_partner

PLAN_PAYLOAD = {
    "name": "Gold",
    "price": 2500,
    "leadsGuaranteed": 60,
    "commissionRate": 4.5,
    "leadFee": 40,
    "minWalletBalance": 100,
    "validityType": "quarterly",
    "partnerType": "individual",
    "features": ["Priority support"],
}


# ---------------------------------------------------------------------------
# Plan catalog
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_plan(client, as_admin):
    as_admin()

    response = await client.post("/admin/mg-plans", json=PLAN_PAYLOAD)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["leads"] == 60
    assert data["commission"] == 4.5
    assert data["lead_fee"] == 40
    assert data["validity_months"] == 3
    assert data["partner_type"] == "individual"
    assert data["is_active"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_duplicate_plan_is_400(client, as_admin):
    as_admin()
    await client.post("/admin/mg-plans", json=PLAN_PAYLOAD)

    response = await client.post("/admin/mg-plans", json=PLAN_PAYLOAD)

    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_custom_plan_without_months_is_400(client, as_admin):
    as_admin()

    response = await client.post(
        "/admin/mg-plans", json=dict(PLAN_PAYLOAD, validityType="custom")
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_new_default_plan_clears_previous_default(client, db_session, as_admin):
    as_admin()
    first = await client.post(
        "/admin/mg-plans", json=dict(PLAN_PAYLOAD, name="Silver", isDefault=True)
    )
    second = await client.post(
        "/admin/mg-plans", json=dict(PLAN_PAYLOAD, isDefault=True)
    )

    listing = await client.get("/admin/mg-plans")

    defaults = [p["id"] for p in listing.json() if p["is_default"]]
    assert first.status_code == second.status_code == 201
    assert defaults == [second.json()["id"]]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_plan(client, db_session, as_admin):
    plan = MGPlanFactory.create(description="Old copy")
    db_session.add(plan)
    await db_session.commit()
    as_admin()

    response = await client.put(
        f"/admin/mg-plans/{plan.id}",
        json={"leadFee": 25, "description": None, "isActive": False},
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["lead_fee"] == 25
    assert data["description"] is None
    assert data["is_active"] is False
    assert data["leads"] == plan.leads


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_unknown_plan_is_404(client, as_admin):
    as_admin()

    response = await client.put(f"/admin/mg-plans/{uuid.uuid4()}", json={"leads": 5})

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_unused_plan(client, db_session, as_admin):
    plan = MGPlanFactory.create()
    db_session.add(plan)
    await db_session.commit()
    plan_id = plan.id
    as_admin()

    response = await client.delete(f"/admin/mg-plans/{plan_id}")

    assert response.status_code == 204
    result = await db_session.execute(select(MGPlan).where(MGPlan.id == plan_id))
    assert result.scalar_one_or_none() is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_plan_with_subscribers_is_400(client, db_session, as_admin):
    plan = MGPlanFactory.create()
    await seed_partner(db_session, plan=plan)
    as_admin()

    response = await client.delete(f"/admin/mg-plans/{plan.id}")

    assert response.status_code == 400
    assert "partner" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_partner_cannot_manage_plans(client, db_session, as_partner):
    partner = await seed_partner(db_session)
    as_partner(partner)

    response = await client.post("/admin/mg-plans", json=PLAN_PAYLOAD)

    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Partner wallets
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_partner_wallet(client, db_session, as_admin):
    plan = MGPlanFactory.create()
    partner = await seed_partner(db_session, plan=plan, balance=300, name="Ravi")
    as_admin()

    response = await client.get(f"/admin/wallets/{partner.id}")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["partner_name"] == "Ravi"
    assert data["balance"] == 300
    assert data["transaction_count"] == 1
    assert data["mg_plan"]["id"] == str(plan.id)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_wallet_for_unknown_partner_is_404(client, as_admin):
    as_admin()

    response = await client.get(f"/admin/wallets/{uuid.uuid4()}")

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_adjust_credit_writes_audit_log(client, db_session, as_admin):
    partner = await seed_partner(db_session, balance=10, lead_acceptance_paused=True)
    as_admin()

    response = await client.post(
        f"/admin/wallets/{partner.id}/adjust",
        json={"amount": 200, "reason": "Goodwill credit"},
    )
    logs = await client.get(f"/admin/wallets/{partner.id}/audit-logs")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["balance"] == 210
    assert data["lead_acceptance_paused"] is False
    latest = data["recent_transactions"][0]
    assert latest["purpose"] == "admin_adjustment"
    assert latest["description"] == "Adjustment - credited by admin: Goodwill credit"

    entries = logs.json()
    assert len(entries) == 1
    assert entries[0]["action"] == "admin_credit"
    assert entries[0]["performed_by"] == "admin-user"
    assert Decimal(entries[0]["old_value"]["balance"]) == Decimal("10")
    assert Decimal(entries[0]["new_value"]["balance"]) == Decimal("210")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_adjust_debit_may_overdraw(client, db_session, as_admin):
    partner = await seed_partner(db_session, balance=30)
    as_admin()

    response = await client.post(
        f"/admin/wallets/{partner.id}/adjust",
        json={"amount": -50, "reason": "Chargeback recovery"},
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["balance"] == -20
    assert data["lead_acceptance_paused"] is True
    assert data["recent_transactions"][0]["transaction_type"] == "debit"
    assert await ledger.get_balance(db_session, partner.id) == Decimal("-20.00")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_adjust_by_zero_is_400(client, db_session, as_admin):
    partner = await seed_partner(db_session, balance=30)
    as_admin()

    response = await client.post(
        f"/admin/wallets/{partner.id}/adjust",
        json={"amount": 0, "reason": "Nothing at all"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Amount cannot be zero"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_block_and_unblock_wallet(client, db_session, as_admin):
    partner = await seed_partner(db_session, balance=30)
    as_admin()

    blocked = await client.post(
        f"/admin/wallets/{partner.id}/block", json={"reason": "Suspicious activity"}
    )
    again = await client.post(
        f"/admin/wallets/{partner.id}/block", json={"reason": "Suspicious activity"}
    )
    unblocked = await client.post(f"/admin/wallets/{partner.id}/unblock")
    logs = await client.get(f"/admin/wallets/{partner.id}/audit-logs")

    assert blocked.status_code == 200, blocked.text
    assert blocked.json()["status"] == "blocked"
    assert again.status_code == 400
    assert again.json()["detail"] == "Wallet is already blocked"
    assert unblocked.status_code == 200
    assert unblocked.json()["status"] == "active"
    assert sorted(e["action"] for e in logs.json()) == ["block", "unblock"]

    wallet = await ledger.get_wallet(db_session, partner.id)
    assert wallet.status == WalletStatus.ACTIVE


@pytest.mark.asyncio
@pytest.mark.integration
async def test_block_requires_reason(client, db_session, as_admin):
    partner = await seed_partner(db_session)
    as_admin()

    response = await client.post(
        f"/admin/wallets/{partner.id}/block", json={"reason": "no"}
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_audit_logs_empty_without_wallet(client, db_session, as_admin):
    partner = await seed_partner(db_session)
    as_admin()

    response = await client.get(f"/admin/wallets/{partner.id}/audit-logs")

    assert response.status_code == 200
    assert response.json() == []


# ---------------------------------------------------------------------------
# Partner plans
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_remove_partner_plan(client, db_session, as_admin):
    plan = MGPlanFactory.create(min_wallet_balance=Decimal("500"))
    db_session.add(plan)
    await db_session.commit()
    partner = await seed_partner(db_session, balance=100)
    plan_registry.subscribe(partner, plan)
    partner.leads_used = 2
    await db_session.commit()
    as_admin()

    response = await client.delete(f"/admin/partners/{partner.id}/mg-plan")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["removal_entry"]["entry_type"] == "removal"
    assert data["removal_entry"]["removed_by"] == "admin-user"
    assert data["removal_entry"]["leads_consumed"] == 2
    # back on the free tier, whose minimum is 20
    assert data["lead_acceptance_paused"] is False
    assert partner.current_plan_id is None
    assert partner.plan_history[-1]["entry_type"] == "removal"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_remove_plan_from_partner_without_plan_is_400(
    client, db_session, as_admin
):
    partner = await seed_partner(db_session)
    as_admin()

    response = await client.delete(f"/admin/partners/{partner.id}/mg-plan")

    assert response.status_code == 400


async def _partner_with_eligible_refund(db_session):
    plan = MGPlanFactory.create(leads=20)
    db_session.add(plan)
    await db_session.commit()
    partner = await seed_partner(db_session)
    plan_registry.subscribe(
        partner, plan, datetime.now(timezone.utc) - timedelta(days=60)
    )
    partner.leads_used = 5
    plan_registry.refresh_refund_status(partner, plan)
    await db_session.commit()
    return partner, partner.plan_history[-1]["id"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mark_refund_processed(client, db_session, as_admin):
    partner, entry_id = await _partner_with_eligible_refund(db_session)
    as_admin()

    response = await client.patch(
        f"/admin/partners/{partner.id}/mg-plan/history/{entry_id}/refund",
        json={"refundStatus": "processed", "refundNotes": "Refunded via UPI"},
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["refund_status"] == "processed"
    assert data["refund_notes"] == "Refunded via UPI"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mark_refund_rejects_other_states(client, db_session, as_admin):
    partner, entry_id = await _partner_with_eligible_refund(db_session)
    partner_id = partner.id
    as_admin()

    eligible = await client.patch(
        f"/admin/partners/{partner_id}/mg-plan/history/{entry_id}/refund",
        json={"refundStatus": "eligible"},
    )
    missing = await client.patch(
        f"/admin/partners/{partner_id}/mg-plan/history/nope/refund",
        json={"refundStatus": "processed"},
    )

    assert eligible.status_code == 400
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mark_refund_on_running_period_is_400(client, db_session, as_admin):
    plan = MGPlanFactory.create()
    db_session.add(plan)
    await db_session.commit()
    partner = await seed_partner(db_session)
    plan_registry.subscribe(partner, plan)
    await db_session.commit()
    entry_id = partner.plan_history[-1]["id"]
    as_admin()

    response = await client.patch(
        f"/admin/partners/{partner.id}/mg-plan/history/{entry_id}/refund",
        json={"refundStatus": "processed"},
    )

    assert response.status_code == 400
    assert "pending" in response.json()["detail"]
