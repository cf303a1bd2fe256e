"""
Tenant resolution and cross-company isolation.

Run with: pytest Backend/tests/test_tenant_context.py -v
"""

import pytest

from salonhub.core.config import get_settings
from salonhub.models import Company
from salonhub.tenancy import CompanyContext, resolve_company_context, resolve_timezone_name


class TestCompanyContext:
    def test_rejects_non_positive_id(self):
        with pytest.raises(ValueError):
            CompanyContext(company_id=0)

    def test_is_immutable(self):
        ctx = CompanyContext(company_id=1)
        with pytest.raises(AttributeError):
            ctx.company_id = 2

    def test_tz_property(self):
        assert CompanyContext(company_id=1, timezone="America/Phoenix").tz.key == "America/Phoenix"


class TestTimezoneResolution:
    def test_valid_zone_is_kept(self):
        assert resolve_timezone_name("Europe/London") == "Europe/London"

    @pytest.mark.parametrize("value", [None, "", "Mars/Olympus"])
    def test_missing_or_unknown_zone_falls_back(self, value):
        assert resolve_timezone_name(value) == get_settings().business_timezone


async def test_resolve_known_company(async_session, salon):
    ctx = await resolve_company_context(async_session, salon.company.id)
    assert ctx.company_id == salon.company.id
    assert ctx.company_name == "Demo Salon"


async def test_resolve_unknown_company(async_session):
    assert await resolve_company_context(async_session, 424242) is None


async def test_company_with_bad_timezone_uses_default(async_session):
    company = Company(name="Nowhere Salon", slug="nowhere", timezone="Not/AZone")
    async_session.add(company)
    await async_session.commit()

    ctx = await resolve_company_context(async_session, company.id)
    assert ctx.timezone == get_settings().business_timezone


# ────────────────────────────────────────────────────────────────
# X-Company-Id header
# ────────────────────────────────────────────────────────────────

class TestCompanyHeader:
    async def test_missing_header(self, client, salon):
        response = await client.get("/appointments")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_FIELD"

    @pytest.mark.parametrize("value", ["abc", "-1", "12a"])
    async def test_malformed_header(self, client, salon, value):
        response = await client.get("/appointments", headers={"X-Company-Id": value})
        assert response.status_code == 400

    async def test_unknown_company(self, client, salon):
        response = await client.get("/appointments", headers={"X-Company-Id": "424242"})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


# ────────────────────────────────────────────────────────────────
# Isolation over HTTP
# ────────────────────────────────────────────────────────────────

async def test_companies_cannot_see_or_touch_each_other(client, salon, other_salon):
    ours = {"X-Company-Id": str(salon.company.id)}
    theirs = {"X-Company-Id": str(other_salon.company.id)}

    response = await client.post(
        "/appointments",
        json={
            "client_id": "CL001",
            "service_id": salon.haircut.id,
            "employee_id": salon.employee.id,
            "date": "2099-01-15",
            "time": "10:30",
        },
        headers=ours,
    )
    assert response.status_code == 201
    appointment_id = response.json()["data"]["appointment"]["id"]

    listing = await client.get("/appointments", headers=theirs)
    assert listing.json()["data"]["items"] == []

    count = await client.get("/appointments/count", headers=theirs)
    assert count.json()["data"] == {"count": 0}

    patch = await client.patch(f"/appointments/{appointment_id}", json={"status": "Cancelled"}, headers=theirs)
    assert patch.status_code == 404

    trash = await client.patch(f"/appointments/soft-delete/{appointment_id}", headers=theirs)
    assert trash.status_code == 404

    client_lookup = await client.get(f"/appointments/client/{salon.client.id}", headers=theirs)
    assert client_lookup.status_code == 404

    inbox = await client.get("/notifications", headers=theirs)
    assert inbox.json()["data"] == []

    # Their own CL001 is a different client; our service id is unknown to them
    cross = await client.post(
        "/appointments",
        json={
            "client_id": "CL001",
            "service_id": salon.haircut.id,
            "employee_id": other_salon.employee.id,
            "date": "2099-01-15",
            "time": "10:30",
        },
        headers=theirs,
    )
    assert cross.status_code == 404
    assert cross.json()["error"]["code"] == "SERVICE_NOT_FOUND"
