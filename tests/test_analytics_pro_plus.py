import pytest

from connekt.core.constants import AGENCY_PROFILES, CONTRACTS
from connekt.models.profile import BrandingConfig


async def _make_agency(store, agency_id="a1", **fields):
    await store.set(AGENCY_PROFILES, agency_id, {"name": "Acme", "username": "acme", **fields})


class TestTalentPool:
    async def test_rollup_over_members(self, pro_plus, store, make_profile):
        members = [
            {"userId": "m1", "status": "active"},
            {"userId": "m2", "status": "active"},
            {"userId": "m3", "status": "invited"},
            {"userId": "m-missing", "status": "active"},
        ]
        await _make_agency(store, members=members)
        await make_profile("m1", skills=["python", "sql"], stats={"averageRating": 4.0, "projectsCompleted": 3})
        await make_profile("m2", skills=["python"], stats={"averageRating": 5.0})
        # Unrated members stay out of the average
        await make_profile("m3", skills=["design"])

        report = await pro_plus.talent_pool_analytics("a1")

        assert report.totalTalent == 4
        assert report.activeMembers == 3
        assert report.availableMembers == 0
        assert report.skillDistribution == {"python": 2, "sql": 1, "design": 1}
        assert report.performanceMetrics.averageRating == pytest.approx(4.5)
        assert report.performanceMetrics.completionRate == 85
        assert report.performanceMetrics.clientSatisfaction == 90
        assert [p.userId for p in report.topPerformers] == ["m2", "m1", "m3"]
        assert report.topPerformers[1].projectsCompleted == 3

    async def test_top_performers_are_limited(self, pro_plus, store, make_profile):
        members = [{"userId": f"m{i}"} for i in range(7)]
        await _make_agency(store, members=members)
        for i in range(7):
            await make_profile(f"m{i}", stats={"averageRating": 1 + i * 0.5})

        report = await pro_plus.talent_pool_analytics("a1")

        assert [p.userId for p in report.topPerformers] == ["m6", "m5", "m4", "m3", "m2"]

    async def test_failed_member_fetch_is_skipped(self, pro_plus, store, make_profile, monkeypatch):
        await _make_agency(store, members=[{"userId": "m1"}, {"userId": "m2"}])
        await make_profile("m1", skills=["go"])
        await make_profile("m2", skills=["rust"])
        fetch = pro_plus._member_profile

        async def _flaky(uid):
            if uid == "m2":
                raise ConnectionError("timeout")
            return await fetch(uid)

        monkeypatch.setattr(pro_plus, "_member_profile", _flaky)

        report = await pro_plus.talent_pool_analytics("a1")

        assert report.totalTalent == 2
        assert report.skillDistribution == {"go": 1}

    async def test_empty_agency(self, pro_plus, store):
        await _make_agency(store)

        report = await pro_plus.talent_pool_analytics("a1")

        assert report.totalTalent == 0
        assert report.performanceMetrics.averageRating == 0
        assert report.topPerformers == []

    async def test_missing_agency(self, pro_plus):
        assert await pro_plus.talent_pool_analytics("ghost") is None


class TestClientDashboard:
    async def test_revenue_and_top_clients(self, pro_plus, store):
        contracts = [
            ("k1", "c1", "Globex", 1200, "active"),
            ("k2", "c1", "Globex", 600, "active"),
            ("k3", "c2", "Initech", 2400, "active"),
            ("k4", "c3", "Umbrella", 9999, "completed"),
        ]
        for contract_id, client_id, name, amount, status in contracts:
            await store.set(
                CONTRACTS,
                contract_id,
                {
                    "fromUserId": client_id,
                    "fromUsername": name,
                    "status": status,
                    "terms": {"paymentAmount": amount},
                },
            )

        dashboard = await pro_plus.client_management_dashboard("a1")

        assert dashboard.totalClients == 2
        assert dashboard.activeContracts == 3
        assert dashboard.monthlyRevenue == pytest.approx(4200 / 12)
        assert dashboard.clientRetentionRate == 85
        assert [(c.clientId, c.totalSpent, c.projectsCount) for c in dashboard.topClients] == [
            ("c2", 2400, 1),
            ("c1", 1800, 2),
        ]

    async def test_contract_without_terms_counts_as_zero(self, pro_plus, store):
        await store.set(CONTRACTS, "k1", {"fromUserId": "c1", "status": "active"})

        dashboard = await pro_plus.client_management_dashboard("a1")

        assert dashboard.activeContracts == 1
        assert dashboard.monthlyRevenue == 0

    async def test_backend_failure(self, pro_plus, failing_store):
        dashboard = await pro_plus.client_management_dashboard("a1")

        assert dashboard.agencyId == "a1"
        assert dashboard.totalClients == 0
        assert dashboard.topClients == []


class TestPlacements:
    async def test_placement_metrics(self, pro_plus, store):
        await store.set(
            CONTRACTS,
            "k1",
            {
                "type": "job_short_term",
                "status": "accepted",
                "createdAt": "2024-03-01T00:00:00+00:00",
                "respondedAt": "2024-03-05T00:00:00+00:00",
            },
        )
        await store.set(
            CONTRACTS,
            "k2",
            {
                "type": "job_long_term",
                "status": "declined",
                "createdAt": "2024-03-10T00:00:00+00:00",
                "respondedAt": "2024-03-12T00:00:00+00:00",
            },
        )
        pending = {"type": "job_project_based", "status": "pending", "createdAt": "2024-04-02T00:00:00+00:00"}
        await store.set(CONTRACTS, "k3", pending)
        await store.set(CONTRACTS, "k4", {"type": "task", "status": "accepted"})

        metrics = await pro_plus.placement_tracking("a1")

        assert metrics.totalPlacements == 3
        assert metrics.successRate == pytest.approx(100 / 3)
        assert metrics.averageTimeToPlace == pytest.approx(3)
        assert metrics.placementsByMonth == {"2024-03": 2, "2024-04": 1}
        assert metrics.placementsBySkill["Design"] == 10

    async def test_no_placements(self, pro_plus):
        metrics = await pro_plus.placement_tracking("a1")

        assert metrics.totalPlacements == 0
        assert metrics.successRate == 0
        assert metrics.averageTimeToPlace == 0


class TestCommission:
    async def test_default_rate(self, pro_plus, store):
        await store.set(
            CONTRACTS,
            "k1",
            {"fromUsername": "Globex", "toUsername": "ada", "terms": {"paymentAmount": 2000}},
        )

        commission = await pro_plus.calculate_commission("k1")

        assert commission.commissionRate == 15
        assert commission.commissionAmount == pytest.approx(300)
        assert commission.candidateName == "ada"
        assert commission.clientName == "Globex"
        assert commission.paymentStatus == "pending"

    async def test_custom_rate(self, pro_plus, store):
        await store.set(CONTRACTS, "k1", {"terms": {"paymentAmount": 1000}})

        commission = await pro_plus.calculate_commission("k1", commission_rate=10)

        assert commission.commissionAmount == pytest.approx(100)

    async def test_missing_placement(self, pro_plus):
        assert await pro_plus.calculate_commission("ghost") is None


class TestBranding:
    async def test_branding_is_persisted(self, pro_plus, profiles, store):
        await _make_agency(store)
        branding = BrandingConfig(
            agencyId="ignored", primaryColor="#000000", secondaryColor="#ffffff", customDomain="talent.acme.io"
        )

        assert await pro_plus.setup_custom_branding("a1", branding) is True

        agency = await profiles.get_agency_profile("a1")
        assert agency.branding.agencyId == "a1"
        assert agency.branding.primaryColor == "#000000"
        assert agency.customDomain == "talent.acme.io"
        assert agency.name == "Acme"

    async def test_unknown_agency(self, pro_plus, store):
        branding = BrandingConfig(agencyId="ghost", primaryColor="#000", secondaryColor="#fff")

        assert await pro_plus.setup_custom_branding("ghost", branding) is False
        assert await store.get(AGENCY_PROFILES, "ghost") is None

    async def test_portal_url(self, pro_plus, store):
        await _make_agency(store, "a1")
        await _make_agency(store, "a2", username="globex", customDomain="jobs.globex.com")

        assert await pro_plus.branded_portal_url("a1") == "https://acme.connekt.com/portal"
        assert await pro_plus.branded_portal_url("a2") == "https://jobs.globex.com/portal"
        assert await pro_plus.branded_portal_url("ghost") is None


async def test_priority_candidate_search(pro_plus, make_profile):
    await make_profile("c1", skills=["python"])
    await make_profile("c2", skills=["python", "sql"])
    await make_profile("c3", skills=["design"])

    candidates = await pro_plus.priority_candidate_search("Backend role", ["python"], max_results=1)

    assert [c.uid for c in candidates] == ["c1"]
