from connekt.core.constants import AGENCY_PROFILES, CONTRACTS, TASKS
from connekt.models.profile import PrivacySettings


async def test_health(api_client):
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_metrics_reports_store_counters(api_client):
    response = await api_client.get("/metrics")

    assert response.status_code == 200
    assert "store_reads" in response.json()


class TestProfiles:
    async def test_profile_is_filtered_for_the_viewer(self, api_client, make_profile):
        await make_profile("u1", email="ada@example.com", phone="+220 555", location="Banjul")

        anonymous = (await api_client.get("/profiles/u1")).json()
        signed_in = (await api_client.get("/profiles/u1", headers={"X-Viewer-Id": "u2"})).json()
        owner = (await api_client.get("/profiles/u1", headers={"X-Viewer-Id": "u1"})).json()

        assert "email" not in anonymous
        assert anonymous["location"] == "Banjul"
        assert signed_in["email"] == "ada@example.com"
        assert "phone" not in signed_in
        assert owner["phone"] == "+220 555"

    async def test_profile_by_handle(self, api_client, make_profile, make_user):
        await make_user("u1", username="Ada")
        await make_profile("u1", username="Ada")

        response = await api_client.get("/profiles/handle/ada")

        assert response.status_code == 200
        assert response.json()["uid"] == "u1"

    async def test_missing_profile(self, api_client):
        assert (await api_client.get("/profiles/ghost")).status_code == 404
        assert (await api_client.get("/profiles/handle/ghost")).status_code == 404

    async def test_only_the_owner_can_write(self, api_client, make_profile):
        await make_profile("u1")

        anonymous = await api_client.put("/profiles/u1", json={"title": "Hacker"})
        stranger = await api_client.put("/profiles/u1", json={"title": "Hacker"}, headers={"X-Viewer-Id": "u2"})
        owner = await api_client.put("/profiles/u1", json={"title": "Editor"}, headers={"X-Viewer-Id": "u1"})

        assert anonymous.status_code == 401
        assert stranger.status_code == 403
        assert owner.status_code == 200
        assert (await api_client.get("/profiles/u1")).json()["title"] == "Editor"

    async def test_derived_fields_cannot_be_written(self, api_client, make_profile):
        await make_profile("u1", stats={"averageRating": 2.0})

        await api_client.put("/profiles/u1", json={"stats": {"averageRating": 5.0}}, headers={"X-Viewer-Id": "u1"})

        assert (await api_client.get("/profiles/u1/stats")).json()["averageRating"] == 2.0

    async def test_experience_lifecycle(self, api_client, make_profile):
        await make_profile("u1")
        owner = {"X-Viewer-Id": "u1"}

        entry = {"title": "VA", "company": "Acme"}
        created = await api_client.post("/profiles/u1/experience", json=entry, headers=owner)
        entry_id = created.json()["id"]
        path = f"/profiles/u1/experience/{entry_id}"
        updated = await api_client.patch(path, json={"title": "Lead VA"}, headers=owner)
        profile = (await api_client.get("/profiles/u1")).json()
        deleted = await api_client.delete(path, headers=owner)

        assert created.status_code == 201
        assert entry_id.startswith("exp_")
        assert updated.status_code == 200
        assert profile["experience"][0]["title"] == "Lead VA"
        assert deleted.status_code == 200
        assert (await api_client.get("/profiles/u1")).json()["experience"] == []

    async def test_invalid_entry_is_rejected(self, api_client, make_profile):
        await make_profile("u1")

        response = await api_client.post("/profiles/u1/experience", json={"title": "VA"}, headers={"X-Viewer-Id": "u1"})

        assert response.status_code == 400

    async def test_malformed_profile_write_is_rejected(self, api_client, make_profile):
        await make_profile("u1", title="Editor")

        response = await api_client.put("/profiles/u1", json={"experience": "oops"}, headers={"X-Viewer-Id": "u1"})
        after = await api_client.get("/profiles/u1")

        assert response.status_code == 400
        assert after.status_code == 200
        assert after.json()["title"] == "Editor"

    async def test_malformed_entry_update_is_rejected(self, api_client, make_profile):
        await make_profile("u1")
        owner = {"X-Viewer-Id": "u1"}
        entry = {"title": "VA", "company": "Acme"}
        entry_id = (await api_client.post("/profiles/u1/experience", json=entry, headers=owner)).json()["id"]

        response = await api_client.patch(
            f"/profiles/u1/experience/{entry_id}", json={"current": "not-a-bool"}, headers=owner
        )

        assert response.status_code == 400
        assert (await api_client.get("/profiles/u1")).json()["experience"][0]["title"] == "VA"

    async def test_unknown_collection_and_read_only_entries(self, api_client, make_profile):
        await make_profile("u1")
        owner = {"X-Viewer-Id": "u1"}

        unknown = await api_client.post("/profiles/u1/hobbies", json={}, headers=owner)
        certification = await api_client.patch("/profiles/u1/certifications/cert_1", json={}, headers=owner)

        assert unknown.status_code == 404
        assert certification.status_code == 405

    async def test_invalid_privacy_value(self, api_client, make_profile):
        await make_profile("u1")

        response = await api_client.put(
            "/profiles/u1/privacy", json={"showEmail": "friends"}, headers={"X-Viewer-Id": "u1"}
        )

        assert response.status_code == 400

    async def test_layout(self, api_client, make_profile):
        await make_profile("u1", bio="Hello", skills=["sql"])

        response = await api_client.get("/profiles/u1/layout")

        assert response.status_code == 200
        assert [s["sectionId"] for s in response.json()][:2] == ["about", "experience"]


class TestRatings:
    async def test_rate_and_list(self, api_client, make_profile, make_user):
        await make_profile("p1")
        await make_user("r1", displayName="Grace")

        created = await api_client.post(
            "/profiles/p1/ratings", json={"rating": 5, "review": "Great"}, headers={"X-Viewer-Id": "r1"}
        )
        listed = await api_client.get("/profiles/p1/ratings")
        stats = (await api_client.get("/profiles/p1/stats")).json()

        assert created.status_code == 201
        assert [(r["rating"], r["fromUserName"]) for r in listed.json()] == [(5, "Grace")]
        assert stats["averageRating"] == 5
        assert stats["totalRatings"] == 1

    async def test_rating_rules(self, api_client, make_profile):
        await make_profile("p1")

        anonymous = await api_client.post("/profiles/p1/ratings", json={"rating": 4})
        self_rating = await api_client.post("/profiles/p1/ratings", json={"rating": 4}, headers={"X-Viewer-Id": "p1"})
        out_of_range = await api_client.post("/profiles/p1/ratings", json={"rating": 9}, headers={"X-Viewer-Id": "r"})
        missing = await api_client.post("/profiles/ghost/ratings", json={"rating": 4}, headers={"X-Viewer-Id": "r"})

        assert anonymous.status_code == 401
        assert self_rating.status_code == 400
        assert out_of_range.status_code == 400
        assert missing.status_code == 404

    async def test_rating_a_basic_account_updates_its_stats(self, api_client, make_user):
        await make_user("p1")

        created = await api_client.post("/profiles/p1/ratings", json={"rating": 3}, headers={"X-Viewer-Id": "r1"})
        stats = (await api_client.get("/profiles/p1/stats")).json()

        assert created.status_code == 201
        assert stats["averageRating"] == 3
        assert stats["totalRatings"] == 1

    async def test_hidden_ratings_list_is_empty(self, api_client, make_profile, ratings):
        await make_profile("p1", privacySettings=PrivacySettings(showRatings="private"))
        await ratings.add_rating("p1", "r1", 4)

        stranger = await api_client.get("/profiles/p1/ratings", headers={"X-Viewer-Id": "r1"})
        owner = await api_client.get("/profiles/p1/ratings", headers={"X-Viewer-Id": "p1"})

        assert stranger.json() == []
        assert len(owner.json()) == 1


class TestAnalytics:
    async def test_workspace(self, api_client, store):
        await store.set(TASKS, "t1", {"workspaceId": "ws", "status": "done"})

        response = await api_client.get("/analytics/workspaces/ws")

        assert response.status_code == 200
        assert response.json()["teamProductivity"] == 100

    async def test_missing_project(self, api_client):
        assert (await api_client.get("/analytics/projects/ghost")).status_code == 404

    async def test_productivity_period(self, api_client, make_profile):
        await make_profile("u1")

        good = await api_client.get("/analytics/users/u1/productivity", params={"period": "2024-06"})
        bad = await api_client.get("/analytics/users/u1/productivity", params={"period": "June"})

        assert good.status_code == 200
        assert good.json()["period"] == "2024-06"
        assert bad.status_code == 400

    async def test_reputation(self, api_client, make_profile):
        stats = {"averageRating": 4, "projectsCompleted": 10, "responseRate": 90, "timeOnPlatform": 730}
        await make_profile("u1", stats=stats)

        response = await api_client.get("/analytics/users/u1/reputation")

        assert response.json() == {"uid": "u1", "score": 76}

    async def test_search(self, api_client, make_profile):
        await make_profile("c1", skills=["python"])
        await make_profile("c2", skills=["go"])

        response = await api_client.post("/analytics/search", json={"skills": ["python"]})

        assert [u["uid"] for u in response.json()["users"]] == ["c1"]

    async def test_search_results_are_filtered_for_the_viewer(self, api_client, make_profile):
        await make_profile("c1", skills=["python"], email="ada@example.com", phone="+220 555")

        anonymous = (await api_client.post("/analytics/search", json={"skills": ["python"]})).json()
        signed_in = (
            await api_client.post("/analytics/search", json={"skills": ["python"]}, headers={"X-Viewer-Id": "u2"})
        ).json()

        assert "email" not in anonymous["users"][0]
        assert "phone" not in anonymous["users"][0]
        assert signed_in["users"][0]["email"] == "ada@example.com"
        assert "phone" not in signed_in["users"][0]


class TestAgencies:
    async def test_branding_then_portal_url(self, api_client, store):
        await store.set(AGENCY_PROFILES, "a1", {"name": "Acme", "username": "acme", "ownerId": "boss"})
        branding = {"primaryColor": "#111111", "secondaryColor": "#eeeeee", "customDomain": "talent.acme.io"}

        before = await api_client.get("/agencies/a1/portal-url")
        stranger = await api_client.put("/agencies/a1/branding", json=branding, headers={"X-Viewer-Id": "u9"})
        owner = await api_client.put("/agencies/a1/branding", json=branding, headers={"X-Viewer-Id": "boss"})
        after = await api_client.get("/agencies/a1/portal-url")

        assert before.json() == {"url": "https://acme.connekt.com/portal"}
        assert stranger.status_code == 403
        assert owner.status_code == 200
        assert after.json() == {"url": "https://talent.acme.io/portal"}

    async def test_missing_agency(self, api_client):
        assert (await api_client.get("/agencies/ghost")).status_code == 404
        assert (await api_client.get("/agencies/ghost/talent-pool")).status_code == 404
        assert (await api_client.get("/agencies/ghost/portal-url")).status_code == 404

    async def test_priority_search_is_filtered_for_the_viewer(self, api_client, make_profile):
        await make_profile("c1", skills=["python"], email="ada@example.com", phone="+220 555")

        response = await api_client.post("/agencies/candidates/priority-search", json={"requiredSkills": ["python"]})

        assert response.status_code == 200
        [candidate] = response.json()
        assert candidate["uid"] == "c1"
        assert "email" not in candidate
        assert "phone" not in candidate

    async def test_commission(self, api_client, store):
        await store.set(CONTRACTS, "k1", {"terms": {"paymentAmount": 1000}})

        found = await api_client.get("/agencies/commissions/k1", params={"rate": 20})
        missing = await api_client.get("/agencies/commissions/ghost")

        assert found.json()["commissionAmount"] == 200
        assert missing.status_code == 404
