from conftest import auth_headers


class TestProfiles:
    def test_requires_token(self, client):
        response = client.get("/profiles/me")
        assert response.status_code == 401

    def test_rejects_bad_token(self, client):
        response = client.get("/profiles/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_profile_missing_until_created(self, client):
        response = client.get("/profiles/me", headers=auth_headers("nobody"))
        assert response.status_code == 404

    def test_create_and_fetch(self, client, owner):
        assert owner.profile["trust_score"] == 0.0
        assert owner.profile["total_ratings"] == 0

        me = client.get("/profiles/me", headers=owner.headers).json()
        assert me["id"] == owner.id
        assert me["user_id"] == "owner-1"

        public = client.get(f"/profiles/{owner.id}").json()
        assert public["full_name"] == "Olivia Owner"

    def test_one_profile_per_user(self, client, owner):
        response = client.post(
            "/profiles",
            json={"full_name": "Again", "email": "again@borrowhub.io"},
            headers=owner.headers,
        )
        assert response.status_code == 400

    def test_update_ignores_trust_fields(self, client, owner):
        response = client.put(
            "/profiles/me",
            json={"bio": "Grad student", "trust_score": 5.0},
            headers=owner.headers,
        )
        assert response.status_code == 200
        assert response.json()["bio"] == "Grad student"
        assert response.json()["trust_score"] == 0.0

    def test_empty_update(self, client, owner):
        response = client.put("/profiles/me", json={}, headers=owner.headers)
        assert response.status_code == 400

    def test_malformed_profile_id_is_not_found(self, client):
        assert client.get("/profiles/not-an-id").status_code == 404


class TestItems:
    def test_listing_embeds_owner(self, client, owner, listed_item):
        assert listed_item["owner_id"] == owner.id
        assert listed_item["is_available"] is True
        assert listed_item["owner"]["full_name"] == "Olivia Owner"

    def test_services_need_hourly_rate(self, client, owner):
        response = client.post(
            "/items",
            json={"title": "Guitar lessons", "category": "services", "condition": "excellent", "is_service": True},
            headers=owner.headers,
        )
        assert response.status_code == 400

    def test_browse_filters_and_sorts(self, client, owner, listed_item):
        client.post(
            "/items",
            json={
                "title": "Guitar lessons",
                "category": "services",
                "condition": "excellent",
                "is_service": True,
                "hourly_rate": 4.0,
                "service_type": "music",
            },
            headers=owner.headers,
        )

        cheapest_first = client.get("/items", params={"sort_by": "price_low"}).json()
        assert [item["title"] for item in cheapest_first] == ["Guitar lessons", "Mountain Bike"]

        goods = client.get("/items", params={"item_type": "items"}).json()
        assert [item["title"] for item in goods] == ["Mountain Bike"]

        searched = client.get("/items", params={"search": "serviced"}).json()
        assert [item["id"] for item in searched] == [listed_item["id"]]

        services = client.get("/items/services", params={"service_type": "music"}).json()
        assert [item["title"] for item in services] == ["Guitar lessons"]

    def test_newest_first_paging_and_category(self, client, owner, listed_item):
        for title in ("Tent", "Kayak"):
            response = client.post(
                "/items",
                json={"title": title, "category": "sports_equipment", "condition": "good", "daily_rate": 3.0},
                headers=owner.headers,
            )
            assert response.status_code == 201

        first_page = client.get("/items", params={"limit": 2}).json()
        second_page = client.get("/items", params={"limit": 2, "skip": 2}).json()
        assert [item["title"] for item in first_page + second_page] == ["Kayak", "Tent", "Mountain Bike"]

        sports = client.get("/items", params={"category": "sports_equipment"}).json()
        assert [item["title"] for item in sports] == ["Kayak", "Tent"]

    def test_unknown_category(self, client):
        assert client.get("/items", params={"category": "boats"}).status_code == 400

    def test_owner_items(self, client, owner, listed_item):
        items = client.get(f"/profiles/{owner.id}/items").json()
        assert [item["id"] for item in items] == [listed_item["id"]]

    def test_only_owner_edits(self, client, borrower, owner, listed_item):
        response = client.put(f"/items/{listed_item['id']}", json={"daily_rate": 1}, headers=borrower.headers)
        assert response.status_code == 403

        response = client.put(f"/items/{listed_item['id']}", json={"daily_rate": 12}, headers=owner.headers)
        assert response.status_code == 200
        assert response.json()["daily_rate"] == 12

    def test_delete(self, client, owner, listed_item):
        response = client.delete(f"/items/{listed_item['id']}", headers=owner.headers)
        assert response.status_code == 200
        assert client.get(f"/items/{listed_item['id']}").status_code == 404

    def test_cannot_delete_item_under_accepted_request(self, client, owner, listed_item, pending_request):
        client.post(
            f"/requests/{pending_request['id']}/respond",
            json={"decision": "accept"},
            headers=owner.headers,
        )
        response = client.delete(f"/items/{listed_item['id']}", headers=owner.headers)
        assert response.status_code == 409
