# =============================================================================
# tests/test_animals.py - Animal Registry Tests
# =============================================================================

from models import Adoption, Animal


def animal_body(**overrides) -> dict:
    body = {
        "type": "chat",
        "name": "Felix",
        "city": "Marseille",
        "age": 2,
        "breed": "Siamois",
        "description": "Calm and cuddly",
    }
    body.update(overrides)
    return body


class TestPublicAnimals:
    """Public listing, search and detail."""

    def test_lists_only_available_animals(self, client, make_animal):
        make_animal(name="Rex")
        make_animal(name="Old", status="adopted")

        response = client.get("/api/adopt/animals")

        assert response.status_code == 200
        assert [a["name"] for a in response.json()["data"]] == ["Rex"]
        assert response.json()["count"] == 1

    def test_search_matches_substrings_case_insensitively(self, client, make_animal):
        make_animal(name="Rex", type="Chien", city="Lyon")
        make_animal(name="Felix", type="chat", city="Villeurbanne")

        response = client.get("/api/adopt/animals/search", params={"type": "CHI"})

        assert [a["name"] for a in response.json()["data"]] == ["Rex"]

    def test_search_age_range_is_inclusive(self, client, make_animal):
        for age in (1, 3, 5, 8):
            make_animal(name=f"Pet{age}", age=age)

        response = client.get("/api/adopt/animals/search", params={"minAge": 3, "maxAge": 5})

        assert sorted(a["age"] for a in response.json()["data"]) == [3, 5]

    def test_search_defaults_to_available(self, client, make_animal):
        make_animal(name="Rex")
        make_animal(name="Old", status="adopted")

        default = client.get("/api/adopt/animals/search")
        adopted = client.get("/api/adopt/animals/search", params={"status": "adopted"})

        assert [a["name"] for a in default.json()["data"]] == ["Rex"]
        assert [a["name"] for a in adopted.json()["data"]] == ["Old"]

    def test_search_rejects_inverted_age_range(self, client):
        response = client.get("/api/adopt/animals/search", params={"minAge": 9, "maxAge": 2})

        assert response.status_code == 400
        assert "minAge" in response.json()["message"]

    def test_detail_hides_history_from_public(self, client, animal):
        response = client.get(f"/api/adopt/animals/{animal.id}")

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Rex"
        assert "adoptions" not in response.json()["data"]

    def test_detail_includes_history_for_admins(self, client, session, animal, user, admin_headers):
        session.add(Adoption(user_id=user.id, animal_id=animal.id, firstname="Ana", lastname="Lopez", phone="0612345678"))
        session.commit()

        response = client.get(f"/api/adopt/animals/{animal.id}", headers=admin_headers)

        history = response.json()["data"]["adoptions"]
        assert len(history) == 1
        assert history[0]["user"]["email"] == user.email

    def test_unknown_animal_is_not_found(self, client):
        response = client.get("/api/adopt/animals/999")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Animal not found"}


class TestAdminAnimals:
    """Admin create / update / delete / status overrides."""

    def test_create_starts_available(self, client, admin_headers):
        response = client.post("/api/adopt/animals", json=animal_body(), headers=admin_headers)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "available"
        assert data["createdAt"]

    def test_create_validates_ranges(self, client, admin_headers):
        too_old = client.post("/api/adopt/animals", json=animal_body(age=31), headers=admin_headers)
        short_name = client.post("/api/adopt/animals", json=animal_body(name="X"), headers=admin_headers)

        assert too_old.status_code == 400
        assert too_old.json()["message"].startswith("age:")
        assert short_name.status_code == 400
        assert short_name.json()["message"].startswith("name:")

    def test_create_requires_admin(self, client, user_headers):
        response = client.post("/api/adopt/animals", json=animal_body(), headers=user_headers)

        assert response.status_code == 403

    def test_update_changes_only_given_fields(self, client, animal, admin_headers):
        response = client.put(f"/api/adopt/animals/{animal.id}", json={"city": "Nantes"}, headers=admin_headers)

        data = response.json()["data"]
        assert data["city"] == "Nantes"
        assert data["name"] == "Rex"

    def test_null_on_required_field_is_rejected(self, client, session, animal, admin_headers):
        response = client.put(f"/api/adopt/animals/{animal.id}", json={"name": None}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"].startswith("name:")
        session.refresh(animal)
        assert animal.name == "Rex"

    def test_null_clears_description(self, client, make_animal, admin_headers):
        described = make_animal(description="Loves walks")

        response = client.put(
            f"/api/adopt/animals/{described.id}", json={"description": None}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["description"] is None

    def test_empty_update_is_rejected(self, client, animal, admin_headers):
        response = client.put(f"/api/adopt/animals/{animal.id}", json={}, headers=admin_headers)

        assert response.status_code == 400

    def test_delete_refused_with_pending_requests(self, client, session, animal, user, admin_headers):
        session.add(Adoption(user_id=user.id, animal_id=animal.id, firstname="Ana", lastname="Lopez", phone="0612345678"))
        session.commit()

        response = client.delete(f"/api/adopt/animals/{animal.id}", headers=admin_headers)

        assert response.status_code == 409
        assert session.get(Animal, animal.id) is not None

    def test_delete_removes_closed_history(self, client, session, animal, user, admin_headers):
        old = Adoption(
            user_id=user.id, animal_id=animal.id, firstname="Ana", lastname="Lopez",
            phone="0612345678", status="rejected",
        )
        session.add(old)
        session.commit()
        old_id = old.id

        response = client.delete(f"/api/adopt/animals/{animal.id}", headers=admin_headers)

        assert response.status_code == 200
        session.expire_all()
        assert session.get(Animal, animal.id) is None
        assert session.get(Adoption, old_id) is None

    def test_mark_adopted_then_available(self, client, animal, admin_headers):
        adopted = client.patch(f"/api/adopt/animals/{animal.id}/adopt", headers=admin_headers)
        twice = client.patch(f"/api/adopt/animals/{animal.id}/adopt", headers=admin_headers)
        available = client.patch(f"/api/adopt/animals/{animal.id}/available", headers=admin_headers)

        assert adopted.json()["data"]["status"] == "adopted"
        assert twice.status_code == 409
        assert available.json()["data"]["status"] == "available"

    def test_admin_list_includes_every_status(self, client, make_animal, admin_headers):
        make_animal(name="Rex")
        make_animal(name="Old", status="adopted")

        response = client.get("/api/adopt/admin/animals", headers=admin_headers)

        assert response.json()["count"] == 2

    def test_stats_reconcile(self, client, make_animal, admin_headers):
        make_animal(name="Rex", type="chien", city="Lyon")
        make_animal(name="Max", type="chien", city="Lyon", status="adopted")
        make_animal(name="Felix", type="chat", city="Paris", status="pending")

        stats = client.get("/api/adopt/admin/stats", headers=admin_headers).json()["data"]

        assert stats["total"] == 3
        assert stats["available"] + stats["adopted"] + stats["pending"] == stats["total"]
        assert stats["byType"][0] == {"type": "chien", "count": 2}
        assert stats["byCity"][0] == {"city": "Lyon", "count": 2}
