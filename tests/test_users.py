# =============================================================================
# tests/test_users.py - User Administration Tests
# =============================================================================

from models import Adoption, Contact, Donation, User


def add_adoption(session, user, animal, status="pending") -> Adoption:
    adoption = Adoption(
        user_id=user.id, animal_id=animal.id, firstname=user.firstname,
        lastname=user.lastname, phone="0612345678", status=status,
    )
    session.add(adoption)
    session.commit()
    session.refresh(adoption)
    return adoption


def add_donation(session, user, amount=20.0, status="completed") -> Donation:
    donation = Donation(
        user_id=user.id, firstname=user.firstname, lastname=user.lastname,
        email=user.email, amount=amount, status=status,
    )
    session.add(donation)
    session.commit()
    session.refresh(donation)
    return donation


class TestUserListing:
    """Admin views of accounts."""

    def test_list_includes_activity_counts(self, client, session, user, animal, admin_headers):
        add_adoption(session, user, animal)
        add_donation(session, user, amount=30)
        add_donation(session, user, amount=99, status="pending")

        response = client.get("/api/useradmin/admin/users", headers=admin_headers)

        body = response.json()
        assert body["count"] == 2
        ana = next(u for u in body["data"] if u["id"] == user.id)
        assert ana["totalAdoptions"] == 1
        assert ana["pendingAdoptions"] == 1
        assert ana["totalDonations"] == 1
        assert ana["totalDonationAmount"] == 30

    def test_get_single_user(self, client, user, admin_headers):
        response = client.get(f"/api/useradmin/admin/users/{user.id}", headers=admin_headers)
        missing = client.get("/api/useradmin/admin/users/999", headers=admin_headers)

        assert response.json()["data"]["email"] == user.email
        assert missing.status_code == 404

    def test_requires_admin(self, client, user_headers):
        response = client.get("/api/useradmin/admin/users", headers=user_headers)

        assert response.status_code == 403

    def test_users_stats(self, client, session, user, animal, make_user, admin_headers):
        make_user(email="zoe@mail.com")
        add_adoption(session, user, animal)

        stats = client.get("/api/useradmin/admin/users-stats", headers=admin_headers).json()["data"]

        assert stats["totalUsers"] == 3
        assert stats["totalAdmins"] == 1
        assert stats["totalRegularUsers"] == 2
        assert stats["recentUsers"] == 3
        assert stats["activeUsers"] == 1


class TestUserManagement:
    """Create, update and delete accounts."""

    def test_create_with_temporary_password(self, client, admin_headers):
        response = client.post(
            "/api/useradmin/admin/users",
            json={"firstname": "Zoe", "lastname": "Martin", "email": "zoe@mail.com"},
            headers=admin_headers,
        )

        data = response.json()["data"]
        assert response.status_code == 201
        assert data["role"] == "user"
        login = client.post(
            "/api/auth/login", json={"email": "zoe@mail.com", "password": data["temporaryPassword"]}
        )
        assert login.status_code == 200

    def test_create_with_password_returns_no_temporary(self, client, admin_headers):
        response = client.post(
            "/api/useradmin/admin/users",
            json={"firstname": "Zoe", "lastname": "Martin", "email": "zoe@mail.com",
                  "password": "chosen123", "role": "admin"},
            headers=admin_headers,
        )

        data = response.json()["data"]
        assert data["role"] == "admin"
        assert "temporaryPassword" not in data

    def test_create_duplicate_email(self, client, user, admin_headers):
        response = client.post(
            "/api/useradmin/admin/users",
            json={"firstname": "Ana", "lastname": "Lopez", "email": user.email},
            headers=admin_headers,
        )

        assert response.status_code == 409

    def test_update_user(self, client, user, admin_headers):
        response = client.put(
            f"/api/useradmin/admin/users/{user.id}", json={"lastname": "Garcia"}, headers=admin_headers
        )

        assert response.json()["data"]["lastname"] == "Garcia"

    def test_admin_cannot_change_own_role(self, client, admin, admin_headers):
        via_update = client.put(
            f"/api/useradmin/admin/users/{admin.id}", json={"role": "user"}, headers=admin_headers
        )
        via_role = client.patch(
            f"/api/useradmin/admin/users/{admin.id}/role", json={"role": "user"}, headers=admin_headers
        )

        assert via_update.status_code == 403
        assert via_role.status_code == 403

    def test_change_role(self, client, user, admin_headers):
        changed = client.patch(
            f"/api/useradmin/admin/users/{user.id}/role", json={"role": "admin"}, headers=admin_headers
        )
        again = client.patch(
            f"/api/useradmin/admin/users/{user.id}/role", json={"role": "admin"}, headers=admin_headers
        )

        assert changed.json()["data"]["role"] == "admin"
        assert again.status_code == 409

    def test_cannot_delete_self(self, client, admin, admin_headers):
        response = client.delete(f"/api/useradmin/admin/users/{admin.id}", headers=admin_headers)

        assert response.status_code == 403

    def test_cannot_delete_user_with_approved_adoption(self, client, session, user, animal, admin_headers):
        add_adoption(session, user, animal, status="approved")

        response = client.delete(f"/api/useradmin/admin/users/{user.id}", headers=admin_headers)

        assert response.status_code == 409

    def test_delete_detaches_donations_and_messages(self, client, session, user, animal, admin_headers):
        adoption = add_adoption(session, user, animal, status="rejected")
        donation = add_donation(session, user)
        contact = Contact(
            user_id=user.id, firstname="Ana", lastname="Lopez", email=user.email,
            subject="Hi", message="Hello",
        )
        session.add(contact)
        session.commit()
        user_id, adoption_id, donation_id, contact_id = user.id, adoption.id, donation.id, contact.id

        response = client.delete(f"/api/useradmin/admin/users/{user_id}", headers=admin_headers)

        assert response.status_code == 200
        session.expire_all()
        assert session.get(User, user_id) is None
        assert session.get(Adoption, adoption_id) is None
        assert session.get(Donation, donation_id).user_id is None
        assert session.get(Contact, contact_id).user_id is None


class TestAdminRoles:
    """Promotion, demotion and the admin check."""

    def test_promote_and_demote(self, client, user, admin_headers):
        promoted = client.post(f"/api/admin/promote/{user.id}", headers=admin_headers)
        twice = client.post(f"/api/admin/promote/{user.id}", headers=admin_headers)
        demoted = client.post(f"/api/admin/demote/{user.id}", headers=admin_headers)

        assert promoted.json()["data"]["role"] == "admin"
        assert twice.status_code == 409
        assert demoted.json()["data"]["role"] == "user"

    def test_cannot_demote_self(self, client, admin, admin_headers):
        response = client.post(f"/api/admin/demote/{admin.id}", headers=admin_headers)

        assert response.status_code == 403

    def test_list_admins(self, client, admin, user, admin_headers):
        listing = client.get("/api/admin/admins", headers=admin_headers).json()
        stats = client.get("/api/admin/stats", headers=admin_headers).json()["data"]

        assert [a["id"] for a in listing["data"]] == [admin.id]
        assert stats["totalAdmins"] == 1

    def test_check(self, client, user, user_headers, admin_headers):
        as_user = client.get("/api/admin/check", headers=user_headers).json()["data"]
        as_admin = client.get("/api/admin/check", headers=admin_headers).json()["data"]

        assert as_user == {"isAdmin": False, "userId": user.id}
        assert as_admin["isAdmin"] is True
