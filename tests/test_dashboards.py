# =============================================================================
# tests/test_dashboards.py - Dashboard Aggregate Tests
# =============================================================================

from datetime import datetime, timedelta, timezone

from models import Adoption, Contact, Donation, Volunteer, utcnow
from services.dashboards import admin_dashboard, monthly_donations, periods

UTC = timezone.utc


def add_donation(session, user=None, amount=50.0, status="completed", created_at=None) -> Donation:
    donation = Donation(
        user_id=user.id if user else None,
        firstname="Ana",
        lastname="Lopez",
        email="ana@mail.com",
        amount=amount,
        status=status,
        is_anonymous=user is None,
    )
    if created_at is not None:
        donation.created_at = created_at
    session.add(donation)
    session.commit()
    return donation


class TestPeriods:
    """Time windows shared by one dashboard."""

    def test_week_starts_on_monday(self):
        # 15 October 2026 is a Thursday
        p = periods(datetime(2026, 10, 15, 13, 30, tzinfo=UTC))

        assert p.week_start == datetime(2026, 10, 12, tzinfo=UTC)
        assert p.month_start == datetime(2026, 10, 1, tzinfo=UTC)
        assert p.year_start == datetime(2026, 1, 1, tzinfo=UTC)
        assert p.last_7_days == datetime(2026, 10, 8, 13, 30, tzinfo=UTC)

    def test_monday_is_its_own_week_start(self):
        p = periods(datetime(2026, 10, 12, 0, 5))

        assert p.week_start == datetime(2026, 10, 12, tzinfo=UTC)

    def test_stored_timestamps_are_utc_aware(self, session, user):
        donation = add_donation(session, user)
        session.refresh(donation)

        assert utcnow().tzinfo is UTC
        assert donation.created_at.utcoffset() == timedelta(0)
        assert user.created_at.utcoffset() == timedelta(0)


class TestMonthlyDonations:
    def test_buckets_completed_donations_by_month(self, session, user):
        add_donation(session, user, amount=20, created_at=datetime(2025, 3, 4, tzinfo=UTC))
        add_donation(session, user, amount=30, created_at=datetime(2025, 3, 20, tzinfo=UTC))
        add_donation(session, user, amount=99, status="pending", created_at=datetime(2025, 3, 21, tzinfo=UTC))
        add_donation(session, user, amount=40, created_at=datetime(2024, 3, 4, tzinfo=UTC))

        months = monthly_donations(session, 2025)

        assert len(months) == 12
        assert months[0] == {"month": "January", "amount": 0.0, "count": 0}
        assert months[2] == {"month": "March", "amount": 50.0, "count": 2}

    def test_filters_by_user(self, session, user, make_user):
        other = make_user(email="zoe@mail.com")
        add_donation(session, user, amount=20, created_at=datetime(2025, 5, 1, tzinfo=UTC))
        add_donation(session, other, amount=70, created_at=datetime(2025, 5, 2, tzinfo=UTC))

        months = monthly_donations(session, 2025, user_id=user.id)

        assert months[4]["amount"] == 20


class TestAdminDashboard:
    """Sections must agree with each other and with the detail endpoints."""

    def test_sections_reconcile(self, client, session, user, make_animal, admin_headers):
        rex = make_animal(name="Rex")
        felix = make_animal(name="Felix", type="chat", status="adopted")
        session.add(Adoption(user_id=user.id, animal_id=rex.id, firstname="Ana", lastname="Lopez", phone="06"))
        session.add(Adoption(
            user_id=user.id, animal_id=felix.id, firstname="Ana", lastname="Lopez", phone="06", status="approved",
        ))
        session.add(Volunteer(
            firstname="Xavier", lastname="Yann", email="x@y.com", phone="0612345678", city="Lyon", age=25,
        ))
        session.add(Contact(firstname="Zoe", lastname="Martin", email="zoe@mail.com", subject="Hi", message="Hello"))
        session.commit()
        add_donation(session, user, amount=40)
        add_donation(session, amount=60)
        add_donation(session, user, amount=500, status="pending")

        data = client.get("/api/admindashboard/admin/dashboard", headers=admin_headers).json()["data"]

        animals = data["animals"]
        assert animals["totalCount"] == animals["available"] + animals["pending"] + animals["adopted"] == 2
        adoptions = data["adoptions"]
        assert adoptions["totalCount"] == adoptions["pending"] + adoptions["approved"] + adoptions["rejected"] == 2
        assert len(adoptions["recentAdoptions"]) == 2
        assert data["donations"]["totalAmount"] == 100
        assert data["donations"]["totalCount"] == 2
        assert data["donations"]["averageDonation"] == 50
        assert data["volunteers"]["pendingApplications"] == 1
        assert data["contacts"]["unreadCount"] == 1
        assert data["users"]["totalCount"] == 2
        assert data["users"]["activeUsers"] == 1

        stats = client.get("/api/adopt/admin/adoptions/stats", headers=admin_headers).json()["data"]
        assert stats["total"] == adoptions["totalCount"]

    def test_daily_activity_covers_last_seven_days(self, session, user):
        now = utcnow()
        add_donation(session, user, amount=15)

        days = admin_dashboard(session, now=now)["activity"]["dailyStats"]

        assert len(days) == 7
        assert days[-1]["date"] == now.date().isoformat()
        assert days[0]["date"] == (now - timedelta(days=6)).date().isoformat()
        assert days[-1]["newUsers"] == 1
        assert days[-1]["donationAmount"] == 15

    def test_monthly_revenue_has_twelve_months(self, session):
        data = admin_dashboard(session)

        assert [m["month"] for m in data["donations"]["monthlyRevenue"]][:2] == ["January", "February"]
        assert len(data["donations"]["monthlyRevenue"]) == 12

    def test_quick_stats(self, client, session, make_animal, admin_headers):
        make_animal()
        add_donation(session, amount=12.5)

        stats = client.get("/api/admindashboard/admin/dashboard/stats", headers=admin_headers).json()["data"]

        assert stats["availableAnimals"] == 1
        assert stats["totalDonationAmount"] == 12.5
        assert stats["totalUsers"] == 1

    def test_requires_admin(self, client, user_headers):
        response = client.get("/api/admindashboard/admin/dashboard", headers=user_headers)

        assert response.status_code == 403


class TestUserDashboard:
    """A member's own activity."""

    def test_dashboard(self, client, session, user, animal, make_animal, user_headers):
        make_animal(name="Max")
        client.post(
            "/api/adopt/adoptions",
            json={"animalId": animal.id, "firstname": "Ana", "lastname": "Lopez", "phone": "0612345678"},
            headers=user_headers,
        )
        add_donation(session, user, amount=30)
        add_donation(session, user, amount=10, status="failed")

        data = client.get("/api/userdashboard/dashboard", headers=user_headers).json()["data"]

        assert data["user"]["totalAdoptions"] == 1
        assert data["user"]["pendingAdoptions"] == 1
        assert data["user"]["totalDonated"] == 30
        assert len(data["recentDonations"]) == 2
        assert {a["name"] for a in data["availableAnimals"]} == {"Rex", "Max"}
        assert data["adoptions"]["items"][0]["animal"]["name"] == "Rex"
        assert len(data["donations"]["monthlyDonations"]) == 12
        assert data["summary"]["totalAnimalsAdopted"] == 0

    def test_donations_by_year(self, client, session, user, user_headers):
        add_donation(session, user, amount=30, created_at=datetime(2024, 6, 1, tzinfo=UTC))
        add_donation(session, user, amount=5, created_at=datetime(2025, 6, 1, tzinfo=UTC))

        data = client.get(
            "/api/userdashboard/dashboard/donations", params={"year": 2024}, headers=user_headers
        ).json()["data"]

        assert data["year"] == 2024
        assert data["totalAmount"] == 30
        assert [d["amount"] for d in data["donations"]] == [30]

    def test_adoptions(self, client, session, user, animal, user_headers):
        session.add(Adoption(user_id=user.id, animal_id=animal.id, firstname="Ana", lastname="Lopez", phone="06"))
        session.commit()

        body = client.get("/api/userdashboard/dashboard/adoptions", headers=user_headers).json()

        assert body["count"] == 1

    def test_quick_stats(self, client, session, user, user_headers):
        add_donation(session, user, amount=30)
        add_donation(session, user, amount=20, created_at=utcnow() - timedelta(days=800))

        stats = client.get("/api/userdashboard/dashboard/stats", headers=user_headers).json()["data"]

        assert stats["donationsThisYear"] == 1
        assert stats["totalDonatedThisYear"] == 30
        assert stats["pendingAdoptions"] == 0

    def test_requires_login(self, client):
        assert client.get("/api/userdashboard/dashboard").status_code == 401
