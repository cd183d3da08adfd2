"""
Read-only aggregates for the admin and user dashboards.

Every window is derived from a single `now` so the sections of one
dashboard agree with each other.
"""

import calendar
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple, Optional

from sqlalchemy import func
from sqlmodel import Session, col, select

from models import (
    CONTACT_PRIORITIES,
    CONTACT_STATUSES,
    Adoption,
    Animal,
    Contact,
    Donation,
    User,
    Volunteer,
    start_of_month,
    start_of_year,
    utcnow,
)
from schemas import AnimalSummary, DonationRead
from services import adoptions as adoption_service
from services import animals as animal_service
from services import contacts as contact_service
from services import donations as donation_service
from services import volunteers as volunteer_service
from services.users import active_user_count


class Periods(NamedTuple):
    now: datetime
    month_start: datetime
    week_start: datetime
    year_start: datetime
    last_30_days: datetime
    last_7_days: datetime


def periods(now: Optional[datetime] = None) -> Periods:
    """Weeks start on Monday 00:00 UTC; a naive `now` is taken as UTC."""
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return Periods(
        now=now,
        month_start=start_of_month(now),
        week_start=today - timedelta(days=today.weekday()),
        year_start=today.replace(month=1, day=1),
        last_30_days=now - timedelta(days=30),
        last_7_days=now - timedelta(days=7),
    )


def _count(session: Session, model, *conditions) -> int:
    return session.exec(select(func.count()).select_from(model).where(*conditions)).one()


def _amount_and_count(session: Session, *conditions) -> dict[str, Any]:
    amount, count = donation_service.completed_total(session, *conditions)
    return {"amount": amount, "count": count}


def monthly_donations(session: Session, year: int, user_id: Optional[int] = None) -> list[dict[str, Any]]:
    """Completed donations of one calendar year bucketed by month (12 entries)."""
    query = select(Donation.created_at, Donation.amount).where(
        Donation.status == "completed",
        Donation.created_at >= start_of_year(year),
        Donation.created_at < start_of_year(year + 1),
    )
    if user_id is not None:
        query = query.where(Donation.user_id == user_id)

    months = [
        {"month": calendar.month_name[number], "amount": 0.0, "count": 0}
        for number in range(1, 13)
    ]
    for created_at, amount in session.exec(query).all():
        bucket = months[created_at.month - 1]
        bucket["amount"] += amount
        bucket["count"] += 1
    return months


def _daily_activity(session: Session, now: datetime) -> list[dict[str, Any]]:
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    days = []
    for offset in range(6, -1, -1):
        day_start = today - timedelta(days=offset)
        day_end = day_start + timedelta(days=1)
        donations = _amount_and_count(
            session, Donation.created_at >= day_start, Donation.created_at < day_end
        )
        days.append({
            "date": day_start.date().isoformat(),
            "newUsers": _count(session, User, User.created_at >= day_start, User.created_at < day_end),
            "newAdoptions": _count(
                session, Adoption, Adoption.created_at >= day_start, Adoption.created_at < day_end
            ),
            "newDonations": donations["count"],
            "donationAmount": donations["amount"],
        })
    return days


def admin_dashboard(session: Session, now: Optional[datetime] = None) -> dict[str, Any]:
    p = periods(now)

    animal_counts = animal_service.count_by_status(session)
    adoption_counts = adoption_service.count_by_status(session)
    volunteer_counts = volunteer_service.count_by_status(session)
    contact_counts = contact_service.count_by(session, Contact.status, CONTACT_STATUSES)
    completed = _amount_and_count(session)
    average = session.exec(
        select(func.coalesce(func.avg(Donation.amount), 0.0)).where(Donation.status == "completed")
    ).one()

    recent_adoptions = [
        {
            "id": adoption.id,
            "animalName": adoption.animal.name,
            "animalType": adoption.animal.type,
            "userName": f"{adoption.user.firstname} {adoption.user.lastname}",
            "status": adoption.status,
            "createdAt": adoption.created_at,
        }
        for adoption in adoption_service.list_all(session, limit=5)
    ]
    recent_donations = [
        {
            "id": donation.id,
            "amount": donation.amount,
            "donorName": f"{donation.firstname} {donation.lastname}",
            "status": donation.status,
            "createdAt": donation.created_at,
        }
        for donation in session.exec(
            select(Donation).order_by(col(Donation.created_at).desc(), col(Donation.id).desc()).limit(5)
        ).all()
    ]
    recent_messages = [
        {
            "id": contact.id,
            "senderName": f"{contact.firstname} {contact.lastname}",
            "subject": contact.subject,
            "status": contact.status,
            "priority": contact.priority,
            "createdAt": contact.created_at,
        }
        for contact in session.exec(
            select(Contact).order_by(col(Contact.created_at).desc(), col(Contact.id).desc()).limit(5)
        ).all()
    ]

    return {
        "users": {
            "totalCount": _count(session, User),
            "newThisMonth": _count(session, User, User.created_at >= p.month_start),
            "newThisWeek": _count(session, User, User.created_at >= p.week_start),
            "activeUsers": active_user_count(session, since=p.last_30_days),
        },
        "animals": {
            "totalCount": sum(animal_counts.values()),
            **animal_counts,
            "newThisMonth": _count(session, Animal, Animal.created_at >= p.month_start),
            "byType": animal_service.count_by_type(session),
        },
        "adoptions": {
            "totalCount": sum(adoption_counts.values()),
            **adoption_counts,
            "thisMonth": _count(session, Adoption, Adoption.created_at >= p.month_start),
            "thisWeek": _count(session, Adoption, Adoption.created_at >= p.week_start),
            "recentAdoptions": recent_adoptions,
        },
        "donations": {
            "totalAmount": completed["amount"],
            "totalCount": completed["count"],
            "averageDonation": round(float(average), 2),
            "thisMonth": _amount_and_count(session, Donation.created_at >= p.month_start),
            "thisWeek": _amount_and_count(session, Donation.created_at >= p.week_start),
            "monthlyRevenue": monthly_donations(session, p.now.year),
            "recentDonations": recent_donations,
        },
        "volunteers": {
            "totalCount": sum(volunteer_counts.values()),
            "pendingApplications": volunteer_counts["pending"],
            "newThisMonth": _count(session, Volunteer, Volunteer.created_at >= p.month_start),
            "byStatus": [{"status": status, "count": count} for status, count in volunteer_counts.items()],
        },
        "contacts": {
            "totalCount": sum(contact_counts.values()),
            "unreadCount": contact_counts["new"],
            "newThisWeek": _count(session, Contact, Contact.created_at >= p.week_start),
            "byPriority": [
                {"priority": priority, "count": count}
                for priority, count in contact_service.count_by(
                    session, Contact.priority, CONTACT_PRIORITIES
                ).items()
            ],
            "recentMessages": recent_messages,
        },
        "activity": {"dailyStats": _daily_activity(session, p.now)},
    }


def admin_quick_stats(session: Session) -> dict[str, Any]:
    total_amount, _ = donation_service.completed_total(session)
    return {
        "totalUsers": _count(session, User),
        "availableAnimals": _count(session, Animal, Animal.status == "available"),
        "pendingAdoptions": _count(session, Adoption, Adoption.status == "pending"),
        "unreadMessages": _count(session, Contact, Contact.status == "new"),
        "totalDonationAmount": total_amount,
        "pendingVolunteers": _count(session, Volunteer, Volunteer.status == "pending"),
    }


def user_dashboard(session: Session, user: User, now: Optional[datetime] = None) -> dict[str, Any]:
    p = periods(now)
    adoptions = adoption_service.list_for_user(session, user.id)
    adoption_counts = adoption_service.count_by_status(session, user_id=user.id)
    year_donations = user_donations(session, user.id, p.now.year)
    available = [
        AnimalSummary.model_validate(animal)
        for animal in animal_service.list_available(session)[:6]
    ]

    return {
        "user": {
            "totalAdoptions": len(adoptions),
            "pendingAdoptions": adoption_counts["pending"],
            "totalDonated": year_donations["totalAmount"],
        },
        "recentAdoptions": adoptions[:3],
        "recentDonations": year_donations["donations"][:3],
        "availableAnimals": available,
        "donations": {
            "totalAmount": year_donations["totalAmount"],
            "totalCount": year_donations["count"],
            "monthlyDonations": monthly_donations(session, p.now.year, user_id=user.id),
            "recentDonations": year_donations["donations"][:5],
        },
        "adoptions": {"totalCount": len(adoptions), "items": adoptions},
        "summary": {
            "totalDonations": year_donations["totalAmount"],
            "totalAnimalsAdopted": adoption_counts["approved"],
            "pendingAdoptions": adoption_counts["pending"],
            "memberSince": user.created_at,
        },
    }


def user_donations(session: Session, user_id: int, year: int) -> dict[str, Any]:
    """A user's donations of one year; totals only count completed ones."""
    donations = list(
        session.exec(
            select(Donation)
            .where(
                Donation.user_id == user_id,
                Donation.created_at >= start_of_year(year),
                Donation.created_at < start_of_year(year + 1),
            )
            .order_by(col(Donation.created_at).desc(), col(Donation.id).desc())
        ).all()
    )
    completed = [donation for donation in donations if donation.status == "completed"]
    return {
        "year": year,
        "donations": [DonationRead.model_validate(donation) for donation in donations],
        "totalAmount": sum(donation.amount for donation in completed),
        "count": len(completed),
    }


def user_quick_stats(session: Session, user_id: int, now: Optional[datetime] = None) -> dict[str, Any]:
    p = periods(now)
    amount, count = donation_service.completed_total(
        session, Donation.user_id == user_id, Donation.created_at >= p.year_start
    )
    adoption_counts = adoption_service.count_by_status(session, user_id=user_id)
    return {
        "donationsThisYear": count,
        "totalDonatedThisYear": amount,
        "totalAnimalsAdopted": adoption_counts["approved"],
        "pendingAdoptions": adoption_counts["pending"],
    }
