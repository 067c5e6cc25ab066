"""
Seed script for the GeoCivic mock DB or Firestore.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Force mock DB even if FIREBASE configured: python scripts/seed_db.py --apply --force-mock

Behavior:
  - Registers one citizen, two staff members and one admin.
  - Files demo reports through the report lifecycle (so each gets its
    audit entry) and assigns the first one to a staff member.
  - Prints the user ids to use as X-User-ID headers.

NOTE: When applying to real Firestore, ensure `FIREBASE_CREDENTIALS_PATH` and `USE_MOCK_DB=false` are set in `.env`.
"""

import argparse

from geocivic.core.settings import settings
from geocivic.models.report import ReportCreate
from geocivic.models.user import Actor, Role

DEMO_USERS = [
    ("Asha Citizen", Role.CITIZEN, "asha@example.org"),
    ("Meena Field", Role.STAFF, "meena@example.org"),
    ("Karan Field", Role.STAFF, "karan@example.org"),
    ("Dispatch Desk", Role.ADMIN, "dispatch@example.org"),
]

DEMO_REPORTS = [
    {
        "title": "Deep pothole near bus stop",
        "category": "Roads",
        "location": "MG Road, Bengaluru",
        "description": "Two-wheelers are swerving into traffic to avoid it.",
        "latitude": 12.9716,
        "longitude": 77.5946,
    },
    {
        "title": "Street light out for a week",
        "category": "Street Lighting",
        "location": "5th Cross, Malleshwaram",
        "description": "Whole stretch is dark after 7pm.",
        "latitude": 13.0035,
        "longitude": 77.5709,
    },
]


def seed(apply: bool = False):
    for name, role, _ in DEMO_USERS:
        print(f"Preparing user: {name} ({role.value})")
    for report in DEMO_REPORTS:
        print(f"Preparing report: {report['title']} [{report['category']}]")
    if not apply:
        return

    from geocivic.services.report_lifecycle import get_report_lifecycle
    from geocivic.services.user_service import get_user_service

    users = get_user_service()
    actors = {}
    for name, role, email in DEMO_USERS:
        user = users.create_user(name, role, email)
        actors[name] = Actor(id=user["id"], role=role)
        print(f"Wrote user {user['id']}: {name} ({role.value})")

    lifecycle = get_report_lifecycle()
    citizen = actors["Asha Citizen"]
    filed = [lifecycle.create(citizen, ReportCreate(**report)) for report in DEMO_REPORTS]
    for report in filed:
        print(f"Wrote report {report.id}: {report.title}")

    lifecycle.assign(actors["Dispatch Desk"], filed[0].id, actors["Meena Field"].id,
                     comment="Seeded assignment")
    print(f"Assigned {filed[0].id} to Meena Field")

    print("\nUse these ids as the X-User-ID header:")
    for name, actor in actors.items():
        print(f"  {actor.role.value:8} {actor.id}  {name}")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Force use of mock DB even if FIREBASE configured")
    args = parser.parse_args()

    if args.force_mock:
        print("Forcing mock DB usage for this run.")
        # Settings are read once at import; the DB client is created lazily after this.
        settings.USE_MOCK_DB = True

    seed(apply=args.apply)

    if args.apply:
        print("Seeding completed.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
