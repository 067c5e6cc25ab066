"""
Shared fixtures: every test runs against a fresh in-memory MockFirestore
with all service singletons reset, so nothing leaks between tests.
"""

import math
import os

os.environ.setdefault("USE_MOCK_DB", "true")
os.environ.setdefault("MOCK_DB_PATH", "")
os.environ.setdefault("GEOCODING_ENABLED", "false")

from types import SimpleNamespace

import pytest

from geocivic.config import firebase
from geocivic.config.mock_firestore import MockFirestore
from geocivic.core.settings import settings
from geocivic.models.report import ReportCreate
from geocivic.models.user import Actor, Role
from geocivic.services import (
    assignment_registry,
    coin_ledger,
    identity,
    notification_service,
    report_lifecycle,
    user_service,
    vote_service,
)
from geocivic.services.evidence import resolver as evidence_resolver
from geocivic.services.geocoding import resolver as geocoding_resolver
from geocivic.utils.geo import Coordinate

ISSUE = Coordinate(12.9716, 77.5946)

_SINGLETONS = [
    (user_service, "_user_service"),
    (coin_ledger, "_coin_ledger"),
    (notification_service, "_notification_service"),
    (assignment_registry, "_assignment_registry"),
    (vote_service, "_vote_service"),
    (report_lifecycle, "_report_lifecycle"),
    (identity, "_identity_provider"),
    (evidence_resolver, "_store_instance"),
    (geocoding_resolver, "_provider_instance"),
]


def north_of(coord: Coordinate, meters: float) -> Coordinate:
    """Point `meters` due north of coord (exact along a meridian on the sphere)."""
    return Coordinate(coord.latitude + math.degrees(meters / settings.EARTH_RADIUS_METERS), coord.longitude)


@pytest.fixture
def db(monkeypatch, tmp_path):
    mock_db = MockFirestore()
    monkeypatch.setattr(firebase, "db", mock_db)
    for module, name in _SINGLETONS:
        monkeypatch.setattr(module, name, None)

    monkeypatch.setattr(settings, "EVIDENCE_PROVIDER", "local")
    monkeypatch.setattr(settings, "EVIDENCE_UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "NOTIFICATION_RETRY_DELAY_SECONDS", 0)
    monkeypatch.setattr(settings, "GEOCODING_ENABLED", False)
    monkeypatch.setattr(settings, "REPORT_FILED_REWARD", 0)
    monkeypatch.setattr(settings, "ISSUE_RESOLVED_REWARD", 25)
    monkeypatch.setattr(settings, "RESOLUTION_VERIFIED_REWARD", 50)
    monkeypatch.setattr(settings, "STAFF_GEOFENCE_METERS", 200.0)
    monkeypatch.setattr(settings, "CITIZEN_GEOFENCE_METERS", 100.0)
    return mock_db


@pytest.fixture
def people(db):
    """One actor per role, plus a second citizen and a second staff member."""
    users = user_service.get_user_service()

    def register(name, role):
        user = users.create_user(name, role)
        return Actor(id=user["id"], role=role)

    return SimpleNamespace(
        citizen=register("Asha", Role.CITIZEN),
        neighbour=register("Ravi", Role.CITIZEN),
        staff=register("Meena", Role.STAFF),
        other_staff=register("Karan", Role.STAFF),
        admin=register("Dispatch Desk", Role.ADMIN),
    )


@pytest.fixture
def lifecycle(db):
    return report_lifecycle.get_report_lifecycle()


@pytest.fixture
def ledger(db):
    return coin_ledger.get_coin_ledger()


@pytest.fixture
def file_report(lifecycle, people):
    """File a report at ISSUE (or without coordinates) as the default citizen."""

    def _file(title="Deep pothole near bus stop", with_coords=True, actor=None):
        report_data = ReportCreate(
            title=title,
            category="Roads",
            location="MG Road, Bengaluru",
            latitude=ISSUE.latitude if with_coords else None,
            longitude=ISSUE.longitude if with_coords else None,
        )
        return lifecycle.create(actor or people.citizen, report_data)

    return _file


@pytest.fixture
def assigned_report(lifecycle, people, file_report):
    report = file_report()
    return lifecycle.assign(people.admin, report.id, people.staff.id)


@pytest.fixture
def resolved_report(lifecycle, people, assigned_report):
    return lifecycle.resolve(people.staff, assigned_report.id, proof=b"\xff\xd8proof", staff_location=ISSUE)
