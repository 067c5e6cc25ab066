"""
Report Lifecycle - the role-gated, geofenced report state machine.

Flow:
1. Citizen files a report                          -> OPEN
2. Admin assigns it to a staff member              -> IN_PROGRESS (staff notified)
3. Assigned staff resolves on site with a photo    -> RESOLVED (citizen +25, notified)
4. Reporting citizen verifies on site              -> CLOSED (citizen +50)

DESIGN NOTES:
- This service is the only writer of reports and status_updates
- Each transition holds a per-report lock for its whole read-validate-commit
  cycle and commits status + audit entry + ledger entry in one write batch
- A rejected transition raises a typed error and writes nothing
- Notifications go out after commit; a delivery failure is logged, never rolled back
- Reports without coordinates skip geofence checks entirely
"""

from geocivic.config.firebase import get_db
from geocivic.core.settings import settings
from geocivic.models.ledger import LedgerReason
from geocivic.models.report import Category, ReportCreate, ReportResponse, StatusUpdateResponse
from geocivic.models.user import Actor, Role
from geocivic.services.assignment_registry import AssignmentRegistry, get_assignment_registry
from geocivic.services.coin_ledger import CoinLedger, get_coin_ledger
from geocivic.services.errors import (
    DuplicateVote,
    GeofenceViolation,
    InvalidReport,
    InvalidStateForTransition,
    MissingEvidence,
    MissingLocation,
    NotificationDeliveryFailed,
    ReportCorrupted,
    ReportNotFound,
    WrongActor,
)
from geocivic.services.evidence import EvidenceStore, get_evidence_store
from geocivic.services.geocoding import lookup_address
from geocivic.services.notification_service import NotificationDispatcher, get_notification_service
from geocivic.services.status_workflow import ReportStatus, StatusWorkflowEngine, Transition
from geocivic.services.vote_service import VoteService, get_vote_service
from geocivic.utils.firestore_helpers import where_filter, utc_now, snapshot_to_dict
from geocivic.utils.geo import Coordinate, coordinate_or_none, distance_meters, validate_coordinate
from geocivic.utils.locks import KeyedLocks
from firebase_admin import firestore
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

CATEGORIES = {category.value for category in Category}

_ASSIGNED_STATES = {ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED, ReportStatus.CLOSED}
_PROVEN_STATES = {ReportStatus.RESOLVED, ReportStatus.CLOSED}


def to_report_response(data: Dict) -> ReportResponse:
    return ReportResponse(**data)


class ReportLifecycle:
    """
    Guarded state machine for civic issue reports.

    Collaborators are injected so tests (and alternative deployments) can
    swap them; by default the process-wide singletons are used.
    """

    REPORTS_COLLECTION = "reports"
    UPDATES_COLLECTION = "status_updates"

    def __init__(
        self,
        db=None,
        ledger: Optional[CoinLedger] = None,
        registry: Optional[AssignmentRegistry] = None,
        notifier: Optional[NotificationDispatcher] = None,
        evidence_store: Optional[EvidenceStore] = None,
        votes: Optional[VoteService] = None,
        geocoder: Optional[Callable[[Coordinate], Optional[str]]] = None,
        locks: Optional[KeyedLocks] = None,
    ):
        self.db = db if db is not None else get_db()
        self.ledger = ledger or get_coin_ledger()
        self.registry = registry or get_assignment_registry()
        self.notifier = notifier or get_notification_service()
        self._evidence_store = evidence_store
        self.votes = votes or get_vote_service()
        self.geocoder = geocoder or lookup_address
        self._locks = locks if locks is not None else KeyedLocks()
        self.workflow = StatusWorkflowEngine()

    @property
    def evidence_store(self) -> EvidenceStore:
        if self._evidence_store is None:
            self._evidence_store = get_evidence_store()
        return self._evidence_store

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def create(
        self,
        actor: Actor,
        report_data: ReportCreate,
        image: Optional[bytes] = None,
        image_filename: Optional[str] = None,
        image_content_type: Optional[str] = None
    ) -> ReportResponse:
        """
        File a new report (citizens only).

        A blank location is back-filled by reverse geocoding when coordinates
        are present. The optional citizen photo is stored before anything is
        written, so a storage failure leaves no report behind.

        Raises:
            WrongActor: Actor is not a citizen
            InvalidReport: Title, category or location missing/invalid
            InvalidCoordinate: Coordinates malformed
            StorageUnavailable: Photo upload failed
        """
        self._require_role(actor, Role.CITIZEN, Transition.CREATE)

        title = (report_data.title or "").strip()
        category = (report_data.category or "").strip()
        location = (report_data.location or "").strip()
        coords = coordinate_or_none(report_data.latitude, report_data.longitude)

        if not title:
            raise InvalidReport("Title is required")
        if category not in CATEGORIES:
            raise InvalidReport(f"Unknown category {category!r}. Choose one of: {sorted(CATEGORIES)}")
        if not location and coords is not None:
            location = (self.geocoder(coords) or "").strip()
            if location:
                logger.info(f"Location back-filled from coordinates: {location}")
        if not location:
            raise InvalidReport("Location is required")

        evidence_ref = None
        if image:
            evidence_ref = self.evidence_store.store(image, image_filename, image_content_type)

        now = utc_now()
        doc_ref = self.db.collection(self.REPORTS_COLLECTION).document()
        report = {
            "id": doc_ref.id,
            "title": title,
            "category": category,
            "location": location,
            "description": (report_data.description or "").strip(),
            "latitude": coords.latitude if coords else None,
            "longitude": coords.longitude if coords else None,
            "evidence_ref": evidence_ref,
            "status": ReportStatus.OPEN.value,
            "created_by": actor.id,
            "assigned_staff": None,
            "assigned_staff_name": None,
            "expected_resolution_time": None,
            "resolution_proof": None,
            "verified_at": None,
            "upvote_count": 0,
            "version": 1,
            "created_at": now,
            "updated_at": now,
        }

        with self.ledger.hold(actor.id):
            batch = self.db.batch()
            batch.set(doc_ref, report)
            self._stage_status_update(batch, doc_ref.id, ReportStatus.OPEN, actor.id, "Report created")
            if settings.REPORT_FILED_REWARD > 0:
                self.ledger.stage_credit(
                    batch, actor.id, settings.REPORT_FILED_REWARD, LedgerReason.REPORT_FILED, report_id=doc_ref.id
                )
            batch.commit()

        logger.info(f"✅ Report {doc_ref.id} filed by {actor.id} ({category})")
        self._notify(actor.id, f"New report '{title}' submitted successfully!", doc_ref.id)
        return to_report_response(report)

    def assign(
        self,
        actor: Actor,
        report_id: str,
        staff_id: str,
        expected_resolution_time: Optional[datetime] = None,
        comment: Optional[str] = None
    ) -> ReportResponse:
        """
        Dispatch an OPEN report to a staff member (admins only).

        Raises:
            WrongActor: Actor is not an admin
            ReportNotFound: Unknown report id
            InvalidStateForTransition: Report is not OPEN
            StaffNotFound: staff_id is not a STAFF user
        """
        self._require_role(actor, Role.ADMIN, Transition.ASSIGN)

        with self._locks.hold(report_id):
            doc_ref, report = self._load(report_id)
            target = self._require_status(report, Transition.ASSIGN)

            batch = self.db.batch()
            fields = self.registry.assign(batch, doc_ref, staff_id, expected_resolution_time)
            changes = {**fields, **self._advance(report, target)}
            batch.update(doc_ref, changes)
            self._stage_status_update(
                batch, report_id, target, actor.id, comment or f"Assigned to {fields['assigned_staff_name'] or staff_id}"
            )
            batch.commit()
            report.update(changes)

        logger.info(f"✅ Report {report_id} assigned to {staff_id} by {actor.id}")
        self._notify(staff_id, f"You have been assigned report '{report['title']}' at {report['location']}", report_id)
        self._notify(
            report["created_by"],
            f"Your report '{report['title']}' is now In Progress with {report['assigned_staff_name'] or 'civic staff'}",
            report_id,
        )
        return to_report_response(report)

    def resolve(
        self,
        actor: Actor,
        report_id: str,
        proof: Optional[bytes],
        staff_location: Optional[Coordinate],
        proof_filename: Optional[str] = None,
        proof_content_type: Optional[str] = None,
        comment: Optional[str] = None
    ) -> ReportResponse:
        """
        Mark an IN_PROGRESS report resolved (assigned staff only, on site).

        Guards, in order: role, status, assignee, proof photo, GPS, geofence.
        The photo is uploaded only after every guard has passed.

        Raises:
            WrongActor: Actor is not the assigned staff member
            InvalidStateForTransition: Report is not IN_PROGRESS
            MissingEvidence: No proof photo supplied
            MissingLocation: No staff GPS supplied
            GeofenceViolation: Staff is farther than STAFF_GEOFENCE_METERS
            StorageUnavailable: Proof upload failed
        """
        self._require_role(actor, Role.STAFF, Transition.RESOLVE)

        with self._locks.hold(report_id):
            doc_ref, report = self._load(report_id)
            target = self._require_status(report, Transition.RESOLVE)
            if report["assigned_staff"] != actor.id:
                logger.warning(f"Resolve of {report_id} refused: {actor.id} is not the assigned staff")
                raise WrongActor("Only the assigned staff member can resolve this report")
            if not proof:
                raise MissingEvidence("A proof photo is required to resolve a report")

            staff_coord = self._require_location(staff_location)
            distance = self._check_geofence(report, staff_coord, settings.STAFF_GEOFENCE_METERS)

            evidence_ref = self.evidence_store.store(proof, proof_filename, proof_content_type)

            now = utc_now()
            changes = {
                "resolution_proof": {
                    "evidence_ref": evidence_ref,
                    "latitude": staff_coord.latitude,
                    "longitude": staff_coord.longitude,
                    "distance_meters": distance,
                    "resolved_at": now,
                },
                **self._advance(report, target, now),
            }

            citizen_id = report["created_by"]
            with self.ledger.hold(citizen_id):
                batch = self.db.batch()
                batch.update(doc_ref, changes)
                self._stage_status_update(batch, report_id, target, actor.id, comment or "Resolved on site with proof photo")
                if settings.ISSUE_RESOLVED_REWARD > 0:
                    self.ledger.stage_credit(
                        batch, citizen_id, settings.ISSUE_RESOLVED_REWARD, LedgerReason.ISSUE_RESOLVED, report_id=report_id
                    )
                batch.commit()
            report.update(changes)

        logger.info(f"✅ Report {report_id} resolved by {actor.id}")
        self._notify(
            citizen_id,
            f"Your report '{report['title']}' has been resolved. Visit the location to verify it "
            f"and earn {settings.RESOLUTION_VERIFIED_REWARD} civic coins.",
            report_id,
        )
        return to_report_response(report)

    def verify(
        self,
        actor: Actor,
        report_id: str,
        citizen_location: Optional[Coordinate],
        comment: Optional[str] = None
    ) -> ReportResponse:
        """
        Close a RESOLVED report (reporting citizen only, on site).

        Raises:
            WrongActor: Actor is not the citizen who filed the report
            InvalidStateForTransition: Report is not RESOLVED
            MissingLocation: No citizen GPS supplied
            GeofenceViolation: Citizen is farther than CITIZEN_GEOFENCE_METERS
        """
        self._require_role(actor, Role.CITIZEN, Transition.VERIFY)

        with self._locks.hold(report_id):
            doc_ref, report = self._load(report_id)
            target = self._require_status(report, Transition.VERIFY)
            if report["created_by"] != actor.id:
                logger.warning(f"Verify of {report_id} refused: {actor.id} did not file it")
                raise WrongActor("Only the citizen who filed this report can verify it")

            citizen_coord = self._require_location(citizen_location)
            self._check_geofence(report, citizen_coord, settings.CITIZEN_GEOFENCE_METERS)

            now = utc_now()
            changes = {"verified_at": now, **self._advance(report, target, now)}

            with self.ledger.hold(actor.id):
                batch = self.db.batch()
                batch.update(doc_ref, changes)
                self._stage_status_update(batch, report_id, target, actor.id, comment or "Verified on site by citizen")
                if settings.RESOLUTION_VERIFIED_REWARD > 0:
                    self.ledger.stage_credit(
                        batch, actor.id, settings.RESOLUTION_VERIFIED_REWARD, LedgerReason.RESOLUTION_VERIFIED,
                        report_id=report_id,
                    )
                batch.commit()
            report.update(changes)

        logger.info(f"✅ Report {report_id} verified and closed by {actor.id}")
        if report.get("assigned_staff"):
            self._notify(report["assigned_staff"], f"Your resolution of '{report['title']}' was verified by the citizen", report_id)
        return to_report_response(report)

    def upvote(self, actor: Actor, report_id: str) -> ReportResponse:
        """
        Add the actor's upvote to a report (once per user).

        Raises:
            ReportNotFound: Unknown report id
            DuplicateVote: Actor already voted for this report
        """
        with self._locks.hold(report_id):
            doc_ref, report = self._load(report_id)
            if self.votes.has_voted(report_id, actor.id):
                raise DuplicateVote(report_id, actor.id)

            changes = {"upvote_count": int(report.get("upvote_count") or 0) + 1}
            batch = self.db.batch()
            self.votes.stage_vote(batch, report_id, actor.id)
            batch.update(doc_ref, changes)
            batch.commit()
            report.update(changes)

        return to_report_response(report)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, report_id: str) -> ReportResponse:
        _, report = self._load(report_id)
        return to_report_response(report)

    def list_for_user(self, user_id: str) -> List[ReportResponse]:
        """Reports filed by a citizen, newest first."""
        query = where_filter(self.db.collection(self.REPORTS_COLLECTION), "created_by", "==", user_id)
        query = query.order_by("created_at", direction=firestore.Query.DESCENDING)
        return [to_report_response(snapshot_to_dict(doc)) for doc in query.stream()]

    def list_for_staff(self, staff_id: str) -> List[ReportResponse]:
        """Reports assigned to a staff member, oldest first."""
        return [to_report_response(report) for report in self.registry.tasks_for(staff_id)]

    def list_all(self, status: Optional[ReportStatus] = None) -> List[ReportResponse]:
        """Every report, newest first, optionally filtered by canonical status."""
        query = self.db.collection(self.REPORTS_COLLECTION)
        if status is not None:
            query = where_filter(query, "status", "==", ReportStatus(status).value)
        query = query.order_by("created_at", direction=firestore.Query.DESCENDING)
        return [to_report_response(snapshot_to_dict(doc)) for doc in query.stream()]

    def get_updates(self, report_id: str) -> List[StatusUpdateResponse]:
        """Audit trail for a report, oldest first."""
        self._load(report_id)
        query = where_filter(self.db.collection(self.UPDATES_COLLECTION), "report_id", "==", report_id)
        query = query.order_by("created_at", direction=firestore.Query.ASCENDING)
        return [StatusUpdateResponse(**snapshot_to_dict(doc)) for doc in query.stream()]

    # ------------------------------------------------------------------
    # Guards and helpers
    # ------------------------------------------------------------------

    def _require_role(self, actor: Actor, role: Role, transition: Transition) -> None:
        if actor.role != role:
            logger.warning(f"{transition.value} refused for {actor.id}: role {actor.role.value}, needs {role.value}")
            raise WrongActor(f"Only a {role.value.lower()} can {transition.value} a report")

    def _load(self, report_id: str) -> Tuple[object, Dict]:
        doc_ref = self.db.collection(self.REPORTS_COLLECTION).document(report_id)
        doc = doc_ref.get()
        if not doc.exists:
            raise ReportNotFound(report_id)
        report = snapshot_to_dict(doc)
        self._check_invariants(report)
        return doc_ref, report

    @staticmethod
    def _check_invariants(report: Dict) -> None:
        """Fail loudly on a stored report that the lifecycle could never have produced."""
        try:
            status = ReportStatus(report.get("status"))
        except ValueError:
            status = None

        problems = []
        if status is None:
            problems.append(f"unknown status {report.get('status')!r}")
        else:
            if status in _ASSIGNED_STATES and not report.get("assigned_staff"):
                problems.append(f"{status.value} without assigned_staff")
            if status in _PROVEN_STATES and not report.get("resolution_proof"):
                problems.append(f"{status.value} without resolution_proof")
            if (status == ReportStatus.CLOSED) != bool(report.get("verified_at")):
                problems.append(f"verified_at inconsistent with {status.value}")

        if problems:
            logger.critical(f"Report {report.get('id')} is corrupted: {'; '.join(problems)}")
            raise ReportCorrupted(f"Report {report.get('id')} violates model invariants: {'; '.join(problems)}")

    def _require_status(self, report: Dict, transition: Transition) -> ReportStatus:
        source, target = self.workflow.source_and_target(transition)
        current = report["status"]
        if current != source.value or not self.workflow.is_valid_transition(current, target.value):
            logger.warning(f"{transition.value} refused for report {report['id']}: status is {current}")
            raise InvalidStateForTransition(report["id"], current, transition.value)
        return target

    @staticmethod
    def _require_location(location: Optional[Coordinate]) -> Coordinate:
        if location is None:
            raise MissingLocation("Your GPS location is required for this action")
        return validate_coordinate(Coordinate(*location))

    @staticmethod
    def _check_geofence(report: Dict, actor_coord: Coordinate, threshold: float) -> Optional[float]:
        """
        Distance from the actor to the issue, or None if the report has no coordinates.

        Raises:
            GeofenceViolation: Distance exceeds threshold (boundary inclusive)
        """
        if report.get("latitude") is None or report.get("longitude") is None:
            return None

        distance = distance_meters(actor_coord, Coordinate(report["latitude"], report["longitude"]))
        if distance > threshold:
            logger.warning(f"Geofence refused for report {report['id']}: {distance:.1f}m > {threshold}m")
            raise GeofenceViolation(distance, threshold)
        return distance

    @staticmethod
    def _advance(report: Dict, target: ReportStatus, now: Optional[datetime] = None) -> Dict:
        return {
            "status": target.value,
            "updated_at": now or utc_now(),
            "version": int(report.get("version") or 1) + 1,
        }

    def _stage_status_update(self, batch, report_id: str, status: ReportStatus, changed_by: str, comment: Optional[str]) -> None:
        update_ref = self.db.collection(self.UPDATES_COLLECTION).document()
        batch.set(update_ref, self.workflow.create_status_update_entry(report_id, status, changed_by, comment))

    def _notify(self, recipient_id: str, message: str, report_id: str) -> None:
        try:
            self.notifier.send(recipient_id, message, report_id=report_id)
        except NotificationDeliveryFailed as e:
            logger.error(f"❌ Notification for report {report_id} not delivered: {e}", exc_info=True)


# Global service instance
_report_lifecycle = None


def get_report_lifecycle() -> ReportLifecycle:
    """Get or create ReportLifecycle singleton."""
    global _report_lifecycle
    if _report_lifecycle is None:
        _report_lifecycle = ReportLifecycle()
    return _report_lifecycle
