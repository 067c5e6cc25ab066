"""
Presentation-boundary status labels.

Older clients send and display several spellings for the same workflow
position ("Pending", "Progress", "Solved", ...). They are mapped to the
canonical ReportStatus here, at the HTTP edge, and nowhere else.
"""

from typing import Optional

from geocivic.services.status_workflow import ReportStatus

STATUS_SYNONYMS = {
    "open": ReportStatus.OPEN,
    "pending": ReportStatus.OPEN,
    "new": ReportStatus.OPEN,
    "in_progress": ReportStatus.IN_PROGRESS,
    "in progress": ReportStatus.IN_PROGRESS,
    "in-progress": ReportStatus.IN_PROGRESS,
    "progress": ReportStatus.IN_PROGRESS,
    "assigned": ReportStatus.IN_PROGRESS,
    "resolved": ReportStatus.RESOLVED,
    "solved": ReportStatus.RESOLVED,
    "pending verification": ReportStatus.RESOLVED,
    "closed": ReportStatus.CLOSED,
    "verified": ReportStatus.CLOSED,
}

def normalize_status(label: Optional[str]) -> Optional[ReportStatus]:
    """
    Map a client-supplied status label to the canonical status.

    Returns None for a blank label; raises ValueError for an unknown one.
    """
    if label is None or not label.strip():
        return None
    key = " ".join(label.strip().lower().split())
    if key in STATUS_SYNONYMS:
        return STATUS_SYNONYMS[key]
    raise ValueError(f"Unknown status {label!r}")
