"""
Services layer - business logic for the report lifecycle.
Keep services focused on specific domains (reports, ledger, notifications, etc.)

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- ReportLifecycle is the only writer of reports and status updates
- Roles and identities are checked at the service level, not in routes
- Cross-collection writes go through a single write batch
"""
