# portal_messaging/core/audit/audit_actions.py

class AuditAction:
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    POSTED = "posted"
    MEMBERS_ADDED = "members_added"
    FANNED_OUT = "fanned_out"
