# portal_messaging/core/audit/audit_entities.py

class AuditEntity:
    CONVERSATION = "conversation"
    MESSAGE = "message"
    GROUP = "group"
    BROADCAST = "broadcast"
