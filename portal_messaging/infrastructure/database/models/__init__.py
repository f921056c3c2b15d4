# portal_messaging/infrastructure/database/models/__init__.py
# registra todas as tabelas no metadata do BaseModel

from portal_messaging.infrastructure.database.models.role_model import RoleModel
from portal_messaging.infrastructure.database.models.user_model import UserModel
from portal_messaging.infrastructure.database.models.application_model import ApplicationModel
from portal_messaging.infrastructure.database.models.conversation_model import ConversationModel
from portal_messaging.infrastructure.database.models.conversation_participant_model import (
    ConversationParticipantModel,
)
from portal_messaging.infrastructure.database.models.group_model import GroupModel
from portal_messaging.infrastructure.database.models.group_member_model import GroupMemberModel
from portal_messaging.infrastructure.database.models.broadcast_model import BroadcastModel
from portal_messaging.infrastructure.database.models.broadcast_recipient_model import (
    BroadcastRecipientModel,
)
from portal_messaging.infrastructure.database.models.message_model import MessageModel
from portal_messaging.infrastructure.database.models.read_receipt_model import ReadReceiptModel
from portal_messaging.infrastructure.database.models.audit_log_model import AuditLogModel

__all__ = [
    "RoleModel",
    "UserModel",
    "ApplicationModel",
    "ConversationModel",
    "ConversationParticipantModel",
    "GroupModel",
    "GroupMemberModel",
    "BroadcastModel",
    "BroadcastRecipientModel",
    "MessageModel",
    "ReadReceiptModel",
    "AuditLogModel",
]
