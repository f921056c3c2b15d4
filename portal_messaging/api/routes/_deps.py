# portal_messaging/api/routes/_deps.py
# montagem dos services por request (todos na mesma sessão do db_session)

from flask import request

from portal_messaging.repositories.application_repository import ApplicationRepository
from portal_messaging.repositories.audit_log_repository import AuditLogRepository
from portal_messaging.repositories.broadcast_recipient_repository import BroadcastRecipientRepository
from portal_messaging.repositories.broadcast_repository import BroadcastRepository
from portal_messaging.repositories.conversation_participant_repository import ConversationParticipantRepository
from portal_messaging.repositories.conversation_repository import ConversationRepository
from portal_messaging.repositories.group_member_repository import GroupMemberRepository
from portal_messaging.repositories.group_repository import GroupRepository
from portal_messaging.repositories.message_repository import MessageRepository
from portal_messaging.repositories.read_receipt_repository import ReadReceiptRepository
from portal_messaging.repositories.user_repository import UserRepository
from portal_messaging.services.audit_service import AuditService
from portal_messaging.services.broadcast_service import BroadcastService
from portal_messaging.services.conversation_service import ConversationService
from portal_messaging.services.group_service import GroupService
from portal_messaging.services.message_service import MessageService
from portal_messaging.services.read_tracker_service import ReadTrackerService


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def page_args(default_limit: int = 50) -> tuple[int, int]:
    limit = max(1, min(request.args.get("limit", default_limit, type=int), 200))
    offset = max(0, request.args.get("offset", 0, type=int))
    return limit, offset


def build_audit(session) -> AuditService:
    return AuditService(AuditLogRepository(session))


def build_message_service(session) -> MessageService:
    return MessageService(
        conv_repo=ConversationRepository(session),
        part_repo=ConversationParticipantRepository(session),
        msg_repo=MessageRepository(session),
        receipt_repo=ReadReceiptRepository(session),
        group_repo=GroupRepository(session),
        member_repo=GroupMemberRepository(session),
        broadcast_repo=BroadcastRepository(session),
        app_repo=ApplicationRepository(session),
    )


def build_conversation_service(session, messages: MessageService | None = None) -> ConversationService:
    return ConversationService(
        conv_repo=ConversationRepository(session),
        part_repo=ConversationParticipantRepository(session),
        msg_repo=MessageRepository(session),
        receipt_repo=ReadReceiptRepository(session),
        user_repo=UserRepository(session),
        app_repo=ApplicationRepository(session),
        messages=messages or build_message_service(session),
    )


def build_group_service(session) -> GroupService:
    return GroupService(
        group_repo=GroupRepository(session),
        member_repo=GroupMemberRepository(session),
        user_repo=UserRepository(session),
        msg_repo=MessageRepository(session),
        receipt_repo=ReadReceiptRepository(session),
        messages=build_message_service(session),
    )


def build_broadcast_service(session) -> BroadcastService:
    messages = build_message_service(session)
    return BroadcastService(
        broadcast_repo=BroadcastRepository(session),
        recipient_repo=BroadcastRecipientRepository(session),
        user_repo=UserRepository(session),
        msg_repo=MessageRepository(session),
        receipt_repo=ReadReceiptRepository(session),
        messages=messages,
        conversations=build_conversation_service(session, messages),
    )


def build_read_tracker(session) -> ReadTrackerService:
    return ReadTrackerService(
        conv_repo=ConversationRepository(session),
        part_repo=ConversationParticipantRepository(session),
        msg_repo=MessageRepository(session),
        receipt_repo=ReadReceiptRepository(session),
    )
