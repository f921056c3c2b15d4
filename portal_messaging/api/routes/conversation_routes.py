# portal_messaging/api/routes/conversation_routes.py

from __future__ import annotations

from flask import Blueprint, jsonify

from portal_messaging.api.middlewares.auth_middleware import current_identity, require_auth
from portal_messaging.api.routes._deps import (
    build_audit,
    build_conversation_service,
    build_message_service,
    build_read_tracker,
    json_body,
    page_args,
)
from portal_messaging.api.schemas.conversation_schema import (
    AdvanceLastReadRequest,
    StartConversationRequest,
    conversation_detail_to_response,
    conversation_to_response,
)
from portal_messaging.api.schemas.message_schema import CreateMessageRequest, message_to_response
from portal_messaging.core.audit.audit_actions import AuditAction
from portal_messaging.core.audit.audit_entities import AuditEntity
from portal_messaging.entities.thread_ref import ThreadRef
from portal_messaging.infrastructure.database.session import db_session

bp_conv = Blueprint("conversations", __name__)


# -------------------------
# Rotas (consulta)
# -------------------------

@bp_conv.get("")
@require_auth
def list_conversations():
    limit, offset = page_args()
    identity = current_identity()

    with db_session() as session:
        service = build_conversation_service(session)
        views = service.list_conversations(
            user_id=identity.user_id,
            role=identity.role,
            limit=limit,
            offset=offset,
        )
        payload = [conversation_to_response(v) for v in views]

    return jsonify(payload), 200


@bp_conv.get("/<int:conversation_id>")
@require_auth
def get_conversation(conversation_id: int):
    identity = current_identity()

    with db_session() as session:
        service = build_conversation_service(session)
        view = service.get_conversation(
            conversation_id=conversation_id,
            user_id=identity.user_id,
            role=identity.role,
        )
        payload = conversation_detail_to_response(view)

    return jsonify(payload), 200


@bp_conv.get("/<int:conversation_id>/messages")
@require_auth
def list_messages(conversation_id: int):
    limit, offset = page_args(default_limit=100)
    identity = current_identity()

    with db_session() as session:
        service = build_conversation_service(session)
        views = service.list_conversation_messages(
            conversation_id=conversation_id,
            user_id=identity.user_id,
            role=identity.role,
            limit=limit,
            offset=offset,
        )
        payload = [message_to_response(v) for v in views]

    return jsonify(payload), 200


# -------------------------
# Rotas (mutação) + Auditoria
# -------------------------

@bp_conv.post("")
@require_auth
def start_conversation():
    identity = current_identity()
    payload = StartConversationRequest.model_validate(json_body())

    with db_session() as session:
        service = build_conversation_service(session)
        audit = build_audit(session)

        conv = service.start_direct_conversation(
            user_id=identity.user_id,
            role=identity.role,
            participant_id=payload.participant_id,
            subject=payload.subject,
        )

        audit.log(
            entity_name=AuditEntity.CONVERSATION,
            entity_id=int(conv.id),
            action_name=AuditAction.CREATED,
            user_id=identity.user_id,
            details=f"participant_id={payload.participant_id}",
        )

        view = service.get_conversation(
            conversation_id=conv.id, user_id=identity.user_id, role=identity.role
        )
        body = conversation_detail_to_response(view)

    return jsonify(body), 201


@bp_conv.post("/<int:conversation_id>/messages")
@require_auth
def post_message(conversation_id: int):
    identity = current_identity()
    payload = CreateMessageRequest.model_validate(json_body())

    with db_session() as session:
        messages = build_message_service(session)
        audit = build_audit(session)

        msg = messages.append_message(
            ThreadRef.conversation(conversation_id),
            sender_id=identity.user_id,
            role=identity.role,
            content=payload.content,
            attachments=payload.attachments,
        )

        audit.log(
            entity_name=AuditEntity.MESSAGE,
            entity_id=int(msg.id),
            action_name=AuditAction.POSTED,
            user_id=identity.user_id,
            details=f"conversation_id={conversation_id}; attachments={len(payload.attachments)}",
        )

        body = message_to_response(messages.get_message_view(msg.id))

    return jsonify(body), 201


@bp_conv.post("/<int:conversation_id>/read")
@require_auth
def mark_read(conversation_id: int):
    identity = current_identity()

    with db_session() as session:
        tracker = build_read_tracker(session)
        marked = tracker.mark_conversation_read(
            conversation_id=conversation_id,
            user_id=identity.user_id,
            role=identity.role,
        )

    return jsonify({"conversation_id": conversation_id, "marked": marked}), 200


@bp_conv.post("/<int:conversation_id>/seen")
@require_auth
def advance_last_read(conversation_id: int):
    identity = current_identity()
    payload = AdvanceLastReadRequest.model_validate(json_body())

    with db_session() as session:
        tracker = build_read_tracker(session)
        moved = tracker.advance_last_read(
            conversation_id=conversation_id,
            user_id=identity.user_id,
            role=identity.role,
            at=payload.at,
        )

    return jsonify({"conversation_id": conversation_id, "advanced": moved}), 200


@bp_conv.delete("/<int:conversation_id>")
@require_auth
def delete_conversation(conversation_id: int):
    identity = current_identity()

    with db_session() as session:
        service = build_conversation_service(session)
        audit = build_audit(session)

        service.delete_conversation(
            conversation_id=conversation_id, user_id=identity.user_id, role=identity.role
        )

        audit.log(
            entity_name=AuditEntity.CONVERSATION,
            entity_id=int(conversation_id),
            action_name=AuditAction.DELETED,
            user_id=identity.user_id,
            details="conversation deleted",
        )

    return ("", 204)
