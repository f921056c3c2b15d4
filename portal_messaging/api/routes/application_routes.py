# portal_messaging/api/routes/application_routes.py
# conversa do dossier de candidature (criada sob demanda)

from flask import Blueprint, jsonify

from portal_messaging.api.middlewares.auth_middleware import current_identity, require_auth
from portal_messaging.api.routes._deps import (
    build_audit,
    build_conversation_service,
    build_message_service,
    build_read_tracker,
    json_body,
)
from portal_messaging.api.schemas.conversation_schema import conversation_detail_to_response
from portal_messaging.api.schemas.message_schema import CreateMessageRequest, message_to_response
from portal_messaging.core.audit.audit_actions import AuditAction
from portal_messaging.core.audit.audit_entities import AuditEntity
from portal_messaging.entities.thread_ref import ThreadRef
from portal_messaging.infrastructure.database.session import db_session
from portal_messaging.services.message_service import clean_content

bp_app_conv = Blueprint("application_conversations", __name__)


@bp_app_conv.get("/<int:application_id>/conversation")
@require_auth
def get_application_conversation(application_id: int):
    identity = current_identity()

    with db_session() as session:
        service = build_conversation_service(session)
        view = service.get_or_create_application_conversation(
            application_id=application_id,
            user_id=identity.user_id,
            role=identity.role,
        )

        if view["created"]:
            build_audit(session).log(
                entity_name=AuditEntity.CONVERSATION,
                entity_id=int(view["conversation"].id),
                action_name=AuditAction.CREATED,
                user_id=identity.user_id,
                details=f"application_id={application_id}",
            )

        payload = conversation_detail_to_response(view)

    return jsonify(payload), 200


@bp_app_conv.post("/<int:application_id>/conversation/messages")
@require_auth
def post_application_message(application_id: int):
    identity = current_identity()
    payload = CreateMessageRequest.model_validate(json_body())

    # valida antes de criar a conversa do dossier
    clean_content(payload.content, payload.attachments)

    with db_session() as session:
        messages = build_message_service(session)
        service = build_conversation_service(session, messages)
        audit = build_audit(session)

        view = service.get_or_create_application_conversation(
            application_id=application_id,
            user_id=identity.user_id,
            role=identity.role,
        )
        conversation_id = int(view["conversation"].id)

        if view["created"]:
            audit.log(
                entity_name=AuditEntity.CONVERSATION,
                entity_id=conversation_id,
                action_name=AuditAction.CREATED,
                user_id=identity.user_id,
                details=f"application_id={application_id}",
            )

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
            details=f"application_id={application_id}; conversation_id={conversation_id}",
        )

        body = message_to_response(messages.get_message_view(msg.id))

    return jsonify(body), 201


@bp_app_conv.post("/<int:application_id>/conversation/read")
@require_auth
def mark_application_read(application_id: int):
    identity = current_identity()

    with db_session() as session:
        tracker = build_read_tracker(session)
        marked = tracker.mark_application_conversation_read(
            application_id=application_id,
            user_id=identity.user_id,
            role=identity.role,
        )

    return jsonify({"application_id": application_id, "marked": marked}), 200
