# portal_messaging/api/routes/broadcast_routes.py

from flask import Blueprint, jsonify, request

from portal_messaging.api.middlewares.auth_middleware import current_identity, require_auth
from portal_messaging.api.routes._deps import build_audit, build_broadcast_service, build_message_service, json_body
from portal_messaging.api.schemas.broadcast_schema import (
    AddRecipientsRequest,
    CreateBroadcastRequest,
    broadcast_to_response,
)
from portal_messaging.api.schemas.message_schema import CreateMessageRequest, message_to_response
from portal_messaging.core.audit.audit_actions import AuditAction
from portal_messaging.core.audit.audit_entities import AuditEntity
from portal_messaging.infrastructure.database.session import db_session

bp_broadcasts = Blueprint("broadcasts", __name__)


# -------------------------
# Rotas (consulta)
# -------------------------

@bp_broadcasts.get("")
@require_auth
def list_broadcasts():
    identity = current_identity()
    include_received = request.args.get("include_received", "false").lower() in ("1", "true", "yes")

    with db_session() as session:
        service = build_broadcast_service(session)
        views = service.list_broadcasts(
            user_id=identity.user_id,
            role=identity.role,
            include_received=include_received,
        )
        payload = [broadcast_to_response(v) for v in views]

    return jsonify(payload), 200


@bp_broadcasts.get("/<int:broadcast_id>")
@require_auth
def get_broadcast(broadcast_id: int):
    identity = current_identity()

    with db_session() as session:
        service = build_broadcast_service(session)
        view = service.get_broadcast(broadcast_id=broadcast_id, user_id=identity.user_id, role=identity.role)
        payload = broadcast_to_response(view)

    return jsonify(payload), 200


@bp_broadcasts.get("/<int:broadcast_id>/messages")
@require_auth
def list_broadcast_messages(broadcast_id: int):
    identity = current_identity()

    with db_session() as session:
        service = build_broadcast_service(session)
        views = service.list_broadcast_messages(
            broadcast_id=broadcast_id, user_id=identity.user_id, role=identity.role
        )
        payload = [message_to_response(v) for v in views]

    return jsonify(payload), 200


# -------------------------
# Rotas (mutação) + Auditoria
# -------------------------

@bp_broadcasts.post("")
@require_auth
def create_broadcast():
    identity = current_identity()
    payload = CreateBroadcastRequest.model_validate(json_body())

    with db_session() as session:
        service = build_broadcast_service(session)
        audit = build_audit(session)

        view = service.create_broadcast(
            name=payload.name,
            creator_id=identity.user_id,
            role=identity.role,
            recipient_ids=payload.recipient_ids,
        )

        audit.log(
            entity_name=AuditEntity.BROADCAST,
            entity_id=int(view["broadcast"].id),
            action_name=AuditAction.CREATED,
            user_id=identity.user_id,
            details=f"recipients={view['recipient_count']}",
        )

        body = broadcast_to_response(view)

    return jsonify(body), 201


@bp_broadcasts.post("/<int:broadcast_id>/recipients")
@require_auth
def add_recipients(broadcast_id: int):
    identity = current_identity()
    payload = AddRecipientsRequest.model_validate(json_body())

    with db_session() as session:
        service = build_broadcast_service(session)
        audit = build_audit(session)

        view = service.add_recipients(
            broadcast_id=broadcast_id,
            recipient_ids=payload.recipient_ids,
            user_id=identity.user_id,
            role=identity.role,
        )

        audit.log(
            entity_name=AuditEntity.BROADCAST,
            entity_id=int(broadcast_id),
            action_name=AuditAction.MEMBERS_ADDED,
            user_id=identity.user_id,
            details=f"requested={sorted(set(payload.recipient_ids))}",
        )

        body = broadcast_to_response(view)

    return jsonify(body), 200


@bp_broadcasts.post("/<int:broadcast_id>/messages")
@require_auth
def post_broadcast_message(broadcast_id: int):
    identity = current_identity()
    payload = CreateMessageRequest.model_validate(json_body())

    with db_session() as session:
        service = build_broadcast_service(session)
        audit = build_audit(session)

        result = service.post_broadcast_message(
            broadcast_id=broadcast_id,
            sender_id=identity.user_id,
            role=identity.role,
            content=payload.content,
            attachments=payload.attachments,
        )
        msg = result["message"]

        audit.log(
            entity_name=AuditEntity.BROADCAST,
            entity_id=int(broadcast_id),
            action_name=AuditAction.FANNED_OUT,
            user_id=identity.user_id,
            details=f"message_id={msg.id}; delivered={result['delivered']}",
        )

        body = {
            "message": message_to_response(build_message_service(session).get_message_view(msg.id)),
            "delivered": result["delivered"],
            "conversation_ids": result["conversation_ids"],
        }

    return jsonify(body), 201


@bp_broadcasts.delete("/<int:broadcast_id>")
@require_auth
def delete_broadcast(broadcast_id: int):
    identity = current_identity()

    with db_session() as session:
        service = build_broadcast_service(session)
        audit = build_audit(session)

        service.delete_broadcast(broadcast_id=broadcast_id, user_id=identity.user_id, role=identity.role)

        audit.log(
            entity_name=AuditEntity.BROADCAST,
            entity_id=int(broadcast_id),
            action_name=AuditAction.DELETED,
            user_id=identity.user_id,
            details="broadcast deleted; direct copies kept",
        )

    return ("", 204)
