# portal_messaging/api/routes/message_routes.py

from flask import Blueprint, jsonify

from portal_messaging.api.middlewares.auth_middleware import current_identity, require_auth
from portal_messaging.api.routes._deps import build_audit, build_message_service, json_body
from portal_messaging.api.schemas.message_schema import EditMessageRequest, message_to_response
from portal_messaging.core.audit.audit_actions import AuditAction
from portal_messaging.core.audit.audit_entities import AuditEntity
from portal_messaging.infrastructure.database.session import db_session

bp_msg = Blueprint("messages", __name__)


@bp_msg.patch("/<int:message_id>")
@require_auth
def edit_message(message_id: int):
    identity = current_identity()
    payload = EditMessageRequest.model_validate(json_body())

    with db_session() as session:
        service = build_message_service(session)
        audit = build_audit(session)

        view = service.edit_message(
            message_id=message_id,
            user_id=identity.user_id,
            role=identity.role,
            content=payload.content,
        )

        audit.log(
            entity_name=AuditEntity.MESSAGE,
            entity_id=int(message_id),
            action_name=AuditAction.UPDATED,
            user_id=identity.user_id,
            details="content edited",
        )

        body = message_to_response(view)

    return jsonify(body), 200


@bp_msg.delete("/<int:message_id>")
@require_auth
def delete_message(message_id: int):
    identity = current_identity()

    with db_session() as session:
        service = build_message_service(session)
        audit = build_audit(session)

        thread = service.delete_message(
            message_id=message_id,
            user_id=identity.user_id,
            role=identity.role,
        )

        audit.log(
            entity_name=AuditEntity.MESSAGE,
            entity_id=int(message_id),
            action_name=AuditAction.DELETED,
            user_id=identity.user_id,
            details=f"{thread.column}={thread.id}",
        )

    return ("", 204)
