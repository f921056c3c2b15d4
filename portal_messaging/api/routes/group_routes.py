# portal_messaging/api/routes/group_routes.py

from flask import Blueprint, jsonify

from portal_messaging.api.middlewares.auth_middleware import current_identity, require_auth
from portal_messaging.api.routes._deps import build_audit, build_group_service, build_message_service, json_body
from portal_messaging.api.schemas.group_schema import AddMembersRequest, CreateGroupRequest, group_to_response
from portal_messaging.api.schemas.message_schema import CreateMessageRequest, message_to_response
from portal_messaging.core.audit.audit_actions import AuditAction
from portal_messaging.core.audit.audit_entities import AuditEntity
from portal_messaging.infrastructure.database.session import db_session

bp_groups = Blueprint("groups", __name__)


# -------------------------
# Rotas (consulta)
# -------------------------

@bp_groups.get("")
@require_auth
def list_groups():
    identity = current_identity()

    with db_session() as session:
        service = build_group_service(session)
        views = service.list_groups(user_id=identity.user_id, role=identity.role)
        payload = [group_to_response(v) for v in views]

    return jsonify(payload), 200


@bp_groups.get("/<int:group_id>")
@require_auth
def get_group(group_id: int):
    identity = current_identity()

    with db_session() as session:
        service = build_group_service(session)
        view = service.get_group(group_id=group_id, user_id=identity.user_id, role=identity.role)
        payload = group_to_response(view)

    return jsonify(payload), 200


@bp_groups.get("/<int:group_id>/messages")
@require_auth
def list_group_messages(group_id: int):
    identity = current_identity()

    with db_session() as session:
        service = build_group_service(session)
        views = service.list_group_messages(group_id=group_id, user_id=identity.user_id, role=identity.role)
        payload = [message_to_response(v) for v in views]

    return jsonify(payload), 200


# -------------------------
# Rotas (mutação) + Auditoria
# -------------------------

@bp_groups.post("")
@require_auth
def create_group():
    identity = current_identity()
    payload = CreateGroupRequest.model_validate(json_body())

    with db_session() as session:
        service = build_group_service(session)
        audit = build_audit(session)

        view = service.create_group(
            name=payload.name,
            creator_id=identity.user_id,
            role=identity.role,
            member_ids=payload.member_ids,
        )

        audit.log(
            entity_name=AuditEntity.GROUP,
            entity_id=int(view["group"].id),
            action_name=AuditAction.CREATED,
            user_id=identity.user_id,
            details=f"members={view['member_count']}",
        )

        body = group_to_response(view)

    return jsonify(body), 201


@bp_groups.post("/<int:group_id>/members")
@require_auth
def add_members(group_id: int):
    identity = current_identity()
    payload = AddMembersRequest.model_validate(json_body())

    with db_session() as session:
        service = build_group_service(session)
        audit = build_audit(session)

        view = service.add_members(
            group_id=group_id,
            member_ids=payload.member_ids,
            user_id=identity.user_id,
            role=identity.role,
        )

        audit.log(
            entity_name=AuditEntity.GROUP,
            entity_id=int(group_id),
            action_name=AuditAction.MEMBERS_ADDED,
            user_id=identity.user_id,
            details=f"requested={sorted(set(payload.member_ids))}",
        )

        body = group_to_response(view)

    return jsonify(body), 200


@bp_groups.post("/<int:group_id>/messages")
@require_auth
def post_group_message(group_id: int):
    identity = current_identity()
    payload = CreateMessageRequest.model_validate(json_body())

    with db_session() as session:
        service = build_group_service(session)
        audit = build_audit(session)

        msg = service.post_group_message(
            group_id=group_id,
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
            details=f"group_id={group_id}",
        )

        body = message_to_response(build_message_service(session).get_message_view(msg.id))

    return jsonify(body), 201


@bp_groups.delete("/<int:group_id>")
@require_auth
def delete_group(group_id: int):
    identity = current_identity()

    with db_session() as session:
        service = build_group_service(session)
        audit = build_audit(session)

        service.delete_group(group_id=group_id, user_id=identity.user_id, role=identity.role)

        audit.log(
            entity_name=AuditEntity.GROUP,
            entity_id=int(group_id),
            action_name=AuditAction.DELETED,
            user_id=identity.user_id,
            details="group deleted",
        )

    return ("", 204)
