# tests/test_routes.py
import logging

import pytest

from portal_messaging.core.audit.audit_actions import AuditAction
from portal_messaging.core.audit.audit_entities import AuditEntity
from portal_messaging.core.permissions import RoleName
from portal_messaging.repositories.audit_log_repository import AuditLogRepository


@pytest.fixture
def people(db, make_user, make_application):
    student = make_user(RoleName.STUDENT, full_name="Awa Diallo")
    other_student = make_user(RoleName.STUDENT)
    secretary = make_user(RoleName.SECRETARY, full_name="Paul Leroy")
    manager = make_user(RoleName.STUDENT_MANAGER)
    application = make_application(student)
    db.commit()
    return {
        "student": student,
        "other_student": other_student,
        "secretary": secretary,
        "manager": manager,
        "application_id": application.id,
    }


def test_health(client):
    from portal_messaging.main import APP_PREFIX

    assert client.get(f"{APP_PREFIX}/health").get_json() == {"status": "ok"}
    assert client.get(f"{APP_PREFIX}/health/db").status_code == 200


def test_requests_without_token_are_rejected(client, api_prefix):
    resp = client.get(f"{api_prefix}/conversations")

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "not_authenticated"


def test_invalid_token_is_rejected(client, api_prefix):
    resp = client.get(f"{api_prefix}/conversations", headers={"Authorization": "Bearer nope"})

    assert resp.status_code == 401


def test_student_starts_conversation_with_staff(client, api_prefix, auth_header, people):
    student, secretary = people["student"], people["secretary"]

    resp = client.post(
        f"{api_prefix}/conversations",
        json={"participant_id": secretary.id},
        headers=auth_header(student, RoleName.STUDENT),
    )

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["subject"] == "Conversation avec Paul Leroy"
    assert {p["user"]["id"] for p in body["participants"]} == {student.id, secretary.id}

    again = client.post(
        f"{api_prefix}/conversations",
        json={"participant_id": secretary.id},
        headers=auth_header(student, RoleName.STUDENT),
    )
    assert again.get_json()["id"] == body["id"]


def test_student_cannot_start_conversation_with_student(client, api_prefix, auth_header, people):
    resp = client.post(
        f"{api_prefix}/conversations",
        json={"participant_id": people["other_student"].id},
        headers=auth_header(people["student"], RoleName.STUDENT),
    )

    assert resp.status_code == 403
    assert resp.get_json()["code"] == "forbidden"


def test_application_conversation_flow(client, api_prefix, auth_header, people):
    student, manager = people["student"], people["manager"]
    base = f"{api_prefix}/applications/{people['application_id']}/conversation"

    opened = client.get(base, headers=auth_header(student, RoleName.STUDENT))
    assert opened.status_code == 200
    assert opened.get_json()["subject"] == "Discussion sur mon dossier"

    reply = client.post(
        f"{base}/messages",
        json={"content": "Votre dossier est complet."},
        headers=auth_header(manager, RoleName.STUDENT_MANAGER),
    )
    assert reply.status_code == 201
    assert reply.get_json()["sender"]["id"] == manager.id

    unread = client.get(f"{api_prefix}/notifications/unread", headers=auth_header(student, RoleName.STUDENT))
    assert unread.get_json()["count"] == 1

    marked = client.post(f"{base}/read", headers=auth_header(student, RoleName.STUDENT))
    assert marked.get_json()["marked"] == 1

    detail = client.get(base, headers=auth_header(student, RoleName.STUDENT)).get_json()
    assert [u["user"]["id"] for u in detail["messages"][0]["seen_by"]] == [student.id]


def test_owner_posts_to_own_application_thread(client, api_prefix, auth_header, people):
    student = people["student"]
    base = f"{api_prefix}/applications/{people['application_id']}/conversation"

    first = client.post(f"{base}/messages", json={"content": "Bonjour"}, headers=auth_header(student, RoleName.STUDENT))
    assert first.status_code == 201
    assert first.get_json()["sender"]["id"] == student.id

    second = client.post(f"{base}/messages", json={"content": "Encore moi"}, headers=auth_header(student, RoleName.STUDENT))
    assert second.status_code == 201

    detail = client.get(base, headers=auth_header(student, RoleName.STUDENT)).get_json()
    assert [m["content"] for m in detail["messages"]] == ["Bonjour", "Encore moi"]

    unread = client.get(f"{api_prefix}/notifications/unread", headers=auth_header(student, RoleName.STUDENT))
    assert unread.get_json()["count"] == 0


def test_empty_message_is_a_validation_error(client, api_prefix, auth_header, people):
    base = f"{api_prefix}/applications/{people['application_id']}/conversation"

    resp = client.post(
        f"{base}/messages", json={"content": "  ", "attachments": []}, headers=auth_header(people["student"], RoleName.STUDENT)
    )

    assert resp.status_code == 400
    assert resp.get_json()["code"] == "validation_error"


def test_malformed_body_is_a_validation_error(client, api_prefix, auth_header, people):
    resp = client.post(
        f"{api_prefix}/groups",
        json={"member_ids": "not-a-list"},
        headers=auth_header(people["secretary"], RoleName.SECRETARY),
    )

    assert resp.status_code == 400


def test_group_routes(client, api_prefix, auth_header, people):
    secretary, student = people["secretary"], people["student"]

    forbidden = client.post(
        f"{api_prefix}/groups",
        json={"name": "Promo", "member_ids": [secretary.id]},
        headers=auth_header(student, RoleName.STUDENT),
    )
    assert forbidden.status_code == 403

    created = client.post(
        f"{api_prefix}/groups",
        json={"name": "Promo", "member_ids": [student.id]},
        headers=auth_header(secretary, RoleName.SECRETARY),
    )
    assert created.status_code == 201
    group_id = created.get_json()["id"]

    noop = client.post(
        f"{api_prefix}/groups/{group_id}/members",
        json={"member_ids": [student.id]},
        headers=auth_header(secretary, RoleName.SECRETARY),
    )
    assert noop.status_code == 409
    assert noop.get_json()["code"] == "noop"

    posted = client.post(
        f"{api_prefix}/groups/{group_id}/messages",
        json={"content": "Salut"},
        headers=auth_header(student, RoleName.STUDENT),
    )
    assert posted.status_code == 201

    history = client.get(f"{api_prefix}/groups/{group_id}/messages", headers=auth_header(secretary, RoleName.SECRETARY))
    assert [m["content"] for m in history.get_json()] == ["Salut"]


def test_broadcast_fan_out_route(db, client, api_prefix, auth_header, people):
    secretary = people["secretary"]
    recipients = [people["student"].id, people["other_student"].id]

    created = client.post(
        f"{api_prefix}/broadcasts",
        json={"name": "Rentrée", "recipient_ids": recipients},
        headers=auth_header(secretary, RoleName.SECRETARY),
    )
    assert created.status_code == 201
    broadcast = created.get_json()
    assert broadcast["recipient_count"] == 2

    posted = client.post(
        f"{api_prefix}/broadcasts/{broadcast['id']}/messages",
        json={"content": "Réunion lundi"},
        headers=auth_header(secretary, RoleName.SECRETARY),
    )
    assert posted.status_code == 201
    assert posted.get_json()["delivered"] == 2

    inbox = client.get(f"{api_prefix}/conversations", headers=auth_header(people["student"], RoleName.STUDENT)).get_json()
    assert [c["last_message_preview"] for c in inbox] == ["Réunion lundi"]

    received = client.get(
        f"{api_prefix}/broadcasts?include_received=true", headers=auth_header(people["student"], RoleName.STUDENT)
    ).get_json()
    assert received[0]["is_recipient"] is True
    assert received[0]["recipients"] == []
    assert received[0]["recipient_count"] is None

    trail = AuditLogRepository(db).list_for_entity(entity_name=AuditEntity.BROADCAST, entity_id=broadcast["id"])
    assert [row.action_name for row in trail] == [AuditAction.CREATED, AuditAction.FANNED_OUT]


def test_edit_and_delete_message_routes(client, api_prefix, auth_header, people):
    student, secretary, manager = people["student"], people["secretary"], people["manager"]
    conv = client.post(
        f"{api_prefix}/conversations",
        json={"participant_id": secretary.id},
        headers=auth_header(student, RoleName.STUDENT),
    ).get_json()
    msg = client.post(
        f"{api_prefix}/conversations/{conv['id']}/messages",
        json={"content": "Bonjour"},
        headers=auth_header(student, RoleName.STUDENT),
    ).get_json()

    forbidden = client.patch(
        f"{api_prefix}/messages/{msg['id']}",
        json={"content": "Piraté"},
        headers=auth_header(people["other_student"], RoleName.STUDENT),
    )
    assert forbidden.status_code == 403

    edited = client.patch(
        f"{api_prefix}/messages/{msg['id']}",
        json={"content": "Bonjour !"},
        headers=auth_header(student, RoleName.STUDENT),
    )
    assert edited.status_code == 200
    assert edited.get_json()["edited_at"] is not None

    deleted = client.delete(f"{api_prefix}/messages/{msg['id']}", headers=auth_header(manager, RoleName.STUDENT_MANAGER))
    assert deleted.status_code == 204

    missing = client.delete(f"{api_prefix}/messages/{msg['id']}", headers=auth_header(manager, RoleName.STUDENT_MANAGER))
    assert missing.status_code == 404


def test_delete_conversation_requires_admin(client, api_prefix, auth_header, people):
    student, secretary, manager = people["student"], people["secretary"], people["manager"]
    conv = client.post(
        f"{api_prefix}/conversations",
        json={"participant_id": secretary.id},
        headers=auth_header(student, RoleName.STUDENT),
    ).get_json()

    assert client.delete(f"{api_prefix}/conversations/{conv['id']}", headers=auth_header(secretary, RoleName.SECRETARY)).status_code == 403
    assert client.delete(f"{api_prefix}/conversations/{conv['id']}", headers=auth_header(manager, RoleName.STUDENT_MANAGER)).status_code == 204
    assert client.get(f"{api_prefix}/conversations/{conv['id']}", headers=auth_header(manager, RoleName.STUDENT_MANAGER)).status_code == 404


def test_client_errors_are_logged_with_actor_and_target(client, api_prefix, auth_header, people, caplog):
    manager = people["manager"]
    caplog.set_level(logging.WARNING, logger="portal_messaging.api.middlewares.error_handler")

    resp = client.get(f"{api_prefix}/conversations/424242", headers=auth_header(manager, RoleName.STUDENT_MANAGER))

    assert resp.status_code == 404
    records = [r for r in caplog.records if r.name == "portal_messaging.api.middlewares.error_handler"]
    assert len(records) == 1
    assert records[0].levelno == logging.WARNING
    line = records[0].getMessage()
    assert "not_found" in line
    assert f"user_id={manager.id}" in line
    assert f"{api_prefix}/conversations/424242" in line
