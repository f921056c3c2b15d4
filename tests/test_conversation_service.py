# tests/test_conversation_service.py
import pytest
from sqlalchemy import func, select

from portal_messaging.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from portal_messaging.core.permissions import RoleName
from portal_messaging.entities.thread_ref import ThreadRef
from portal_messaging.infrastructure.database.models.conversation_model import ConversationModel
from portal_messaging.infrastructure.database.models.message_model import MessageModel
from portal_messaging.infrastructure.database.models.read_receipt_model import ReadReceiptModel
from portal_messaging.repositories.conversation_repository import ConversationRepository


def _count(db, model) -> int:
    return db.execute(select(func.count()).select_from(model)).scalar_one()


# -------------------------
# Conversa do dossier
# -------------------------

def test_application_conversation_is_created_once(db, conversations, make_user, make_application):
    student = make_user(RoleName.STUDENT)
    app = make_application(student)

    first = conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=student.id, role=RoleName.STUDENT
    )
    second = conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=student.id, role=RoleName.STUDENT
    )

    assert first["created"] is True
    assert second["created"] is False
    assert first["conversation"].id == second["conversation"].id
    assert first["conversation"].subject == "Discussion sur mon dossier"
    assert [u.id for _p, u, _r in first["participants"]] == [student.id]
    assert _count(db, ConversationModel) == 1


def test_application_conversation_requires_owner_or_admin(conversations, make_user, make_application):
    student = make_user(RoleName.STUDENT)
    other_student = make_user(RoleName.STUDENT)
    secretary = make_user(RoleName.SECRETARY)
    app = make_application(student)

    with pytest.raises(ForbiddenError):
        conversations.get_or_create_application_conversation(
            application_id=app.id, user_id=other_student.id, role=RoleName.STUDENT
        )
    with pytest.raises(ForbiddenError):
        conversations.get_or_create_application_conversation(
            application_id=app.id, user_id=secretary.id, role=RoleName.SECRETARY
        )
    with pytest.raises(NotFoundError):
        conversations.get_or_create_application_conversation(
            application_id=9999, user_id=student.id, role=RoleName.STUDENT
        )


def test_owner_joins_conversation_opened_by_admin(conversations, make_user, make_application):
    student = make_user(RoleName.STUDENT)
    manager = make_user(RoleName.STUDENT_MANAGER)
    app = make_application(student)

    opened = conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=manager.id, role=RoleName.STUDENT_MANAGER
    )
    assert [u.id for _p, u, _r in opened["participants"]] == [manager.id]

    view = conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=student.id, role=RoleName.STUDENT
    )
    assert {u.id for _p, u, _r in view["participants"]} == {manager.id, student.id}


def test_admin_messages_are_unread_when_owner_first_opens_thread(
    conversations, messages, tracker, make_user, make_application
):
    student = make_user(RoleName.STUDENT)
    manager = make_user(RoleName.STUDENT_MANAGER)
    app = make_application(student)

    view = conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=manager.id, role=RoleName.STUDENT_MANAGER
    )
    messages.append_message(
        ThreadRef.conversation(view["conversation"].id),
        sender_id=manager.id,
        role=RoleName.STUDENT_MANAGER,
        content="Merci d'envoyer votre passeport",
    )

    # ainda não participa
    assert tracker.get_unread_count(user_id=student.id).count == 0

    conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=student.id, role=RoleName.STUDENT
    )
    assert tracker.get_unread_count(user_id=student.id).count == 1


def test_owner_posts_right_after_opening_application_thread(conversations, messages, make_user, make_application):
    student = make_user(RoleName.STUDENT)
    app = make_application(student)

    view = conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=student.id, role=RoleName.STUDENT
    )
    msg = messages.append_message(
        ThreadRef.conversation(view["conversation"].id), sender_id=student.id, role=RoleName.STUDENT, content="Bonjour"
    )

    again = conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=student.id, role=RoleName.STUDENT
    )
    assert [m["msg"].id for m in again["messages"]] == [msg.id]


def test_concurrent_application_thread_creation_falls_back_to_existing_row(
    db, conversations, make_user, make_application, monkeypatch
):
    student = make_user(RoleName.STUDENT)
    manager = make_user(RoleName.STUDENT_MANAGER)
    app = make_application(student)
    winner = conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=student.id, role=RoleName.STUDENT
    )

    # o perdedor não vê a linha na primeira leitura e o INSERT bate no UNIQUE(application_id)
    real_lookup = ConversationRepository.get_by_application_id
    calls = []

    def _stale_once(self, application_id):
        calls.append(application_id)
        if len(calls) == 1:
            return None
        return real_lookup(self, application_id)

    monkeypatch.setattr(ConversationRepository, "get_by_application_id", _stale_once)

    loser = conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=manager.id, role=RoleName.STUDENT_MANAGER
    )

    assert loser["created"] is False
    assert loser["conversation"].id == winner["conversation"].id
    assert len(calls) == 2
    assert _count(db, ConversationModel) == 1


# -------------------------
# Conversa direta (find-or-create)
# -------------------------

def test_direct_conversation_is_deduplicated_for_both_orders(db, conversations, make_user):
    a = make_user(RoleName.SECRETARY)
    b = make_user(RoleName.STUDENT)

    first = conversations.get_or_create_direct_conversation(a.id, b.id)
    second = conversations.get_or_create_direct_conversation(b.id, a.id)

    assert first.id == second.id
    assert first.direct_key == f"{min(a.id, b.id)}:{max(a.id, b.id)}"
    assert _count(db, ConversationModel) == 1


def test_direct_conversation_with_self_is_rejected(conversations, make_user):
    a = make_user(RoleName.SECRETARY)
    with pytest.raises(ValidationError):
        conversations.get_or_create_direct_conversation(a.id, a.id)


def test_concurrent_creation_falls_back_to_existing_row(db, conversations, make_user, monkeypatch):
    a = make_user(RoleName.SECRETARY)
    b = make_user(RoleName.STUDENT)
    winner = conversations.get_or_create_direct_conversation(a.id, b.id)

    # simula o perdedor da corrida: a busca não vê a linha e o INSERT bate no UNIQUE
    monkeypatch.setattr(ConversationRepository, "find_direct_between", lambda self, x, y: None)

    loser = conversations.get_or_create_direct_conversation(b.id, a.id)

    assert loser.id == winner.id
    assert _count(db, ConversationModel) == 1


def test_application_thread_is_not_reused_as_direct_pair(db, conversations, messages, make_user, make_application):
    student = make_user(RoleName.STUDENT)
    manager = make_user(RoleName.STUDENT_MANAGER)
    app = make_application(student)

    view = conversations.get_or_create_application_conversation(
        application_id=app.id, user_id=student.id, role=RoleName.STUDENT
    )
    messages.append_message(
        ThreadRef.conversation(view["conversation"].id),
        sender_id=manager.id,
        role=RoleName.STUDENT_MANAGER,
        content="Bonjour",
    )

    direct = conversations.get_or_create_direct_conversation(manager.id, student.id)

    assert direct.id != view["conversation"].id
    assert direct.application_id is None


def test_start_direct_conversation_rules(conversations, make_user):
    student = make_user(RoleName.STUDENT)
    other_student = make_user(RoleName.STUDENT)
    officer = make_user(RoleName.QUALITY_OFFICER, full_name="Claire Martin")

    with pytest.raises(ForbiddenError):
        conversations.start_direct_conversation(
            user_id=student.id, role=RoleName.STUDENT, participant_id=other_student.id
        )
    with pytest.raises(NotFoundError):
        conversations.start_direct_conversation(
            user_id=student.id, role=RoleName.STUDENT, participant_id=424242
        )

    conv = conversations.start_direct_conversation(
        user_id=student.id, role=RoleName.STUDENT, participant_id=officer.id
    )
    assert conv.subject == "Conversation avec Claire Martin"


# -------------------------
# Consulta
# -------------------------

def test_list_conversations_visibility_and_preview(conversations, messages, make_user):
    student = make_user(RoleName.STUDENT)
    secretary = make_user(RoleName.SECRETARY)
    outsider = make_user(RoleName.FINANCE_MANAGER)
    admin = make_user(RoleName.SUPERADMIN)

    older = conversations.get_or_create_direct_conversation(student.id, secretary.id)
    newer = conversations.get_or_create_direct_conversation(outsider.id, secretary.id)

    messages.append_message(
        ThreadRef.conversation(older.id), sender_id=student.id, role=RoleName.STUDENT, content="a" * 150
    )
    messages.append_message(
        ThreadRef.conversation(newer.id), sender_id=outsider.id, role=RoleName.FINANCE_MANAGER, content="ok"
    )

    mine = conversations.list_conversations(user_id=student.id, role=RoleName.STUDENT)
    assert [v["conversation"].id for v in mine] == [older.id]
    assert mine[0]["preview"] == "a" * 100
    assert mine[0]["last_message"].content == "a" * 150

    everything = conversations.list_conversations(user_id=admin.id, role=RoleName.SUPERADMIN)
    # mais recente primeiro
    assert [v["conversation"].id for v in everything] == [newer.id, older.id]


def test_get_conversation_requires_participation(conversations, make_user):
    student = make_user(RoleName.STUDENT)
    secretary = make_user(RoleName.SECRETARY)
    outsider = make_user(RoleName.SECRETARY)
    manager = make_user(RoleName.STUDENT_MANAGER)
    conv = conversations.get_or_create_direct_conversation(student.id, secretary.id)

    with pytest.raises(ForbiddenError):
        conversations.get_conversation(conversation_id=conv.id, user_id=outsider.id, role=RoleName.SECRETARY)
    with pytest.raises(NotFoundError):
        conversations.get_conversation(conversation_id=777, user_id=student.id, role=RoleName.STUDENT)

    view = conversations.get_conversation(conversation_id=conv.id, user_id=manager.id, role=RoleName.STUDENT_MANAGER)
    assert view["conversation"].id == conv.id
    assert view["messages"] == []


def test_delete_conversation_is_admin_only_and_cascades(db, conversations, messages, tracker, make_user):
    student = make_user(RoleName.STUDENT)
    secretary = make_user(RoleName.SECRETARY)
    manager = make_user(RoleName.STUDENT_MANAGER)
    conv = conversations.get_or_create_direct_conversation(student.id, secretary.id)
    messages.append_message(
        ThreadRef.conversation(conv.id), sender_id=secretary.id, role=RoleName.SECRETARY, content="Bonjour"
    )
    tracker.mark_conversation_read(conversation_id=conv.id, user_id=student.id, role=RoleName.STUDENT)

    with pytest.raises(ForbiddenError):
        conversations.delete_conversation(conversation_id=conv.id, user_id=secretary.id, role=RoleName.SECRETARY)

    conversations.delete_conversation(conversation_id=conv.id, user_id=manager.id, role=RoleName.STUDENT_MANAGER)

    assert _count(db, ReadReceiptModel) == 0
    assert _count(db, MessageModel) == 0
    assert _count(db, ConversationModel) == 0
