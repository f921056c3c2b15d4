# tests/test_broadcast_service.py
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from portal_messaging.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NoOpError,
    NotFoundError,
    TransactionError,
    ValidationError,
)
from portal_messaging.core.permissions import RoleName
from portal_messaging.entities.thread_ref import ThreadRef
from portal_messaging.infrastructure.database.models.conversation_model import ConversationModel
from portal_messaging.infrastructure.database.models.message_model import MessageModel
from portal_messaging.repositories.broadcast_repository import BroadcastRepository
from portal_messaging.repositories.conversation_participant_repository import ConversationParticipantRepository
from portal_messaging.repositories.message_repository import MessageRepository
from portal_messaging.services.conversation_service import ConversationService


def _count(db, model) -> int:
    return db.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.fixture
def setup(broadcasts, make_user):
    sender = make_user(RoleName.SECRETARY)
    recipients = [make_user(RoleName.STUDENT) for _ in range(3)]
    view = broadcasts.create_broadcast(
        name="Rentrée", creator_id=sender.id, role=RoleName.SECRETARY, recipient_ids=[r.id for r in recipients]
    )
    return sender, recipients, view["broadcast"]


def test_students_cannot_create_broadcasts(broadcasts, make_user):
    student = make_user(RoleName.STUDENT)
    other = make_user(RoleName.STUDENT)

    with pytest.raises(ForbiddenError):
        broadcasts.create_broadcast(name="x", creator_id=student.id, role=RoleName.STUDENT, recipient_ids=[other.id])


def test_create_broadcast_validates_input(broadcasts, make_user):
    secretary = make_user(RoleName.SECRETARY)

    with pytest.raises(ValidationError):
        broadcasts.create_broadcast(name="", creator_id=secretary.id, role=RoleName.SECRETARY, recipient_ids=[1])
    with pytest.raises(ValidationError):
        broadcasts.create_broadcast(name="Info", creator_id=secretary.id, role=RoleName.SECRETARY, recipient_ids=[])


def test_fan_out_delivers_one_copy_per_recipient(db, broadcasts, setup):
    sender, recipients, broadcast = setup

    result = broadcasts.post_broadcast_message(
        broadcast_id=broadcast.id, sender_id=sender.id, role=RoleName.SECRETARY, content=" Réunion lundi "
    )

    assert result["delivered"] == 3
    assert result["message"].broadcast_id == broadcast.id
    assert result["message"].content == "Réunion lundi"

    parts = ConversationParticipantRepository(db)
    for recipient, conv_id in zip(recipients, result["conversation_ids"]):
        assert set(parts.list_user_ids(conv_id)) == {sender.id, recipient.id}
        copies = MessageRepository(db).list_rows_by_thread(ThreadRef.conversation(conv_id))
        assert [(m.content, m.sender_id) for m, _s, _r in copies] == [("Réunion lundi", sender.id)]

    # 1 cópia de auditoria + 3 entregas
    assert _count(db, MessageModel) == 4


def test_fan_out_reuses_existing_direct_conversation(db, broadcasts, conversations, setup):
    sender, recipients, broadcast = setup
    existing = conversations.get_or_create_direct_conversation(sender.id, recipients[0].id)

    result = broadcasts.post_broadcast_message(
        broadcast_id=broadcast.id, sender_id=sender.id, role=RoleName.SECRETARY, content="Info"
    )

    assert existing.id in result["conversation_ids"]
    assert _count(db, ConversationModel) == 3


def test_sender_in_recipient_list_is_skipped(db, broadcasts, make_user):
    sender = make_user(RoleName.SECRETARY)
    student = make_user(RoleName.STUDENT)
    broadcast = broadcasts.create_broadcast(
        name="Info", creator_id=sender.id, role=RoleName.SECRETARY, recipient_ids=[sender.id, student.id]
    )["broadcast"]

    result = broadcasts.post_broadcast_message(
        broadcast_id=broadcast.id, sender_id=sender.id, role=RoleName.SECRETARY, content="Info"
    )

    assert result["delivered"] == 1


def test_fan_out_failure_rolls_back_everything(db, broadcasts, setup, monkeypatch):
    sender, _recipients, broadcast = setup
    original_add = MessageRepository.add
    calls = {"n": 0}

    def flaky_add(self, model):
        calls["n"] += 1
        # 1 = cópia de auditoria, 2 = primeiro destinatário, 3 = falha
        if calls["n"] == 3:
            raise SQLAlchemyError("storage unavailable")
        return original_add(self, model)

    monkeypatch.setattr(MessageRepository, "add", flaky_add)

    with pytest.raises(TransactionError):
        broadcasts.post_broadcast_message(
            broadcast_id=broadcast.id, sender_id=sender.id, role=RoleName.SECRETARY, content="Réunion lundi"
        )

    assert _count(db, MessageModel) == 0
    assert _count(db, ConversationModel) == 0
    # a diffusion em si continua lá
    assert BroadcastRepository(db).get_by_id(broadcast.id) is not None


def test_conflict_during_fan_out_is_a_transaction_error(db, broadcasts, setup, monkeypatch):
    sender, _recipients, broadcast = setup
    original = ConversationService.get_or_create_direct_conversation
    calls = {"n": 0}

    def racing(self, user_a, user_b, subject=None):
        calls["n"] += 1
        if calls["n"] == 2:
            raise ConflictError("Conversation en cours de création, réessayez.")
        return original(self, user_a, user_b, subject)

    monkeypatch.setattr(ConversationService, "get_or_create_direct_conversation", racing)

    with pytest.raises(TransactionError):
        broadcasts.post_broadcast_message(
            broadcast_id=broadcast.id, sender_id=sender.id, role=RoleName.SECRETARY, content="Réunion lundi"
        )

    assert _count(db, MessageModel) == 0
    assert _count(db, ConversationModel) == 0


def test_only_creator_or_admin_can_post(broadcasts, make_user, setup):
    _sender, recipients, broadcast = setup
    officer = make_user(RoleName.QUALITY_OFFICER)
    manager = make_user(RoleName.STUDENT_MANAGER)

    with pytest.raises(ForbiddenError):
        broadcasts.post_broadcast_message(
            broadcast_id=broadcast.id, sender_id=recipients[0].id, role=RoleName.STUDENT, content="?"
        )
    with pytest.raises(ForbiddenError):
        broadcasts.post_broadcast_message(
            broadcast_id=broadcast.id, sender_id=officer.id, role=RoleName.QUALITY_OFFICER, content="?"
        )
    with pytest.raises(NotFoundError):
        broadcasts.post_broadcast_message(broadcast_id=999, sender_id=manager.id, role=RoleName.STUDENT_MANAGER, content="?")

    result = broadcasts.post_broadcast_message(
        broadcast_id=broadcast.id, sender_id=manager.id, role=RoleName.STUDENT_MANAGER, content="Info"
    )
    assert result["delivered"] == 3


def test_add_recipients_noop(broadcasts, make_user, setup):
    sender, recipients, broadcast = setup
    newcomer = make_user(RoleName.STUDENT)

    with pytest.raises(NoOpError):
        broadcasts.add_recipients(
            broadcast_id=broadcast.id, recipient_ids=[recipients[0].id], user_id=sender.id, role=RoleName.SECRETARY
        )

    view = broadcasts.add_recipients(
        broadcast_id=broadcast.id,
        recipient_ids=[recipients[0].id, newcomer.id],
        user_id=sender.id,
        role=RoleName.SECRETARY,
    )
    assert view["recipient_count"] == 4


def test_recipient_privacy(broadcasts, make_user, setup):
    sender, _recipients, broadcast = setup
    officer = make_user(RoleName.QUALITY_OFFICER)
    broadcasts.add_recipients(
        broadcast_id=broadcast.id, recipient_ids=[officer.id], user_id=sender.id, role=RoleName.SECRETARY
    )

    assert broadcasts.list_broadcasts(user_id=officer.id, role=RoleName.QUALITY_OFFICER) == []

    views = broadcasts.list_broadcasts(user_id=officer.id, role=RoleName.QUALITY_OFFICER, include_received=True)
    assert len(views) == 1
    assert views[0]["is_recipient"] is True
    assert views[0]["can_manage"] is False
    assert views[0]["recipients"] == []
    assert views[0]["recipient_count"] is None

    with pytest.raises(ForbiddenError):
        broadcasts.get_broadcast(broadcast_id=broadcast.id, user_id=officer.id, role=RoleName.QUALITY_OFFICER)
    with pytest.raises(ForbiddenError):
        broadcasts.list_broadcast_messages(broadcast_id=broadcast.id, user_id=officer.id, role=RoleName.QUALITY_OFFICER)


def test_creator_and_admin_see_recipients(broadcasts, make_user, setup):
    sender, recipients, broadcast = setup
    admin = make_user(RoleName.SUPERADMIN)

    mine = broadcasts.list_broadcasts(user_id=sender.id, role=RoleName.SECRETARY)
    assert mine[0]["recipient_count"] == 3
    assert {u.id for u, _role in mine[0]["recipients"]} == {r.id for r in recipients}

    everything = broadcasts.list_broadcasts(user_id=admin.id, role=RoleName.SUPERADMIN)
    assert [v["broadcast"].id for v in everything] == [broadcast.id]
    assert everything[0]["can_manage"] is True


def test_delete_broadcast_keeps_direct_copies(db, broadcasts, setup):
    sender, _recipients, broadcast = setup
    result = broadcasts.post_broadcast_message(
        broadcast_id=broadcast.id, sender_id=sender.id, role=RoleName.SECRETARY, content="Info"
    )

    broadcasts.delete_broadcast(broadcast_id=broadcast.id, user_id=sender.id, role=RoleName.SECRETARY)

    assert BroadcastRepository(db).get_by_id(broadcast.id) is None
    assert _count(db, MessageModel) == result["delivered"]


def test_broadcast_history_is_chronological(broadcasts, setup):
    sender, _recipients, broadcast = setup
    for text in ("un", "deux"):
        broadcasts.post_broadcast_message(broadcast_id=broadcast.id, sender_id=sender.id, role=RoleName.SECRETARY, content=text)

    views = broadcasts.list_broadcast_messages(broadcast_id=broadcast.id, user_id=sender.id, role=RoleName.SECRETARY)

    assert [v["msg"].content for v in views] == ["un", "deux"]
