# portal_messaging/services/read_tracker_service.py
"""
Leitura/não lida das conversas.

Existem DOIS mecanismos independentes e eles não são sincronizados:

* grosso: ``ConversationParticipant.last_read`` (marca d'água por
  participante). É o que alimenta os contadores de não lidas.
* fino: ``ReadReceipt`` por (mensagem, usuário). É o que alimenta o
  "vu par" de cada mensagem.

Marcar mensagens como lidas (recibos) NÃO move last_read, e avançar
last_read NÃO cria recibos. Os dois podem divergir.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from portal_messaging.core.exceptions import ForbiddenError, NotFoundError
from portal_messaging.core.permissions import RoleName, is_messaging_admin, is_student, normalize_role
from portal_messaging.entities.thread_ref import ThreadRef
from portal_messaging.infrastructure.database.base_model import utcnow

from portal_messaging.repositories.conversation_participant_repository import ConversationParticipantRepository
from portal_messaging.repositories.conversation_repository import ConversationRepository
from portal_messaging.repositories.message_repository import MessageRepository
from portal_messaging.repositories.read_receipt_repository import ReadReceiptRepository

logger = logging.getLogger(__name__)


class SenderFilter(str, Enum):
    ALL = "all"
    ONLY_STUDENTS = "only_students"
    EXCLUDE_STUDENTS = "exclude_students"


@dataclass(frozen=True)
class UnreadSummary:
    count: int
    latest_at: datetime | None


class ReadTrackerService:
    def __init__(
        self,
        *,
        conv_repo: ConversationRepository,
        part_repo: ConversationParticipantRepository,
        msg_repo: MessageRepository,
        receipt_repo: ReadReceiptRepository,
    ) -> None:
        self._conv_repo = conv_repo
        self._part_repo = part_repo
        self._msg_repo = msg_repo
        self._receipt_repo = receipt_repo

    def _get_readable_conversation(self, conversation_id: int, *, user_id: int, role):
        conv = self._conv_repo.get_by_id(conversation_id)
        if conv is None:
            raise NotFoundError("Conversation introuvable.")
        if is_messaging_admin(role):
            return conv
        if self._part_repo.get(conversation_id=conv.id, user_id=user_id) is None:
            logger.warning("Leitura negada da conversa %s para user_id=%s", conv.id, user_id)
            raise ForbiddenError("Vous ne participez pas à cette conversation.")
        return conv

    # -------------------------
    # Contadores (last_read)
    # -------------------------

    def get_unread_count(self, *, user_id: int, sender_filter: SenderFilter = SenderFilter.ALL) -> UnreadSummary:
        student = [RoleName.STUDENT.value]

        if sender_filter is SenderFilter.ONLY_STUDENTS:
            count, latest = self._part_repo.unread_stats(user_id=user_id, sender_roles_in=student)
        elif sender_filter is SenderFilter.EXCLUDE_STUDENTS:
            count, latest = self._part_repo.unread_stats(user_id=user_id, sender_roles_not_in=student)
        else:
            count, latest = self._part_repo.unread_stats(user_id=user_id)

        return UnreadSummary(count=count, latest_at=latest)

    def get_unread_summary(self, *, user_id: int, role) -> dict:
        """
        Badge de notificações (parte de mensagens):
        admin de mensageria conta mensagens de estudantes, estudante conta
        respostas da equipe, demais papéis não recebem contagem.
        """
        role = normalize_role(role)

        if is_messaging_admin(role):
            summary = self.get_unread_count(user_id=user_id, sender_filter=SenderFilter.ONLY_STUDENTS)
            bucket = "admin"
        elif is_student(role):
            summary = self.get_unread_count(user_id=user_id, sender_filter=SenderFilter.EXCLUDE_STUDENTS)
            bucket = "student"
        else:
            summary = UnreadSummary(count=0, latest_at=None)
            bucket = "staff"

        return {"role": role.value, "bucket": bucket, "count": summary.count, "latest_at": summary.latest_at}

    def advance_last_read(self, *, conversation_id: int, user_id: int, role, at: datetime | None = None) -> bool:
        """Avança last_read até `at` (padrão: agora). Nunca volta. Não cria recibos."""
        conv = self._get_readable_conversation(conversation_id, user_id=user_id, role=role)

        if at is None:
            at = utcnow()
        elif at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        else:
            at = at.astimezone(timezone.utc)

        moved = self._part_repo.advance_last_read(conversation_id=conv.id, user_id=user_id, at=at)
        if moved:
            logger.info("last_read da conversa %s avançado para user_id=%s", conv.id, user_id)
        return moved

    # -------------------------
    # Recibos ("vu par")
    # -------------------------

    def mark_conversation_read(self, *, conversation_id: int, user_id: int, role) -> int:
        """Recibo para toda mensagem da conversa que não é do usuário. Idempotente."""
        conv = self._get_readable_conversation(conversation_id, user_id=user_id, role=role)

        message_ids = self._msg_repo.list_ids_not_sent_by(ThreadRef.conversation(conv.id), user_id=user_id)
        marked = self._receipt_repo.upsert_many(message_ids=message_ids, user_id=user_id, read_at=utcnow())

        logger.info("Conversa %s: %s mensagens marcadas como lidas por user_id=%s", conv.id, marked, user_id)
        return marked

    def mark_application_conversation_read(self, *, application_id: int, user_id: int, role) -> int:
        conv = self._conv_repo.get_by_application_id(application_id)
        if conv is None:
            raise NotFoundError("Aucune conversation pour ce dossier.")
        return self.mark_conversation_read(conversation_id=conv.id, user_id=user_id, role=role)
