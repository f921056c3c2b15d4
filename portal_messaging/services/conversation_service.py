# portal_messaging/services/conversation_service.py
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError

from portal_messaging.config.settings import settings
from portal_messaging.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from portal_messaging.core.permissions import is_messaging_admin, is_staff, is_student
from portal_messaging.entities.thread_ref import ThreadRef
from portal_messaging.infrastructure.database.models.conversation_model import ConversationModel

from portal_messaging.repositories.application_repository import ApplicationRepository
from portal_messaging.repositories.conversation_participant_repository import ConversationParticipantRepository
from portal_messaging.repositories.conversation_repository import ConversationRepository, direct_key_for
from portal_messaging.repositories.message_repository import MessageRepository
from portal_messaging.repositories.read_receipt_repository import ReadReceiptRepository
from portal_messaging.repositories.user_repository import UserRepository
from portal_messaging.services.message_service import MessageService

logger = logging.getLogger(__name__)

APPLICATION_SUBJECT = "Discussion sur mon dossier"


class ConversationService:
    def __init__(
        self,
        *,
        conv_repo: ConversationRepository,
        part_repo: ConversationParticipantRepository,
        msg_repo: MessageRepository,
        receipt_repo: ReadReceiptRepository,
        user_repo: UserRepository,
        app_repo: ApplicationRepository,
        messages: MessageService,
    ) -> None:
        self._conv_repo = conv_repo
        self._part_repo = part_repo
        self._msg_repo = msg_repo
        self._receipt_repo = receipt_repo
        self._user_repo = user_repo
        self._app_repo = app_repo
        self._messages = messages

    def _preview(self, content: str | None) -> str | None:
        if content is None:
            return None
        size = settings.message_preview_length
        return content if len(content) <= size else content[:size]

    def _get_or_404(self, conversation_id: int) -> ConversationModel:
        conv = self._conv_repo.get_by_id(conversation_id)
        if conv is None:
            raise NotFoundError("Conversation introuvable.")
        return conv

    def _ensure_can_read(self, conv: ConversationModel, *, user_id: int, role) -> None:
        if is_messaging_admin(role):
            return
        if self._part_repo.get(conversation_id=conv.id, user_id=user_id) is None:
            logger.warning("Leitura negada da conversa %s para user_id=%s", conv.id, user_id)
            raise ForbiddenError("Vous ne participez pas à cette conversation.")

    def _summaries(self, convs: list[ConversationModel]) -> list[dict[str, Any]]:
        ids = [c.id for c in convs]
        rosters = self._part_repo.list_rows_by_conversation_ids(ids)
        latest = self._msg_repo.latest_by_conversation_ids(ids)

        out = []
        for conv in convs:
            last = latest.get(conv.id)
            out.append(
                {
                    "conversation": conv,
                    "participants": rosters.get(conv.id, []),
                    "last_message": last,
                    "preview": self._preview(last.content) if last is not None else None,
                    "last_message_at": last.created_at if last is not None else None,
                }
            )
        return out

    def _detail(self, conv: ConversationModel) -> dict[str, Any]:
        view = self._summaries([conv])[0]
        view["messages"] = self._messages.list_thread_messages(ThreadRef.conversation(conv.id))
        return view

    # -------------------------
    # Find-or-create
    # -------------------------

    def get_or_create_direct_conversation(
        self, user_a: int, user_b: int, subject: str | None = None
    ) -> ConversationModel:
        """
        Conversa ad-hoc com participantes exatamente {user_a, user_b}.
        Corrida entre dois criadores: UNIQUE(direct_key) + savepoint; quem
        perde relê a linha do vencedor.
        """
        if int(user_a) == int(user_b):
            raise ValidationError("Impossible de démarrer une conversation avec soi-même.")

        existing = self._conv_repo.find_direct_between(user_a, user_b)
        if existing is not None:
            return existing

        key = direct_key_for(user_a, user_b)
        try:
            with self._conv_repo.savepoint():
                conv = self._conv_repo.add(ConversationModel(direct_key=key, subject=subject))
                self._part_repo.add_many(conversation_id=conv.id, user_ids=[user_a, user_b])
        except IntegrityError:
            conv = self._conv_repo.get_by_direct_key(key)
            if conv is None:
                raise ConflictError("Conversation en cours de création, réessayez.")
            logger.info("Conversa direta %s já criada em paralelo (%s)", conv.id, key)
            return conv

        logger.info("Conversa direta %s criada (%s)", conv.id, key)
        return conv

    def get_or_create_application_conversation(self, *, application_id: int, user_id: int, role) -> dict[str, Any]:
        owner_id = self._app_repo.get_owner_id(application_id)
        if owner_id is None:
            raise NotFoundError("Dossier introuvable.")
        is_owner = owner_id == int(user_id)
        if not (is_owner or is_messaging_admin(role)):
            logger.warning("Acesso negado ao dossier %s para user_id=%s", application_id, user_id)
            raise ForbiddenError("Accès refusé à ce dossier.")

        created = False
        conv = self._conv_repo.get_by_application_id(application_id)
        if conv is None:
            try:
                with self._conv_repo.savepoint():
                    conv = self._conv_repo.add(
                        ConversationModel(application_id=application_id, subject=APPLICATION_SUBJECT)
                    )
                    self._part_repo.add_many(conversation_id=conv.id, user_ids=[user_id])
                logger.info("Conversa %s criada para o dossier %s", conv.id, application_id)
                created = True
            except IntegrityError:
                conv = self._conv_repo.get_by_application_id(application_id)
                if conv is None:
                    raise ConflictError("Conversation en cours de création, réessayez.")
        elif is_owner:
            # o dono do dossier sempre participa da conversa dele
            self._messages.ensure_participant(ThreadRef.conversation(conv.id), user_id=user_id, role=role)

        view = self._detail(conv)
        view["created"] = created
        return view

    def start_direct_conversation(
        self, *, user_id: int, role, participant_id: int, subject: str | None = None
    ) -> ConversationModel:
        row = self._user_repo.get_row_with_role(participant_id)
        if row is None:
            raise NotFoundError("Utilisateur introuvable.")
        other, other_role = row

        if is_student(role) and not is_staff(other_role):
            logger.warning("Estudante %s tentou conversar com outro estudante %s", user_id, participant_id)
            raise ForbiddenError("Vous ne pouvez écrire qu'à l'équipe du portail.")

        subject = (subject or "").strip() or f"Conversation avec {other.full_name or other.email}"
        return self.get_or_create_direct_conversation(user_id, participant_id, subject)

    # -------------------------
    # Consulta
    # -------------------------

    def list_conversations(self, *, user_id: int, role, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
        if is_messaging_admin(role):
            convs = self._conv_repo.list_all(limit=limit, offset=offset)
        else:
            convs = self._conv_repo.list_for_participant(user_id, limit=limit, offset=offset)
        return self._summaries(convs)

    def get_conversation(self, *, conversation_id: int, user_id: int, role) -> dict[str, Any]:
        conv = self._get_or_404(conversation_id)
        self._ensure_can_read(conv, user_id=user_id, role=role)
        return self._detail(conv)

    def list_conversation_messages(
        self, *, conversation_id: int, user_id: int, role, limit: int | None = None, offset: int = 0
    ) -> list[dict[str, Any]]:
        conv = self._get_or_404(conversation_id)
        self._ensure_can_read(conv, user_id=user_id, role=role)
        return self._messages.list_thread_messages(ThreadRef.conversation(conv.id), limit=limit, offset=offset)

    # -------------------------
    # Exclusão
    # -------------------------

    def delete_conversation(self, *, conversation_id: int, user_id: int, role) -> None:
        conv = self._get_or_404(conversation_id)
        if not is_messaging_admin(role):
            logger.warning("Exclusão negada da conversa %s por user_id=%s", conv.id, user_id)
            raise ForbiddenError("Seuls les administrateurs peuvent supprimer une conversation.")

        # filhos primeiro: recibos -> mensagens -> participantes -> conversa
        message_ids = self._msg_repo.list_ids_by_thread(ThreadRef.conversation(conv.id))
        self._receipt_repo.delete_by_message_ids(message_ids)
        self._msg_repo.delete_by_ids(message_ids)
        self._part_repo.delete_by_conversation(conv.id)
        self._conv_repo.delete(conv.id)

        logger.info("Conversa %s excluída por user_id=%s (%s mensagens)", conv.id, user_id, len(message_ids))
