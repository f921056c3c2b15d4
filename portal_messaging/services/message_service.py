# portal_messaging/services/message_service.py

import logging
from typing import Any

from portal_messaging.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from portal_messaging.core.permissions import (
    can_moderate_message,
    is_messaging_admin,
)
from portal_messaging.entities.thread_ref import ThreadKind, ThreadRef
from portal_messaging.infrastructure.database.base_model import utcnow
from portal_messaging.infrastructure.database.models.message_model import MessageModel

from portal_messaging.repositories.application_repository import ApplicationRepository
from portal_messaging.repositories.broadcast_repository import BroadcastRepository
from portal_messaging.repositories.conversation_participant_repository import ConversationParticipantRepository
from portal_messaging.repositories.conversation_repository import ConversationRepository
from portal_messaging.repositories.group_member_repository import GroupMemberRepository
from portal_messaging.repositories.group_repository import GroupRepository
from portal_messaging.repositories.message_repository import MessageRepository
from portal_messaging.repositories.read_receipt_repository import ReadReceiptRepository

logger = logging.getLogger(__name__)


def clean_content(content: str | None, attachments: list[str] | None) -> str:
    """Texto aparado; vazio só é aceito quando há anexo."""
    text = (content or "").strip()
    if not text and not attachments:
        raise ValidationError("Le message doit contenir du texte ou une pièce jointe.")
    return text


class MessageService:
    """
    Escrita/leitura de mensagens em qualquer thread (conversa, grupo, diffusion).

    Não decide quem vê a lista de threads: isso fica nos services de cada tipo.
    Aqui ficam o controle de entrada na thread (ensure_participant) e o
    ciclo de vida de uma mensagem.
    """

    def __init__(
        self,
        *,
        conv_repo: ConversationRepository,
        part_repo: ConversationParticipantRepository,
        msg_repo: MessageRepository,
        receipt_repo: ReadReceiptRepository,
        group_repo: GroupRepository,
        member_repo: GroupMemberRepository,
        broadcast_repo: BroadcastRepository,
        app_repo: ApplicationRepository,
    ) -> None:
        self._conv_repo = conv_repo
        self._part_repo = part_repo
        self._msg_repo = msg_repo
        self._receipt_repo = receipt_repo
        self._group_repo = group_repo
        self._member_repo = member_repo
        self._broadcast_repo = broadcast_repo
        self._app_repo = app_repo

    # -------------------------
    # Entrada na thread
    # -------------------------

    def ensure_participant(self, thread: ThreadRef, *, user_id: int, role) -> None:
        """
        Garante que user_id pode escrever na thread.

        Conversa: participante passa; admin de mensageria ou dono do dossier
        entram automaticamente; qualquer outro é recusado.
        Grupo: membro ou admin. Diffusion: criador ou admin.
        Grupo e diffusion nunca ganham membros por aqui.
        """
        if thread.kind is ThreadKind.CONVERSATION:
            self._ensure_conversation_participant(thread.id, user_id=user_id, role=role)
            return

        if thread.kind is ThreadKind.GROUP:
            group = self._group_repo.get_by_id(thread.id)
            if group is None:
                raise NotFoundError("Groupe introuvable.")
            if is_messaging_admin(role) or self._member_repo.is_member(group_id=group.id, user_id=user_id):
                return
            logger.warning("Acesso negado ao grupo %s para user_id=%s", group.id, user_id)
            raise ForbiddenError("Vous ne faites pas partie de ce groupe.")

        broadcast = self._broadcast_repo.get_by_id(thread.id)
        if broadcast is None:
            raise NotFoundError("Diffusion introuvable.")
        if is_messaging_admin(role) or int(broadcast.created_by) == int(user_id):
            return
        logger.warning("Acesso negado à diffusion %s para user_id=%s", broadcast.id, user_id)
        raise ForbiddenError("Seul le créateur peut écrire dans cette diffusion.")

    def _ensure_conversation_participant(self, conversation_id: int, *, user_id: int, role) -> None:
        conv = self._conv_repo.get_by_id(conversation_id)
        if conv is None:
            raise NotFoundError("Conversation introuvable.")

        if self._part_repo.get(conversation_id=conv.id, user_id=user_id) is not None:
            return

        is_owner = (
            conv.application_id is not None
            and self._app_repo.get_owner_id(conv.application_id) == int(user_id)
        )
        if not (is_messaging_admin(role) or is_owner):
            logger.warning("Acesso negado à conversa %s para user_id=%s", conv.id, user_id)
            raise ForbiddenError("Vous ne participez pas à cette conversation.")

        # o dono do dossier entra enxergando como não lido tudo o que veio antes
        self._part_repo.add_many(
            conversation_id=conv.id, user_ids=[user_id], last_read=conv.created_at if is_owner else None
        )

        # com um terceiro participante deixa de ser um par exato
        if conv.direct_key is not None:
            self._conv_repo.clear_direct_key(conv.id)

        logger.info("user_id=%s entrou na conversa %s", user_id, conv.id)

    # -------------------------
    # Escrita
    # -------------------------

    def write_message(
        self,
        thread: ThreadRef,
        *,
        sender_id: int,
        content: str,
        attachments: list[str] | None = None,
    ) -> MessageModel:
        """Grava sem checar acesso (chamador já validou)."""
        now = utcnow()
        msg = MessageModel(
            sender_id=sender_id,
            content=content,
            attachments=list(attachments or []),
            created_at=now,
        )
        thread.apply_to(msg)
        msg = self._msg_repo.add(msg)

        if thread.kind is ThreadKind.CONVERSATION:
            self._conv_repo.touch(thread.id, now)
            # quem escreve já leu a própria conversa
            self._part_repo.advance_last_read(conversation_id=thread.id, user_id=sender_id, at=now)

        return msg

    def append_message(
        self,
        thread: ThreadRef,
        *,
        sender_id: int,
        role,
        content: str | None,
        attachments: list[str] | None = None,
    ) -> MessageModel:
        text = clean_content(content, attachments)
        self.ensure_participant(thread, user_id=sender_id, role=role)

        msg = self.write_message(thread, sender_id=sender_id, content=text, attachments=attachments)
        logger.info("Mensagem %s criada em %s:%s por user_id=%s", msg.id, thread.kind.value, thread.id, sender_id)
        return msg

    def edit_message(self, *, message_id: int, user_id: int, role, content: str | None) -> dict[str, Any]:
        msg = self._msg_repo.get_by_id(message_id)
        if msg is None:
            raise NotFoundError("Message introuvable.")
        if not can_moderate_message(role, user_id, msg.sender_id):
            logger.warning("Edição negada da mensagem %s por user_id=%s", message_id, user_id)
            raise ForbiddenError("Vous ne pouvez modifier que vos propres messages.")

        text = (content or "").strip()
        if not text:
            raise ValidationError("Le contenu du message ne peut pas être vide.")

        self._msg_repo.update_content(message_id=message_id, content=text, edited_at=utcnow())
        logger.info("Mensagem %s editada por user_id=%s", message_id, user_id)
        return self.get_message_view(message_id)

    def delete_message(self, *, message_id: int, user_id: int, role) -> ThreadRef:
        msg = self._msg_repo.get_by_id(message_id)
        if msg is None:
            raise NotFoundError("Message introuvable.")
        if not can_moderate_message(role, user_id, msg.sender_id):
            logger.warning("Exclusão negada da mensagem %s por user_id=%s", message_id, user_id)
            raise ForbiddenError("Vous ne pouvez supprimer que vos propres messages.")

        thread = ThreadRef.of(msg)
        self._receipt_repo.delete_by_message_ids([msg.id])
        self._msg_repo.delete_by_ids([msg.id])
        logger.info("Mensagem %s excluída por user_id=%s", message_id, user_id)
        return thread

    # -------------------------
    # Leitura
    # -------------------------

    def get_message_view(self, message_id: int) -> dict[str, Any]:
        row = self._msg_repo.get_row(message_id=message_id)
        if row is None:
            raise NotFoundError("Message introuvable.")
        msg, sender, role_name = row
        receipts = self._receipt_repo.list_rows_by_message_ids([msg.id])
        return {"msg": msg, "sender": sender, "sender_role": role_name, "seen_by": receipts.get(msg.id, [])}

    def list_thread_messages(self, thread: ThreadRef, *, limit: int | None = None, offset: int = 0) -> list[dict[str, Any]]:
        """Mensagens em ordem cronológica, com remetente e recibos ("vu par")."""
        rows = self._msg_repo.list_rows_by_thread(thread, limit=limit, offset=offset)
        receipts = self._receipt_repo.list_rows_by_message_ids([msg.id for (msg, _s, _r) in rows])

        return [
            {
                "msg": msg,
                "sender": sender,
                "sender_role": role_name,
                "seen_by": receipts.get(msg.id, []),
            }
            for msg, sender, role_name in rows
        ]
