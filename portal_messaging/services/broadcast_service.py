# portal_messaging/services/broadcast_service.py
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from portal_messaging.core.exceptions import (
    AppError,
    ForbiddenError,
    NoOpError,
    NotFoundError,
    TransactionError,
    ValidationError,
)
from portal_messaging.core.permissions import can_manage_thread, is_messaging_admin, is_student
from portal_messaging.entities.thread_ref import ThreadRef
from portal_messaging.infrastructure.database.models.broadcast_model import BroadcastModel

from portal_messaging.repositories.broadcast_recipient_repository import BroadcastRecipientRepository
from portal_messaging.repositories.broadcast_repository import BroadcastRepository
from portal_messaging.repositories.message_repository import MessageRepository
from portal_messaging.repositories.read_receipt_repository import ReadReceiptRepository
from portal_messaging.repositories.user_repository import UserRepository
from portal_messaging.services.conversation_service import ConversationService
from portal_messaging.services.message_service import MessageService, clean_content

logger = logging.getLogger(__name__)


def _unique_ids(ids: list[int] | None) -> list[int]:
    return list(dict.fromkeys(int(x) for x in (ids or [])))


class BroadcastService:
    """
    Diffusions: uma mensagem enviada a N destinatários.

    Cada post grava uma cópia de auditoria na própria diffusion e uma cópia
    na conversa direta (remetente, destinatário) de cada destinatário. Tudo
    dentro de um único savepoint: ou todas as cópias existem, ou nenhuma.
    """

    def __init__(
        self,
        *,
        broadcast_repo: BroadcastRepository,
        recipient_repo: BroadcastRecipientRepository,
        user_repo: UserRepository,
        msg_repo: MessageRepository,
        receipt_repo: ReadReceiptRepository,
        messages: MessageService,
        conversations: ConversationService,
    ) -> None:
        self._broadcast_repo = broadcast_repo
        self._recipient_repo = recipient_repo
        self._user_repo = user_repo
        self._msg_repo = msg_repo
        self._receipt_repo = receipt_repo
        self._messages = messages
        self._conversations = conversations

    def _get_or_404(self, broadcast_id: int) -> BroadcastModel:
        broadcast = self._broadcast_repo.get_by_id(broadcast_id)
        if broadcast is None:
            raise NotFoundError("Diffusion introuvable.")
        return broadcast

    def _ensure_can_manage(self, broadcast: BroadcastModel, *, user_id: int, role) -> None:
        if not can_manage_thread(role, user_id, broadcast.created_by):
            logger.warning("Gestão negada da diffusion %s para user_id=%s", broadcast.id, user_id)
            raise ForbiddenError("Seul le créateur de la diffusion peut la gérer.")

    def _ensure_users_exist(self, user_ids: list[int]) -> None:
        missing = set(user_ids) - self._user_repo.existing_ids(user_ids)
        if missing:
            raise ValidationError(f"Utilisateurs introuvables: {sorted(missing)}")

    def _views(self, broadcasts: list[BroadcastModel], *, user_id: int, role) -> list[dict[str, Any]]:
        recipients_by_bc = self._recipient_repo.list_user_ids_by_broadcast_ids([b.id for b in broadcasts])

        managed_ids = sorted(
            {
                uid
                for b in broadcasts
                if can_manage_thread(role, user_id, b.created_by)
                for uid in recipients_by_bc.get(b.id, [])
            }
        )
        users = {int(u.id): (u, role_name) for u, role_name in self._user_repo.list_rows_with_role(managed_ids)}

        out = []
        for bc in broadcasts:
            recipient_ids = recipients_by_bc.get(bc.id, [])
            can_manage = can_manage_thread(role, user_id, bc.created_by)
            # lista e contagem de destinatários só para quem gerencia
            out.append(
                {
                    "broadcast": bc,
                    "recipients": [users[uid] for uid in recipient_ids if uid in users] if can_manage else [],
                    "recipient_count": len(recipient_ids) if can_manage else None,
                    "is_recipient": int(user_id) in recipient_ids,
                    "can_manage": can_manage,
                }
            )
        return out

    # -------------------------
    # Mutação
    # -------------------------

    def create_broadcast(self, *, name: str, creator_id: int, role, recipient_ids: list[int]) -> dict[str, Any]:
        if is_student(role):
            logger.warning("Estudante %s tentou criar diffusion", creator_id)
            raise ForbiddenError("Les étudiants ne peuvent pas créer de diffusion.")

        name = (name or "").strip()
        recipient_ids = _unique_ids(recipient_ids)
        if not name:
            raise ValidationError("Le nom de la diffusion est obligatoire.")
        if not recipient_ids:
            raise ValidationError("Sélectionnez au moins un destinataire.")
        self._ensure_users_exist(recipient_ids)

        broadcast = self._broadcast_repo.add(BroadcastModel(name=name, created_by=creator_id))
        self._recipient_repo.add_many(broadcast_id=broadcast.id, user_ids=recipient_ids)

        logger.info("Diffusion %s criada por user_id=%s com %s destinatários", broadcast.id, creator_id, len(recipient_ids))
        return self._views([broadcast], user_id=creator_id, role=role)[0]

    def add_recipients(self, *, broadcast_id: int, recipient_ids: list[int], user_id: int, role) -> dict[str, Any]:
        broadcast = self._get_or_404(broadcast_id)
        self._ensure_can_manage(broadcast, user_id=user_id, role=role)

        recipient_ids = _unique_ids(recipient_ids)
        if not recipient_ids:
            raise ValidationError("Sélectionnez au moins un destinataire.")

        current = set(self._recipient_repo.list_user_ids(broadcast.id))
        new_ids = [uid for uid in recipient_ids if uid not in current]
        if not new_ids:
            raise NoOpError("Tous ces utilisateurs reçoivent déjà cette diffusion.")
        self._ensure_users_exist(new_ids)

        added = self._recipient_repo.add_many(broadcast_id=broadcast.id, user_ids=new_ids)
        logger.info("Diffusion %s: %s destinatários adicionados por user_id=%s", broadcast.id, added, user_id)
        return self._views([broadcast], user_id=user_id, role=role)[0]

    def post_broadcast_message(
        self,
        *,
        broadcast_id: int,
        sender_id: int,
        role,
        content: str | None,
        attachments: list[str] | None = None,
    ) -> dict[str, Any]:
        broadcast = self._get_or_404(broadcast_id)
        self._ensure_can_manage(broadcast, user_id=sender_id, role=role)
        text = clean_content(content, attachments)

        conversation_ids: list[int] = []
        try:
            with self._broadcast_repo.savepoint():
                audit_copy = self._messages.write_message(
                    ThreadRef.broadcast(broadcast.id),
                    sender_id=sender_id,
                    content=text,
                    attachments=attachments,
                )

                # relê os destinatários dentro da transação do fan-out
                for recipient_id in self._recipient_repo.list_user_ids(broadcast.id):
                    if recipient_id == int(sender_id):
                        continue
                    conv = self._conversations.get_or_create_direct_conversation(sender_id, recipient_id)
                    self._messages.write_message(
                        ThreadRef.conversation(conv.id),
                        sender_id=sender_id,
                        content=text,
                        attachments=attachments,
                    )
                    conversation_ids.append(int(conv.id))
        except (SQLAlchemyError, AppError) as exc:
            logger.exception("Fan-out da diffusion %s falhou (sender_id=%s)", broadcast.id, sender_id)
            raise TransactionError("La diffusion n'a pas pu être envoyée. Aucun message n'a été transmis.") from exc

        logger.info(
            "Diffusion %s: mensagem %s entregue em %s conversas", broadcast.id, audit_copy.id, len(conversation_ids)
        )
        return {"message": audit_copy, "delivered": len(conversation_ids), "conversation_ids": conversation_ids}

    def delete_broadcast(self, *, broadcast_id: int, user_id: int, role) -> None:
        broadcast = self._get_or_404(broadcast_id)
        self._ensure_can_manage(broadcast, user_id=user_id, role=role)

        # só o histórico da diffusion; as cópias nas conversas diretas ficam
        message_ids = self._msg_repo.list_ids_by_thread(ThreadRef.broadcast(broadcast.id))
        self._receipt_repo.delete_by_message_ids(message_ids)
        self._msg_repo.delete_by_ids(message_ids)
        self._recipient_repo.delete_by_broadcast(broadcast.id)
        self._broadcast_repo.delete(broadcast.id)

        logger.info("Diffusion %s excluída por user_id=%s", broadcast.id, user_id)

    # -------------------------
    # Consulta
    # -------------------------

    def list_broadcasts(self, *, user_id: int, role, include_received: bool = False) -> list[dict[str, Any]]:
        if is_messaging_admin(role):
            broadcasts = self._broadcast_repo.list_all()
        elif include_received:
            broadcasts = self._broadcast_repo.list_created_or_received_by(user_id)
        else:
            broadcasts = self._broadcast_repo.list_created_by(user_id)
        return self._views(broadcasts, user_id=user_id, role=role)

    def get_broadcast(self, *, broadcast_id: int, user_id: int, role) -> dict[str, Any]:
        broadcast = self._get_or_404(broadcast_id)
        self._ensure_can_manage(broadcast, user_id=user_id, role=role)
        return self._views([broadcast], user_id=user_id, role=role)[0]

    def list_broadcast_messages(self, *, broadcast_id: int, user_id: int, role) -> list[dict[str, Any]]:
        thread = ThreadRef.broadcast(broadcast_id)
        self._messages.ensure_participant(thread, user_id=user_id, role=role)
        return self._messages.list_thread_messages(thread)
