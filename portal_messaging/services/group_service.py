# portal_messaging/services/group_service.py
from __future__ import annotations

import logging
from typing import Any

from portal_messaging.core.exceptions import ForbiddenError, NoOpError, NotFoundError, ValidationError
from portal_messaging.core.permissions import can_manage_thread, is_messaging_admin, is_student
from portal_messaging.entities.thread_ref import ThreadRef
from portal_messaging.infrastructure.database.models.group_model import GroupModel
from portal_messaging.infrastructure.database.models.message_model import MessageModel

from portal_messaging.repositories.group_member_repository import GroupMemberRepository
from portal_messaging.repositories.group_repository import GroupRepository
from portal_messaging.repositories.message_repository import MessageRepository
from portal_messaging.repositories.read_receipt_repository import ReadReceiptRepository
from portal_messaging.repositories.user_repository import UserRepository
from portal_messaging.services.message_service import MessageService

logger = logging.getLogger(__name__)


def _unique_ids(ids: list[int] | None) -> list[int]:
    return list(dict.fromkeys(int(x) for x in (ids or [])))


class GroupService:
    def __init__(
        self,
        *,
        group_repo: GroupRepository,
        member_repo: GroupMemberRepository,
        user_repo: UserRepository,
        msg_repo: MessageRepository,
        receipt_repo: ReadReceiptRepository,
        messages: MessageService,
    ) -> None:
        self._group_repo = group_repo
        self._member_repo = member_repo
        self._user_repo = user_repo
        self._msg_repo = msg_repo
        self._receipt_repo = receipt_repo
        self._messages = messages

    def _get_or_404(self, group_id: int) -> GroupModel:
        group = self._group_repo.get_by_id(group_id)
        if group is None:
            raise NotFoundError("Groupe introuvable.")
        return group

    def _ensure_can_manage(self, group: GroupModel, *, user_id: int, role) -> None:
        if not can_manage_thread(role, user_id, group.created_by):
            logger.warning("Gestão negada do grupo %s para user_id=%s", group.id, user_id)
            raise ForbiddenError("Seul le créateur du groupe peut le gérer.")

    def _ensure_users_exist(self, user_ids: list[int]) -> None:
        missing = set(user_ids) - self._user_repo.existing_ids(user_ids)
        if missing:
            raise ValidationError(f"Utilisateurs introuvables: {sorted(missing)}")

    def _views(self, groups: list[GroupModel], *, user_id: int, role) -> list[dict[str, Any]]:
        members_by_group = self._member_repo.list_user_ids_by_group_ids([g.id for g in groups])
        all_ids = sorted({uid for ids in members_by_group.values() for uid in ids})
        users = {int(u.id): (u, role_name) for u, role_name in self._user_repo.list_rows_with_role(all_ids)}

        out = []
        for group in groups:
            member_ids = members_by_group.get(group.id, [])
            out.append(
                {
                    "group": group,
                    "members": [users[uid] for uid in member_ids if uid in users],
                    "member_count": len(member_ids),
                    "is_member": int(user_id) in member_ids,
                    "can_manage": can_manage_thread(role, user_id, group.created_by),
                }
            )
        return out

    # -------------------------
    # Mutação
    # -------------------------

    def create_group(self, *, name: str, creator_id: int, role, member_ids: list[int]) -> dict[str, Any]:
        if is_student(role):
            logger.warning("Estudante %s tentou criar grupo", creator_id)
            raise ForbiddenError("Les étudiants ne peuvent pas créer de groupe.")

        name = (name or "").strip()
        member_ids = _unique_ids(member_ids)
        if not name:
            raise ValidationError("Le nom du groupe est obligatoire.")
        if not member_ids:
            raise ValidationError("Sélectionnez au moins un membre.")
        self._ensure_users_exist(member_ids)

        group = self._group_repo.add(GroupModel(name=name, created_by=creator_id))
        # o criador sempre é membro
        self._member_repo.add_many(group_id=group.id, user_ids=[creator_id, *member_ids])

        logger.info("Grupo %s criado por user_id=%s com %s membros", group.id, creator_id, len(member_ids))
        return self._views([group], user_id=creator_id, role=role)[0]

    def add_members(self, *, group_id: int, member_ids: list[int], user_id: int, role) -> dict[str, Any]:
        group = self._get_or_404(group_id)
        self._ensure_can_manage(group, user_id=user_id, role=role)

        member_ids = _unique_ids(member_ids)
        if not member_ids:
            raise ValidationError("Sélectionnez au moins un membre.")

        current = set(self._member_repo.list_user_ids(group.id))
        new_ids = [uid for uid in member_ids if uid not in current]
        if not new_ids:
            raise NoOpError("Tous ces utilisateurs sont déjà membres du groupe.")
        self._ensure_users_exist(new_ids)

        added = self._member_repo.add_many(group_id=group.id, user_ids=new_ids)
        logger.info("Grupo %s: %s membros adicionados por user_id=%s", group.id, added, user_id)
        return self._views([group], user_id=user_id, role=role)[0]

    def delete_group(self, *, group_id: int, user_id: int, role) -> None:
        group = self._get_or_404(group_id)
        self._ensure_can_manage(group, user_id=user_id, role=role)

        message_ids = self._msg_repo.list_ids_by_thread(ThreadRef.group(group.id))
        self._receipt_repo.delete_by_message_ids(message_ids)
        self._msg_repo.delete_by_ids(message_ids)
        self._member_repo.delete_by_group(group.id)
        self._group_repo.delete(group.id)

        logger.info("Grupo %s excluído por user_id=%s", group.id, user_id)

    def post_group_message(
        self,
        *,
        group_id: int,
        sender_id: int,
        role,
        content: str | None,
        attachments: list[str] | None = None,
    ) -> MessageModel:
        return self._messages.append_message(
            ThreadRef.group(group_id),
            sender_id=sender_id,
            role=role,
            content=content,
            attachments=attachments,
        )

    # -------------------------
    # Consulta
    # -------------------------

    def list_groups(self, *, user_id: int, role) -> list[dict[str, Any]]:
        if is_messaging_admin(role):
            groups = self._group_repo.list_all()
        else:
            groups = self._group_repo.list_visible_to(user_id)
        return self._views(groups, user_id=user_id, role=role)

    def get_group(self, *, group_id: int, user_id: int, role) -> dict[str, Any]:
        group = self._get_or_404(group_id)
        view = self._views([group], user_id=user_id, role=role)[0]
        if not (view["is_member"] or view["can_manage"]):
            logger.warning("Leitura negada do grupo %s para user_id=%s", group.id, user_id)
            raise ForbiddenError("Vous ne faites pas partie de ce groupe.")
        return view

    def list_group_messages(self, *, group_id: int, user_id: int, role) -> list[dict[str, Any]]:
        thread = ThreadRef.group(group_id)
        self._messages.ensure_participant(thread, user_id=user_id, role=role)
        return self._messages.list_thread_messages(thread)
