# portal_messaging/core/permissions.py
"""
Predicados de capacidade usados por todos os services de mensageria.

Nenhum service compara nomes de papel diretamente: toda decisão de
visibilidade/autorização passa por aqui.
"""
from __future__ import annotations

from enum import Enum


class RoleName(str, Enum):
    SUPERADMIN = "SUPERADMIN"
    STUDENT = "STUDENT"
    STUDENT_MANAGER = "STUDENT_MANAGER"
    QUALITY_OFFICER = "QUALITY_OFFICER"
    FINANCE_MANAGER = "FINANCE_MANAGER"
    SECRETARY = "SECRETARY"


class Permission(str, Enum):
    ALL_ACCESS = "ALL_ACCESS"
    MANAGE_STUDENTS = "MANAGE_STUDENTS"
    VIEW_STUDENTS = "VIEW_STUDENTS"
    MANAGE_DISCUSSIONS = "MANAGE_DISCUSSIONS"
    MANAGE_DOCUMENTS = "MANAGE_DOCUMENTS"
    VALIDATE_DOCUMENTS = "VALIDATE_DOCUMENTS"
    VIEW_FINANCES = "VIEW_FINANCES"
    MANAGE_FINANCES = "MANAGE_FINANCES"


# espelha o seed de tbRoles do portal
ROLE_PERMISSIONS: dict[RoleName, frozenset[Permission]] = {
    RoleName.SUPERADMIN: frozenset({Permission.ALL_ACCESS}),
    RoleName.STUDENT: frozenset(),
    RoleName.STUDENT_MANAGER: frozenset(
        {Permission.MANAGE_STUDENTS, Permission.VIEW_STUDENTS, Permission.MANAGE_DISCUSSIONS}
    ),
    RoleName.QUALITY_OFFICER: frozenset({Permission.MANAGE_DOCUMENTS, Permission.VALIDATE_DOCUMENTS}),
    RoleName.FINANCE_MANAGER: frozenset(
        {Permission.VIEW_FINANCES, Permission.MANAGE_FINANCES, Permission.VIEW_STUDENTS}
    ),
    RoleName.SECRETARY: frozenset(
        {Permission.MANAGE_STUDENTS, Permission.VIEW_STUDENTS, Permission.MANAGE_DOCUMENTS}
    ),
}


def normalize_role(role: str | RoleName | None) -> RoleName:
    # papel ausente/desconhecido = STUDENT (menor privilégio)
    if isinstance(role, RoleName):
        return role
    try:
        return RoleName(str(role or "").strip().upper())
    except ValueError:
        return RoleName.STUDENT


def has_permission(role: str | RoleName | None, *required: Permission) -> bool:
    perms = ROLE_PERMISSIONS[normalize_role(role)]
    if Permission.ALL_ACCESS in perms:
        return True
    return any(p in perms for p in required)


def is_student(role: str | RoleName | None) -> bool:
    return normalize_role(role) is RoleName.STUDENT


def is_staff(role: str | RoleName | None) -> bool:
    return not is_student(role)


def is_messaging_admin(role: str | RoleName | None) -> bool:
    return is_staff(role) and has_permission(role, Permission.MANAGE_DISCUSSIONS)


def can_manage_thread(role: str | RoleName | None, user_id: int, created_by: int) -> bool:
    return is_messaging_admin(role) or int(created_by) == int(user_id)


# papéis que editam/excluem mensagens de outros
MODERATOR_ROLES: frozenset[RoleName] = frozenset(
    {RoleName.SUPERADMIN, RoleName.QUALITY_OFFICER, RoleName.SECRETARY, RoleName.STUDENT_MANAGER}
)


def can_moderate_message(role: str | RoleName | None, user_id: int, sender_id: int) -> bool:
    return int(sender_id) == int(user_id) or normalize_role(role) in MODERATOR_ROLES
