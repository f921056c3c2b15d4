# portal_messaging/entities/thread_ref.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ThreadKind(str, Enum):
    CONVERSATION = "conversation"
    GROUP = "group"
    BROADCAST = "broadcast"


# coluna de tbMessages correspondente a cada tipo de thread
_TARGET_COLUMNS: dict[ThreadKind, str] = {
    ThreadKind.CONVERSATION: "conversation_id",
    ThreadKind.GROUP: "group_id",
    ThreadKind.BROADCAST: "broadcast_id",
}


@dataclass(frozen=True)
class ThreadRef:
    """
    Destino de uma mensagem: conversa, grupo ou diffusion.

    No banco são três FKs anuláveis em tbMessages; aqui é um único valor
    (kind, id). Toda escrita de mensagem passa por apply_to().
    """

    kind: ThreadKind
    id: int

    @classmethod
    def conversation(cls, conversation_id: int) -> "ThreadRef":
        return cls(ThreadKind.CONVERSATION, int(conversation_id))

    @classmethod
    def group(cls, group_id: int) -> "ThreadRef":
        return cls(ThreadKind.GROUP, int(group_id))

    @classmethod
    def broadcast(cls, broadcast_id: int) -> "ThreadRef":
        return cls(ThreadKind.BROADCAST, int(broadcast_id))

    @property
    def column(self) -> str:
        return _TARGET_COLUMNS[self.kind]

    def apply_to(self, model: Any) -> None:
        for kind, column in _TARGET_COLUMNS.items():
            setattr(model, column, self.id if kind is self.kind else None)

    @classmethod
    def of(cls, model: Any) -> "ThreadRef":
        """Lê o destino de uma mensagem; falha se não houver exatamente um."""
        targets = [
            (kind, getattr(model, column, None))
            for kind, column in _TARGET_COLUMNS.items()
            if getattr(model, column, None) is not None
        ]
        if len(targets) != 1:
            raise ValueError(f"Mensagem deve ter exatamente um destino (encontrados: {len(targets)}).")
        kind, target_id = targets[0]
        return cls(kind, int(target_id))
