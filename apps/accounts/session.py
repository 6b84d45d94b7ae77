from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from apps.core.rbac import ALL_ROLES, ROLE_ADMIN, get_role

logger = logging.getLogger(__name__)

SESSION_KEY = "usuario"


@dataclass(frozen=True)
class SessaoUsuario:
    """
    Usuário logado (id, nome, login, papel), guardado serializado na sessão.
    Passado explicitamente para serviços que precisam registrar atividade.
    """

    id: int
    nome: str
    usuario: str
    papel: str

    @classmethod
    def from_user(cls, user) -> "SessaoUsuario | None":
        papel = get_role(user)
        if papel is None:
            return None
        nome = (user.get_full_name() or user.username or "").strip()
        return cls(id=user.pk, nome=nome, usuario=user.get_username().lower(), papel=papel)

    @classmethod
    def from_dict(cls, data) -> "SessaoUsuario | None":
        if not isinstance(data, dict):
            return None
        try:
            sessao = cls(
                id=int(data["id"]),
                nome=str(data["nome"]),
                usuario=str(data["usuario"]),
                papel=str(data["papel"]),
            )
        except (KeyError, TypeError, ValueError):
            return None
        if sessao.papel not in ALL_ROLES:
            return None
        return sessao

    # =========================
    # ciclo de vida
    # =========================
    @classmethod
    def carregar(cls, request) -> "SessaoUsuario | None":
        session = getattr(request, "session", None)
        if session is None or SESSION_KEY not in session:
            return None
        sessao = cls.from_dict(session.get(SESSION_KEY))
        if sessao is None:
            logger.warning("Sessão de usuário corrompida descartada.")
            session.pop(SESSION_KEY, None)
        return sessao

    def salvar(self, request) -> None:
        request.session[SESSION_KEY] = asdict(self)

    @classmethod
    def limpar(cls, request) -> None:
        session = getattr(request, "session", None)
        if session is not None:
            session.pop(SESSION_KEY, None)

    @property
    def is_admin(self) -> bool:
        return self.papel == ROLE_ADMIN


def sessao_da_requisicao(request) -> SessaoUsuario | None:
    """
    Sessão do usuário autenticado. Refaz a partir do request.user quando
    a chave não existe ou pertence a outro usuário.
    """
    user = getattr(request, "user", None)
    if not user or not user.is_authenticated:
        return None
    sessao = SessaoUsuario.carregar(request)
    if sessao is not None and sessao.id == user.pk:
        return sessao
    sessao = SessaoUsuario.from_user(user)
    if sessao is not None:
        sessao.salvar(request)
    return sessao
