# apps/core/rbac.py
from __future__ import annotations

from dataclasses import asdict, dataclass, fields


# =========================
# PERFIL / ADMIN
# =========================
ROLE_ADMIN = "admin"
ROLE_FINANCEIRO = "financeiro"
ROLE_RH = "rh"

ALL_ROLES = (ROLE_ADMIN, ROLE_FINANCEIRO, ROLE_RH)


def get_profile(user):
    if not user or not getattr(user, "is_authenticated", False):
        return None
    return getattr(user, "profile", None)


def get_role(user) -> str | None:
    if getattr(user, "is_superuser", False):
        return ROLE_ADMIN
    p = get_profile(user)
    if not p or not getattr(p, "ativo", True):
        return None
    role = (getattr(p, "role", "") or "").strip().lower()
    return role if role in ALL_ROLES else None


def is_admin(user) -> bool:
    return get_role(user) == ROLE_ADMIN


# =========================
# PERMISSÕES (matriz fixa por papel)
# =========================
@dataclass(frozen=True)
class Permissoes:
    can_view_details: bool = False
    can_access_boleto: bool = False
    can_access_consulta: bool = False
    can_mark_as_paid: bool = False
    can_mark_as_complete: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_create: bool = False
    can_view_indicacao: bool = False
    can_indicar: bool = False
    can_view_all_logs: bool = False

    def as_dict(self) -> dict[str, bool]:
        return asdict(self)


PERMISSION_NAMES = frozenset(f.name for f in fields(Permissoes))

ROLE_PERMISSIONS: dict[str, Permissoes] = {
    ROLE_ADMIN: Permissoes(
        can_view_details=True,
        can_access_boleto=True,
        can_access_consulta=True,
        can_mark_as_paid=True,
        can_mark_as_complete=True,
        can_edit=True,
        can_delete=True,
        can_create=True,
        can_view_indicacao=True,
        can_indicar=True,
        can_view_all_logs=True,
    ),
    ROLE_FINANCEIRO: Permissoes(
        can_view_details=True,
        can_access_boleto=True,
        can_access_consulta=True,
        can_mark_as_paid=True,
    ),
    ROLE_RH: Permissoes(
        can_view_details=True,
        can_mark_as_complete=True,
        can_view_indicacao=True,
        can_indicar=True,
    ),
}


def get_permissoes(role: str | None) -> Permissoes:
    """Papel desconhecido/ausente cai no mais restrito (rh)."""
    return ROLE_PERMISSIONS.get(str(role or "").strip().lower(), ROLE_PERMISSIONS[ROLE_RH])


def get_user_permissoes(user) -> Permissoes:
    role = get_role(user)
    if role is None:
        return Permissoes()
    return get_permissoes(role)


def can(user, perm: str) -> bool:
    """
    Aceita 'multas.can_edit' ou só 'can_edit'.
    'multas.view' = qualquer papel válido logado.
    """
    if get_role(user) is None:
        return False

    nome = perm.split(".", 1)[1] if "." in perm else perm
    if nome == "view":
        return True
    if nome not in PERMISSION_NAMES:
        return False
    return bool(getattr(get_user_permissoes(user), nome))
