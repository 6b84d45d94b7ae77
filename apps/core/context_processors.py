# apps/core/context_processors.py
from __future__ import annotations

from apps.accounts.session import SessaoUsuario
from apps.core.rbac import get_role, get_user_permissoes


def permissions(request):
    """Permissões usadas nos templates (menu/ações da tabela)."""
    u = getattr(request, "user", None)
    return {
        "perms_multas": get_user_permissoes(u).as_dict(),
        "current_role": get_role(u) or "",
        "sessao": SessaoUsuario.carregar(request),
    }
