from __future__ import annotations

import logging
from functools import wraps

from django.contrib.auth.views import redirect_to_login
from django.http import HttpResponseForbidden

from apps.core.rbac import can, get_role

logger = logging.getLogger(__name__)

MSG_SEM_PERMISSAO = "403 — Seu perfil não tem permissão para esta ação."


def require_perm(*perms: str):
    """
    Exige login e TODAS as capacidades informadas ("multas.can_edit", ...).
    Anônimo vai para o login com ?next=; logado sem capacidade recebe 403.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            user = getattr(request, "user", None)
            if not user or not user.is_authenticated:
                return redirect_to_login(request.get_full_path())

            faltando = [p for p in perms if not can(user, p)]
            if faltando:
                logger.warning(
                    "Acesso negado: %s (%s) sem %s em %s",
                    user.get_username(),
                    get_role(user) or "sem papel",
                    ", ".join(faltando),
                    request.path,
                )
                return HttpResponseForbidden(MSG_SEM_PERMISSAO)

            return view_func(request, *args, **kwargs)

        return _wrapped

    return decorator
