from __future__ import annotations

import logging

from django.contrib.auth import authenticate, get_user_model
from django.db import DatabaseError

from .security import client_ip, is_locked, register_failure, reset
from .session import SessaoUsuario

logger = logging.getLogger(__name__)

MSG_CREDENCIAIS = "Usuário ou senha incorretos"
MSG_CONEXAO = "Erro ao conectar com o servidor"
MSG_BLOQUEIO = "Muitas tentativas. Aguarde alguns minutos e tente novamente."


def autenticar(request, usuario: str, senha: str):
    """
    Retorna (user, sessao, erro). Em sucesso erro == "".
    O login (django.contrib.auth.login) fica por conta da view.
    """
    usuario = (usuario or "").strip()
    if not usuario or not senha:
        return None, None, MSG_CREDENCIAIS

    # Bloqueio por handle sem caixa; o username salvo mantém a caixa original.
    chave = usuario.lower()
    ip = client_ip(request)
    if is_locked(ip, chave):
        return None, None, MSG_BLOQUEIO

    try:
        username = (
            get_user_model()
            .objects.filter(username__iexact=usuario)
            .values_list("username", flat=True)
            .first()
        )
        user = authenticate(request, username=username or usuario, password=senha)
        sessao = SessaoUsuario.from_user(user) if user is not None else None
    except DatabaseError:
        logger.exception("Erro no login de %s", usuario)
        return None, None, MSG_CONEXAO

    if user is None or sessao is None:
        register_failure(ip, chave)
        return None, None, MSG_CREDENCIAIS

    reset(ip, chave)
    return user, sessao, ""
