from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from django.conf import settings
from django.db import DatabaseError, transaction

from .models import RegistroAtividade
from .rbac import ROLE_ADMIN

logger = logging.getLogger(__name__)

FILTRO_TODOS = "todos"
# Só a relação inteira; "column ... of relation ... does not exist" é outro erro.
_RELACAO_INEXISTENTE_RE = re.compile(r"relation \"[^\"]+\" does not exist")


def _tabela_inexistente(exc: DatabaseError) -> bool:
    cause = exc.__cause__ or exc
    if getattr(cause, "pgcode", None) == "42P01":
        return True
    sqlstate = getattr(getattr(cause, "diag", None), "sqlstate", None)
    if sqlstate == "42P01":
        return True
    msg = str(exc).lower()
    return bool(_RELACAO_INEXISTENTE_RE.match(msg)) or "no such table" in msg


def registrar_atividade(
    sessao,
    acao: str,
    *,
    entidade_id=None,
    entidade_descricao: str = "",
    detalhes: dict | None = None,
) -> bool:
    """
    Best-effort: qualquer falha vira False + log, nunca exceção.
    Roda em savepoint para não contaminar a transação de quem chamou.
    """
    if sessao is None:
        logger.warning("Usuário não definido para registrar atividade %s", acao)
        return False

    try:
        with transaction.atomic():
            RegistroAtividade.objects.create(
                usuario_id=sessao.usuario,
                usuario_nome=(sessao.nome or "")[:180],
                usuario_papel=sessao.papel,
                acao=str(acao),
                entidade_tipo="multa",
                entidade_id=entidade_id,
                entidade_descricao=(entidade_descricao or "")[:200],
                detalhes=detalhes or None,
            )
    except DatabaseError as exc:
        if _tabela_inexistente(exc):
            logger.warning("Tabela de registros de atividade não existe; atividade %s ignorada.", acao)
        else:
            logger.exception("Erro ao registrar atividade %s", acao)
        return False
    return True


@dataclass
class ConsultaAtividades:
    registros: list = field(default_factory=list)
    usuarios: list = field(default_factory=list)
    erro: str = ""


def listar_atividades(
    sessao,
    *,
    limite: int | None = None,
    filtro_papel: str | None = None,
    filtro_usuario: str | None = None,
) -> ConsultaAtividades:
    """
    Registros mais recentes primeiro + usuários distintos (para o filtro do admin).
    Quem não é admin só enxerga registros do próprio papel.
    """
    if sessao is None:
        return ConsultaAtividades()

    limite = limite or getattr(settings, "MULTAS_LIMITE_ATIVIDADES", 50)
    qs = RegistroAtividade.objects.order_by("-criado_em", "-id")

    if sessao.papel != ROLE_ADMIN:
        qs = qs.filter(usuario_papel=sessao.papel)
    else:
        if filtro_papel and filtro_papel != FILTRO_TODOS:
            qs = qs.filter(usuario_papel=filtro_papel)
        if filtro_usuario and filtro_usuario != FILTRO_TODOS:
            qs = qs.filter(usuario_id=filtro_usuario)

    try:
        registros = list(qs[:limite])
    except DatabaseError as exc:
        if _tabela_inexistente(exc):
            logger.warning("Tabela de registros de atividade não existe.")
            return ConsultaAtividades()
        logger.exception("Erro ao buscar registros de atividade")
        return ConsultaAtividades(erro="Erro ao carregar registros de atividade")

    usuarios: list[dict] = []
    if sessao.papel == ROLE_ADMIN:
        vistos: dict[str, str] = {}
        for r in registros:
            vistos.setdefault(r.usuario_id, r.usuario_nome)
        usuarios = [{"usuario_id": k, "usuario_nome": v} for k, v in vistos.items()]

    return ConsultaAtividades(registros=registros, usuarios=usuarios)


def formatar_acao(acao: str) -> str:
    try:
        return RegistroAtividade.Acao(acao).label
    except ValueError:
        return acao
