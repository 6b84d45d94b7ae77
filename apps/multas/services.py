from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable

from django.db import DatabaseError, IntegrityError, transaction

from apps.core.models import RegistroAtividade
from apps.core.services_auditoria import registrar_atividade

from .choices import Responsabilidade, StatusIndicacao
from .models import Multa
from .status import status_boleto_inicial, status_indicacao_inicial
from .transicoes import Transicao, TransicaoInvalida, aplicar_transicao

logger = logging.getLogger(__name__)

# Campos substituídos por inteiro na edição.
CAMPOS_EDITAVEIS = (
    "auto_infracao",
    "veiculo",
    "motorista",
    "estado",
    "descricao",
    "codigo_infracao",
    "data_cometimento",
    "hora_cometimento",
    "valor",
    "valor_boleto",
    "boleto",
    "consulta",
    "vencimento_boleto",
    "responsabilidade",
    "expiracao_indicacao",
    "notas",
)

MSG_NAO_ENCONTRADA = "Multa não encontrada."


@dataclass(frozen=True)
class ResultadoOperacao:
    ok: bool
    mensagem: str = ""
    multa: Multa | None = None

    def __bool__(self) -> bool:
        return self.ok


def _falha(mensagem: str) -> ResultadoOperacao:
    return ResultadoOperacao(ok=False, mensagem=mensagem)


def _auto_infracao_existe(auto_infracao: str, *, exceto_pk=None) -> bool:
    qs = Multa.objects.filter(auto_infracao=auto_infracao)
    if exceto_pk is not None:
        qs = qs.exclude(pk=exceto_pk)
    return qs.exists()


def _msg_duplicada(auto_infracao: str) -> str:
    return (
        f'Já existe uma multa cadastrada com o Auto de Infração "{auto_infracao}". '
        "O Auto de Infração deve ser único."
    )


def _aplicar_regra_indicacao(multa: Multa, hoje: date | None, *, preservar_manual: bool = False) -> None:
    if multa.responsabilidade != Responsabilidade.MOTORISTA:
        multa.expiracao_indicacao = None
        multa.status_indicacao = ""
        return
    if preservar_manual and multa.status_indicacao in {StatusIndicacao.INDICADO, StatusIndicacao.RECUSADO}:
        return
    multa.status_indicacao = status_indicacao_inicial(multa, hoje) or ""


# =========================
# CRUD
# =========================
def criar_multa(dados: dict, *, sessao=None, hoje: date | None = None) -> ResultadoOperacao:
    auto = (dados.get("auto_infracao") or "").strip()
    if not auto:
        return _falha("Informe o Auto de Infração.")

    try:
        if _auto_infracao_existe(auto):
            return _falha(_msg_duplicada(auto))

        multa = Multa(**{k: v for k, v in dados.items() if k in CAMPOS_EDITAVEIS})
        multa.auto_infracao = auto
        multa.responsabilidade = Responsabilidade.normalizar(multa.responsabilidade)
        multa.status_boleto = status_boleto_inicial(multa, hoje)
        _aplicar_regra_indicacao(multa, hoje)
        with transaction.atomic():
            multa.save()
    except IntegrityError:
        return _falha(_msg_duplicada(auto))
    except DatabaseError:
        logger.exception("Erro ao cadastrar multa %s", auto)
        return _falha("Erro ao cadastrar multa. Verifique os dados e tente novamente.")

    registrar_atividade(
        sessao,
        RegistroAtividade.Acao.CRIAR_MULTA,
        entidade_id=multa.pk,
        entidade_descricao=multa.descricao_curta,
    )
    return ResultadoOperacao(ok=True, mensagem="Multa cadastrada.", multa=multa)


def editar_multa(pk: int, dados: dict, *, sessao=None, hoje: date | None = None) -> ResultadoOperacao:
    try:
        multa = Multa.objects.filter(pk=pk).first()
        if multa is None:
            return _falha(MSG_NAO_ENCONTRADA)

        for campo in CAMPOS_EDITAVEIS:
            if campo in dados:
                setattr(multa, campo, dados[campo])
        multa.auto_infracao = (multa.auto_infracao or "").strip()
        if _auto_infracao_existe(multa.auto_infracao, exceto_pk=multa.pk):
            return _falha(_msg_duplicada(multa.auto_infracao))

        multa.responsabilidade = Responsabilidade.normalizar(multa.responsabilidade)
        multa.status_boleto = status_boleto_inicial(multa, hoje)
        _aplicar_regra_indicacao(multa, hoje, preservar_manual=True)

        campos = [*CAMPOS_EDITAVEIS, "status_boleto", "status_indicacao"]
        with transaction.atomic():
            Multa.objects.filter(pk=multa.pk).update(**{c: getattr(multa, c) for c in campos})
    except IntegrityError:
        return _falha(_msg_duplicada(dados.get("auto_infracao", "")))
    except DatabaseError:
        logger.exception("Erro ao atualizar multa %s", pk)
        return _falha("Erro ao atualizar multa. Verifique os dados e tente novamente.")

    registrar_atividade(
        sessao,
        RegistroAtividade.Acao.EDITAR_MULTA,
        entidade_id=multa.pk,
        entidade_descricao=multa.descricao_curta,
    )
    return ResultadoOperacao(ok=True, mensagem="Multa atualizada.", multa=multa)


def excluir_multa(pk: int, *, sessao=None) -> ResultadoOperacao:
    try:
        multa = Multa.objects.filter(pk=pk).first()
        if multa is None:
            return _falha(MSG_NAO_ENCONTRADA)
        descricao = multa.descricao_curta
        with transaction.atomic():
            Multa.objects.filter(pk=pk).delete()
    except DatabaseError:
        logger.exception("Erro ao excluir multa %s", pk)
        return _falha("Erro ao excluir multa.")

    registrar_atividade(
        sessao,
        RegistroAtividade.Acao.EXCLUIR_MULTA,
        entidade_id=pk,
        entidade_descricao=descricao,
    )
    return ResultadoOperacao(ok=True, mensagem="Multa excluída.")


# =========================
# TRANSIÇÕES DE STATUS
# =========================
_ACAO_POR_TRANSICAO = {
    Transicao.MARCAR_PAGO: RegistroAtividade.Acao.MARCAR_PAGO,
    Transicao.DESMARCAR_PAGO: RegistroAtividade.Acao.DESMARCAR_PAGO,
    Transicao.MARCAR_CONCLUIDO: RegistroAtividade.Acao.MARCAR_CONCLUIDO,
    Transicao.DESFAZER_CONCLUSAO: RegistroAtividade.Acao.DESFAZER_CONCLUSAO,
    Transicao.INDICAR: RegistroAtividade.Acao.INDICAR_MOTORISTA,
    Transicao.DESFAZER_INDICACAO: RegistroAtividade.Acao.DESFAZER_INDICACAO,
    Transicao.RECUSAR_INDICACAO: RegistroAtividade.Acao.RECUSAR_INDICACAO,
}

_MSG_SUCESSO = {
    Transicao.MARCAR_PAGO: "Pagamento registrado.",
    Transicao.DESMARCAR_PAGO: "Pagamento desfeito.",
    Transicao.MARCAR_CONCLUIDO: "Multa concluída.",
    Transicao.DESFAZER_CONCLUSAO: "Conclusão desfeita.",
    Transicao.INDICAR: "Real infrator indicado.",
    Transicao.DESFAZER_INDICACAO: "Indicação desfeita.",
    Transicao.RECUSAR_INDICACAO: "Recusa de indicação registrada.",
}


def executar_transicao(
    pk: int,
    transicao: Transicao,
    *,
    sessao=None,
    hoje: date | None = None,
    extra: dict | None = None,
    detalhes: Callable[[Multa], dict] | None = None,
) -> ResultadoOperacao:
    """
    Uma transição = um UPDATE. Falha de banco não deixa escrita parcial
    e a atividade só é registrada depois da escrita.
    """
    try:
        multa = Multa.objects.filter(pk=pk).first()
        if multa is None:
            return _falha(MSG_NAO_ENCONTRADA)

        campos = aplicar_transicao(multa, transicao, hoje)
        campos.update(extra or {})
        with transaction.atomic():
            Multa.objects.filter(pk=pk).update(**campos)
    except TransicaoInvalida as exc:
        return _falha(str(exc))
    except DatabaseError:
        logger.exception("Erro em %s da multa %s", transicao.value, pk)
        return _falha("Erro ao atualizar a multa. Tente novamente.")

    for campo, valor in campos.items():
        setattr(multa, campo, valor)
    logger.info("Multa %s: %s -> %s", pk, transicao.value, campos)

    registrar_atividade(
        sessao,
        _ACAO_POR_TRANSICAO[transicao],
        entidade_id=multa.pk,
        entidade_descricao=multa.descricao_curta,
        detalhes=detalhes(multa) if detalhes else None,
    )
    return ResultadoOperacao(ok=True, mensagem=_MSG_SUCESSO[transicao], multa=multa)


def marcar_como_pago(pk: int, comprovante_pagamento: str = "", **kwargs) -> ResultadoOperacao:
    extra = {}
    if (comprovante_pagamento or "").strip():
        extra["comprovante_pagamento"] = comprovante_pagamento.strip()
    return executar_transicao(
        pk,
        Transicao.MARCAR_PAGO,
        extra=extra,
        detalhes=lambda m: {"motorista": m.motorista, "valor": str(m.valor_boleto)},
        **kwargs,
    )


def desmarcar_pagamento(pk: int, **kwargs) -> ResultadoOperacao:
    return executar_transicao(pk, Transicao.DESMARCAR_PAGO, **kwargs)


def marcar_como_concluido(pk: int, **kwargs) -> ResultadoOperacao:
    return executar_transicao(
        pk,
        Transicao.MARCAR_CONCLUIDO,
        detalhes=lambda m: {"motorista": m.motorista},
        **kwargs,
    )


def desfazer_conclusao(pk: int, **kwargs) -> ResultadoOperacao:
    return executar_transicao(pk, Transicao.DESFAZER_CONCLUSAO, **kwargs)


def indicar_motorista(pk: int, **kwargs) -> ResultadoOperacao:
    return executar_transicao(pk, Transicao.INDICAR, **kwargs)


def desfazer_indicacao(pk: int, **kwargs) -> ResultadoOperacao:
    return executar_transicao(pk, Transicao.DESFAZER_INDICACAO, **kwargs)


def recusar_indicacao(pk: int, **kwargs) -> ResultadoOperacao:
    return executar_transicao(pk, Transicao.RECUSAR_INDICACAO, **kwargs)
