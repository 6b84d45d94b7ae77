from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable

from .choices import Responsabilidade, StatusBoleto, StatusIndicacao
from .status import calcular_status_indicacao, status_boleto_inicial


class TransicaoInvalida(Exception):
    """Ação não permitida para o estado atual da multa."""


class Transicao(str, Enum):
    MARCAR_PAGO = "marcar_pago"
    DESMARCAR_PAGO = "desmarcar_pago"
    MARCAR_CONCLUIDO = "marcar_concluido"
    DESFAZER_CONCLUSAO = "desfazer_conclusao"
    INDICAR = "indicar_motorista"
    DESFAZER_INDICACAO = "desfazer_indicacao"
    RECUSAR_INDICACAO = "recusar_indicacao"


def _destino_pagamento(multa, hoje):
    # Empresa fecha direto; motorista aguarda desconto em folha (RH).
    if multa.responsabilidade == Responsabilidade.EMPRESA:
        return StatusBoleto.CONCLUIDO
    if multa.responsabilidade == Responsabilidade.MOTORISTA:
        return StatusBoleto.DESCONTAR
    return StatusBoleto.PAGO


def _destino_desfazer_conclusao(multa, hoje):
    if multa.responsabilidade == Responsabilidade.MOTORISTA:
        return StatusBoleto.DESCONTAR
    return status_boleto_inicial(multa, hoje)


def _destino_desfazer_indicacao(multa, hoje):
    return calcular_status_indicacao(
        indicado=False,
        data_expiracao=multa.expiracao_indicacao,
        hoje=hoje,
    ) or ""


@dataclass(frozen=True)
class RegraTransicao:
    campo: str
    origens: frozenset[str]
    destino: Callable
    somente_motorista: bool = False
    descricao: str = ""


TABELA_TRANSICOES: dict[Transicao, RegraTransicao] = {
    Transicao.MARCAR_PAGO: RegraTransicao(
        campo="status_boleto",
        origens=frozenset({StatusBoleto.DISPONIVEL.value}),
        destino=_destino_pagamento,
        descricao="Só é possível pagar boletos disponíveis.",
    ),
    Transicao.DESMARCAR_PAGO: RegraTransicao(
        campo="status_boleto",
        origens=frozenset({StatusBoleto.PAGO.value, StatusBoleto.DESCONTAR.value}),
        destino=lambda multa, hoje: status_boleto_inicial(multa, hoje),
        descricao="A multa não está marcada como paga.",
    ),
    Transicao.MARCAR_CONCLUIDO: RegraTransicao(
        campo="status_boleto",
        origens=frozenset({StatusBoleto.DESCONTAR.value}),
        destino=lambda multa, hoje: StatusBoleto.CONCLUIDO,
        descricao="Só é possível concluir multas aguardando desconto.",
    ),
    Transicao.DESFAZER_CONCLUSAO: RegraTransicao(
        campo="status_boleto",
        origens=frozenset({StatusBoleto.CONCLUIDO.value}),
        destino=_destino_desfazer_conclusao,
        descricao="A multa não está concluída.",
    ),
    Transicao.INDICAR: RegraTransicao(
        campo="status_indicacao",
        origens=frozenset({StatusIndicacao.FALTANDO_INDICAR.value}),
        destino=lambda multa, hoje: StatusIndicacao.INDICADO,
        somente_motorista=True,
        descricao="Só é possível indicar multas com indicação pendente.",
    ),
    Transicao.DESFAZER_INDICACAO: RegraTransicao(
        campo="status_indicacao",
        origens=frozenset({StatusIndicacao.INDICADO.value, StatusIndicacao.RECUSADO.value}),
        destino=_destino_desfazer_indicacao,
        descricao="Não há indicação ou recusa para desfazer.",
    ),
    Transicao.RECUSAR_INDICACAO: RegraTransicao(
        campo="status_indicacao",
        origens=frozenset({StatusIndicacao.FALTANDO_INDICAR.value}),
        destino=lambda multa, hoje: StatusIndicacao.RECUSADO,
        somente_motorista=True,
        descricao="Só é possível registrar recusa em multas com indicação pendente.",
    ),
}


def pode_aplicar(multa, transicao: Transicao) -> bool:
    regra = TABELA_TRANSICOES[transicao]
    if regra.somente_motorista and multa.responsabilidade != Responsabilidade.MOTORISTA:
        return False
    return str(getattr(multa, regra.campo) or "") in regra.origens


def aplicar_transicao(multa, transicao: Transicao, hoje: date | None = None) -> dict:
    """
    Retorna {campo: novo_valor} para a transição. Não grava nada.
    Levanta TransicaoInvalida se o estado atual não é origem válida.
    """
    regra = TABELA_TRANSICOES[transicao]
    if regra.somente_motorista and multa.responsabilidade != Responsabilidade.MOTORISTA:
        raise TransicaoInvalida("Indicação de real infrator só se aplica a multas de responsabilidade do motorista.")
    if not pode_aplicar(multa, transicao):
        raise TransicaoInvalida(regra.descricao)
    return {regra.campo: str(regra.destino(multa, hoje))}


def transicoes_disponiveis(multa) -> list[Transicao]:
    return [t for t in Transicao if pode_aplicar(multa, t)]
