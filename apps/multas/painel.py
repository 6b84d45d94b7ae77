from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from apps.core.rbac import ROLE_ADMIN, ROLE_FINANCEIRO, ROLE_RH

from . import services
from .choices import Responsabilidade, StatusBoleto, StatusIndicacao
from .models import Multa
from .status import parse_data, recalcular_status_boleto, recalcular_status_indicacao

logger = logging.getLogger(__name__)

ABAS = (
    "dashboard",
    "recentes",
    "pendentes",
    "disponiveis",
    "descontar",
    "concluidas",
    "vencidas",
    "vencimento",
    "todas",
)
# Menu de cada papel; aba fora do menu cai no dashboard.
ABAS_POR_PAPEL = {
    ROLE_ADMIN: ABAS,
    ROLE_FINANCEIRO: tuple(a for a in ABAS if a != "pendentes"),
    ROLE_RH: ("dashboard", "descontar", "concluidas", "todas"),
}
FILTRO_STATUS_TODOS = "todos"


def _dias_proximo_vencimento() -> int:
    return int(getattr(settings, "MULTAS_DIAS_PROXIMO_VENCIMENTO", 7))


def _limite_recentes() -> int:
    return int(getattr(settings, "MULTAS_LIMITE_RECENTES", 20))


def _soma(multas, campo: str) -> Decimal:
    return sum((getattr(m, campo) or Decimal("0") for m in multas), Decimal("0"))


def recalcular_multas(multas: list[Multa], hoje: date | None = None) -> list[Multa]:
    """
    Passo de recálculo feito a cada carga completa. Estados protegidos
    (Concluído/Descontar/Pago, Indicado/Recusado) ficam como estão.
    """
    hoje = hoje or timezone.localdate()
    for multa in multas:
        recalcular_status_boleto(multa, hoje)
        recalcular_status_indicacao(multa, hoje)
    return multas


@dataclass(frozen=True)
class EstatisticasPainel:
    total: int
    recentes: int
    pendentes: int
    disponiveis: int
    concluidos: int
    concluidos_motorista: int
    descontar: int
    vencidos: int
    proximo_vencimento: int
    faltando_indicar: int
    indicacao_expirada: int
    indicadas: int
    valor_total: Decimal
    valor_boleto_total: Decimal
    valor_pendente: Decimal
    valor_multa_vencimento: Decimal
    valor_boleto_vencimento: Decimal

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TotaisFiltrados:
    quantidade: int
    valor_multas: Decimal
    valor_boletos: Decimal


class PainelMultas:
    """
    Conjunto de multas da sessão + recortes derivados, por papel.
    A base é sempre recarregada por inteiro depois de cada ação bem-sucedida.
    """

    def __init__(self, papel: str | None, *, hoje: date | None = None, sessao=None):
        self.papel = (papel or "").strip().lower()
        self.sessao = sessao
        self._hoje = hoje
        self._todas: list[Multa] = []
        self.erro = ""
        self.carregado = False

    @property
    def hoje(self) -> date:
        return self._hoje or timezone.localdate()

    # =========================
    # CARGA
    # =========================
    def carregar(self) -> bool:
        try:
            multas = list(Multa.objects.order_by("id"))
        except DatabaseError:
            logger.exception("Erro ao carregar multas")
            self.erro = "Erro ao conectar com o banco de dados"
            return False
        self._todas = recalcular_multas(multas, self.hoje)
        self.erro = ""
        self.carregado = True
        return True

    def usar(self, multas: list[Multa]) -> "PainelMultas":
        """Carrega a partir de uma lista já buscada (importação, testes)."""
        self._todas = recalcular_multas(list(multas), self.hoje)
        self.carregado = True
        return self

    @property
    def multas(self) -> list[Multa]:
        if self.papel == ROLE_FINANCEIRO:
            return [m for m in self._todas if m.status_boleto != StatusBoleto.PENDENTE]
        return list(self._todas)

    def obter(self, pk: int) -> Multa | None:
        return next((m for m in self.multas if m.pk == pk), None)

    # =========================
    # RECORTES
    # =========================
    def _por_status(self, status) -> list[Multa]:
        return [m for m in self.multas if m.status_boleto == status]

    @property
    def pendentes(self) -> list[Multa]:
        return self._por_status(StatusBoleto.PENDENTE)

    @property
    def disponiveis(self) -> list[Multa]:
        return self._por_status(StatusBoleto.DISPONIVEL)

    @property
    def concluidas(self) -> list[Multa]:
        return self._por_status(StatusBoleto.CONCLUIDO)

    @property
    def concluidas_motorista(self) -> list[Multa]:
        return [m for m in self.concluidas if m.responsabilidade == Responsabilidade.MOTORISTA]

    @property
    def descontar(self) -> list[Multa]:
        return self._por_status(StatusBoleto.DESCONTAR)

    @property
    def vencidas(self) -> list[Multa]:
        return self._por_status(StatusBoleto.VENCIDO)

    @property
    def faltando_indicar(self) -> list[Multa]:
        return [m for m in self.multas if m.status_indicacao == StatusIndicacao.FALTANDO_INDICAR]

    @property
    def indicacao_expirada(self) -> list[Multa]:
        return [m for m in self.multas if m.status_indicacao == StatusIndicacao.INDICAR_EXPIRADO]

    @property
    def indicadas(self) -> list[Multa]:
        return [m for m in self.multas if m.status_indicacao == StatusIndicacao.INDICADO]

    @property
    def proximo_vencimento(self) -> list[Multa]:
        hoje = self.hoje
        janela = _dias_proximo_vencimento()
        itens = []
        for m in self.multas:
            if m.status_boleto not in (StatusBoleto.PENDENTE, StatusBoleto.DISPONIVEL):
                continue
            vencimento = parse_data(m.vencimento_boleto)
            if vencimento is None:
                continue
            if 0 <= (vencimento - hoje).days <= janela:
                itens.append((vencimento, m))
        itens.sort(key=lambda par: par[0])
        return [m for _, m in itens]

    @property
    def recentes(self) -> list[Multa]:
        return sorted(self.multas, key=lambda m: m.pk, reverse=True)[: _limite_recentes()]

    # =========================
    # ESTATÍSTICAS
    # =========================
    def estatisticas(self) -> EstatisticasPainel:
        multas = self.multas
        pendentes = self.pendentes
        disponiveis = self.disponiveis
        vencimento = self.proximo_vencimento
        return EstatisticasPainel(
            total=len(multas),
            recentes=min(len(multas), _limite_recentes()),
            pendentes=len(pendentes),
            disponiveis=len(disponiveis),
            concluidos=len(self.concluidas),
            concluidos_motorista=len(self.concluidas_motorista),
            descontar=len(self.descontar),
            vencidos=len(self.vencidas),
            proximo_vencimento=len(vencimento),
            faltando_indicar=len(self.faltando_indicar),
            indicacao_expirada=len(self.indicacao_expirada),
            indicadas=len(self.indicadas),
            valor_total=_soma(multas, "valor"),
            valor_boleto_total=_soma(disponiveis, "valor_boleto"),
            valor_pendente=_soma(pendentes, "valor_boleto"),
            valor_multa_vencimento=_soma(vencimento, "valor"),
            valor_boleto_vencimento=_soma(vencimento, "valor_boleto"),
        )

    # =========================
    # GRÁFICOS
    # =========================
    def por_mes(self) -> dict[str, int]:
        contagem: Counter = Counter()
        for m in self.multas:
            d = parse_data(m.data_cometimento)
            if d:
                contagem[d.strftime("%m/%Y")] += 1
        return dict(contagem)

    def por_veiculo(self) -> dict[str, int]:
        return dict(Counter(m.veiculo for m in self.multas if m.veiculo))

    def por_status(self) -> dict[str, int]:
        contagem: Counter = Counter()
        for m in self.multas:
            status = StatusBoleto.from_text(m.status_boleto)
            contagem[status.label if status else "Outro"] += 1
        return dict(contagem)

    def por_responsabilidade(self) -> dict[str, int]:
        return dict(Counter(Responsabilidade.normalizar(m.responsabilidade).label for m in self.multas))

    def por_descricao(self, limite: int | None = None) -> dict[str, int]:
        contagem = Counter(m.descricao for m in self.multas if m.descricao)
        return dict(contagem.most_common(limite))

    # =========================
    # ABAS
    # =========================
    def _todas_para_papel(self) -> list[Multa]:
        if self.papel == ROLE_RH:
            return [
                m
                for m in self.multas
                if m.status_boleto == StatusBoleto.DESCONTAR
                or (m.status_boleto == StatusBoleto.CONCLUIDO and m.responsabilidade == Responsabilidade.MOTORISTA)
            ]
        return self.multas

    def _concluidas_para_papel(self) -> list[Multa]:
        if self.papel == ROLE_RH:
            return self.concluidas_motorista
        return self.concluidas

    @property
    def abas(self) -> tuple[str, ...]:
        # Papel desconhecido recebe o menu mais restrito.
        return ABAS_POR_PAPEL.get(self.papel, ABAS_POR_PAPEL[ROLE_RH])

    def aba_permitida(self, aba: str) -> str:
        aba = (aba or "").strip()
        return aba if aba in self.abas else "dashboard"

    def multas_para_aba(self, aba: str) -> list[Multa]:
        seletores = {
            "recentes": lambda: self.recentes,
            "pendentes": lambda: self.pendentes,
            "disponiveis": lambda: self.disponiveis,
            "descontar": lambda: self.descontar,
            "concluidas": self._concluidas_para_papel,
            "vencidas": lambda: self.vencidas,
            "vencimento": lambda: self.proximo_vencimento,
            "todas": self._todas_para_papel,
        }
        return seletores.get(aba, lambda: self.multas)()

    def contagem_abas(self) -> dict[str, int]:
        stats = self.estatisticas()
        contagem = {
            "recentes": stats.recentes,
            "pendentes": stats.pendentes,
            "disponiveis": stats.disponiveis,
            "descontar": stats.descontar,
            "concluidas": stats.concluidos_motorista if self.papel == ROLE_RH else stats.concluidos,
            "vencidas": stats.vencidos,
            "vencimento": stats.proximo_vencimento,
            "todas": len(self._todas_para_papel()),
        }
        return {aba: n for aba, n in contagem.items() if aba in self.abas}

    # =========================
    # BUSCA
    # =========================
    @staticmethod
    def filtrar(multas, termo: str = "", status: str = FILTRO_STATUS_TODOS) -> list[Multa]:
        termo = (termo or "").strip().lower()
        status = (status or FILTRO_STATUS_TODOS).strip()
        alvo = None if status == FILTRO_STATUS_TODOS else StatusBoleto.from_text(status)

        out = []
        for m in multas:
            if alvo is not None and m.status_boleto != alvo:
                continue
            if termo:
                campos = (
                    m.veiculo,
                    m.motorista,
                    m.descricao,
                    m.auto_infracao,
                    str(m.codigo_infracao) if m.codigo_infracao is not None else "",
                )
                if not any(termo in (c or "").lower() for c in campos):
                    continue
            out.append(m)
        return out

    @staticmethod
    def totais(multas) -> TotaisFiltrados:
        multas = list(multas)
        return TotaisFiltrados(
            quantidade=len(multas),
            valor_multas=_soma(multas, "valor"),
            valor_boletos=_soma(multas, "valor_boleto"),
        )

    # =========================
    # AÇÕES (sempre com recarga completa no sucesso)
    # =========================
    def _executar(self, operacao, *args, **kwargs):
        resultado = operacao(*args, sessao=self.sessao, hoje=self._hoje, **kwargs)
        if resultado.ok:
            self.carregar()
        return resultado

    def criar(self, dados: dict):
        return self._executar(services.criar_multa, dados)

    def editar(self, pk: int, dados: dict):
        return self._executar(services.editar_multa, pk, dados)

    def excluir(self, pk: int):
        resultado = services.excluir_multa(pk, sessao=self.sessao)
        if resultado.ok:
            self.carregar()
        return resultado

    def marcar_como_pago(self, pk: int, comprovante_pagamento: str = ""):
        return self._executar(services.marcar_como_pago, pk, comprovante_pagamento)

    def desmarcar_pagamento(self, pk: int):
        return self._executar(services.desmarcar_pagamento, pk)

    def marcar_como_concluido(self, pk: int):
        return self._executar(services.marcar_como_concluido, pk)

    def desfazer_conclusao(self, pk: int):
        return self._executar(services.desfazer_conclusao, pk)

    def indicar_motorista(self, pk: int):
        return self._executar(services.indicar_motorista, pk)

    def desfazer_indicacao(self, pk: int):
        return self._executar(services.desfazer_indicacao, pk)

    def recusar_indicacao(self, pk: int):
        return self._executar(services.recusar_indicacao, pk)
