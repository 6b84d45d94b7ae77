from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date

from django.db import transaction
from django.utils import timezone
from django.utils.text import slugify

from .choices import Responsabilidade, StatusBoleto, StatusIndicacao
from .models import Multa
from .painel import recalcular_multas
from .status import (
    STATUS_BOLETO_PROTEGIDOS,
    STATUS_INDICACAO_PROTEGIDOS,
    parse_data,
    parse_valor,
    status_boleto_inicial,
    status_indicacao_inicial,
)

logger = logging.getLogger(__name__)

# Cabeçalhos da exportação antiga (já em slug) -> campo do modelo.
COLUNAS = {
    "auto_infracao": "auto_infracao",
    "veiculo": "veiculo",
    "placa": "veiculo",
    "motorista": "motorista",
    "estado": "estado",
    "uf": "estado",
    "descricao": "descricao",
    "codigo_infracao": "codigo_infracao",
    "data_cometimento": "data_cometimento",
    "hora_cometimento": "hora_cometimento",
    "valor": "valor",
    "valor_boleto": "valor_boleto",
    "boleto": "boleto",
    "consulta": "consulta",
    "expiracao_boleto": "vencimento_boleto",
    "vencimento_boleto": "vencimento_boleto",
    "comprovante_pagamento": "comprovante_pagamento",
    "status_boleto": "status_boleto",
    "resposabilidade": "responsabilidade",
    "responsabilidade": "responsabilidade",
    "expiracao_indicacao": "expiracao_indicacao",
    "status_indicacao": "status_indicacao",
    "notas": "notas",
}

CAMPOS_DATA = {"data_cometimento", "vencimento_boleto", "expiracao_indicacao"}
CAMPOS_VALOR = {"valor", "valor_boleto"}


@dataclass
class ResumoImportacao:
    criadas: int = 0
    duplicadas: list[str] = field(default_factory=list)
    invalidas: list[str] = field(default_factory=list)


def _cabecalho(nome: str) -> str:
    return slugify((nome or "").strip()).replace("-", "_")


def _codigo(value: str) -> int | None:
    digits = "".join(ch for ch in (value or "") if ch.isdigit())
    return int(digits) if digits else None


def multa_da_linha(linha: dict, hoje: date | None = None) -> Multa:
    """
    Monta (sem gravar) uma Multa a partir de uma linha já com cabeçalhos
    normalizados. Status manuais da base antiga são mantidos; o resto é derivado.
    """
    hoje = hoje or timezone.localdate()
    dados: dict = {}
    for coluna, valor in linha.items():
        campo = COLUNAS.get(_cabecalho(coluna))
        if campo:
            dados[campo] = (valor or "").strip()

    multa = Multa(
        auto_infracao=dados.get("auto_infracao", ""),
        veiculo=dados.get("veiculo", "").upper(),
        motorista=dados.get("motorista", ""),
        estado=dados.get("estado", "").upper()[:2],
        descricao=dados.get("descricao", ""),
        codigo_infracao=_codigo(dados.get("codigo_infracao", "")),
        hora_cometimento=dados.get("hora_cometimento", "")[:5],
        boleto=dados.get("boleto", ""),
        consulta=dados.get("consulta", ""),
        comprovante_pagamento=dados.get("comprovante_pagamento", ""),
        notas=dados.get("notas", ""),
        responsabilidade=Responsabilidade.normalizar(dados.get("responsabilidade")),
    )
    for campo in CAMPOS_DATA:
        setattr(multa, campo, parse_data(dados.get(campo)))
    for campo in CAMPOS_VALOR:
        setattr(multa, campo, parse_valor(dados.get(campo)))

    legado_boleto = StatusBoleto.from_text(dados.get("status_boleto"))
    if legado_boleto in STATUS_BOLETO_PROTEGIDOS:
        multa.status_boleto = legado_boleto
    else:
        multa.status_boleto = status_boleto_inicial(multa, hoje)

    if multa.responsabilidade != Responsabilidade.MOTORISTA:
        multa.expiracao_indicacao = None
        multa.status_indicacao = ""
    else:
        legado_indicacao = StatusIndicacao.from_text(dados.get("status_indicacao"))
        if legado_indicacao in STATUS_INDICACAO_PROTEGIDOS:
            multa.status_indicacao = legado_indicacao
        else:
            multa.status_indicacao = status_indicacao_inicial(multa, hoje) or ""
    return multa


def importar_csv(conteudo: str, *, delimitador: str | None = None, hoje: date | None = None, gravar: bool = True) -> ResumoImportacao:
    """
    Importa a exportação CSV antiga. Autos já cadastrados (ou repetidos no
    próprio arquivo) são ignorados; linhas sem auto/placa vão para `invalidas`.
    """
    texto = conteudo.lstrip("\ufeff")
    if delimitador is None:
        amostra = texto[:4096]
        delimitador = ";" if amostra.count(";") > amostra.count(",") else ","

    resumo = ResumoImportacao()
    existentes = set(Multa.objects.values_list("auto_infracao", flat=True))
    novas: list[Multa] = []

    for numero, linha in enumerate(csv.DictReader(io.StringIO(texto), delimiter=delimitador), start=2):
        multa = multa_da_linha(linha, hoje)
        if not multa.auto_infracao or not multa.veiculo:
            resumo.invalidas.append(f"linha {numero}")
            continue
        if multa.auto_infracao in existentes:
            resumo.duplicadas.append(multa.auto_infracao)
            continue
        existentes.add(multa.auto_infracao)
        novas.append(multa)

    if gravar and novas:
        with transaction.atomic():
            Multa.objects.bulk_create(novas)
    resumo.criadas = len(novas)
    logger.info(
        "Importação de multas: %s novas, %s duplicadas, %s inválidas",
        resumo.criadas,
        len(resumo.duplicadas),
        len(resumo.invalidas),
    )
    return resumo


def recalcular_e_gravar(hoje: date | None = None, *, gravar: bool = True) -> int:
    """Persiste o recálculo protegido (Vencido/Indicar Expirado por passagem de tempo)."""
    hoje = hoje or timezone.localdate()
    multas = list(Multa.objects.order_by("id"))
    antes = {m.pk: (m.status_boleto, m.status_indicacao) for m in multas}
    recalcular_multas(multas, hoje)
    alteradas = [m for m in multas if antes[m.pk] != (m.status_boleto, m.status_indicacao)]

    if gravar and alteradas:
        with transaction.atomic():
            Multa.objects.bulk_update(alteradas, ["status_boleto", "status_indicacao"])
    logger.info("Recálculo de status: %s multa(s) alterada(s)", len(alteradas))
    return len(alteradas)
