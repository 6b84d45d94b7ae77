from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from django.utils import timezone

from .choices import Responsabilidade, StatusBoleto, StatusIndicacao


# Estados operacionais definidos por ação manual: o recálculo não mexe neles.
STATUS_BOLETO_PROTEGIDOS = frozenset(
    {StatusBoleto.CONCLUIDO, StatusBoleto.DESCONTAR, StatusBoleto.PAGO}
)
STATUS_INDICACAO_PROTEGIDOS = frozenset({StatusIndicacao.INDICADO, StatusIndicacao.RECUSADO})

_MILHAR_RE = re.compile(r"^\d{1,3}(\.\d{3})+$")
# Maior valor que cabe em DecimalField(max_digits=12, decimal_places=2).
VALOR_MAXIMO = Decimal("9999999999.99")


# =========================
# CONVERSÕES DE FRONTEIRA
# =========================
def parse_data(value) -> date | None:
    """
    Converte "DD/MM/AAAA" (ou date/datetime) para date.
    Qualquer coisa que não tenha exatamente 3 partes numéricas vira None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    partes = str(value).strip().split("/")
    if len(partes) != 3 or not all(p.strip().isdigit() for p in partes):
        return None
    dia, mes, ano = (int(p) for p in partes)
    try:
        return date(ano, mes, dia)
    except ValueError:
        return None


def parse_valor_estrito(value) -> Decimal | None:
    """
    "R$ 1.234,56" -> Decimal("1234.56"); vazio/None -> Decimal("0").
    Texto inválido, NaN/infinito ou fora de DecimalField(12, 2) -> None.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        valor = value
    elif isinstance(value, (int, float)):
        valor = Decimal(str(value))
    else:
        text = str(value).replace("R$", "").replace("\xa0", " ").strip().replace(" ", "")
        if not text:
            return Decimal("0")
        if "," in text:
            text = text.replace(".", "").replace(",", ".")
        elif _MILHAR_RE.match(text):
            text = text.replace(".", "")
        try:
            valor = Decimal(text)
        except InvalidOperation:
            return None

    if not valor.is_finite() or abs(valor) > VALOR_MAXIMO:
        return None
    return valor


def parse_valor(value) -> Decimal:
    """Como parse_valor_estrito, mas inválido vira Decimal("0")."""
    valor = parse_valor_estrito(value)
    return Decimal("0") if valor is None else valor


def formatar_valor(value) -> str:
    valor = parse_valor(value).quantize(Decimal("0.01"))
    sinal = "-" if valor < 0 else ""
    inteiro, _, centavos = f"{abs(valor):.2f}".partition(".")
    grupos = []
    while len(inteiro) > 3:
        grupos.insert(0, inteiro[-3:])
        inteiro = inteiro[:-3]
    grupos.insert(0, inteiro)
    return f"{sinal}R$ {'.'.join(grupos)},{centavos}"


def formatar_data(value) -> str:
    d = parse_data(value)
    return d.strftime("%d/%m/%Y") if d else ""


# =========================
# DERIVAÇÃO DE STATUS
# =========================
def calcular_status_boleto(
    *,
    pago: bool,
    concluido: bool,
    link_boleto: str,
    data_vencimento,
    hoje: date | None = None,
) -> StatusBoleto:
    """
    Ordem de prioridade (primeira regra que casar):
      Concluído > Pago > Vencido (vencimento < hoje) > Disponível (tem link) > Pendente
    Descontar nunca sai daqui: só via transição manual.
    """
    if concluido:
        return StatusBoleto.CONCLUIDO
    if pago:
        return StatusBoleto.PAGO

    hoje = hoje or timezone.localdate()
    vencimento = parse_data(data_vencimento)
    if vencimento and vencimento < hoje:
        return StatusBoleto.VENCIDO

    if (link_boleto or "").strip():
        return StatusBoleto.DISPONIVEL
    return StatusBoleto.PENDENTE


def calcular_status_indicacao(
    *,
    indicado: bool,
    data_expiracao,
    hoje: date | None = None,
) -> StatusIndicacao | None:
    """None = indicação não exigida. Recusado só via transição manual."""
    if indicado:
        return StatusIndicacao.INDICADO

    expiracao = parse_data(data_expiracao)
    if not expiracao:
        return None

    hoje = hoje or timezone.localdate()
    if expiracao < hoje:
        return StatusIndicacao.INDICAR_EXPIRADO
    return StatusIndicacao.FALTANDO_INDICAR


def status_boleto_inicial(multa, hoje: date | None = None) -> StatusBoleto:
    return calcular_status_boleto(
        pago=False,
        concluido=False,
        link_boleto=multa.boleto,
        data_vencimento=multa.vencimento_boleto,
        hoje=hoje,
    )


def status_indicacao_inicial(multa, hoje: date | None = None) -> StatusIndicacao | None:
    if multa.responsabilidade != Responsabilidade.MOTORISTA:
        return None
    return calcular_status_indicacao(
        indicado=False,
        data_expiracao=multa.expiracao_indicacao,
        hoje=hoje,
    )


# =========================
# RECÁLCULO (com guarda)
# =========================
def recalcular_status_boleto(multa, hoje: date | None = None) -> bool:
    """Atualiza multa.status_boleto em memória. Retorna True se mudou."""
    if multa.status_boleto in STATUS_BOLETO_PROTEGIDOS:
        return False
    novo = status_boleto_inicial(multa, hoje)
    if novo == multa.status_boleto:
        return False
    multa.status_boleto = novo
    return True


def recalcular_status_indicacao(multa, hoje: date | None = None) -> bool:
    if multa.responsabilidade != Responsabilidade.MOTORISTA:
        novo = ""
    elif multa.status_indicacao in STATUS_INDICACAO_PROTEGIDOS:
        return False
    else:
        novo = status_indicacao_inicial(multa, hoje) or ""
    if novo == multa.status_indicacao:
        return False
    multa.status_indicacao = novo
    return True
