from __future__ import annotations

import unicodedata

from django.db import models


def _normalize(text: str) -> str:
    raw = unicodedata.normalize("NFKD", (text or "").strip().lower())
    return "".join(ch for ch in raw if not unicodedata.combining(ch))


class _FromTextMixin:
    """
    Normaliza texto livre vindo da base legada ("Disponível", " motorista ")
    para o membro correspondente. Compara por valor e por rótulo, sem acento.
    """

    @classmethod
    def from_text(cls, text, default=None):
        if isinstance(text, cls):
            return text
        alvo = _normalize(str(text or "")).replace("_", " ")
        if not alvo:
            return default
        for member in cls:
            if alvo in {_normalize(member.value).replace("_", " "), _normalize(member.label)}:
                return member
        return default


class StatusBoleto(_FromTextMixin, models.TextChoices):
    PENDENTE = "PENDENTE", "Pendente"
    DISPONIVEL = "DISPONIVEL", "Disponível"
    PAGO = "PAGO", "Pago"
    VENCIDO = "VENCIDO", "Vencido"
    CONCLUIDO = "CONCLUIDO", "Concluído"
    DESCONTAR = "DESCONTAR", "Descontar"


class StatusIndicacao(_FromTextMixin, models.TextChoices):
    FALTANDO_INDICAR = "FALTANDO_INDICAR", "Faltando Indicar"
    INDICADO = "INDICADO", "Indicado"
    INDICAR_EXPIRADO = "INDICAR_EXPIRADO", "Indicar Expirado"
    RECUSADO = "RECUSADO", "Recusado"


class Responsabilidade(_FromTextMixin, models.TextChoices):
    EMPRESA = "EMPRESA", "Empresa"
    MOTORISTA = "MOTORISTA", "Motorista"
    NAO_INFORMADA = "NAO_INFORMADA", "Não informada"

    @classmethod
    def normalizar(cls, text) -> "Responsabilidade":
        return cls.from_text(text, default=cls.NAO_INFORMADA)
