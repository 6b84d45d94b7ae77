from __future__ import annotations

from decimal import Decimal

from django.db import models

from .choices import Responsabilidade, StatusBoleto, StatusIndicacao


class Multa(models.Model):
    StatusBoleto = StatusBoleto
    StatusIndicacao = StatusIndicacao
    Responsabilidade = Responsabilidade

    auto_infracao = models.CharField("Auto de infração", max_length=40, unique=True)
    veiculo = models.CharField("Veículo (placa)", max_length=12)
    motorista = models.CharField(max_length=120, blank=True, default="")
    estado = models.CharField("UF", max_length=2, blank=True, default="")
    descricao = models.CharField("Descrição", max_length=255, blank=True, default="")
    codigo_infracao = models.PositiveIntegerField("Código da infração", null=True, blank=True)
    data_cometimento = models.DateField("Data do cometimento", null=True, blank=True)
    hora_cometimento = models.CharField("Hora do cometimento", max_length=5, blank=True, default="")

    valor = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    valor_boleto = models.DecimalField("Valor do boleto", max_digits=12, decimal_places=2, default=Decimal("0"))

    boleto = models.URLField("Link do boleto", max_length=500, blank=True, default="")
    consulta = models.URLField("Link de consulta", max_length=500, blank=True, default="")
    vencimento_boleto = models.DateField("Vencimento do boleto", null=True, blank=True)
    comprovante_pagamento = models.URLField("Comprovante de pagamento", max_length=500, blank=True, default="")
    status_boleto = models.CharField(
        "Status do boleto",
        max_length=12,
        choices=StatusBoleto.choices,
        default=StatusBoleto.PENDENTE,
    )

    responsabilidade = models.CharField(
        max_length=15,
        choices=Responsabilidade.choices,
        default=Responsabilidade.EMPRESA,
    )
    expiracao_indicacao = models.DateField("Prazo de indicação", null=True, blank=True)
    status_indicacao = models.CharField(
        "Status da indicação",
        max_length=20,
        choices=StatusIndicacao.choices,
        blank=True,
        default="",
    )

    notas = models.TextField(blank=True, default="")

    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Multa"
        verbose_name_plural = "Multas"
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["status_boleto"], name="multa_status_boleto_idx"),
            models.Index(fields=["veiculo"], name="multa_veiculo_idx"),
            models.Index(fields=["responsabilidade", "status_indicacao"], name="multa_resp_indicacao_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.veiculo} - {self.auto_infracao}"

    @property
    def is_motorista(self) -> bool:
        return self.responsabilidade == Responsabilidade.MOTORISTA

    @property
    def descricao_curta(self) -> str:
        return f"{self.veiculo} - {self.auto_infracao}"
