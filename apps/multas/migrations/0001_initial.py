from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Multa",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("auto_infracao", models.CharField(max_length=40, unique=True, verbose_name="Auto de infração")),
                ("veiculo", models.CharField(max_length=12, verbose_name="Veículo (placa)")),
                ("motorista", models.CharField(blank=True, default="", max_length=120)),
                ("estado", models.CharField(blank=True, default="", max_length=2, verbose_name="UF")),
                ("descricao", models.CharField(blank=True, default="", max_length=255, verbose_name="Descrição")),
                ("codigo_infracao", models.PositiveIntegerField(blank=True, null=True, verbose_name="Código da infração")),
                ("data_cometimento", models.DateField(blank=True, null=True, verbose_name="Data do cometimento")),
                ("hora_cometimento", models.CharField(blank=True, default="", max_length=5, verbose_name="Hora do cometimento")),
                ("valor", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                (
                    "valor_boleto",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12, verbose_name="Valor do boleto"),
                ),
                ("boleto", models.URLField(blank=True, default="", max_length=500, verbose_name="Link do boleto")),
                ("consulta", models.URLField(blank=True, default="", max_length=500, verbose_name="Link de consulta")),
                ("vencimento_boleto", models.DateField(blank=True, null=True, verbose_name="Vencimento do boleto")),
                (
                    "comprovante_pagamento",
                    models.URLField(blank=True, default="", max_length=500, verbose_name="Comprovante de pagamento"),
                ),
                (
                    "status_boleto",
                    models.CharField(
                        choices=[
                            ("PENDENTE", "Pendente"),
                            ("DISPONIVEL", "Disponível"),
                            ("PAGO", "Pago"),
                            ("VENCIDO", "Vencido"),
                            ("CONCLUIDO", "Concluído"),
                            ("DESCONTAR", "Descontar"),
                        ],
                        default="PENDENTE",
                        max_length=12,
                        verbose_name="Status do boleto",
                    ),
                ),
                (
                    "responsabilidade",
                    models.CharField(
                        choices=[("EMPRESA", "Empresa"), ("MOTORISTA", "Motorista"), ("NAO_INFORMADA", "Não informada")],
                        default="EMPRESA",
                        max_length=15,
                    ),
                ),
                ("expiracao_indicacao", models.DateField(blank=True, null=True, verbose_name="Prazo de indicação")),
                (
                    "status_indicacao",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("FALTANDO_INDICAR", "Faltando Indicar"),
                            ("INDICADO", "Indicado"),
                            ("INDICAR_EXPIRADO", "Indicar Expirado"),
                            ("RECUSADO", "Recusado"),
                        ],
                        default="",
                        max_length=20,
                        verbose_name="Status da indicação",
                    ),
                ),
                ("notas", models.TextField(blank=True, default="")),
                ("criado_em", models.DateTimeField(auto_now_add=True)),
                ("atualizado_em", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Multa",
                "verbose_name_plural": "Multas",
                "ordering": ["-id"],
                "indexes": [
                    models.Index(fields=["status_boleto"], name="multa_status_boleto_idx"),
                    models.Index(fields=["veiculo"], name="multa_veiculo_idx"),
                    models.Index(fields=["responsabilidade", "status_indicacao"], name="multa_resp_indicacao_idx"),
                ],
            },
        ),
    ]
