from django.contrib import admin

from .models import Multa


@admin.register(Multa)
class MultaAdmin(admin.ModelAdmin):
    list_display = (
        "auto_infracao",
        "veiculo",
        "motorista",
        "data_cometimento",
        "valor_boleto",
        "vencimento_boleto",
        "status_boleto",
        "responsabilidade",
        "status_indicacao",
    )
    list_filter = ("status_boleto", "responsabilidade", "status_indicacao", "estado")
    search_fields = ("auto_infracao", "veiculo", "motorista", "descricao")
    readonly_fields = ("criado_em", "atualizado_em")
