from django.contrib import admin

from .models import RegistroAtividade


@admin.register(RegistroAtividade)
class RegistroAtividadeAdmin(admin.ModelAdmin):
    list_display = ("criado_em", "usuario_nome", "usuario_papel", "acao", "entidade_tipo", "entidade_id")
    list_filter = ("acao", "usuario_papel", "criado_em")
    search_fields = ("usuario_id", "usuario_nome", "entidade_descricao")
    readonly_fields = [f.name for f in RegistroAtividade._meta.fields]

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
