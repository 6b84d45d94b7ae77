from __future__ import annotations

from django.db import models


class RegistroAtividade(models.Model):
    class Acao(models.TextChoices):
        MARCAR_PAGO = "marcar_pago", "Marcou como Pago"
        DESMARCAR_PAGO = "desmarcar_pago", "Desmarcou Pagamento"
        MARCAR_CONCLUIDO = "marcar_concluido", "Marcou como Concluído"
        DESFAZER_CONCLUSAO = "desfazer_conclusao", "Desfez Conclusão"
        INDICAR_MOTORISTA = "indicar_motorista", "Indicou Real Infrator"
        DESFAZER_INDICACAO = "desfazer_indicacao", "Desfez Indicação"
        RECUSAR_INDICACAO = "recusar_indicacao", "Registrou Recusa de Indicação"
        CRIAR_MULTA = "criar_multa", "Criou Multa"
        EDITAR_MULTA = "editar_multa", "Editou Multa"
        EXCLUIR_MULTA = "excluir_multa", "Excluiu Multa"
        LOGIN = "login", "Fez Login"
        LOGOUT = "logout", "Fez Logout"

    usuario_id = models.CharField(max_length=150)
    usuario_nome = models.CharField(max_length=180)
    usuario_papel = models.CharField(max_length=20)
    acao = models.CharField(max_length=30, choices=Acao.choices)
    entidade_tipo = models.CharField(max_length=40, default="multa")
    entidade_id = models.BigIntegerField(null=True, blank=True)
    entidade_descricao = models.CharField(max_length=200, blank=True, default="")
    detalhes = models.JSONField(null=True, blank=True)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Registro de atividade"
        verbose_name_plural = "Registros de atividade"
        ordering = ["-criado_em", "-id"]
        indexes = [
            models.Index(fields=["usuario_papel", "criado_em"], name="atividade_papel_idx"),
            models.Index(fields=["usuario_id", "criado_em"], name="atividade_usuario_idx"),
            models.Index(fields=["entidade_tipo", "entidade_id"], name="atividade_entidade_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.usuario_nome}:{self.acao} • {self.entidade_tipo}#{self.entidade_id}"
