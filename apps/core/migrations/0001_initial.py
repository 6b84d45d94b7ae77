from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RegistroAtividade",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("usuario_id", models.CharField(max_length=150)),
                ("usuario_nome", models.CharField(max_length=180)),
                ("usuario_papel", models.CharField(max_length=20)),
                (
                    "acao",
                    models.CharField(
                        choices=[
                            ("marcar_pago", "Marcou como Pago"),
                            ("desmarcar_pago", "Desmarcou Pagamento"),
                            ("marcar_concluido", "Marcou como Concluído"),
                            ("desfazer_conclusao", "Desfez Conclusão"),
                            ("indicar_motorista", "Indicou Real Infrator"),
                            ("desfazer_indicacao", "Desfez Indicação"),
                            ("recusar_indicacao", "Registrou Recusa de Indicação"),
                            ("criar_multa", "Criou Multa"),
                            ("editar_multa", "Editou Multa"),
                            ("excluir_multa", "Excluiu Multa"),
                            ("login", "Fez Login"),
                            ("logout", "Fez Logout"),
                        ],
                        max_length=30,
                    ),
                ),
                ("entidade_tipo", models.CharField(default="multa", max_length=40)),
                ("entidade_id", models.BigIntegerField(blank=True, null=True)),
                ("entidade_descricao", models.CharField(blank=True, default="", max_length=200)),
                ("detalhes", models.JSONField(blank=True, null=True)),
                ("criado_em", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Registro de atividade",
                "verbose_name_plural": "Registros de atividade",
                "ordering": ["-criado_em", "-id"],
                "indexes": [
                    models.Index(fields=["usuario_papel", "criado_em"], name="atividade_papel_idx"),
                    models.Index(fields=["usuario_id", "criado_em"], name="atividade_usuario_idx"),
                    models.Index(fields=["entidade_tipo", "entidade_id"], name="atividade_entidade_idx"),
                ],
            },
        ),
    ]
