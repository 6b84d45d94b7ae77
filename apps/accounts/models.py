from __future__ import annotations

from django.conf import settings
from django.db import models

from apps.core.rbac import ROLE_ADMIN, ROLE_FINANCEIRO, ROLE_RH


class Profile(models.Model):
    class Role(models.TextChoices):
        ADMIN = ROLE_ADMIN, "Administrador"
        FINANCEIRO = ROLE_FINANCEIRO, "Financeiro"
        RH = ROLE_RH, "Recursos Humanos"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.RH)
    ativo = models.BooleanField(default=True)

    class Meta:
        verbose_name = "Perfil"
        verbose_name_plural = "Perfis"

    def __str__(self) -> str:
        return f"{self.user} ({self.role})"

    @property
    def nome(self) -> str:
        return (self.user.get_full_name() or self.user.username or "").strip()
