from __future__ import annotations

from django import forms


class LoginForm(forms.Form):
    usuario = forms.CharField(
        label="Usuário",
        max_length=150,
        widget=forms.TextInput(attrs={"class": "input", "placeholder": "Usuário", "autofocus": True}),
    )
    senha = forms.CharField(
        label="Senha",
        widget=forms.PasswordInput(attrs={"class": "input", "placeholder": "Senha"}),
    )
