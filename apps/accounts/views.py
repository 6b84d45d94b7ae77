from __future__ import annotations

from django.contrib.auth import login, logout
from django.contrib.auth.decorators import login_required
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_http_methods

from apps.core.models import RegistroAtividade
from apps.core.services_auditoria import registrar_atividade

from .forms import LoginForm
from .services import autenticar
from .session import SessaoUsuario, sessao_da_requisicao


def _destino(request) -> str:
    destino = (request.POST.get("next") or request.GET.get("next") or "").strip()
    if destino and url_has_allowed_host_and_scheme(destino, allowed_hosts={request.get_host()}):
        return destino
    return "multas:dashboard"


@require_http_methods(["GET", "POST"])
def login_view(request):
    if request.user.is_authenticated:
        return redirect("multas:dashboard")

    error = None
    form = LoginForm(request.POST or None)

    if request.method == "POST" and form.is_valid():
        user, sessao, error = autenticar(
            request,
            form.cleaned_data["usuario"],
            form.cleaned_data["senha"],
        )
        if user is not None:
            login(request, user)
            sessao.salvar(request)
            registrar_atividade(sessao, RegistroAtividade.Acao.LOGIN)
            return redirect(_destino(request))

    return render(
        request,
        "accounts/login.html",
        {"form": form, "error": error, "next": request.GET.get("next", "")},
    )


@login_required
def logout_view(request):
    sessao = sessao_da_requisicao(request)
    if sessao is not None:
        registrar_atividade(sessao, RegistroAtividade.Acao.LOGOUT)
    SessaoUsuario.limpar(request)
    logout(request)
    return redirect("accounts:login")
