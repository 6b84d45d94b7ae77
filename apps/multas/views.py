from __future__ import annotations

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.http import Http404, HttpResponseForbidden
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from apps.accounts.session import sessao_da_requisicao
from apps.core.decorators import require_perm
from apps.core.rbac import ALL_ROLES, can, get_role, get_user_permissoes
from apps.core.services_auditoria import FILTRO_TODOS, formatar_acao, listar_atividades

from .choices import StatusBoleto
from .forms import MultaForm, PagamentoForm
from .painel import FILTRO_STATUS_TODOS, PainelMultas
from .transicoes import Transicao, transicoes_disponiveis

# Capacidade exigida por cada ação de status.
PERM_POR_TRANSICAO = {
    Transicao.MARCAR_PAGO: "multas.can_mark_as_paid",
    Transicao.DESMARCAR_PAGO: "multas.can_mark_as_paid",
    Transicao.MARCAR_CONCLUIDO: "multas.can_mark_as_complete",
    Transicao.DESFAZER_CONCLUSAO: "multas.can_mark_as_complete",
    Transicao.INDICAR: "multas.can_indicar",
    Transicao.DESFAZER_INDICACAO: "multas.can_indicar",
    Transicao.RECUSAR_INDICACAO: "multas.can_indicar",
}

ROTULO_TRANSICAO = {
    Transicao.MARCAR_PAGO: "Marcar como pago",
    Transicao.DESMARCAR_PAGO: "Desmarcar pagamento",
    Transicao.MARCAR_CONCLUIDO: "Marcar como concluído",
    Transicao.DESFAZER_CONCLUSAO: "Desfazer conclusão",
    Transicao.INDICAR: "Indicar real infrator",
    Transicao.DESFAZER_INDICACAO: "Desfazer indicação",
    Transicao.RECUSAR_INDICACAO: "Registrar recusa",
}

ROTULO_ABA = {
    "dashboard": "Dashboard",
    "recentes": "Recentes",
    "pendentes": "Pendentes",
    "disponiveis": "Disponíveis",
    "descontar": "Descontar",
    "concluidas": "Concluídas",
    "vencidas": "Vencidas",
    "vencimento": "Próximo vencimento",
    "todas": "Todas",
}


def _painel(request) -> PainelMultas:
    sessao = sessao_da_requisicao(request)
    papel = sessao.papel if sessao else get_role(request.user)
    painel = PainelMultas(papel, sessao=sessao)
    if not painel.carregar():
        messages.error(request, painel.erro)
    return painel


def _obter_ou_404(painel: PainelMultas, pk: int):
    multa = painel.obter(pk)
    if multa is None:
        raise Http404("Multa não encontrada.")
    return multa


def _voltar(request, default: str):
    destino = (request.POST.get("next") or request.GET.get("next") or "").strip()
    if destino and url_has_allowed_host_and_scheme(destino, allowed_hosts={request.get_host()}):
        return redirect(destino)
    return redirect(default)


def _acoes_permitidas(user, multa) -> list[dict]:
    return [
        {"value": t.value, "label": ROTULO_TRANSICAO[t]}
        for t in transicoes_disponiveis(multa)
        if can(user, PERM_POR_TRANSICAO[t])
    ]


@login_required
@require_perm("multas.view")
def dashboard(request):
    painel = _painel(request)
    aba = painel.aba_permitida(request.GET.get("aba") or "dashboard")
    q = (request.GET.get("q") or "").strip()
    status = (request.GET.get("status") or FILTRO_STATUS_TODOS).strip()

    contexto = {
        "title": "Gestão de Multas",
        "aba": aba,
        "abas": [{"key": k, "label": ROTULO_ABA[k]} for k in painel.abas],
        "contagem": painel.contagem_abas(),
        "q": q,
        "status": status,
        "status_choices": StatusBoleto.choices,
        "actions": [],
    }
    if can(request.user, "multas.can_create"):
        contexto["actions"].append(
            {"label": "Nova multa", "url": reverse("multas:create"), "icon": "fa-solid fa-plus", "variant": "btn-primary"}
        )

    if aba == "dashboard":
        contexto.update(
            {
                "stats": painel.estatisticas(),
                "por_mes": sorted(painel.por_mes().items(), key=lambda kv: (kv[0][3:], kv[0][:2])),
                "por_veiculo": sorted(painel.por_veiculo().items(), key=lambda kv: -kv[1])[:10],
                "por_status": painel.por_status(),
                "por_responsabilidade": painel.por_responsabilidade(),
                "por_descricao": painel.por_descricao(limite=5),
                "proximo_vencimento": painel.proximo_vencimento if "vencimento" in painel.abas else None,
                "recentes": painel.recentes[:5] if "recentes" in painel.abas else None,
            }
        )
    else:
        items = painel.filtrar(painel.multas_para_aba(aba), q, status)
        contexto.update({"items": items, "totais": painel.totais(items)})

    return render(request, "multas/dashboard.html", contexto)


@login_required
@require_perm("multas.can_view_details")
def detail(request, pk: int):
    painel = _painel(request)
    multa = _obter_ou_404(painel, pk)
    return render(
        request,
        "multas/detail.html",
        {
            "title": f"Multa {multa.auto_infracao}",
            "subtitle": multa.veiculo,
            "multa": multa,
            "acoes": _acoes_permitidas(request.user, multa),
            "pagamento_form": PagamentoForm(),
            "actions": [],
        },
    )


@login_required
@require_perm("multas.can_create")
def create(request):
    form = MultaForm(request.POST or None)
    if request.method == "POST" and form.is_valid():
        painel = PainelMultas(get_role(request.user), sessao=sessao_da_requisicao(request))
        resultado = painel.criar(form.dados())
        if resultado:
            messages.success(request, resultado.mensagem)
            return redirect("multas:dashboard")
        form.add_error(None, resultado.mensagem)
    return render(
        request,
        "multas/form.html",
        {
            "title": "Nova multa",
            "actions": [],
            "form": form,
            "cancel_url": reverse("multas:dashboard"),
            "submit_label": "Salvar multa",
        },
    )


@login_required
@require_perm("multas.can_edit")
def update(request, pk: int):
    painel = _painel(request)
    multa = _obter_ou_404(painel, pk)
    form = MultaForm(request.POST or None, instance=multa)
    if request.method == "POST" and form.is_valid():
        resultado = painel.editar(pk, form.dados())
        if resultado:
            messages.success(request, resultado.mensagem)
            return redirect("multas:detail", pk=pk)
        form.add_error(None, resultado.mensagem)
    return render(
        request,
        "multas/form.html",
        {
            "title": f"Editar multa {multa.auto_infracao}",
            "actions": [],
            "form": form,
            "cancel_url": reverse("multas:detail", args=[pk]),
            "submit_label": "Salvar alterações",
        },
    )


@login_required
@require_perm("multas.can_delete")
def delete(request, pk: int):
    painel = _painel(request)
    multa = _obter_ou_404(painel, pk)
    if request.method == "POST":
        resultado = painel.excluir(pk)
        if resultado:
            messages.success(request, resultado.mensagem)
            return redirect("multas:dashboard")
        messages.error(request, resultado.mensagem)
    return render(
        request,
        "multas/confirm_delete.html",
        {
            "title": "Excluir multa",
            "multa": multa,
            "cancel_url": reverse("multas:detail", args=[pk]),
        },
    )


@login_required
@require_POST
@require_perm("multas.view")
def acao(request, pk: int, transicao: str):
    try:
        t = Transicao(transicao)
    except ValueError:
        raise Http404("Ação desconhecida.")
    if not can(request.user, PERM_POR_TRANSICAO[t]):
        return HttpResponseForbidden("403 — Você não tem permissão para esta ação.")

    painel = PainelMultas(get_role(request.user), sessao=sessao_da_requisicao(request))
    if t == Transicao.MARCAR_PAGO:
        form = PagamentoForm(request.POST)
        if not form.is_valid():
            messages.error(request, "Link do comprovante inválido.")
            return _voltar(request, reverse("multas:detail", args=[pk]))
        resultado = painel.marcar_como_pago(pk, form.cleaned_data.get("comprovante_pagamento") or "")
    else:
        metodos = {
            Transicao.DESMARCAR_PAGO: painel.desmarcar_pagamento,
            Transicao.MARCAR_CONCLUIDO: painel.marcar_como_concluido,
            Transicao.DESFAZER_CONCLUSAO: painel.desfazer_conclusao,
            Transicao.INDICAR: painel.indicar_motorista,
            Transicao.DESFAZER_INDICACAO: painel.desfazer_indicacao,
            Transicao.RECUSAR_INDICACAO: painel.recusar_indicacao,
        }
        resultado = metodos[t](pk)

    if resultado:
        messages.success(request, resultado.mensagem)
    else:
        messages.error(request, resultado.mensagem)
    return _voltar(request, reverse("multas:detail", args=[pk]))


@login_required
@require_perm("multas.view")
def atividades(request):
    sessao = sessao_da_requisicao(request)
    pode_filtrar = get_user_permissoes(request.user).can_view_all_logs
    filtro_papel = (request.GET.get("papel") or FILTRO_TODOS).strip()
    filtro_usuario = (request.GET.get("usuario") or FILTRO_TODOS).strip()

    consulta = listar_atividades(
        sessao,
        filtro_papel=filtro_papel if pode_filtrar else None,
        filtro_usuario=filtro_usuario if pode_filtrar else None,
    )
    if consulta.erro:
        messages.error(request, consulta.erro)

    return render(
        request,
        "multas/atividades.html",
        {
            "title": "Registro de atividades",
            "registros": [{"registro": r, "acao_label": formatar_acao(r.acao)} for r in consulta.registros],
            "usuarios": consulta.usuarios,
            "papeis": ALL_ROLES,
            "pode_filtrar": pode_filtrar,
            "filtro_papel": filtro_papel,
            "filtro_usuario": filtro_usuario,
            "actions": [],
        },
    )
