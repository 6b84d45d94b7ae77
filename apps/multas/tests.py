import tempfile
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from pathlib import Path
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone

from apps.accounts.models import Profile
from apps.accounts.session import SessaoUsuario
from apps.core.models import RegistroAtividade
from apps.multas import services
from apps.multas.choices import Responsabilidade, StatusBoleto, StatusIndicacao
from apps.multas.forms import MultaForm
from apps.multas.importacao import importar_csv
from apps.multas.models import Multa
from apps.multas.painel import PainelMultas, recalcular_multas
from apps.multas.status import (
    calcular_status_boleto,
    calcular_status_indicacao,
    formatar_valor,
    parse_data,
    parse_valor,
    recalcular_status_boleto,
    recalcular_status_indicacao,
)
from apps.multas.transicoes import (
    Transicao,
    TransicaoInvalida,
    aplicar_transicao,
    transicoes_disponiveis,
)


User = get_user_model()

HOJE = date(2026, 3, 10)


def _multa(**kwargs) -> Multa:
    dados = {
        "auto_infracao": f"A{Multa.objects.count() + 1:05d}",
        "veiculo": "ABC1D23",
        "motorista": "João",
        "descricao": "Excesso de velocidade",
        "valor": Decimal("130.16"),
        "valor_boleto": Decimal("104.13"),
        "responsabilidade": Responsabilidade.EMPRESA,
        "status_boleto": StatusBoleto.PENDENTE,
    }
    dados.update(kwargs)
    return Multa.objects.create(**dados)


def _sessao(papel: str = "admin", usuario: str = "admin") -> SessaoUsuario:
    return SessaoUsuario(id=1, nome=usuario.title(), usuario=usuario, papel=papel)


def _make_user(username: str, role: str):
    user = User.objects.create_user(username=username, password="123")
    Profile.objects.create(user=user, role=role, ativo=True)
    return user


# =========================
# CONVERSÕES
# =========================
class ConversoesTestCase(SimpleTestCase):
    def test_parse_valor(self):
        self.assertEqual(parse_valor("R$ 1.234,56"), Decimal("1234.56"))
        self.assertEqual(parse_valor("R$\xa0130,16"), Decimal("130.16"))
        self.assertEqual(parse_valor("1.234"), Decimal("1234"))
        self.assertEqual(parse_valor("88.38"), Decimal("88.38"))
        self.assertEqual(parse_valor(""), Decimal("0"))
        self.assertEqual(parse_valor(None), Decimal("0"))
        self.assertEqual(parse_valor("abc"), Decimal("0"))
        self.assertEqual(parse_valor("nan"), Decimal("0"))
        self.assertEqual(parse_valor("1e999"), Decimal("0"))
        self.assertEqual(parse_valor(Decimal("NaN")), Decimal("0"))
        self.assertEqual(parse_valor(float("inf")), Decimal("0"))

    def test_formatar_valor(self):
        self.assertEqual(formatar_valor(Decimal("1234.56")), "R$ 1.234,56")
        self.assertEqual(formatar_valor(Decimal("1234567")), "R$ 1.234.567,00")
        self.assertEqual(formatar_valor(None), "R$ 0,00")

    def test_parse_data(self):
        self.assertEqual(parse_data("05/03/2026"), date(2026, 3, 5))
        self.assertEqual(parse_data(date(2026, 3, 5)), date(2026, 3, 5))
        self.assertIsNone(parse_data(""))
        self.assertIsNone(parse_data("2026-03-05"))
        self.assertIsNone(parse_data("05/03"))
        self.assertIsNone(parse_data("aa/03/2026"))
        self.assertIsNone(parse_data("31/02/2026"))

    def test_from_text_normalizes_legacy_strings(self):
        self.assertEqual(StatusBoleto.from_text("Disponível"), StatusBoleto.DISPONIVEL)
        self.assertEqual(StatusBoleto.from_text("concluido"), StatusBoleto.CONCLUIDO)
        self.assertEqual(StatusIndicacao.from_text("Indicar Expirado"), StatusIndicacao.INDICAR_EXPIRADO)
        self.assertEqual(Responsabilidade.normalizar(" motorista "), Responsabilidade.MOTORISTA)
        self.assertEqual(Responsabilidade.normalizar("Terceiro"), Responsabilidade.NAO_INFORMADA)
        self.assertIsNone(StatusBoleto.from_text("xyz"))


# =========================
# MOTOR DE STATUS
# =========================
class StatusBoletoTestCase(SimpleTestCase):
    def _calc(self, **kwargs):
        base = {"pago": False, "concluido": False, "link_boleto": "", "data_vencimento": None, "hoje": HOJE}
        base.update(kwargs)
        return calcular_status_boleto(**base)

    def test_deterministic(self):
        args = {"link_boleto": "http://x", "data_vencimento": "01/04/2026"}
        self.assertEqual(self._calc(**args), self._calc(**args))

    def test_concluido_dominates(self):
        for pago in (True, False):
            for link in ("", "http://x"):
                for venc in (None, "01/01/2020", "01/01/2099"):
                    with self.subTest(pago=pago, link=link, venc=venc):
                        self.assertEqual(
                            self._calc(concluido=True, pago=pago, link_boleto=link, data_vencimento=venc),
                            StatusBoleto.CONCLUIDO,
                        )

    def test_pago_dominates_link_and_date(self):
        for link in ("", "http://x"):
            for venc in (None, "01/01/2020", "01/01/2099"):
                with self.subTest(link=link, venc=venc):
                    self.assertEqual(self._calc(pago=True, link_boleto=link, data_vencimento=venc), StatusBoleto.PAGO)

    def test_overdue_detection(self):
        self.assertEqual(self._calc(link_boleto="x", data_vencimento="01/01/2020"), StatusBoleto.VENCIDO)
        self.assertEqual(self._calc(link_boleto="x", data_vencimento="01/01/2099"), StatusBoleto.DISPONIVEL)

    def test_due_today_is_not_overdue(self):
        self.assertEqual(self._calc(link_boleto="x", data_vencimento=HOJE), StatusBoleto.DISPONIVEL)

    def test_unparseable_date_is_ignored(self):
        self.assertEqual(self._calc(link_boleto="x", data_vencimento="ontem"), StatusBoleto.DISPONIVEL)

    def test_blank_link_is_pending(self):
        self.assertEqual(self._calc(), StatusBoleto.PENDENTE)
        self.assertEqual(self._calc(link_boleto="   "), StatusBoleto.PENDENTE)


class StatusIndicacaoTestCase(SimpleTestCase):
    def test_indicado_dominates(self):
        for exp in (None, "01/01/2020", "01/01/2099"):
            self.assertEqual(
                calcular_status_indicacao(indicado=True, data_expiracao=exp, hoje=HOJE),
                StatusIndicacao.INDICADO,
            )

    def test_no_date_is_absent(self):
        self.assertIsNone(calcular_status_indicacao(indicado=False, data_expiracao="", hoje=HOJE))
        self.assertIsNone(calcular_status_indicacao(indicado=False, data_expiracao=None, hoje=HOJE))

    def test_expiry_boundary(self):
        calc = lambda d: calcular_status_indicacao(indicado=False, data_expiracao=d, hoje=HOJE)  # noqa: E731
        self.assertEqual(calc(HOJE), StatusIndicacao.FALTANDO_INDICAR)
        self.assertEqual(calc(HOJE - timedelta(days=1)), StatusIndicacao.INDICAR_EXPIRADO)
        self.assertEqual(calc(HOJE + timedelta(days=1)), StatusIndicacao.FALTANDO_INDICAR)


class RecalculoTestCase(SimpleTestCase):
    def test_protected_boleto_states_are_kept(self):
        for status in (StatusBoleto.CONCLUIDO, StatusBoleto.DESCONTAR, StatusBoleto.PAGO):
            multa = Multa(status_boleto=status, boleto="", vencimento_boleto=date(2020, 1, 1))
            self.assertFalse(recalcular_status_boleto(multa, HOJE))
            self.assertEqual(multa.status_boleto, status)

    def test_available_becomes_overdue(self):
        multa = Multa(status_boleto=StatusBoleto.DISPONIVEL, boleto="http://x", vencimento_boleto=HOJE - timedelta(days=1))
        self.assertTrue(recalcular_status_boleto(multa, HOJE))
        self.assertEqual(multa.status_boleto, StatusBoleto.VENCIDO)

    def test_indicado_and_recusado_are_kept(self):
        for status in (StatusIndicacao.INDICADO, StatusIndicacao.RECUSADO):
            multa = Multa(
                responsabilidade=Responsabilidade.MOTORISTA,
                status_indicacao=status,
                expiracao_indicacao=date(2020, 1, 1),
            )
            self.assertFalse(recalcular_status_indicacao(multa, HOJE))
            self.assertEqual(multa.status_indicacao, status)

    def test_non_driver_has_no_indication(self):
        multa = Multa(responsabilidade=Responsabilidade.EMPRESA, status_indicacao=StatusIndicacao.FALTANDO_INDICAR)
        self.assertTrue(recalcular_status_indicacao(multa, HOJE))
        self.assertEqual(multa.status_indicacao, "")

    def test_idempotent(self):
        multas = [
            Multa(pk=1, status_boleto=StatusBoleto.DISPONIVEL, boleto="x", vencimento_boleto=date(2020, 1, 1)),
            Multa(pk=2, status_boleto=StatusBoleto.PENDENTE, boleto="x", vencimento_boleto=date(2099, 1, 1)),
            Multa(pk=3, status_boleto=StatusBoleto.DESCONTAR, responsabilidade=Responsabilidade.MOTORISTA),
            Multa(
                pk=4,
                responsabilidade=Responsabilidade.MOTORISTA,
                expiracao_indicacao=date(2020, 1, 1),
                status_indicacao=StatusIndicacao.FALTANDO_INDICAR,
            ),
        ]
        recalcular_multas(multas, HOJE)
        primeiro = [(m.status_boleto, m.status_indicacao) for m in multas]
        recalcular_multas(multas, HOJE)
        self.assertEqual(primeiro, [(m.status_boleto, m.status_indicacao) for m in multas])


# =========================
# TRANSIÇÕES
# =========================
class TransicoesTestCase(SimpleTestCase):
    def _disponivel(self, responsabilidade):
        return Multa(
            status_boleto=StatusBoleto.DISPONIVEL,
            boleto="http://boleto",
            vencimento_boleto=HOJE + timedelta(days=10),
            responsabilidade=responsabilidade,
        )

    def test_mark_paid_branches_on_liability(self):
        esperado = {
            Responsabilidade.EMPRESA: StatusBoleto.CONCLUIDO,
            Responsabilidade.MOTORISTA: StatusBoleto.DESCONTAR,
            Responsabilidade.NAO_INFORMADA: StatusBoleto.PAGO,
        }
        for resp, status in esperado.items():
            with self.subTest(resp=resp):
                campos = aplicar_transicao(self._disponivel(resp), Transicao.MARCAR_PAGO, HOJE)
                self.assertEqual(campos, {"status_boleto": status})

    def test_mark_paid_requires_available(self):
        multa = self._disponivel(Responsabilidade.EMPRESA)
        multa.status_boleto = StatusBoleto.PENDENTE
        with self.assertRaises(TransicaoInvalida):
            aplicar_transicao(multa, Transicao.MARCAR_PAGO, HOJE)

    def test_undo_complete_branches_on_liability(self):
        multa = self._disponivel(Responsabilidade.EMPRESA)
        multa.status_boleto = StatusBoleto.CONCLUIDO
        self.assertEqual(
            aplicar_transicao(multa, Transicao.DESFAZER_CONCLUSAO, HOJE),
            {"status_boleto": StatusBoleto.DISPONIVEL},
        )

        multa.responsabilidade = Responsabilidade.MOTORISTA
        self.assertEqual(
            aplicar_transicao(multa, Transicao.DESFAZER_CONCLUSAO, HOJE),
            {"status_boleto": StatusBoleto.DESCONTAR},
        )

    def test_unmark_paid_recomputes(self):
        multa = self._disponivel(Responsabilidade.NAO_INFORMADA)
        multa.status_boleto = StatusBoleto.PAGO
        multa.vencimento_boleto = date(2020, 1, 1)
        self.assertEqual(
            aplicar_transicao(multa, Transicao.DESMARCAR_PAGO, HOJE),
            {"status_boleto": StatusBoleto.VENCIDO},
        )

    def test_mark_complete_only_from_descontar(self):
        multa = self._disponivel(Responsabilidade.MOTORISTA)
        with self.assertRaises(TransicaoInvalida):
            aplicar_transicao(multa, Transicao.MARCAR_CONCLUIDO, HOJE)
        multa.status_boleto = StatusBoleto.DESCONTAR
        self.assertEqual(
            aplicar_transicao(multa, Transicao.MARCAR_CONCLUIDO, HOJE),
            {"status_boleto": StatusBoleto.CONCLUIDO},
        )

    def test_indication_flow(self):
        multa = Multa(
            responsabilidade=Responsabilidade.MOTORISTA,
            status_indicacao=StatusIndicacao.FALTANDO_INDICAR,
            expiracao_indicacao=HOJE + timedelta(days=5),
        )
        self.assertEqual(
            aplicar_transicao(multa, Transicao.INDICAR, HOJE),
            {"status_indicacao": StatusIndicacao.INDICADO},
        )
        self.assertEqual(
            aplicar_transicao(multa, Transicao.RECUSAR_INDICACAO, HOJE),
            {"status_indicacao": StatusIndicacao.RECUSADO},
        )

        multa.status_indicacao = StatusIndicacao.RECUSADO
        self.assertEqual(
            aplicar_transicao(multa, Transicao.DESFAZER_INDICACAO, HOJE),
            {"status_indicacao": StatusIndicacao.FALTANDO_INDICAR},
        )

    def test_indicate_requires_driver_liability(self):
        multa = Multa(responsabilidade=Responsabilidade.EMPRESA, status_indicacao=StatusIndicacao.FALTANDO_INDICAR)
        with self.assertRaises(TransicaoInvalida):
            aplicar_transicao(multa, Transicao.INDICAR, HOJE)

    def test_available_transitions(self):
        multa = self._disponivel(Responsabilidade.MOTORISTA)
        multa.status_indicacao = StatusIndicacao.FALTANDO_INDICAR
        self.assertEqual(
            transicoes_disponiveis(multa),
            [Transicao.MARCAR_PAGO, Transicao.INDICAR, Transicao.RECUSAR_INDICACAO],
        )


# =========================
# SERVIÇOS
# =========================
class CriarMultaTestCase(TestCase):
    def _dados(self, **kwargs):
        dados = {
            "auto_infracao": "S000123",
            "veiculo": "QWE4R56",
            "motorista": "Maria",
            "valor": Decimal("195.23"),
            "valor_boleto": Decimal("156.18"),
            "boleto": "https://boletos.example.com/1",
            "vencimento_boleto": HOJE + timedelta(days=20),
            "responsabilidade": "Empresa",
            "expiracao_indicacao": HOJE + timedelta(days=15),
        }
        dados.update(kwargs)
        return dados

    def test_creates_with_derived_status_and_logs(self):
        resultado = services.criar_multa(self._dados(), sessao=_sessao(), hoje=HOJE)
        self.assertTrue(resultado)
        multa = Multa.objects.get(auto_infracao="S000123")
        self.assertEqual(multa.status_boleto, StatusBoleto.DISPONIVEL)
        self.assertEqual(multa.responsabilidade, Responsabilidade.EMPRESA)
        self.assertEqual(multa.status_indicacao, "")
        self.assertIsNone(multa.expiracao_indicacao)
        self.assertTrue(RegistroAtividade.objects.filter(acao=RegistroAtividade.Acao.CRIAR_MULTA, entidade_id=multa.pk).exists())

    def test_driver_liability_gets_indication_status(self):
        services.criar_multa(self._dados(responsabilidade="motorista"), hoje=HOJE)
        multa = Multa.objects.get(auto_infracao="S000123")
        self.assertEqual(multa.status_indicacao, StatusIndicacao.FALTANDO_INDICAR)

    def test_duplicate_auto_does_not_insert(self):
        _multa(auto_infracao="S000123")
        with patch.object(Multa, "save") as save:
            resultado = services.criar_multa(self._dados(), hoje=HOJE)
        self.assertFalse(resultado)
        self.assertIn("S000123", resultado.mensagem)
        save.assert_not_called()
        self.assertEqual(Multa.objects.filter(auto_infracao="S000123").count(), 1)

    def test_missing_auto(self):
        resultado = services.criar_multa(self._dados(auto_infracao="  "), hoje=HOJE)
        self.assertFalse(resultado)
        self.assertFalse(Multa.objects.exists())

    def test_database_error_is_failure(self):
        with patch.object(Multa, "save", side_effect=DatabaseError("down")):
            with self.assertLogs("apps.multas.services", level="ERROR"):
                resultado = services.criar_multa(self._dados(), hoje=HOJE)
        self.assertFalse(resultado)


class EditarMultaTestCase(TestCase):
    def test_full_replace_recomputes_boleto_status(self):
        multa = _multa(status_boleto=StatusBoleto.PENDENTE)
        dados = {
            "auto_infracao": multa.auto_infracao,
            "veiculo": "NEW0A00",
            "boleto": "https://boletos.example.com/2",
            "vencimento_boleto": HOJE - timedelta(days=2),
            "responsabilidade": Responsabilidade.EMPRESA,
        }
        resultado = services.editar_multa(multa.pk, dados, hoje=HOJE)
        self.assertTrue(resultado)
        multa.refresh_from_db()
        self.assertEqual(multa.veiculo, "NEW0A00")
        self.assertEqual(multa.status_boleto, StatusBoleto.VENCIDO)

    def test_keeps_manual_indication(self):
        multa = _multa(
            responsabilidade=Responsabilidade.MOTORISTA,
            expiracao_indicacao=HOJE + timedelta(days=3),
            status_indicacao=StatusIndicacao.INDICADO,
        )
        services.editar_multa(multa.pk, {"notas": "ok"}, hoje=HOJE)
        multa.refresh_from_db()
        self.assertEqual(multa.status_indicacao, StatusIndicacao.INDICADO)

    def test_liability_change_clears_indication(self):
        multa = _multa(
            responsabilidade=Responsabilidade.MOTORISTA,
            expiracao_indicacao=HOJE + timedelta(days=3),
            status_indicacao=StatusIndicacao.FALTANDO_INDICAR,
        )
        services.editar_multa(multa.pk, {"responsabilidade": "Empresa"}, hoje=HOJE)
        multa.refresh_from_db()
        self.assertEqual(multa.status_indicacao, "")
        self.assertIsNone(multa.expiracao_indicacao)

    def test_duplicate_auto_rejected(self):
        _multa(auto_infracao="DUP1")
        multa = _multa(auto_infracao="DUP2")
        resultado = services.editar_multa(multa.pk, {"auto_infracao": "DUP1"}, hoje=HOJE)
        self.assertFalse(resultado)
        multa.refresh_from_db()
        self.assertEqual(multa.auto_infracao, "DUP2")

    def test_not_found(self):
        self.assertFalse(services.editar_multa(999, {}, hoje=HOJE))


class ExcluirMultaTestCase(TestCase):
    def test_delete_is_permanent_and_logged(self):
        multa = _multa()
        resultado = services.excluir_multa(multa.pk, sessao=_sessao())
        self.assertTrue(resultado)
        self.assertFalse(Multa.objects.filter(pk=multa.pk).exists())
        self.assertTrue(RegistroAtividade.objects.filter(acao=RegistroAtividade.Acao.EXCLUIR_MULTA, entidade_id=multa.pk).exists())


class TransicaoServicoTestCase(TestCase):
    def _disponivel(self, resp=Responsabilidade.MOTORISTA):
        return _multa(
            status_boleto=StatusBoleto.DISPONIVEL,
            boleto="https://boletos.example.com/3",
            vencimento_boleto=HOJE + timedelta(days=10),
            responsabilidade=resp,
        )

    def test_mark_paid_persists_and_logs(self):
        multa = self._disponivel()
        resultado = services.marcar_como_pago(
            multa.pk,
            "https://comprovantes.example.com/1",
            sessao=_sessao("financeiro", "fin"),
            hoje=HOJE,
        )
        self.assertTrue(resultado)
        multa.refresh_from_db()
        self.assertEqual(multa.status_boleto, StatusBoleto.DESCONTAR)
        self.assertEqual(multa.comprovante_pagamento, "https://comprovantes.example.com/1")

        registro = RegistroAtividade.objects.get(acao=RegistroAtividade.Acao.MARCAR_PAGO)
        self.assertEqual(registro.usuario_id, "fin")
        self.assertEqual(registro.detalhes["motorista"], "João")

    def test_invalid_origin_changes_nothing(self):
        multa = _multa(status_boleto=StatusBoleto.PENDENTE)
        resultado = services.marcar_como_pago(multa.pk, hoje=HOJE)
        self.assertFalse(resultado)
        multa.refresh_from_db()
        self.assertEqual(multa.status_boleto, StatusBoleto.PENDENTE)
        self.assertFalse(RegistroAtividade.objects.exists())

    def test_database_error_is_failure_without_log_entry(self):
        multa = self._disponivel()
        with patch("apps.multas.services.Multa.objects.filter") as filtro:
            filtro.return_value.first.return_value = multa
            filtro.return_value.update.side_effect = DatabaseError("timeout")
            with self.assertLogs("apps.multas.services", level="ERROR"):
                resultado = services.marcar_como_pago(multa.pk, sessao=_sessao(), hoje=HOJE)
        self.assertFalse(resultado)
        self.assertFalse(RegistroAtividade.objects.exists())

    def test_activity_log_failure_does_not_fail_operation(self):
        multa = self._disponivel(Responsabilidade.EMPRESA)
        with patch("apps.multas.services.registrar_atividade", return_value=False):
            resultado = services.marcar_como_pago(multa.pk, sessao=_sessao(), hoje=HOJE)
        self.assertTrue(resultado)
        multa.refresh_from_db()
        self.assertEqual(multa.status_boleto, StatusBoleto.CONCLUIDO)

    def test_complete_and_undo(self):
        multa = _multa(status_boleto=StatusBoleto.DESCONTAR, responsabilidade=Responsabilidade.MOTORISTA)
        self.assertTrue(services.marcar_como_concluido(multa.pk, hoje=HOJE))
        multa.refresh_from_db()
        self.assertEqual(multa.status_boleto, StatusBoleto.CONCLUIDO)

        self.assertTrue(services.desfazer_conclusao(multa.pk, hoje=HOJE))
        multa.refresh_from_db()
        self.assertEqual(multa.status_boleto, StatusBoleto.DESCONTAR)

    def test_indicate_refuse_undo(self):
        multa = _multa(
            responsabilidade=Responsabilidade.MOTORISTA,
            expiracao_indicacao=HOJE + timedelta(days=3),
            status_indicacao=StatusIndicacao.FALTANDO_INDICAR,
        )
        self.assertTrue(services.recusar_indicacao(multa.pk, hoje=HOJE))
        multa.refresh_from_db()
        self.assertEqual(multa.status_indicacao, StatusIndicacao.RECUSADO)
        self.assertFalse(services.indicar_motorista(multa.pk, hoje=HOJE))

        self.assertTrue(services.desfazer_indicacao(multa.pk, hoje=HOJE))
        self.assertTrue(services.indicar_motorista(multa.pk, hoje=HOJE))
        multa.refresh_from_db()
        self.assertEqual(multa.status_indicacao, StatusIndicacao.INDICADO)


# =========================
# PAINEL
# =========================
class PainelMultasTestCase(TestCase):
    def setUp(self):
        self.pendente = _multa(status_boleto=StatusBoleto.PENDENTE, vencimento_boleto=HOJE + timedelta(days=5))
        self.disp_1 = _multa(
            status_boleto=StatusBoleto.DISPONIVEL,
            boleto="https://b/1",
            vencimento_boleto=HOJE + timedelta(days=1),
            veiculo="XYZ9A99",
        )
        self.disp_7 = _multa(
            status_boleto=StatusBoleto.DISPONIVEL,
            boleto="https://b/7",
            vencimento_boleto=HOJE + timedelta(days=7),
        )
        self.disp_8 = _multa(
            status_boleto=StatusBoleto.DISPONIVEL,
            boleto="https://b/8",
            vencimento_boleto=HOJE + timedelta(days=8),
        )
        self.descontar = _multa(status_boleto=StatusBoleto.DESCONTAR, responsabilidade=Responsabilidade.MOTORISTA)
        self.concl_mot = _multa(status_boleto=StatusBoleto.CONCLUIDO, responsabilidade=Responsabilidade.MOTORISTA)
        self.concl_emp = _multa(status_boleto=StatusBoleto.CONCLUIDO, responsabilidade=Responsabilidade.EMPRESA)
        self.atrasada = _multa(
            status_boleto=StatusBoleto.DISPONIVEL,
            boleto="https://b/x",
            vencimento_boleto=HOJE - timedelta(days=1),
            data_cometimento=date(2026, 1, 15),
        )

    def _painel(self, papel="admin"):
        painel = PainelMultas(papel, hoje=HOJE)
        self.assertTrue(painel.carregar())
        return painel

    def test_reload_recomputes_overdue(self):
        painel = self._painel()
        self.assertEqual([m.pk for m in painel.vencidas], [self.atrasada.pk])

    def test_due_soon_sorted_and_bounded(self):
        painel = self._painel()
        self.assertEqual(
            [m.pk for m in painel.proximo_vencimento],
            [self.disp_1.pk, self.pendente.pk, self.disp_7.pk],
        )

    def test_financeiro_never_sees_pending(self):
        painel = self._painel("financeiro")
        self.assertNotIn(self.pendente.pk, [m.pk for m in painel.multas])
        self.assertEqual(painel.pendentes, [])
        self.assertNotIn(self.pendente.pk, [m.pk for m in painel.proximo_vencimento])
        stats = painel.estatisticas()
        self.assertEqual(stats.pendentes, 0)
        self.assertEqual(stats.total, 7)
        for aba in ("recentes", "todas", "vencimento"):
            self.assertNotIn(self.pendente.pk, [m.pk for m in painel.multas_para_aba(aba)])

    def test_rh_narrowed_views(self):
        painel = self._painel("rh")
        self.assertEqual(
            {m.pk for m in painel.multas_para_aba("todas")},
            {self.descontar.pk, self.concl_mot.pk},
        )
        self.assertEqual([m.pk for m in painel.multas_para_aba("concluidas")], [self.concl_mot.pk])
        self.assertEqual(painel.contagem_abas()["concluidas"], 1)
        self.assertEqual(painel.estatisticas().total, 8)

    def test_menu_per_role(self):
        self.assertEqual(self._painel("rh").abas, ("dashboard", "descontar", "concluidas", "todas"))
        self.assertNotIn("pendentes", self._painel("financeiro").abas)
        self.assertIn("pendentes", self._painel("admin").abas)
        self.assertEqual(self._painel("rh").aba_permitida("pendentes"), "dashboard")
        self.assertEqual(self._painel("rh").aba_permitida("descontar"), "descontar")
        self.assertNotIn("pendentes", self._painel("rh").contagem_abas())

    def test_admin_sees_all_concluded(self):
        painel = self._painel()
        self.assertEqual({m.pk for m in painel.multas_para_aba("concluidas")}, {self.concl_mot.pk, self.concl_emp.pk})

    def test_statistics(self):
        stats = self._painel().estatisticas()
        self.assertEqual(stats.total, 8)
        self.assertEqual(stats.recentes, 8)
        self.assertEqual(stats.disponiveis, 3)
        self.assertEqual(stats.concluidos, 2)
        self.assertEqual(stats.concluidos_motorista, 1)
        self.assertEqual(stats.valor_total, Decimal("130.16") * 8)
        self.assertEqual(stats.valor_boleto_total, Decimal("104.13") * 3)
        self.assertEqual(stats.valor_boleto_vencimento, Decimal("104.13") * 3)

    def test_recent_is_descending_id_truncated(self):
        for _ in range(15):
            _multa()
        painel = self._painel()
        recentes = painel.recentes
        self.assertEqual(len(recentes), 20)
        self.assertEqual([m.pk for m in recentes], sorted((m.pk for m in painel.multas), reverse=True)[:20])
        self.assertEqual(painel.estatisticas().recentes, 20)

    def test_charts(self):
        painel = self._painel()
        self.assertEqual(painel.por_mes(), {"01/2026": 1})
        self.assertEqual(painel.por_veiculo()["XYZ9A99"], 1)
        self.assertEqual(painel.por_status()["Concluído"], 2)
        self.assertEqual(painel.por_responsabilidade()["Motorista"], 2)
        self.assertEqual(painel.por_descricao(limite=1), {"Excesso de velocidade": 8})

    def test_filter_and_totals(self):
        painel = self._painel()
        achadas = painel.filtrar(painel.multas, "xyz9", "todos")
        self.assertEqual([m.pk for m in achadas], [self.disp_1.pk])
        disponiveis = painel.filtrar(painel.multas, "", "Disponível")
        self.assertEqual(len(disponiveis), 3)
        totais = painel.totais(disponiveis)
        self.assertEqual(totais.quantidade, 3)
        self.assertEqual(totais.valor_boletos, Decimal("104.13") * 3)

    def test_load_failure_keeps_previous_set(self):
        painel = self._painel()
        antes = [m.pk for m in painel.multas]
        with patch("apps.multas.painel.Multa.objects.order_by", side_effect=DatabaseError("down")):
            with self.assertLogs("apps.multas.painel", level="ERROR"):
                self.assertFalse(painel.carregar())
        self.assertTrue(painel.erro)
        self.assertEqual([m.pk for m in painel.multas], antes)

    def test_successful_action_reloads(self):
        painel = self._painel()
        resultado = painel.marcar_como_pago(self.disp_7.pk)
        self.assertTrue(resultado)
        self.assertIn(self.disp_7.pk, [m.pk for m in painel.concluidas])

    def test_failed_action_does_not_reload(self):
        painel = self._painel()
        with patch.object(painel, "carregar") as carregar:
            resultado = painel.marcar_como_concluido(self.pendente.pk)
        self.assertFalse(resultado)
        carregar.assert_not_called()


# =========================
# FORM
# =========================
class MultaFormTestCase(TestCase):
    def test_accepts_brazilian_formats(self):
        form = MultaForm(
            data={
                "auto_infracao": " T123 ",
                "veiculo": "abc1d23",
                "estado": "ce",
                "valor": "R$ 1.234,56",
                "valor_boleto": "987,65",
                "data_cometimento": "05/03/2026",
                "hora_cometimento": "7:05",
                "vencimento_boleto": "20/03/2026",
                "responsabilidade": Responsabilidade.EMPRESA,
                "expiracao_indicacao": "25/03/2026",
            }
        )
        self.assertTrue(form.is_valid(), form.errors)
        dados = form.dados()
        self.assertEqual(dados["auto_infracao"], "T123")
        self.assertEqual(dados["veiculo"], "ABC1D23")
        self.assertEqual(dados["valor"], Decimal("1234.56"))
        self.assertEqual(dados["valor_boleto"], Decimal("987.65"))
        self.assertEqual(dados["hora_cometimento"], "07:05")
        self.assertEqual(dados["data_cometimento"], date(2026, 3, 5))
        self.assertIsNone(dados["expiracao_indicacao"])

    def test_rejects_invalid_time(self):
        form = MultaForm(data={"auto_infracao": "T1", "veiculo": "A", "hora_cometimento": "25:00", "responsabilidade": "EMPRESA"})
        self.assertFalse(form.is_valid())
        self.assertIn("hora_cometimento", form.errors)

    def test_rejects_non_finite_and_out_of_range_values(self):
        for valor in ("nan", "inf", "-Infinity", "1e999", "abc"):
            with self.subTest(valor=valor):
                form = MultaForm(data={"auto_infracao": "T1", "veiculo": "A", "valor": valor, "responsabilidade": "EMPRESA"})
                self.assertFalse(form.is_valid())
                self.assertEqual(form.errors["valor"], ["Valor inválido."])

    def test_blank_value_is_zero(self):
        form = MultaForm(data={"auto_infracao": "T1", "veiculo": "A", "valor": "", "responsabilidade": "EMPRESA"})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.dados()["valor"], Decimal("0.00"))


# =========================
# VIEWS
# =========================
class MultasViewsTestCase(TestCase):
    def setUp(self):
        self.admin = _make_user("admin", "admin")
        self.financeiro = _make_user("fin", "financeiro")
        self.rh = _make_user("rh", "rh")
        hoje = timezone.localdate()
        self.multa = _multa(
            status_boleto=StatusBoleto.DISPONIVEL,
            boleto="https://boletos.example.com/9",
            vencimento_boleto=hoje + timedelta(days=3),
            responsabilidade=Responsabilidade.MOTORISTA,
            expiracao_indicacao=hoje + timedelta(days=10),
            status_indicacao=StatusIndicacao.FALTANDO_INDICAR,
        )

    def test_anonymous_redirects_to_login(self):
        response = self.client.get(reverse("multas:dashboard"))
        self.assertEqual(response.status_code, 302)
        self.assertIn("/accounts/login/", response["Location"])

    def test_dashboard_for_each_role(self):
        for user in (self.admin, self.financeiro, self.rh):
            self.client.force_login(user)
            for aba in ("dashboard", "todas", "vencimento"):
                with self.subTest(user=user.username, aba=aba):
                    response = self.client.get(reverse("multas:dashboard"), {"aba": aba})
                    self.assertEqual(response.status_code, 200)

    def test_rh_tab_outside_menu_falls_back_to_dashboard(self):
        _multa(auto_infracao="PEND-RH1", status_boleto=StatusBoleto.PENDENTE)
        self.client.force_login(self.rh)
        for aba in ("pendentes", "vencidas", "recentes"):
            with self.subTest(aba=aba):
                response = self.client.get(reverse("multas:dashboard"), {"aba": aba})
                self.assertEqual(response.status_code, 200)
                self.assertEqual(response.context["aba"], "dashboard")
                self.assertNotIn("items", response.context)
                self.assertNotContains(response, "PEND-RH1")

    def test_admin_lists_pending_tab(self):
        _multa(auto_infracao="PEND-ADM1", status_boleto=StatusBoleto.PENDENTE)
        self.client.force_login(self.admin)
        response = self.client.get(reverse("multas:dashboard"), {"aba": "pendentes"})
        self.assertEqual(response.context["aba"], "pendentes")
        self.assertContains(response, "PEND-ADM1")

    def test_detail(self):
        self.client.force_login(self.financeiro)
        response = self.client.get(reverse("multas:detail", args=[self.multa.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Marcar como pago")
        self.assertNotContains(response, "Indicar real infrator")

    def test_financeiro_marks_paid(self):
        self.client.force_login(self.financeiro)
        response = self.client.post(reverse("multas:acao", args=[self.multa.pk, "marcar_pago"]))
        self.assertEqual(response.status_code, 302)
        self.multa.refresh_from_db()
        self.assertEqual(self.multa.status_boleto, StatusBoleto.DESCONTAR)
        registro = RegistroAtividade.objects.get(acao=RegistroAtividade.Acao.MARCAR_PAGO)
        self.assertEqual(registro.usuario_papel, "financeiro")

    def test_rh_cannot_mark_paid(self):
        self.client.force_login(self.rh)
        response = self.client.post(reverse("multas:acao", args=[self.multa.pk, "marcar_pago"]))
        self.assertEqual(response.status_code, 403)
        self.multa.refresh_from_db()
        self.assertEqual(self.multa.status_boleto, StatusBoleto.DISPONIVEL)

    def test_rh_indicates(self):
        self.client.force_login(self.rh)
        self.client.post(reverse("multas:acao", args=[self.multa.pk, "indicar_motorista"]))
        self.multa.refresh_from_db()
        self.assertEqual(self.multa.status_indicacao, StatusIndicacao.INDICADO)

    def test_unknown_action_is_404(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse("multas:acao", args=[self.multa.pk, "apagar_tudo"]))
        self.assertEqual(response.status_code, 404)

    def test_only_admin_creates(self):
        self.client.force_login(self.financeiro)
        self.assertEqual(self.client.get(reverse("multas:create")).status_code, 403)

        self.client.force_login(self.admin)
        response = self.client.post(
            reverse("multas:create"),
            {
                "auto_infracao": "NOVA1",
                "veiculo": "AAA1B11",
                "valor": "R$ 130,16",
                "valor_boleto": "104,13",
                "responsabilidade": Responsabilidade.EMPRESA,
            },
        )
        self.assertRedirects(response, reverse("multas:dashboard"), fetch_redirect_response=False)
        self.assertTrue(Multa.objects.filter(auto_infracao="NOVA1", status_boleto=StatusBoleto.PENDENTE).exists())

    def test_create_duplicate_shows_error(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            reverse("multas:create"),
            {"auto_infracao": self.multa.auto_infracao, "veiculo": "AAA1B11", "responsabilidade": "EMPRESA"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "deve ser único")

    def test_admin_deletes(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse("multas:delete", args=[self.multa.pk]))
        self.assertEqual(response.status_code, 302)
        self.assertFalse(Multa.objects.filter(pk=self.multa.pk).exists())

    def test_activity_view(self):
        self.client.force_login(self.admin)
        self.client.post(reverse("multas:acao", args=[self.multa.pk, "marcar_pago"]))
        response = self.client.get(reverse("multas:atividades"))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Marcou como Pago")


# =========================
# IMPORTAÇÃO / COMANDOS
# =========================
CSV_LEGADO = (
    "Auto_Infracao;Veiculo;Motorista;Data_Cometimento;Valor;Valor_Boleto;Boleto;Expiracao_Boleto;Status_Boleto;Resposabilidade;Expiracao_Indicacao\n"
    "E001;abc1d23;Ana;05/01/2026;R$ 130,16;R$ 104,13;https://b/1;20/03/2026;Disponível;Empresa;\n"
    "E002;def4g56;Bia;06/01/2026;R$ 1.234,56;R$ 987,65;;;Pendente;Motorista;01/03/2026\n"
    "E003;hij7k89;Caio;07/01/2026;R$ 88,38;R$ 70,70;https://b/3;01/02/2026;Pago;motorista;\n"
    "E001;abc1d23;Ana;05/01/2026;R$ 130,16;R$ 104,13;https://b/1;20/03/2026;Disponível;Empresa;\n"
    ";;;;;;;;;;\n"
)


class ImportacaoTestCase(TestCase):
    def test_import_legacy_csv(self):
        resumo = importar_csv(CSV_LEGADO, hoje=HOJE)
        self.assertEqual(resumo.criadas, 3)
        self.assertEqual(resumo.duplicadas, ["E001"])
        self.assertEqual(len(resumo.invalidas), 1)

        e1 = Multa.objects.get(auto_infracao="E001")
        self.assertEqual(e1.veiculo, "ABC1D23")
        self.assertEqual(e1.valor, Decimal("130.16"))
        self.assertEqual(e1.vencimento_boleto, date(2026, 3, 20))
        self.assertEqual(e1.status_boleto, StatusBoleto.DISPONIVEL)

        e2 = Multa.objects.get(auto_infracao="E002")
        self.assertEqual(e2.valor, Decimal("1234.56"))
        self.assertEqual(e2.status_indicacao, StatusIndicacao.INDICAR_EXPIRADO)

        e3 = Multa.objects.get(auto_infracao="E003")
        self.assertEqual(e3.status_boleto, StatusBoleto.PAGO)

    def test_existing_auto_is_skipped(self):
        _multa(auto_infracao="E002")
        resumo = importar_csv(CSV_LEGADO, hoje=HOJE)
        self.assertIn("E002", resumo.duplicadas)
        self.assertEqual(Multa.objects.filter(auto_infracao="E002").count(), 1)

    def test_dry_run_writes_nothing(self):
        resumo = importar_csv(CSV_LEGADO, hoje=HOJE, gravar=False)
        self.assertEqual(resumo.criadas, 3)
        self.assertFalse(Multa.objects.exists())


class ComandosTestCase(TestCase):
    def test_recalcular_status_persists_overdue(self):
        vencida = _multa(status_boleto=StatusBoleto.DISPONIVEL, boleto="https://b", vencimento_boleto=date(2026, 3, 1))
        paga = _multa(status_boleto=StatusBoleto.PAGO, boleto="https://b", vencimento_boleto=date(2026, 3, 1))
        out = StringIO()
        call_command("recalcular_status_multas", "--data", "10/03/2026", stdout=out)
        vencida.refresh_from_db()
        paga.refresh_from_db()
        self.assertEqual(vencida.status_boleto, StatusBoleto.VENCIDO)
        self.assertEqual(paga.status_boleto, StatusBoleto.PAGO)
        self.assertIn("1 multa(s)", out.getvalue())

    def test_importar_csv_command(self):
        with tempfile.TemporaryDirectory() as tmp:
            caminho = Path(tmp) / "multas.csv"
            caminho.write_text(CSV_LEGADO, encoding="utf-8")
            out = StringIO()
            call_command("importar_multas_csv", str(caminho), stdout=out)
        self.assertEqual(Multa.objects.count(), 3)
        self.assertIn("Importadas 3", out.getvalue())
