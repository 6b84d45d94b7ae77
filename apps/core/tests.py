from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError, OperationalError, ProgrammingError
from django.http import HttpResponse
from django.test import RequestFactory, SimpleTestCase, TestCase

from apps.accounts.models import Profile
from apps.accounts.session import SessaoUsuario
from apps.core.decorators import require_perm
from apps.core.models import RegistroAtividade
from apps.core.rbac import (
    ROLE_ADMIN,
    ROLE_FINANCEIRO,
    ROLE_RH,
    PERMISSION_NAMES,
    Permissoes,
    can,
    get_permissoes,
    get_role,
    get_user_permissoes,
)
from apps.core.services_auditoria import (
    formatar_acao,
    listar_atividades,
    registrar_atividade,
)


User = get_user_model()


def _make_user(username: str, role: str | None = None, *, ativo: bool = True):
    user = User.objects.create_user(username=username, password="123")
    if role is not None:
        Profile.objects.create(user=user, role=role, ativo=ativo)
    return user


def _sessao(usuario: str, papel: str, nome: str = "") -> SessaoUsuario:
    return SessaoUsuario(id=1, nome=nome or usuario.title(), usuario=usuario, papel=papel)


class PermissoesMatrixTestCase(SimpleTestCase):
    def test_admin_has_everything(self):
        perms = get_permissoes(ROLE_ADMIN)
        self.assertTrue(all(perms.as_dict().values()))

    def test_financeiro(self):
        perms = get_permissoes(ROLE_FINANCEIRO)
        self.assertTrue(perms.can_view_details)
        self.assertTrue(perms.can_access_boleto)
        self.assertTrue(perms.can_access_consulta)
        self.assertTrue(perms.can_mark_as_paid)
        self.assertFalse(perms.can_mark_as_complete)
        self.assertFalse(perms.can_edit)
        self.assertFalse(perms.can_delete)
        self.assertFalse(perms.can_create)
        self.assertFalse(perms.can_view_indicacao)
        self.assertFalse(perms.can_indicar)
        self.assertFalse(perms.can_view_all_logs)

    def test_rh(self):
        perms = get_permissoes(ROLE_RH)
        self.assertTrue(perms.can_view_details)
        self.assertTrue(perms.can_mark_as_complete)
        self.assertTrue(perms.can_view_indicacao)
        self.assertTrue(perms.can_indicar)
        self.assertFalse(perms.can_access_boleto)
        self.assertFalse(perms.can_access_consulta)
        self.assertFalse(perms.can_mark_as_paid)
        self.assertFalse(perms.can_edit)

    def test_unknown_role_falls_back_to_rh(self):
        self.assertEqual(get_permissoes("gerente"), get_permissoes(ROLE_RH))
        self.assertEqual(get_permissoes(None), get_permissoes(ROLE_RH))
        self.assertEqual(get_permissoes(" ADMIN "), get_permissoes(ROLE_ADMIN))

    def test_permission_names_match_dataclass(self):
        self.assertEqual(set(Permissoes().as_dict()), set(PERMISSION_NAMES))


class RoleResolutionTestCase(TestCase):
    def test_roles(self):
        self.assertEqual(get_role(_make_user("adm", ROLE_ADMIN)), ROLE_ADMIN)
        self.assertEqual(get_role(_make_user("fin", ROLE_FINANCEIRO)), ROLE_FINANCEIRO)
        self.assertIsNone(get_role(_make_user("inativo", ROLE_RH, ativo=False)))
        self.assertIsNone(get_role(_make_user("sem_perfil")))
        self.assertIsNone(get_role(AnonymousUser()))

    def test_user_without_role_has_no_permissions(self):
        self.assertEqual(get_user_permissoes(_make_user("nada")), Permissoes())

    def test_can(self):
        fin = _make_user("fin2", ROLE_FINANCEIRO)
        rh = _make_user("rh2", ROLE_RH)
        self.assertTrue(can(fin, "multas.view"))
        self.assertTrue(can(fin, "multas.can_mark_as_paid"))
        self.assertFalse(can(fin, "multas.can_indicar"))
        self.assertTrue(can(rh, "can_mark_as_complete"))
        self.assertFalse(can(rh, "multas.can_inexistente"))
        self.assertFalse(can(_make_user("x"), "multas.view"))


class RequirePermTestCase(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

        @require_perm("multas.can_edit")
        def view(request):
            return HttpResponse("ok")

        self.view = view

    def test_anonymous_redirects_to_login(self):
        request = self.factory.get("/multas/1/editar/")
        request.user = AnonymousUser()
        response = self.view(request)
        self.assertEqual(response.status_code, 302)
        self.assertIn("next=/multas/1/editar/", response["Location"])

    def test_without_capability_is_forbidden(self):
        request = self.factory.get("/")
        request.user = _make_user("rh3", ROLE_RH)
        self.assertEqual(self.view(request).status_code, 403)

    def test_with_capability_passes(self):
        request = self.factory.get("/")
        request.user = _make_user("adm3", ROLE_ADMIN)
        self.assertEqual(self.view(request).status_code, 200)


class RegistrarAtividadeTestCase(TestCase):
    def test_registers_entry(self):
        ok = registrar_atividade(
            _sessao("ana", ROLE_FINANCEIRO),
            RegistroAtividade.Acao.MARCAR_PAGO,
            entidade_id=10,
            entidade_descricao="ABC1234 - A1",
            detalhes={"valor": "130.16"},
        )
        self.assertTrue(ok)
        registro = RegistroAtividade.objects.get()
        self.assertEqual(registro.usuario_id, "ana")
        self.assertEqual(registro.usuario_papel, ROLE_FINANCEIRO)
        self.assertEqual(registro.entidade_tipo, "multa")
        self.assertEqual(registro.detalhes, {"valor": "130.16"})

    def test_without_session_is_noop(self):
        with self.assertLogs("apps.core.services_auditoria", level="WARNING"):
            self.assertFalse(registrar_atividade(None, RegistroAtividade.Acao.LOGIN))
        self.assertFalse(RegistroAtividade.objects.exists())

    def test_missing_table_is_warning_only(self):
        erro = ProgrammingError('relation "core_registroatividade" does not exist')
        with patch.object(RegistroAtividade.objects, "create", side_effect=erro):
            with self.assertLogs("apps.core.services_auditoria", level="WARNING") as logs:
                ok = registrar_atividade(_sessao("ana", ROLE_RH), RegistroAtividade.Acao.LOGIN)
        self.assertFalse(ok)
        self.assertTrue(all(r.levelname == "WARNING" for r in logs.records))

    def test_other_database_error_is_logged(self):
        with patch.object(RegistroAtividade.objects, "create", side_effect=DatabaseError("timeout")):
            with self.assertLogs("apps.core.services_auditoria", level="ERROR"):
                ok = registrar_atividade(_sessao("ana", ROLE_RH), RegistroAtividade.Acao.LOGIN)
        self.assertFalse(ok)

    def test_missing_column_is_not_missing_table(self):
        erro = ProgrammingError('column "detalhes" of relation "core_registroatividade" does not exist')
        with patch.object(RegistroAtividade.objects, "create", side_effect=erro):
            with self.assertLogs("apps.core.services_auditoria", level="ERROR"):
                ok = registrar_atividade(_sessao("ana", ROLE_RH), RegistroAtividade.Acao.LOGIN)
        self.assertFalse(ok)

    def test_sqlite_missing_table_is_warning_only(self):
        erro = OperationalError("no such table: core_registroatividade")
        with patch.object(RegistroAtividade.objects, "create", side_effect=erro):
            with self.assertLogs("apps.core.services_auditoria", level="WARNING") as logs:
                ok = registrar_atividade(_sessao("ana", ROLE_RH), RegistroAtividade.Acao.LOGIN)
        self.assertFalse(ok)
        self.assertTrue(all(r.levelname == "WARNING" for r in logs.records))


class ListarAtividadesTestCase(TestCase):
    def setUp(self):
        registrar_atividade(_sessao("ana", ROLE_FINANCEIRO), RegistroAtividade.Acao.MARCAR_PAGO, entidade_id=1)
        registrar_atividade(_sessao("bia", ROLE_RH), RegistroAtividade.Acao.MARCAR_CONCLUIDO, entidade_id=1)
        registrar_atividade(_sessao("caio", ROLE_ADMIN), RegistroAtividade.Acao.CRIAR_MULTA, entidade_id=2)

    def test_non_admin_only_sees_own_role(self):
        consulta = listar_atividades(_sessao("bia", ROLE_RH), filtro_papel="todos", filtro_usuario="ana")
        self.assertEqual([r.usuario_id for r in consulta.registros], ["bia"])
        self.assertEqual(consulta.usuarios, [])

    def test_admin_sees_all_newest_first(self):
        consulta = listar_atividades(_sessao("caio", ROLE_ADMIN))
        self.assertEqual([r.usuario_id for r in consulta.registros], ["caio", "bia", "ana"])
        self.assertEqual({u["usuario_id"] for u in consulta.usuarios}, {"ana", "bia", "caio"})

    def test_admin_filters(self):
        admin = _sessao("caio", ROLE_ADMIN)
        por_papel = listar_atividades(admin, filtro_papel=ROLE_FINANCEIRO)
        self.assertEqual([r.usuario_id for r in por_papel.registros], ["ana"])
        por_usuario = listar_atividades(admin, filtro_usuario="bia")
        self.assertEqual([r.usuario_id for r in por_usuario.registros], ["bia"])

    def test_limit(self):
        consulta = listar_atividades(_sessao("caio", ROLE_ADMIN), limite=2)
        self.assertEqual(len(consulta.registros), 2)

    def test_without_session_is_empty(self):
        consulta = listar_atividades(None)
        self.assertEqual(consulta.registros, [])

    def test_formatar_acao(self):
        self.assertEqual(formatar_acao("marcar_pago"), "Marcou como Pago")
        self.assertEqual(formatar_acao("outra"), "outra")
