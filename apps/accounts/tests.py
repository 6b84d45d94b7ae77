from django.test import RequestFactory, TestCase
from django.core.cache import cache
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.sessions.backends.cache import SessionStore
from django.db import DatabaseError
from django.urls import reverse

from apps.accounts import security as login_security
from apps.accounts.models import Profile
from apps.accounts.services import MSG_BLOQUEIO, MSG_CONEXAO, MSG_CREDENCIAIS, autenticar
from apps.accounts.session import SESSION_KEY, SessaoUsuario, sessao_da_requisicao
from apps.core.models import RegistroAtividade


User = get_user_model()


def _make_user(username: str, role: str, password: str = "Senha@123", **extra):
    user = User.objects.create_user(username=username, password=password, **extra)
    Profile.objects.create(user=user, role=role, ativo=True)
    return user


class SessaoUsuarioTestCase(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def _request(self):
        request = self.factory.get("/")
        request.session = SessionStore()
        return request

    def test_from_user_uses_full_name_and_role(self):
        user = _make_user("ana", "financeiro", first_name="Ana", last_name="Souza")
        sessao = SessaoUsuario.from_user(user)
        self.assertEqual(sessao.nome, "Ana Souza")
        self.assertEqual(sessao.usuario, "ana")
        self.assertEqual(sessao.papel, "financeiro")

    def test_from_user_without_profile_is_none(self):
        user = User.objects.create_user(username="semperfil", password="x")
        self.assertIsNone(SessaoUsuario.from_user(user))

    def test_superuser_is_admin(self):
        user = User.objects.create_superuser(username="root", password="x", email="root@example.com")
        self.assertEqual(SessaoUsuario.from_user(user).papel, "admin")

    def test_salvar_carregar_limpar(self):
        request = self._request()
        sessao = SessaoUsuario(id=1, nome="Ana", usuario="ana", papel="rh")
        sessao.salvar(request)
        self.assertEqual(SessaoUsuario.carregar(request), sessao)

        SessaoUsuario.limpar(request)
        self.assertIsNone(SessaoUsuario.carregar(request))

    def test_corrupt_session_is_logged_out_and_discarded(self):
        request = self._request()
        request.session[SESSION_KEY] = {"id": "abc", "nome": "x"}
        self.assertIsNone(SessaoUsuario.carregar(request))
        self.assertNotIn(SESSION_KEY, request.session)

    def test_unknown_role_in_session_is_rejected(self):
        request = self._request()
        request.session[SESSION_KEY] = {"id": 1, "nome": "x", "usuario": "x", "papel": "gerente"}
        self.assertIsNone(SessaoUsuario.carregar(request))

    def test_sessao_da_requisicao_rebuilds_for_other_user(self):
        user = _make_user("bruno", "rh")
        request = self._request()
        request.user = user
        SessaoUsuario(id=user.pk + 100, nome="Outro", usuario="outro", papel="admin").salvar(request)

        sessao = sessao_da_requisicao(request)
        self.assertEqual(sessao.id, user.pk)
        self.assertEqual(sessao.papel, "rh")


class AutenticarTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.factory = RequestFactory()
        self.user = _make_user("carla", "admin")

    def tearDown(self):
        cache.clear()

    def test_success_returns_session(self):
        user, sessao, erro = autenticar(self.factory.post("/"), " Carla ", "Senha@123")
        self.assertEqual(user, self.user)
        self.assertEqual(sessao.papel, "admin")
        self.assertEqual(erro, "")

    def test_wrong_password(self):
        user, sessao, erro = autenticar(self.factory.post("/"), "carla", "errada")
        self.assertIsNone(user)
        self.assertIsNone(sessao)
        self.assertEqual(erro, MSG_CREDENCIAIS)

    def test_user_without_role_cannot_login(self):
        User.objects.create_user(username="orfao", password="Senha@123")
        _, sessao, erro = autenticar(self.factory.post("/"), "orfao", "Senha@123")
        self.assertIsNone(sessao)
        self.assertEqual(erro, MSG_CREDENCIAIS)

    def test_database_error_is_connection_message(self):
        with patch("apps.accounts.services.authenticate", side_effect=DatabaseError("down")):
            _, _, erro = autenticar(self.factory.post("/"), "carla", "Senha@123")
        self.assertEqual(erro, MSG_CONEXAO)

    def test_mixed_case_username_logs_in_with_any_case(self):
        maria = _make_user("MariaSilva", "rh")
        for handle in ("mariasilva", "MariaSilva", " MARIASILVA "):
            with self.subTest(handle=handle):
                user, sessao, erro = autenticar(self.factory.post("/"), handle, "Senha@123")
                self.assertEqual(user, maria)
                self.assertEqual(sessao.papel, "rh")
                self.assertEqual(erro, "")

    @patch.object(login_security, "MAX_ATTEMPTS_PER_USER", 2)
    @patch.object(login_security, "MAX_ATTEMPTS_PER_IP", 2)
    def test_lockout_ignores_handle_case(self):
        request = self.factory.post("/")
        autenticar(request, "Carla", "errada")
        autenticar(request, "CARLA", "errada")
        _, _, erro = autenticar(request, "carla", "Senha@123")
        self.assertEqual(erro, MSG_BLOQUEIO)

    @patch.object(login_security, "MAX_ATTEMPTS_PER_USER", 2)
    @patch.object(login_security, "MAX_ATTEMPTS_PER_IP", 2)
    def test_lockout_after_failed_attempts(self):
        request = self.factory.post("/")
        autenticar(request, "carla", "errada")
        autenticar(request, "carla", "errada")
        _, _, erro = autenticar(request, "carla", "Senha@123")
        self.assertEqual(erro, MSG_BLOQUEIO)


class LoginViewTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.user = _make_user("daniel", "financeiro", first_name="Daniel")

    def tearDown(self):
        cache.clear()

    def test_login_stores_session_and_logs_activity(self):
        response = self.client.post(reverse("accounts:login"), {"usuario": "daniel", "senha": "Senha@123"})
        self.assertRedirects(response, reverse("multas:dashboard"), fetch_redirect_response=False)
        self.assertEqual(self.client.session[SESSION_KEY]["papel"], "financeiro")
        self.assertTrue(
            RegistroAtividade.objects.filter(usuario_id="daniel", acao=RegistroAtividade.Acao.LOGIN).exists()
        )

    def test_login_invalid_shows_message(self):
        response = self.client.post(reverse("accounts:login"), {"usuario": "daniel", "senha": "errada"})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, MSG_CREDENCIAIS)

    def test_logout_clears_session_and_logs_activity(self):
        self.client.post(reverse("accounts:login"), {"usuario": "daniel", "senha": "Senha@123"})
        response = self.client.get(reverse("accounts:logout"))
        self.assertRedirects(response, reverse("accounts:login"), fetch_redirect_response=False)
        self.assertNotIn(SESSION_KEY, self.client.session)
        self.assertTrue(
            RegistroAtividade.objects.filter(usuario_id="daniel", acao=RegistroAtividade.Acao.LOGOUT).exists()
        )
