from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

logger = logging.getLogger(__name__)

# Limites do bloqueio de login (contador no cache, por usuário+IP e por IP).
MAX_ATTEMPTS_PER_USER = max(1, int(getattr(settings, "LOGIN_MAX_ATTEMPTS_PER_USER", 5)))
MAX_ATTEMPTS_PER_IP = max(1, int(getattr(settings, "LOGIN_MAX_ATTEMPTS_PER_IP", 20)))
LOCK_MINUTES = max(1, int(getattr(settings, "LOGIN_LOCK_MINUTES", 15)))


def client_ip(request) -> str:
    return request.META.get("REMOTE_ADDR") or "0.0.0.0"


def _user_key(ip: str, usuario: str) -> str:
    return f"multas:login:{ip}:{(usuario or '').strip().lower()}"


def _ip_key(ip: str) -> str:
    return f"multas:login:ip:{ip}"


def _bloqueado(data: dict | None) -> bool:
    locked_until = (data or {}).get("locked_until")
    return bool(locked_until and locked_until > timezone.now())


def _contar_falha(key: str, limite: int) -> None:
    data = cache.get(key) or {"count": 0, "locked_until": None}
    data["count"] += 1
    if data["count"] >= limite and not data["locked_until"]:
        data["locked_until"] = timezone.now() + timedelta(minutes=LOCK_MINUTES)
        logger.warning("Login bloqueado por %s min (%s)", LOCK_MINUTES, key)
    cache.set(key, data, timeout=LOCK_MINUTES * 60)


def is_locked(ip: str, usuario: str) -> bool:
    return _bloqueado(cache.get(_user_key(ip, usuario))) or _bloqueado(cache.get(_ip_key(ip)))


def register_failure(ip: str, usuario: str) -> None:
    _contar_falha(_user_key(ip, usuario), MAX_ATTEMPTS_PER_USER)
    _contar_falha(_ip_key(ip), MAX_ATTEMPTS_PER_IP)


def reset(ip: str, usuario: str) -> None:
    # Sucesso zera só o contador do usuário; o do IP expira sozinho.
    cache.delete(_user_key(ip, usuario))
