from __future__ import annotations

import os
from pathlib import Path

TRUE_VALUES = {"1", "true", "t", "yes", "y", "on", "sim", "s"}


def load_dotenv_if_exists(base_dir: Path, filename: str = ".env") -> int:
    """
    Lê KEY=VALUE de base_dir/.env sem sobrescrever o que já está no ambiente.
    Aceita linhas com `export ` e comentários no fim da linha. Retorna quantas
    chaves foram aplicadas.
    """
    env_path = base_dir / filename
    if not env_path.exists():
        return 0

    aplicadas = 0
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export "):].strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = (part.strip() for part in line.split("=", 1))
        if value and value[0] in "\"'":
            value = value[1:].split(value[0], 1)[0]
        else:
            value = value.split(" #", 1)[0].strip()

        if key and key not in os.environ:
            os.environ[key] = value
            aplicadas += 1
    return aplicadas


# =========================
# Leitura tipada do ambiente
# =========================
def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return val.strip().lower() in TRUE_VALUES


def env_int(name: str, default: int) -> int:
    try:
        return int(os.environ[name].strip())
    except (KeyError, ValueError):
        return default


def env_list(name: str, default: list[str] | None = None) -> list[str]:
    val = os.getenv(name)
    if val is None:
        return list(default or [])
    return [item.strip() for item in val.split(",") if item.strip()]
