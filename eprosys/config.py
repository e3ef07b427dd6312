from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import streamlit as st
from dotenv import load_dotenv

from eprosys.errors import ConfigError

# env var -> (seção, chave) em st.secrets
_SECRET_KEYS = {
    "SUPABASE_URL": ("supabase", "url"),
    "SUPABASE_ANON_KEY": ("supabase", "anon_key"),
    "SUPABASE_SERVICE_ROLE_KEY": ("supabase", "service_role_key"),
    "DATABASE_URL": ("database", "url"),
}

_TRUE = {"1", "true", "yes", "on", "sim"}
_FALSE = {"0", "false", "no", "off", "nao", "não"}


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str]
    supabase_anon_key: Optional[str]
    supabase_service_role_key: Optional[str]

    # Conexão direta com o PostgreSQL (só para tools/)
    database_url: Optional[str]

    enable_realtime: bool = True
    enable_polling: bool = True
    polling_interval: float = 30.0
    always_poll: bool = False
    activity_limit: int = 50
    log_level: str = "INFO"

    @property
    def supabase_key(self) -> Optional[str]:
        # o painel roda com a chave anônima; a service role é fallback para scripts
        return self.supabase_anon_key or self.supabase_service_role_key

    def require_supabase(self) -> tuple[str, str]:
        if not self.supabase_url:
            raise ConfigError(
                "SUPABASE_URL não configurada. Defina no .env ou em st.secrets['supabase']['url']."
            )
        if not self.supabase_key:
            raise ConfigError(
                "SUPABASE_ANON_KEY não configurada. Defina no .env ou em st.secrets['supabase']['anon_key']."
            )
        return self.supabase_url, self.supabase_key


def _secret(name: str) -> Optional[str]:
    section, key = _SECRET_KEYS[name]
    try:
        value = st.secrets[section][key]
    except (KeyError, FileNotFoundError):
        return None
    return str(value)


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    if v is None and name in _SECRET_KEYS:
        v = _secret(name)
    if v is None:
        v = default
    if v is None:
        return None
    v = v.strip()
    return v if v else None


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    key = raw.lower()
    if key in _TRUE:
        return True
    if key in _FALSE:
        return False
    raise ConfigError(f"{name} deve ser booleano (true/false), recebido: {raw!r}")


def _getnumber(name: str, default, cast):
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} inválido: {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} deve ser positivo, recebido: {raw!r}")
    return value


def get_settings() -> Settings:
    """
    Configuração centralizada: único lugar que lê variáveis de ambiente.
    - Carrega `.env` se existir (dev local)
    - Cai para st.secrets quando a variável não está no ambiente
    """
    load_dotenv(override=False)

    return Settings(
        supabase_url=_getenv("SUPABASE_URL"),
        supabase_anon_key=_getenv("SUPABASE_ANON_KEY"),
        supabase_service_role_key=_getenv("SUPABASE_SERVICE_ROLE_KEY"),
        database_url=_getenv("DATABASE_URL"),
        enable_realtime=_getbool("EPROSYS_ENABLE_REALTIME", True),
        enable_polling=_getbool("EPROSYS_ENABLE_POLLING", True),
        polling_interval=_getnumber("EPROSYS_POLLING_INTERVAL", 30.0, float),
        always_poll=_getbool("EPROSYS_ALWAYS_POLL", False),
        activity_limit=_getnumber("EPROSYS_ACTIVITY_LIMIT", 50, int),
        log_level=(_getenv("EPROSYS_LOG_LEVEL", "INFO") or "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(name)s: %(message)s",
    )
    # bibliotecas barulhentas
    for name in ("httpx", "httpcore", "websockets", "hpack"):
        logging.getLogger(name).setLevel(logging.WARNING)
