from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import psycopg2
import streamlit as st
from psycopg2.extras import RealDictCursor
from supabase import Client, create_client

from eprosys.config import Settings, get_settings
from eprosys.errors import DataStoreError

logger = logging.getLogger(__name__)

# proteção simples: só estas tabelas passam pelo gateway
ALLOWED_TABLES = {"faqs", "pendencias", "acessos", "authors", "speds"}


@st.cache_resource
def get_client() -> Client:
    """
    Cliente Supabase único por processo.
    cache_resource evita recriar o cliente a cada rerun do Streamlit.
    """
    url, key = get_settings().require_supabase()
    return create_client(url, key)


def get_conn(settings: Optional[Settings] = None):
    """
    Conexão direta com o PostgreSQL (DATABASE_URL). Usada pelos scripts de tools/,
    o painel em si fala só com a API do Supabase.
    """
    settings = settings or get_settings()
    if not settings.database_url:
        raise DataStoreError("DATABASE_URL não configurada.")
    conn = psycopg2.connect(settings.database_url, cursor_factory=RealDictCursor)
    conn.autocommit = True
    return conn


def run_sql(conn, sql: str, params=None):
    """Executa SQL; se a query falhar faz rollback para não deixar a conexão presa."""
    try:
        with conn.cursor() as cur:
            cur.execute(sql, params or {})
            if cur.description:
                return cur.fetchall()
            return []
    except Exception:
        try:
            conn.rollback()
        except psycopg2.InterfaceError:
            logger.warning("rollback falhou: conexão já fechada")
        raise


def _check_table(table: str) -> None:
    if table not in ALLOWED_TABLES:
        raise ValueError(f"Tabela não permitida: {table}")


class SupabaseGateway:
    """CRUD mínimo sobre o PostgREST do Supabase; toda falha vira DataStoreError."""

    def __init__(self, client: Client):
        self.client = client

    def select(self, table: str, order_by: str, ascending: bool = False) -> list[dict]:
        _check_table(table)
        try:
            resp = self.client.table(table).select("*").order(order_by, desc=not ascending).execute()
        except Exception as exc:
            raise DataStoreError(f"Erro ao buscar {table}: {exc}") from exc
        return list(resp.data or [])

    def insert(self, table: str, record: dict) -> dict:
        _check_table(table)
        try:
            resp = self.client.table(table).insert(record).execute()
        except Exception as exc:
            raise DataStoreError(f"Erro ao inserir em {table}: {exc}") from exc
        if not resp.data:
            raise DataStoreError(f"Inserção em {table} não retornou a linha criada.")
        return resp.data[0]

    def update(self, table: str, row_id: Any, changes: dict) -> dict:
        _check_table(table)
        try:
            resp = self.client.table(table).update(changes).eq("id", row_id).execute()
        except Exception as exc:
            raise DataStoreError(f"Erro ao atualizar {table} #{row_id}: {exc}") from exc
        if not resp.data:
            raise DataStoreError(f"{table} #{row_id} não encontrado no servidor.")
        return resp.data[0]

    def delete(self, table: str, row_id: Any) -> None:
        _check_table(table)
        try:
            self.client.table(table).delete().eq("id", row_id).execute()
        except Exception as exc:
            raise DataStoreError(f"Erro ao remover {table} #{row_id}: {exc}") from exc

    def delete_all(self, table: str) -> None:
        _check_table(table)
        try:
            # PostgREST exige filtro no DELETE
            self.client.table(table).delete().neq("id", 0).execute()
        except Exception as exc:
            raise DataStoreError(f"Erro ao limpar {table}: {exc}") from exc

    def count(self, table: str) -> int:
        _check_table(table)
        try:
            resp = self.client.table(table).select("id", count="exact").limit(1).execute()
        except Exception as exc:
            raise DataStoreError(f"Erro ao contar {table}: {exc}") from exc
        return int(resp.count or 0)


@dataclass(frozen=True)
class TableHealth:
    name: str
    status: str  # "ok" | "error"
    count: Optional[int] = None
    error: Optional[str] = None


def check_tables(gateway: SupabaseGateway, tables: Iterable[str]) -> list[TableHealth]:
    """Verificação de saúde: conta linhas de cada tabela e reporta o erro de quem falhar."""
    results = []
    for name in tables:
        try:
            results.append(TableHealth(name=name, status="ok", count=gateway.count(name)))
        except DataStoreError as exc:
            logger.warning("health check falhou para %s: %s", name, exc)
            results.append(TableHealth(name=name, status="error", error=str(exc)))
    return results
