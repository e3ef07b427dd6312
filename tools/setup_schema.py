from dotenv import load_dotenv
load_dotenv()

import sys

from eprosys.db import get_conn, run_sql
from eprosys.errors import DataStoreError

DDL = {
    "faqs": """
        create table if not exists public.faqs (
          id bigint generated by default as identity primary key,
          title text not null,
          category text not null,
          description text not null default '',
          author text,
          images jsonb,
          created_at timestamptz not null default now()
        );
    """,
    "pendencias": """
        create table if not exists public.pendencias (
          id bigint generated by default as identity primary key,
          titulo text not null,
          descricao text not null default 'Sem descrição',
          status text not null default 'nao-concluido'
            check (status in ('nao-concluido', 'em-andamento', 'concluido')),
          urgente boolean not null default false,
          data timestamptz not null default now(),
          author text
        );
    """,
    "acessos": """
        create table if not exists public.acessos (
          id bigint generated by default as identity primary key,
          posto text not null,
          maquina text not null,
          usuario text not null,
          senha text not null,
          adquirente text,
          trabalho_andamento text,
          status_maquininha text,
          created_at timestamptz not null default now()
        );
    """,
    "authors": """
        create table if not exists public.authors (
          id bigint generated by default as identity primary key,
          name text not null unique,
          created_at timestamptz not null default now()
        );
    """,
    "speds": """
        create table if not exists public.speds (
          id bigint generated by default as identity primary key,
          date date not null,
          author text not null,
          count integer not null default 1 check (count >= 0),
          created_at timestamptz not null default now()
        );
    """,
}

PUBLISHED_SQL = """
select tablename
from pg_publication_tables
where pubname = 'supabase_realtime'
  and schemaname = 'public';
"""


def main():
    try:
        conn = get_conn()
    except DataStoreError as e:
        print(f"[ERRO] {e}")
        sys.exit(1)

    try:
        for table, ddl in DDL.items():
            run_sql(conn, ddl)
            print(f"[OK] Tabela {table} pronta.")

        # o realtime só publica mudanças das tabelas incluídas na publicação
        published = {r["tablename"] for r in run_sql(conn, PUBLISHED_SQL)}
        for table in DDL:
            if table in published:
                print(f"[OK] {table} já está no supabase_realtime.")
                continue
            run_sql(conn, f"alter publication supabase_realtime add table public.{table};")
            print(f"[OK] {table} adicionada ao supabase_realtime.")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
