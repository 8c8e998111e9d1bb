# marcenaria/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (usuario, item_estoque, solicitacao, auditoria)
V2: adiciona email/departamento em usuario e atualizado_em em solicitacao
O arquivo é colocado em journal_mode=WAL (persistente no banco).
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Usuários (identidade externa; o núcleo só lê o papel)
    """
    CREATE TABLE IF NOT EXISTS usuario (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL,
        papel TEXT NOT NULL DEFAULT 'OPERADOR'
    );
    """,
    # Itens de estoque (status não é persistido: é derivado na leitura)
    """
    CREATE TABLE IF NOT EXISTS item_estoque (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        sku TEXT NOT NULL UNIQUE,
        nome TEXT NOT NULL,
        categoria TEXT NOT NULL,
        unidade TEXT NOT NULL DEFAULT 'UN',
        preco_unitario REAL NOT NULL DEFAULT 0,
        qtd_atual REAL NOT NULL DEFAULT 0 CHECK (qtd_atual >= 0),
        qtd_minima REAL NOT NULL DEFAULT 0
    );
    """,
    # Solicitações de material
    # Exatamente um entre item_id e (nome_proposto, categoria_proposta).
    """
    CREATE TABLE IF NOT EXISTS solicitacao (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        item_id INTEGER,
        nome_proposto TEXT,
        categoria_proposta TEXT,
        quantidade REAL NOT NULL CHECK (quantidade > 0),
        preco_unitario REAL NOT NULL DEFAULT 0,
        observacao TEXT NOT NULL DEFAULT '',
        solicitante_id INTEGER NOT NULL,
        solicitante_nome TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'PENDENTE'
            CHECK (status IN ('PENDENTE', 'APROVADO', 'REJEITADO', 'COMPRADO')),
        motivo_rejeicao TEXT,
        criado_em TEXT NOT NULL,
        versao INTEGER NOT NULL DEFAULT 1,
        CHECK ((item_id IS NULL) <> (nome_proposto IS NULL)),
        CHECK ((status = 'REJEITADO') = (motivo_rejeicao IS NOT NULL)),
        FOREIGN KEY (item_id) REFERENCES item_estoque(id) ON DELETE RESTRICT
    );
    """,
    # Log de auditoria (somente inclusão)
    """
    CREATE TABLE IF NOT EXISTS auditoria (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        usuario_id INTEGER,
        usuario_nome TEXT NOT NULL,
        acao TEXT NOT NULL,
        descricao TEXT NOT NULL DEFAULT ''
    );
    """,
    # Bloqueia UPDATE/DELETE no log de auditoria
    """
    CREATE TRIGGER IF NOT EXISTS trg_auditoria_sem_update
    BEFORE UPDATE ON auditoria
    BEGIN
        SELECT RAISE(ABORT, 'auditoria e somente inclusao');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_auditoria_sem_delete
    BEFORE DELETE ON auditoria
    BEGIN
        SELECT RAISE(ABORT, 'auditoria e somente inclusao');
    END;
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    _ensure_column(conn, "usuario", "email", "email TEXT")
    _ensure_column(conn, "usuario", "departamento", "departamento TEXT")
    _ensure_column(conn, "solicitacao", "atualizado_em", "atualizado_em TEXT")


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        # WAL: leitores abertos não bloqueiam o COMMIT das transições
        conn.execute("PRAGMA journal_mode = WAL;")
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
