# marcenaria/infra/db.py
"""
Utilidades de conexão SQLite.

O banco roda em modo WAL (ver ``migrations.apply_migrations``): leitores
não bloqueiam o COMMIT de quem escreve, então uma listagem preguiçosa pode
ficar aberta enquanto as transições acontecem.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from marcenaria.config import DEFAULTS
from marcenaria.domain.errors import Conflito


def _lock_ocupado(exc: sqlite3.OperationalError) -> bool:
    msg = str(exc).lower()
    return "locked" in msg or "busy" in msg


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Context manager para abrir conexão SQLite com:
    - foreign_keys ON
    - row_factory = sqlite3.Row
    - commit ao sair (rollback em caso de exceção)
    """
    conn = sqlite3.connect(db_path, timeout=DEFAULTS.lock_timeout_s)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def transaction(db_path: str, timeout: Optional[float] = None) -> Iterator[sqlite3.Connection]:
    """
    Transação de escrita serializada (BEGIN IMMEDIATE).

    Todo o bloco é uma unidade atômica: transição de estado, ajuste de
    estoque e registro de auditoria são confirmados juntos ou nenhum é.
    Se o lock de escrita não sair dentro de ``timeout`` segundos, no
    BEGIN ou no COMMIT, desfaz tudo e levanta ``Conflito``.
    """
    espera = DEFAULTS.lock_timeout_s if timeout is None else timeout
    conn = sqlite3.connect(db_path, timeout=espera, isolation_level=None)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        try:
            conn.execute("BEGIN IMMEDIATE;")
        except sqlite3.OperationalError as exc:
            if _lock_ocupado(exc):
                raise Conflito("Banco ocupado por outra transação; tente novamente.") from exc
            raise
        try:
            yield conn
        except Exception:
            conn.execute("ROLLBACK;")
            raise
        try:
            conn.execute("COMMIT;")
        except sqlite3.OperationalError as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK;")
            if _lock_ocupado(exc):
                raise Conflito("Banco ocupado por leitores; a alteração foi desfeita.") from exc
            raise
    finally:
        conn.close()
