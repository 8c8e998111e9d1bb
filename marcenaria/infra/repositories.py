# marcenaria/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- UsuarioRepo
- ItemRepo         (estoque: leitura com status derivado e ajuste atômico)
- SolicitacaoRepo  (persistência e compare-and-swap de status)
- AuditoriaRepo    (log somente inclusão)

Métodos de escrita aceitam ``conn`` opcional: quando informado, a operação
participa da transação do chamador; caso contrário abre a sua própria.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from marcenaria.config import DEFAULTS
from marcenaria.domain.errors import EntradaInvalida, EstoqueInsuficiente, NaoEncontrado
from marcenaria.domain.models import (
    FiltroAuditoria,
    FiltroSolicitacoes,
    ItemEstoque,
    ItemExistente,
    ItemProposto,
    Papel,
    RegistroAuditoria,
    Solicitacao,
    StatusSolicitacao,
    Usuario,
)
from marcenaria.domain.policies import com_status, status_solicitacao
from .db import transaction, connect


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return dict(row)
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


@contextmanager
def _usando(db_path: str, conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
    """Reaproveita a conexão do chamador ou abre uma transação própria."""
    if conn is not None:
        yield conn
        return
    with transaction(db_path) as c:
        yield c


def agora_iso(momento: Optional[datetime] = None) -> str:
    return (momento or datetime.now()).isoformat(timespec="microseconds")


def _parse_dt(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    return datetime.fromisoformat(s)


# -------------------------
# Usuário
# -------------------------

def _row_to_usuario(r: sqlite3.Row) -> Usuario:
    return Usuario(
        id=int(r["id"]),
        nome=r["nome"],
        papel=Papel.from_raw(r["papel"]),
        email=r["email"],
        departamento=r["departamento"],
    )


class UsuarioRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Dict[str, Any], conn: Optional[sqlite3.Connection] = None) -> Usuario:
        r = _as_dict(row)
        payload = {
            "nome": r.get("nome"),
            "papel": Papel.from_raw(r.get("papel")).value,
            "email": r.get("email"),
            "departamento": r.get("departamento"),
        }
        with _usando(self.db_path, conn) as c:
            cur = c.execute(
                """
                INSERT INTO usuario (nome, papel, email, departamento)
                VALUES (:nome, :papel, :email, :departamento)
                """,
                payload,
            )
            return self.get(cur.lastrowid, conn=c)

    def get(self, usuario_id: int, conn: Optional[sqlite3.Connection] = None) -> Usuario:
        sql = "SELECT id, nome, papel, email, departamento FROM usuario WHERE id = ?"
        if conn is not None:
            row = conn.execute(sql, (usuario_id,)).fetchone()
        else:
            with connect(self.db_path) as c:
                row = c.execute(sql, (usuario_id,)).fetchone()
        if row is None:
            raise NaoEncontrado(f"Usuário {usuario_id} não encontrado.", entidade="usuario", identificador=usuario_id)
        return _row_to_usuario(row)

    def get_all(self) -> List[Usuario]:
        with connect(self.db_path) as c:
            cur = c.execute("SELECT id, nome, papel, email, departamento FROM usuario ORDER BY id")
            return [_row_to_usuario(r) for r in cur.fetchall()]


# -------------------------
# Itens de estoque
# -------------------------

_ITEM_COLS = "id, sku, nome, categoria, unidade, preco_unitario, qtd_atual, qtd_minima"


def _row_to_item(r: sqlite3.Row) -> ItemEstoque:
    item = ItemEstoque(
        id=int(r["id"]),
        sku=r["sku"],
        nome=r["nome"],
        categoria=r["categoria"],
        unidade=r["unidade"],
        preco_unitario=float(r["preco_unitario"] or 0.0),
        qtd_atual=float(r["qtd_atual"] or 0.0),
        qtd_minima=float(r["qtd_minima"] or 0.0),
    )
    # status derivado em toda leitura; nunca vem do banco
    return com_status(item)


class ItemRepo:
    """Estoque de materiais.

    ``get_item``/``list_items`` recalculam o status a cada leitura e
    ``ajustar_quantidade`` é atômico: ou aplica o delta inteiro ou não
    altera nada.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert(self, rows: Iterable[Dict[str, Any]], conn: Optional[sqlite3.Connection] = None) -> List[ItemEstoque]:
        """Insere ou atualiza itens pelo SKU; a quantidade atual só é gravada na inclusão."""
        rows = [_as_dict(r) for r in rows]
        out: List[ItemEstoque] = []
        with _usando(self.db_path, conn) as c:
            for r in rows:
                payload = {
                    "sku": r.get("sku"),
                    "nome": r.get("nome"),
                    "categoria": r.get("categoria") or DEFAULTS.categoria_padrao,
                    "unidade": r.get("unidade") or "UN",
                    "preco_unitario": float(r.get("preco_unitario") or 0.0),
                    "qtd_atual": float(r.get("qtd_atual") or 0.0),
                    "qtd_minima": float(r.get("qtd_minima") or 0.0),
                }
                if payload["qtd_atual"] < 0:
                    raise EntradaInvalida("Quantidade atual não pode ser negativa.", entidade="item", campo="qtd_atual")
                c.execute(
                    """
                    INSERT INTO item_estoque
                        (sku, nome, categoria, unidade, preco_unitario, qtd_atual, qtd_minima)
                    VALUES
                        (:sku, :nome, :categoria, :unidade, :preco_unitario, :qtd_atual, :qtd_minima)
                    ON CONFLICT(sku) DO UPDATE SET
                        nome=excluded.nome,
                        categoria=excluded.categoria,
                        unidade=excluded.unidade,
                        preco_unitario=excluded.preco_unitario,
                        qtd_minima=excluded.qtd_minima
                    """,
                    payload,
                )
                row = c.execute(f"SELECT {_ITEM_COLS} FROM item_estoque WHERE sku = ?", (payload["sku"],)).fetchone()
                out.append(_row_to_item(row))
        return out

    def get_item(self, item_id: int, conn: Optional[sqlite3.Connection] = None) -> ItemEstoque:
        sql = f"SELECT {_ITEM_COLS} FROM item_estoque WHERE id = ?"
        if conn is not None:
            row = conn.execute(sql, (item_id,)).fetchone()
        else:
            with connect(self.db_path) as c:
                row = c.execute(sql, (item_id,)).fetchone()
        if row is None:
            raise NaoEncontrado(f"Item {item_id} não encontrado.", entidade="item", identificador=item_id)
        return _row_to_item(row)

    def list_items(self, categoria: Optional[str] = None) -> List[ItemEstoque]:
        """Itens em ordem de cadastro (id crescente)."""
        sql = f"SELECT {_ITEM_COLS} FROM item_estoque"
        params: Tuple[Any, ...] = ()
        if categoria:
            sql += " WHERE categoria = ?"
            params = (categoria,)
        sql += " ORDER BY id"
        with connect(self.db_path) as c:
            return [_row_to_item(r) for r in c.execute(sql, params).fetchall()]

    def categorias(self) -> List[str]:
        with connect(self.db_path) as c:
            cur = c.execute("SELECT categoria FROM item_estoque GROUP BY categoria ORDER BY MIN(id)")
            return [r[0] for r in cur.fetchall()]

    def ajustar_quantidade(
        self,
        item_id: int,
        delta: float,
        conn: Optional[sqlite3.Connection] = None,
    ) -> ItemEstoque:
        """Soma ``delta`` à quantidade atual e devolve o item com status recalculado.

        Raises:
            NaoEncontrado: id desconhecido.
            EstoqueInsuficiente: o resultado ficaria negativo (nada é alterado).
        """
        with _usando(self.db_path, conn) as c:
            atual = self.get_item(item_id, conn=c)
            novo = atual.qtd_atual + float(delta)
            if novo < 0:
                raise EstoqueInsuficiente(
                    f"Ajuste de {delta} deixaria o item {item_id} com {novo}.",
                    entidade="item",
                    identificador=item_id,
                    campo="qtd_atual",
                )
            cur = c.execute(
                "UPDATE item_estoque SET qtd_atual = qtd_atual + ? WHERE id = ? AND qtd_atual + ? >= 0",
                (float(delta), item_id, float(delta)),
            )
            if cur.rowcount != 1:
                raise EstoqueInsuficiente(
                    f"Ajuste de {delta} rejeitado para o item {item_id}.",
                    entidade="item",
                    identificador=item_id,
                    campo="qtd_atual",
                )
            return self.get_item(item_id, conn=c)

    def definir_minimo(self, item_id: int, qtd_minima: float, conn: Optional[sqlite3.Connection] = None) -> ItemEstoque:
        if qtd_minima is None or float(qtd_minima) < 0:
            raise EntradaInvalida("Estoque mínimo deve ser >= 0.", entidade="item", identificador=item_id, campo="qtd_minima")
        with _usando(self.db_path, conn) as c:
            cur = c.execute("UPDATE item_estoque SET qtd_minima = ? WHERE id = ?", (float(qtd_minima), item_id))
            if cur.rowcount != 1:
                raise NaoEncontrado(f"Item {item_id} não encontrado.", entidade="item", identificador=item_id)
            return self.get_item(item_id, conn=c)


# -------------------------
# Solicitações
# -------------------------

_SOL_COLS = (
    "id, item_id, nome_proposto, categoria_proposta, quantidade, preco_unitario, observacao, "
    "solicitante_id, solicitante_nome, status, motivo_rejeicao, criado_em, atualizado_em, versao"
)


def _row_to_solicitacao(r: sqlite3.Row) -> Solicitacao:
    if r["item_id"] is not None:
        alvo = ItemExistente(item_id=int(r["item_id"]))
    else:
        alvo = ItemProposto(nome=r["nome_proposto"], categoria=r["categoria_proposta"])
    return Solicitacao(
        id=int(r["id"]),
        alvo=alvo,
        quantidade=float(r["quantidade"]),
        preco_unitario=float(r["preco_unitario"] or 0.0),
        observacao=r["observacao"] or "",
        solicitante_id=int(r["solicitante_id"]),
        solicitante_nome=r["solicitante_nome"],
        status=StatusSolicitacao(r["status"]),
        criado_em=_parse_dt(r["criado_em"]),
        motivo_rejeicao=r["motivo_rejeicao"],
        versao=int(r["versao"]),
        atualizado_em=_parse_dt(r["atualizado_em"]),
    )


def _sql_filtro_solicitacoes(filtro: FiltroSolicitacoes) -> Tuple[str, List[Any]]:
    where: List[str] = []
    params: List[Any] = []
    if filtro.solicitante_id is not None:
        where.append("solicitante_id = ?")
        params.append(filtro.solicitante_id)
    if filtro.data_inicio:
        where.append("data_criacao >= ?")
        params.append(str(filtro.data_inicio)[:10])
    if filtro.data_fim:
        where.append("data_criacao <= ?")
        params.append(str(filtro.data_fim)[:10])
    if filtro.categoria:
        where.append("categoria_efetiva = ?")
        params.append(filtro.categoria)
    if filtro.status is not None:
        where.append("status = ?")
        params.append(status_solicitacao(filtro.status).value)
    sql = f"SELECT {_SOL_COLS} FROM vw_solicitacao_detalhe"
    if where:
        sql += " WHERE " + " AND ".join(where)
    # histórico: mais recente primeiro, empate por id decrescente
    sql += " ORDER BY criado_em DESC, id DESC"
    return sql, params


class SolicitacaoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Dict[str, Any], conn: Optional[sqlite3.Connection] = None) -> Solicitacao:
        r = _as_dict(row)
        with _usando(self.db_path, conn) as c:
            cur = c.execute(
                """
                INSERT INTO solicitacao
                    (item_id, nome_proposto, categoria_proposta, quantidade, preco_unitario,
                     observacao, solicitante_id, solicitante_nome, status, criado_em, atualizado_em)
                VALUES
                    (:item_id, :nome_proposto, :categoria_proposta, :quantidade, :preco_unitario,
                     :observacao, :solicitante_id, :solicitante_nome, :status, :criado_em, :criado_em)
                """,
                r,
            )
            return self.get(cur.lastrowid, conn=c)

    def get(self, solicitacao_id: int, conn: Optional[sqlite3.Connection] = None) -> Solicitacao:
        sql = f"SELECT {_SOL_COLS} FROM solicitacao WHERE id = ?"
        if conn is not None:
            row = conn.execute(sql, (solicitacao_id,)).fetchone()
        else:
            with connect(self.db_path) as c:
                row = c.execute(sql, (solicitacao_id,)).fetchone()
        if row is None:
            raise NaoEncontrado(
                f"Solicitação {solicitacao_id} não encontrada.",
                entidade="solicitacao",
                identificador=solicitacao_id,
            )
        return _row_to_solicitacao(row)

    def transicionar(
        self,
        solicitacao_id: int,
        de: StatusSolicitacao,
        para: StatusSolicitacao,
        versao: int,
        conn: sqlite3.Connection,
        motivo_rejeicao: Optional[str] = None,
    ) -> bool:
        """Compare-and-swap de status; False se outro escritor chegou antes."""
        cur = conn.execute(
            """
            UPDATE solicitacao
               SET status = ?, motivo_rejeicao = ?, versao = versao + 1, atualizado_em = ?
             WHERE id = ? AND status = ? AND versao = ?
            """,
            (para.value, motivo_rejeicao, agora_iso(), solicitacao_id, de.value, versao),
        )
        return cur.rowcount == 1

    def iter_filtrado(self, filtro: Optional[FiltroSolicitacoes] = None) -> Iterator[Solicitacao]:
        """Percorre as solicitações sob demanda, em lotes de ``fetchmany``."""
        sql, params = _sql_filtro_solicitacoes(filtro or FiltroSolicitacoes())
        with connect(self.db_path) as c:
            cur = c.execute(sql, params)
            while True:
                rows = cur.fetchmany(DEFAULTS.tamanho_lote_leitura)
                if not rows:
                    break
                for r in rows:
                    yield _row_to_solicitacao(r)

    def itens_com_status(self, status: StatusSolicitacao) -> Set[int]:
        """Ids de itens que têm ao menos uma solicitação no status informado."""
        with connect(self.db_path) as c:
            cur = c.execute(
                "SELECT DISTINCT item_id FROM solicitacao WHERE status = ? AND item_id IS NOT NULL",
                (status.value,),
            )
            return {int(r[0]) for r in cur.fetchall()}


# -------------------------
# Auditoria
# -------------------------

def _row_to_registro(r: sqlite3.Row) -> RegistroAuditoria:
    return RegistroAuditoria(
        id=int(r["id"]),
        timestamp=_parse_dt(r["timestamp"]),
        usuario_id=r["usuario_id"],
        usuario_nome=r["usuario_nome"],
        acao=r["acao"],
        descricao=r["descricao"],
    )


class AuditoriaRepo:
    """Log de auditoria: ``append`` é a única escrita (gatilhos bloqueiam UPDATE/DELETE)."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    @staticmethod
    def _proximo_timestamp(conn: sqlite3.Connection) -> str:
        # timestamps estritamente crescentes na ordem de inclusão
        momento = datetime.now()
        ultimo = conn.execute("SELECT MAX(timestamp) FROM auditoria").fetchone()[0]
        if ultimo:
            ultimo_dt = datetime.fromisoformat(ultimo)
            if momento <= ultimo_dt:
                momento = ultimo_dt + timedelta(microseconds=1)
        return agora_iso(momento)

    def append(
        self,
        usuario: Optional[Usuario],
        acao: str,
        descricao: str = "",
        conn: Optional[sqlite3.Connection] = None,
    ) -> RegistroAuditoria:
        if not acao or not str(acao).strip():
            raise EntradaInvalida("Ação de auditoria obrigatória.", entidade="auditoria", campo="acao")
        with _usando(self.db_path, conn) as c:
            ts = self._proximo_timestamp(c)
            cur = c.execute(
                """
                INSERT INTO auditoria (timestamp, usuario_id, usuario_nome, acao, descricao)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    ts,
                    usuario.id if usuario else None,
                    usuario.nome if usuario else "Sistema",
                    str(acao).strip(),
                    descricao or "",
                ),
            )
            row = c.execute(
                "SELECT id, timestamp, usuario_id, usuario_nome, acao, descricao FROM auditoria WHERE id = ?",
                (cur.lastrowid,),
            ).fetchone()
            return _row_to_registro(row)

    def query(self, filtro: Optional[FiltroAuditoria] = None) -> List[RegistroAuditoria]:
        """Registros do mais recente ao mais antigo (empate: id decrescente)."""
        f = filtro or FiltroAuditoria()
        where: List[str] = []
        params: List[Any] = []
        if f.data_inicio:
            where.append("substr(timestamp, 1, 10) >= ?")
            params.append(str(f.data_inicio)[:10])
        if f.data_fim:
            where.append("substr(timestamp, 1, 10) <= ?")
            params.append(str(f.data_fim)[:10])
        if f.usuario_id is not None:
            where.append("usuario_id = ?")
            params.append(f.usuario_id)
        sql = "SELECT id, timestamp, usuario_id, usuario_nome, acao, descricao FROM auditoria"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY timestamp DESC, id DESC"
        if f.limite:
            sql += " LIMIT ?"
            params.append(int(f.limite))
        with connect(self.db_path) as c:
            return [_row_to_registro(r) for r in c.execute(sql, params).fetchall()]
