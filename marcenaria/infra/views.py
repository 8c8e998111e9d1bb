# marcenaria/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_solicitacao_detalhe: solicitação + nome/categoria efetivos
  (do item referenciado, do item proposto ou 'Outros').

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
- Um conjunto de índices úteis também é criado, caso não existam.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        # -----------------------
        # Views (drop + create)
        # -----------------------
        c.executescript(
            """
            ---------------------------
            -- Solicitações com categoria efetiva
            ---------------------------
            DROP VIEW IF EXISTS vw_solicitacao_detalhe;
            CREATE VIEW vw_solicitacao_detalhe AS
            SELECT
                s.id,
                s.item_id,
                s.nome_proposto,
                s.categoria_proposta,
                s.quantidade,
                s.preco_unitario,
                s.observacao,
                s.solicitante_id,
                s.solicitante_nome,
                s.status,
                s.motivo_rejeicao,
                s.criado_em,
                s.atualizado_em,
                s.versao,
                date(s.criado_em) AS data_criacao,
                COALESCE(i.nome, s.nome_proposto)                  AS nome_efetivo,
                COALESCE(i.categoria, s.categoria_proposta, 'Outros') AS categoria_efetiva
            FROM solicitacao s
            LEFT JOIN item_estoque i ON i.id = s.item_id;
            """
        )

        # --------------------------------
        # Índices úteis (IF NOT EXISTS)
        # --------------------------------
        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_solicitacao_status      ON solicitacao(status);
            CREATE INDEX IF NOT EXISTS idx_solicitacao_solicitante ON solicitacao(solicitante_id);
            CREATE INDEX IF NOT EXISTS idx_solicitacao_criado      ON solicitacao(criado_em);
            CREATE INDEX IF NOT EXISTS idx_solicitacao_item        ON solicitacao(item_id);
            CREATE INDEX IF NOT EXISTS idx_auditoria_timestamp     ON auditoria(timestamp, id);
            CREATE INDEX IF NOT EXISTS idx_auditoria_usuario       ON auditoria(usuario_id);
            CREATE INDEX IF NOT EXISTS idx_item_categoria          ON item_estoque(categoria);
            """
        )
