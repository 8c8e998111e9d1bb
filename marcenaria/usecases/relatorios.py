# marcenaria/usecases/relatorios.py
"""
Relatórios gerenciais (consumidores somente leitura do núcleo):
- estoque atual com status de exibição (Normal / Crítico / Em Reposição)
- pedidos de produção (período, usuário, categoria, status)
- log de atividades (período, usuário)
- métricas do painel (valores financeiros só para quem pode vê-los)

Formatação de moeda, CSV e PDF ficam com quem consome estes dados.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from marcenaria.config import DB_PATH, DEFAULTS
from marcenaria.domain.autorizacao import Capacidade, exigir, pode
from marcenaria.domain.formulas import media_arredondada_para_cima, valor_total
from marcenaria.domain.models import (
    FiltroSolicitacoes,
    ItemProposto,
    StatusItem,
    StatusSolicitacao,
    Usuario,
)
from marcenaria.domain.policies import status_exibicao, status_solicitacao
from marcenaria.infra.repositories import ItemRepo, SolicitacaoRepo
from marcenaria.infra.logger import log_system_event
from marcenaria.usecases.auditoria import consultar_auditoria

TODAS = "Todas"


def _categoria_ou_none(categoria: Optional[str]) -> Optional[str]:
    if not categoria or categoria in (TODAS, "all"):
        return None
    return categoria


# ----------------------
# 1) Estoque atual
# ----------------------

def relatorio_estoque(
    usuario: Usuario,
    categoria: Optional[str] = None,
    status: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    """Itens com valor total e status de exibição.

    ``Em Reposição`` marca um item crítico que já tem solicitação
    APROVADO aguardando compra.
    """
    exigir(usuario, Capacidade.VER_FINANCEIRO)
    log_system_event("relatorio_estoque_start", {"categoria": categoria, "status": status})

    itens = ItemRepo(db_path).list_items(categoria=_categoria_ou_none(categoria))
    em_reposicao = SolicitacaoRepo(db_path).itens_com_status(StatusSolicitacao.APROVADO)

    out: List[Dict[str, Any]] = []
    for item in itens:
        exib = status_exibicao(item, item.id in em_reposicao)
        if status and status not in (TODAS, "all") and exib != status:
            continue
        out.append({
            "id": item.id,
            "sku": item.sku,
            "nome": item.nome,
            "categoria": item.categoria,
            "qtd_atual": item.qtd_atual,
            "qtd_minima": item.qtd_minima,
            "unidade": item.unidade,
            "preco_unitario": item.preco_unitario,
            "valor_total": valor_total(item.preco_unitario, item.qtd_atual),
            "status": exib,
        })
    log_system_event("relatorio_estoque_done", {"itens": len(out)})
    return out


# ----------------------
# 2) Pedidos de produção
# ----------------------

def relatorio_pedidos(
    usuario: Usuario,
    data_inicio: Optional[str] = None,
    data_fim: Optional[str] = None,
    solicitante_id: Optional[int] = None,
    categoria: Optional[str] = None,
    status: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    exigir(usuario, Capacidade.VER_FINANCEIRO)
    filtro = FiltroSolicitacoes(
        solicitante_id=solicitante_id,
        data_inicio=data_inicio,
        data_fim=data_fim,
        categoria=_categoria_ou_none(categoria),
        status=status_solicitacao(status) if status and status not in (TODAS, "all") else None,
    )
    nomes = {i.id: i for i in ItemRepo(db_path).list_items()}

    out: List[Dict[str, Any]] = []
    for sol in SolicitacaoRepo(db_path).iter_filtrado(filtro):
        if isinstance(sol.alvo, ItemProposto):
            nome, cat = f"{sol.alvo.nome} (Novo)", sol.alvo.categoria
        else:
            item = nomes.get(sol.alvo.item_id)
            nome = item.nome if item else "Item removido"
            cat = item.categoria if item else DEFAULTS.categoria_sem_item
        out.append({
            "id": sol.id,
            "data": sol.criado_em.date().isoformat(),
            "solicitante": sol.solicitante_nome,
            "item": nome,
            "categoria": cat,
            "quantidade": sol.quantidade,
            "preco_unitario": sol.preco_unitario,
            "total": sol.valor_total,
            "status": sol.status.value,
            "motivo_rejeicao": sol.motivo_rejeicao,
        })
    return out


# ----------------------
# 3) Log de atividades
# ----------------------

def relatorio_atividades(
    usuario: Usuario,
    data_inicio: Optional[str] = None,
    data_fim: Optional[str] = None,
    usuario_id: Optional[int] = None,
    limite: Optional[int] = None,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    """Log de atividades, mais recente primeiro (somente gestão)."""
    exigir(usuario, Capacidade.VER_FINANCEIRO)
    regs = consultar_auditoria(
        data_inicio=data_inicio, data_fim=data_fim, usuario_id=usuario_id, limite=limite, db_path=db_path,
    )
    return [
        {
            "id": r.id,
            "data_hora": r.timestamp.isoformat(sep=" ", timespec="seconds"),
            "usuario": r.usuario_nome,
            "acao": r.acao,
            "descricao": r.descricao,
        }
        for r in regs
    ]


# ----------------------
# 4) Painel
# ----------------------

def metricas_painel(usuario: Usuario, categoria: Optional[str] = TODAS, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Indicadores do painel de produção.

    Todos veem itens críticos e pedidos pendentes; valor em produção
    (pedidos APROVADO), valor total do estoque e mínimo médio só aparecem
    para quem tem ``VER_FINANCEIRO``.
    """
    cat = _categoria_ou_none(categoria)
    itens = ItemRepo(db_path).list_items(categoria=cat)
    pedidos = list(SolicitacaoRepo(db_path).iter_filtrado(FiltroSolicitacoes(categoria=cat)))

    out: Dict[str, Any] = {
        "categoria": cat or TODAS,
        "itens_criticos": sum(1 for i in itens if i.status is StatusItem.CRITICO),
        "pedidos_pendentes": sum(1 for p in pedidos if p.status is StatusSolicitacao.PENDENTE),
    }
    if pode(usuario, Capacidade.VER_FINANCEIRO):
        out["valor_em_producao"] = sum(p.valor_total for p in pedidos if p.status is StatusSolicitacao.APROVADO)
        out["valor_total_estoque"] = sum(valor_total(i.preco_unitario, i.qtd_atual) for i in itens)
        out["media_qtd_minima"] = media_arredondada_para_cima(i.qtd_minima for i in itens)
    return out
