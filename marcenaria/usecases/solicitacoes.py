# marcenaria/usecases/solicitacoes.py
"""
UC: ciclo de vida das SOLICITAÇÕES de material.

Máquina de estados:
    PENDENTE -> APROVADO | REJEITADO
    APROVADO -> COMPRADO
REJEITADO e COMPRADO são terminais.

Cada transição roda numa única transação de escrita (BEGIN IMMEDIATE):
leitura do estado, compare-and-swap do status, ajuste de estoque (na
compra) e registro de auditoria entram juntos ou não entram.
"""
from __future__ import annotations

import math
import sqlite3
from typing import Any, Callable, Dict, Iterator, Optional

from marcenaria.config import DB_PATH, DEFAULTS
from marcenaria.domain.autorizacao import Capacidade, exigir, pode
from marcenaria.domain.errors import Conflito, EntradaInvalida, EstadoInvalido
from marcenaria.domain.models import (
    AlvoSolicitacao,
    FiltroSolicitacoes,
    ItemExistente,
    ItemProposto,
    ResultadoCriacao,
    Solicitacao,
    StatusSolicitacao,
    Usuario,
)
from marcenaria.domain.policies import e_alto_volume, mensagem_alto_volume
from marcenaria.infra.db import transaction
from marcenaria.infra.repositories import AuditoriaRepo, ItemRepo, SolicitacaoRepo, agora_iso
from marcenaria.infra.logger import (
    log_transaction, log_solicitacao, log_estoque, log_database_operation,
    log_system_event,
)
from marcenaria.usecases.auditoria import (
    ACAO_COMPRA_REGISTRADA,
    ACAO_SOLICITACAO_APROVADA,
    ACAO_SOLICITACAO_CRIADA,
    ACAO_SOLICITACAO_REJEITADA,
)


def _to_quantidade(val: Any) -> float:
    if isinstance(val, bool):
        raise EntradaInvalida("Quantidade inválida.", entidade="solicitacao", campo="quantidade")
    try:
        q = float(val)
    except (TypeError, ValueError):
        raise EntradaInvalida("Quantidade inválida.", entidade="solicitacao", campo="quantidade") from None
    if not math.isfinite(q) or not q > 0:
        raise EntradaInvalida("Quantidade deve ser um número finito maior que zero.", entidade="solicitacao", campo="quantidade")
    return q


def _to_preco(val: Any, solicitante: Usuario) -> float:
    """Preço é capacidade de gestão: para os demais é sempre zero."""
    if not pode(solicitante, Capacidade.DEFINIR_PRECO):
        return 0.0
    try:
        preco = float(val) if val is not None else 0.0
    except (TypeError, ValueError):
        preco = 0.0
    if not math.isfinite(preco) or not preco > 0:
        raise EntradaInvalida(
            "O preço unitário deve ser um número finito maior que zero.",
            entidade="solicitacao",
            campo="preco_unitario",
        )
    return preco


def _normaliza_alvo(alvo: Optional[AlvoSolicitacao]) -> AlvoSolicitacao:
    if isinstance(alvo, ItemExistente):
        if alvo.item_id is None:
            raise EntradaInvalida("Selecione o item.", entidade="solicitacao", campo="item_id")
        return alvo
    if isinstance(alvo, ItemProposto):
        nome = (alvo.nome or "").strip()
        if not nome:
            raise EntradaInvalida("Informe o nome do novo item.", entidade="solicitacao", campo="nome_proposto")
        categoria = (alvo.categoria or "").strip() or DEFAULTS.categoria_padrao
        return ItemProposto(nome=nome, categoria=categoria)
    raise EntradaInvalida(
        "Informe um item existente ou um novo item (exatamente um).",
        entidade="solicitacao",
        campo="item",
    )


def _fmt_qtd(q: float) -> str:
    return str(int(q)) if float(q).is_integer() else f"{q:g}"


# -----------------------
# consultas auxiliares
# -----------------------

def verificar_alto_volume(item_id: int, quantidade: Any, db_path: str = DB_PATH) -> Optional[str]:
    """Mensagem consultiva de alto volume para o formulário (None se não houver)."""
    item = ItemRepo(db_path).get_item(item_id)
    try:
        q = float(quantidade)
    except (TypeError, ValueError):
        return None
    return mensagem_alto_volume(e_alto_volume(item, q))


def obter_solicitacao(solicitacao_id: int, db_path: str = DB_PATH) -> Solicitacao:
    return SolicitacaoRepo(db_path).get(solicitacao_id)


def listar_solicitacoes(
    filtro: Optional[FiltroSolicitacoes] = None,
    db_path: str = DB_PATH,
) -> Iterator[Solicitacao]:
    """Projeção somente leitura, preguiçosa, das solicitações.

    Filtros: solicitante, intervalo de datas (inclusive), categoria
    efetiva (do item referenciado ou do item proposto) e status.
    Ordem: mais recente primeiro; empate por id decrescente.
    """
    return SolicitacaoRepo(db_path).iter_filtrado(filtro)


# -----------------------
# criação
# -----------------------

def criar_solicitacao(
    alvo: Optional[AlvoSolicitacao],
    quantidade: Any,
    preco_unitario: Any,
    observacao: Optional[str],
    solicitante: Usuario,
    db_path: str = DB_PATH,
) -> ResultadoCriacao:
    """Cria uma solicitação PENDENTE e registra ``Solicitação Criada``.

    Regras:
        - quantidade > 0;
        - exatamente um alvo (item existente ou item proposto);
        - sem capacidade de preço, o preço é forçado a 0;
        - com capacidade de preço, o preço deve ser > 0;
        - alto volume gera apenas alerta, nunca bloqueia.
    """
    log_system_event("criar_solicitacao_start", {"solicitante_id": solicitante.id})
    dados_log: Dict[str, Any] = {"solicitante_id": solicitante.id, "quantidade": quantidade}
    try:
        exigir(solicitante, Capacidade.CRIAR_SOLICITACAO)
        q = _to_quantidade(quantidade)
        alvo_ok = _normaliza_alvo(alvo)
        preco = _to_preco(preco_unitario, solicitante)
        obs = (observacao or "").strip()

        sol_repo = SolicitacaoRepo(db_path)
        item_repo = ItemRepo(db_path)
        audit_repo = AuditoriaRepo(db_path)

        alto_volume = False
        with transaction(db_path) as c:
            if isinstance(alvo_ok, ItemExistente):
                item = item_repo.get_item(alvo_ok.item_id, conn=c)
                alto_volume = e_alto_volume(item, q)
                nome_item, unidade = item.nome, item.unidade
                row = {"item_id": item.id, "nome_proposto": None, "categoria_proposta": None}
            else:
                nome_item, unidade = f"{alvo_ok.nome} (Novo)", "UN"
                row = {"item_id": None, "nome_proposto": alvo_ok.nome, "categoria_proposta": alvo_ok.categoria}

            row.update({
                "quantidade": q,
                "preco_unitario": preco,
                "observacao": obs,
                "solicitante_id": solicitante.id,
                "solicitante_nome": solicitante.nome,
                "status": StatusSolicitacao.PENDENTE.value,
                "criado_em": agora_iso(),
            })
            sol = sol_repo.insert(row, conn=c)
            audit_repo.append(
                solicitante,
                ACAO_SOLICITACAO_CRIADA,
                f"{solicitante.nome} solicitou {_fmt_qtd(q)} {unidade} de {nome_item}",
                conn=c,
            )
        log_database_operation("solicitacao", "INSERT", 1, id=sol.id)
        log_solicitacao("criada", sol.id, sol.status.value, alto_volume=alto_volume)
        if alto_volume:
            log_system_event("alto_volume", {"id": sol.id, "item_id": sol.item_id}, level="warning")
        log_transaction("criar_solicitacao", dados_log, result={"id": sol.id})
        return ResultadoCriacao(
            solicitacao=sol,
            alto_volume=alto_volume,
            alerta=mensagem_alto_volume(alto_volume),
        )
    except Exception as e:
        log_transaction("criar_solicitacao", dados_log, error=str(e))
        log_system_event("criar_solicitacao_error", {"error": str(e)}, level="error")
        raise


# -----------------------
# transições
# -----------------------

Efeito = Callable[[sqlite3.Connection, Solicitacao], str]


def _transicionar(
    operacao: str,
    solicitacao_id: int,
    usuario: Usuario,
    de: StatusSolicitacao,
    para: StatusSolicitacao,
    acao: str,
    descrever: Efeito,
    db_path: str,
    motivo_rejeicao: Optional[str] = None,
) -> Solicitacao:
    """Executa uma transição atômica ``de`` -> ``para``.

    ``descrever`` roda dentro da transação (pode ajustar estoque) e devolve
    a descrição do registro de auditoria. Qualquer erro desfaz tudo.
    """
    dados_log = {"id": solicitacao_id, "usuario_id": usuario.id, "de": de.value, "para": para.value}
    log_system_event(f"{operacao}_start", dados_log)
    try:
        exigir(usuario, Capacidade.APROVAR)
        repo = SolicitacaoRepo(db_path)
        with transaction(db_path) as c:
            sol = repo.get(solicitacao_id, conn=c)
            if sol.status is not de:
                raise EstadoInvalido(
                    f"Solicitação {solicitacao_id} está {sol.status.value}; esperado {de.value}.",
                    entidade="solicitacao",
                    identificador=solicitacao_id,
                    campo="status",
                )
            descricao = descrever(c, sol)
            if not repo.transicionar(solicitacao_id, de, para, sol.versao, conn=c, motivo_rejeicao=motivo_rejeicao):
                atual = repo.get(solicitacao_id, conn=c)
                if atual.status is not de:
                    raise EstadoInvalido(
                        f"Solicitação {solicitacao_id} mudou para {atual.status.value}.",
                        entidade="solicitacao",
                        identificador=solicitacao_id,
                        campo="status",
                    )
                raise Conflito(
                    f"Solicitação {solicitacao_id} alterada concorrentemente.",
                    entidade="solicitacao",
                    identificador=solicitacao_id,
                )
            AuditoriaRepo(db_path).append(usuario, acao, descricao, conn=c)
            atualizada = repo.get(solicitacao_id, conn=c)
        log_database_operation("solicitacao", "UPDATE", 1, id=solicitacao_id, status=para.value)
        log_solicitacao(operacao, solicitacao_id, para.value, usuario_id=usuario.id)
        log_transaction(operacao, dados_log, result="success")
        return atualizada
    except Exception as e:
        log_transaction(operacao, dados_log, error=str(e))
        log_system_event(f"{operacao}_error", {"id": solicitacao_id, "error": str(e)}, level="error")
        raise


def _nome_alvo(c: sqlite3.Connection, sol: Solicitacao) -> str:
    if isinstance(sol.alvo, ItemExistente):
        row = c.execute("SELECT nome FROM item_estoque WHERE id = ?", (sol.alvo.item_id,)).fetchone()
        return row[0] if row else "Item removido"
    return f"{sol.alvo.nome} (Novo)"


def aprovar_solicitacao(solicitacao_id: int, aprovador: Usuario, db_path: str = DB_PATH) -> Solicitacao:
    """PENDENTE -> APROVADO (apenas GESTOR/ADM_MASTER)."""
    def descrever(c, sol):
        return f"{aprovador.nome} aprovou a solicitação #{sol.id} ({_nome_alvo(c, sol)})"

    return _transicionar(
        "aprovar", solicitacao_id, aprovador,
        StatusSolicitacao.PENDENTE, StatusSolicitacao.APROVADO,
        ACAO_SOLICITACAO_APROVADA, descrever, db_path,
    )


def rejeitar_solicitacao(
    solicitacao_id: int,
    aprovador: Usuario,
    motivo: Optional[str],
    db_path: str = DB_PATH,
) -> Solicitacao:
    """PENDENTE -> REJEITADO; o motivo (obrigatório) é gravado na mesma transação."""
    exigir(aprovador, Capacidade.APROVAR)
    if motivo is None or not str(motivo).strip():
        raise EntradaInvalida(
            "Motivo da rejeição é obrigatório.",
            entidade="solicitacao",
            identificador=solicitacao_id,
            campo="motivo_rejeicao",
        )

    def descrever(c, sol):
        return f"{aprovador.nome} rejeitou a solicitação #{sol.id} ({_nome_alvo(c, sol)}): {motivo}"

    return _transicionar(
        "rejeitar", solicitacao_id, aprovador,
        StatusSolicitacao.PENDENTE, StatusSolicitacao.REJEITADO,
        ACAO_SOLICITACAO_REJEITADA, descrever, db_path,
        motivo_rejeicao=motivo,
    )


def registrar_compra(solicitacao_id: int, aprovador: Usuario, db_path: str = DB_PATH) -> Solicitacao:
    """APROVADO -> COMPRADO, somando a quantidade ao item referenciado.

    Para item proposto (ainda não cadastrado) o estoque não é tocado.
    Se o ajuste falhar (ex.: item removido), a solicitação continua
    APROVADO e o erro é propagado.
    """
    item_repo = ItemRepo(db_path)

    def descrever(c, sol):
        if isinstance(sol.alvo, ItemExistente):
            item = item_repo.ajustar_quantidade(sol.alvo.item_id, sol.quantidade, conn=c)
            log_estoque("ajuste", item.id, sol.quantidade, qtd_atual=item.qtd_atual, status=item.status.value)
            return (
                f"{aprovador.nome} registrou a compra da solicitação #{sol.id}: "
                f"+{_fmt_qtd(sol.quantidade)} {item.unidade} de {item.nome} "
                f"(estoque {_fmt_qtd(item.qtd_atual)}, {item.status.value})"
            )
        return (
            f"{aprovador.nome} registrou a compra da solicitação #{sol.id}: "
            f"{_fmt_qtd(sol.quantidade)} de {sol.alvo.nome} (Novo, sem cadastro no estoque)"
        )

    return _transicionar(
        "registrar_compra", solicitacao_id, aprovador,
        StatusSolicitacao.APROVADO, StatusSolicitacao.COMPRADO,
        ACAO_COMPRA_REGISTRADA, descrever, db_path,
    )
