# marcenaria/usecases/cadastros.py
"""
UC: cadastros administrativos (usuários e itens de estoque).

São funções de administração (capacidade ``ADMINISTRAR``). A única
exceção é o primeiro usuário do banco, que pode ser criado sem ator
para permitir a instalação inicial.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from marcenaria.config import DB_PATH
from marcenaria.adapters.planilha_loader import load_itens
from marcenaria.domain.autorizacao import Capacidade, exigir
from marcenaria.domain.errors import EntradaInvalida, Proibido
from marcenaria.domain.models import ItemEstoque, Papel, Usuario
from marcenaria.infra.db import transaction
from marcenaria.infra.repositories import AuditoriaRepo, ItemRepo, UsuarioRepo
from marcenaria.infra.logger import (
    log_database_operation, log_estoque, log_file_operation, log_system_event,
    log_transaction,
)
from marcenaria.usecases.auditoria import (
    ACAO_IMPORTACAO_ITENS,
    ACAO_ITEM_CADASTRADO,
    ACAO_MINIMO_ALTERADO,
    ACAO_USUARIO_CADASTRADO,
)


def _normalize_str(x: Any) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None


def cadastrar_usuario(
    ator: Optional[Usuario],
    nome: str,
    papel: Any = Papel.OPERADOR,
    email: Optional[str] = None,
    departamento: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Usuario:
    """Cadastra um usuário; papel desconhecido vira OPERADOR."""
    nome_ok = _normalize_str(nome)
    if not nome_ok:
        raise EntradaInvalida("Nome do usuário é obrigatório.", entidade="usuario", campo="nome")
    repo = UsuarioRepo(db_path)
    with transaction(db_path) as c:
        if ator is None:
            total = c.execute("SELECT COUNT(*) FROM usuario").fetchone()[0]
            if total:
                raise Proibido("Cadastro de usuário exige um administrador.", entidade="usuario")
        else:
            exigir(ator, Capacidade.ADMINISTRAR)
        novo = repo.insert(
            {
                "nome": nome_ok,
                "papel": Papel.from_raw(papel),
                "email": _normalize_str(email),
                "departamento": _normalize_str(departamento),
            },
            conn=c,
        )
        AuditoriaRepo(db_path).append(
            ator or novo,
            ACAO_USUARIO_CADASTRADO,
            f"Usuário {novo.nome} cadastrado com papel {novo.papel.value}",
            conn=c,
        )
    log_database_operation("usuario", "INSERT", 1, id=novo.id, papel=novo.papel.value)
    return novo


def cadastrar_item(ator: Usuario, dados: Dict[str, Any], db_path: str = DB_PATH) -> ItemEstoque:
    """Cadastra (ou atualiza pelo SKU) um item de estoque."""
    exigir(ator, Capacidade.ADMINISTRAR)
    for campo in ("sku", "nome"):
        if not _normalize_str(dados.get(campo)):
            raise EntradaInvalida(f"Campo '{campo}' é obrigatório.", entidade="item", campo=campo)
    with transaction(db_path) as c:
        item = ItemRepo(db_path).upsert([dados], conn=c)[0]
        AuditoriaRepo(db_path).append(
            ator,
            ACAO_ITEM_CADASTRADO,
            f"{ator.nome} cadastrou {item.nome} ({item.sku})",
            conn=c,
        )
    log_estoque("cadastro", item.id, sku=item.sku, status=item.status.value)
    return item


def importar_itens(ator: Usuario, path: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê uma planilha (XLSX/CSV) de itens e grava tudo numa única transação."""
    exigir(ator, Capacidade.ADMINISTRAR)
    log_system_event("importar_itens_start", {"file_path": path})
    log_file_operation("import", path)
    try:
        rows: List[Dict[str, Any]] = load_itens(path)
        log_file_operation("import", path, rows_processed=len(rows))
        with transaction(db_path) as c:
            itens = ItemRepo(db_path).upsert(rows, conn=c)
            AuditoriaRepo(db_path).append(
                ator,
                ACAO_IMPORTACAO_ITENS,
                f"{ator.nome} importou {len(itens)} itens de {path}",
                conn=c,
            )
        log_database_operation("item_estoque", "UPSERT_MANY", len(itens), file_path=path)
        result = {"arquivo": path, "linhas_importadas": len(itens)}
        log_transaction("importar_itens", {"file": path, "rows_count": len(rows)}, result=result)
        return result
    except Exception as e:
        log_transaction("importar_itens", {"file": path}, error=str(e))
        log_system_event("importar_itens_error", {"file_path": path, "error": str(e)}, level="error")
        raise


def atualizar_minimo(ator: Usuario, item_id: int, qtd_minima: float, db_path: str = DB_PATH) -> ItemEstoque:
    """Altera o estoque mínimo; o status derivado reflete a mudança na hora."""
    exigir(ator, Capacidade.ADMINISTRAR)
    with transaction(db_path) as c:
        anterior = ItemRepo(db_path).get_item(item_id, conn=c)
        item = ItemRepo(db_path).definir_minimo(item_id, qtd_minima, conn=c)
        AuditoriaRepo(db_path).append(
            ator,
            ACAO_MINIMO_ALTERADO,
            f"{ator.nome} alterou o mínimo de {item.nome}: {anterior.qtd_minima:g} -> {item.qtd_minima:g}",
            conn=c,
        )
    log_estoque("minimo", item.id, qtd_minima=item.qtd_minima, status=item.status.value)
    return item
