# marcenaria/adapters/cli.py
"""
CLI do sistema de produção da marcenaria (Typer).

Comandos principais:
- migrate                          -> aplica migrações e cria views
- usuarios cadastrar/listar        -> cadastro de usuários (admin)
- itens importar/cadastrar/listar/minimo -> catálogo de estoque
- solicitacoes criar/aprovar/rejeitar/comprar/listar -> fluxo de solicitações
- auditoria listar                 -> log de atividades (somente gestão)
- rel estoque/pedidos/painel       -> relatórios gerenciais

O usuário que age é informado com ``--usuario <id>``; a CLI resolve o
papel no cadastro e o repassa explicitamente ao núcleo.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from marcenaria.config import DB_PATH
from marcenaria.adapters.parsers import formata_moeda_br, formata_numero_br, parse_numero_br
from marcenaria.domain.errors import ErroDominio
from marcenaria.domain.models import (
    FiltroSolicitacoes,
    ItemExistente,
    ItemProposto,
    StatusSolicitacao,
    Usuario,
)
from marcenaria.infra.migrations import apply_migrations
from marcenaria.infra.views import create_views
from marcenaria.infra.repositories import ItemRepo, UsuarioRepo
from marcenaria.usecases import cadastros, relatorios, solicitacoes


app = typer.Typer(help="Marcenaria: produção e estoque (CLI)")
console = Console()

_COLS_MOEDA = {"preco_unitario", "valor_total", "total", "valor_em_producao", "valor_total_estoque"}
_COLS_NUM = {"quantidade", "qtd_atual", "qtd_minima"}
_CORES_STATUS = {
    "Crítico": "bold red",
    "REJEITADO": "bold red",
    "Em Reposição": "bold yellow",
    "PENDENTE": "bold yellow",
    "Normal": "bold green",
    "APROVADO": "bold green",
    "COMPRADO": "bold blue",
}


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _fmt(col: str, val: Any) -> str:
    if val is None:
        return ""
    if col in _COLS_MOEDA and isinstance(val, (int, float)):
        return formata_moeda_br(val)
    if col in _COLS_NUM and isinstance(val, (int, float)):
        return formata_numero_br(val)
    if col == "status" and str(val) in _CORES_STATUS:
        return f"[{_CORES_STATUS[str(val)]}]{val}[/]"
    if isinstance(val, datetime):
        return val.strftime("%d/%m/%Y %H:%M")
    return str(val)


def _display_table(data: Dict[str, Any] | List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe os dados em tabelas formatadas usando Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    if isinstance(data, list):
        table = Table(title=title, box=box.ROUNDED)
        columns = list(data[0].keys())
        for column in columns:
            justify = "right" if column in _COLS_MOEDA | _COLS_NUM else "left"
            table.add_column(column, justify=justify)
        for row in data:
            table.add_row(*[_fmt(col, row.get(col)) for col in columns])
        console.print(table)
        return

    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor")
    for chave, valor in data.items():
        table.add_row(chave, _fmt(chave, valor))
    console.print(table)


def _executar(fn: Callable[[], Any]) -> Any:
    """Executa a ação e converte erros do domínio em mensagem + exit code 1."""
    try:
        return fn()
    except ErroDominio as e:
        detalhes = ", ".join(f"{k}={v}" for k, v in e.contexto().items())
        console.print(Panel(f"{e.mensagem}\n[dim]{detalhes}[/dim]", title="Erro", border_style="red"))
        raise typer.Exit(code=1)


def _usuario(db_path: str, usuario_id: int) -> Usuario:
    return UsuarioRepo(db_path).get(usuario_id)


def _sol_dict(s) -> Dict[str, Any]:
    if isinstance(s.alvo, ItemExistente):
        alvo = f"item #{s.alvo.item_id}"
    else:
        alvo = f"{s.alvo.nome} (Novo / {s.alvo.categoria})"
    return {
        "id": s.id,
        "item": alvo,
        "quantidade": s.quantidade,
        "preco_unitario": s.preco_unitario,
        "status": s.status.value,
        "solicitante": s.solicitante_nome,
        "criado_em": s.criado_em,
        "motivo_rejeicao": s.motivo_rejeicao,
        "observacao": s.observacao,
    }


DbOpt = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
UsuarioOpt = typer.Option(..., "--usuario", "-u", help="Id do usuário que executa a ação")


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DbOpt):
    """Aplica migrações e recria as views auxiliares."""
    apply_migrations(db_path)
    create_views(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


# -----------------------
# usuários
# -----------------------

usuarios_app = typer.Typer(help="Cadastro de usuários (função administrativa).")
app.add_typer(usuarios_app, name="usuarios")


@usuarios_app.command("cadastrar")
def cmd_usuarios_cadastrar(
    nome: str = typer.Argument(..., help="Nome do usuário"),
    papel: str = typer.Option("OPERADOR", help="OPERADOR | GESTOR | ADM_MASTER"),
    email: Optional[str] = typer.Option(None),
    departamento: Optional[str] = typer.Option(None),
    usuario_id: Optional[int] = typer.Option(None, "--usuario", "-u", help="Administrador (omitir só no primeiro cadastro)"),
    db_path: str = DbOpt,
):
    """Cadastra um usuário."""
    def run():
        ator = _usuario(db_path, usuario_id) if usuario_id is not None else None
        return cadastros.cadastrar_usuario(ator, nome, papel, email=email, departamento=departamento, db_path=db_path)
    novo = _executar(run)
    typer.echo(f">> Usuário {novo.id} cadastrado ({novo.papel.value}).")


@usuarios_app.command("listar")
def cmd_usuarios_listar(db_path: str = DbOpt):
    """Lista os usuários cadastrados."""
    rows = [
        {"id": u.id, "nome": u.nome, "papel": u.papel.value, "email": u.email, "departamento": u.departamento}
        for u in UsuarioRepo(db_path).get_all()
    ]
    _display_table(rows, title="Usuários")


# -----------------------
# itens
# -----------------------

itens_app = typer.Typer(help="Catálogo de itens de estoque.")
app.add_typer(itens_app, name="itens")


@itens_app.command("importar")
def cmd_itens_importar(
    path: str = typer.Argument(..., help="Planilha XLSX/CSV de itens"),
    usuario_id: int = UsuarioOpt,
    db_path: str = DbOpt,
):
    """Importa (upsert por SKU) itens de uma planilha."""
    info = _executar(lambda: cadastros.importar_itens(_usuario(db_path, usuario_id), path, db_path=db_path))
    _display_table(info, title="Importação de Itens")


@itens_app.command("cadastrar")
def cmd_itens_cadastrar(
    sku: str = typer.Argument(...),
    nome: str = typer.Argument(...),
    categoria: str = typer.Option("Geral"),
    unidade: str = typer.Option("UN"),
    preco: str = typer.Option("0", help="Preço unitário (aceita 'R$ 1.234,56')"),
    qtd_atual: str = typer.Option("0"),
    qtd_minima: str = typer.Option("0"),
    usuario_id: int = UsuarioOpt,
    db_path: str = DbOpt,
):
    """Cadastra ou atualiza um item."""
    dados = {
        "sku": sku,
        "nome": nome,
        "categoria": categoria,
        "unidade": unidade.upper(),
        "preco_unitario": parse_numero_br(preco) or 0.0,
        "qtd_atual": parse_numero_br(qtd_atual) or 0.0,
        "qtd_minima": parse_numero_br(qtd_minima) or 0.0,
    }
    item = _executar(lambda: cadastros.cadastrar_item(_usuario(db_path, usuario_id), dados, db_path=db_path))
    typer.echo(f">> Item {item.id} ({item.sku}) salvo, status {item.status.value}.")


@itens_app.command("listar")
def cmd_itens_listar(
    categoria: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    """Lista itens com status derivado (Normal/Crítico)."""
    rows = [
        {
            "id": i.id,
            "sku": i.sku,
            "nome": i.nome,
            "categoria": i.categoria,
            "qtd_atual": i.qtd_atual,
            "qtd_minima": i.qtd_minima,
            "unidade": i.unidade,
            "status": i.status.value,
        }
        for i in ItemRepo(db_path).list_items(categoria=categoria)
    ]
    _display_table(rows, title="Itens de Estoque")


@itens_app.command("categorias")
def cmd_itens_categorias(db_path: str = DbOpt):
    """Categorias em uso, na ordem de cadastro."""
    _display_table([{"categoria": c} for c in ItemRepo(db_path).categorias()], title="Categorias")


@itens_app.command("minimo")
def cmd_itens_minimo(
    item_id: int = typer.Argument(...),
    qtd_minima: str = typer.Argument(...),
    usuario_id: int = UsuarioOpt,
    db_path: str = DbOpt,
):
    """Altera o estoque mínimo de um item."""
    valor = parse_numero_br(qtd_minima)
    item = _executar(lambda: cadastros.atualizar_minimo(_usuario(db_path, usuario_id), item_id, valor, db_path=db_path))
    typer.echo(f">> Mínimo de {item.nome} = {formata_numero_br(item.qtd_minima)} (status {item.status.value})")


# -----------------------
# solicitações
# -----------------------

sol_app = typer.Typer(help="Solicitações de material (criar, aprovar, rejeitar, comprar).")
app.add_typer(sol_app, name="solicitacoes")


@sol_app.command("criar")
def cmd_sol_criar(
    quantidade: str = typer.Argument(..., help="Quantidade (> 0)"),
    item_id: Optional[int] = typer.Option(None, "--item", help="Id de item existente"),
    novo_item: Optional[str] = typer.Option(None, "--novo-item", help="Nome de item ainda não cadastrado"),
    categoria: str = typer.Option("Geral", help="Categoria do novo item"),
    preco: str = typer.Option("0", help="Preço unitário (só gestão)"),
    observacao: str = typer.Option("", "--obs", help="Observação / motivo"),
    usuario_id: int = UsuarioOpt,
    db_path: str = DbOpt,
):
    """Cria uma solicitação (informe --item OU --novo-item)."""
    if (item_id is None) == (novo_item is None):
        console.print(Panel("Informe exatamente um entre --item e --novo-item.", title="Erro", border_style="red"))
        raise typer.Exit(code=1)
    alvo = ItemExistente(item_id) if item_id is not None else ItemProposto(novo_item, categoria)

    res = _executar(lambda: solicitacoes.criar_solicitacao(
        alvo,
        parse_numero_br(quantidade),
        parse_numero_br(preco),
        observacao,
        _usuario(db_path, usuario_id),
        db_path=db_path,
    ))
    if res.alerta:
        console.print(Panel(res.alerta, title="Atenção", border_style="yellow"))
    _display_table(_sol_dict(res.solicitacao), title="Solicitação Criada")


@sol_app.command("aprovar")
def cmd_sol_aprovar(solicitacao_id: int = typer.Argument(...), usuario_id: int = UsuarioOpt, db_path: str = DbOpt):
    """PENDENTE -> APROVADO."""
    s = _executar(lambda: solicitacoes.aprovar_solicitacao(solicitacao_id, _usuario(db_path, usuario_id), db_path=db_path))
    _display_table(_sol_dict(s), title="Solicitação Aprovada")


@sol_app.command("rejeitar")
def cmd_sol_rejeitar(
    solicitacao_id: int = typer.Argument(...),
    motivo: str = typer.Option("", "--motivo", help="Motivo da rejeição (obrigatório)"),
    usuario_id: int = UsuarioOpt,
    db_path: str = DbOpt,
):
    """PENDENTE -> REJEITADO."""
    s = _executar(lambda: solicitacoes.rejeitar_solicitacao(solicitacao_id, _usuario(db_path, usuario_id), motivo, db_path=db_path))
    _display_table(_sol_dict(s), title="Solicitação Rejeitada")


@sol_app.command("comprar")
def cmd_sol_comprar(solicitacao_id: int = typer.Argument(...), usuario_id: int = UsuarioOpt, db_path: str = DbOpt):
    """APROVADO -> COMPRADO (soma a quantidade ao estoque)."""
    s = _executar(lambda: solicitacoes.registrar_compra(solicitacao_id, _usuario(db_path, usuario_id), db_path=db_path))
    _display_table(_sol_dict(s), title="Compra Registrada")


@sol_app.command("listar")
def cmd_sol_listar(
    solicitante: Optional[int] = typer.Option(None, help="Id do solicitante"),
    inicio: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    fim: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    categoria: Optional[str] = typer.Option(None),
    status: Optional[StatusSolicitacao] = typer.Option(None, case_sensitive=False),
    json_out: bool = typer.Option(False, "--json", help="Saída JSON"),
    db_path: str = DbOpt,
):
    """Lista solicitações (mais recentes primeiro)."""
    filtro = FiltroSolicitacoes(
        solicitante_id=solicitante, data_inicio=inicio, data_fim=fim, categoria=categoria, status=status,
    )
    rows = [_sol_dict(s) for s in solicitacoes.listar_solicitacoes(filtro, db_path=db_path)]
    if json_out:
        _print_json(rows)
        return
    _display_table(rows, title="Solicitações")


# -----------------------
# auditoria
# -----------------------

aud_app = typer.Typer(help="Log de atividades (somente leitura).")
app.add_typer(aud_app, name="auditoria")


@aud_app.command("listar")
def cmd_aud_listar(
    inicio: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    fim: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    autor: Optional[int] = typer.Option(None, help="Filtra por id do usuário que agiu"),
    limite: int = typer.Option(50),
    usuario_id: int = UsuarioOpt,
    db_path: str = DbOpt,
):
    """Mostra os registros mais recentes primeiro (somente gestão)."""
    rows = _executar(lambda: relatorios.relatorio_atividades(
        _usuario(db_path, usuario_id), inicio, fim, autor, limite, db_path=db_path,
    ))
    _display_table(rows, title="Log de Atividades")


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios gerenciais")
app.add_typer(rel_app, name="rel")


@rel_app.command("estoque")
def rel_estoque(
    categoria: Optional[str] = typer.Option(None),
    status: Optional[str] = typer.Option(None, help="Normal | Crítico | Em Reposição"),
    usuario_id: int = UsuarioOpt,
    db_path: str = DbOpt,
):
    """Estoque atual com status de exibição."""
    res = _executar(lambda: relatorios.relatorio_estoque(_usuario(db_path, usuario_id), categoria, status, db_path=db_path))
    _display_table(res, title="Relatório de Estoque Atual")


@rel_app.command("pedidos")
def rel_pedidos(
    inicio: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    fim: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    solicitante: Optional[int] = typer.Option(None),
    categoria: Optional[str] = typer.Option(None),
    status: Optional[str] = typer.Option(None),
    usuario_id: int = UsuarioOpt,
    db_path: str = DbOpt,
):
    """Pedidos de produção no período."""
    res = _executar(lambda: relatorios.relatorio_pedidos(
        _usuario(db_path, usuario_id), inicio, fim, solicitante, categoria, status, db_path=db_path,
    ))
    _display_table(res, title="Relatório de Pedidos de Produção")


@rel_app.command("painel")
def rel_painel(
    categoria: str = typer.Option(relatorios.TODAS),
    usuario_id: int = UsuarioOpt,
    db_path: str = DbOpt,
):
    """Indicadores do painel de produção."""
    res = _executar(lambda: relatorios.metricas_painel(_usuario(db_path, usuario_id), categoria, db_path=db_path))
    _display_table(res, title="Painel de Produção")


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
