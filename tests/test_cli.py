import json

import pytest
from typer.testing import CliRunner

from marcenaria.adapters.cli import app
from marcenaria.infra.repositories import AuditoriaRepo, ItemRepo

runner = CliRunner()


def _run(db, *args):
    return runner.invoke(app, [*args, "--db", db])


@pytest.fixture
def db(tmp_path):
    path = str(tmp_path / "cli.sqlite")
    res = _run(path, "migrate")
    assert res.exit_code == 0, res.output
    return path


def test_migrate(db):
    assert "Migrações aplicadas" in _run(db, "migrate").output


def test_primeiro_usuario_sem_ator_e_depois_exige_admin(db):
    res = _run(db, "usuarios", "cadastrar", "Ana", "--papel", "ADM_MASTER")
    assert res.exit_code == 0, res.output
    assert "Usuário 1 cadastrado (ADM_MASTER)" in res.output

    sem_ator = _run(db, "usuarios", "cadastrar", "Bruno")
    assert sem_ator.exit_code == 1

    ok = _run(db, "usuarios", "cadastrar", "Bruno", "--papel", "operador", "-u", "1")
    assert ok.exit_code == 0, ok.output
    assert "(OPERADOR)" in ok.output

    negado = _run(db, "usuarios", "cadastrar", "Carla", "-u", "2")
    assert negado.exit_code == 1


def test_fluxo_pela_cli(db):
    _run(db, "usuarios", "cadastrar", "Ana", "--papel", "ADM_MASTER")
    _run(db, "usuarios", "cadastrar", "Bruno", "-u", "1")

    res = _run(
        db, "itens", "cadastrar", "MAD-001", "Compensado 18mm",
        "--categoria", "Madeiras", "--unidade", "ch", "--preco", "R$ 189,90",
        "--qtd-atual", "8", "--qtd-minima", "10", "-u", "1",
    )
    assert res.exit_code == 0, res.output
    assert "Crítico" in res.output

    res = _run(db, "solicitacoes", "criar", "5", "--item", "1", "-u", "2")
    assert res.exit_code == 0, res.output
    assert _run(db, "solicitacoes", "aprovar", "1", "-u", "1").exit_code == 0
    assert _run(db, "solicitacoes", "comprar", "1", "-u", "1").exit_code == 0

    assert "Madeiras" in _run(db, "itens", "categorias").output

    item = ItemRepo(db).get_item(1)
    assert item.qtd_atual == 13
    assert item.unidade == "CH"
    assert item.preco_unitario == pytest.approx(189.9)

    listagem = _run(db, "solicitacoes", "listar", "--json")
    assert listagem.exit_code == 0, listagem.output
    (sol,) = json.loads(listagem.stdout)
    assert sol["status"] == "COMPRADO"
    assert sol["preco_unitario"] == 0.0

    acoes = [r.acao for r in AuditoriaRepo(db).query(None)]
    assert acoes[:3] == ["Compra Registrada", "Solicitação Aprovada", "Solicitação Criada"]


def test_operador_nao_aprova_pela_cli(db):
    _run(db, "usuarios", "cadastrar", "Ana", "--papel", "ADM_MASTER")
    _run(db, "usuarios", "cadastrar", "Bruno", "-u", "1")
    _run(db, "solicitacoes", "criar", "2", "--novo-item", "Lixa 220", "--categoria", "Abrasivos", "-u", "2")

    res = _run(db, "solicitacoes", "aprovar", "1", "-u", "2")
    assert res.exit_code == 1
    assert "Erro" in res.output

    rej = _run(db, "solicitacoes", "rejeitar", "1", "-u", "1")
    assert rej.exit_code == 1   # motivo obrigatório
    rej = _run(db, "solicitacoes", "rejeitar", "1", "--motivo", "Duplicada", "-u", "1")
    assert rej.exit_code == 0, rej.output


def test_criar_exige_exatamente_um_alvo(db):
    _run(db, "usuarios", "cadastrar", "Ana", "--papel", "ADM_MASTER")
    assert _run(db, "solicitacoes", "criar", "2", "-u", "1").exit_code == 1
    assert _run(db, "solicitacoes", "criar", "2", "--item", "1", "--novo-item", "X", "-u", "1").exit_code == 1


def test_usuario_inexistente_sai_com_erro(db):
    res = _run(db, "rel", "estoque", "-u", "99")
    assert res.exit_code == 1
    assert "não encontrado" in res.output


def test_painel_do_operador(db):
    _run(db, "usuarios", "cadastrar", "Ana", "--papel", "ADM_MASTER")
    _run(db, "usuarios", "cadastrar", "Bruno", "-u", "1")
    res = _run(db, "rel", "painel", "-u", "2")
    assert res.exit_code == 0, res.output
    assert "itens_criticos" in res.output
    assert "valor_total_estoque" not in res.output
    assert _run(db, "rel", "estoque", "-u", "2").exit_code == 1


def test_auditoria_listar_somente_gestao(db):
    _run(db, "usuarios", "cadastrar", "Ana", "--papel", "ADM_MASTER")
    _run(db, "usuarios", "cadastrar", "Bruno", "-u", "1")

    res = _run(db, "auditoria", "listar", "-u", "1")
    assert res.exit_code == 0, res.output
    assert "Log de Atividades" in res.output
    assert "Ana" in res.output

    so_bruno = _run(db, "auditoria", "listar", "--autor", "2", "-u", "1")
    assert so_bruno.exit_code == 0, so_bruno.output
    assert "Nenhum dado encontrado" in so_bruno.output

    negado = _run(db, "auditoria", "listar", "-u", "2")
    assert negado.exit_code == 1
    assert "Erro" in negado.output
    assert "Log de Atividades" not in negado.output


def test_rel_pedidos_status_desconhecido(db):
    _run(db, "usuarios", "cadastrar", "Ana", "--papel", "ADM_MASTER")
    res = _run(db, "rel", "pedidos", "--status", "Aprovado", "-u", "1")
    assert res.exit_code == 1
    assert res.exception is None or isinstance(res.exception, SystemExit)
    assert "Status desconhecido" in res.output
