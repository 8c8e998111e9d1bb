from datetime import date

import pytest

from marcenaria.domain.errors import (
    EntradaInvalida,
    EstadoInvalido,
    EstoqueInsuficiente,
    NaoEncontrado,
    Proibido,
)
from marcenaria.domain.models import (
    FiltroSolicitacoes,
    ItemExistente,
    ItemProposto,
    StatusItem,
    StatusSolicitacao,
)
from marcenaria.domain.policies import MSG_ALTO_VOLUME
from marcenaria.infra.repositories import AuditoriaRepo, ItemRepo
from marcenaria.usecases import solicitacoes as uc
from marcenaria.usecases.solicitacoes import (
    aprovar_solicitacao,
    criar_solicitacao,
    listar_solicitacoes,
    obter_solicitacao,
    registrar_compra,
    rejeitar_solicitacao,
    verificar_alto_volume,
)


def _acoes(db_path):
    return [r.acao for r in AuditoriaRepo(db_path).query()]


# ---------------------------
# criação
# ---------------------------

def test_operador_cria_com_preco_zerado(db_path, usuarios, novo_item):
    item = novo_item()
    res = criar_solicitacao(ItemExistente(item.id), 4, 55.0, "urgente", usuarios["operador"], db_path=db_path)
    sol = res.solicitacao
    assert sol.status is StatusSolicitacao.PENDENTE
    assert sol.preco_unitario == 0.0
    assert sol.quantidade == 4
    assert sol.observacao == "urgente"
    assert sol.solicitante_nome == "Operador Teste"
    assert sol.versao == 1
    assert not res.alto_volume and res.alerta is None
    assert _acoes(db_path) == ["Solicitação Criada"]


def test_gestor_precisa_de_preco_positivo(db_path, usuarios, novo_item):
    item = novo_item()
    with pytest.raises(EntradaInvalida) as exc:
        criar_solicitacao(ItemExistente(item.id), 2, 0, "", usuarios["gestor"], db_path=db_path)
    assert exc.value.campo == "preco_unitario"
    with pytest.raises(EntradaInvalida):
        criar_solicitacao(ItemExistente(item.id), 2, float("inf"), "", usuarios["gestor"], db_path=db_path)
    res = criar_solicitacao(ItemExistente(item.id), 2, 12.5, "", usuarios["gestor"], db_path=db_path)
    assert res.solicitacao.preco_unitario == 12.5
    assert res.solicitacao.valor_total == 25.0


@pytest.mark.parametrize("qtd", [0, -1, "abc", None, True, float("inf"), float("nan"), "inf"])
def test_quantidade_invalida(db_path, usuarios, novo_item, qtd):
    item = novo_item()
    with pytest.raises(EntradaInvalida) as exc:
        criar_solicitacao(ItemExistente(item.id), qtd, None, "", usuarios["operador"], db_path=db_path)
    assert exc.value.campo == "quantidade"
    assert list(listar_solicitacoes(db_path=db_path)) == []
    assert _acoes(db_path) == []


def test_alvo_obrigatorio(db_path, usuarios):
    with pytest.raises(EntradaInvalida):
        criar_solicitacao(None, 1, None, "", usuarios["operador"], db_path=db_path)
    with pytest.raises(EntradaInvalida) as exc:
        criar_solicitacao(ItemProposto("  ", "Tintas"), 1, None, "", usuarios["operador"], db_path=db_path)
    assert exc.value.campo == "nome_proposto"


def test_item_inexistente(db_path, usuarios):
    with pytest.raises(NaoEncontrado):
        criar_solicitacao(ItemExistente(404), 1, None, "", usuarios["operador"], db_path=db_path)
    assert _acoes(db_path) == []


def test_item_proposto_categoria_padrao(db_path, usuarios):
    res = criar_solicitacao(ItemProposto("Verniz marítimo", ""), 3, None, "", usuarios["operador"], db_path=db_path)
    alvo = res.solicitacao.alvo
    assert isinstance(alvo, ItemProposto)
    assert alvo.nome == "Verniz marítimo"
    assert alvo.categoria == "Geral"
    assert res.solicitacao.item_id is None


def test_alto_volume_alerta_sem_bloquear(db_path, usuarios, novo_item):
    item = novo_item(qtd_atual=10, qtd_minima=5)   # limite 30
    assert verificar_alto_volume(item.id, 20, db_path=db_path) is None
    assert verificar_alto_volume(item.id, 21, db_path=db_path) == MSG_ALTO_VOLUME
    res = criar_solicitacao(ItemExistente(item.id), 21, None, "", usuarios["operador"], db_path=db_path)
    assert res.alto_volume
    assert res.alerta == MSG_ALTO_VOLUME
    assert res.solicitacao.status is StatusSolicitacao.PENDENTE


# ---------------------------
# transições
# ---------------------------

def test_fluxo_completo_atualiza_estoque(db_path, usuarios, novo_item):
    item = novo_item(qtd_atual=8, qtd_minima=10)
    assert item.status is StatusItem.CRITICO
    sol = criar_solicitacao(ItemExistente(item.id), 5, None, "", usuarios["operador"], db_path=db_path).solicitacao

    aprovada = aprovar_solicitacao(sol.id, usuarios["gestor"], db_path=db_path)
    assert aprovada.status is StatusSolicitacao.APROVADO
    assert aprovada.versao == 2
    assert ItemRepo(db_path).get_item(item.id).qtd_atual == 8

    comprada = registrar_compra(sol.id, usuarios["gestor"], db_path=db_path)
    assert comprada.status is StatusSolicitacao.COMPRADO
    estoque = ItemRepo(db_path).get_item(item.id)
    assert estoque.qtd_atual == 13
    assert estoque.status is StatusItem.NORMAL

    assert _acoes(db_path) == ["Compra Registrada", "Solicitação Aprovada", "Solicitação Criada"]


def test_compra_soma_quantidade(db_path, usuarios, novo_item):
    item = novo_item(qtd_atual=10, qtd_minima=5)
    sol = criar_solicitacao(ItemExistente(item.id), 5, None, "", usuarios["operador"], db_path=db_path).solicitacao
    aprovar_solicitacao(sol.id, usuarios["admin"], db_path=db_path)
    registrar_compra(sol.id, usuarios["admin"], db_path=db_path)
    assert ItemRepo(db_path).get_item(item.id).qtd_atual == 15


def test_compra_duplicada_nao_soma_duas_vezes(db_path, usuarios, novo_item):
    item = novo_item(qtd_atual=1, qtd_minima=5)
    sol = criar_solicitacao(ItemExistente(item.id), 4, None, "", usuarios["operador"], db_path=db_path).solicitacao
    aprovar_solicitacao(sol.id, usuarios["gestor"], db_path=db_path)
    registrar_compra(sol.id, usuarios["gestor"], db_path=db_path)
    with pytest.raises(EstadoInvalido):
        registrar_compra(sol.id, usuarios["gestor"], db_path=db_path)
    assert ItemRepo(db_path).get_item(item.id).qtd_atual == 5
    assert _acoes(db_path).count("Compra Registrada") == 1


def test_compra_de_item_proposto_nao_mexe_no_estoque(db_path, usuarios, novo_item):
    item = novo_item(qtd_atual=3, qtd_minima=1)
    sol = criar_solicitacao(ItemProposto("Lixa 120", "Abrasivos"), 10, None, "", usuarios["operador"], db_path=db_path).solicitacao
    aprovar_solicitacao(sol.id, usuarios["gestor"], db_path=db_path)
    comprada = registrar_compra(sol.id, usuarios["gestor"], db_path=db_path)
    assert comprada.status is StatusSolicitacao.COMPRADO
    assert [i.qtd_atual for i in ItemRepo(db_path).list_items()] == [item.qtd_atual]


def test_rejeicao_grava_motivo_literal(db_path, usuarios, novo_item):
    item = novo_item()
    sol = criar_solicitacao(ItemExistente(item.id), 2, None, "", usuarios["operador"], db_path=db_path).solicitacao
    motivo = "  Fornecedor sem estoque; refazer em março  "
    rejeitada = rejeitar_solicitacao(sol.id, usuarios["gestor"], motivo, db_path=db_path)
    assert rejeitada.status is StatusSolicitacao.REJEITADO
    assert rejeitada.motivo_rejeicao == motivo
    assert obter_solicitacao(sol.id, db_path=db_path).motivo_rejeicao == motivo

    # terminal
    with pytest.raises(EstadoInvalido):
        aprovar_solicitacao(sol.id, usuarios["gestor"], db_path=db_path)
    with pytest.raises(EstadoInvalido):
        registrar_compra(sol.id, usuarios["gestor"], db_path=db_path)


@pytest.mark.parametrize("motivo", [None, "", "   "])
def test_rejeicao_sem_motivo(db_path, usuarios, novo_item, motivo):
    item = novo_item()
    sol = criar_solicitacao(ItemExistente(item.id), 2, None, "", usuarios["operador"], db_path=db_path).solicitacao
    with pytest.raises(EntradaInvalida) as exc:
        rejeitar_solicitacao(sol.id, usuarios["gestor"], motivo, db_path=db_path)
    assert exc.value.campo == "motivo_rejeicao"
    assert obter_solicitacao(sol.id, db_path=db_path).status is StatusSolicitacao.PENDENTE


def test_compra_exige_aprovacao_previa(db_path, usuarios, novo_item):
    item = novo_item()
    sol = criar_solicitacao(ItemExistente(item.id), 2, None, "", usuarios["operador"], db_path=db_path).solicitacao
    with pytest.raises(EstadoInvalido):
        registrar_compra(sol.id, usuarios["gestor"], db_path=db_path)
    assert ItemRepo(db_path).get_item(item.id).qtd_atual == item.qtd_atual


def test_operador_nao_aprova(db_path, usuarios, novo_item):
    item = novo_item()
    sol = criar_solicitacao(ItemExistente(item.id), 2, None, "", usuarios["operador"], db_path=db_path).solicitacao
    for op in (
        lambda: aprovar_solicitacao(sol.id, usuarios["operador"], db_path=db_path),
        lambda: rejeitar_solicitacao(sol.id, usuarios["operador"], "não", db_path=db_path),
        lambda: registrar_compra(sol.id, usuarios["operador"], db_path=db_path),
    ):
        with pytest.raises(Proibido):
            op()
    assert obter_solicitacao(sol.id, db_path=db_path).status is StatusSolicitacao.PENDENTE


def test_transicao_de_solicitacao_inexistente(db_path, usuarios):
    with pytest.raises(NaoEncontrado):
        aprovar_solicitacao(999, usuarios["gestor"], db_path=db_path)


def test_falha_no_ajuste_mantem_aprovado(db_path, usuarios, novo_item, monkeypatch):
    item = novo_item(qtd_atual=2, qtd_minima=5)
    sol = criar_solicitacao(ItemExistente(item.id), 3, None, "", usuarios["operador"], db_path=db_path).solicitacao
    aprovar_solicitacao(sol.id, usuarios["gestor"], db_path=db_path)

    def _falha(self, item_id, delta, conn=None):
        raise EstoqueInsuficiente("falha simulada", entidade="item", identificador=item_id)

    monkeypatch.setattr(uc.ItemRepo, "ajustar_quantidade", _falha)
    with pytest.raises(EstoqueInsuficiente):
        registrar_compra(sol.id, usuarios["gestor"], db_path=db_path)

    atual = obter_solicitacao(sol.id, db_path=db_path)
    assert atual.status is StatusSolicitacao.APROVADO
    assert atual.versao == 2
    assert ItemRepo(db_path).get_item(item.id).qtd_atual == 2
    assert "Compra Registrada" not in _acoes(db_path)


# ---------------------------
# listagem
# ---------------------------

def test_listagem_filtros_e_ordem(db_path, usuarios, novo_item):
    madeira = novo_item()
    ferragem = novo_item(categoria="Ferragens", nome="Corrediça")
    op, gestor = usuarios["operador"], usuarios["gestor"]

    s1 = criar_solicitacao(ItemExistente(madeira.id), 1, None, "", op, db_path=db_path).solicitacao
    s2 = criar_solicitacao(ItemExistente(ferragem.id), 2, 3.0, "", gestor, db_path=db_path).solicitacao
    s3 = criar_solicitacao(ItemProposto("Cola de contato", "Ferragens"), 1, None, "", op, db_path=db_path).solicitacao
    aprovar_solicitacao(s2.id, gestor, db_path=db_path)

    todas = listar_solicitacoes(db_path=db_path)
    assert [s.id for s in todas] == [s3.id, s2.id, s1.id]

    por_op = listar_solicitacoes(FiltroSolicitacoes(solicitante_id=op.id), db_path=db_path)
    assert [s.id for s in por_op] == [s3.id, s1.id]

    ferragens = listar_solicitacoes(FiltroSolicitacoes(categoria="Ferragens"), db_path=db_path)
    assert [s.id for s in ferragens] == [s3.id, s2.id]

    aprovadas = listar_solicitacoes(FiltroSolicitacoes(status=StatusSolicitacao.APROVADO), db_path=db_path)
    assert [s.id for s in aprovadas] == [s2.id]

    hoje = date.today().isoformat()
    assert len(list(listar_solicitacoes(FiltroSolicitacoes(data_inicio=hoje, data_fim=hoje), db_path=db_path))) == 3
    assert list(listar_solicitacoes(FiltroSolicitacoes(data_fim="2000-01-01"), db_path=db_path)) == []


def test_listagem_e_preguicosa(db_path, usuarios, novo_item, monkeypatch):
    from marcenaria.config import DEFAULTS

    monkeypatch.setattr(DEFAULTS, "tamanho_lote_leitura", 2)
    item = novo_item()
    for _ in range(5):
        criar_solicitacao(ItemExistente(item.id), 1, None, "", usuarios["operador"], db_path=db_path)

    it = listar_solicitacoes(db_path=db_path)
    primeira = next(it)
    assert primeira.quantidade == 1
    assert len(list(it)) == 4


def test_filtro_com_status_desconhecido(db_path, usuarios, novo_item):
    item = novo_item()
    criar_solicitacao(ItemExistente(item.id), 1, None, "", usuarios["operador"], db_path=db_path)
    with pytest.raises(EntradaInvalida) as exc:
        list(listar_solicitacoes(FiltroSolicitacoes(status="pendente"), db_path=db_path))
    assert exc.value.campo == "status"
    assert len(list(listar_solicitacoes(FiltroSolicitacoes(status="PENDENTE"), db_path=db_path))) == 1
