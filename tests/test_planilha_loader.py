"""
Testes do loader de planilhas de itens e da importação administrativa.
"""

import pandas as pd
import pytest

from marcenaria.adapters.planilha_loader import _normalize_columns, load_itens
from marcenaria.domain.errors import Proibido
from marcenaria.domain.models import StatusItem
from marcenaria.infra.repositories import AuditoriaRepo, ItemRepo
from marcenaria.usecases.cadastros import importar_itens


def test_normalize_columns_sinonimos():
    df = pd.DataFrame({
        "Código": ["A1"],
        "Descrição": ["Compensado"],
        "Preço Unitário": ["10"],
        "Estoque Mínimo": ["2"],
        "Qtd Atual": ["5"],
        "Observação": ["x"],
    })
    cols = list(_normalize_columns(df).columns)
    assert cols == ["sku", "nome", "preco_unitario", "qtd_minima", "qtd_atual", "Observação"]


def test_load_itens_xlsx(tmp_path):
    path = tmp_path / "itens.xlsx"
    pd.DataFrame({
        "SKU": ["MAD-015", "FER-002", None],
        "Item": ["MDF 15mm", "Dobradiça 35mm", "Sem código"],
        "Categoria": ["Madeiras", "Ferragens", "Outros"],
        "Unidade": ["ch", None, "un"],
        "Preço": [189.9, 4.5, 1.0],
        "Estoque": [12, 300, 1],
        "Mínimo": [4, 100, 1],
    }).to_excel(path, index=False)

    rows = load_itens(str(path))
    assert [r["sku"] for r in rows] == ["MAD-015", "FER-002"]
    mdf = rows[0]
    assert mdf["nome"] == "MDF 15mm"
    assert mdf["unidade"] == "CH"
    assert mdf["preco_unitario"] == pytest.approx(189.9)
    assert mdf["qtd_atual"] == 12
    assert mdf["qtd_minima"] == 4
    assert rows[1]["unidade"] == "UN"


def test_load_itens_csv_formato_brasileiro(tmp_path):
    path = tmp_path / "itens.csv"
    path.write_text(
        "Código;Nome do item;Grupo;Unid;Valor unitário;Quantidade atual;Estoque mínimo\n"
        "TIN-001;Seladora;Acabamento;L;R$ 1.250,00;3,5;5\n"
        "TIN-002;Thinner;Acabamento;L;R$ 32,90;10;2\n"
        ";Linha sem código;Acabamento;L;R$ 1,00;1;1\n",
        encoding="utf-8",
    )
    rows = load_itens(str(path))
    assert len(rows) == 2
    seladora = rows[0]
    assert seladora["categoria"] == "Acabamento"
    assert seladora["preco_unitario"] == 1250.0
    assert seladora["qtd_atual"] == 3.5
    assert rows[1]["preco_unitario"] == pytest.approx(32.9)


def test_importar_itens_grava_e_audita(db_path, usuarios, tmp_path):
    path = tmp_path / "carga.xlsx"
    pd.DataFrame({
        "SKU": ["MAD-001", "MAD-002"],
        "Nome": ["Compensado 18mm", "Compensado 6mm"],
        "Categoria": ["Madeiras", "Madeiras"],
        "Quantidade": [8, 20],
        "Estoque mínimo": [10, 5],
    }).to_excel(path, index=False)

    res = importar_itens(usuarios["admin"], str(path), db_path=db_path)
    assert res == {"arquivo": str(path), "linhas_importadas": 2}

    itens = ItemRepo(db_path).list_items()
    assert [i.status for i in itens] == [StatusItem.CRITICO, StatusItem.NORMAL]
    (reg,) = AuditoriaRepo(db_path).query()
    assert reg.acao == "Importação de Itens"


def test_importar_itens_exige_admin(db_path, usuarios, tmp_path):
    with pytest.raises(Proibido):
        importar_itens(usuarios["gestor"], str(tmp_path / "nada.xlsx"), db_path=db_path)
