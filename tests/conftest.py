import itertools

import pytest

from marcenaria.infra.migrations import apply_migrations
from marcenaria.infra.views import create_views
from marcenaria.infra.repositories import ItemRepo, UsuarioRepo


@pytest.fixture
def db_path(tmp_path):
    """Banco SQLite temporário já migrado."""
    path = str(tmp_path / "marcenaria_test.sqlite")
    apply_migrations(path)
    create_views(path)
    return path


@pytest.fixture
def usuarios(db_path):
    repo = UsuarioRepo(db_path)
    return {
        "operador": repo.insert({"nome": "Operador Teste", "papel": "OPERADOR"}),
        "gestor": repo.insert({"nome": "Gestor Teste", "papel": "GESTOR"}),
        "admin": repo.insert({"nome": "Admin Teste", "papel": "ADM_MASTER"}),
    }


@pytest.fixture
def novo_item(db_path):
    """Fábrica de itens: novo_item(qtd_atual=10, qtd_minima=5, ...)."""
    repo = ItemRepo(db_path)
    seq = itertools.count(1)

    def _make(qtd_atual=10, qtd_minima=5, **kw):
        n = next(seq)
        row = {
            "sku": kw.pop("sku", f"MAD-{n:03d}"),
            "nome": kw.pop("nome", f"Compensado {n}"),
            "categoria": kw.pop("categoria", "Madeiras"),
            "unidade": kw.pop("unidade", "CH"),
            "preco_unitario": kw.pop("preco_unitario", 100.0),
            "qtd_atual": qtd_atual,
            "qtd_minima": qtd_minima,
        }
        return repo.upsert([row])[0]

    return _make
