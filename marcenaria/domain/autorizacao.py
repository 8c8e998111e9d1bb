# marcenaria/domain/autorizacao.py
"""
Política de autorização: papel -> conjunto de capacidades.

Toda operação sensível a papel consulta este módulo uma única vez,
em vez de repetir listas de papéis em cada chamada.

| Papel      | Criar | Preço | Aprovar/Rejeitar/Comprar | Financeiro | Admin |
|------------|-------|-------|--------------------------|------------|-------|
| OPERADOR   | sim   | não   | não                      | não        | não   |
| GESTOR     | sim   | sim   | sim                      | sim        | não   |
| ADM_MASTER | sim   | sim   | sim                      | sim        | sim   |
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet

from marcenaria.domain.errors import Proibido
from marcenaria.domain.models import Papel, Usuario


class Capacidade(str, Enum):
    CRIAR_SOLICITACAO = "criar_solicitacao"
    DEFINIR_PRECO = "definir_preco"
    APROVAR = "aprovar"              # aprovar, rejeitar e registrar compra
    VER_FINANCEIRO = "ver_financeiro"
    ADMINISTRAR = "administrar"


_BASE = frozenset({Capacidade.CRIAR_SOLICITACAO})
_GESTAO = _BASE | {Capacidade.DEFINIR_PRECO, Capacidade.APROVAR, Capacidade.VER_FINANCEIRO}

_CAPACIDADES: Dict[Papel, FrozenSet[Capacidade]] = {
    Papel.OPERADOR: _BASE,
    Papel.GESTOR: frozenset(_GESTAO),
    Papel.ADM_MASTER: frozenset(_GESTAO | {Capacidade.ADMINISTRAR}),
}


def capacidades(papel) -> FrozenSet[Capacidade]:
    """Retorna as capacidades do papel (texto desconhecido equivale a OPERADOR)."""
    return _CAPACIDADES[Papel.from_raw(papel)]


def pode(usuario: Usuario, capacidade: Capacidade) -> bool:
    return capacidade in capacidades(usuario.papel)


def exigir(usuario: Usuario, capacidade: Capacidade) -> None:
    """Levanta ``Proibido`` se o usuário não tiver a capacidade."""
    if not pode(usuario, capacidade):
        raise Proibido(
            f"Papel {Papel.from_raw(usuario.papel).value} sem permissão para '{capacidade.value}'.",
            entidade="usuario",
            identificador=usuario.id,
        )
