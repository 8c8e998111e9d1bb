# marcenaria/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios devolvem estas dataclasses já montadas; o status do item
  é sempre derivado na leitura (nunca persistido).
- O alvo de uma solicitação é uma união etiquetada: ``ItemExistente`` (referência
  a um item do estoque) ou ``ItemProposto`` (material ainda não cadastrado).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class Papel(str, Enum):
    """Papéis de usuário. O papel define capacidades, não identidade."""
    OPERADOR = "OPERADOR"
    GESTOR = "GESTOR"
    ADM_MASTER = "ADM_MASTER"

    @classmethod
    def from_raw(cls, raw: Optional[str]) -> "Papel":
        """Converte texto livre em papel; ausente ou desconhecido vira OPERADOR."""
        if raw is None:
            return cls.OPERADOR
        if isinstance(raw, cls):
            return raw
        s = str(raw).strip().upper()
        for p in cls:
            if p.value == s:
                return p
        return cls.OPERADOR


class StatusItem(str, Enum):
    NORMAL = "Normal"
    CRITICO = "Crítico"


class StatusSolicitacao(str, Enum):
    PENDENTE = "PENDENTE"
    APROVADO = "APROVADO"
    REJEITADO = "REJEITADO"
    COMPRADO = "COMPRADO"


@dataclass(frozen=True)
class Usuario:
    """Identidade externa consumida pelo núcleo (não é dono dela)."""
    id: int
    nome: str
    papel: Papel = Papel.OPERADOR
    email: Optional[str] = None
    departamento: Optional[str] = None


@dataclass
class ItemEstoque:
    """Material do estoque com status derivado de ``qtd_atual`` x ``qtd_minima``."""
    id: int
    sku: str
    nome: str
    categoria: str
    unidade: str
    preco_unitario: float
    qtd_atual: float
    qtd_minima: float
    status: StatusItem = StatusItem.NORMAL


@dataclass(frozen=True)
class ItemExistente:
    item_id: int


@dataclass(frozen=True)
class ItemProposto:
    nome: str
    categoria: str


AlvoSolicitacao = Union[ItemExistente, ItemProposto]


@dataclass
class Solicitacao:
    """Solicitação de material (pertence exclusivamente ao fluxo de solicitações)."""
    id: int
    alvo: AlvoSolicitacao
    quantidade: float
    preco_unitario: float
    observacao: str
    solicitante_id: int
    solicitante_nome: str
    status: StatusSolicitacao
    criado_em: datetime
    motivo_rejeicao: Optional[str] = None
    versao: int = 1
    atualizado_em: Optional[datetime] = None

    @property
    def item_id(self) -> Optional[int]:
        return self.alvo.item_id if isinstance(self.alvo, ItemExistente) else None

    @property
    def valor_total(self) -> float:
        return float(self.preco_unitario or 0.0) * float(self.quantidade)


@dataclass
class ResultadoCriacao:
    """Solicitação recém-criada mais o alerta consultivo de alto volume."""
    solicitacao: Solicitacao
    alto_volume: bool = False
    alerta: Optional[str] = None


@dataclass(frozen=True)
class RegistroAuditoria:
    """Entrada do log de auditoria (somente inclusão)."""
    id: int
    timestamp: datetime
    usuario_id: Optional[int]
    usuario_nome: str
    acao: str
    descricao: str


@dataclass
class FiltroSolicitacoes:
    """Projeção somente leitura sobre as solicitações."""
    solicitante_id: Optional[int] = None
    data_inicio: Optional[str] = None   # YYYY-MM-DD inclusive
    data_fim: Optional[str] = None      # YYYY-MM-DD inclusive
    categoria: Optional[str] = None
    status: Optional[StatusSolicitacao] = None


@dataclass
class FiltroAuditoria:
    data_inicio: Optional[str] = None
    data_fim: Optional[str] = None
    usuario_id: Optional[int] = None
    limite: Optional[int] = None
