"""
Políticas de classificação do estoque e regras consultivas.

Este módulo contém funções que encapsulam regras de negócio de
classificação de status de itens e o alerta de alto volume exibido
no formulário de solicitação. As funções são utilizadas pelo
repositório de itens (status na leitura), pelo fluxo de solicitações
e pelos relatórios.
"""

from __future__ import annotations

from typing import Any, Optional

from marcenaria.domain.formulas import estoque_projetado, limite_alto_volume
from marcenaria.domain.errors import EntradaInvalida
from marcenaria.domain.models import ItemEstoque, StatusItem, StatusSolicitacao

MSG_ALTO_VOLUME = "Alto volume solicitado. Por favor, verifique se esta é uma reposição urgente."

# Rótulo de relatório: item crítico com reposição já aprovada
STATUS_EM_REPOSICAO = "Em Reposição"


def status_item(qtd_atual: float, qtd_minima: float) -> StatusItem:
    """Classifica o status do estoque de um item.

    Regras:
        - ``qtd_atual < qtd_minima`` → ``Crítico``
        - caso contrário → ``Normal``

    A função é pura e deve ser reaplicada em toda leitura que reporte
    status, para que alterações externas do mínimo apareçam na hora.
    """
    if float(qtd_atual) < float(qtd_minima):
        return StatusItem.CRITICO
    return StatusItem.NORMAL


def com_status(item: ItemEstoque) -> ItemEstoque:
    """Recalcula e grava o status derivado no próprio objeto."""
    item.status = status_item(item.qtd_atual, item.qtd_minima)
    return item


def e_alto_volume(item: ItemEstoque, quantidade: float) -> bool:
    """Indica se a projeção pós-compra ultrapassa o limite consultivo.

    Nunca bloqueia a criação; serve apenas para avisar o solicitante.
    """
    if quantidade is None or float(quantidade) <= 0:
        return False
    projetado = estoque_projetado(item.qtd_atual, quantidade)
    return projetado > limite_alto_volume(item.qtd_minima)


def status_exibicao(item: ItemEstoque, tem_reposicao_aprovada: bool) -> str:
    """Status usado nos relatórios: ``Normal``, ``Crítico`` ou ``Em Reposição``."""
    status = status_item(item.qtd_atual, item.qtd_minima)
    if status is StatusItem.NORMAL:
        return status.value
    return STATUS_EM_REPOSICAO if tem_reposicao_aprovada else status.value


def mensagem_alto_volume(alto_volume: bool) -> Optional[str]:
    return MSG_ALTO_VOLUME if alto_volume else None


def status_solicitacao(valor: Any) -> StatusSolicitacao:
    """Converte o rótulo exato (``PENDENTE``, ``APROVADO``...) em status.

    Rótulo desconhecido levanta ``EntradaInvalida`` no campo ``status``.
    """
    if isinstance(valor, StatusSolicitacao):
        return valor
    try:
        return StatusSolicitacao(valor)
    except ValueError:
        validos = ", ".join(s.value for s in StatusSolicitacao)
        raise EntradaInvalida(
            f"Status desconhecido: {valor!r} (use {validos}).",
            entidade="solicitacao",
            campo="status",
        ) from None
