# marcenaria/domain/errors.py
"""
Taxonomia de erros do núcleo.

Todos são recuperáveis: a camada de apresentação decide a mensagem ao
usuário a partir do tipo e do contexto (entidade, identificador, campo).
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ErroDominio(Exception):
    """Base de todos os erros tipados do núcleo."""

    tipo = "erro"

    def __init__(
        self,
        mensagem: str,
        *,
        entidade: Optional[str] = None,
        identificador: Any = None,
        campo: Optional[str] = None,
    ) -> None:
        super().__init__(mensagem)
        self.mensagem = mensagem
        self.entidade = entidade
        self.identificador = identificador
        self.campo = campo

    def contexto(self) -> Dict[str, Any]:
        ctx = {
            "tipo": self.tipo,
            "entidade": self.entidade,
            "id": self.identificador,
            "campo": self.campo,
        }
        return {k: v for k, v in ctx.items() if v is not None}


class NaoEncontrado(ErroDominio):
    """Item, solicitação ou usuário inexistente."""
    tipo = "nao_encontrado"


class EstadoInvalido(ErroDominio):
    """Transição tentada a partir de um estado que não a permite."""
    tipo = "estado_invalido"


class Proibido(ErroDominio):
    """O papel do usuário não tem a capacidade exigida."""
    tipo = "proibido"


class EntradaInvalida(ErroDominio):
    """Campo obrigatório ausente ou fora da regra (quantidade, preço, motivo...)."""
    tipo = "entrada_invalida"


class EstoqueInsuficiente(ErroDominio):
    """O ajuste levaria a quantidade do item abaixo de zero."""
    tipo = "estoque_insuficiente"


class Conflito(ErroDominio):
    """Mutação concorrente detectada na mesma entidade."""
    tipo = "conflito"
