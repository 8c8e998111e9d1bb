"""
Fórmulas simples de quantidade e valor usadas pelo fluxo de solicitações
e pelos relatórios.

Todas as funções são puras: dependem apenas das entradas e não alteram
estado externo, o que permite testá-las isoladamente.
"""

from typing import Iterable, Optional, Union

from marcenaria.config import DEFAULTS

Number = Union[int, float]


def estoque_projetado(qtd_atual: Number, quantidade: Number) -> float:
    """Quantidade em estoque após a compra da solicitação."""
    return float(qtd_atual) + float(quantidade)


def limite_alto_volume(
    qtd_minima: Number,
    fator_media: Optional[float] = None,
    fator_alto: Optional[float] = None,
) -> float:
    """Limite consultivo de alto volume: ``qtd_minima × fator_media × fator_alto``.

    Com os padrões (3 e 2) o limite é seis vezes o estoque mínimo.
    """
    fm = DEFAULTS.fator_media_estoque if fator_media is None else float(fator_media)
    fa = DEFAULTS.fator_alto_volume if fator_alto is None else float(fator_alto)
    return float(qtd_minima) * fm * fa


def valor_total(preco_unitario: Optional[Number], quantidade: Number) -> float:
    return float(preco_unitario or 0.0) * float(quantidade)


def media_arredondada_para_cima(valores: Iterable[Number]) -> int:
    """Média aritmética arredondada para cima (0 para lista vazia)."""
    vals = [float(v) for v in valores]
    if not vals:
        return 0
    media = sum(vals) / len(vals)
    inteiro = int(media)
    return inteiro if inteiro == media else inteiro + 1
