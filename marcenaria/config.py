# marcenaria/config.py
"""
Configurações globais e valores padrão do sistema de produção da marcenaria.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("MARCENARIA_DB", os.path.join(os.getcwd(), "marcenaria.db"))


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    fator_media_estoque: float = 3.0  # min_qty x 3 ~ estoque médio esperado
    fator_alto_volume: float = 2.0    # alerta quando projeção passa 2x a média
    categoria_padrao: str = "Geral"   # categoria sugerida para itens novos
    categoria_sem_item: str = "Outros"
    lock_timeout_s: float = 5.0       # espera máxima pelo lock de escrita do SQLite
    tamanho_lote_leitura: int = 200   # linhas por fetchmany nas listagens


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
