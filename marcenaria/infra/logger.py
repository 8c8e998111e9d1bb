# marcenaria/infra/logger.py
"""
Sistema de logging para as operações da marcenaria.

Este módulo configura e fornece loggers para registrar as operações
críticas do sistema: ciclo de vida das solicitações, ajustes de estoque,
operações no banco de dados e eventos gerais.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = os.environ.get("MARCENARIA_LOG", "0").strip().lower() in {"1", "true", "sim", "yes"}
# Liga os loggers mesmo sem MARCENARIA_LOG (depuração)
ENABLE_OUTPUT = False


# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    O handler de arquivo é aberto de forma preguiçosa (``delay=True``):
    o arquivo só é criado na primeira mensagem emitida.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove handlers existentes (reconfiguração idempotente)
    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


# Diretório base para logs (configurável por variável de ambiente)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("MARCENARIA_LOG_DIR", str(BASE_DIR / "logs")))

# Loggers específicos para cada área
transaction_logger = setup_logger('marcenaria.transactions', str(LOGS_DIR / 'transactions.log'))
solicitacao_logger = setup_logger('marcenaria.solicitacoes', str(LOGS_DIR / 'solicitacoes.log'))
estoque_logger = setup_logger('marcenaria.estoque', str(LOGS_DIR / 'estoque.log'))
database_logger = setup_logger('marcenaria.database', str(LOGS_DIR / 'database.log'))
system_logger = setup_logger('marcenaria.system', str(LOGS_DIR / 'system.log'))


def _ativo() -> bool:
    return ENABLE_LOGGING or ENABLE_OUTPUT


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (criar_solicitacao, aprovar, ...)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not _ativo():
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_solicitacao(action: str, solicitacao_id: Any, status: Optional[str] = None, **kwargs) -> None:
    """
    Log específico para o ciclo de vida das solicitações.

    Args:
        action: Ação realizada (criada, aprovada, rejeitada, comprada)
        solicitacao_id: Identificador da solicitação
        status: Status resultante (opcional)
        **kwargs: Dados adicionais
    """
    if not _ativo():
        return
    log_data = {"action": action, "id": solicitacao_id, "status": status, **kwargs}
    solicitacao_logger.info(f"SOLICITACAO_{action.upper()}: {log_data}")


def log_estoque(action: str, item_id: Any, delta: Any = None, **kwargs) -> None:
    """
    Log específico para ajustes de quantidade e cadastro de itens.

    Args:
        action: Ação realizada (ajuste, cadastro, minimo)
        item_id: Identificador do item
        delta: Variação aplicada (opcional)
        **kwargs: Dados adicionais
    """
    if not _ativo():
        return
    log_data = {"action": action, "item_id": item_id, "delta": delta, **kwargs}
    estoque_logger.info(f"ESTOQUE_{action.upper()}: {log_data}")


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para operações no banco de dados.

    Args:
        table: Nome da tabela
        operation: Operação SQL (INSERT, UPDATE, SELECT)
        affected_rows: Número de linhas afetadas
        **kwargs: Dados adicionais
    """
    if not _ativo():
        return
    log_data = {"table": table, "operation": operation, "affected_rows": affected_rows, **kwargs}
    database_logger.info(f"DB_{operation}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not _ativo():
        return
    log_data = {"event": event, "details": details or {}}
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Log para operações de arquivo (importação de planilhas).
    """
    if not _ativo():
        return
    log_data = {"operation": operation, "file_path": file_path, "rows_processed": rows_processed, **kwargs}
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, solicitacoes, estoque, database, system)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string (None com logging desligado)
    """
    if not _ativo():
        return None

    log_files = {
        "transactions": LOGS_DIR / "transactions.log",
        "solicitacoes": LOGS_DIR / "solicitacoes.log",
        "estoque": LOGS_DIR / "estoque.log",
        "database": LOGS_DIR / "database.log",
        "system": LOGS_DIR / "system.log",
    }

    log_file = log_files.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
    except OSError as e:
        return f"Erro ao ler log {log_type}: {e}"
    return ''.join(all_lines[-lines:])
