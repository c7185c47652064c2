# almoxarifado/infra/logger.py
"""
Sistema de logging das operações do almoxarifado.

Cada assunto tem seu próprio logger e arquivo: transações, entradas, saídas,
banco de documentos e eventos do sistema. Os helpers só escrevem quando
`ENABLE_LOGGING` ou `ENABLE_OUTPUT` estão ligados.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional


def _env_flag(nome: str) -> bool:
    return os.environ.get(nome, "").strip().lower() in {"1", "true", "sim", "yes", "on"}


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = _env_flag("ALMOX_LOGGING")
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = _env_flag("ALMOX_OUTPUT")


def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger com saída apenas em arquivo.

    O arquivo só é aberto na primeira mensagem (delay=True), então importar
    o módulo com o logging desligado não cria arquivos.
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("ALMOX_LOGS_DIR", str(BASE_DIR / "logs")))

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "entradas": LOGS_DIR / "entradas.log",
    "saidas": LOGS_DIR / "saidas.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
}

transaction_logger = setup_logger('almoxarifado.transactions', str(LOG_FILES["transactions"]))
entrada_logger = setup_logger('almoxarifado.entradas', str(LOG_FILES["entradas"]))
saida_logger = setup_logger('almoxarifado.saidas', str(LOG_FILES["saidas"]))
database_logger = setup_logger('almoxarifado.database', str(LOG_FILES["database"]))
system_logger = setup_logger('almoxarifado.system', str(LOG_FILES["system"]))


def _ativo() -> bool:
    return ENABLE_LOGGING or ENABLE_OUTPUT


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa (sucesso ou falha).

    Args:
        operation: Tipo de operação (entrada, saida, ajuste, ...)
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


def log_entrada(action: str, codigo: Optional[str], quantidade: Any, validade: Optional[str] = None, **kwargs) -> None:
    """Log específico de entradas de estoque."""
    if not _ativo():
        return
    log_data = {"action": action, "codigo": codigo, "quantidade": quantidade, "validade": validade, **kwargs}
    entrada_logger.info(f"ENTRADA_{action.upper()}: {log_data}")


def log_saida(action: str, codigo: Optional[str], quantidade: Any, validade: Optional[str] = None, **kwargs) -> None:
    """Log específico de saídas de estoque."""
    if not _ativo():
        return
    log_data = {"action": action, "codigo": codigo, "quantidade": quantidade, "validade": validade, **kwargs}
    saida_logger.info(f"SAIDA_{action.upper()}: {log_data}")


def log_database_operation(collection: str, operation: str, affected: int = 0, **kwargs) -> None:
    """
    Log de operações no armazenamento de documentos.

    Args:
        collection: Nome da coleção
        operation: GET, QUERY, ADD, UPDATE, CONFLICT
        affected: Número de documentos afetados
        **kwargs: Dados adicionais
    """
    if not _ativo():
        return
    log_data = {"collection": collection, "operation": operation, "affected": affected, **kwargs}
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
    """Log para importação/exportação de arquivos."""
    if not _ativo():
        return
    log_data = {"operation": operation, "file_path": file_path, "rows_processed": rows_processed, **kwargs}
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Retorna as últimas `lines` linhas de um dos arquivos de log.

    Args:
        log_type: transactions, entradas, saidas, database ou system
        lines: Número de linhas a retornar
    """
    if not _ativo():
        return None

    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
    except OSError as e:
        return f"Erro ao ler log {log_type}: {e}"
    return ''.join(all_lines[-lines:])
