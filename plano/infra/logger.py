# plano/infra/logger.py
"""
Sistema de logging das operações do plano de produção.

Este módulo configura e fornece loggers para registrar as operações
críticas do sistema: importação do plano, atualizações de produção,
envio de relatórios e operações no banco de dados.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = os.environ.get("PLANO_LOGGING", "").strip().lower() in {"1", "true", "sim", "yes"}
# Liga os logs em arquivo sem depender de PLANO_LOGGING (depuração)
ENABLE_OUTPUT = False

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

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

    # Remove handlers anteriores (reimportações em testes)
    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger

# Diretório base para logs
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("PLANO_LOG_DIR", BASE_DIR / "logs"))

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "plano": LOGS_DIR / "plano.log",
    "producao": LOGS_DIR / "producao.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
    "email": LOGS_DIR / "email.log",
}

transaction_logger = setup_logger('plano.transactions', str(LOG_FILES["transactions"]))
plano_logger = setup_logger('plano.plano', str(LOG_FILES["plano"]))
producao_logger = setup_logger('plano.producao', str(LOG_FILES["producao"]))
database_logger = setup_logger('plano.database', str(LOG_FILES["database"]))
system_logger = setup_logger('plano.system', str(LOG_FILES["system"]))
email_logger = setup_logger('plano.email', str(LOG_FILES["email"]))

def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (importar_plano, atualizar_producao, etc.)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")

def log_plano(action: str, codigo: str, **kwargs) -> None:
    """Log específico para a importação do plano."""
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"action": action, "codigo": codigo, **kwargs}
    plano_logger.info(f"PLANO_{action.upper()}: {log_data}")

def log_producao(action: str, codigo: str, bolsas: float, level: str = "info", **kwargs) -> None:
    """
    Log específico para a atualização de produção.

    Args:
        action: Ação realizada (grupo, atualizado, nao_encontrado)
        codigo: Código do material
        bolsas: Quantidade em bolsas calculada para o grupo
        level: Nível do log (info, warning)
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"action": action, "codigo": codigo, "bolsas": bolsas, **kwargs}
    log_method = getattr(producao_logger, level.lower(), producao_logger.info)
    log_method(f"PRODUCAO_{action.upper()}: {log_data}")

def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para operações no banco de dados.

    Args:
        table: Nome da tabela
        operation: Operação SQL (INSERT, UPDATE, DELETE, SELECT)
        affected_rows: Número de linhas afetadas
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
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
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"event": event, "details": details or {}}
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")

def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """Log para operações de arquivo (importação de planilhas)."""
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"operation": operation, "file_path": file_path, "rows_processed": rows_processed, **kwargs}
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")

def log_email(status: str, destinatarios: int, **kwargs) -> None:
    """Log de envio de relatório (e-mail e Teams)."""
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"status": status, "destinatarios": destinatarios, **kwargs}
    if status == "error":
        email_logger.error(f"EMAIL_{status.upper()}: {log_data}")
    else:
        email_logger.info(f"EMAIL_{status.upper()}: {log_data}")

def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, plano, producao, database, system, email)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return None

    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
            recent_lines = all_lines[-lines:] if len(all_lines) > lines else all_lines
            return ''.join(recent_lines)
    except OSError as e:
        return f"Erro ao ler log {log_type}: {str(e)}"
