# plano/config.py
"""
Configurações globais e valores padrão do painel de plano de produção.

Os valores de ambiente (SMTP, webhook do Teams, segredo dos destinatários)
são lidos de variáveis de ambiente, com suporte a arquivo `.env`.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


load_dotenv()

# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("PLANO_DB", os.path.join(os.getcwd(), "plano.db"))

# Tabela de referência de materiais (Gramagem, Und, Caixas, PPm, Pacote)
MATERIAIS_PATH = os.environ.get(
    "MATERIAIS_PATH",
    str(Path(__file__).parent / "data" / "materiais.json"),
)

# Diretório onde ficam as cópias HTML públicas do relatório
REPORTS_DIR = Path(os.environ.get("PLANO_REPORTS_DIR", Path(__file__).parent / "public" / "reports"))

REPORT_TITLE = "📊 Relatório de Produção – Embalagem Torcida"
REPORT_TIMEZONE = "America/Sao_Paulo"


@dataclass
class DefaultConfig:
    """Valores padrão para as regras de cálculo."""
    limite_horas_maquina: float = 22.0  # teto de horas por máquina
    limite_maquinas: int = 24  # frota máxima de máquinas
    gramagem_minima_kg: float = 0.001  # piso quando a gramagem não existe
    pacote_kg_padrao: float = 10.0  # pacote do intermediário sem referência
    marcador_linha: str = "TORCIDA"
    epsilon_progresso: float = 1e-9


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "t", "sim", "s", "y", "yes"}


@dataclass
class Settings:
    """Integrações externas (e-mail, Teams, criptografia)."""
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    email_from: Optional[str] = None
    teams_webhook_url: Optional[str] = None
    system_url: str = "https://planing-ita.com/"
    public_base_url: Optional[str] = None
    logo_public_url: Optional[str] = None
    recipients_secret: Optional[str] = None
    webhook_timeout: float = 15.0


def get_settings() -> Settings:
    """Monta as configurações a partir do ambiente atual."""
    return Settings(
        smtp_host=os.environ.get("SMTP_HOST") or None,
        smtp_port=int(os.environ.get("SMTP_PORT") or 587),
        smtp_secure=_env_bool("SMTP_SECURE"),
        smtp_user=os.environ.get("SMTP_USER") or None,
        smtp_pass=os.environ.get("SMTP_PASS") or None,
        email_from=os.environ.get("EMAIL_FROM") or os.environ.get("SMTP_USER") or None,
        teams_webhook_url=os.environ.get("TEAMS_WEBHOOK_URL") or None,
        system_url=os.environ.get("SYSTEM_URL") or "https://planing-ita.com/",
        public_base_url=os.environ.get("PUBLIC_BASE_URL") or None,
        logo_public_url=os.environ.get("LOGO_PUBLIC_URL") or None,
        recipients_secret=os.environ.get("RECIPIENTS_SECRET") or None,
        webhook_timeout=float(os.environ.get("TEAMS_WEBHOOK_TIMEOUT") or 15.0),
    )
