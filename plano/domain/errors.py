# plano/domain/errors.py
"""
Erros e avisos do domínio.

- ValidationError: entrada inválida; aborta a operação inteira.
- DataGapWarning / CapacityExceededWarning: não fatais; viajam nos
  resultados como mensagens e vão para o log em nível warning.
- DeliveryError: falha de e-mail/webhook; isolada dos dados já gravados.
"""

from __future__ import annotations


class PlanoError(Exception):
    """Erro base do sistema de plano de produção."""


class ValidationError(PlanoError):
    """Linha de planilha ou valor informado inválido."""

    def __init__(self, message: str, linha: int = None):
        super().__init__(message)
        self.linha = linha


class DeliveryError(PlanoError):
    """Falha ao entregar o relatório (SMTP ou webhook)."""


class DataGapWarning(UserWarning):
    """Material sem referência ou referência sem campo numérico necessário."""


class CapacityExceededWarning(UserWarning):
    """Máquinas necessárias acima do limite da frota."""
