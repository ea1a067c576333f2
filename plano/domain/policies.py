"""
Políticas de arredondamento, limites e status para o painel de produção.

Este módulo concentra pequenas regras de negócio reutilizadas pelos KPIs
e pelo resumo do relatório: o arredondamento "meio para cima", o recorte
de percentuais em 0..100 e a reescrita de textos que mencionem percentuais
acima de 100%.
"""

from __future__ import annotations

import math
import re
from typing import Optional

from plano.adapters.parsers import parse_decimal
from plano.config import DEFAULTS


STATUS_CONCLUIDO = "CONCLUIDO"
STATUS_EM_ANDAMENTO = "EM_ANDAMENTO"
STATUS_INDISPONIVEL = "INDISPONIVEL"

# Um número com separadores seguido de % (espaços permitidos), sem dígito colado à esquerda
_PERCENT_RE = re.compile(r"(?<![\d.,])(\d+(?:[.,]\d+)*)\s*%")
# "1.500" só com pontos em grupos de três: separador de milhar
_MILHAR_PONTO_RE = re.compile(r"^\d{1,3}(?:\.\d{3})+$")


def arredondar(x: Optional[float]) -> int:
    """Arredonda ao inteiro mais próximo, com empate para cima.

    ``round`` do Python usa arredondamento bancário (``round(2.5) == 2``);
    aqui 2.5 → 3 e -2.5 → -2.

    Args:
        x: Valor a arredondar. ``None`` ou não finito resulta em 0.

    Returns:
        Inteiro arredondado.
    """
    if x is None:
        return 0
    try:
        val = float(x)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(val):
        return 0
    return int(math.floor(val + 0.5))


def limitar_progresso(pct: Optional[float]) -> Optional[float]:
    """Recorta o percentual em [0, 100] e absorve ruído de ponto flutuante."""
    if pct is None:
        return None
    if abs(pct - 100.0) <= DEFAULTS.epsilon_progresso:
        return 100.0
    return max(0.0, min(100.0, pct))


def status_por_progresso(pct: Optional[float]) -> str:
    """Classifica o item a partir do percentual concluído.

    Regras:
        - ``None`` → ``'INDISPONIVEL'``
        - ``pct >= 100`` → ``'CONCLUIDO'``
        - caso contrário → ``'EM_ANDAMENTO'``
    """
    if pct is None:
        return STATUS_INDISPONIVEL
    if pct >= 100.0 - DEFAULTS.epsilon_progresso:
        return STATUS_CONCLUIDO
    return STATUS_EM_ANDAMENTO


def limitar_percentuais(texto: str) -> str:
    """Reescreve qualquer percentual acima de 100 para ``100%``.

    Exemplos:
        "Progresso: 150%"      → "Progresso: 100%"
        "Atingido 100,5%"      → "Atingido 100%"
        "Concluído 99,9%"      → inalterado
        "Total 1.500 %"        → "Total 100%"
    """
    if not texto:
        return texto

    def _sub(m: re.Match) -> str:
        numero = m.group(1)
        if _MILHAR_PONTO_RE.match(numero):
            numero = numero.replace(".", "")
        num = parse_decimal(numero)
        if num is not None and num > 100.0:
            return "100%"
        return m.group(0)

    return _PERCENT_RE.sub(_sub, texto)
