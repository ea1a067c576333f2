"""
Utilidades de parsing para valores numéricos vindos de planilhas.

As planilhas e a tabela de materiais misturam separadores decimais
("0,100", "10,000", "1.234,56", "370.37"). Todo número em formato texto
que cruza essa fronteira passa por `parse_decimal`, que aplica uma única
regra para vírgula e ponto.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional, Tuple

_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)*")


def parse_decimal(val: Any) -> Optional[float]:
    """Converte um valor em float respeitando separadores pt-BR.

    Regras:
        - ``int``/``float`` são aceitos como estão (NaN e infinito → None);
        - só vírgula: vírgula é o separador decimal ("0,100" → 0.1);
        - vírgula e ponto: ponto é separador de milhar ("1.234,56" → 1234.56);
        - só ponto: ponto é o separador decimal ("370.37" → 370.37).

    Exemplos:
        "0,060"    → 0.06
        "1.234,56" → 1234.56
        "abc"      → None

    Returns:
        O número, ou None quando o valor não pode ser interpretado.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        num = float(val)
        return num if math.isfinite(num) else None
    s = str(val).strip().replace(" ", "").replace(" ", "")
    if not s:
        return None
    if "," in s and "." in s:
        s = s.replace(".", "").replace(",", ".")
    elif "," in s:
        s = s.replace(",", ".")
    try:
        num = float(s)
    except ValueError:
        return None
    return num if math.isfinite(num) else None


def normalize_codigo(val: Any) -> Optional[str]:
    """Normaliza o código de material para a chave textual usada no banco.

    Planilhas costumam devolver códigos numéricos como float
    (300047935.0); esses viram "300047935". Vazio ou NaN → None.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, float):
        if not math.isfinite(val):
            return None
        if val.is_integer():
            return str(int(val))
        return str(val)
    s = str(val).strip()
    if not s or s.lower() in {"nan", "none", "<na>"}:
        return None
    if re.fullmatch(r"\d+\.0+", s):
        s = s.split(".", 1)[0]
    return s


def parse_quantidade_unidade(txt: Any) -> Tuple[Optional[float], Optional[str]]:
    """Interpreta quantidades com unidade embutida.

    Exemplos:
        "5 CX"     → (5.0, "CX")
        "2,5 ton"  → (2.5, "TON")
        "120"      → (120.0, None)
    """
    if txt is None:
        return None, None
    if isinstance(txt, (int, float)) and not isinstance(txt, bool):
        return parse_decimal(txt), None
    s = str(txt).strip()
    if not s:
        return None, None
    num = parse_decimal(s)
    if num is not None:
        return num, None
    m = _NUM_RE.search(s)
    if not m:
        return None, None
    num = parse_decimal(m.group(0))
    resto = s[m.end():].strip()
    unidade = resto.split()[0].upper() if resto else None
    return num, unidade


def formatar_br(val: Optional[float], casas: int = 2) -> str:
    """Formata número no padrão pt-BR (1.234,56)."""
    if val is None:
        return "-"
    return f"{val:,.{casas}f}".replace(",", "X").replace(".", ",").replace("X", ".")
