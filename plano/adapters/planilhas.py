# plano/adapters/planilhas.py
"""
Leitura das planilhas de PLANO e de ATUALIZAÇÃO DE PRODUÇÃO (XLSX).

Essas funções:
- leem planilhas XLSX usando pandas;
- devolvem linhas como dicionários genéricos (cabeçalho original → valor);
- resolvem cada campo lógico por uma lista ordenada de nomes aceitos,
  comparados após normalização (acentos, caixa, espaços).

Observações:
- Não convertem números aqui. Os casos de uso passam tudo por
  `parse_decimal`.
- Células vazias viram None.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Sequence

import pandas as pd


# Nomes aceitos por campo lógico, em ordem de prioridade
ALIASES_PLANO: Dict[str, Sequence[str]] = {
    "codigo": ("CodMaterialProducao", "Código Material", "Codigo"),
    "material": ("MaterialProducao", "Material", "Material Produção"),
    "plano_caixas": ("PlanoCaixasFardos", "Plano Caixas", "Caixas"),
    "tons": ("Tons", "Toneladas", "Peso"),
    "bolsas_produzido": ("BolsasProduzido", "Produzido"),
}

ALIASES_PRODUCAO: Dict[str, Sequence[str]] = {
    "codigo": ("CodMaterialSap", "Código SAP", "Codigo"),
    "quantidade": ("Qtd_real_origem", "Quantidade", "Produzido"),
    "unidade": ("Unid_medida_basica", "Unidade"),
}


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: Any) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem separadores."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    # "CodMaterialSap", "Cod Material Sap" e "cod_material_sap" viram a mesma chave
    return re.sub(r"[^a-z0-9]+", "", s)


def _is_empty(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, str):
        return not val.strip()
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):
        return False


def pick_field(row: Dict[str, Any], aliases: Sequence[str]) -> Any:
    """Primeiro valor não vazio entre os nomes aceitos, na ordem dada."""
    por_slug: Dict[str, Any] = {}
    for k, v in row.items():
        por_slug.setdefault(_slug(k), v)
    for alias in aliases:
        val = por_slug.get(_slug(alias))
        if not _is_empty(val):
            return val
    return None


def map_row(row: Dict[str, Any], aliases: Dict[str, Sequence[str]]) -> Dict[str, Any]:
    """Resolve todos os campos lógicos de uma linha."""
    return {campo: pick_field(row, nomes) for campo, nomes in aliases.items()}


def _safe_get(row, key):
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    return val


# ---------------------------
# loaders públicos (XLSX)
# ---------------------------

def load_rows_from_xlsx(path: str, sheet_name: Any = 0) -> List[Dict[str, Any]]:
    """Lê a primeira aba de um XLSX como lista de dicionários (texto)."""
    df = pd.read_excel(path, sheet_name=sheet_name, dtype="string")
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        out.append({str(col): _safe_get(row, col) for col in df.columns})
    return out


def load_plano_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê o XLSX do plano de produção.

    Colunas reconhecidas (qualquer um dos nomes, primeira vence):
      - código: CodMaterialProducao | Código Material | Codigo
      - material: MaterialProducao | Material | Material Produção
      - caixas planejadas: PlanoCaixasFardos | Plano Caixas | Caixas
      - toneladas: Tons | Toneladas | Peso
      - produzido (opcional): BolsasProduzido | Produzido
    """
    return load_rows_from_xlsx(path)


def load_producao_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê o XLSX de apontamentos de produção (código, quantidade, unidade)."""
    return load_rows_from_xlsx(path)
