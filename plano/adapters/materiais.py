"""
Tabela de referência de materiais.

Carrega o JSON de materiais uma única vez e expõe uma visão somente
leitura indexada pelo código. A instância é passada explicitamente para
o conversor de unidades, os KPIs e o cálculo do estoque intermediário.

Chaves aceitas por campo (a primeira presente vence):
  - Codigo
  - Material
  - Gramagem | GramagemKg
  - Und | UndPorCaixa
  - Caixas
  - PPm
  - Pacote
  - Pallet
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional

from plano.adapters.parsers import normalize_codigo, parse_decimal
from plano.config import MATERIAIS_PATH
from plano.domain.models import MaterialRef
from plano.infra.logger import log_system_event


_FIELDS = {
    "gramagem_kg": ("Gramagem", "GramagemKg"),
    "und_por_caixa": ("Und", "UndPorCaixa"),
    "caixas_por_pallet": ("Caixas",),
    "ppm": ("PPm",),
    "pacote_kg": ("Pacote",),
    "pallet": ("Pallet",),
}


def _first(raw: Dict[str, Any], keys: Iterable[str]) -> Any:
    for k in keys:
        if raw.get(k) not in (None, ""):
            return raw[k]
    return None


def material_from_dict(raw: Dict[str, Any]) -> Optional[MaterialRef]:
    """Converte um registro bruto do JSON em MaterialRef (None sem código)."""
    codigo = normalize_codigo(raw.get("Codigo"))
    if not codigo:
        return None
    numeros = {campo: parse_decimal(_first(raw, keys)) for campo, keys in _FIELDS.items()}
    return MaterialRef(
        codigo=codigo,
        material=str(raw.get("Material") or "").strip(),
        **numeros,
    )


class MateriaisRef(Mapping):
    """Visão somente leitura dos materiais por código."""

    def __init__(self, materiais: Iterable[MaterialRef] = ()):
        self._by_codigo: Dict[str, MaterialRef] = {}
        for m in materiais:
            self._by_codigo[m.codigo] = m

    def __getitem__(self, codigo: str) -> MaterialRef:
        return self._by_codigo[normalize_codigo(codigo)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_codigo)

    def __len__(self) -> int:
        return len(self._by_codigo)

    def get(self, codigo: Any, default: Optional[MaterialRef] = None) -> Optional[MaterialRef]:
        key = normalize_codigo(codigo)
        if key is None:
            return default
        return self._by_codigo.get(key, default)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "MateriaisRef":
        mats = [m for m in (material_from_dict(r) for r in records) if m is not None]
        return cls(mats)


def carregar_materiais(path: str = MATERIAIS_PATH) -> MateriaisRef:
    """Lê o JSON de materiais. Arquivo ausente resulta em tabela vazia."""
    p = Path(path)
    if not p.exists():
        log_system_event("materiais_nao_encontrados", {"path": str(p)}, level="warning")
        return MateriaisRef()
    with open(p, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Arquivo de materiais inválido (esperado lista): {p}")
    ref = MateriaisRef.from_records(data)
    log_system_event("materiais_carregados", {"path": str(p), "total": len(ref)})
    return ref
