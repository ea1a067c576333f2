"""
Conversão de quantidades para a unidade base (bolsas).

Os apontamentos de produção chegam em unidades variadas (UN, CX, KG, TON).
As funções deste módulo são puras: recebem a tabela de materiais como
parâmetro e nunca lançam exceção por quantidade inválida.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from plano.adapters.parsers import parse_decimal
from plano.config import DEFAULTS
from plano.domain.models import MaterialRef


UNIDADE_BASE = "UN"
CAIXA = "CX"
QUILO = "KG"
TONELADA = "TON"

_ALIASES_UNIDADE = {
    UNIDADE_BASE: {"UN", "UNID", "UNIDADE", "BOLSA", "BOLSAS", "BOL"},
    CAIXA: {"CX", "CAIXA", "CAIXAS"},
    QUILO: {"KG", "KGM", "KILO", "QUILOS"},
    TONELADA: {"TON", "TONELADA", "TONELADAS", "T"},
}


def normalizar_unidade(label: Any) -> str:
    """Mapeia o rótulo de unidade para UN, CX, KG ou TON.

    Rótulo vazio vira ``UN``. Rótulos desconhecidos voltam em maiúsculas e
    são tratados como unidade base por :func:`to_base_units`.
    """
    if label is None:
        return UNIDADE_BASE
    s = str(label).strip().upper()
    if not s:
        return UNIDADE_BASE
    for canonica, aceitos in _ALIASES_UNIDADE.items():
        if s in aceitos:
            return canonica
    return s


def _gramagem(ref: Optional[MaterialRef]) -> float:
    g = ref.gramagem_kg if ref else None
    if g is None or g <= 0:
        return DEFAULTS.gramagem_minima_kg
    return g


def to_base_units(codigo: Any, quantidade: Any, unidade: Any, materiais: Mapping[str, MaterialRef]) -> float:
    """Converte uma quantidade para bolsas.

    Regras:
        - quantidade inválida, zero ou negativa → 0
        - UN (e desconhecidas) → quantidade
        - CX → quantidade × Und (1 sem referência)
        - KG → quantidade / Gramagem (piso de 0.001 kg)
        - TON → (quantidade × 1000) e então a regra de KG
    """
    qtd = parse_decimal(quantidade)
    if qtd is None or qtd <= 0:
        return 0.0

    ref = materiais.get(codigo)
    kind = normalizar_unidade(unidade)

    if kind == CAIXA:
        und = ref.und_por_caixa if ref and ref.und_por_caixa else 1.0
        return qtd * und
    if kind == QUILO:
        return qtd / _gramagem(ref)
    if kind == TONELADA:
        return (qtd * 1000.0) / _gramagem(ref)
    return qtd


def campo_faltante(codigo: Any, unidade: Any, materiais: Mapping[str, MaterialRef]) -> Optional[str]:
    """Campo da referência que a conversão precisaria e não tem.

    Só vale para materiais com referência: CX sem ``Und`` e KG/TON sem
    ``Gramagem`` positiva. Material sem referência devolve None (é tratado
    à parte por quem chama).
    """
    ref = materiais.get(codigo)
    if ref is None:
        return None
    kind = normalizar_unidade(unidade)
    if kind == CAIXA and not ref.und_por_caixa:
        return "Und"
    if kind in (QUILO, TONELADA) and not (ref.gramagem_kg and ref.gramagem_kg > 0):
        return "Gramagem"
    return None
