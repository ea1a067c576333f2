# plano/usecases/estoque_intermediario.py
"""
UC: Estoque intermediário (mezanino) por aroma e sua cobertura do plano.

Para cada aroma:
    tons_intermediario = qtd_pacotes × pacote_kg / 1000
    planejado          = Σ tons dos itens TORCIDA do aroma
    produzido          = Σ bolsas × gramagem / 1000
    falta              = planejado − produzido        (sem piso)
    diferenca          = tons_intermediario − falta   (negativa = sem cobertura)
"""
from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from plano.adapters.materiais import carregar_materiais
from plano.adapters.parsers import parse_decimal
from plano.config import DB_PATH
from plano.domain.aromas import AROMAS, AROMAS_POR_CHAVE, gramagem_para_item, pacote_kg_para_aroma
from plano.domain.errors import ValidationError
from plano.domain.models import EstoqueIntermediario, MaterialRef, PlanoItem
from plano.infra.logger import log_database_operation, log_system_event, log_transaction
from plano.infra.repositories import IntermediarioRepo, PlanoRepo


def definir_estoque_intermediario(aroma_key: str, qtd: Any, db_path: str = DB_PATH) -> EstoqueIntermediario:
    """Grava a quantidade de pacotes do aroma, substituindo a anterior.

    Raises:
        ValidationError: aroma desconhecido ou quantidade não finita/negativa.
    """
    key = (aroma_key or "").strip().upper()
    valor = parse_decimal(qtd)
    try:
        if key not in AROMAS_POR_CHAVE:
            raise ValidationError(f"Aroma desconhecido: {aroma_key!r}")
        if valor is None or not math.isfinite(valor) or valor < 0:
            raise ValidationError(f"Quantidade inválida para {key}: {qtd!r}")

        IntermediarioRepo(db_path).upsert(key, valor)
        log_database_operation("intermediario", "UPSERT", 1, aroma_key=key, qtd_pacotes=valor)
        log_transaction("estoque_intermediario", {"aroma_key": key, "qtd": valor}, result="success")
        return EstoqueIntermediario(aroma_key=key, qtd_pacotes=valor)
    except Exception as e:
        log_transaction("estoque_intermediario", {"aroma_key": aroma_key, "qtd": qtd}, error=str(e))
        raise


def calcular_cobertura(
    itens: Iterable[PlanoItem],
    materiais: Mapping[str, MaterialRef],
    quantidades: Mapping[str, float],
) -> Dict[str, Any]:
    """Cobertura do plano pelo estoque intermediário, por aroma."""
    itens = list(itens)
    linhas: List[Dict[str, Any]] = []

    for aroma in AROMAS:
        qtd = float(quantidades.get(aroma.key, 0) or 0)
        pacote_kg = pacote_kg_para_aroma(aroma, materiais)
        tons_intermediario = qtd * pacote_kg / 1000.0

        casados = [it for it in itens if aroma.casa(it.material)]
        planejado = sum(it.tons for it in casados)
        produzido = sum(
            it.bolsas_produzido * gramagem_para_item(it.cod_material, it.material, materiais) / 1000.0
            for it in casados
        )
        falta = planejado - produzido
        diferenca = tons_intermediario - falta

        linhas.append({
            "key": aroma.key,
            "label": aroma.label,
            "qtd_pacotes": qtd,
            "pacote_kg": pacote_kg,
            "tons_intermediario": tons_intermediario,
            "planejado_ton": planejado,
            "produzido_ton": produzido,
            "falta_ton": falta,
            "diferenca": diferenca,
            "suficiente": diferenca >= 0,
            "itens": [
                {"cod_material": it.cod_material, "material": it.material, "tons": it.tons, "alerta": diferenca < 0}
                for it in casados
            ],
        })

    return {
        "aromas": linhas,
        "total_mezanino_ton": sum(l["tons_intermediario"] for l in linhas),
    }


def alertas_por_material(cobertura: Dict[str, Any]) -> Dict[str, bool]:
    """Código do material → aroma sem cobertura."""
    out: Dict[str, bool] = {}
    for linha in cobertura["aromas"]:
        for it in linha["itens"]:
            out[it["cod_material"]] = out.get(it["cod_material"], False) or it["alerta"]
    return out


def run_cobertura(db_path: str = DB_PATH, materiais: Optional[Mapping[str, MaterialRef]] = None) -> Dict[str, Any]:
    if materiais is None:
        materiais = carregar_materiais()
    itens = PlanoRepo(db_path).itens()
    quantidades = IntermediarioRepo(db_path).map_by_aroma()
    cob = calcular_cobertura(itens, materiais, quantidades)
    cob["alertas"] = alertas_por_material(cob)
    faltando = [l["key"] for l in cob["aromas"] if not l["suficiente"]]
    if faltando:
        log_system_event("cobertura_insuficiente", {"aromas": faltando}, level="warning")
    return cob
