"""
Indicadores derivados de um item do plano.

Cada item do plano combinado com sua referência de material gera:
pallets planejados/produzidos/restantes, percentual concluído, estimativa
de tempo restante (com alocação de máquinas) e, no agregado do painel,
toneladas produzidas por linha e média de progresso.

Referência ausente não gera exceção: os campos derivados viram 0 ou
``None`` e o status fica ``INDISPONIVEL``.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from plano.config import DEFAULTS
from plano.domain.errors import CapacityExceededWarning, DataGapWarning
from plano.domain.models import MaterialRef, PlanoItem
from plano.domain.policies import (
    STATUS_INDISPONIVEL,
    arredondar,
    limitar_progresso,
    status_por_progresso,
)


def formatar_hhmm(minutos: Optional[float]) -> Optional[str]:
    """Formata minutos como ``HH:MM`` (horas e minutos truncados)."""
    if minutos is None:
        return None
    minutos = max(float(minutos), 0.0)
    horas = int(math.floor(minutos / 60))
    mins = int(math.floor(minutos % 60))
    return f"{horas:02d}:{mins:02d}"


def pallets(item: PlanoItem, ref: Optional[MaterialRef]) -> Dict[str, int]:
    """Pallets planejados, produzidos e restantes."""
    caixas = ref.caixas_por_pallet if ref else None
    und = ref.und_por_caixa if ref else None
    planejados = arredondar(item.plano_caixas / caixas) if caixas else 0
    produzidos = arredondar(item.bolsas_produzido / (und * caixas)) if (caixas and und) else 0
    return {
        "pallets_planejados": planejados,
        "pallets_produzidos": produzidos,
        "pallets_restantes": max(planejados - produzidos, 0),
    }


def progresso_pallets(planejados: int, restantes: int) -> float:
    """``max(0, 100 - restantes / max(planejados, 1) * 100)``."""
    pct = max(0.0, 100.0 - (restantes / max(planejados, 1)) * 100.0)
    return limitar_progresso(pct)


def estimar_tempo(item: PlanoItem, ref: MaterialRef) -> Dict[str, Any]:
    """Estimativa de tempo restante com a frota de máquinas limitada.

    Regras:
        - total = plano_caixas × Und
        - horas em uma máquina = total / PPm / 60
        - máquinas ideais = ceil(horas / 22), frota = min(ideais, 24), mínimo 1
        - minutos restantes = (total - bolsas) / PPm / frota
        - capacidade excedida quando ideais > 24 (a estimativa usa a frota limitada)
    """
    und = ref.und_por_caixa or 1.0
    total = item.plano_caixas * und
    horas_uma_maquina = total / ref.ppm / 60.0
    ideais = int(math.ceil(horas_uma_maquina / DEFAULTS.limite_horas_maquina))
    maquinas = max(min(ideais, DEFAULTS.limite_maquinas), 1)
    restante = max(total - item.bolsas_produzido, 0.0)
    minutos = restante / ref.ppm / maquinas
    return {
        "maquinas_ideais": ideais,
        "maquinas": maquinas,
        "tempo_restante_min": minutos,
        "tempo_restante": formatar_hhmm(minutos),
        "capacidade_excedida": ideais > DEFAULTS.limite_maquinas,
    }


def calcular_kpis_item(item: PlanoItem, materiais: Mapping[str, MaterialRef]) -> Dict[str, Any]:
    """Deriva todos os indicadores de um item do plano.

    Args:
        item: Registro do plano.
        materiais: Tabela de referência (código → MaterialRef).

    Returns:
        Dicionário com os campos do item, pallets, progresso, status,
        estimativa de tempo, produtividade esperada, consumo planejado,
        toneladas produzidas e a lista de avisos (texto).
    """
    ref = materiais.get(item.cod_material)
    out: Dict[str, Any] = {
        "cod_material": item.cod_material,
        "material": item.material,
        "plano_caixas": item.plano_caixas,
        "tons": item.tons,
        "bolsas_produzido": item.bolsas_produzido,
        "pallets_planejados": 0,
        "pallets_produzidos": 0,
        "pallets_restantes": 0,
        "progresso": None,
        "status": STATUS_INDISPONIVEL,
        "maquinas_ideais": None,
        "maquinas": None,
        "tempo_restante_min": None,
        "tempo_restante": None,
        "capacidade_excedida": False,
        "produtividade_esperada": None,
        "consumo_planejado_ton": None,
        "produzido_ton": None,
        "avisos": [],
    }

    if ref is None:
        out["avisos"].append(str(DataGapWarning(f"Material {item.cod_material} sem referência")))
        return out

    out.update(pallets(item, ref))

    if ref.caixas_por_pallet and ref.und_por_caixa:
        out["progresso"] = progresso_pallets(out["pallets_planejados"], out["pallets_restantes"])
    else:
        out["avisos"].append(str(DataGapWarning(f"Material {item.cod_material} sem Und/Caixas")))
    out["status"] = status_por_progresso(out["progresso"])

    if ref.ppm and ref.caixas_por_pallet:
        out["produtividade_esperada"] = ref.ppm / ref.caixas_por_pallet
    if ref.gramagem_kg is not None:
        if ref.und_por_caixa:
            out["consumo_planejado_ton"] = item.plano_caixas * ref.und_por_caixa * ref.gramagem_kg / 1000.0
        out["produzido_ton"] = item.bolsas_produzido * ref.gramagem_kg / 1000.0

    # Concluído: sem estimativa de tempo
    if out["progresso"] is not None and out["progresso"] >= 100.0:
        return out

    if ref.ppm:
        out.update(estimar_tempo(item, ref))
        if out["capacidade_excedida"]:
            out["avisos"].append(str(CapacityExceededWarning(
                f"Material {item.cod_material}: {out['maquinas_ideais']} máquinas necessárias "
                f"(limite {DEFAULTS.limite_maquinas})"
            )))
    return out


def filtrar_itens(itens: Iterable[PlanoItem], codigo: Optional[str] = None, material: Optional[str] = None) -> List[PlanoItem]:
    """Filtra por substring do código e do nome (sem diferenciar maiúsculas)."""
    out = []
    for it in itens:
        if codigo and codigo not in it.cod_material:
            continue
        if material and material.lower() not in it.material.lower():
            continue
        out.append(it)
    return out


def kpis_gerais(itens: Iterable[PlanoItem], materiais: Mapping[str, MaterialRef]) -> Dict[str, float]:
    """Agregados do painel.

    - toneladas produzidas (todas, FOFURA e TORCIDA) = bolsas × gramagem / 1000
    - toneladas planejadas = soma de ``tons``
    - média de progresso (itens sem referência contam 0 no denominador)
    """
    itens = list(itens)
    produzido = fofura = torcida = planejado = soma_progresso = 0.0

    for it in itens:
        planejado += it.tons
        ref = materiais.get(it.cod_material)
        if ref is None:
            continue
        if ref.gramagem_kg:
            ton = it.bolsas_produzido * ref.gramagem_kg / 1000.0
            produzido += ton
            nome = it.material.upper()
            if "FOFURA" in nome:
                fofura += ton
            if DEFAULTS.marcador_linha in nome:
                torcida += ton
        if ref.caixas_por_pallet and ref.und_por_caixa:
            p = pallets(it, ref)
            soma_progresso += progresso_pallets(p["pallets_planejados"], p["pallets_restantes"])

    media = soma_progresso / len(itens) if itens else 0.0
    return {
        "total_itens": len(itens),
        "produzido_ton": round(produzido, 3),
        "fofura_ton": round(fofura, 3),
        "torcida_ton": round(torcida, 3),
        "planejado_ton": round(planejado, 2),
        "media_progresso": round(media, 1),
    }
