# plano/usecases/calcular_kpis.py
"""
UC: Calcular os KPIs do plano gravado (por item e agregados do painel).
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from plano.adapters.materiais import carregar_materiais
from plano.config import DB_PATH
from plano.domain.kpis import calcular_kpis_item, filtrar_itens, kpis_gerais
from plano.domain.models import MaterialRef
from plano.infra.logger import log_system_event
from plano.infra.repositories import PlanoRepo


def run_kpis(
    db_path: str = DB_PATH,
    materiais: Optional[Mapping[str, MaterialRef]] = None,
    codigo: Optional[str] = None,
    material: Optional[str] = None,
) -> Dict[str, Any]:
    """Carrega o plano, aplica os filtros e deriva os KPIs.

    Returns:
        ``{"itens": [...], "gerais": {...}, "avisos": [...]}``
    """
    if materiais is None:
        materiais = carregar_materiais()
    try:
        itens = filtrar_itens(PlanoRepo(db_path).itens(), codigo=codigo, material=material)
        linhas = [calcular_kpis_item(it, materiais) for it in itens]

        avisos = [a for linha in linhas for a in linha["avisos"]]
        for a in avisos:
            log_system_event("kpi_aviso", {"aviso": a}, level="warning")

        gerais = kpis_gerais(itens, materiais)
        log_system_event("kpis_calculados", {"itens": len(linhas), "avisos": len(avisos)})
        return {"itens": linhas, "gerais": gerais, "avisos": avisos}
    except Exception as e:
        log_system_event("kpis_error", {"error": str(e)}, level="error")
        raise
