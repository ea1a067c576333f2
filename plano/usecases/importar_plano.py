# plano/usecases/importar_plano.py
"""
UC: Importar o PLANO de produção (substitui o plano inteiro).

Obs.:
- Campo obrigatório ausente em qualquer linha aborta o lote inteiro; o
  plano gravado fica intacto.
- Linhas cujos números não convertem são descartadas sem erro.
- Reimportar o plano zera a produção apontada (o plano é autoritativo).
"""
from __future__ import annotations

from typing import Any, Dict, List

from plano.adapters.parsers import normalize_codigo, parse_decimal
from plano.adapters.planilhas import ALIASES_PLANO, load_plano_from_xlsx, map_row
from plano.config import DB_PATH
from plano.domain.errors import ValidationError
from plano.domain.models import PlanoItem
from plano.domain.policies import arredondar
from plano.infra.logger import (
    log_database_operation,
    log_file_operation,
    log_plano,
    log_system_event,
    log_transaction,
)
from plano.infra.repositories import PlanoRepo

_OBRIGATORIOS = ("codigo", "material", "plano_caixas", "tons")


def validar_linhas(rows: List[Dict[str, Any]]) -> List[PlanoItem]:
    """Valida e converte as linhas do plano.

    Raises:
        ValidationError: na primeira linha sem código, material, caixas ou
            toneladas (número da linha na planilha, contando o cabeçalho).
    """
    mapeadas = [map_row(r, ALIASES_PLANO) for r in rows]

    for idx, m in enumerate(mapeadas):
        if any(m[campo] is None for campo in _OBRIGATORIOS):
            raise ValidationError(f"Linha {idx + 2}: Dados obrigatórios faltando", linha=idx + 2)

    por_codigo: Dict[str, PlanoItem] = {}
    for idx, m in enumerate(mapeadas):
        codigo = normalize_codigo(m["codigo"])
        caixas = parse_decimal(m["plano_caixas"])
        tons = parse_decimal(m["tons"])
        if codigo is None or caixas is None or tons is None:
            log_plano("descartada", str(m["codigo"]), linha=idx + 2)
            continue
        produzido = parse_decimal(m["bolsas_produzido"])
        # código repetido: a última linha vence
        por_codigo[codigo] = PlanoItem(
            cod_material=codigo,
            material=str(m["material"]).strip(),
            plano_caixas=caixas,
            tons=tons,
            bolsas_produzido=arredondar(produzido) if produzido and produzido > 0 else 0,
        )
    return list(por_codigo.values())


def ingest_plan(rows: List[Dict[str, Any]], db_path: str = DB_PATH) -> Dict[str, Any]:
    """Valida as linhas e substitui o plano gravado.

    Returns:
        ``{"inseridos": [PlanoItem, ...]}``
    """
    log_system_event("importar_plano_start", {"linhas": len(rows)})
    try:
        itens = validar_linhas(rows)
        total = PlanoRepo(db_path).replace_all(itens)
        log_database_operation("producao", "REPLACE_ALL", total)
        for it in itens:
            log_plano("inserido", it.cod_material, plano_caixas=it.plano_caixas, tons=it.tons)

        log_transaction("importar_plano", {"linhas": len(rows)}, result={"inseridos": total})
        log_system_event("importar_plano_success", {"inseridos": total, "descartadas": len(rows) - total})
        return {"inseridos": itens}
    except Exception as e:
        error_msg = str(e)
        log_transaction("importar_plano", {"linhas": len(rows)}, error=error_msg)
        log_system_event("importar_plano_error", {"error": error_msg}, level="error")
        raise


def run_plano_lote(path: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê um XLSX de plano e substitui o plano gravado."""
    log_file_operation("import", path)
    rows = load_plano_from_xlsx(path)
    log_file_operation("import", path, rows_processed=len(rows))
    res = ingest_plan(rows, db_path=db_path)
    return {"arquivo": path, "linhas_lidas": len(rows), "inseridos": res["inseridos"]}
