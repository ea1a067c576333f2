# plano/usecases/atualizar_producao.py
"""
UC: Atualizar a PRODUÇÃO apontada a partir da planilha de apontamentos.

Cada upload é uma reapresentação completa: todo o plano é zerado e só
então os totais agrupados por código são gravados. Material ausente da
planilha fica com produção zero.
"""
from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional

from plano.adapters.materiais import carregar_materiais
from plano.adapters.parsers import normalize_codigo, parse_quantidade_unidade
from plano.adapters.planilhas import ALIASES_PRODUCAO, load_producao_from_xlsx, map_row
from plano.config import DB_PATH
from plano.domain.conversao import UNIDADE_BASE, campo_faltante, to_base_units
from plano.domain.errors import DataGapWarning
from plano.domain.models import MaterialRef
from plano.domain.policies import arredondar
from plano.infra.logger import (
    log_database_operation,
    log_file_operation,
    log_producao,
    log_system_event,
    log_transaction,
)
from plano.infra.repositories import PlanoRepo


def agrupar_producao(
    rows: List[Dict[str, Any]],
    materiais: Mapping[str, MaterialRef],
    lacunas: Optional[Dict[str, List[str]]] = None,
) -> "OrderedDict[str, int]":
    """Agrupa as linhas por código e converte para bolsas.

    Linhas sem código ou com quantidade <= 0 são ignoradas. A unidade vem
    da coluna própria; sem ela, vale a unidade escrita junto da quantidade
    ("5 CX") e, por fim, UN. As conversões de cada grupo são somadas e o
    total é arredondado uma única vez.

    Quando `lacunas` é informado, recebe código → campos da referência que
    faltaram na conversão (o valor padrão foi usado no lugar).
    """
    somas: "OrderedDict[str, float]" = OrderedDict()
    for raw in rows:
        m = map_row(raw, ALIASES_PRODUCAO)
        codigo = normalize_codigo(m["codigo"])
        qtd, unidade_embutida = parse_quantidade_unidade(m["quantidade"])
        if codigo is None or qtd is None or qtd <= 0:
            continue
        unidade = m["unidade"] or unidade_embutida or UNIDADE_BASE
        faltante = campo_faltante(codigo, unidade, materiais)
        if lacunas is not None and faltante:
            campos = lacunas.setdefault(codigo, [])
            if faltante not in campos:
                campos.append(faltante)
        somas[codigo] = somas.get(codigo, 0.0) + to_base_units(codigo, qtd, unidade, materiais)
    return OrderedDict((codigo, arredondar(total)) for codigo, total in somas.items())


def apply_production_update(
    rows: List[Dict[str, Any]],
    db_path: str = DB_PATH,
    materiais: Optional[Mapping[str, MaterialRef]] = None,
) -> Dict[str, Any]:
    """Aplica a planilha de apontamentos ao plano gravado.

    Returns:
        ``{"atualizados": int, "nao_encontrados": int,
        "sem_referencia": int, "referencia_incompleta": int,
        "grupos": {codigo: bolsas}, "avisos": [...]}``
    """
    if materiais is None:
        materiais = carregar_materiais()
    log_system_event("atualizar_producao_start", {"linhas": len(rows)})
    try:
        lacunas: Dict[str, List[str]] = OrderedDict()
        grupos = agrupar_producao(rows, materiais, lacunas)

        avisos: List[str] = []
        sem_referencia = [c for c in grupos if materiais.get(c) is None]
        for codigo in sem_referencia:
            msg = str(DataGapWarning(f"Material {codigo} sem referência; conversão com valores padrão"))
            avisos.append(msg)
            log_producao("sem_referencia", codigo, grupos[codigo], level="warning")
        for codigo, campos in lacunas.items():
            msg = str(DataGapWarning(
                f"Material {codigo} sem {', '.join(campos)} na referência; conversão com valores padrão"
            ))
            avisos.append(msg)
            log_producao("referencia_incompleta", codigo, grupos[codigo], level="warning", campos=campos)

        atualizados, nao_encontrados = PlanoRepo(db_path).restate_producao(grupos)
        log_database_operation("producao", "RESTATE", atualizados, grupos=len(grupos))

        for codigo, bolsas in grupos.items():
            if codigo in nao_encontrados:
                log_producao("nao_encontrado", codigo, bolsas, level="warning")
            else:
                log_producao("atualizado", codigo, bolsas)

        result = {
            "atualizados": atualizados,
            "nao_encontrados": len(nao_encontrados),
            "sem_referencia": len(sem_referencia),
            "referencia_incompleta": len(lacunas),
            "grupos": dict(grupos),
            "avisos": avisos,
        }
        log_transaction(
            "atualizar_producao",
            {"linhas": len(rows)},
            result={k: result[k] for k in ("atualizados", "nao_encontrados", "sem_referencia", "referencia_incompleta")},
        )
        log_system_event("atualizar_producao_success", {"atualizados": atualizados, "nao_encontrados": len(nao_encontrados)})
        return result
    except Exception as e:
        error_msg = str(e)
        log_transaction("atualizar_producao", {"linhas": len(rows)}, error=error_msg)
        log_system_event("atualizar_producao_error", {"error": error_msg}, level="error")
        raise


def run_producao_lote(path: str, db_path: str = DB_PATH, materiais: Optional[Mapping[str, MaterialRef]] = None) -> Dict[str, Any]:
    """Lê um XLSX de apontamentos e atualiza a produção."""
    log_file_operation("import", path)
    rows = load_producao_from_xlsx(path)
    log_file_operation("import", path, rows_processed=len(rows))
    res = apply_production_update(rows, db_path=db_path, materiais=materiais)
    res["arquivo"] = path
    return res
