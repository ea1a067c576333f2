from pathlib import Path

import pandas as pd
import pytest

from plano.domain.errors import ValidationError
from plano.infra.migrations import apply_migrations
from plano.infra.repositories import PlanoRepo
from plano.infra.views import create_views
from plano.usecases.atualizar_producao import apply_production_update
from plano.usecases.importar_plano import ingest_plan, run_plano_lote, validar_linhas
from plano.adapters.materiais import MateriaisRef
from plano.domain.models import MaterialRef


def _db(tmp_path: Path) -> str:
    db_path = str(tmp_path / "plano_test.sqlite")
    apply_migrations(db_path)
    create_views(db_path)
    return db_path


PLANO = [
    {"CodMaterialProducao": "A1", "MaterialProducao": "TORCIDA QUEIJO", "PlanoCaixasFardos": 370.37, "Tons": 1.00},
    {"CodMaterialProducao": 300047931, "MaterialProducao": "TORCIDA BACON", "PlanoCaixasFardos": "120", "Tons": "0,8"},
]


def test_ingest_insere_registros(tmp_path):
    db_path = _db(tmp_path)
    res = ingest_plan(PLANO, db_path=db_path)

    assert [it.cod_material for it in res["inseridos"]] == ["A1", "300047931"]
    rows = {r["cod_material"]: r for r in PlanoRepo(db_path).get_all()}
    assert rows["A1"]["plano_caixas"] == pytest.approx(370.37)
    assert rows["A1"]["bolsas_produzido"] == 0
    assert rows["300047931"]["tons"] == pytest.approx(0.8)


def test_aliases_de_coluna():
    itens = validar_linhas([
        {"Código Material": "B2", "Material": "TORCIDA CEBOLA", "Plano Caixas": "10", "Toneladas": "0,2", "Produzido": "30"},
        {"codigo": "C3", "material produção": "FOFURA", "caixas": 5, "peso": 1},
    ])
    assert [(i.cod_material, i.material, i.plano_caixas, i.tons, i.bolsas_produzido) for i in itens] == [
        ("B2", "TORCIDA CEBOLA", 10.0, 0.2, 30),
        ("C3", "FOFURA", 5.0, 1.0, 0),
    ]


def test_campo_obrigatorio_faltando_aborta_lote_e_preserva_plano(tmp_path):
    db_path = _db(tmp_path)
    ingest_plan(PLANO, db_path=db_path)

    ruim = [
        {"CodMaterialProducao": "X1", "MaterialProducao": "TORCIDA X", "PlanoCaixasFardos": 1, "Tons": 1},
        {"CodMaterialProducao": "X2", "MaterialProducao": "TORCIDA Y", "PlanoCaixasFardos": 1},
    ]
    with pytest.raises(ValidationError, match="Linha 3: Dados obrigatórios faltando") as exc:
        ingest_plan(ruim, db_path=db_path)
    assert exc.value.linha == 3

    codigos = sorted(r["cod_material"] for r in PlanoRepo(db_path).get_all())
    assert codigos == ["300047931", "A1"]


def test_linhas_com_numero_invalido_sao_descartadas(tmp_path):
    db_path = _db(tmp_path)
    res = ingest_plan([
        {"CodMaterialProducao": "A1", "MaterialProducao": "TORCIDA QUEIJO", "PlanoCaixasFardos": "abc", "Tons": 1},
        {"CodMaterialProducao": "A2", "MaterialProducao": "TORCIDA BACON", "PlanoCaixasFardos": 10, "Tons": 1},
    ], db_path=db_path)
    assert [i.cod_material for i in res["inseridos"]] == ["A2"]


def test_codigo_repetido_mantem_ultima_linha():
    itens = validar_linhas([
        {"Codigo": "A1", "Material": "TORCIDA QUEIJO", "Caixas": 10, "Tons": 1},
        {"Codigo": "A1", "Material": "TORCIDA QUEIJO", "Caixas": 20, "Tons": 2},
    ])
    assert len(itens) == 1
    assert itens[0].plano_caixas == 20


def test_reimportar_plano_e_idempotente_e_zera_producao(tmp_path):
    db_path = _db(tmp_path)
    materiais = MateriaisRef([MaterialRef(codigo="A1", material="TORCIDA QUEIJO", und_por_caixa=27, caixas_por_pallet=12)])

    ingest_plan(PLANO, db_path=db_path)
    primeira = [(r["cod_material"], r["plano_caixas"], r["tons"], r["bolsas_produzido"]) for r in PlanoRepo(db_path).get_all()]

    apply_production_update([{"CodMaterialSap": "A1", "Qtd_real_origem": 5, "Unid_medida_basica": "CX"}],
                            db_path=db_path, materiais=materiais)
    assert {r["cod_material"]: r["bolsas_produzido"] for r in PlanoRepo(db_path).get_all()}["A1"] == 135

    ingest_plan(PLANO, db_path=db_path)
    segunda = [(r["cod_material"], r["plano_caixas"], r["tons"], r["bolsas_produzido"]) for r in PlanoRepo(db_path).get_all()]

    assert primeira == segunda
    assert all(b == 0 for *_, b in segunda)


def test_run_plano_lote_xlsx(tmp_path):
    db_path = _db(tmp_path)
    xlsx = tmp_path / "plano.xlsx"
    pd.DataFrame([
        {"CodMaterialProducao": 300047935, "MaterialProducao": "TORCIDA QUEIJO 100GX27", "PlanoCaixasFardos": 370.37, "Tons": 1.0},
        {"CodMaterialProducao": 300052210, "MaterialProducao": "FOFURA QUEIJO 90GX20", "PlanoCaixasFardos": 50, "Tons": 0.09},
    ]).to_excel(xlsx, index=False)

    info = run_plano_lote(str(xlsx), db_path=db_path)

    assert info["linhas_lidas"] == 2
    assert sorted(i.cod_material for i in info["inseridos"]) == ["300047935", "300052210"]
    assert PlanoRepo(db_path).status()["total_registros"] == 2
