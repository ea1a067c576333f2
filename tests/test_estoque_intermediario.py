from pathlib import Path

import pytest

from plano.adapters.materiais import MateriaisRef
from plano.domain.aromas import AROMAS_POR_CHAVE, gramagem_para_item, pacote_kg_para_aroma
from plano.domain.errors import ValidationError
from plano.domain.models import MaterialRef, PlanoItem
from plano.infra.migrations import apply_migrations
from plano.infra.repositories import IntermediarioRepo
from plano.infra.views import create_views
from plano.usecases.estoque_intermediario import calcular_cobertura, definir_estoque_intermediario, run_cobertura
from plano.usecases.importar_plano import ingest_plan


MATERIAIS = MateriaisRef([
    MaterialRef(codigo="B1", material="TORCIDA BACON", gramagem_kg=0.1, pacote_kg=10),
    MaterialRef(codigo="F1", material="FOFURA BACON", gramagem_kg=0.09, pacote_kg=8),
])


def _db(tmp_path: Path) -> str:
    db_path = str(tmp_path / "mezanino.sqlite")
    apply_migrations(db_path)
    create_views(db_path)
    return db_path


def _aroma(cob, key):
    return next(l for l in cob["aromas"] if l["key"] == key)


def test_cobertura_negativa_quando_estoque_nao_basta():
    itens = [PlanoItem(cod_material="B1", material="TORCIDA BACON", plano_caixas=100, tons=0.5, bolsas_produzido=2000)]
    cob = calcular_cobertura(itens, MATERIAIS, {"BACON": 10})
    bacon = _aroma(cob, "BACON")

    assert bacon["tons_intermediario"] == pytest.approx(0.1)
    assert bacon["produzido_ton"] == pytest.approx(0.2)
    assert bacon["falta_ton"] == pytest.approx(0.3)
    assert bacon["diferenca"] == pytest.approx(-0.2)
    assert bacon["suficiente"] is False
    assert bacon["itens"][0]["alerta"] is True
    assert cob["total_mezanino_ton"] == pytest.approx(0.1)


def test_fofura_nao_entra_na_cobertura():
    itens = [PlanoItem(cod_material="F1", material="FOFURA BACON", plano_caixas=10, tons=2.0)]
    bacon = _aroma(calcular_cobertura(itens, MATERIAIS, {}), "BACON")
    assert bacon["planejado_ton"] == 0
    assert bacon["itens"] == []
    assert bacon["suficiente"] is True


def test_pacote_por_maioria_e_empate_primeiro_visto():
    bacon = AROMAS_POR_CHAVE["BACON"]
    maioria = MateriaisRef([
        MaterialRef(codigo="1", material="TORCIDA BACON 70G", pacote_kg=12),
        MaterialRef(codigo="2", material="TORCIDA BACON 100G", pacote_kg=15),
        MaterialRef(codigo="3", material="TORCIDA BACON 140G", pacote_kg=15),
    ])
    assert pacote_kg_para_aroma(bacon, maioria) == 15

    empate = MateriaisRef([
        MaterialRef(codigo="1", material="TORCIDA BACON 70G", pacote_kg=12),
        MaterialRef(codigo="2", material="TORCIDA BACON 100G", pacote_kg=15),
    ])
    assert pacote_kg_para_aroma(bacon, empate) == 12


def test_pacote_padrao_sem_referencia():
    assert pacote_kg_para_aroma(AROMAS_POR_CHAVE["CAMARAO"], MATERIAIS) == 10


def test_predicado_mexicana():
    mexicana = AROMAS_POR_CHAVE["MEXICANA"]
    assert mexicana.casa("Torcida  Pimenta Mexicana 80g")
    assert mexicana.casa("TORCIDA PIMENTA MEX")
    assert not mexicana.casa("FOFURA MEXICANA")


def test_gramagem_pelo_nome_quando_codigo_ausente():
    assert gramagem_para_item("XX", "torcida bacon", MATERIAIS) == pytest.approx(0.1)
    assert gramagem_para_item("B1", "qualquer", MATERIAIS) == pytest.approx(0.1)
    assert gramagem_para_item("XX", "TORCIDA CEBOLA", MATERIAIS) == 0


def test_definir_estoque_substitui_valor(tmp_path):
    db_path = _db(tmp_path)
    definir_estoque_intermediario("bacon", 120, db_path=db_path)
    est = definir_estoque_intermediario("BACON", "80,5", db_path=db_path)

    assert est.aroma_key == "BACON"
    assert est.qtd_pacotes == pytest.approx(80.5)
    assert IntermediarioRepo(db_path).map_by_aroma() == {"BACON": pytest.approx(80.5)}


@pytest.mark.parametrize("aroma, qtd", [("ALHO", 10), ("BACON", -1), ("BACON", "abc"), ("BACON", float("inf"))])
def test_definir_estoque_invalido(tmp_path, aroma, qtd):
    db_path = _db(tmp_path)
    with pytest.raises(ValidationError):
        definir_estoque_intermediario(aroma, qtd, db_path=db_path)
    assert IntermediarioRepo(db_path).map_by_aroma() == {}


def test_run_cobertura_com_alertas(tmp_path):
    db_path = _db(tmp_path)
    ingest_plan([
        {"Codigo": "B1", "Material": "TORCIDA BACON", "Caixas": 100, "Tons": 0.5, "Produzido": 2000},
    ], db_path=db_path)
    definir_estoque_intermediario("BACON", 10, db_path=db_path)

    cob = run_cobertura(db_path=db_path, materiais=MATERIAIS)

    assert _aroma(cob, "BACON")["diferenca"] == pytest.approx(-0.2)
    assert cob["alertas"] == {"B1": True}
