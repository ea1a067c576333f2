import base64
import json
from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from plano.adapters.cli import app

runner = CliRunner()


def _plano_xlsx(tmp_path: Path) -> Path:
    xlsx = tmp_path / "plano.xlsx"
    pd.DataFrame([
        {"CodMaterialProducao": 300047935, "MaterialProducao": "TORCIDA QUEIJO 100GX27", "PlanoCaixasFardos": 370.37, "Tons": 1.0},
        {"CodMaterialProducao": 300047931, "MaterialProducao": "TORCIDA BACON 100GX27", "PlanoCaixasFardos": 120, "Tons": 0.5},
    ]).to_excel(xlsx, index=False)
    return xlsx


def _producao_xlsx(tmp_path: Path) -> Path:
    xlsx = tmp_path / "apontamentos.xlsx"
    pd.DataFrame([
        {"CodMaterialSap": 300047935, "Qtd_real_origem": 5, "Unid_medida_basica": "CX"},
        {"CodMaterialSap": 300047935, "Qtd_real_origem": 3, "Unid_medida_basica": "CX"},
        {"CodMaterialSap": 999999999, "Qtd_real_origem": 1, "Unid_medida_basica": "CX"},
    ]).to_excel(xlsx, index=False)
    return xlsx


def test_cli_migrate_e_status(tmp_path: Path):
    db_path = tmp_path / "plano_test.sqlite"
    result = runner.invoke(app, ["migrate", "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    assert db_path.exists()

    result = runner.invoke(app, ["status", "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    assert "Registros no plano: 0" in result.output


def test_cli_plano_e_producao(tmp_path: Path):
    db_path = str(tmp_path / "plano_test.sqlite")

    result = runner.invoke(app, ["plano", "importar", str(_plano_xlsx(tmp_path)), "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "Registros inseridos: 2" in result.output

    result = runner.invoke(app, ["producao", "atualizar", str(_producao_xlsx(tmp_path)), "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "Atualizados: 1" in result.output
    assert "Não encontrados no plano: 1" in result.output

    result = runner.invoke(app, ["status", "--db", db_path])
    assert "Registros no plano: 2" in result.output
    assert "Bolsas produzidas: 216" in result.output


def test_cli_plano_com_linha_incompleta(tmp_path: Path):
    db_path = str(tmp_path / "plano_test.sqlite")
    xlsx = tmp_path / "ruim.xlsx"
    pd.DataFrame([
        {"CodMaterialProducao": "A1", "MaterialProducao": "TORCIDA X", "PlanoCaixasFardos": 1, "Tons": 1},
        {"CodMaterialProducao": "A2", "MaterialProducao": None, "PlanoCaixasFardos": 1, "Tons": 1},
    ]).to_excel(xlsx, index=False)

    result = runner.invoke(app, ["plano", "importar", str(xlsx), "--db", db_path])
    assert result.exit_code == 1
    assert "Linha 3" in result.output


def test_cli_kpis(tmp_path: Path):
    db_path = str(tmp_path / "plano_test.sqlite")
    runner.invoke(app, ["plano", "importar", str(_plano_xlsx(tmp_path)), "--db", db_path])

    result = runner.invoke(app, ["kpis", "--db", db_path, "--codigo", "300047935"])
    assert result.exit_code == 0, result.output
    assert "Painel (1 itens)" in result.output
    assert "Planejamento: 1,00 t" in result.output


def test_cli_intermediario(tmp_path: Path):
    db_path = str(tmp_path / "plano_test.sqlite")
    runner.invoke(app, ["plano", "importar", str(_plano_xlsx(tmp_path)), "--db", db_path])

    result = runner.invoke(app, ["intermediario", "definir", "bacon", "20", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "BACON: 20,00 pacotes" in result.output

    result = runner.invoke(app, ["intermediario", "mostrar", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "TOTAL MEZANINO EM TONS: 0,200" in result.output
    assert "300047931" in result.output

    result = runner.invoke(app, ["intermediario", "definir", "ALHO", "5", "--db", db_path])
    assert result.exit_code == 1
    assert "Aroma desconhecido" in result.output


def test_cli_relatorio_resumo(tmp_path: Path):
    db_path = str(tmp_path / "plano_test.sqlite")
    result = runner.invoke(app, ["relatorio", "resumo", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "Nenhum item TORCIDA no plano." in result.output


def test_cli_relatorio_enviar_sem_destinatario(tmp_path: Path):
    result = runner.invoke(app, ["relatorio", "enviar", "--db", str(tmp_path / "plano_test.sqlite")])
    assert result.exit_code == 1
    assert "destinatário" in result.output


def test_cli_destinatarios(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("RECIPIENTS_SECRET", base64.b64encode(b"c" * 32).decode("ascii"))
    db_path = str(tmp_path / "plano_test.sqlite")

    result = runner.invoke(app, ["destinatarios", "adicionar", "PCP", "pcp@fabrica.com", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "Destinatário 1 (PCP) cadastrado." in result.output

    result = runner.invoke(app, ["destinatarios", "listar", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "PCP" in result.output
    assert "pcp@fabrica.com" not in result.output


def test_cli_teams_status(monkeypatch):
    monkeypatch.delenv("TEAMS_WEBHOOK_URL", raising=False)
    monkeypatch.setenv("PUBLIC_BASE_URL", "http://localhost:3001")
    result = runner.invoke(app, ["teams", "status"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["webhook_configurado"] is False
    assert data["link_publico"] is False


def test_cli_logs_desabilitado(monkeypatch):
    monkeypatch.setattr("plano.infra.logger.ENABLE_LOGGING", False)
    result = runner.invoke(app, ["logs", "producao"])
    assert result.exit_code == 0, result.output
    assert "Logging desabilitado" in result.output


def test_cli_segredo_e_historico(tmp_path: Path):
    result = runner.invoke(app, ["destinatarios", "segredo"])
    assert result.exit_code == 0, result.output
    assert len(base64.b64decode(result.stdout.strip())) == 32

    result = runner.invoke(app, ["relatorio", "historico", "--db", str(tmp_path / "plano_test.sqlite")])
    assert result.exit_code == 0, result.output
    assert "Nenhum dado encontrado" in result.output
