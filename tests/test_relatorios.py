import base64
import re
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from plano.adapters.email_sender import SmtpEmailSender
from plano.adapters.materiais import MateriaisRef
from plano.config import Settings
from plano.domain.errors import DeliveryError, ValidationError
from plano.domain.models import MaterialRef, PlanoItem
from plano.domain.policies import limitar_percentuais
from plano.infra.migrations import apply_migrations
from plano.infra.repositories import EmailLogRepo
from plano.infra.views import create_views
from plano.usecases.importar_plano import ingest_plan
from plano.usecases.relatorios import (
    adicionar_destinatario,
    agora_str,
    listar_destinatarios,
    listar_envios,
    montar_resumo,
    relatorio_resumo,
    render_html,
    render_texto_teams,
    run_enviar_relatorio,
    run_status,
)


MATERIAIS = MateriaisRef([
    MaterialRef(codigo="T1", material="TORCIDA QUEIJO", gramagem_kg=0.1, und_por_caixa=27, caixas_por_pallet=12, ppm=60),
    MaterialRef(codigo="F1", material="FOFURA QUEIJO", gramagem_kg=0.09, und_por_caixa=20, caixas_por_pallet=10),
])

AGORA = datetime(2026, 10, 17, 9, 30, 5, tzinfo=ZoneInfo("America/Sao_Paulo"))
SEGREDO = base64.b64encode(b"k" * 32).decode("ascii")


class FakeSender:
    def __init__(self, erro=None):
        self.erro = erro
        self.enviados = []

    def send(self, assunto, html, to, cc=None, bcc=None, screenshot=None, screenshot_subtype="png"):
        if self.erro:
            raise DeliveryError(self.erro)
        self.enviados.append({"assunto": assunto, "html": html, "to": to, "cc": cc, "bcc": bcc, "screenshot": screenshot})
        return "<abc@teste>"


class FakeTeams:
    def __init__(self, configurado=True, erro=None):
        self.configurado = configurado
        self.erro = erro
        self.textos = []

    def send(self, texto, data_hora, html=None):
        if self.erro:
            raise DeliveryError(self.erro)
        self.textos.append(texto)
        return {"ok": True, "report_url": None}


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "relatorio.sqlite")
    apply_migrations(path)
    create_views(path)
    ingest_plan([
        {"Codigo": "T1", "Material": "TORCIDA QUEIJO", "Caixas": 100, "Tons": 0.3, "Produzido": 1350},
        {"Codigo": "F1", "Material": "FOFURA QUEIJO", "Caixas": 50, "Tons": 0.1},
    ], db_path=path)
    return path


def _item(codigo, material, caixas, tons, bolsas):
    return PlanoItem(cod_material=codigo, material=material, plano_caixas=caixas, tons=tons, bolsas_produzido=bolsas)


def test_resumo_somente_torcida():
    resumo = montar_resumo([
        _item("T1", "TORCIDA QUEIJO", 100, 0.3, 1350),
        _item("F1", "FOFURA QUEIJO", 50, 0.1, 0),
    ], MATERIAIS)

    assert [i["cod_material"] for i in resumo["itens"]] == ["T1"]
    item = resumo["itens"][0]
    assert item["planejado_ton"] == pytest.approx(0.27)
    assert item["produzido_ton"] == pytest.approx(0.135)
    assert item["progresso"] == pytest.approx(50.0)
    assert resumo["falta_ton"] == pytest.approx(0.135)


def test_resumo_sem_referencia_usa_tons_do_plano():
    resumo = montar_resumo([_item("ZZ", "TORCIDA NOVA", 10, 0.5, 100)], MATERIAIS)
    item = resumo["itens"][0]
    assert item["planejado_ton"] == 0.5
    assert item["produzido_ton"] == 0.0
    assert item["progresso"] == 0.0


def test_sobreproducao_limitada_a_100():
    resumo = montar_resumo([_item("T1", "TORCIDA QUEIJO", 100, 0.3, 5400)], MATERIAIS)
    assert resumo["progresso"] == 100.0
    assert resumo["falta_ton"] == 0.0

    texto = render_texto_teams(resumo)
    html = render_html(resumo, agora_str(AGORA), "https://planing-ita.com/")
    for saida in (texto, html):
        valores = [float(v.replace(".", "").replace(",", ".")) for v in re.findall(r"(\d+(?:[.,]\d+)*)%", saida)]
        assert valores and max(valores) <= 100


@pytest.mark.parametrize(
    "texto, esperado",
    [
        ("Progresso 150%", "Progresso 100%"),
        ("Atingido 100,5% hoje", "Atingido 100% hoje"),
        ("Parcial 99,5%", "Parcial 99,5%"),
        ("Progresso 150 %", "Progresso 100%"),
        ("Total 1.500%", "Total 100%"),
        ("Meta 2.5%", "Meta 2.5%"),
        ("Concluído 99 %", "Concluído 99 %"),
        ("width:100%", "width:100%"),
        ("", ""),
    ],
)
def test_limitar_percentuais(texto, esperado):
    assert limitar_percentuais(texto) == esperado


def test_agora_str():
    assert agora_str(AGORA) == "17/10/2026, 09:30:05"


def test_screenshot_referenciado_no_html():
    resumo = montar_resumo([], MATERIAIS)
    assert "cid:sigp-screenshot" in render_html(resumo, "x", "https://planing-ita.com/", has_screenshot=True)
    assert "cid:" not in render_html(resumo, "x", "https://planing-ita.com/")


def test_relatorio_resumo_tabular(db_path):
    cols, rows, msg = relatorio_resumo(db_path=db_path, materiais=MATERIAIS)
    assert cols[0] == "Código"
    assert msg is None
    assert rows[0][:2] == ["T1", "TORCIDA QUEIJO"]
    assert rows[-1][1] == "TOTAL"
    assert rows[-1][-1] == "50,0%"


def test_enviar_relatorio_sucesso(db_path):
    sender, teams = FakeSender(), FakeTeams()
    res = run_enviar_relatorio(
        to_emails=["pcp@fabrica.com"], cc_emails=["gerencia@fabrica.com"], screenshot=b"\x89PNG",
        db_path=db_path, materiais=MATERIAIS, email_sender=sender, teams=teams, agora=AGORA,
    )

    assert res["status"] == "success"
    assert res["message_id"] == "<abc@teste>"
    assert res["teams_status"] == "success"
    enviado = sender.enviados[0]
    assert enviado["to"] == ["pcp@fabrica.com"]
    assert enviado["cc"] == ["gerencia@fabrica.com"]
    assert "17/10/2026, 09:30:05" in enviado["html"]
    assert "TORCIDA QUEIJO" in teams.textos[0]

    log = EmailLogRepo(db_path).list_recent(1)[0]
    assert log["id"] == res["log_id"]
    assert log["status"] == "success"
    assert log["teams_status"] == "success"


def test_falha_do_teams_nao_afeta_email(db_path):
    res = run_enviar_relatorio(
        to_emails=["pcp@fabrica.com"], db_path=db_path, materiais=MATERIAIS,
        email_sender=FakeSender(), teams=FakeTeams(erro="HTTP 500"), agora=AGORA,
    )
    assert res["status"] == "success"
    assert res["teams_status"] == "error"


def test_teams_nao_configurado_e_pulado(db_path):
    teams = FakeTeams(configurado=False)
    res = run_enviar_relatorio(
        to_emails=["pcp@fabrica.com"], db_path=db_path, materiais=MATERIAIS,
        email_sender=FakeSender(), teams=teams, agora=AGORA,
    )
    assert res["teams_status"] == "skipped"
    assert teams.textos == []


def test_falha_de_email_registra_erro(db_path):
    teams = FakeTeams()
    res = run_enviar_relatorio(
        to_ids=[1], to_emails=["pcp@fabrica.com"], db_path=db_path, materiais=MATERIAIS,
        email_sender=FakeSender(erro="SMTP fora"), teams=teams, agora=AGORA,
    )

    assert res["status"] == "error"
    assert res["error"] == "SMTP fora"
    assert teams.textos == []
    log = EmailLogRepo(db_path).list_recent(1)[0]
    assert log["status"] == "error"
    assert log["error"] == "SMTP fora"
    assert log["to_ids"] == [1]


def test_sem_destinatario_para(db_path):
    with pytest.raises(ValidationError):
        run_enviar_relatorio(db_path=db_path, materiais=MATERIAIS, email_sender=FakeSender(), teams=FakeTeams())
    assert EmailLogRepo(db_path).list_recent() == []


def test_envio_por_ids_cadastrados(db_path, monkeypatch):
    monkeypatch.setenv("RECIPIENTS_SECRET", SEGREDO)
    a = adicionar_destinatario("PCP", "pcp@fabrica.com", db_path=db_path)
    b = adicionar_destinatario("Gerência", "gerencia@fabrica.com", db_path=db_path)
    sender = FakeSender()

    res = run_enviar_relatorio(
        to_ids=[b["id"], a["id"]], db_path=db_path, materiais=MATERIAIS,
        email_sender=sender, teams=FakeTeams(configurado=False), agora=AGORA,
    )

    assert res["status"] == "success"
    assert sender.enviados[0]["to"] == ["gerencia@fabrica.com", "pcp@fabrica.com"]
    assert EmailLogRepo(db_path).list_recent(1)[0]["to_ids"] == [b["id"], a["id"]]


def test_destinatarios_listam_so_apelidos(db_path, monkeypatch):
    monkeypatch.setenv("RECIPIENTS_SECRET", SEGREDO)
    adicionar_destinatario("PCP", "pcp@fabrica.com", db_path=db_path)
    lista = listar_destinatarios(db_path=db_path)
    assert [d["alias"] for d in lista] == ["PCP"]
    assert all("email" not in k for d in lista for k in d)

    with pytest.raises(ValidationError):
        adicionar_destinatario("Sem arroba", "invalido", db_path=db_path)


def test_status(db_path):
    st = run_status(db_path=db_path)
    assert st["total_registros"] == 2
    assert st["ultima_atualizacao"] is not None


def test_listar_envios_mais_recente_primeiro(db_path):
    for sender in (FakeSender(), FakeSender(erro="SMTP fora")):
        run_enviar_relatorio(to_emails=["pcp@fabrica.com"], db_path=db_path, materiais=MATERIAIS,
                             email_sender=sender, teams=FakeTeams(configurado=False), agora=AGORA)
    envios = listar_envios(db_path=db_path)
    assert [e["status"] for e in envios] == ["error", "success"]


def test_erro_inesperado_do_smtp_fica_na_auditoria(db_path, monkeypatch):
    class SMTPUnicode:
        def __init__(self, host, port, timeout=None):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            pass

        def sendmail(self, remetente, destinos, corpo):
            raise UnicodeEncodeError("ascii", "fábrica", 1, 2, "ordinal not in range(128)")

    monkeypatch.setattr("plano.adapters.email_sender.smtplib.SMTP", SMTPUnicode)
    sender = SmtpEmailSender(Settings(smtp_host="smtp.fabrica.com", smtp_port=587, email_from="r@fabrica.com"))
    res = run_enviar_relatorio(
        to_emails=["pcp@fabrica.com"], db_path=db_path, materiais=MATERIAIS,
        email_sender=sender, teams=FakeTeams(), agora=AGORA,
    )

    assert res["status"] == "error"
    log = EmailLogRepo(db_path).list_recent(1)[0]
    assert log["status"] == "error"
    assert "inesperada" in log["error"]
