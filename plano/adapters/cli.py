# plano/adapters/cli.py
"""
CLI do painel de plano de produção (Typer).

Comandos principais:
- migrate                                     -> aplica migrações e cria views
- status                                      -> total de registros e última atualização
- plano importar <xlsx> | listar              -> substitui / mostra o plano
- producao atualizar <xlsx>                   -> reapresenta a produção apontada
- kpis                                        -> KPIs por item e agregados do painel
- intermediario definir | mostrar             -> estoque intermediário por aroma
- relatorio resumo | enviar | historico       -> resumo TORCIDA, envio e log de envios
- destinatarios adicionar | listar | segredo  -> destinatários de e-mail
- teams status | teste                        -> diagnóstico do webhook
- logs [tipo]                                 -> final dos arquivos de log
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from plano.adapters.cripto import gerar_segredo
from plano.adapters.parsers import formatar_br
from plano.adapters.webhook import TeamsWebhook
from plano.config import DB_PATH
from plano.domain.errors import PlanoError
from plano.infra.logger import get_log_summary
from plano.infra.migrations import apply_migrations
from plano.infra.repositories import PlanoRepo
from plano.infra.views import create_views
from plano.usecases.atualizar_producao import run_producao_lote
from plano.usecases.calcular_kpis import run_kpis
from plano.usecases.estoque_intermediario import definir_estoque_intermediario, run_cobertura
from plano.usecases.importar_plano import run_plano_lote
from plano.usecases.relatorios import (
    adicionar_destinatario,
    listar_destinatarios,
    listar_envios,
    relatorio_resumo,
    run_enviar_relatorio,
    run_status,
    run_teste_teams,
)


app = typer.Typer(help="Plano de Produção — CLI")
console = Console()


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _fmt(val: Any) -> str:
    if val is None:
        return "-"
    if isinstance(val, bool):
        return "sim" if val else "não"
    if isinstance(val, (int, float)):
        return formatar_br(val) if isinstance(val, float) else str(val)
    return str(val)


def _display_table(data: List[Dict[str, Any]], title: str = "Resultado", columns: Optional[List[str]] = None) -> None:
    """Exibe uma lista de dicionários numa tabela Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return
    columns = columns or list(data[0].keys())
    table = Table(title=title, box=box.ROUNDED)
    for col in columns:
        numerico = isinstance(data[0].get(col), (int, float)) and not isinstance(data[0].get(col), bool)
        table.add_column(col, justify="right" if numerico else "left")
    for row in data:
        table.add_row(*[_fmt(row.get(col)) for col in columns])
    console.print(table)


def _display_tabular(cols: List[str], rows: List[List[Any]], msg: Optional[str], title: str) -> None:
    if msg:
        console.print(Panel(msg, title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    for c in cols:
        table.add_column(c)
    for r in rows:
        table.add_row(*[_fmt(v) for v in r])
    console.print(table)


def _preparar_db(db_path: str) -> None:
    apply_migrations(db_path)
    create_views(db_path)


def _executar(fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Roda o caso de uso; PlanoError vira mensagem vermelha e código 1."""
    try:
        return fn(*args, **kwargs)
    except PlanoError as e:
        console.print(f"[bold red]Erro:[/] {e}")
        raise typer.Exit(code=1)


def _status_colorido(status: str) -> str:
    if status == "CONCLUIDO":
        return f"[bold green]{status}[/]"
    if status == "INDISPONIVEL":
        return f"[yellow]{status}[/]"
    return status


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Aplica migrações e recria as views auxiliares."""
    _preparar_db(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


@app.command("status")
def cmd_status(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Total de registros do plano e data da última atualização."""
    _preparar_db(db_path)
    st = run_status(db_path)
    console.print(Panel(
        f"Registros no plano: {st['total_registros']}\n"
        f"Última atualização: {st['ultima_atualizacao'] or '-'}\n"
        f"Bolsas produzidas: {st['total_bolsas_produzido']}",
        title="Status do Plano",
    ))


# -----------------------
# plano e produção
# -----------------------

plano_app = typer.Typer(help="Plano de produção (substituição completa a cada importação).")
app.add_typer(plano_app, name="plano")


@plano_app.command("importar")
def cmd_plano_importar(
    path: str = typer.Argument(..., help="Caminho do XLSX do plano"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Substitui o plano gravado pelo conteúdo do XLSX."""
    _preparar_db(db_path)
    info = _executar(run_plano_lote, path, db_path=db_path)
    console.print(Panel(
        f"Linhas lidas: {info['linhas_lidas']}\nRegistros inseridos: {len(info['inseridos'])}",
        title="Plano importado",
    ))


@plano_app.command("listar")
def cmd_plano_listar(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Mostra o plano gravado."""
    _preparar_db(db_path)
    rows = PlanoRepo(db_path).get_all()
    _display_table(rows, title="Plano de Produção",
                   columns=["cod_material", "material", "plano_caixas", "tons", "bolsas_produzido", "updated_at"])


producao_app = typer.Typer(help="Apontamentos de produção.")
app.add_typer(producao_app, name="producao")


@producao_app.command("atualizar")
def cmd_producao_atualizar(
    path: str = typer.Argument(..., help="Caminho do XLSX de apontamentos"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Zera a produção do plano e grava os totais do XLSX (bolsas)."""
    _preparar_db(db_path)
    res = _executar(run_producao_lote, path, db_path=db_path)
    console.print(Panel(
        f"Atualizados: {res['atualizados']}\n"
        f"Não encontrados no plano: {res['nao_encontrados']}\n"
        f"Sem referência de material: {res['sem_referencia']}\n"
        f"Referência incompleta: {res['referencia_incompleta']}",
        title="Produção atualizada",
    ))
    for aviso in res["avisos"]:
        console.print(f"[yellow]Aviso:[/] {aviso}")


# -----------------------
# KPIs
# -----------------------

@app.command("kpis")
def cmd_kpis(
    codigo: Optional[str] = typer.Option(None, help="Filtro por parte do código"),
    material: Optional[str] = typer.Option(None, help="Filtro por parte do nome"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """KPIs por item (pallets, progresso, tempo restante) e agregados do painel."""
    _preparar_db(db_path)
    res = _executar(run_kpis, db_path=db_path, codigo=codigo, material=material)

    g = res["gerais"]
    console.print(Panel(
        f"Planejamento: {formatar_br(g['planejado_ton'])} t\n"
        f"Produzido: {formatar_br(g['produzido_ton'], 3)} t "
        f"(FOFURA {formatar_br(g['fofura_ton'], 3)} t | TORCIDA {formatar_br(g['torcida_ton'], 3)} t)\n"
        f"Média de progresso: {formatar_br(g['media_progresso'], 1)}%",
        title=f"Painel ({g['total_itens']} itens)",
    ))

    table = Table(title="KPIs por Item", box=box.ROUNDED)
    for col, just in [("Código", "left"), ("Material", "left"), ("Pallets Plan.", "right"),
                      ("Pallets Prod.", "right"), ("Restantes", "right"), ("Progresso", "right"),
                      ("Tempo", "center"), ("Máquinas", "right"), ("Status", "left")]:
        table.add_column(col, justify=just)
    for k in res["itens"]:
        tempo = k["tempo_restante"] or "-"
        if k["capacidade_excedida"]:
            tempo = f"[bold red]{tempo} ⚠[/]"
        progresso = "-" if k["progresso"] is None else f"{formatar_br(k['progresso'], 1)}%"
        table.add_row(
            k["cod_material"], k["material"], str(k["pallets_planejados"]), str(k["pallets_produzidos"]),
            str(k["pallets_restantes"]), progresso, tempo, _fmt(k["maquinas"]), _status_colorido(k["status"]),
        )
    console.print(table)
    for aviso in res["avisos"]:
        console.print(f"[yellow]Aviso:[/] {aviso}")


# -----------------------
# estoque intermediário
# -----------------------

inter_app = typer.Typer(help="Estoque intermediário (mezanino) por aroma.")
app.add_typer(inter_app, name="intermediario")


@inter_app.command("definir")
def cmd_inter_definir(
    aroma: str = typer.Argument(..., help="BACON | CEBOLA | CHURRASCO | COSTELA | MEXICANA | QUEIJO | CAMARAO | VINAGRETE | PAO_DE_ALHO"),
    pacotes: str = typer.Argument(..., help="Quantidade de pacotes (>= 0)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Define a quantidade de pacotes do aroma (substitui o valor anterior)."""
    _preparar_db(db_path)
    ent = _executar(definir_estoque_intermediario, aroma, pacotes, db_path=db_path)
    typer.echo(f">> {ent.aroma_key}: {formatar_br(ent.qtd_pacotes)} pacotes")


@inter_app.command("mostrar")
def cmd_inter_mostrar(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Cobertura do plano pelo estoque intermediário."""
    _preparar_db(db_path)
    cob = _executar(run_cobertura, db_path=db_path)
    table = Table(title="Estoque Intermediário • Aroma", box=box.ROUNDED)
    for col in ["Aroma", "Pacotes", "Tons", "Falta em Plano", "Diferença"]:
        table.add_column(col, justify="left" if col == "Aroma" else "right")
    for l in cob["aromas"]:
        cor = "green" if l["suficiente"] else "red"
        table.add_row(
            l["label"], formatar_br(l["qtd_pacotes"], 0), formatar_br(l["tons_intermediario"], 3),
            formatar_br(l["falta_ton"], 1), f"[{cor}]{formatar_br(l['diferenca'], 1)}[/]",
        )
    console.print(table)
    console.print(f"TOTAL MEZANINO EM TONS: [bold]{formatar_br(cob['total_mezanino_ton'], 3)}[/]")
    sem_cobertura = sorted(c for c, alerta in cob["alertas"].items() if alerta)
    if sem_cobertura:
        console.print(f"[red]Materiais sem cobertura:[/] {', '.join(sem_cobertura)}")


# -----------------------
# relatório
# -----------------------

rel_app = typer.Typer(help="Relatório de produção (linha TORCIDA).")
app.add_typer(rel_app, name="relatorio")


@rel_app.command("resumo")
def cmd_rel_resumo(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Resumo consolidado planejado x produzido."""
    _preparar_db(db_path)
    cols, rows, msg = _executar(relatorio_resumo, db_path=db_path)
    _display_tabular(cols, rows, msg, title="Resumo consolidado do plano")


@rel_app.command("enviar")
def cmd_rel_enviar(
    para: List[int] = typer.Option([], "--para", help="Id do destinatário (repetível)"),
    cc: List[int] = typer.Option([], "--cc", help="Id em cópia (repetível)"),
    cco: List[int] = typer.Option([], "--cco", help="Id em cópia oculta (repetível)"),
    email: List[str] = typer.Option([], "--email", help="E-mail direto (repetível; substitui os ids)"),
    screenshot: Optional[Path] = typer.Option(None, "--screenshot", help="Imagem PNG/JPEG anexada ao corpo"),
    sem_teams: bool = typer.Option(False, "--sem-teams", help="Não publica no Teams"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Envia o relatório por e-mail e publica no Teams."""
    _preparar_db(db_path)
    img = screenshot.read_bytes() if screenshot else None
    res = _executar(
        run_enviar_relatorio,
        to_ids=para, cc_ids=cc, bcc_ids=cco, to_emails=email,
        screenshot=img, enviar_teams=not sem_teams, db_path=db_path,
    )
    if res["status"] == "success":
        console.print(Panel(
            f"Message-ID: {res['message_id']}\nTeams: {res['teams_status']}",
            title="Relatório enviado", border_style="green",
        ))
    else:
        console.print(Panel(res["error"] or "Erro desconhecido", title="Falha no envio", border_style="red"))
        raise typer.Exit(code=1)


@rel_app.command("historico")
def cmd_rel_historico(
    limite: int = typer.Option(20, "--limite", help="Quantidade de envios"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Últimos envios registrados (status, Message-ID, Teams, erro)."""
    _preparar_db(db_path)
    envios = listar_envios(db_path, limite)
    for e in envios:
        e["para"] = ", ".join(str(i) for i in e["to_ids"]) or "-"
    _display_table(envios, title="Histórico de Envios",
                   columns=["id", "created_at", "status", "para", "message_id", "teams_status", "error"])


# -----------------------
# destinatários
# -----------------------

dest_app = typer.Typer(help="Destinatários de e-mail (endereços criptografados).")
app.add_typer(dest_app, name="destinatarios")


@dest_app.command("adicionar")
def cmd_dest_adicionar(
    alias: str = typer.Argument(..., help="Apelido exibido"),
    email: str = typer.Argument(..., help="Endereço de e-mail"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Cadastra um destinatário."""
    _preparar_db(db_path)
    rec = _executar(adicionar_destinatario, alias, email, db_path=db_path)
    typer.echo(f">> Destinatário {rec['id']} ({rec['alias']}) cadastrado.")


@dest_app.command("segredo")
def cmd_dest_segredo():
    """Gera um valor novo para RECIPIENTS_SECRET (base64 de 32 bytes)."""
    typer.echo(gerar_segredo())


@dest_app.command("listar")
def cmd_dest_listar(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Lista id e apelido dos destinatários."""
    _preparar_db(db_path)
    _display_table(listar_destinatarios(db_path), title="Destinatários", columns=["id", "alias"])


# -----------------------
# logs
# -----------------------

@app.command("logs")
def cmd_logs(
    tipo: str = typer.Argument("transactions", help="transactions | plano | producao | database | system | email"),
    linhas: int = typer.Option(50, "--linhas", help="Quantidade de linhas finais"),
):
    """Mostra o final de um arquivo de log (requer PLANO_LOGGING=1)."""
    conteudo = get_log_summary(tipo, lines=linhas)
    if conteudo is None:
        console.print(Panel("Logging desabilitado (defina PLANO_LOGGING=1)", title="Logs", border_style="yellow"))
        return
    console.print(Panel(conteudo.rstrip() or "Log vazio", title=f"Log: {tipo}"))


# -----------------------
# teams
# -----------------------

teams_app = typer.Typer(help="Diagnóstico do webhook do Teams.")
app.add_typer(teams_app, name="teams")


@teams_app.command("status")
def cmd_teams_status():
    """Mostra a configuração do webhook."""
    _print_json(TeamsWebhook().status())


@teams_app.command("teste")
def cmd_teams_teste(texto: Optional[str] = typer.Option(None, help="Texto da mensagem de teste")):
    """Publica uma mensagem de teste no canal."""
    _executar(run_teste_teams, texto)
    typer.echo(">> Mensagem de teste publicada no Teams")


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
