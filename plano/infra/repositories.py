# plano/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- PlanoRepo
- IntermediarioRepo
- DestinatarioRepo
- EmailLogRepo

Obs.:
- Cada upload (plano ou produção) é gravado numa única transação aberta
  com BEGIN IMMEDIATE.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .db import connect
from plano.domain.models import Destinatario, EmailLog, PlanoItem


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return row
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def _fetch_dicts(cur) -> List[Dict[str, Any]]:
    cols = [d[0] for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]


# -------------------------
# Plano de produção
# -------------------------

class PlanoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def replace_all(self, rows: Iterable[Any]) -> int:
        """Apaga o plano inteiro e insere o lote, na mesma transação."""
        rows = [_as_dict(r) for r in rows]
        payload = [
            {
                "cod_material": r["cod_material"],
                "material": r["material"],
                "plano_caixas": r["plano_caixas"],
                "tons": r["tons"],
                "bolsas_produzido": r.get("bolsas_produzido") or 0,
            }
            for r in rows
        ]
        with connect(self.db_path, immediate=True) as c:
            c.execute("DELETE FROM producao")
            c.executemany(
                """
                INSERT INTO producao
                    (cod_material, material, plano_caixas, tons, bolsas_produzido)
                VALUES
                    (:cod_material, :material, :plano_caixas, :tons, :bolsas_produzido)
                """,
                payload,
            )
        return len(payload)

    def restate_producao(self, totais: Dict[str, int]) -> Tuple[int, List[str]]:
        """Zera `bolsas_produzido` de todo o plano e grava os totais informados.

        Returns:
            (quantidade atualizada, códigos sem registro no plano)
        """
        atualizados = 0
        nao_encontrados: List[str] = []
        with connect(self.db_path, immediate=True) as c:
            c.execute("UPDATE producao SET bolsas_produzido = 0, updated_at = datetime('now')")
            for codigo, bolsas in totais.items():
                cur = c.execute(
                    """
                    UPDATE producao
                    SET bolsas_produzido = ?, updated_at = datetime('now')
                    WHERE cod_material = ?
                    """,
                    (int(bolsas), codigo),
                )
                if cur.rowcount:
                    atualizados += 1
                else:
                    nao_encontrados.append(codigo)
        return atualizados, nao_encontrados

    def get_all(self) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            cur = c.execute(
                """SELECT cod_material, material, plano_caixas, tons, bolsas_produzido,
                          created_at, updated_at
                   FROM producao
                   ORDER BY material, cod_material"""
            )
            return _fetch_dicts(cur)

    def itens(self) -> List[PlanoItem]:
        return [PlanoItem.from_row(r) for r in self.get_all()]

    def status(self) -> Dict[str, Any]:
        with connect(self.db_path) as c:
            cur = c.execute(
                "SELECT total_registros, ultima_atualizacao, total_bolsas_produzido FROM vw_status_plano"
            )
            rows = _fetch_dicts(cur)
        return rows[0] if rows else {"total_registros": 0, "ultima_atualizacao": None, "total_bolsas_produzido": 0}


# -------------------------
# Estoque intermediário
# -------------------------

class IntermediarioRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert(self, aroma_key: str, qtd_pacotes: float) -> None:
        with connect(self.db_path) as c:
            c.execute(
                """
                INSERT INTO intermediario (aroma_key, qtd_pacotes, created_at, updated_at)
                VALUES (?, ?, datetime('now'), datetime('now'))
                ON CONFLICT(aroma_key) DO UPDATE SET
                    qtd_pacotes=excluded.qtd_pacotes,
                    updated_at=excluded.updated_at
                """,
                (aroma_key, float(qtd_pacotes)),
            )

    def map_by_aroma(self) -> Dict[str, float]:
        with connect(self.db_path) as c:
            cur = c.execute("SELECT aroma_key, qtd_pacotes FROM vw_intermediario")
            return {row[0]: float(row[1] or 0) for row in cur.fetchall()}


# -------------------------
# Destinatários
# -------------------------

class DestinatarioRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def add(self, alias: str, email_enc: str) -> int:
        with connect(self.db_path) as c:
            cur = c.execute(
                "INSERT INTO destinatario (alias, email_enc) VALUES (?, ?)",
                (alias, email_enc),
            )
            return int(cur.lastrowid)

    def list_aliases(self) -> List[Dict[str, Any]]:
        """Somente id e apelido; o endereço nunca sai daqui."""
        with connect(self.db_path) as c:
            cur = c.execute("SELECT id, alias, created_at FROM destinatario ORDER BY alias, id")
            return _fetch_dicts(cur)

    def get_many(self, ids: Iterable[int]) -> List[Destinatario]:
        ids = [int(i) for i in ids]
        if not ids:
            return []
        marks = ",".join("?" for _ in ids)
        with connect(self.db_path) as c:
            cur = c.execute(
                f"SELECT id, alias, email_enc FROM destinatario WHERE id IN ({marks})",
                ids,
            )
            found = {r["id"]: Destinatario(id=r["id"], alias=r["alias"], email_enc=r["email_enc"]) for r in cur.fetchall()}
        # mantém a ordem pedida
        return [found[i] for i in ids if i in found]


# -------------------------
# Log de envios
# -------------------------

class EmailLogRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, log: EmailLog) -> int:
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                INSERT INTO email_log
                    (status, to_ids, cc_ids, bcc_ids, message_id, teams_status, error)
                VALUES
                    (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    log.status,
                    json.dumps(log.to_ids),
                    json.dumps(log.cc_ids),
                    json.dumps(log.bcc_ids),
                    log.message_id,
                    log.teams_status,
                    log.error,
                ),
            )
            return int(cur.lastrowid)

    def list_recent(self, limit: Optional[int] = 20) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            cur = c.execute(
                """SELECT id, status, to_ids, cc_ids, bcc_ids, message_id, teams_status, error, created_at
                   FROM email_log ORDER BY id DESC LIMIT ?""",
                (limit if limit is not None else -1,),
            )
            rows = _fetch_dicts(cur)
        for r in rows:
            for k in ("to_ids", "cc_ids", "bcc_ids"):
                r[k] = json.loads(r[k] or "[]")
        return rows
