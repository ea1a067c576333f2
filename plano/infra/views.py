# plano/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_status_plano:   total de registros do plano e data da última atualização.
- vw_intermediario:  estoque intermediário com chave normalizada.

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        c.executescript(
            """
            ---------------------------
            -- Status do plano
            ---------------------------
            DROP VIEW IF EXISTS vw_status_plano;
            CREATE VIEW vw_status_plano AS
            SELECT
                COUNT(*)                          AS total_registros,
                MAX(updated_at)                   AS ultima_atualizacao,
                COALESCE(SUM(bolsas_produzido), 0) AS total_bolsas_produzido
            FROM producao;

            ---------------------------
            -- Estoque intermediário
            ---------------------------
            DROP VIEW IF EXISTS vw_intermediario;
            CREATE VIEW vw_intermediario AS
            SELECT
                UPPER(TRIM(aroma_key)) AS aroma_key,
                qtd_pacotes,
                created_at,
                updated_at
            FROM intermediario;
            """
        )
