# plano/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios devolvem dicionários para as consultas tabulares;
  `PlanoItem` é usado nos cálculos para deixar explícitos os campos.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class MaterialRef:
    """Referência física de um material (carregada uma vez, somente leitura)."""
    codigo: str
    material: str = ""
    gramagem_kg: Optional[float] = None       # peso por bolsa em kg ("Gramagem")
    und_por_caixa: Optional[float] = None     # bolsas por caixa ("Und")
    caixas_por_pallet: Optional[float] = None # divisor do pallet ("Caixas")
    ppm: Optional[float] = None               # bolsas por minuto por máquina
    pacote_kg: Optional[float] = None         # peso do pacote do intermediário
    pallet: Optional[float] = None


@dataclass
class PlanoItem:
    """Registro do plano de produção (chave: código do material)."""
    cod_material: str
    material: str
    plano_caixas: float
    tons: float
    bolsas_produzido: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "PlanoItem":
        return cls(
            cod_material=str(row["cod_material"]),
            material=row["material"],
            plano_caixas=float(row["plano_caixas"]),
            tons=float(row["tons"]),
            bolsas_produzido=int(row["bolsas_produzido"] or 0),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@dataclass
class EstoqueIntermediario:
    """Quantidade de pacotes informada manualmente por aroma."""
    aroma_key: str
    qtd_pacotes: float = 0.0


@dataclass
class Destinatario:
    """Destinatário de e-mail; o endereço fica apenas criptografado."""
    id: int
    alias: str
    email_enc: str


@dataclass
class EmailLog:
    """Registro de auditoria de envio."""
    status: str                          # 'success' | 'error'
    to_ids: List[int] = field(default_factory=list)
    cc_ids: List[int] = field(default_factory=list)
    bcc_ids: List[int] = field(default_factory=list)
    message_id: Optional[str] = None
    teams_status: Optional[str] = None
    error: Optional[str] = None
