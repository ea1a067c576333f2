"""
Categorias de aroma do estoque intermediário (linha TORCIDA).

A tabela é fixa: chave, rótulo e predicado sobre o nome do material já
normalizado (maiúsculas, espaços colapsados). Todo predicado exige também
o marcador da linha de produto.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional

from plano.config import DEFAULTS
from plano.domain.models import MaterialRef


def normalizar_nome(nome: Optional[str]) -> str:
    return re.sub(r"\s+", " ", (nome or "").upper()).strip()


def _linha(nome: str) -> bool:
    return DEFAULTS.marcador_linha in nome


@dataclass(frozen=True)
class Aroma:
    key: str
    label: str
    predicate: Callable[[str], bool]

    def casa(self, nome: Optional[str]) -> bool:
        """Predicado do aroma + marcador da linha, sobre o nome normalizado."""
        n = normalizar_nome(nome)
        return self.predicate(n) and _linha(n)


AROMAS: List[Aroma] = [
    Aroma("BACON", "TORCIDA BACON", lambda m: _linha(m) and "BACON" in m),
    Aroma("CEBOLA", "TORCIDA CEBOLA", lambda m: _linha(m) and "CEBOLA" in m),
    Aroma("CHURRASCO", "TORCIDA CHURRASCO", lambda m: _linha(m) and "CHURRASCO" in m),
    Aroma("COSTELA", "TORCIDA COSTELINHA", lambda m: _linha(m) and "COSTELA" in m),
    Aroma("MEXICANA", "TORCIDA MEXICANA", lambda m: _linha(m) and ("PIMENTA MEX" in m or "MEXICANA" in m)),
    Aroma("QUEIJO", "TORCIDA QUEIJO", lambda m: _linha(m) and "QUEIJO" in m),
    Aroma("CAMARAO", "TORCIDA CAMARAO", lambda m: _linha(m) and "CAMARAO" in m),
    Aroma("VINAGRETE", "TORCIDA VINAGRETE", lambda m: _linha(m) and "VINAGRETE" in m),
    Aroma("PAO_DE_ALHO", "TORCIDA PAO DE ALHO", lambda m: _linha(m) and "PAO DE ALHO" in m),
]

AROMAS_POR_CHAVE: Dict[str, Aroma] = {a.key: a for a in AROMAS}


def pacote_kg_para_aroma(aroma: Aroma, materiais: Mapping[str, MaterialRef]) -> float:
    """Peso do pacote (kg) mais frequente entre as referências do aroma.

    Empate fica com o primeiro valor visto; sem candidatos, usa o pacote
    padrão (10 kg).
    """
    valores = [
        m.pacote_kg
        for m in materiais.values()
        if m.pacote_kg and m.pacote_kg > 0 and aroma.casa(m.material)
    ]
    if not valores:
        return DEFAULTS.pacote_kg_padrao
    # Counter preserva a ordem de inserção; most_common é estável em empates
    return Counter(valores).most_common(1)[0][0]


def gramagem_para_item(codigo: str, nome: str, materiais: Mapping[str, MaterialRef]) -> float:
    """Gramagem (kg por bolsa) pelo código e, se não houver, pelo nome.

    Pelo nome vale a primeira referência cujo nome contém o nome do item.
    Sem referência → 0.
    """
    ref = materiais.get(codigo)
    if ref is not None and ref.gramagem_kg:
        return ref.gramagem_kg
    alvo = normalizar_nome(nome)
    if not alvo:
        return 0.0
    for m in materiais.values():
        if alvo in normalizar_nome(m.material):
            return m.gramagem_kg or 0.0
    return 0.0
