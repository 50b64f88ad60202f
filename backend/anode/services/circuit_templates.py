"""
Circuit templates — starter circuit lists for residential distribution panels.

Groups are keyed by panel size and are cumulative: a 12-circuit panel gets
the 6-circuit group, then the 8 group, then the 12 group (circuits 1..12).
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from anode.models.technical_sheet import CircuitRow


class UnknownPanelSize(KeyError):
    """No template exists for the requested panel size."""


@dataclass(frozen=True)
class CircuitTemplate:
    number: int
    name: str
    breaker: str
    cable: str
    note: Optional[str] = None


_T = CircuitTemplate

# Panel size -> circuits added on top of the previous size
_GROUPS: Dict[int, Tuple[CircuitTemplate, ...]] = {
    6: (
        _T(1, "Iluminação Social", "10A / Bip.", "1,5 mm²", "Distribuir em mais de um circuito, se necessário"),
        _T(2, "Tomadas Uso Geral (TUG) - Quartos", "15A / Bip.", "2,5 mm²", "Máx. 10 pontos por circuito"),
        _T(3, "Tomadas Uso Geral (TUG) - Sala", "15A / Bip.", "2,5 mm²", "Máx. 10 pontos por circuito"),
        _T(4, "Chuveiro Elétrico Suíte", "32A / Bip.", "6 mm²", "Verificar potência do chuveiro"),
        _T(5, "Tomadas Uso Específico (TUE) - Cozinha (Bancada)", "20A / Bip.", "2,5 mm²",
           "Para equipamentos de maior potência"),
        _T(6, "Geladeira / Freezer", "15A / Bip.", "2,5 mm²", "Circuito dedicado"),
    ),
    8: (
        _T(7, "Máquina de Lavar Roupa", "20A / Bip.", "2,5 mm²", "Circuito dedicado"),
        _T(8, "Micro-ondas", "20A / Bip.", "2,5 mm²", "Circuito dedicado"),
    ),
    12: (
        _T(9, "Ar-condicionado Split Quarto 1", "15A / Bip.", "2,5 mm²", "Verificar potência do equipamento"),
        _T(10, "Ar-condicionado Split Sala", "20A / Bip.", "2,5 mm²", "Verificar potência do equipamento"),
        _T(11, "Forno Elétrico Embutido", "25A / Bip.", "4 mm²", "Circuito dedicado"),
        _T(12, "Lava-louças", "20A / Bip.", "2,5 mm²", "Circuito dedicado"),
    ),
    18: (
        _T(13, "Secadora de Roupas", "20A / Bip.", "2,5 mm²", "Circuito dedicado"),
        _T(14, "Tomadas Uso Geral (TUG) - Cozinha", "20A / Bip.", "2,5 mm²"),
        _T(15, "Tomadas Área de Serviço", "20A / Bip.", "2,5 mm²"),
        _T(16, "Chuveiro Elétrico Social", "32A / Bip.", "6 mm²", "Verificar potência"),
        _T(17, "Iluminação Serviço / Externa", "10A / Bip.", "1,5 mm²"),
        _T(18, "Portão Eletrônico / Interfone", "10A / Bip.", "1,5 mm²"),
    ),
    24: (
        _T(19, "Ar-condicionado Split Quarto 2", "15A / Bip.", "2,5 mm²", "Verificar potência"),
        _T(20, "Bomba de Piscina / Hidro", "20A / Bip.", "2,5 mm²", "Com proteção DR"),
        _T(21, "Iluminação Jardim / Piscina", "10A / Bip.", "1,5 mm²", "Com proteção DR"),
        _T(22, "Tomadas Varanda / Gourmet", "20A / Bip.", "2,5 mm²"),
        _T(23, "Automação Residencial", "10A / Bip.", "1,5 mm²"),
        _T(24, "Tomadas Escritório / Home Office", "15A / Bip.", "2,5 mm²"),
    ),
    32: (
        _T(25, "Aquecedor Central / Boiler", "32A / Bip.", "6 mm²", "Verificar potência"),
        _T(26, "Painel Solar Inversor", "25A / Bip.", "4 mm²", "Conforme projeto fotovoltaico"),
        _T(27, "Sistema de Segurança (CFTV/Alarme)", "10A / Bip.", "1,5 mm²"),
        _T(28, "Reservado Técnico 1", "20A", "2,5 mm²"),
        _T(29, "Reservado Técnico 2", "20A", "2,5 mm²"),
        _T(30, "Tomadas Banheiros (exceto chuveiro)", "15A / Bip.", "2,5 mm²"),
        _T(31, "Iluminação Corredores / Hall", "10A / Bip.", "1,5 mm²"),
        _T(32, "Painel de Rede / Internet", "10A / Bip.", "1,5 mm²"),
    ),
    44: (
        _T(33, "Spa / Jacuzzi", "32A / Trip.", "6 mm²", "Com proteção DR dedicada"),
        _T(34, "Carregador Veículo Elétrico", "32A / Bip.", "6 mm²", "Verificar demanda"),
        _T(35, "Adega Climatizada", "10A / Bip.", "1,5 mm²"),
        _T(36, "Quarto 1 - Tomadas Adicionais", "15A / Bip.", "2,5 mm²"),
        _T(37, "Quarto 2 - Tomadas Adicionais", "15A / Bip.", "2,5 mm²"),
        _T(38, "Quarto 3 / Suíte Master - Tomadas", "20A / Bip.", "2,5 mm²"),
        _T(39, "Home Theater / Som Ambiente", "15A / Bip.", "2,5 mm²"),
        _T(40, "Banheiro Social - Tomadas", "15A / Bip.", "2,5 mm²"),
        _T(41, "Iluminação Garagem / Depósito", "10A / Bip.", "1,5 mm²"),
        _T(42, "Tomadas Garagem / Oficina", "20A / Bip.", "2,5 mm²"),
        _T(43, "Reservado Técnico 3", "20A", "2,5 mm²"),
        _T(44, "Reservado Técnico 4", "20A", "2,5 mm²"),
    ),
}


def list_panel_sizes() -> List[int]:
    return sorted(_GROUPS)


def template_for_panel(size: int) -> List[CircuitTemplate]:
    """All template circuits for a panel of `size` positions, numbered 1..size."""
    if size not in _GROUPS:
        raise UnknownPanelSize(size)
    circuits: List[CircuitTemplate] = []
    for group_size in list_panel_sizes():
        if group_size > size:
            break
        circuits.extend(_GROUPS[group_size])
    return circuits


def to_circuit_rows(templates: List[CircuitTemplate]) -> List[CircuitRow]:
    """Template entries -> table rows of a technical sheet. The cable column keeps only the gauge."""
    return [
        CircuitRow(
            name=t.name,
            breaker=t.breaker,
            cable_gauge=t.cable.replace("mm²", "").strip(),
            notes=t.note,
        )
        for t in templates
    ]
