"""Static reference destinations: last-resort fallback when discovery is unavailable.

Prices are round-trip estimates in PLN.
"""

from dataclasses import dataclass

REFERENCE_CURRENCY = "PLN"


@dataclass(frozen=True)
class ReferenceDestination:
    code: str
    city: str
    country: str
    description: str
    best_for: tuple[str, ...]
    average_temp: int
    estimated_price: int


REFERENCE_DESTINATIONS: tuple[ReferenceDestination, ...] = (
    ReferenceDestination(
        "BCN", "Barcelona", "Spain",
        "Coastal city with Gaudi architecture and Mediterranean beaches",
        ("culture", "party", "relaxation"), 22, 289,
    ),
    ReferenceDestination(
        "PRG", "Prague", "Czech Republic",
        "Medieval old town with a hilltop castle",
        ("culture", "relaxation", "party"), 15, 180,
    ),
    ReferenceDestination(
        "LIS", "Lisbon", "Portugal",
        "Hilly Atlantic capital with tiled facades and trams",
        ("culture", "relaxation", "adventure"), 20, 420,
    ),
    ReferenceDestination(
        "BUD", "Budapest", "Hungary",
        "Danube city known for thermal baths and ruin bars",
        ("culture", "relaxation", "party"), 16, 210,
    ),
    ReferenceDestination(
        "CPH", "Copenhagen", "Denmark",
        "Waterfront design capital built around cycling",
        ("culture", "nature", "relaxation"), 12, 380,
    ),
    ReferenceDestination(
        "ATH", "Athens", "Greece",
        "Ancient ruins, island ferries and long summers",
        ("culture", "relaxation", "adventure"), 24, 540,
    ),
    ReferenceDestination(
        "OSL", "Oslo", "Norway",
        "Fjord-side capital with forests on its doorstep",
        ("nature", "adventure"), 8, 460,
    ),
    ReferenceDestination(
        "SPU", "Split", "Croatia",
        "Roman palace old town on the Dalmatian coast",
        ("relaxation", "party", "nature"), 23, 390,
    ),
    ReferenceDestination(
        "KEF", "Reykjavik", "Iceland",
        "Gateway to glaciers, geysers and the northern lights",
        ("nature", "adventure"), 5, 890,
    ),
    ReferenceDestination(
        "MLA", "Malta", "Malta",
        "Sunny archipelago with clear water and fortified towns",
        ("relaxation", "party", "adventure"), 26, 470,
    ),
)

REFERENCE_BY_CODE: dict[str, ReferenceDestination] = {d.code: d for d in REFERENCE_DESTINATIONS}


def list_reference_destinations(
    travel_style: str | None = None,
    max_budget: float | None = None,
) -> list[ReferenceDestination]:
    """Reference destinations filtered by travel style and budget (PLN)."""
    destinations = list(REFERENCE_DESTINATIONS)
    if travel_style:
        destinations = [d for d in destinations if travel_style in d.best_for]
    if max_budget is not None:
        destinations = [d for d in destinations if d.estimated_price <= max_budget]
    return destinations
