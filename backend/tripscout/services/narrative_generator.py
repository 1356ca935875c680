"""Narrative generator: builds the human-readable rationale for a recommendation list."""

from tripscout.data.currency import format_price
from tripscout.services.scoring_engine import matches_style
from tripscout.services.types import Candidate, TravelPreferences

MAX_ALTERNATIVES = 3


def _savings(candidate: Candidate, budget: float) -> tuple[float, int]:
    savings = budget - candidate.price
    percent = round(savings / budget * 100) if budget > 0 else 0
    return savings, percent


def build_rationale(
    recommendations: list[Candidate],
    preferences: TravelPreferences,
    currency: str,
    degraded_stages: list[str] | None = None,
) -> str:
    """
    Markdown summary of the ranked list.

    Names the top pick with its savings against budget and forecast,
    lists up to three alternatives, and flags reduced confidence when any
    stage had to fall back.
    """
    budget_text = format_price(preferences.budget, currency)
    style = preferences.travel_style.value

    if not recommendations:
        return (
            f"No destinations found within your budget of {budget_text} "
            f"from {preferences.origin}. Try increasing your budget or "
            f"adjusting your travel dates."
        )

    top = recommendations[0]
    savings, percent = _savings(top, preferences.budget)
    count = len(recommendations)

    lines = [
        "## Personalized Travel Recommendations",
        "",
        f"Based on your preferences (budget: {budget_text}, origin: {preferences.origin}, "
        f"style: {style}), we found {count} destination{'s' if count > 1 else ''} for you.",
        "",
        f"### Best Match: {top.destination_name}",
        "",
        f"- **Price:** {format_price(top.price, currency)} "
        f"(saves you {format_price(savings, currency)} / {percent}% under budget)",
        f"- **Airline:** {top.carrier_label}",
        f"- **Duration:** {top.trip_duration_label}",
        f"- **Stops:** {'Direct flight' if top.stop_count == 0 else f'{top.stop_count} stop(s)'}",
        f"- **Dates:** {top.departure_date.isoformat()} to {top.return_date.isoformat()}",
        "",
    ]

    if top.weather:
        lines += [
            "**Weather Forecast:**",
            f"- Temperature: {top.weather.temperature}°C",
            f"- Condition: {top.weather.condition}",
            f"- {top.weather.description}",
            "",
        ]

    lines.append(f"**Why {top.destination_name}?**")
    if matches_style(top, preferences.travel_style):
        lines.append(f"- Great match for {style} travellers")
    lines.append(f"- Good value at {percent}% under your budget")
    if top.stop_count == 0:
        lines.append("- Direct flight")
    lines.append("")

    alternatives = recommendations[1:1 + MAX_ALTERNATIVES]
    if alternatives:
        lines.append("### Other Options")
        lines.append("")
        for i, alt in enumerate(alternatives, start=2):
            alt_savings, _ = _savings(alt, preferences.budget)
            lines.append(
                f"**{i}. {alt.destination_name}** - {format_price(alt.price, currency)} "
                f"(saves {format_price(alt_savings, currency)})"
            )
            if alt.weather:
                lines.append(f"   Weather: {alt.weather.temperature}°C, {alt.weather.condition}")
        lines.append("")

    if degraded_stages:
        lines.append(
            f"*Reduced confidence: results used fallback data ({', '.join(degraded_stages)}).*"
        )
    else:
        lines.append(f"*Prices in {currency}. Check availability before booking.*")

    return "\n".join(lines)
