"""Amadeus client: destination discovery within budget, with a static reference fallback."""

import asyncio
import hashlib
import logging
import random
from datetime import date, timedelta

from tripscout.config import settings
from tripscout.data import currency
from tripscout.data.destinations import REFERENCE_CURRENCY, list_reference_destinations
from tripscout.data.iata_cities import get_city_name
from tripscout.errors import UpstreamError, ValidationError
from tripscout.services.geocoding_service import normalize_code
from tripscout.services.token_service import TokenService, token_service
from tripscout.services.types import Candidate, Outcome

logger = logging.getLogger(__name__)

DESTINATIONS_PATH = "/v1/shopping/flight-destinations"
MAX_PRICE_LIMIT = 50000
MIN_DURATION_DAYS = 1
MAX_DURATION_DAYS = 15
DEFAULT_DEPARTURE_OFFSET_DAYS = 7

FALLBACK_CARRIERS = ["LOT Polish Airlines", "Ryanair", "Wizz Air", "Lufthansa", "easyJet"]


def validate_discovery_request(origin: str, max_price: float, days: int) -> str:
    """Check discovery inputs before any network call. Returns the normalised origin."""
    code = normalize_code(origin)
    try:
        price = float(max_price)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Budget must be a number, got {max_price!r}") from e
    if not 0 <= price <= MAX_PRICE_LIMIT:
        raise ValidationError(f"Budget must be between 0 and {MAX_PRICE_LIMIT}")
    if isinstance(days, bool) or not isinstance(days, int):
        raise ValidationError(f"Duration must be a whole number of days, got {days!r}")
    if not MIN_DURATION_DAYS <= days <= MAX_DURATION_DAYS:
        raise ValidationError(
            f"Duration must be between {MIN_DURATION_DAYS} and {MAX_DURATION_DAYS} days"
        )
    return code


def duration_label(departure: date, return_date: date) -> str:
    days = (return_date - departure).days
    return f"{days} day" if days == 1 else f"{days} days"


class AmadeusClient:
    """Adapter for the Amadeus Flight Inspiration Search API."""

    def __init__(self, tokens: TokenService | None = None, currency_code: str | None = None):
        self._tokens = tokens or token_service
        self._semaphore = asyncio.Semaphore(10)  # 10 req/s rate limit
        self.currency = (currency_code or settings.default_currency).upper()

    @property
    def _use_mock(self) -> bool:
        return not self._tokens.is_configured

    async def discover(
        self,
        origin: str,
        max_price: float,
        days: int,
        departure_date: date | None = None,
        travel_style: str | None = None,
    ) -> Outcome[list[Candidate]]:
        """Destinations reachable from origin within budget.

        Raises ValidationError for bad input and AuthError when credentials are
        rejected twice. Every other upstream failure is answered from the
        reference dataset as a degraded outcome.
        """
        origin = validate_discovery_request(origin, max_price, days)

        if self._use_mock:
            logger.info("Amadeus credentials not configured, using reference destinations")
            return Outcome.degraded(
                self.reference_candidates(origin, max_price, days, departure_date, travel_style),
                source="reference",
                error="Amadeus credentials not configured",
            )

        try:
            candidates = await self.search_flight_destinations(
                origin, max_price, days, departure_date
            )
        except UpstreamError as e:
            logger.error(f"Amadeus discovery failed, falling back to reference data: {e}")
            return Outcome.degraded(
                self.reference_candidates(origin, max_price, days, departure_date, travel_style),
                source="reference",
                error=str(e),
            )

        return Outcome.ok(candidates, source="amadeus")

    async def search_flight_destinations(
        self,
        origin: str,
        max_price: float,
        days: int,
        departure_date: date | None = None,
    ) -> list[Candidate]:
        """Raw call to flight-destinations. Raises UpstreamError or AuthError."""
        params = {
            "origin": origin,
            "oneWay": "false",
            "duration": days,
            "maxPrice": int(max_price),
            "viewBy": "DESTINATION",
        }
        if departure_date:
            params["departureDate"] = departure_date.isoformat()

        logger.info(f"Amadeus inspiration search: origin={origin}, maxPrice={int(max_price)}, duration={days}")

        async with self._semaphore:
            resp = await self._tokens.authorized_get(DESTINATIONS_PATH, params)

        if resp.status_code == 404:
            logger.info(f"No destinations found from {origin} within {max_price}")
            return []
        if resp.status_code == 429:
            raise UpstreamError("Amadeus rate limit exceeded", 429)
        if resp.status_code >= 400:
            raise UpstreamError(f"Amadeus API error: {resp.status_code}", resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError("Amadeus returned invalid JSON") from e
        if not isinstance(data, dict):
            raise UpstreamError("Unexpected Amadeus response shape")

        candidates = self._parse_destinations(data, origin, max_price)
        logger.info(f"Amadeus returned {len(candidates)} destinations from {origin}")
        return candidates

    def _parse_destinations(self, data: dict, origin: str, max_price: float) -> list[Candidate]:
        dictionaries = data.get("dictionaries") or {}
        locations = dictionaries.get("locations") or {}
        default_currency = next(iter(dictionaries.get("currencies") or {}), self.currency)

        candidates = []
        for item in data.get("data") or []:
            try:
                dest = item["destination"]
                departure = date.fromisoformat(item["departureDate"])
                return_date = date.fromisoformat(item.get("returnDate") or item["departureDate"])
                price_info = item.get("price") or {}
                raw_price = float(price_info["total"])
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed Amadeus destination entry: {e}")
                continue

            if return_date < departure:
                logger.warning(
                    f"Skipping {dest}: return {return_date} is before departure {departure}"
                )
                continue

            source_currency = (price_info.get("currency") or default_currency).upper()
            if raw_price < 0:
                logger.warning(f"Skipping {dest}: negative price {raw_price}")
                continue
            try:
                price = currency.convert(raw_price, source_currency, self.currency)
            except KeyError:
                logger.warning(f"Skipping {dest}: no exchange rate for {source_currency}")
                continue
            if price > max_price:
                continue

            candidates.append(Candidate(
                id=f"inspiration-{item.get('origin', origin)}-{dest}-{departure.isoformat()}",
                origin_code=item.get("origin", origin),
                destination_code=dest,
                destination_name=self._city_name(dest, locations),
                price=price,
                currency=self.currency,
                departure_date=departure,
                return_date=return_date,
                carrier_label="Various",  # Inspiration API doesn't return airlines
                trip_duration_label=duration_label(departure, return_date),
                stop_count=0,  # Unknown from inspiration API, assume direct
            ))
        return candidates

    @staticmethod
    def _city_name(code: str, locations: dict) -> str:
        """Static table first, then the response dictionary, then the code itself."""
        name = get_city_name(code)
        if name:
            return name
        detailed = (locations.get(code) or {}).get("detailedName")
        if detailed:
            return detailed.split(",")[0].strip().title()
        return code

    # --- Reference dataset fallback ---

    def reference_candidates(
        self,
        origin: str,
        max_price: float,
        days: int,
        departure_date: date | None = None,
        travel_style: str | None = None,
    ) -> list[Candidate]:
        """Candidates from the static reference dataset, filtered by budget and style."""
        departure = departure_date or date.today() + timedelta(days=DEFAULT_DEPARTURE_OFFSET_DAYS)
        return_date = departure + timedelta(days=days)

        affordable = [
            (d, currency.convert(d.estimated_price, REFERENCE_CURRENCY, self.currency))
            for d in list_reference_destinations()
            if d.code != origin
        ]
        affordable = [(d, price) for d, price in affordable if price <= max_price]
        styled = [(d, price) for d, price in affordable if travel_style in d.best_for]
        # Prefer style matches, but never hand back nothing while something is affordable
        selected = styled if travel_style and styled else affordable

        candidates = []
        for dest, price in selected:
            # Deterministic seed based on route+date for consistency
            seed_str = f"{origin}{dest.code}{departure.isoformat()}"
            seed = int(hashlib.md5(seed_str.encode()).hexdigest()[:8], 16)
            rng = random.Random(seed)

            candidates.append(Candidate(
                id=f"reference-{origin}-{dest.code}-{departure.isoformat()}",
                origin_code=origin,
                destination_code=dest.code,
                destination_name=dest.city,
                price=price,
                currency=self.currency,
                departure_date=departure,
                return_date=return_date,
                carrier_label=rng.choice(FALLBACK_CARRIERS),
                trip_duration_label=duration_label(departure, return_date),
                stop_count=rng.choices([0, 1], weights=[70, 30])[0],
            ))

        logger.info(f"Reference dataset: {len(candidates)} destinations from {origin}")
        return sorted(candidates, key=lambda c: c.price)


amadeus_client = AmadeusClient()
