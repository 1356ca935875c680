"""Static IATA code → city name table.

Used for:
- destination display names in discovery results
- the search term sent to the Open-Meteo geocoding API
"""

IATA_CITIES: dict[str, str] = {
    # Iberia
    "BCN": "Barcelona", "MAD": "Madrid", "LIS": "Lisbon", "OPO": "Porto",
    "AGP": "Malaga", "PMI": "Palma", "VLC": "Valencia", "SVQ": "Seville",
    "FAO": "Faro", "TFS": "Tenerife", "LPA": "Las Palmas",
    # Central Europe
    "WAW": "Warsaw", "WMI": "Warsaw", "KRK": "Krakow", "GDN": "Gdansk",
    "WRO": "Wroclaw", "POZ": "Poznan", "PRG": "Prague", "BUD": "Budapest",
    "VIE": "Vienna", "BTS": "Bratislava", "BER": "Berlin", "MUC": "Munich",
    "FRA": "Frankfurt", "HAM": "Hamburg", "ZRH": "Zurich", "GVA": "Geneva",
    # Western Europe
    "PAR": "Paris", "CDG": "Paris", "ORY": "Paris", "NCE": "Nice",
    "LON": "London", "LHR": "London", "LGW": "London", "STN": "London",
    "LTN": "London", "AMS": "Amsterdam", "BRU": "Brussels", "DUB": "Dublin",
    "EDI": "Edinburgh", "MAN": "Manchester",
    # Italy
    "ROM": "Rome", "FCO": "Rome", "CIA": "Rome", "MIL": "Milan",
    "MXP": "Milan", "LIN": "Milan", "VCE": "Venice", "NAP": "Naples",
    "BLQ": "Bologna", "PSA": "Pisa", "CTA": "Catania",
    # Nordics & Baltics
    "CPH": "Copenhagen", "OSL": "Oslo", "STO": "Stockholm", "ARN": "Stockholm",
    "HEL": "Helsinki", "KEF": "Reykjavik", "RIX": "Riga", "TLL": "Tallinn",
    "VNO": "Vilnius", "TOS": "Tromso",
    # South-East Europe & Mediterranean
    "ATH": "Athens", "SKG": "Thessaloniki", "HER": "Heraklion",
    "JTR": "Santorini", "DBV": "Dubrovnik", "SPU": "Split", "ZAG": "Zagreb",
    "LJU": "Ljubljana", "BEG": "Belgrade", "SOF": "Sofia", "OTP": "Bucharest",
    "TIA": "Tirana", "MLA": "Malta", "LCA": "Larnaca", "IST": "Istanbul",
    "AYT": "Antalya", "TLV": "Tel Aviv",
    # Africa & Middle East
    "RAK": "Marrakesh", "CAI": "Cairo", "HRG": "Hurghada", "DXB": "Dubai",
}


def get_city_name(code: str) -> str | None:
    return IATA_CITIES.get(code.upper())
