"""
Carrier directory: airline name/IATA code -> APPR size category.
"""

import re
from dataclasses import dataclass
from typing import Optional

from app.models.enums import AirlineCategory


@dataclass(frozen=True)
class Airline:
    name: str
    code: Optional[str]
    category: AirlineCategory


_L = AirlineCategory.LARGE
_S = AirlineCategory.SMALL

AIRLINES: tuple[Airline, ...] = (
    Airline("Air Canada", "AC", _L),
    Airline("Air Canada Express", None, _L),
    Airline("Air Canada Rouge", None, _L),
    Airline("WestJet", "WS", _L),
    Airline("WestJet Encore", None, _L),
    Airline("American Airlines", "AA", _L),
    Airline("United Airlines", "UA", _L),
    Airline("Delta Airlines", "DL", _L),
    Airline("British Airways", "BA", _L),
    Airline("Lufthansa", "LH", _L),
    Airline("Air France", "AF", _L),
    Airline("Japan Airlines", "JL", _L),
    Airline("Porter Airlines", "PD", _S),
    Airline("Flair Airlines", "F8", _S),
    Airline("Air Transat", "TS", _S),
    Airline("Air North", None, _S),
    Airline("Canadian North", None, _S),
    Airline("Pacific Coastal Airlines", None, _S),
    Airline("Air Inuit", None, _S),
    Airline("Central Mountain Air", None, _S),
    Airline("Air Borealis", None, _S),
    Airline("Rise Air", None, _S),
    Airline("Air Creebec", None, _S),
    Airline("Max Aviation", None, _S),
    Airline("Air Saint-Pierre", None, _S),
    Airline("North Wright Airways", None, _S),
)

_BY_CODE = {a.code: a for a in AIRLINES if a.code}

# Two-character IATA designator at the start of a flight number ("AC 871", "f8123")
FLIGHT_PREFIX_RE = re.compile(r"^\s*([A-Z0-9]{2})\s*\d", re.IGNORECASE)


def lookup_airline(name_or_code: str) -> Optional[Airline]:
    """Exact code match first, then exact name, then substring of name."""
    needle = name_or_code.strip()
    if not needle:
        return None
    by_code = _BY_CODE.get(needle.upper())
    if by_code:
        return by_code
    lowered = needle.lower()
    for airline in AIRLINES:
        if airline.name.lower() == lowered:
            return airline
    for airline in AIRLINES:
        if lowered in airline.name.lower():
            return airline
    return None


def category_for_flight(
    flight_number: str, airline: Optional[str] = None
) -> Optional[AirlineCategory]:
    """Resolve the carrier category from an explicit airline or the flight prefix."""
    if airline:
        found = lookup_airline(airline)
        if found:
            return found.category
    match = FLIGHT_PREFIX_RE.match(flight_number or "")
    if match:
        found = _BY_CODE.get(match.group(1).upper())
        if found:
            return found.category
    return None
