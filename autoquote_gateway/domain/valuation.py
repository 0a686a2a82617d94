"""Vehicle valuation oracle: free-text vehicle descriptor -> point estimate"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Protocol, Tuple


@dataclass(frozen=True)
class VehicleValuation:
    final_estimate: int
    confidence: str  # "high" | "medium" | "low"
    make: str = "Unknown"
    model: str = "Unknown"
    year: Optional[int] = None


class ValuationOracle(Protocol):
    """Anything that can price a vehicle descriptor; None when the vehicle is unknown"""

    def estimate_vehicle_value(self, descriptor: Optional[str]) -> Optional[VehicleValuation]:
        ...


# (make, model, year) -> estimated value
PRICE_TABLE: Dict[Tuple[str, str, int], int] = {
    ("toyota", "camry", 2024): 28_500,
    ("toyota", "camry", 2023): 26_000,
    ("toyota", "camry", 2022): 24_000,
    ("toyota", "rav4", 2024): 32_500,
    ("toyota", "rav4", 2023): 30_000,
    ("toyota", "corolla", 2024): 24_500,
    ("toyota", "corolla", 2023): 22_000,
    ("toyota", "highlander", 2024): 38_000,
    ("toyota", "prius", 2024): 29_000,
    ("honda", "civic", 2024): 25_500,
    ("honda", "civic", 2023): 23_500,
    ("honda", "accord", 2024): 30_500,
    ("honda", "accord", 2023): 28_000,
    ("honda", "cr-v", 2024): 33_000,
    ("honda", "cr-v", 2023): 30_500,
    ("honda", "pilot", 2024): 40_000,
    ("ford", "f-150", 2024): 38_500,
    ("ford", "f-150", 2023): 36_000,
    ("ford", "escape", 2024): 28_000,
    ("ford", "mustang", 2024): 35_000,
    ("ford", "explorer", 2024): 37_000,
    ("chevrolet", "equinox", 2024): 29_500,
    ("chevrolet", "silverado", 2024): 40_000,
    ("chevrolet", "malibu", 2024): 26_000,
    ("chevrolet", "tahoe", 2024): 55_000,
    ("nissan", "altima", 2024): 26_500,
    ("nissan", "altima", 2023): 24_000,
    ("nissan", "rogue", 2024): 30_000,
    ("nissan", "sentra", 2024): 21_500,
    ("hyundai", "elantra", 2024): 23_500,
    ("hyundai", "tucson", 2024): 29_000,
    ("hyundai", "santa fe", 2024): 35_000,
    ("subaru", "outback", 2024): 31_500,
    ("subaru", "forester", 2024): 29_500,
    ("bmw", "3 series", 2024): 42_000,
    ("bmw", "x3", 2024): 45_000,
    ("mercedes", "c-class", 2024): 45_000,
    ("audi", "a4", 2024): 43_000,
}

MAKE_PATTERNS: List[Tuple[str, Tuple[str, ...]]] = [
    ("toyota", ("toyota",)),
    ("honda", ("honda",)),
    ("ford", ("ford",)),
    ("chevrolet", ("chevrolet", "chevy", "chev")),
    ("nissan", ("nissan",)),
    ("hyundai", ("hyundai",)),
    ("subaru", ("subaru",)),
    ("mazda", ("mazda",)),
    ("volkswagen", ("volkswagen", "vw")),
    ("bmw", ("bmw",)),
    ("mercedes", ("mercedes", "mercedes-benz", "benz")),
    ("audi", ("audi",)),
    ("lexus", ("lexus",)),
    ("acura", ("acura",)),
    ("infiniti", ("infiniti",)),
    ("kia", ("kia",)),
    ("jeep", ("jeep",)),
    ("ram", ("ram",)),
    ("gmc", ("gmc",)),
]

MODEL_PATTERNS: List[Tuple[str, Tuple[str, ...]]] = [
    ("camry", ("camry",)),
    ("corolla", ("corolla",)),
    ("rav4", ("rav4", "rav-4")),
    ("highlander", ("highlander",)),
    ("prius", ("prius",)),
    ("civic", ("civic",)),
    ("accord", ("accord",)),
    ("cr-v", ("cr-v", "crv")),
    ("pilot", ("pilot",)),
    ("f-150", ("f-150", "f150", "f 150")),
    ("escape", ("escape",)),
    ("mustang", ("mustang",)),
    ("explorer", ("explorer",)),
    ("equinox", ("equinox",)),
    ("silverado", ("silverado",)),
    ("malibu", ("malibu",)),
    ("tahoe", ("tahoe",)),
    ("altima", ("altima",)),
    ("rogue", ("rogue",)),
    ("sentra", ("sentra",)),
    ("elantra", ("elantra",)),
    ("tucson", ("tucson",)),
    ("santa fe", ("santa fe", "santafe")),
    ("outback", ("outback",)),
    ("forester", ("forester",)),
    ("3 series", ("3 series", "3-series", "320i", "330i")),
    ("x3", ("x3",)),
    ("c-class", ("c-class", "c class", "c300", "c350")),
    ("a4", ("a4",)),
]

MAKE_MULTIPLIERS = {
    "toyota": 1.0,
    "honda": 1.0,
    "ford": 0.9,
    "chevrolet": 0.9,
    "nissan": 0.85,
    "hyundai": 0.8,
    "subaru": 0.95,
    "bmw": 1.6,
    "mercedes": 1.7,
    "audi": 1.5,
    "lexus": 1.3,
}

VIN_PATTERN = re.compile(r"^[a-z0-9]{17}$")
YEAR_PATTERN = re.compile(r"\b(199\d|20[0-2]\d)\b")

DEPRECIATION_PER_YEAR = 1500
MIN_RESIDUAL_RATIO = 0.6


def _detect(text: str, patterns: List[Tuple[str, Tuple[str, ...]]]) -> str:
    for standard, variations in patterns:
        if any(variation in text for variation in variations):
            return standard
    return ""


class PriceTableValuationOracle:
    """Keyword parser over a static price table, with make/year fallback pricing"""

    def __init__(self, current_year: Optional[int] = None):
        self.current_year = current_year or date.today().year

    def estimate_vehicle_value(self, descriptor: Optional[str]) -> Optional[VehicleValuation]:
        if not descriptor or not descriptor.strip():
            return None

        text = descriptor.lower().strip()

        # VIN decoding is mocked with a fixed vehicle
        if VIN_PATTERN.match(text):
            return VehicleValuation(final_estimate=26_000, confidence="high", make="Toyota", model="Camry", year=2023)

        year_match = YEAR_PATTERN.search(text)
        year = int(year_match.group(0)) if year_match else self.current_year
        make = _detect(text, MAKE_PATTERNS)
        model = _detect(text, MODEL_PATTERNS)

        exact = PRICE_TABLE.get((make, model, year))
        if exact is not None:
            return VehicleValuation(final_estimate=exact, confidence="high", make=make.title(), model=model, year=year)

        if make and model:
            for (table_make, table_model, table_year), value in PRICE_TABLE.items():
                if table_make == make and table_model == model:
                    adjusted = value - (table_year - year) * DEPRECIATION_PER_YEAR
                    estimate = int(max(adjusted, value * MIN_RESIDUAL_RATIO))
                    return VehicleValuation(
                        final_estimate=estimate, confidence="high", make=make.title(), model=model, year=year
                    )

        if year >= 2023:
            base_price = 30_000
        elif year >= 2020:
            base_price = 25_000
        elif year >= 2015:
            base_price = 20_000
        else:
            base_price = 15_000

        estimate = round(base_price * MAKE_MULTIPLIERS.get(make, 1.0))
        return VehicleValuation(
            final_estimate=estimate,
            confidence="medium" if make and model else "low",
            make=make.title() if make else "Unknown",
            model=model or "Unknown",
            year=year,
        )
