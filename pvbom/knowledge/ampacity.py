"""
Ampacity table for AC feeder sizing.

Maps a device's rated current to a standard cable cross-section and the
breaker rating that protects it. Cross-sections and breaker ratings are fixed;
the maximum current each cross-section may carry depends on the installation
method and is therefore taken from the company defaults.

Policy: the smallest sufficient cross-section wins. When no band is large
enough (or the defaults are incomplete) the largest band is used.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


# (cross-section mm², breaker rating A), ascending
STANDARD_BANDS: List[Tuple[float, int]] = [
    (1.5, 16),
    (2.5, 20),
    (4.0, 25),
    (6.0, 32),
    (10.0, 50),
    (16.0, 63),
]

CROSS_SECTIONS_MM2 = [mm2 for mm2, _ in STANDARD_BANDS]
BREAKER_RATINGS_A = [amps for _, amps in STANDARD_BANDS]


@dataclass(frozen=True)
class AmpacityBand:
    cross_section_mm2: float
    max_current_a: float
    breaker_rating_a: int


def build_table(max_currents: Optional[Dict[float, float]] = None) -> List[AmpacityBand]:
    """
    Combine the fixed bands with the configured maximum currents.

    Missing entries get a max current of 0 (the band never qualifies).
    """
    max_currents = max_currents or {}
    return [
        AmpacityBand(
            cross_section_mm2=mm2,
            max_current_a=float(max_currents.get(mm2) or 0.0),
            breaker_rating_a=breaker,
        )
        for mm2, breaker in STANDARD_BANDS
    ]


def lookup(max_current_a: float, table: List[AmpacityBand]) -> AmpacityBand:
    """First band whose max current covers the device current, else the largest band."""
    for band in table:
        if band.max_current_a >= max_current_a:
            return band
    return table[-1]
