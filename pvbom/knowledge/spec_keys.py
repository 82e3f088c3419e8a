"""
Material catalog keys used by the PV configurator.

Category ids and specification keys are the identifiers the material catalog
uses; they are fixed by the catalog store and must not be renamed here.
"""
from __future__ import annotations

from typing import Any


# -------------------------------------------------------------------
# Category ids
# -------------------------------------------------------------------
CATEGORY = {
    "modules": "1uOB8fBkWQYkPS0LOZxk",
    "inverters": "yGGCjoiZrmbabhCqWSyS",
    "wallboxes": "sBUZ1B1IRinmuSPZNh7o",
    "batteries": "CSVTWpEA5NSAIOZVyHTq",
    "pv_mounting": "mHvC6RpkDKFFCqoZjZcW",
    "clamps": "WGfZvGlkrPiTDUC3SqL2",
    "connectors": "bArNeyutPDFXhpPBTsOw",
    "profiles": "aAhBqQFaynXXCf42Ws1H",
    "optimizers": "a6eKXo8lJX2RU7Ny8rDW",
    "energy_management": "xcd6LYhzBSV2u6r3lvTH",
    "backup_power": "MhQf6qQNd5I08mqloE7R",
    "circuit_breakers": "mMfrQeYNHrQJVT4hLAZs",
    "cables": "BKL1zeVvHbOvtrD8udg9",
    "rcds": "cpCa7ZqKiQfX37GvQVQn",
    "surge_protection": "XSJEgR8thn3PGhcH9W4f",
    "grounding_rod": "GP8qqjTGy7rb61Ldy4JR",
    "combined_arrester": "GbQ7mvPpvShm8yaXss5R",
    "meter_cabinet": "sPp6SFLYLBt7jqj6ESV8",
    "auxiliary_power_supply": "oAkX5Hj0lu3KBVVvVnJv",
    "smart_dongle": "ZlqQZdDkuckVCHmCoU7T",
    "generator_junction_box": "UttktkBYB4PCle22csnr",
}


# -------------------------------------------------------------------
# Specification keys
# -------------------------------------------------------------------
# Device catalogs store the rated current under one of three keys.
DEVICE_MAX_CURRENT_KEYS = [
    "Y3pBJPJrkUQMmVtLNOcv",
    "Hvh5hlfkgPx78maaL72i",
    "jqU0neeeT3zUIo4Aj9MJ",
]

MODULE_WIDTH_MM = "wScGOKYdt4X1KdjYmZyy"
MODULE_LENGTH_MM = "JI4bqhXSzmm9WGgddTYA"
PROFILE_LENGTH_MM = "8YZJStJTGnHxZxBU30CP"

# Inverter: "Nein" means the inverter has no built-in dongle and needs one.
SMART_DONGLE_INCLUDED = "fzK2fI7oj4XXbEYZe5tJ"
# Energy management: "Ja" means the device takes over the dongle's role.
REPLACES_SMART_DONGLE = "vtRsEoszWmDtdPZdKfBB"

DEFAULT_SMART_DONGLE_NAME = "Smart Dongle-WLAN-FE"


# -------------------------------------------------------------------
# Roof types
# -------------------------------------------------------------------
ROOF_TYPE_ALIASES = {
    "tile": "tile",
    "ziegel": "tile",
    "trapezoidal": "trapezoidal",
    "trapez": "trapezoidal",
    "flat": "flat",
    "flach": "flat",
}


_YES = {"ja", "yes"}
_NO = {"nein", "no"}


def is_yes(value: Any) -> bool:
    """True for catalog flags such as 'Ja' / 'yes' / True."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _YES if value is not None else False


def is_no(value: Any) -> bool:
    """True only for an explicit negative flag; missing values are not 'no'."""
    if isinstance(value, bool):
        return not value
    return str(value).strip().lower() in _NO if value is not None else False
