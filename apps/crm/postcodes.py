"""UK postcode to city/county lookup.

The local table maps outward-code prefixes to a town and county and is good
enough to pre-fill CRM addresses. When ``POSTCODE_LOOKUP_USE_API`` is enabled
the postcodes.io service is asked first and the table is the fallback.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, Tuple

import requests
from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

POSTCODE_AREAS: Dict[str, Tuple[str, str]] = {
    # London
    "E": ("London", "Greater London"),
    "EC": ("London", "Greater London"),
    "N": ("London", "Greater London"),
    "NW": ("London", "Greater London"),
    "SE": ("London", "Greater London"),
    "SW": ("London", "Greater London"),
    "W": ("London", "Greater London"),
    "WC": ("London", "Greater London"),
    "CR": ("Croydon", "Greater London"),
    "BR": ("Bromley", "Greater London"),
    "EN": ("Enfield", "Greater London"),
    "HA": ("Harrow", "Greater London"),
    "IG": ("Ilford", "Greater London"),
    "RM": ("Romford", "Greater London"),
    "TW": ("Twickenham", "Greater London"),
    "UB": ("Uxbridge", "Greater London"),
    # England
    "B": ("Birmingham", "West Midlands"),
    "CV": ("Coventry", "West Midlands"),
    "M": ("Manchester", "Greater Manchester"),
    "BL": ("Bolton", "Greater Manchester"),
    "WN": ("Wigan", "Greater Manchester"),
    "OL": ("Oldham", "Greater Manchester"),
    "SK": ("Stockport", "Greater Manchester"),
    "L": ("Liverpool", "Merseyside"),
    "LS": ("Leeds", "West Yorkshire"),
    "BD": ("Bradford", "West Yorkshire"),
    "WF": ("Wakefield", "West Yorkshire"),
    "HD": ("Huddersfield", "West Yorkshire"),
    "HX": ("Halifax", "West Yorkshire"),
    "S": ("Sheffield", "South Yorkshire"),
    "S4": ("Chesterfield", "Derbyshire"),
    "S6": ("Rotherham", "South Yorkshire"),
    "S7": ("Barnsley", "South Yorkshire"),
    "DN": ("Doncaster", "South Yorkshire"),
    "NE": ("Newcastle", "Tyne and Wear"),
    "SR": ("Sunderland", "Tyne and Wear"),
    "DH": ("Durham", "County Durham"),
    "DL": ("Darlington", "County Durham"),
    "TS": ("Middlesbrough", "North Yorkshire"),
    "YO": ("York", "North Yorkshire"),
    "HU": ("Hull", "East Yorkshire"),
    "BS": ("Bristol", "Bristol"),
    "BA": ("Bath", "Somerset"),
    "TA": ("Taunton", "Somerset"),
    "NG": ("Nottingham", "Nottinghamshire"),
    "LE": ("Leicester", "Leicestershire"),
    "DE": ("Derby", "Derbyshire"),
    "LN": ("Lincoln", "Lincolnshire"),
    "OX": ("Oxford", "Oxfordshire"),
    "CB": ("Cambridge", "Cambridgeshire"),
    "PE": ("Peterborough", "Cambridgeshire"),
    "BN": ("Brighton", "East Sussex"),
    "SO": ("Southampton", "Hampshire"),
    "PO": ("Portsmouth", "Hampshire"),
    "RG": ("Reading", "Berkshire"),
    "SL": ("Slough", "Berkshire"),
    "MK": ("Milton Keynes", "Buckinghamshire"),
    "LU": ("Luton", "Bedfordshire"),
    "NN": ("Northampton", "Northamptonshire"),
    "NR": ("Norwich", "Norfolk"),
    "IP": ("Ipswich", "Suffolk"),
    "CT": ("Canterbury", "Kent"),
    "ME": ("Maidstone", "Kent"),
    "DA": ("Dartford", "Kent"),
    "GU": ("Guildford", "Surrey"),
    "KT": ("Kingston upon Thames", "Surrey"),
    "WD": ("Watford", "Hertfordshire"),
    "AL": ("St Albans", "Hertfordshire"),
    "SG": ("Stevenage", "Hertfordshire"),
    "CM": ("Chelmsford", "Essex"),
    "CO": ("Colchester", "Essex"),
    "SS": ("Southend-on-Sea", "Essex"),
    "BH": ("Bournemouth", "Dorset"),
    "PL": ("Plymouth", "Devon"),
    "EX": ("Exeter", "Devon"),
    "TQ": ("Torquay", "Devon"),
    "TR": ("Truro", "Cornwall"),
    "GL": ("Gloucester", "Gloucestershire"),
    "GL5": ("Cheltenham", "Gloucestershire"),
    "WR": ("Worcester", "Worcestershire"),
    "HR": ("Hereford", "Herefordshire"),
    "SY": ("Shrewsbury", "Shropshire"),
    "TF": ("Telford", "Shropshire"),
    "ST": ("Stoke-on-Trent", "Staffordshire"),
    "PR": ("Preston", "Lancashire"),
    "FY": ("Blackpool", "Lancashire"),
    "BB": ("Blackburn", "Lancashire"),
    "LA": ("Lancaster", "Lancashire"),
    "WA": ("Warrington", "Cheshire"),
    "CH": ("Chester", "Cheshire"),
    "CW": ("Crewe", "Cheshire"),
    "CA": ("Carlisle", "Cumbria"),
    # Scotland
    "G": ("Glasgow", "Lanarkshire"),
    "ML": ("Motherwell", "Lanarkshire"),
    "EH": ("Edinburgh", "Midlothian"),
    "AB": ("Aberdeen", "Aberdeenshire"),
    "DD": ("Dundee", "Angus"),
    "PA": ("Paisley", "Renfrewshire"),
    "FK": ("Stirling", "Stirlingshire"),
    "PH": ("Perth", "Perthshire"),
    "IV": ("Inverness", "Highland"),
    "KA": ("Kilmarnock", "Ayrshire"),
    "DG": ("Dumfries", "Dumfriesshire"),
    "KY": ("Kirkcaldy", "Fife"),
    # Wales and Northern Ireland
    "CF": ("Cardiff", "South Glamorgan"),
    "SA": ("Swansea", "West Glamorgan"),
    "NP": ("Newport", "Gwent"),
    "LL": ("Wrexham", "Clwyd"),
    "LL5": ("Bangor", "Gwynedd"),
    "BT": ("Belfast", "County Antrim"),
}


def _clean(postcode: str | None) -> str:
    return re.sub(r"\s+", "", postcode or "").upper()


def get_city_and_county_from_postcode(postcode: str | None) -> Dict[str, str]:
    """Return ``{"city": ..., "county": ...}`` from the local prefix table.

    The most specific prefix wins (three characters, then two, then one).
    Unknown or too-short postcodes give empty strings.
    """
    clean = _clean(postcode)
    if len(clean) < 2:
        return {"city": "", "county": ""}

    for size in (3, 2, 1):
        match = POSTCODE_AREAS.get(clean[:size])
        if match:
            city, county = match
            return {"city": city, "county": county}
    return {"city": "", "county": ""}


def get_city_and_county_from_api(postcode: str | None) -> Dict[str, str]:
    """Ask postcodes.io, falling back to the local table on any failure."""
    clean = _clean(postcode)
    if not clean:
        return {"city": "", "county": ""}

    cache_key = f"postcode-lookup:{clean}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    try:
        resp = requests.get(f"{settings.POSTCODES_IO_URL}{clean}", timeout=settings.POSTCODE_LOOKUP_TIMEOUT)
    except requests.RequestException as exc:
        logger.warning("Postcode API lookup failed for %s: %s", clean, exc)
        return get_city_and_county_from_postcode(clean)

    if resp.status_code != 200:
        return get_city_and_county_from_postcode(clean)

    try:
        result = (resp.json() or {}).get("result") or {}
        data = {
            "city": result.get("admin_ward") or result.get("parish") or result.get("admin_district") or "",
            "county": result.get("admin_county") or result.get("admin_district") or "",
        }
    except (ValueError, AttributeError) as exc:
        logger.warning("Unexpected postcode API response for %s: %s", clean, exc)
        return get_city_and_county_from_postcode(clean)

    if not data["city"] and not data["county"]:
        return get_city_and_county_from_postcode(clean)

    cache.set(cache_key, data, timeout=settings.POSTCODE_CACHE_TIMEOUT)
    return data


def lookup_city_and_county(postcode: str | None) -> Dict[str, str]:
    if settings.POSTCODE_LOOKUP_USE_API:
        return get_city_and_county_from_api(postcode)
    return get_city_and_county_from_postcode(postcode)
