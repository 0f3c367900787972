"""
Country code normalization.

The payment gateway only accepts ISO 3166-1 alpha-2 codes in billing
addresses, while our forms collect whatever the customer types (ISO-3 codes,
full names, common aliases). Everything is funnelled through
`normalize_country_code` before it reaches the gateway.

Unknown values are never rejected here: they are logged and passed through
upper-cased, and the gateway gets the final say.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict

logger = logging.getLogger(__name__)

_ISO2_RE = re.compile(r"^[A-Z]{2}$")

COUNTRY_CODE_MAP: Dict[str, str] = {
    # North America
    "USA": "US",
    "United States": "US",
    "United States of America": "US",
    "CAN": "CA",
    "Canada": "CA",
    "MEX": "MX",
    "Mexico": "MX",
    # Europe
    "GBR": "GB",
    "United Kingdom": "GB",
    "UK": "GB",
    "Great Britain": "GB",
    "FRA": "FR",
    "France": "FR",
    "DEU": "DE",
    "Germany": "DE",
    "Deutschland": "DE",
    "ITA": "IT",
    "Italy": "IT",
    "ESP": "ES",
    "Spain": "ES",
    "NLD": "NL",
    "Netherlands": "NL",
    "BEL": "BE",
    "Belgium": "BE",
    "CHE": "CH",
    "Switzerland": "CH",
    "AUT": "AT",
    "Austria": "AT",
    "SWE": "SE",
    "Sweden": "SE",
    "NOR": "NO",
    "Norway": "NO",
    "DNK": "DK",
    "Denmark": "DK",
    "FIN": "FI",
    "Finland": "FI",
    "POL": "PL",
    "Poland": "PL",
    "PRT": "PT",
    "Portugal": "PT",
    "GRC": "GR",
    "Greece": "GR",
    "IRL": "IE",
    "Ireland": "IE",
    # Asia
    "IND": "IN",
    "India": "IN",
    "CHN": "CN",
    "China": "CN",
    "JPN": "JP",
    "Japan": "JP",
    "KOR": "KR",
    "Korea": "KR",
    "South Korea": "KR",
    "Republic of Korea": "KR",
    "THA": "TH",
    "Thailand": "TH",
    "SGP": "SG",
    "Singapore": "SG",
    "MYS": "MY",
    "Malaysia": "MY",
    "IDN": "ID",
    "Indonesia": "ID",
    "PHL": "PH",
    "Philippines": "PH",
    "VNM": "VN",
    "Vietnam": "VN",
    "PAK": "PK",
    "Pakistan": "PK",
    "BGD": "BD",
    "Bangladesh": "BD",
    "LKA": "LK",
    "Sri Lanka": "LK",
    # Oceania
    "AUS": "AU",
    "Australia": "AU",
    "NZL": "NZ",
    "New Zealand": "NZ",
    # Middle East
    "ARE": "AE",
    "United Arab Emirates": "AE",
    "UAE": "AE",
    "SAU": "SA",
    "Saudi Arabia": "SA",
    "ISR": "IL",
    "Israel": "IL",
    "TUR": "TR",
    "Turkey": "TR",
    "EGY": "EG",
    "Egypt": "EG",
    "QAT": "QA",
    "Qatar": "QA",
    "KWT": "KW",
    "Kuwait": "KW",
    "OMN": "OM",
    "Oman": "OM",
    "BHR": "BH",
    "Bahrain": "BH",
    "JOR": "JO",
    "Jordan": "JO",
    "LBN": "LB",
    "Lebanon": "LB",
    # Africa
    "ZAF": "ZA",
    "South Africa": "ZA",
    "NGA": "NG",
    "Nigeria": "NG",
    "KEN": "KE",
    "Kenya": "KE",
    "GHA": "GH",
    "Ghana": "GH",
    "ETH": "ET",
    "Ethiopia": "ET",
    "TZA": "TZ",
    "Tanzania": "TZ",
    "UGA": "UG",
    "Uganda": "UG",
    "MAR": "MA",
    "Morocco": "MA",
    # South America
    "BRA": "BR",
    "Brazil": "BR",
    "ARG": "AR",
    "Argentina": "AR",
    "CHL": "CL",
    "Chile": "CL",
    "COL": "CO",
    "Colombia": "CO",
    "PER": "PE",
    "Peru": "PE",
    "VEN": "VE",
    "Venezuela": "VE",
    "ECU": "EC",
    "Ecuador": "EC",
    "BOL": "BO",
    "Bolivia": "BO",
    "PRY": "PY",
    "Paraguay": "PY",
    "URY": "UY",
    "Uruguay": "UY",
    # Central America & Caribbean
    "CRI": "CR",
    "Costa Rica": "CR",
    "PAN": "PA",
    "Panama": "PA",
    "GTM": "GT",
    "Guatemala": "GT",
    "HND": "HN",
    "Honduras": "HN",
    "NIC": "NI",
    "Nicaragua": "NI",
    "SLV": "SV",
    "El Salvador": "SV",
    "JAM": "JM",
    "Jamaica": "JM",
    "CUB": "CU",
    "Cuba": "CU",
    "DOM": "DO",
    "Dominican Republic": "DO",
    "HTI": "HT",
    "Haiti": "HT",
    "TTO": "TT",
    "Trinidad and Tobago": "TT",
}

BILLING_ADDRESS_FIELDS = ("street", "city", "state", "postalCode", "country")


def normalize_country_code(value: Any) -> str:
    """
    Return the ISO 3166-1 alpha-2 code for a free-form country value.

    Lookup order: already two letters, exact alias, upper-cased alias,
    case-insensitive scan. Anything else is returned upper-cased.
    """
    if not value or not isinstance(value, str):
        logger.warning("Invalid country code provided: %r", value)
        return ""

    trimmed = value.strip()
    upper = trimmed.upper()

    if _ISO2_RE.match(upper):
        return upper

    if trimmed in COUNTRY_CODE_MAP:
        return COUNTRY_CODE_MAP[trimmed]

    if upper in COUNTRY_CODE_MAP:
        return COUNTRY_CODE_MAP[upper]

    for key, code in COUNTRY_CODE_MAP.items():
        if key.upper() == upper:
            return code

    logger.warning("Unknown country code %r, using as-is: %r", value, upper)
    return upper


def normalize_billing_address(address: Any) -> Dict[str, str]:
    """Trim a billing address and normalize its country.

    Raises:
        ValueError: if the address is not a mapping, a required field is
            missing or blank, or the country normalizes to an empty string.
    """
    if not isinstance(address, dict):
        raise ValueError("Invalid address: address must be an object")

    missing = [
        name
        for name in BILLING_ADDRESS_FIELDS
        if not isinstance(address.get(name), str) or not address[name].strip()
    ]
    if missing:
        raise ValueError(f"Missing required billing address fields: {', '.join(missing)}")

    country = normalize_country_code(address["country"])
    if not country:
        raise ValueError(f"Invalid country code: {address['country']!r}")

    return {
        "street": address["street"].strip(),
        "city": address["city"].strip(),
        "state": address["state"].strip(),
        "postalCode": address["postalCode"].strip(),
        "country": country,
    }
