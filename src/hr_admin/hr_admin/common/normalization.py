"""Normalization helpers shared by the domain services."""

from __future__ import annotations

import re
from typing import Any, Optional

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_COUNTRY_TOKEN = re.compile(r"(?:^|[^A-Z])([A-Z]{2})(?=[^A-Z]|$)")

# ISO 3166-1 alpha-2
VALID_COUNTRY_CODES = frozenset(
    """
    AF AL DZ AS AD AO AI AQ AG AR AM AW AU AT AZ BS BH BD BB BY BE BZ BJ BM BT BO BQ BA BW BV
    BR IO BN BG BF BI CV KH CM CA KY CF TD CL CN CX CC CO KM CG CD CK CR HR CU CW CY CZ CI DK
    DJ DM DO EC EG SV GQ ER EE SZ ET FK FO FJ FI FR GF PF TF GA GM GE DE GH GI GR GL GD GP GU
    GT GG GN GW GY HT HM VA HN HK HU IS IN ID IR IQ IE IM IL IT JM JP JE JO KZ KE KI KP KR KW
    KG LA LV LB LS LR LY LI LT LU MO MG MW MY MV ML MT MH MQ MR MU YT MX FM MD MC MN ME MS MA
    MZ MM NA NR NP NL NC NZ NI NE NG NU NF MK MP NO OM PK PW PS PA PG PY PE PH PN PL PT PR QA
    RO RU RW RE BL SH KN LC MF PM VC WS SM ST SA SN RS SC SL SG SX SK SI SB SO ZA GS SS ES LK
    SD SR SJ SE CH SY TW TJ TZ TH TL TG TK TO TT TN TM TC TV TR UG UA AE GB US UM UY UZ VU VE
    VN VG VI WF EH YE ZM ZW AX
    """.split()
)


def normalize_company_id(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip().upper() or None


def normalize_identifier(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def identifiers_match(a: Any, b: Any) -> bool:
    left = normalize_identifier(a)
    right = normalize_identifier(b)
    return (left.lower() if left else None) == (right.lower() if right else None)


def sanitize_identifier(value: str) -> str:
    return _NON_ALNUM.sub("", value or "").upper()


def normalize_cost_center_code(value: Any) -> Optional[str]:
    return normalize_company_id(value)


def is_inactive_status(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() == "inactive"


def is_valid_country_code(value: Any) -> bool:
    return isinstance(value, str) and len(value) == 2 and value in VALID_COUNTRY_CODES


def derive_country_code_from_company_id(company_id: Any) -> Optional[str]:
    """First standalone two-letter token of the company id, if it is an ISO country code."""
    normalized = normalize_company_id(company_id)
    if not normalized:
        return None
    match = _COUNTRY_TOKEN.search(normalized)
    if not match:
        return None
    candidate = match.group(1)
    return candidate if candidate in VALID_COUNTRY_CODES else None


def split_csv(value: Any) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in str(value).split(",") if part.strip()]
