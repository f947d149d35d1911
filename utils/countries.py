"""
utils/countries.py

Purpose: Country flag lookup for broadcast headers

- Maps panel country labels (English name or ISO code) to flag emoji
- Falls back to a globe for anything unknown
"""

from typing import Dict, Optional

UNKNOWN_FLAG = "🌍"

COUNTRIES = [
    {"name": "Afghanistan", "iso2": "AF", "dial_code": "93"},
    {"name": "Algeria", "iso2": "DZ", "dial_code": "213"},
    {"name": "Argentina", "iso2": "AR", "dial_code": "54"},
    {"name": "Australia", "iso2": "AU", "dial_code": "61"},
    {"name": "Azerbaijan", "iso2": "AZ", "dial_code": "994"},
    {"name": "Bahrain", "iso2": "BH", "dial_code": "973"},
    {"name": "Bangladesh", "iso2": "BD", "dial_code": "880"},
    {"name": "Benin", "iso2": "BJ", "dial_code": "229"},
    {"name": "Bolivia", "iso2": "BO", "dial_code": "591"},
    {"name": "Brazil", "iso2": "BR", "dial_code": "55"},
    {"name": "Burkina", "iso2": "BF", "dial_code": "226"},
    {"name": "Cambodia", "iso2": "KH", "dial_code": "855"},
    {"name": "Cameroon", "iso2": "CM", "dial_code": "237"},
    {"name": "Canada", "iso2": "CA", "dial_code": "1"},
    {"name": "Chile", "iso2": "CL", "dial_code": "56"},
    {"name": "China", "iso2": "CN", "dial_code": "86"},
    {"name": "Colombia", "iso2": "CO", "dial_code": "57"},
    {"name": "Egypt", "iso2": "EG", "dial_code": "20"},
    {"name": "Ethiopia", "iso2": "ET", "dial_code": "251"},
    {"name": "France", "iso2": "FR", "dial_code": "33"},
    {"name": "Germany", "iso2": "DE", "dial_code": "49"},
    {"name": "Ghana", "iso2": "GH", "dial_code": "233"},
    {"name": "Guinea", "iso2": "GN", "dial_code": "224"},
    {"name": "India", "iso2": "IN", "dial_code": "91"},
    {"name": "Indonesia", "iso2": "ID", "dial_code": "62"},
    {"name": "Iran", "iso2": "IR", "dial_code": "98"},
    {"name": "Iraq", "iso2": "IQ", "dial_code": "964"},
    {"name": "Italy", "iso2": "IT", "dial_code": "39"},
    {"name": "Ivory", "iso2": "CI", "dial_code": "225"},
    {"name": "Japan", "iso2": "JP", "dial_code": "81"},
    {"name": "Jordan", "iso2": "JO", "dial_code": "962"},
    {"name": "Kazakhstan", "iso2": "KZ", "dial_code": "7"},
    {"name": "Kenya", "iso2": "KE", "dial_code": "254"},
    {"name": "Kuwait", "iso2": "KW", "dial_code": "965"},
    {"name": "Kyrgyzstan", "iso2": "KG", "dial_code": "996"},
    {"name": "Laos", "iso2": "LA", "dial_code": "856"},
    {"name": "Lebanon", "iso2": "LB", "dial_code": "961"},
    {"name": "Libya", "iso2": "LY", "dial_code": "218"},
    {"name": "Madagascar", "iso2": "MG", "dial_code": "261"},
    {"name": "Malaysia", "iso2": "MY", "dial_code": "60"},
    {"name": "Mali", "iso2": "ML", "dial_code": "223"},
    {"name": "Mexico", "iso2": "MX", "dial_code": "52"},
    {"name": "Morocco", "iso2": "MA", "dial_code": "212"},
    {"name": "Mozambique", "iso2": "MZ", "dial_code": "258"},
    {"name": "Myanmar", "iso2": "MM", "dial_code": "95"},
    {"name": "Nepal", "iso2": "NP", "dial_code": "977"},
    {"name": "Nigeria", "iso2": "NG", "dial_code": "234"},
    {"name": "Oman", "iso2": "OM", "dial_code": "968"},
    {"name": "Pakistan", "iso2": "PK", "dial_code": "92"},
    {"name": "Peru", "iso2": "PE", "dial_code": "51"},
    {"name": "Philippines", "iso2": "PH", "dial_code": "63"},
    {"name": "Qatar", "iso2": "QA", "dial_code": "974"},
    {"name": "Russia", "iso2": "RU", "dial_code": "7"},
    {"name": "Saudi", "iso2": "SA", "dial_code": "966"},
    {"name": "Senegal", "iso2": "SN", "dial_code": "221"},
    {"name": "Singapore", "iso2": "SG", "dial_code": "65"},
    {"name": "Spain", "iso2": "ES", "dial_code": "34"},
    {"name": "Sudan", "iso2": "SD", "dial_code": "249"},
    {"name": "Syria", "iso2": "SY", "dial_code": "963"},
    {"name": "Tajikistan", "iso2": "TJ", "dial_code": "992"},
    {"name": "Tanzania", "iso2": "TZ", "dial_code": "255"},
    {"name": "Thailand", "iso2": "TH", "dial_code": "66"},
    {"name": "Togo", "iso2": "TG", "dial_code": "228"},
    {"name": "Tunisia", "iso2": "TN", "dial_code": "216"},
    {"name": "Turkey", "iso2": "TR", "dial_code": "90"},
    {"name": "Uganda", "iso2": "UG", "dial_code": "256"},
    {"name": "Ukraine", "iso2": "UA", "dial_code": "380"},
    {"name": "UAE", "iso2": "AE", "dial_code": "971"},
    {"name": "UK", "iso2": "GB", "dial_code": "44"},
    {"name": "USA", "iso2": "US", "dial_code": "1"},
    {"name": "Uzbekistan", "iso2": "UZ", "dial_code": "998"},
    {"name": "Venezuela", "iso2": "VE", "dial_code": "58"},
    {"name": "Vietnam", "iso2": "VN", "dial_code": "84"},
    {"name": "Yemen", "iso2": "YE", "dial_code": "967"},
    {"name": "Zambia", "iso2": "ZM", "dial_code": "260"},
    {"name": "Zimbabwe", "iso2": "ZW", "dial_code": "263"},
]

_BY_NAME: Dict[str, dict] = {c["name"].lower(): c for c in COUNTRIES}
_BY_ISO2: Dict[str, dict] = {c["iso2"]: c for c in COUNTRIES}


def iso2_to_flag(iso2: str) -> str:
    """Builds the flag emoji from regional indicator symbols."""
    iso2 = iso2.upper()
    if len(iso2) != 2 or not iso2.isascii() or not iso2.isalpha():
        return UNKNOWN_FLAG
    return "".join(chr(0x1F1E6 + ord(ch) - ord("A")) for ch in iso2)


def find_country(name: str) -> Optional[dict]:
    if not name:
        return None
    key = name.strip()
    return _BY_NAME.get(key.lower()) or _BY_ISO2.get(key.upper())


def get_country_with_flag(name: str) -> str:
    """
    Returns the flag emoji for a cleaned country label.

    Args:
        name: Country label such as "Pakistan" or "PK"

    Returns:
        Flag emoji, or a globe when the country is unknown
    """
    country = find_country(name)
    if not country:
        return UNKNOWN_FLAG
    return iso2_to_flag(country["iso2"])
