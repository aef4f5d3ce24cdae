"""Streaming platform detection and ID extraction.

Hey future me - this is pure string work, no network! The upstream service accepts
the raw URL, so detection is only used for validation, metrics labels and for the
diagnostics attached to failed batch items.

ORDER MATTERS in _PLATFORM_PATTERNS: youtubeMusic before youtube, googleStore before
google, amazonMusic before amazonStore, appleMusic before itunes. The first match wins.

Usage:
    from odesli.domain.value_objects.platforms import detect_platform, extract_id

    detect_platform("https://open.spotify.com/track/4Km5HrUvYTaSUfiSGPJeQR")  # "spotify"
    extract_id("https://music.apple.com/us/album/x/1493120897?i=1493120900")  # "1493120900"
"""

import re
from enum import Enum


class EntityType(str, Enum):
    """Entity types the upstream service resolves."""

    SONG = "song"
    ALBUM = "album"


SUPPORTED_PLATFORMS: tuple[str, ...] = (
    "spotify",
    "itunes",
    "appleMusic",
    "youtube",
    "youtubeMusic",
    "google",
    "googleStore",
    "pandora",
    "deezer",
    "tidal",
    "amazonStore",
    "amazonMusic",
    "soundcloud",
    "napster",
    "yandex",
    "spinrilla",
)

# ISO 3166-1 alpha-2 codes accepted as `userCountry`, with English short names.
COUNTRY_NAMES: dict[str, str] = {
    "AF": "Afghanistan",
    "AX": "Åland Islands",
    "AL": "Albania",
    "DZ": "Algeria",
    "AS": "American Samoa",
    "AD": "Andorra",
    "AO": "Angola",
    "AI": "Anguilla",
    "AQ": "Antarctica",
    "AG": "Antigua and Barbuda",
    "AR": "Argentina",
    "AM": "Armenia",
    "AW": "Aruba",
    "AU": "Australia",
    "AT": "Austria",
    "AZ": "Azerbaijan",
    "BS": "Bahamas",
    "BH": "Bahrain",
    "BD": "Bangladesh",
    "BB": "Barbados",
    "BY": "Belarus",
    "BE": "Belgium",
    "BZ": "Belize",
    "BJ": "Benin",
    "BM": "Bermuda",
    "BT": "Bhutan",
    "BO": "Bolivia",
    "BQ": "Bonaire, Sint Eustatius and Saba",
    "BA": "Bosnia and Herzegovina",
    "BW": "Botswana",
    "BV": "Bouvet Island",
    "BR": "Brazil",
    "IO": "British Indian Ocean Territory",
    "BN": "Brunei Darussalam",
    "BG": "Bulgaria",
    "BF": "Burkina Faso",
    "BI": "Burundi",
    "KH": "Cambodia",
    "CM": "Cameroon",
    "CA": "Canada",
    "CV": "Cabo Verde",
    "KY": "Cayman Islands",
    "CF": "Central African Republic",
    "TD": "Chad",
    "CL": "Chile",
    "CN": "China",
    "CX": "Christmas Island",
    "CC": "Cocos (Keeling) Islands",
    "CO": "Colombia",
    "KM": "Comoros",
    "CG": "Congo",
    "CD": "Congo, Democratic Republic of the",
    "CK": "Cook Islands",
    "CR": "Costa Rica",
    "CI": "Côte d'Ivoire",
    "HR": "Croatia",
    "CU": "Cuba",
    "CW": "Curaçao",
    "CY": "Cyprus",
    "CZ": "Czechia",
    "DK": "Denmark",
    "DJ": "Djibouti",
    "DM": "Dominica",
    "DO": "Dominican Republic",
    "EC": "Ecuador",
    "EG": "Egypt",
    "SV": "El Salvador",
    "GQ": "Equatorial Guinea",
    "ER": "Eritrea",
    "EE": "Estonia",
    "ET": "Ethiopia",
    "FK": "Falkland Islands (Malvinas)",
    "FO": "Faroe Islands",
    "FJ": "Fiji",
    "FI": "Finland",
    "FR": "France",
    "GF": "French Guiana",
    "PF": "French Polynesia",
    "TF": "French Southern Territories",
    "GA": "Gabon",
    "GM": "Gambia",
    "GE": "Georgia",
    "DE": "Germany",
    "GH": "Ghana",
    "GI": "Gibraltar",
    "GR": "Greece",
    "GL": "Greenland",
    "GD": "Grenada",
    "GP": "Guadeloupe",
    "GU": "Guam",
    "GT": "Guatemala",
    "GG": "Guernsey",
    "GN": "Guinea",
    "GW": "Guinea-Bissau",
    "GY": "Guyana",
    "HT": "Haiti",
    "HM": "Heard Island and McDonald Islands",
    "VA": "Holy See",
    "HN": "Honduras",
    "HK": "Hong Kong",
    "HU": "Hungary",
    "IS": "Iceland",
    "IN": "India",
    "ID": "Indonesia",
    "IR": "Iran",
    "IQ": "Iraq",
    "IE": "Ireland",
    "IM": "Isle of Man",
    "IL": "Israel",
    "IT": "Italy",
    "JM": "Jamaica",
    "JP": "Japan",
    "JE": "Jersey",
    "JO": "Jordan",
    "KZ": "Kazakhstan",
    "KE": "Kenya",
    "KI": "Kiribati",
    "KR": "Korea, Republic of",
    "KP": "Korea, Democratic People's Republic of",
    "KW": "Kuwait",
    "KG": "Kyrgyzstan",
    "LA": "Lao People's Democratic Republic",
    "LV": "Latvia",
    "LB": "Lebanon",
    "LS": "Lesotho",
    "LR": "Liberia",
    "LY": "Libya",
    "LI": "Liechtenstein",
    "LT": "Lithuania",
    "LU": "Luxembourg",
    "MO": "Macao",
    "MK": "North Macedonia",
    "MG": "Madagascar",
    "MW": "Malawi",
    "MY": "Malaysia",
    "MV": "Maldives",
    "ML": "Mali",
    "MT": "Malta",
    "MH": "Marshall Islands",
    "MQ": "Martinique",
    "MR": "Mauritania",
    "MU": "Mauritius",
    "YT": "Mayotte",
    "MX": "Mexico",
    "FM": "Micronesia",
    "MD": "Moldova",
    "MC": "Monaco",
    "MN": "Mongolia",
    "ME": "Montenegro",
    "MS": "Montserrat",
    "MA": "Morocco",
    "MZ": "Mozambique",
    "MM": "Myanmar",
    "NA": "Namibia",
    "NR": "Nauru",
    "NP": "Nepal",
    "NL": "Netherlands",
    "NC": "New Caledonia",
    "NZ": "New Zealand",
    "NI": "Nicaragua",
    "NE": "Niger",
    "NG": "Nigeria",
    "NU": "Niue",
    "NF": "Norfolk Island",
    "MP": "Northern Mariana Islands",
    "NO": "Norway",
    "OM": "Oman",
    "PK": "Pakistan",
    "PW": "Palau",
    "PS": "Palestine, State of",
    "PA": "Panama",
    "PG": "Papua New Guinea",
    "PY": "Paraguay",
    "PE": "Peru",
    "PH": "Philippines",
    "PN": "Pitcairn",
    "PL": "Poland",
    "PT": "Portugal",
    "PR": "Puerto Rico",
    "QA": "Qatar",
    "RE": "Réunion",
    "RO": "Romania",
    "RU": "Russian Federation",
    "RW": "Rwanda",
    "BL": "Saint Barthélemy",
    "SH": "Saint Helena, Ascension and Tristan da Cunha",
    "KN": "Saint Kitts and Nevis",
    "LC": "Saint Lucia",
    "MF": "Saint Martin (French part)",
    "PM": "Saint Pierre and Miquelon",
    "VC": "Saint Vincent and the Grenadines",
    "WS": "Samoa",
    "SM": "San Marino",
    "ST": "Sao Tome and Principe",
    "SA": "Saudi Arabia",
    "SN": "Senegal",
    "RS": "Serbia",
    "SC": "Seychelles",
    "SL": "Sierra Leone",
    "SG": "Singapore",
    "SX": "Sint Maarten (Dutch part)",
    "SK": "Slovakia",
    "SI": "Slovenia",
    "SB": "Solomon Islands",
    "SO": "Somalia",
    "ZA": "South Africa",
    "GS": "South Georgia and the South Sandwich Islands",
    "SS": "South Sudan",
    "ES": "Spain",
    "LK": "Sri Lanka",
    "SD": "Sudan",
    "SR": "Suriname",
    "SJ": "Svalbard and Jan Mayen",
    "SZ": "Eswatini",
    "SE": "Sweden",
    "CH": "Switzerland",
    "SY": "Syrian Arab Republic",
    "TW": "Taiwan",
    "TJ": "Tajikistan",
    "TZ": "Tanzania",
    "TH": "Thailand",
    "TL": "Timor-Leste",
    "TG": "Togo",
    "TK": "Tokelau",
    "TO": "Tonga",
    "TT": "Trinidad and Tobago",
    "TN": "Tunisia",
    "TR": "Türkiye",
    "TM": "Turkmenistan",
    "TC": "Turks and Caicos Islands",
    "TV": "Tuvalu",
    "UG": "Uganda",
    "UA": "Ukraine",
    "AE": "United Arab Emirates",
    "GB": "United Kingdom",
    "US": "United States",
    "UM": "United States Minor Outlying Islands",
    "UY": "Uruguay",
    "UZ": "Uzbekistan",
    "VU": "Vanuatu",
    "VE": "Venezuela",
    "VN": "Viet Nam",
    "VG": "Virgin Islands (British)",
    "VI": "Virgin Islands (U.S.)",
    "WF": "Wallis and Futuna",
    "EH": "Western Sahara",
    "YE": "Yemen",
    "ZM": "Zambia",
    "ZW": "Zimbabwe",
}

COUNTRY_CODES: frozenset[str] = frozenset(COUNTRY_NAMES)

_PLATFORM_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("spotify", re.compile(r"^(?:https?://(?:open|play)\.spotify\.com/|spotify:)", re.I)),
    ("appleMusic", re.compile(r"^https?://(?:geo\.)?music\.apple\.com/", re.I)),
    ("itunes", re.compile(r"^https?://itunes\.apple\.com/", re.I)),
    ("youtubeMusic", re.compile(r"^https?://music\.youtube\.com/", re.I)),
    ("youtube", re.compile(r"^https?://(?:(?:www|m)\.)?(?:youtube\.com|youtu\.be)/", re.I)),
    ("googleStore", re.compile(r"^https?://play\.google\.com/store/music", re.I)),
    ("google", re.compile(r"^https?://play\.google\.com/music", re.I)),
    ("pandora", re.compile(r"^https?://(?:www\.)?pandora\.com/", re.I)),
    ("deezer", re.compile(r"^https?://(?:www\.)?deezer\.(?:com|page\.link)/", re.I)),
    ("tidal", re.compile(r"^https?://(?:www\.|listen\.)?tidal\.com/", re.I)),
    ("amazonMusic", re.compile(r"^https?://music\.amazon\.[a-z.]+/", re.I)),
    ("amazonStore", re.compile(r"^https?://(?:www\.)?amazon\.[a-z.]+/", re.I)),
    ("soundcloud", re.compile(r"^https?://(?:www\.|m\.)?soundcloud\.com/", re.I)),
    ("napster", re.compile(r"^https?://(?:[a-z]+\.)?napster\.com/", re.I)),
    ("yandex", re.compile(r"^https?://music\.yandex\.[a-z]+/", re.I)),
    ("spinrilla", re.compile(r"^https?://(?:www\.)?spinrilla\.com/", re.I)),
)

# Hey future me - each extractor returns the FIRST group of the first pattern that
# matches. Apple Music is special: an album URL with `?i=<track>` points at a song,
# and the upstream service wants the track id, not the album id.
_ID_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "spotify": (
        re.compile(r"spotify\.com/(?:intl-[a-z]+/)?(?:track|album)/([A-Za-z0-9]+)"),
        re.compile(r"^spotify:(?:track|album):([A-Za-z0-9]+)"),
    ),
    "appleMusic": (
        re.compile(r"[?&]i=(\d+)"),
        re.compile(r"/(?:album|song)/(?:[^/?#]+/)?(\d+)"),
    ),
    "itunes": (
        re.compile(r"[?&]i=(\d+)"),
        re.compile(r"/album/(?:[^/?#]+/)?(?:id)?(\d+)"),
    ),
    "youtubeMusic": (re.compile(r"[?&]v=([\w-]{11})"),),
    "youtube": (
        re.compile(r"[?&]v=([\w-]{11})"),
        re.compile(r"youtu\.be/([\w-]{11})"),
        re.compile(r"/(?:embed|shorts)/([\w-]{11})"),
    ),
    "googleStore": (re.compile(r"[?&]id=([A-Za-z0-9]+)"),),
    "google": (re.compile(r"/m/([A-Za-z0-9]+)"),),
    "pandora": (re.compile(r"/((?:TR|AL)[A-Za-z0-9]+)"),),
    "deezer": (re.compile(r"/(?:track|album)/(\d+)"),),
    "tidal": (re.compile(r"/(?:track|album)/(\d+)"),),
    "amazonMusic": (
        re.compile(r"[?&]trackAsin=([A-Z0-9]{10})"),
        re.compile(r"/albums/([A-Z0-9]{10})"),
    ),
    "amazonStore": (re.compile(r"/(?:dp|gp/product)/([A-Z0-9]{10})"),),
    "soundcloud": (re.compile(r"soundcloud\.com/([^?#]+?)/?(?:[?#]|$)"),),
    "napster": (re.compile(r"/(?:track|album)/([^/?#]+)"),),
    "yandex": (re.compile(r"/track/(\d+)"), re.compile(r"/album/(\d+)")),
    "spinrilla": (re.compile(r"/(?:songs|mixtapes)/([^/?#]+)"),),
}

_ENTITY_ID_PATTERN = re.compile(r"^(\w+?)_(song|album)::(\S+)$", re.I)


def detect_platform(url: str | None) -> str | None:
    """Detect which streaming platform a URL belongs to.

    Args:
        url: Any string, usually a share link

    Returns:
        Platform name from SUPPORTED_PLATFORMS, or None if unknown
    """
    if not url or not isinstance(url, str):
        return None
    candidate = url.strip()
    for platform, pattern in _PLATFORM_PATTERNS:
        if pattern.search(candidate):
            return platform
    return None


def extract_id(url: str | None) -> str | None:
    """Extract the platform-specific entity ID from a URL.

    Args:
        url: Share link from a supported platform

    Returns:
        The ID string, or None when the platform is unknown or the URL has no ID
    """
    platform = detect_platform(url)
    if platform is None or url is None:
        return None
    for pattern in _ID_PATTERNS.get(platform, ()):
        match = pattern.search(url.strip())
        if match:
            return match.group(1)
    return None


def parse_entity_id(entity_id: str) -> tuple[str, str, str] | None:
    """Split a composite entity id into (platform, type, unique id).

    "SPOTIFY_SONG::4Km5HrUvYTaSUfiSGPJeQR" -> ("spotify", "song", "4Km5HrUvYTaSUfiSGPJeQR")

    The platform part is lowercased, which is what the upstream `platform=` query
    expects for single-word platforms.

    Returns:
        Tuple of parts, or None if the string does not match the format
    """
    match = _ENTITY_ID_PATTERN.match(entity_id.strip())
    if not match:
        return None
    platform, entity_type, unique_id = match.groups()
    return platform.lower(), entity_type.lower(), unique_id


def strip_entity_prefix(entity_id: str) -> str:
    """Return the unique part of an id that may carry a `PLATFORM_TYPE::` prefix."""
    _, separator, unique = entity_id.rpartition("::")
    return unique if separator else entity_id


def is_valid_country(country: str) -> bool:
    """Check a country against the ISO 3166-1 alpha-2 table."""
    return isinstance(country, str) and country in COUNTRY_CODES


__all__ = [
    "COUNTRY_CODES",
    "COUNTRY_NAMES",
    "SUPPORTED_PLATFORMS",
    "EntityType",
    "detect_platform",
    "extract_id",
    "is_valid_country",
    "parse_entity_id",
    "strip_entity_prefix",
]
