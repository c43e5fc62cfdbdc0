from __future__ import annotations

from common.utils import normalize_whitespace

REGION_PREFIX_NAMES: dict[str, str] = {
    "11": "서울특별시",
    "26": "부산광역시",
    "27": "대구광역시",
    "28": "인천광역시",
    "29": "광주광역시",
    "30": "대전광역시",
    "31": "울산광역시",
    "36": "세종특별자치시",
    "41": "경기도",
    "42": "강원특별자치도",
    "43": "충청북도",
    "44": "충청남도",
    "45": "전북특별자치도",
    "46": "전라남도",
    "47": "경상북도",
    "48": "경상남도",
    "50": "제주특별자치도",
}

# Short and legacy spellings users type for each province.
REGION_ALIASES: dict[str, str] = {
    "서울": "11",
    "부산": "26",
    "대구": "27",
    "인천": "28",
    "광주": "29",
    "대전": "30",
    "울산": "31",
    "세종": "36",
    "경기": "41",
    "강원": "42",
    "충북": "43",
    "충청북": "43",
    "충남": "44",
    "충청남": "44",
    "전북": "45",
    "전라북": "45",
    "전남": "46",
    "전라남": "46",
    "경북": "47",
    "경상북": "47",
    "경남": "48",
    "경상남": "48",
    "제주": "50",
}

SEOUL_DISTRICTS = (
    "강남구",
    "강동구",
    "강북구",
    "강서구",
    "관악구",
    "광진구",
    "구로구",
    "금천구",
    "노원구",
    "도봉구",
    "동대문구",
    "동작구",
    "마포구",
    "서대문구",
    "서초구",
    "성동구",
    "성북구",
    "송파구",
    "양천구",
    "영등포구",
    "용산구",
    "은평구",
    "종로구",
    "중구",
    "중랑구",
)


def split_region_codes(region_code: str | None) -> list[str]:
    if not region_code:
        return []
    return [code.strip() for code in region_code.split(",") if code.strip()]


def region_prefix(region_code: str) -> str:
    return region_code.strip()[:2]


def region_display_name(region_code: str | None) -> str | None:
    """Map a 5-digit region code (or a comma-separated list) to a province name.

    The first code decides. Unmapped prefixes return the raw code unchanged.
    """
    codes = split_region_codes(region_code)
    if not codes:
        return None
    return REGION_PREFIX_NAMES.get(region_prefix(codes[0]), codes[0])


def region_prefix_for_name(region_name: str | None) -> str | None:
    if not region_name:
        return None
    text = normalize_whitespace(region_name).replace(" ", "")
    if not text:
        return None
    for prefix, display_name in REGION_PREFIX_NAMES.items():
        if text.startswith(display_name):
            return prefix
    for alias in sorted(REGION_ALIASES, key=len, reverse=True):
        if text.startswith(alias):
            return REGION_ALIASES[alias]
    return None


def seoul_region_from_title(title: str, default: str = "서울") -> str:
    for district in SEOUL_DISTRICTS:
        if district in title:
            return f"서울특별시 {district}"
    short_names = {district[:-1]: district for district in SEOUL_DISTRICTS if len(district) > 2}
    for short_name, district in short_names.items():
        if short_name in title:
            return f"서울특별시 {district}"
    return default
