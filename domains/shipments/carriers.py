# domains/shipments/carriers.py
from __future__ import annotations

import re
from typing import List, Optional, Tuple

# (carrier name, pattern, 외부 조회 페이지). 위에서부터 먼저 매칭
CARRIER_PATTERNS: List[Tuple[str, str, str]] = [
    ("Amazon", r"(?i)^TBA", "https://www.amazon.com/progress-tracker/package/?itemId=&orderId=&trackingId={n}"),
    ("Orange Connex", r"^EX", "https://www.orangeconnex.com/tracking?language=en&trackingnumber={n}"),
    ("ECMS", r"^ECSDT", "https://www.ecmsglobal.com/en-us/tracking.html?orderNumber={n}"),
    ("UPS", r"^1Z", "https://www.ups.com/track?tracknum={n}&loc=en_US&requester=ST/trackdetails"),
    ("FedEx", r"^\d{12,14}$", "https://www.fedex.com/fedextrack/?trknbr={n}"),
    ("USPS", r"^(\d{20,22}|(94|92|93)\d{20})$", "https://tools.usps.com/go/TrackConfirmAction?tLabels={n}"),
    ("DHL", r"^\d{10,11}$", "https://www.dhl.com/us-en/home/tracking/tracking-express.html?submit=1&tracking-id={n}"),
]

# 번호 없이 이름만 적힌 경우("FedEx", "Local" ...) 추정용
_NAME_HINTS = ["UPS", "FEDEX", "USPS", "DHL", "ECMS", "LOCAL"]
_HINT_DISPLAY = {"FEDEX": "FedEx", "LOCAL": "Local"}


def _is_url(value: str) -> bool:
    return value.lower().startswith("http")


def _match(value: str) -> Optional[Tuple[str, str, str]]:
    for name, pattern, url in CARRIER_PATTERNS:
        if re.search(pattern, value):
            return name, pattern, url
    return None


def carrier_name(identifier: Optional[str]) -> Optional[str]:
    """운송장/URL 문자열로 캐리어 이름 추정. 모르면 입력 그대로."""
    if not identifier:
        return None
    value = identifier.strip()
    lowered = value.lower()
    if "amazon.com" in lowered or "amzn" in lowered:
        return "Amazon"
    if "fedex.com" in lowered:
        return "FedEx"
    hit = _match(value)
    if hit:
        return hit[0]
    upper = value.upper()
    for hint in _NAME_HINTS:
        if hint in upper:
            return _HINT_DISPLAY.get(hint, hint)
    return value


def tracking_url(identifier: Optional[str]) -> Optional[str]:
    """캐리어 자체 조회 페이지 URL (URL 입력이면 그대로)"""
    if not identifier:
        return None
    value = identifier.strip()
    if _is_url(value):
        return value
    hit = _match(value)
    if not hit:
        return None
    return hit[2].format(n=value)
