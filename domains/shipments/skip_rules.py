# domains/shipments/skip_rules.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

from django.conf import settings

# 애그리게이터 대신 자체 조회 페이지를 쓰는 캐리어 (Amazon Logistics: TBA...)
DEFAULT_EXCLUDED_PATTERNS: Tuple[str, ...] = (r"(?i)^TBA",)
DEFAULT_URL_PREFIXES: Tuple[str, ...] = ("http",)

_LETTERS_ONLY = re.compile(r"^[A-Za-z\s]+$")
# scheme:// 로 시작하면 전부 URL (ftp://, s3:// 등)
_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


@dataclass(frozen=True)
class SkipRules:
    url_prefixes: Tuple[str, ...] = DEFAULT_URL_PREFIXES
    excluded_patterns: Tuple[str, ...] = DEFAULT_EXCLUDED_PATTERNS
    # "FedEx", "Local" 처럼 번호 없이 이름만 적힌 경우
    skip_letters_only: bool = True
    _compiled: Tuple[re.Pattern, ...] = field(init=False, repr=False, compare=False, default=())

    def __post_init__(self):
        object.__setattr__(self, "_compiled", tuple(re.compile(p) for p in self.excluded_patterns))

    def extended(self, patterns: Iterable[str]) -> "SkipRules":
        extra = tuple(p for p in patterns if p and p not in self.excluded_patterns)
        return SkipRules(
            url_prefixes=self.url_prefixes,
            excluded_patterns=self.excluded_patterns + extra,
            skip_letters_only=self.skip_letters_only,
        )

    def looks_like_url(self, value: str) -> bool:
        if _URL_SCHEME.match(value):
            return True
        lowered = value.lower()
        return any(lowered.startswith(p.lower()) for p in self.url_prefixes)

    def is_excluded_carrier(self, value: str) -> bool:
        return any(p.search(value) for p in self._compiled)


def rules_from_settings() -> SkipRules:
    extra = getattr(settings, "SHIPMENTS_SKIP_PATTERNS", None) or ()
    return SkipRules().extended(extra)


def should_skip(identifier: Optional[str], rules: Optional[SkipRules] = None) -> bool:
    """
    애그리게이터로 보내면 안 되는 식별자인지 판단 (순수 함수, I/O 없음)
    - 빈 값 / URL / 제외 캐리어 / 문자만 있는 텍스트
    """
    rules = rules or SkipRules()
    value = (identifier or "").strip()
    if not value:
        return True
    if rules.looks_like_url(value):
        return True
    if rules.is_excluded_carrier(value):
        return True
    if rules.skip_letters_only and _LETTERS_ONLY.match(value):
        return True
    return False
