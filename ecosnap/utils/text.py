"""Text helpers (이름 정규화, 바코드 판별, 키워드/유사도 매칭)."""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable

from rapidfuzz import fuzz, utils


_BARCODE_RE = re.compile(r"^\d{8,14}$")
_WS_RE = re.compile(r"\s+")
# 괄호 안 부가 정보: "Oat Milk (1L)" -> "Oat Milk"
_BRACKET_RE = re.compile(r"[\(\[\{][^\)\]\}]*[\)\]\}]")
_PUNCT_RE = re.compile(r"[^\w\s&'\-]")


def is_barcode(value: str) -> bool:
    """8~14자리 숫자(UPC/EAN/GTIN)인지 여부"""
    return bool(value) and bool(_BARCODE_RE.match(value))


def normalize_name(text: str) -> str:
    """
    상품명/브랜드 정규화

    예시:
    - "  Organic  Oat Milk (1L) " -> "organic oat milk"
    - "Ben & Jerry's" -> "ben & jerry's"

    Args:
        text: 원본 문자열

    Returns:
        소문자, 공백 정리된 문자열 (빈 입력이면 "")
    """
    if not text:
        return ""
    t = unicodedata.normalize("NFKC", text)
    t = _BRACKET_RE.sub(" ", t)
    t = _PUNCT_RE.sub(" ", t)
    t = _WS_RE.sub(" ", t).strip().lower()
    return t


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    """소문자 text에 keywords 중 하나라도 포함되는지"""
    lowered = (text or "").lower()
    return any(k.lower() in lowered for k in keywords if k)


def significant_words(text: str, min_length: int = 3, limit: int = 3) -> list[str]:
    """검색어 조합용 의미 있는 단어 추출 (짧은 단어/숫자 제외)"""
    words = [w for w in normalize_name(text).split() if len(w) >= min_length and not w.isdigit()]
    out: list[str] = []
    for w in words:
        if w not in out:
            out.append(w)
        if len(out) >= limit:
            break
    return out


def fuzzy_score(query: str, candidate: str) -> float:
    """유사도 점수 (0~100) - rapidfuzz WRatio"""
    if not query or not candidate:
        return 0.0
    return float(fuzz.WRatio(query, candidate, processor=utils.default_process))


def fold_name(text: str) -> str:
    """공백 정리 + casefold 비교 키 (괄호/구두점은 그대로 유지)

    예시: "  Oat  Milk (1L) " -> "oat milk (1l)"
    """
    return " ".join((text or "").split()).casefold()


def same_name(a: str, b: str) -> bool:
    """공백/대소문자만 다른 같은 이름인지"""
    return bool(a) and fold_name(a) == fold_name(b)
