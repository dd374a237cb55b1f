"""해싱 유틸리티"""
import hashlib


def hash_string(text: str) -> str:
    """
    문자열을 MD5 해시로 변환

    Args:
        text: 해시할 문자열

    Returns:
        MD5 해시 문자열
    """
    return hashlib.md5(text.encode()).hexdigest()


def seed_from_text(text: str) -> int:
    """문자열에서 결정적 PRNG 시드 생성 (프로세스 간 동일)

    내장 hash()는 PYTHONHASHSEED에 따라 달라지므로 사용하지 않습니다.
    """
    return int(hash_string(text)[:16], 16)


def generate_cache_key(fingerprint: str) -> str:
    """
    쿼리 지문으로 캐시 키 생성

    Args:
        fingerprint: ProductQuery.fingerprint()

    Returns:
        캐시 키
    """
    return f"analysis:{fingerprint}"


def generate_candidate_id(strategy: str, name: str, brand: str) -> str:
    """대체 상품 후보 ID (같은 입력이면 같은 ID)"""
    return f"{strategy}-{hash_string(f'{name.lower()}|{brand.lower()}')[:12]}"
