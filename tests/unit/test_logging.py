"""로깅 설정/sanitize 테스트"""

import logging

import pytest

from ecosnap.core.logging import sanitize_for_log, setup_logging


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("https://api/x?q=milk&key=abc", "https://api/x?q=milk&key=***"),
        ("https://api/x?api_key=abc123&page=2", "https://api/x?api_key=***&page=2"),
        ("Authorization: Bearer abc.def", "Authorization: Bearer ***"),
        ('{"token": "t0k"}', '{"token": "***"}'),
        ("password=hunter2", "password=***"),
    ],
)
def test_masks_only_secret_values(raw, expected):
    assert sanitize_for_log(raw) == expected


def test_product_names_with_secret_words_are_kept():
    assert sanitize_for_log("Secret Deodorant") == "Secret Deodorant"
    assert sanitize_for_log("Token Bar Chocolate") == "Token Bar Chocolate"


def test_truncates_and_handles_empty():
    assert sanitize_for_log("") == "[empty]"
    assert sanitize_for_log("a" * 150, max_length=10) == "a" * 10 + "..."
    assert sanitize_for_log("Organic Oat Milk") == "Organic Oat Milk"


def test_setup_logging_is_idempotent():
    first = setup_logging("INFO", production=False)
    handlers = list(first.handlers)

    second = setup_logging("DEBUG", production=True)

    assert first is second
    assert second.handlers == handlers
    # production에서는 DEBUG가 INFO로 올라감
    assert second.level == logging.INFO
    assert logging.getLogger("curl_cffi").level == logging.WARNING
