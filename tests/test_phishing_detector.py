"""Tests for phishing heuristics."""

import pytest

from linkshield.core.phishing_detector import (
    PhishingHeuristics,
    calculate_similarity,
    levenshtein_distance,
    split_hostname,
)


@pytest.fixture
def detector():
    return PhishingHeuristics()


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0


def test_calculate_similarity():
    assert calculate_similarity("", "") == 1.0
    assert calculate_similarity("paypal.com", "paypal.com") == 1.0
    assert calculate_similarity("abc", "xyz") == 0.0


def test_split_hostname():
    assert split_hostname("login.paypal.example.com") == ("example.com", "login.paypal")
    assert split_hostname("example.com") == ("example.com", "")


def test_clean_domain(detector):
    result = detector.detect("https://example.com/")
    assert not result.is_phishing
    assert result.suspicion_score == 0
    assert result.reasons == []


def test_legitimate_brand_domain_not_flagged(detector):
    result = detector.detect("https://www.paypal.com/")
    assert result.suspicion_score == 0


def test_typosquat_with_digit_substitution(detector):
    result = detector.detect("http://paypa1-secure-login.tk/account/verify")
    assert result.is_phishing
    assert result.suspicion_score == 95
    assert result.domain == "paypa1-secure-login.tk"
    assert any("character substitution: paypal" in r for r in result.reasons)
    assert "Uses suspicious TLD: .tk" in result.reasons
    assert "Domain contains numbers along with sensitive keywords" in result.warnings


def test_brand_lookalike_by_similarity(detector):
    result = detector.detect("https://paypall.com/")
    assert any("closely resembles legitimate brand: paypal" in r for r in result.reasons)
    assert result.suspicion_score == 35


def test_brand_in_subdomain(detector):
    result = detector.detect("https://paypal.evil-host.com/")
    assert "Legitimate brand name in subdomain: paypal" in result.reasons
    assert result.suspicion_score == 40


def test_punycode_homograph(detector):
    result = detector.detect("https://xn--pypal-4ve.com/")
    assert "Domain contains punycode-encoded characters (possible homograph attack)" in result.reasons


def test_ip_host_and_at_symbol(detector):
    result = detector.detect("http://user@203.0.113.9/")
    assert "Uses IP address instead of domain name" in result.reasons
    assert "Contains @ symbol (possible credential injection)" in result.reasons
    assert result.suspicion_score == 65
    assert result.is_phishing


def test_single_keyword_is_a_warning(detector):
    result = detector.detect("https://example.com/invoice")
    assert result.suspicion_score == 10
    assert result.warnings == ["Contains phishing keyword: invoice"]
    assert not result.is_phishing


def test_shortener(detector):
    result = detector.detect("https://bit.ly/abc123")
    assert "URL uses a URL shortener (destination unknown)" in result.warnings
    assert result.suspicion_score == 5


def test_shortener_needs_label_boundary(detector):
    result = detector.detect("https://microsoft.com/")
    assert "URL uses a URL shortener (destination unknown)" not in result.warnings


def test_score_is_clamped(detector):
    result = detector.detect(
        "http://user@secure-login-verify-account.paypal.apple.amazon.tk/confirm/update/banking"
    )
    assert result.suspicion_score == 100
    assert result.is_phishing


def test_unparseable_url(detector):
    result = detector.detect("::::")
    assert result.suspicion_score == 0
    assert result.reasons == ["Invalid URL format"]
