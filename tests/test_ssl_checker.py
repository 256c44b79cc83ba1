"""Tests for the TLS certificate inspector."""

import ssl

import pytest

from conftest import FakeTlsInspector, make_certificate
from linkshield.core.ssl_checker import TlsHandshake


@pytest.mark.asyncio
async def test_valid_certificate(fake_tls):
    result = await fake_tls.inspect("https://example.com/login")
    assert result.is_valid
    assert result.has_valid_certificate
    assert result.certificate_issuer == "Example CA"
    assert result.certificate_subject == "example.com"
    assert result.days_until_expiration == 90
    assert result.protocol == "TLSv1.3"
    assert result.failure_kind is None
    assert result.warnings == []
    assert fake_tls.hosts == ["example.com"]


@pytest.mark.asyncio
async def test_http_url_is_not_inspected(fake_tls):
    result = await fake_tls.inspect("http://example.com")
    assert result.is_valid
    assert not result.has_valid_certificate
    assert result.warnings == ["URL uses HTTP instead of HTTPS - not encrypted"]
    assert fake_tls.hosts == []


@pytest.mark.asyncio
async def test_expiring_soon():
    inspector = FakeTlsInspector(handshake=TlsHandshake(certificate=make_certificate(days_left=10)))
    result = await inspector.inspect("https://example.com")
    assert result.is_valid
    assert result.days_until_expiration == 10
    assert "SSL certificate expires in 10 days" in result.warnings


@pytest.mark.asyncio
async def test_expired_certificate():
    inspector = FakeTlsInspector(handshake=TlsHandshake(certificate=make_certificate(days_left=-5)))
    result = await inspector.inspect("https://example.com")
    assert not result.is_valid
    assert "SSL certificate has expired" in result.errors


@pytest.mark.asyncio
async def test_self_signed_weak_and_outdated():
    inspector = FakeTlsInspector(handshake=TlsHandshake(
        certificate=make_certificate(issuer="example.com", subject="example.com"),
        protocol="TLSv1.1",
        cipher="DES-CBC3-SHA",
    ))
    result = await inspector.inspect("https://example.com")
    assert result.is_valid
    assert "SSL certificate is self-signed" in result.warnings
    assert "Outdated TLS protocol: TLSv1.1" in result.warnings
    assert "Weak cipher suite: DES-CBC3-SHA" in result.warnings


@pytest.mark.asyncio
@pytest.mark.parametrize("error, kind", [
    (ssl.SSLCertVerificationError("certificate verify failed"), "certificate_invalid"),
    (ConnectionRefusedError("refused"), "connection_refused"),
    (OSError("network unreachable"), "connection_failed"),
])
async def test_handshake_failures(error, kind):
    inspector = FakeTlsInspector(error=error)
    result = await inspector.inspect("https://example.com")
    assert not result.is_valid
    assert not result.has_valid_certificate
    assert result.failure_kind == kind
    assert len(result.errors) == 1


@pytest.mark.asyncio
async def test_handshake_timeout():
    inspector = FakeTlsInspector(delay=1, timeout=0.05)
    result = await inspector.inspect("https://example.com")
    assert not result.is_valid
    assert result.failure_kind == "timeout"
    assert result.errors == ["SSL check timed out after 0.05s"]


@pytest.mark.asyncio
@pytest.mark.parametrize("url", [
    "https://a..com/",
    "https://" + "a" * 64 + ".com/",
])
async def test_unencodable_hostname_is_a_failure(url):
    inspector = FakeTlsInspector(error=UnicodeError("label empty or too long"))
    result = await inspector.inspect(url)
    assert not result.is_valid
    assert result.failure_kind == "connection_failed"
    assert result.errors == ["SSL check failed: invalid hostname (label empty or too long)"]


@pytest.mark.asyncio
async def test_unencodable_hostname_scores_as_invalid_tls(make_orchestrator):
    orchestrator = make_orchestrator(tls_inspector=FakeTlsInspector(error=UnicodeError("label empty or too long")))
    verdict = await orchestrator.verify("https://a..com/")
    assert not verdict.checks.ssl_check.skipped
    assert not verdict.checks.ssl_check.is_valid
