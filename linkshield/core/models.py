"""
Verification Models
Result types shared by the individual checkers and the verification pipeline
"""

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RiskLevel = Literal["safe", "low", "medium", "high", "critical"]

SslFailureKind = Literal["timeout", "certificate_invalid", "connection_refused", "connection_failed"]


class VerificationOptions(BaseModel):
    """Per-call options; an unset flag means the check runs"""
    model_config = ConfigDict(frozen=True)

    skip_cache: bool = False
    skip_dns: bool = False
    skip_ssl: bool = False
    skip_malware: bool = False
    skip_phishing: bool = False
    timeout_ms: Optional[int] = Field(default=None, gt=0)


class CheckResult(BaseModel):
    """
    Common shape of every checker result.

    errors mark a definitive negative signal, warnings a soft one.
    """
    model_config = ConfigDict(frozen=True)

    CHECK_NAME: ClassVar[str] = "Security"

    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    elapsed_ms: int = 0
    skipped: bool = False

    @classmethod
    def _neutral_fields(cls, target: str) -> Dict[str, Any]:
        return {}

    @classmethod
    def neutral(cls, target: str, reason: str = "skipped") -> "CheckResult":
        """Neutral stand-in for a check that did not run (skipped, timed out, crashed)"""
        return cls(
            **cls._neutral_fields(target),
            warnings=[f"{cls.CHECK_NAME} check {reason}"],
            skipped=True,
        )


class UrlValidationResult(CheckResult):
    CHECK_NAME: ClassVar[str] = "URL validation"

    is_valid: bool = True
    url: str = ""
    protocol: str = ""
    domain: str = ""
    hostname: str = ""
    tld: Optional[str] = None
    subdomain: Optional[str] = None

    @classmethod
    def _neutral_fields(cls, target: str) -> Dict[str, Any]:
        return {"url": target}


class MxRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    exchange: str
    priority: int


class DnsCheckResult(CheckResult):
    CHECK_NAME: ClassVar[str] = "DNS"

    is_valid: bool = True
    hostname: str = ""
    has_a_record: bool = False
    has_aaaa_record: bool = False
    has_mx_record: bool = False
    has_cname_record: bool = False
    a_records: List[str] = Field(default_factory=list)
    aaaa_records: List[str] = Field(default_factory=list)
    mx_records: List[MxRecord] = Field(default_factory=list)
    cname_records: List[str] = Field(default_factory=list)

    @classmethod
    def _neutral_fields(cls, target: str) -> Dict[str, Any]:
        return {"hostname": target}


class SslCheckResult(CheckResult):
    CHECK_NAME: ClassVar[str] = "SSL"

    is_valid: bool = True
    url: str = ""
    has_valid_certificate: bool = False
    certificate_issuer: Optional[str] = None
    certificate_subject: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    days_until_expiration: Optional[int] = None
    protocol: Optional[str] = None
    cipher: Optional[str] = None
    failure_kind: Optional[SslFailureKind] = None

    @classmethod
    def _neutral_fields(cls, target: str) -> Dict[str, Any]:
        return {"url": target}


class PhishingCheckResult(CheckResult):
    CHECK_NAME: ClassVar[str] = "Phishing"

    is_phishing: bool = False
    suspicion_score: int = Field(default=0, ge=0, le=100)
    url: str = ""
    domain: str = ""
    reasons: List[str] = Field(default_factory=list)

    @classmethod
    def _neutral_fields(cls, target: str) -> Dict[str, Any]:
        return {"url": target}


class ThreatMatch(BaseModel):
    """A positive match from a threat-intelligence source"""
    model_config = ConfigDict(frozen=True)

    threat_type: str
    description: str
    source: str


class MalwareCheckResult(CheckResult):
    CHECK_NAME: ClassVar[str] = "Malware"

    is_safe: bool = True
    url: str = ""
    threats: List[ThreatMatch] = Field(default_factory=list)
    checked_by: List[str] = Field(default_factory=list)

    @classmethod
    def _neutral_fields(cls, target: str) -> Dict[str, Any]:
        return {"url": target}


class SuspiciousPatternResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    suspicious: bool
    patterns: List[str] = Field(default_factory=list)


class VerificationChecks(BaseModel):
    model_config = ConfigDict(frozen=True)

    url_validation: UrlValidationResult
    dns_check: DnsCheckResult
    ssl_check: SslCheckResult
    phishing_check: PhishingCheckResult
    malware_check: MalwareCheckResult

    def all_results(self) -> List[CheckResult]:
        return [
            self.url_validation,
            self.dns_check,
            self.ssl_check,
            self.phishing_check,
            self.malware_check,
        ]


class VerificationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_errors: int
    total_warnings: int
    critical_issues: List[str]
    recommendations: List[str]


class VerificationMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    verified_at: datetime
    total_check_time_ms: int
    cached: bool = False


class VerificationVerdict(BaseModel):
    """Complete output of one verification pass over a URL"""
    model_config = ConfigDict(frozen=True)

    url: str
    is_verified: bool
    overall_risk: RiskLevel
    risk_score: int = Field(ge=0, le=100)
    checks: VerificationChecks
    summary: VerificationSummary
    metadata: VerificationMetadata

    def as_cached(self) -> "VerificationVerdict":
        """Deep copy of this verdict flagged as served from cache"""
        return self.model_copy(
            update={"metadata": self.metadata.model_copy(update={"cached": True})},
            deep=True,
        )
