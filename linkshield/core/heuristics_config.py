"""
Heuristics Configuration
Static brand, keyword and TLD lists plus scoring weights, loaded once from JSON
so they can be updated without touching the checkers.
"""

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

# Bundled heuristics file (package data)
DEFAULT_HEURISTICS_PATH = Path(__file__).parent.parent / "data" / "heuristics.json"


@dataclass(frozen=True)
class ScoringWeights:
    """Weights used by the verification pipeline risk score"""
    url_invalid: float = 25
    dns_invalid: float = 20
    ssl_invalid: float = 15
    phishing_scale: float = 0.30
    malware_unsafe: float = 30
    warning_cap: int = 10


@dataclass(frozen=True)
class HeuristicsConfig:
    """Lists and thresholds shared by the URL validator and phishing detector"""
    url_suspicious_keywords: List[str] = field(default_factory=list)
    brands: List[str] = field(default_factory=list)
    phishing_keywords: List[str] = field(default_factory=list)
    suspicious_tlds: List[str] = field(default_factory=list)
    url_shorteners: List[str] = field(default_factory=list)
    digit_substitutions: Dict[str, str] = field(default_factory=dict)
    brand_similarity_threshold: float = 0.7
    phishing_threshold: int = 50
    scoring: ScoringWeights = field(default_factory=ScoringWeights)

    @classmethod
    def from_dict(cls, data: dict) -> "HeuristicsConfig":
        """Build config from parsed JSON, lowercasing every list entry"""
        def _lower(key: str) -> List[str]:
            return [str(item).lower() for item in data.get(key, [])]

        return cls(
            url_suspicious_keywords=_lower("url_suspicious_keywords"),
            brands=_lower("brands"),
            phishing_keywords=_lower("phishing_keywords"),
            # Accept both "tk" and ".tk"
            suspicious_tlds=[tld.lstrip(".") for tld in _lower("suspicious_tlds")],
            url_shorteners=_lower("url_shorteners"),
            digit_substitutions={str(k): str(v).lower() for k, v in data.get("digit_substitutions", {}).items()},
            brand_similarity_threshold=float(data.get("brand_similarity_threshold", 0.7)),
            phishing_threshold=int(data.get("phishing_threshold", 50)),
            scoring=ScoringWeights(**data.get("scoring", {})),
        )


def load_heuristics_config(path: Optional[str] = None) -> HeuristicsConfig:
    """
    Load heuristics configuration from a JSON file.

    Falls back to the bundled file when no path is given.
    Raises OSError / json.JSONDecodeError if the file is missing or malformed.
    """
    config_path = Path(path) if path else DEFAULT_HEURISTICS_PATH
    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    logger.info(f"Loaded heuristics config from {config_path}")
    return HeuristicsConfig.from_dict(data)


@lru_cache(maxsize=1)
def get_heuristics_config() -> HeuristicsConfig:
    """Get process-wide heuristics config (loaded once at first use)"""
    from linkshield.core.config import settings
    return load_heuristics_config(settings.HEURISTICS_FILE)
