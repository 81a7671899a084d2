"""Type definitions for hCaptcha verification."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from .exceptions import ConfigurationError

VERIFY_URL = "https://hcaptcha.com/siteverify"
CLIENT_API = "https://hcaptcha.com/1/api.js"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def parse_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


@dataclass(frozen=True)
class HCaptchaOptions:
    """Options for hCaptcha verification.

    Secret key, site key and the enabled flag are passed to ``HCaptcha``
    directly; everything tunable about the verification policy lives here.
    """

    score_verification_enabled: bool = False  # require and check risk score
    score_threshold: float = 0.7  # scores strictly above this are rejected
    cache_ttl: float = 120.0  # seconds a siteverify result is reused
    timeout: float = 5.0  # siteverify request timeout in seconds
    verify_url: str = VERIFY_URL
    hostname: str = "unknown"  # hostname reported by locally built results

    def __post_init__(self) -> None:
        if self.cache_ttl < 0:
            raise ConfigurationError("cache_ttl must not be negative")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, Any], prefix: str = "HCAPTCHA_"
    ) -> "HCaptchaOptions":
        """
        Build options from a flat configuration mapping.

        Keys are the upper-cased field names behind ``prefix``, e.g.
        ``HCAPTCHA_SCORE_THRESHOLD``. Missing or blank keys keep their defaults.

        Args:
            mapping: Framework config, ``os.environ`` or any other mapping
            prefix: Key prefix (default: ``HCAPTCHA_``)

        Returns:
            HCaptchaOptions instance

        Raises:
            ConfigurationError: If a value cannot be coerced
        """
        kwargs: dict = {}

        def lookup(name: str) -> Any:
            value = mapping.get(f"{prefix}{name.upper()}")
            # blank entries such as `HCAPTCHA_TIMEOUT=` in an env file mean unset
            if isinstance(value, str) and not value.strip():
                return None
            return value

        value = lookup("score_verification_enabled")
        if value is not None:
            kwargs["score_verification_enabled"] = parse_bool(
                "score_verification_enabled", value
            )
        for name in ("score_threshold", "cache_ttl", "timeout"):
            value = lookup(name)
            if value is not None:
                kwargs[name] = parse_float(name, value)
        for name in ("verify_url", "hostname"):
            value = lookup(name)
            if value:
                kwargs[name] = str(value)

        return cls(**kwargs)


@dataclass(frozen=True)
class VerificationResult:
    """Result of a siteverify call, or one synthesized locally."""

    success: bool
    challenge_ts: Optional[str] = None
    hostname: Optional[str] = None
    score: Optional[float] = None  # enterprise only
    score_reason: tuple = ()  # enterprise only
    error_codes: frozenset = frozenset()
    credit: Optional[bool] = None
    raw: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), compare=False, repr=False
    )

    @property
    def has_score(self) -> bool:
        return self.score is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VerificationResult":
        """
        Parse a decoded siteverify JSON body.

        ``success`` is only true when the service sent the JSON literal
        ``true``; anything else counts as a failure.
        """
        score = data.get("score")
        error_codes = data.get("error-codes") or ()
        if isinstance(error_codes, str):
            error_codes = (error_codes,)
        return cls(
            success=data.get("success") is True,
            challenge_ts=data.get("challenge_ts"),
            hostname=data.get("hostname"),
            score=float(score) if score is not None else None,
            score_reason=tuple(data.get("score_reason") or ()),
            error_codes=frozenset(error_codes),
            credit=data.get("credit"),
            raw=MappingProxyType(dict(data)),
        )

    @classmethod
    def local(
        cls,
        success: bool,
        hostname: str = "unknown",
        error_codes: Iterable[str] = (),
    ) -> "VerificationResult":
        """Synthesize a result without contacting the service."""
        challenge_ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        data: dict = {
            "success": success,
            "challenge_ts": challenge_ts,
            "hostname": hostname,
        }
        codes = list(error_codes)
        if codes:
            data["error-codes"] = codes
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        """Return the result in siteverify wire shape."""
        data: dict = {
            "success": self.success,
            "challenge_ts": self.challenge_ts,
            "hostname": self.hostname,
        }
        if self.score is not None:
            data["score"] = self.score
        if self.score_reason:
            data["score_reason"] = list(self.score_reason)
        if self.error_codes:
            data["error-codes"] = sorted(self.error_codes)
        if self.credit is not None:
            data["credit"] = self.credit
        return data


@dataclass(frozen=True)
class CacheEntry:
    """A cached siteverify result and the instant it was stored."""

    token: str
    result: VerificationResult
    timestamp: float
