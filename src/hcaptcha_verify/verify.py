"""Core hCaptcha response verification.

``HCaptcha`` owns everything that has to live as long as the application:
the siteverify client, the TTL cache of siteverify results, the set of
tokens already accepted by this process and the score of the last
successful verification. Create one instance at startup and share it.
"""

import logging
import threading
from typing import Any, Mapping, Optional

from .cache import ResponseCache
from .client import SiteVerifyClient
from .exceptions import ConfigurationError, ScoreFeatureUnavailableError
from .types import HCaptchaOptions, VerificationResult, parse_bool
from .widget import HCaptchaWidget

logger = logging.getLogger(__name__)

RESPONSE_FIELD = "h-captcha-response"


def _redact(token: str) -> str:
    return token[:8] + "..." if len(token) > 8 else token


class HCaptcha:
    """
    Verify hCaptcha response tokens.

    Handles:
    - Bypass mode when disabled (everything passes, nothing is sent)
    - Short-circuit for tokens this instance has already accepted, since
      siteverify only answers once per token
    - Reuse of siteverify results within ``options.cache_ttl``
    - Optional enterprise risk-score gating

    Example:
        >>> captcha = HCaptcha(secret="0x...", sitekey="10000000-...")
        >>> if captcha.verify_response(token, remote_ip="203.0.113.7"):
        ...     print(f"Passed with score {captcha.last_score}")
    """

    def __init__(
        self,
        secret: str,
        sitekey: str,
        options: Optional[HCaptchaOptions] = None,
        enabled: bool = True,
        client: Optional[SiteVerifyClient] = None,
        cache: Optional[ResponseCache] = None,
    ):
        """
        Initialize HCaptcha.

        Args:
            secret: hCaptcha secret key
            sitekey: hCaptcha site key
            options: Verification options (default: HCaptchaOptions())
            enabled: If False, every check passes without a network call
            client: Optional SiteVerifyClient (default: one built from options)
            cache: Optional ResponseCache (default: one with options.cache_ttl)
        """
        self.options = options or HCaptchaOptions()
        self.enabled = enabled
        self._secret = secret
        self._sitekey = sitekey
        self._owns_client = client is None
        self._client = client or SiteVerifyClient(
            verify_url=self.options.verify_url, timeout=self.options.timeout
        )
        self._cache = cache if cache is not None else ResponseCache(self.options.cache_ttl)
        self._lock = threading.Lock()
        self._verified_responses: set[str] = set()
        self._last_score: Optional[float] = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], prefix: str = "HCAPTCHA_") -> "HCaptcha":
        """
        Build an instance from a flat configuration mapping.

        Reads ``<prefix>SECRET_KEY``, ``<prefix>SITE_KEY`` and
        ``<prefix>ENABLED`` (default true, also when blank) on top of the keys understood by
        ``HCaptchaOptions.from_mapping``. Keys are only required when enabled.

        Raises:
            ConfigurationError: If enabled and a key is missing
        """
        options = HCaptchaOptions.from_mapping(mapping, prefix)
        enabled_value = mapping.get(f"{prefix}ENABLED")
        enabled = True
        if enabled_value is not None and str(enabled_value).strip():
            enabled = parse_bool("enabled", enabled_value)

        secret = mapping.get(f"{prefix}SECRET_KEY") or ""
        sitekey = mapping.get(f"{prefix}SITE_KEY") or ""
        if enabled and not secret:
            raise ConfigurationError(f"{prefix}SECRET_KEY is required when hCaptcha is enabled")
        if enabled and not sitekey:
            raise ConfigurationError(f"{prefix}SITE_KEY is required when hCaptcha is enabled")

        return cls(secret=secret, sitekey=sitekey, options=options, enabled=enabled)

    @property
    def sitekey(self) -> str:
        return self._sitekey

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def widget(self) -> HCaptchaWidget:
        """Widget renderer bound to this site key and enabled flag."""
        return HCaptchaWidget(self._sitekey, enabled=self.enabled)

    @property
    def last_score(self) -> Optional[float]:
        """Score of the last accepted verification, if the service sent one.

        Results rejected by the score threshold do not update it.
        """
        with self._lock:
            return self._last_score

    def get_score_from_last_verification(self) -> Optional[float]:
        return self.last_score

    def is_verified(self, token: str) -> bool:
        """Return True if this instance already accepted ``token``."""
        with self._lock:
            return token in self._verified_responses

    def verify_response(self, token: Optional[str], remote_ip: Optional[str] = None) -> bool:
        """
        Decide whether a response token is valid.

        Ordinary rejections (empty token, ``success`` not true, score over
        the threshold) return False. Only infrastructure and configuration
        faults raise.

        Args:
            token: Value of the ``h-captcha-response`` field
            remote_ip: End-user IP address, required for enterprise scores

        Returns:
            True if the token passed every check

        Raises:
            VerificationTransportError: If siteverify could not be reached or
                answered with something other than a JSON object
            ScoreFeatureUnavailableError: If score checking is enabled but
                siteverify returned no score
        """
        if not self.enabled:
            return True

        if not token:
            return False

        if self.is_verified(token):
            logger.debug("hcaptcha token %s already accepted", _redact(token))
            return True

        result = self._get_verification_result(token, remote_ip)

        if result.success is not True:
            logger.info(
                "hcaptcha token %s rejected: %s",
                _redact(token),
                ", ".join(sorted(result.error_codes)) or "no error codes",
            )
            return False

        if self.options.score_verification_enabled:
            if result.score is None:
                raise ScoreFeatureUnavailableError(
                    "Score verification is an hCaptcha Enterprise feature. "
                    "Make sure remoteip is sent with the request."
                )
            if result.score > self.options.score_threshold:
                logger.info(
                    "hcaptcha token %s rejected: score %.2f above threshold %.2f",
                    _redact(token),
                    result.score,
                    self.options.score_threshold,
                )
                return False

        self._accept(token, result)
        return True

    def get_response_details(
        self, token: Optional[str], remote_ip: Optional[str] = None
    ) -> VerificationResult:
        """
        Return the full siteverify result for a token.

        Unlike ``verify_response`` this never consults the accepted-token set,
        so repeated calls inside the cache TTL are answered from the cache.
        The site key is sent along so siteverify can check the token was
        issued for it.

        Raises:
            VerificationTransportError: If siteverify could not be reached
        """
        if not self.enabled:
            return VerificationResult.local(True, hostname=self.options.hostname)

        if not token:
            return VerificationResult.local(
                False,
                hostname=self.options.hostname,
                error_codes=["missing-input-response"],
            )

        result = self._get_verification_result(token, remote_ip, include_sitekey=True)

        if result.success is True and self._passes_score_policy(result):
            self._accept(token, result)

        return result

    def verify_request(self, request: Any) -> bool:
        """
        Verify the token carried by an inbound web request.

        Works with Flask/Werkzeug (``form``, ``remote_addr``) and Django
        (``POST``, ``META["REMOTE_ADDR"]``) style requests. Starlette and
        FastAPI requests can only read their form asynchronously; use
        ``hcaptcha_verify.fastapi.HCaptchaVerify`` for those.

        Raises:
            TypeError: If the request form can only be read asynchronously
        """
        return self.verify_response(
            extract_response_token(request), extract_client_ip(request)
        )

    def _passes_score_policy(self, result: VerificationResult) -> bool:
        if not self.options.score_verification_enabled:
            return True
        return result.score is not None and result.score <= self.options.score_threshold

    def _accept(self, token: str, result: VerificationResult) -> None:
        with self._lock:
            self._last_score = result.score
            self._verified_responses.add(token)

    def _get_verification_result(
        self, token: str, remote_ip: Optional[str], include_sitekey: bool = False
    ) -> VerificationResult:
        cached = self._cache.get(token)
        if cached is not None:
            logger.debug("hcaptcha token %s served from cache", _redact(token))
            return cached

        # Two concurrent first checks of one token can both get here; the
        # second siteverify call will be answered as already used.
        result = self._client.verify(
            self._secret,
            token,
            remote_ip=remote_ip,
            sitekey=self._sitekey if include_sitekey else None,
        )
        self._cache.set(token, result)
        return result

    def close(self) -> None:
        """Close the siteverify client if this instance created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HCaptcha":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()


def extract_response_token(request: Any, field: str = RESPONSE_FIELD) -> Optional[str]:
    """
    Extract the hCaptcha response token from a request or form.

    Args:
        request: Request object with a ``form``/``POST`` mapping, or a form mapping
        field: Form field name (default: "h-captcha-response")

    Returns:
        Token string, or None if the field is absent

    Raises:
        TypeError: If ``form`` is a method, as on Starlette requests
    """
    for attr in ("form", "POST"):
        form = getattr(request, attr, None)
        if callable(form):
            raise TypeError(
                f"{type(request).__name__}.{attr} must be awaited; "
                "use hcaptcha_verify.fastapi.HCaptchaVerify for async frameworks"
            )
        if form is not None and hasattr(form, "get"):
            return form.get(field)
    if hasattr(request, "get"):
        return request.get(field)
    return None


def extract_client_ip(request: Any) -> Optional[str]:
    """
    Extract the client address from a request object.

    Args:
        request: Starlette, Werkzeug or Django style request

    Returns:
        Client IP string, or None if it cannot be determined
    """
    client = getattr(request, "client", None)
    if client is not None and getattr(client, "host", None):
        return client.host

    remote_addr = getattr(request, "remote_addr", None)
    if remote_addr:
        return remote_addr

    meta = getattr(request, "META", None)
    if meta is not None and hasattr(meta, "get"):
        return meta.get("REMOTE_ADDR")

    return None
