"""hcaptcha-verify - Server-side hCaptcha verification for Python."""

__version__ = "0.1.0"

from hcaptcha_verify.cache import ResponseCache
from hcaptcha_verify.client import SiteVerifyClient
from hcaptcha_verify.exceptions import (
    ConfigurationError,
    HCaptchaError,
    ScoreFeatureUnavailableError,
    TransportError,
    VerificationTransportError,
)
from hcaptcha_verify.types import HCaptchaOptions, VerificationResult
from hcaptcha_verify.verify import HCaptcha, extract_client_ip, extract_response_token
from hcaptcha_verify.widget import HCaptchaWidget

__all__ = [
    "HCaptcha",
    "HCaptchaOptions",
    "HCaptchaWidget",
    "ResponseCache",
    "SiteVerifyClient",
    "VerificationResult",
    "HCaptchaError",
    "ConfigurationError",
    "VerificationTransportError",
    "TransportError",
    "ScoreFeatureUnavailableError",
    "extract_client_ip",
    "extract_response_token",
    "__version__",
]
