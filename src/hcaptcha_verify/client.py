"""SiteVerifyClient - HTTP client for the hCaptcha siteverify endpoint."""

import logging
from typing import Any, Optional

import httpx

from .exceptions import VerificationTransportError
from .types import VERIFY_URL, VerificationResult

logger = logging.getLogger(__name__)


class SiteVerifyClient:
    """
    Blocking client that posts a response token to siteverify.

    Each ``verify`` call sends exactly one request and never retries. Any
    failure to obtain a JSON object from the service raises
    ``VerificationTransportError`` so callers can tell an outage apart from
    a rejected token.

    Example:
        >>> with SiteVerifyClient() as client:
        ...     result = client.verify("0x0000...", "10000000-ffff-ffff-ffff-000000000001")
        ...     print(result.success)
    """

    def __init__(
        self,
        verify_url: str = VERIFY_URL,
        timeout: float = 5.0,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the SiteVerifyClient.

        Args:
            verify_url: siteverify endpoint (default: https://hcaptcha.com/siteverify)
            timeout: Request timeout in seconds (default: 5.0)
            http_client: Optional shared httpx.Client. When given, the caller
                         keeps ownership and ``close()`` leaves it open.
        """
        self.verify_url = verify_url
        self.timeout = timeout
        self._owns_client = http_client is None
        self._client = http_client if http_client is not None else httpx.Client()

    def verify(
        self,
        secret: str,
        token: str,
        remote_ip: Optional[str] = None,
        sitekey: Optional[str] = None,
    ) -> VerificationResult:
        """
        Verify a response token against siteverify.

        Args:
            secret: hCaptcha secret key
            token: Response token submitted by the client
            remote_ip: Optional end-user IP, required for enterprise scores
            sitekey: Optional site key the token must have been issued for

        Returns:
            VerificationResult parsed from the JSON body

        Raises:
            VerificationTransportError: On connection failure, timeout, HTTP
                error status or a body that is not a JSON object
        """
        payload = {"secret": secret, "response": token}
        if remote_ip:
            payload["remoteip"] = remote_ip
        if sitekey:
            payload["sitekey"] = sitekey

        try:
            response = self._client.post(
                self.verify_url, data=payload, timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "siteverify returned HTTP %s", e.response.status_code
            )
            raise VerificationTransportError(
                f"siteverify returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("siteverify request failed: %s", e.__class__.__name__)
            raise VerificationTransportError(
                "Failed to verify hCaptcha response"
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            logger.warning("siteverify response was not JSON")
            raise VerificationTransportError(
                "Invalid JSON response from hCaptcha"
            ) from e

        if not isinstance(body, dict):
            raise VerificationTransportError(
                f"Unexpected siteverify response: expected object, got {type(body).__name__}"
            )

        try:
            return VerificationResult.from_dict(body)
        except (TypeError, ValueError) as e:
            raise VerificationTransportError(
                f"Malformed siteverify response: {e}"
            ) from e

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "SiteVerifyClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()
