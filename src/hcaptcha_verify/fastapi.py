"""FastAPI dependency for hCaptcha verification."""

import logging
from typing import Optional

try:
    from fastapi import HTTPException, Request
    from fastapi.concurrency import run_in_threadpool
except ImportError:
    raise ImportError(
        "FastAPI is not installed. Install it with: pip install 'hcaptcha-verify[fastapi]'"
    )

from .exceptions import VerificationTransportError
from .verify import RESPONSE_FIELD, HCaptcha, extract_client_ip

logger = logging.getLogger(__name__)


class HCaptchaVerify:
    """
    FastAPI dependency that checks the hCaptcha token of a form submission.

    The token is read from the ``h-captcha-response`` form field and the
    client address from the connection. Verification is blocking, so it runs
    in the thread pool.

    Usage:
        from hcaptcha_verify import HCaptcha
        from hcaptcha_verify.fastapi import HCaptchaVerify

        captcha = HCaptcha(secret="0x...", sitekey="10000000-...")
        require_captcha = HCaptchaVerify(captcha)

        @app.post('/contact')
        async def contact(passed: bool = Depends(require_captcha)):
            return {"sent": True}
    """

    def __init__(
        self,
        captcha: HCaptcha,
        auto_error: bool = True,
        field: str = RESPONSE_FIELD,
    ):
        """
        Initialize the dependency.

        Args:
            captcha: Shared HCaptcha instance
            auto_error: If True, raise HTTPException(400) on a rejected token.
                        If False, return False instead.
            field: Form field holding the response token
        """
        self.captcha = captcha
        self.auto_error = auto_error
        self.field = field

    async def __call__(self, request: Request) -> bool:
        """
        Verify the token submitted with ``request``.

        Returns:
            True if the token passed, False if rejected and auto_error=False

        Raises:
            HTTPException: 400 on rejection (auto_error=True), 503 if
                siteverify could not be reached
        """
        form = await request.form()
        token: Optional[str] = form.get(self.field)
        if token is not None and not isinstance(token, str):
            token = None
        client_ip = extract_client_ip(request)

        try:
            passed = await run_in_threadpool(
                self.captcha.verify_response, token, client_ip
            )
        except VerificationTransportError:
            logger.warning("hcaptcha verification unavailable", exc_info=True)
            raise HTTPException(
                status_code=503,
                detail="Captcha verification is temporarily unavailable",
            )

        if not passed and self.auto_error:
            raise HTTPException(status_code=400, detail="Invalid captcha")
        return passed
