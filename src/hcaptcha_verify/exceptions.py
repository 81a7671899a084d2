"""hCaptcha verification exceptions."""


class HCaptchaError(Exception):
    """Base hCaptcha error."""
    pass


class ConfigurationError(HCaptchaError, ValueError):
    """Missing or invalid configuration."""
    pass


class VerificationTransportError(HCaptchaError):
    """The siteverify call failed or returned something other than a JSON object.

    This is an infrastructure fault, not a rejection of the token.
    """
    pass


TransportError = VerificationTransportError


class ScoreFeatureUnavailableError(HCaptchaError, RuntimeError):
    """Score checking is enabled but siteverify returned no score.

    Scores are an hCaptcha Enterprise feature and also need the client
    address to be sent as ``remoteip``.
    """
    pass
