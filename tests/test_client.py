"""Tests for SiteVerifyClient."""

from urllib.parse import parse_qs

import httpx
import pytest
import respx

from hcaptcha_verify.client import SiteVerifyClient
from hcaptcha_verify.exceptions import TransportError, VerificationTransportError

from conftest import SECRET, SITEKEY, VERIFY_URL


def _form(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@respx.mock
def test_verify_happy_path():
    """Test a successful siteverify answer is parsed."""
    respx.post(VERIFY_URL).mock(
        return_value=httpx.Response(
            200,
            json={
                "success": True,
                "challenge_ts": "2026-10-18T12:00:00Z",
                "hostname": "example.com",
            },
        )
    )

    with SiteVerifyClient() as client:
        result = client.verify(SECRET, "token-abc", remote_ip="1.2.3.4")

    assert result.success is True
    assert result.hostname == "example.com"
    assert result.challenge_ts == "2026-10-18T12:00:00Z"
    assert result.score is None


@respx.mock
def test_verify_sends_form_body():
    """Test secret, response and remoteip are sent form-encoded."""
    route = respx.post(VERIFY_URL).mock(
        return_value=httpx.Response(200, json={"success": True})
    )

    with SiteVerifyClient() as client:
        client.verify(SECRET, "token-abc", remote_ip="1.2.3.4")

    request = route.calls.last.request
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    assert _form(request) == {
        "secret": SECRET,
        "response": "token-abc",
        "remoteip": "1.2.3.4",
    }


@respx.mock
def test_verify_omits_optional_fields():
    """Test remoteip and sitekey are left out when not given."""
    route = respx.post(VERIFY_URL).mock(
        return_value=httpx.Response(200, json={"success": True})
    )

    with SiteVerifyClient() as client:
        client.verify(SECRET, "token-abc")

    body = _form(route.calls.last.request)
    assert "remoteip" not in body
    assert "sitekey" not in body


@respx.mock
def test_verify_includes_sitekey():
    """Test sitekey is sent when requested."""
    route = respx.post(VERIFY_URL).mock(
        return_value=httpx.Response(200, json={"success": True})
    )

    with SiteVerifyClient() as client:
        client.verify(SECRET, "token-abc", sitekey=SITEKEY)

    assert _form(route.calls.last.request)["sitekey"] == SITEKEY


@respx.mock
def test_verify_applies_timeout():
    """Test the configured timeout is attached to the request."""
    route = respx.post(VERIFY_URL).mock(
        return_value=httpx.Response(200, json={"success": True})
    )

    with SiteVerifyClient(timeout=5.0) as client:
        client.verify(SECRET, "token-abc")

    timeout = route.calls.last.request.extensions["timeout"]
    assert timeout["connect"] == 5.0
    assert timeout["read"] == 5.0


@respx.mock
def test_verify_custom_url():
    """Test a custom siteverify URL is used."""
    route = respx.post("https://api.hcaptcha.com/siteverify").mock(
        return_value=httpx.Response(200, json={"success": False})
    )

    with SiteVerifyClient(verify_url="https://api.hcaptcha.com/siteverify") as client:
        result = client.verify(SECRET, "token-abc")

    assert route.called
    assert result.success is False


@respx.mock
def test_verify_rejection_is_not_an_error():
    """Test success=false comes back as a result with error codes."""
    respx.post(VERIFY_URL).mock(
        return_value=httpx.Response(
            200,
            json={"success": False, "error-codes": ["invalid-input-response"]},
        )
    )

    with SiteVerifyClient() as client:
        result = client.verify(SECRET, "bad-token")

    assert result.success is False
    assert result.error_codes == frozenset({"invalid-input-response"})


@respx.mock
def test_verify_connection_refused_raises():
    """Test a refused connection raises VerificationTransportError."""
    respx.post(VERIFY_URL).mock(side_effect=httpx.ConnectError("Connection refused"))

    with SiteVerifyClient() as client:
        with pytest.raises(VerificationTransportError) as exc_info:
            client.verify(SECRET, "token-abc")

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@respx.mock
def test_verify_timeout_raises():
    """Test a timeout raises VerificationTransportError."""
    respx.post(VERIFY_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

    with SiteVerifyClient() as client:
        with pytest.raises(TransportError):
            client.verify(SECRET, "token-abc")


@respx.mock
def test_verify_invalid_json_raises():
    """Test a non-JSON body raises VerificationTransportError."""
    respx.post(VERIFY_URL).mock(
        return_value=httpx.Response(200, text="<html>oops</html>")
    )

    with SiteVerifyClient() as client:
        with pytest.raises(VerificationTransportError, match="Invalid JSON"):
            client.verify(SECRET, "token-abc")


@respx.mock
def test_verify_non_object_json_raises():
    """Test a JSON body that is not an object raises."""
    respx.post(VERIFY_URL).mock(return_value=httpx.Response(200, json=[1, 2, 3]))

    with SiteVerifyClient() as client:
        with pytest.raises(VerificationTransportError, match="expected object"):
            client.verify(SECRET, "token-abc")


@respx.mock
def test_verify_http_error_status_raises():
    """Test a 5xx answer raises VerificationTransportError."""
    respx.post(VERIFY_URL).mock(return_value=httpx.Response(502, text="Bad Gateway"))

    with SiteVerifyClient() as client:
        with pytest.raises(VerificationTransportError, match="HTTP 502"):
            client.verify(SECRET, "token-abc")


def test_close_leaves_shared_client_open():
    """Test close() does not close a caller-owned httpx.Client."""
    http_client = httpx.Client()
    client = SiteVerifyClient(http_client=http_client)

    client.close()
    assert http_client.is_closed is False

    http_client.close()


def test_close_owned_client():
    """Test close() closes the client it created."""
    client = SiteVerifyClient()
    client.close()
    assert client._client.is_closed is True
