"""Unit tests for provider error classification"""

from types import SimpleNamespace

import httpx
import pytest

from invoice_sync.application.services.error_classifier import classify, extract_message
from invoice_sync.domain.exceptions import ProviderError, ProviderErrorKind
from invoice_sync.shared.enums import ErrorClass


class TestClassify:
    """The two-way transient / auth-fatal decision."""

    def test_auth_expired_kind_is_fatal(self):
        error = ProviderError(ProviderErrorKind.AUTH_EXPIRED, "Token has been expired or revoked.")
        assert classify(error) == ErrorClass.AUTH_FATAL

    def test_rate_limited_kind_wins_over_403_status(self):
        """
        GIVEN a quota error that the provider reports with HTTP 403
        WHEN it is classified
        THEN the adapter's RATE_LIMITED kind keeps it transient.
        """
        error = ProviderError(
            ProviderErrorKind.RATE_LIMITED, "User-rate limit exceeded", status=403
        )
        assert classify(error) == ErrorClass.TRANSIENT

    def test_not_found_kind_is_transient(self):
        error = ProviderError(ProviderErrorKind.NOT_FOUND, "Requested entity was not found.", status=404)
        assert classify(error) == ErrorClass.TRANSIENT

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_statuses_are_fatal(self, status):
        error = ProviderError(ProviderErrorKind.UNKNOWN, "denied", status=status)
        assert classify(error) == ErrorClass.AUTH_FATAL

    def test_httpx_status_error_uses_response_status(self):
        request = httpx.Request("GET", "https://graph.microsoft.com/v1.0/me/messages")
        response = httpx.Response(401, request=request)
        error = httpx.HTTPStatusError("Unauthorized", request=request, response=response)
        assert classify(error) == ErrorClass.AUTH_FATAL

    def test_google_style_resp_status(self):
        error = SimpleNamespace(resp=SimpleNamespace(status="401"))
        assert classify(error) == ErrorClass.AUTH_FATAL

    @pytest.mark.parametrize(
        "error",
        [
            {"error": "invalid_grant", "error_description": "Bad Request"},
            ValueError("invalid_grant: Token has been expired or revoked."),
            RuntimeError("Authentication failed for mailbox"),
            ProviderError(ProviderErrorKind.UNKNOWN, "refresh failed", code="unauthorized_client"),
        ],
    )
    def test_auth_markers_are_fatal(self, error):
        assert classify(error) == ErrorClass.AUTH_FATAL

    @pytest.mark.parametrize(
        "error",
        [
            TimeoutError("timed out"),
            ConnectionResetError("connection reset by peer"),
            ProviderError(ProviderErrorKind.UNKNOWN, "Backend Error", status=500),
            {"status": 503},
            ValueError(""),
        ],
    )
    def test_everything_else_is_transient(self, error):
        assert classify(error) == ErrorClass.TRANSIENT

class TestExtractMessage:
    """Human-readable messages from every payload shape."""

    def test_oauth_error_description(self):
        payload = {"error": "invalid_grant", "error_description": "Token has been revoked."}
        assert extract_message(payload, "fallback") == "Token has been revoked."

    def test_graph_error_shape(self):
        payload = {"error": {"code": "InvalidAuthenticationToken", "message": "Access token has expired."}}
        assert extract_message(payload, "fallback") == "Access token has expired."

    def test_google_error_shape_prefers_first_nested_error(self):
        payload = {"error": {"errors": [{"message": "Invalid Credentials"}], "message": "Outer"}}
        assert extract_message(payload, "fallback") == "Invalid Credentials"

    def test_provider_error_uses_its_message(self):
        error = ProviderError(ProviderErrorKind.UNKNOWN, "Attachment payload missing")
        assert extract_message(error, "fallback") == "Attachment payload missing"

    def test_plain_exception_text(self):
        assert extract_message(RuntimeError("boom"), "fallback") == "boom"

    @pytest.mark.parametrize("error", [None, {}, RuntimeError(""), 42])
    def test_falls_back_when_nothing_useful(self, error):
        assert extract_message(error, "fallback") == "fallback"

    def test_never_raises(self):
        """
        GIVEN an error whose string conversion itself raises
        WHEN a message is extracted
        THEN the fallback is returned.
        """

        class Hostile(Exception):
            def __str__(self):
                raise RuntimeError("no")

        assert extract_message(Hostile(), "fallback") == "fallback"
