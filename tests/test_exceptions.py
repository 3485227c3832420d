"""Tests for error classification."""

import pytest

from consistency_engine.core.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingExtractionError,
    ErrorCode,
    GenerationNotFoundError,
    VectorStoreUnavailableError,
)


class TestErrorClassification:
    @pytest.mark.parametrize("code,status,retryable", [
        (ErrorCode.TIMEOUT, 504, True),
        (ErrorCode.RATE_LIMIT_EXCEEDED, 429, True),
        (ErrorCode.CONNECTION_ERROR, 503, True),
        (ErrorCode.EXTERNAL_API_ERROR, 502, False),
    ])
    def test_api_error_codes(self, code, status, retryable):
        error = EmbeddingExtractionError("failed", code=code)
        assert error.http_status == status
        assert error.retryable is retryable

    def test_scoring_errors_never_retry(self):
        error = DimensionMismatchError("3 != 4")
        assert error.http_status == 422
        assert not error.retryable

    def test_store_defaults_to_unavailable(self):
        error = VectorStoreUnavailableError("down")
        assert error.code is ErrorCode.SERVICE_UNAVAILABLE
        assert error.retryable

    def test_not_found(self):
        error = GenerationNotFoundError("missing", details={"generation_id": "g1"})
        assert error.resource == "generation"
        assert error.http_status == 404


class TestErrorMessages:
    def test_details_in_str(self):
        error = ConfigurationError("bad", details={"path": "x.yaml"})
        assert str(error) == "bad | Details: {'path': 'x.yaml'}"

    def test_api_error_str(self):
        error = EmbeddingExtractionError("boom", service="OpenAI", status_code=500)
        assert str(error) == "[OpenAI] (HTTP 500) boom"
        assert error.message == "boom"
