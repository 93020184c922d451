"""Tests for the application error hierarchy."""

import pytest

from areahub.core.exceptions import (
    AppError,
    ConflictError,
    ErrorKind,
    InvalidInputError,
    NotFoundError,
    ProviderError,
)
from areahub.main import ERROR_STATUS_CODES


class TestErrorKinds:
    """Each error class carries its discriminant."""

    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (NotFoundError("Service not found"), ErrorKind.NOT_FOUND),
            (ConflictError("already linked"), ErrorKind.CONFLICT),
            (ProviderError("token exchange failed"), ErrorKind.PROVIDER_ERROR),
            (InvalidInputError("bad input"), ErrorKind.VALIDATION),
        ],
    )
    def test_kind(self, error, kind):
        assert isinstance(error, AppError)
        assert error.kind is kind

    def test_every_kind_has_a_status_code(self):
        assert set(ERROR_STATUS_CODES) == set(ErrorKind)
        assert ERROR_STATUS_CODES[ErrorKind.NOT_FOUND] == 404
        assert ERROR_STATUS_CODES[ErrorKind.CONFLICT] == 409
        assert ERROR_STATUS_CODES[ErrorKind.PROVIDER_ERROR] == 400


class TestToDict:
    """API serialisation."""

    def test_plain_error(self):
        assert NotFoundError("Service not found").to_dict() == {
            "error": "not_found",
            "message": "Service not found",
        }

    def test_provider_details(self):
        error = ProviderError("token exchange failed: 401", provider="github", status_code=401)

        assert error.to_dict() == {
            "error": "provider_error",
            "message": "token exchange failed: 401",
            "details": {"provider": "github", "status_code": 401},
        }
        assert str(error) == "token exchange failed: 401"
