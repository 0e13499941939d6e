"""
Unit tests for backend error translation.
"""

import pytest

from provisioning_clients.adapters import BackendError, translate_error
from provisioning_clients.adapters.error_translator import SETUP_ERROR_MESSAGE, backend_message
from shared.errors import (
    InsufficientCapacityError,
    InternalError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    PassthroughError,
    ServiceUnavailableError,
)


class TestTranslateError:
    """Test cases for translate_error."""

    @pytest.mark.parametrize("code,kind", [
        ("InvalidParamError", InvalidArgumentError),
        ("NotFoundError", NotFoundError),
        ("NoAvailableServersError", InsufficientCapacityError),
        ("NoAvailableServersWithDatasetError", InsufficientCapacityError),
        ("TransitionConflictError", InvalidStateError),
        ("TransitionToCurrentStatusError", InvalidStateError),
        ("UnacceptableTransitionError", InvalidStateError),
        ("UnknownDatasetError", InvalidArgumentError),
        ("UnknownPackageError", InvalidArgumentError),
        ("RetriesExceeded", InternalError),
    ])
    def test_mapped_codes(self, code, kind):
        """Test each mapped backend code yields its uniform kind."""
        error = translate_error(BackendError(status_code=500, code=code, message="boom"))

        assert type(error) is kind
        assert error.message == "boom"

    def test_unknown_package_keeps_backend_message(self):
        """Test a mapping without override forwards the backend message."""
        error = translate_error(BackendError(409, "UnknownPackageError", "package g9 not found."))

        assert isinstance(error, InvalidArgumentError)
        assert error.status_code == 409
        assert error.rest_code == "InvalidArgument"
        assert error.message == "package g9 not found."

    def test_setup_error_uses_fixed_message(self):
        """Test a mapping with an override replaces the backend message."""
        error = translate_error(BackendError(500, "SetupError", "zone setup exploded"))

        assert isinstance(error, ServiceUnavailableError)
        assert error.status_code == 503
        assert error.message == SETUP_ERROR_MESSAGE

    def test_invalid_hostname_override(self):
        """Test the hostname error carries the fixed syntax message."""
        error = translate_error(BackendError(409, "InvalidHostnameError", "bad"))

        assert isinstance(error, InvalidArgumentError)
        assert error.message == "name syntax is invalid"

    def test_bad_request_falls_back_to_invalid_argument(self):
        """Test a code-less 400 becomes InvalidArgument with conflict status."""
        error = translate_error(BackendError(400, None, "bad input"))

        assert isinstance(error, InvalidArgumentError)
        assert error.status_code == 409
        assert error.message == "bad input"

    def test_bad_request_with_unmapped_code_passes_through(self):
        """Test a 400 carrying its own unmapped code is forwarded unchanged."""
        error = translate_error(BackendError(400, "SomethingOdd", "bad input"))

        assert isinstance(error, PassthroughError)
        assert error.status_code == 400
        assert error.rest_code == "SomethingOdd"
        assert error.message == "bad input"

    @pytest.mark.parametrize("status_code,kind", [
        (404, NotFoundError),
        (409, InvalidArgumentError),
    ])
    def test_status_fallback_without_code(self, status_code, kind):
        """Test a code-less payload falls back on the status table."""
        error = translate_error(BackendError(status_code, None, "nope"))

        assert type(error) is kind

    def test_unmapped_error_passes_through(self):
        """Test an unmapped code keeps its status and message."""
        error = translate_error(BackendError(422, "WeirdError", "strange"))

        assert isinstance(error, PassthroughError)
        assert error.status_code == 422
        assert error.rest_code == "WeirdError"
        assert error.message == "strange"

    def test_passthrough_without_status(self):
        """Test a status-less failure is reported as an internal error."""
        error = translate_error(BackendError(None, None, None))

        assert error.status_code == 500
        assert error.rest_code == "InternalError"
        assert error.message == "Backend error"

    def test_details_carry_backend_identity(self):
        """Test translated errors record the backend code and status."""
        error = translate_error(BackendError(409, "UnknownDatasetError", "x"))

        assert error.details == {"backend_code": "UnknownDatasetError", "backend_status": 409}

    def test_deterministic(self):
        """Test the same backend error always translates to equal errors."""
        backend = BackendError(409, "TransitionConflictError", "busy")

        assert translate_error(backend) == translate_error(backend)


class TestBackendMessage:
    """Test cases for backend_message."""

    def test_messages_list_preferred(self):
        """Test the first entry of ``messages`` wins."""
        error = BackendError(409, "X", "generic", messages=["specific", "other"])

        assert backend_message(error) == "specific"

    def test_message_then_errors(self):
        """Test ``message`` is used before ``errors``."""
        assert backend_message(BackendError(409, "X", "generic", errors=["e"])) == "generic"
        assert backend_message(BackendError(409, "X", None, errors=["e"])) == "e"

    def test_from_response_parses_payload(self):
        """Test error payloads are parsed into their fields."""
        error = BackendError.from_response(409, {
            "code": "UnknownPackageError",
            "message": "package g9 not found.",
            "messages": ["package g9 not found."],
        })

        assert error.code == "UnknownPackageError"
        assert error.messages == ["package g9 not found."]

    def test_from_response_plain_text(self):
        """Test a non-JSON error body becomes the message."""
        error = BackendError.from_response(502, "Bad Gateway")

        assert error.code is None
        assert error.message == "Bad Gateway"
