"""
Unit Tests for the Error Taxonomy
=================================

Test Coverage
-------------
- Domain exceptions: status, codes, serialization
- Infrastructure exceptions: retry hints, severity
- Driver error translation at the database boundary
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.core.database.service import translate_database_error
from src.core.exceptions import (
    CacheError,
    DatabaseError,
    ErrorSeverity,
    UpstreamServiceError,
)
from src.modules.shared.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PremiumRequiredError,
    ValidationError,
)


# ============================================================================
# DOMAIN EXCEPTIONS
# ============================================================================


@pytest.mark.unit
class TestDomainExceptions:
    @pytest.mark.parametrize(
        "error, status",
        [
            (ValidationError("seq_no", "must be positive"), 400),
            (NotFoundError("Topic", "algebra"), 404),
            (ConflictError("record", "duplicate"), 409),
            (PremiumRequiredError(), 403),
            (AuthenticationError("Authentication failed"), 401),
            (AuthenticationError("Authentication service unavailable", 503), 503),
        ],
    )
    def test_http_status(self, error, status):
        assert error.http_status == status

    def test_not_found_message_and_code(self):
        error = NotFoundError("Topic", "algebra")

        assert error.message == "Topic not found: algebra"
        assert error.error_code == "TOPIC_NOT_FOUND"

    def test_validation_to_dict(self):
        payload = ValidationError("seq_no", "must be positive").to_dict()

        assert payload["error_code"] == "VALIDATION_SEQ_NO"
        assert payload["details"]["field"] == "seq_no"
        assert payload["http_status"] == 400


# ============================================================================
# INFRASTRUCTURE EXCEPTIONS
# ============================================================================


@pytest.mark.unit
class TestInfrastructureExceptions:
    def test_cache_error_is_transient_warning(self):
        error = CacheError("read", "cortex:topics:all", ConnectionError("refused"))

        assert error.is_retryable is True
        assert error.severity == ErrorSeverity.WARNING
        assert error.details["error_type"] == "ConnectionError"

    def test_upstream_error_code_names_service(self):
        error = UpstreamServiceError("subscription", "timed out", status_code=504)

        assert error.error_code == "SUBSCRIPTION_UNAVAILABLE"
        assert error.status_code == 504


# ============================================================================
# DRIVER ERROR TRANSLATION
# ============================================================================


@pytest.mark.unit
class TestTranslateDatabaseError:
    def test_unique_violation_is_conflict(self):
        error = IntegrityError(
            "INSERT", {}, Exception("UNIQUE constraint failed: topics.topic_slug")
        )

        assert isinstance(translate_database_error(error, "insert"), ConflictError)

    def test_postgres_duplicate_key_is_conflict(self):
        error = IntegrityError(
            "INSERT",
            {},
            Exception('duplicate key value violates unique constraint "ix_topics_topic_slug"'),
        )

        assert isinstance(translate_database_error(error, "insert"), ConflictError)

    def test_foreign_key_violation_is_validation_error(self):
        error = IntegrityError("DELETE", {}, Exception("FOREIGN KEY constraint failed"))

        translated = translate_database_error(error, "delete")

        assert isinstance(translated, ValidationError)
        assert translated.http_status == 400

    def test_other_driver_errors_are_database_errors(self):
        error = OperationalError("SELECT 1", {}, Exception("connection reset"))

        translated = translate_database_error(error, "read")

        assert isinstance(translated, DatabaseError)
        assert translated.is_retryable is True
