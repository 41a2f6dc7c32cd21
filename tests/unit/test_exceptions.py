"""
Unit tests for the domain and infrastructure exception hierarchies.
"""

from nowgame.core.exceptions import (
    ErrorSeverity,
    MigrationError,
    StorageError,
    get_error_severity,
    should_alert,
)
from nowgame.modules.shared.exceptions import (
    CooldownActiveError,
    InsufficientResourcesError,
    ValidationError,
)


class TestDomainExceptions:
    def test_cooldown_is_retryable_debug(self):
        exc = CooldownActiveError("health.neck", 120)

        assert exc.is_retryable
        assert exc.severity is ErrorSeverity.DEBUG
        assert exc.error_code == "COOLDOWN_ACTIVE"
        assert not should_alert(exc)

    def test_insufficient_resources_details(self):
        exc = InsufficientResourcesError("coins", 10, 3)

        assert exc.details["required"] == 10
        assert exc.details["current"] == 3
        assert get_error_severity(exc) is ErrorSeverity.INFO

    def test_validation_error_names_field(self):
        exc = ValidationError("max_xp", "must be positive")

        assert exc.field == "max_xp"
        assert exc.to_dict()["error_code"] == "VALIDATION_ERROR"
        assert "[VALIDATION_ERROR]" in str(exc)

    def test_plain_exceptions_alert(self):
        assert get_error_severity(RuntimeError("x")) is ErrorSeverity.ERROR
        assert should_alert(RuntimeError("x"))


class TestInfrastructureExceptions:
    def test_storage_error_wraps_original(self):
        original = OSError("disk full")
        exc = StorageError("set_string", "shop_data", original)

        assert exc.original_error is original
        assert exc.details["error_type"] == "OSError"
        assert "shop_data" in exc.message
        assert should_alert(exc)

    def test_migration_error_is_critical(self):
        exc = MigrationError(3, 2, ValueError("bad"))

        assert get_error_severity(exc) is ErrorSeverity.CRITICAL
