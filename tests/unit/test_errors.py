"""Tests for error classification."""

import pytest

from missionboard.core.errors import (
    ErrorCode,
    ErrorSeverity,
    classify_error_with_response,
    classify_mission_error,
    http_status_for,
)
from missionboard.domain.mission import MissionError, MissionErrorKind


@pytest.mark.unit
class TestClassifyMissionError:
    """Transition rejections to structured responses."""

    def test_every_kind_is_classified(self):
        for kind in MissionErrorKind:
            response = classify_mission_error(MissionError(kind=kind, message="nope"))

            assert response.message == "nope"
            assert response.suggestion

    @pytest.mark.parametrize(
        ("kind", "status"),
        [
            (MissionErrorKind.NOT_FOUND, 404),
            (MissionErrorKind.NOT_OWNER, 403),
            (MissionErrorKind.NOT_AUTHORIZED, 403),
            (MissionErrorKind.NOT_ASSIGNED_WORKER, 403),
            (MissionErrorKind.INVALID_TRANSITION, 409),
            (MissionErrorKind.DUPLICATE_MISSION, 409),
            (MissionErrorKind.QUOTA_EXCEEDED, 409),
            (MissionErrorKind.TOO_EARLY_TO_START, 409),
            (MissionErrorKind.VALIDATION_ERROR, 422),
            (MissionErrorKind.STORAGE_ERROR, 503),
        ],
    )
    def test_http_status(self, kind, status):
        assert http_status_for(classify_mission_error(MissionError(kind=kind, message=""))) == status


@pytest.mark.unit
class TestClassifyException:
    """Service exceptions to structured responses."""

    def test_key_error(self):
        response = classify_error_with_response(KeyError("Record not found in homes: 9"))

        assert response.code == ErrorCode.ERR_NOT_FOUND
        assert response.message == "Record not found in homes: 9"

    def test_permission_error(self):
        assert classify_error_with_response(PermissionError("no")).code == ErrorCode.ERR_PERMISSION_DENIED

    def test_value_error(self):
        assert classify_error_with_response(ValueError("bad title")).code == ErrorCode.ERR_VALIDATION

    def test_storage_error_hides_details(self):
        response = classify_error_with_response(RuntimeError("Failed to list records from missions: disk I/O"))

        assert response.code == ErrorCode.ERR_STORAGE
        assert "disk" not in response.message
        assert response.severity == ErrorSeverity.HIGH

    def test_unknown_error(self):
        response = classify_error_with_response(ZeroDivisionError())

        assert response.code == ErrorCode.ERR_UNKNOWN
        assert http_status_for(response) == 500
