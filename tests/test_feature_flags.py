"""Unit tests for the AppConfig feature flag source."""

from unittest.mock import MagicMock

import pytest
import requests

from orders_api.deadline import Deadline
from orders_api.errors import ConfigUnavailable
from orders_api.feature_flags import FeatureFlag, FeatureFlagSource, parse_flags

FLAG_URL = (
    "http://localhost:2772/applications/app-123"
    "/environments/env-123/configurations/cfg-123"
)


def agent_response(payload=None, status_code=200, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
    if json_error:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def mock_session():
    return MagicMock()


@pytest.fixture
def source(mock_session):
    return FeatureFlagSource(timeout=2.0, retries=1, session=mock_session)


def fetch(source, flag_names=None, deadline=None):
    return source.fetch_flags("app-123", "env-123", "cfg-123", flag_names, deadline)


def test_fetch_named_flags(source, mock_session):
    """Test fetching a subset of flags by name."""
    # Arrange
    mock_session.get.return_value = agent_response(
        {
            "opsPreventCreateOrders": {"enabled": False},
            "releaseCheckCreateOrderQuantity": {"enabled": True, "limit": 10},
        }
    )

    # Act
    flags = fetch(
        source, ["opsPreventCreateOrders", "releaseCheckCreateOrderQuantity"]
    )

    # Assert
    assert flags == {
        "opsPreventCreateOrders": FeatureFlag(enabled=False),
        "releaseCheckCreateOrderQuantity": FeatureFlag(enabled=True, limit=10),
    }
    mock_session.get.assert_called_once_with(
        FLAG_URL,
        params=[
            ("flag", "opsPreventCreateOrders"),
            ("flag", "releaseCheckCreateOrderQuantity"),
        ],
        timeout=2.0,
    )


def test_fetch_all_flags(source, mock_session):
    """Test that omitting names returns the full flag set."""
    # Arrange
    mock_session.get.return_value = agent_response(
        {
            "opsPreventCreateOrders": {"enabled": False},
            "opsLimitListOrdersResults": {"enabled": True, "limit": 3},
        }
    )

    # Act
    flags = fetch(source)

    # Assert
    assert set(flags) == {"opsPreventCreateOrders", "opsLimitListOrdersResults"}
    assert mock_session.get.call_args.kwargs["params"] is None


def test_fetch_single_flag_unwrapped_body(source, mock_session):
    """Test that a bare single-flag body is keyed by its name."""
    # Arrange
    mock_session.get.return_value = agent_response({"enabled": True, "limit": 2})

    # Act
    flags = fetch(source, ["opsLimitListOrdersResults"])

    # Assert
    assert flags == {"opsLimitListOrdersResults": FeatureFlag(enabled=True, limit=2)}


def test_missing_identifiers(mock_session):
    """Test that missing AppConfig identifiers fail without a request."""
    # Arrange
    source = FeatureFlagSource(session=mock_session)

    # Act / Assert
    with pytest.raises(ConfigUnavailable):
        source.fetch_flags("app-123", None, "cfg-123")
    mock_session.get.assert_not_called()


def test_retry_on_server_error(source, mock_session):
    """Test a 5xx response is retried once and then succeeds."""
    # Arrange
    mock_session.get.side_effect = [
        agent_response(status_code=503),
        agent_response({"opsPreventCreateOrders": {"enabled": True}}),
    ]

    # Act
    flags = fetch(source, ["opsPreventCreateOrders"])

    # Assert
    assert flags["opsPreventCreateOrders"].enabled is True
    assert mock_session.get.call_count == 2


def test_retries_are_bounded(source, mock_session):
    """Test that repeated connection errors give up after the retry budget."""
    # Arrange
    mock_session.get.side_effect = requests.ConnectionError("connection refused")

    # Act / Assert
    with pytest.raises(ConfigUnavailable) as exc_info:
        fetch(source, ["opsPreventCreateOrders"])
    assert mock_session.get.call_count == 2
    assert "connection refused" in exc_info.value.message


def test_client_error_not_retried(source, mock_session):
    """Test that a 4xx response fails immediately."""
    # Arrange
    mock_session.get.return_value = agent_response(status_code=404)

    # Act / Assert
    with pytest.raises(ConfigUnavailable):
        fetch(source, ["opsPreventCreateOrders"])
    assert mock_session.get.call_count == 1


def test_malformed_json(source, mock_session):
    """Test that an unparseable body fails with ConfigUnavailable."""
    # Arrange
    mock_session.get.return_value = agent_response(
        json_error=ValueError("Expecting value")
    )

    # Act / Assert
    with pytest.raises(ConfigUnavailable):
        fetch(source, ["opsPreventCreateOrders"])
    assert mock_session.get.call_count == 1


def test_timeout_bounded_by_deadline(source, mock_session):
    """Test that the per-attempt timeout never exceeds the request deadline."""
    # Arrange
    mock_session.get.return_value = agent_response({"enabled": False})
    deadline = Deadline.after(0.5, clock=lambda: 100.0)

    # Act
    fetch(source, ["opsPreventCreateOrders"], deadline=deadline)

    # Assert
    assert mock_session.get.call_args.kwargs["timeout"] == pytest.approx(0.5)


def test_expired_deadline(source, mock_session):
    """Test that no request is made once the deadline has passed."""
    # Arrange
    deadline = Deadline(expires_at=10.0, clock=lambda: 20.0)

    # Act / Assert
    with pytest.raises(ConfigUnavailable):
        fetch(source, ["opsPreventCreateOrders"], deadline=deadline)
    mock_session.get.assert_not_called()


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"opsPreventCreateOrders": "on"},
        {"opsPreventCreateOrders": {"enabled": "true"}},
        {"opsPreventCreateOrders": {"limit": 3}},
        {"opsPreventCreateOrders": {"enabled": True, "limit": "3"}},
        {"opsPreventCreateOrders": {"enabled": True, "limit": True}},
        {"somethingElse": {"enabled": True}},
    ],
)
def test_parse_flags_rejects_bad_shapes(payload):
    """Test shape validation at the boundary."""
    # Act / Assert
    with pytest.raises(ConfigUnavailable):
        parse_flags(payload, ["opsPreventCreateOrders"])


def test_parse_flags_keeps_extra_attributes_out():
    """Test that only enabled and limit are kept."""
    # Act
    flags = parse_flags(
        {"opsLimitListOrdersResults": {"enabled": True, "limit": 1.5, "owner": "ops"}}
    )

    # Assert
    assert flags == {"opsLimitListOrdersResults": FeatureFlag(enabled=True, limit=1.5)}


@pytest.mark.parametrize("limit", [float("nan"), float("inf"), float("-inf")])
def test_parse_flags_rejects_non_finite_limit(limit):
    """Test that NaN and infinite limits are rejected at the boundary."""
    # Act / Assert
    with pytest.raises(ConfigUnavailable):
        parse_flags({"opsLimitListOrdersResults": {"enabled": True, "limit": limit}})


def test_fetch_non_finite_limit_from_agent(source, mock_session):
    """Test that a NaN limit decoded from the agent body fails the fetch."""
    # Arrange
    mock_session.get.return_value = agent_response(
        {"enabled": True, "limit": float("nan")}
    )

    # Act / Assert
    with pytest.raises(ConfigUnavailable):
        fetch(source, ["opsLimitListOrdersResults"])
