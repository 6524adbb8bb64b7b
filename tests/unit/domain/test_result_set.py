import pytest

from pdcli.domain.models.outcome import Classification, ErrorKind, Failure, Success
from pdcli.domain.models.result_set import ResultSet


@pytest.fixture
def mixed_results():
    return ResultSet([
        Success(status_code=200, body={"user": {"id": "PAAAAAA"}}),
        Failure(
            status_code=503, error_kind=ErrorKind.RETRY_EXHAUSTED, message="Service Unavailable",
            attempts=5, last_classification=Classification.SERVER_ERROR,
        ),
        Success(status_code=200, body={"user": {"id": "PCCCCCC"}}, attempts=2),
        Failure(
            status_code=404, error_kind=ErrorKind.CLIENT_ERROR, message="Not Found: Resource not found",
            attempts=1, last_classification=Classification.CLIENT_ERROR,
        ),
        Failure(
            status_code=None, error_kind=ErrorKind.RETRY_EXHAUSTED, message="Request timed out (ReadTimeout)",
            attempts=3, last_classification=Classification.NETWORK_ERROR,
        ),
    ])


def test_failed_indices_are_ascending(mixed_results):
    assert mixed_results.failed_indices() == [1, 3, 4]


def test_successful_payloads_keep_input_order(mixed_results):
    assert mixed_results.successful_payloads() == [
        {"user": {"id": "PAAAAAA"}},
        {"user": {"id": "PCCCCCC"}},
    ]


def test_counts(mixed_results):
    assert len(mixed_results) == 5
    assert mixed_results.success_count == 2
    assert mixed_results.failure_count == 3
    assert not mixed_results.all_succeeded
    assert isinstance(mixed_results[2], Success)


def test_formatted_error_for_client_error(mixed_results):
    message = mixed_results.formatted_error(3)
    assert message == "HTTP 404 (client_error): Not Found: Resource not found"


def test_formatted_error_for_exhausted_retries(mixed_results):
    message = mixed_results.formatted_error(1)
    assert "HTTP 503" in message
    assert "retry_exhausted after 5 attempt(s), last: server_error" in message
    assert "Service Unavailable" in message


def test_formatted_error_without_status_code(mixed_results):
    message = mixed_results.formatted_error(4)
    assert not message.startswith("HTTP")
    assert "network_error" in message


@pytest.mark.parametrize("index", [0, 2, 5, -1])
def test_formatted_error_rejects_non_failures(mixed_results, index):
    with pytest.raises(IndexError):
        mixed_results.formatted_error(index)


def test_result_set_is_a_snapshot():
    outcomes = [Success(status_code=204, body=None)]
    result = ResultSet(outcomes)
    outcomes.append(Success(status_code=200, body={}))

    assert len(result) == 1
    assert result.outcomes == (Success(status_code=204, body=None),)
    assert result.all_succeeded
    assert result.successful_payloads() == [None]
