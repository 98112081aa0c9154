import pytest

from ai_assistant.types import BatchJob, BatchStatus, OperationResult, ProtocolError, UploadedFile


@pytest.mark.parametrize(
    "payload,expected",
    [
        ({"processing_status": "in_progress"}, BatchStatus.IN_PROGRESS),
        ({"processing_status": "canceling"}, BatchStatus.IN_PROGRESS),
        ({"processing_status": "ended", "request_counts": {"succeeded": 2, "errored": 1}}, BatchStatus.ENDED),
        ({"processing_status": "ended", "request_counts": {"errored": 2}}, BatchStatus.ERRORED),
        ({"processing_status": "ended", "request_counts": {"canceled": 2}}, BatchStatus.CANCELED),
        (
            {"processing_status": "ended", "cancel_initiated_at": "2024-09-24T18:37:24Z", "request_counts": {}},
            BatchStatus.CANCELED,
        ),
    ],
)
def test_batch_status_mapping(payload, expected):
    job = BatchJob.from_response({"id": "msgbatch_1", **payload})
    assert job.status is expected
    assert job.status.is_terminal == (expected is not BatchStatus.IN_PROGRESS)


def test_batch_job_requires_id():
    with pytest.raises(ProtocolError):
        BatchJob.from_response({"processing_status": "ended"})


def test_uploaded_file_requires_uri():
    with pytest.raises(ProtocolError):
        UploadedFile.from_response({"file": {"name": "files/x"}})


def test_failure_never_has_empty_message():
    result = OperationResult.failure("", cause=ValueError())
    assert result.error == "ValueError"
    assert not result.ok
    assert result.as_dict() == {"error": "ValueError"}


def test_batch_status_ignores_malformed_counts():
    job = BatchJob.from_response({"id": "msgbatch_1", "processing_status": "ended", "request_counts": []})
    assert job.status is BatchStatus.ENDED
