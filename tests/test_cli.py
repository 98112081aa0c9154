import json

from ai_assistant.cli import main


class DummyResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


def write_settings(tmp_path):
    path = tmp_path / "ai.yaml"
    path.write_text(
        "default: huggingface\n"
        "providers:\n"
        "  huggingface:\n"
        "    api_key: hf_test\n"
        "  claude:\n"
        "    api_key: sk-ant-test\n",
        encoding="utf-8",
    )
    return str(path)


def test_providers_command_marks_default(tmp_path, capsys):
    code = main(["--settings", write_settings(tmp_path), "providers"])

    out = capsys.readouterr().out
    assert code == 0
    assert "- huggingface (default)" in out
    assert "- openai" in out


def test_call_prints_json_result(tmp_path, capsys, monkeypatch):
    sent = {}

    def fake_request(method, url, **kwargs):
        sent["url"] = url
        sent["json"] = kwargs["json"]
        return DummyResponse(text='[{"generated_text": "hi there"}]')

    monkeypatch.setattr("ai_assistant.transport.requests.request", fake_request)

    code = main(
        ["--settings", write_settings(tmp_path), "call", "generate_text", "hi", "-o", 'parameters={"max_new_tokens": 5}']
    )

    assert code == 0
    assert json.loads(capsys.readouterr().out) == [{"generated_text": "hi there"}]
    assert sent["url"].endswith("/models/gpt2")
    assert sent["json"] == {"inputs": "hi", "parameters": {"max_new_tokens": 5}}


def test_unsupported_operation_exits_nonzero(tmp_path, capsys):
    code = main(["--settings", write_settings(tmp_path), "call", "chat", "[]"])

    assert code == 1
    assert "does not support chat" in capsys.readouterr().err


def test_batch_cancel_on_ended_batch_reports_error(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(
        "ai_assistant.transport.requests.request",
        lambda *a, **k: DummyResponse(
            text='{"id": "msgbatch_1", "processing_status": "ended", "request_counts": {"succeeded": 1}}'
        ),
    )

    code = main(["--settings", write_settings(tmp_path), "--provider", "claude", "batch", "cancel", "msgbatch_1"])

    assert code == 1
    assert "cancel rejected" in json.loads(capsys.readouterr().out)["error"]


def test_upload_requires_file_capability(tmp_path, capsys):
    code = main(["--settings", write_settings(tmp_path), "--provider", "claude", "upload", "x.pdf"])

    assert code == 1
    assert "does not support file uploads" in capsys.readouterr().err
