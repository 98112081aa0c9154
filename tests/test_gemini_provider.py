import pytest

from ai_assistant.config import ProviderConfig
from ai_assistant.providers.gemini_provider import GeminiProvider, to_contents
from ai_assistant.transport import Transport
from ai_assistant.types import ConfigurationError, ProtocolError, TransportError, UploadedFile


class DummyResponse:
    def __init__(self, status_code=200, headers=None, payload=None, text=""):
        self.status_code = status_code
        self.headers = headers or {}
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeTransport(Transport):
    def __init__(self, requests=None, responses=None):
        super().__init__(timeout=5)
        self.requests = list(requests or [])
        self.responses = list(responses or [])
        self.calls = []

    def request(self, method, url, headers=None, json_body=None, params=None, data=None, stream=False):
        self.calls.append(
            {"kind": "request", "method": method, "url": url, "headers": headers, "json": json_body, "params": params, "data": data}
        )
        return self.requests.pop(0)

    def send(self, method, url, headers=None, json_body=None, params=None):
        self.calls.append({"kind": "send", "method": method, "url": url, "json": json_body, "params": params})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def stream(self, method, url, headers=None, json_body=None, params=None):
        self.calls.append({"kind": "stream", "method": method, "url": url, "json": json_body})
        return iter(self.responses.pop(0))


def make_config(**overrides):
    values = {
        "name": "gemini",
        "api_key": "g-key",
        "base_url": "https://generativelanguage.googleapis.com/v1beta/",
        "upload_url": "https://generativelanguage.googleapis.com/upload/v1beta/files",
        "default_model": "gemini-1.5-flash",
        "embedding_model": "text-embedding-004",
    }
    values.update(overrides)
    return ProviderConfig(**values)


def upload_finalize(uri="https://generativelanguage.googleapis.com/v1beta/files/abc", mime_type=None):
    file_info = {"name": "files/abc", "uri": uri, "displayName": "clip.mp3"}
    if mime_type:
        file_info["mimeType"] = mime_type
    return DummyResponse(payload={"file": file_info})


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "clip.mp3"
    path.write_bytes(b"ID3fakeaudio")
    return path


@pytest.mark.parametrize("field", ["api_key", "base_url"])
def test_empty_credentials_rejected(field):
    with pytest.raises(ConfigurationError):
        GeminiProvider(make_config(**{field: ""}), FakeTransport())


def test_endpoint_format():
    provider = GeminiProvider(make_config(), FakeTransport())
    assert (
        provider.endpoint("gemini-1.5-flash", "generateContent")
        == "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent?key=g-key"
    )
    # a model carrying its own action suffix is not doubled
    assert provider.endpoint("gemini-pro:generateContent", "embedContent").endswith("models/gemini-pro:embedContent?key=g-key")


def test_generate_text_has_no_tools_by_default():
    transport = FakeTransport(responses=[{"candidates": []}])
    provider = GeminiProvider(make_config(), transport)

    result = provider.generate_text("hello")

    assert result.ok
    assert transport.calls[0]["json"] == {"contents": [{"parts": [{"text": "hello"}]}]}


def test_tools_added_on_request():
    transport = FakeTransport(responses=[{"candidates": []}])
    provider = GeminiProvider(make_config(), transport)

    provider.generate_text(
        "what's new?",
        {"code_execution": True, "google_search_retrieval": True, "temperature": 0.1, "max_tokens": 64},
    )

    payload = transport.calls[0]["json"]
    assert payload["tools"] == [{"code_execution": {}}, {"google_search_retrieval": {}}]
    assert payload["generationConfig"] == {"temperature": 0.1, "maxOutputTokens": 64}


def test_stream_uses_sse_endpoint():
    transport = FakeTransport(responses=[[{"candidates": [1]}, {"candidates": [2]}]])
    provider = GeminiProvider(make_config(), transport).stream()

    result = provider.generate_text("hello")

    assert transport.calls[0]["url"].endswith("models/gemini-1.5-flash:streamGenerateContent?key=g-key&alt=sse")
    assert len(list(result.stream)) == 2


def test_chat_maps_assistant_to_model():
    contents = to_contents(
        [{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello"}]
    )
    assert contents == [
        {"role": "user", "parts": [{"text": "Hi"}]},
        {"role": "model", "parts": [{"text": "Hello"}]},
    ]


def test_embeddings_use_embedding_model():
    transport = FakeTransport(responses=[{"embedding": {"values": [0.1]}}])
    provider = GeminiProvider(make_config(), transport)

    provider.generate_embeddings("vector me")

    call = transport.calls[0]
    assert ":embedContent?key=g-key" in call["url"]
    assert call["json"]["model"] == "models/text-embedding-004"


def test_upload_without_session_header_stops(audio_file):
    transport = FakeTransport(requests=[DummyResponse(headers={})])
    provider = GeminiProvider(make_config(), transport)

    result = provider.transcribe_audio(str(audio_file))

    assert not result.ok
    assert isinstance(result.cause, ProtocolError)
    assert len(transport.calls) == 1


def test_transcribe_uploads_then_references_file(audio_file):
    transport = FakeTransport(
        requests=[
            DummyResponse(headers={"x-goog-upload-url": "https://upload.example/session/1"}),
            upload_finalize(),
        ],
        responses=[{"candidates": [{"content": {"parts": [{"text": "hello world"}]}}]}],
    )
    provider = GeminiProvider(make_config(), transport)

    result = provider.transcribe_audio(str(audio_file))

    assert result.ok
    start, finalize, generate = transport.calls
    assert start["url"] == "https://generativelanguage.googleapis.com/upload/v1beta/files"
    assert start["headers"]["X-Goog-Upload-Protocol"] == "resumable"
    assert start["headers"]["X-Goog-Upload-Command"] == "start"
    assert start["headers"]["X-Goog-Upload-Header-Content-Length"] == "12"
    assert start["headers"]["X-Goog-Upload-Header-Content-Type"] == "audio/mpeg"
    assert start["params"] == {"key": "g-key"}

    assert finalize["url"] == "https://upload.example/session/1"
    assert finalize["headers"]["X-Goog-Upload-Command"] == "upload, finalize"
    assert finalize["headers"]["X-Goog-Upload-Offset"] == "0"
    assert finalize["data"] == b"ID3fakeaudio"

    parts = generate["json"]["contents"][0]["parts"]
    assert parts[0] == {"text": "Generate a transcript of the speech."}
    assert parts[1] == {
        "file_data": {
            "mime_type": "audio/mpeg",
            "file_uri": "https://generativelanguage.googleapis.com/v1beta/files/abc",
        }
    }


def test_finalize_non_200_is_failure(audio_file):
    transport = FakeTransport(
        requests=[
            DummyResponse(headers={"X-Goog-Upload-URL": "https://upload.example/session/1"}),
            DummyResponse(status_code=202, text="accepted"),
        ]
    )
    provider = GeminiProvider(make_config(), transport)

    result = provider.upload_file(str(audio_file))

    assert not result.ok
    assert isinstance(result.cause, TransportError)
    assert len(transport.calls) == 2


def test_upload_file_returns_uploaded_file(audio_file):
    transport = FakeTransport(
        requests=[
            DummyResponse(headers={"X-Goog-Upload-URL": "https://upload.example/session/1"}),
            upload_finalize(mime_type="audio/mp3"),
        ]
    )
    provider = GeminiProvider(make_config(), transport)

    result = provider.upload_file(str(audio_file), display_name="my clip")

    assert result.value == UploadedFile(
        uri="https://generativelanguage.googleapis.com/v1beta/files/abc",
        mime_type="audio/mp3",
        display_name="clip.mp3",
        name="files/abc",
    )
    assert transport.calls[0]["json"] == {"file": {"display_name": "my clip"}}


def test_missing_local_file_raises_before_io(tmp_path):
    transport = FakeTransport()
    provider = GeminiProvider(make_config(), transport)
    with pytest.raises(ConfigurationError):
        provider.upload_file(str(tmp_path / "nope.wav"))
    assert transport.calls == []


def test_file_and_cache_resources():
    transport = FakeTransport(responses=[{}, {"name": "cachedContents/c1"}])
    provider = GeminiProvider(make_config(), transport)

    provider.delete_file("abc")
    provider.create_cache([{"role": "user", "content": "long context"}], {"ttl": "300s"})

    delete, create = transport.calls
    assert delete["method"] == "DELETE"
    assert delete["url"] == "https://generativelanguage.googleapis.com/v1beta/files/abc"
    assert create["url"] == "https://generativelanguage.googleapis.com/v1beta/cachedContents"
    assert create["json"]["model"] == "models/gemini-1.5-flash"
    assert create["json"]["ttl"] == "300s"


@pytest.mark.parametrize("body", [{"files": {"name": "files/abc"}}, [{"uri": "x"}]])
def test_list_files_malformed_body_is_failure(body):
    transport = FakeTransport(responses=[body])
    provider = GeminiProvider(make_config(), transport)

    result = provider.list_files()

    assert not result.ok
    assert isinstance(result.cause, ProtocolError)


def test_upload_accepts_top_level_file_body(audio_file):
    transport = FakeTransport(
        requests=[
            DummyResponse(headers={"X-Goog-Upload-URL": "https://upload.example/session/1"}),
            DummyResponse(payload={"name": "files/abc", "uri": "https://generativelanguage.googleapis.com/v1beta/files/abc"}),
        ]
    )
    provider = GeminiProvider(make_config(), transport)

    result = provider.upload_file(str(audio_file))

    assert result.ok
    assert result.value.uri == "https://generativelanguage.googleapis.com/v1beta/files/abc"
    assert result.value.mime_type == "audio/mpeg"
