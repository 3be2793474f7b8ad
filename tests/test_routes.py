import json

import httpx
import pytest

from onemin2api.main import create_app
from tests.helpers import ChunkedStream


def _record(value):
    return {"aiRecord": {"aiRecordDetail": {"resultObject": value}}}


def _sse_events(text):
    return [event for event in text.split("\n\n") if event]


# ==================== 基础 ====================

def test_health_and_root_need_no_key(client, upstream):
    health = client.get("/health")
    assert health.status_code == 200
    assert "/v1/chat/completions" in health.json()["endpoints"]["openai"]
    assert client.get("/").json()["health"] == "/health"
    assert upstream.requests == []


def test_unknown_endpoint_returns_json_404(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {
        "error": {"message": "Endpoint GET /nope not found", "type": "invalid_request_error"}
    }


def test_missing_key_is_rejected_before_upstream(client, upstream):
    response = client.post("/v1/chat/completions", json={
        "model": "gpt-4o", "messages": [{"role": "user", "content": "Hello"}],
    })
    assert response.status_code == 401
    assert response.json()["error"]["type"] == "authentication_error"
    assert upstream.requests == []


def test_configured_key_is_used_without_header(make_client, make_settings, upstream):
    client = make_client(make_settings(onemin_api_key="configured-key"))
    upstream.json("POST", "/api/features", {"result": "hi"})

    response = client.post("/v1/chat/completions", json={
        "model": "gpt-4o", "messages": [{"role": "user", "content": "Hello"}],
    })

    assert response.status_code == 200
    assert upstream.requests[0].headers["API-KEY"] == "configured-key"


def test_bearer_token_is_forwarded(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", {"result": "hi"})
    client.post("/v1/chat/completions", headers=auth_headers, json={
        "model": "gpt-4o", "messages": [{"role": "user", "content": "Hello"}],
    })
    assert upstream.requests[0].headers["API-KEY"] == "test-key"


def test_production_without_key_refuses_to_start(make_settings):
    with pytest.raises(RuntimeError):
        create_app(make_settings(environment="production"))


def test_rate_limit(make_client, make_settings):
    client = make_client(make_settings(rate_limit_max=2, rate_limit_window_seconds=60))
    assert client.get("/health").status_code == 200
    assert client.get("/health").status_code == 200

    response = client.get("/health")
    assert response.status_code == 429
    assert response.json()["error"]["type"] == "rate_limit_exceeded"
    assert response.headers["RateLimit-Remaining"] == "0"


# ==================== Chat ====================

def test_chat_completion_json(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", _record(["Hello ", "there"]))

    response = client.post("/v1/chat/completions", headers=auth_headers, json={
        "model": "claude-haiku",
        "messages": [
            {"role": "system", "content": "S"},
            {"role": "user", "content": "Hi"},
        ],
    })

    assert response.status_code == 200
    body = response.json()
    assert body["object"] == "chat.completion"
    assert body["model"] == "claude-haiku"
    assert body["choices"][0]["message"]["content"] == "Hello there"

    sent = upstream.last_json()
    assert sent["model"] == "claude-3-5-haiku-20241022"
    assert sent["promptObject"]["prompt"] == "System: S\n\nUser: Hi"


def test_chat_completion_stream(client, upstream, auth_headers):
    upstream.on(
        "POST", "/api/features",
        lambda request: httpx.Response(200, stream=ChunkedStream([b"Hel", b"lo", b"!"])),
    )

    response = client.post("/v1/chat/completions", headers=auth_headers, json={
        "model": "gpt-4o", "stream": True, "messages": [{"role": "user", "content": "Hi"}],
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert upstream.requests[0].url.params["isStreaming"] == "true"

    events = _sse_events(response.text)
    assert events[-1] == "data: [DONE]"
    chunks = [json.loads(event[len("data: "):]) for event in events[:-1]]
    assert "".join(c["choices"][0]["delta"].get("content", "") for c in chunks) == "Hello!"
    assert chunks[-1]["choices"][0]["finish_reason"] == "stop"
    assert len({c["id"] for c in chunks}) == 1


def test_chat_stream_upstream_failure_truncates_output(client, upstream, auth_headers):
    upstream.on(
        "POST", "/api/features",
        lambda request: httpx.Response(
            200, stream=ChunkedStream([b"Hel", b"lo"], error=httpx.ReadError("connection reset")),
        ),
    )

    response = client.post("/v1/chat/completions", headers=auth_headers, json={
        "model": "gpt-4o", "stream": True, "messages": [{"role": "user", "content": "Hi"}],
    })

    assert response.status_code == 200
    events = _sse_events(response.text)
    assert "data: [DONE]" not in events
    chunks = [json.loads(event[len("data: "):]) for event in events]
    assert [c["choices"][0]["delta"]["content"] for c in chunks] == ["Hel", "lo"]
    assert all(c["choices"][0]["finish_reason"] is None for c in chunks)


def test_chat_stream_open_failure_is_a_json_error(client, upstream, auth_headers):
    upstream.on("POST", "/api/features", lambda request: httpx.Response(429, text="quota"))

    response = client.post("/v1/chat/completions", headers=auth_headers, json={
        "model": "gpt-4o", "stream": True, "messages": [{"role": "user", "content": "Hi"}],
    })

    assert response.status_code == 429
    assert response.json()["error"] == {"message": "API Error 429: quota", "type": "upstream_error"}


def test_chat_validation_error_has_details(client, upstream, auth_headers):
    response = client.post("/v1/chat/completions", headers=auth_headers, json={"model": "gpt-4o", "messages": []})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "invalid_request_error"
    assert error["details"][0]["loc"] == ["messages"]
    assert upstream.requests == []


def test_chat_invalid_json(client, auth_headers):
    response = client.post(
        "/v1/chat/completions",
        headers={**auth_headers, "Content-Type": "application/json"},
        content=b"{not json",
    )
    assert response.status_code == 400


# ==================== Models / 未实现 ====================

def test_list_models(client, auth_headers):
    body = client.get("/v1/models", headers=auth_headers).json()
    ids = {model["id"] for model in body["data"]}
    assert body["object"] == "list"
    assert {"gpt-4o", "dall-e-3", "tts-1", "kling"} <= ids
    assert body["data"][0]["owned_by"] == "1min-proxy"


def test_get_model(client, auth_headers):
    response = client.get("/v1/models/gpt-4o", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["id"] == "gpt-4o"


def test_unknown_model_is_404(client, auth_headers):
    response = client.get("/v1/models/not-a-model", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error"] == {"message": "Model 'not-a-model' not found", "type": "not_found_error"}


@pytest.mark.parametrize("path", ["/v1/embeddings", "/v1/images/edits"])
@pytest.mark.parametrize("payload", [{}, {"input": "x", "model": "text-embedding-3-small"}])
def test_not_implemented_endpoints(client, upstream, auth_headers, path, payload):
    response = client.post(path, headers=auth_headers, json=payload)
    assert response.status_code == 501
    assert response.json()["error"]["type"] == "not_implemented"
    assert upstream.requests == []


# ==================== Images ====================

def test_image_generation(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", _record(["images/a.webp", "https://cdn.example.com/b.webp"]))

    response = client.post("/v1/images/generations", headers=auth_headers, json={
        "model": "flux-pro", "prompt": "a cat", "size": "1792x1024", "n": 2,
    })

    assert response.status_code == 200
    assert response.json()["data"] == [
        {"url": "https://asset.1min.ai/images/a.webp"},
        {"url": "https://cdn.example.com/b.webp"},
    ]
    sent = upstream.last_json()
    assert sent["type"] == "IMAGE_GENERATOR"
    assert sent["model"] == "black-forest-labs/flux-pro"
    assert sent["promptObject"] == {
        "prompt": "a cat",
        "num_outputs": 2,
        "aspect_ratio": "7:4",
        "output_format": "webp",
        "quality": "standard",
        "style": "vivid",
    }


def test_image_generation_rejects_bad_size(client, auth_headers):
    response = client.post("/v1/images/generations", headers=auth_headers, json={"prompt": "x", "size": "10x10"})
    assert response.status_code == 400


def test_image_variation_with_url(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", {"result": ["images/v.webp"]})

    response = client.post("/v1/images/variations", headers=auth_headers, json={
        "image": "https://example.com/a.png", "n": 3,
    })

    assert response.status_code == 200
    assert response.json()["data"] == [{"url": "https://asset.1min.ai/images/v.webp"}]
    prompt_object = upstream.last_json()["promptObject"]
    assert prompt_object["imageUrl"] == "https://example.com/a.png"
    assert prompt_object["n"] == 3
    assert prompt_object["mode"] == "fast"


def test_image_variation_with_upload(client, upstream, auth_headers):
    upstream.json("POST", "/api/assets", {"asset": {"key": "uploads/a.png"}})
    upstream.json("POST", "/api/features", _record("images/v.webp"))

    response = client.post(
        "/v1/images/variations",
        headers=auth_headers,
        files={"image": ("a.png", b"\x89PNG", "image/png")},
        data={"n": "2"},
    )

    assert response.status_code == 200
    assert upstream.last_json()["promptObject"]["imageUrl"] == "uploads/a.png"


# ==================== Audio ====================

def test_speech_streams_audio(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", _record("audio/x.mp3"))
    upstream.on("GET", "/audio/x.mp3", lambda request: httpx.Response(200, content=b"ID3-audio"))

    response = client.post("/v1/audio/speech", headers=auth_headers, json={
        "input": "hello", "voice": "nova", "response_format": "mp3",
    })

    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/mpeg"
    assert response.content == b"ID3-audio"
    features_call = json.loads(upstream.requests[0].content)
    assert features_call["promptObject"] == {"text": "hello", "voice": "nova", "format": "mp3"}
    assert str(upstream.requests[1].url) == "https://asset.1min.ai/audio/x.mp3"


def test_speech_without_audio_url(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", {"status": "queued"})
    response = client.post("/v1/audio/speech", headers=auth_headers, json={"input": "hello"})
    assert response.status_code == 500
    assert response.json()["error"]["message"] == "No audio generated"


def test_transcription_upload_returns_text(client, upstream, auth_headers):
    upstream.json("POST", "/api/assets", {"fileContent": {"path": "audio/upload.mp3"}})
    upstream.json("POST", "/api/features", {"result": "transcribed words"})

    response = client.post(
        "/v1/audio/transcriptions",
        headers=auth_headers,
        files={"file": ("speech.mp3", b"ID3", "audio/mpeg")},
        data={"model": "whisper-1", "response_format": "text", "language": "fr"},
    )

    assert response.status_code == 200
    assert response.text == "transcribed words"
    sent = upstream.last_json()
    assert sent["type"] == "SPEECH_TO_TEXT"
    assert sent["promptObject"] == {"audioUrl": "audio/upload.mp3", "language": "fr"}


def test_transcription_upload_without_reference_fails(client, upstream, auth_headers):
    upstream.json("POST", "/api/assets", {"ok": True})

    response = client.post(
        "/v1/audio/transcriptions",
        headers=auth_headers,
        files={"file": ("speech.mp3", b"ID3", "audio/mpeg")},
    )

    assert response.status_code == 500
    assert response.json()["error"]["type"] == "upstream_error"
    assert len(upstream.requests) == 1


@pytest.mark.parametrize("path, field, data", [
    ("/v1/audio/transcriptions", "file", {"response_format": "bogus"}),
    ("/v1/audio/transcriptions", "file", {"language": "english"}),
    ("/v1/images/variations", "image", {"n": "50"}),
    ("/v1/images/variations", "image", {"size": "7x7"}),
])
def test_invalid_upload_request_is_rejected_before_upload(client, upstream, auth_headers, path, field, data):
    response = client.post(
        path,
        headers=auth_headers,
        files={field: ("input.bin", b"\x00\x01", "application/octet-stream")},
        data=data,
    )

    assert response.status_code == 400
    assert response.json()["error"]["type"] == "invalid_request_error"
    assert upstream.requests == []


def test_translation_forces_english(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", _record("hello"))

    response = client.post("/v1/audio/translations", headers=auth_headers, json={
        "file": "https://example.com/a.mp3",
    })

    assert response.json() == {"text": "hello"}
    assert upstream.last_json()["promptObject"]["language"] == "en"


# ==================== 原生接口 ====================

def test_native_feature_passthrough(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", {"aiRecord": {"uuid": "r1"}})

    response = client.post("/api/features", headers=auth_headers, json={
        "type": "IMAGE_TEXT_EDITOR",
        "model": "custom-model",
        "conversationId": "c1",
        "promptObject": {"imageUrl": "u", "text": "t"},
    })

    assert response.json() == {"aiRecord": {"uuid": "r1"}}
    assert upstream.last_json() == {
        "type": "IMAGE_TEXT_EDITOR",
        "model": "custom-model",
        "conversationId": "c1",
        "promptObject": {"imageUrl": "u", "text": "t"},
    }


def test_native_feature_rejects_unknown_type(client, upstream, auth_headers):
    response = client.post("/api/features", headers=auth_headers, json={
        "type": "TIME_TRAVEL", "model": "m", "promptObject": {},
    })
    assert response.status_code == 400
    assert upstream.requests == []


def test_native_feature_stream_is_raw(client, upstream, auth_headers):
    raw = [b'data: {"a": 1}\n\n', b"data: [DONE]\n\n"]
    upstream.on("POST", "/api/features", lambda request: httpx.Response(200, stream=ChunkedStream(raw)))

    response = client.post("/api/features/stream", headers=auth_headers, json={
        "type": "CHAT_WITH_AI", "model": "gpt-4o", "promptObject": {"prompt": "hi"},
    })

    assert response.content == b"".join(raw)


def test_native_image_generate_merges_extra(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", _record(["images/a.webp"]))

    client.post("/api/image/generate", headers=auth_headers, json={
        "model": "flux-dev",
        "prompt": "city",
        "aspectRatio": "16:9",
        "extra": {"output_format": "png", "seed": 7},
    })

    sent = upstream.last_json()
    assert sent["model"] == "black-forest-labs/flux-dev"
    assert sent["promptObject"] == {
        "prompt": "city",
        "num_outputs": 1,
        "aspect_ratio": "16:9",
        "output_format": "png",
        "seed": 7,
    }


def test_native_replace_background(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", _record("images/bg.png"))

    client.post("/api/image/replace-background", headers=auth_headers, json={
        "model": "m", "imageUrl": "u", "newBackground": "beach",
    })

    sent = upstream.last_json()
    assert sent["type"] == "BACKGROUND_REPLACER"
    assert sent["promptObject"] == {"imageUrl": "u", "backgroundPrompt": "beach"}


def test_native_chat_with_pdf(client, upstream, auth_headers):
    upstream.json("POST", "/api/features", {"result": "summary"})

    response = client.post("/api/chat/pdf", headers=auth_headers, json={
        "model": "gpt-4o", "prompt": "Summarize", "conversationId": "conv-9",
    })

    assert response.json() == {"result": "summary"}
    assert upstream.last_json() == {
        "type": "CHAT_WITH_PDF",
        "model": "gpt-4o",
        "conversationId": "conv-9",
        "promptObject": {"prompt": "Summarize", "isMixed": False},
    }


def test_native_conversation_create_uses_camel_case(client, upstream, auth_headers):
    upstream.json("POST", "/api/conversations", {"conversation": {"uuid": "c1"}})

    client.post("/api/conversations", headers=auth_headers, json={
        "type": "CHAT_WITH_YOUTUBE_VIDEO",
        "title": "talk",
        "youtubeUrl": "https://www.youtube.com/watch?v=abc",
    })

    assert upstream.last_json() == {
        "type": "CHAT_WITH_YOUTUBE_VIDEO",
        "title": "talk",
        "youtubeUrl": "https://www.youtube.com/watch?v=abc",
    }


def test_native_asset_upload(client, upstream, auth_headers):
    upstream.json("POST", "/api/assets", {"asset": {"key": "k/doc.pdf"}})

    response = client.post(
        "/api/assets",
        headers=auth_headers,
        files={"asset": ("doc.pdf", b"%PDF", "application/pdf")},
    )

    assert response.json() == {"asset": {"key": "k/doc.pdf"}}
    assert b'filename="doc.pdf"' in upstream.requests[0].content


def test_native_upstream_error_is_forwarded(client, upstream, auth_headers):
    upstream.on("DELETE", "/api/conversations/missing", lambda request: httpx.Response(404, text="gone"))

    response = client.delete("/api/conversations/missing", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "API Error 404: gone"
