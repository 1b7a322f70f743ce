import base64
import json

import httpx
import pytest

from tests.factories import make_word
from wordmemory.domain.errors import GitHubSyncError
from wordmemory.infrastructure.github_sync import GitHubSync
from wordmemory.infrastructure.serialization import word_to_dict

CONTENTS_URL = "https://api.github.com/repos/me/vocab/contents/data/vocabulary.json"


def _encoded(records) -> str:
    return base64.b64encode(json.dumps(records).encode("utf-8")).decode("ascii")


def _sync(handler, token="secret") -> GitHubSync:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubSync("me", "vocab", token=token, client=client)


@pytest.mark.asyncio
async def test_load_decodes_words():
    word = make_word("a")

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == CONTENTS_URL
        assert request.headers["Authorization"] == "Bearer secret"
        return httpx.Response(200, json={"sha": "abc", "content": _encoded([word_to_dict(word)])})

    words = await _sync(handler).load()

    assert words == [word]


@pytest.mark.asyncio
async def test_load_missing_file_is_empty():
    words = await _sync(lambda request: httpx.Response(404, json={"message": "Not Found"})).load()
    assert words == []


@pytest.mark.asyncio
async def test_save_sends_sha_of_existing_file():
    sent = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"sha": "abc123", "content": _encoded([])})
        sent.update(json.loads(request.content))
        return httpx.Response(200, json={"content": {"sha": "def456"}})

    ok = await _sync(handler).save([make_word("a"), make_word("b")])

    assert ok is True
    assert sent["sha"] == "abc123"
    decoded = json.loads(base64.b64decode(sent["content"]))
    assert [r["id"] for r in decoded] == ["a", "b"]
    assert "2 words" in sent["message"]


@pytest.mark.asyncio
async def test_save_creates_new_file_without_sha():
    sent = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(404)
        sent.update(json.loads(request.content))
        return httpx.Response(201, json={})

    await _sync(handler).save([])

    assert "sha" not in sent


@pytest.mark.asyncio
async def test_save_requires_token():
    with pytest.raises(GitHubSyncError):
        await _sync(lambda request: httpx.Response(200), token=None).save([])


@pytest.mark.asyncio
async def test_http_error_carries_status():
    with pytest.raises(GitHubSyncError) as exc:
        await _sync(lambda request: httpx.Response(401, json={"message": "Bad credentials"})).load()
    assert exc.value.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [42, "words", {"words": 7}])
async def test_load_rejects_non_list_payload(payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"sha": "abc", "content": _encoded(payload)})

    with pytest.raises(GitHubSyncError, match="list of words"):
        await _sync(handler).load()
