"""Unit tests for the X (Twitter) tool, using httpx.MockTransport."""

import json

import httpx
import pytest

from toolchat_server.errors import ArgumentOutOfDomain, MissingArgument, ToolExecutionFailed
from toolchat_server.tools import ToolRegistry
from toolchat_server.tools.builtin import XClient, create_x_tool
from toolchat_server.tools.builtin.x import (
    TRENDING_TOPICS,
    XArguments,
    XConfigurationError,
    XService,
    render_x_result,
)

BASE_URL = "https://api.example.test/2"


class FakeXApi:
    """Records requests and answers the handful of endpoints the tool uses."""

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/2")

        if path == "/users/me":
            return httpx.Response(200, json={"data": {"id": "42", "username": "me"}})
        if path == "/tweets" and request.method == "POST":
            return httpx.Response(201, json={"data": {"id": "1001", "text": "posted"}})
        if path == "/tweets/1001" and request.method == "DELETE":
            return httpx.Response(200, json={"data": {"deleted": True}})
        if path == "/tweets/1001":
            return httpx.Response(
                200,
                json={
                    "data": {
                        "id": "1001",
                        "text": "hello",
                        "author_id": "42",
                        "public_metrics": {"like_count": 3, "retweet_count": 1},
                    }
                },
            )
        if path == "/users/by/username/ghost":
            return httpx.Response(200, json={"errors": [{"detail": "not found"}]})
        if path == "/users/by/username/alice":
            return httpx.Response(200, json={"data": {"id": "7"}})
        if path in ("/users/7/tweets", "/users/42/tweets", "/tweets/search/recent"):
            return httpx.Response(
                200,
                json={"data": [{"id": "1", "text": "a"}, {"id": "2", "text": "b"}]},
            )
        if path in ("/users/42/likes", "/users/42/retweets"):
            return httpx.Response(200, json={"data": {"liked": True}})
        return httpx.Response(404, json={"title": "Not Found"})

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def api():
    return FakeXApi()


@pytest.fixture
def client(api):
    return XClient(BASE_URL, "secret-token", transport=httpx.MockTransport(api))


@pytest.fixture
def service(client):
    return XService(client)


@pytest.mark.asyncio
async def test_request_sends_bearer_token(client, api):
    """Test that requests are authenticated."""
    await client.me()

    assert api.requests[0].headers["Authorization"] == "Bearer secret-token"


@pytest.mark.asyncio
async def test_request_without_token():
    """Test that a missing token is a configuration error."""
    client = XClient(BASE_URL, None)

    with pytest.raises(XConfigurationError):
        await client.request("GET", "/users/me")


@pytest.mark.asyncio
async def test_post_tweet(service, api):
    """Test posting a tweet."""
    result = await service.post_tweet("Hello world")

    assert result.success
    assert result.tweet_id == "1001"
    assert api.last_json() == {"text": "Hello world"}


@pytest.mark.asyncio
async def test_post_reply(service, api):
    """Test posting a reply attaches the parent id."""
    await service.post_tweet("Agreed", reply_to="999")

    assert api.last_json() == {"text": "Agreed", "reply": {"in_reply_to_tweet_id": "999"}}


@pytest.mark.asyncio
async def test_post_tweet_too_long(service, api):
    """Test the 280 character limit."""
    with pytest.raises(ArgumentOutOfDomain, match="280"):
        await service.post_tweet("x" * 281)
    assert api.requests == []


@pytest.mark.asyncio
async def test_post_tweet_empty(service):
    """Test that blank text is rejected."""
    with pytest.raises(ArgumentOutOfDomain, match="empty"):
        await service.post_tweet("   ")


@pytest.mark.asyncio
async def test_get_tweet_by_id(service):
    """Test fetching a single tweet."""
    result = await service.get_tweets(tweet_id="1001")

    assert len(result.tweets) == 1
    tweet = result.tweets[0]
    assert tweet.text == "hello"
    assert tweet.likes == 3
    assert tweet.retweets == 1


@pytest.mark.asyncio
async def test_get_tweets_by_username(service, api):
    """Test fetching a user's timeline."""
    result = await service.get_tweets(username="alice", limit=5)

    assert [t.id for t in result.tweets] == ["1", "2"]
    assert api.requests[-1].url.params["max_results"] == "5"


@pytest.mark.asyncio
async def test_get_tweets_default_limit(service, api):
    """Test timelines default to ten tweets."""
    await service.get_tweets(username="alice")

    assert api.requests[-1].url.params["max_results"] == "10"


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, 4, 101, 500])
async def test_get_tweets_limit_out_of_range(service, api, limit):
    """Test limits outside 5..100 are rejected before any request is made."""
    with pytest.raises(ArgumentOutOfDomain, match="between 5 and 100"):
        await service.get_tweets(username="alice", limit=limit)
    assert api.requests == []


@pytest.mark.asyncio
async def test_get_tweets_unknown_user(service):
    """Test that an unknown user yields no tweets."""
    result = await service.get_tweets(username="ghost")

    assert result.tweets == []
    assert result.message == "Retrieved 0 tweet(s) from Twitter"


@pytest.mark.asyncio
async def test_search_tweets(service, api):
    """Test searching recent tweets."""
    await service.get_tweets(search_query="python")

    assert api.requests[-1].url.params["query"] == "python"


@pytest.mark.asyncio
async def test_own_timeline(service, api):
    """Test that no filters fetches the authenticated user's tweets."""
    result = await service.get_tweets()

    assert len(result.tweets) == 2
    assert api.requests[-1].url.path == "/2/users/42/tweets"


@pytest.mark.asyncio
async def test_like_and_retweet(service, api):
    """Test like and retweet target the authenticated user."""
    await service.like_tweet("1001")
    assert api.requests[-1].url.path == "/2/users/42/likes"
    assert api.last_json() == {"tweet_id": "1001"}

    await service.retweet("1001")
    assert api.requests[-1].url.path == "/2/users/42/retweets"


@pytest.mark.asyncio
async def test_delete_tweet(service, api):
    """Test deleting a tweet."""
    result = await service.delete_tweet("1001")

    assert api.requests[-1].method == "DELETE"
    assert "deleted" in result.message


@pytest.mark.asyncio
async def test_trending(service, api):
    """Test trending topics come from the fixed list."""
    result = await service.get_trending()

    assert result.topics == TRENDING_TOPICS
    assert api.requests == []


@pytest.mark.asyncio
async def test_handle_requires_tweet_id(service):
    """Test actions that need a tweet id."""
    with pytest.raises(MissingArgument, match="like_tweet"):
        await service.handle(XArguments(action="like_tweet"))


@pytest.mark.asyncio
async def test_handle_requires_text(service):
    """Test posting without text."""
    with pytest.raises(MissingArgument):
        await service.handle(XArguments(action="post_tweet"))


def test_render_x_result():
    """Test the text rendering of tweets."""
    from toolchat_server.tools.builtin.x import Tweet, XActionResult

    result = XActionResult(
        message="Retrieved 1 tweet(s) from Twitter",
        tweets=[Tweet(id="1", text="hi", author="42")],
    )

    assert render_x_result(result) == "Retrieved 1 tweet(s) from Twitter\n- @42 (1): hi"


class TestThroughRegistry:
    """Tests for the X tool dispatched through the registry."""

    @pytest.mark.asyncio
    async def test_post_via_registry(self, client):
        """Test a full validated call."""
        registry = ToolRegistry([create_x_tool(client)])

        result = await registry.invoke("x_twitter", {"action": "post_tweet", "text": "hi"})

        assert result.ok
        assert result.text == "Tweet posted successfully to Twitter"

    @pytest.mark.asyncio
    async def test_unknown_action(self, client):
        """Test an unsupported action is out of domain."""
        registry = ToolRegistry([create_x_tool(client)])

        result = await registry.invoke("x_twitter", {"action": "follow"})

        assert isinstance(result.error, ArgumentOutOfDomain)

    @pytest.mark.asyncio
    async def test_api_error_is_execution_failure(self):
        """Test an HTTP error status becomes ToolExecutionFailed."""
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={}))
        client = XClient(BASE_URL, "bad-token", transport=transport)
        registry = ToolRegistry([create_x_tool(client)])

        result = await registry.invoke("x_twitter", {"action": "delete_tweet", "tweet_id": "1"})

        assert isinstance(result.error, ToolExecutionFailed)
        assert isinstance(result.error.cause, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_missing_token_is_execution_failure(self):
        """Test that an unconfigured client fails the call, not the turn."""
        registry = ToolRegistry([create_x_tool(XClient(BASE_URL, None))])

        result = await registry.invoke("x_twitter", {"action": "get_tweets"})

        assert isinstance(result.error, ToolExecutionFailed)
        assert "credentials not configured" in result.text
