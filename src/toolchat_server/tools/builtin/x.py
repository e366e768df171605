"""X (Twitter) tool: post and retrieve tweets via the X API v2.

This tool has side effects (posting, liking, retweeting and deleting act on a
real account), so the orchestrator never retries it.
"""

import logging
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field

from toolchat_server.errors import ArgumentOutOfDomain, MissingArgument
from toolchat_server.tools.types import ToolSpec

logger = logging.getLogger(__name__)

MAX_TWEET_LENGTH = 280
TWEET_FIELDS = "created_at,public_metrics,author_id"

# The X API v2 has no trends endpoint on the basic tiers
TRENDING_TOPICS = ["#AI", "#Technology", "#Programming", "#WebDevelopment", "#MachineLearning"]

Action = Literal[
    "post_tweet", "get_tweets", "like_tweet", "retweet", "delete_tweet", "get_trending"
]


class XConfigurationError(RuntimeError):
    """Raised when the X API credentials are not configured."""


class XArguments(BaseModel):
    """Arguments accepted by the x_twitter tool."""

    model_config = ConfigDict(strict=True, extra="forbid")

    action: Action = Field(description="The action to perform")
    text: str | None = Field(
        default=None, description="Tweet text content (required for post_tweet)"
    )
    reply_to: str | None = Field(
        default=None, description="Tweet ID to reply to (optional for post_tweet)"
    )
    tweet_id: str | None = Field(
        default=None, description="Tweet ID for specific operations"
    )
    username: str | None = Field(default=None, description="Username to get tweets from")
    limit: int | None = Field(
        default=None, description="Maximum number of tweets to retrieve (5-100, default 10)"
    )
    search_query: str | None = Field(
        default=None, description="Search query to filter tweets"
    )


class Tweet(BaseModel):
    id: str
    text: str
    author: str
    created_at: str | None = None
    likes: int = 0
    retweets: int = 0
    replies: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Tweet":
        metrics = data.get("public_metrics") or {}
        return cls(
            id=data["id"],
            text=data.get("text", ""),
            author=data.get("author_id") or "unknown",
            created_at=data.get("created_at"),
            likes=metrics.get("like_count", 0),
            retweets=metrics.get("retweet_count", 0),
            replies=metrics.get("reply_count", 0),
        )


class XActionResult(BaseModel):
    """Outcome of an x_twitter action."""

    success: bool = True
    message: str
    tweet_id: str | None = None
    tweets: list[Tweet] | None = None
    topics: list[str] | None = None


class XClient:
    """Minimal async client for the X API v2 endpoints the tool needs.

    Attributes:
        base_url: API root, e.g. "https://api.twitter.com/2"
        bearer_token: OAuth 2.0 user-context access token
    """

    def __init__(
        self,
        base_url: str,
        bearer_token: str | None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.bearer_token = bearer_token
        self._transport = transport
        self._timeout = timeout

    async def request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request and return the decoded JSON body.

        Raises:
            XConfigurationError: If no bearer token is configured
            httpx.HTTPStatusError: If the API answers with an error status
        """
        if not self.bearer_token:
            raise XConfigurationError(
                "X API credentials not configured. Set TOOLCHAT_X_BEARER_TOKEN."
            )

        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.bearer_token}"},
            transport=self._transport,
            timeout=self._timeout,
        ) as client:
            logger.debug(f"X API {method} {path}")
            response = await client.request(method, path, json=json, params=params)
            response.raise_for_status()
            return response.json() if response.content else {}

    async def me(self) -> str:
        data = await self.request("GET", "/users/me")
        return data["data"]["id"]


class XService:
    """Implements the x_twitter actions on top of an XClient."""

    def __init__(self, client: XClient) -> None:
        self.client = client

    async def post_tweet(self, text: str, reply_to: str | None = None) -> XActionResult:
        if not text.strip():
            raise ArgumentOutOfDomain("Tweet text cannot be empty")
        if len(text) > MAX_TWEET_LENGTH:
            raise ArgumentOutOfDomain(
                f"Tweet text cannot exceed {MAX_TWEET_LENGTH} characters"
            )

        payload: dict[str, Any] = {"text": text}
        if reply_to:
            payload["reply"] = {"in_reply_to_tweet_id": reply_to}

        data = await self.client.request("POST", "/tweets", json=payload)
        tweet_id = data["data"]["id"]
        logger.info(f"Posted tweet {tweet_id}")
        return XActionResult(
            message="Tweet posted successfully to Twitter", tweet_id=tweet_id
        )

    async def get_tweets(
        self,
        tweet_id: str | None = None,
        username: str | None = None,
        limit: int | None = None,
        search_query: str | None = None,
    ) -> XActionResult:
        if limit is not None and not 5 <= limit <= 100:
            raise ArgumentOutOfDomain("Limit must be between 5 and 100")
        params: dict[str, Any] = {"tweet.fields": TWEET_FIELDS}
        max_results = limit if limit is not None else 10

        if tweet_id:
            data = await self.client.request("GET", f"/tweets/{tweet_id}", params=params)
            items = [data["data"]] if data.get("data") else []
        elif username:
            user = await self.client.request("GET", f"/users/by/username/{username}")
            if not user.get("data"):
                items = []
            else:
                params["max_results"] = max_results
                data = await self.client.request(
                    "GET", f"/users/{user['data']['id']}/tweets", params=params
                )
                items = data.get("data") or []
        elif search_query:
            params["query"] = search_query
            params["max_results"] = max_results
            data = await self.client.request("GET", "/tweets/search/recent", params=params)
            items = data.get("data") or []
        else:
            me = await self.client.me()
            params["max_results"] = max_results
            data = await self.client.request("GET", f"/users/{me}/tweets", params=params)
            items = data.get("data") or []

        tweets = [Tweet.from_api(item) for item in items]
        return XActionResult(
            message=f"Retrieved {len(tweets)} tweet(s) from Twitter", tweets=tweets
        )

    async def like_tweet(self, tweet_id: str) -> XActionResult:
        me = await self.client.me()
        await self.client.request("POST", f"/users/{me}/likes", json={"tweet_id": tweet_id})
        return XActionResult(
            message=f"Tweet {tweet_id} liked successfully on Twitter", tweet_id=tweet_id
        )

    async def retweet(self, tweet_id: str) -> XActionResult:
        me = await self.client.me()
        await self.client.request(
            "POST", f"/users/{me}/retweets", json={"tweet_id": tweet_id}
        )
        return XActionResult(
            message=f"Tweet {tweet_id} retweeted successfully on Twitter",
            tweet_id=tweet_id,
        )

    async def delete_tweet(self, tweet_id: str) -> XActionResult:
        await self.client.request("DELETE", f"/tweets/{tweet_id}")
        return XActionResult(
            message=f"Tweet {tweet_id} deleted successfully from Twitter",
            tweet_id=tweet_id,
        )

    async def get_trending(self) -> XActionResult:
        return XActionResult(
            message="Retrieved trending topics", topics=list(TRENDING_TOPICS)
        )

    async def handle(self, arguments: XArguments) -> XActionResult:
        """Dispatch a validated x_twitter call to the matching action."""
        action = arguments.action
        if action == "post_tweet":
            if arguments.text is None:
                raise MissingArgument("Tweet text is required for posting")
            return await self.post_tweet(arguments.text, arguments.reply_to)
        if action == "get_tweets":
            return await self.get_tweets(
                tweet_id=arguments.tweet_id,
                username=arguments.username,
                limit=arguments.limit,
                search_query=arguments.search_query,
            )
        if action == "get_trending":
            return await self.get_trending()

        if not arguments.tweet_id:
            raise MissingArgument(f"Tweet ID is required for {action}")
        if action == "like_tweet":
            return await self.like_tweet(arguments.tweet_id)
        if action == "retweet":
            return await self.retweet(arguments.tweet_id)
        return await self.delete_tweet(arguments.tweet_id)


def render_x_result(result: XActionResult) -> str:
    lines = [result.message]
    for tweet in result.tweets or []:
        lines.append(f"- @{tweet.author} ({tweet.id}): {tweet.text}")
    if result.topics:
        lines.append(", ".join(result.topics))
    return "\n".join(lines)


def create_x_tool(client: XClient) -> ToolSpec:
    """Build the x_twitter ToolSpec bound to a client."""
    service = XService(client)
    return ToolSpec(
        name="x_twitter",
        description=(
            "Post and retrieve tweets, like/retweet, delete tweets, "
            "and get trending topics on X (Twitter)"
        ),
        arguments=XArguments,
        handler=service.handle,
        render=render_x_result,
        side_effects=True,
    )
