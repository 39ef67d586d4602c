"""
Twitter (X) posting client

Wraps the synchronous tweepy v2 ``Client`` for use from asyncio code and posts
multi-part analyses as reply threads.
"""

import asyncio
from typing import List, Optional

import tweepy
from loguru import logger

from models.config import TwitterCredentials
from utils.errors import ConfigurationError


class TwitterClient:
    """Post tweets and reply chains with OAuth 1.0a user credentials"""

    def __init__(self, credentials: TwitterCredentials, client: Optional[tweepy.Client] = None):
        """
        Args:
            credentials: API key/secret + access token/secret
            client: Pre-built tweepy client (tests)

        Raises:
            ConfigurationError: credentials are incomplete and no client was given
        """
        if client is None:
            if not credentials.is_complete:
                raise ConfigurationError("Twitter credentials are incomplete")
            client = tweepy.Client(
                bearer_token=credentials.bearer_token,
                consumer_key=credentials.api_key,
                consumer_secret=credentials.api_secret,
                access_token=credentials.access_token,
                access_token_secret=credentials.access_token_secret,
            )
        self.client = client
        self.tweets_sent = 0

    async def post_tweet(self, text: str, in_reply_to_tweet_id: Optional[str] = None) -> Optional[str]:
        """
        Post one tweet

        Returns:
            The new tweet id, or None when the API response carried no id
        """
        loop = asyncio.get_event_loop()
        response = await loop.run_in_executor(
            None,
            lambda: self.client.create_tweet(text=text, in_reply_to_tweet_id=in_reply_to_tweet_id),
        )
        data = getattr(response, "data", None) or {}
        tweet_id = data.get("id")
        if tweet_id is None:
            logger.error(f"Tweet response carried no id: {response}")
            return None
        self.tweets_sent += 1
        return str(tweet_id)

    async def send_thread(self, parts: List[str], delay: float = 1.0) -> List[str]:
        """
        Post ``parts`` as a reply chain

        A failed part is logged and skipped; the next part replies to the last
        tweet that did go out.

        Returns:
            Ids of the tweets that were posted
        """
        posted: List[str] = []
        previous_id: Optional[str] = None

        for index, part in enumerate(parts, 1):
            text = part.strip()
            if not text:
                continue
            try:
                tweet_id = await self.post_tweet(text, in_reply_to_tweet_id=previous_id)
            except tweepy.TweepyException as e:
                logger.error(f"❌ Failed to send tweet {index}/{len(parts)}: {e}")
                continue

            if tweet_id:
                posted.append(tweet_id)
                previous_id = tweet_id
                logger.info(f"🐦 Tweet {index}/{len(parts)} sent: {text[:50]}...")

            if index < len(parts):
                await asyncio.sleep(delay)

        logger.info(f"Thread finished: {len(posted)}/{len(parts)} tweets posted")
        return posted
