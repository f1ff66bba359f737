"""
cinerate/live/relay.py

Pushes newly created reviews to everybody currently looking at the same movie.

A subscriber is anything with a non-blocking ``deliver(event)`` method; for real
clients that is a WebSocketSubscriber wrapping one websocket connection. The relay
keeps no history: an event published while a client is disconnected is lost and
the client sees the review on its next refetch.
"""

import asyncio
import logging
import threading
from collections import defaultdict
from typing import Any, Dict, Hashable, List, Optional, Protocol, Set

from fastapi import WebSocket

from cinerate.api.schemas import AuthorResponse, ReviewAddedEvent, ReviewResponse
from cinerate.observability.metrics import LIVE_EVENTS, LIVE_SUBSCRIPTIONS


logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    def deliver(self, event: Dict[str, Any]) -> None:
        ...


class TopicRegistry:
    '''
    Maps a topic to the set of subscribers listening to it. A subscriber may
    listen to any number of topics at once.
    '''

    def __init__(self):
        self._topics: Dict[Hashable, Set[Subscriber]] = defaultdict(set)
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber, topic: Hashable) -> bool:
        '''Returns False if the subscriber already listened to the topic.'''
        with self._lock:
            members = self._topics[topic]
            if subscriber in members:
                return False
            members.add(subscriber)
            return True

    def unsubscribe(self, subscriber: Subscriber, topic: Hashable) -> bool:
        with self._lock:
            members = self._topics.get(topic)
            if not members or subscriber not in members:
                return False
            members.discard(subscriber)
            if not members:
                del self._topics[topic]
            return True

    def unsubscribe_all(self, subscriber: Subscriber) -> List[Hashable]:
        '''Removes the subscriber everywhere and returns the topics it left.'''
        with self._lock:
            left = [topic for topic, members in self._topics.items() if subscriber in members]
            for topic in left:
                members = self._topics[topic]
                members.discard(subscriber)
                if not members:
                    del self._topics[topic]
            return left

    def subscribers(self, topic: Hashable) -> List[Subscriber]:
        # Copy, so delivery can run without holding the lock
        with self._lock:
            return list(self._topics.get(topic, ()))

    def topics_for(self, subscriber: Subscriber) -> List[Hashable]:
        with self._lock:
            return [topic for topic, members in self._topics.items() if subscriber in members]

    def subscription_count(self) -> int:
        with self._lock:
            return sum(len(members) for members in self._topics.values())


def movie_topic(movie_id: str) -> str:
    return f"movie:{movie_id}"


class LiveUpdateRelay:
    '''
    Fan-out of review events, one group per movie.
    '''

    def __init__(self, registry: Optional[TopicRegistry] = None):
        self._registry = registry or TopicRegistry()

    def subscribe(self, connection: Subscriber, movie_id: str) -> None:
        if self._registry.subscribe(connection, movie_topic(movie_id)):
            LIVE_SUBSCRIPTIONS.inc()
            logger.debug("Connection %s joined movie %s.", id(connection), movie_id)

    def unsubscribe(self, connection: Subscriber, movie_id: str) -> None:
        if self._registry.unsubscribe(connection, movie_topic(movie_id)):
            LIVE_SUBSCRIPTIONS.dec()

    def unsubscribe_all(self, connection: Subscriber) -> None:
        left = self._registry.unsubscribe_all(connection)
        if left:
            LIVE_SUBSCRIPTIONS.dec(len(left))
            logger.debug("Connection %s left %d movie groups.", id(connection), len(left))

    def viewers(self, movie_id: str) -> List[Subscriber]:
        return self._registry.subscribers(movie_topic(movie_id))

    def subscription_count(self) -> int:
        return self._registry.subscription_count()

    def publish_review_created(self, movie_id: str, review, author=None) -> int:
        '''
        Hands a "review-added" event to every viewer of the movie.

        Parameters
        ----------
        movie_id: str
            The reviewed movie.
        review:
            The stored review (ORM object or anything ReviewResponse can read).
        author:
            The author (ORM user or AuthorResponse). Only the public projection
            leaves the process.

        Returns
        -------
        Number of viewers the event was handed to.
        '''
        event = ReviewAddedEvent(
            movie_id=movie_id,
            review=ReviewResponse.model_validate(review),
            author=AuthorResponse.model_validate(author) if author is not None else None,
        ).model_dump(mode="json")

        delivered = 0
        for viewer in self.viewers(movie_id):
            try:
                viewer.deliver(event)
            except Exception:
                # One broken viewer must not keep the event from the others
                logger.exception("Failed to deliver review event to connection %s.", id(viewer))
                continue
            delivered += 1

        LIVE_EVENTS.labels(event="review-added").inc(delivered)
        logger.info("Published review %s for movie %s to %d viewers.", event["review"]["id"], movie_id, delivered)
        return delivered


class WebSocketSubscriber:
    '''
    One websocket connection. ``deliver`` only schedules the event onto a bounded
    queue in the connection's event loop and returns at once; ``pump`` sends the
    queued events to the socket. It is safe to call ``deliver`` from worker
    threads.
    '''

    def __init__(self, websocket: WebSocket, max_queue: int = 100):
        self.websocket = websocket
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)

    def deliver(self, event: Dict[str, Any]) -> None:
        self._loop.call_soon_threadsafe(self._enqueue, event)

    def _enqueue(self, event: Dict[str, Any]) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            LIVE_EVENTS.labels(event="dropped").inc()
            logger.warning("Live queue of connection %s is full, dropped %s event.", id(self), event.get("event"))

    async def pump(self) -> None:
        while True:
            event = await self._queue.get()
            await self.websocket.send_json(event)
