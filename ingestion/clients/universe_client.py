"""
Universe GraphQL client with OAuth2 client-credentials authentication.

This module wraps the remote event operations with:
- Lazy, cached bearer token acquisition (refreshed on expiry or after a 401)
- Client mutation ids on every mutation
- Separation of transport failures from API-level error payloads
- Typed results (RemoteEvent) or typed failures (core.exceptions)

Retrying is the caller's decision; this client makes exactly one request
per operation.
"""

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from core.config import Settings, settings as default_settings
from core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    RateLimitError,
    RemoteApiError,
    TransportError,
)
from core.idempotency import generate_client_mutation_id
from ingestion.transformers.event_transformer import EventTransformer
from models.event_record import EventRecord
from models.remote_event import RemoteEvent
import logging

logger = logging.getLogger(__name__)

EVENT_FIELDS = """
            id
            title
            slug
            state
            privacy
            virtual
            venueName
            address
            latitude
            longitude
            timeSlots {
              nodes {
                id
                startAt
                endAt
              }
            }
            rates {
              nodes {
                id
                name
                price
                displayPrice
                state
              }
            }
"""

EVENT_CREATE_MUTATION = """
mutation EventCreate($input: EventCreateInput!) {
  eventCreate(input: $input) {
    clientMutationId
    errors
    event {%s    }
  }
}
""" % EVENT_FIELDS

EVENT_PUBLISH_MUTATION = """
mutation EventPublish($input: EventPublishInput!) {
  eventPublish(input: $input) {
    clientMutationId
    errors
    event {
      id
      slug
      state
      privacy
    }
  }
}
"""

EVENT_UPDATE_MUTATION = """
mutation EventUpdate($input: EventUpdateInput!) {
  eventUpdate(input: $input) {
    clientMutationId
    errors
    event {
      id
      title
      slug
      state
    }
  }
}
"""

EVENT_QUERY = """
query GetEvent($eventId: ID!) {
  event(id: $eventId) {
    id
    title
    slug
    state
    privacy
    virtual
    venueName
    address
    latitude
    longitude
    timeSlots {
      nodes {
        id
        startAt
        endAt
        state
      }
    }
    rates {
      nodes {
        id
        name
        price
        displayPrice
        state
        capacity
      }
    }
  }
}
"""


class UniverseClient:
    """
    Client for the Universe GraphQL API.

    Features:
    - Bearer token cached until expiry; refresh is lazy and guarded by a lock
      so concurrent callers in one batch trigger at most one token request
    - create / publish / update mutations and the event query
    - Deterministic event URL formatting

    Attributes:
        token_url: OAuth2 token endpoint
        graphql_url: GraphQL endpoint
        event_base_url: Base for public event URLs
        timeout: Request timeout in seconds (default: 30.0)
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        token_url: str = "https://www.universe.com/oauth/token",
        graphql_url: str = "https://www.universe.com/graphql",
        event_base_url: str = "https://www.universe.com",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        transformer: Optional[EventTransformer] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.graphql_url = graphql_url
        self.event_base_url = event_base_url.rstrip("/")
        self.timeout = timeout
        self.transformer = transformer or EventTransformer()
        self._clock = clock

        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

        # Token state
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "UniverseClient":
        settings = settings or default_settings
        return cls(
            client_id=settings.UNIVERSE_CLIENT_ID,
            client_secret=settings.UNIVERSE_CLIENT_SECRET,
            token_url=settings.UNIVERSE_TOKEN_URL,
            graphql_url=settings.UNIVERSE_GRAPHQL_URL,
            event_base_url=settings.UNIVERSE_EVENT_BASE_URL,
            timeout=settings.HTTP_TIMEOUT,
            **kwargs
        )

    async def __aenter__(self) -> "UniverseClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        if self._owns_http:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _token_is_valid(self) -> bool:
        return self._access_token is not None and self._token_expires_at > self._clock()

    def invalidate_token(self):
        self._access_token = None
        self._token_expires_at = 0.0

    async def get_access_token(self) -> str:
        """
        Return a valid bearer token, requesting a new one if needed.

        The expiry check and the refresh happen under one lock: a caller that
        waited on the lock re-checks and reuses the token the first caller got.
        A redundant refresh would be harmless (token requests are idempotent),
        the lock only avoids the wasted round trip.

        Raises:
            ConfigurationError: Client id/secret not configured
            AuthenticationError: Credentials rejected
            TransportError: Token endpoint unreachable or 5xx
        """
        if self._token_is_valid():
            return self._access_token

        async with self._token_lock:
            if self._token_is_valid():
                return self._access_token

            if not self.client_id or not self.client_secret:
                raise ConfigurationError(
                    "Universe client credentials are not configured",
                    context={"missing": "UNIVERSE_CLIENT_ID / UNIVERSE_CLIENT_SECRET"}
                )

            try:
                response = await self._http.post(
                    self.token_url,
                    json={
                        "grant_type": "client_credentials",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                logger.error(f"Failed to get Universe access token: {e}")
                raise TransportError(
                    "Token request failed",
                    context={"url": self.token_url},
                    original_exception=e
                )

            if response.status_code in (400, 401, 403):
                logger.error(f"Failed to get Universe access token: {response.text[:500]}")
                raise AuthenticationError(
                    "Universe rejected the client credentials",
                    context={"url": self.token_url, "response_body": response.text[:500]},
                    status_code=response.status_code
                )

            if response.status_code >= 300:
                raise TransportError(
                    f"Token endpoint returned HTTP {response.status_code}",
                    context={"url": self.token_url, "response_body": response.text[:500]},
                    status_code=response.status_code
                )

            data = response.json()
            self._access_token = data["access_token"]
            self._token_expires_at = self._clock() + float(data.get("expires_in", 0))

            logger.info("Universe access token obtained")
            return self._access_token

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a GraphQL document and return its ``data`` object.

        Raises:
            TransportError: Network failure or non-2xx status
            RateLimitError: HTTP 429
            RemoteApiError: Top-level GraphQL ``errors``
        """
        token = await self.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._http.post(
                self.graphql_url,
                json={"query": query, "variables": variables},
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                "Request to Universe timed out",
                context={"url": self.graphql_url, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.HTTPError as e:
            raise TransportError(
                "Network error talking to Universe",
                context={"url": self.graphql_url},
                original_exception=e
            )

        if response.status_code == 401:
            # Token revoked or expired early; next call re-authenticates
            self.invalidate_token()

        if response.status_code == 429:
            # Backoff stays linear; the header is kept for the log only
            raise RateLimitError(
                "Rate limit exceeded on Universe API",
                context={"url": self.graphql_url, "retry_after": response.headers.get("Retry-After")}
            )

        if response.status_code < 200 or response.status_code >= 300:
            raise TransportError(
                f"Universe returned HTTP {response.status_code}",
                context={"url": self.graphql_url, "response_body": response.text[:500]},
                status_code=response.status_code
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                "Failed to parse JSON response",
                context={"url": self.graphql_url, "response_body": response.text[:500]},
                original_exception=e
            )

        if body.get("errors"):
            messages = [
                error.get("message", str(error)) if isinstance(error, dict) else str(error)
                for error in body["errors"]
            ]
            logger.error(f"GraphQL errors: {messages}")
            raise RemoteApiError(
                f"GraphQL errors: {', '.join(messages)}",
                api_errors=messages,
                context={"url": self.graphql_url}
            )

        return body.get("data") or {}

    async def _mutate(self, name: str, query: str, input_data: Dict[str, Any], label: str) -> RemoteEvent:
        data = await self._execute(query, {"input": input_data})
        payload = data.get(name) or {}

        errors: List[str] = [str(e) for e in (payload.get("errors") or [])]
        if errors:
            raise RemoteApiError(
                f"{label} errors: {', '.join(errors)}",
                api_errors=errors,
                context={"client_mutation_id": input_data.get("clientMutationId")}
            )

        if not payload.get("event"):
            raise RemoteApiError(
                f"{label} returned no event",
                context={"client_mutation_id": input_data.get("clientMutationId")}
            )

        return RemoteEvent.from_payload(payload)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_event(self, record: EventRecord) -> RemoteEvent:
        """
        Create an event from a validated record.

        A fresh client mutation id is minted on every call, including retries.

        Returns:
            RemoteEvent with the echoed clientMutationId
        """
        input_data = self.transformer.to_create_input(record)
        logger.info(
            f"Creating event: {record.title} (ClientMutationId: {input_data['clientMutationId']})"
        )

        try:
            event = await self._mutate("eventCreate", EVENT_CREATE_MUTATION, input_data, "Universe API")
        except (TransportError, RemoteApiError) as e:
            logger.error(f"Failed to create event: {record.title} - {e.message}")
            raise

        logger.info(
            f"Event created successfully: {event.title} "
            f"(ID: {event.id}, MutationId: {event.client_mutation_id})"
        )
        return event

    async def publish_event(self, event_id: str) -> RemoteEvent:
        """Move a draft event to the posted state."""
        input_data = {
            "clientMutationId": generate_client_mutation_id("event-publish", event_id),
            "id": event_id,
        }
        logger.info(f"Publishing event: {event_id} (ClientMutationId: {input_data['clientMutationId']})")

        try:
            event = await self._mutate("eventPublish", EVENT_PUBLISH_MUTATION, input_data, "Publish")
        except (TransportError, RemoteApiError) as e:
            logger.error(f"Failed to publish event {event_id}: {e.message}")
            raise

        logger.info(f"Event published: {event_id} (MutationId: {event.client_mutation_id})")
        return event

    async def update_event(self, event_id: str, attributes: Dict[str, Any]) -> RemoteEvent:
        """Patch attributes of an existing event."""
        input_data = {
            "clientMutationId": generate_client_mutation_id("event-update", event_id),
            "id": event_id,
            "attributes": attributes,
        }
        logger.info(f"Updating event: {event_id} (ClientMutationId: {input_data['clientMutationId']})")

        try:
            event = await self._mutate("eventUpdate", EVENT_UPDATE_MUTATION, input_data, "Update")
        except (TransportError, RemoteApiError) as e:
            logger.error(f"Failed to update event {event_id}: {e.message}")
            raise

        logger.info(f"Event updated: {event_id} (MutationId: {event.client_mutation_id})")
        return event

    async def get_event_details(self, event_id: str) -> Optional[Dict[str, Any]]:
        """Fetch an event by id; None if Universe does not know it."""
        try:
            data = await self._execute(EVENT_QUERY, {"eventId": event_id})
        except (TransportError, RemoteApiError) as e:
            logger.error(f"Failed to get event details for {event_id}: {e.message}")
            raise
        return data.get("event")

    def event_url(self, slug: str) -> str:
        """Public URL for an event slug. No network call."""
        return f"{self.event_base_url}/{slug}"
