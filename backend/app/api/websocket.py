"""WebSocket change feed with ConnectionManager, optional JWT auth, heartbeat and Redis Pub/Sub."""
import asyncio
import json
import logging
import uuid

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from jose import JWTError
from redis.exceptions import RedisError

from app.config import settings
from app.models.content import ContentKind
from app.models.user import UserRole
from app.services.auth_service import decode_access_token, is_session_active
from app.services.permission_service import Actor
from app.services.realtime_service import ChangeEvent, RowFilter, Subscriber, Subscription, message_for
from app.utils.redis_client import get_redis

logger = logging.getLogger(__name__)

router = APIRouter()

CHANNEL = "realtime:changes"
SESSION_ENDED = 4001


async def session_is_live(actor: Actor | None) -> bool:
    """Anonymous sockets have no session to lose."""
    return actor is None or await is_session_active(actor.session_id, str(actor.id))


class ConnectionManager:
    """Local subscribers plus Redis Pub/Sub fan-out across instances."""

    def __init__(self):
        self.connections: dict[WebSocket, Subscriber] = {}
        self.instance_id = uuid.uuid4().hex
        self._pubsub = None
        self._listener_task: asyncio.Task | None = None

    async def connect(self, websocket: WebSocket, actor: Actor | None) -> Subscriber:
        await websocket.accept()
        subscriber = Subscriber(actor=actor)
        self.connections[websocket] = subscriber
        logger.info("WS connected: actor=%s (total=%d)", actor.id if actor else "anonymous", len(self.connections))
        return subscriber

    def disconnect(self, websocket: WebSocket) -> None:
        self.connections.pop(websocket, None)
        logger.info("WS disconnected (total=%d)", len(self.connections))

    async def revoke(self, websocket: WebSocket) -> None:
        """Drop and close a socket whose sign-in session has ended."""
        self.disconnect(websocket)
        try:
            await websocket.close(code=SESSION_ENDED, reason="Session has ended")
        except RuntimeError:
            logger.debug("WS already closed while revoking")

    async def deliver_local(self, event: ChangeEvent) -> int:
        """Send ``event`` to every local subscriber allowed to see it."""
        sent = 0
        for websocket, subscriber in list(self.connections.items()):
            message = message_for(event, subscriber)
            if message is None:
                continue
            if not await session_is_live(subscriber.actor):
                logger.info("WS session ended; closing: actor=%s", subscriber.actor.id)
                await self.revoke(websocket)
                continue
            try:
                await websocket.send_json(message)
                sent += 1
            except (WebSocketDisconnect, RuntimeError):
                logger.warning("Failed to send change to a subscriber; dropping connection")
                self.disconnect(websocket)
        return sent

    async def publish(self, event: ChangeEvent) -> None:
        """Deliver locally, then hand the event to the other instances."""
        await self.deliver_local(event)
        payload = {"origin": self.instance_id, **event.to_message()}
        try:
            redis = await get_redis()
            await redis.publish(CHANNEL, json.dumps(payload, default=str))
        except (RedisError, OSError):
            logger.debug("Redis unavailable, change stays on this instance")

    # --- Redis Pub/Sub for cross-instance support ---

    async def start_redis_listener(self):
        try:
            redis = await get_redis()
            self._pubsub = redis.pubsub()
            await self._pubsub.subscribe(CHANNEL)
        except (RedisError, OSError):
            logger.warning("Redis Pub/Sub unavailable, change feed limited to single instance")
            self._pubsub = None
            return
        self._listener_task = asyncio.create_task(self._redis_listener())
        logger.info("Redis Pub/Sub listener started for change feed")

    async def _redis_listener(self):
        try:
            async for message in self._pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    payload = json.loads(message["data"])
                    if payload.get("origin") == self.instance_id:
                        continue
                    event = ChangeEvent.from_message(payload)
                except (json.JSONDecodeError, TypeError, KeyError, ValueError):
                    logger.warning("Ignoring malformed change message")
                    continue
                await self.deliver_local(event)
        except asyncio.CancelledError:
            logger.info("Redis Pub/Sub listener cancelled")
            raise
        except (RedisError, OSError):
            logger.warning("Redis Pub/Sub listener stopped")

    async def stop_redis_listener(self):
        if self._listener_task and not self._listener_task.done():
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
        self._listener_task = None
        if self._pubsub:
            await self._pubsub.unsubscribe(CHANNEL)
            await self._pubsub.aclose()
            self._pubsub = None


manager = ConnectionManager()


async def actor_from_token(token: str | None) -> Actor | None:
    """Resolve a WS token to an Actor. Raises ValueError for a bad token."""
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise ValueError("Invalid or expired token") from exc
    user_id = payload.get("sub")
    sid = payload.get("sid")
    if not user_id or not await is_session_active(sid, user_id):
        raise ValueError("Session has ended")
    org = payload.get("organization_id")
    return Actor(
        id=uuid.UUID(user_id),
        role=UserRole(payload["role"]),
        organization_id=uuid.UUID(org) if org else None,
        session_id=sid,
    )


def parse_subscription(msg: dict) -> Subscription:
    table = ContentKind(msg.get("table"))
    raw_filter = msg.get("filter")
    return Subscription(table=table, row_filter=RowFilter.parse(raw_filter) if raw_filter else None)


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str | None = Query(None),
):
    """Realtime change feed.

    Client messages:
        - {"type": "subscribe", "table": "<kind>", "filter": "organization_id=eq.<uuid>"}
        - {"type": "unsubscribe", "table": "<kind>"}
        - {"type": "ping"} every 30s; the server answers {"type": "pong"}

    Server messages:
        - {"type": "change", "table", "event": INSERT|UPDATE|DELETE, "new", "old"}
        - {"type": "subscribed" | "unsubscribed" | "error", ...}

    Authenticated sockets are closed with 4001 once their session ends
    (checked on ping and before each change is delivered).
    """
    try:
        actor = await actor_from_token(token)
    except ValueError as exc:
        await websocket.close(code=SESSION_ENDED, reason=str(exc))
        return

    subscriber = await manager.connect(websocket, actor)

    try:
        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=settings.WS_IDLE_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                logger.info("WS idle timeout")
                await websocket.close(code=1000, reason="Timeout")
                break

            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if not isinstance(msg, dict):
                continue

            msg_type = msg.get("type")
            if msg_type == "ping":
                if not await session_is_live(actor):
                    await manager.revoke(websocket)
                    break
                await websocket.send_json({"type": "pong"})
            elif msg_type == "subscribe":
                try:
                    subscription = parse_subscription(msg)
                except ValueError as exc:
                    await websocket.send_json({"type": "error", "detail": str(exc)})
                    continue
                subscriber.subscriptions.append(subscription)
                await websocket.send_json(
                    {"type": "subscribed", "table": subscription.table.value, "filter": msg.get("filter")}
                )
            elif msg_type == "unsubscribe":
                table = msg.get("table")
                subscriber.subscriptions = [s for s in subscriber.subscriptions if s.table.value != table]
                await websocket.send_json({"type": "unsubscribed", "table": table})

    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
