"""In-process WebSocket connection registry and delivery gateway.

One gateway per process, created in the application lifespan. All registry
mutations happen on the event loop without an ``await`` in between, so no
lock guards the maps; only writes to a single socket are serialized.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Any, Iterable

from fastapi import WebSocketDisconnect
from pydantic import ValidationError as FrameValidationError

from portal_service.application.ports.auth import TokenVerifier
from portal_service.infrastructure.kv.presence import PresenceTracker
from portal_service.infrastructure.ws.connection import (
    Connection,
    ConnectionState,
    WebSocketLike,
)
from portal_service.infrastructure.ws.protocol import ClientFrame, CloseCode, ServerFrame

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def extract_token(websocket: WebSocketLike) -> str | None:
    """``?token=`` wins over ``Authorization: Bearer``."""
    token = websocket.query_params.get("token")
    if token:
        return token
    header = websocket.headers.get("authorization")
    if header:
        scheme, _, value = header.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    return None


def _is_well_formed(token: str) -> bool:
    parts = token.split(".")
    return len(parts) == 3 and all(parts)


class ConnectionGateway:
    """Tracks authenticated sockets by user and routes frames to them."""

    def __init__(
        self,
        verifier: TokenVerifier,
        *,
        max_connections: int = 100,
        heartbeat_interval: float = 30.0,
        handshake_timeout: float = 10.0,
        max_payload_bytes: int = 1024 * 1024,
        presence: PresenceTracker | None = None,
    ) -> None:
        self._verifier = verifier
        self._max_connections = max_connections
        self._heartbeat_interval = heartbeat_interval
        self._handshake_timeout = handshake_timeout
        self._max_payload_bytes = max_payload_bytes
        self._presence = presence
        # user_id -> the one registered connection for that user
        self._clients: dict[str, Connection] = {}
        # every open socket, including ones still authenticating
        self._connections: set[Connection] = set()
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._accepting = True

    # ── lifecycle ───────────────────────────────────────────

    async def start(self) -> None:
        self._accepting = True
        if self._heartbeat_task is None:
            self._heartbeat_task = asyncio.create_task(
                self._heartbeat_loop(), name="ws-heartbeat",
            )
        logger.info(
            "WS gateway started (max_connections=%d, heartbeat=%.1fs)",
            self._max_connections,
            self._heartbeat_interval,
        )

    async def shutdown(self) -> None:
        self._accepting = False
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
            self._heartbeat_task = None

        open_connections = list(self._connections)
        for conn in open_connections:
            await self.remove(conn, CloseCode.GOING_AWAY, "Server shutdown")
        logger.info("WS gateway stopped (%d connections closed)", len(open_connections))

    # ── handshake ───────────────────────────────────────────

    async def accept(self, websocket: WebSocketLike) -> Connection | None:
        """Accept, check capacity, authenticate and register a socket.

        Returns the registered connection, or ``None`` when the socket was
        rejected (it is already closed in that case).
        """
        await websocket.accept()

        if not self._accepting:
            await self._reject(websocket, CloseCode.GOING_AWAY, "Server shutting down")
            return None

        if len(self._connections) >= self._max_connections:
            logger.warning(
                "Max connections reached (%d), rejecting new connection",
                self._max_connections,
            )
            await self._reject(websocket, CloseCode.TRY_AGAIN_LATER, "Too many connections")
            return None

        conn = Connection(websocket)
        self._connections.add(conn)

        token = extract_token(websocket)
        if token is None:
            logger.info("WS auth failed: no token provided")
            await self.remove(conn, CloseCode.POLICY_VIOLATION, "Authentication required")
            return None
        if not _is_well_formed(token):
            logger.info("WS auth failed: malformed token")
            await self.remove(conn, CloseCode.POLICY_VIOLATION, "Invalid token format")
            return None

        conn.handshake = asyncio.timeout(self._handshake_timeout)
        try:
            async with conn.handshake:
                principal = await self._verifier.verify(token)
        except TimeoutError:
            logger.info("WS auth failed: handshake timed out after %.1fs", self._handshake_timeout)
            await self.remove(conn, CloseCode.POLICY_VIOLATION, "Authentication timeout")
            return None
        except Exception as exc:
            logger.info("WS auth failed: %s", exc)
            await self.remove(conn, CloseCode.POLICY_VIOLATION, "Invalid token")
            return None
        finally:
            conn.handshake = None

        if not conn.is_open:
            return None

        conn.user_id = str(principal.user_id)
        conn.role = str(principal.role)
        conn.state = ConnectionState.AUTHENTICATED
        previous = self._clients.get(conn.user_id)
        self._clients[conn.user_id] = conn
        logger.info(
            "WS authenticated user=%s role=%s (registered=%d)",
            conn.user_id,
            conn.role,
            len(self._clients),
        )

        if previous is not None and previous is not conn:
            logger.info("Replacing earlier connection for user=%s", conn.user_id)
            await self.remove(previous, CloseCode.NORMAL_CLOSURE, "Replaced by a newer connection")

        if self._presence is not None:
            await self._presence.set_online(conn.user_id, conn.id)

        await self.send(
            conn,
            {
                "type": "connection",
                "message": "Connected successfully",
                "userId": conn.user_id,
                "role": conn.role,
            },
        )
        return conn if conn.is_open else None

    async def _reject(self, websocket: WebSocketLike, code: CloseCode, reason: str) -> None:
        try:
            await websocket.close(code=int(code), reason=reason)
        except Exception:
            logger.debug("Close during rejection failed", exc_info=True)

    # ── inbound ─────────────────────────────────────────────

    async def serve(self, websocket: WebSocketLike) -> None:
        """Run one socket from accept to teardown."""
        conn = await self.accept(websocket)
        if conn is None:
            return
        try:
            while conn.is_open:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.debug("WS disconnected %r code=%s", conn, message.get("code"))
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                await self.on_message(conn, raw)
        except WebSocketDisconnect as exc:
            logger.debug("WS disconnected %r code=%s", conn, exc.code)
        except Exception:
            if conn.is_open:
                logger.exception("WS error for %r", conn)
        finally:
            await self.remove(conn)

    async def on_message(self, conn: Connection, raw: str | bytes) -> None:
        """Handle one client frame; binary frames are parsed as UTF-8 JSON."""
        conn.is_alive = True

        size = len(raw) if isinstance(raw, bytes) else len(raw.encode())
        if size > self._max_payload_bytes:
            logger.warning("Frame of %d bytes from %r exceeds limit", size, conn)
            await self.remove(conn, CloseCode.MESSAGE_TOO_BIG, "Message too big")
            return

        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning("Dropping undecodable binary frame from %r", conn)
                return

        try:
            frame = ClientFrame.model_validate_json(raw)
        except FrameValidationError:
            logger.warning("Dropping malformed frame from %r", conn)
            return

        if frame.type == "subscribe":
            if not frame.channel:
                logger.warning("subscribe without channel from %r", conn)
                return
            conn.subscriptions.add(frame.channel)
            await self.send(
                conn,
                {
                    "type": "subscribed",
                    "channel": frame.channel,
                    "message": f"Subscribed to {frame.channel}",
                },
            )

        elif frame.type == "unsubscribe":
            if not frame.channel:
                logger.warning("unsubscribe without channel from %r", conn)
                return
            conn.subscriptions.discard(frame.channel)
            await self.send(
                conn,
                {
                    "type": "unsubscribed",
                    "channel": frame.channel,
                    "message": f"Unsubscribed from {frame.channel}",
                },
            )

        elif frame.type == "ping":
            await self.send(conn, {"type": "pong", "timestamp": _now_ms()})

        elif frame.type == "pong":
            conn.answers_pings = True

        else:
            logger.info("Unknown message type %r from %r", frame.type, conn)

    # ── outbound ────────────────────────────────────────────

    async def send(self, conn: Connection, payload: dict[str, Any]) -> bool:
        """Write one frame. A failed write tears the connection down."""
        if not conn.is_open:
            return False
        raw = ServerFrame.model_validate(payload).model_dump_json()
        async with conn.send_lock:
            if not conn.is_open:
                return False
            try:
                await conn.websocket.send_text(raw)
                return True
            except Exception:
                logger.warning("Write to %r failed, closing", conn, exc_info=True)
        await self.remove(conn)
        return False

    async def broadcast_to_role(self, role: str, payload: dict[str, Any]) -> int:
        targets = [c for c in self._clients.values() if c.is_authenticated and c.role == role]
        return await self._deliver(targets, payload)

    async def broadcast_to_channel(self, channel: str, payload: dict[str, Any]) -> int:
        targets = [
            c for c in self._connections
            if c.is_authenticated and channel in c.subscriptions
        ]
        return await self._deliver(targets, payload)

    async def send_to_user(self, user_id: str, payload: dict[str, Any]) -> bool:
        conn = self._clients.get(str(user_id))
        if conn is None or not conn.is_authenticated:
            return False
        return await self.send(conn, payload)

    async def _deliver(self, targets: Iterable[Connection], payload: dict[str, Any]) -> int:
        targets = list(targets)
        if not targets:
            return 0
        results = await asyncio.gather(*(self.send(c, payload) for c in targets))
        return sum(1 for ok in results if ok)

    # ── liveness ────────────────────────────────────────────

    async def sweep(self) -> int:
        """One heartbeat round. Returns how many connections were terminated.

        Every connection is marked not-alive and sent a JSON ``ping``; any
        inbound frame marks it alive again. Only clients that have answered a
        ping with ``pong`` at least once are held to it: such a connection
        still not-alive from the previous round is terminated. Silent clients
        are left to the server's protocol-level ping/pong (``WS_PING_*``),
        which browsers answer on their own.
        """
        authenticated = [c for c in self._connections if c.is_authenticated]
        stale = [c for c in authenticated if c.answers_pings and not c.is_alive]
        live = [c for c in authenticated if c not in stale]

        for conn in stale:
            logger.info("Terminating stale connection %r", conn)
            await self.remove(conn, CloseCode.GOING_AWAY, "Heartbeat timeout")

        for conn in live:
            conn.is_alive = False
        await self._deliver(live, {"type": "ping", "timestamp": _now_ms()})
        return len(stale)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Heartbeat sweep failed")

    # ── teardown ────────────────────────────────────────────

    async def remove(
        self,
        conn: Connection,
        code: int = CloseCode.NORMAL_CLOSURE,
        reason: str = "",
    ) -> None:
        """Close and forget a connection. Safe to call more than once."""
        if not conn.is_open:
            return
        conn.state = ConnectionState.CLOSING
        self._abort_handshake(conn)
        self._connections.discard(conn)

        released = conn.user_id is not None and self._clients.get(conn.user_id) is conn
        if released:
            del self._clients[conn.user_id]

        try:
            await conn.websocket.close(code=int(code), reason=reason)
        except Exception:
            logger.debug("Close on %r raised, socket already gone", conn, exc_info=True)
        conn.state = ConnectionState.CLOSED
        logger.info("WS closed %r code=%d reason=%s", conn, int(code), reason or "-")

        if released and self._presence is not None:
            await self._presence.set_offline(conn.user_id)

    @staticmethod
    def _abort_handshake(conn: Connection) -> None:
        # Expire a pending deadline now so the verifying task unwinds.
        handshake = conn.handshake
        if handshake is None or handshake.expired():
            return
        with contextlib.suppress(RuntimeError):
            handshake.reschedule(asyncio.get_running_loop().time())

    # ── introspection ───────────────────────────────────────

    def get(self, user_id: str) -> Connection | None:
        return self._clients.get(str(user_id))

    def stats(self) -> dict[str, int]:
        return {
            "totalConnections": len(self._clients),
            "activeConnections": len(self._connections),
            "maxConnections": self._max_connections,
        }
