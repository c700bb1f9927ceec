#!/usr/bin/env python3
"""
WebSocket Server for the Platform Channel Host
Carries channel calls as JSON frames: one request frame in, one response frame out
"""

import logging
import traceback
import websockets

from message_handler import CallHandler
from platform_services import PlatformChannelError

# Constants
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3030


class ChannelServerError(PlatformChannelError):
    """Transport start-up and communication errors"""
    pass


class ChannelWebSocketServer:
    """Serves channel calls to websocket clients"""

    def __init__(self, call_handler: CallHandler, logger: logging.Logger,
                 host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        self.call_handler = call_handler
        self.logger = logger
        self.host = host
        self.port = port

        # Server state
        self.server = None
        self.running = False
        self.connection_count = 0
        self.frame_count = 0

    async def start(self) -> None:
        """Start listening for websocket clients"""
        if self.server:
            return

        try:
            self.server = await websockets.serve(self._handle_connection, self.host, self.port)
        except OSError as e:
            self.logger.error(f"🔌 SERVER START FAILED: {self.host}:{self.port}: {e}")
            raise ChannelServerError(f"Cannot listen on {self.host}:{self.port}: {e}") from e

        # Port 0 asks the OS for a free port; report the one actually bound
        sockets = list(self.server.sockets or [])
        if sockets:
            self.port = sockets[0].getsockname()[1]

        self.running = True
        self.logger.info(f"🔌 LISTENING: ws://{self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop the server and close client connections"""
        if not self.server:
            self.logger.info("🔌 STOP: No websocket server running")
            return

        self.server.close()
        await self.server.wait_closed()
        self.server = None
        self.running = False
        self.logger.info("🔌 STOPPED: websocket server closed")

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"

    async def _handle_connection(self, websocket) -> None:
        """Answer every frame on one client connection until it closes"""
        self.connection_count += 1
        connection_id = self.connection_count
        self.logger.info(f"🔌 CLIENT CONNECTED: #{connection_id}")

        try:
            async for message in websocket:
                self.frame_count += 1
                response = await self.call_handler.handle_frame(message)
                await websocket.send(response)
        except websockets.ConnectionClosed as e:
            self.logger.info(f"🔌 CLIENT CLOSED: #{connection_id}: {e}")
        except Exception as e:
            self.logger.error(f"🔌 CONNECTION ERROR: #{connection_id}: {type(e).__name__}: {e}")
            self.logger.error(f"🔌 TRACEBACK: {traceback.format_exc()}")
        finally:
            self.logger.info(f"🔌 CLIENT DISCONNECTED: #{connection_id}")

    def get_status(self) -> dict:
        return {
            "running": self.running,
            "url": self.url,
            "connections": self.connection_count,
            "frames": self.frame_count,
        }
