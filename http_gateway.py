#!/usr/bin/env python3
"""
HTTP Gateway for the Platform Channel Host
Exposes channel calls as POST /channels/{channel}/{method} and a /health probe
"""

import json
import logging
from typing import Optional

from aiohttp import web

from message_handler import CallHandler, DEFAULT_METHOD
from platform_services import PlatformServiceRegistry
from plugins.channel_plugin_base import MethodCall
from websocket_manager import ChannelServerError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

HTTP_STATUS_BY_ERROR = {
    "channelNotFound": 404,
    "badRequest": 400,
    "platformQueryError": 500,
    "internalError": 500,
}


class HttpGateway:
    """aiohttp application answering channel calls over HTTP"""

    def __init__(self, call_handler: CallHandler, logger: logging.Logger,
                 host: str = DEFAULT_HOST, port: int = DEFAULT_PORT,
                 service_registry: Optional[PlatformServiceRegistry] = None):
        self.call_handler = call_handler
        self.service_registry = service_registry
        self.logger = logger
        self.host = host
        self.port = port
        self.runner: Optional[web.AppRunner] = None
        self.app = self.create_app()

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self.health)
        app.router.add_get("/channels", self.list_channels)
        app.router.add_post("/channels/{channel}", self.call_channel)
        app.router.add_post("/channels/{channel}/{method}", self.call_channel)
        return app

    async def health(self, request: web.Request) -> web.Response:
        services = self.service_registry.get_all_services_info() if self.service_registry else {}
        healthy = all(info["available"] for info in services.values())
        return web.json_response({
            "status": "healthy" if healthy else "degraded",
            "channels": self.call_handler.plugin_manager.list_channels(),
            "services": services,
        })

    async def list_channels(self, request: web.Request) -> web.Response:
        return web.json_response({"channels": self.call_handler.plugin_manager.list_channels()})

    async def call_channel(self, request: web.Request) -> web.Response:
        arguments = None
        if request.can_read_body:
            body = await request.read()
            if body.strip():
                # Bodies that are not JSON pass through as raw bytes
                try:
                    arguments = json.loads(body)
                except (ValueError, RecursionError):
                    arguments = body

        call = MethodCall(
            channel=request.match_info["channel"],
            method=request.match_info.get("method", DEFAULT_METHOD),
            arguments=arguments,
            correlation_id=request.headers.get("X-Correlation-Id"),
        )
        envelope = await self.call_handler.handle_call(call)

        status = 200
        if "Left" in envelope["resp"]:
            status = HTTP_STATUS_BY_ERROR.get(envelope["resp"]["Left"]["type"], 500)
        return web.json_response(envelope, status=status)

    async def start(self) -> None:
        if self.runner:
            return

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, self.host, self.port)
        try:
            await site.start()
        except OSError as e:
            await self.runner.cleanup()
            self.runner = None
            self.logger.error(f"🌐 HTTP START FAILED: {self.host}:{self.port}: {e}")
            raise ChannelServerError(f"Cannot listen on {self.host}:{self.port}: {e}") from e

        self.logger.info(f"🌐 HTTP LISTENING: http://{self.host}:{self.port}")

    async def stop(self) -> None:
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            self.logger.info("🌐 HTTP STOPPED")
