#!/usr/bin/env python3
"""
Call Handler for the Platform Channel Host
Decodes channel requests, dispatches them and wraps results in response envelopes
"""

import json
import logging
import traceback
from typing import Dict, Any, Optional

from platform_services import PlatformQueryError
from plugins.channel_plugin_base import MethodCall
from plugins.channel_plugin_manager import ChannelPluginManager, ChannelNotFoundError

DEFAULT_METHOD = "getPlatformVersion"

# Left envelope types and codes
ERROR_TYPES = {
    PlatformQueryError: ("platformQueryError", "PLATFORM_QUERY_FAILED"),
    ChannelNotFoundError: ("channelNotFound", "CHANNEL_NOT_FOUND"),
}
BAD_REQUEST = ("badRequest", "BAD_REQUEST")
INTERNAL_ERROR = ("internalError", "INTERNAL_ERROR")


class BadRequestError(ValueError):
    """Incoming frame could not be turned into a MethodCall"""
    pass


class CallHandler:
    """Handles incoming channel calls and builds response envelopes"""

    def __init__(self,
                 plugin_manager: ChannelPluginManager,
                 logger: logging.Logger,
                 call_logger: Optional[logging.Logger] = None):
        self.plugin_manager = plugin_manager
        self.logger = logger
        self.call_logger = call_logger or logger

        self.PAYLOAD_PREVIEW_LENGTH = 100

    def parse_frame(self, raw: Any) -> MethodCall:
        """Turn a raw JSON frame into a MethodCall"""
        try:
            if isinstance(raw, (bytes, bytearray)):
                raw = raw.decode('utf-8')
            data = json.loads(raw) if isinstance(raw, str) else raw
        except (ValueError, RecursionError) as e:
            raise BadRequestError(f"Invalid JSON frame: {e}")

        if not isinstance(data, dict):
            raise BadRequestError("Frame must be a JSON object")

        channel = data.get("channel")
        if not isinstance(channel, str) or not channel.strip():
            raise BadRequestError("Frame is missing 'channel'")

        method = data.get("method") or DEFAULT_METHOD
        corr_id = data.get("corrId")
        return MethodCall(
            channel=channel.strip(),
            method=str(method),
            arguments=data.get("args"),
            correlation_id=str(corr_id) if corr_id is not None else None,
        )

    async def handle_call(self, call: MethodCall) -> Dict[str, Any]:
        """Dispatch a call and return its response envelope"""
        self.logger.debug(f"📥 CALL: {call.channel}.{call.method} (corrId: {call.correlation_id})")

        try:
            result = await self.plugin_manager.dispatch(call)
        except (PlatformQueryError, ChannelNotFoundError) as e:
            error_type, code = self._lookup_error(e)
            self.logger.warning(f"📤 CALL FAILED: {call.channel}.{call.method}: {error_type}: {e}")
            self.call_logger.info(f"{call.channel}.{call.method} -> {code}: {e}")
            return self.error_envelope(call.correlation_id, error_type, code, str(e))
        except Exception as e:
            self.logger.error(f"📤 CALL ERROR: {call.channel}.{call.method}: {type(e).__name__}: {e}")
            self.logger.error(f"📤 CALL TRACEBACK: {traceback.format_exc()}")
            self.call_logger.info(f"{call.channel}.{call.method} -> {INTERNAL_ERROR[1]}: {e}")
            return self.error_envelope(call.correlation_id, *INTERNAL_ERROR, str(e))

        self.call_logger.info(f"{call.channel}.{call.method} -> {result}")
        return self.result_envelope(call, result)

    async def handle_frame(self, raw: Any) -> str:
        """Handle a raw JSON frame and return the encoded response frame"""
        try:
            call = self.parse_frame(raw)
        except BadRequestError as e:
            preview = str(raw)[:self.PAYLOAD_PREVIEW_LENGTH]
            self.logger.warning(f"📥 BAD FRAME: {e} ({preview})")
            return json.dumps(self.error_envelope(self._peek_corr_id(raw), *BAD_REQUEST, str(e)))

        envelope = await self.handle_call(call)
        return json.dumps(envelope)

    @staticmethod
    def result_envelope(call: MethodCall, result: Any) -> Dict[str, Any]:
        return {
            "corrId": call.correlation_id,
            "resp": {
                "Right": {
                    "type": "channelResult",
                    "channel": call.channel,
                    "method": call.method,
                    "result": result,
                }
            },
        }

    @staticmethod
    def error_envelope(corr_id: Optional[str], error_type: str, code: str, message: str) -> Dict[str, Any]:
        return {
            "corrId": corr_id,
            "resp": {
                "Left": {
                    "type": error_type,
                    "code": code,
                    "message": message,
                }
            },
        }

    @staticmethod
    def _lookup_error(error: Exception):
        for error_class, error_info in ERROR_TYPES.items():
            if isinstance(error, error_class):
                return error_info
        return INTERNAL_ERROR

    @staticmethod
    def _peek_corr_id(raw: Any) -> Optional[str]:
        """Best-effort corrId extraction from a frame that failed to parse"""
        try:
            data = json.loads(raw) if isinstance(raw, (str, bytes, bytearray)) else raw
        except (ValueError, RecursionError):
            return None
        if isinstance(data, dict) and data.get("corrId") is not None:
            return str(data["corrId"])
        return None
