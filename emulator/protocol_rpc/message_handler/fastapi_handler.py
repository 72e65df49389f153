import copy
import json
import os
import sys

from loguru import logger

from emulator.protocol_rpc.configuration import GlobalConfiguration
from emulator.protocol_rpc.message_handler.types import (
    EventScope,
    EventType,
    LogEvent,
)

MAX_LOG_MESSAGE_LENGTH = 3000


class MessageHandler:
    """Structured event logging for the RPC layer and the transaction pipeline."""

    def __init__(self, config: GlobalConfiguration):
        self.config = config

    def _log_event(self, log_event: LogEvent):
        message = log_event.message
        if message is not None and len(message) > MAX_LOG_MESSAGE_LENGTH:
            message = message[:MAX_LOG_MESSAGE_LENGTH] + "..."
        message = f"[{log_event.scope.value}] {message}"
        gray = "\033[38;5;245m"
        reset = "\033[0m"

        if log_event.data:
            try:
                data_to_log = self._apply_log_level_truncation(log_event.data)
                data_str = json.dumps(data_to_log, default=lambda o: o.__dict__)
                message = f"{message} {gray}{data_str}{reset}"
            except TypeError as e:
                message = f"{message} {gray}{str(log_event.data)} (serialization error: {e}){reset}"

        if log_event.type == EventType.ERROR:
            logger.error(message)
        elif log_event.type == EventType.WARNING:
            logger.warning(message)
        elif log_event.type == EventType.SUCCESS:
            logger.success(message)
        elif log_event.type == EventType.DEBUG:
            logger.debug(message)
        else:
            logger.info(message)

    def send_message(self, log_event: LogEvent):
        self._log_event(log_event)

    def send_transaction_event(self, transaction_hash: str, event_name: str, data):
        """Log an event tied to a recorded transaction."""
        self._log_event(
            LogEvent(
                name=event_name,
                type=EventType.INFO,
                message=f"Transaction event: {event_name}",
                transaction_hash=transaction_hash,
                data=data,
                scope=EventScope.TRANSACTION,
            )
        )

    def _apply_log_level_truncation(self, data, max_length=100):
        """Apply LOG_LEVEL-based truncation to log data for better readability."""
        should_truncate = os.environ.get("LOG_LEVEL", "INFO").upper() != "DEBUG"

        if not should_truncate or not isinstance(data, dict):
            return data

        truncated_data = copy.deepcopy(data)
        self._truncate_dict(truncated_data, max_length)
        return truncated_data

    def _truncate_dict(self, data_dict, max_length):
        """Recursively truncate contract sources and states in log payloads."""
        if not isinstance(data_dict, dict):
            return

        for key in ["code", "data", "traceback"]:
            if (
                key in data_dict
                and isinstance(data_dict[key], str)
                and len(data_dict[key]) > max_length
            ):
                data_dict[key] = (
                    f"{data_dict[key][:max_length]}... ({len(data_dict[key])} chars)"
                )

        if "state" in data_dict:
            data_dict["state"] = "<truncated>"

        for value in data_dict.values():
            if isinstance(value, dict):
                self._truncate_dict(value, max_length)
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, dict):
                        self._truncate_dict(item, max_length)


def setup_loguru_config():
    """Set up unified logging configuration using Loguru."""
    logger.remove()

    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=log_level,
        colorize=True,
    )

    if os.environ.get("LOG_TO_FILE"):
        logger.add(
            "logs/emulator.log",
            rotation="10 MB",
            retention="7 days",
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )

    return logger
