import json
import os


class GlobalConfiguration:
    """Runtime switches of the RPC layer read from the environment."""

    @staticmethod
    def get_disabled_info_logs_endpoints() -> list[str]:
        """RPC methods whose calls are not logged (e.g. noisy polling methods)."""
        raw = os.environ.get("DISABLE_INFO_LOGS_ENDPOINTS", "[]")
        try:
            endpoints = json.loads(raw)
        except json.JSONDecodeError:
            endpoints = [name.strip() for name in raw.split(",") if name.strip()]
        return endpoints if isinstance(endpoints, list) else []
