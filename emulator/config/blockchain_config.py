"""Centralized configuration for the emulated network."""

import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class BlockchainConfig:
    """Configuration class for gas, wallet and block settings."""

    @staticmethod
    def get_min_gas_price() -> int:
        """Minimum gas price a transaction must offer."""
        return int(os.environ.get("MIN_GAS_PRICE", "1"))

    @staticmethod
    def get_transfer_gas_cost() -> int:
        """Gas units charged for a plain transfer (and for a rejected nonce)."""
        return int(os.environ.get("TRANSFER_GAS_COST", "1"))

    @staticmethod
    def get_num_accounts() -> int:
        return int(os.environ.get("NUM_ACCOUNTS", "10"))

    @staticmethod
    def get_default_balance() -> int:
        return int(os.environ.get("DEFAULT_BALANCE", "1000000"))

    @staticmethod
    def get_block_interval() -> float:
        """Seconds between two block numbers."""
        return float(os.environ.get("BLOCK_INTERVAL", "10"))

    @staticmethod
    def get_execution_timeout() -> float:
        """Seconds a contract engine run may take before it is killed."""
        return float(os.environ.get("EXECUTION_TIMEOUT", "30"))

    @staticmethod
    def get_data_path() -> str:
        return os.environ.get("DATA_PATH", "./data")

    @staticmethod
    def get_network_id() -> str:
        return os.environ.get("NETWORK_ID", "Testnet")

    @staticmethod
    def transfer_funds_check_enabled() -> bool:
        """Whether transfers are rejected up front when the sender can't pay."""
        return _env_bool("TRANSFER_FUNDS_CHECK", True)
