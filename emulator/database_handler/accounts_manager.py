# emulator/database_handler/accounts_manager.py

from eth_account import Account
from eth_keys import keys
from eth_utils import is_hex_address
from loguru import logger

from emulator.database_handler.errors import (
    InvalidAddressFormatError,
    NotFoundError,
)
from emulator.node.addressing import address_from_public_key
from emulator.node.types import normalize_address


class AccountsManager:
    """
    In-memory wallet backing balances and nonces of the emulated network.

    Addresses are stored lowercase without the 0x prefix. Amounts are plain
    Python integers, so balances never overflow.
    """

    def __init__(self):
        self._accounts: dict[str, dict] = {}

    def _parse_account_data(self, address: str, account_data: dict) -> dict:
        return {
            "address": address,
            "balance": account_data["balance"],
            "nonce": account_data["nonce"],
        }

    def _key(self, address: str) -> str:
        if not is_hex_address(address):
            raise InvalidAddressFormatError(address)
        return normalize_address(address)

    def create_new_account(self, balance: int = 0) -> dict:
        """
        Create a funded account with a fresh secp256k1 key pair.
        Used to seed the emulator with test wallets at startup.
        """
        account = Account.create()
        public_key = keys.PrivateKey(account.key).public_key.to_compressed_bytes().hex()
        address = address_from_public_key(public_key)
        self._accounts[address] = {
            "balance": balance,
            "nonce": 0,
            "private_key": account.key.hex(),
            "public_key": public_key,
        }
        return {"address": address, **self._accounts[address]}

    def create_wallets(self, count: int, balance: int) -> list[dict]:
        return [self.create_new_account(balance) for _ in range(count)]

    def load_accounts(self, accounts: dict) -> None:
        """Replace the wallet with accounts from a fixture document.

        The fixture maps each address to ``{"privateKey", "amount", "nonce"}``.
        """
        loaded = {}
        for address, details in accounts.items():
            key = self._key(address)
            private_key = details.get("privateKey") or details.get("private_key")
            public_key = details.get("publicKey") or details.get("public_key")
            if private_key and not public_key:
                public_key = (
                    keys.PrivateKey(bytes.fromhex(normalize_address(private_key)))
                    .public_key.to_compressed_bytes()
                    .hex()
                )
            loaded[key] = {
                "balance": int(details.get("amount", details.get("balance", 0))),
                "nonce": int(details.get("nonce", 0)),
                "private_key": private_key,
                "public_key": public_key,
            }
        self._accounts = loaded
        logger.info(f"Loaded {len(loaded)} accounts from fixtures")

    def export_accounts(self) -> dict:
        return {
            address: {
                "privateKey": data.get("private_key"),
                "amount": str(data["balance"]),
                "nonce": data["nonce"],
            }
            for address, data in self._accounts.items()
        }

    def log_accounts(self) -> None:
        for address, data in self._accounts.items():
            logger.info(
                f"Account {address} | balance: {data['balance']} | nonce: {data['nonce']}"
            )

    def get_account(self, account_address: str) -> dict | None:
        return self._accounts.get(self._key(account_address))

    def get_account_or_fail(self, account_address: str) -> dict:
        """Balance and nonce of an existing account, NotFound otherwise."""
        key = self._key(account_address)
        account_data = self._accounts.get(key)
        if account_data is None:
            raise NotFoundError(key, f"Account {key} does not exist.")
        return self._parse_account_data(key, account_data)

    def get_balance(self, account_address: str) -> dict:
        """Balance and nonce; unknown accounts read as empty."""
        account = self.get_account(account_address)
        if account is None:
            return {"balance": 0, "nonce": 0}
        return {"balance": account["balance"], "nonce": account["nonce"]}

    def _get_or_create(self, account_address: str) -> dict:
        key = self._key(account_address)
        account = self._accounts.get(key)
        if account is None:
            account = {"balance": 0, "nonce": 0, "private_key": None, "public_key": None}
            self._accounts[key] = account
        return account

    def sufficient_funds(self, account_address: str, amount: int) -> bool:
        return self.get_balance(account_address)["balance"] >= amount

    def deduct_funds(self, account_address: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Cannot deduct a negative amount: {amount}")
        account = self._get_or_create(account_address)
        account["balance"] -= amount
        if account["balance"] < 0:
            logger.warning(
                f"Balance of {normalize_address(account_address)} is now negative: {account['balance']}"
            )

    def add_funds(self, account_address: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Cannot add a negative amount: {amount}")
        account = self._get_or_create(account_address)
        account["balance"] += amount

    def increase_nonce(self, account_address: str) -> None:
        account = self._get_or_create(account_address)
        account["nonce"] += 1
