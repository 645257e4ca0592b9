"""
Configured accounts and the pool that fails over between them.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

import aiohttp
from rich.markup import escape

from beatport_cli.api import BeatportAuthenticator, CatalogClient
from beatport_cli.exceptions import AuthenticationError, NoAccountsError
from beatport_cli.models.catalog import Store
from beatport_cli.models.config import AppConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    """One credential set with an authenticated handle for each store."""

    name: str
    config: AppConfig
    beatport: CatalogClient
    beatsource: CatalogClient

    def client_for(self, store: Store) -> CatalogClient:
        return self.beatsource if store is Store.BEATSOURCE else self.beatport


class AccountPool:
    """
    Ordered accounts plus the cursor of the active one.

    Reads and rotations of the cursor share one lock, so a reader never sees
    a half-finished rotation.
    """

    def __init__(self, accounts: Sequence[Account]):
        if not accounts:
            raise NoAccountsError("No valid accounts available.")
        self._accounts = tuple(accounts)
        self._cursor = 0
        self._lock = asyncio.Lock()
        self.rotations = 0

    def __len__(self) -> int:
        return len(self._accounts)

    @property
    def active_index(self) -> int:
        return self._cursor

    async def current(self) -> Account:
        async with self._lock:
            return self._accounts[self._cursor]

    async def rotate(self, failed: Optional[Account] = None) -> bool:
        """
        Switches to the next account.

        Args:
            failed: The account the caller saw failing. If another task has
                already moved away from it, the cursor stays where it is.

        Returns:
            False when there is no other account to switch to, True otherwise.
        """
        async with self._lock:
            if len(self._accounts) < 2:
                return False
            if failed is not None and self._accounts[self._cursor] is not failed:
                return True

            self._cursor = (self._cursor + 1) % len(self._accounts)
            self.rotations += 1
            active = self._accounts[self._cursor]
        log.info(f"🔁 Switched to next account: [cyan]{escape(active.name)}[/cyan]")
        return True

    async def close(self) -> None:
        """Closes every handle and shared authenticator exactly once."""
        authenticators = {}
        for account in self._accounts:
            await account.beatport.close()
            await account.beatsource.close()
            auth = account.beatport.authenticator
            authenticators[id(auth)] = auth
        for auth in authenticators.values():
            await auth.close()


async def authenticate_accounts(configs: Sequence[AppConfig]) -> AccountPool:
    """
    Logs in every configured account and builds the pool from those that
    succeeded. Accounts with the same credentials and proxy share one session.

    Raises:
        NoAccountsError: If no account could log in.
    """
    sessions: dict[tuple[str, str, str, str], BeatportAuthenticator] = {}
    accounts: list[Account] = []

    for config in configs:
        key = (config.username, config.password, config.client_id, config.proxy)
        auth = sessions.get(key)
        if auth is None:
            auth = BeatportAuthenticator(
                config.username, config.password, config.client_id, config.proxy_url
            )

        connections = config.max_download_workers * 2
        beatport = CatalogClient(Store.BEATPORT, auth, config.proxy_url, connections)
        beatsource = CatalogClient(Store.BEATSOURCE, auth, config.proxy_url, connections)

        try:
            await beatport.authenticate()
        except (AuthenticationError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.error(f"[red]❌ Login failed: {escape(config.account_name)} ({e})[/red]")
            await beatport.close()
            await beatsource.close()
            if key not in sessions:
                await auth.close()
            continue

        sessions[key] = auth
        log.info(f"[green]✅ Loaded account: {escape(config.account_name)}[/green]")
        accounts.append(Account(config.account_name, config, beatport, beatsource))

    return AccountPool(accounts)
