"""SQLite client for durable token and push-subscription storage."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from loguru import logger

from inboxbridge.domain.entities import (
    GoogleToken,
    OutlookToken,
    Subscription,
    TokenData,
    token_expiry,
)
from inboxbridge.infrastructure.crypto import TokenCipher


class SQLiteClient:
    """SQLite-backed TokenBackend and SubscriptionRegistry.

    Access and refresh tokens are stored encrypted with the token cipher.
    """

    def __init__(self, cipher: TokenCipher, db_path: str | Path = "data/inboxbridge.db"):
        self.cipher = cipher
        self.db_path = Path(db_path)
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connection() as conn:
            conn.executescript("""
                PRAGMA journal_mode=WAL;

                CREATE TABLE IF NOT EXISTS tokens (
                    provider TEXT NOT NULL CHECK(provider IN ('gmail','outlook')),
                    account_id TEXT NOT NULL,
                    access_token TEXT NOT NULL,
                    refresh_token TEXT,
                    token_type TEXT NOT NULL DEFAULT 'Bearer',
                    scope TEXT NOT NULL DEFAULT '',
                    expires_at TEXT,
                    updated_at TEXT NOT NULL,

                    PRIMARY KEY(provider, account_id)
                );

                CREATE TABLE IF NOT EXISTS subscriptions (
                    subscription_id TEXT PRIMARY KEY,
                    provider TEXT NOT NULL,
                    account_id TEXT,
                    resource TEXT,
                    expires_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_subscriptions_account
                    ON subscriptions(provider, account_id);
            """)
            logger.info(f"SQLite database initialized at {self.db_path}")

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ping(self) -> None:
        with self._connection() as conn:
            conn.execute("SELECT 1")

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def save(self, account_id: str, token: TokenData) -> None:
        """Insert or replace the token for (provider, account_id)."""
        now = datetime.now(timezone.utc).isoformat()
        expiry = token_expiry(token)
        refresh = self.cipher.encrypt(token.refresh_token) if token.refresh_token else None

        with self._connection() as conn:
            conn.execute(
                """INSERT INTO tokens
                   (provider, account_id, access_token, refresh_token, token_type, scope, expires_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(provider, account_id) DO UPDATE SET
                       access_token = excluded.access_token,
                       refresh_token = excluded.refresh_token,
                       token_type = excluded.token_type,
                       scope = excluded.scope,
                       expires_at = excluded.expires_at,
                       updated_at = excluded.updated_at""",
                (
                    token.provider,
                    account_id,
                    self.cipher.encrypt(token.access_token),
                    refresh,
                    token.token_type,
                    token.scope,
                    expiry.isoformat() if expiry else None,
                    now,
                ),
            )
        logger.debug(f"Saved {token.provider} token for {account_id}")

    def load(self, provider: str, account_id: str) -> TokenData | None:
        """Load the token for (provider, account_id), or None."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM tokens WHERE provider = ? AND account_id = ?",
                (provider, account_id),
            ).fetchone()

        if row is None:
            return None
        return self._row_to_token(row)

    def delete(self, provider: str, account_id: str) -> None:
        with self._connection() as conn:
            conn.execute(
                "DELETE FROM tokens WHERE provider = ? AND account_id = ?",
                (provider, account_id),
            )

    def _row_to_token(self, row: sqlite3.Row) -> TokenData:
        access = self.cipher.decrypt(row["access_token"])
        refresh = self.cipher.decrypt(row["refresh_token"]) if row["refresh_token"] else None
        expires_at = row["expires_at"]

        if row["provider"] == "gmail":
            expiry_ms = None
            if expires_at:
                expiry_ms = int(datetime.fromisoformat(expires_at).timestamp() * 1000)
            return GoogleToken(
                access_token=access,
                refresh_token=refresh,
                token_type=row["token_type"],
                scope=row["scope"],
                expiry_date=expiry_ms,
            )

        return OutlookToken(
            access_token=access,
            refresh_token=refresh,
            token_type=row["token_type"],
            scope=row["scope"],
            expires_at=expires_at,
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def save_subscription(self, subscription: Subscription) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._connection() as conn:
            conn.execute(
                """INSERT INTO subscriptions
                   (subscription_id, provider, account_id, resource, expires_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(subscription_id) DO UPDATE SET
                       account_id = COALESCE(excluded.account_id, subscriptions.account_id),
                       resource = COALESCE(excluded.resource, subscriptions.resource),
                       expires_at = excluded.expires_at,
                       updated_at = excluded.updated_at""",
                (
                    subscription.id,
                    subscription.provider,
                    subscription.account_id,
                    subscription.resource,
                    subscription.expiration,
                    now,
                ),
            )
        logger.info(f"Recorded {subscription.provider} subscription {subscription.id}")

    def load_subscription(self, subscription_id: str) -> Subscription | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE subscription_id = ?",
                (subscription_id,),
            ).fetchone()

        if row is None:
            return None
        return Subscription(
            id=row["subscription_id"],
            provider=row["provider"],
            expiration=row["expires_at"],
            account_id=row["account_id"],
            resource=row["resource"],
        )


# Singleton instance
_client: SQLiteClient | None = None


def get_sqlite_client(db_path: str | None = None) -> SQLiteClient:
    """Get or create SQLite client singleton."""
    global _client
    if _client is None:
        from inboxbridge.infrastructure.crypto import get_cipher
        from inboxbridge.infrastructure.settings import get_settings

        settings = get_settings()
        _client = SQLiteClient(get_cipher(settings), db_path=db_path or settings.sqlite_db_path)
    return _client
