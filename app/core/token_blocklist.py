"""Token blocklist management for logout using MongoDB."""

import logging
from datetime import UTC, datetime, timedelta

from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

logger = logging.getLogger(__name__)

BLOCKLIST_COLLECTION = "revoked_tokens"


class TokenBlocklist:
    """Revoked-token store keyed by token fingerprint."""

    def __init__(self, database):
        self.database = database
        self.collection = database[BLOCKLIST_COLLECTION]

    async def ensure_indexes(self) -> None:
        # Documents expire when expires_at is reached
        await self.collection.create_index(
            [("expires_at", ASCENDING)], expireAfterSeconds=0
        )
        await self.collection.create_index(
            [("fingerprint", ASCENDING)], unique=True
        )

    async def add_token_to_blocklist(
        self,
        fingerprint: str,
        subject: str,
        expires_at: datetime | None = None,
        reason: str = "logout",
    ) -> bool:
        """
        Add token to blocklist.

        Args:
            fingerprint: sha256 digest of the raw token
            subject: Token subject (user e-mail)
            expires_at: When the token naturally expires
            reason: Reason for blocking

        Returns:
            True if the token is blocked after the call
        """
        if not expires_at:
            expires_at = datetime.now(UTC) + timedelta(days=1)

        entry = {
            "fingerprint": fingerprint,
            "subject": subject,
            "blocked_at": datetime.now(UTC),
            "reason": reason,
            "expires_at": expires_at,
        }
        try:
            await self.collection.insert_one(entry)
        except DuplicateKeyError:
            logger.debug("Token already revoked", extra={"reason": reason})
        except PyMongoError as e:
            logger.error(f"Error adding token to blocklist: {e}")
            raise
        return True

    async def is_token_blocked(self, fingerprint: str) -> bool:
        try:
            result = await self.collection.find_one({"fingerprint": fingerprint})
        except PyMongoError as e:
            # If MongoDB is down, assume token is not blocked
            logger.warning(f"Blocklist lookup failed: {e}")
            return False
        return result is not None


# Global blocklist instance (will be initialized with database)
token_blocklist: TokenBlocklist | None = None


def get_token_blocklist(database) -> TokenBlocklist:
    """Get or create token blocklist instance."""
    global token_blocklist
    if token_blocklist is None or token_blocklist.database is not database:
        token_blocklist = TokenBlocklist(database)
    return token_blocklist


async def add_token_to_blocklist(
    fingerprint: str,
    subject: str,
    expires_at: datetime | None = None,
    reason: str = "logout",
    database=None,
) -> bool:
    """Add token to blocklist."""
    if database is None:
        raise ValueError("Database instance required for token blocklist")
    blocklist = get_token_blocklist(database)
    return await blocklist.add_token_to_blocklist(
        fingerprint, subject, expires_at, reason
    )


async def is_token_blocked(fingerprint: str, database=None) -> bool:
    """Check if token is blocked. Without a database nothing is blocked."""
    if database is None:
        return False
    blocklist = get_token_blocklist(database)
    return await blocklist.is_token_blocked(fingerprint)
