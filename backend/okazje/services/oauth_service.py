"""OAuth token lookup for vendor adapters.

Token acquisition and refresh live outside this service; here tokens are
only read. A token that expires within ``EXPIRY_BUFFER`` is treated as
unusable.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from okazje.models.oauth_token import OAuthToken

logger = structlog.get_logger(__name__)

EXPIRY_BUFFER = timedelta(minutes=5)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def get_valid_token(
    db: AsyncSession,
    vendor_id: str,
    account_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[OAuthToken]:
    """Return the most recently used active token, or None.

    Args:
        db: Async database session
        vendor_id: Vendor the token belongs to
        account_name: Restrict to one account; any account when None
        now: Reference time, defaults to the current UTC time
    """
    query = select(OAuthToken).where(
        OAuthToken.vendor_id == vendor_id,
        OAuthToken.status == "active",
    )
    if account_name:
        query = query.where(OAuthToken.account_name == account_name)
    query = query.order_by(
        OAuthToken.last_used_at.desc().nulls_last(), OAuthToken.updated_at.desc()
    ).limit(1)

    result = await db.execute(query)
    token = result.scalar_one_or_none()

    if token is None:
        logger.info("oauth_token_missing", vendor_id=vendor_id, account_name=account_name)
        return None

    now = now or datetime.now(timezone.utc)
    if _as_utc(token.expires_at) - EXPIRY_BUFFER <= now:
        logger.warning(
            "oauth_token_expiring",
            vendor_id=vendor_id,
            account_name=token.account_name,
            expires_at=token.expires_at.isoformat(),
        )
        return None

    return token
