from typing import Any, Callable, Optional

from tokenstore.application.token_store import TokenStore
from tokenstore.domain import services as domain_services
from tokenstore.settings import get_settings


async def issue_token(
    store: TokenStore,
    uid: str,
    *,
    ttl: Any = None,
    referrer: Optional[str] = None,
    generate: Optional[Callable[[], str]] = None,
) -> str:
    """
    Generate a fresh random token, make it the uid's only active one and
    return it. ttl defaults to DEFAULT_TTL_MS from settings.
    """
    if ttl is None:
        ttl = get_settings().default_ttl_ms
    token = (generate or domain_services.generate_token)()
    await store.store_or_update(token, uid, ttl, referrer)
    return token
