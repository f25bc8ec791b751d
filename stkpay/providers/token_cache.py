"""
Access token cache for the Daraja OAuth credential exchange.

One instance is owned by each MPesaProvider. Refresh is single-flight:
concurrent callers that find the token expired wait on one lock and only the
first performs the exchange.
"""

import logging
import threading
import time
from typing import Callable, Optional, Tuple

from stkpay.errors import UpstreamAuthError

logger = logging.getLogger(__name__)

# fetch() returns (access_token, expires_in_seconds or None)
TokenFetcher = Callable[[], Tuple[str, Optional[int]]]


class AccessTokenCache:
    """Caches a bearer token until shortly before it expires."""

    DEFAULT_SAFETY_MARGIN = 5.0
    DEFAULT_LIFETIME = 3600

    def __init__(
        self,
        fetch: TokenFetcher,
        safety_margin: float = DEFAULT_SAFETY_MARGIN,
        default_lifetime: int = DEFAULT_LIFETIME,
        clock: Callable[[], float] = time.time,
    ):
        self._fetch = fetch
        self.safety_margin = safety_margin
        self.default_lifetime = default_lifetime
        self._clock = clock

        # (token, expires_at), always replaced together
        self._state: Tuple[Optional[str], float] = (None, 0.0)
        self._lock = threading.Lock()

    @property
    def token(self) -> Optional[str]:
        return self._state[0]

    @property
    def expires_at(self) -> float:
        return self._state[1]

    def _fresh_token(self) -> Optional[str]:
        token, expires_at = self._state
        if token and expires_at > self._clock() + self.safety_margin:
            return token
        return None

    def get_token(self) -> str:
        """Return the cached token, refreshing it when it is about to expire."""
        token = self._fresh_token()
        if token:
            return token

        with self._lock:
            # Another thread may have refreshed while we waited
            token = self._fresh_token()
            if token:
                return token

            now = self._clock()
            try:
                token, expires_in = self._fetch()
            except UpstreamAuthError:
                raise
            except Exception as exc:
                raise UpstreamAuthError(
                    f'Failed to obtain access token: {exc}'
                ) from exc

            if not token:
                raise UpstreamAuthError('Token endpoint returned no access_token')

            lifetime = self._parse_lifetime(expires_in)
            self._state = (token, now + lifetime)

            logger.debug('Access token refreshed (expires in %ds)', lifetime)
            return token

    def invalidate(self) -> None:
        with self._lock:
            self._state = (None, 0.0)

    def _parse_lifetime(self, expires_in) -> int:
        try:
            lifetime = int(expires_in)
        except (TypeError, ValueError):
            return self.default_lifetime
        return lifetime if lifetime > 0 else self.default_lifetime
