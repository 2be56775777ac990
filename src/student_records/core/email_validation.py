"""
Email Existence Validation

Decides whether an address is plausibly real:

1. Grammar check with email-validator (no network).
2. MX lookup for the domain with dnspython.

Results are cached per domain (`mx:<domain>`) and per address
(`email:<address>`) in a TTLCache, so repeated registrations for the same
domain cost one DNS query.

The validator never raises. Any failure answers False, and transient DNS
failures (timeouts, unreachable nameservers) are not cached at either level,
so the next call tries again.
"""

import logging
from typing import Any

import dns.asyncresolver
import dns.exception
import dns.resolver
from email_validator import EmailNotValidError, validate_email

from student_records.core.cache import TTLCache
from student_records.core.config import settings

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600


class EmailValidator:
    """
    Email format + MX validator backed by an injected cache.

    Args:
        cache: Cache shared by domain and address results
        resolver: Object with an async `resolve(name, rdtype)` method.
                  Defaults to a dnspython async resolver created on first use.
        timeout: Lifetime of a single MX query in seconds
        retries: Extra attempts after a timed-out query
    """

    def __init__(
        self,
        cache: TTLCache,
        resolver: Any | None = None,
        timeout: float = 5.0,
        retries: int = 2,
    ):
        self.cache = cache
        self.timeout = timeout
        self.retries = retries
        self._resolver = resolver

    def _get_resolver(self) -> Any:
        if self._resolver is None:
            resolver = dns.asyncresolver.Resolver()
            resolver.lifetime = self.timeout
            self._resolver = resolver
        return self._resolver

    @staticmethod
    def is_valid_email_format(address: str | None) -> bool:
        """
        Check address grammar without touching the network.

        Inputs the parser would have to repair (surrounding display names,
        quoting changes and so on) are rejected: the normalized form must
        equal the trimmed input, ignoring case.
        """
        if address is None:
            return False
        trimmed = address.strip()
        if not trimmed:
            return False
        try:
            result = validate_email(trimmed, check_deliverability=False)
        except EmailNotValidError:
            return False
        return result.normalized.lower() == trimmed.lower()

    async def _query_mx(self, domain: str) -> bool | None:
        """
        Run the MX query with retries on timeout.

        Returns True/False for a definitive answer, None when no answer
        could be obtained.
        """
        resolver = self._get_resolver()
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                answer = await resolver.resolve(domain, "MX", lifetime=self.timeout)
                return len(answer) > 0
            except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
                return False
            except dns.exception.Timeout:
                logger.warning(f"MX lookup for {domain} timed out (attempt {attempt}/{attempts})")
            except Exception as e:
                logger.warning(f"MX lookup for {domain} failed: {e}")
                return None
        return None

    async def _lookup_mx(self, address: str) -> bool | None:
        """Domain-level MX answer, or None when DNS gave no definitive answer."""
        if not address or "@" not in address:
            return False
        domain = address.rsplit("@", 1)[1].strip().lower()
        if not domain:
            return False

        key = f"mx:{domain}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = await self._query_mx(domain)
        if result is None:
            return None

        self.cache.set(key, result)
        logger.debug(f"MX lookup for {domain}: {result}")
        return result

    async def has_mx_records(self, address: str) -> bool:
        """
        Check whether the address's domain publishes at least one MX record.

        Args:
            address: Full email address (only the part after '@' is used)

        Returns:
            True if the domain can receive mail, False otherwise
        """
        return await self._lookup_mx(address) is True

    async def is_real_email(self, address: str | None) -> bool:
        """
        Check format, then MX records, caching the combined answer.

        Malformed addresses never reach DNS.
        """
        try:
            if not self.is_valid_email_format(address):
                return False

            trimmed = address.strip()  # type: ignore[union-attr]
            key = f"email:{trimmed.lower()}"
            cached = self.cache.get(key)
            if cached is not None:
                return cached

            result = await self._lookup_mx(trimmed)
            if result is None:
                # Transient DNS failure: answer no, but let the next call retry
                return False

            self.cache.set(key, result)
            return result
        except Exception:
            logger.exception(f"Email validation failed for {address}")
            return False

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Email validation cache cleared")

    def cache_size(self) -> int:
        return len(self.cache)


# Application-wide instance, created on startup
email_validator: EmailValidator | None = None


def init_email_validator(resolver: Any | None = None) -> EmailValidator:
    """
    Create the application's validator from settings.

    Call this on application startup.
    """
    global email_validator
    cache = TTLCache(
        maxsize=settings.email_cache_max_entries,
        ttl=settings.email_cache_ttl_hours * SECONDS_PER_HOUR,
        sliding_ttl=settings.email_cache_sliding_hours * SECONDS_PER_HOUR,
    )
    email_validator = EmailValidator(
        cache,
        resolver=resolver,
        timeout=settings.dns_timeout_seconds,
        retries=settings.dns_retries,
    )
    return email_validator


def get_email_validator() -> EmailValidator | None:
    """
    Get the application's validator.

    Returns None when MX checks are disabled or the validator was never
    initialized, in which case registration skips the realness check.
    """
    if not settings.email_mx_check_enabled:
        return None
    return email_validator
