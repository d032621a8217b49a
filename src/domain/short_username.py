"""
Email to short username normalization.

Derives an RFC-1123 compliant identifier (lowercase alphanumerics and '-')
from an email address:

    john.doe@example.com -> example-john-doe   (domain as prefix)
    john.doe@example.com -> john-doe           (no prefix)

Failures are returned as NormalizationResult values, never raised.
"""

import logging
import re
from typing import FrozenSet, Optional

from .email_address import parse_email
from .models import NormalizationFailure, NormalizationPolicy, NormalizationResult

logger = logging.getLogger(__name__)

_NON_ALPHANUMERIC = re.compile(r'[^A-Za-z0-9]')


def debug_log(log: logging.Logger, verbose: bool, msg: str) -> None:
    """Log at INFO when verbose logging is enabled, otherwise at DEBUG."""
    if verbose:
        log.info(msg)
    else:
        log.debug(msg)


def as_rfc1123(value: str) -> str:
    """
    Replace every non-alphanumeric character with '-' and lowercase.

    Example:
        >>> as_rfc1123("Example-John.Doe+Test")
        'example-john-doe-test'
    """
    return _NON_ALPHANUMERIC.sub('-', value).lower()


def parse_domain_list(value: Optional[str]) -> FrozenSet[str]:
    """
    Parse a comma-separated list of domains.

    Entries are trimmed and empty entries are dropped.

    Args:
        value: Raw configuration string (may be None or blank)

    Returns:
        Set of domain names
    """
    if value is None or not value.strip():
        return frozenset()
    return frozenset(entry.strip() for entry in value.split(',') if entry.strip())


def normalize(email: Optional[str], policy: NormalizationPolicy) -> NormalizationResult:
    """
    Normalize an email address to a short username.

    Args:
        email: Raw email address (may be None, empty or blank)
        policy: Prefix and exclusion policy

    Returns:
        NormalizationResult with either the short username or a failure reason
    """
    if email is None or not email.strip():
        return NormalizationResult.failed(
            NormalizationFailure.NO_EMAIL,
            "Email was null or empty"
        )

    parsed = parse_email(email)
    if parsed is None:
        return NormalizationResult.failed(
            NormalizationFailure.UNPARSEABLE_LOCAL_PART,
            f"Unable to retrieve local part from email {email}"
        )

    candidate = parsed.local_part
    if policy.use_domain_as_prefix:
        domain = parsed.domain_part
        if domain is None:
            if policy.fail_on_missing_domain:
                return NormalizationResult.failed(
                    NormalizationFailure.UNPARSEABLE_DOMAIN,
                    f"Unable to retrieve domain part from email {email}"
                )
            debug_log(logger, policy.verbose, f"No domain in {email}, using local part only")
        elif domain in policy.excluded_domains:
            debug_log(logger, policy.verbose, f"Domain {domain} is not used as prefix")
        else:
            candidate = f"{domain}-{parsed.local_part}"

    return NormalizationResult.ok(as_rfc1123(candidate))
