"""
Email address decomposition.

Splits a raw email address into its local part and its domain part with the
top-level domain removed. All functions are pure and never raise for
malformed input; absence is signalled with None.
"""

from typing import Optional

from .models import EmailAddress


def local_part(email: Optional[str]) -> Optional[str]:
    """
    Get the substring before the first '@'.

    Args:
        email: Raw email address

    Returns:
        The local part, or None if there is no '@' or the local part is empty

    Example:
        >>> local_part("john.doe@example.com")
        'john.doe'
    """
    if not email or '@' not in email:
        return None

    local, _, _ = email.partition('@')
    return local or None


def domain_part_without_tld(email: Optional[str]) -> Optional[str]:
    """
    Get the substring after the first '@' with the last label removed.

    Args:
        email: Raw email address

    Returns:
        The domain without its top-level domain, or None if there is no '@',
        the domain has no '.', or nothing is left after stripping the TLD

    Example:
        >>> domain_part_without_tld("jane@foo.example.co.uk")
        'foo.example.co'
    """
    if not email or '@' not in email:
        return None

    _, _, domain = email.partition('@')
    if '.' not in domain:
        return None

    without_tld = domain.rsplit('.', 1)[0]
    return without_tld or None


def parse_email(raw: Optional[str]) -> Optional[EmailAddress]:
    """
    Parse a raw email address.

    Returns None when no local part can be found. A missing or TLD-less
    domain is not a parse failure; domain_part is None in that case.
    """
    local = local_part(raw)
    if local is None:
        return None
    return EmailAddress(local_part=local, domain_part=domain_part_without_tld(raw))
