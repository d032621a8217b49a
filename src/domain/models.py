"""
Data models for the token claim mapping domain.

These type-safe data structures define clear contracts between the parser,
the normalizer, the mappers and the Lambda handler.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class TokenType(str, Enum):
    """Tokens a mapper can contribute a claim to."""
    ACCESS = 'access'
    ID = 'id'
    USERINFO = 'userinfo'


class NormalizationFailure(str, Enum):
    """Why a short username could not be derived."""
    NO_EMAIL = 'NoEmail'
    UNPARSEABLE_LOCAL_PART = 'UnparseableLocalPart'
    UNPARSEABLE_DOMAIN = 'UnparseableDomain'


class ResolveFailureKind(str, Enum):
    """Why a remote team lookup failed."""
    NETWORK_ERROR = 'NetworkError'
    HTTP_STATUS_ERROR = 'HttpStatusError'
    PARSE_ERROR = 'ParseError'


class LookupFailurePolicy(str, Enum):
    """What the teams mapper does when the team lookup fails."""
    DROP_CLAIM = 'drop'
    ABORT = 'abort'


@dataclass(frozen=True)
class EmailAddress:
    """
    Parse result of a raw email address.

    Attributes:
        local_part: Substring before the first '@' (never empty)
        domain_part: Substring after the first '@' with the last
            dot-delimited label removed, or None if it has no TLD
    """
    local_part: str
    domain_part: Optional[str] = None


@dataclass(frozen=True)
class NormalizationPolicy:
    """
    Configuration policy for deriving a short username.

    Attributes:
        use_domain_as_prefix: Prefix the short username with the domain
        excluded_domains: Domains (without TLD) never used as prefix
        verbose: Log diagnostics at INFO instead of DEBUG
        fail_on_missing_domain: Fail instead of falling back to the local
            part when prefixing is on but the domain has no TLD
    """
    use_domain_as_prefix: bool = True
    excluded_domains: FrozenSet[str] = frozenset()
    verbose: bool = False
    fail_on_missing_domain: bool = False


@dataclass(frozen=True)
class NormalizationResult:
    """
    Result of a short username normalization.

    Exactly one of value and failure is set. No partial value is ever
    returned as a success.
    """
    value: Optional[str] = None
    failure: Optional[NormalizationFailure] = None
    detail: Optional[str] = None

    @classmethod
    def ok(cls, value: str) -> 'NormalizationResult':
        return cls(value=value)

    @classmethod
    def failed(cls, failure: NormalizationFailure, detail: str) -> 'NormalizationResult':
        return cls(failure=failure, detail=detail)

    @property
    def success(self) -> bool:
        return self.failure is None

    def __repr__(self) -> str:
        if self.success:
            return f"NormalizationResult(value={self.value})"
        return f"NormalizationResult(failure={self.failure.value}, detail={self.detail})"


@dataclass
class MapperConfig:
    """
    Configuration of a single mapper instance.

    Attributes:
        provider_id: Which mapper implementation to run
        claim_name: Destination claim key
        include_in: Token types that receive the claim
        use_domain_as_prefix: Short username option
        domains_not_used_as_prefix: Comma-separated excluded domains
        fail_on_missing_domain: Short username option
        verbose_logging: Log diagnostics at INFO
        team_api_impl: "remote" or "static" (validated at invocation time)
        team_api_url: Endpoint for the remote team API
        on_team_lookup_failure: Drop the claim or abort token issuance
    """
    provider_id: str
    claim_name: str
    include_in: Tuple[TokenType, ...] = (TokenType.ACCESS, TokenType.ID, TokenType.USERINFO)
    use_domain_as_prefix: bool = True
    domains_not_used_as_prefix: str = ''
    fail_on_missing_domain: bool = False
    verbose_logging: bool = False
    team_api_impl: str = 'remote'
    team_api_url: str = 'https://run.mocky.io'
    on_team_lookup_failure: LookupFailurePolicy = LookupFailurePolicy.DROP_CLAIM


@dataclass
class ClaimResult:
    """
    Result of running one mapper.

    This explicit result type makes success/failure handling clear
    and keeps best-effort claims from aborting token issuance.

    Attributes:
        success: Whether a claim value was computed
        claim_name: Destination claim key
        value: Claim value (if computed)
        include_in: Token types that receive the claim
        error_message: Why the claim was omitted (if it was)
    """
    success: bool
    claim_name: str
    value: Any = None
    include_in: Tuple[TokenType, ...] = ()
    error_message: Optional[str] = None

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.success:
            return f"ClaimResult(success=True, claim={self.claim_name})"
        else:
            return f"ClaimResult(success=False, claim={self.claim_name}, error={self.error_message})"


@dataclass
class TokenClaims:
    """Claims collected per token type for one token issuance."""
    claims: Dict[TokenType, Dict[str, Any]] = field(default_factory=dict)

    def add(self, result: ClaimResult) -> None:
        """Add a successful claim result to every token it targets."""
        if not result.success:
            return
        for token_type in result.include_in:
            self.claims.setdefault(token_type, {})[result.claim_name] = result.value

    def for_token(self, token_type: TokenType) -> Dict[str, Any]:
        return dict(self.claims.get(token_type, {}))

    def as_strings(self, token_type: TokenType) -> Dict[str, str]:
        """
        Get claims for a token with every value coerced to a string.

        Lists and dicts are JSON encoded.
        """
        result = {}
        for name, value in self.for_token(token_type).items():
            if isinstance(value, str):
                result[name] = value
            else:
                result[name] = json.dumps(value, ensure_ascii=False)
        return result

    @property
    def is_empty(self) -> bool:
        return not any(self.claims.values())


@dataclass
class TeamList:
    """Ordered team names for one user, as returned by a team API."""
    teams: List[str] = field(default_factory=list)

    def __iter__(self):
        return iter(self.teams)

    def __len__(self) -> int:
        return len(self.teams)
