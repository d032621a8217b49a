"""
Claim mapping pipeline - core business logic.

Runs every configured mapper for one token issuance and collects the
resulting claims per token type. Mapper failures are logged and the
corresponding claim omitted; identity assertion never fails because an
enrichment claim could not be computed.
"""

import logging
from typing import Any, Dict, Iterable, List

from .claim_mappers import ShortUsernameMapper, TeamsMapper
from .exceptions import ConfigurationError
from .models import ClaimResult, MapperConfig, TokenClaims

logger = logging.getLogger(__name__)

MAPPERS = {
    ShortUsernameMapper.PROVIDER_ID: ShortUsernameMapper,
    TeamsMapper.PROVIDER_ID: TeamsMapper,
}


class ClaimMappingProcessor:
    """
    Applies configured mappers to a user's attributes.

    Mapper instances are created once and reused across invocations.
    """

    def __init__(self):
        self._mappers = {provider_id: cls() for provider_id, cls in MAPPERS.items()}

    def process(
        self,
        user_attributes: Dict[str, Any],
        mapper_configs: Iterable[MapperConfig]
    ) -> TokenClaims:
        """
        Run all mappers and collect their claims.

        Args:
            user_attributes: User attributes from the token request
            mapper_configs: Mapper instances, in run order

        Returns:
            TokenClaims: Claims per token type (later mappers override earlier ones)

        Raises:
            ConfigurationError: If a mapper is unknown or misconfigured
            TeamApiError: If a teams mapper configured to abort fails its lookup
        """
        token_claims = TokenClaims()
        results: List[ClaimResult] = []

        for config in mapper_configs:
            mapper = self._mappers.get(config.provider_id)
            if mapper is None:
                raise ConfigurationError(f"Unknown mapper provider: {config.provider_id}")

            result = mapper.map_claim(user_attributes, config)
            results.append(result)
            token_claims.add(result)

        success_count = sum(1 for r in results if r.success)
        logger.info(f"Mapped {success_count}/{len(results)} claim(s)")
        for result in results:
            if not result.success:
                logger.info(f"Omitted claim: {result!r}")

        return token_claims
