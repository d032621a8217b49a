"""
Token claim mappers.

Each mapper computes one claim value from the user's attributes and its
mapper configuration:

- ShortUsernameMapper: email -> RFC-1123 short username
- TeamsMapper: team API -> list of team names

Mappers return ClaimResult. Expected failures never raise; the only errors
that propagate are ConfigurationError and, when the mapper is configured to
abort, TeamApiError.
"""

import logging
from typing import Any, Dict

from .models import (
    ClaimResult,
    LookupFailurePolicy,
    MapperConfig,
    NormalizationFailure,
    NormalizationPolicy,
)
from .short_username import debug_log, normalize, parse_domain_list
from integrations import team_api

logger = logging.getLogger(__name__)


class ShortUsernameMapper:
    """
    Looks up a user's email and transforms it to an RFC-1123 compliant name.
    """

    PROVIDER_ID = 'oidc-short-username-mapper'
    DISPLAY_TYPE = 'Short username mapper'
    HELP_TEXT = (
        "Transform a user's email to a short username claim (RFC-1123 compliant string). "
        "Example: john.doe@example.com -> example-john-doe"
    )

    @staticmethod
    def policy_from_config(config: MapperConfig) -> NormalizationPolicy:
        return NormalizationPolicy(
            use_domain_as_prefix=config.use_domain_as_prefix,
            excluded_domains=parse_domain_list(config.domains_not_used_as_prefix),
            verbose=config.verbose_logging,
            fail_on_missing_domain=config.fail_on_missing_domain
        )

    def map_claim(self, user_attributes: Dict[str, Any], config: MapperConfig) -> ClaimResult:
        """
        Compute the short username claim.

        Args:
            user_attributes: User attributes from the token request
            config: Mapper configuration

        Returns:
            ClaimResult with success=False when no short username could be derived
        """
        verbose = config.verbose_logging
        claim_name = config.claim_name
        debug_log(logger, verbose, f"Map claim {claim_name}")

        email = user_attributes.get('email')
        result = normalize(email, self.policy_from_config(config))

        if not result.success:
            if result.failure == NormalizationFailure.NO_EMAIL:
                logger.info("Email was null or empty. Unable to deduce shortname.")
            else:
                logger.info(f"Could not set {claim_name} claim: {result.detail}")
            return ClaimResult(
                success=False,
                claim_name=claim_name,
                include_in=config.include_in,
                error_message=result.detail
            )

        debug_log(logger, verbose, f"Claim {claim_name} set to {result.value}")
        return ClaimResult(
            success=True,
            claim_name=claim_name,
            value=result.value,
            include_in=config.include_in
        )


class TeamsMapper:
    """
    Looks up a user's teams and populates a token claim with them.
    """

    PROVIDER_ID = 'oidc-teams-mapper'
    DISPLAY_TYPE = 'Team API mapper'
    HELP_TEXT = "Retrieve the user's teams from the team API and add claim"

    def map_claim(self, user_attributes: Dict[str, Any], config: MapperConfig) -> ClaimResult:
        """
        Compute the teams claim.

        Args:
            user_attributes: User attributes from the token request
            config: Mapper configuration

        Returns:
            ClaimResult with the ordered team names

        Raises:
            ConfigurationError: If the team API implementation is unsupported
            TeamApiError: If the lookup fails and the mapper is configured to abort
        """
        claim_name = config.claim_name
        debug_log(logger, config.verbose_logging, f"Retrieve teams for claim {claim_name}")

        client = team_api.create_team_api_client(config.team_api_impl, config.team_api_url)

        try:
            teams = client.get_teams()
        except team_api.TeamApiError as e:
            if config.on_team_lookup_failure == LookupFailurePolicy.ABORT:
                logger.error(f"Team lookup failed ({e.kind.value}), aborting: {e}")
                raise
            logger.error(f"Team lookup failed ({e.kind.value}), claim {claim_name} dropped: {e}")
            return ClaimResult(
                success=False,
                claim_name=claim_name,
                include_in=config.include_in,
                error_message=str(e)
            )

        debug_log(logger, config.verbose_logging, f"Claim {claim_name} set to {teams}")
        return ClaimResult(
            success=True,
            claim_name=claim_name,
            value=list(teams),
            include_in=config.include_in
        )
