"""
AWS Lambda handler for the Cognito Pre Token Generation trigger.

Thin orchestration layer that delegates to ClaimMappingProcessor.
Policy: Claims that cannot be computed are omitted; the token is still issued.
Configuration errors (and team lookups configured to abort) fail the trigger.
"""

import logging
import os
from typing import Dict, Any

from domain.claim_processor import ClaimMappingProcessor
from domain.models import TokenClaims, TokenType
from services import mapper_config

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO'))

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

ENVIRONMENT = os.environ.get('ENVIRONMENT', 'dev')

# Initialize processor once at module level (reused across invocations)
claim_processor = ClaimMappingProcessor()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Add mapped claims to the tokens Cognito is about to issue.

    Expected event format (abridged):
    {
        "version": "2",
        "triggerSource": "TokenGeneration_HostedAuth",
        "userName": "...",
        "request": {"userAttributes": {"email": "john.doe@example.com", ...}},
        "response": {}
    }

    Args:
        event: Cognito Pre Token Generation event
        context: Lambda context

    Returns:
        The event, with the claims override set in event['response']
    """
    trigger_source = event.get('triggerSource', 'UNKNOWN')
    version = str(event.get('version', '1'))
    logger.info(
        f"Pre token generation: trigger={trigger_source}, version={version}, "
        f"user={event.get('userName', 'UNKNOWN')}, environment={ENVIRONMENT}"
    )

    user_attributes = event.get('request', {}).get('userAttributes', {}) or {}

    configs = mapper_config.load_mapper_configs()
    token_claims = claim_processor.process(user_attributes, configs)

    response = event.get('response') or {}
    if version == '1':
        response.update(_v1_response(token_claims))
    else:
        response.update(_v2_response(token_claims))
    event['response'] = response

    userinfo_only = set(token_claims.for_token(TokenType.USERINFO)) - (
        set(token_claims.for_token(TokenType.ID)) | set(token_claims.for_token(TokenType.ACCESS))
    )
    if userinfo_only:
        logger.debug(f"Claims targeted at userinfo only are not written: {sorted(userinfo_only)}")

    return event


def _v1_response(token_claims: TokenClaims) -> Dict[str, Any]:
    """Version 1 overrides the ID token only and accepts string values only."""
    claims = token_claims.as_strings(TokenType.ID)
    logger.info(f"ID token claims: {sorted(claims)}")
    return {
        'claimsOverrideDetails': {
            'claimsToAddOrOverride': claims
        }
    }


def _v2_response(token_claims: TokenClaims) -> Dict[str, Any]:
    id_claims = token_claims.for_token(TokenType.ID)
    access_claims = token_claims.for_token(TokenType.ACCESS)
    logger.info(f"ID token claims: {sorted(id_claims)}, access token claims: {sorted(access_claims)}")
    return {
        'claimsAndScopeOverrideDetails': {
            'idTokenGeneration': {
                'claimsToAddOrOverride': id_claims
            },
            'accessTokenGeneration': {
                'claimsToAddOrOverride': access_claims
            }
        }
    }
