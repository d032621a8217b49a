"""
Mapper configuration management.

This module loads the configured mapper instances with the following priority:
1. S3 override (optional, for runtime updates without redeploy)
2. Local filesystem (config/mappers.json packaged with Lambda)

Configurations are cached in memory for warm Lambda invocations with TTL.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from domain.exceptions import ConfigurationError
from domain.models import LookupFailurePolicy, MapperConfig, TokenType

logger = logging.getLogger(__name__)

# Cache TTL in seconds (default: 5 minutes)
CACHE_TTL_SECONDS = int(os.environ.get('MAPPER_CONFIG_CACHE_TTL', '300'))

# Module-level cache: (configs, timestamp)
_config_cache: Dict[str, Tuple[List[MapperConfig], float]] = {}

# Configure S3 client with timeouts to prevent infinite hangs
s3_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=5,
    read_timeout=10
)

# Initialize S3 client at module level (thread-safe, reused)
s3_client = boto3.client('s3', config=s3_config)

# Configuration from environment variables
CONFIG_BUCKET = os.environ.get('MAPPER_CONFIG_BUCKET')
CONFIG_KEY = os.environ.get('MAPPER_CONFIG_KEY', 'config/mappers.json')

# src/services/mapper_config.py -> src/config/mappers.json
CONFIG_PATH = Path(__file__).parent.parent / 'config' / 'mappers.json'

DEFAULT_CLAIM_NAMES = {
    'oidc-short-username-mapper': 'short_username',
    'oidc-teams-mapper': 'teams',
}


def _load_from_filesystem() -> Dict[str, Any]:
    """
    Load mapper configuration from the packaged JSON file.

    Raises:
        FileNotFoundError: If the config file doesn't exist
    """
    logger.info(f"Loading mapper config from filesystem: {CONFIG_PATH}")

    with open(CONFIG_PATH, 'r', encoding='utf-8') as f:
        return json.load(f)


def _load_from_s3() -> Dict[str, Any]:
    """
    Load mapper configuration from S3 (optional override).

    Raises:
        ValueError: If MAPPER_CONFIG_BUCKET is not set or the object is not JSON
        ClientError: If the object cannot be fetched
    """
    if not CONFIG_BUCKET:
        raise ValueError("MAPPER_CONFIG_BUCKET environment variable not set")

    logger.info(f"Loading mapper config from S3: s3://{CONFIG_BUCKET}/{CONFIG_KEY}")

    response = s3_client.get_object(
        Bucket=CONFIG_BUCKET,
        Key=CONFIG_KEY
    )

    content = response['Body'].read().decode('utf-8')
    return json.loads(content)


def _parse_bool(value: Any, default: bool) -> bool:
    """Parse a boolean option. Strings are true only when equal to 'true'."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == 'true'


def _parse_token_types(value: Any) -> Tuple[TokenType, ...]:
    if value is None:
        return tuple(TokenType)
    if isinstance(value, str):
        value = [v for v in (part.strip() for part in value.split(',')) if v]
    try:
        return tuple(TokenType(v.lower()) for v in value)
    except (ValueError, AttributeError, TypeError):
        raise ConfigurationError(f"Invalid includeInTokens value: {value!r}")


def _parse_string(options: Dict[str, Any], key: str, default: str) -> str:
    """Get a string option; a missing or empty value gives the default."""
    value = options.get(key)
    if value is None or value == '':
        return default
    if not isinstance(value, str):
        raise ConfigurationError(f"{key} must be a string, got: {value!r}")
    return value


def _parse_domain_list(value: Any) -> str:
    """Accept the excluded domains as a comma-separated string or a JSON list."""
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return ','.join(value)
    raise ConfigurationError(f"Invalid domainsNotUsedAsPrefix value: {value!r}")


def parse_mapper_config(entry: Dict[str, Any]) -> MapperConfig:
    """
    Parse one mapper entry.

    Args:
        entry: {"providerId": "...", "config": {...}}

    Returns:
        MapperConfig with defaults applied

    Raises:
        ConfigurationError: If the entry is malformed
    """
    if not isinstance(entry, dict) or not isinstance(entry.get('providerId'), str) or not entry['providerId']:
        raise ConfigurationError(f"Mapper entry must have a providerId: {entry!r}")

    provider_id = entry['providerId']
    options = entry.get('config') or {}
    if not isinstance(options, dict):
        raise ConfigurationError(f"Mapper config for {provider_id} must be an object")

    failure_policy = options.get('onTeamLookupFailure', LookupFailurePolicy.DROP_CLAIM.value)
    try:
        on_failure = LookupFailurePolicy(str(failure_policy).strip().lower())
    except ValueError:
        raise ConfigurationError(f"Invalid onTeamLookupFailure value: {failure_policy!r}")

    return MapperConfig(
        provider_id=provider_id,
        claim_name=_parse_string(options, 'tokenClaimName', DEFAULT_CLAIM_NAMES.get(provider_id, provider_id)),
        include_in=_parse_token_types(options.get('includeInTokens')),
        use_domain_as_prefix=_parse_bool(options.get('useDomainAsPrefix'), True),
        domains_not_used_as_prefix=_parse_domain_list(options.get('domainsNotUsedAsPrefix')),
        fail_on_missing_domain=_parse_bool(options.get('failOnMissingDomain'), False),
        verbose_logging=_parse_bool(options.get('verboseLogging'), False),
        team_api_impl=_parse_string(options, 'teamApiImpl', 'remote'),
        team_api_url=_parse_string(options, 'teamApiUrl', 'https://run.mocky.io'),
        on_team_lookup_failure=on_failure
    )


def parse_mapper_configs(document: Dict[str, Any]) -> List[MapperConfig]:
    """
    Parse a mapper configuration document.

    Raises:
        ConfigurationError: If the document has no 'mappers' list
    """
    mappers = document.get('mappers') if isinstance(document, dict) else None
    if not isinstance(mappers, list):
        raise ConfigurationError("Mapper config document must contain a 'mappers' list")
    return [parse_mapper_config(entry) for entry in mappers]


def load_mapper_configs(use_cache: bool = True) -> List[MapperConfig]:
    """
    Load mapper configurations with caching and fallback.

    Priority: Cache -> S3 override -> Local filesystem

    Args:
        use_cache: Use cached version if available (default: True)

    Returns:
        List[MapperConfig]: Configured mapper instances, in run order

    Raises:
        ConfigurationError: If no valid configuration can be found
    """
    cache_key = 'mappers'
    current_time = time.time()

    if use_cache and cache_key in _config_cache:
        cached_configs, cached_time = _config_cache[cache_key]
        age_seconds = current_time - cached_time
        if age_seconds < CACHE_TTL_SECONDS:
            logger.debug(f"Using cached mapper config (age: {int(age_seconds)}s)")
            return cached_configs
        logger.info(
            f"Cache expired for mapper config "
            f"(age: {int(age_seconds)}s > TTL: {CACHE_TTL_SECONDS}s), reloading..."
        )

    document: Optional[Dict[str, Any]] = None

    # Try S3 override
    if CONFIG_BUCKET:
        try:
            document = _load_from_s3()
            logger.info("Using S3 override for mapper config")
        except (ClientError, ValueError) as e:
            logger.info(
                f"S3 override not available ({e.__class__.__name__}), "
                f"falling back to local filesystem"
            )

    # Fall back to local filesystem
    if document is None:
        try:
            document = _load_from_filesystem()
        except FileNotFoundError:
            logger.error(f"Mapper config not found. Expected location: {CONFIG_PATH}")
            raise ConfigurationError("Mapper config not found in S3 or local filesystem")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Mapper config at {CONFIG_PATH} is not valid JSON: {e}")

    configs = parse_mapper_configs(document)
    logger.info(f"Loaded {len(configs)} mapper config(s)")

    _config_cache[cache_key] = (configs, current_time)
    return configs


def clear_cache() -> None:
    """
    Clear the mapper config cache.

    Useful for testing or forcing a reload from S3.
    """
    _config_cache.clear()
    logger.info("Mapper config cache cleared")
