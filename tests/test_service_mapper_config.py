"""
Tests for mapper configuration service.
"""

import json

import pytest
from unittest.mock import patch, MagicMock, mock_open
from botocore.exceptions import ClientError
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from domain.exceptions import ConfigurationError
from domain.models import LookupFailurePolicy, TokenType
from services import mapper_config


S3_DOCUMENT = {
    "mappers": [
        {
            "providerId": "oidc-short-username-mapper",
            "config": {"tokenClaimName": "shortname", "useDomainAsPrefix": "false"}
        }
    ]
}


class TestLoadFromFilesystem:
    """Test loading the packaged mapper config."""

    def test_packaged_config(self):
        """The packaged config defines a short username and a teams mapper."""
        document = mapper_config._load_from_filesystem()

        provider_ids = [m["providerId"] for m in document["mappers"]]
        assert provider_ids == ["oidc-short-username-mapper", "oidc-teams-mapper"]

    @patch('builtins.open', side_effect=FileNotFoundError("File not found"))
    def test_load_from_filesystem_not_found(self, mock_file):
        with pytest.raises(FileNotFoundError):
            mapper_config._load_from_filesystem()


class TestLoadFromS3:
    """Test loading mapper config from S3."""

    @patch('services.mapper_config.CONFIG_BUCKET', 'test-bucket')
    @patch('services.mapper_config.CONFIG_KEY', 'config/mappers.json')
    @patch('services.mapper_config.s3_client')
    def test_load_from_s3_success(self, mock_s3):
        mock_s3.get_object.return_value = {
            'Body': MagicMock(read=lambda: json.dumps(S3_DOCUMENT).encode('utf-8'))
        }

        result = mapper_config._load_from_s3()

        assert result == S3_DOCUMENT
        mock_s3.get_object.assert_called_once_with(
            Bucket='test-bucket',
            Key='config/mappers.json'
        )

    @patch('services.mapper_config.CONFIG_BUCKET', None)
    def test_load_from_s3_no_bucket(self):
        with pytest.raises(ValueError, match="MAPPER_CONFIG_BUCKET environment variable not set"):
            mapper_config._load_from_s3()


class TestParseMapperConfig:
    """Test parsing of mapper entries."""

    def test_defaults(self):
        config = mapper_config.parse_mapper_config({"providerId": "oidc-short-username-mapper"})

        assert config.claim_name == "short_username"
        assert config.include_in == (TokenType.ACCESS, TokenType.ID, TokenType.USERINFO)
        assert config.use_domain_as_prefix is True
        assert config.domains_not_used_as_prefix == ""
        assert config.verbose_logging is False
        assert config.on_team_lookup_failure == LookupFailurePolicy.DROP_CLAIM

    def test_string_options(self):
        config = mapper_config.parse_mapper_config({
            "providerId": "oidc-short-username-mapper",
            "config": {
                "tokenClaimName": "shortname",
                "includeInTokens": "id, access",
                "useDomainAsPrefix": "FALSE",
                "domainsNotUsedAsPrefix": "example",
                "verboseLogging": "True"
            }
        })

        assert config.claim_name == "shortname"
        assert config.include_in == (TokenType.ID, TokenType.ACCESS)
        assert config.use_domain_as_prefix is False
        assert config.domains_not_used_as_prefix == "example"
        assert config.verbose_logging is True

    def test_json_bool_options(self):
        config = mapper_config.parse_mapper_config({
            "providerId": "oidc-short-username-mapper",
            "config": {"useDomainAsPrefix": False, "failOnMissingDomain": True}
        })

        assert config.use_domain_as_prefix is False
        assert config.fail_on_missing_domain is True

    def test_team_options(self):
        config = mapper_config.parse_mapper_config({
            "providerId": "oidc-teams-mapper",
            "config": {
                "teamApiImpl": "static",
                "teamApiUrl": "https://teams.example.com",
                "onTeamLookupFailure": "ABORT"
            }
        })

        assert config.claim_name == "teams"
        assert config.team_api_impl == "static"
        assert config.team_api_url == "https://teams.example.com"
        assert config.on_team_lookup_failure == LookupFailurePolicy.ABORT

    def test_unknown_team_impl_is_accepted_until_invocation(self):
        config = mapper_config.parse_mapper_config({
            "providerId": "oidc-teams-mapper",
            "config": {"teamApiImpl": "ldap"}
        })

        assert config.team_api_impl == "ldap"

    def test_domain_list_option(self):
        config = mapper_config.parse_mapper_config({
            "providerId": "oidc-short-username-mapper",
            "config": {"domainsNotUsedAsPrefix": ["example", "other"]}
        })

        assert config.domains_not_used_as_prefix == "example,other"

    @pytest.mark.parametrize("entry", [
        {},
        {"config": {}},
        {"providerId": "oidc-teams-mapper", "config": "nope"},
        {"providerId": "oidc-teams-mapper", "config": {"includeInTokens": ["refresh"]}},
        {"providerId": 1},
        {"providerId": ""},
        {"providerId": "oidc-teams-mapper", "config": {"onTeamLookupFailure": "retry"}},
        {"providerId": "oidc-teams-mapper", "config": {"tokenClaimName": 1}},
        {"providerId": "oidc-teams-mapper", "config": {"teamApiImpl": ["static"]}},
        {"providerId": "oidc-teams-mapper", "config": {"teamApiUrl": {"host": "run.mocky.io"}}},
        {"providerId": "oidc-short-username-mapper", "config": {"domainsNotUsedAsPrefix": [1]}},
        {"providerId": "oidc-short-username-mapper", "config": {"domainsNotUsedAsPrefix": {}}},
    ])
    def test_invalid_entry(self, entry):
        with pytest.raises(ConfigurationError):
            mapper_config.parse_mapper_config(entry)

    def test_document_without_mappers(self):
        with pytest.raises(ConfigurationError, match="'mappers' list"):
            mapper_config.parse_mapper_configs({"mapper": []})


class TestLoadMapperConfigs:
    """Test load_mapper_configs with caching and fallback."""

    @patch('services.mapper_config.CONFIG_BUCKET', 'test-bucket')
    @patch('services.mapper_config._load_from_s3')
    @patch('services.mapper_config._load_from_filesystem')
    def test_load_from_s3_success(self, mock_fs, mock_s3):
        mock_s3.return_value = S3_DOCUMENT

        configs = mapper_config.load_mapper_configs()

        assert [c.claim_name for c in configs] == ["shortname"]
        mock_fs.assert_not_called()

    @patch('services.mapper_config.CONFIG_BUCKET', 'test-bucket')
    @patch('services.mapper_config._load_from_s3')
    def test_fallback_to_filesystem(self, mock_s3):
        mock_s3.side_effect = ClientError(
            {'Error': {'Code': 'NoSuchKey', 'Message': 'Not found'}},
            'GetObject'
        )

        configs = mapper_config.load_mapper_configs()

        assert [c.provider_id for c in configs] == ["oidc-short-username-mapper", "oidc-teams-mapper"]
        mock_s3.assert_called_once()

    @patch('services.mapper_config.CONFIG_BUCKET', None)
    @patch('services.mapper_config._load_from_s3')
    def test_no_s3_bucket_configured(self, mock_s3):
        configs = mapper_config.load_mapper_configs()

        assert len(configs) == 2
        mock_s3.assert_not_called()

    @patch('services.mapper_config.CONFIG_BUCKET', None)
    @patch('services.mapper_config._load_from_filesystem')
    def test_cache_hit(self, mock_fs):
        mock_fs.return_value = S3_DOCUMENT

        first = mapper_config.load_mapper_configs()
        second = mapper_config.load_mapper_configs()

        assert first is second
        mock_fs.assert_called_once()

    @patch('services.mapper_config.CONFIG_BUCKET', None)
    @patch('services.mapper_config.CACHE_TTL_SECONDS', 60)
    @patch('services.mapper_config.time')
    @patch('services.mapper_config._load_from_filesystem')
    def test_cache_expired(self, mock_fs, mock_time):
        mock_fs.return_value = S3_DOCUMENT
        mock_time.time.side_effect = [1000.0, 1100.0]

        mapper_config.load_mapper_configs()
        mapper_config.load_mapper_configs()

        assert mock_fs.call_count == 2

    @patch('services.mapper_config.CONFIG_BUCKET', None)
    @patch('services.mapper_config._load_from_filesystem')
    def test_bypass_cache(self, mock_fs):
        mock_fs.return_value = S3_DOCUMENT

        mapper_config.load_mapper_configs()
        mapper_config.load_mapper_configs(use_cache=False)

        assert mock_fs.call_count == 2

    @patch('services.mapper_config.CONFIG_BUCKET', None)
    @patch('services.mapper_config._load_from_filesystem', side_effect=FileNotFoundError())
    def test_not_found(self, mock_fs):
        with pytest.raises(ConfigurationError, match="not found"):
            mapper_config.load_mapper_configs()

    @patch('services.mapper_config.CONFIG_BUCKET', None)
    @patch('builtins.open', new_callable=mock_open, read_data='{not json')
    def test_invalid_json(self, mock_file):
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            mapper_config.load_mapper_configs()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
