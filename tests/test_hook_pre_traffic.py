"""
Tests for the CodeDeploy pre-traffic hook.
"""

import io
import json

import pytest
from unittest.mock import patch
import sys
import os

# Add hooks to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../hooks'))

import pre_traffic


@pytest.fixture
def hook_event():
    return {
        'DeploymentId': 'd-TEST123',
        'LifecycleEventHookExecutionId': 'hook-execution-id'
    }


def _invoke_response(payload, status_code=200, function_error=None):
    response = {
        'StatusCode': status_code,
        'Payload': io.BytesIO(json.dumps(payload).encode('utf-8'))
    }
    if function_error:
        response['FunctionError'] = function_error
    return response


class TestPreTrafficHook:
    """Test the pre-traffic smoke test."""

    @patch.dict(os.environ, {'TARGET_FUNCTION': 'pre-token-generation:2'})
    @patch('pre_traffic.codedeploy')
    @patch('pre_traffic.lambda_client')
    def test_success(self, mock_lambda, mock_codedeploy, hook_event):
        payload = pre_traffic.build_test_event()
        payload['response'] = {'claimsAndScopeOverrideDetails': {
            'idTokenGeneration': {'claimsToAddOrOverride': {'short_username': 'example-john-doe'}}
        }}
        mock_lambda.invoke.return_value = _invoke_response(payload)

        result = pre_traffic.lambda_handler(hook_event, None)

        assert result['statusCode'] == 200
        sent_event = json.loads(mock_lambda.invoke.call_args[1]['Payload'])
        assert sent_event['request']['userAttributes']['email'] == 'john.doe@example.com'
        mock_codedeploy.put_lifecycle_event_hook_execution_status.assert_called_once_with(
            deploymentId='d-TEST123',
            lifecycleEventHookExecutionId='hook-execution-id',
            status='Succeeded'
        )

    @patch('pre_traffic.codedeploy')
    @patch('pre_traffic.lambda_client')
    def test_function_error(self, mock_lambda, mock_codedeploy, hook_event):
        mock_lambda.invoke.return_value = _invoke_response(
            {'errorMessage': 'boom'},
            function_error='Unhandled'
        )

        result = pre_traffic.lambda_handler(hook_event, None)

        assert result['statusCode'] == 500
        assert mock_codedeploy.put_lifecycle_event_hook_execution_status.call_args[1]['status'] == 'Failed'

    @patch('pre_traffic.codedeploy')
    @patch('pre_traffic.lambda_client')
    def test_missing_claims_override(self, mock_lambda, mock_codedeploy, hook_event):
        mock_lambda.invoke.return_value = _invoke_response({'response': {}})

        result = pre_traffic.lambda_handler(hook_event, None)

        assert result['statusCode'] == 500
        assert mock_codedeploy.put_lifecycle_event_hook_execution_status.call_args[1]['status'] == 'Failed'


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
