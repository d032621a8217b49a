import json
import boto3
import os
import logging

logger = logging.getLogger()
logger.setLevel(logging.INFO)

codedeploy = boto3.client('codedeploy')
lambda_client = boto3.client('lambda')

SMOKE_TEST_EMAIL = 'john.doe@example.com'


def build_test_event():
    """Synthetic Cognito Pre Token Generation (v2) event."""
    return {
        'version': '2',
        'triggerSource': 'TokenGeneration_Authentication',
        'region': os.environ.get('AWS_REGION', 'us-east-1'),
        'userPoolId': 'pre-deployment-test',
        'userName': 'pre-deployment-test',
        'callerContext': {'awsSdkVersion': 'smoke-test', 'clientId': 'pre-deployment-test'},
        'request': {
            'userAttributes': {'email': SMOKE_TEST_EMAIL},
            'groupConfiguration': {},
            'scopes': ['openid']
        },
        'response': {}
    }


def lambda_handler(event, context):
    """
    Pre-traffic hook for CodeDeploy.
    Invokes the new version with a token generation event before shifting traffic.
    """
    logger.info(f"Pre-traffic hook triggered: {json.dumps(event)}")

    deployment_id = event['DeploymentId']
    lifecycle_event_hook_execution_id = event['LifecycleEventHookExecutionId']

    try:
        target_function = os.environ.get('TARGET_FUNCTION')

        logger.info(f"Running smoke tests on {target_function}")

        response = lambda_client.invoke(
            FunctionName=target_function,
            InvocationType='RequestResponse',
            Payload=json.dumps(build_test_event())
        )

        response_payload = json.loads(response['Payload'].read())
        logger.info(f"Test response: {json.dumps(response_payload)}")

        if response.get('FunctionError'):
            raise Exception(f"Function returned error: {response_payload}")

        if response.get('StatusCode') != 200:
            raise Exception(f"Unexpected status code: {response.get('StatusCode')}")

        overrides = response_payload.get('response', {}).get('claimsAndScopeOverrideDetails')
        if overrides is None:
            raise Exception("Response has no claimsAndScopeOverrideDetails")

        logger.info("Pre-traffic validation passed")

        codedeploy.put_lifecycle_event_hook_execution_status(
            deploymentId=deployment_id,
            lifecycleEventHookExecutionId=lifecycle_event_hook_execution_id,
            status='Succeeded'
        )

        return {
            'statusCode': 200,
            'body': json.dumps('Pre-traffic validation succeeded')
        }

    except Exception as e:
        logger.error(f"Pre-traffic validation failed: {str(e)}", exc_info=True)

        # Report failure - this will prevent deployment
        codedeploy.put_lifecycle_event_hook_execution_status(
            deploymentId=deployment_id,
            lifecycleEventHookExecutionId=lifecycle_event_hook_execution_id,
            status='Failed'
        )

        return {
            'statusCode': 500,
            'body': json.dumps(f'Pre-traffic validation failed: {str(e)}')
        }
