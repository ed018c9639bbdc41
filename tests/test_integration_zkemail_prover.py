"""
Tests for the hosted ZK Email prover integration.
"""

import io
import json
import pytest
import sys
import os
from unittest.mock import patch

from botocore.exceptions import ClientError

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from integrations import zkemail_prover
from integrations.zkemail_prover import (
    BlueprintNotFoundError,
    ConfigurationError,
    ProverClient,
    ProverInvocationError,
)


def _lambda_response(body, function_error=None):
    """Build a Lambda invoke response with a streaming payload."""
    raw = body if isinstance(body, bytes) else json.dumps(body).encode('utf-8')
    response = {'StatusCode': 200, 'Payload': io.BytesIO(raw)}
    if function_error:
        response['FunctionError'] = function_error
    return response


@patch('integrations.zkemail_prover.PROVER_FUNCTION_NAME', 'zkemail-prover-test')
@patch('integrations.zkemail_prover.lambda_client')
class TestInvokeProver:
    """Test invoke_prover request and error mapping."""

    def test_success_returns_result(self, mock_client):
        mock_client.invoke.return_value = _lambda_response({'result': {'valid': True}})

        result = zkemail_prover.invoke_prover('verifyProof', {'blueprintId': 'a/B@v1'})

        assert result == {'valid': True}
        call_kwargs = mock_client.invoke.call_args.kwargs
        assert call_kwargs['FunctionName'] == 'zkemail-prover-test'
        assert call_kwargs['InvocationType'] == 'RequestResponse'
        assert json.loads(call_kwargs['Payload']) == {'action': 'verifyProof', 'blueprintId': 'a/B@v1'}

    def test_client_error(self, mock_client):
        mock_client.invoke.side_effect = ClientError(
            {'Error': {'Code': 'TooManyRequestsException', 'Message': 'Rate exceeded'}},
            'Invoke'
        )

        with pytest.raises(ProverInvocationError, match="TooManyRequestsException"):
            zkemail_prover.invoke_prover('generateProof', {})

    def test_function_error(self, mock_client):
        mock_client.invoke.return_value = _lambda_response(
            {'errorMessage': 'Task timed out', 'errorType': 'Timeout'},
            function_error='Unhandled'
        )

        with pytest.raises(ProverInvocationError, match="Task timed out"):
            zkemail_prover.invoke_prover('generateProof', {})

    def test_invalid_json(self, mock_client):
        mock_client.invoke.return_value = _lambda_response(b'not json{')

        with pytest.raises(ProverInvocationError, match="invalid JSON"):
            zkemail_prover.invoke_prover('loadBlueprint', {})

    def test_non_object_response(self, mock_client):
        mock_client.invoke.return_value = _lambda_response([1, 2, 3])

        with pytest.raises(ProverInvocationError, match="unexpected response"):
            zkemail_prover.invoke_prover('loadBlueprint', {})

    def test_blueprint_not_found(self, mock_client):
        mock_client.invoke.return_value = _lambda_response(
            {'error': 'Blueprint a/Missing@v1 not found', 'errorCode': 'BlueprintNotFound'}
        )

        with pytest.raises(BlueprintNotFoundError):
            zkemail_prover.invoke_prover('loadBlueprint', {'blueprintId': 'a/Missing@v1'})

    def test_reported_error(self, mock_client):
        mock_client.invoke.return_value = _lambda_response({'error': 'circuit input too large'})

        with pytest.raises(ProverInvocationError, match="circuit input too large"):
            zkemail_prover.invoke_prover('generateProof', {})


class TestConfiguration:
    """Test configuration validation."""

    @patch('integrations.zkemail_prover.PROVER_FUNCTION_NAME', None)
    @patch('integrations.zkemail_prover.lambda_client')
    def test_missing_function_name(self, mock_client):
        with pytest.raises(ConfigurationError, match="PROVER_FUNCTION_NAME"):
            zkemail_prover.invoke_prover('loadBlueprint', {})

        mock_client.invoke.assert_not_called()


@patch('integrations.zkemail_prover.invoke_prover')
class TestObjectModel:
    """Test the blueprint -> prover -> proof object model."""

    def test_full_flow(self, mock_invoke):
        proof = {'proofData': {'pi_a': ['1', '2']}, 'publicOutputs': ['3']}
        mock_invoke.side_effect = [
            {'name': 'Invite'},
            proof,
            {'valid': True},
        ]

        blueprint = ProverClient().load_blueprint('Bisht13/SuccinctZKResidencyInvite@v3')
        generated = blueprint.create_prover().generate_proof('raw email')
        valid = blueprint.verify_proof(generated)

        assert blueprint.props == {'name': 'Invite'}
        assert generated == proof
        assert valid is True
        assert [c.args[0] for c in mock_invoke.call_args_list] == ['loadBlueprint', 'generateProof', 'verifyProof']
        assert mock_invoke.call_args_list[1].args[1] == {
            'blueprintId': 'Bisht13/SuccinctZKResidencyInvite@v3',
            'email': 'raw email',
        }

    def test_verify_defaults_to_invalid(self, mock_invoke):
        mock_invoke.return_value = {}

        assert zkemail_prover.Blueprint('a/B@v1').verify_proof({}) is False

    def test_empty_inputs_rejected(self, mock_invoke):
        with pytest.raises(ValueError):
            ProverClient().load_blueprint('')
        with pytest.raises(ValueError):
            zkemail_prover.Blueprint('a/B@v1').create_prover().generate_proof('')

        mock_invoke.assert_not_called()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
