"""AWS Secrets Manager access."""
import logging

import boto3

from processor.errors import SecretNotFoundError

logger = logging.getLogger(__name__)


class SecretsClient:
    """Thin wrapper over the Secrets Manager client."""

    def __init__(self, client=None):
        self.client = client or boto3.client('secretsmanager')

    def get_secret_string(self, secret_name: str) -> str:
        """
        Load a string secret.

        Args:
            secret_name: Secret name or ARN

        Returns:
            The secret's string value

        Raises:
            botocore.exceptions.ClientError: If the secret cannot be read
            SecretNotFoundError: If the secret has no string value
        """
        logger.info("Loading secret", extra={'secret_name': secret_name})
        response = self.client.get_secret_value(SecretId=secret_name)

        value = response.get('SecretString')
        if not value:
            raise SecretNotFoundError(f"secrets: {secret_name}: secret is empty")
        return value
