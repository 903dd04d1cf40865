"""Shared fixtures."""
import os
from datetime import date
from unittest.mock import patch

import pytest

from processor.time_window import resolve_date


@pytest.fixture(autouse=True)
def aws_credentials():
    """Keep boto3 off real AWS accounts."""
    env_vars = {
        'AWS_ACCESS_KEY_ID': 'testing',
        'AWS_SECRET_ACCESS_KEY': 'testing',
        'AWS_SECURITY_TOKEN': 'testing',
        'AWS_SESSION_TOKEN': 'testing',
        'AWS_DEFAULT_REGION': 'us-west-2',
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


@pytest.fixture
def window():
    """Window for Saturday 2026-02-14 and Sunday 2026-02-15."""
    return resolve_date(date(2026, 2, 14))
