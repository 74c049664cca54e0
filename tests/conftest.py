"""
Pytest configuration and shared fixtures for cloud inventory tests.
"""

import boto3
import pytest
from moto import mock_aws

from cloud_inventory.core.context import Context


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so no test can reach a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    monkeypatch.delenv('AWS_PROFILE', raising=False)


@pytest.fixture
def mock_aws_services():
    """Mock all AWS services used by the application."""
    with mock_aws():
        yield


@pytest.fixture
def session(mock_aws_services):
    return boto3.Session(region_name='us-east-1')


@pytest.fixture
def ctx():
    return Context.background()


@pytest.fixture
def yaml_config_file(tmp_path):
    """Two-account YAML configuration; the second account is disabled."""
    path = tmp_path / 'inventory.yaml'
    path.write_text(
        "default_region: us-east-1\n"
        "resource_types: [EC2, VPC]\n"
        "max_workers: 4\n"
        "accounts:\n"
        "  - name: prod\n"
        "    access_key_id: AKIAEXAMPLE\n"
        "    secret_access_key: secret\n"
        "    regions: [us-east-1, eu-west-1]\n"
        "  - name: legacy\n"
        "    profile: legacy\n"
        "    enabled: false\n"
    )
    return path


@pytest.fixture
def ini_config_file(tmp_path):
    path = tmp_path / 'inventory.ini'
    path.write_text(
        "[default]\n"
        "region = eu-west-1\n"
        "\n"
        "[resource]\n"
        "types = EC2, RDS\n"
        "\n"
        "[inventory]\n"
        "max_workers = 8\n"
        "\n"
        "[prod]\n"
        "access_key_id = AKIAEXAMPLE\n"
        "secret_access_key = se%cret\n"
        "regions = us-east-1,us-west-2\n"
        "\n"
        "[staging]\n"
        "profile = staging\n"
        "enabled = false\n"
    )
    return path
