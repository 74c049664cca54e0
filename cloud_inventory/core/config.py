"""Configuration management for cloud inventory accounts and regions."""

import configparser
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from cloud_inventory.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

# Updated pattern to support regions like ap-southeast-3, me-central-1, us-gov-west-1
REGION_PATTERN = re.compile(r'^[a-z]{2,3}(-gov)?-[a-z]+-\d+$')

# INI sections that do not describe an account
RESERVED_INI_SECTIONS = {'default', 'resource', 'inventory'}


def _validate_region_name(region: str) -> str:
    if not REGION_PATTERN.match(region):
        raise ValueError(
            f"Invalid region format: {region}. "
            "Expected format: us-east-1, eu-west-1, ap-southeast-3, etc."
        )
    return region


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


class AccountConfig(BaseModel):
    """Credentials and regions for one cloud account."""

    name: str = Field(..., min_length=1, description="Account name used in reports")
    access_key_id: Optional[str] = Field(default=None, description="Static access key id")
    secret_access_key: Optional[str] = Field(default=None, description="Static secret access key")
    session_token: Optional[str] = Field(default=None, description="Optional session token")
    profile: Optional[str] = Field(default=None, description="Named profile from the shared credentials file")
    role_arn: Optional[str] = Field(default=None, description="IAM role to assume for this account")
    regions: List[str] = Field(default_factory=list, description="Regions to inventory")
    enabled: bool = Field(default=True, description="Whether the account is inventoried")

    @field_validator('regions')
    @classmethod
    def validate_regions(cls, v: List[str]) -> List[str]:
        """Validate region names and drop duplicates, keeping first-seen order."""
        seen: Dict[str, None] = {}
        for region in v:
            seen.setdefault(_validate_region_name(region.strip()), None)
        return list(seen)

    @field_validator('role_arn')
    @classmethod
    def validate_role_arn(cls, v: Optional[str]) -> Optional[str]:
        """Validate IAM role ARN format."""
        if v is None:
            return v
        arn_pattern = r'^arn:aws(-[a-z]+)?:iam::\d{12}:role/[a-zA-Z0-9+=,.@_/-]+$'
        if not re.match(arn_pattern, v):
            raise ValueError(
                f"Invalid IAM role ARN format: {v}. "
                "Expected format: arn:aws:iam::123456789012:role/RoleName"
            )
        return v

    @property
    def has_static_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)


class InventoryConfig(BaseModel):
    """Top-level inventory configuration."""

    default_region: str = Field(default="us-east-1", description="Region used when an account lists none")
    accounts: List[AccountConfig] = Field(default_factory=list, description="Accounts to inventory")
    resource_types: List[str] = Field(default_factory=list, description="Resource types of interest, empty for all")
    max_workers: int = Field(default=10, ge=1, le=64, description="Concurrent provider calls in a fan-out run")

    @field_validator('default_region')
    @classmethod
    def validate_default_region(cls, v: str) -> str:
        return _validate_region_name(v)


class ConfigManager:
    """Loads an inventory configuration from a YAML or INI file."""

    def __init__(self, config_path: Union[str, Path]):
        """Load the configuration file.

        Args:
            config_path: Path to a ``.yaml``, ``.yml`` or ``.ini`` file.
                Any other extension is read as YAML.

        Raises:
            ConfigurationError: If the file is missing or invalid.
        """
        self.config_path = Path(config_path)
        self.config = self._load()

    def _load(self) -> InventoryConfig:
        if not self.config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")

        if self.config_path.suffix == '.ini':
            data = self._read_ini()
        else:
            data = self._read_yaml()

        try:
            config = InventoryConfig(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {self.config_path}", details=str(e)) from e

        logger.debug(f"Loaded {len(config.accounts)} accounts from {self.config_path}")
        return config

    def _read_yaml(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML configuration: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {self.config_path}")
        return data

    def _read_ini(self) -> Dict[str, Any]:
        parser = configparser.ConfigParser(default_section='__unused__', interpolation=None)
        try:
            with open(self.config_path, 'r') as f:
                parser.read_file(f)
        except configparser.Error as e:
            raise ConfigurationError(f"Failed to parse INI configuration: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        data: Dict[str, Any] = {}
        if parser.has_option('default', 'region'):
            data['default_region'] = parser.get('default', 'region')
        if parser.has_option('resource', 'types'):
            data['resource_types'] = _split_csv(parser.get('resource', 'types'))
        if parser.has_option('inventory', 'max_workers'):
            data['max_workers'] = parser.get('inventory', 'max_workers')

        # Every other section is one account
        accounts = []
        for section in parser.sections():
            if section in RESERVED_INI_SECTIONS:
                continue
            options = parser[section]
            try:
                enabled = options.getboolean('enabled', fallback=True)
            except ValueError as e:
                raise ConfigurationError(f"Invalid 'enabled' value in section [{section}]: {e}") from e
            accounts.append({
                'name': section,
                'access_key_id': options.get('access_key_id'),
                'secret_access_key': options.get('secret_access_key'),
                'session_token': options.get('session_token'),
                'profile': options.get('profile'),
                'role_arn': options.get('role_arn'),
                'regions': _split_csv(options.get('regions', '')),
                'enabled': enabled,
            })
        data['accounts'] = accounts
        return data

    def get_config(self) -> InventoryConfig:
        return self.config

    def get_account(self, account_name: str) -> Optional[AccountConfig]:
        """Get an account by name, or None if it is not configured."""
        for account in self.config.accounts:
            if account.name == account_name:
                return account
        return None

    def get_default_account(self) -> Optional[AccountConfig]:
        """Get the first enabled account, or None if every account is disabled."""
        for account in self.config.accounts:
            if account.enabled:
                return account
        return None

    def get_enabled_accounts(self) -> List[AccountConfig]:
        return [account for account in self.config.accounts if account.enabled]

    def get_default_region(self) -> str:
        return self.config.default_region

    def get_resource_types(self) -> List[str]:
        return list(self.config.resource_types)

    def is_resource_type_enabled(self, resource_type: str) -> bool:
        """Check if a resource type is of interest.

        An empty ``resource_types`` list enables every type.
        """
        if not self.config.resource_types:
            return True
        return resource_type in self.config.resource_types


def example_yaml_config() -> str:
    """Return a YAML configuration template."""
    return """# cloud-inventory configuration
default_region: us-east-1

# Resource types to inventory (omit for all supported types)
resource_types:
  - EC2
  - RDS
  - VPC
  - Subnet
  - ELB
  - ALB
  - NLB
  - SecurityGroup

max_workers: 10

accounts:
  - name: prod
    role_arn: arn:aws:iam::123456789012:role/InventoryReadOnly
    regions:
      - us-east-1
      - us-west-2
      - eu-west-1
    enabled: true

  - name: dev
    profile: dev
    regions:
      - us-east-1
    enabled: true
"""


def example_ini_config() -> str:
    """Return an INI configuration template."""
    return """[default]
region = us-east-1

[resource]
types = EC2,RDS,VPC,Subnet,ELB,ALB,NLB,SecurityGroup

[inventory]
max_workers = 10

[prod]
role_arn = arn:aws:iam::123456789012:role/InventoryReadOnly
regions = us-east-1,us-west-2,eu-west-1
enabled = true

[dev]
profile = dev
regions = us-east-1
enabled = true
"""
