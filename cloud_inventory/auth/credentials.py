"""Per-account boto3 sessions, optionally through STS assume role."""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from cloud_inventory.core.config import AccountConfig
from cloud_inventory.core.exceptions import AuthenticationError


logger = logging.getLogger(__name__)

ROLE_SESSION_NAME = 'cloud-inventory-session'
ROLE_SESSION_DURATION = 3600
# Refresh assumed-role credentials this long before they expire
EXPIRY_BUFFER = timedelta(minutes=5)


class SessionFactory:
    """Builds authenticated boto3 sessions for configured accounts.

    Base credentials come from the account's static keys, its named profile,
    or the default credential chain, in that order. When ``role_arn`` is set
    the role is assumed with those base credentials and the temporary
    credentials are cached per account until shortly before expiry.
    """

    def __init__(self, default_region: str = 'us-east-1'):
        """Initialize the session factory.

        Args:
            default_region: Region for sessions whose account lists none
        """
        self.default_region = default_region
        self._cached_credentials: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get_session(self, account: AccountConfig, region: Optional[str] = None) -> boto3.Session:
        """Get an authenticated session for an account.

        Args:
            account: Account configuration
            region: Optional region. If None, uses the account's first region
                or the factory default.

        Returns:
            Authenticated boto3 Session object.

        Raises:
            AuthenticationError: If the session or role assumption fails.
        """
        session_region = region or (account.regions[0] if account.regions else self.default_region)

        try:
            base_session = self._base_session(account, session_region)
        except BotoCoreError as e:
            raise AuthenticationError(f"Failed to create session for account {account.name}: {e}") from e

        if not account.role_arn:
            return base_session

        credentials = self._get_role_credentials(account, base_session)
        return boto3.Session(
            aws_access_key_id=credentials['AccessKeyId'],
            aws_secret_access_key=credentials['SecretAccessKey'],
            aws_session_token=credentials['SessionToken'],
            region_name=session_region
        )

    def _base_session(self, account: AccountConfig, region: str) -> boto3.Session:
        if account.has_static_credentials:
            return boto3.Session(
                aws_access_key_id=account.access_key_id,
                aws_secret_access_key=account.secret_access_key,
                aws_session_token=account.session_token,
                region_name=region
            )
        if account.profile:
            return boto3.Session(profile_name=account.profile, region_name=region)
        return boto3.Session(region_name=region)

    def _get_role_credentials(self, account: AccountConfig, base_session: boto3.Session) -> Dict[str, Any]:
        """Assume the account's role, reusing cached credentials when still valid.

        Raises:
            AuthenticationError: If role assumption fails.
        """
        cache_key = (account.name, account.role_arn)

        with self._lock:
            cached = self._cached_credentials.get(cache_key)
            if cached and datetime.now(timezone.utc) < cached['Expiration'] - EXPIRY_BUFFER:
                logger.debug(f"Using cached credentials for account {account.name}")
                return cached

            try:
                logger.info(f"Assuming IAM role {account.role_arn} for account {account.name}")
                sts_client = base_session.client('sts')
                response = sts_client.assume_role(
                    RoleArn=account.role_arn,
                    RoleSessionName=ROLE_SESSION_NAME,
                    DurationSeconds=ROLE_SESSION_DURATION
                )
            except ClientError as e:
                error_code = e.response.get('Error', {}).get('Code', 'Unknown')
                error_message = e.response.get('Error', {}).get('Message', str(e))
                if error_code == 'AccessDenied':
                    raise AuthenticationError(
                        f"Access denied when assuming role {account.role_arn} for account {account.name}. "
                        "Check that the role exists and its trust policy allows the base credentials."
                    ) from e
                raise AuthenticationError(
                    f"Failed to assume IAM role {account.role_arn}: {error_code} - {error_message}"
                ) from e
            except NoCredentialsError as e:
                raise AuthenticationError(
                    f"No base credentials found for account {account.name}. Configure static keys, "
                    "a profile, or the default AWS credential chain."
                ) from e
            except BotoCoreError as e:
                raise AuthenticationError(f"AWS configuration error for account {account.name}: {e}") from e

            credentials = response['Credentials']
            expiration = credentials['Expiration']
            if expiration.tzinfo is None:
                expiration = expiration.replace(tzinfo=timezone.utc)
            credentials = dict(credentials, Expiration=expiration)
            self._cached_credentials[cache_key] = credentials

            logger.info(f"Successfully assumed IAM role for account {account.name}")
            return credentials

    def clear_cached_credentials(self) -> None:
        """Clear cached role credentials to force fresh authentication."""
        with self._lock:
            self._cached_credentials.clear()
        logger.debug("Cleared cached role credentials")
