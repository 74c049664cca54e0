"""
Fan-out of inventory queries across accounts, regions and resource types.
"""
from typing import Callable, Dict, List, Mapping, Optional, Sequence
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError, as_completed
import logging

from .base import BaseResourceOperation
from .models import CloudResource, CollectionError, InventoryItem, InventoryResult
from .registry import ResourceManager, build_resource_manager
from ..auth.credentials import SessionFactory
from ..core.config import AccountConfig, ConfigManager
from ..core.context import Context
from ..core.exceptions import InventoryError, OperationCancelled


logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 10

ManagerFactory = Callable[[AccountConfig], ResourceManager]


class InventoryOrchestrator:
    """Runs one listing per (account, region, resource type) and merges the results.

    A failing triple is recorded in the result and does not stop the others.
    Only enabled accounts are visited.
    """

    def __init__(
        self,
        accounts: Sequence[AccountConfig],
        manager_factory: ManagerFactory,
        default_region: str = 'us-east-1',
        max_workers: int = DEFAULT_MAX_WORKERS
    ):
        """Initialize the orchestrator.

        Args:
            accounts: Configured accounts; disabled ones are skipped
            manager_factory: Builds the ResourceManager bound to one account
            default_region: Region used for accounts that list no regions
            max_workers: Maximum number of concurrent provider calls
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.accounts = list(accounts)
        self.manager_factory = manager_factory
        self.default_region = default_region
        self.max_workers = max_workers

        # Managers are built on the submitting thread only
        self._manager_cache: Dict[str, ResourceManager] = {}

    @classmethod
    def from_config(
        cls,
        config_manager: ConfigManager,
        session_factory: Optional[SessionFactory] = None,
        max_workers: Optional[int] = None
    ) -> 'InventoryOrchestrator':
        """Build an orchestrator whose accounts authenticate through boto3 sessions."""
        config = config_manager.get_config()
        session_factory = session_factory or SessionFactory(config.default_region)

        def manager_factory(account: AccountConfig) -> ResourceManager:
            region = account.regions[0] if account.regions else config.default_region
            session = session_factory.get_session(account, region)
            return build_resource_manager(session, region, config.resource_types)

        return cls(
            config.accounts,
            manager_factory,
            default_region=config.default_region,
            max_workers=max_workers or config.max_workers
        )

    def enabled_accounts(self) -> List[AccountConfig]:
        return [account for account in self.accounts if account.enabled]

    def get_resource_manager(self, account: AccountConfig) -> ResourceManager:
        """Get or create the resource manager for an account.

        Raises:
            InventoryError: If the account's manager cannot be built
        """
        if account.name not in self._manager_cache:
            self._manager_cache[account.name] = self.manager_factory(account)
        return self._manager_cache[account.name]

    def regions_for(self, account: AccountConfig) -> List[str]:
        return list(account.regions) or [self.default_region]

    def collect(
        self,
        ctx: Context,
        resource_types: Optional[Sequence[str]] = None,
        tags: Optional[Mapping[str, str]] = None
    ) -> InventoryResult:
        """Collect resources from every enabled account and region.

        Args:
            ctx: Cancellation context shared by every call of the run
            resource_types: Types to collect. If None, collects every type
                registered for each account.
            tags: Optional tag filter; only resources carrying all of these
                tags are returned

        Returns:
            InventoryResult with the merged items, one CollectionError per
            failed triple, and the (account, type) pairs that are unsupported

        Raises:
            OperationCancelled: If ctx is cancelled before the run completes
        """
        result = InventoryResult()
        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        future_to_context = {}

        try:
            for account in self.enabled_accounts():
                if ctx.is_cancelled():
                    logger.info("Collection cancelled before all tasks were submitted")
                    break

                try:
                    manager = self.get_resource_manager(account)
                except InventoryError as e:
                    error_msg = f"Failed to prepare account {account.name}: {e}"
                    result.errors.append(CollectionError(account.name, '', '', error_msg, e))
                    logger.error(error_msg)
                    continue

                types = list(resource_types) if resource_types else sorted(manager.list_resource_types())
                for resource_type in types:
                    operation = manager.get_operation(resource_type)
                    if operation is None:
                        result.unsupported.append((account.name, resource_type))
                        logger.warning(f"Resource type {resource_type} is not supported for account {account.name}")
                        continue

                    for region in self.regions_for(account):
                        future = executor.submit(self._collect_one, ctx, operation, region, tags)
                        future_to_context[future] = (account.name, region, resource_type)

            # Collect results; the deadline bounds the wait for in-flight calls
            for future in as_completed(future_to_context, timeout=ctx.remaining()):
                if ctx.is_cancelled():
                    logger.info("Collection cancelled - stopping result collection")
                    break

                account_name, region, resource_type = future_to_context[future]
                try:
                    resources = future.result()
                    result.items.extend(InventoryItem(account_name, resource) for resource in resources)
                    logger.info(f"Collected {len(resources)} {resource_type} resources from {account_name} in {region}")
                except Exception as e:
                    error_msg = f"Collection failed for {resource_type} in {account_name}/{region}: {str(e)}"
                    result.errors.append(CollectionError(account_name, region, resource_type, error_msg, e))
                    logger.error(error_msg)
        except FuturesTimeoutError:
            ctx.cancel()
            logger.warning("Collection deadline exceeded with provider calls still in flight")
        except KeyboardInterrupt:
            # Running workers observe the cancelled context at their next page
            ctx.cancel()
            raise
        finally:
            if ctx.is_cancelled():
                # Do not wait for in-flight calls; their results are discarded
                executor.shutdown(wait=False, cancel_futures=True)
            else:
                executor.shutdown(wait=True)

        if ctx.deadline_exceeded:
            raise OperationCancelled("Operation deadline exceeded")
        if ctx.is_cancelled():
            raise OperationCancelled("Inventory collection cancelled")

        # Log summary
        logger.info(f"Collection complete: {len(result.items)} total resources found")
        if result.errors:
            logger.warning(f"Collection errors: {len(result.errors)} collections failed")
            for error in result.errors:
                logger.warning(f"  - {error.message}")

        return result

    @staticmethod
    def _collect_one(
        ctx: Context,
        operation: BaseResourceOperation,
        region: str,
        tags: Optional[Mapping[str, str]]
    ) -> List[CloudResource]:
        if tags:
            return operation.list_resources_by_tags(ctx, region, tags)
        return operation.list_resources(ctx, region)
