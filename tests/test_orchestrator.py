"""Tests for multi-account, multi-region fan-out."""

import threading
import time
from unittest.mock import Mock, patch

import pytest

from cloud_inventory.core.config import AccountConfig, ConfigManager
from cloud_inventory.core.context import Context
from cloud_inventory.core.exceptions import AuthenticationError, OperationCancelled, ProviderError
from cloud_inventory.services.models import EC2Instance, VPC
from cloud_inventory.services.orchestrator import InventoryOrchestrator
from cloud_inventory.services.registry import ResourceManager


class FakeOperation:
    """Operation returning canned resources per region."""

    def __init__(self, resource_class, account, failing_regions=()):
        self.resource_class = resource_class
        self.account = account
        self.failing_regions = set(failing_regions)
        self.calls = []
        self._lock = threading.Lock()

    @property
    def resource_type(self):
        return self.resource_class.resource_type

    def list_resources(self, ctx, region=''):
        ctx.check()
        with self._lock:
            self.calls.append(region)
        if region in self.failing_regions:
            raise ProviderError(f"{self.resource_type} unavailable in {region}")
        return [
            self.resource_class(
                resource_id=f'{self.account}-{region}-{self.resource_type}',
                resource_name='',
                region_id=region,
                tags={'env': 'prod' if region == 'us-east-1' else 'dev'}
            )
        ]

    def list_resources_by_tags(self, ctx, region, tags):
        return [
            r for r in self.list_resources(ctx, region)
            if all(r.tags.get(k) == v for k, v in tags.items())
        ]


def make_orchestrator(accounts, failing=None, **kwargs):
    """Build an orchestrator over fake operations.

    Args:
        failing: Optional {(account, type): regions} that raise ProviderError
    """
    failing = failing or {}
    operations = {}

    def factory(account):
        manager = ResourceManager()
        for resource_class in (EC2Instance, VPC):
            operation = FakeOperation(
                resource_class, account.name,
                failing.get((account.name, resource_class.resource_type), ())
            )
            operations[(account.name, resource_class.resource_type)] = operation
            manager.register(resource_class.resource_type, operation)
        return manager

    return InventoryOrchestrator(accounts, factory, **kwargs), operations


@pytest.fixture
def accounts():
    return [
        AccountConfig(name='prod', regions=['us-east-1', 'eu-west-1']),
        AccountConfig(name='legacy', regions=['us-east-1', 'eu-west-1'], enabled=False),
    ]


class TestCollect:

    def test_one_failing_triple_does_not_stop_the_rest(self, accounts):
        orchestrator, operations = make_orchestrator(accounts, failing={('prod', 'VPC'): ['eu-west-1']})

        result = orchestrator.collect(Context(), ['EC2', 'VPC'])

        ids = sorted(r.resource_id for r in result.resources)
        assert ids == ['prod-eu-west-1-EC2', 'prod-us-east-1-EC2', 'prod-us-east-1-VPC']
        assert len(result.errors) == 1
        error = result.errors[0]
        assert (error.account, error.region, error.resource_type) == ('prod', 'eu-west-1', 'VPC')
        assert isinstance(error.error, ProviderError)
        assert not result.success

    def test_disabled_account_is_never_visited(self, accounts):
        orchestrator, operations = make_orchestrator(accounts)

        result = orchestrator.collect(Context())

        assert ('legacy', 'EC2') not in operations
        assert {item.account for item in result.items} == {'prod'}
        assert sorted(operations[('prod', 'EC2')].calls) == ['eu-west-1', 'us-east-1']

    def test_all_registered_types_when_none_given(self, accounts):
        orchestrator, _ = make_orchestrator(accounts)

        result = orchestrator.collect(Context())

        assert result.get_summary()['by_resource_type'] == {'EC2': 2, 'VPC': 2}

    def test_tag_filter_applies_per_triple(self, accounts):
        orchestrator, _ = make_orchestrator(accounts)

        result = orchestrator.collect(Context(), ['EC2'], {'env': 'prod'})

        assert [r.resource_id for r in result.resources] == ['prod-us-east-1-EC2']

    def test_unsupported_type_is_reported_once_per_account(self, accounts):
        orchestrator, _ = make_orchestrator(accounts)

        result = orchestrator.collect(Context(), ['EC2', 'Lambda'])

        assert result.unsupported == [('prod', 'Lambda')]
        assert result.success

    def test_account_without_regions_uses_default(self):
        orchestrator, operations = make_orchestrator(
            [AccountConfig(name='solo')], default_region='ap-southeast-2'
        )

        orchestrator.collect(Context(), ['VPC'])

        assert operations[('solo', 'VPC')].calls == ['ap-southeast-2']

    def test_manager_build_failure_is_recorded(self):
        accounts = [AccountConfig(name='broken'), AccountConfig(name='ok', regions=['us-east-1'])]
        orchestrator, _ = make_orchestrator(accounts)
        working_factory = orchestrator.manager_factory

        def factory(account):
            if account.name == 'broken':
                raise AuthenticationError("no credentials")
            return working_factory(account)

        orchestrator.manager_factory = factory

        result = orchestrator.collect(Context(), ['EC2'])

        assert [r.resource_id for r in result.resources] == ['ok-us-east-1-EC2']
        assert len(result.errors) == 1
        assert result.errors[0].account == 'broken'
        assert 'no credentials' in result.errors[0].message

    def test_cancelled_context_raises(self, accounts):
        orchestrator, operations = make_orchestrator(accounts)
        ctx = Context()
        ctx.cancel()

        with pytest.raises(OperationCancelled):
            orchestrator.collect(ctx)

        assert operations == {}

    def test_deadline_interrupts_blocked_provider_call(self, accounts):
        release = threading.Event()

        class BlockingOperation(FakeOperation):
            def list_resources(self, ctx, region=''):
                release.wait(2)
                return []

        manager = ResourceManager()
        manager.register('EC2', BlockingOperation(EC2Instance, 'prod'))
        orchestrator = InventoryOrchestrator(accounts, lambda account: manager)

        started = time.monotonic()
        try:
            with pytest.raises(OperationCancelled, match="deadline"):
                orchestrator.collect(Context(timeout=0.2), ['EC2'])
            elapsed = time.monotonic() - started
        finally:
            release.set()

        assert elapsed < 1.5

    def test_interrupt_while_submitting_cancels_context(self, accounts):
        def factory(account):
            raise KeyboardInterrupt

        orchestrator = InventoryOrchestrator(accounts, factory)
        ctx = Context()

        with pytest.raises(KeyboardInterrupt):
            orchestrator.collect(ctx, ['EC2'])

        assert ctx.is_cancelled()

    def test_managers_are_cached_per_account(self, accounts):
        factory = Mock(return_value=ResourceManager())
        orchestrator = InventoryOrchestrator(accounts, factory)

        orchestrator.get_resource_manager(accounts[0])
        orchestrator.get_resource_manager(accounts[0])

        factory.assert_called_once_with(accounts[0])

    def test_rejects_non_positive_worker_count(self, accounts):
        with pytest.raises(ValueError):
            InventoryOrchestrator(accounts, Mock(), max_workers=0)


class TestFromConfig:

    def test_uses_configured_accounts_and_workers(self, yaml_config_file):
        orchestrator = InventoryOrchestrator.from_config(ConfigManager(yaml_config_file))

        assert [a.name for a in orchestrator.enabled_accounts()] == ['prod']
        assert orchestrator.max_workers == 4
        assert orchestrator.default_region == 'us-east-1'

    def test_explicit_workers_override_config(self, yaml_config_file):
        orchestrator = InventoryOrchestrator.from_config(ConfigManager(yaml_config_file), max_workers=2)

        assert orchestrator.max_workers == 2

    def test_manager_uses_configured_types(self, yaml_config_file):
        session_factory = Mock()
        orchestrator = InventoryOrchestrator.from_config(
            ConfigManager(yaml_config_file), session_factory=session_factory
        )
        account = orchestrator.enabled_accounts()[0]

        with patch('cloud_inventory.services.orchestrator.build_resource_manager') as mock_build:
            orchestrator.get_resource_manager(account)

        session_factory.get_session.assert_called_once_with(account, 'us-east-1')
        mock_build.assert_called_once_with(session_factory.get_session.return_value, 'us-east-1', ['EC2', 'VPC'])
