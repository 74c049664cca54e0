"""Tests for the resource manager registry."""

from unittest.mock import Mock

from cloud_inventory.services.ec2 import EC2InstanceOperation
from cloud_inventory.services.registry import OPERATION_CLASSES, ResourceManager, build_resource_manager


class TestResourceManager:

    def test_last_registration_wins(self):
        manager = ResourceManager()
        first, second = Mock(), Mock()

        manager.register('EC2', first)
        manager.register('EC2', second)

        assert manager.get_operation('EC2') is second
        assert len(manager) == 1

    def test_unknown_type_is_none(self):
        manager = ResourceManager()

        assert manager.get_operation('Lambda') is None
        assert not manager.is_resource_type_supported('Lambda')
        assert 'Lambda' not in manager

    def test_list_resource_types(self):
        manager = ResourceManager()
        manager.register('EC2', Mock())
        manager.register('VPC', Mock())

        assert manager.list_resource_types() == {'EC2', 'VPC'}


class TestBuildResourceManager:

    def test_registers_every_builtin_type_by_default(self):
        manager = build_resource_manager(Mock(), 'us-east-1')

        assert manager.list_resource_types() == set(OPERATION_CLASSES)
        assert manager.list_resource_types() == {
            'EC2', 'VPC', 'Subnet', 'RDS', 'ELB', 'ALB', 'NLB', 'SecurityGroup'
        }

    def test_operations_report_their_own_type(self):
        manager = build_resource_manager(Mock(), 'us-east-1')

        for resource_type in manager.list_resource_types():
            assert manager.get_operation(resource_type).resource_type == resource_type

    def test_subset_skips_unknown_names(self):
        session = Mock()

        manager = build_resource_manager(session, 'eu-west-1', ['EC2', 'Mainframe'])

        assert manager.list_resource_types() == {'EC2'}
        operation = manager.get_operation('EC2')
        assert isinstance(operation, EC2InstanceOperation)
        assert operation.region == 'eu-west-1'
        assert operation.session is session
