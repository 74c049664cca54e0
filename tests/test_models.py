"""Tests for resource models and inventory results."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from cloud_inventory.services.models import (
    ApplicationLoadBalancer,
    CloudResource,
    CollectionError,
    EC2Instance,
    InventoryItem,
    InventoryResult,
    VPC,
    tags_from_list,
)


def test_tags_from_list():
    assert tags_from_list([{'Key': 'env', 'Value': 'prod'}, {'Key': 'empty'}, {'Value': 'orphan'}]) == {
        'env': 'prod',
        'empty': '',
    }
    assert tags_from_list(None) == {}


def test_resource_is_immutable():
    vpc = VPC(resource_id='vpc-1', resource_name='main', region_id='us-east-1', tags={'env': 'prod'})

    with pytest.raises(FrozenInstanceError):
        vpc.resource_id = 'vpc-2'
    with pytest.raises(TypeError):
        vpc.tags['env'] = 'dev'


def test_tags_are_copied_from_input():
    tags = {'env': 'prod'}
    vpc = VPC(resource_id='vpc-1', resource_name='', region_id='us-east-1', tags=tags)

    tags['env'] = 'dev'

    assert vpc.tags['env'] == 'prod'


def test_resources_are_hashable():
    first = VPC(resource_id='vpc-1', resource_name='main', region_id='us-east-1', tags={'env': 'prod'})
    same = VPC(resource_id='vpc-1', resource_name='main', region_id='us-east-1', tags={'env': 'prod'})
    retagged = VPC(resource_id='vpc-1', resource_name='main', region_id='us-east-1', tags={'env': 'dev'})

    assert hash(first) == hash(same)
    assert {first, same} == {first}
    assert len({first, retagged}) == 2
    assert first in {same: 'seen'}


def test_base_class_has_no_type():
    with pytest.raises(TypeError):
        CloudResource(resource_id='x', resource_name='', region_id='us-east-1')


def test_to_dict_is_json_friendly():
    launched = datetime(2024, 1, 5, 14, 30, tzinfo=timezone.utc)
    instance = EC2Instance(
        resource_id='i-1', resource_name='web', region_id='us-east-1',
        tags={'env': 'prod'}, private_ips=('10.0.0.1',), launch_time=launched
    )

    data = instance.to_dict()

    assert data['resource_type'] == 'EC2'
    assert data['tags'] == {'env': 'prod'}
    assert data['private_ips'] == ['10.0.0.1']
    assert data['launch_time'] == launched.isoformat()


def test_load_balancer_subtypes_have_distinct_tags():
    alb = ApplicationLoadBalancer(resource_id='arn:alb', resource_name='a', region_id='us-east-1')

    assert alb.resource_type == 'ALB'


class TestInventoryResult:

    def make_result(self):
        result = InventoryResult()
        result.items = [
            InventoryItem('prod', VPC(resource_id='vpc-2', resource_name='', region_id='us-west-2')),
            InventoryItem('dev', EC2Instance(resource_id='i-1', resource_name='', region_id='us-east-1')),
            InventoryItem('prod', VPC(resource_id='vpc-1', resource_name='', region_id='us-west-2')),
        ]
        result.errors = [CollectionError('prod', 'eu-west-1', 'RDS', 'boom')]
        result.unsupported = [('dev', 'Lambda')]
        return result

    def test_sorted_items(self):
        items = self.make_result().sorted_items()

        assert [(i.account, i.resource.resource_id) for i in items] == [
            ('dev', 'i-1'), ('prod', 'vpc-1'), ('prod', 'vpc-2')
        ]

    def test_summary(self):
        result = self.make_result()

        summary = result.get_summary()

        assert not result.success
        assert summary['total_resources'] == 3
        assert summary['failed_collections'] == 1
        assert summary['by_resource_type'] == {'VPC': 2, 'EC2': 1}
        assert summary['by_account'] == {'prod': 2, 'dev': 1}
        assert summary['unsupported'] == [{'account': 'dev', 'resource_type': 'Lambda'}]
        assert summary['errors'][0]['error_message'] == 'boom'
