"""
Load balancer operations: classic ELB, application and network load balancers.

Neither ELB API returns tags with the load balancer descriptions, so the
fetchers attach them with ``describe_tags`` before the records are mapped.
"""
from typing import Any, Dict, Iterator, List, Mapping, Sequence

from .base import BaseResourceOperation, tag_list
from .models import (
    ApplicationLoadBalancer,
    ClassicLoadBalancer,
    LoadBalancerV2,
    NetworkLoadBalancer,
    tags_from_list,
)
from .pagination import Page, PageCursor, page_from_token
from ..core.context import Context


# describe_tags accepts at most 20 load balancers per call
DESCRIBE_TAGS_BATCH = 20


def _batches(items: Sequence[str], size: int = DESCRIBE_TAGS_BATCH) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class ClassicLoadBalancerOperation(BaseResourceOperation):
    """Operation for classic load balancers, identified by name."""

    resource_class = ClassicLoadBalancer
    not_found_codes = frozenset({'LoadBalancerNotFound', 'AccessPointNotFound'})

    @property
    def service_name(self) -> str:
        return 'elb'

    def fetch_page(self, ctx: Context, region: str, cursor: PageCursor) -> Page:
        response = self._fetch_token_page(region, 'describe_load_balancers', cursor)
        records = self._with_tags(ctx, region, response.get('LoadBalancerDescriptions', []))
        return page_from_token(records, cursor, response.get('NextToken'))

    def describe_by_id(self, ctx: Context, region: str, resource_id: str) -> List[Dict[str, Any]]:
        response = self._call(region, 'describe_load_balancers', resource_id, LoadBalancerNames=[resource_id])
        return self._with_tags(ctx, region, response.get('LoadBalancerDescriptions', []))

    def map_record(self, record: Mapping[str, Any], region: str) -> ClassicLoadBalancer:
        listener_ports = [
            description['Listener']['LoadBalancerPort']
            for description in record.get('ListenerDescriptions', [])
            if 'LoadBalancerPort' in description.get('Listener', {})
        ]
        return ClassicLoadBalancer(
            resource_id=record.get('LoadBalancerName', ''),
            resource_name=record.get('LoadBalancerName', ''),
            region_id=region,
            tags=tags_from_list(record.get('Tags')),
            dns_name=record.get('DNSName', ''),
            scheme=record.get('Scheme', ''),
            vpc_id=record.get('VPCId', ''),
            availability_zones=tuple(record.get('AvailabilityZones', [])),
            listener_ports=tuple(listener_ports),
            creation_time=record.get('CreatedTime')
        )

    def tag_resource(self, ctx: Context, region: str, resource_id: str, tags: Mapping[str, str]) -> None:
        ctx.check()
        if not tags:
            return
        self._call(
            self._resolve_region(region), 'add_tags', resource_id,
            LoadBalancerNames=[resource_id], Tags=tag_list(tags)
        )

    def untag_resource(self, ctx: Context, region: str, resource_id: str, tag_keys: Sequence[str]) -> None:
        ctx.check()
        if not tag_keys:
            return
        self._call(
            self._resolve_region(region), 'remove_tags', resource_id,
            LoadBalancerNames=[resource_id], Tags=[{'Key': key} for key in tag_keys]
        )

    def _with_tags(self, ctx: Context, region: str, descriptions: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        records = [dict(description) for description in descriptions]
        names = [record['LoadBalancerName'] for record in records if 'LoadBalancerName' in record]

        tags_by_name: Dict[str, List[Dict[str, str]]] = {}
        for batch in _batches(names):
            ctx.check()
            response = self._call(region, 'describe_tags', LoadBalancerNames=list(batch))
            for description in response.get('TagDescriptions', []):
                tags_by_name[description.get('LoadBalancerName', '')] = description.get('Tags', [])

        for record in records:
            record['Tags'] = tags_by_name.get(record.get('LoadBalancerName', ''), [])
        return records


class LoadBalancerV2Operation(BaseResourceOperation):
    """Shared behaviour for elbv2 load balancers, identified by ARN.

    Application and network load balancers come from the same list call;
    each subclass keeps only its own ``load_balancer_type``.
    """

    load_balancer_type: str
    not_found_codes = frozenset({'LoadBalancerNotFound'})

    @property
    def service_name(self) -> str:
        return 'elbv2'

    def fetch_page(self, ctx: Context, region: str, cursor: PageCursor) -> Page:
        response = self._fetch_token_page(region, 'describe_load_balancers', cursor)
        records = self._with_tags(ctx, region, self._own_type(response.get('LoadBalancers', [])))
        return page_from_token(records, cursor, response.get('NextToken'))

    def describe_by_id(self, ctx: Context, region: str, resource_id: str) -> List[Dict[str, Any]]:
        response = self._call(region, 'describe_load_balancers', resource_id, LoadBalancerArns=[resource_id])
        return self._with_tags(ctx, region, self._own_type(response.get('LoadBalancers', [])))

    def map_record(self, record: Mapping[str, Any], region: str) -> LoadBalancerV2:
        return self.resource_class(
            resource_id=record.get('LoadBalancerArn', ''),
            resource_name=record.get('LoadBalancerName', ''),
            region_id=region,
            tags=tags_from_list(record.get('Tags')),
            dns_name=record.get('DNSName', ''),
            scheme=record.get('Scheme', ''),
            state=record.get('State', {}).get('Code', ''),
            vpc_id=record.get('VpcId', ''),
            availability_zones=tuple(
                zone['ZoneName'] for zone in record.get('AvailabilityZones', []) if 'ZoneName' in zone
            ),
            ip_address_type=record.get('IpAddressType', ''),
            creation_time=record.get('CreatedTime')
        )

    def tag_resource(self, ctx: Context, region: str, resource_id: str, tags: Mapping[str, str]) -> None:
        if not tags:
            return
        region = self._resolve_region(region)
        # Confirms the ARN belongs to this operation's load balancer type
        self.get_resource_by_id(ctx, region, resource_id)
        self._call(region, 'add_tags', resource_id, ResourceArns=[resource_id], Tags=tag_list(tags))

    def untag_resource(self, ctx: Context, region: str, resource_id: str, tag_keys: Sequence[str]) -> None:
        if not tag_keys:
            return
        region = self._resolve_region(region)
        self.get_resource_by_id(ctx, region, resource_id)
        self._call(region, 'remove_tags', resource_id, ResourceArns=[resource_id], TagKeys=list(tag_keys))

    def _own_type(self, load_balancers: Sequence[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
        return [lb for lb in load_balancers if lb.get('Type') == self.load_balancer_type]

    def _with_tags(self, ctx: Context, region: str, load_balancers: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        records = [dict(lb) for lb in load_balancers]
        arns = [record['LoadBalancerArn'] for record in records if 'LoadBalancerArn' in record]

        tags_by_arn: Dict[str, List[Dict[str, str]]] = {}
        for batch in _batches(arns):
            ctx.check()
            response = self._call(region, 'describe_tags', ResourceArns=list(batch))
            for description in response.get('TagDescriptions', []):
                tags_by_arn[description.get('ResourceArn', '')] = description.get('Tags', [])

        for record in records:
            record['Tags'] = tags_by_arn.get(record.get('LoadBalancerArn', ''), [])
        return records


class ApplicationLoadBalancerOperation(LoadBalancerV2Operation):
    """Operation for application load balancers."""

    resource_class = ApplicationLoadBalancer
    load_balancer_type = 'application'


class NetworkLoadBalancerOperation(LoadBalancerV2Operation):
    """Operation for network load balancers."""

    resource_class = NetworkLoadBalancer
    load_balancer_type = 'network'
