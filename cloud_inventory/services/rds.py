"""
RDS resource operation for database instances.
"""
from typing import Any, Dict, List, Mapping, Sequence

from .base import BaseResourceOperation, tag_list
from .models import DBInstance, tags_from_list
from .pagination import Page, PageCursor, page_from_token
from ..core.context import Context


class DBInstanceOperation(BaseResourceOperation):
    """Operation for RDS database instances, identified by DBInstanceIdentifier."""

    resource_class = DBInstance
    not_found_codes = frozenset({'DBInstanceNotFound', 'DBInstanceNotFoundFault'})
    # describe_db_instances accepts MaxRecords between 20 and 100
    min_page_size = 20

    @property
    def service_name(self) -> str:
        return 'rds'

    def fetch_page(self, ctx: Context, region: str, cursor: PageCursor) -> Page:
        response = self._fetch_token_page(region, 'describe_db_instances', cursor)
        records = [self._with_tags(ctx, region, instance) for instance in response.get('DBInstances', [])]
        return page_from_token(records, cursor, response.get('NextToken'))

    def describe_by_id(self, ctx: Context, region: str, resource_id: str) -> List[Dict[str, Any]]:
        response = self._call(region, 'describe_db_instances', resource_id, DBInstanceIdentifier=resource_id)
        return [self._with_tags(ctx, region, instance) for instance in response.get('DBInstances', [])]

    def map_record(self, record: Mapping[str, Any], region: str) -> DBInstance:
        tags = tags_from_list(record.get('TagList'))
        endpoint = record.get('Endpoint') or {}
        return DBInstance(
            resource_id=record.get('DBInstanceIdentifier', ''),
            resource_name=tags.get('Name', record.get('DBInstanceIdentifier', '')),
            region_id=region,
            tags=tags,
            arn=record.get('DBInstanceArn', ''),
            status=record.get('DBInstanceStatus', ''),
            engine=record.get('Engine', ''),
            engine_version=record.get('EngineVersion', ''),
            instance_class=record.get('DBInstanceClass', ''),
            endpoint_address=endpoint.get('Address', ''),
            port=endpoint.get('Port', 0),
            vpc_id=(record.get('DBSubnetGroup') or {}).get('VpcId', ''),
            multi_az=record.get('MultiAZ', False),
            creation_time=record.get('InstanceCreateTime')
        )

    def get_resource_tags(self, ctx: Context, region: str, resource_id: str) -> Dict[str, str]:
        """Read the instance's tags with ``list_tags_for_resource``."""
        region = self._resolve_region(region)
        arn = self._arn_for(ctx, region, resource_id)
        response = self._call(region, 'list_tags_for_resource', resource_id, ResourceName=arn)
        return tags_from_list(response.get('TagList'))

    def tag_resource(self, ctx: Context, region: str, resource_id: str, tags: Mapping[str, str]) -> None:
        if not tags:
            return
        region = self._resolve_region(region)
        arn = self._arn_for(ctx, region, resource_id)
        self._call(region, 'add_tags_to_resource', resource_id, ResourceName=arn, Tags=tag_list(tags))

    def untag_resource(self, ctx: Context, region: str, resource_id: str, tag_keys: Sequence[str]) -> None:
        if not tag_keys:
            return
        region = self._resolve_region(region)
        arn = self._arn_for(ctx, region, resource_id)
        self._call(region, 'remove_tags_from_resource', resource_id, ResourceName=arn, TagKeys=list(tag_keys))

    def _arn_for(self, ctx: Context, region: str, resource_id: str) -> str:
        return self.get_resource_by_id(ctx, region, resource_id).arn

    def _with_tags(self, ctx: Context, region: str, instance: Mapping[str, Any]) -> Dict[str, Any]:
        """Return the record with a TagList, fetching it when the response omitted one."""
        record = dict(instance)
        if 'TagList' not in record and record.get('DBInstanceArn'):
            ctx.check()
            response = self._call(region, 'list_tags_for_resource', ResourceName=record['DBInstanceArn'])
            record['TagList'] = response.get('TagList', [])
        return record
