"""
EC2 resource operations: instances, VPCs, subnets and security groups.
"""
from typing import Any, Dict, List, Mapping, Sequence

from .base import BaseResourceOperation, tag_list
from .models import EC2Instance, SecurityGroup, Subnet, VPC, tags_from_list
from .pagination import Page, PageCursor, page_from_token
from ..core.context import Context


class EC2ResourceOperation(BaseResourceOperation):
    """Shared behaviour for resources described through the EC2 API.

    Every EC2 resource carries its tags inline and is tagged through
    ``create_tags``/``delete_tags``.
    """

    # describe_* calls reject MaxResults below 5
    min_page_size = 5

    @property
    def service_name(self) -> str:
        return 'ec2'

    def tag_resource(self, ctx: Context, region: str, resource_id: str, tags: Mapping[str, str]) -> None:
        """Add or overwrite tags with ``create_tags``."""
        ctx.check()
        if not tags:
            return
        self._call(
            self._resolve_region(region), 'create_tags', resource_id,
            Resources=[resource_id], Tags=tag_list(tags)
        )

    def untag_resource(self, ctx: Context, region: str, resource_id: str, tag_keys: Sequence[str]) -> None:
        """Remove tags with ``delete_tags``."""
        ctx.check()
        if not tag_keys:
            return
        self._call(
            self._resolve_region(region), 'delete_tags', resource_id,
            Resources=[resource_id], Tags=[{'Key': key} for key in tag_keys]
        )


class EC2InstanceOperation(EC2ResourceOperation):
    """Operation for EC2 instances."""

    resource_class = EC2Instance
    not_found_codes = frozenset({'InvalidInstanceID.NotFound', 'InvalidInstanceID.Malformed'})

    def fetch_page(self, ctx: Context, region: str, cursor: PageCursor) -> Page:
        response = self._fetch_token_page(region, 'describe_instances', cursor)
        return page_from_token(self._flatten(response), cursor, response.get('NextToken'))

    def describe_by_id(self, ctx: Context, region: str, resource_id: str) -> List[Dict[str, Any]]:
        response = self._call(region, 'describe_instances', resource_id, InstanceIds=[resource_id])
        return self._flatten(response)

    def map_record(self, record: Mapping[str, Any], region: str) -> EC2Instance:
        tags = tags_from_list(record.get('Tags'))

        private_ips = []
        public_ips = []
        for interface in record.get('NetworkInterfaces', []):
            for address in interface.get('PrivateIpAddresses', []):
                if address.get('PrivateIpAddress'):
                    private_ips.append(address['PrivateIpAddress'])
                public_ip = address.get('Association', {}).get('PublicIp')
                if public_ip:
                    public_ips.append(public_ip)
        # Fall back to the primary addresses when no interfaces are reported
        if not private_ips and record.get('PrivateIpAddress'):
            private_ips.append(record['PrivateIpAddress'])
        if not public_ips and record.get('PublicIpAddress'):
            public_ips.append(record['PublicIpAddress'])

        return EC2Instance(
            resource_id=record.get('InstanceId', ''),
            resource_name=tags.get('Name', ''),
            region_id=region,
            tags=tags,
            state=record.get('State', {}).get('Name', ''),
            instance_type=record.get('InstanceType', ''),
            vpc_id=record.get('VpcId', ''),
            subnet_id=record.get('SubnetId', ''),
            availability_zone=record.get('Placement', {}).get('AvailabilityZone', ''),
            private_ips=tuple(dict.fromkeys(private_ips)),
            public_ips=tuple(dict.fromkeys(public_ips)),
            security_group_ids=tuple(sg['GroupId'] for sg in record.get('SecurityGroups', []) if 'GroupId' in sg),
            image_id=record.get('ImageId', ''),
            platform=record.get('Platform', 'linux'),
            launch_time=record.get('LaunchTime')
        )

    @staticmethod
    def _flatten(response: Mapping[str, Any]) -> List[Dict[str, Any]]:
        return [
            instance
            for reservation in response.get('Reservations', [])
            for instance in reservation.get('Instances', [])
        ]


class VPCOperation(EC2ResourceOperation):
    """Operation for VPCs."""

    resource_class = VPC
    not_found_codes = frozenset({'InvalidVpcID.NotFound', 'InvalidVpcID.Malformed'})

    def fetch_page(self, ctx: Context, region: str, cursor: PageCursor) -> Page:
        response = self._fetch_token_page(region, 'describe_vpcs', cursor)
        return page_from_token(response.get('Vpcs', []), cursor, response.get('NextToken'))

    def describe_by_id(self, ctx: Context, region: str, resource_id: str) -> List[Dict[str, Any]]:
        return self._call(region, 'describe_vpcs', resource_id, VpcIds=[resource_id]).get('Vpcs', [])

    def map_record(self, record: Mapping[str, Any], region: str) -> VPC:
        tags = tags_from_list(record.get('Tags'))
        return VPC(
            resource_id=record.get('VpcId', ''),
            resource_name=tags.get('Name', ''),
            region_id=region,
            tags=tags,
            state=record.get('State', ''),
            cidr_block=record.get('CidrBlock', ''),
            is_default=record.get('IsDefault', False),
            owner_id=record.get('OwnerId', '')
        )


class SubnetOperation(EC2ResourceOperation):
    """Operation for VPC subnets."""

    resource_class = Subnet
    not_found_codes = frozenset({'InvalidSubnetID.NotFound', 'InvalidSubnetID.Malformed'})

    def fetch_page(self, ctx: Context, region: str, cursor: PageCursor) -> Page:
        response = self._fetch_token_page(region, 'describe_subnets', cursor)
        return page_from_token(response.get('Subnets', []), cursor, response.get('NextToken'))

    def describe_by_id(self, ctx: Context, region: str, resource_id: str) -> List[Dict[str, Any]]:
        return self._call(region, 'describe_subnets', resource_id, SubnetIds=[resource_id]).get('Subnets', [])

    def map_record(self, record: Mapping[str, Any], region: str) -> Subnet:
        tags = tags_from_list(record.get('Tags'))
        return Subnet(
            resource_id=record.get('SubnetId', ''),
            resource_name=tags.get('Name', ''),
            region_id=region,
            tags=tags,
            vpc_id=record.get('VpcId', ''),
            state=record.get('State', ''),
            cidr_block=record.get('CidrBlock', ''),
            availability_zone=record.get('AvailabilityZone', ''),
            available_ip_count=record.get('AvailableIpAddressCount', 0)
        )


class SecurityGroupOperation(EC2ResourceOperation):
    """Operation for security groups."""

    resource_class = SecurityGroup
    not_found_codes = frozenset({'InvalidGroup.NotFound', 'InvalidGroupId.Malformed'})

    def fetch_page(self, ctx: Context, region: str, cursor: PageCursor) -> Page:
        response = self._fetch_token_page(region, 'describe_security_groups', cursor)
        return page_from_token(response.get('SecurityGroups', []), cursor, response.get('NextToken'))

    def describe_by_id(self, ctx: Context, region: str, resource_id: str) -> List[Dict[str, Any]]:
        response = self._call(region, 'describe_security_groups', resource_id, GroupIds=[resource_id])
        return response.get('SecurityGroups', [])

    def map_record(self, record: Mapping[str, Any], region: str) -> SecurityGroup:
        tags = tags_from_list(record.get('Tags'))
        return SecurityGroup(
            resource_id=record.get('GroupId', ''),
            resource_name=record.get('GroupName', ''),
            region_id=region,
            tags=tags,
            vpc_id=record.get('VpcId', ''),
            description=record.get('Description', ''),
            owner_id=record.get('OwnerId', '')
        )
