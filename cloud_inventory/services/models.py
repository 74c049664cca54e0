"""
Data models for inventoried cloud resources.
"""
from collections import Counter
from dataclasses import dataclass, field, fields
from datetime import datetime
from types import MappingProxyType
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Tuple


def tags_from_list(tags: Optional[Iterable[Mapping[str, Any]]]) -> Dict[str, str]:
    """Convert a provider ``[{'Key': k, 'Value': v}]`` list into a tag map."""
    result = {}
    for tag in tags or []:
        if 'Key' in tag:
            result[tag['Key']] = tag.get('Value', '')
    return result


@dataclass(frozen=True)
class CloudResource:
    """Snapshot of one provider resource at fetch time.

    ``resource_type`` is fixed per concrete class and is the key the
    registry dispatches on. Instances are created by an operation's field
    mapper and never mutated afterwards; ``tags`` is exposed read-only.
    """
    resource_type: ClassVar[str] = ''

    resource_id: str
    resource_name: str
    region_id: str
    # Compared for equality but left out of the hash; the read-only view is unhashable
    tags: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if not self.resource_type:
            raise TypeError(f"{type(self).__name__} does not define a resource_type")
        object.__setattr__(self, 'tags', MappingProxyType(dict(self.tags)))

    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary view, suitable for JSON output."""
        data: Dict[str, Any] = {'resource_type': self.resource_type}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Mapping):
                value = dict(value)
            elif isinstance(value, tuple):
                value = list(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            data[f.name] = value
        return data


@dataclass(frozen=True)
class EC2Instance(CloudResource):
    """EC2 compute instance."""
    resource_type: ClassVar[str] = 'EC2'

    state: str = ''
    instance_type: str = ''
    vpc_id: str = ''
    subnet_id: str = ''
    availability_zone: str = ''
    private_ips: Tuple[str, ...] = ()
    public_ips: Tuple[str, ...] = ()
    security_group_ids: Tuple[str, ...] = ()
    image_id: str = ''
    platform: str = ''
    launch_time: Optional[datetime] = None


@dataclass(frozen=True)
class VPC(CloudResource):
    resource_type: ClassVar[str] = 'VPC'

    state: str = ''
    cidr_block: str = ''
    is_default: bool = False
    owner_id: str = ''


@dataclass(frozen=True)
class Subnet(CloudResource):
    resource_type: ClassVar[str] = 'Subnet'

    vpc_id: str = ''
    state: str = ''
    cidr_block: str = ''
    availability_zone: str = ''
    available_ip_count: int = 0


@dataclass(frozen=True)
class DBInstance(CloudResource):
    """RDS database instance."""
    resource_type: ClassVar[str] = 'RDS'

    arn: str = ''
    status: str = ''
    engine: str = ''
    engine_version: str = ''
    instance_class: str = ''
    endpoint_address: str = ''
    port: int = 0
    vpc_id: str = ''
    multi_az: bool = False
    creation_time: Optional[datetime] = None


@dataclass(frozen=True)
class ClassicLoadBalancer(CloudResource):
    """Classic Elastic Load Balancer, identified by its name."""
    resource_type: ClassVar[str] = 'ELB'

    dns_name: str = ''
    scheme: str = ''
    vpc_id: str = ''
    availability_zones: Tuple[str, ...] = ()
    listener_ports: Tuple[int, ...] = ()
    creation_time: Optional[datetime] = None


@dataclass(frozen=True)
class LoadBalancerV2(CloudResource):
    """Fields shared by application and network load balancers, identified by ARN."""

    dns_name: str = ''
    scheme: str = ''
    state: str = ''
    vpc_id: str = ''
    availability_zones: Tuple[str, ...] = ()
    ip_address_type: str = ''
    creation_time: Optional[datetime] = None


@dataclass(frozen=True)
class ApplicationLoadBalancer(LoadBalancerV2):
    resource_type: ClassVar[str] = 'ALB'


@dataclass(frozen=True)
class NetworkLoadBalancer(LoadBalancerV2):
    resource_type: ClassVar[str] = 'NLB'


@dataclass(frozen=True)
class SecurityGroup(CloudResource):
    resource_type: ClassVar[str] = 'SecurityGroup'

    vpc_id: str = ''
    description: str = ''
    owner_id: str = ''


@dataclass
class ListRequest:
    """One page query for callers that drive their own paging."""
    account: str = ''
    region: str = ''
    page_number: int = 1
    page_size: int = 100
    tag_filters: Dict[str, str] = field(default_factory=dict)
    page_token: Optional[str] = None  # Continuation token from the previous ListResponse


@dataclass
class ListResponse:
    """Result of a single page query."""
    resources: List[CloudResource]
    total_count: int
    page_number: int
    page_size: int
    has_next_page: bool
    next_token: Optional[str] = None


@dataclass
class InventoryItem:
    """A resource together with the account it was collected from."""
    account: str
    resource: CloudResource


@dataclass
class CollectionError:
    """Failure of one (account, region, resource type) collection."""
    account: str
    region: str
    resource_type: str
    message: str
    error: Optional[BaseException] = None


@dataclass
class InventoryResult:
    """Merged outcome of a fan-out run."""
    items: List[InventoryItem] = field(default_factory=list)
    errors: List[CollectionError] = field(default_factory=list)
    unsupported: List[Tuple[str, str]] = field(default_factory=list)  # (account, resource_type)

    @property
    def resources(self) -> List[CloudResource]:
        return [item.resource for item in self.items]

    @property
    def success(self) -> bool:
        return not self.errors

    def sorted_items(self) -> List[InventoryItem]:
        """Items in a stable order: account, region, type, then resource id."""
        return sorted(
            self.items,
            key=lambda item: (
                item.account,
                item.resource.region_id,
                item.resource.resource_type,
                item.resource.resource_id,
            )
        )

    def get_summary(self) -> Dict[str, Any]:
        """Generate a summary of the run.

        Returns:
            Dictionary with totals, counts by resource type and by account,
            and the recorded errors
        """
        by_type = Counter(item.resource.resource_type for item in self.items)
        by_account = Counter(item.account for item in self.items)

        return {
            'total_resources': len(self.items),
            'failed_collections': len(self.errors),
            'by_resource_type': dict(by_type),
            'by_account': dict(by_account),
            'unsupported': [
                {'account': account, 'resource_type': resource_type}
                for account, resource_type in self.unsupported
            ],
            'errors': [
                {
                    'account': e.account,
                    'region': e.region,
                    'resource_type': e.resource_type,
                    'error_message': e.message
                }
                for e in self.errors
            ]
        }
