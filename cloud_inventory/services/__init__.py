"""Resource operations, registry and fan-out."""

from .base import BaseResourceOperation
from .models import (
    CloudResource,
    EC2Instance,
    VPC,
    Subnet,
    DBInstance,
    ClassicLoadBalancer,
    ApplicationLoadBalancer,
    NetworkLoadBalancer,
    SecurityGroup,
    ListRequest,
    ListResponse,
    InventoryItem,
    InventoryResult,
    CollectionError,
)
from .pagination import Page, PageCursor, paginate, page_from_token
from .filters import filter_by_tags, matches_tags
from .ec2 import EC2InstanceOperation, VPCOperation, SubnetOperation, SecurityGroupOperation
from .rds import DBInstanceOperation
from .elb import ClassicLoadBalancerOperation, ApplicationLoadBalancerOperation, NetworkLoadBalancerOperation
from .registry import OPERATION_CLASSES, ResourceManager, build_resource_manager
from .orchestrator import InventoryOrchestrator

__all__ = [
    'BaseResourceOperation',
    'CloudResource',
    'EC2Instance',
    'VPC',
    'Subnet',
    'DBInstance',
    'ClassicLoadBalancer',
    'ApplicationLoadBalancer',
    'NetworkLoadBalancer',
    'SecurityGroup',
    'ListRequest',
    'ListResponse',
    'InventoryItem',
    'InventoryResult',
    'CollectionError',
    'Page',
    'PageCursor',
    'paginate',
    'page_from_token',
    'filter_by_tags',
    'matches_tags',
    'EC2InstanceOperation',
    'VPCOperation',
    'SubnetOperation',
    'SecurityGroupOperation',
    'DBInstanceOperation',
    'ClassicLoadBalancerOperation',
    'ApplicationLoadBalancerOperation',
    'NetworkLoadBalancerOperation',
    'OPERATION_CLASSES',
    'ResourceManager',
    'build_resource_manager',
    'InventoryOrchestrator',
]
