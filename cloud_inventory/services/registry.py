"""
Resource type registry and dispatch.
"""
from typing import Dict, Iterable, Optional, Set, Type
import logging

import boto3

from .base import BaseResourceOperation
from .ec2 import EC2InstanceOperation, SecurityGroupOperation, SubnetOperation, VPCOperation
from .elb import ApplicationLoadBalancerOperation, ClassicLoadBalancerOperation, NetworkLoadBalancerOperation
from .rds import DBInstanceOperation


logger = logging.getLogger(__name__)

# Built-in operation classes by resource type tag
OPERATION_CLASSES: Dict[str, Type[BaseResourceOperation]] = {
    operation_class.resource_class.resource_type: operation_class
    for operation_class in (
        EC2InstanceOperation,
        VPCOperation,
        SubnetOperation,
        DBInstanceOperation,
        ClassicLoadBalancerOperation,
        ApplicationLoadBalancerOperation,
        NetworkLoadBalancerOperation,
        SecurityGroupOperation,
    )
}


class ResourceManager:
    """Maps resource type tags to the operation that serves them.

    Registration happens once at startup; afterwards the manager is only
    read, so it can be shared between worker threads.
    """

    def __init__(self):
        self._operations: Dict[str, BaseResourceOperation] = {}

    def register(self, resource_type: str, operation: BaseResourceOperation) -> None:
        """Install the operation for a type, replacing any earlier one."""
        self._operations[resource_type] = operation

    def get_operation(self, resource_type: str) -> Optional[BaseResourceOperation]:
        """Get the operation for a type.

        Returns:
            The registered operation, or None when the type is not supported
        """
        return self._operations.get(resource_type)

    def list_resource_types(self) -> Set[str]:
        return set(self._operations)

    def is_resource_type_supported(self, resource_type: str) -> bool:
        return resource_type in self._operations

    def __contains__(self, resource_type: str) -> bool:
        return self.is_resource_type_supported(resource_type)

    def __len__(self) -> int:
        return len(self._operations)


def build_resource_manager(
    session: boto3.Session,
    default_region: str,
    resource_types: Optional[Iterable[str]] = None
) -> ResourceManager:
    """Create a manager with the built-in operations bound to one session.

    Args:
        session: Authenticated session for one account
        default_region: Region the operations use when called without one
        resource_types: Types to register. If None or empty, registers all.
            Unknown names are skipped with a warning.

    Returns:
        Populated ResourceManager
    """
    manager = ResourceManager()
    wanted = list(resource_types) if resource_types else list(OPERATION_CLASSES)

    for resource_type in wanted:
        operation_class = OPERATION_CLASSES.get(resource_type)
        if operation_class is None:
            logger.warning(f"Unsupported resource type in configuration: {resource_type}")
            continue
        manager.register(resource_type, operation_class(session, default_region))

    return manager
