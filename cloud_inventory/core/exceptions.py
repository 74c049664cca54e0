"""
Core exception classes for cloud inventory.
"""
from typing import Optional


class InventoryError(Exception):
    """Base exception for all cloud inventory errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class AuthenticationError(InventoryError):
    """Raised when credentials for an account cannot be obtained."""
    pass


class ConfigurationError(InventoryError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(InventoryError):
    """Raised when input validation fails."""
    pass


class ProviderError(InventoryError):
    """Raised when a provider API call fails.

    The original exception is chained as ``__cause__``. Provider errors are
    never retried here; retry policy belongs to the client configuration.
    """
    pass


class ResourceNotFoundError(InventoryError):
    """Raised when a lookup by id matches no resource."""

    def __init__(self, resource_type: str, resource_id: str, region: Optional[str] = None):
        location = f" in {region}" if region else ""
        super().__init__(f"{resource_type} resource {resource_id} not found{location}")
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.region = region


class UnimplementedError(InventoryError):
    """Raised when a resource type does not support an operation."""

    def __init__(self, operation: str, resource_type: str):
        super().__init__(f"{operation} is not implemented for {resource_type} resources")
        self.operation = operation
        self.resource_type = resource_type


class OperationCancelled(InventoryError):
    """Raised when a context is cancelled or its deadline passes."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)
