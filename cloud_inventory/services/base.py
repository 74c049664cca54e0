"""
Base resource operation interface.

Each supported resource type has one operation class. A subclass supplies
the raw page fetcher (``fetch_page``), the field mapper (``map_record``) and
the by-id lookup (``describe_by_id``); listing, tag filtering and single-page
queries are built on those here.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
import logging
import threading
from typing import Any, Dict, FrozenSet, List, Mapping, Sequence, Type

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .filters import filter_by_tags
from .models import CloudResource, ListRequest, ListResponse
from .pagination import DEFAULT_PAGE_SIZE, Page, PageCursor, fetch_single_page, paginate
from ..core.context import Context
from ..core.exceptions import ProviderError, ResourceNotFoundError, UnimplementedError, ValidationError


logger = logging.getLogger(__name__)

# Bounds every provider request so a hung connection cannot outlive a run's deadline
CLIENT_CONFIG = Config(
    connect_timeout=10,
    read_timeout=30,
    retries={'max_attempts': 3, 'mode': 'standard'}
)


class BaseResourceOperation(ABC):
    """Abstract base class for all resource operations."""

    # Model class produced by map_record; its resource_type is the registry key
    resource_class: Type[CloudResource]
    # Provider error codes that mean "no such resource" on a by-id lookup
    not_found_codes: FrozenSet[str] = frozenset()
    page_size: int = DEFAULT_PAGE_SIZE
    # Smallest page the provider API accepts
    min_page_size: int = 1

    def __init__(self, session: boto3.Session, region: str):
        """Initialize the operation with an AWS session and default region.

        Args:
            session: Authenticated boto3 session
            region: Region used when a call passes an empty region
        """
        self.session = session
        self.region = region
        self._clients: Dict[str, Any] = {}
        self._client_lock = threading.Lock()

    @property
    def resource_type(self) -> str:
        return self.resource_class.resource_type

    @property
    @abstractmethod
    def service_name(self) -> str:
        """AWS service name (e.g., 'ec2', 'rds', 'elbv2')."""
        pass

    def client(self, region: str):
        """Service client for a region, created once and then shared.

        boto3 sessions are not thread-safe, so client creation is serialized;
        the clients themselves are safe to share between threads.
        """
        with self._client_lock:
            if region not in self._clients:
                self._clients[region] = self.session.client(
                    self.service_name, region_name=region, config=CLIENT_CONFIG
                )
            return self._clients[region]

    @abstractmethod
    def fetch_page(self, ctx: Context, region: str, cursor: PageCursor) -> Page:
        """Fetch one page of provider records.

        Raises:
            ProviderError: If the provider call fails
        """
        pass

    @abstractmethod
    def map_record(self, record: Mapping[str, Any], region: str) -> CloudResource:
        """Convert one provider record fetched from region into the canonical model.

        Must be total: fields missing from the record get safe defaults.
        """
        pass

    @abstractmethod
    def describe_by_id(self, ctx: Context, region: str, resource_id: str) -> Sequence[Mapping[str, Any]]:
        """Provider records matching one resource id (normally zero or one).

        Raises:
            ResourceNotFoundError: If the provider reports the id as unknown
            ProviderError: If the provider call fails
        """
        pass

    def list_resources(self, ctx: Context, region: str = '') -> List[CloudResource]:
        """List every resource of this type in the region.

        Args:
            ctx: Cancellation context
            region: Region to list; empty uses the operation's default region

        Returns:
            All resources in provider order

        Raises:
            ProviderError: If any page request fails
            OperationCancelled: If ctx is cancelled during the run
        """
        region = self._resolve_region(region)
        resources = paginate(ctx, self.fetch_page, self.map_record, region, self.page_size)
        logger.debug(f"Listed {len(resources)} {self.resource_type} resources in {region}")
        return resources

    def get_resource_by_id(self, ctx: Context, region: str, resource_id: str) -> CloudResource:
        """Get one resource by id.

        Raises:
            ResourceNotFoundError: If no resource has this id
            ProviderError: If the provider call fails
        """
        ctx.check()
        region = self._resolve_region(region)
        records = self.describe_by_id(ctx, region, resource_id)
        if not records:
            raise ResourceNotFoundError(self.resource_type, resource_id, region)
        return self.map_record(records[0], region)

    def list_resources_by_tag(self, ctx: Context, region: str, tag_key: str, tag_value: str) -> List[CloudResource]:
        return self.list_resources_by_tags(ctx, region, {tag_key: tag_value})

    def list_resources_by_tags(self, ctx: Context, region: str, tags: Mapping[str, str]) -> List[CloudResource]:
        """List resources carrying every one of the given tags.

        The full listing is aggregated first and filtered afterwards.
        """
        return filter_by_tags(self.list_resources(ctx, region), tags)

    def get_resource_tags(self, ctx: Context, region: str, resource_id: str) -> Dict[str, str]:
        """Get the current tags of one resource from the provider.

        Subclasses with a dedicated tag API override this; the default looks
        the resource up by id.
        """
        return dict(self.get_resource_by_id(ctx, region, resource_id).tags)

    def tag_resource(self, ctx: Context, region: str, resource_id: str, tags: Mapping[str, str]) -> None:
        """Add or overwrite tags on one resource.

        Raises:
            UnimplementedError: If this resource type does not support tagging
        """
        raise UnimplementedError('TagResource', self.resource_type)

    def untag_resource(self, ctx: Context, region: str, resource_id: str, tag_keys: Sequence[str]) -> None:
        """Remove tags from one resource.

        Raises:
            UnimplementedError: If this resource type does not support tagging
        """
        raise UnimplementedError('UntagResource', self.resource_type)

    def list_page(self, ctx: Context, request: ListRequest) -> ListResponse:
        """Fetch a single page for callers that drive their own paging.

        Pages past the first need the ``next_token`` of the previous
        response. Tag filters apply to this page only.

        Raises:
            ValidationError: If the request's paging parameters are invalid
            ProviderError: If the provider call fails
        """
        cursor = PageCursor(request.page_number, request.page_size, request.page_token)
        if cursor.page_size < self.min_page_size:
            raise ValidationError(
                f"{self.resource_type} requires page_size >= {self.min_page_size}, got {cursor.page_size}"
            )
        if cursor.page_number > 1 and not cursor.page_token:
            raise ValidationError(
                f"{self.resource_type} pages with continuation tokens; "
                "pass the previous response's next_token to request page "
                f"{cursor.page_number}"
            )

        region = self._resolve_region(request.region)
        resources, page = fetch_single_page(ctx, self.fetch_page, self.map_record, region, cursor)

        return ListResponse(
            resources=filter_by_tags(resources, request.tag_filters),
            total_count=page.total_count,
            page_number=cursor.page_number,
            page_size=cursor.page_size,
            has_next_page=not page.ends_listing(cursor),
            next_token=page.next_token
        )

    def _resolve_region(self, region: str) -> str:
        return region or self.region

    def _call(self, region: str, method: str, resource_id: str = None, **kwargs) -> Dict[str, Any]:
        """Invoke a client method, translating provider errors.

        Args:
            region: Region whose client to use
            method: Client method name (e.g. 'describe_instances')
            resource_id: Id being looked up, if any; enables not-found mapping
            **kwargs: Request parameters

        Returns:
            The provider response

        Raises:
            ResourceNotFoundError: If resource_id is set and the error code is
                one of not_found_codes
            ProviderError: For any other provider failure
        """
        with self._translate_errors(region, method, resource_id):
            return getattr(self.client(region), method)(**kwargs)

    def _fetch_token_page(self, region: str, method: str, cursor: PageCursor, **kwargs) -> Dict[str, Any]:
        """Fetch one page of a list call through the client's boto3 paginator.

        The page holds at most ``cursor.page_size`` items of the call's result
        key. The response's ``NextToken`` is the paginator's resume token and
        is absent once the listing is exhausted.
        """
        pagination_config: Dict[str, Any] = {'MaxItems': cursor.page_size, 'PageSize': cursor.page_size}
        if cursor.page_token:
            pagination_config['StartingToken'] = cursor.page_token

        with self._translate_errors(region, method):
            paginator = self.client(region).get_paginator(method)
            return paginator.paginate(PaginationConfig=pagination_config, **kwargs).build_full_result()

    @contextmanager
    def _translate_errors(self, region: str, method: str, resource_id: str = None):
        try:
            yield
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', '')
            if resource_id and error_code in self.not_found_codes:
                raise ResourceNotFoundError(self.resource_type, resource_id, region) from e
            self._handle_aws_error(e, method, resource_id)
        except BotoCoreError as e:
            self._handle_aws_error(e, method, resource_id)

    def _handle_aws_error(self, error: Exception, operation: str, resource_id: str = None) -> None:
        """Handle AWS API errors and convert to ProviderError.

        Args:
            error: The original AWS error
            operation: Operation that failed
            resource_id: ID of resource being operated on (if applicable)

        Raises:
            ProviderError: Wrapped error with context
        """
        resource_context = f" for resource {resource_id}" if resource_id else ""
        error_message = f"AWS {self.service_name} {operation} failed{resource_context}: {str(error)}"
        raise ProviderError(error_message, details=str(error)) from error


def tag_list(tags: Mapping[str, str]) -> List[Dict[str, str]]:
    """Convert a tag map into the provider's ``[{'Key': k, 'Value': v}]`` form."""
    return [{'Key': key, 'Value': value} for key, value in tags.items()]
