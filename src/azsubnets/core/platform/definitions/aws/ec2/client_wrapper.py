# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Any, Dict, List, Optional, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from overrides import overrides

from azsubnets.core.network.definitions import (
    AvailabilityZone,
    NetworkBlock,
    ProviderError,
    ProviderErrorKind,
    SubnetRecord,
    VPCContext,
)
from azsubnets.core.platform.constructs import SubnetProvider

from ..common import RETRY_COMMON_ERRORS_PARAM, exponential_retry, get_code_for_exception

module_logger = logging.getLogger(__name__)

SUBNET_CONFLICT_ERROR_CODE = "InvalidSubnet.Conflict"
VPC_NOT_FOUND_ERROR_CODE = "InvalidVpcID.NotFound"
ZONE_TYPE_AVAILABILITY_ZONE = "availability-zone"

EC2_READ_RETRYABLE_ERRORS = {"RequestLimitExceeded", "ServiceUnavailable"}
# non-idempotent calls: only retry what is rejected before reaching the service
EC2_THROTTLING_ERRORS = {"RequestLimitExceeded"}


def tags_to_dict(tags: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    return {tag["Key"]: tag["Value"] for tag in (tags or [])}


def dict_to_tags(tags: Dict[str, str]) -> List[Dict[str, str]]:
    return [{"Key": key, "Value": value} for key, value in tags.items()]


def _to_network_block(cidr: Optional[str]) -> Optional[NetworkBlock]:
    return NetworkBlock.parse(cidr) if cidr else None


def to_subnet_record(subnet: Dict[str, Any]) -> SubnetRecord:
    return SubnetRecord(
        subnet_id=subnet["SubnetId"],
        vpc_id=subnet["VpcId"],
        availability_zone=subnet["AvailabilityZone"],
        cidr_block=_to_network_block(subnet.get("CidrBlock")),
        tags=tags_to_dict(subnet.get("Tags")),
    )


def _to_provider_error(error: Exception, message: str) -> ProviderError:
    code = get_code_for_exception(error)
    kind = ProviderErrorKind.CONFLICT if code == SUBNET_CONFLICT_ERROR_CODE else ProviderErrorKind.OTHER
    return ProviderError(f"{message}: {error}", kind=kind, code=code)


class EC2SubnetProvider(SubnetProvider):
    """Subnet provider backed by the EC2 API.

    Throttling and transient service errors are retried with :func:`exponential_retry`. Every other failure is
    surfaced as a :class:`ProviderError`, an overlapping CIDR block on subnet creation as ``CONFLICT``.
    """

    def __init__(self, session: boto3.Session, region: Optional[str] = None):
        self._session = session
        self._region = region if region else session.region_name
        self._ec2_client = session.client("ec2", region_name=self._region)

    @property
    def region(self) -> str:
        return self._region

    def _describe_subnets(self, filters: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        subnets = []
        paginator = self._ec2_client.get_paginator("describe_subnets")
        for page in paginator.paginate(Filters=filters):
            subnets.extend(page["Subnets"])
        return subnets

    @overrides
    def list_subnets(self, vpc_id: Optional[str] = None) -> List[SubnetRecord]:
        filters = [{"Name": "vpc-id", "Values": [vpc_id]}] if vpc_id else []
        try:
            subnets = exponential_retry(self._describe_subnets, EC2_READ_RETRYABLE_ERRORS, filters)
        except (ClientError, BotoCoreError) as error:
            raise _to_provider_error(error, f"error listing subnets (vpc={vpc_id!r})") from error
        module_logger.debug(f"Found {len(subnets)} subnets (vpc={vpc_id!r})")
        return [to_subnet_record(subnet) for subnet in subnets]

    @overrides
    def list_availability_zones(self) -> List[AvailabilityZone]:
        try:
            response = exponential_retry(self._ec2_client.describe_availability_zones, EC2_READ_RETRYABLE_ERRORS)
        except (ClientError, BotoCoreError) as error:
            raise _to_provider_error(error, "error getting availability zones") from error
        return [
            AvailabilityZone(zone["ZoneName"], zone["State"])
            for zone in response["AvailabilityZones"]
            # skip local and wavelength zones
            if zone.get("ZoneType", ZONE_TYPE_AVAILABILITY_ZONE) == ZONE_TYPE_AVAILABILITY_ZONE
        ]

    @overrides
    def list_vpcs(self, vpc_ids: Sequence[str]) -> List[VPCContext]:
        try:
            response = exponential_retry(self._ec2_client.describe_vpcs, EC2_READ_RETRYABLE_ERRORS, VpcIds=list(vpc_ids))
        except ClientError as error:
            if get_code_for_exception(error) == VPC_NOT_FOUND_ERROR_CODE:
                module_logger.warning(f"VPC(s) {list(vpc_ids)} not found")
                return []
            raise _to_provider_error(error, f"error getting vpcs {list(vpc_ids)}") from error
        except BotoCoreError as error:
            raise _to_provider_error(error, f"error getting vpcs {list(vpc_ids)}") from error
        return [VPCContext(vpc["VpcId"], _to_network_block(vpc.get("CidrBlock"))) for vpc in response["Vpcs"]]

    @overrides
    def create_subnet(
        self, vpc_id: str, availability_zone: str, cidr_block: NetworkBlock, tags: Optional[Dict[str, str]] = None
    ) -> SubnetRecord:
        request = {"VpcId": vpc_id, "CidrBlock": str(cidr_block), "AvailabilityZone": availability_zone}
        if tags:
            request["TagSpecifications"] = [{"ResourceType": "subnet", "Tags": dict_to_tags(tags)}]
        try:
            response = exponential_retry(
                self._ec2_client.create_subnet, EC2_THROTTLING_ERRORS, **request, **{RETRY_COMMON_ERRORS_PARAM: False}
            )
        except (ClientError, BotoCoreError) as error:
            raise _to_provider_error(error, f"error creating subnet {cidr_block} in {availability_zone}") from error
        subnet = response["Subnet"]
        if tags and not subnet.get("Tags"):
            subnet = dict(subnet, Tags=dict_to_tags(tags))
        return to_subnet_record(subnet)

    @overrides
    def create_tags(self, resource_id: str, tags: Dict[str, str]) -> None:
        try:
            # freshly created subnets might not be visible to the tagging API yet
            exponential_retry(
                self._ec2_client.create_tags,
                {"RequestLimitExceeded", "InvalidSubnetID.NotFound"},
                Resources=[resource_id],
                Tags=dict_to_tags(tags),
            )
        except (ClientError, BotoCoreError) as error:
            raise _to_provider_error(error, f"failed to tag {resource_id}") from error
