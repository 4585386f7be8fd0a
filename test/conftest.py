# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from typing import Dict, List, Optional, Sequence

import pytest

from azsubnets.core.network.definitions import (
    AvailabilityZone,
    NetworkBlock,
    ProviderError,
    ProviderErrorKind,
    SubnetRecord,
    VPCContext,
)
from azsubnets.core.platform.constructs import SubnetProvider


class FakeSubnetProvider(SubnetProvider):
    """In-memory provider that rejects overlapping subnets the way EC2 does."""

    def __init__(self) -> None:
        self.vpcs: Dict[str, VPCContext] = {}
        self.subnets: List[SubnetRecord] = []
        self.zones: List[AvailabilityZone] = []
        self.create_calls: List[NetworkBlock] = []
        self.tag_calls: List[str] = []
        self.list_failures = 0
        self.create_failure: Optional[ProviderError] = None
        self.tag_failure: Optional[ProviderError] = None
        self._next_id = 0

    def add_vpc(self, vpc_id: str, cidr: str) -> VPCContext:
        self.vpcs[vpc_id] = VPCContext(vpc_id, NetworkBlock.parse(cidr))
        return self.vpcs[vpc_id]

    def add_zone(self, name: str, state: str = "available") -> AvailabilityZone:
        zone = AvailabilityZone(name, state)
        self.zones.append(zone)
        return zone

    def add_subnet(self, vpc_id: str, zone: str, cidr: str, tags: Optional[Dict[str, str]] = None) -> SubnetRecord:
        subnet = SubnetRecord(self._new_id(), vpc_id, zone, NetworkBlock.parse(cidr), tags)
        self.subnets.append(subnet)
        return subnet

    def _new_id(self) -> str:
        self._next_id += 1
        return f"subnet-{self._next_id:08d}"

    def list_subnets(self, vpc_id: Optional[str] = None) -> List[SubnetRecord]:
        if self.list_failures > 0:
            self.list_failures -= 1
            raise ProviderError("AuthFailure", code="AuthFailure")
        return [subnet for subnet in self.subnets if vpc_id is None or subnet.vpc_id == vpc_id]

    def list_availability_zones(self) -> List[AvailabilityZone]:
        return list(self.zones)

    def list_vpcs(self, vpc_ids: Sequence[str]) -> List[VPCContext]:
        return [self.vpcs[vpc_id] for vpc_id in vpc_ids if vpc_id in self.vpcs]

    def create_subnet(
        self, vpc_id: str, availability_zone: str, cidr_block: NetworkBlock, tags: Optional[Dict[str, str]] = None
    ) -> SubnetRecord:
        self.create_calls.append(cidr_block)
        if self.create_failure:
            raise self.create_failure
        if not self.vpcs[vpc_id].cidr_block.contains(cidr_block):
            raise ProviderError(f"{cidr_block} is out of range", code="InvalidSubnet.Range")
        for subnet in self.subnets:
            if subnet.vpc_id == vpc_id and subnet.cidr_block.overlaps(cidr_block):
                raise ProviderError(f"{cidr_block} conflicts with {subnet.subnet_id}", ProviderErrorKind.CONFLICT, "InvalidSubnet.Conflict")
        return self.add_subnet(vpc_id, availability_zone, str(cidr_block), dict(tags or {}))

    def create_tags(self, resource_id: str, tags: Dict[str, str]) -> None:
        self.tag_calls.append(resource_id)
        if self.tag_failure:
            raise self.tag_failure
        for subnet in self.subnets:
            if subnet.subnet_id == resource_id:
                subnet.tags.update(tags)


@pytest.fixture
def fake_provider():
    return FakeSubnetProvider()
