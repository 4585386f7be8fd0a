# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from azsubnets.core.network.definitions import AvailabilityZone, NetworkBlock, SubnetRecord, VPCContext


class SubnetProvider(ABC):
    """Cloud provider operations the subnet reconciliation relies on.

    Implementations must translate their native failures into
    :class:`azsubnets.core.network.definitions.ProviderError`, reporting an address overlap on subnet creation as
    ``ProviderErrorKind.CONFLICT`` and everything else as ``ProviderErrorKind.OTHER``.
    """

    @abstractmethod
    def list_subnets(self, vpc_id: Optional[str] = None) -> List[SubnetRecord]:
        """List the subnets visible to the caller, narrowed down to ``vpc_id`` if provided."""
        ...

    @abstractmethod
    def list_availability_zones(self) -> List[AvailabilityZone]:
        ...

    @abstractmethod
    def list_vpcs(self, vpc_ids: Sequence[str]) -> List[VPCContext]:
        ...

    @abstractmethod
    def create_subnet(
        self, vpc_id: str, availability_zone: str, cidr_block: NetworkBlock, tags: Optional[Dict[str, str]] = None
    ) -> SubnetRecord:
        """Create a subnet, applying ``tags`` atomically with the creation so that it is never visible untagged."""
        ...

    @abstractmethod
    def create_tags(self, resource_id: str, tags: Dict[str, str]) -> None:
        ...
