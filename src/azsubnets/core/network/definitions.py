# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Data model, configuration and error taxonomy shared by the subnet planner, inventory, provisioner and reconciler.

Everything here is provider agnostic. Provider bindings (e.g EC2) translate their native payloads into these entities
and their native errors into :class:`ProviderError` with an explicit :class:`ProviderErrorKind`.
"""

import ipaddress
import os
from enum import Enum, unique
from typing import Dict, List, Mapping, Optional

from azsubnets.core.entity import CoreData

IPV4_BIT_LENGTH = 32
IPV4_MAX_ADDRESS = (1 << IPV4_BIT_LENGTH) - 1

AVAILABILITY_ZONE_STATE_AVAILABLE = "available"

# EC2 only accepts subnet masks between /16 and /28
MIN_SUBNET_PREFIX_LENGTH = 16
MAX_SUBNET_PREFIX_LENGTH = 28

# The larger the mask, the fewer hosts. /28 is too small to be future-proof for the managed data stores, /27 is the
# smallest block that still fits VPCs with narrow CIDR masks.
DEFAULT_SUBNET_PREFIX_LENGTH = 27
DEFAULT_PRIVATE_SUBNET_TAG_KEY = "kubernetes.io/role/internal-elb"
DEFAULT_PRIVATE_SUBNET_TAG_VALUE = "1"
DEFAULT_ORGANIZATION_TAG_PREFIX = "integreatly.org/"
DEFAULT_DISPLAY_NAME_TAG_KEY = "Name"
DEFAULT_SUBNET_DISPLAY_NAME = "Cloud Resource Subnet"
DEFAULT_MANAGED_TAG_VALUE = "true"
DEFAULT_CLUSTER_OWNED_TAG_PREFIX = "kubernetes.io/cluster/"
CLUSTER_OWNERSHIP_TAG_VALUES = ("owned", "shared")
DEFAULT_POLL_INTERVAL_IN_SECS = 5
DEFAULT_POLL_TIMEOUT_IN_SECS = 5 * 60

ORGANIZATION_TAG_PREFIX_ENV_VAR = "TAG_KEY_PREFIX"


# Errors
# ------
class SubnetReconciliationError(Exception):
    """Root of the reconciliation error taxonomy.

    Carries the causal context (the availability zone being processed and how many candidates were attempted) so
    that the caller of the reconciler can diagnose a failed pass.
    """

    def __init__(self, message: str, availability_zone: Optional[str] = None, attempts: Optional[int] = None) -> None:
        super().__init__(message)
        self.availability_zone = availability_zone
        self.attempts = attempts


class InvalidAddressSpace(SubnetReconciliationError):
    pass


class LookupFailed(SubnetReconciliationError):
    pass


class AddressSpaceExhausted(SubnetReconciliationError):
    pass


class ProvisionFailed(SubnetReconciliationError):
    pass


class TaggingFailed(SubnetReconciliationError):
    """Tagging of a freshly created subnet failed. The subnet itself is retained."""

    def __init__(self, message: str, subnet: "SubnetRecord", availability_zone: Optional[str] = None, attempts: Optional[int] = None):
        super().__init__(message, availability_zone, attempts)
        self.subnet = subnet


class PollTimeout(SubnetReconciliationError):
    pass


@unique
class ProviderErrorKind(str, Enum):
    CONFLICT = "CONFLICT"
    OTHER = "OTHER"


class ProviderError(Exception):
    """Error raised by a :class:`SubnetProvider` with an explicit discriminant.

    CONFLICT means the requested address range overlaps an existing one, everything else is OTHER.
    """

    def __init__(self, message: str, kind: ProviderErrorKind = ProviderErrorKind.OTHER, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.code = code

    @property
    def is_conflict(self) -> bool:
        return self.kind == ProviderErrorKind.CONFLICT


# Entities
# --------
def _netmask(prefix_len: int) -> int:
    return (IPV4_MAX_ADDRESS << (IPV4_BIT_LENGTH - prefix_len)) & IPV4_MAX_ADDRESS


class NetworkBlock(CoreData):
    """Immutable IPv4 address prefix. ``base_address`` is the packed network address, host bits are always zero."""

    def __init__(self, base_address: int, prefix_len: int) -> None:
        if not isinstance(prefix_len, int) or not 0 <= prefix_len <= IPV4_BIT_LENGTH:
            raise InvalidAddressSpace(f"invalid prefix length {prefix_len!r}")
        if not isinstance(base_address, int) or not 0 <= base_address <= IPV4_MAX_ADDRESS:
            raise InvalidAddressSpace(f"invalid IPv4 address {base_address!r}")
        if base_address & ~_netmask(prefix_len) & IPV4_MAX_ADDRESS:
            raise InvalidAddressSpace(f"{ipaddress.IPv4Address(base_address)}/{prefix_len} has host bits set")
        object.__setattr__(self, "base_address", base_address)
        object.__setattr__(self, "prefix_len", prefix_len)

    @classmethod
    def parse(cls, cidr: str) -> "NetworkBlock":
        if not isinstance(cidr, str) or not cidr.strip():
            raise InvalidAddressSpace("cidr block can't be empty")
        cidr = cidr.strip()
        if "/" not in cidr:
            raise InvalidAddressSpace(f"cidr block {cidr!r} has no prefix length")
        try:
            network = ipaddress.IPv4Network(cidr, strict=True)
        except ValueError as error:
            raise InvalidAddressSpace(f"failed to parse cidr block {cidr!r}: {error}") from error
        return cls(int(network.network_address), network.prefixlen)

    def __setattr__(self, name, value):
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    def __delattr__(self, name):
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    @property
    def netmask(self) -> int:
        return _netmask(self.prefix_len)

    @property
    def num_addresses(self) -> int:
        return 1 << (IPV4_BIT_LENGTH - self.prefix_len)

    @property
    def last_address(self) -> int:
        return self.base_address + self.num_addresses - 1

    def contains_address(self, address: int) -> bool:
        return (address & self.netmask) == self.base_address

    def contains(self, other: "NetworkBlock") -> bool:
        return other.prefix_len >= self.prefix_len and self.contains_address(other.base_address)

    def overlaps(self, other: "NetworkBlock") -> bool:
        return self.contains(other) or other.contains(self)

    def __str__(self) -> str:
        return f"{ipaddress.IPv4Address(self.base_address)}/{self.prefix_len}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self)!r})"


class VPCContext(CoreData):
    def __init__(self, vpc_id: str, cidr_block: Optional[NetworkBlock]) -> None:
        self.vpc_id = vpc_id
        self.cidr_block = cidr_block


class AvailabilityZone(CoreData):
    def __init__(self, name: str, state: str) -> None:
        self.name = name
        self.state = state

    @property
    def is_available(self) -> bool:
        return self.state == AVAILABILITY_ZONE_STATE_AVAILABLE


class SubnetRecord(CoreData):
    def __init__(
        self,
        subnet_id: str,
        vpc_id: str,
        availability_zone: str,
        cidr_block: Optional[NetworkBlock],
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        self.subnet_id = subnet_id
        self.vpc_id = vpc_id
        self.availability_zone = availability_zone
        self.cidr_block = cidr_block
        self.tags = dict(tags) if tags else dict()

    def has_tag(self, key: str) -> bool:
        return key in self.tags


class ReconciliationReport(CoreData):
    """Outcome of a single reconciliation pass.

    ``subnet_ids`` holds every private subnet of the VPC after the pass (pre-existing first, then the ones created
    in this pass), without duplicates.
    """

    def __init__(self) -> None:
        self.subnet_ids: List[str] = []
        self.created: List[SubnetRecord] = []
        self.tagging_failures: List[TaggingFailed] = []
        self.skipped_zones: List[str] = []
        # subnets of an earlier pass whose tag set was completed in this one
        self.repaired: List[SubnetRecord] = []

    def add_subnet_id(self, subnet_id: str) -> None:
        if subnet_id not in self.subnet_ids:
            self.subnet_ids.append(subnet_id)


# Configuration
# -------------
class SubnetReconcilerConfig(CoreData):
    """Settings for planning, tagging and polling. Passed explicitly to the inventory, provisioner and reconciler."""

    def __init__(
        self,
        subnet_prefix_length: int = DEFAULT_SUBNET_PREFIX_LENGTH,
        private_subnet_tag_key: str = DEFAULT_PRIVATE_SUBNET_TAG_KEY,
        private_subnet_tag_value: str = DEFAULT_PRIVATE_SUBNET_TAG_VALUE,
        organization_tag_prefix: str = DEFAULT_ORGANIZATION_TAG_PREFIX,
        display_name_tag_key: str = DEFAULT_DISPLAY_NAME_TAG_KEY,
        display_name: str = DEFAULT_SUBNET_DISPLAY_NAME,
        managed_tag_value: str = DEFAULT_MANAGED_TAG_VALUE,
        cluster_owned_tag_prefix: str = DEFAULT_CLUSTER_OWNED_TAG_PREFIX,
        poll_interval_in_secs: float = DEFAULT_POLL_INTERVAL_IN_SECS,
        poll_timeout_in_secs: float = DEFAULT_POLL_TIMEOUT_IN_SECS,
    ) -> None:
        if not MIN_SUBNET_PREFIX_LENGTH <= subnet_prefix_length <= MAX_SUBNET_PREFIX_LENGTH:
            raise ValueError(
                f"subnet_prefix_length must be between {MIN_SUBNET_PREFIX_LENGTH} and {MAX_SUBNET_PREFIX_LENGTH}, "
                f"got {subnet_prefix_length}"
            )
        if not private_subnet_tag_key:
            raise ValueError("private_subnet_tag_key can't be empty")
        if poll_interval_in_secs <= 0 or poll_timeout_in_secs <= 0:
            raise ValueError(f"poll interval and timeout must be positive, got {poll_interval_in_secs} / {poll_timeout_in_secs}")
        self.subnet_prefix_length = subnet_prefix_length
        self.private_subnet_tag_key = private_subnet_tag_key
        self.private_subnet_tag_value = private_subnet_tag_value
        self.organization_tag_prefix = organization_tag_prefix
        self.display_name_tag_key = display_name_tag_key
        self.display_name = display_name
        self.managed_tag_value = managed_tag_value
        self.cluster_owned_tag_prefix = cluster_owned_tag_prefix
        self.poll_interval_in_secs = poll_interval_in_secs
        self.poll_timeout_in_secs = poll_timeout_in_secs

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **kwargs) -> "SubnetReconcilerConfig":
        environ = os.environ if environ is None else environ
        prefix = environ.get(ORGANIZATION_TAG_PREFIX_ENV_VAR)
        if prefix:
            kwargs.setdefault("organization_tag_prefix", prefix)
        return cls(**kwargs)

    @property
    def cluster_id_tag_key(self) -> str:
        return f"{self.organization_tag_prefix}clusterID"

    @property
    def managed_tag_key(self) -> str:
        return f"{self.organization_tag_prefix}managed"

    def cluster_owned_tag_key(self, cluster_id: str) -> str:
        return f"{self.cluster_owned_tag_prefix}{cluster_id}"
