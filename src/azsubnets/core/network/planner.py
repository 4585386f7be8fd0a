# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Address space planning for the private subnets.

Given the CIDR block of a VPC, generate every sub-network of a fixed prefix length that fits in it. The result is
the ordered candidate sequence the provisioner walks through until the provider accepts one of them.

Example (VPC 10.0.0.0/24, target /26)::

    generated: 10.0.0.0/26, 10.0.0.64/26, 10.0.0.128/26, 10.0.0.192/26
    returned:  10.0.0.192/26, 10.0.0.128/26, 10.0.0.64/26, 10.0.0.0/26

The sequence is returned highest address first. The cluster's own subnet normally sits at the bottom of the VPC
range, so searching from the top down runs into fewer conflicts.
"""

import logging
from typing import Iterator, Tuple

from .definitions import IPV4_BIT_LENGTH, InvalidAddressSpace, NetworkBlock, VPCContext

module_logger = logging.getLogger(__name__)


def _generate_candidates(parent: NetworkBlock, target_prefix_len: int) -> Iterator[NetworkBlock]:
    step = 1 << (IPV4_BIT_LENGTH - target_prefix_len)
    target_mask = NetworkBlock(0, target_prefix_len).netmask
    seen = set()
    address = parent.base_address
    while address <= parent.last_address and parent.contains_address(address):
        masked = address & target_mask
        # stepping by the full block size never repeats a base, keep the check anyway
        if masked not in seen:
            seen.add(masked)
            yield NetworkBlock(masked, target_prefix_len)
        address += step


def plan(parent: NetworkBlock, target_prefix_len: int) -> Tuple[NetworkBlock, ...]:
    """Compute the candidate sub-networks of ``parent`` with the prefix length ``target_prefix_len``.

    :param parent: address space to subdivide (e.g the VPC CIDR block)
    :param target_prefix_len: prefix length of the candidates, must be greater than the prefix of parent
    :return: non-overlapping candidates, all within parent, highest address first
    :raises InvalidAddressSpace: if parent is missing or can't be subdivided into target_prefix_len blocks
    """
    if parent is None:
        raise InvalidAddressSpace("address space to subdivide can't be empty")
    if not isinstance(target_prefix_len, int) or target_prefix_len > IPV4_BIT_LENGTH:
        raise InvalidAddressSpace(f"invalid target prefix length {target_prefix_len!r}")
    if target_prefix_len <= parent.prefix_len:
        raise InvalidAddressSpace(f"cidr block {parent} cannot contain generated subnet mask /{target_prefix_len}")

    candidates = list(_generate_candidates(parent, target_prefix_len))
    candidates.reverse()
    return tuple(candidates)


def build_subnet_candidates(vpc: VPCContext, target_prefix_len: int) -> Tuple[NetworkBlock, ...]:
    """Candidate subnet blocks for ``vpc`` (see :func:`plan`)."""
    module_logger.info(f"Calculating /{target_prefix_len} subnet candidates for VPC {vpc.vpc_id} cidr {vpc.cidr_block}")
    if vpc.cidr_block is None:
        raise InvalidAddressSpace(f"VPC {vpc.vpc_id} cidr block can't be empty")
    candidates = plan(vpc.cidr_block, target_prefix_len)
    module_logger.debug(f"Generated {len(candidates)} candidates for VPC {vpc.vpc_id}")
    return candidates
