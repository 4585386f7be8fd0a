# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Dict, Optional, Sequence

from azsubnets.core.platform.constructs import SubnetProvider

from .definitions import (
    AddressSpaceExhausted,
    NetworkBlock,
    ProviderError,
    ProvisionFailed,
    SubnetRecord,
    SubnetReconcilerConfig,
    TaggingFailed,
    VPCContext,
)

module_logger = logging.getLogger(__name__)


def build_subnet_tags(config: SubnetReconcilerConfig, cluster_id: str, user_tags: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Tags applied to every subnet created by the provisioner.

    User supplied tags are merged in, but on a key collision the default tag wins.
    """
    default_tags = {
        config.private_subnet_tag_key: config.private_subnet_tag_value,
        config.cluster_id_tag_key: cluster_id,
        config.display_name_tag_key: config.display_name,
        config.managed_tag_key: config.managed_tag_value,
    }
    tags = dict(default_tags)
    for key, value in (user_tags or {}).items():
        if key in default_tags:
            module_logger.debug(f"Discarding user tag {key!r} in favour of the default subnet tag")
            continue
        tags[key] = value
    return tags


class SubnetProvisioner:
    def __init__(
        self, provider: SubnetProvider, config: SubnetReconcilerConfig, cluster_id: str, user_tags: Optional[Dict[str, str]] = None
    ) -> None:
        self._provider = provider
        self._config = config
        self._cluster_id = cluster_id
        self._tags = build_subnet_tags(config, cluster_id, user_tags)
        # applied together with the creation, keeps a subnet recognizable even if the full tagging fails later
        self._creation_tags = {
            config.private_subnet_tag_key: config.private_subnet_tag_value,
            config.cluster_id_tag_key: cluster_id,
        }

    @property
    def tags(self) -> Dict[str, str]:
        return dict(self._tags)

    def create_private_subnet(self, vpc: VPCContext, availability_zone: str, candidates: Sequence[NetworkBlock]) -> SubnetRecord:
        """Create and tag a private subnet in ``availability_zone`` using the first candidate the provider accepts.

        Address conflicts move on to the next candidate. Any other provider failure aborts with
        :class:`ProvisionFailed`, running out of candidates with :class:`AddressSpaceExhausted`.
        If the subnet is created but can't be tagged, :class:`TaggingFailed` is raised and the subnet is kept.
        """
        module_logger.info(f"Creating private subnet in {vpc.vpc_id} zone {availability_zone}")
        attempts = 0
        for candidate in candidates:
            attempts += 1
            module_logger.info(f"Attempting to create subnet with cidr block {candidate} for vpc {vpc.vpc_id} in zone {availability_zone}")
            try:
                subnet = self._provider.create_subnet(vpc.vpc_id, availability_zone, candidate, dict(self._creation_tags))
            except ProviderError as error:
                if error.is_conflict:
                    module_logger.info(f"{candidate} conflicts with a current subnet, trying again")
                    continue
                module_logger.error(f"Error creating new subnet {candidate} in {availability_zone}: {error}")
                raise ProvisionFailed(
                    f"error creating new subnet {candidate} in {availability_zone}", availability_zone=availability_zone, attempts=attempts
                ) from error
            except Exception as error:
                module_logger.error(f"Unexpected error creating new subnet {candidate} in {availability_zone}: {error!r}")
                raise ProvisionFailed(
                    f"error creating new subnet {candidate} in {availability_zone}", availability_zone=availability_zone, attempts=attempts
                ) from error

            module_logger.info(f"Created new subnet {subnet.subnet_id} ({candidate}) in {vpc.vpc_id}")
            return self._tag_private_subnet(subnet, attempts)

        message = (
            f"no free /{self._config.subnet_prefix_length} block left in vpc {vpc.vpc_id} ({vpc.cidr_block}) "
            f"for zone {availability_zone} after {attempts} attempts"
        )
        module_logger.error(message)
        raise AddressSpaceExhausted(message, availability_zone=availability_zone, attempts=attempts)

    def needs_tag_repair(self, subnet: SubnetRecord) -> bool:
        """True for a subnet created for this cluster (see the cluster id tag) that misses part of the full tag set."""
        if subnet.tags.get(self._config.cluster_id_tag_key) != self._cluster_id:
            return False
        return any(subnet.tags.get(key) != value for key, value in self._tags.items())

    def repair_tags(self, subnet: SubnetRecord) -> SubnetRecord:
        module_logger.info(f"Subnet {subnet.subnet_id} is missing some of its tags, applying them again")
        return self._tag_private_subnet(subnet)

    def _tag_private_subnet(self, subnet: SubnetRecord, attempts: Optional[int] = None) -> SubnetRecord:
        module_logger.info(f"Tagging cloud resource subnet {subnet.subnet_id}")
        try:
            self._provider.create_tags(subnet.subnet_id, self._tags)
        except Exception as error:
            module_logger.warning(f"Failed to tag subnet {subnet.subnet_id}, keeping it with partial tags: {error}")
            raise TaggingFailed(
                f"failed to tag subnet {subnet.subnet_id}", subnet, availability_zone=subnet.availability_zone, attempts=attempts
            ) from error

        tags = dict(subnet.tags)
        tags.update(self._tags)
        return SubnetRecord(subnet.subnet_id, subnet.vpc_id, subnet.availability_zone, subnet.cidr_block, tags)
