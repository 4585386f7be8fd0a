# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest

from azsubnets.core.network.definitions import (
    AvailabilityZone,
    InvalidAddressSpace,
    NetworkBlock,
    ProviderError,
    ProviderErrorKind,
    ReconciliationReport,
    SubnetRecord,
    SubnetReconcilerConfig,
)


class TestNetworkBlock:
    def test_parse(self):
        block = NetworkBlock.parse("10.0.0.0/16")
        assert block.base_address == (10 << 24)
        assert block.prefix_len == 16
        assert block.num_addresses == 65536
        assert str(block) == "10.0.0.0/16"
        assert NetworkBlock.parse(" 10.0.0.0/16 ") == block

    @pytest.mark.parametrize("cidr", ["", "   ", None, "10.0.0.0", "10.0.0.1/16", "300.0.0.0/8", "10.0.0.0/33", "fd00::/8", "not-a-cidr/8"])
    def test_parse_invalid(self, cidr):
        with pytest.raises(InvalidAddressSpace):
            NetworkBlock.parse(cidr)

    def test_host_bits_rejected(self):
        with pytest.raises(InvalidAddressSpace):
            NetworkBlock((10 << 24) + 1, 24)

    def test_immutable(self):
        block = NetworkBlock.parse("10.0.0.0/16")
        with pytest.raises(AttributeError):
            block.prefix_len = 8
        with pytest.raises(AttributeError):
            del block.base_address

    def test_containment_and_overlap(self):
        vpc = NetworkBlock.parse("10.0.0.0/16")
        inner = NetworkBlock.parse("10.0.255.224/27")
        other = NetworkBlock.parse("10.1.0.0/27")
        assert vpc.contains(inner)
        assert not inner.contains(vpc)
        assert vpc.overlaps(inner) and inner.overlaps(vpc)
        assert not vpc.contains(other)
        assert not inner.overlaps(other)
        assert inner.last_address == inner.base_address + 31

    def test_value_semantics(self):
        assert {NetworkBlock.parse("10.0.0.0/27"), NetworkBlock.parse("10.0.0.0/27")} == {NetworkBlock.parse("10.0.0.0/27")}
        assert NetworkBlock.parse("10.0.0.0/27") != NetworkBlock.parse("10.0.0.0/26")
        assert repr(NetworkBlock.parse("10.0.0.0/27")) == "NetworkBlock('10.0.0.0/27')"


class TestEntities:
    def test_availability_zone_state(self):
        assert AvailabilityZone("us-east-1a", "available").is_available
        assert not AvailabilityZone("us-east-1b", "impaired").is_available

    def test_subnet_record_tags(self):
        subnet = SubnetRecord("subnet-1", "vpc-1", "us-east-1a", NetworkBlock.parse("10.0.0.0/27"), {"Name": "foo"})
        assert subnet.has_tag("Name")
        assert not subnet.has_tag("kubernetes.io/role/internal-elb")
        assert subnet == SubnetRecord("subnet-1", "vpc-1", "us-east-1a", NetworkBlock.parse("10.0.0.0/27"), {"Name": "foo"})
        assert isinstance(hash(subnet), int)

    def test_report_keeps_ids_unique_and_ordered(self):
        report = ReconciliationReport()
        report.add_subnet_id("subnet-2")
        report.add_subnet_id("subnet-1")
        report.add_subnet_id("subnet-2")
        assert report.subnet_ids == ["subnet-2", "subnet-1"]

    def test_provider_error_kind(self):
        assert ProviderError("boom", ProviderErrorKind.CONFLICT, "InvalidSubnet.Conflict").is_conflict
        assert not ProviderError("boom").is_conflict


class TestSubnetReconcilerConfig:
    def test_defaults(self):
        config = SubnetReconcilerConfig()
        assert config.subnet_prefix_length == 27
        assert config.private_subnet_tag_key == "kubernetes.io/role/internal-elb"
        assert config.cluster_id_tag_key == "integreatly.org/clusterID"
        assert config.managed_tag_key == "integreatly.org/managed"
        assert config.cluster_owned_tag_key("abc") == "kubernetes.io/cluster/abc"

    @pytest.mark.parametrize("prefix_length", [15, 29, 32])
    def test_invalid_prefix_length(self, prefix_length):
        with pytest.raises(ValueError):
            SubnetReconcilerConfig(subnet_prefix_length=prefix_length)

    def test_invalid_poll_settings(self):
        with pytest.raises(ValueError):
            SubnetReconcilerConfig(poll_interval_in_secs=0)
        with pytest.raises(ValueError):
            SubnetReconcilerConfig(poll_timeout_in_secs=-1)

    def test_from_env(self):
        assert SubnetReconcilerConfig.from_env({"TAG_KEY_PREFIX": "example.com/"}).cluster_id_tag_key == "example.com/clusterID"
        assert SubnetReconcilerConfig.from_env({}) == SubnetReconcilerConfig()
        config = SubnetReconcilerConfig.from_env({"TAG_KEY_PREFIX": "example.com/"}, subnet_prefix_length=26)
        assert config.subnet_prefix_length == 26
