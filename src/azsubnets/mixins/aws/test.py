# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import os
from typing import Dict, Optional

import boto3
import pytest
from moto import mock_aws

from azsubnets.core.platform.definitions.aws.ec2.client_wrapper import dict_to_tags


class AWSTestBase:
    testing_keyname = "testing"
    region = "us-east-1"
    # default moto acc id
    account_id = "123456789012"

    @pytest.fixture(scope="class")
    def aws_credentials(self):
        os.environ["AWS_ACCESS_KEY_ID"] = self.testing_keyname
        os.environ["AWS_SECRET_ACCESS_KEY"] = self.testing_keyname
        os.environ["AWS_SECURITY_TOKEN"] = self.testing_keyname
        os.environ["AWS_SESSION_TOKEN"] = self.testing_keyname
        os.environ["AWS_DEFAULT_REGION"] = self.region

    @pytest.fixture()
    def aws_session(self, aws_credentials):
        with mock_aws():
            yield boto3.Session(region_name=self.region)

    @pytest.fixture()
    def ec2_client(self, aws_session):
        return aws_session.client("ec2", region_name=self.region)

    @staticmethod
    def create_cluster_vpc(
        ec2_client, cluster_id: str, vpc_cidr: str, subnet_cidr: str, availability_zone: str, extra_tags: Optional[Dict[str, str]] = None
    ):
        """Emulate a single-AZ cluster: one VPC, one private subnet owned by the cluster."""
        vpc_id = ec2_client.create_vpc(CidrBlock=vpc_cidr)["Vpc"]["VpcId"]
        subnet_id = ec2_client.create_subnet(VpcId=vpc_id, CidrBlock=subnet_cidr, AvailabilityZone=availability_zone)["Subnet"]["SubnetId"]
        tags = {f"kubernetes.io/cluster/{cluster_id}": "owned"}
        tags.update(extra_tags or {})
        ec2_client.create_tags(Resources=[subnet_id], Tags=dict_to_tags(tags))
        return vpc_id, subnet_id
