# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import os
import re

from setuptools import find_packages, setup


def _read_version():
    init_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src", "azsubnets", "__init__.py")
    with open(init_path) as init_file:
        return re.search(r'^__version__ = "([^"]+)"', init_file.read(), re.MULTILINE).group(1)


REQUIRED_PACKAGES = [
    'boto3 >= 1.41.1',
    'overrides >= 3.1.0',
]

TEST_PACKAGES = [
    'moto[ec2] >= 5.0.0',
    'pytest',
    'mock'
]

setup(
    name="azsubnets",
    python_requires=">=3.10",
    version=_read_version(),
    description="azsubnets makes sure a Kubernetes cluster VPC has a private subnet in every availability zone of its region.",
    keywords="aws ec2 vpc subnet cidr availability-zone kubernetes openshift reconciler",
    author="Amazon.com Inc.",
    license="Apache 2.0",

    packages=find_packages(where="src", exclude=("test", "test_integration")),
    package_dir={"": "src"},
    install_requires=REQUIRED_PACKAGES,
    extras_require={"test": TEST_PACKAGES},
)
