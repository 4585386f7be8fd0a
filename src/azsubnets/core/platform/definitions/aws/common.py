# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
import time
from typing import Optional

import boto3
from botocore.exceptions import ClientError, WaiterError

from azsubnets.core.entity import CoreData

module_logger = logging.getLogger(__name__)


class AWSAccessPair(CoreData):
    def __init__(self, aws_access_key_id: str, aws_secret_access_key: str) -> None:
        self.aws_access_key_id = aws_access_key_id
        self.aws_secret_access_key = aws_secret_access_key

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(aws_access_key_id={self.aws_access_key_id!r}, aws_secret_access_key='***')"


def get_code_for_exception(error):
    if isinstance(error, ClientError) and "Code" in error.response["Error"]:
        return error.response["Error"]["Code"]
    elif isinstance(error, WaiterError) and "Error" in error.last_response:
        return error.last_response["Error"]["Code"]
    elif hasattr(error, "error_code"):
        return error.error_code

    return error.__class__.__name__


# common AWS service errors
AWS_COMMON_RETRYABLE_ERRORS = [
    "TooManyRequestsException",
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "Unavailable",
    "InternalFailure",
    "InternalError",
    "InternalServerError",
    "ServiceUnavailable",
    "ServiceUnavailableException",
    # botocore common retryable errors
    "ConnectTimeoutError",
    "ReadTimeoutError",
]


MAX_SLEEP_INTERVAL_PARAM = "_max_sleep_time_in_secs"
MAX_SLEEP_INTERVAL_DEFAULT = 64 + 1
# set to False to retry on the service specific errors only (e.g for calls that are not idempotent)
RETRY_COMMON_ERRORS_PARAM = "_retry_common_errors"


def exponential_retry(func, service_retryable_errors, *func_args, **func_kwargs):
    """
    Retries the specified function with a simple exponential backoff algorithm.
    :param func: The function to retry.
    :param service_retryable_errors: AWS service specific retryable error codes. These are added to an internal list
                                    of AWS common retryable errors to get a final list of retryable errors. Anything else
                                    is raised without a retry.
    :param func_args: The positional arguments to pass to the function.
    :param func_kwargs: The keyword arguments to pass to the function. MAX_SLEEP_INTERVAL_PARAM and
                        RETRY_COMMON_ERRORS_PARAM are consumed here and not passed on.
    :return: The return value of the retried function.
    """
    retryables = list(AWS_COMMON_RETRYABLE_ERRORS) if func_kwargs.pop(RETRY_COMMON_ERRORS_PARAM, True) else []
    retryables.extend(service_retryable_errors)
    sleepy_time = 1
    if MAX_SLEEP_INTERVAL_PARAM in func_kwargs:
        max_sleepy_time = func_kwargs.pop(MAX_SLEEP_INTERVAL_PARAM)
    else:
        max_sleepy_time = MAX_SLEEP_INTERVAL_DEFAULT
    while True:
        try:
            func_return = func(*func_args, **func_kwargs)
            module_logger.debug("Ran %s, got %s.", func.__name__ if hasattr(func, "__name__") else str(func), func_return)
            return func_return
        except Exception as error:
            error_code = get_code_for_exception(error)
            if error_code in retryables:
                module_logger.critical(f"Sleeping for {sleepy_time} to give AWS time to recover. Retryable error_code={error_code!r}")
                time.sleep(sleepy_time)
                sleepy_time = sleepy_time * 2
                if sleepy_time < max_sleepy_time:
                    continue
            raise


def get_session(aws_access_pair: Optional[AWSAccessPair] = None, region: Optional[str] = None) -> boto3.Session:
    """
    Wrapper around boto3.Session()

    Parameters
    aws_access_pair : AWSAccessPair, key_id and access_key to use instead of the system defaults
    region: string, AWS region

    Returns
    boto3.Session
    """

    if not aws_access_pair:
        # Use system defaults (~/.aws, env, instance profile, etc).
        module_logger.info("Creating boto3.Session with system defaults.")
        return boto3.Session(region_name=region)

    module_logger.warning("Creating boto3.Session with access key pair.")
    return boto3.Session(aws_access_pair.aws_access_key_id, aws_access_pair.aws_secret_access_key, None, region)
