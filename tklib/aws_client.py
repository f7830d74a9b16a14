"""
tklib.aws_client: boto3 client factory and the typed toolkit client.

ToolkitClient exposes one method per remote operation the toolkit performs
(caller identity, S3 bucket/object operations, EC2 instance lifecycle). Each
call blocks until the SDK returns and either yields a structured result or
raises AwsOperationError; nothing is retried beyond botocore's own policy and
nothing fetched from AWS is cached.

Imports from tklib.config. Zero dependency on utils.py.
"""

import logging
from collections import namedtuple
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, TypeVar

import boto3
from boto3.exceptions import S3TransferFailedError, S3UploadFailedError
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from tklib.config import config_value
from tklib.errors import AwsOperationError, CredentialsError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

CallerIdentity = namedtuple("CallerIdentity", ["account", "arn", "user_id"])
BucketSummary = namedtuple("BucketSummary", ["name", "creation_date"])
ObjectSummary = namedtuple("ObjectSummary", ["key", "size", "last_modified"])
InstanceSummary = namedtuple("InstanceSummary", ["instance_id", "state", "instance_type", "name"])

# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

CREDENTIAL_ERROR_CODES = {
    "AuthFailure",
    "ExpiredToken",
    "ExpiredTokenException",
    "InvalidAccessKeyId",
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
    "UnrecognizedClientException",
}

NOT_FOUND_CODES = {"404", "NoSuchBucket", "NotFound", "403", "AccessDenied", "Forbidden"}


def translate_error(operation: str, error: Exception) -> AwsOperationError:
    """
    Convert an SDK / transfer exception into an AwsOperationError.

    Args:
        operation: Operation name for the message
        error: Original exception

    Returns:
        AwsOperationError (or CredentialsError)
    """
    if isinstance(error, AwsOperationError):
        return error
    if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
        return CredentialsError(operation, type(error).__name__, str(error))
    if isinstance(error, ClientError):
        err = error.response.get("Error", {})
        code = str(err.get("Code", "Unknown"))
        message = err.get("Message") or str(error)
        if code in CREDENTIAL_ERROR_CODES:
            return CredentialsError(operation, code, message)
        return AwsOperationError(operation, code, message)
    return AwsOperationError(operation, type(error).__name__, str(error))


T = TypeVar("T")

_TRANSLATED = (
    ClientError,
    BotoCoreError,
    S3UploadFailedError,
    S3TransferFailedError,
    OSError,
)


def aws_call(operation: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator translating SDK exceptions raised by a client method."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            logger.debug("AWS API: %s", operation)
            try:
                return func(*args, **kwargs)
            except _TRANSLATED as e:
                translated = translate_error(operation, e)
                logger.debug("AWS API failed: %s", translated)
                raise translated from e

        return wrapper

    return decorator


# ---------------------------------------------------------------------------
# Partition detection
# ---------------------------------------------------------------------------


def detect_partition(region_name: Optional[str] = None) -> str:
    """
    Detect AWS partition from a region name.

    Args:
        region_name: Optional region to check

    Returns:
        str: 'aws' or 'aws-us-gov'
    """
    if region_name and region_name.startswith("us-gov-"):
        return "aws-us-gov"
    return "aws"


# ---------------------------------------------------------------------------
# Session and client factory
# ---------------------------------------------------------------------------


def get_aws_session(region_name: Optional[str] = None, profile_name: Optional[str] = None):
    """
    Create a boto3 session for the specified region and profile.

    Args:
        region_name: AWS region (None = default from the AWS config chain)
        profile_name: Named profile (None = default credential chain)

    Returns:
        boto3.Session: Configured session
    """
    return boto3.Session(region_name=region_name, profile_name=profile_name)


def get_boto3_client(service: str, region_name: Optional[str] = None, session=None, **kwargs):
    """
    Create boto3 client with standard configuration including retries.

    Automatically injects ``use_fips_endpoint=True`` for GovCloud regions
    (``us-gov-west-1``, ``us-gov-east-1``).

    Args:
        service: AWS service name (e.g., 'ec2', 'sts', 's3')
        region_name: AWS region name (optional)
        session: boto3 session to use (optional, a new one is created otherwise)
        **kwargs: Additional arguments to pass to client creation

    Returns:
        boto3.client: Configured boto3 client with retry logic
    """
    sdk_config = config_value("aws_sdk_config", default={}) or {}

    retry_config = sdk_config.get("retries", {"max_attempts": 5, "mode": "standard"})
    connect_timeout = sdk_config.get("connect_timeout", 10)
    read_timeout = sdk_config.get("read_timeout", 60)

    config = Config(
        retries=retry_config,
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
    )

    if session is None:
        session = get_aws_session(region_name)
    region_name = region_name or session.region_name

    # FIPS injection: GovCloud requires FIPS endpoints
    if detect_partition(region_name) == "aws-us-gov" and "use_fips_endpoint" not in kwargs:
        kwargs["use_fips_endpoint"] = True

    if region_name:
        kwargs.setdefault("region_name", region_name)

    return session.client(service, config=config, **kwargs)


# ---------------------------------------------------------------------------
# Toolkit client
# ---------------------------------------------------------------------------


class ToolkitClient:
    """
    Typed wrapper over the S3, EC2 and STS APIs used by the toolkit.

    Args:
        region: Region override (None = AWS config chain)
        profile: Named profile (None = default credential chain)
        session: Pre-built boto3 session (tests)
    """

    def __init__(self, region: Optional[str] = None, profile: Optional[str] = None, session=None):
        self._session = session or get_aws_session(region, profile)
        self._region = region
        self._clients: Dict[str, Any] = {}

    @property
    def region(self) -> Optional[str]:
        return self._region or self._session.region_name

    def _client(self, service: str):
        if service not in self._clients:
            self._clients[service] = get_boto3_client(service, self.region, session=self._session)
        return self._clients[service]

    # -- STS -----------------------------------------------------------------

    @aws_call("sts.get_caller_identity")
    def get_caller_identity(self) -> CallerIdentity:
        response = self._client("sts").get_caller_identity()
        return CallerIdentity(
            account=response.get("Account", ""),
            arn=response.get("Arn", ""),
            user_id=response.get("UserId", ""),
        )

    # -- S3 ------------------------------------------------------------------

    @aws_call("s3.list_buckets")
    def list_buckets(self) -> List[BucketSummary]:
        response = self._client("s3").list_buckets()
        return [
            BucketSummary(b["Name"], b.get("CreationDate"))
            for b in response.get("Buckets", [])
        ]

    @aws_call("s3.head_bucket")
    def bucket_exists(self, bucket: str) -> bool:
        """
        Check whether a bucket exists and is accessible.

        Missing and forbidden buckets both return False; credential failures
        are raised.
        """
        if not bucket:
            return False
        try:
            self._client("s3").head_bucket(Bucket=bucket)
            return True
        except ClientError as e:
            translated = translate_error("s3.head_bucket", e)
            if isinstance(translated, CredentialsError):
                raise
            if translated.code not in NOT_FOUND_CODES:
                logger.debug("head_bucket %s failed: %s", bucket, translated)
            return False

    @aws_call("s3.list_objects_v2")
    def list_objects(self, bucket: str, limit: Optional[int] = None) -> List[ObjectSummary]:
        paginator = self._client("s3").get_paginator("list_objects_v2")
        pagination = {"MaxItems": limit} if limit else {}
        objects = []
        for page in paginator.paginate(Bucket=bucket, PaginationConfig=pagination):
            for obj in page.get("Contents", []):
                objects.append(ObjectSummary(obj["Key"], obj.get("Size", 0), obj.get("LastModified")))
                if limit and len(objects) >= limit:
                    return objects
        return objects

    @aws_call("s3.upload_file")
    def upload_file(self, local_path: str, bucket: str, key: str) -> None:
        self._client("s3").upload_file(str(local_path), bucket, key)

    @aws_call("s3.download_file")
    def download_file(self, bucket: str, key: str, local_path: str) -> None:
        self._client("s3").download_file(bucket, key, str(local_path))

    @aws_call("s3.create_bucket")
    def create_bucket(self, bucket: str) -> None:
        kwargs: Dict[str, Any] = {"Bucket": bucket}
        region = self.region
        # us-east-1 rejects an explicit LocationConstraint
        if region and region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
        self._client("s3").create_bucket(**kwargs)

    @aws_call("s3.put_object")
    def put_text_object(self, bucket: str, key: str, text: str) -> None:
        self._client("s3").put_object(Bucket=bucket, Key=key, Body=text.encode("utf-8"))

    @aws_call("s3.delete_bucket")
    def delete_bucket(self, bucket: str, force: bool = False) -> int:
        """
        Delete a bucket, optionally emptying it first.

        Args:
            bucket: Bucket name
            force: Delete every object version, delete marker and object first

        Returns:
            int: Number of object entries deleted
        """
        s3 = self._client("s3")
        deleted = 0
        if force:
            versions = s3.get_paginator("list_object_versions")
            for page in versions.paginate(Bucket=bucket):
                entries = [
                    {"Key": v["Key"], "VersionId": v["VersionId"]}
                    for v in page.get("Versions", []) + page.get("DeleteMarkers", [])
                ]
                deleted += self._delete_batch(bucket, entries)

            objects = s3.get_paginator("list_objects_v2")
            for page in objects.paginate(Bucket=bucket):
                entries = [{"Key": o["Key"]} for o in page.get("Contents", [])]
                deleted += self._delete_batch(bucket, entries)

        s3.delete_bucket(Bucket=bucket)
        return deleted

    def _delete_batch(self, bucket: str, entries: List[Dict[str, str]]) -> int:
        # delete_objects accepts at most 1000 keys per request
        for i in range(0, len(entries), 1000):
            self._client("s3").delete_objects(
                Bucket=bucket, Delete={"Objects": entries[i:i + 1000], "Quiet": True}
            )
        return len(entries)

    # -- EC2 -----------------------------------------------------------------

    @aws_call("ec2.describe_instances")
    def describe_instances(self) -> List[InstanceSummary]:
        paginator = self._client("ec2").get_paginator("describe_instances")
        instances = []
        for page in paginator.paginate():
            for reservation in page.get("Reservations", []):
                for inst in reservation.get("Instances", []):
                    instances.append(_instance_summary(inst))
        return instances

    @aws_call("ec2.describe_instances")
    def get_instance_state(self, instance_id: str) -> str:
        response = self._client("ec2").describe_instances(InstanceIds=[instance_id])
        for reservation in response.get("Reservations", []):
            for inst in reservation.get("Instances", []):
                return inst["State"]["Name"]
        raise AwsOperationError(
            "ec2.describe_instances",
            "InvalidInstanceID.NotFound",
            f"The instance ID '{instance_id}' does not exist",
        )

    @aws_call("ec2.start_instances")
    def start_instance(self, instance_id: str) -> None:
        self._client("ec2").start_instances(InstanceIds=[instance_id])

    @aws_call("ec2.stop_instances")
    def stop_instance(self, instance_id: str) -> None:
        self._client("ec2").stop_instances(InstanceIds=[instance_id])

    @aws_call("ec2.reboot_instances")
    def reboot_instance(self, instance_id: str) -> None:
        self._client("ec2").reboot_instances(InstanceIds=[instance_id])


def _instance_summary(inst: Dict[str, Any]) -> InstanceSummary:
    tags = {t["Key"]: t["Value"] for t in inst.get("Tags", []) or []}
    return InstanceSummary(
        instance_id=inst["InstanceId"],
        state=inst.get("State", {}).get("Name", "unknown"),
        instance_type=inst.get("InstanceType", ""),
        name=tags.get("Name", ""),
    )


@aws_call("boto3.Session")
def build_client(region: Optional[str] = None, profile: Optional[str] = None) -> ToolkitClient:
    """
    Build a ToolkitClient from explicit values, falling back to configuration.

    Args:
        region: Region override
        profile: Profile override

    Returns:
        ToolkitClient

    Raises:
        AwsOperationError: The named profile does not exist
    """
    region = region or config_value("region")
    profile = profile or config_value("profile")
    return ToolkitClient(region=region, profile=profile)
