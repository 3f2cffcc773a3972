"""
S3 Utilities: Client Init • Template Listing • Template Download
================================================================

Purpose
-------
Small helper module for reading drafting templates from Amazon S3:
- Initialize an S3 client with Signature V4
- List template objects under a ``{language}/`` prefix
- Download one template object

Configuration (from `lexease.database.config.config.settings`)
--------------------------------------------------------------
- AWS_ACCESS_KEY : Access key ID (falls back to the default credential chain when unset)
- AWS_SECRET_KEY : Secret access key
- REGION         : AWS region (e.g., "eu-central-1")
- BUCKET_NAME    : Bucket holding the templates

Bucket layout
-------------
    {language}/{Document_Type}.{txt|docx|pdf}
    e.g. English/Simple_Affidavit.txt
"""

import logging

import boto3
import botocore

from lexease.database.config.config import settings

logger = logging.getLogger(__name__)


def get_client():
    """
    Initialize and return a low-level S3 client configured for Signature V4.

    Uses:
        - settings.AWS_ACCESS_KEY
        - settings.AWS_SECRET_KEY
        - settings.REGION

    Returns:
        botocore.client.S3: An S3 client ready for object operations.

    Raises:
        botocore.exceptions.NoCredentialsError
        botocore.exceptions.PartialCredentialsError
    """
    credentials = {}
    if settings.AWS_ACCESS_KEY and settings.AWS_SECRET_KEY:
        credentials = {
            "aws_access_key_id": settings.AWS_ACCESS_KEY,
            "aws_secret_access_key": settings.AWS_SECRET_KEY,
        }
    return boto3.client(
        "s3",
        region_name=settings.REGION,
        config=botocore.config.Config(signature_version="s3v4"),
        **credentials,
    )


def list_template_keys(s3_client, language: str | None = None) -> list[str]:
    """
    List object keys of the templates bucket, optionally under one language folder.

    Args:
        s3_client (botocore.client.S3): Client returned by `get_client()`.
        language (str | None): Folder name, e.g. "English". None lists every folder.

    Returns:
        list[str]: Object keys, folder placeholders (keys ending in '/') excluded.
    """
    params = {"Bucket": settings.BUCKET_NAME}
    if language:
        params["Prefix"] = f"{language}/"

    keys = []
    while True:
        response = s3_client.list_objects_v2(**params)
        for obj in response.get("Contents", []):
            if not obj["Key"].endswith("/"):
                keys.append(obj["Key"])
        if not response.get("IsTruncated"):
            break
        params["ContinuationToken"] = response["NextContinuationToken"]
    logger.debug("Listed %d template objects under %r", len(keys), params.get("Prefix", ""))
    return keys


def download(key: str, s3_client) -> bytes:
    """
    Read one object's content.

    Args:
        key (str): Object key in the bucket.
        s3_client (botocore.client.S3): Client returned by `get_client()`.

    Returns:
        bytes: The object body.

    Notes:
        - Requires `s3:GetObject` permission.
    """
    response = s3_client.get_object(Bucket=settings.BUCKET_NAME, Key=key)
    return response["Body"].read()
