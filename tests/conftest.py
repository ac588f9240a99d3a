"""Shared fixtures: an in-memory stand-in for the boto3 S3 client."""

import hashlib
import io
from datetime import datetime, timezone
from pathlib import Path

import pytest
from botocore.exceptions import ClientError
from rich.console import Console

from bucket_sync.config import AWSConfig, Config, S3Config


def client_error(code, operation="HeadObject", headers=None):
    response = {"Error": {"Code": code, "Message": code}}
    if headers:
        response["ResponseMetadata"] = {"HTTPHeaders": headers}
    return ClientError(error_response=response, operation_name=operation)


def s3_etag(data, multipart_threshold=None, chunksize=None):
    """ETag S3 would assign: plain MD5, or MD5 of part MD5s plus '-N'."""
    if multipart_threshold is None or len(data) < multipart_threshold:
        return f'"{hashlib.md5(data).hexdigest()}"'
    digests = [hashlib.md5(data[i:i + chunksize]).digest() for i in range(0, len(data), chunksize)]
    return f'"{hashlib.md5(b"".join(digests)).hexdigest()}-{len(digests)}"'


class FakeObject:
    def __init__(self, data, etag=None, tags=None):
        self.data = data
        self.etag = etag or s3_etag(data)
        self.tags = dict(tags or {})
        self.last_modified = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakePaginator:
    def __init__(self, client, page_size):
        self.client = client
        self.page_size = page_size

    def paginate(self, Bucket, Prefix=""):
        self.client._check_bucket(Bucket, "ListObjectsV2")
        keys = sorted(k for k in self.client.objects if k.startswith(Prefix))
        for start in range(0, max(len(keys), 1), self.page_size):
            page_keys = keys[start:start + self.page_size]
            yield {
                "Contents": [
                    {
                        "Key": key,
                        "Size": len(self.client.objects[key].data),
                        "ETag": self.client.objects[key].etag,
                        "LastModified": self.client.objects[key].last_modified,
                    }
                    for key in page_keys
                ]
            }


class FakeS3Client:
    """Implements the subset of the boto3 S3 client the sync engine calls."""

    def __init__(self, bucket="test-bucket", page_size=1000):
        self.bucket = bucket
        self.page_size = page_size
        self.objects = {}
        self.calls = []
        self.bucket_error = None
        self.upload_error = None
        self.download_error = None
        self.tagging_error = None
        self.interrupt_after = None
        self.failing_keys = set()

    def put(self, key, data, etag=None, tags=None):
        self.objects[key] = FakeObject(data, etag=etag, tags=tags)

    @property
    def write_calls(self):
        writes = {"upload_file", "put_object_tagging", "delete_object"}
        return [call for call in self.calls if call[0] in writes]

    def _check_bucket(self, bucket, operation):
        if self.bucket_error is not None:
            raise self.bucket_error
        if bucket != self.bucket:
            raise client_error("NoSuchBucket", operation)

    def _get(self, key, operation):
        if key not in self.objects:
            raise client_error("404", operation)
        return self.objects[key]

    def head_bucket(self, Bucket):
        self.calls.append(("head_bucket", Bucket))
        self._check_bucket(Bucket, "HeadBucket")
        return {}

    def head_object(self, Bucket, Key):
        self.calls.append(("head_object", Key))
        self._check_bucket(Bucket, "HeadObject")
        obj = self._get(Key, "HeadObject")
        return {"ContentLength": len(obj.data), "ETag": obj.etag, "LastModified": obj.last_modified}

    def get_paginator(self, name):
        assert name == "list_objects_v2"
        return FakePaginator(self, self.page_size)

    def get_object_tagging(self, Bucket, Key):
        self.calls.append(("get_object_tagging", Key))
        if self.tagging_error is not None:
            raise self.tagging_error
        obj = self._get(Key, "GetObjectTagging")
        return {"TagSet": [{"Key": k, "Value": v} for k, v in obj.tags.items()]}

    def put_object_tagging(self, Bucket, Key, Tagging):
        self.calls.append(("put_object_tagging", Key))
        if self.tagging_error is not None:
            raise self.tagging_error
        obj = self._get(Key, "PutObjectTagging")
        obj.tags = {tag["Key"]: tag["Value"] for tag in Tagging["TagSet"]}

    def upload_file(self, Filename, Bucket, Key, Callback=None, Config=None):
        self.calls.append(("upload_file", Key))
        self._check_bucket(Bucket, "PutObject")
        if self.upload_error is not None:
            raise self.upload_error
        if Key in self.failing_keys:
            raise client_error("InternalError", "PutObject")
        data = Path(Filename).read_bytes()
        self._feed(Callback, len(data))
        etag = s3_etag(data, Config.multipart_threshold, Config.multipart_chunksize)
        self.objects[Key] = FakeObject(data, etag=etag)

    def download_file(self, Bucket, Key, Filename, Callback=None):
        self.calls.append(("download_file", Key))
        self._check_bucket(Bucket, "GetObject")
        if self.download_error is not None:
            raise self.download_error
        obj = self._get(Key, "HeadObject")
        self._feed(Callback, len(obj.data))
        Path(Filename).write_bytes(obj.data)

    def delete_object(self, Bucket, Key):
        self.calls.append(("delete_object", Key))
        self._check_bucket(Bucket, "DeleteObject")
        self.objects.pop(Key, None)
        return {}

    def _feed(self, callback, size, step=256 * 1024):
        sent = 0
        while callback is not None and sent < size:
            if self.interrupt_after is not None and sent >= self.interrupt_after:
                raise KeyboardInterrupt
            amount = min(step, size - sent)
            callback(amount)
            sent += amount
        if callback is not None and size == 0:
            callback(0)


class ScriptedConfirm:
    """Confirm capability answering from a fixed script and recording prompts."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        return self.answers.pop(0)


@pytest.fixture
def config():
    return Config(
        aws=AWSConfig(profile="test-profile", region="us-east-1"),
        s3=S3Config(bucket_name="test-bucket"),
    )


@pytest.fixture
def fake_s3():
    return FakeS3Client()


@pytest.fixture
def console_output():
    return io.StringIO()


@pytest.fixture
def make_engine(config, fake_s3, tmp_path, console_output):
    """Factory for a BucketSync wired to the fake client and tmp_path."""
    from bucket_sync.smart_sync.sync_engine import BucketSync

    def _make(confirm=None, select=True, **kwargs):
        engine = BucketSync(
            config,
            console=Console(file=console_output, width=200),
            confirm=confirm,
            base_dir=tmp_path,
            **kwargs,
        )
        engine._s3_client = fake_s3
        if select:
            engine.select_bucket()
        return engine

    return _make
