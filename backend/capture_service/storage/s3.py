from __future__ import annotations

from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from capture_service.capture.errors import StoreError
from capture_service.core.config import Settings
from capture_service.storage.base import validate_key


def get_s3_client(settings: Settings):
    session = boto3.session.Session()
    return session.client(
        "s3",
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        region_name=settings.s3_region,
    )


class S3ArtifactStore:
    def __init__(
        self,
        client,
        bucket: str,
        prefix: str = "captures",
        public_base_url: str | None = None,
        presign_expires: int = 3600,
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.presign_expires = presign_expires
        self._bucket_ready = False

    @classmethod
    def from_settings(cls, settings: Settings) -> S3ArtifactStore:
        return cls(
            get_s3_client(settings),
            settings.s3_bucket,
            prefix=settings.storage_prefix,
            public_base_url=settings.s3_public_base_url,
            presign_expires=settings.s3_presign_expires,
        )

    def object_key(self, key: str) -> str:
        key = validate_key(key)
        return f"{self.prefix}/{key}" if self.prefix else key

    def ensure_bucket(self) -> None:
        if self._bucket_ready:
            return
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError:
            self.client.create_bucket(Bucket=self.bucket)
        self._bucket_ready = True

    def save(self, data: bytes, key: str, content_type: str) -> str:
        object_key = self.object_key(key)
        try:
            self.ensure_bucket()
            self.client.put_object(Bucket=self.bucket, Key=object_key, Body=data, ContentType=content_type)
            url = self.url_for(object_key)
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(key, f"Upload to s3://{self.bucket}/{object_key} failed: {exc}") from exc
        logger.info("Uploaded file: s3://{}/{}", self.bucket, object_key)
        return url

    def url_for(self, object_key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{self.bucket}/{quote(object_key)}"
        return self.client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": object_key},
            ExpiresIn=self.presign_expires,
        )
