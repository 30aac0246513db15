import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from drive_api.config import settings
from drive_api.core.errors import BlobStoreError, NotFound
from drive_api.storage.base import BlobGateway, BlobStat, UploadTicket

log = logging.getLogger(__name__)


def _error_code(e: ClientError) -> str | None:
    return getattr(e, "response", {}).get("Error", {}).get("Code")


class S3Storage(BlobGateway):
    def __init__(self, client=None, bucket: str | None = None):
        self.bucket = bucket or settings.S3_BUCKET
        self.client = client or boto3.client(
            "s3",
            region_name = settings.S3_REGION,
            endpoint_url = settings.S3_ENDPOINT_URL,
            aws_access_key_id = settings.S3_ACCESS_KEY_ID,
            aws_secret_access_key = settings.S3_SECRET_ACCESS_KEY,
        )

    def presigned_put(self, *, key: str, expires_in: int = 900) -> str:
        params = {"Bucket": self.bucket, "Key": key}
        return self.client.generate_presigned_url("put_object", Params=params, ExpiresIn=expires_in)


    def presigned_get(self, *, key: str, expires_in: int = 60) -> str:
        params = {"Bucket": self.bucket, "Key": key}

        return self.client.generate_presigned_url("get_object", Params=params, ExpiresIn=expires_in)

    def begin_upload(self, *, owner_id: str, file_id: str, name: str) -> UploadTicket:
        key = self.storage_key_for(owner_id, file_id, name)
        expires_in = settings.UPLOAD_URL_TTL_SECONDS
        try:
            url = self.presigned_put(key=key, expires_in=expires_in)
        except (BotoCoreError, ClientError) as e:
            raise BlobStoreError(f"Failed to create upload URL: {e}") from e

        # the capability lives entirely in the presigned URL
        return UploadTicket(storage_key=key, url=url, token=None, expires_in=expires_in)

    def issue_download(self, *, key: str, expires_in: int) -> str:
        try:
            return self.presigned_get(key=key, expires_in=expires_in)
        except (BotoCoreError, ClientError) as e:
            raise BlobStoreError(f"Failed to create download URL: {e}") from e

    # get metadata
    def stat(self, *, key: str) -> BlobStat:
        try:
            head = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in ("404", "NoSuchKey", "NotFound"):
                raise NotFound("Object not found in storage") from e
            raise BlobStoreError(f"Failed to stat object: {e}") from e
        except BotoCoreError as e:
            raise BlobStoreError(f"Failed to stat object: {e}") from e

        return BlobStat(size=int(head.get("ContentLength", 0)), content_type=head.get("ContentType"))

    def purge(self, *, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in ("404", "NoSuchKey", "NotFound"):
                return
            raise BlobStoreError(f"Failed to delete object {key}: {e}") from e
        except BotoCoreError as e:
            raise BlobStoreError(f"Failed to delete object {key}: {e}") from e
        log.info(f"[storage] purged key={key}")
