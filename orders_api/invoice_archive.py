"""S3 archive of order invoices."""

from functools import lru_cache
from typing import Optional, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from orders_api.deadline import Deadline
from orders_api.errors import ArchiveUnavailable
from orders_api.order_store import BOTO_CONFIG


@lru_cache(maxsize=1)
def _get_s3_client():
    """Get or initialise the S3 client (cached)."""
    return boto3.client("s3", config=BOTO_CONFIG)


class InvoiceArchive:
    """Write-only blob store for invoices, keyed by order id."""

    def __init__(
        self,
        bucket_name: str,
        s3_client=None,
        deadline: Optional[Deadline] = None,
    ):
        self.bucket_name = bucket_name
        self._s3_client = s3_client
        self._deadline = deadline

    @property
    def s3_client(self):
        return self._s3_client or _get_s3_client()

    def put(self, key: str, content: Union[str, bytes]) -> None:
        if self._deadline is not None and self._deadline.expired():
            raise ArchiveUnavailable(f"request deadline exceeded before writing {key}")

        body = content.encode("utf-8") if isinstance(content, str) else content
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=body,
                ContentType="text/plain",
            )
        except (ClientError, BotoCoreError) as e:
            raise ArchiveUnavailable(f"PutObject {key} failed: {e}") from e
