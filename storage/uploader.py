"""Publishing rendered pages to S3 behind CloudFront."""
import logging
import time
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from processor.errors import UploadError

logger = logging.getLogger(__name__)

HTML_KEY = 'index.html'
JSON_KEY = 'todays_events.json'


class S3Uploader:
    """Uploads the HTML page and JSON feed, then invalidates the CDN cache."""

    def __init__(
        self,
        bucket_name: str,
        distribution_id: Optional[str] = None,
        s3_client=None,
        cloudfront_client=None
    ):
        """
        Initialize S3 and CloudFront clients.

        Args:
            bucket_name: Destination bucket
            distribution_id: CloudFront distribution to invalidate (skipped if empty)
            s3_client: Optional preconfigured S3 client
            cloudfront_client: Optional preconfigured CloudFront client
        """
        self.bucket_name = bucket_name
        self.distribution_id = distribution_id
        self.s3 = s3_client or boto3.client('s3')
        self.cloudfront = cloudfront_client or boto3.client('cloudfront')

    def upload(self, html_contents: bytes, json_contents: bytes) -> None:
        """
        Upload both objects and invalidate their cached copies.

        Raises:
            UploadError: If any upload or the invalidation fails
        """
        self._put(HTML_KEY, html_contents, 'text/html')
        self._put(JSON_KEY, json_contents, 'application/json')

        if not self.distribution_id:
            logger.warning("No CloudFront distribution configured, skipping invalidation")
            return

        logger.info("Invalidating CloudFront cache", extra={'distribution_id': self.distribution_id})
        try:
            self.cloudfront.create_invalidation(
                DistributionId=self.distribution_id,
                InvalidationBatch={
                    'CallerReference': str(time.time()),
                    'Paths': {
                        'Quantity': 2,
                        'Items': [f"/{HTML_KEY}", f"/{JSON_KEY}"],
                    },
                }
            )
        except ClientError as e:
            raise UploadError(f"uploader: could not invalidate cache: {e}") from e

        logger.info("Upload done")

    def _put(self, key: str, contents: bytes, content_type: str) -> None:
        logger.info(
            "Uploading object",
            extra={'bucket': self.bucket_name, 'key': key, 'content_type': content_type}
        )
        try:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=contents,
                ContentType=content_type
            )
        except ClientError as e:
            raise UploadError(f"uploader: could not upload {key} to S3: {e}") from e
