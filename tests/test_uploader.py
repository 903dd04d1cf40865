"""Unit tests for the S3/CloudFront uploader."""
from unittest.mock import Mock

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from processor.errors import UploadError
from storage.uploader import HTML_KEY, JSON_KEY, S3Uploader

BUCKET_NAME = 'seattle-sports-today-site'


@pytest.fixture
def s3_client():
    with mock_aws():
        client = boto3.client('s3', region_name='us-west-2')
        client.create_bucket(
            Bucket=BUCKET_NAME,
            CreateBucketConfiguration={'LocationConstraint': 'us-west-2'}
        )
        yield client


class TestS3Uploader:
    """Test cases for S3Uploader."""

    def test_upload_and_invalidate(self, s3_client):
        """Test both objects are written and both paths invalidated."""
        cloudfront = Mock()
        uploader = S3Uploader(BUCKET_NAME, 'E1234567890', s3_client=s3_client, cloudfront_client=cloudfront)

        uploader.upload(b'<html></html>', b'{"events": []}')

        html_object = s3_client.get_object(Bucket=BUCKET_NAME, Key=HTML_KEY)
        json_object = s3_client.get_object(Bucket=BUCKET_NAME, Key=JSON_KEY)
        assert html_object['Body'].read() == b'<html></html>'
        assert html_object['ContentType'] == 'text/html'
        assert json_object['Body'].read() == b'{"events": []}'
        assert json_object['ContentType'] == 'application/json'

        cloudfront.create_invalidation.assert_called_once()
        kwargs = cloudfront.create_invalidation.call_args.kwargs
        assert kwargs['DistributionId'] == 'E1234567890'
        assert kwargs['InvalidationBatch']['Paths'] == {
            'Quantity': 2,
            'Items': ['/index.html', '/todays_events.json'],
        }

    def test_no_distribution_skips_invalidation(self, s3_client):
        """Test uploads still happen without a distribution."""
        cloudfront = Mock()
        uploader = S3Uploader(BUCKET_NAME, None, s3_client=s3_client, cloudfront_client=cloudfront)

        uploader.upload(b'<html></html>', b'{}')

        assert s3_client.get_object(Bucket=BUCKET_NAME, Key=HTML_KEY)['Body'].read() == b'<html></html>'
        cloudfront.create_invalidation.assert_not_called()

    def test_missing_bucket(self, s3_client):
        """Test S3 failures raise UploadError."""
        uploader = S3Uploader('no-such-bucket', 'E1', s3_client=s3_client, cloudfront_client=Mock())

        with pytest.raises(UploadError, match='could not upload index.html'):
            uploader.upload(b'<html></html>', b'{}')

    def test_invalidation_failure(self, s3_client):
        """Test CloudFront failures raise UploadError."""
        cloudfront = Mock()
        cloudfront.create_invalidation.side_effect = ClientError(
            {'Error': {'Code': 'NoSuchDistribution', 'Message': 'not found'}},
            'CreateInvalidation'
        )
        uploader = S3Uploader(BUCKET_NAME, 'E1', s3_client=s3_client, cloudfront_client=cloudfront)

        with pytest.raises(UploadError, match='could not invalidate cache'):
            uploader.upload(b'<html></html>', b'{}')
