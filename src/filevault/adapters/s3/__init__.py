"""S3 adapter – aiobotocore-backed object storage gateway."""
from filevault.adapters.s3.gateway import S3StorageGateway, is_retryable, strip_etag

__all__ = ["S3StorageGateway", "is_retryable", "strip_etag"]
