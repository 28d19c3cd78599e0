import boto3
from botocore.exceptions import ClientError
from fastapi import HTTPException
from supabase import Client
from planforge.config import settings
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class S3Storage:
    def __init__(self):
        if not settings.s3_configured:
            raise ValueError("AWS S3 credentials and bucket name must be configured")

        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name

    def upload_file(self, file_content: bytes, key: str, content_type: str) -> str:
        """Upload file to S3 and return the s3:// URL"""
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=file_content,
                ContentType=content_type
            )
            return f"s3://{self.bucket_name}/{key}"
        except ClientError as e:
            logger.error(f"Failed to upload document to S3: {str(e)}")
            raise

    def delete_file(self, key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            logger.error(f"Failed to delete document from S3: {str(e)}")
            return False


class DocumentStorage:
    """Stores uploaded documents in S3 when configured, otherwise in a Supabase Storage bucket."""

    def __init__(self, supabase: Client, s3_storage: Optional[S3Storage] = None):
        self.supabase = supabase
        self.bucket = settings.storage_bucket
        self.s3_storage = s3_storage
        if self.s3_storage is None and settings.s3_configured:
            try:
                self.s3_storage = S3Storage()
            except Exception as e:
                logger.warning(f"S3 storage initialization failed ({str(e)}), will use Supabase Storage")

    def upload(self, file_content: bytes, key: str, content_type: str) -> str:
        if self.s3_storage:
            try:
                return self.s3_storage.upload_file(file_content, key, content_type)
            except Exception as e:
                raise HTTPException(status_code=500, detail=f"Failed to upload to S3: {str(e)}")
        try:
            self.supabase.storage.from_(self.bucket).upload(
                key,
                file_content,
                file_options={"content-type": content_type}
            )
            return key
        except Exception as e:
            logger.error(f"Supabase Storage upload failed: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to upload to storage: {str(e)}")

    def delete(self, path: str) -> bool:
        if not path:
            return False
        if path.startswith("s3://"):
            if not self.s3_storage:
                logger.warning(f"Cannot delete {path}: S3 is not configured")
                return False
            key = path.replace(f"s3://{self.s3_storage.bucket_name}/", "", 1)
            return self.s3_storage.delete_file(key)
        try:
            self.supabase.storage.from_(self.bucket).remove([path])
            return True
        except Exception as e:
            logger.warning(f"Failed to delete {path} from Supabase Storage: {e}")
            return False

    def public_url(self, path: str) -> str:
        if path.startswith("s3://"):
            return path
        return self.supabase.storage.from_(self.bucket).get_public_url(path)
