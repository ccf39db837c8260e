from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional
import json
import logging

from botocore.exceptions import BotoCoreError, ClientError

from coloring_app.exceptions import ImageNotFoundException, StorageException, ValidationFailedException
from coloring_app.gallery.models import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    BulkDeleteResult,
    GalleryImage,
    GalleryPage,
    GalleryRecord,
    NewGalleryImage,
)
from coloring_app.image_data import EXTENSIONS, decode_data_uri, is_data_uri
from coloring_app.settings import settings
from coloring_app.storage.dynamodb import DynamoDBService
from coloring_app.storage.s3 import S3Service

log = logging.getLogger(__name__)


class GalleryStore(ABC):
    """Per-user gallery persistence. Every operation is scoped to owner_id."""

    @abstractmethod
    def save(self, owner_id: str, image: NewGalleryImage) -> str:
        """Persists the image and returns its new id."""

    @abstractmethod
    def list(self, owner_id: str, limit: int = DEFAULT_PAGE_SIZE, next_token: Optional[str] = None) -> GalleryPage:
        """Newest first."""

    @abstractmethod
    def delete_one(self, owner_id: str, image_id: str) -> None:
        """Raises ImageNotFoundException if absent or owned by someone else."""

    def delete_bulk(self, owner_id: str, image_ids: Iterable[str]) -> BulkDeleteResult:
        """Deletes sequentially; missing or foreign ids are skipped."""
        result = BulkDeleteResult()
        seen = set()
        for image_id in image_ids:
            if image_id in seen:
                continue
            seen.add(image_id)
            try:
                self.delete_one(owner_id, image_id)
                result.deleted_ids.append(image_id)
            except ImageNotFoundException:
                result.skipped_ids.append(image_id)
            except StorageException as e:
                log.warning("Bulk delete of %s failed: %s", image_id, e.detail)
                result.skipped_ids.append(image_id)
        log.info(
            "Bulk delete for %s: %d deleted, %d skipped",
            owner_id, result.deleted_count, len(result.skipped_ids),
        )
        return result


NEXT_TOKEN_KEYS = {"image_id", "owner_user_id", "created_at"}


def encode_next_token(last_evaluated_key: Optional[Dict[str, str]]) -> Optional[str]:
    return json.dumps(last_evaluated_key) if last_evaluated_key else None


def decode_next_token(next_token: Optional[str], owner_id: str) -> Optional[Dict[str, str]]:
    if not next_token:
        return None
    try:
        key = json.loads(next_token)
    except json.JSONDecodeError:
        raise ValidationFailedException("Invalid nextToken", field="nextToken")
    if (
        not isinstance(key, dict)
        or set(key) != NEXT_TOKEN_KEYS
        or not all(isinstance(v, str) for v in key.values())
        or key["owner_user_id"] != owner_id
    ):
        raise ValidationFailedException("Invalid nextToken", field="nextToken")
    return key


class DynamoGalleryStore(GalleryStore):
    """Records in DynamoDB, oversized data URIs offloaded to S3."""

    def __init__(self, db: DynamoDBService, s3: S3Service, inline_max_bytes: Optional[int] = None):
        self.db = db
        self.s3 = s3
        self.inline_max_bytes = inline_max_bytes if inline_max_bytes is not None else settings.inline_image_max_bytes

    def save(self, owner_id: str, image: NewGalleryImage) -> str:
        record = GalleryRecord(
            owner_user_id=owner_id,
            image_url=image.image_url,
            prompt=image.prompt,
            refined_prompt=image.refined_prompt,
            metadata=image.metadata,
            created_at=datetime.now(timezone.utc),
        )

        if is_data_uri(image.image_url) and len(image.image_url) > self.inline_max_bytes:
            content_type, data = decode_data_uri(image.image_url)
            ext = EXTENSIONS.get(content_type, "png")
            record.s3_key = f"{owner_id}/{record.created_at.strftime('%Y%m%d')}/{record.image_id}.{ext}"
            record.content_type = content_type
            record.image_url = None
            try:
                self.s3.put_bytes(data, key=record.s3_key, content_type=content_type)
            except (BotoCoreError, ClientError) as e:
                log.error(f"S3 upload failed: {e}")
                raise StorageException(f"Failed to store image: {e}")

        item = record.model_dump()
        # Dynamo needs created_at as ISO string
        item["created_at"] = item["created_at"].isoformat()
        try:
            self.db.put_item(item)
        except (BotoCoreError, ClientError) as e:
            log.error(f"DynamoDB put_item failed: {e}")
            if record.s3_key:
                try:
                    self.s3.delete(record.s3_key)
                except (BotoCoreError, ClientError) as cleanup_error:
                    log.warning(f"S3 delete of {record.s3_key} failed: {cleanup_error}")
            raise StorageException(f"Failed to save gallery image: {e}")

        log.info("Saved gallery image %s for %s", record.image_id, owner_id)
        return record.image_id

    def list(self, owner_id: str, limit: int = DEFAULT_PAGE_SIZE, next_token: Optional[str] = None) -> GalleryPage:
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationFailedException(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
        start_key = decode_next_token(next_token, owner_id)

        try:
            resp = self.db.query_owner(owner_id, limit=limit, exclusive_start_key=start_key)
            total = self.db.count_owner(owner_id)
        except (BotoCoreError, ClientError) as e:
            log.error(f"DynamoDB gallery query failed: {e}")
            raise StorageException(f"Failed to fetch gallery: {e}")

        images = [self._to_image(GalleryRecord(**item)) for item in resp["Items"]]
        return GalleryPage(
            images=images,
            total=total,
            next_token=encode_next_token(resp.get("LastEvaluatedKey")),
        )

    def delete_one(self, owner_id: str, image_id: str) -> None:
        try:
            item = self.db.get_item(image_id)
        except (BotoCoreError, ClientError) as e:
            log.error(f"DynamoDB get_item failed: {e}")
            raise StorageException(f"Failed to get gallery image: {e}")
        if not item or item.get("owner_user_id") != owner_id:
            raise ImageNotFoundException(image_id)

        try:
            self.db.delete_owned_item(image_id, owner_id)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ImageNotFoundException(image_id)
            log.error(f"DynamoDB delete_item failed: {e}")
            raise StorageException(f"Failed to delete gallery image: {e}")
        except BotoCoreError as e:
            log.error(f"DynamoDB delete_item failed: {e}")
            raise StorageException(f"Failed to delete gallery image: {e}")

        s3_key = item.get("s3_key")
        if s3_key:
            try:
                self.s3.delete(s3_key)
            except (BotoCoreError, ClientError) as e:
                # record already removed, leave the orphaned object
                log.warning(f"S3 delete of {s3_key} failed: {e}")
        log.info("Deleted gallery image %s for %s", image_id, owner_id)

    def _to_image(self, record: GalleryRecord) -> GalleryImage:
        image_url = record.image_url
        if record.s3_key:
            image_url = self.s3.presigned_image_url(record.s3_key)
        return GalleryImage(
            id=record.image_id,
            owner_user_id=record.owner_user_id,
            image_url=image_url or "",
            prompt=record.prompt,
            refined_prompt=record.refined_prompt,
            metadata=record.metadata,
            created_at=record.created_at,
        )

