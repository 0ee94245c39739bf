import logging
import uuid

import boto3
from botocore.config import Config
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_role
from ..config import (
    PROFILE_IMAGES_BUCKET,
    STORAGE_ACCESS_KEY_ID,
    STORAGE_ENDPOINT_URL,
    STORAGE_PUBLIC_URL,
    STORAGE_REGION,
    STORAGE_SECRET_ACCESS_KEY,
    VERIFICATION_DOCUMENTS_BUCKET,
)
from ..database import get_db
from ..models import Profile
from ..shared.validators import validate_safe_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["Upload"])

MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB
MAX_DOCUMENT_SIZE = 10 * 1024 * 1024  # 10MB

ALLOWED_IMAGE_TYPES = ["image/png", "image/jpeg", "image/jpg", "image/webp", "image/gif"]
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif")

ALLOWED_DOCUMENT_TYPES = ["application/pdf", "image/png", "image/jpeg", "image/jpg"]
DOCUMENT_EXTENSIONS = (".pdf", ".png", ".jpg", ".jpeg")


def get_storage_client():
    """Create and return an S3-compatible storage client."""
    return boto3.client(
        "s3",
        endpoint_url=STORAGE_ENDPOINT_URL,
        aws_access_key_id=STORAGE_ACCESS_KEY_ID,
        aws_secret_access_key=STORAGE_SECRET_ACCESS_KEY,
        region_name=STORAGE_REGION,
        config=Config(signature_version="s3v4"),
    )


def public_url(bucket: str, key: str) -> str:
    """Public URL of an object: <STORAGE_PUBLIC_URL>/<bucket>/<key>"""
    return f"{STORAGE_PUBLIC_URL}/{bucket}/{key}"


def _check_filename(filename: str, allowed_extensions: tuple) -> str:
    try:
        return validate_safe_filename(filename, allowed_extensions)
    except ValueError as e:
        logger.warning(f"❌ Rejected filename '{filename}': {e}")
        raise HTTPException(status_code=400, detail=str(e))


async def _read_limited(file: UploadFile, max_size: int) -> bytes:
    contents = await file.read()
    if len(contents) > max_size:
        limit_mb = max_size // (1024 * 1024)
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds {limit_mb}MB limit. Your file is {len(contents) / (1024 * 1024):.2f}MB.",
        )
    return contents


@router.post("/profile-image")
async def upload_profile_image(
    file: UploadFile = File(...),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Upload a profile picture to the profile-images bucket and store its public URL."""
    logger.info(f"📤 Uploading profile image for user {current_user.id}")

    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PNG, JPEG, WebP and GIF images are allowed.",
        )
    filename = _check_filename(file.filename, IMAGE_EXTENSIONS)
    contents = await _read_limited(file, MAX_IMAGE_SIZE)

    ext = filename.rsplit(".", 1)[-1].lower()
    key = f"{current_user.id}/{uuid.uuid4()}.{ext}"

    try:
        storage = get_storage_client()
        storage.put_object(
            Bucket=PROFILE_IMAGES_BUCKET,
            Key=key,
            Body=contents,
            ContentType=file.content_type,
            CacheControl="public, max-age=31536000",
        )
    except Exception as e:
        logger.error(f"❌ Profile image upload failed for {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Upload failed. Please try again.")

    url = public_url(PROFILE_IMAGES_BUCKET, key)
    current_user.profile_image_url = url
    db.commit()

    logger.info(f"✅ Profile image stored at {key}")
    return {"url": url, "key": key}


@router.post("/documents", status_code=201)
async def upload_verification_document(
    file: UploadFile = File(...),
    current_user: Profile = Depends(require_role("therapist")),
):
    """Upload a license or certificate to the verification-documents bucket."""
    if file.content_type not in ALLOWED_DOCUMENT_TYPES:
        raise HTTPException(
            status_code=400, detail="Invalid file type. Only PDF, PNG and JPEG files are allowed."
        )
    filename = _check_filename(file.filename, DOCUMENT_EXTENSIONS)
    contents = await _read_limited(file, MAX_DOCUMENT_SIZE)

    key = f"{current_user.id}/{filename}"
    try:
        storage = get_storage_client()
        storage.put_object(
            Bucket=VERIFICATION_DOCUMENTS_BUCKET,
            Key=key,
            Body=contents,
            ContentType=file.content_type,
        )
    except Exception as e:
        logger.error(f"❌ Document upload failed for {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Upload failed. Please try again.")

    logger.info(f"📄 Verification document stored at {key}")
    return {"name": filename, "key": key, "url": public_url(VERIFICATION_DOCUMENTS_BUCKET, key)}


@router.get("/documents")
async def list_verification_documents(
    current_user: Profile = Depends(require_role("therapist")),
):
    """List the therapist's uploaded verification documents."""
    prefix = f"{current_user.id}/"
    try:
        storage = get_storage_client()
        response = storage.list_objects_v2(Bucket=VERIFICATION_DOCUMENTS_BUCKET, Prefix=prefix)
    except Exception as e:
        logger.error(f"❌ Failed to list documents for {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Could not load documents")

    documents = []
    for obj in response.get("Contents", []):
        key = obj["Key"]
        documents.append(
            {
                "name": key[len(prefix):],
                "key": key,
                "size": obj.get("Size", 0),
                "last_modified": obj.get("LastModified"),
                "url": public_url(VERIFICATION_DOCUMENTS_BUCKET, key),
            }
        )
    return documents


@router.get("/documents/{filename}/url")
async def get_document_url(
    filename: str,
    current_user: Profile = Depends(require_role("therapist")),
):
    filename = _check_filename(filename, DOCUMENT_EXTENSIONS)
    key = f"{current_user.id}/{filename}"
    return {"url": public_url(VERIFICATION_DOCUMENTS_BUCKET, key)}
