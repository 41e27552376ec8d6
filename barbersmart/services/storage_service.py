"""
Object storage on Cloudflare R2 (S3-compatible) for branding assets
"""

import logging
import uuid
from typing import Optional

import boto3
from botocore.config import Config
from fastapi import HTTPException, UploadFile

from ..config import R2_ACCESS_KEY_ID, R2_ACCOUNT_ID, R2_BUCKET_NAME, R2_PUBLIC_URL, R2_SECRET_ACCESS_KEY

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB

LOGO_IMAGE_TYPES = [
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/webp",
    "image/svg+xml",
]

FAVICON_IMAGE_TYPES = [
    "image/png",
    "image/x-icon",
    "image/vnd.microsoft.icon",
    "image/svg+xml",
]

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".svg", ".ico")
DANGEROUS_CHARS = ["..", "/", "\\", "<", ">", ":", '"', "|", "?", "*"]


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


def public_url(key: str) -> str:
    return f"{R2_PUBLIC_URL.rstrip('/')}/{key}"


def validate_image_filename(filename: Optional[str]) -> None:
    if not filename:
        return
    for char in DANGEROUS_CHARS:
        if char in filename:
            logger.warning(f"❌ Dangerous character '{char}' detected in filename: '{filename}'")
            raise HTTPException(status_code=400, detail="Nome de arquivo inválido")
    if not filename.lower().endswith(IMAGE_EXTENSIONS):
        raise HTTPException(status_code=400, detail="O arquivo deve ter uma extensão de imagem válida")
    if len(filename) > 255:
        raise HTTPException(status_code=400, detail="Nome de arquivo muito longo")


def put_public_object(key: str, body: bytes, content_type: str) -> str:
    """Upload bytes to the bucket and return the public URL"""
    params = {
        "Bucket": R2_BUCKET_NAME,
        "Key": key,
        "Body": body,
        "ContentType": content_type,
        "CacheControl": "public, max-age=31536000",
    }
    if content_type == "image/svg+xml":
        params["ContentDisposition"] = "inline"

    get_r2_client().put_object(**params)
    logger.info(f"✅ Uploaded to R2: {key}")
    return public_url(key)


async def upload_branding_image(file: UploadFile, prefix: str, allowed_types: list[str]) -> dict:
    """Validate an uploaded image and store it under branding/<prefix>/"""
    if file.content_type not in allowed_types:
        raise HTTPException(status_code=400, detail="Tipo de arquivo não permitido")
    validate_image_filename(file.filename)

    contents = await file.read()
    if len(contents) > MAX_IMAGE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"O arquivo excede o limite de 5MB ({len(contents) / (1024 * 1024):.2f}MB)",
        )

    ext = file.filename.rsplit(".", 1)[-1].lower() if file.filename and "." in file.filename else "png"
    key = f"branding/{prefix}/{uuid.uuid4()}.{ext}"
    try:
        url = put_public_object(key, contents, file.content_type)
    except Exception as e:
        logger.error(f"❌ Upload failed: {str(e)}")
        raise HTTPException(status_code=500, detail="Falha no upload da imagem")
    return {"url": url, "key": key}
