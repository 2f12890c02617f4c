import logging
import mimetypes

from fastapi import APIRouter, HTTPException, Response

from ..services.storage import StorageError, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/storage/{bucket}/{path:path}")
def download_signed(bucket: str, path: str, expires: int | None = None, signature: str | None = None) -> Response:
    storage = get_storage()
    if expires is None or not signature or not storage.verify_signed(bucket, path, expires, signature):
        logger.warning(f"[storage] rejected signed download bucket={bucket}")
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    try:
        if not storage.exists(bucket, path):
            raise HTTPException(status_code=404, detail="File not found")
        with storage.open(bucket, path) as fh:
            data = fh.read()
    except StorageError as exc:
        raise HTTPException(status_code=404, detail="File not found") from exc
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type, headers={"Cache-Control": "private, no-store"})
