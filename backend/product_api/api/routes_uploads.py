import mimetypes

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from product_api.adapters.blob_store import BlobNotFoundError, BlobStore, InvalidBlobPathError, get_blob_store
from product_api.api.responses import failure

router = APIRouter(tags=["uploads"])

CHUNK_SIZE = 64 * 1024


def _iter_file(stream):
    with stream:
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


@router.get("/{path:path}", summary="Serve a stored file")
def serve_upload(path: str, blob_store: BlobStore = Depends(get_blob_store)):
    try:
        stream = blob_store.fetch(path)
    except (BlobNotFoundError, InvalidBlobPathError):
        return failure("NOT_FOUND", "File not found", 404)
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return StreamingResponse(_iter_file(stream), media_type=media_type)
