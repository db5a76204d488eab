from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Request, UploadFile

from server.dependencies.identity import get_repository
from server.models.responses import MessageResponse
from services.ingestion.TextExtractor import MIME_DOCX, MIME_PDF, MIME_TEXT
from shared.models.document import Document, DocumentProgress
from shared.stores.ScopedRepository import AccessStatus, ScopedRepository

router = APIRouter(prefix="/api/documents", tags=["documents"])

DEFAULT_UPLOAD_MAX_BYTES = 10 * 1024 * 1024


def _raise_for_access(status: AccessStatus) -> None:
    if status is AccessStatus.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Document not found")
    if status is AccessStatus.FORBIDDEN:
        raise HTTPException(status_code=403, detail="Access denied")


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read an upload, never pulling more than ``max_bytes + 1`` bytes into memory.

    Raises:
        HTTPException: 413 if the upload is larger than max_bytes.
    """
    # size is known when the multipart parser spooled the whole part
    if file.size is not None and file.size > max_bytes:
        raise HTTPException(status_code=413, detail="File too large")
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(status_code=413, detail="File too large")
    return data


@router.get("")
async def list_documents(repository: ScopedRepository = Depends(get_repository)) -> list[Document]:
    """List the caller's documents, most recent first."""
    return await repository.list_documents()


@router.post("/upload")
async def upload_document(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile | None = File(None),
    repository: ScopedRepository = Depends(get_repository),
) -> Document:
    """Accept an upload and process it in the background.

    The document is returned in state ``processing``; clients poll
    ``/api/documents/{id}/progress`` until it reaches a terminal state.

    Raises:
        HTTPException: 400 without a file, 415 for a disallowed media type,
            413 if the file exceeds UPLOAD_MAX_BYTES.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    helper_config = request.app.state.helper_config
    allowed_types = helper_config.get_list_val("UPLOAD_ALLOWED_MIME_TYPES", default=[MIME_TEXT, MIME_PDF, MIME_DOCX])
    max_bytes = helper_config.get_number_val("UPLOAD_MAX_BYTES", default=DEFAULT_UPLOAD_MAX_BYTES)

    mime_type = (file.content_type or "").split(";")[0].strip().lower()
    if mime_type not in allowed_types:
        raise HTTPException(status_code=415, detail="Unsupported file type")

    data = await read_upload(file, int(max_bytes))

    ingestion_service = request.app.state.ingestion_service
    document = await ingestion_service.do_create_document(repository.owner_id, file.filename, mime_type, data)
    background_tasks.add_task(ingestion_service.do_process_document, document.id, data, mime_type, file.filename)
    return document


@router.get("/{document_id}/progress")
async def get_document_progress(document_id: int, repository: ScopedRepository = Depends(get_repository)) -> DocumentProgress:
    status, document = await repository.lookup_document(document_id)
    _raise_for_access(status)
    return DocumentProgress(progress=document.progress, status=document.status)


@router.delete("/{document_id}")
async def delete_document(document_id: int, repository: ScopedRepository = Depends(get_repository)) -> MessageResponse:
    """Delete one of the caller's documents together with its chunks."""
    _raise_for_access(await repository.delete_document(document_id))
    return MessageResponse(message="Document deleted successfully")
