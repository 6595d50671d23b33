import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from wasabi.dependencies import get_file_store
from wasabi.schemas.file import FileActionResponse, RenameRequest, StoredFile
from wasabi.services.file_store import (
    ConversionError,
    FileNameConflictError,
    FileStore,
    StoredFileNotFoundError,
    UnsupportedFormatError,
    UploadTooLargeError,
)
from wasabi.utils.auth import CurrentIdentity
from wasabi.utils.filenames import InvalidFileNameError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])

Store = Annotated[FileStore, Depends(get_file_store)]

# Sync handlers: FastAPI runs them in its threadpool, where blocking disk I/O
# and ffmpeg only hold up their own request.


@router.post("/upload", response_model=FileActionResponse, status_code=status.HTTP_201_CREATED)
def upload_file(
    identity: CurrentIdentity,
    store: Store,
    file: UploadFile = File(...),
    filename: Annotated[str | None, Form()] = None,
) -> FileActionResponse:
    try:
        name = store.upload(file.file, declared_name=filename, original_name=file.filename)
    except (InvalidFileNameError, UnsupportedFormatError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except FileNameConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from None
    except UploadTooLargeError as e:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e)
        ) from None
    except ConversionError as e:
        logger.error(f"Failed to convert upload from {identity.user_id} to mp3: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not convert the file to mp3",
        ) from None
    except OSError as e:
        logger.error(f"Failed to store upload from {identity.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not save the file",
        ) from None

    return FileActionResponse(message="File uploaded", name=name)


@router.get("/files", response_model=list[StoredFile])
def list_files(identity: CurrentIdentity, store: Store) -> list[StoredFile]:
    try:
        return store.list_files()
    except OSError as e:
        logger.error(f"Failed to list upload directory: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not list files",
        ) from None


@router.get("/files/{name}")
def get_file(name: str, identity: CurrentIdentity, store: Store) -> FileResponse:
    try:
        path = store.resolve(name)
    except InvalidFileNameError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except StoredFileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from None

    return FileResponse(path=str(path))


@router.put("/files/{name}", response_model=FileActionResponse)
def rename_file(
    name: str,
    data: RenameRequest,
    identity: CurrentIdentity,
    store: Store,
) -> FileActionResponse:
    try:
        new_name = store.rename(name, data.new_name)
    except InvalidFileNameError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except StoredFileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from None
    except FileNameConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from None

    message = "File unchanged" if new_name == name.strip() else "File renamed"
    return FileActionResponse(message=message, name=new_name)


@router.delete("/files/{name}", response_model=FileActionResponse)
def delete_file(name: str, identity: CurrentIdentity, store: Store) -> FileActionResponse:
    try:
        deleted = store.delete(name)
    except InvalidFileNameError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except StoredFileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from None

    return FileActionResponse(message="File deleted", name=deleted)
