import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wasabi.database import get_db
from wasabi.dependencies import SettingsDep, get_file_store
from wasabi.schemas.preference import IntroRequest, IntroResponse
from wasabi.services.file_store import FileStore, StoredFileNotFoundError
from wasabi.services.intro_service import IntroService
from wasabi.utils.auth import CurrentIdentity
from wasabi.utils.filenames import InvalidFileNameError, effect_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/preference", tags=["Preference"])


@router.post("", response_model=IntroResponse)
async def set_intro(
    data: IntroRequest,
    identity: CurrentIdentity,
    settings: SettingsDep,
    store: Annotated[FileStore, Depends(get_file_store)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> IntroResponse:
    try:
        sound_path = store.resolve(data.sound_name)
    except InvalidFileNameError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A valid sound name is required",
        ) from None
    except StoredFileNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sound does not exist in uploads",
        ) from None

    sound_name = sound_path.name
    effect = effect_name(sound_name)

    service = IntroService(db)
    try:
        await asyncio.wait_for(
            service.set_effect(identity.user_id, effect),
            timeout=settings.persistence_timeout,
        )
    except (asyncio.TimeoutError, SQLAlchemyError) as e:
        logger.error(f"Failed to save intro for {identity.user_id}: {e!r}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not save the intro",
        ) from None

    logger.info(f"Intro saved: user_id={identity.user_id} sound={sound_name} effect={effect}")
    return IntroResponse(message="Intro saved", sound_name=sound_name, effect=effect)
