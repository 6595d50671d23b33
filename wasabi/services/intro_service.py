from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from wasabi.models.intro import IntroPreference


class IntroService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_intro(self, user_id: str) -> Optional[IntroPreference]:
        return await self.db.get(IntroPreference, user_id)

    async def set_effect(self, user_id: str, effect: str) -> IntroPreference:
        """Upsert the user's intro keyed by their Discord id."""
        intro = await self.get_intro(user_id)
        if intro is None:
            intro = IntroPreference(user_id=user_id, effect=effect)
            self.db.add(intro)
        else:
            intro.effect = effect

        await self.db.commit()
        return intro
