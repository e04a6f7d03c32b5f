from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError
from ..db import models


class UserDirectory:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> models.User:
        user = self.db.get(models.User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user


class CoachProfileDirectory:

    def __init__(self, db: Session):
        self.db = db

    def get_by_user_id(self, user_id: int) -> models.CoachProfile:
        profile = self.db.execute(
            select(models.CoachProfile).where(models.CoachProfile.user_id == user_id)
        ).scalar_one_or_none()
        if profile is None:
            raise NotFoundError("Coach profile not found")
        return profile
