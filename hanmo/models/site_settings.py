"""Key/value site configuration edited from the back office."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from .common import UTCDateTime, utcnow


class SiteSettingBase(SQLModel):
    key: str = Field(min_length=1, max_length=100)
    value: str = Field(min_length=1)
    description: str | None = Field(default=None, max_length=500)


class SiteSettingCreate(SiteSettingBase):
    pass


class SiteSetting(SiteSettingBase, table=True):
    __tablename__ = "site_settings"

    id: int | None = Field(default=None, primary_key=True)
    key: str = Field(unique=True, index=True, max_length=100)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class SiteSettingUpdate(SQLModel):
    key: str | None = Field(default=None, min_length=1, max_length=100)
    value: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, max_length=500)


class SiteSettingPublic(SiteSettingBase):
    id: int
    created_at: datetime
    updated_at: datetime
