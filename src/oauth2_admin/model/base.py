from datetime import datetime, timezone
from typing import List

from sqlalchemy import JSON, DateTime, String, orm
from sqlalchemy.orm import mapped_column

from typing_extensions import Annotated

str255 = Annotated[str, 255]
str512 = Annotated[str, 512]
guidpk = Annotated[str, mapped_column(String(32), primary_key=True)]
utcdatetime = Annotated[datetime, mapped_column(DateTime(timezone=True), nullable=False)]
strlist = Annotated[List[str], mapped_column(JSON, nullable=False)]


class Base(orm.DeclarativeBase):
    type_annotation_map = {
        str255: String(255),
        str512: String(512),
        guidpk: String(32),
    }


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from stores that drop the offset (sqlite)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
