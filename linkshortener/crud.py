import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from linkshortener import models, schemas, shortcodes, validators
from linkshortener.errors import AliasTaken, AllocationExhausted, StorageFault, ValidationError

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": models.ShortLink.created_at,
    "clickCount": models.ShortLink.click_count,
    "expiresAt": models.ShortLink.expires_at,
    "shortCode": models.ShortLink.short_code,
    "originalUrl": models.ShortLink.original_url,
}


class SQLCodeStore:
    """Uniqueness checks for the allocator, backed by the short_links table."""

    def __init__(self, db: Session):
        self.db = db

    def code_exists(self, code: str) -> bool:
        return self.db.query(models.ShortLink.id).filter_by(short_code=code).first() is not None

    def alias_taken(self, alias: str) -> bool:
        return self.db.query(models.ShortLink.id).filter(
            or_(models.ShortLink.short_code == alias, models.ShortLink.custom_alias == alias)
        ).first() is not None


def create_link(db: Session, link_in: schemas.LinkCreate, created_by: str = "anonymous") -> models.ShortLink:
    if not link_in.original_url or not link_in.original_url.strip():
        raise ValidationError("Original URL is required")
    original_url = validators.sanitize_url(link_in.original_url)
    if not validators.is_valid_url(original_url):
        raise ValidationError("Invalid URL format. Must include http:// or https://")
    if not validators.is_valid_expiration_date(link_in.expires_at):
        raise ValidationError("Invalid expiration date. Must be in the future.")
    expires_at = validators.parse_expiration_date(link_in.expires_at)
    custom_alias = link_in.custom_alias or None

    store = SQLCodeStore(db)
    try:
        for _ in range(shortcodes.MAX_ATTEMPTS):
            code = shortcodes.allocate(store, custom_alias)
            link = models.ShortLink(
                original_url=original_url,
                short_code=code,
                custom_alias=custom_alias,
                expires_at=expires_at,
                created_by=created_by,
            )
            db.add(link)
            try:
                db.commit()
            except IntegrityError:
                # Another request inserted the same code between check and insert
                db.rollback()
                if custom_alias:
                    raise AliasTaken()
                logger.warning("Short code %s lost an insert race, allocating again", code)
                continue
            db.refresh(link)
            return link
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to store short link for %s", original_url)
        raise StorageFault() from exc

    raise AllocationExhausted()

def get_link(db: Session, code: str, include_inactive: bool = False) -> models.ShortLink | None:
    query = db.query(models.ShortLink).filter_by(short_code=code)
    if not include_inactive:
        query = query.filter(models.ShortLink.is_active.is_(True))
    return query.first()

def get_links(
    db: Session,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "createdAt",
    order: str = "desc",
) -> list[models.ShortLink]:
    column = SORT_COLUMNS[sort_by]
    return (
        db.query(models.ShortLink)
        .filter(models.ShortLink.is_active.is_(True))
        .order_by(column.desc() if order == "desc" else column.asc(), models.ShortLink.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

def count_links(db: Session) -> int:
    return db.query(models.ShortLink).filter(models.ShortLink.is_active.is_(True)).count()

def soft_delete_link(db: Session, code: str) -> bool:
    link = get_link(db, code)
    if not link:
        return False
    link.is_active = False
    db.commit()
    return True

def get_clicks_since(db: Session, code: str, since: datetime) -> list[models.Click]:
    return (
        db.query(models.Click)
        .filter(models.Click.short_code == code, models.Click.timestamp >= since)
        .order_by(models.Click.timestamp.desc())
        .all()
    )
